import logging

import uvicorn

from equipment_catalog.api.app import create_app
from equipment_catalog.core.settings import Settings

settings = Settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = create_app(settings)


if __name__ == "__main__":
    logger.info("Serving equipment catalog on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
