#!/usr/bin/env python3
"""
Load an equipment-type spreadsheet export (CSV) into the catalog.

Each row is one leaf of the domain → type → category → subcategory tree;
existing nodes are reused, so running the script twice is harmless.

Usage:
  python scripts/import_equipment_types.py path/to/types.csv
"""

import logging
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from equipment_catalog.core.settings import Settings
from equipment_catalog.db.base import Base
from equipment_catalog.db.session import create_engine_and_sessionmaker
from equipment_catalog.services.bulk_importer import BulkImporter
from equipment_catalog.services.errors import CatalogError

logger = logging.getLogger("import_equipment_types")


def import_file(csv_path: Path, settings: Optional[Settings] = None) -> int:
    settings = settings or Settings()

    db_runtime = create_engine_and_sessionmaker(settings.database_url, echo=settings.db_echo)
    if settings.auto_create_db:
        Base.metadata.create_all(bind=db_runtime.engine)

    text = csv_path.read_text(encoding="utf-8-sig")
    importer = BulkImporter(max_records=settings.import_max_records)

    db = db_runtime.SessionLocal()
    try:
        result = importer.import_csv(db, text)
    except CatalogError as exc:
        logger.error("Import aborted: %s", exc)
        return 2
    finally:
        db.close()
        db_runtime.engine.dispose()

    logger.info(
        "%s: %s records, %s imported, %s skipped, %s failed (%s nodes created, %s reused)",
        csv_path.name,
        result.total,
        result.imported,
        result.skipped,
        result.failed,
        result.created,
        result.reused,
    )
    for outcome in result.records:
        if outcome.status == "error":
            detail = (outcome.error or {}).get("detail")
            # +2: header row and 1-based numbering
            logger.warning("Row %s not imported: %s", outcome.index + 2, detail)

    return 1 if result.failed else 0


def main(argv: list[str]) -> int:
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if len(argv) != 1:
        logger.error("Usage: python scripts/import_equipment_types.py path/to/types.csv")
        return 2
    path = Path(argv[0])
    if not path.is_file():
        logger.error("File not found: %s", path)
        return 2
    return import_file(path, settings)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
