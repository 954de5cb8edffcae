from __future__ import annotations

from pathlib import Path
import sys

# Ensure repo root is importable
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


import pytest
from fastapi.testclient import TestClient

from equipment_catalog.api.app import create_app
from equipment_catalog.core.settings import Settings
from equipment_catalog.db.base import Base
from equipment_catalog.db.session import create_engine_and_sessionmaker
from equipment_catalog.services.equipment_type_service import EquipmentTypeService


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    db_path = tmp_path / "test.db"

    return Settings(
        env="test",
        database_url=f"sqlite:///{db_path}",
        auto_create_db=True,
        equipment_soft_delete=False,
        import_max_records=10000,
    )


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(tmp_path: Path):
    rt = create_engine_and_sessionmaker(f"sqlite:///{tmp_path / 'services.db'}")
    Base.metadata.create_all(bind=rt.engine)
    session = rt.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        rt.engine.dispose()


@pytest.fixture()
def type_service() -> EquipmentTypeService:
    return EquipmentTypeService()


@pytest.fixture()
def electronics(db, type_service: EquipmentTypeService) -> dict:
    """Electronics > Sensors > Temperature > {Thermocouple, RTD}."""
    domain = type_service.create(db, name="Electronics", parent_id=None, level=1)
    sensors = type_service.create(db, name="Sensors", parent_id=domain.id, level=2)
    temperature = type_service.create(db, name="Temperature", parent_id=sensors.id, level=3)
    thermocouple = type_service.create(db, name="Thermocouple", parent_id=temperature.id, level=4)
    rtd = type_service.create(db, name="RTD", parent_id=temperature.id, level=4)
    return {
        "domain": domain,
        "type": sensors,
        "category": temperature,
        "thermocouple": thermocouple,
        "rtd": rtd,
    }
