from __future__ import annotations

import json
import sys
from importlib import import_module
from types import ModuleType
from typing import Generator

import pytest
from sqlalchemy.orm.exc import StaleDataError

from haulhub.config import get_settings
from haulhub.lifecycle import HaulAction, transition
from haulhub.models import Haul, Truck, User


@pytest.fixture()
def database(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Generator[ModuleType, None, None]:
    """Reload the database module against an isolated SQLite file."""
    db_path = tmp_path_factory.mktemp("data") / "test_persistence.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()

    for module in ("haulhub.load_fleet", "haulhub.database"):
        sys.modules.pop(module, None)

    module = import_module("haulhub.database")
    module.init_db(seed=True)
    yield module

    module.engine.dispose()
    get_settings.cache_clear()


def _add_haul(session, owner_id: int) -> Haul:
    haul = Haul(
        haul_type="pickup",
        pickup_address="1 Quarry Rd",
        pickup_city="Athi River",
        pickup_state="Machakos",
        pickup_zip="00204",
        pickup_date="2026-10-20",
        pickup_contact_name="A",
        pickup_contact_phone="1",
        delivery_address="2 Site Rd",
        delivery_city="Nairobi",
        delivery_state="Nairobi",
        delivery_zip="00100",
        delivery_date="2026-10-21",
        delivery_contact_name="B",
        delivery_contact_phone="2",
        load_type="Sand",
        load_description="Sand",
        user_id=owner_id,
    )
    session.add(haul)
    session.commit()
    session.refresh(haul)
    return haul


def test_seed_creates_one_user_per_role(database: ModuleType) -> None:
    session = database.SessionLocal()
    try:
        roles = sorted(user.role for user in session.query(User).all())
        assert roles == ["admin", "dispatcher", "driver"]
        assert session.query(Truck).count() == 3
    finally:
        session.close()

    database.init_db(seed=True)
    session = database.SessionLocal()
    try:
        assert session.query(User).count() == 3
    finally:
        session.close()


def test_store_stamps_updated_at_and_version(database: ModuleType) -> None:
    session = database.SessionLocal()
    try:
        haul = _add_haul(session, owner_id=1)
        assert haul.status == "pending"
        assert haul.version == 1
        created_stamp = haul.updated_at

        haul.status = transition(haul.status, HaulAction.START).value
        session.commit()
        session.refresh(haul)
        assert haul.version == 2
        assert haul.updated_at >= created_stamp
    finally:
        session.close()


def test_concurrent_starts_cannot_both_commit(database: ModuleType) -> None:
    setup = database.SessionLocal()
    try:
        haul_id = _add_haul(setup, owner_id=1).id
    finally:
        setup.close()

    first = database.SessionLocal()
    second = database.SessionLocal()
    try:
        mine = first.get(Haul, haul_id)
        theirs = second.get(Haul, haul_id)

        mine.status = transition(mine.status, HaulAction.START).value
        theirs.status = transition(theirs.status, HaulAction.START).value

        first.commit()
        with pytest.raises(StaleDataError):
            second.commit()
        second.rollback()
    finally:
        first.close()
        second.close()


def test_load_fleet_upserts_by_plate(database: ModuleType, tmp_path) -> None:
    load_fleet = import_module("haulhub.load_fleet")
    records = [
        {"make": "Isuzu", "model": "FVZ", "year": 2022, "licensePlate": "KDA 404D", "capacity": 14, "status": "In Use"},
        {"make": "TATA", "model": "LPT 1613", "year": 2021, "license_plate": "kcb 202b", "capacity": 12, "status": "repair"},
        {"make": "Ghost", "model": "None", "year": 2000, "capacity": 1},
    ]
    path = tmp_path / "trucks.json"
    path.write_text(json.dumps(records), encoding="utf-8")

    imported, updated = load_fleet.load_trucks(load_fleet.load_json_records(path))
    assert (imported, updated) == (1, 1)

    session = database.SessionLocal()
    try:
        by_plate = {truck.license_plate: truck for truck in session.query(Truck).all()}
        assert by_plate["KDA 404D"].status == "in_use"
        assert by_plate["KCB 202B"].status == "maintenance"
        assert by_plate["KCB 202B"].year == 2021
    finally:
        session.close()

    imported, updated = load_fleet.load_trucks(records[:1], reset=True)
    assert (imported, updated) == (1, 0)


def test_load_fleet_skips_records_the_api_would_reject(database: ModuleType) -> None:
    load_fleet = import_module("haulhub.load_fleet")
    records = [
        {"make": "Scania", "licensePlate": "KZZ 001A"},
        {"make": "Scania", "model": "P410", "year": 2023, "licensePlate": "KZZ 002A", "capacity": -4},
        {"make": "Scania", "model": "P410", "year": 2023, "licensePlate": " KZZ 003A ", "capacity": 18},
    ]

    imported, updated = load_fleet.load_trucks(records)
    assert (imported, updated) == (1, 0)

    session = database.SessionLocal()
    try:
        plates = sorted(truck.license_plate for truck in session.query(Truck).all())
        assert plates == ["KCA 101A", "KCB 202B", "KCC 303C", "KZZ 003A"]
    finally:
        session.close()


def test_load_fleet_merges_plates_repeated_in_one_file(database: ModuleType) -> None:
    load_fleet = import_module("haulhub.load_fleet")
    records = [
        {"make": "Volvo", "model": "FMX", "year": 2020, "licensePlate": "KZZ 2", "capacity": 16},
        {"make": "Volvo", "model": "FMX", "year": 2022, "licensePlate": "kzz 2", "capacity": 16, "status": "busy"},
    ]

    imported, updated = load_fleet.load_trucks(records)
    assert (imported, updated) == (1, 1)

    session = database.SessionLocal()
    try:
        matches = session.query(Truck).filter(Truck.make == "Volvo").all()
        assert len(matches) == 1
        assert matches[0].license_plate == "KZZ 2"
        assert matches[0].year == 2022
        assert matches[0].status == "in_use"
    finally:
        session.close()


def test_fleet_reset_detaches_hauls_through_the_version_check(database: ModuleType) -> None:
    load_fleet = import_module("haulhub.load_fleet")
    session = database.SessionLocal()
    try:
        haul = _add_haul(session, owner_id=1)
        haul.truck_id = 1
        session.commit()
        haul_id = haul.id
        assert haul.version == 2
    finally:
        session.close()

    load_fleet.load_trucks([], reset=True)

    session = database.SessionLocal()
    try:
        haul = session.get(Haul, haul_id)
        assert haul.truck_id is None
        assert haul.version == 3
        assert session.query(Truck).count() == 0
    finally:
        session.close()


def test_load_fleet_missing_file(database: ModuleType, tmp_path) -> None:
    load_fleet = import_module("haulhub.load_fleet")
    with pytest.raises(FileNotFoundError):
        load_fleet.load_json_records(tmp_path / "absent.json")
    assert load_fleet.normalize_truck_status(None) == "available"
    assert load_fleet.normalize_truck_status("flying") == "available"
