"""
Utilities for importing fleet trucks from JSON files into the database.

Usage:
    python -m haulhub.load_fleet --file trucks.json          # upsert by license plate
    python -m haulhub.load_fleet --file trucks.json --reset  # remove trucks before importing

Each record carries make, model, year, licensePlate (or license_plate),
capacity, and optionally fuelType and status.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import structlog
from pydantic import ValidationError
from sqlalchemy import func

from .database import SessionLocal, init_db
from .log import configure_logging
from .models import Haul, Truck
from .schemas import TruckCreate

logger = structlog.get_logger(__name__)

TRUCK_STATUSES = {"available", "in_use", "maintenance"}

# Alternate spellings seen in exported fleet sheets.
STATUS_ALIASES = {
    "in use": "in_use",
    "in-use": "in_use",
    "busy": "in_use",
    "repair": "maintenance",
}


def normalize_truck_status(raw: Optional[str]) -> str:
    if not raw:
        return "available"
    value = raw.strip().lower()
    value = STATUS_ALIASES.get(value, value)
    return value if value in TRUCK_STATUSES else "available"


def _field(entry: dict, *names: str, default=None):
    for name in names:
        if name in entry and entry[name] is not None:
            return entry[name]
    return default


def load_trucks(records: Iterable[dict], *, reset: bool = False) -> Tuple[int, int]:
    """Persist truck records, optionally clearing the existing fleet first.

    Records are checked against the same rules as the trucks API; records that
    fail are logged and skipped. Returns the number of trucks imported and updated.
    """
    init_db(seed=False)
    session = SessionLocal()

    try:
        if reset:
            for haul in session.query(Haul).filter(Haul.truck_id.isnot(None)):
                haul.truck_id = None
            session.flush()
            session.query(Truck).delete()
            session.commit()

        imported = 0
        updated = 0
        # Trucks touched by this batch, keyed by lowercased plate.
        seen: Dict[str, Truck] = {}

        for entry in records:
            plate = str(_field(entry, "licensePlate", "license_plate", default="")).strip()
            if not plate:
                logger.warning("truck_record_skipped", reason="missing license plate", record=entry)
                continue

            try:
                truck_in = TruckCreate(
                    make=_field(entry, "make", default="Unknown"),
                    model=_field(entry, "model", default="Unknown"),
                    year=_field(entry, "year"),
                    license_plate=plate,
                    capacity=_field(entry, "capacity"),
                    fuel_type=_field(entry, "fuelType", "fuel_type", default="diesel"),
                    status=normalize_truck_status(_field(entry, "status")),
                )
            except ValidationError as exc:
                logger.warning(
                    "truck_record_skipped",
                    reason="invalid record",
                    license_plate=plate,
                    errors=[".".join(str(part) for part in error["loc"]) for error in exc.errors()],
                )
                continue

            values = truck_in.model_dump(exclude={"license_plate", "driver_id"})
            key = plate.lower()
            existing: Optional[Truck] = seen.get(key)
            if existing is None:
                existing = (
                    session.query(Truck)
                    .filter(func.lower(Truck.license_plate) == key)
                    .one_or_none()
                )

            if existing:
                for field, value in values.items():
                    setattr(existing, field, value)
                updated += 1
            else:
                existing = Truck(license_plate=truck_in.license_plate, **values)
                session.add(existing)
                imported += 1
            seen[key] = existing

        session.commit()
        logger.info("fleet_imported", imported=imported, updated=updated, reset=reset)
        return imported, updated
    finally:
        session.close()


def load_json_records(path: Path) -> Iterable[dict]:
    if not path.exists():
        raise FileNotFoundError(f"JSON fleet file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load fleet truck JSON data into the HaulHub database."
    )
    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        required=True,
        help="Path to the trucks JSON file",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing trucks before importing.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging()
    args = parse_cli_args(argv)
    records = load_json_records(args.file)
    imported, updated = load_trucks(records, reset=args.reset)
    print(f"Trucks imported: {imported}, updated: {updated}")


if __name__ == "__main__":
    main()
