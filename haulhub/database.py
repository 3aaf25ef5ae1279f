from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import structlog

from .config import get_settings
from .models import Base, Truck, User

logger = structlog.get_logger(__name__)

DATABASE_URL = get_settings().database_url

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_USERS = [
    {"name": "Ada Admin", "email": "admin@haulhub.local", "role": "admin"},
    {"name": "Dana Dispatcher", "email": "dispatch@haulhub.local", "role": "dispatcher"},
    {"name": "Dev Driver", "email": "driver@haulhub.local", "role": "driver"},
]

DEFAULT_TRUCKS = [
    {"make": "Ashok Leyland", "model": "Boss 1215", "year": 2019, "license_plate": "KCA 101A", "capacity": 10, "fuel_type": "diesel"},
    {"make": "TATA", "model": "LPT 1613", "year": 2020, "license_plate": "KCB 202B", "capacity": 12, "fuel_type": "diesel"},
    {"make": "Howo", "model": "Sinotruk 371", "year": 2021, "license_plate": "KCC 303C", "capacity": 15, "fuel_type": "diesel"},
]


def init_db(seed: Optional[bool] = None):
    """Create tables if they do not exist"""
    Base.metadata.create_all(bind=engine)
    if seed is None:
        seed = get_settings().seed_defaults
    if seed:
        init_users()
        init_trucks()


def init_users():
    """Add one user per role when the users table is empty"""
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            return
        for entry in DEFAULT_USERS:
            db.add(User(**entry))
        db.commit()
        logger.info("users_seeded", count=len(DEFAULT_USERS))
    finally:
        db.close()


def init_trucks():
    """Preload a small fleet when no trucks exist"""
    db = SessionLocal()
    try:
        if db.query(Truck).count() > 0:
            return
        for entry in DEFAULT_TRUCKS:
            db.add(Truck(status="available", **entry))
        db.commit()
        logger.info("trucks_seeded", count=len(DEFAULT_TRUCKS))
    finally:
        db.close()
