from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

from .lifecycle import allowed_actions as lifecycle_actions

Base = declarative_base()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False, default="driver")


class Truck(Base):
    __tablename__ = "trucks"

    id = Column(Integer, primary_key=True, index=True)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    license_plate = Column(String, nullable=False, unique=True)
    capacity = Column(Float, nullable=False)
    fuel_type = Column(String, nullable=False, default="diesel")
    status = Column(String, nullable=False, default="available")
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=_utc_now, nullable=False)
    updated_at = Column(DateTime, default=_utc_now, onupdate=_utc_now, nullable=False)

    driver = relationship("User", foreign_keys=[driver_id])


class Haul(Base):
    __tablename__ = "hauls"

    id = Column(Integer, primary_key=True, index=True)
    haul_type = Column(String, nullable=False)

    pickup_address = Column(String, nullable=False)
    pickup_city = Column(String, nullable=False)
    pickup_state = Column(String, nullable=False)
    pickup_zip = Column(String, nullable=False)
    pickup_date = Column(String, nullable=False)
    pickup_contact_name = Column(String, nullable=False)
    pickup_contact_phone = Column(String, nullable=False)
    pickup_instructions = Column(Text, nullable=True)
    pickup_latitude = Column(Float, nullable=True)
    pickup_longitude = Column(Float, nullable=True)

    delivery_address = Column(String, nullable=False)
    delivery_city = Column(String, nullable=False)
    delivery_state = Column(String, nullable=False)
    delivery_zip = Column(String, nullable=False)
    delivery_date = Column(String, nullable=False)
    delivery_contact_name = Column(String, nullable=False)
    delivery_contact_phone = Column(String, nullable=False)
    delivery_instructions = Column(Text, nullable=True)
    delivery_latitude = Column(Float, nullable=True)
    delivery_longitude = Column(Float, nullable=True)

    load_type = Column(String, nullable=False)
    load_description = Column(Text, nullable=False)
    load_weight = Column(Float, nullable=True)
    load_volume = Column(Float, nullable=True)
    load_hazardous = Column(Boolean, nullable=False, default=False)
    special_requirements = Column(Text, nullable=True)

    distance_miles = Column(Float, nullable=True)
    estimated_duration_hours = Column(Float, nullable=True)

    quoted_price = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)
    fuel_cost = Column(Float, nullable=True)
    payment_status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=True)

    status = Column(String, nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    truck_id = Column(Integer, ForeignKey("trucks.id"), nullable=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=_utc_now, nullable=False)
    updated_at = Column(DateTime, default=_utc_now, onupdate=_utc_now, nullable=False)
    # Optimistic lock: a second writer holding a stale row fails instead of overwriting.
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    owner = relationship("User", foreign_keys=[user_id])
    driver = relationship("User", foreign_keys=[driver_id])
    truck = relationship("Truck")

    @property
    def allowed_actions(self) -> List[str]:
        return [action.value for action in lifecycle_actions(self.status)]

    @property
    def revenue(self) -> float:
        return self.final_price or self.quoted_price or 0.0


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(String, nullable=False)
    truck_type_id = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    distance_km = Column(Float, nullable=False, default=0.0)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    customer_email = Column(String, nullable=True)
    customer_address = Column(String, nullable=True)
    total_price = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, default=_utc_now, nullable=False)
