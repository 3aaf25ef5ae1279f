"""Material order pricing.

Reference catalogs for the public ordering flow plus the quote calculator that
turns a material, truck type, trip count and distance into a total price.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

# Each kilometre adds 5% on top of the trip cost.
DISTANCE_RATE = 0.05


@dataclass(frozen=True)
class Material:
    id: str
    name: str
    price_per_trip: int
    unit: str = "per trip"


@dataclass(frozen=True)
class TruckType:
    id: str
    name: str
    capacity: str
    price_multiplier: float


@dataclass(frozen=True)
class QuoteBreakdown:
    base_cost: float
    truck_multiplier: float
    distance_multiplier: float
    total: int


MATERIALS: List[Material] = [
    Material(id="1", name="Sand", price_per_trip=2500),
    Material(id="2", name="Gravel", price_per_trip=3000),
    Material(id="3", name="Stone Chips", price_per_trip=2800),
    Material(id="4", name="Brick", price_per_trip=3500),
    Material(id="5", name="Cement", price_per_trip=4000),
]

TRUCK_TYPES: List[TruckType] = [
    TruckType(id="1", name="Ashok Leyland", capacity="10 tons", price_multiplier=1.0),
    TruckType(id="2", name="TATA", capacity="12 tons", price_multiplier=1.2),
    TruckType(id="3", name="Howo", capacity="15 tons", price_multiplier=1.5),
]

_MATERIALS_BY_ID: Dict[str, Material] = {material.id: material for material in MATERIALS}
_TRUCK_TYPES_BY_ID: Dict[str, TruckType] = {truck.id: truck for truck in TRUCK_TYPES}


def get_material(material_id: Optional[str]) -> Optional[Material]:
    if material_id is None:
        return None
    return _MATERIALS_BY_ID.get(str(material_id))


def get_truck_type(truck_type_id: Optional[str]) -> Optional[TruckType]:
    if truck_type_id is None:
        return None
    return _TRUCK_TYPES_BY_ID.get(str(truck_type_id))


def round_currency(amount: float) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quote_breakdown(
    material: Optional[Material],
    truck: Optional[TruckType],
    quantity: int,
    distance_km: float,
) -> QuoteBreakdown:
    if material is None or truck is None:
        return QuoteBreakdown(base_cost=0.0, truck_multiplier=0.0, distance_multiplier=0.0, total=0)

    base_cost = material.price_per_trip * quantity
    distance_multiplier = 1 + distance_km * DISTANCE_RATE
    total = round_currency(base_cost * truck.price_multiplier * distance_multiplier)
    return QuoteBreakdown(
        base_cost=base_cost,
        truck_multiplier=truck.price_multiplier,
        distance_multiplier=distance_multiplier,
        total=total,
    )


def compute_quote(
    material: Optional[Material],
    truck: Optional[TruckType],
    quantity: int,
    distance_km: float,
) -> int:
    """Return the total price of an order, or 0 until both material and truck are chosen.

    Quantity and distance are used as given; callers validate them first.
    """
    return quote_breakdown(material, truck, quantity, distance_km).total


__all__ = [
    "DISTANCE_RATE",
    "MATERIALS",
    "Material",
    "QuoteBreakdown",
    "TRUCK_TYPES",
    "TruckType",
    "compute_quote",
    "get_material",
    "get_truck_type",
    "quote_breakdown",
    "round_currency",
]
