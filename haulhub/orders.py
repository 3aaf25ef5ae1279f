"""Helpers for the public material ordering flow."""

from __future__ import annotations

from typing import Tuple

import structlog

from .errors import UnknownCatalogItem
from .models import Order
from .pricing import Material, TruckType, compute_quote, get_material, get_truck_type
from .schemas import OrderCreate

logger = structlog.get_logger(__name__)


def resolve_catalog(material_id: str, truck_type_id: str) -> Tuple[Material, TruckType]:
    """Look up the catalog entries an order refers to."""
    material = get_material(material_id)
    if material is None:
        raise UnknownCatalogItem("material", material_id)
    truck = get_truck_type(truck_type_id)
    if truck is None:
        raise UnknownCatalogItem("truck type", truck_type_id)
    return material, truck


def build_order(payload: OrderCreate) -> Order:
    """Return a new pending order priced from the catalog.

    The client preview is never trusted; the total is recomputed here.
    """
    material, truck = resolve_catalog(payload.material_id, payload.truck_type_id)
    total = compute_quote(material, truck, payload.quantity, payload.distance_km)
    order = Order(
        material_id=material.id,
        truck_type_id=truck.id,
        quantity=payload.quantity,
        distance_km=payload.distance_km,
        customer_name=payload.customer.name.strip(),
        customer_phone=payload.customer.phone.strip(),
        customer_email=payload.customer.email,
        customer_address=payload.customer.address,
        total_price=total,
        status="pending",
    )
    logger.info(
        "order_priced",
        material=material.name,
        truck_type=truck.name,
        quantity=payload.quantity,
        distance_km=payload.distance_km,
        total_price=total,
    )
    return order


__all__ = ["build_order", "resolve_catalog"]
