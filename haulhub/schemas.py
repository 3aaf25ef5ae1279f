from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HAUL_TYPE_PATTERN = "^(pickup|delivery|both)$"
HAUL_STATUS_PATTERN = "^(pending|assigned|in_progress|completed|cancelled)$"
PAYMENT_STATUS_PATTERN = "^(pending|paid|partial)$"
TRUCK_STATUS_PATTERN = "^(available|in_use|maintenance)$"


class HaulLeg(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
    date: str = Field(...)
    contact_name: str = Field(..., min_length=1)
    contact_phone: str = Field(..., min_length=1)
    instructions: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        from .utils import parse_timestamp

        if parse_timestamp(value) is None:
            raise ValueError(f"Unrecognised date '{value}'")
        return value


class HaulLoad(BaseModel):
    type: str = Field(..., min_length=1)
    description: str = Field(...)
    weight: Optional[float] = Field(default=None, ge=0)
    volume: Optional[float] = Field(default=None, ge=0)
    hazardous: bool = False
    special_requirements: Optional[str] = None


class HaulPricing(BaseModel):
    quoted_price: Optional[float] = Field(default=None, ge=0)
    final_price: Optional[float] = Field(default=None, ge=0)
    fuel_cost: Optional[float] = Field(default=None, ge=0)
    payment_status: Optional[str] = Field(default=None, pattern=PAYMENT_STATUS_PATTERN)
    payment_method: Optional[str] = None


class HaulCreate(BaseModel):
    haul_type: str = Field(..., pattern=HAUL_TYPE_PATTERN)
    pickup: HaulLeg
    delivery: HaulLeg
    load: HaulLoad
    pricing: Optional[HaulPricing] = None
    distance_miles: Optional[float] = Field(default=None, ge=0)
    estimated_duration_hours: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    # Accepted for compatibility with older clients; new hauls always start pending.
    status: Optional[str] = Field(default=None, pattern=HAUL_STATUS_PATTERN)


class HaulUpdate(BaseModel):
    """Partial update of haul details. Status only changes through the action endpoints."""

    haul_type: Optional[str] = Field(default=None, pattern=HAUL_TYPE_PATTERN)
    pickup: Optional[HaulLeg] = None
    delivery: Optional[HaulLeg] = None
    load: Optional[HaulLoad] = None
    pricing: Optional[HaulPricing] = None
    distance_miles: Optional[float] = Field(default=None, ge=0)
    estimated_duration_hours: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    truck_id: Optional[int] = Field(default=None, ge=1)


class HaulAssignRequest(BaseModel):
    driver_id: Optional[int] = None


class HaulRead(BaseModel):
    id: int
    haul_type: str

    pickup_address: str
    pickup_city: str
    pickup_state: str
    pickup_zip: str
    pickup_date: str
    pickup_contact_name: str
    pickup_contact_phone: str
    pickup_instructions: Optional[str] = None
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None

    delivery_address: str
    delivery_city: str
    delivery_state: str
    delivery_zip: str
    delivery_date: str
    delivery_contact_name: str
    delivery_contact_phone: str
    delivery_instructions: Optional[str] = None
    delivery_latitude: Optional[float] = None
    delivery_longitude: Optional[float] = None

    load_type: str
    load_description: str
    load_weight: Optional[float] = None
    load_volume: Optional[float] = None
    load_hazardous: bool
    special_requirements: Optional[str] = None

    distance_miles: Optional[float] = None
    estimated_duration_hours: Optional[float] = None

    quoted_price: Optional[float] = None
    final_price: Optional[float] = None
    fuel_cost: Optional[float] = None
    payment_status: str
    payment_method: Optional[str] = None

    status: str
    notes: Optional[str] = None
    user_id: int
    truck_id: Optional[int] = None
    driver_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    allowed_actions: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class HaulEnvelope(BaseModel):
    haul: HaulRead


class HaulPage(BaseModel):
    hauls: List[HaulRead]
    total: int
    page: int
    per_page: int


class TruckBase(BaseModel):
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1950, le=2100)
    license_plate: str = Field(..., min_length=1)
    capacity: float = Field(..., gt=0)
    fuel_type: str = Field("diesel", min_length=1)
    status: str = Field("available", pattern=TRUCK_STATUS_PATTERN)
    driver_id: Optional[int] = None

    @field_validator("license_plate", mode="before")
    @classmethod
    def _strip_plate(cls, value):
        return value.strip() if isinstance(value, str) else value


class TruckCreate(TruckBase):
    pass


class TruckUpdate(BaseModel):
    make: Optional[str] = Field(default=None, min_length=1)
    model: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1950, le=2100)
    license_plate: Optional[str] = Field(default=None, min_length=1)
    capacity: Optional[float] = Field(default=None, gt=0)
    fuel_type: Optional[str] = Field(default=None, min_length=1)
    status: Optional[str] = Field(default=None, pattern=TRUCK_STATUS_PATTERN)
    driver_id: Optional[int] = None

    @field_validator("license_plate", mode="before")
    @classmethod
    def _strip_plate(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _reject_null_required(self) -> "TruckUpdate":
        # Only driver_id may be cleared; the other columns are NOT NULL.
        cleared = sorted(
            name for name in self.model_fields_set if name != "driver_id" and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


class TruckRead(TruckBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TruckSummary(BaseModel):
    total: int
    available: int
    in_use: int
    maintenance: int


class MaterialRead(BaseModel):
    id: str
    name: str
    price_per_trip: int
    unit: str

    model_config = ConfigDict(from_attributes=True)


class TruckTypeRead(BaseModel):
    id: str
    name: str
    capacity: str
    price_multiplier: float

    model_config = ConfigDict(from_attributes=True)


class QuoteRequest(BaseModel):
    material_id: Optional[str] = None
    truck_type_id: Optional[str] = None
    quantity: int = Field(1, ge=1)
    distance_km: float = Field(0.0, ge=0.0)


class QuoteRead(BaseModel):
    material: Optional[MaterialRead] = None
    truck_type: Optional[TruckTypeRead] = None
    quantity: int
    distance_km: float
    base_cost: float
    truck_multiplier: float
    distance_multiplier: float
    total_price: int


class CustomerInfo(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None


class OrderCreate(BaseModel):
    material_id: str
    truck_type_id: str
    quantity: int = Field(1, ge=1)
    distance_km: float = Field(0.0, ge=0.0)
    customer: CustomerInfo


class OrderStatusUpdate(BaseModel):
    status: str

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Optional[str]) -> str:
        from .utils import normalize_order_status

        normalized = normalize_order_status(value, default=None)
        if normalized is None:
            raise ValueError(f"Unknown order status '{value}'")
        return normalized


class OrderRead(BaseModel):
    id: int
    material_id: str
    truck_type_id: str
    quantity: int
    distance_km: float
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    total_price: int
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StatusCount(BaseModel):
    status: str
    count: int
    percentage: float


class ReportRead(BaseModel):
    period_days: int
    generated_at: datetime
    total_hauls: int
    completed_hauls: int
    pending_hauls: int
    in_progress_hauls: int
    cancelled_hauls: int
    total_revenue: float
    average_revenue: float
    total_distance: float
    average_distance: float
    completion_rate: float
    cancellation_rate: float
    revenue_per_mile: Optional[float] = None
    status_distribution: List[StatusCount] = Field(default_factory=list)
    top_hauls: List[HaulRead] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_counts(self) -> "ReportRead":
        if self.completed_hauls > self.total_hauls:
            raise ValueError("completed_hauls must be <= total_hauls")
        return self
