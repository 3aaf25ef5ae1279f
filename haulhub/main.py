from contextlib import asynccontextmanager
from typing import Callable, Generator, List, Optional

import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .access import Resource, Role, require_access
from .config import get_settings
from .database import SessionLocal, init_db
from .errors import AccessDenied, InvalidAssignment, InvalidTransition, LifecycleError, UnknownCatalogItem
from .lifecycle import HaulAction, HaulStatus, transition
from .log import configure_logging
from .models import Haul, Order, Truck, User
from .orders import build_order
from .pricing import MATERIALS, TRUCK_TYPES, get_material, get_truck_type, quote_breakdown
from .reports import build_report
from .schemas import (
    HaulAssignRequest,
    HaulCreate,
    HaulEnvelope,
    HaulLeg,
    HaulPage,
    HaulRead,
    HaulUpdate,
    MaterialRead,
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
    QuoteRead,
    QuoteRequest,
    ReportRead,
    TruckCreate,
    TruckRead,
    TruckSummary,
    TruckTypeRead,
    TruckUpdate,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()  # Create tables and seed default users/fleet
    logger.info("api_started")
    yield


settings = get_settings()

app = FastAPI(
    title="HaulHub API",
    description="Haul tracking, fleet management and material ordering for HaulHub.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)

API_PREFIX = "/api/v1"

HAUL_FILTERS = {"active", "completed", "pending", "my_hauls", "my_assignments"}


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the acting user from the session layer's ``X-User-Id`` header."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = db.get(User, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def require_resource(resource: Resource) -> Callable[..., User]:
    def dependency(user: User = Depends(get_current_user)) -> User:
        require_access(user.role, resource)
        return user

    return dependency


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "current_status": exc.current_status, "action": exc.action},
    )


@app.exception_handler(InvalidAssignment)
async def invalid_assignment_handler(request: Request, exc: InvalidAssignment) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "current_status": exc.current_status},
    )


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    logger.warning("access_denied", role=exc.role, resource=exc.resource, path=request.url.path)
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(UnknownCatalogItem)
async def unknown_catalog_item_handler(request: Request, exc: UnknownCatalogItem) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/api/health")
def health_check():
    return {"status": "running"}


# ---------------------------------------------------------------------------
# Hauls
# ---------------------------------------------------------------------------


def _get_haul(db: Session, haul_id: int) -> Haul:
    haul = db.get(Haul, haul_id)
    if not haul:
        raise HTTPException(status_code=404, detail="Haul not found")
    return haul


def _apply_leg(haul: Haul, prefix: str, leg: HaulLeg) -> None:
    setattr(haul, f"{prefix}_address", leg.address)
    setattr(haul, f"{prefix}_city", leg.city)
    setattr(haul, f"{prefix}_state", leg.state)
    setattr(haul, f"{prefix}_zip", leg.zip)
    setattr(haul, f"{prefix}_date", leg.date)
    setattr(haul, f"{prefix}_contact_name", leg.contact_name)
    setattr(haul, f"{prefix}_contact_phone", leg.contact_phone)
    setattr(haul, f"{prefix}_instructions", leg.instructions)
    latitude, longitude = leg.coordinates if leg.coordinates else (None, None)
    setattr(haul, f"{prefix}_latitude", latitude)
    setattr(haul, f"{prefix}_longitude", longitude)


def _apply_details(haul: Haul, payload) -> None:
    """Copy the non-status fields shared by create and update payloads onto *haul*."""
    if payload.haul_type is not None:
        haul.haul_type = payload.haul_type
    if payload.pickup is not None:
        _apply_leg(haul, "pickup", payload.pickup)
    if payload.delivery is not None:
        _apply_leg(haul, "delivery", payload.delivery)
    if payload.load is not None:
        haul.load_type = payload.load.type
        haul.load_description = payload.load.description
        haul.load_weight = payload.load.weight
        haul.load_volume = payload.load.volume
        haul.load_hazardous = payload.load.hazardous
        haul.special_requirements = payload.load.special_requirements
    if payload.pricing is not None:
        pricing = payload.pricing
        if pricing.quoted_price is not None:
            haul.quoted_price = pricing.quoted_price
        if pricing.final_price is not None:
            haul.final_price = pricing.final_price
        if pricing.fuel_cost is not None:
            haul.fuel_cost = pricing.fuel_cost
        if pricing.payment_status is not None:
            haul.payment_status = pricing.payment_status
        if pricing.payment_method is not None:
            haul.payment_method = pricing.payment_method
    if payload.distance_miles is not None:
        haul.distance_miles = payload.distance_miles
    if payload.estimated_duration_hours is not None:
        haul.estimated_duration_hours = payload.estimated_duration_hours
    if payload.notes is not None:
        haul.notes = payload.notes


def _commit_haul(db: Session, haul: Haul) -> Haul:
    haul_id = haul.id
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("haul_write_conflict", haul_id=haul_id)
        raise HTTPException(status_code=409, detail="Haul was modified by another request; reload and retry")
    db.refresh(haul)
    return haul


def _apply_action(
    db: Session,
    haul_id: int,
    action: HaulAction,
    user: User,
    driver_id: Optional[int] = None,
) -> HaulEnvelope:
    haul = _get_haul(db, haul_id)
    previous = haul.status
    try:
        new_status = transition(previous, action, driver_id=driver_id)
        if action is HaulAction.ASSIGN:
            driver = db.get(User, driver_id)
            if driver is None or driver.role != Role.DRIVER.value:
                raise InvalidAssignment(previous, f"User {driver_id} is not an available driver")
            haul.driver_id = driver.id
    except LifecycleError as exc:
        logger.warning(
            "haul_transition_rejected",
            haul_id=haul.id,
            status=previous,
            action=action.value,
            user_id=user.id,
            reason=str(exc),
        )
        raise

    haul.status = new_status.value
    _commit_haul(db, haul)
    logger.info(
        "haul_transitioned",
        haul_id=haul.id,
        from_status=previous,
        to_status=haul.status,
        action=action.value,
        user_id=user.id,
    )
    return HaulEnvelope(haul=HaulRead.model_validate(haul))


@app.get(f"{API_PREFIX}/hauls", response_model=HaulPage)
def list_hauls(
    filter_: Optional[str] = Query(default=None, alias="filter"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulPage:
    query = db.query(Haul)
    if filter_:
        if filter_ not in HAUL_FILTERS:
            raise HTTPException(status_code=400, detail=f"Unknown filter '{filter_}'")
        if filter_ == "active":
            query = query.filter(
                or_(Haul.status == HaulStatus.ASSIGNED.value, Haul.status == HaulStatus.IN_PROGRESS.value)
            )
        elif filter_ == "completed":
            query = query.filter(Haul.status == HaulStatus.COMPLETED.value)
        elif filter_ == "pending":
            query = query.filter(Haul.status == HaulStatus.PENDING.value)
        elif filter_ == "my_hauls":
            query = query.filter(Haul.user_id == user.id)
        elif filter_ == "my_assignments":
            query = query.filter(Haul.driver_id == user.id)

    total = query.count()
    hauls = (
        query.order_by(Haul.created_at.desc(), Haul.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return HaulPage(
        hauls=[HaulRead.model_validate(haul) for haul in hauls],
        total=total,
        page=page,
        per_page=per_page,
    )


@app.get(f"{API_PREFIX}/hauls/{{haul_id}}", response_model=HaulEnvelope)
def get_haul(
    haul_id: int,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    return HaulEnvelope(haul=HaulRead.model_validate(_get_haul(db, haul_id)))


@app.post(f"{API_PREFIX}/hauls", response_model=HaulEnvelope, status_code=201)
def create_haul(
    payload: HaulCreate,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    """Book a new haul. Every haul starts pending whatever status the client sends."""
    haul = Haul(user_id=user.id, status=HaulStatus.PENDING.value, payment_status="pending")
    _apply_details(haul, payload)
    db.add(haul)
    db.commit()
    db.refresh(haul)
    logger.info("haul_created", haul_id=haul.id, haul_type=haul.haul_type, user_id=user.id)
    return HaulEnvelope(haul=HaulRead.model_validate(haul))


@app.put(f"{API_PREFIX}/hauls/{{haul_id}}", response_model=HaulEnvelope)
def update_haul(
    haul_id: int,
    payload: HaulUpdate,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    haul = _get_haul(db, haul_id)
    _apply_details(haul, payload)
    if payload.truck_id is not None:
        if not db.get(Truck, payload.truck_id):
            raise HTTPException(status_code=404, detail="Truck not found")
        haul.truck_id = payload.truck_id
    _commit_haul(db, haul)
    logger.info("haul_updated", haul_id=haul.id, user_id=user.id)
    return HaulEnvelope(haul=HaulRead.model_validate(haul))


@app.delete(f"{API_PREFIX}/hauls/{{haul_id}}", status_code=204)
def delete_haul(
    haul_id: int,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> None:
    haul = _get_haul(db, haul_id)
    db.delete(haul)
    db.commit()
    logger.info("haul_deleted", haul_id=haul_id, user_id=user.id)


@app.post(f"{API_PREFIX}/hauls/{{haul_id}}/assign", response_model=HaulEnvelope)
def assign_haul(
    haul_id: int,
    payload: HaulAssignRequest,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    return _apply_action(db, haul_id, HaulAction.ASSIGN, user, driver_id=payload.driver_id)


@app.post(f"{API_PREFIX}/hauls/{{haul_id}}/start", response_model=HaulEnvelope)
def start_haul(
    haul_id: int,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    return _apply_action(db, haul_id, HaulAction.START, user)


@app.post(f"{API_PREFIX}/hauls/{{haul_id}}/complete", response_model=HaulEnvelope)
def complete_haul(
    haul_id: int,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    return _apply_action(db, haul_id, HaulAction.COMPLETE, user)


@app.post(f"{API_PREFIX}/hauls/{{haul_id}}/cancel", response_model=HaulEnvelope)
def cancel_haul(
    haul_id: int,
    user: User = Depends(require_resource(Resource.HAULS)),
    db: Session = Depends(get_db),
) -> HaulEnvelope:
    return _apply_action(db, haul_id, HaulAction.CANCEL, user)


# ---------------------------------------------------------------------------
# Trucks (admin and dispatcher)
# ---------------------------------------------------------------------------


def _get_truck(db: Session, truck_id: int) -> Truck:
    truck = db.get(Truck, truck_id)
    if not truck:
        raise HTTPException(status_code=404, detail="Truck not found")
    return truck


def _check_plate_free(db: Session, plate: str, truck_id: Optional[int] = None) -> None:
    query = db.query(Truck).filter(func.lower(Truck.license_plate) == plate.strip().lower())
    if truck_id is not None:
        query = query.filter(Truck.id != truck_id)
    if query.one_or_none():
        raise HTTPException(status_code=409, detail="License plate already registered")


@app.get(f"{API_PREFIX}/trucks", response_model=List[TruckRead])
def list_trucks(
    status: Optional[str] = Query(default=None, pattern="^(available|in_use|maintenance)$"),
    search: Optional[str] = Query(default=None),
    user: User = Depends(require_resource(Resource.TRUCKS)),
    db: Session = Depends(get_db),
) -> List[TruckRead]:
    query = db.query(Truck)
    if status:
        query = query.filter(Truck.status == status)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Truck.make).like(term),
                func.lower(Truck.model).like(term),
                func.lower(Truck.license_plate).like(term),
            )
        )
    return query.order_by(Truck.id.asc()).all()


@app.get(f"{API_PREFIX}/trucks/summary", response_model=TruckSummary)
def truck_summary(
    user: User = Depends(require_resource(Resource.TRUCKS)),
    db: Session = Depends(get_db),
) -> TruckSummary:
    counts = dict(db.query(Truck.status, func.count(Truck.id)).group_by(Truck.status).all())
    return TruckSummary(
        total=sum(counts.values()),
        available=counts.get("available", 0),
        in_use=counts.get("in_use", 0),
        maintenance=counts.get("maintenance", 0),
    )


@app.get(f"{API_PREFIX}/trucks/{{truck_id}}", response_model=TruckRead)
def get_truck(
    truck_id: int,
    user: User = Depends(require_resource(Resource.TRUCKS)),
    db: Session = Depends(get_db),
) -> TruckRead:
    return _get_truck(db, truck_id)


@app.post(f"{API_PREFIX}/trucks", response_model=TruckRead, status_code=201)
def create_truck(
    payload: TruckCreate,
    user: User = Depends(require_resource(Resource.TRUCKS)),
    db: Session = Depends(get_db),
) -> TruckRead:
    _check_plate_free(db, payload.license_plate)
    truck = Truck(**payload.model_dump())
    db.add(truck)
    db.commit()
    db.refresh(truck)
    logger.info("truck_created", truck_id=truck.id, license_plate=truck.license_plate, user_id=user.id)
    return truck


@app.put(f"{API_PREFIX}/trucks/{{truck_id}}", response_model=TruckRead)
def update_truck(
    truck_id: int,
    payload: TruckUpdate,
    user: User = Depends(require_resource(Resource.TRUCKS)),
    db: Session = Depends(get_db),
) -> TruckRead:
    truck = _get_truck(db, truck_id)
    changes = payload.model_dump(exclude_unset=True)
    if "license_plate" in changes:
        _check_plate_free(db, changes["license_plate"], truck_id=truck.id)
    for field, value in changes.items():
        setattr(truck, field, value)
    db.commit()
    db.refresh(truck)
    logger.info("truck_updated", truck_id=truck.id, fields=sorted(changes), user_id=user.id)
    return truck


@app.delete(f"{API_PREFIX}/trucks/{{truck_id}}", status_code=204)
def delete_truck(
    truck_id: int,
    user: User = Depends(require_resource(Resource.TRUCKS)),
    db: Session = Depends(get_db),
) -> None:
    truck = _get_truck(db, truck_id)
    for haul in db.query(Haul).filter(Haul.truck_id == truck.id):
        haul.truck_id = None
    db.delete(truck)
    db.commit()
    logger.info("truck_deleted", truck_id=truck_id, user_id=user.id)


# ---------------------------------------------------------------------------
# Reports (admin)
# ---------------------------------------------------------------------------


@app.get(f"{API_PREFIX}/reports", response_model=ReportRead)
def get_report(
    days: int = 30,
    user: User = Depends(require_resource(Resource.REPORTS)),
    db: Session = Depends(get_db),
) -> ReportRead:
    days = max(1, min(days, 365))
    return build_report(db.query(Haul).all(), days=days)


# ---------------------------------------------------------------------------
# Catalog, quotes and public orders
# ---------------------------------------------------------------------------


@app.get(f"{API_PREFIX}/catalog/materials", response_model=List[MaterialRead])
def list_materials() -> List[MaterialRead]:
    return [MaterialRead.model_validate(material) for material in MATERIALS]


@app.get(f"{API_PREFIX}/catalog/truck-types", response_model=List[TruckTypeRead])
def list_truck_types() -> List[TruckTypeRead]:
    return [TruckTypeRead.model_validate(truck) for truck in TRUCK_TYPES]


@app.post(f"{API_PREFIX}/quotes", response_model=QuoteRead)
def preview_quote(payload: QuoteRequest) -> QuoteRead:
    """Price preview for the order form; an unset material or truck prices at zero."""
    material = get_material(payload.material_id)
    truck = get_truck_type(payload.truck_type_id)
    if payload.material_id is not None and material is None:
        raise UnknownCatalogItem("material", payload.material_id)
    if payload.truck_type_id is not None and truck is None:
        raise UnknownCatalogItem("truck type", payload.truck_type_id)

    breakdown = quote_breakdown(material, truck, payload.quantity, payload.distance_km)
    return QuoteRead(
        material=MaterialRead.model_validate(material) if material else None,
        truck_type=TruckTypeRead.model_validate(truck) if truck else None,
        quantity=payload.quantity,
        distance_km=payload.distance_km,
        base_cost=breakdown.base_cost,
        truck_multiplier=breakdown.truck_multiplier,
        distance_multiplier=breakdown.distance_multiplier,
        total_price=breakdown.total,
    )


def _get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@app.post(f"{API_PREFIX}/orders", response_model=OrderRead, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)) -> OrderRead:
    order = build_order(payload)
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("order_created", order_id=order.id, total_price=order.total_price)
    return order


@app.get(f"{API_PREFIX}/orders", response_model=List[OrderRead])
def list_orders(
    user: User = Depends(require_resource(Resource.ORDERS)),
    db: Session = Depends(get_db),
) -> List[OrderRead]:
    return db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()


@app.get(f"{API_PREFIX}/orders/{{order_id}}", response_model=OrderRead)
def get_order(
    order_id: int,
    user: User = Depends(require_resource(Resource.ORDERS)),
    db: Session = Depends(get_db),
) -> OrderRead:
    return _get_order(db, order_id)


@app.patch(f"{API_PREFIX}/orders/{{order_id}}/status", response_model=OrderRead)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    user: User = Depends(require_resource(Resource.ORDERS)),
    db: Session = Depends(get_db),
) -> OrderRead:
    order = _get_order(db, order_id)
    previous = order.status
    order.status = payload.status
    db.commit()
    db.refresh(order)
    logger.info("order_status_updated", order_id=order.id, from_status=previous, to_status=order.status, user_id=user.id)
    return order
