import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings, configure_logging
from database import (
    APPOINTMENTS,
    DOCTORS,
    PAYMENTS,
    REVIEWS,
    SERVICES,
    USERS,
    connect,
    create_document,
    ensure_indexes,
    get_documents,
    ping,
    serialize,
    to_object_id,
)
from errors import conflict, invalid, not_found, register_error_handlers
from gateway import PaymentGateway, to_minor_units
from schemas import Appointment, Doctor, Payment, Review, User
from security import (
    ensure_owner,
    get_db,
    get_identity,
    get_settings,
    identity_email,
    issue_token,
    require_admin,
)
from slots import SlotNotFound, book_date, sort_slots, unbook_date

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------
# Models (requests)
# ---------------------------
class SlotAction(str, Enum):
    ADD = "addDate"
    DELETE = "deleteDate"


class SlotBookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    serviceName: Optional[str] = None
    bookedSlotTime: str
    bookedDate: str


class RoleUpdate(BaseModel):
    role: Optional[Literal["admin"]] = "admin"


class PaymentAttach(BaseModel):
    payment: Dict[str, Any]


class PaymentIntentRequest(BaseModel):
    price: Union[int, float, str]


# ---------------------------
# Utility helpers
# ---------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _year_of(value: Any) -> Optional[int]:
    if isinstance(value, datetime):
        return value.year
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).year
        except ValueError:
            return None
    return None


def _delete_by_id(db: Database, collection: str, item_id: str, what: str) -> Dict[str, int]:
    result = db[collection].delete_one({"_id": to_object_id(item_id)})
    if result.deleted_count == 0:
        raise not_found(what)
    return {"deletedCount": result.deleted_count}


# ---------------------------
# Health & Utility
# ---------------------------
@router.get("/", response_class=PlainTextResponse)
def read_root():
    return "Doc House server is up and running"


@router.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["database_name"] = db.name
        ping(db)
        collections = db.list_collection_names()
        response["collections"] = collections[:10]
        response["connection_status"] = "Connected"
        response["database"] = "✅ Connected & Working"
    except Exception as e:
        logger.warning(f"Database diagnostic failed: {e}")
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response


# ---------------------------
# Doctors
# ---------------------------
@router.get("/doctors")
def list_doctors(limit: int = Query(3, ge=1), db: Database = Depends(get_db)):
    return get_documents(db, DOCTORS, sort=[("_id", DESCENDING)], limit=min(limit, 100))


@router.get("/doctors/{doctor_id}")
def get_doctor(doctor_id: str, db: Database = Depends(get_db)):
    doc = db[DOCTORS].find_one({"_id": to_object_id(doctor_id)})
    if not doc:
        raise not_found("Doctor")
    return serialize(doc)


@router.post("/doctors")
def create_doctor(doctor: Doctor, db: Database = Depends(get_db)):
    return {"insertedId": create_document(db, DOCTORS, doctor)}


@router.delete("/doctors/{doctor_id}")
def delete_doctor(doctor_id: str, db: Database = Depends(get_db)):
    return _delete_by_id(db, DOCTORS, doctor_id, "Doctor")


# ---------------------------
# Services
# ---------------------------
@router.get("/services")
def list_services(db: Database = Depends(get_db)):
    services = get_documents(db, SERVICES)
    for svc in services:
        svc["availableSlot"] = sort_slots(svc.get("availableSlot") or [])
    return services


@router.patch("/services/{action}")
def update_service_slot(action: SlotAction, req: SlotBookingRequest, db: Database = Depends(get_db)):
    by_id = {"_id": to_object_id(req.id)} if req.id else None
    by_name = {"name": req.serviceName} if req.serviceName else None
    if action is SlotAction.ADD:
        filt = by_id or by_name
    else:
        filt = by_name or by_id
    if filt is None:
        raise invalid("_id or serviceName is required")

    svc = db[SERVICES].find_one(filt)
    if not svc:
        raise not_found("Service")

    current = svc.get("availableSlot") or []
    try:
        if action is SlotAction.ADD:
            slots = book_date(current, req.bookedSlotTime, req.bookedDate)
        else:
            slots = unbook_date(current, req.bookedSlotTime, req.bookedDate)
    except SlotNotFound as e:
        raise not_found(f"Slot '{e.label}'")

    # Only replace the slots we read; a concurrent booking makes this match nothing.
    result = db[SERVICES].update_one(
        {"_id": svc["_id"], "availableSlot": current},
        {"$set": {"availableSlot": slots, "updated_at": _now()}},
    )
    if result.matched_count == 0:
        logger.warning(f"Slot update on service {svc['_id']} lost a race; rejecting")
        raise conflict("Service slots changed concurrently, retry the booking")
    logger.info(f"{action.value} {req.bookedDate} on '{req.bookedSlotTime}' of service {svc['_id']}")
    return {"modifiedCount": result.modified_count}


# ---------------------------
# Reviews
# ---------------------------
@router.get("/reviews")
def list_reviews(limit: int = Query(5, ge=1), db: Database = Depends(get_db)):
    return get_documents(db, REVIEWS, sort=[("_id", DESCENDING)], limit=min(limit, 100))


@router.post("/reviews")
def create_review(review: Review, db: Database = Depends(get_db), identity=Depends(get_identity)):
    return {"insertedId": create_document(db, REVIEWS, review)}


# ---------------------------
# Authentication
# ---------------------------
@router.post("/jwt")
def create_token(payload: Dict[str, Any] = Body(...), settings: Settings = Depends(get_settings)):
    return {"token": issue_token(payload, settings)}


# ---------------------------
# Users
# ---------------------------
@router.get("/users")
def list_users(db: Database = Depends(get_db), admin=Depends(require_admin)):
    return get_documents(db, USERS)


@router.post("/users")
def create_user(user: User, db: Database = Depends(get_db)):
    doc = user.model_dump(exclude_none=True)
    doc.pop("role", None)
    if db[USERS].find_one({"email": user.email}):
        raise conflict("user already exists")
    try:
        inserted_id = create_document(db, USERS, doc)
    except DuplicateKeyError:
        raise conflict("user already exists")
    logger.info(f"✅ New user {user.email}")
    return {"insertedId": inserted_id}


@router.patch("/users/{user_id}")
def update_user_role(
    user_id: str,
    req: Optional[RoleUpdate] = None,
    db: Database = Depends(get_db),
    admin=Depends(require_admin),
):
    role = req.role if req else "admin"
    if role:
        update = {"$set": {"role": role, "updated_at": _now()}}
    else:
        update = {"$unset": {"role": ""}, "$set": {"updated_at": _now()}}
    result = db[USERS].update_one({"_id": to_object_id(user_id)}, update)
    if result.matched_count == 0:
        raise not_found("User")
    logger.info(f"Role of user {user_id} set to {role}")
    return {"modifiedCount": result.modified_count}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db), admin=Depends(require_admin)):
    return _delete_by_id(db, USERS, user_id, "User")


@router.get("/users/admin/{email}")
def check_admin(email: str, db: Database = Depends(get_db), identity=Depends(get_identity)):
    email = email.lower()
    if identity_email(identity) != email:
        return {"isAdmin": False}
    user = db[USERS].find_one({"email": email})
    return {"isAdmin": bool(user and user.get("role") == "admin")}


# ---------------------------
# Appointments
# ---------------------------
@router.get("/appointments")
def list_appointments(email: str = Query(...), db: Database = Depends(get_db), identity=Depends(get_identity)):
    ensure_owner(identity, email)
    return get_documents(db, APPOINTMENTS, {"email": email.lower()}, sort=[("appointmentDate", ASCENDING)])


@router.post("/appointments")
def create_appointment(appointment: Appointment, db: Database = Depends(get_db), identity=Depends(get_identity)):
    doc = appointment.model_dump(exclude_none=True)
    doc.pop("payment", None)
    return {"insertedId": create_document(db, APPOINTMENTS, doc)}


@router.delete("/appointments/{appointment_id}")
def delete_appointment(appointment_id: str, db: Database = Depends(get_db), identity=Depends(get_identity)):
    return _delete_by_id(db, APPOINTMENTS, appointment_id, "Appointment")


@router.patch("/appointments/{appointment_id}")
def attach_payment(
    appointment_id: str,
    req: PaymentAttach,
    db: Database = Depends(get_db),
    identity=Depends(get_identity),
):
    result = db[APPOINTMENTS].update_one(
        {"_id": to_object_id(appointment_id)},
        {"$set": {"payment": req.payment, "updated_at": _now()}},
    )
    if result.matched_count == 0:
        raise not_found("Appointment")
    return {"modifiedCount": result.modified_count}


# ---------------------------
# Payments
# ---------------------------
@router.get("/payments")
def list_payments(email: str = Query(...), db: Database = Depends(get_db), identity=Depends(get_identity)):
    ensure_owner(identity, email)
    return get_documents(db, PAYMENTS, {"email": email.lower()})


@router.post("/payments")
def record_payment(payment: Payment, db: Database = Depends(get_db), identity=Depends(get_identity)):
    return {"insertedId": create_document(db, PAYMENTS, payment)}


@router.post("/create-payment-intent")
def create_payment_intent(req: PaymentIntentRequest, request: Request):
    amount = to_minor_units(req.price)
    client_secret = request.app.state.gateway.create_payment_intent(amount)
    return {"clientSecret": client_secret}


# ---------------------------
# Dashboard
# ---------------------------
@router.get("/dashboard/userhome")
def user_home(email: str = Query(...), db: Database = Depends(get_db)):
    filt = {"email": email.lower()}
    return {
        "appointments": db[APPOINTMENTS].count_documents(filt),
        "payments": db[PAYMENTS].count_documents(filt),
        "reviews": db[REVIEWS].count_documents(filt),
    }


@router.get("/dashboard/adminhome")
def admin_home(db: Database = Depends(get_db), admin=Depends(require_admin)):
    by_year: Dict[int, int] = {}
    for user in db[USERS].find({}, {"created_at": 1, "createdAt": 1}):
        year = _year_of(user.get("created_at") or user.get("createdAt"))
        if year is not None:
            by_year[year] = by_year.get(year, 0) + 1
    signups: List[Dict[str, int]] = [{"year": y, "count": by_year[y]} for y in sorted(by_year)]

    total_appointments = db[APPOINTMENTS].count_documents({})
    paid = db[APPOINTMENTS].count_documents({"payment.status": "paid"})
    unpaid = db[APPOINTMENTS].count_documents({"payment": {"$exists": False}})
    return {
        "totalDoctors": db[DOCTORS].count_documents({}),
        "totalPatients": db[USERS].count_documents({}),
        "totalAppointments": total_appointments,
        "signupsByYear": signups,
        "paidAppointments": paid,
        "unpaidAppointments": unpaid,
        # Appointments whose payment status is neither "paid" nor absent (e.g. "pending")
        "otherPaymentStatus": total_appointments - paid - unpaid,
    }


# ---------------------------
# Application
# ---------------------------

def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    gateway: Optional[PaymentGateway] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    if db is None:
        db = connect(settings)
    if gateway is None:
        gateway = PaymentGateway(settings.payment_secret_key, settings.payment_api_url, settings.currency)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(db)
        logger.info("✅ Indexes ensured")
        yield
        gateway.close()

    app = FastAPI(title="Doc House API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.gateway = gateway

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
