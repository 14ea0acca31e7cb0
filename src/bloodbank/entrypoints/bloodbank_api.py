"""
Blood Bank API Entrypoint - Thin API with Command Dispatch

Reads go through views, writes are dispatched as commands on the message bus.
The caller's identity arrives in the X-User-Id header, set by the external
auth provider; it is turned into a UserSession once per request.
"""
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import create_engine

import config
from bloodbank import views
from bloodbank.adapters import orm
from bloodbank.domain import commands
from bloodbank.domain.availability import SearchFilters
from bloodbank.domain.exceptions import (
    DependencyError,
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from bloodbank.domain.session import UserSession
from bloodbank.service_layer import messagebus
from bloodbank.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork

logging.basicConfig(
    level=getattr(logging, config.get_log_level()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Initialize database and ORM mappers (Cosmic Python pattern)
@asynccontextmanager
async def lifespan(_app: FastAPI):
    engine = create_engine(config.get_postgres_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()
    logger.info("✓ Blood bank database initialized")
    yield


app = FastAPI(
    title="Blood Bank Coordination API",
    description="Blood inventory search, blood requests and donation scheduling",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------- Dependencies ----------

def get_uow() -> AbstractUnitOfWork:
    return SqlAlchemyUnitOfWork()


def get_session(
    x_user_id: Optional[str] = Header(default=None),
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> UserSession:
    """Resolve the caller's profile into a UserSession."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        with uow:
            profile = uow.users.get(x_user_id)
            if profile is None or not profile.is_active:
                logger.warning(f"Rejected unknown or inactive user {x_user_id}")
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
            return UserSession.from_profile(profile)
    except DependencyError as e:
        raise _to_http_error(e) from e


def _to_http_error(error: Exception) -> HTTPException:
    """Map a domain error to the HTTP response the UI shows."""
    if isinstance(error, InsufficientInventoryError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "kind": "insufficient_inventory",
                "message": str(error),
                "available_quantity": error.available_quantity,
            },
        )
    if isinstance(error, ValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"kind": "validation", "message": str(error)},
        )
    if isinstance(error, NotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"kind": "not_found", "message": str(error)},
        )
    if isinstance(error, DependencyError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"kind": "dependency", "message": "Blood bank service is temporarily unavailable. Please try again."},
        )
    logger.error(f"Unexpected error: {error}")
    return HTTPException(status_code=500, detail="Internal server error")


# ---------- Request/Response models ----------

class BloodRequestBody(BaseModel):
    bank_id: str
    blood_group: str = ""
    quantity: int = 1
    urgency: str = "medium"
    patient_name: str = ""
    contact_number: str = ""
    hospital_name: str = ""
    reason: str = ""
    required_by: Optional[date] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "bank_id": "3f0c6a7e-7d43-4a55-9a53-1f7c2b4f9e10",
                "blood_group": "O+",
                "quantity": 5,
                "urgency": "high",
                "patient_name": "Jane Doe",
                "contact_number": "+1 (555) 222-3344",
                "hospital_name": "St. Mary Hospital",
                "reason": "Scheduled surgery",
                "required_by": "2025-02-10"
            }
        }
    }

class ReviewBody(BaseModel):
    status: str  # approved | denied | fulfilled

class DonationBody(BaseModel):
    bank_id: str
    donation_date: date
    notes: str = ""


# ---------- Endpoints ----------

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "blood-bank-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/api/v1/search", summary="Search available blood grouped by bank")
def search(
    q: Optional[str] = None,
    blood_group: Optional[str] = None,
    location: Optional[str] = None,
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> Dict[str, Any]:
    """
    Search blood banks and their available, in-date inventory.

    Args:
        q: Case-insensitive substring of the bank name
        blood_group: Exact blood group, e.g. "O+"
        location: Case-insensitive substring of the bank location

    Returns:
        Banks ranked by total available units
    """
    filters = SearchFilters(name_query=q, blood_group=blood_group, location=location)
    try:
        results = views.search_blood_banks(filters, uow)
    except DependencyError as e:
        raise _to_http_error(e) from e

    return {"count": len(results), "results": results}


@app.get("/api/v1/banks/{bank_id}/availability/{blood_group}", summary="Units available for one blood group")
def get_availability(bank_id: str, blood_group: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    try:
        quantity = views.available_quantity(bank_id, blood_group, uow)
    except DependencyError as e:
        raise _to_http_error(e) from e

    return {"bank_id": bank_id, "blood_group": blood_group, "available_quantity": quantity}


@app.post("/api/v1/requests", status_code=status.HTTP_201_CREATED, summary="Submit a blood request")
def submit_request(
    body: BloodRequestBody,
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """
    Submit a blood request against one bank's inventory.

    Availability is re-checked at submission time; the bank is notified on a
    best-effort basis after the request is stored.
    """
    cmd = commands.SubmitBloodRequest(
        session=session,
        bank_id=body.bank_id,
        blood_group=body.blood_group,
        quantity=body.quantity,
        urgency=body.urgency,
        patient_name=body.patient_name,
        contact_number=body.contact_number,
        hospital_name=body.hospital_name,
        reason=body.reason,
        required_by=body.required_by,
    )
    try:
        [record] = messagebus.handle(cmd, uow)
    except Exception as e:
        raise _to_http_error(e) from e

    return record


@app.get("/api/v1/requests", summary="Blood requests visible to the caller")
def list_requests(
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> Dict[str, Any]:
    try:
        requests = views.request_history(session, uow)
    except DependencyError as e:
        raise _to_http_error(e) from e

    return {"total_count": len(requests), "requests": requests}


@app.patch("/api/v1/requests/{request_id}/status", summary="Approve, deny or fulfil a request")
def review_request(
    request_id: str,
    body: ReviewBody,
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    cmd = commands.ReviewBloodRequest(session=session, request_id=request_id, status=body.status)
    try:
        [record] = messagebus.handle(cmd, uow)
    except Exception as e:
        raise _to_http_error(e) from e

    return record


@app.post("/api/v1/donations", status_code=status.HTTP_201_CREATED, summary="Schedule a donation")
def schedule_donation(
    body: DonationBody,
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    cmd = commands.ScheduleDonation(
        session=session,
        bank_id=body.bank_id,
        donation_date=body.donation_date,
        notes=body.notes,
    )
    try:
        [record] = messagebus.handle(cmd, uow)
    except Exception as e:
        raise _to_http_error(e) from e

    return record


@app.get("/api/v1/donations", summary="Donation appointments visible to the caller")
def list_donations(
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> Dict[str, Any]:
    try:
        donations = views.donation_history(session, uow)
    except DependencyError as e:
        raise _to_http_error(e) from e

    return {"total_count": len(donations), "donations": donations}


@app.get("/api/v1/dashboard", summary="Role-specific dashboard counters")
def get_dashboard(
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> Dict[str, Any]:
    try:
        return views.dashboard(session, uow)
    except DependencyError as e:
        raise _to_http_error(e) from e


@app.get("/api/v1/notifications", summary="Latest notifications for the caller")
def list_notifications(
    limit: int = 5,
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
) -> List[Dict[str, Any]]:
    try:
        return views.notifications(session.user_id, uow, limit=limit)
    except DependencyError as e:
        raise _to_http_error(e) from e


@app.post("/api/v1/notifications/{notification_id}/read", summary="Mark a notification as read")
def mark_notification_read(
    notification_id: str,
    session: UserSession = Depends(get_session),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    cmd = commands.MarkNotificationRead(session=session, notification_id=notification_id)
    try:
        [record] = messagebus.handle(cmd, uow)
    except Exception as e:
        raise _to_http_error(e) from e

    return record


def main():
    """Serve the API with uvicorn."""
    import uvicorn

    api = config.get_api_host_and_port()
    uvicorn.run(app, host=api["host"], port=api["port"])


if __name__ == "__main__":
    main()
