"""
Public HTTP endpoints for availability lookups.

GET /api/public/availability               - slots for one stylist
GET /api/public/consolidated-availability  - merged "no preference" grid
GET /api/public/available-stylists         - stylists ranked by free slots
POST /api/public/validate-appointments     - conflict check before booking
"""

import logging
from typing import Any, Awaitable, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..adapters.rate_limiter import RateLimiter, client_key
from ..config import AppConfig, load_config
from ..domain.booking_validation import ProposedBooking
from ..domain.exceptions import (
    InvalidRequestError,
    ServiceNotFoundError,
    StylistNotFoundError,
)
from ..factory import build_rate_limiter, build_service
from ..logging_config import configure_logging
from ..services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)


class AppointmentProposal(BaseModel):
    stylist_id: str
    customer_id: str
    start_time: str
    duration: int
    exclude_appointment_id: Optional[str] = None

    def to_proposed(self) -> ProposedBooking:
        return ProposedBooking(
            stylist_id=self.stylist_id,
            customer_id=self.customer_id,
            start=self.start_time,
            duration_minutes=self.duration,
            exclude_booking_id=self.exclude_appointment_id,
        )


class ValidateAppointmentsRequest(BaseModel):
    date: str
    appointments: List[AppointmentProposal]


def _error(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


async def _respond(call: Awaitable[Dict[str, Any]]) -> JSONResponse:
    """Run a service call and map domain errors onto HTTP statuses."""
    try:
        return JSONResponse(content=await call)
    except InvalidRequestError as exc:
        return _error(400, str(exc))
    except (StylistNotFoundError, ServiceNotFoundError) as exc:
        return _error(404, str(exc))
    except Exception:
        logger.exception("Availability lookup failed")
        return _error(500, "Internal server error")


def _build_router(service: AvailabilityService, rate_limiter: Optional[RateLimiter]) -> APIRouter:
    router = APIRouter(prefix="/api/public", tags=["availability"])

    def _throttled(request: Request) -> Optional[JSONResponse]:
        if rate_limiter is None:
            return None
        peer = request.client.host if request.client else None
        decision = rate_limiter.check(client_key(request.headers, fallback=peer))
        if decision.allowed:
            return None
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "error": "Too many requests. Please try again later.",
                "retryAfter": decision.retry_after,
            },
            headers={"Retry-After": str(decision.retry_after)},
        )

    @router.get("/availability")
    async def get_availability(
        request: Request,
        stylist_id: Optional[str] = None,
        date: Optional[str] = None,
        duration: Optional[str] = None,
    ):
        """Slots for one stylist on one day (duration defaults to 60 minutes)."""
        limited = _throttled(request)
        if limited is not None:
            return limited
        return await _respond(service.get_availability(stylist_id, date, duration))

    @router.get("/consolidated-availability")
    async def get_consolidated_availability(
        request: Request,
        service_id: Optional[str] = None,
        date: Optional[str] = None,
        branch_id: Optional[str] = None,
        duration: Optional[str] = None,
    ):
        """Merged grid: a slot is open if any qualified stylist is free."""
        limited = _throttled(request)
        if limited is not None:
            return limited
        return await _respond(
            service.get_consolidated_availability(service_id, date, branch_id, duration)
        )

    @router.get("/available-stylists")
    async def get_available_stylists(
        request: Request,
        service_id: Optional[str] = None,
        date: Optional[str] = None,
        branch_id: Optional[str] = None,
    ):
        """Stylists with free slots for a service, most available first."""
        limited = _throttled(request)
        if limited is not None:
            return limited
        return await _respond(service.get_available_stylists(service_id, date, branch_id))

    @router.post("/validate-appointments")
    async def validate_appointments(request: Request, body: ValidateAppointmentsRequest):
        """Check proposed appointments against the stylists' existing ones."""
        limited = _throttled(request)
        if limited is not None:
            return limited
        proposals = [appointment.to_proposed() for appointment in body.appointments]
        return await _respond(service.validate_appointments(body.date, proposals))

    return router


def create_app(service: AvailabilityService, rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """Build the FastAPI app around an already wired service."""
    app = FastAPI(title="Salon Slots")
    app.include_router(_build_router(service, rate_limiter))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def app_from_config(config: Optional[AppConfig] = None) -> FastAPI:
    """Entry point for ASGI servers, e.g. ``uvicorn --factory salonslots.api.app:app_from_config``."""
    config = config or load_config()
    configure_logging(config.log_level)
    return create_app(build_service(config), build_rate_limiter(config))
