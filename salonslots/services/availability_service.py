"""
Application services for stylist availability.

The service fetches everything a query needs from the record store, packs it
into an ``AvailabilityContext`` and delegates the slot computation to the
domain layer. Callers (HTTP app, CLI, chat bot lookup) get back plain
response payloads.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from itertools import combinations
from typing import Any, Callable, Dict, List, Optional, Sequence

import pendulum

from ..adapters.record_store import RecordStoreProtocol
from ..domain.booking_validation import ProposedBooking, are_concurrent, validate_bookings
from ..domain.consolidated import consolidate, rank_available_stylists
from ..domain.exceptions import (
    InvalidRequestError,
    InvalidTimeError,
    ServiceNotFoundError,
    StylistNotFoundError,
)
from ..domain.models import (
    DEFAULT_SLOT_INTERVAL_MINUTES,
    AvailabilityContext,
    AvailabilityProfile,
    SalonService,
    parse_calendar_date,
    parse_clock_time,
    weekday_name,
)
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60


class AvailabilityService:
    """
    Orchestrates record retrieval and slot calculation.

    Dependency inversion toward ``RecordStoreProtocol`` makes it easy to plug
    in the REST client or the in-memory store in tests. ``clock`` returns the
    salon's current local time.
    """

    def __init__(
        self,
        store: RecordStoreProtocol,
        slot_calculator: Optional[SlotCalculator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        default_slot_interval: int = DEFAULT_SLOT_INTERVAL_MINUTES,
        default_duration: int = DEFAULT_DURATION_MINUTES,
    ) -> None:
        self._store = store
        self._slot_calculator = slot_calculator or SlotCalculator()
        self._clock = clock or pendulum.now
        self._default_slot_interval = default_slot_interval
        self._default_duration = default_duration

    # ── Single stylist ───────────────────────────────────────────────────

    async def get_availability(
        self,
        stylist_id: Optional[str],
        date_value: Optional[str],
        duration: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """
        Slot grid for one stylist on one day.

        Raises:
            InvalidRequestError: Missing identifiers, bad date/duration, past date
            StylistNotFoundError: Unknown stylist
            RecordStoreError: The record store could not be read
        """
        if not stylist_id or not date_value:
            raise InvalidRequestError("stylist_id and date are required")

        now = self._clock()
        target_date = self._parse_target_date(date_value, now, "Cannot book appointments in the past")
        duration_minutes = self._parse_duration(duration)

        profile = await self._store.get_stylist(stylist_id)
        if profile is None:
            raise StylistNotFoundError("Stylist not found")

        context = await self.build_context(profile, target_date)
        result = self._slot_calculator.compute(context, target_date, duration_minutes, now)

        logger.info(
            "Availability for stylist %s on %s: %d/%d slots free",
            stylist_id,
            target_date.isoformat(),
            result.available_count,
            result.total,
        )

        if result.message is not None:
            return {"success": True, "data": [], "message": result.message}

        return {
            "success": True,
            "data": [slot.to_dict() for slot in result.slots],
            "stylist": {
                "id": profile.id,
                "name": profile.name,
                "workingHours": profile.hours_for(target_date).to_dict(),
            },
            "availableCount": result.available_count,
            "total": result.total,
        }

    async def build_context(
        self,
        profile: AvailabilityProfile,
        target_date: date,
        slot_interval: Optional[int] = None,
    ) -> AvailabilityContext:
        """
        Fetch leave, breaks, bookings (and the slot interval) for one stylist.

        The reads are independent, so they run concurrently.
        """
        if slot_interval is None:
            leave_ranges, breaks, bookings, slot_interval = await asyncio.gather(
                self._store.get_leave_ranges(profile.id, target_date),
                self._store.get_breaks(profile.id),
                self._store.get_active_bookings(profile.id, target_date),
                self._fetch_slot_interval(),
            )
        else:
            leave_ranges, breaks, bookings = await asyncio.gather(
                self._store.get_leave_ranges(profile.id, target_date),
                self._store.get_breaks(profile.id),
                self._store.get_active_bookings(profile.id, target_date),
            )

        return AvailabilityContext(
            profile=profile,
            leave_ranges=tuple(leave_ranges),
            breaks=tuple(breaks),
            bookings=tuple(bookings),
            slot_interval_minutes=slot_interval,
        )

    # ── No preference ────────────────────────────────────────────────────

    async def get_consolidated_availability(
        self,
        service_id: Optional[str],
        date_value: Optional[str],
        branch_id: Optional[str] = None,
        duration: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """
        Merged grid across every stylist qualified for a service.

        ``duration`` overrides the service's own duration when given.
        """
        now, target_date, service, stylists = await self._load_service_request(
            service_id, date_value, branch_id
        )
        duration_minutes = (
            self._parse_duration(duration) if duration not in (None, "") else service.duration_minutes
        )

        if not stylists:
            return {
                "success": True,
                "data": [],
                "service": service.to_dict(),
                "message": "No stylists available for this service",
            }

        slot_interval = await self._fetch_slot_interval()
        contexts = await self._build_contexts(stylists, target_date, slot_interval)
        merged = consolidate(
            contexts,
            target_date,
            duration_minutes,
            now,
            slot_interval_minutes=slot_interval,
            booking_duration_minutes=self._slot_calculator.booking_duration_minutes,
        )

        if merged.message is not None:
            return {
                "success": True,
                "data": [],
                "service": service.to_dict(),
                "message": merged.message,
            }

        return {
            "success": True,
            "service": service.to_dict(),
            "date": target_date.isoformat(),
            "dayOfWeek": weekday_name(target_date),
            "data": [slot.to_dict() for slot in merged.slots],
            "totalSlots": merged.total_slots,
            "availableSlots": merged.available_slots,
            "qualifiedStylistCount": merged.qualified_stylist_count,
        }

    async def get_available_stylists(
        self,
        service_id: Optional[str],
        date_value: Optional[str],
        branch_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Stylists with at least one free slot for a service, most free first."""
        now, target_date, service, stylists = await self._load_service_request(
            service_id, date_value, branch_id
        )

        if not stylists:
            return {
                "success": True,
                "data": [],
                "service": service.to_dict(),
                "message": "No stylists available for this service",
            }

        slot_interval = await self._fetch_slot_interval()
        contexts = await self._build_contexts(stylists, target_date, slot_interval)
        ranked = rank_available_stylists(
            contexts,
            target_date,
            service.duration_minutes,
            now,
            calculator=self._slot_calculator,
        )

        data = [
            {
                "stylist": {
                    "id": entry.profile.id,
                    "name": entry.profile.name,
                    "workingHours": entry.profile.hours_for(target_date).to_dict(),
                },
                "slots": [slot.to_dict() for slot in entry.slots],
                "availableCount": entry.available_count,
            }
            for entry in ranked
        ]

        return {
            "success": True,
            "service": service.to_dict(),
            "date": target_date.isoformat(),
            "dayOfWeek": weekday_name(target_date),
            "data": data,
            "totalStylists": len(data),
        }

    # ── Booking checks ───────────────────────────────────────────────────

    async def validate_appointments(
        self,
        date_value: Optional[str],
        proposals: Sequence[ProposedBooking],
    ) -> Dict[str, Any]:
        """
        Check one or more proposed appointments on a day before booking them.

        Unlike the slot grid, existing appointments count with their real
        durations. Validation stops at the first proposal that fails.

        Raises:
            InvalidRequestError: Missing date or proposals, bad times or durations, past date
            RecordStoreError: The record store could not be read
        """
        if not date_value or not proposals:
            raise InvalidRequestError("date and at least one appointment are required")

        now = self._clock()
        target_date = self._parse_target_date(date_value, now, "Cannot book appointments in the past")
        for proposed in proposals:
            if not proposed.stylist_id or not proposed.customer_id:
                raise InvalidRequestError("stylist_id and customer_id are required")
            parse_clock_time(proposed.start)
            self._parse_duration(proposed.duration_minutes)

        stylist_ids = list(dict.fromkeys(proposed.stylist_id for proposed in proposals))
        bookings = await asyncio.gather(
            *(self._store.get_active_bookings(stylist_id, target_date) for stylist_id in stylist_ids)
        )
        results = validate_bookings(proposals, dict(zip(stylist_ids, bookings)))
        failure = next((result for result in results if not result.is_valid), None)

        if failure is not None:
            logger.info("Appointment check on %s failed: %s", target_date.isoformat(), failure.conflict_type)

        payload: Dict[str, Any] = {
            "success": True,
            "date": target_date.isoformat(),
            "allValid": failure is None,
            "validations": [result.to_dict() for result in results],
            "concurrent": any(are_concurrent(a, b) for a, b in combinations(proposals, 2)),
        }
        if failure is not None:
            payload["firstError"] = failure.reason
        return payload

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _load_service_request(
        self,
        service_id: Optional[str],
        date_value: Optional[str],
        branch_id: Optional[str],
    ) -> tuple[datetime, date, SalonService, List[AvailabilityProfile]]:
        if not service_id or not date_value:
            raise InvalidRequestError("service_id and date are required")

        now = self._clock()
        target_date = self._parse_target_date(
            date_value, now, "Cannot check availability for past dates"
        )

        service = await self._store.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError("Service not found")

        stylists = await self._store.get_qualified_stylists(service_id, branch_id)
        return now, target_date, service, stylists

    async def _build_contexts(
        self,
        stylists: List[AvailabilityProfile],
        target_date: date,
        slot_interval: int,
    ) -> List[AvailabilityContext]:
        return list(
            await asyncio.gather(
                *(self.build_context(profile, target_date, slot_interval) for profile in stylists)
            )
        )

    async def _fetch_slot_interval(self) -> int:
        interval = await self._store.get_slot_interval()
        if interval is None or interval <= 0:
            return self._default_slot_interval
        return interval

    @staticmethod
    def _parse_target_date(date_value: str, now: datetime, past_message: str) -> date:
        try:
            target_date = parse_calendar_date(date_value)
        except InvalidTimeError as exc:
            raise InvalidRequestError(str(exc)) from exc

        if target_date < now.date():
            raise InvalidRequestError(past_message)
        return target_date

    def _parse_duration(self, duration: Optional[Any]) -> int:
        if duration is None or duration == "":
            return self._default_duration
        try:
            minutes = int(duration)
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError("duration must be a positive number of minutes") from exc
        if minutes <= 0:
            raise InvalidRequestError("duration must be a positive number of minutes")
        return minutes
