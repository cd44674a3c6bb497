"""
Record store client for salon data (staff, leave, breaks, appointments).

The hosted database exposes a PostgREST-style HTTP API: one path per table,
filters as query parameters (``id=eq.42``, ``start_date=lte.2024-11-25``).
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from ..domain.exceptions import InvalidTimeError, RecordStoreError
from ..domain.models import (
    INACTIVE_BOOKING_STATUSES,
    AvailabilityProfile,
    Booking,
    Break,
    LeaveRange,
    SalonService,
    WorkingHours,
    WEEKDAY_NAMES,
    parse_calendar_date,
    parse_clock_time,
)

logger = logging.getLogger(__name__)

STAFF_COLUMNS = "id,name,working_days,working_hours,is_emergency_unavailable,specializations"


class RecordStoreProtocol(Protocol):
    """Protocol describing the reads the availability service needs."""

    async def get_stylist(self, stylist_id: str) -> Optional[AvailabilityProfile]:
        """Return the stylist's profile, or None if unknown."""

    async def get_leave_ranges(self, stylist_id: str, day: date) -> List[LeaveRange]:
        """Return leave ranges covering ``day``."""

    async def get_slot_interval(self) -> Optional[int]:
        """Return the salon-wide slot interval in minutes, if configured."""

    async def get_breaks(self, stylist_id: str) -> List[Break]:
        """Return the stylist's recurring breaks."""

    async def get_active_bookings(self, stylist_id: str, day: date) -> List[Booking]:
        """Return bookings on ``day`` that still occupy the stylist."""

    async def get_service(self, service_id: str) -> Optional[SalonService]:
        """Return an active service, or None."""

    async def get_qualified_stylists(
        self,
        service_id: str,
        branch_id: Optional[str] = None,
    ) -> List[AvailabilityProfile]:
        """Return active stylists able to perform ``service_id``."""


# ── Record parsing ───────────────────────────────────────────────────────


def _parse_hours(raw: Any) -> Optional[WorkingHours]:
    if not isinstance(raw, Mapping) or not raw.get("start") or not raw.get("end"):
        return None
    return WorkingHours.parse(raw["start"], raw["end"])


def parse_stylist_record(
    record: Mapping[str, Any],
    default_hours: Optional[WorkingHours] = None,
) -> AvailabilityProfile:
    """
    Build a profile from a ``staff`` row.

    ``working_hours`` is either a flat ``{"start", "end"}`` mapping or keyed
    by weekday name. Missing hours fall back to ``default_hours``.
    """
    raw_hours = record.get("working_hours")
    hours_by_day: Dict[str, WorkingHours] = {}
    try:
        flat = _parse_hours(raw_hours)
        if flat is None and isinstance(raw_hours, Mapping):
            for day_name in WEEKDAY_NAMES:
                day_hours = _parse_hours(raw_hours.get(day_name))
                if day_hours is not None:
                    hours_by_day[day_name] = day_hours
    except InvalidTimeError as exc:
        raise RecordStoreError(f"Malformed working hours for stylist {record.get('id')}: {exc}") from exc

    profile_kwargs: Dict[str, Any] = {}
    working_hours = flat or default_hours
    if working_hours is not None:
        profile_kwargs["working_hours"] = working_hours

    working_days = record.get("working_days")

    return AvailabilityProfile(
        id=str(record["id"]),
        name=record.get("name") or "",
        working_days=frozenset(working_days) if working_days else None,
        is_emergency_unavailable=bool(record.get("is_emergency_unavailable")),
        specializations=tuple(str(s) for s in record.get("specializations") or ()),
        hours_by_day=hours_by_day,
        **profile_kwargs,
    )


def parse_leave_record(record: Mapping[str, Any]) -> LeaveRange:
    try:
        return LeaveRange(
            start_date=parse_calendar_date(record["start_date"]),
            end_date=parse_calendar_date(record["end_date"]),
        )
    except (KeyError, InvalidTimeError) as exc:
        raise RecordStoreError(f"Malformed leave record: {record!r}") from exc


def parse_break_record(record: Mapping[str, Any]) -> Break:
    try:
        return Break(start=parse_clock_time(record["start_time"]), end=parse_clock_time(record["end_time"]))
    except (KeyError, InvalidTimeError) as exc:
        raise RecordStoreError(f"Malformed break record: {record!r}") from exc


def parse_booking_record(record: Mapping[str, Any]) -> Booking:
    try:
        start = parse_clock_time(record["start_time"])
    except (KeyError, InvalidTimeError) as exc:
        raise RecordStoreError(f"Malformed appointment record: {record!r}") from exc

    duration = record.get("duration")
    try:
        duration_minutes = int(duration) if duration is not None else None
    except (TypeError, ValueError) as exc:
        raise RecordStoreError(f"Malformed appointment duration: {record!r}") from exc

    return Booking(
        start=start,
        status=record.get("status") or "Pending",
        duration_minutes=duration_minutes,
        id=str(record["id"]) if record.get("id") is not None else None,
        customer_id=str(record["customer_id"]) if record.get("customer_id") is not None else None,
    )


def parse_slot_interval(record: Optional[Mapping[str, Any]]) -> Optional[int]:
    """
    Read ``slot_interval`` from a ``salon_settings`` row.

    Missing, zero or negative values count as unset.
    """
    if not record or record.get("slot_interval") in (None, ""):
        return None
    try:
        interval = int(record["slot_interval"])
    except (TypeError, ValueError) as exc:
        raise RecordStoreError(f"Malformed slot interval: {record!r}") from exc
    if interval <= 0:
        logger.warning("Ignoring non-positive slot interval %d", interval)
        return None
    return interval


def parse_service_record(record: Mapping[str, Any]) -> SalonService:
    try:
        return SalonService(
            id=str(record["id"]),
            name=record.get("name") or "",
            duration_minutes=int(record["duration"]),
            price=record.get("price"),
            category=record.get("category"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordStoreError(f"Malformed service record: {record!r}") from exc


# ── HTTP client ──────────────────────────────────────────────────────────


class RestRecordStore:
    """
    Client for the hosted database's REST endpoint.

    ``requests`` is blocking, so every call runs in a worker thread; the
    service can then await several reads concurrently.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        default_hours: Optional[WorkingHours] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the REST client.

        Args:
            base_url: Root of the REST API, e.g. ``https://xyz.example.co/rest/v1``
            api_key: Service key, sent both as ``apikey`` and bearer token
            timeout_seconds: Per-request timeout
            default_hours: Fallback working hours for stylists without any
            session: Optional preconfigured ``requests.Session``
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.default_hours = default_hours
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{table}"

        try:
            response = self.session.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.exceptions.RequestException as exc:
            logger.error("Record store query on %s failed: %s", table, exc)
            raise RecordStoreError(f"Failed to query {table}: {exc}") from exc
        except ValueError as exc:
            raise RecordStoreError(f"Invalid JSON from {table}: {exc}") from exc

        if not isinstance(rows, list):
            raise RecordStoreError(f"Unexpected response shape from {table}")

        logger.debug("Fetched %d row(s) from %s", len(rows), table)
        return rows

    async def _aselect(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._select, table, params)

    async def get_stylist(self, stylist_id: str) -> Optional[AvailabilityProfile]:
        rows = await self._aselect("staff", {"select": STAFF_COLUMNS, "id": f"eq.{stylist_id}"})
        if not rows:
            return None
        return parse_stylist_record(rows[0], self.default_hours)

    async def get_leave_ranges(self, stylist_id: str, day: date) -> List[LeaveRange]:
        iso_day = day.isoformat()
        rows = await self._aselect(
            "stylist_unavailability",
            {
                "select": "start_date,end_date",
                "stylist_id": f"eq.{stylist_id}",
                "start_date": f"lte.{iso_day}",
                "end_date": f"gte.{iso_day}",
            },
        )
        return [parse_leave_record(row) for row in rows]

    async def get_slot_interval(self) -> Optional[int]:
        rows = await self._aselect("salon_settings", {"select": "slot_interval", "limit": "1"})
        return parse_slot_interval(rows[0] if rows else None)

    async def get_breaks(self, stylist_id: str) -> List[Break]:
        rows = await self._aselect(
            "stylist_breaks",
            {"select": "start_time,end_time", "stylist_id": f"eq.{stylist_id}"},
        )
        return [parse_break_record(row) for row in rows]

    async def get_active_bookings(self, stylist_id: str, day: date) -> List[Booking]:
        inactive = ",".join(sorted(INACTIVE_BOOKING_STATUSES))
        rows = await self._aselect(
            "appointments",
            {
                "select": "id,customer_id,start_time,duration,status",
                "stylist_id": f"eq.{stylist_id}",
                "appointment_date": f"eq.{day.isoformat()}",
                "status": f"not.in.({inactive})",
            },
        )
        return [parse_booking_record(row) for row in rows]

    async def get_service(self, service_id: str) -> Optional[SalonService]:
        rows = await self._aselect(
            "services",
            {
                "select": "id,name,duration,price,category",
                "id": f"eq.{service_id}",
                "is_active": "eq.true",
            },
        )
        if not rows:
            return None
        return parse_service_record(rows[0])

    async def get_qualified_stylists(
        self,
        service_id: str,
        branch_id: Optional[str] = None,
    ) -> List[AvailabilityProfile]:
        params = {
            "select": STAFF_COLUMNS,
            "role": "eq.Stylist",
            "is_active": "eq.true",
            "specializations": f"cs.{{{service_id}}}",
        }
        if branch_id:
            params["branch_id"] = f"eq.{branch_id}"

        rows = await self._aselect("staff", params)
        return [parse_stylist_record(row, self.default_hours) for row in rows]
