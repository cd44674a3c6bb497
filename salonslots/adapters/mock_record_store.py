"""
In-memory record store for tests and offline use.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..domain.models import (
    INACTIVE_BOOKING_STATUSES,
    AvailabilityProfile,
    Booking,
    Break,
    LeaveRange,
    SalonService,
    WorkingHours,
)
from .record_store import (
    parse_booking_record,
    parse_break_record,
    parse_leave_record,
    parse_service_record,
    parse_slot_interval,
    parse_stylist_record,
)

logger = logging.getLogger(__name__)

TABLES = (
    "staff",
    "stylist_unavailability",
    "salon_settings",
    "stylist_breaks",
    "appointments",
    "services",
)


class MockRecordStore:
    """
    Record store backed by plain dicts shaped like the REST API's rows.

    Filtering mirrors the queries ``RestRecordStore`` sends, so services can
    be exercised without a database.
    """

    def __init__(
        self,
        tables: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
        default_hours: Optional[WorkingHours] = None,
    ):
        """
        Initialize the mock store.

        Args:
            tables: Mapping of table name to rows; missing tables are empty
            default_hours: Fallback working hours for stylists without any
        """
        self.tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        for name, rows in (tables or {}).items():
            self.tables[name] = list(rows)
        self.default_hours = default_hours

    @classmethod
    def from_json_file(cls, data_file: Path, default_hours: Optional[WorkingHours] = None) -> "MockRecordStore":
        """Load rows from a JSON file of ``{"table": [rows...]}``."""
        with open(data_file, "r", encoding="utf-8") as f:
            tables = json.load(f)

        logger.info("Loaded mock records from %s", data_file)
        return cls(tables=tables, default_hours=default_hours)

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    async def get_stylist(self, stylist_id: str) -> Optional[AvailabilityProfile]:
        for row in self._rows("staff"):
            if str(row.get("id")) == str(stylist_id):
                return parse_stylist_record(row, self.default_hours)
        return None

    async def get_leave_ranges(self, stylist_id: str, day: date) -> List[LeaveRange]:
        ranges = [
            parse_leave_record(row)
            for row in self._rows("stylist_unavailability")
            if str(row.get("stylist_id")) == str(stylist_id)
        ]
        return [leave for leave in ranges if leave.covers(day)]

    async def get_slot_interval(self) -> Optional[int]:
        settings = self._rows("salon_settings")
        return parse_slot_interval(settings[0] if settings else None)

    async def get_breaks(self, stylist_id: str) -> List[Break]:
        return [
            parse_break_record(row)
            for row in self._rows("stylist_breaks")
            if str(row.get("stylist_id")) == str(stylist_id)
        ]

    async def get_active_bookings(self, stylist_id: str, day: date) -> List[Booking]:
        iso_day = day.isoformat()
        return [
            parse_booking_record(row)
            for row in self._rows("appointments")
            if str(row.get("stylist_id")) == str(stylist_id)
            and row.get("appointment_date") == iso_day
            and row.get("status") not in INACTIVE_BOOKING_STATUSES
        ]

    async def get_service(self, service_id: str) -> Optional[SalonService]:
        for row in self._rows("services"):
            if str(row.get("id")) == str(service_id) and row.get("is_active", True):
                return parse_service_record(row)
        return None

    async def get_qualified_stylists(
        self,
        service_id: str,
        branch_id: Optional[str] = None,
    ) -> List[AvailabilityProfile]:
        stylists: List[AvailabilityProfile] = []
        for row in self._rows("staff"):
            if row.get("role", "Stylist") != "Stylist" or not row.get("is_active", True):
                continue
            if str(service_id) not in {str(s) for s in row.get("specializations") or ()}:
                continue
            if branch_id and str(row.get("branch_id")) != str(branch_id):
                continue
            stylists.append(parse_stylist_record(row, self.default_hours))
        return stylists
