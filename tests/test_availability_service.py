"""
Tests for the AvailabilityService orchestration layer.
"""

import asyncio

import pendulum
import pytest

from salonslots.adapters.mock_record_store import MockRecordStore
from salonslots.domain.booking_validation import CUSTOMER_STYLIST_CONFLICT, STYLIST_BUSY, ProposedBooking
from salonslots.domain.exceptions import (
    InvalidRequestError,
    RecordStoreError,
    ServiceNotFoundError,
    StylistNotFoundError,
)
from salonslots.services.availability_service import AvailabilityService


class FailingStore(MockRecordStore):
    """Store whose break lookup is unreachable."""

    async def get_breaks(self, stylist_id):
        raise RecordStoreError("connection refused")


class NegativeIntervalStore(MockRecordStore):
    """Store handing back an unchecked, negative slot interval."""

    async def get_slot_interval(self):
        return -30


def _proposal(stylist_id, start, duration=60, customer_id="c9", exclude=None):
    return ProposedBooking(
        stylist_id=stylist_id,
        customer_id=customer_id,
        start=start,
        duration_minutes=duration,
        exclude_booking_id=exclude,
    )


def _free_times(payload):
    return [slot["time"] for slot in payload["data"] if slot["available"]]


class TestGetAvailability:
    """Single stylist lookups."""

    def test_full_payload(self, service):
        payload = asyncio.run(service.get_availability("s1", "2024-11-25", "60"))

        assert payload["success"] is True
        assert payload["stylist"] == {
            "id": "s1",
            "name": "Amaya",
            "workingHours": {"start": "09:00", "end": "18:00"},
        }
        assert payload["total"] == 17
        assert payload["availableCount"] == 12
        assert payload["total"] == len(payload["data"])

    def test_booking_and_break_annotations(self, service):
        payload = asyncio.run(service.get_availability("s1", "2024-11-25"))
        slots = {slot["time"]: slot for slot in payload["data"]}

        assert slots["09:00"] == {"time": "09:00", "available": True}
        assert slots["10:00"]["reason"] == "Already booked"
        # The booked service runs two hours, but only one is assumed.
        assert slots["11:00"]["available"]
        assert slots["12:30"]["reason"] == "Break time"
        assert slots["15:00"]["available"]  # cancelled appointment

    def test_only_bookings_for_that_date_count(self, service):
        payload = asyncio.run(service.get_availability("s1", "2024-11-26"))

        assert "09:00" not in _free_times(payload)
        assert "10:00" in _free_times(payload)

    def test_default_duration(self, service):
        payload = asyncio.run(service.get_availability("s1", "2024-11-25", None))

        assert payload["data"][-1]["time"] == "17:00"

    def test_per_day_hours(self, service):
        payload = asyncio.run(service.get_availability("s4", "2024-11-25", 120))

        assert payload["stylist"]["workingHours"] == {"start": "12:00", "end": "16:00"}
        assert _free_times(payload) == ["12:00", "12:30", "13:00", "13:30", "14:00"]

    def test_today_skips_past_slots(self, service):
        payload = asyncio.run(service.get_availability("s1", "2024-11-20"))

        assert payload["data"][0]["time"] == "10:30"

    def test_settings_fallback_interval(self, salon_tables, fixed_now):
        salon_tables["salon_settings"] = []
        service = AvailabilityService(
            store=MockRecordStore(tables=salon_tables),
            clock=lambda: fixed_now,
            default_slot_interval=15,
        )

        payload = asyncio.run(service.get_availability("s1", "2024-11-25"))

        assert [slot["time"] for slot in payload["data"][:3]] == ["09:00", "09:15", "09:30"]

    def test_missing_stylist_hours_fall_back_to_defaults(self, salon_tables, fixed_now):
        salon_tables["staff"][2]["is_emergency_unavailable"] = False
        service = AvailabilityService(store=MockRecordStore(tables=salon_tables), clock=lambda: fixed_now)

        payload = asyncio.run(service.get_availability("s3", "2024-11-24"))

        assert payload["stylist"]["workingHours"] == {"start": "09:00", "end": "18:00"}
        assert payload["total"] == 17


class TestNoAvailability:
    """Zero-availability outcomes are successful results."""

    def test_day_off(self, service):
        payload = asyncio.run(service.get_availability("s2", "2024-11-26"))

        assert payload == {"success": True, "data": [], "message": "Nimal does not work on Tuesdays"}

    def test_emergency(self, service):
        payload = asyncio.run(service.get_availability("s3", "2024-11-25"))

        assert payload["data"] == []
        assert payload["message"] == "Dilini is currently unavailable"

    def test_leave(self, service):
        payload = asyncio.run(service.get_availability("s1", "2024-12-25"))

        assert payload["data"] == []
        assert payload["message"] == "Amaya is on leave on this date"


class TestInvalidRequests:
    """Rejected before the engine runs."""

    @pytest.mark.parametrize("stylist_id, date", [(None, "2024-11-25"), ("s1", None), ("", "")])
    def test_missing_parameters(self, service, stylist_id, date):
        with pytest.raises(InvalidRequestError, match="stylist_id and date are required"):
            asyncio.run(service.get_availability(stylist_id, date))

    def test_past_date(self, service):
        with pytest.raises(InvalidRequestError, match="Cannot book appointments in the past"):
            asyncio.run(service.get_availability("s1", "2024-11-19"))

    def test_malformed_date(self, service):
        with pytest.raises(InvalidRequestError, match="expected YYYY-MM-DD"):
            asyncio.run(service.get_availability("s1", "25/11/2024"))

    @pytest.mark.parametrize("duration", ["abc", "0", -30])
    def test_bad_duration(self, service, duration):
        with pytest.raises(InvalidRequestError, match="duration"):
            asyncio.run(service.get_availability("s1", "2024-11-25", duration))

    def test_unknown_stylist(self, service):
        with pytest.raises(StylistNotFoundError):
            asyncio.run(service.get_availability("nobody", "2024-11-25"))

    def test_store_failure_propagates(self, salon_tables, fixed_now):
        service = AvailabilityService(store=FailingStore(tables=salon_tables), clock=lambda: fixed_now)

        with pytest.raises(RecordStoreError):
            asyncio.run(service.get_availability("s1", "2024-11-25"))

    def test_past_check_uses_clock_date(self, store):
        late_evening = pendulum.datetime(2024, 11, 25, 23, 30)
        service = AvailabilityService(store=store, clock=lambda: late_evening)

        payload = asyncio.run(service.get_availability("s1", "2024-11-25"))

        assert payload["data"] == []


class TestConsolidatedAvailability:
    """No-preference merged grid."""

    def test_merged_grid(self, service):
        payload = asyncio.run(service.get_consolidated_availability("cut", "2024-11-25"))
        counts = {slot["time"]: slot["availableStylistCount"] for slot in payload["data"]}

        assert payload["service"]["name"] == "Haircut"
        assert payload["dayOfWeek"] == "Monday"
        assert payload["qualifiedStylistCount"] == 2
        assert payload["totalSlots"] == 17
        assert counts["09:00"] == 1
        assert counts["10:00"] == 1
        assert counts["11:00"] == 2

    def test_branch_filter(self, service):
        payload = asyncio.run(service.get_consolidated_availability("cut", "2024-11-25", branch_id="b2"))

        assert [slot["time"] for slot in payload["data"]][0] == "10:00"
        assert payload["totalSlots"] == 7

    def test_duration_override(self, service):
        payload = asyncio.run(
            service.get_consolidated_availability("cut", "2024-11-25", branch_id="b2", duration=120)
        )

        assert payload["totalSlots"] == 5

    def test_nobody_working(self, service):
        payload = asyncio.run(service.get_consolidated_availability("cut", "2024-12-01"))

        assert payload["data"] == []
        assert payload["message"] == "No stylists available on this day"

    def test_no_qualified_stylists(self, service):
        payload = asyncio.run(service.get_consolidated_availability("colour", "2024-11-25", branch_id="zz"))

        assert payload["message"] == "No stylists available for this service"

    @pytest.mark.parametrize("service_id", ["missing", "old"])
    def test_unknown_or_inactive_service(self, service, service_id):
        with pytest.raises(ServiceNotFoundError):
            asyncio.run(service.get_consolidated_availability(service_id, "2024-11-25"))

    def test_past_date(self, service):
        with pytest.raises(InvalidRequestError, match="past dates"):
            asyncio.run(service.get_consolidated_availability("cut", "2024-01-01"))


class TestAvailableStylists:
    """Per-stylist ranking."""

    def test_ranked_by_free_slots(self, service):
        payload = asyncio.run(service.get_available_stylists("colour", "2024-11-25"))

        assert [entry["stylist"]["id"] for entry in payload["data"]] == ["s1", "s4"]
        assert [entry["availableCount"] for entry in payload["data"]] == [7, 5]
        assert payload["totalStylists"] == 2
        assert payload["data"][1]["stylist"]["workingHours"] == {"start": "12:00", "end": "16:00"}

    def test_missing_service_id(self, service):
        with pytest.raises(InvalidRequestError, match="service_id and date are required"):
            asyncio.run(service.get_available_stylists(None, "2024-11-25"))


class TestSlotIntervalSetting:
    """The salon-wide interval falls back to the default when unusable."""

    @pytest.mark.parametrize("interval", [0, -30])
    def test_non_positive_setting_uses_default(self, salon_tables, fixed_now, interval):
        salon_tables["salon_settings"] = [{"slot_interval": interval}]
        service = AvailabilityService(store=MockRecordStore(tables=salon_tables), clock=lambda: fixed_now)

        payload = asyncio.run(service.get_availability("s1", "2024-11-25", 60))

        assert payload["total"] == 17

    def test_unchecked_store_value_uses_default(self, salon_tables, fixed_now):
        service = AvailabilityService(
            store=NegativeIntervalStore(tables=salon_tables),
            clock=lambda: fixed_now,
            default_slot_interval=60,
        )

        payload = asyncio.run(service.get_availability("s1", "2024-11-25"))
        merged = asyncio.run(service.get_consolidated_availability("cut", "2024-11-25"))

        assert payload["total"] == 9
        assert merged["totalSlots"] == 9


class TestValidateAppointments:
    """Conflict checks before booking, using real appointment durations."""

    def test_free_slot(self, service):
        payload = asyncio.run(service.validate_appointments("2024-11-25", [_proposal("s1", "12:00")]))

        assert payload["allValid"] is True
        assert payload["validations"] == [{"isValid": True, "conflictType": "no_conflict"}]
        assert "firstError" not in payload

    def test_real_duration_of_existing_appointment(self, service):
        """The grid shows 11:00 as free, but the 10:00 appointment runs two hours."""
        payload = asyncio.run(service.validate_appointments("2024-11-25", [_proposal("s1", "11:30")]))

        assert payload["allValid"] is False
        assert payload["validations"][0]["conflictType"] == STYLIST_BUSY
        assert payload["validations"][0]["conflictingAppointmentId"] == "a1"
        assert payload["firstError"] == "Stylist is already booked at this time"

    def test_cancelled_appointment_does_not_conflict(self, service):
        payload = asyncio.run(service.validate_appointments("2024-11-25", [_proposal("s1", "15:00")]))

        assert payload["allValid"] is True

    def test_rescheduling_ignores_itself(self, service):
        payload = asyncio.run(
            service.validate_appointments("2024-11-25", [_proposal("s1", "11:00", customer_id="c1", exclude="a1")])
        )

        assert payload["allValid"] is True

    def test_same_stylist_twice_in_one_request(self, service):
        payload = asyncio.run(
            service.validate_appointments(
                "2024-11-25",
                [_proposal("s1", "12:00"), _proposal("s1", "12:30", 30), _proposal("s2", "13:00")],
            )
        )

        assert payload["allValid"] is False
        assert len(payload["validations"]) == 2
        assert payload["validations"][1]["conflictType"] == CUSTOMER_STYLIST_CONFLICT
        assert payload["firstError"] == "You already have an appointment with this stylist at an overlapping time"

    def test_parallel_services_with_different_stylists(self, service):
        payload = asyncio.run(
            service.validate_appointments("2024-11-25", [_proposal("s1", "12:00"), _proposal("s2", "12:00")])
        )

        assert payload["allValid"] is True
        assert payload["concurrent"] is True

    @pytest.mark.parametrize(
        "date_value, proposals, message",
        [
            ("2024-11-25", [], "at least one appointment"),
            (None, [_proposal("s1", "12:00")], "at least one appointment"),
            ("2024-11-19", [_proposal("s1", "12:00")], "in the past"),
            ("2024-11-25", [_proposal("s1", "noon")], "expected HH:MM"),
            ("2024-11-25", [_proposal("s1", "12:00", duration=0)], "duration"),
            ("2024-11-25", [_proposal("s1", "12:00", customer_id="")], "customer_id"),
        ],
    )
    def test_invalid_requests(self, service, date_value, proposals, message):
        with pytest.raises(InvalidRequestError, match=message):
            asyncio.run(service.validate_appointments(date_value, proposals))
