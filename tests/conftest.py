"""
Shared fixtures: a small salon's records and a fixed clock.
"""

import copy

import pendulum
import pytest

from salonslots.adapters.mock_record_store import MockRecordStore
from salonslots.services.availability_service import AvailabilityService

SALON_TABLES = {
    "staff": [
        {
            "id": "s1",
            "name": "Amaya",
            "role": "Stylist",
            "working_days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
            "working_hours": {"start": "09:00", "end": "18:00"},
            "is_emergency_unavailable": False,
            "specializations": ["cut", "colour"],
        },
        {
            "id": "s2",
            "name": "Nimal",
            "role": "Stylist",
            "working_days": ["Monday", "Wednesday"],
            "working_hours": {"start": "10:00", "end": "14:00"},
            "is_emergency_unavailable": False,
            "specializations": ["cut"],
            "branch_id": "b2",
        },
        {
            "id": "s3",
            "name": "Dilini",
            "role": "Stylist",
            "working_days": None,
            "working_hours": None,
            "is_emergency_unavailable": True,
            "specializations": ["cut"],
        },
        {
            "id": "s4",
            "name": "Kasun",
            "role": "Stylist",
            "working_days": [],
            "working_hours": {
                "Monday": {"start": "12:00", "end": "16:00"},
                "Saturday": {"start": "09:00", "end": "13:00"},
            },
            "is_emergency_unavailable": False,
            "specializations": ["colour"],
        },
    ],
    "stylist_unavailability": [
        {"stylist_id": "s1", "start_date": "2024-12-24", "end_date": "2024-12-26"},
    ],
    "salon_settings": [{"slot_interval": 30}],
    "stylist_breaks": [
        {"stylist_id": "s1", "start_time": "13:00", "end_time": "13:30"},
    ],
    "appointments": [
        {
            "id": "a1",
            "stylist_id": "s1",
            "customer_id": "c1",
            "appointment_date": "2024-11-25",
            "start_time": "10:00:00",
            "duration": 120,
            "status": "Pending",
        },
        {
            "id": "a2",
            "stylist_id": "s1",
            "customer_id": "c2",
            "appointment_date": "2024-11-25",
            "start_time": "15:00",
            "duration": 60,
            "status": "Cancelled",
        },
        {
            "id": "a3",
            "stylist_id": "s1",
            "customer_id": "c3",
            "appointment_date": "2024-11-26",
            "start_time": "09:00",
            "duration": 60,
            "status": "Pending",
        },
    ],
    "services": [
        {"id": "cut", "name": "Haircut", "duration": 60, "price": 2500, "category": "Hair"},
        {"id": "colour", "name": "Colouring", "duration": 120, "price": 9000, "category": "Hair"},
        {"id": "old", "name": "Perm", "duration": 90, "is_active": False},
    ],
}

# Wednesday before the Monday most tests look at.
FIXED_NOW = pendulum.datetime(2024, 11, 20, 10, 0)


@pytest.fixture
def salon_tables():
    return copy.deepcopy(SALON_TABLES)


@pytest.fixture
def store(salon_tables):
    return MockRecordStore(tables=salon_tables)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def service(store):
    return AvailabilityService(store=store, clock=lambda: FIXED_NOW)
