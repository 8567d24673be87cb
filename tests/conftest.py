"""Pytest configuration and fixtures for booking engine tests."""
import asyncio
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

import pytest
import pytest_asyncio

from core.utils_datetime import TIMEZONE
from db.repository import (
    ReservationRepository,
    SQLAlchemyReservationRepository,
    StoreError,
)
from db.session import create_session_factory, create_test_engine, init_db
from domain.enums import ActorRole, ReservationStatus
from domain.models import (
    Actor,
    AvailabilityConfig,
    BookingRequest,
    ContactInfo,
    NewReservation,
    ReservationFilter,
    ReservationRecord,
)
from services.booking_service import BookingService
from services.events import ReservationEventRegistry
from services.lifecycle import ReservationLifecycle


BUSINESS_ID = "biz-tapas"
OTHER_BUSINESS_ID = "biz-sushi"
OWNER_ID = "owner-1"
CUSTOMER_ID = "user-1"

# 2030-01-05 is a Saturday
NOW = TIMEZONE.localize(datetime(2030, 1, 5, 10, 0))
SUNDAY = date(2030, 1, 6)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)


def fixed_clock(moment: datetime = NOW):
    """Build a clock that always returns the same moment."""
    return lambda: moment


class FailingRepository(ReservationRepository):
    """Repository whose every call fails like an unreachable database."""

    def __init__(self):
        self.calls: List[str] = []

    async def _fail(self, operation: str):
        self.calls.append(operation)
        raise StoreError(f"connection refused during {operation}")

    async def get_availability_config(self, business_id: str) -> Optional[AvailabilityConfig]:
        return await self._fail("get_availability_config")

    async def set_availability_config(self, config: AvailabilityConfig) -> None:
        return await self._fail("set_availability_config")

    async def count_active_reservations(self, business_id: str, on_date: date, slot_time: str) -> int:
        return await self._fail("count_active_reservations")

    async def insert_reservation(self, data: NewReservation, slot_capacity: int) -> UUID:
        return await self._fail("insert_reservation")

    async def get_reservation(self, reservation_id: UUID) -> Optional[ReservationRecord]:
        return await self._fail("get_reservation")

    async def update_reservation_status(
        self,
        reservation_id: UUID,
        new_status: ReservationStatus,
        expected_status: ReservationStatus,
    ) -> Optional[ReservationRecord]:
        return await self._fail("update_reservation_status")

    async def query_reservations(self, filter: ReservationFilter) -> List[ReservationRecord]:
        return await self._fail("query_reservations")


class SlowRepository(FailingRepository):
    """Repository that never answers within the service timeout."""

    async def _fail(self, operation: str):
        self.calls.append(operation)
        await asyncio.sleep(5)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_test_engine()
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Create a session factory bound to the test engine."""
    return create_session_factory(db_engine)


@pytest.fixture(scope="function")
def repository(session_factory):
    """Create a SQLAlchemy repository with a fixed clock."""
    return SQLAlchemyReservationRepository(session_factory, clock=fixed_clock())


@pytest.fixture(scope="function")
def event_registry():
    """Create an empty event registry."""
    return ReservationEventRegistry()


@pytest.fixture(scope="function")
def published_events(event_registry):
    """Collect every event published on the registry."""
    events = []
    event_registry.subscribe(events.append)
    return events


@pytest.fixture(scope="function")
def booking_service(repository, event_registry):
    """Create a booking service instance for testing."""
    return BookingService(repository, events=event_registry, default_slot_capacity=3)


@pytest.fixture(scope="function")
def lifecycle(repository, event_registry):
    """Create a lifecycle instance whose clock is fixed before MONDAY."""
    return ReservationLifecycle(repository, events=event_registry, clock=fixed_clock())


@pytest.fixture(scope="function")
def sample_config():
    """Monday to Saturday, lunch and dinner, parties up to six, three per slot."""
    return AvailabilityConfig(
        business_id=BUSINESS_ID,
        available_days=["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"],
        time_slots=["12:00", "19:00"],
        max_party_sizes=[2, 4, 6],
        slot_capacity=3,
    )


@pytest_asyncio.fixture(scope="function")
async def stored_config(repository, sample_config):
    """Store the sample configuration for BUSINESS_ID."""
    await repository.set_availability_config(sample_config)
    return sample_config


@pytest.fixture(scope="function")
def owner():
    """Owner of BUSINESS_ID."""
    return Actor(actor_id=OWNER_ID, role=ActorRole.BUSINESS_OWNER, business_id=BUSINESS_ID)


@pytest.fixture(scope="function")
def other_owner():
    """Owner of a different business."""
    return Actor(actor_id="owner-2", role=ActorRole.BUSINESS_OWNER, business_id=OTHER_BUSINESS_ID)


@pytest.fixture(scope="function")
def customer():
    """Customer who makes the sample bookings."""
    return Actor(actor_id=CUSTOMER_ID, role=ActorRole.CUSTOMER)


@pytest.fixture(scope="function")
def sample_request_data():
    """Provide sample booking request data for testing."""
    return {
        "business_id": BUSINESS_ID,
        "business_name": "Casa Tapas",
        "user_id": CUSTOMER_ID,
        "user_name": "Ana Lopez",
        "contact_info": ContactInfo(phone="+34600111222", email="ana@example.com"),
        "date": MONDAY,
        "time": "19:00",
        "party_size": 4,
        "notes": "Window table if possible",
    }


@pytest.fixture(scope="function")
def make_request(sample_request_data):
    """Factory fixture to build a booking request."""
    def _make(**kwargs):
        data = sample_request_data.copy()
        data.update(kwargs)
        return BookingRequest(**data)
    return _make


@pytest.fixture(scope="function")
def create_booking(booking_service, stored_config, make_request):
    """Factory fixture to create a booking and return its ID."""
    async def _create(**kwargs):
        result = await booking_service.create_booking(make_request(**kwargs))
        assert result.ok, result.error
        return result.value
    return _create
