"""Integration tests for the SQLAlchemy reservation repository."""
import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import select

from db.models_sqlalchemy import Reservation, SlotCounter
from db.repository import SlotCapacityExceeded, StoreError, call_with_timeout
from db.session import drop_db, get_session_context
from domain.enums import ReservationStatus
from domain.models import NewReservation, ReservationFilter

from conftest import BUSINESS_ID, CUSTOMER_ID, MONDAY, NOW


def new_reservation(**overrides):
    data = {
        "business_id": BUSINESS_ID,
        "business_name": "Casa Tapas",
        "user_id": CUSTOMER_ID,
        "user_name": "Ana Lopez",
        "date": MONDAY,
        "time": "19:00",
        "party_size": 2,
    }
    data.update(overrides)
    return NewReservation(**data)


async def slot_count(session_factory, on_date=MONDAY, time="19:00"):
    async with get_session_context(session_factory) as session:
        return await session.scalar(
            select(SlotCounter.active_count).where(
                SlotCounter.business_id == BUSINESS_ID,
                SlotCounter.date == on_date,
                SlotCounter.time == time,
            )
        )


@pytest.mark.integration
@pytest.mark.asyncio
class TestAvailabilityConfigStorage:
    """Storing and reading configurations."""

    async def test_missing_config_is_none(self, repository):
        assert await repository.get_availability_config("biz-none") is None

    async def test_round_trip(self, repository, sample_config):
        await repository.set_availability_config(sample_config)
        assert await repository.get_availability_config(BUSINESS_ID) == sample_config


@pytest.mark.integration
@pytest.mark.asyncio
class TestInsertReservation:
    """Inserting reservations with the capacity guard."""

    async def test_insert_assigns_id_and_timestamps(self, repository):
        reservation_id = await repository.insert_reservation(new_reservation(), slot_capacity=3)

        record = await repository.get_reservation(reservation_id)
        assert record.id == reservation_id
        assert record.status == ReservationStatus.PENDING
        assert record.created_at.replace(tzinfo=None) == NOW.replace(tzinfo=None)
        assert record.updated_at is not None

    async def test_counter_tracks_inserts(self, repository, session_factory):
        for _ in range(2):
            await repository.insert_reservation(new_reservation(), slot_capacity=3)

        assert await slot_count(session_factory) == 2
        assert await repository.count_active_reservations(BUSINESS_ID, MONDAY, "19:00") == 2

    async def test_capacity_enforced_at_write(self, repository):
        for _ in range(2):
            await repository.insert_reservation(new_reservation(), slot_capacity=2)

        with pytest.raises(SlotCapacityExceeded) as exc_info:
            await repository.insert_reservation(new_reservation(), slot_capacity=2)

        assert exc_info.value.capacity == 2
        rows = await repository.query_reservations(ReservationFilter(business_id=BUSINESS_ID))
        assert len(rows) == 2

    async def test_counter_seeded_from_existing_rows(self, repository, session_factory):
        async with get_session_context(session_factory) as session:
            session.add(Reservation(
                id=uuid4(),
                business_id=BUSINESS_ID,
                user_id="user-legacy",
                date=MONDAY,
                time="19:00",
                party_size=2,
                status=ReservationStatus.CONFIRMED.value,
            ))

        with pytest.raises(SlotCapacityExceeded):
            await repository.insert_reservation(new_reservation(), slot_capacity=1)

    async def test_capacity_is_per_slot(self, repository):
        await repository.insert_reservation(new_reservation(), slot_capacity=1)
        await repository.insert_reservation(new_reservation(time="12:00"), slot_capacity=1)
        await repository.insert_reservation(new_reservation(business_id="biz-other"), slot_capacity=1)

        assert await repository.count_active_reservations(BUSINESS_ID, MONDAY, "12:00") == 1


@pytest.mark.integration
@pytest.mark.asyncio
class TestUpdateStatus:
    """Conditional status updates."""

    async def test_update_when_status_matches(self, repository):
        reservation_id = await repository.insert_reservation(new_reservation(), slot_capacity=3)

        updated = await repository.update_reservation_status(
            reservation_id, ReservationStatus.CONFIRMED, ReservationStatus.PENDING
        )

        assert updated.status == ReservationStatus.CONFIRMED

    async def test_no_update_when_status_differs(self, repository):
        reservation_id = await repository.insert_reservation(new_reservation(), slot_capacity=3)

        updated = await repository.update_reservation_status(
            reservation_id, ReservationStatus.COMPLETED, ReservationStatus.CONFIRMED
        )

        assert updated is None
        assert (await repository.get_reservation(reservation_id)).status == ReservationStatus.PENDING

    async def test_unknown_id(self, repository):
        updated = await repository.update_reservation_status(
            uuid4(), ReservationStatus.CONFIRMED, ReservationStatus.PENDING
        )
        assert updated is None

    async def test_cancel_releases_counter(self, repository, session_factory):
        reservation_id = await repository.insert_reservation(new_reservation(), slot_capacity=3)
        await repository.update_reservation_status(
            reservation_id, ReservationStatus.CANCELED, ReservationStatus.PENDING
        )
        assert await slot_count(session_factory) == 0

    async def test_confirm_keeps_counter(self, repository, session_factory):
        reservation_id = await repository.insert_reservation(new_reservation(), slot_capacity=3)
        await repository.update_reservation_status(
            reservation_id, ReservationStatus.CONFIRMED, ReservationStatus.PENDING
        )
        assert await slot_count(session_factory) == 1


@pytest.mark.integration
@pytest.mark.asyncio
class TestStoreErrors:
    """Driver failures surface as StoreError."""

    async def test_missing_tables(self, db_engine, repository):
        await drop_db(db_engine)

        with pytest.raises(StoreError):
            await repository.get_reservation(uuid4())

    async def test_timeout(self):
        with pytest.raises(StoreError, match="timed out"):
            await call_with_timeout(asyncio.sleep(1), 0.01, "slow_call")

    async def test_result_passed_through(self):
        async def answer():
            return 42

        assert await call_with_timeout(answer(), 1, "answer") == 42
