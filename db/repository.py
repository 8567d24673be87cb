"""
Reservation repository: the storage interface the booking engine reads and
writes, and its SQLAlchemy async implementation.

Each repository call runs in its own transaction. Inserting a reservation
and claiming its slot happen in the same transaction through a per-slot
counter, so concurrent bookings cannot push a slot past its capacity.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncGenerator, Awaitable, Callable, List, Optional, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.utils_datetime import get_current_datetime
from domain.enums import ReservationStatus, ACTIVE_STATUSES
from domain.models import (
    AvailabilityConfig,
    NewReservation,
    ReservationRecord,
    ReservationFilter,
)
from .models_sqlalchemy import AvailabilityConfigRow, Reservation, SlotCounter
from .session import get_session_context


logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """Raised when the backing store fails."""
    pass


class SlotCapacityExceeded(Exception):
    """Raised when a slot has no capacity left at write time."""

    def __init__(self, business_id: str, on_date: date, slot_time: str, capacity: int):
        self.business_id = business_id
        self.date = on_date
        self.time = slot_time
        self.capacity = capacity
        super().__init__(
            f"Slot {on_date} {slot_time} for business {business_id} is full (capacity {capacity})"
        )


class ReservationRepository(ABC):
    """Storage operations used by the booking engine."""

    @abstractmethod
    async def get_availability_config(self, business_id: str) -> Optional[AvailabilityConfig]:
        """Get the stored configuration, or None if the business has none."""

    @abstractmethod
    async def set_availability_config(self, config: AvailabilityConfig) -> None:
        """Create or replace a business's configuration."""

    @abstractmethod
    async def count_active_reservations(self, business_id: str, on_date: date, slot_time: str) -> int:
        """Count pending and confirmed reservations at a slot."""

    @abstractmethod
    async def insert_reservation(self, data: NewReservation, slot_capacity: int) -> UUID:
        """
        Persist a pending reservation if its slot still has capacity.

        Raises:
            SlotCapacityExceeded: If the slot is already full
        """

    @abstractmethod
    async def get_reservation(self, reservation_id: UUID) -> Optional[ReservationRecord]:
        """Get a reservation by ID, or None if it does not exist."""

    @abstractmethod
    async def update_reservation_status(
        self,
        reservation_id: UUID,
        new_status: ReservationStatus,
        expected_status: ReservationStatus,
    ) -> Optional[ReservationRecord]:
        """
        Move a reservation to a new status if it still has the expected one.

        Returns:
            The updated record, or None if the status no longer matched
        """

    @abstractmethod
    async def query_reservations(self, filter: ReservationFilter) -> List[ReservationRecord]:
        """List reservations matching a filter, most recent date first."""


class SQLAlchemyReservationRepository(ReservationRepository):
    """Reservation repository backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        clock: Callable[[], datetime] = get_current_datetime,
    ):
        """
        Initialize the repository.

        Args:
            session_factory: Session factory (defaults to the application's)
            clock: Source of created_at / updated_at timestamps
        """
        self.session_factory = session_factory
        self.clock = clock

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session that reports driver failures as StoreError."""
        try:
            async with get_session_context(self.session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Reservation store failure: {e}")
            raise StoreError(str(e)) from e

    # ------------------------------------------------------------------
    # Availability configuration
    # ------------------------------------------------------------------

    async def get_availability_config(self, business_id: str) -> Optional[AvailabilityConfig]:
        async with self._session() as session:
            row = await session.get(AvailabilityConfigRow, business_id)
            if row is None:
                return None
            return AvailabilityConfig.model_validate(row.config_json)

    async def set_availability_config(self, config: AvailabilityConfig) -> None:
        data = config.model_dump(mode="json")
        now = self.clock()
        async with self._session() as session:
            row = await session.get(AvailabilityConfigRow, config.business_id)
            if row is None:
                session.add(AvailabilityConfigRow(
                    business_id=config.business_id,
                    config_json=data,
                    created_at=now,
                    updated_at=now,
                ))
            else:
                row.config_json = data
                row.updated_at = now

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    async def count_active_reservations(self, business_id: str, on_date: date, slot_time: str) -> int:
        async with self._session() as session:
            return await self._count_active(session, business_id, on_date, slot_time)

    async def insert_reservation(self, data: NewReservation, slot_capacity: int) -> UUID:
        now = self.clock()
        async with self._session() as session:
            await self._claim_slot(session, data.business_id, data.date, data.time, slot_capacity)

            row = Reservation(
                id=uuid4(),
                business_id=data.business_id,
                business_name=data.business_name,
                user_id=data.user_id,
                user_name=data.user_name,
                contact_info=data.contact_info.model_dump() if data.contact_info else None,
                date=data.date,
                time=data.time,
                party_size=data.party_size,
                notes=data.notes,
                status=ReservationStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            await session.flush()
            return row.id

    async def get_reservation(self, reservation_id: UUID) -> Optional[ReservationRecord]:
        async with self._session() as session:
            row = await session.get(Reservation, reservation_id)
            if row is None:
                return None
            return ReservationRecord.model_validate(row)

    async def update_reservation_status(
        self,
        reservation_id: UUID,
        new_status: ReservationStatus,
        expected_status: ReservationStatus,
    ) -> Optional[ReservationRecord]:
        now = self.clock()
        async with self._session() as session:
            result = await session.execute(
                update(Reservation)
                .where(
                    Reservation.id == reservation_id,
                    Reservation.status == expected_status.value,
                )
                .values(status=new_status.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None

            row = await session.get(Reservation, reservation_id, populate_existing=True)

            if expected_status.is_active and not new_status.is_active:
                await self._release_slot(session, row.business_id, row.date, row.time)

            return ReservationRecord.model_validate(row)

    async def query_reservations(self, filter: ReservationFilter) -> List[ReservationRecord]:
        stmt = select(Reservation)

        if filter.business_id:
            stmt = stmt.where(Reservation.business_id == filter.business_id)
        if filter.user_id:
            stmt = stmt.where(Reservation.user_id == filter.user_id)
        if filter.status:
            stmt = stmt.where(Reservation.status == filter.status.value)

        stmt = stmt.order_by(
            Reservation.date.desc(),
            Reservation.time.desc(),
            Reservation.created_at.desc(),
        )

        async with self._session() as session:
            rows = (await session.scalars(stmt)).all()
            return [ReservationRecord.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Slot counters
    # ------------------------------------------------------------------

    @staticmethod
    async def _count_active(session: AsyncSession, business_id: str, on_date: date, slot_time: str) -> int:
        stmt = (
            select(func.count())
            .select_from(Reservation)
            .where(
                Reservation.business_id == business_id,
                Reservation.date == on_date,
                Reservation.time == slot_time,
                Reservation.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
        )
        return (await session.execute(stmt)).scalar_one()

    @staticmethod
    def _slot_filter(business_id: str, on_date: date, slot_time: str):
        return (
            SlotCounter.business_id == business_id,
            SlotCounter.date == on_date,
            SlotCounter.time == slot_time,
        )

    async def _increment_if_below(
        self,
        session: AsyncSession,
        business_id: str,
        on_date: date,
        slot_time: str,
        capacity: int,
    ) -> bool:
        result = await session.execute(
            update(SlotCounter)
            .where(
                *self._slot_filter(business_id, on_date, slot_time),
                SlotCounter.active_count < capacity,
            )
            .values(active_count=SlotCounter.active_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _claim_slot(
        self,
        session: AsyncSession,
        business_id: str,
        on_date: date,
        slot_time: str,
        capacity: int,
    ) -> None:
        """Take one unit of slot capacity or raise SlotCapacityExceeded."""
        if await self._increment_if_below(session, business_id, on_date, slot_time, capacity):
            return

        # No counter row yet: seed it from the reservations table, then retry
        active = await self._count_active(session, business_id, on_date, slot_time)
        dialect = session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        await session.execute(
            insert(SlotCounter)
            .values(business_id=business_id, date=on_date, time=slot_time, active_count=active)
            .on_conflict_do_nothing(index_elements=["business_id", "date", "time"])
        )

        if not await self._increment_if_below(session, business_id, on_date, slot_time, capacity):
            raise SlotCapacityExceeded(business_id, on_date, slot_time, capacity)

    async def _release_slot(self, session: AsyncSession, business_id: str, on_date: date, slot_time: str) -> None:
        await session.execute(
            update(SlotCounter)
            .where(
                *self._slot_filter(business_id, on_date, slot_time),
                SlotCounter.active_count > 0,
            )
            .values(active_count=SlotCounter.active_count - 1)
            .execution_options(synchronize_session=False)
        )


async def call_with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    Await a repository call, reporting a timeout as StoreError.

    Cancellation is not caught; the session context rolls the transaction
    back before it propagates.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Repository call {operation} timed out after {timeout}s")
        raise StoreError(f"{operation} timed out after {timeout}s") from e
