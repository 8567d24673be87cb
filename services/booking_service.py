"""
Booking service: validates booking requests, checks availability and
persists new reservations.
"""
import logging
from datetime import date
from typing import Awaitable, List, Optional, TypeVar
from uuid import UUID

from core.config import settings
from core.logging import LogContext
from db.repository import (
    ReservationRepository,
    StoreError,
    SlotCapacityExceeded,
    call_with_timeout,
)
from domain.enums import DenyReason
from domain.errors import (
    AvailabilityDecision,
    NotFoundError,
    PermissionDeniedError,
    RepositoryError,
    Result,
    ValidationError,
)
from domain.models import (
    Actor,
    AvailabilityConfig,
    BookingRequest,
    ReservationFilter,
    ReservationRecord,
    ReservationStats,
    normalize_slot_time,
)
from services import availability
from services.booking_validation import validate_booking_request
from services.events import ReservationEvent, ReservationEventRegistry
from services.stats import compute_reservation_stats


logger = logging.getLogger(__name__)

T = TypeVar("T")


def repository_failure(operation: str, error: StoreError) -> RepositoryError:
    """Wrap a store failure into the error value returned to callers."""
    return RepositoryError(
        message=f"Reservation store failed during {operation}: {error}",
        cause=error,
        details={"operation": operation},
    )


class BookingService:
    """Service for checking availability and creating reservations."""

    def __init__(
        self,
        repository: ReservationRepository,
        events: Optional[ReservationEventRegistry] = None,
        default_slot_capacity: int = settings.default_slot_capacity,
        timeout_seconds: float = settings.repository_timeout_seconds,
    ):
        """
        Initialize the booking service.

        Args:
            repository: Reservation store
            events: Registry notified of created reservations
            default_slot_capacity: Per-slot capacity for businesses that set none
            timeout_seconds: Timeout for each repository call
        """
        self.repository = repository
        self.events = events
        self.default_slot_capacity = default_slot_capacity
        self.timeout_seconds = timeout_seconds

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        return await call_with_timeout(awaitable, self.timeout_seconds, operation)

    async def _load_config(self, business_id: str) -> AvailabilityConfig:
        stored = await self._call(
            "get_availability_config",
            self.repository.get_availability_config(business_id),
        )
        return availability.resolve_config(business_id, stored)

    async def _check_slot(
        self,
        config: AvailabilityConfig,
        business_id: str,
        requested_date: date,
        requested_time: str,
        party_size: int,
    ) -> AvailabilityDecision:
        try:
            slot = normalize_slot_time(requested_time)
        except ValueError:
            slot = requested_time

        active_count = await self._call(
            "count_active_reservations",
            self.repository.count_active_reservations(business_id, requested_date, slot),
        )
        return availability.evaluate(
            config,
            business_id,
            requested_date,
            slot,
            party_size,
            active_count,
            default_capacity=self.default_slot_capacity,
        )

    async def evaluate_availability(
        self,
        business_id: str,
        requested_date: date,
        requested_time: str,
        party_size: int,
    ) -> Result[AvailabilityDecision]:
        """
        Check whether a slot can currently be booked.

        Args:
            business_id: Business to book
            requested_date: Booking date
            requested_time: Booking time ("HH:MM")
            party_size: Number of guests

        Returns:
            Result holding Allow or Deny(reason), or a ValidationError for a
            party size below 1, or a RepositoryError
        """
        if party_size < 1:
            return Result.failure(ValidationError(
                message="Party size must be at least 1",
                field="party_size",
                details={"party_size": party_size},
            ))

        try:
            config = await self._load_config(business_id)
            decision = await self._check_slot(config, business_id, requested_date, requested_time, party_size)
        except StoreError as e:
            return Result.failure(repository_failure("evaluate_availability", e))

        return Result.success(decision)

    async def create_booking(self, request: BookingRequest) -> Result[UUID]:
        """
        Create a pending reservation.

        Args:
            request: Booking request from a customer

        Returns:
            Result holding the new reservation ID, or ValidationError,
            AvailabilityDenied or RepositoryError
        """
        validation = validate_booking_request(request)
        if not validation.is_valid:
            logger.warning(
                f"Rejected booking request: {[e.message for e in validation.errors]}"
            )
            return Result.failure(validation.errors[0])

        data = validation.reservation

        try:
            config = await self._load_config(data.business_id)
            decision = await self._check_slot(
                config, data.business_id, data.date, data.time, data.party_size
            )
            if not decision.allowed:
                logger.warning(
                    f"Booking denied for {data.business_id} on {data.date} {data.time}: "
                    f"{decision.reason.value}"
                )
                return Result.failure(decision.to_error())

            capacity = availability.resolve_slot_capacity(
                config, default_capacity=self.default_slot_capacity
            )
            reservation_id = await self._call(
                "insert_reservation",
                self.repository.insert_reservation(data, capacity),
            )
        except SlotCapacityExceeded as e:
            # Another booking took the last place between the check and the write
            logger.warning(str(e))
            return Result.failure(AvailabilityDecision.deny(DenyReason.TIME_FULL).to_error())
        except StoreError as e:
            return Result.failure(repository_failure("create_booking", e))

        LogContext(
            logger,
            reservation_id=str(reservation_id),
            business_id=data.business_id,
            user_id=data.user_id,
        ).log(
            "info",
            f"Created reservation {reservation_id} for {data.business_id} "
            f"on {data.date} {data.time} (party of {data.party_size})",
        )

        if self.events is not None:
            await self.events.publish(ReservationEvent.created(reservation_id, data))

        return Result.success(reservation_id)

    async def get_availability_config(self, business_id: str) -> Result[AvailabilityConfig]:
        """Get the configuration in force for a business (defaults if none stored)."""
        try:
            return Result.success(await self._load_config(business_id))
        except StoreError as e:
            return Result.failure(repository_failure("get_availability_config", e))

    async def update_availability_config(
        self,
        config: AvailabilityConfig,
        actor: Actor,
    ) -> Result[AvailabilityConfig]:
        """
        Store a business's availability configuration.

        Only the owner of the business may change it.
        """
        if not actor.owns_business(config.business_id):
            logger.warning(
                f"Actor {actor.actor_id} may not configure business {config.business_id}"
            )
            return Result.failure(PermissionDeniedError(
                message="Only the business owner can change availability",
                details={"business_id": config.business_id, "actor_id": actor.actor_id},
            ))

        try:
            await self._call(
                "set_availability_config",
                self.repository.set_availability_config(config),
            )
        except StoreError as e:
            return Result.failure(repository_failure("set_availability_config", e))

        logger.info(f"Availability updated for business {config.business_id}")
        return Result.success(config)

    async def get_reservation(self, reservation_id: UUID) -> Result[ReservationRecord]:
        """Get a reservation by ID."""
        try:
            record = await self._call(
                "get_reservation",
                self.repository.get_reservation(reservation_id),
            )
        except StoreError as e:
            return Result.failure(repository_failure("get_reservation", e))

        if record is None:
            return Result.failure(NotFoundError(
                message=f"Reservation {reservation_id} not found",
                details={"reservation_id": str(reservation_id)},
            ))
        return Result.success(record)

    async def list_reservations(self, filter: ReservationFilter) -> Result[List[ReservationRecord]]:
        """List reservations for a business and/or customer, most recent date first."""
        try:
            records = await self._call(
                "query_reservations",
                self.repository.query_reservations(filter),
            )
        except StoreError as e:
            return Result.failure(repository_failure("query_reservations", e))
        return Result.success(records)

    async def get_business_stats(self, business_id: str) -> Result[ReservationStats]:
        """Aggregate reservation counts for a business."""
        result = await self.list_reservations(ReservationFilter(business_id=business_id))
        if not result.ok:
            return Result.failure(result.error)
        return Result.success(compute_reservation_stats(result.value))
