"""
Reservation lifecycle state machine.

    pending ──confirm──▶ confirmed ──complete──▶ completed
       │                     │
       └──────cancel─────────┴──────cancel─────▶ canceled

canceled and completed are terminal. Each transition names the roles that
may trigger it and whether it is refused once the reservation date has
passed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Dict, FrozenSet, Optional, Tuple, TypeVar
from uuid import UUID

from core.config import settings
from core.logging import LogContext
from core.utils_datetime import get_current_datetime, is_date_past
from db.repository import ReservationRepository, StoreError, call_with_timeout
from domain.enums import ActorRole, LifecycleAction, ReservationStatus
from domain.errors import IllegalTransitionError, NotFoundError, Result
from domain.models import Actor, ReservationRecord, StatusChange
from services.booking_service import repository_failure
from services.events import ReservationEvent, ReservationEventRegistry


logger = logging.getLogger(__name__)

T = TypeVar("T")

OWNER_ONLY = frozenset({ActorRole.BUSINESS_OWNER})
OWNER_OR_CUSTOMER = frozenset({ActorRole.BUSINESS_OWNER, ActorRole.CUSTOMER})


@dataclass(frozen=True)
class TransitionRule:
    """One allowed edge of the state machine."""
    target: ReservationStatus
    allowed_roles: FrozenSet[ActorRole]
    requires_upcoming_date: bool


TRANSITIONS: Dict[Tuple[ReservationStatus, LifecycleAction], TransitionRule] = {
    (ReservationStatus.PENDING, LifecycleAction.CONFIRM): TransitionRule(
        ReservationStatus.CONFIRMED, OWNER_ONLY, requires_upcoming_date=True
    ),
    (ReservationStatus.PENDING, LifecycleAction.CANCEL): TransitionRule(
        ReservationStatus.CANCELED, OWNER_OR_CUSTOMER, requires_upcoming_date=True
    ),
    (ReservationStatus.CONFIRMED, LifecycleAction.CANCEL): TransitionRule(
        ReservationStatus.CANCELED, OWNER_OR_CUSTOMER, requires_upcoming_date=True
    ),
    (ReservationStatus.CONFIRMED, LifecycleAction.COMPLETE): TransitionRule(
        ReservationStatus.COMPLETED, OWNER_ONLY, requires_upcoming_date=False
    ),
}


def is_permitted(actor: Actor, reservation: ReservationRecord, rule: TransitionRule) -> bool:
    """
    Check the actor may apply a rule to a reservation.

    Owners act only on their own business's reservations; customers only on
    reservations they made.
    """
    if actor.role not in rule.allowed_roles:
        return False
    if actor.role == ActorRole.BUSINESS_OWNER:
        return actor.owns_business(reservation.business_id)
    return actor.actor_id == reservation.user_id


class ReservationLifecycle:
    """Applies lifecycle transitions to stored reservations."""

    def __init__(
        self,
        repository: ReservationRepository,
        events: Optional[ReservationEventRegistry] = None,
        clock: Callable[[], datetime] = get_current_datetime,
        timeout_seconds: float = settings.repository_timeout_seconds,
    ):
        """
        Initialize the lifecycle.

        Args:
            repository: Reservation store
            events: Registry notified of accepted transitions
            clock: Current time, used for the past-date cutoff
            timeout_seconds: Timeout for each repository call
        """
        self.repository = repository
        self.events = events
        self.clock = clock
        self.timeout_seconds = timeout_seconds

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        return await call_with_timeout(awaitable, self.timeout_seconds, operation)

    @staticmethod
    def _illegal(message: str, reservation: ReservationRecord, action: LifecycleAction) -> IllegalTransitionError:
        logger.warning(f"Refused {action.value} on reservation {reservation.id}: {message}")
        return IllegalTransitionError(
            message=message,
            details={
                "reservation_id": str(reservation.id),
                "status": reservation.status.value,
                "action": action.value,
            },
        )

    async def transition(
        self,
        reservation_id: UUID,
        action: LifecycleAction,
        actor: Actor,
    ) -> Result[StatusChange]:
        """
        Apply a lifecycle action to a reservation.

        Args:
            reservation_id: Reservation to change
            action: confirm, cancel or complete
            actor: Who is asking

        Returns:
            Result holding the StatusChange, or NotFoundError,
            IllegalTransitionError or RepositoryError
        """
        try:
            reservation = await self._call(
                "get_reservation",
                self.repository.get_reservation(reservation_id),
            )
        except StoreError as e:
            return Result.failure(repository_failure("transition", e))

        if reservation is None:
            return Result.failure(NotFoundError(
                message=f"Reservation {reservation_id} not found",
                details={"reservation_id": str(reservation_id)},
            ))

        old_status = reservation.status
        rule = TRANSITIONS.get((old_status, action))
        if rule is None:
            return Result.failure(self._illegal(
                f"Cannot {action.value} a {old_status.value} reservation", reservation, action
            ))

        if not is_permitted(actor, reservation, rule):
            return Result.failure(self._illegal(
                f"Actor {actor.actor_id} ({actor.role.value}) may not {action.value} this reservation",
                reservation,
                action,
            ))

        now = self.clock()
        if rule.requires_upcoming_date and is_date_past(reservation.date, now):
            return Result.failure(self._illegal(
                f"Reservation date {reservation.date} has passed", reservation, action
            ))

        try:
            updated = await self._call(
                "update_reservation_status",
                self.repository.update_reservation_status(reservation_id, rule.target, old_status),
            )
        except StoreError as e:
            return Result.failure(repository_failure("transition", e))

        if updated is None:
            # Status changed between our read and write
            return Result.failure(self._illegal(
                f"Reservation is no longer {old_status.value}", reservation, action
            ))

        change = StatusChange(
            reservation_id=updated.id,
            business_id=updated.business_id,
            user_id=updated.user_id,
            action=action,
            old_status=old_status,
            new_status=updated.status,
            actor_id=actor.actor_id,
            changed_at=now,
        )

        LogContext(
            logger,
            reservation_id=str(reservation_id),
            business_id=updated.business_id,
            actor_id=actor.actor_id,
        ).log(
            "info",
            f"Reservation {reservation_id} {old_status.value} -> {updated.status.value} "
            f"by {actor.role.value} {actor.actor_id}",
        )

        if self.events is not None:
            await self.events.publish(ReservationEvent.status_changed(change))

        return Result.success(change)
