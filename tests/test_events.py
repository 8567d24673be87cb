"""Tests for the reservation event registry."""
import pytest
from uuid import uuid4

from domain.enums import LifecycleAction, ReservationEventType, ReservationStatus
from domain.models import StatusChange
from services.events import ReservationEvent, ReservationEventRegistry

from conftest import BUSINESS_ID, CUSTOMER_ID, NOW


def make_event(event_type=ReservationEventType.CREATED):
    return ReservationEvent(
        type=event_type,
        reservation_id=uuid4(),
        business_id=BUSINESS_ID,
        user_id=CUSTOMER_ID,
    )


@pytest.mark.unit
class TestSubscriptions:
    """Subscribing and unsubscribing."""

    def test_subscribe_returns_active_handle(self):
        registry = ReservationEventRegistry()
        subscription = registry.subscribe(lambda event: None)

        assert subscription.active
        assert registry.listener_count == 1

    def test_unsubscribe_is_idempotent(self):
        registry = ReservationEventRegistry()
        subscription = registry.subscribe(lambda event: None)

        subscription.unsubscribe()
        subscription.unsubscribe()

        assert not subscription.active
        assert registry.listener_count == 0

    def test_unsubscribe_removes_only_own_listener(self):
        registry = ReservationEventRegistry()
        first = registry.subscribe(lambda event: None)
        registry.subscribe(lambda event: None)

        first.unsubscribe()
        assert registry.listener_count == 1

    def test_context_manager_unsubscribes(self):
        registry = ReservationEventRegistry()

        with registry.subscribe(lambda event: None) as subscription:
            assert registry.listener_count == 1

        assert not subscription.active
        assert registry.listener_count == 0

    def test_registries_are_independent(self):
        first = ReservationEventRegistry()
        second = ReservationEventRegistry()
        first.subscribe(lambda event: None)

        assert second.listener_count == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestPublish:
    """Dispatching events to listeners."""

    async def test_sync_and_async_listeners(self):
        registry = ReservationEventRegistry()
        received = []

        async def async_listener(event):
            received.append(("async", event.type))

        registry.subscribe(lambda event: received.append(("sync", event.type)))
        registry.subscribe(async_listener)

        await registry.publish(make_event())

        assert received == [
            ("sync", ReservationEventType.CREATED),
            ("async", ReservationEventType.CREATED),
        ]

    async def test_filtered_by_event_type(self):
        registry = ReservationEventRegistry()
        received = []
        registry.subscribe(received.append, event_types=[ReservationEventType.CANCELED])

        await registry.publish(make_event(ReservationEventType.CREATED))
        await registry.publish(make_event(ReservationEventType.CANCELED))

        assert [e.type for e in received] == [ReservationEventType.CANCELED]

    async def test_unsubscribed_listener_not_called(self):
        registry = ReservationEventRegistry()
        received = []
        registry.subscribe(received.append).unsubscribe()

        await registry.publish(make_event())
        assert received == []

    async def test_failing_listener_does_not_stop_others(self, caplog):
        registry = ReservationEventRegistry()
        received = []

        def broken(event):
            raise RuntimeError("push gateway down")

        registry.subscribe(broken)
        registry.subscribe(received.append)

        await registry.publish(make_event())

        assert len(received) == 1
        assert "failed" in caplog.text

    async def test_listener_may_unsubscribe_during_dispatch(self):
        registry = ReservationEventRegistry()
        received = []
        subscription = None

        def once(event):
            received.append(event)
            subscription.unsubscribe()

        subscription = registry.subscribe(once)

        await registry.publish(make_event())
        await registry.publish(make_event())

        assert len(received) == 1


@pytest.mark.unit
class TestEventConstruction:
    """Events built from status changes."""

    @pytest.mark.parametrize("status, event_type", [
        (ReservationStatus.CONFIRMED, ReservationEventType.CONFIRMED),
        (ReservationStatus.CANCELED, ReservationEventType.CANCELED),
        (ReservationStatus.COMPLETED, ReservationEventType.COMPLETED),
    ])
    def test_status_event_type(self, status, event_type):
        change = StatusChange(
            reservation_id=uuid4(),
            business_id=BUSINESS_ID,
            user_id=CUSTOMER_ID,
            action=LifecycleAction.CONFIRM,
            old_status=ReservationStatus.PENDING,
            new_status=status,
            actor_id="owner-1",
            changed_at=NOW,
        )

        event = ReservationEvent.status_changed(change)

        assert event.type == event_type
        assert event.change is change
        assert event.reservation_id == change.reservation_id
