from __future__ import annotations

import asyncio

import pytest
from fakes import FakeWidget, FakeWidgetFactory

from aiomultiview.models.types import EmbedEventType, QualityLevel
from aiomultiview.viewer.lifecycle import (
    EmbedCreatedEvent,
    EmbedDestroyedEvent,
    EmbedFailedEvent,
    EmbedLifecycleManager,
    LifecycleEvent,
    PlayerEvent,
)
from aiomultiview.viewer.session import MultiviewSession


def _manager(factory: FakeWidgetFactory, **kwargs: object) -> EmbedLifecycleManager:
    return EmbedLifecycleManager(asyncio.get_running_loop(), factory, **kwargs)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_reconcile_creates_one_player_per_slot() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    session = MultiviewSession(9)
    session.add("alpha")
    slots = session.add("bravo").unwrap()

    manager.reconcile((), slots)
    await manager.wait_idle()

    assert len(manager.handles) == 2
    assert [handle.channel for handle in manager.handles] == ["alpha", "bravo"]
    assert all(handle.ready for handle in manager.handles)
    assert factory.for_channel("alpha")[0].options.muted is False
    assert factory.for_channel("bravo")[0].options.muted is True
    assert factory.for_channel("alpha")[0].options.target == manager.target_for(slots[0])

    manager.reconcile(slots, slots)
    manager.reconcile(slots, slots)
    await manager.wait_idle()
    assert len(factory.widgets) == 2
    await manager.close()


@pytest.mark.asyncio
async def test_identity_change_recreates_players() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    session = MultiviewSession(9)
    first = session.add("alpha").unwrap()
    manager.reconcile((), first)
    await manager.wait_idle()
    old_widget = factory.widgets[0]

    second = session.add("bravo").unwrap()
    manager.reconcile(first, second)
    await manager.wait_idle()

    assert old_widget.destroyed
    assert len(factory.live()) == 2
    assert {handle.embed_identity for handle in manager.handles} == {
        slot.embed_identity for slot in second
    }
    await manager.close()


@pytest.mark.asyncio
async def test_add_then_remove_converges() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    session = MultiviewSession(9)
    added = session.add("alpha").unwrap()
    manager.reconcile((), added)
    removed = session.remove(added[0].id).unwrap()
    manager.reconcile(added, removed)
    await manager.wait_idle()

    assert manager.handles == []
    assert manager.pending == set()
    assert factory.live() == []
    await manager.close()


@pytest.mark.asyncio
async def test_failed_creation_keeps_slot_and_can_be_retried() -> None:
    factory = FakeWidgetFactory(fail_channels={"bravo"})
    manager = _manager(factory)
    events: list[LifecycleEvent] = []
    manager.add_event_listener(lambda _manager, event: events.append(event))
    session = MultiviewSession(9)
    session.add("alpha")
    slots = session.add("bravo").unwrap()

    manager.reconcile((), slots)
    await manager.wait_idle()

    failed = manager.failed
    assert list(failed) == [slots[1].id]
    assert failed[slots[1].id].channel == "bravo"
    assert "cannot load bravo" in failed[slots[1].id].reason
    assert manager.handle_for(slots[1].id) is None
    assert manager.handle_for(slots[0].id) is not None
    assert any(isinstance(event, EmbedFailedEvent) for event in events)

    # Reconciling again does not retry on its own
    manager.reconcile(slots, slots)
    await manager.wait_idle()
    assert len(factory.widgets) == 1

    factory.fail_channels.clear()
    assert manager.retry(slots[1].id)
    await manager.wait_idle()
    assert manager.failed == {}
    assert manager.handle_for(slots[1].id) is not None
    assert not manager.retry(slots[1].id)
    await manager.close()


class _ListenerlessWidget(FakeWidget):
    def add_event_listener(self, event: str, callback: object) -> None:
        raise RuntimeError("widget does not support listeners")


class _ListenerlessWidgetFactory(FakeWidgetFactory):
    widget_class = _ListenerlessWidget


@pytest.mark.asyncio
async def test_widget_that_cannot_be_wrapped_is_destroyed() -> None:
    factory = _ListenerlessWidgetFactory()
    manager = _manager(factory)
    events: list[LifecycleEvent] = []
    manager.add_event_listener(lambda _manager, event: events.append(event))
    slots = MultiviewSession(9).add("alpha").unwrap()

    manager.reconcile((), slots)
    await manager.wait_idle()

    assert len(factory.widgets) == 1
    assert factory.widgets[0].destroyed
    assert factory.live() == []
    assert "widget does not support listeners" in manager.failed[slots[0].id].reason
    assert manager.handles == []
    assert isinstance(events[-1], EmbedFailedEvent)
    await manager.close()


@pytest.mark.asyncio
async def test_ready_timeout_is_reported_as_failure() -> None:
    factory = FakeWidgetFactory(auto_ready=False)
    manager = _manager(factory, ready_timeout=0.05)
    slots = MultiviewSession(9).add("alpha").unwrap()

    manager.reconcile((), slots)
    await manager.wait_idle()

    error = manager.failed[slots[0].id]
    assert error.reason == "timed out waiting for ready"
    assert factory.widgets[0].destroyed
    await manager.close()


@pytest.mark.asyncio
async def test_error_before_ready_is_reported_as_failure() -> None:
    factory = FakeWidgetFactory(auto_ready=False)
    manager = _manager(factory)
    slots = MultiviewSession(9).add("alpha").unwrap()

    manager.reconcile((), slots)
    await factory.created.wait()
    await asyncio.sleep(0)
    factory.widgets[0].emit("error", "offline")
    await manager.wait_idle()

    assert manager.failed[slots[0].id].reason == "offline"
    await manager.close()


@pytest.mark.asyncio
async def test_close_during_creation_does_not_raise() -> None:
    factory = FakeWidgetFactory(auto_ready=False)
    manager = _manager(factory)
    session = MultiviewSession(9)
    session.add("alpha")
    slots = session.add("bravo").unwrap()

    manager.reconcile((), slots)
    await factory.created.wait()
    await manager.close()

    assert factory.live() == []
    assert manager.handles == []
    assert manager.pending == set()
    # Ignored once closed
    manager.reconcile((), slots)
    assert manager.pending == set()


@pytest.mark.asyncio
async def test_audio_change_only_reasserts_mute() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    session = MultiviewSession(9)
    session.add("alpha")
    before = session.add("bravo").unwrap()
    manager.reconcile((), before)
    await manager.wait_idle()

    after = session.set_audio_source(before[1].id).unwrap()
    manager.reconcile(before, after)
    await manager.wait_idle()

    assert len(factory.widgets) == 2
    assert factory.for_channel("alpha")[0].muted is True
    assert factory.for_channel("bravo")[0].muted is False
    assert manager.handle_for(before[1].id).muted is False  # type: ignore[union-attr]
    await manager.close()


@pytest.mark.asyncio
async def test_mute_drift_is_corrected_on_reconcile() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    session = MultiviewSession(9)
    session.add("alpha")
    slots = session.add("bravo").unwrap()
    manager.reconcile((), slots)
    await manager.wait_idle()

    # The user unmuted a background player from inside the widget
    factory.for_channel("bravo")[0].muted = False
    manager.reconcile(slots, slots)
    assert factory.for_channel("bravo")[0].muted is True
    await manager.close()


@pytest.mark.asyncio
async def test_apply_quality_reaches_live_and_future_players() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    session = MultiviewSession(9)
    first = session.add("alpha").unwrap()
    manager.reconcile((), first)
    await manager.wait_idle()

    manager.apply_quality(QualityLevel.MEDIUM)
    assert factory.widgets[0].quality_calls == ["medium"]

    second = session.add("bravo").unwrap()
    manager.reconcile(first, second)
    await manager.wait_idle()
    assert all(widget.options.quality == QualityLevel.MEDIUM for widget in factory.live())
    assert all(handle.quality == QualityLevel.MEDIUM for handle in manager.handles)
    await manager.close()


@pytest.mark.asyncio
async def test_initial_quality_applies_to_first_players() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory, quality=QualityLevel.LOW)
    slots = MultiviewSession(9).add("alpha").unwrap()

    manager.reconcile((), slots)
    await manager.wait_idle()

    assert manager.quality == QualityLevel.LOW
    assert factory.widgets[0].options.quality == QualityLevel.LOW
    assert manager.handles[0].quality == QualityLevel.LOW
    await manager.close()


@pytest.mark.asyncio
async def test_lifecycle_events() -> None:
    factory = FakeWidgetFactory()
    manager = _manager(factory)
    events: list[LifecycleEvent] = []
    manager.add_event_listener(lambda _manager, event: events.append(event))
    session = MultiviewSession(9)
    slots = session.add("alpha").unwrap()

    manager.reconcile((), slots)
    await manager.wait_idle()
    factory.widgets[0].emit("play")
    manager.reconcile(slots, session.remove(slots[0].id).unwrap())

    created = [event for event in events if isinstance(event, EmbedCreatedEvent)]
    played = [event for event in events if isinstance(event, PlayerEvent)]
    destroyed = [event for event in events if isinstance(event, EmbedDestroyedEvent)]
    assert created[0].slot_id == slots[0].id
    assert played[0].event.type == EmbedEventType.PLAY
    assert played[0].channel == "alpha"
    assert destroyed[0].embed_identity == slots[0].embed_identity
    await manager.close()


@pytest.mark.asyncio
async def test_credential_is_passed_to_factory() -> None:
    factory = FakeWidgetFactory()

    async def _credential() -> str | None:
        return "token-1"

    manager = _manager(factory, credential_provider=_credential)
    manager.reconcile((), MultiviewSession(9).add("alpha").unwrap())
    await manager.wait_idle()
    assert factory.widgets[0].options.credential == "token-1"
    await manager.close()


@pytest.mark.asyncio
async def test_credential_failure_falls_back_to_anonymous() -> None:
    factory = FakeWidgetFactory()

    async def _credential() -> str | None:
        raise RuntimeError("auth down")

    manager = _manager(factory, credential_provider=_credential)
    slots = MultiviewSession(9).add("alpha").unwrap()
    manager.reconcile((), slots)
    await manager.wait_idle()
    assert factory.widgets[0].options.credential is None
    assert manager.handle_for(slots[0].id) is not None
    await manager.close()
