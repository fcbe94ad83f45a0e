"""Keeps live player widgets in step with the session's slot list."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass

from aiomultiview.models.slot import Slot
from aiomultiview.models.types import QualityLevel

from .embed import (
    CredentialProvider,
    EmbedEvent,
    EmbedHandle,
    EmbedOptions,
    EmbedWidget,
    WidgetFactory,
)
from .errors import EmbedCreationFailed

logger = logging.getLogger(__name__)

DEFAULT_READY_TIMEOUT_S = 15.0
DEFAULT_TARGET_PREFIX = "multiview-player"


def _discard(widget: EmbedWidget | None, handle: EmbedHandle | None) -> None:
    """Tear down whatever a failed creation got to build."""
    if handle is not None:
        handle.destroy()
    elif widget is not None:
        # The widget was never wrapped in a handle
        try:
            widget.destroy()
        except Exception:
            logger.exception("Failed to destroy unwrapped player")


class LifecycleEvent:
    """Base event type used by EmbedLifecycleManager.add_event_listener()."""


@dataclass
class EmbedCreatedEvent(LifecycleEvent):
    """A player became ready and is now bound to a slot."""

    slot_id: str
    embed_identity: str


@dataclass
class EmbedDestroyedEvent(LifecycleEvent):
    """A player was torn down."""

    slot_id: str
    embed_identity: str


@dataclass
class EmbedFailedEvent(LifecycleEvent):
    """A player could not be created; its slot stays without a live player."""

    embed_identity: str
    error: EmbedCreationFailed


@dataclass
class PlayerEvent(LifecycleEvent):
    """A live player reported an event (play, pause, buffering, error...)."""

    slot_id: str
    channel: str
    event: EmbedEvent


class EmbedLifecycleManager:
    """
    Creates, destroys and re-creates player widgets for a slot list.

    Players are keyed by embed identity. A reconciliation first tears down
    every player whose identity left the slot list, then starts creating
    players for identities that have none. Creation runs in the background;
    if its slot is gone by the time the widget is ready, the widget is
    destroyed right away.
    """

    _loop: asyncio.AbstractEventLoop
    _widget_factory: WidgetFactory
    _credential_provider: CredentialProvider | None
    _slots: dict[str, Slot]
    """Desired slots keyed by embed identity, in session order."""
    _handles: dict[str, EmbedHandle]
    """Live players keyed by embed identity."""
    _pending: dict[str, asyncio.Task[None]]
    """Creation tasks of current slots keyed by embed identity."""
    _tasks: set[asyncio.Task[None]]
    """Every unfinished creation task, including discarded ones."""
    _failed: dict[str, EmbedCreationFailed]
    """Creation failures keyed by embed identity."""
    _quality: QualityLevel
    """Quality level applied to every player, including future ones."""
    _closed: bool
    _event_cbs: list[Callable[[EmbedLifecycleManager, LifecycleEvent], None]]

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        widget_factory: WidgetFactory,
        *,
        credential_provider: CredentialProvider | None = None,
        ready_timeout: float = DEFAULT_READY_TIMEOUT_S,
        target_prefix: str = DEFAULT_TARGET_PREFIX,
        quality: QualityLevel = QualityLevel.AUTO,
    ) -> None:
        """
        Initialize the manager.

        Args:
            loop: Event loop running the creation tasks.
            widget_factory: Creates a widget for a set of EmbedOptions.
            credential_provider: Fetches a playback credential before each creation,
                None for anonymous viewers.
            ready_timeout: Seconds to wait for a widget to report ready.
            target_prefix: Prefix of the rendering target ids.
            quality: Quality level of the first players, until apply_quality().
        """
        self._loop = loop
        self._widget_factory = widget_factory
        self._credential_provider = credential_provider
        self._ready_timeout = ready_timeout
        self._target_prefix = target_prefix
        self._slots = {}
        self._handles = {}
        self._pending = {}
        self._tasks = set()
        self._failed = {}
        self._quality = quality
        self._closed = False
        self._event_cbs = []

    @property
    def handles(self) -> list[EmbedHandle]:
        """Live players in session order."""
        return [self._handles[identity] for identity in self._slots if identity in self._handles]

    @property
    def pending(self) -> set[str]:
        """Embed identities whose player is still being created."""
        return set(self._pending)

    @property
    def failed(self) -> dict[str, EmbedCreationFailed]:
        """Creation failures of current slots, keyed by slot id."""
        return {
            self._slots[identity].id: error
            for identity, error in self._failed.items()
            if identity in self._slots
        }

    @property
    def quality(self) -> QualityLevel:
        """Quality level applied to every player."""
        return self._quality

    def target_for(self, slot: Slot) -> str:
        """Return the rendering target id for a slot's current surface."""
        return f"{self._target_prefix}-{slot.embed_identity}"

    def handle_for(self, slot_id: str) -> EmbedHandle | None:
        """Return the live player of a slot, None if it has none (yet)."""
        for identity, slot in self._slots.items():
            if slot.id == slot_id:
                return self._handles.get(identity)
        return None

    def reconcile(self, before: Sequence[Slot], after: Sequence[Slot]) -> None:
        """
        Bring the set of players in line with a new slot list.

        Args:
            before: The slot list the players were last reconciled against.
            after: The new authoritative slot list.
        """
        if self._closed:
            logger.debug("Ignoring reconcile on closed lifecycle manager")
            return
        desired = {slot.embed_identity: slot for slot in after}
        known = set(self._handles) | set(self._pending) | set(self._failed)
        known.update(slot.embed_identity for slot in before)
        stale = known - desired.keys()
        logger.debug(
            "Reconciling %d -> %d slots: %d stale, %d live, %d pending",
            len(before),
            len(after),
            len(stale),
            len(self._handles),
            len(self._pending),
        )
        self._slots = desired

        # Tear down first so old surfaces are gone before new ones bind
        for identity in stale:
            self._teardown(identity)

        for identity, slot in desired.items():
            if identity in self._handles or identity in self._pending or identity in self._failed:
                continue
            self._schedule_create(slot)

        self._assert_mute_state()

    def retry(self, slot_id: str) -> bool:
        """
        Try again to create the player of a slot whose creation failed.

        Returns True if a new attempt was started.
        """
        if self._closed:
            return False
        for identity, slot in self._slots.items():
            if slot.id == slot_id and identity in self._failed:
                del self._failed[identity]
                logger.info("Retrying player creation for channel %s", slot.channel)
                self._schedule_create(slot)
                return True
        return False

    def apply_quality(self, quality: QualityLevel) -> None:
        """Apply a quality level to every live player and to future ones."""
        self._quality = quality
        for handle in self._handles.values():
            handle.set_quality(quality)

    async def wait_idle(self) -> None:
        """Wait until no player creation is in flight."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def close(self) -> None:
        """Cancel in-flight creations and destroy every player."""
        if self._closed:
            return
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for identity in list(self._handles):
            self._teardown(identity)
        self._pending.clear()
        self._failed.clear()
        self._slots = {}
        logger.debug("Lifecycle manager closed")

    def _assert_mute_state(self) -> None:
        """Push the authoritative mute state to every live player."""
        for identity, handle in self._handles.items():
            slot = self._slots.get(identity)
            if slot is not None:
                handle.set_muted(slot.muted)

    def _teardown(self, identity: str) -> None:
        self._failed.pop(identity, None)
        # An in-flight creation finds its slot gone and destroys the widget itself
        self._pending.pop(identity, None)
        handle = self._handles.pop(identity, None)
        if handle is not None:
            handle.destroy()
            self._signal_event(
                EmbedDestroyedEvent(slot_id=handle.slot_id, embed_identity=identity)
            )

    def _schedule_create(self, slot: Slot) -> None:
        identity = slot.embed_identity
        task = self._loop.create_task(self._create(slot))
        self._pending[identity] = task
        self._tasks.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._tasks.discard(finished)
            if self._pending.get(identity) is finished:
                del self._pending[identity]

        task.add_done_callback(_done)

    async def _fetch_credential(self) -> str | None:
        if self._credential_provider is None:
            return None
        try:
            return await self._credential_provider()
        except Exception:
            # Anonymous playback still works, only with fewer features
            logger.warning("Could not fetch playback credential, creating anonymous player")
            return None

    async def _create(self, slot: Slot) -> None:
        identity = slot.embed_identity
        widget: EmbedWidget | None = None
        handle: EmbedHandle | None = None
        try:
            credential = await self._fetch_credential()
            # Audio may have moved while the credential was fetched
            current = self._slots.get(identity, slot)
            options = EmbedOptions(
                target=self.target_for(current),
                channel=current.channel,
                muted=current.muted,
                quality=self._quality,
                credential=credential,
            )
            logger.debug("Creating player for channel %s on %s", current.channel, options.target)
            widget = await self._widget_factory(options)
            handle = EmbedHandle(current, widget, quality=self._quality)
            await handle.wait_ready(self._ready_timeout)
        except asyncio.CancelledError:
            _discard(widget, handle)
            raise
        except Exception as err:
            _discard(widget, handle)
            if self._closed or identity not in self._slots:
                return
            reason = "timed out waiting for ready" if isinstance(err, TimeoutError) else str(err)
            error = EmbedCreationFailed(slot.id, slot.channel, reason)
            logger.warning("%s", error)
            self._failed[identity] = error
            self._signal_event(EmbedFailedEvent(embed_identity=identity, error=error))
            return

        current = self._slots.get(identity)
        if self._closed or current is None:
            logger.debug("Discarding player for channel %s, its slot changed", slot.channel)
            handle.destroy()
            return

        self._handles[identity] = handle
        handle.add_event_listener(self._on_player_event)
        handle.set_muted(current.muted)
        handle.set_quality(self._quality)
        logger.debug("Player for channel %s is ready", current.channel)
        self._signal_event(EmbedCreatedEvent(slot_id=current.id, embed_identity=identity))

    def _on_player_event(self, handle: EmbedHandle, event: EmbedEvent) -> None:
        self._signal_event(PlayerEvent(slot_id=handle.slot_id, channel=handle.channel, event=event))

    def add_event_listener(
        self, callback: Callable[[EmbedLifecycleManager, LifecycleEvent], None]
    ) -> Callable[[], None]:
        """
        Register a callback for player lifecycle events.

        Returns a function to remove the listener.
        """
        self._event_cbs.append(callback)

        def _remove() -> None:
            with suppress(ValueError):
                self._event_cbs.remove(callback)

        return _remove

    def _signal_event(self, event: LifecycleEvent) -> None:
        for cb in list(self._event_cbs):
            try:
                cb(self, event)
            except Exception:
                logger.exception("Error in event listener")
