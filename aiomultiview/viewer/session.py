"""Ordered collection of stream slots for one viewing context."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from contextlib import suppress
from dataclasses import dataclass, replace

from aiomultiview.models.layout import GridPlacement
from aiomultiview.models.slot import Slot
from aiomultiview.models.types import LayoutType, SessionOperation
from aiomultiview.util import new_identity, new_slot_id, normalize_channel

from .errors import (
    CapacityExceeded,
    DuplicateChannel,
    InvalidChannel,
    SessionError,
    SessionResult,
    SlotNotFound,
)
from .layout import assign_areas, layout

logger = logging.getLogger(__name__)


class SessionEvent:
    """Base event type used by MultiviewSession.add_event_listener()."""


@dataclass
class SlotsChangedEvent(SessionEvent):
    """The slot list was replaced by a successful operation."""

    operation: SessionOperation
    """The operation that produced the new list."""
    before: tuple[Slot, ...]
    """Slot list before the operation."""
    after: tuple[Slot, ...]
    """Slot list after the operation."""


def check_invariants(slots: Sequence[Slot], capacity: int) -> None:
    """
    Validate a slot list against the session invariants.

    Raises:
        AssertionError: If any invariant is violated.
    """
    channels = [slot.channel for slot in slots]
    assert len(set(channels)) == len(channels), f"Duplicate channels in {channels}"
    assert len(slots) <= capacity, f"{len(slots)} slots exceed capacity {capacity}"
    if slots:
        primaries = sum(1 for slot in slots if slot.is_primary)
        audio = sum(1 for slot in slots if slot.has_audio)
        assert primaries == 1, f"Expected exactly one primary slot, got {primaries}"
        assert audio == 1, f"Expected exactly one audio slot, got {audio}"


def _with_new_identities(
    slots: Iterable[Slot], identity_factory: Callable[[], str]
) -> tuple[Slot, ...]:
    return tuple(replace(slot, embed_identity=identity_factory()) for slot in slots)


class MultiviewSession:
    """
    Viewing session holding up to `capacity` stream slots.

    Every operation either applies completely and returns the new slot list,
    or is rejected with a SessionError and leaves the session untouched.
    After each operation the channels are unique, exactly one slot is
    primary and exactly one slot holds audio (when any slot exists).

    Add, remove and promote hand every remaining slot a new embed identity:
    players are keyed by that identity, and a player that survives while its
    grid area changes has been seen to freeze on a stale frame. Changing the
    audio source only flips mute flags and keeps every identity.
    """

    _slots: tuple[Slot, ...]
    """Current slot list in grid order."""
    _capacity: int
    """Hard ceiling on the number of slots."""
    _identity_factory: Callable[[], str]
    """Source of new embed identities."""
    _event_cbs: list[Callable[[MultiviewSession, SessionEvent], None]]
    """List of event callbacks for this session."""
    _lock: threading.Lock
    """Serializes operations when the session is shared between threads."""

    def __init__(
        self,
        capacity: int,
        *,
        identity_factory: Callable[[], str] = new_identity,
        slot_id_factory: Callable[[], str] = new_slot_id,
    ) -> None:
        """
        Initialize an empty session.

        Args:
            capacity: Maximum number of slots, usually taken from the caller's tier.
            identity_factory: Returns a fresh embed identity on each call.
            slot_id_factory: Returns a fresh slot id on each call.
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._slots = ()
        self._capacity = capacity
        self._identity_factory = identity_factory
        self._slot_id_factory = slot_id_factory
        self._event_cbs = []
        self._lock = threading.Lock()
        logger.debug("MultiviewSession initialized with capacity %d", capacity)

    @property
    def slots(self) -> tuple[Slot, ...]:
        """Current slot list in grid order."""
        return self._slots

    @property
    def capacity(self) -> int:
        """Maximum number of slots this session accepts."""
        return self._capacity

    @property
    def primary(self) -> Slot | None:
        """The primary slot, None when the session is empty."""
        return next((slot for slot in self._slots if slot.is_primary), None)

    @property
    def audio_slot(self) -> Slot | None:
        """The slot whose audio is active, None when the session is empty."""
        return next((slot for slot in self._slots if slot.has_audio), None)

    def __len__(self) -> int:
        """Return the number of slots."""
        return len(self._slots)

    def get_slot(self, slot_id: str) -> Slot | None:
        """Return the slot with the given id, or None."""
        return next((slot for slot in self._slots if slot.id == slot_id), None)

    def find_channel(self, channel: str) -> Slot | None:
        """Return the slot showing a channel (case-insensitive), or None."""
        normalized = normalize_channel(channel)
        return next((slot for slot in self._slots if slot.channel == normalized), None)

    def placement(self, layout_type: LayoutType = LayoutType.DEFAULT) -> GridPlacement:
        """Return the grid placement for the current slot count."""
        return layout(len(self._slots), layout_type)

    def areas(self) -> dict[str, str]:
        """Return the grid area of every slot, keyed by slot id."""
        return assign_areas(self._slots)

    def add(self, channel: str) -> SessionResult:
        """
        Append a channel as a new slot.

        The first slot becomes primary and holds audio. Existing slots keep
        their flags but get new embed identities.
        """
        normalized = normalize_channel(channel)
        with self._lock:
            before = self._slots
            if not normalized:
                return self._reject(SessionOperation.ADD, InvalidChannel(channel))
            if len(before) >= self._capacity:
                return self._reject(SessionOperation.ADD, CapacityExceeded(self._capacity))
            if any(slot.channel == normalized for slot in before):
                return self._reject(SessionOperation.ADD, DuplicateChannel(normalized))

            first = not before
            new_slot = Slot(
                id=self._slot_id_factory(),
                channel=normalized,
                embed_identity=self._identity_factory(),
                is_primary=first,
                has_audio=first,
            )
            after = (*_with_new_identities(before, self._identity_factory), new_slot)
            self._commit(after)
        logger.debug(
            "Added channel %s as slot %s (%d/%d)",
            normalized,
            new_slot.id,
            len(after),
            self._capacity,
        )
        return self._applied(SessionOperation.ADD, before, after)

    def remove(self, slot_id: str) -> SessionResult:
        """
        Remove a slot.

        If it was primary, the first remaining slot becomes primary. If it
        held audio, audio moves to the primary slot. Remaining slots get new
        embed identities.
        """
        with self._lock:
            before = self._slots
            removed = next((slot for slot in before if slot.id == slot_id), None)
            if removed is None:
                return self._reject(SessionOperation.REMOVE, SlotNotFound(slot_id))

            remaining = [slot for slot in before if slot.id != slot_id]
            if remaining and removed.is_primary:
                remaining[0] = replace(remaining[0], is_primary=True)
            if remaining and removed.has_audio:
                remaining = [replace(slot, has_audio=slot.is_primary) for slot in remaining]
            after = _with_new_identities(remaining, self._identity_factory)
            self._commit(after)
        logger.debug("Removed slot %s (channel %s)", slot_id, removed.channel)
        return self._applied(SessionOperation.REMOVE, before, after)

    def promote_to_primary(self, slot_id: str) -> SessionResult:
        """
        Make a slot primary and give it the audio in one step.

        Every slot gets a new embed identity since grid areas move.
        """
        with self._lock:
            before = self._slots
            if not any(slot.id == slot_id for slot in before):
                return self._reject(SessionOperation.PROMOTE, SlotNotFound(slot_id))

            after = tuple(
                replace(
                    slot,
                    is_primary=slot.id == slot_id,
                    has_audio=slot.id == slot_id,
                    embed_identity=self._identity_factory(),
                )
                for slot in before
            )
            self._commit(after)
        logger.debug("Promoted slot %s to primary", slot_id)
        return self._applied(SessionOperation.PROMOTE, before, after)

    def set_audio_source(self, slot_id: str) -> SessionResult:
        """
        Move the audio to a slot without touching anything else.

        Primary flag and embed identities are preserved so live players are
        only muted/unmuted, never recreated.
        """
        with self._lock:
            before = self._slots
            if not any(slot.id == slot_id for slot in before):
                return self._reject(SessionOperation.SET_AUDIO, SlotNotFound(slot_id))

            after = tuple(replace(slot, has_audio=slot.id == slot_id) for slot in before)
            self._commit(after)
        logger.debug("Moved audio to slot %s", slot_id)
        return self._applied(SessionOperation.SET_AUDIO, before, after)

    def hydrate(self, channels: Iterable[str]) -> SessionResult:
        """
        Seed the session from an initial channel list, e.g. a saved pack.

        Channels are added in order. Rejected channels (duplicates, overflow,
        empty names) are skipped and logged; the returned result carries the
        slots that were applied and the first rejection, if any.
        """
        first_error: SessionError | None = None
        for channel in channels:
            result = self.add(channel)
            if result.error is not None:
                logger.warning("Skipping channel %r while hydrating: %s", channel, result.error)
                first_error = first_error or result.error
        return SessionResult(slots=self._slots, error=first_error)

    def _commit(self, after: tuple[Slot, ...]) -> None:
        check_invariants(after, self._capacity)
        self._slots = after

    def _reject(self, operation: SessionOperation, error: SessionError) -> SessionResult:
        logger.debug("Rejected %s: %s", operation.value, error)
        return SessionResult(slots=self._slots, error=error)

    def _applied(
        self, operation: SessionOperation, before: tuple[Slot, ...], after: tuple[Slot, ...]
    ) -> SessionResult:
        self._signal_event(SlotsChangedEvent(operation=operation, before=before, after=after))
        return SessionResult(slots=after)

    def add_event_listener(
        self, callback: Callable[[MultiviewSession, SessionEvent], None]
    ) -> Callable[[], None]:
        """
        Register a callback to listen for slot list changes of this session.

        Returns a function to remove the listener.
        """
        self._event_cbs.append(callback)

        def _remove() -> None:
            with suppress(ValueError):
                self._event_cbs.remove(callback)

        return _remove

    def _signal_event(self, event: SessionEvent) -> None:
        for cb in list(self._event_cbs):
            try:
                cb(self, event)
            except Exception:
                logger.exception("Error in event listener")
