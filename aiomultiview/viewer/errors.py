"""Errors and result type of the session engine."""

from __future__ import annotations

from dataclasses import dataclass

from aiomultiview.models.slot import Slot
from aiomultiview.models.types import SessionErrorKind


class SessionError(Exception):
    """Base class for recoverable session errors."""

    kind: SessionErrorKind

    def __init__(self, message: str) -> None:
        """Initialize the error with a user-presentable message."""
        super().__init__(message)
        self.message = message


class DuplicateChannel(SessionError):
    """The channel is already part of the session."""

    kind = SessionErrorKind.DUPLICATE_CHANNEL

    def __init__(self, channel: str) -> None:
        """Initialize for the offending channel."""
        super().__init__(f"Channel {channel!r} is already in the viewer")
        self.channel = channel


class CapacityExceeded(SessionError):
    """The session is full for its capacity tier."""

    kind = SessionErrorKind.CAPACITY_EXCEEDED

    def __init__(self, capacity: int) -> None:
        """Initialize with the active ceiling."""
        super().__init__(
            f"Maximum of {capacity} streams reached, remove a stream before adding a new one"
        )
        self.capacity = capacity


class SlotNotFound(SessionError):
    """No slot with the given id exists (anymore)."""

    kind = SessionErrorKind.SLOT_NOT_FOUND

    def __init__(self, slot_id: str) -> None:
        """Initialize for the stale slot id."""
        super().__init__(f"Slot {slot_id!r} not found")
        self.slot_id = slot_id


class InvalidChannel(SessionError):
    """The channel name is empty."""

    kind = SessionErrorKind.INVALID_CHANNEL

    def __init__(self, channel: str) -> None:
        """Initialize for the rejected channel name."""
        super().__init__(f"Invalid channel name {channel!r}")
        self.channel = channel


class EmbedCreationFailed(SessionError):
    """The external player widget could not be initialized."""

    kind = SessionErrorKind.EMBED_CREATION_FAILED

    def __init__(self, slot_id: str, channel: str, reason: str) -> None:
        """Initialize for the slot whose widget failed."""
        super().__init__(f"Player for channel {channel!r} failed to initialize: {reason}")
        self.slot_id = slot_id
        self.channel = channel
        self.reason = reason


@dataclass(frozen=True)
class SessionResult:
    """
    Outcome of a session operation.

    Holds either the new authoritative slot list, or an error together with
    the unchanged slot list.
    """

    slots: tuple[Slot, ...]
    """Slot list after the operation (unchanged on error)."""
    error: SessionError | None = None
    """The reason the operation was rejected, None on success."""

    @property
    def ok(self) -> bool:
        """True if the operation was applied."""
        return self.error is None

    def unwrap(self) -> tuple[Slot, ...]:
        """Return the slots, raising the error if the operation was rejected."""
        if self.error is not None:
            raise self.error
        return self.slots
