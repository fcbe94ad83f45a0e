"""
Slot model.

A slot is one occupied position of a viewing session: a channel plus its
display and audio flags. Slots are immutable; the session engine replaces
them wholesale on every transition.
"""

from __future__ import annotations

from dataclasses import dataclass

from mashumaro.mixins.orjson import DataClassORJSONMixin

from aiomultiview.util import normalize_channel


@dataclass(frozen=True)
class Slot(DataClassORJSONMixin):
    """One occupied viewing position."""

    id: str
    """Opaque identifier, stable for the lifetime of the slot."""
    channel: str
    """Normalized channel name, unique within a session."""
    embed_identity: str
    """
    Churn token for the rendering surface.

    Unlike id, this changes whenever the surface has to be recreated
    (add, remove and promote), and survives audio-only changes.
    """
    is_primary: bool = False
    """Whether this slot is the visually emphasized one."""
    has_audio: bool = False
    """Whether this slot's audio is unmuted."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if not self.id:
            raise ValueError("Slot id must not be empty")
        if not self.embed_identity:
            raise ValueError("Slot embed_identity must not be empty")
        if self.channel != normalize_channel(self.channel) or not self.channel:
            raise ValueError(f"Slot channel must be normalized, got {self.channel!r}")

    @property
    def muted(self) -> bool:
        """Mute state a player bound to this slot should have."""
        return not self.has_audio
