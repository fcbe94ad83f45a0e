"""Adapter around one externally-owned video player widget."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass
from functools import partial
from typing import Any, Protocol

from aiomultiview.models.slot import Slot
from aiomultiview.models.types import EmbedEventType, QualityLevel

logger = logging.getLogger(__name__)


class EmbedWidget(Protocol):
    """The player primitive provided by the UI layer."""

    def set_muted(self, muted: bool) -> None:  # noqa: FBT001
        """Mute or unmute the player."""

    def set_quality(self, quality: str) -> None:
        """Ask the player for a quality level."""

    def add_event_listener(self, event: str, callback: Callable[..., None]) -> None:
        """Subscribe to a named player event (ready, play, pause, buffering, error)."""

    def destroy(self) -> None:
        """Tear the player down and release its rendering target."""


@dataclass(frozen=True)
class EmbedOptions:
    """Everything the UI layer needs to create one player widget."""

    target: str
    """Id of the rendering target the widget binds to."""
    channel: str
    """Channel to play."""
    muted: bool
    """Initial mute state."""
    quality: QualityLevel = QualityLevel.AUTO
    """Initial quality level."""
    credential: str | None = None
    """Playback credential for authenticated viewers, None for anonymous playback."""


# Creates a widget bound to EmbedOptions.target; may wait on the UI layer.
WidgetFactory = Callable[[EmbedOptions], Awaitable[EmbedWidget]]

# Returns a playback credential for authenticated viewers, or None.
CredentialProvider = Callable[[], Awaitable[str | None]]


@dataclass
class EmbedEvent:
    """An event reported by a player widget."""

    type: EmbedEventType
    """What happened."""
    detail: str | None = None
    """Extra information passed by the widget (error message, etc.)."""


class EmbedHandle:
    """
    One live player bound to one slot's embed identity.

    Tracks the commanded mute and quality state, and turns the widget's raw
    callbacks into EmbedEvents for listeners. Commands on a destroyed handle
    are ignored.
    """

    slot_id: str
    embed_identity: str
    channel: str
    _widget: EmbedWidget
    _muted: bool
    _quality: QualityLevel
    _ready: bool = False
    _destroyed: bool = False
    _error: str | None = None
    _event_cbs: list[Callable[[EmbedHandle, EmbedEvent], None]]

    def __init__(
        self,
        slot: Slot,
        widget: EmbedWidget,
        *,
        quality: QualityLevel = QualityLevel.AUTO,
    ) -> None:
        """
        Wrap a freshly created widget.

        Args:
            slot: The slot the widget was created for.
            widget: The widget returned by the factory.
            quality: The quality level the widget was created with.
        """
        self.slot_id = slot.id
        self.embed_identity = slot.embed_identity
        self.channel = slot.channel
        self._widget = widget
        self._muted = slot.muted
        self._quality = quality
        self._event_cbs = []
        self._settled = asyncio.Event()
        self._logger = logger.getChild(slot.channel)
        for event_type in EmbedEventType:
            widget.add_event_listener(event_type.value, partial(self._on_widget_event, event_type))

    @property
    def ready(self) -> bool:
        """Whether the widget reported ready."""
        return self._ready

    @property
    def destroyed(self) -> bool:
        """Whether the widget was torn down."""
        return self._destroyed

    @property
    def muted(self) -> bool:
        """Last commanded mute state."""
        return self._muted

    @property
    def quality(self) -> QualityLevel:
        """Last commanded quality level."""
        return self._quality

    def mute(self) -> None:
        """Mute this player."""
        self.set_muted(True)

    def unmute(self) -> None:
        """Unmute this player."""
        self.set_muted(False)

    def set_muted(self, muted: bool) -> None:  # noqa: FBT001
        """
        Push a mute state to the widget.

        Always forwarded, even if unchanged, so a widget that drifted (e.g.
        unmuted by the user inside the player) is corrected.
        """
        if self._destroyed:
            self._logger.debug("Ignoring mute command on destroyed player")
            return
        self._muted = muted
        try:
            self._widget.set_muted(muted)
        except Exception:
            self._logger.exception("Failed to set muted=%s", muted)

    def set_quality(self, quality: QualityLevel) -> None:
        """Push a quality level to the widget if it differs from the last one."""
        if self._destroyed:
            self._logger.debug("Ignoring quality command on destroyed player")
            return
        if quality == self._quality:
            return
        self._logger.debug("Setting quality from %s to %s", self._quality.value, quality.value)
        self._quality = quality
        try:
            self._widget.set_quality(quality.value)
        except Exception:
            self._logger.exception("Failed to set quality %s", quality.value)

    async def wait_ready(self, timeout: float) -> None:
        """
        Wait until the widget reports ready.

        Raises:
            TimeoutError: If the widget did not settle in time.
            RuntimeError: If the widget reported an error or was destroyed first.
        """
        await asyncio.wait_for(self._settled.wait(), timeout)
        if not self._ready:
            raise RuntimeError(self._error or "player was destroyed before it became ready")

    def destroy(self) -> None:
        """Tear the widget down. Safe to call more than once."""
        if self._destroyed:
            return
        self._destroyed = True
        self._settled.set()
        self._event_cbs.clear()
        self._logger.debug("Destroying player %s", self.embed_identity)
        try:
            self._widget.destroy()
        except Exception:
            self._logger.exception("Failed to destroy player %s", self.embed_identity)

    def _on_widget_event(self, event_type: EmbedEventType, *args: Any) -> None:
        if self._destroyed:
            return
        detail = str(args[0]) if args and args[0] is not None else None
        if event_type == EmbedEventType.READY and not self._ready:
            self._ready = True
            self._settled.set()
            # Commands may have changed while the widget was loading
            self._push_state()
        elif event_type == EmbedEventType.ERROR:
            self._logger.warning("Player reported an error: %s", detail)
            if not self._ready:
                self._error = detail or "player reported an error"
                self._settled.set()
        self._signal_event(EmbedEvent(type=event_type, detail=detail))

    def _push_state(self) -> None:
        try:
            self._widget.set_muted(self._muted)
            if self._quality != QualityLevel.AUTO:
                self._widget.set_quality(self._quality.value)
        except Exception:
            self._logger.exception("Failed to apply initial player state")

    def add_event_listener(
        self, callback: Callable[[EmbedHandle, EmbedEvent], None]
    ) -> Callable[[], None]:
        """
        Register a callback for events of this player.

        Returns a function to remove the listener.
        """
        self._event_cbs.append(callback)

        def _remove() -> None:
            with suppress(ValueError):
                self._event_cbs.remove(callback)

        return _remove

    def _signal_event(self, event: EmbedEvent) -> None:
        for cb in list(self._event_cbs):
            try:
                cb(self, event)
            except Exception:
                self._logger.exception("Error in event listener")
