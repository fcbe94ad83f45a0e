"""One viewing context: a session, its players and its quality controller."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from aiomultiview.models.config import MultiviewConfig
from aiomultiview.models.layout import GridPlacement
from aiomultiview.models.pack import PremiumStatus
from aiomultiview.models.slot import Slot
from aiomultiview.models.types import CapacityTier, LayoutType, QualityLevel

from .api import ViewerApiClient
from .embed import CredentialProvider, EmbedHandle, WidgetFactory
from .errors import EmbedCreationFailed, SessionResult
from .lifecycle import EmbedLifecycleManager, LifecycleEvent
from .quality import QualityChangedEvent, QualityController, SampleSource
from .session import MultiviewSession, SessionEvent, SlotsChangedEvent

logger = logging.getLogger(__name__)


def create_session(tier: CapacityTier, config: MultiviewConfig | None = None) -> MultiviewSession:
    """Create an empty session sized for a capacity tier."""
    config = config or MultiviewConfig()
    return MultiviewSession(config.capacity_for(tier))


class MultiviewViewer:
    """
    Wires one session to one lifecycle manager and one quality controller.

    Session operations run synchronously and return a SessionResult; every
    applied operation is followed by a reconciliation of the players and a
    slot count check of the quality controller. Player creation happens in
    the background on the viewer's event loop.
    """

    _loop: asyncio.AbstractEventLoop
    _config: MultiviewConfig
    _session: MultiviewSession
    _lifecycle: EmbedLifecycleManager
    _quality: QualityController
    _layout_type: LayoutType
    _custom_layouts: bool
    """Whether layout presets other than DEFAULT are allowed."""
    _hydrating: bool
    """Set while hydrating, players are reconciled once at the end."""
    _remove_session_listener: Callable[[], None] | None

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        widget_factory: WidgetFactory,
        *,
        tier: CapacityTier = CapacityTier.FREE,
        config: MultiviewConfig | None = None,
        credential_provider: CredentialProvider | None = None,
        sample_source: SampleSource | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """
        Create a viewer with an empty session.

        Args:
            loop: Event loop running player creation and quality evaluation.
            widget_factory: Creates a player widget for a set of EmbedOptions.
            tier: Capacity tier of the initial session.
            config: Viewer settings, defaults to MultiviewConfig().
            credential_provider: Fetches a playback credential for signed-in
                viewers, None for anonymous playback.
            sample_source: Returns client performance readings for the
                periodic quality evaluation.
            clock: Monotonic clock used by the quality controller.
        """
        self._loop = loop
        self._config = config or MultiviewConfig()
        self._quality = QualityController(
            loop,
            self._config.quality,
            clock=clock,
            slot_count_source=lambda: len(self._session),
            sample_source=sample_source,
        )
        # Players start at the controller's level, not at AUTO
        self._lifecycle = EmbedLifecycleManager(
            loop,
            widget_factory,
            credential_provider=credential_provider,
            ready_timeout=self._config.embed_ready_timeout,
            target_prefix=self._config.target_prefix,
            quality=self._quality.level,
        )
        self._quality.on_quality_change(self._on_quality_change)
        self._hydrating = False
        self._layout_type = LayoutType.DEFAULT
        self._custom_layouts = tier == CapacityTier.PREMIUM
        self._session = create_session(tier, self._config)
        self._remove_session_listener = self._session.add_event_listener(self._on_session_event)

    @property
    def session(self) -> MultiviewSession:
        """The session currently shown."""
        return self._session

    @property
    def lifecycle(self) -> EmbedLifecycleManager:
        """Manager of the live players."""
        return self._lifecycle

    @property
    def quality_controller(self) -> QualityController:
        """Controller deciding the quality of every player."""
        return self._quality

    @property
    def config(self) -> MultiviewConfig:
        """Settings of this viewer."""
        return self._config

    @property
    def slots(self) -> tuple[Slot, ...]:
        """Current slot list in grid order."""
        return self._session.slots

    @property
    def quality(self) -> QualityLevel:
        """Quality level applied to every player."""
        return self._quality.level

    @property
    def failed(self) -> dict[str, EmbedCreationFailed]:
        """Slots whose player could not be created, keyed by slot id."""
        return self._lifecycle.failed

    @property
    def layout_type(self) -> LayoutType:
        """Grid arrangement of the session."""
        return self._layout_type

    @property
    def custom_layouts(self) -> bool:
        """Whether layout presets other than DEFAULT are allowed."""
        return self._custom_layouts

    def set_layout_type(self, layout_type: LayoutType) -> bool:
        """
        Switch the grid arrangement.

        Presets other than DEFAULT need custom layouts, granted by the
        premium tier. Returns False when the preset is not allowed.
        """
        if layout_type != LayoutType.DEFAULT and not self._custom_layouts:
            logger.warning("Layout %s requires premium", layout_type.value)
            return False
        self._layout_type = layout_type
        logger.debug("Layout set to %s", layout_type.value)
        return True

    def placement(self) -> GridPlacement:
        """Return the grid placement for the current slot count and layout."""
        return self._session.placement(self._layout_type)

    def areas(self) -> dict[str, str]:
        """Return the grid area of every slot, keyed by slot id."""
        return self._session.areas()

    def handle_for(self, slot_id: str) -> EmbedHandle | None:
        """Return the live player of a slot, None if it has none (yet)."""
        return self._lifecycle.handle_for(slot_id)

    def create_session(
        self, tier: CapacityTier, *, custom_layouts: bool | None = None
    ) -> MultiviewSession:
        """
        Replace the current session with an empty one sized for a tier.

        Players of the previous session are torn down. Custom layouts follow
        the tier unless given; losing them resets the layout to DEFAULT.
        """
        previous = self._session
        self._custom_layouts = (
            tier == CapacityTier.PREMIUM if custom_layouts is None else custom_layouts
        )
        if not self._custom_layouts:
            self._layout_type = LayoutType.DEFAULT
        if self._remove_session_listener is not None:
            self._remove_session_listener()
        self._session = create_session(tier, self._config)
        self._remove_session_listener = self._session.add_event_listener(self._on_session_event)
        if len(previous):
            self._lifecycle.reconcile(previous.slots, ())
            self._quality.update_slot_count(0)
        logger.debug("Created %s session with capacity %d", tier.value, self._session.capacity)
        return self._session

    def apply_entitlement(self, status: PremiumStatus) -> MultiviewSession:
        """Replace the session with one matching a verified premium status."""
        return self.create_session(status.tier, custom_layouts=status.custom_layouts_enabled)

    def add(self, channel: str) -> SessionResult:
        """Add a channel. See MultiviewSession.add()."""
        return self._session.add(channel)

    def remove(self, slot_id: str) -> SessionResult:
        """Remove a slot. See MultiviewSession.remove()."""
        return self._session.remove(slot_id)

    def promote_to_primary(self, slot_id: str) -> SessionResult:
        """Make a slot primary with audio. See MultiviewSession.promote_to_primary()."""
        return self._session.promote_to_primary(slot_id)

    def set_audio_source(self, slot_id: str) -> SessionResult:
        """Move the audio to a slot. See MultiviewSession.set_audio_source()."""
        return self._session.set_audio_source(slot_id)

    def retry(self, slot_id: str) -> bool:
        """Retry creating the player of a failed slot."""
        return self._lifecycle.retry(slot_id)

    def hydrate(self, channels: Iterable[str]) -> SessionResult:
        """
        Seed the session from a channel list.

        Players are created once for the final slot list instead of after
        every single add.
        """
        before = self._session.slots
        self._hydrating = True
        try:
            result = self._session.hydrate(channels)
        finally:
            self._hydrating = False
        self._sync(before, self._session.slots)
        logger.info("Hydrated viewer with %d streams", len(result.slots))
        return result

    async def hydrate_from_pack(self, client: ViewerApiClient, pack_id: str) -> SessionResult:
        """
        Seed the session from a saved pack.

        Raises:
            ViewerApiError: If the pack could not be fetched; the session is
                left untouched.
        """
        pack = await client.fetch_pack(pack_id)
        logger.info("Loading pack %r (%s)", pack.title, pack.id)
        return self.hydrate(pack.channels())

    def on_quality_change(
        self, callback: Callable[[QualityChangedEvent], None]
    ) -> Callable[[], None]:
        """Register a callback invoked after every quality change."""
        return self._quality.on_quality_change(callback)

    def add_event_listener(
        self, callback: Callable[[EmbedLifecycleManager, LifecycleEvent], None]
    ) -> Callable[[], None]:
        """Register a callback for player lifecycle events."""
        return self._lifecycle.add_event_listener(callback)

    async def start(self) -> None:
        """Start the periodic quality evaluation."""
        self._quality.start()

    async def close(self) -> None:
        """Stop the quality evaluation and tear down every player."""
        if self._remove_session_listener is not None:
            self._remove_session_listener()
            self._remove_session_listener = None
        await self._quality.stop()
        await self._lifecycle.close()
        logger.debug("Viewer closed")

    def _on_session_event(self, session: MultiviewSession, event: SessionEvent) -> None:
        if not isinstance(event, SlotsChangedEvent) or self._hydrating:
            return
        self._sync(event.before, event.after)

    def _sync(self, before: tuple[Slot, ...], after: tuple[Slot, ...]) -> None:
        self._lifecycle.reconcile(before, after)
        self._quality.update_slot_count(len(after))

    def _on_quality_change(self, event: QualityChangedEvent) -> None:
        self._lifecycle.apply_quality(event.level)
