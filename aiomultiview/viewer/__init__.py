"""Public interface for the multiview runtime package."""

from .api import ViewerApiClient, ViewerApiError
from .embed import (
    CredentialProvider,
    EmbedEvent,
    EmbedHandle,
    EmbedOptions,
    EmbedWidget,
    WidgetFactory,
)
from .entitlement import EntitlementCache, PremiumVerifier
from .errors import (
    CapacityExceeded,
    DuplicateChannel,
    EmbedCreationFailed,
    InvalidChannel,
    SessionError,
    SessionResult,
    SlotNotFound,
)
from .layout import assign_areas, layout
from .lifecycle import (
    EmbedCreatedEvent,
    EmbedDestroyedEvent,
    EmbedFailedEvent,
    EmbedLifecycleManager,
    LifecycleEvent,
    PlayerEvent,
)
from .quality import QualityChangedEvent, QualityChangeReason, QualityController, SampleSource
from .session import MultiviewSession, SessionEvent, SlotsChangedEvent, check_invariants
from .viewer import MultiviewViewer, create_session

__all__ = [
    "CapacityExceeded",
    "CredentialProvider",
    "DuplicateChannel",
    "EmbedCreatedEvent",
    "EmbedCreationFailed",
    "EmbedDestroyedEvent",
    "EmbedEvent",
    "EmbedFailedEvent",
    "EmbedHandle",
    "EmbedLifecycleManager",
    "EmbedOptions",
    "EmbedWidget",
    "EntitlementCache",
    "InvalidChannel",
    "LifecycleEvent",
    "MultiviewSession",
    "MultiviewViewer",
    "PlayerEvent",
    "PremiumVerifier",
    "QualityChangeReason",
    "QualityChangedEvent",
    "QualityController",
    "SampleSource",
    "SessionError",
    "SessionEvent",
    "SessionResult",
    "SlotNotFound",
    "SlotsChangedEvent",
    "ViewerApiClient",
    "ViewerApiError",
    "WidgetFactory",
    "assign_areas",
    "check_invariants",
    "create_session",
    "layout",
]
