"""Multi-stream viewer session engine."""

from .models import (
    CapacityTier,
    GridPlacement,
    LayoutType,
    MultiviewConfig,
    PerformanceSample,
    QualityLevel,
    QualityPolicy,
    Slot,
)
from .viewer import (
    EmbedLifecycleManager,
    EntitlementCache,
    MultiviewSession,
    MultiviewViewer,
    QualityController,
    SessionError,
    SessionResult,
    ViewerApiClient,
    ViewerApiError,
    create_session,
    layout,
)

__all__ = [
    "CapacityTier",
    "EmbedLifecycleManager",
    "EntitlementCache",
    "GridPlacement",
    "LayoutType",
    "MultiviewConfig",
    "MultiviewSession",
    "MultiviewViewer",
    "PerformanceSample",
    "QualityController",
    "QualityLevel",
    "QualityPolicy",
    "SessionError",
    "SessionResult",
    "Slot",
    "ViewerApiClient",
    "ViewerApiError",
    "create_session",
    "layout",
]
