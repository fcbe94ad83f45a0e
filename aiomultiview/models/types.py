"""Models for enum types used by aiomultiview."""

from enum import Enum


class CapacityTier(Enum):
    """Entitlement level deciding how many streams a session may hold."""

    FREE = "free"
    """Default tier, up to MultiviewConfig.max_free_streams slots."""
    PREMIUM = "premium"
    """Paid tier, up to MultiviewConfig.max_premium_streams slots."""


class QualityLevel(Enum):
    """Playback quality levels understood by the embedded player."""

    AUTO = "auto"
    """Let the player pick; the unconstrained starting level."""
    SOURCE = "source"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    AUDIO_ONLY = "audio_only"


# Best first. AUTO shares the top rung with SOURCE.
QUALITY_LADDER: tuple[QualityLevel, ...] = (
    QualityLevel.SOURCE,
    QualityLevel.HIGH,
    QualityLevel.MEDIUM,
    QualityLevel.LOW,
    QualityLevel.AUDIO_ONLY,
)


def quality_rank(level: QualityLevel) -> int:
    """Return the position of a level on the ladder, 0 being the best."""
    if level == QualityLevel.AUTO:
        return 0
    return QUALITY_LADDER.index(level)


class EmbedEventType(Enum):
    """Events emitted by an embedded player widget."""

    READY = "ready"
    PLAY = "play"
    PAUSE = "pause"
    BUFFERING = "buffering"
    ERROR = "error"


class SessionOperation(Enum):
    """Operations that mutate a session."""

    ADD = "add"
    REMOVE = "remove"
    PROMOTE = "promote"
    SET_AUDIO = "set_audio"


class SessionErrorKind(Enum):
    """Kinds of recoverable errors reported by the session engine."""

    DUPLICATE_CHANNEL = "duplicate_channel"
    """The channel is already part of the session."""
    CAPACITY_EXCEEDED = "capacity_exceeded"
    """The session already holds as many slots as its tier allows."""
    SLOT_NOT_FOUND = "slot_not_found"
    """The slot id is stale or unknown."""
    INVALID_CHANNEL = "invalid_channel"
    """The channel name is empty after normalization."""
    EMBED_CREATION_FAILED = "embed_creation_failed"
    """The external player widget failed to initialize."""


class LayoutType(Enum):
    """Grid arrangement of a session, the presets other than DEFAULT are premium."""

    DEFAULT = "default"
    """Corner-anchored primary, centered at nine streams."""
    GRID_EQUAL = "grid_equal"
    """Every stream gets a cell of the same size."""
    SPOTLIGHT = "spotlight"
    """One wide primary block, the others in a narrow column and rows below."""
    SIDEBAR = "sidebar"
    """Primary fills the main column, the others stack in a sidebar."""
    CUSTOM = "custom"
    """User-defined positions; rendered with the DEFAULT grid."""
