"""Top-level configuration for a multiview viewer."""

from __future__ import annotations

from dataclasses import dataclass, field

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .quality import QualityPolicy
from .types import CapacityTier

# The grid layout tops out at nine areas.
MAX_GRID_STREAMS = 9


@dataclass(frozen=True)
class MultiviewConfig(DataClassORJSONMixin):
    """Settings shared by every component of a viewer."""

    max_free_streams: int = 3
    """Slot ceiling for CapacityTier.FREE."""
    max_premium_streams: int = 9
    """Slot ceiling for CapacityTier.PREMIUM."""
    embed_ready_timeout: float = 15.0
    """Seconds to wait for a player widget to report ready."""
    entitlement_ttl: float = 300.0
    """Seconds a cached premium status stays valid."""
    target_prefix: str = "multiview-player"
    """Prefix of the rendering target ids handed to the widget factory."""
    quality: QualityPolicy = field(default_factory=QualityPolicy)
    """Quality adaptation thresholds."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if self.max_free_streams <= 0:
            raise ValueError(f"max_free_streams must be positive, got {self.max_free_streams}")
        if not self.max_free_streams <= self.max_premium_streams <= MAX_GRID_STREAMS:
            raise ValueError(
                "Expected max_free_streams <= max_premium_streams <= "
                f"{MAX_GRID_STREAMS}, got {self.max_free_streams} and {self.max_premium_streams}"
            )
        if self.embed_ready_timeout <= 0:
            raise ValueError(
                f"embed_ready_timeout must be positive, got {self.embed_ready_timeout}"
            )
        if self.entitlement_ttl < 0:
            raise ValueError(f"entitlement_ttl must be >= 0, got {self.entitlement_ttl}")

    def capacity_for(self, tier: CapacityTier) -> int:
        """Return the slot ceiling of a capacity tier."""
        if tier == CapacityTier.PREMIUM:
            return self.max_premium_streams
        return self.max_free_streams
