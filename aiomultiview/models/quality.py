"""
Quality adaptation models.

These describe what the quality controller observes (performance samples),
how it reacts (the policy), and what it currently decided (the state).
"""

from __future__ import annotations

from dataclasses import dataclass

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import QUALITY_LADDER, QualityLevel, quality_rank


@dataclass(frozen=True)
class PerformanceSample(DataClassORJSONMixin):
    """One client performance reading. Every field is optional."""

    fps: float | None = None
    """Rendered frames per second."""
    dropped_frame_ratio: float | None = None
    """Share of dropped frames in the sampling window, 0.0-1.0."""
    memory_mb: float | None = None
    """Memory used by the client in megabytes."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if self.fps is not None and self.fps < 0:
            raise ValueError(f"fps must be >= 0, got {self.fps}")
        if self.dropped_frame_ratio is not None and not 0.0 <= self.dropped_frame_ratio <= 1.0:
            raise ValueError(
                f"dropped_frame_ratio must be in range 0.0-1.0, got {self.dropped_frame_ratio}"
            )
        if self.memory_mb is not None and self.memory_mb < 0:
            raise ValueError(f"memory_mb must be >= 0, got {self.memory_mb}")

    class Config(BaseConfig):
        """Config for serializing samples."""

        omit_none = True


@dataclass(frozen=True)
class QualityPolicy(DataClassORJSONMixin):
    """Thresholds driving the quality controller."""

    ceiling: QualityLevel = QualityLevel.AUTO
    """Best level the controller ever asks for."""
    floor: QualityLevel = QualityLevel.LOW
    """Worst level the controller ever asks for."""
    count_thresholds: tuple[int, ...] = (2, 4, 6)
    """Each threshold the slot count exceeds caps quality one rung lower."""
    min_fps: float = 20.0
    """Samples below this frame rate count as degraded."""
    max_dropped_frame_ratio: float = 0.1
    """Samples above this dropped-frame ratio count as degraded."""
    max_memory_mb: float | None = None
    """Samples above this memory use count as degraded, None to ignore memory."""
    degrade_after: int = 3
    """Consecutive degraded samples needed before stepping down."""
    recover_after: int = 6
    """Consecutive healthy samples needed before stepping up."""
    min_change_interval: float = 10.0
    """Minimum seconds between two quality changes."""
    poll_interval: float = 5.0
    """Seconds between two periodic evaluations."""

    def __post_init__(self) -> None:
        """Validate field values."""
        if self.ceiling not in (QualityLevel.AUTO, *QUALITY_LADDER):
            raise ValueError(f"Unknown ceiling {self.ceiling}")
        if quality_rank(self.ceiling) > quality_rank(self.floor):
            raise ValueError(
                f"ceiling {self.ceiling.value} must not be worse than floor {self.floor.value}"
            )
        if self.floor == QualityLevel.AUTO:
            raise ValueError("floor must be a concrete quality level")
        if list(self.count_thresholds) != sorted(self.count_thresholds):
            raise ValueError(f"count_thresholds must be ascending, got {self.count_thresholds}")
        if self.degrade_after <= 0:
            raise ValueError(f"degrade_after must be positive, got {self.degrade_after}")
        if self.recover_after <= 0:
            raise ValueError(f"recover_after must be positive, got {self.recover_after}")
        if self.min_change_interval < 0:
            raise ValueError(
                f"min_change_interval must be >= 0, got {self.min_change_interval}"
            )
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")

    class Config(BaseConfig):
        """Config for parsing policies."""

        omit_none = True

    def ladder(self) -> tuple[QualityLevel, ...]:
        """Return the usable levels, best first, from ceiling down to floor."""
        top = quality_rank(self.ceiling)
        bottom = quality_rank(self.floor)
        rungs = list(QUALITY_LADDER[top : bottom + 1])
        # AUTO replaces SOURCE on the top rung
        rungs[0] = self.ceiling
        return tuple(rungs)

    def is_degraded(self, sample: PerformanceSample) -> bool:
        """Return True if a sample indicates the client is struggling."""
        if sample.fps is not None and sample.fps < self.min_fps:
            return True
        if (
            sample.dropped_frame_ratio is not None
            and sample.dropped_frame_ratio > self.max_dropped_frame_ratio
        ):
            return True
        return (
            self.max_memory_mb is not None
            and sample.memory_mb is not None
            and sample.memory_mb > self.max_memory_mb
        )


@dataclass(frozen=True)
class QualityState(DataClassORJSONMixin):
    """Snapshot of the quality controller's decision."""

    level: QualityLevel
    """Quality level currently applied to every player."""
    slot_count: int = 0
    """Slot count seen at the last evaluation."""
    sample: PerformanceSample | None = None
    """Performance sample seen at the last evaluation, if any."""
    changed_at: float | None = None
    """Clock reading of the last level change, None if never changed."""

    class Config(BaseConfig):
        """Config for serializing state snapshots."""

        omit_none = True
