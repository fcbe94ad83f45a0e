"""Data models for aiomultiview."""

from __future__ import annotations

__all__ = [
    "QUALITY_LADDER",
    "CapacityTier",
    "EmbedEventType",
    "GridPlacement",
    "LayoutType",
    "MultiviewConfig",
    "Pack",
    "PackStream",
    "PerformanceSample",
    "PremiumFeatures",
    "PremiumStatus",
    "QualityLevel",
    "QualityPolicy",
    "QualityState",
    "SessionErrorKind",
    "SessionOperation",
    "Slot",
    "config",
    "layout",
    "pack",
    "quality",
    "quality_rank",
    "slot",
    "types",
]

from . import config, layout, pack, quality, slot, types
from .config import MultiviewConfig
from .layout import GridPlacement
from .pack import Pack, PackStream, PremiumFeatures, PremiumStatus
from .quality import PerformanceSample, QualityPolicy, QualityState
from .slot import Slot
from .types import (
    QUALITY_LADDER,
    CapacityTier,
    EmbedEventType,
    LayoutType,
    QualityLevel,
    SessionErrorKind,
    SessionOperation,
    quality_rank,
)
