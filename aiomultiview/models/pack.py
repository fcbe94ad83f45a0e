"""
Payloads returned by the collaborator HTTP API.

Packs are saved, ordered collections of channels. This library never stores
them; it only reads one to seed a fresh session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated

from mashumaro.config import BaseConfig
from mashumaro.mixins.orjson import DataClassORJSONMixin
from mashumaro.types import Alias

from aiomultiview.util import normalize_channel

from .types import CapacityTier


@dataclass
class PackStream(DataClassORJSONMixin):
    """One channel entry of a pack."""

    twitch_channel: str
    """Channel name as stored by the pack service."""
    order: int = 0
    """Position of the channel inside the pack."""
    id: str | None = None


@dataclass
class Pack(DataClassORJSONMixin):
    """A saved collection of channels."""

    id: str
    title: str
    description: str | None = None
    visibility: str | None = None
    """'public' or 'private'."""
    pack_streams: list[PackStream] = field(default_factory=list)

    def channels(self) -> list[str]:
        """Return the normalized channels ordered by their pack position."""
        ordered = sorted(self.pack_streams, key=lambda stream: stream.order)
        return [normalize_channel(stream.twitch_channel) for stream in ordered]


@dataclass
class PackResponse(DataClassORJSONMixin):
    """Envelope of GET /api/packs/{id}."""

    pack: Pack


@dataclass
class PremiumFeatures(DataClassORJSONMixin):
    """Feature flags attached to a premium verification."""

    max_streams: Annotated[int, Alias("maxStreams")] = 3
    custom_layouts: Annotated[bool, Alias("customLayouts")] = False

    class Config(BaseConfig):
        """Config for parsing json payloads."""

        serialize_by_alias = True


@dataclass
class PremiumStatus(DataClassORJSONMixin):
    """Payload of GET /api/premium/verify."""

    is_premium: Annotated[bool, Alias("isPremium")]
    features: PremiumFeatures | None = None

    class Config(BaseConfig):
        """Config for parsing json payloads."""

        serialize_by_alias = True
        omit_none = True

    @property
    def tier(self) -> CapacityTier:
        """Capacity tier granted by this status."""
        return CapacityTier.PREMIUM if self.is_premium else CapacityTier.FREE

    @property
    def custom_layouts_enabled(self) -> bool:
        """Whether the layout presets other than DEFAULT may be used."""
        if not self.is_premium:
            return False
        return self.features is None or self.features.custom_layouts
