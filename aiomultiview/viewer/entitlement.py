"""Short-lived cache of premium status per user."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from aiomultiview.models.config import MultiviewConfig
from aiomultiview.models.pack import PremiumStatus
from aiomultiview.models.types import CapacityTier

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 300.0

# Asks the collaborator whether the current user is premium.
PremiumVerifier = Callable[[], Awaitable[PremiumStatus]]


@dataclass(frozen=True)
class _Entry:
    status: PremiumStatus
    expires_at: float


class EntitlementCache:
    """
    Caches premium verifications keyed by user id.

    A single instance is meant to be shared by every viewer of a process so
    opening several viewers does not hit the verification endpoint each time.
    Expired entries are evicted when read.
    """

    _ttl: float
    """Seconds an entry stays valid."""
    _clock: Callable[[], float]
    _entries: dict[str, _Entry]
    _lock: threading.Lock

    def __init__(
        self, ttl: float = DEFAULT_TTL_S, clock: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initialize an empty cache.

        Args:
            ttl: Seconds a verified status stays valid.
            clock: Monotonic clock in seconds.
        """
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        self._ttl = ttl
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Return the number of entries, expired or not."""
        return len(self._entries)

    def get(self, user_id: str) -> PremiumStatus | None:
        """Return the cached status of a user, None if missing or expired."""
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[user_id]
                return None
            return entry.status

    def set(self, user_id: str, status: PremiumStatus) -> None:
        """Store a freshly verified status."""
        with self._lock:
            self._entries[user_id] = _Entry(status=status, expires_at=self._clock() + self._ttl)

    def clear(self, user_id: str | None = None) -> None:
        """Forget one user, or every user when user_id is None."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
            else:
                self._entries.pop(user_id, None)

    async def resolve(self, user_id: str, verify: PremiumVerifier) -> PremiumStatus:
        """
        Return the status of a user, verifying it when not cached.

        Errors raised by `verify` propagate and nothing is cached.
        """
        cached = self.get(user_id)
        if cached is not None:
            return cached
        logger.debug("Verifying premium status of user %s", user_id)
        status = await verify()
        self.set(user_id, status)
        return status

    async def capacity_tier(
        self,
        user_id: str,
        verify: PremiumVerifier,
        config: MultiviewConfig | None = None,
    ) -> CapacityTier:
        """
        Return the capacity tier of a user.

        The slot ceiling of each tier comes from MultiviewConfig, never from
        the advertised `features.max_streams`. A disagreement between the two
        is logged so a misconfigured deployment shows up.
        """
        status = await self.resolve(user_id, verify)
        tier = status.tier
        if status.features is not None:
            capacity = (config or MultiviewConfig()).capacity_for(tier)
            if status.features.max_streams != capacity:
                logger.warning(
                    "User %s is advertised %d streams but the %s tier allows %d",
                    user_id,
                    status.features.max_streams,
                    tier.value,
                    capacity,
                )
        return tier
