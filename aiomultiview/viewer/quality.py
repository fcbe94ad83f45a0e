"""Feedback loop lowering and restoring playback quality under load."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum

from aiomultiview.models.quality import PerformanceSample, QualityPolicy, QualityState
from aiomultiview.models.types import QualityLevel

logger = logging.getLogger(__name__)

# Returns the current number of slots.
SlotCountSource = Callable[[], int]

# Returns the latest client performance reading, None if nothing was measured.
SampleSource = Callable[[], PerformanceSample | None]


class QualityChangeReason(Enum):
    """Why the controller changed the quality level."""

    SLOT_COUNT = "slot_count"
    """More streams than the current level allows."""
    PERFORMANCE = "performance"
    """Sustained degraded performance samples."""
    RECOVERY = "recovery"
    """Sustained healthy evaluations below the allowed level."""


@dataclass
class QualityChangedEvent:
    """The controller moved to a new quality level."""

    previous: QualityLevel
    level: QualityLevel
    reason: QualityChangeReason
    state: QualityState


class QualityController:
    """
    Closed-loop quality controller shared by every player of a viewer.

    Each evaluation moves at most one rung on the quality ladder. The slot
    count caps the best allowed level; degraded performance samples push
    the level down after `degrade_after` readings in a row; the level climbs
    back one rung after `recover_after` healthy evaluations in a row. Two
    changes are always at least `min_change_interval` seconds apart.

    The controller only emits levels. It never touches session state.
    """

    _loop: asyncio.AbstractEventLoop
    _policy: QualityPolicy
    _clock: Callable[[], float]
    _level: QualityLevel
    _bad_streak: int
    """Consecutive degraded samples (decays by one per healthy evaluation)."""
    _good_streak: int
    """Consecutive healthy evaluations."""
    _last_change: float | None
    _last_slot_count: int
    _last_sample: PerformanceSample | None
    _event_cbs: list[Callable[[QualityChangedEvent], None]]
    _task: asyncio.Task[None] | None

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        policy: QualityPolicy | None = None,
        *,
        clock: Callable[[], float] | None = None,
        slot_count_source: SlotCountSource | None = None,
        sample_source: SampleSource | None = None,
    ) -> None:
        """
        Initialize the controller at the policy's ceiling.

        Args:
            loop: Event loop running the periodic evaluation.
            policy: Thresholds, defaults to QualityPolicy().
            clock: Monotonic clock in seconds, defaults to loop.time.
            slot_count_source: Read by the periodic evaluation.
            sample_source: Read by the periodic evaluation.
        """
        self._loop = loop
        self._policy = policy or QualityPolicy()
        self._clock = clock or loop.time
        self._slot_count_source = slot_count_source
        self._sample_source = sample_source
        self._level = self._policy.ceiling
        self._bad_streak = 0
        self._good_streak = 0
        self._last_change = None
        self._last_slot_count = 0
        self._last_sample = None
        self._event_cbs = []
        self._task = None

    @property
    def level(self) -> QualityLevel:
        """Current quality level."""
        return self._level

    @property
    def policy(self) -> QualityPolicy:
        """Thresholds in use."""
        return self._policy

    @property
    def state(self) -> QualityState:
        """Snapshot of the current decision and the inputs it was based on."""
        return QualityState(
            level=self._level,
            slot_count=self._last_slot_count,
            sample=self._last_sample,
            changed_at=self._last_change,
        )

    @property
    def running(self) -> bool:
        """Whether the periodic evaluation is active."""
        return self._task is not None and not self._task.done()

    def allowed_level(self, slot_count: int) -> QualityLevel:
        """Return the best level allowed for a number of streams."""
        ladder = self._policy.ladder()
        exceeded = sum(1 for threshold in self._policy.count_thresholds if slot_count > threshold)
        return ladder[min(exceeded, len(ladder) - 1)]

    def evaluate(self, slot_count: int, sample: PerformanceSample | None = None) -> QualityLevel:
        """
        Run one step of the control loop.

        Args:
            slot_count: Number of streams currently shown.
            sample: Latest performance reading, None if nothing was measured.

        Returns:
            The (possibly unchanged) quality level.
        """
        self._last_sample = sample
        if sample is not None and self._policy.is_degraded(sample):
            self._bad_streak += 1
            self._good_streak = 0
        else:
            self._good_streak += 1
            self._bad_streak = max(0, self._bad_streak - 1)
        return self._step(slot_count)

    def update_slot_count(self, slot_count: int) -> QualityLevel:
        """
        Re-check the slot count cap after the slot list changed.

        Unlike evaluate(), this does not count as a performance reading.
        """
        return self._step(slot_count)

    def _step(self, slot_count: int) -> QualityLevel:
        policy = self._policy
        ladder = policy.ladder()
        self._last_slot_count = slot_count
        rank = ladder.index(self._level)
        cap = ladder.index(self.allowed_level(slot_count))
        now = self._clock()
        if self._last_change is not None and now - self._last_change < policy.min_change_interval:
            return self._level

        if rank < cap:
            self._change(ladder[rank + 1], QualityChangeReason.SLOT_COUNT, now)
        elif self._bad_streak >= policy.degrade_after and rank < len(ladder) - 1:
            self._bad_streak = 0
            self._change(ladder[rank + 1], QualityChangeReason.PERFORMANCE, now)
        elif self._good_streak >= policy.recover_after and rank > cap:
            self._good_streak = 0
            self._change(ladder[rank - 1], QualityChangeReason.RECOVERY, now)
        return self._level

    def _change(self, level: QualityLevel, reason: QualityChangeReason, now: float) -> None:
        previous = self._level
        self._level = level
        self._last_change = now
        logger.info(
            "Quality changed from %s to %s (%s, %d streams)",
            previous.value,
            level.value,
            reason.value,
            self._last_slot_count,
        )
        self._signal_event(
            QualityChangedEvent(previous=previous, level=level, reason=reason, state=self.state)
        )

    def on_quality_change(
        self, callback: Callable[[QualityChangedEvent], None]
    ) -> Callable[[], None]:
        """
        Register a callback invoked after every quality change.

        Returns a function to remove the callback.
        """
        self._event_cbs.append(callback)

        def _remove() -> None:
            with suppress(ValueError):
                self._event_cbs.remove(callback)

        return _remove

    def _signal_event(self, event: QualityChangedEvent) -> None:
        for cb in list(self._event_cbs):
            try:
                cb(event)
            except Exception:
                logger.exception("Error in quality change callback")

    def start(self) -> None:
        """Start evaluating periodically every policy.poll_interval seconds."""
        if self.running:
            return
        self._task = self._loop.create_task(self._run())

    async def stop(self) -> None:
        """Stop the periodic evaluation and wait for it to finish."""
        if self._task is None:
            return
        task = self._task
        self._task = None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Unhandled exception while stopping quality controller")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._policy.poll_interval)
            self.tick()

    def tick(self) -> QualityLevel:
        """Evaluate once using the configured slot count and sample sources."""
        slot_count = self._last_slot_count
        if self._slot_count_source is not None:
            slot_count = self._slot_count_source()
        sample = None
        if self._sample_source is not None:
            try:
                sample = self._sample_source()
            except Exception:
                logger.exception("Performance sample source failed")
        return self.evaluate(slot_count, sample)
