"""Adaptive polling interval for the watcher loop."""

from loguru import logger

DEFAULT_INTERVAL_MS = 5000
DEFAULT_MIN_INTERVAL_MS = 1000
DEFAULT_MAX_INTERVAL_MS = 15000
DEFAULT_IDLE_THRESHOLD = 60
DEFAULT_BACKOFF_FACTOR = 1.5


class AdaptivePollingScheduler:
    """Backs off while the tree is quiet and snaps back on activity.

    The interval stays at ``base_interval`` until ``idle_threshold`` consecutive
    idle ticks have passed; from then on every idle tick multiplies it by
    ``backoff_factor`` up to ``max_interval``. Any activity returns it to the
    base interval. All values are milliseconds.
    """

    def __init__(
        self,
        base_interval: int = DEFAULT_INTERVAL_MS,
        min_interval: int = DEFAULT_MIN_INTERVAL_MS,
        max_interval: int = DEFAULT_MAX_INTERVAL_MS,
        idle_threshold: int = DEFAULT_IDLE_THRESHOLD,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    ):
        if min_interval > max_interval:
            raise ValueError(
                f"min_interval ({min_interval}) must not exceed max_interval ({max_interval})"
            )
        self.min_interval = min_interval
        self.max_interval = max_interval
        self.base_interval = self._clamp(base_interval)
        self.idle_threshold = idle_threshold
        self.backoff_factor = backoff_factor

        self._interval = float(self.base_interval)
        self._idle_ticks = 0

    @property
    def idle_ticks(self) -> int:
        return self._idle_ticks

    def get_interval(self) -> int:
        """Current interval in milliseconds."""
        return int(self._interval)

    def get_interval_seconds(self) -> float:
        return self._interval / 1000

    def on_activity(self) -> None:
        if self._interval != self.base_interval:
            logger.debug(f"Activity detected, polling interval back to {self.base_interval}ms")
        self._interval = float(self.base_interval)
        self._idle_ticks = 0

    def on_idle(self) -> None:
        self._idle_ticks += 1
        if self._idle_ticks < self.idle_threshold:
            return

        backed_off = self._clamp(self._interval * self.backoff_factor)
        if backed_off != self._interval:
            logger.debug(f"Idle for {self._idle_ticks} ticks, polling interval {int(backed_off)}ms")
        self._interval = backed_off

    def reset(self) -> None:
        self._interval = float(self.base_interval)
        self._idle_ticks = 0

    def _clamp(self, value: float) -> float:
        return min(max(value, self.min_interval), self.max_interval)
