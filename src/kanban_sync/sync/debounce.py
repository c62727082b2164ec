"""Coalesces raw changes from consecutive polls into one batch."""

import asyncio
from typing import Any, Callable, List, Optional

from loguru import logger

from kanban_sync.sync.change_detector import RawChange

DEFAULT_DEBOUNCE_MS = 300

FlushHandler = Callable[[List[RawChange]], Any]


class DebounceAggregator:
    """Buffers changes and flushes them once no new changes arrived for ``delay`` ms.

    Every ``add`` cancels the pending timer and arms a new one, so a burst of
    changes spread over several polls is delivered as a single batch.
    """

    def __init__(self, delay: int = DEFAULT_DEBOUNCE_MS, on_flush: Optional[FlushHandler] = None):
        self.delay = delay
        self.on_flush = on_flush
        self._pending: List[RawChange] = []
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> List[RawChange]:
        return list(self._pending)

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    def add(self, changes: List[RawChange]) -> None:
        """Buffer changes and (re)arm the timer. Must be called from a running loop."""
        if not changes:
            return

        self._pending.extend(changes)
        self.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay / 1000, self._on_timer)
        logger.trace(f"Debounce armed, pending={len(self._pending)}, delay_ms={self.delay}")

    def flush(self) -> Any:
        """Hand the whole buffer to the flush handler right away.

        Returns:
            Whatever the flush handler returned, or None if nothing was pending
        """
        self.cancel()
        if not self._pending:
            return None

        batch, self._pending = self._pending, []
        logger.debug(f"Flushing {len(batch)} changes")
        if self.on_flush is None:
            return None
        return self.on_flush(batch)

    def cancel(self) -> None:
        """Cancel the pending timer; buffered changes are kept."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def clear(self) -> None:
        """Cancel the timer and drop buffered changes."""
        self.cancel()
        self._pending = []

    def _on_timer(self) -> None:
        self._timer = None
        try:
            self.flush()
        except Exception as e:
            logger.exception(f"Error flushing debounced changes: {e}")
