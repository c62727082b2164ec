"""Polling watch service for the boards tree."""

import asyncio
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field
from rich.console import Console

from kanban_sync.config import WATCH_STATUS_JSON, KanbanSyncConfig, WatchConfig
from kanban_sync.file_utils import TEMP_SUFFIX
from kanban_sync.services.storage_root import StorageRoot
from kanban_sync.sync.change_detector import ChangeDetector, RawChange
from kanban_sync.sync.classifier import ChangeClassifier, ChangeType, DomainEvent
from kanban_sync.sync.debounce import DebounceAggregator
from kanban_sync.sync.event_bus import FILE_CHANGED, EventBus
from kanban_sync.sync.polling import AdaptivePollingScheduler
from kanban_sync.sync.scanner import DirectoryScanner


class WatchEvent(BaseModel):
    timestamp: datetime
    path: str
    action: str  # boardAdded, itemChanged, etc
    status: str  # success, error
    board_name: Optional[str] = None
    column_name: Optional[str] = None
    item_id: Optional[str] = None
    error: Optional[str] = None


class WatchServiceState(BaseModel):
    # Service status
    running: bool = False
    paused: bool = False
    start_time: datetime = Field(default_factory=datetime.now)
    pid: int = Field(default_factory=os.getpid)
    boards_path: Optional[str] = None

    # Stats
    error_count: int = 0
    last_error: Optional[datetime] = None
    last_scan: Optional[datetime] = None
    scan_count: int = 0
    event_count: int = 0
    polling_interval: int = 0  # ms

    # Recent activity
    recent_events: List[WatchEvent] = Field(default_factory=list)

    def add_event(
        self,
        path: str,
        action: str,
        status: str,
        board_name: Optional[str] = None,
        column_name: Optional[str] = None,
        item_id: Optional[str] = None,
        error: Optional[str] = None,
    ) -> WatchEvent:
        event = WatchEvent(
            timestamp=datetime.now(),
            path=path,
            action=action,
            status=status,
            board_name=board_name,
            column_name=column_name,
            item_id=item_id,
            error=error,
        )
        self.recent_events.insert(0, event)
        self.recent_events = self.recent_events[:100]  # Keep last 100
        return event

    def record_error(self, error: str):
        self.error_count += 1
        self.add_event(path="", action="scan", status="error", error=error)
        self.last_error = datetime.now()


class WatchService:
    """Detects external edits by polling the boards root.

    Each tick scans the tree, diffs it against the previous snapshot and hands
    the changes to a debounce aggregator. When the debounce window closes the
    batch is classified and every event is published on the event bus, once
    under its own type and once under ``file_changed``. Only one scan cycle is
    ever in flight; the next tick is scheduled after the current one finished.
    """

    def __init__(
        self,
        app_config: KanbanSyncConfig,
        storage_root: StorageRoot,
        event_bus: Optional[EventBus] = None,
        watch_config: Optional[WatchConfig] = None,
        quiet: bool = False,
    ):
        self.app_config = app_config
        self.config = watch_config or app_config.watch_config()
        self.root = storage_root.root
        self.event_bus = event_bus or EventBus()

        self.scanner = DirectoryScanner(
            self.root,
            max_depth=app_config.scan_max_depth,
            yield_every=app_config.scan_yield_every,
        )
        self.detector = ChangeDetector()
        self.classifier = ChangeClassifier(self.root)
        self.scheduler = self._build_scheduler()
        self.aggregator = DebounceAggregator(self.config.debounce_delay, self.dispatch)

        self.state = WatchServiceState(boards_path=str(self.root))
        self.status_path = app_config.data_dir_path / WATCH_STATUS_JSON
        self.status_path.parent.mkdir(parents=True, exist_ok=True)

        self._poll_task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()
        self._needs_baseline = False

        # quiet mode keeps embedding applications' stdout clean
        self.console = Console(quiet=quiet)

        storage_root.add_observer(self)

    def _build_scheduler(self) -> AdaptivePollingScheduler:
        return AdaptivePollingScheduler(
            base_interval=self.config.polling_interval,
            min_interval=min(self.app_config.watch_min_polling_interval, self.config.polling_interval),
            max_interval=max(self.app_config.watch_max_polling_interval, self.config.polling_interval),
            idle_threshold=self.app_config.watch_idle_threshold,
            backoff_factor=self.app_config.watch_backoff_factor,
        )

    def on_root_changed(self, new_root: Path) -> None:
        """Follow a redirected boards root; the next tick takes a fresh baseline."""
        self.root = new_root
        self.scanner.on_root_changed(new_root)
        self.classifier.on_root_changed(new_root)
        self.detector.reset()
        self.aggregator.clear()
        self.state.boards_path = str(new_root)
        self._needs_baseline = True

    @property
    def is_running(self) -> bool:
        return self.state.running

    async def start(self) -> None:
        """Take a baseline snapshot and start polling. The baseline publishes no events."""
        if self.state.running:
            logger.warning("Watch service is already running")
            return

        if not self.config.enabled:
            logger.info("Watch service is disabled, not starting")
            return

        baseline = await self.scanner.scan()
        self.detector.update_state(baseline)
        self._needs_baseline = False
        self.scheduler.reset()

        self.state.running = True
        self.state.paused = False
        self.state.start_time = datetime.now()
        self.state.polling_interval = self.scheduler.get_interval()
        self._poll_task = asyncio.create_task(self._poll_loop())
        await self.write_status()

        logger.info(
            "Watch service started, "
            f"root={self.root}, "
            f"baseline_entries={len(baseline)}, "
            f"interval_ms={self.scheduler.get_interval()}, "
            f"debounce_ms={self.config.debounce_delay}, "
            f"pid={os.getpid()}"
        )

    async def stop(self) -> None:
        """Stop polling and drop pending debounced changes.

        File operations already in flight are not aborted and may complete after
        this returns.
        """
        if not self.state.running:
            logger.warning("Watch service is not running")
            return

        self.state.running = False
        self.state.paused = False
        await self._cancel_poll_task()
        self.aggregator.clear()
        await self.write_status()

        logger.info(
            "Watch service stopped, "
            f"runtime_seconds={int((datetime.now() - self.state.start_time).total_seconds())}"
        )

    async def pause(self) -> None:
        """Stop ticking but keep the baseline, so resume reports what changed meanwhile."""
        if not self.state.running or self.state.paused:
            return

        self.state.paused = True
        await self._cancel_poll_task()
        self.aggregator.cancel()
        await self.write_status()
        logger.info("Watch service paused")

    async def resume(self) -> List[DomainEvent]:
        """Resume polling after a pause and report changes made while paused."""
        if not self.state.running or not self.state.paused:
            return []

        self.state.paused = False
        self.scheduler.reset()
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("Watch service resumed")
        return await self.force_check()

    async def force_check(self) -> List[DomainEvent]:
        """Scan now and dispatch immediately, bypassing the debounce timer.

        Returns:
            Events published by this check (including any still pending from earlier polls)
        """
        await self.check_for_changes()
        events = self.aggregator.flush() or []
        await self.write_status()
        return events

    async def update_config(self, **changes) -> WatchConfig:
        """Apply new watcher settings, restarting a running watcher."""
        new_config = WatchConfig.model_validate({**self.config.model_dump(), **changes})
        was_running = self.state.running

        if was_running:
            await self.stop()

        self.config = new_config
        self.scheduler = self._build_scheduler()
        self.aggregator.delay = new_config.debounce_delay
        logger.info(
            "Watch config updated, "
            f"interval_ms={new_config.polling_interval}, "
            f"debounce_ms={new_config.debounce_delay}, "
            f"enabled={new_config.enabled}"
        )

        if was_running and new_config.enabled:
            await self.start()
        return new_config

    def get_status(self) -> WatchServiceState:
        return self.state.model_copy(deep=True)

    async def check_for_changes(self) -> List[RawChange]:
        """Run one scan cycle: scan, diff, commit the snapshot, feed the aggregator."""
        async with self._cycle_lock:
            snapshot = await self.scanner.scan()

            if self._needs_baseline:
                self.detector.update_state(snapshot)
                self._needs_baseline = False
                logger.debug(f"Took new baseline for {self.root}, entries={len(snapshot)}")
                return []

            changes = [
                change for change in self.detector.detect_changes(snapshot) if self.filter_change(change)
            ]
            self.detector.update_state(snapshot)

            self.state.scan_count += 1
            self.state.last_scan = datetime.now()

            if changes:
                logger.debug(f"Detected {len(changes)} file changes")
                self.scheduler.on_activity()
                self.aggregator.add(changes)
            else:
                self.scheduler.on_idle()

            self.state.polling_interval = self.scheduler.get_interval()
            return changes

    def dispatch(self, batch: List[RawChange]) -> List[DomainEvent]:
        """Classify a flushed batch and publish the resulting events."""
        events = self.classifier.classify_all(batch)

        for event in events:
            self.event_bus.publish(event.type, event)
            self.event_bus.publish(FILE_CHANGED, event)
            self.state.add_event(
                path=event.file_path,
                action=event.type.value,
                status="success",
                board_name=event.board_name,
                column_name=event.column_name,
                item_id=event.item_id,
            )
            self._print_event(event)
            logger.info(f"{event.type.value}: {event.file_path}")

        self.state.event_count += len(events)
        logger.debug(f"Dispatched batch, raw_changes={len(batch)}, events={len(events)}")
        return events

    def filter_change(self, change: RawChange) -> bool:
        """Only watch non-hidden files and directories.

        Returns:
            True if the change should be processed, False if it should be ignored
        """
        try:
            relative_parts = Path(change.path).relative_to(self.root).parts
        except ValueError:
            relative_parts = Path(change.path).parts

        # Skip hidden directories and files
        for part in relative_parts:
            if part.startswith("."):
                logger.trace(f"Ignoring hidden path: {change.path}")
                return False

        # Skip temp files used in atomic writes
        if change.path.endswith(TEMP_SUFFIX):
            logger.trace(f"Ignoring temp file: {change.path}")
            return False

        return True

    async def write_status(self):
        """Write current state to status file"""
        self.status_path.write_text(WatchServiceState.model_dump_json(self.state, indent=2))

    async def _poll_loop(self) -> None:
        while self.state.running and not self.state.paused:
            await asyncio.sleep(self.scheduler.get_interval_seconds())
            if not self.state.running or self.state.paused:
                break

            try:
                await self.check_for_changes()
                await self.write_status()
            except Exception as e:
                logger.exception(f"Watch service error during scan: {e}")
                self.state.record_error(str(e))
                await self.write_status()

    async def _cancel_poll_task(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _print_event(self, event: DomainEvent) -> None:
        name = event.item_id or event.column_name or event.board_name or event.file_path
        if event.change_type == ChangeType.CREATED:
            self.console.print(f"[green]✓[/green] {event.type.value}: {name}")
        elif event.change_type == ChangeType.DELETED:
            self.console.print(f"[red]✕[/red] {event.type.value}: {name}")
        else:
            self.console.print(f"[yellow]✎[/yellow] {event.type.value}: {name}")
