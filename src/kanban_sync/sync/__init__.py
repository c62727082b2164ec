"""Polling-based change detection for the boards tree."""

from kanban_sync.sync.change_detector import ChangeDetector, ChangeKind, FileState, RawChange
from kanban_sync.sync.classifier import ChangeClassifier, DomainEvent, WatchEventType
from kanban_sync.sync.debounce import DebounceAggregator
from kanban_sync.sync.event_bus import FILE_CHANGED, EventBus
from kanban_sync.sync.polling import AdaptivePollingScheduler
from kanban_sync.sync.scanner import DirectoryScanner
from kanban_sync.sync.watch_service import WatchService

__all__ = [
    "AdaptivePollingScheduler",
    "ChangeClassifier",
    "ChangeDetector",
    "ChangeKind",
    "DebounceAggregator",
    "DirectoryScanner",
    "DomainEvent",
    "EventBus",
    "FILE_CHANGED",
    "FileState",
    "RawChange",
    "WatchEventType",
    "WatchService",
]
