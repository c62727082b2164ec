"""Current boards root with change notification.

Services that cache the boards root register as observers and are told when
the root is redirected, instead of reading ambient global state.
"""

from pathlib import Path
from typing import Optional, Protocol, Set

from loguru import logger


class StorageRootObserver(Protocol):
    def on_root_changed(self, new_root: Path) -> None: ...


class StorageRoot:
    """Holds the active boards root and notifies observers when it changes."""

    def __init__(self, default_root: Path, custom_root: Optional[Path] = None):
        self.default_root = Path(default_root)
        self._custom_root = Path(custom_root) if custom_root else None
        self._observers: Set[StorageRootObserver] = set()

    @property
    def root(self) -> Path:
        return self._custom_root or self.default_root

    @property
    def is_custom(self) -> bool:
        return self._custom_root is not None

    def add_observer(self, observer: StorageRootObserver) -> None:
        self._observers.add(observer)

    def remove_observer(self, observer: StorageRootObserver) -> None:
        self._observers.discard(observer)

    def set_root(self, path: Path | str) -> None:
        """Redirect to a custom root. Observers are notified only on an actual change."""
        if not str(path).strip():
            raise ValueError("Boards directory path cannot be empty")

        new_root = Path(path)
        if new_root == self.root:
            return

        self._custom_root = new_root
        self._notify(new_root)

    def reset_to_default(self) -> None:
        if self._custom_root is None:
            return
        self._custom_root = None
        self._notify(self.default_root)

    def _notify(self, new_root: Path) -> None:
        logger.info(f"Boards root changed to {new_root}")
        for observer in list(self._observers):
            try:
                observer.on_root_changed(new_root)
            except Exception as e:
                logger.error(f"Error notifying {type(observer).__name__} of root change: {e}")
