import errno
import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from config import config
from data_store import DataStore, ReloadResult
from errors import WatchSetupError

logger = logging.getLogger(__name__)


class WatcherState(str, Enum):
    STARTING = "starting"
    WATCHING = "watching"
    RELOADING = "reloading"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ChangeEvent:
    """A change to one entry of the watched directory"""

    filename: str
    event_type: str


def change_events(event) -> Iterator[ChangeEvent]:
    """Translate a watchdog event into change events; moves report both names"""
    yield ChangeEvent(os.path.basename(event.src_path), event.event_type)
    dest_path = getattr(event, 'dest_path', '')
    if dest_path:
        yield ChangeEvent(os.path.basename(dest_path), event.event_type)


class ReloadTrigger:
    """Re-reads the data file when a change event names it"""

    def __init__(self, store: DataStore):
        self.store = store
        self.filename = os.path.basename(store.db_file)

    def matches(self, event: ChangeEvent) -> bool:
        return event.filename == self.filename

    def __call__(self, event: ChangeEvent) -> Optional[ReloadResult]:
        if not self.matches(event):
            return None
        return self.reload()

    def reload(self) -> ReloadResult:
        logger.info("🔄 Database changed, reloading...")
        self.store.invalidate()
        result = self.store.reload()
        if result.ok:
            logger.info("✅ Database reloaded successfully (version %d)", result.version)
        else:
            logger.error("Error reloading database, keeping previous data: %s", result.error)
        return result


class ReloadHandler(FileSystemEventHandler):
    def __init__(
        self,
        trigger: ReloadTrigger,
        debounce_seconds: float = 0.0,
        event_types: Optional[Iterable[str]] = None,
        on_state: Optional[Callable[[WatcherState], None]] = None,
    ):
        super().__init__()
        self.trigger = trigger
        self.debounce_seconds = debounce_seconds
        self.event_types = set(event_types or config.WATCH_EVENT_TYPES)
        self.on_state = on_state
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def on_any_event(self, event):
        # opened/closed notifications are skipped, otherwise the reload's own read would retrigger it
        if event.is_directory or event.event_type not in self.event_types:
            return

        for change in change_events(event):
            if self.trigger.matches(change):
                logger.info("📝 Detected %s event on %s", change.event_type, change.filename)
                self._schedule()
                return

    def _schedule(self):
        if self.debounce_seconds <= 0:
            self._fire()
            return

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self):
        self._notify(WatcherState.RELOADING)
        try:
            self.trigger.reload()
        except Exception:
            logger.exception("Unexpected error while reloading %s", self.trigger.filename)
        finally:
            self._notify(WatcherState.WATCHING)

    def _notify(self, state: WatcherState):
        if self.on_state is not None:
            self.on_state(state)

    def cancel(self):
        """Drop a pending debounced reload"""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class DatabaseWatcher:
    """
    Watches the directory holding the data file and reloads the store on change.

    The watch runs on watchdog's observer thread. Failing to set it up is
    logged and leaves the server running on the data it already has.
    """

    def __init__(
        self,
        store: DataStore,
        debounce_seconds: float = config.DEBOUNCE_SECONDS,
        event_types: Optional[Iterable[str]] = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.store = store
        self.path = store.db_file
        self.directory = os.path.dirname(self.path)
        self.trigger = ReloadTrigger(store)
        self.handler = ReloadHandler(
            self.trigger,
            debounce_seconds=debounce_seconds,
            event_types=event_types,
            on_state=self._on_reload_state,
        )
        self.state = WatcherState.STARTING
        self.last_error: Optional[WatchSetupError] = None

        self._observer_factory = observer_factory
        self._observer = None
        self._lock = threading.Lock()

    def start(self) -> bool:
        """Start watching; returns False when the watch could not be set up"""
        with self._lock:
            if self._observer is not None:
                return True
            self.state = WatcherState.STARTING

            observer = self._observer_factory()
            try:
                if not os.path.isdir(self.directory):
                    raise FileNotFoundError(errno.ENOENT, "No such directory", self.directory)
                observer.schedule(self.handler, self.directory, recursive=False)
                observer.start()
            except OSError as e:
                self.last_error = WatchSetupError(f"Cannot watch {self.directory}: {e}")
                self.state = WatcherState.STOPPED
                logger.error("Error watching database file: %s", self.last_error)
                return False

            self._observer = observer
            self.state = WatcherState.WATCHING

        logger.info("👀 Watching for changes in %s", self.path)
        return True

    def stop(self):
        """Stop the observer and wait for its thread to exit"""
        self.handler.cancel()
        with self._lock:
            observer, self._observer = self._observer, None
            self.state = WatcherState.STOPPED
        if observer is not None:
            observer.stop()
            observer.join()
            logger.info("Stopped watching %s", self.path)

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def _on_reload_state(self, state: WatcherState):
        with self._lock:
            if self.state is not WatcherState.STOPPED:
                self.state = state

    def status(self) -> dict:
        return {
            'state': self.state.value,
            'path': self.path,
            'error': str(self.last_error) if self.last_error else None,
        }

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.stop()
