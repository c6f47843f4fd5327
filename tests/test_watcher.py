import json
import threading
import time

from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from data_store import DataStore
from watcher import ChangeEvent, DatabaseWatcher, ReloadHandler, ReloadTrigger, WatcherState


def write_json(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


class CountingTrigger(ReloadTrigger):
    def __init__(self, store):
        super().__init__(store)
        self.calls = 0
        self.fired = threading.Event()

    def reload(self):
        self.calls += 1
        result = super().reload()
        self.fired.set()
        return result


def test_trigger_reloads_matching_file(store, db_path):
    write_json(db_path, {"posts": [{"id": 1}]})
    result = ReloadTrigger(store)(ChangeEvent('db.json', 'modified'))
    assert result.ok
    assert store.get_resource('posts') == [{"id": 1}]


def test_trigger_ignores_other_files(store, db_path):
    write_json(db_path, {"posts": [{"id": 1}]})
    generation = store.cache_generation
    trigger = ReloadTrigger(store)

    assert trigger(ChangeEvent('other.json', 'modified')) is None
    assert trigger(ChangeEvent('db.json.bak', 'modified')) is None
    assert trigger(ChangeEvent('db', 'modified')) is None
    assert store.get_resource('posts') == []
    assert store.cache_generation == generation


def test_trigger_survives_malformed_write(store, db_path):
    db_path.write_text('{"posts": [{"id"', encoding='utf-8')
    result = ReloadTrigger(store)(ChangeEvent('db.json', 'modified'))
    assert not result.ok
    assert store.get_resource('posts') == []


def test_handler_reloads_on_modified_event(store, db_path):
    trigger = CountingTrigger(store)
    handler = ReloadHandler(trigger)
    write_json(db_path, {"posts": [{"id": 1}]})

    handler.dispatch(FileModifiedEvent(str(db_path)))

    assert trigger.calls == 1
    assert store.get_resource('posts') == [{"id": 1}]


def test_handler_ignores_sibling_and_directory_events(store, db_path, tmp_path):
    trigger = CountingTrigger(store)
    handler = ReloadHandler(trigger)

    handler.dispatch(FileModifiedEvent(str(tmp_path / 'other.json')))
    handler.dispatch(DirModifiedEvent(str(tmp_path)))

    assert trigger.calls == 0


def test_handler_ignores_close_events(store, db_path):
    trigger = CountingTrigger(store)
    handler = ReloadHandler(trigger)

    handler.dispatch(FileClosedEvent(str(db_path)))

    assert trigger.calls == 0


def test_handler_reloads_when_file_is_renamed_into_place(store, db_path, tmp_path):
    trigger = CountingTrigger(store)
    handler = ReloadHandler(trigger)
    tmp_file = tmp_path / '.db.json.swp'
    write_json(tmp_file, {"posts": [{"id": 2}]})
    tmp_file.replace(db_path)

    handler.dispatch(FileMovedEvent(str(tmp_file), str(db_path)))

    assert trigger.calls == 1
    assert store.get_resource('posts') == [{"id": 2}]


def test_handler_coalesces_bursts(store, db_path):
    trigger = CountingTrigger(store)
    handler = ReloadHandler(trigger, debounce_seconds=0.2)

    for i in range(5):
        write_json(db_path, {"posts": [{"id": i}]})
        handler.dispatch(FileModifiedEvent(str(db_path)))

    assert trigger.fired.wait(2.0)
    time.sleep(0.3)
    assert trigger.calls == 1
    assert store.get_resource('posts') == [{"id": 4}]


def test_handler_cancel_drops_pending_reload(store, db_path):
    trigger = CountingTrigger(store)
    handler = ReloadHandler(trigger, debounce_seconds=0.2)

    handler.dispatch(FileCreatedEvent(str(db_path)))
    handler.cancel()

    assert not trigger.fired.wait(0.4)
    assert trigger.calls == 0


def test_watcher_start_fails_for_missing_directory(tmp_path):
    store = DataStore(str(tmp_path / 'db.json'))
    store.load()
    watcher = DatabaseWatcher(store)
    watcher.directory = str(tmp_path / 'missing')

    assert watcher.start() is False
    assert watcher.state is WatcherState.STOPPED
    assert watcher.last_error is not None
    assert not watcher.is_running
    assert watcher.status()['error'] is not None


def test_watcher_reloads_on_real_write(store, db_path):
    with DatabaseWatcher(store, debounce_seconds=0) as watcher:
        assert watcher.is_running
        assert watcher.state is WatcherState.WATCHING

        write_json(db_path, {"posts": [{"id": 1}]})
        assert wait_for(lambda: store.snapshot().get('posts') == [{"id": 1}])

        write_json(db_path, {"posts": [{"id": 1}, {"id": 2}]})
        assert wait_for(lambda: len(store.snapshot().get('posts', [])) == 2)

    assert watcher.state is WatcherState.STOPPED
    assert not watcher.is_running


def test_watcher_ignores_sibling_file_on_disk(store, tmp_path):
    with DatabaseWatcher(store, debounce_seconds=0):
        version = store.version
        write_json(tmp_path / 'other.json', {"posts": [{"id": 1}]})
        time.sleep(0.5)
        assert store.version == version
        assert store.get_resource('posts') == []


def test_watcher_stop_is_idempotent(store):
    watcher = DatabaseWatcher(store)
    assert watcher.start()
    assert watcher.start()
    watcher.stop()
    watcher.stop()
    assert watcher.state is WatcherState.STOPPED
