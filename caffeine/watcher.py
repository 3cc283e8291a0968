import asyncio
import logging
import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

IGNORED_DIRS = {"node_modules"}
RELAYED_EVENTS = {"created", "modified", "deleted", "moved"}
DEBOUNCE = 0.3


def is_ignored(root, path) -> bool:
    """Hidden files and dependency caches never trigger a reload."""
    try:
        relative = os.path.relpath(path, root)
    except ValueError:
        return True
    parts = relative.split(os.sep)
    if parts[0] == os.pardir:
        return True
    return any(part.startswith(".") or part in IGNORED_DIRS for part in parts)


class ReloadEventHandler(FileSystemEventHandler):
    """Runs on the observer thread; everything else happens on ``loop``."""

    def __init__(self, root, on_change, loop, debounce=DEBOUNCE):
        super().__init__()
        self.root = str(root)
        self.on_change = on_change
        self.loop = loop
        self.debounce = debounce
        self._pending = None
        self._tasks = set()

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in RELAYED_EVENTS:
            return
        # editors that save atomically rename a hidden temp file into place
        paths = [event.src_path, getattr(event, "dest_path", "")]
        paths = [os.fsdecode(p) for p in paths if p]
        relevant = [p for p in paths if not is_ignored(self.root, p)]
        if not relevant:
            return
        logger.info("File %s: %s", event.event_type, os.path.basename(relevant[-1]))
        self.loop.call_soon_threadsafe(self._schedule)

    def _schedule(self):
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.loop.call_later(self.debounce, self._fire)

    def cancel(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self):
        self._pending = None
        task = self.loop.create_task(self.on_change())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class Watcher:
    def __init__(self, root, on_change, loop=None, debounce=DEBOUNCE):
        self.root = os.path.realpath(root)
        self.handler = ReloadEventHandler(
            self.root, on_change, loop or asyncio.get_event_loop(), debounce
        )
        self._observer = None

    def start(self):
        self._observer = Observer()
        self._observer.schedule(self.handler, self.root, recursive=True)
        self._observer.start()
        logger.debug("Watching %s", self.root)

    def stop(self):
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        self.handler.cancel()
