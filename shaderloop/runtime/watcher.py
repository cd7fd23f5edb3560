"""
ShaderLoop - Source Watcher
===========================
Non-blocking change notification for the shader source.

The watchdog observer runs on its own thread and only queues events;
the render loop drains them one per tick with refresh(). The parent
directory is watched rather than the file, so editors that save by
writing a temporary file and renaming it over the original are seen
as a modification.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from queue import Empty, Queue
from typing import Optional, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

LOG = logging.getLogger(__name__)


class FileEvent(str, Enum):
    """Changes reported for the watched source."""
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"


def _normalize(path) -> str:
    return os.path.normcase(os.path.abspath(os.fsdecode(path)))


class SourceEventHandler(FileSystemEventHandler):
    """Translates watchdog events on one file into FileEvents."""

    def __init__(self, watcher: "CodeWatcher"):
        super().__init__()
        self.watcher = watcher

    def _matches(self, event: FileSystemEvent, path) -> bool:
        return not event.is_directory and _normalize(path) == _normalize(self.watcher.path)

    def on_modified(self, event: FileSystemEvent):
        if self._matches(event, event.src_path):
            self.watcher.push(FileEvent.MODIFIED)

    def on_created(self, event: FileSystemEvent):
        if self._matches(event, event.src_path):
            self.watcher.push(FileEvent.MODIFIED)

    def on_deleted(self, event: FileSystemEvent):
        if self._matches(event, event.src_path):
            self.watcher.push(FileEvent.REMOVED)

    def on_moved(self, event: FileSystemEvent):
        # Atomic save: something else was renamed onto the source
        if self._matches(event, event.dest_path):
            self.watcher.push(FileEvent.MODIFIED)
        elif self._matches(event, event.src_path):
            self.watcher.push(FileEvent.RENAMED, Path(os.fsdecode(event.dest_path)))


class CodeWatcher:
    """
    Watches a single source file.

    A rename moves the watch to the new path, so later edits of the
    renamed file are still reported.
    """

    def __init__(self, path, observer=None):
        """
        Initialize watcher (not started).

        Args:
            path: Source file to watch
            observer: watchdog observer (default: a new Observer)
        """
        self.path = Path(path).resolve()
        self.handler = SourceEventHandler(self)
        self._events: "Queue[Tuple[FileEvent, Optional[Path]]]" = Queue()
        self._observer = observer if observer is not None else Observer()
        self._watch = None
        self._started = False

    def _schedule(self):
        self._watch = self._observer.schedule(self.handler, str(self.path.parent), recursive=False)

    def start(self):
        """Start watching on the observer thread."""
        self._schedule()
        self._observer.start()
        self._started = True
        LOG.info("Watching %s", self.path)

    def stop(self):
        """Stop the observer thread and wait for it."""
        if self._started:
            self._observer.stop()
            self._observer.join()
            self._started = False

    def push(self, event: FileEvent, path: Optional[Path] = None):
        """Queue an event (called from the observer thread)."""
        self._events.put((event, path))

    def _retarget(self, path: Path):
        previous = self.path
        self.path = path.resolve()
        LOG.warning("Source renamed: %s -> %s", previous, self.path)

        if self.path.parent != previous.parent and self._watch is not None:
            self._observer.unschedule(self._watch)
            self._schedule()

    def refresh(self) -> Optional[FileEvent]:
        """
        Pop at most one pending event.

        Returns:
            The oldest queued FileEvent, or None if nothing happened
        """
        try:
            event, path = self._events.get_nowait()
        except Empty:
            return None

        if event is FileEvent.RENAMED:
            self._retarget(path)
        elif event is FileEvent.REMOVED:
            LOG.warning("Source removed: %s", self.path)
        return event

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
