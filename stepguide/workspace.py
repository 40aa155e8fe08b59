#!/usr/bin/env python3
"""
Read-only access to the file the user is working on.
Its content is sent with every step request so guidance can follow the code.
"""

import logging
import os
import threading
from typing import Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileModifiedEvent, FileCreatedEvent

logger = logging.getLogger(__name__)


class StaticWorkspace:
    """Fixed workspace content"""

    def __init__(self, content: str = ''):
        self.content = content


class _ActiveFileHandler(FileSystemEventHandler):
    """Refreshes the cached content when the active file changes"""

    def __init__(self, active_file: 'ActiveFile'):
        super().__init__()
        self.active_file = active_file

    def on_modified(self, event):
        if isinstance(event, FileModifiedEvent):
            self._maybe_refresh(event.src_path)

    def on_created(self, event):
        if isinstance(event, FileCreatedEvent):
            self._maybe_refresh(event.src_path)

    def _maybe_refresh(self, src_path):
        if os.path.abspath(src_path) == self.active_file.path:
            self.active_file.refresh()


class ActiveFile:
    """
    Content of the active file.

    Without start() the file is read on every access. While watching, the
    content is cached and refreshed on each save.
    """

    def __init__(self, path: str = None):
        self.path = os.path.abspath(path) if path else None
        self.observer = None
        self._cached: Optional[str] = None
        self._lock = threading.Lock()

    def _read(self) -> str:
        if not self.path:
            return ''
        try:
            with open(self.path, 'r') as f:
                return f.read()
        except (FileNotFoundError, IsADirectoryError):
            return ''
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return ''

    def refresh(self):
        content = self._read()
        with self._lock:
            self._cached = content

    @property
    def content(self) -> str:
        with self._lock:
            if self._cached is not None:
                return self._cached
        return self._read()

    @property
    def is_watching(self) -> bool:
        return self.observer is not None

    def start(self):
        """Start watching the file for saves"""
        if not self.path or self.observer is not None:
            return
        self.refresh()
        self.observer = Observer()
        watch_dir = os.path.dirname(self.path)
        self.observer.schedule(_ActiveFileHandler(self), path=watch_dir, recursive=False)
        self.observer.start()
        logger.debug("Watching %s", self.path)

    def stop(self):
        """Stop watching"""
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
        with self._lock:
            self._cached = None
