"""
Watches the companion config file and reapplies it while the app runs.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Callable
from typing import Any, Protocol, cast, runtime_checkable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer as _Observer

from ..constants import CONFIG_RELOAD_DEBOUNCE_SECONDS
from ..logs.logger import logger
from .model import CompanionConfig
from .repository import ConfigRepository


class ConfigFileHandler(FileSystemEventHandler):
    """Filters directory events down to real changes of one file.

    A change is a new ``(mtime_ns, size)`` stamp on the target path; events
    that leave the stamp untouched (editor touch, duplicate inotify events)
    are dropped.
    """

    def __init__(self, config_file: str, watcher_instance: ConfigWatcher):
        super().__init__()
        self.target = os.path.abspath(config_file)
        self.watcher = watcher_instance
        self._stamp: tuple[int, int] | None = None

    def _changed(self) -> bool:
        try:
            st = os.stat(self.target)
        except FileNotFoundError:
            return False
        stamp = (st.st_mtime_ns, st.st_size)
        if stamp == self._stamp:
            return False
        self._stamp = stamp
        return True

    def _touch(self, path: str) -> None:
        if os.path.abspath(path) != self.target or not self._changed():
            return
        try:
            self.watcher.schedule_reload()
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "config_watch", "change_handler_error", level=logging.DEBUG, error=str(e)
            )

    def on_modified(self, event: FileSystemEvent) -> None:
        self._touch(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._touch(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic saves rename a temp file onto the target
        self._touch(getattr(event, "dest_path", "") or event.src_path)


@runtime_checkable
class _ObserverLike(Protocol):
    def schedule(
        self, handler: FileSystemEventHandler, path: str, recursive: bool = False
    ) -> None: ...  # noqa: D401,E701
    def start(self) -> None: ...  # noqa: D401,E701
    def stop(self) -> None: ...  # noqa: D401,E701
    def join(self, timeout: float | None = None) -> None: ...  # noqa: D401,E701


class ConfigWatcher:
    """Watches the config file and hands each valid new config to a callback.

    Watchdog delivers events on its own thread. Bursts of events are
    collapsed by a trailing ``debounce`` timer, then the file is re-read
    through :class:`ConfigRepository`. With a bound loop the callback is
    scheduled onto it with ``call_soon_threadsafe``; otherwise it runs on
    the timer or observer thread.
    """

    observer: _ObserverLike | None
    running: bool

    def __init__(
        self,
        config_file: str,
        on_change: Callable[[CompanionConfig], Any],
        loop: asyncio.AbstractEventLoop | None = None,
        debounce: float = CONFIG_RELOAD_DEBOUNCE_SECONDS,
    ):
        self.config_file = config_file
        self.on_change = on_change
        self.loop = loop
        self.debounce = debounce
        self.repository = ConfigRepository(config_file)
        self.observer = None
        self.running = False
        self._lock = threading.Lock()
        self._reload_timer: threading.Timer | None = None

    def start(self) -> None:
        if self.running:
            return
        watch_dir = os.path.dirname(os.path.abspath(self.config_file))
        if not os.path.isdir(watch_dir):
            logger.log_event(
                "config_watch", "dir_missing", level=logging.WARNING, path=watch_dir
            )
            return
        try:
            observer = cast(_ObserverLike, _Observer())
            observer.schedule(
                ConfigFileHandler(self.config_file, self), watch_dir, recursive=False
            )
            observer.start()
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "config_watch", "start_failed", level=logging.ERROR, error=str(e)
            )
            return
        self.observer = observer
        self.running = True
        logger.log_event("config_watch", "start", path=self.config_file)

    def schedule_reload(self) -> None:
        """Reload once the file has been quiet for ``debounce`` seconds."""
        timer: threading.Timer | None = None
        with self._lock:
            if self._reload_timer is not None:
                self._reload_timer.cancel()
            if self.debounce > 0:
                timer = threading.Timer(self.debounce, self._on_config_changed)
                timer.daemon = True
                timer.start()
            self._reload_timer = timer
        if timer is None:
            self._on_config_changed()

    def stop(self) -> None:
        with self._lock:
            if self._reload_timer is not None:
                self._reload_timer.cancel()
                self._reload_timer = None
        observer, self.observer = self.observer, None
        if not self.running or observer is None:
            return
        try:
            observer.stop()
            observer.join()
        finally:
            self.running = False
            logger.log_event("config_watch", "stopped")

    def _on_config_changed(self) -> None:
        try:
            config = self.repository.load()
            if config is None:
                logger.log_event("config_watch", "empty_or_invalid", level=logging.WARNING)
                return
            logger.log_event("config_watch", "reloaded", channel=config.channel or "-")
            loop = self.loop
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(self.on_change, config)
            else:
                self.on_change(config)
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "config_watch", "processing_error", level=logging.ERROR, error=str(e)
            )


async def create_config_watcher(
    config_file: str, on_change: Callable[[CompanionConfig], Any]
) -> ConfigWatcher:
    """Start a :class:`ConfigWatcher` bound to the running loop."""
    loop = asyncio.get_running_loop()
    watcher = ConfigWatcher(config_file, on_change, loop=loop)
    await loop.run_in_executor(None, watcher.start)
    return watcher
