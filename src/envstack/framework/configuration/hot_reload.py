"""
Hot reload of configuration files.

The HotReloadManager watches the layer files with watchdog, coalesces
bursts of file events with a single debounce timer, backs up the live
configuration, rebuilds and validates a candidate off the event loop and
swaps the live reference only when the candidate is valid. Every outcome
is published on a ChangeNotifier.
"""

import asyncio
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, Iterable, List, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ...infrastructure.exceptions import (
    ConfigurationError, EnvStackError, ReentrantReloadRejectedError,
    RollbackTargetNotFoundError
)
from ..events import ChangeEvent, ChangeEventType, ChangeNotifier
from .comparison import diff_configs
from .models import Config, ValidationResult

logger = logging.getLogger(__name__)

HANDLED_EVENT_TYPES = ("modified", "created", "deleted", "moved")

# stop() runs on the event loop thread; the observer is a daemon and may outlive it
OBSERVER_JOIN_TIMEOUT = 0.25


class ReloadState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    RELOAD_IN_FLIGHT = "reload_in_flight"
    STOPPED = "stopped"


class HotReloadOptions(BaseModel):
    """Settings for the hot-reload manager itself."""
    model_config = ConfigDict(frozen=True)

    debounce_seconds: float = Field(default=1.0, ge=0)
    backup_on_reload: bool = True
    validate_on_reload: bool = True
    max_backups: int = Field(default=10, ge=1)
    watch_paths: List[str] = Field(default_factory=list)


def new_backup_id() -> str:
    return f"backup-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class Backup:
    id: str
    reason: str
    snapshot: Config
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> Dict[str, Any]:
        return {"id": self.id, "reason": self.reason, "timestamp": self.timestamp.isoformat()}


class BackupRing:
    """Bounded, ordered backups; the oldest is evicted first."""

    def __init__(self, max_size: int = 10):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._backups: Deque[Backup] = deque()

    def add(self, backup: Backup) -> List[Backup]:
        """Insert ``backup`` and return whatever was evicted to stay in bounds."""
        self._backups.append(backup)
        evicted = []
        while len(self._backups) > self.max_size:
            evicted.append(self._backups.popleft())
        return evicted

    def latest(self) -> Optional[Backup]:
        return self._backups[-1] if self._backups else None

    def get(self, backup_id: str) -> Optional[Backup]:
        for backup in self._backups:
            if backup.id == backup_id:
                return backup
        return None

    def list(self) -> List[Backup]:
        return list(self._backups)

    def clear(self) -> None:
        self._backups.clear()

    def __len__(self) -> int:
        return len(self._backups)


class ConfigFileWatcher(FileSystemEventHandler):
    """Forwards relevant watchdog events from the observer thread to the manager."""

    def __init__(self, manager: "HotReloadManager"):
        super().__init__()
        self.manager = manager

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in HANDLED_EVENT_TYPES:
            return

        if event.is_directory:
            if event.event_type == "deleted" and self.manager.is_watched_directory(event.src_path):
                self.manager.report_watch_error(event.src_path, "watched directory was removed")
            return

        paths = [event.src_path]
        dest_path = getattr(event, "dest_path", None)
        if dest_path:
            paths.append(dest_path)

        for path in paths:
            path = path.decode() if isinstance(path, bytes) else path
            if self.manager.is_relevant(path):
                logger.debug("Configuration file %s: %s", event.event_type, path)
                self.manager.dispatch_file_event(path)


class HotReloadManager:
    """
    Owns the live Config and keeps it in sync with the layer files.

    States: IDLE -> WATCHING (start) -> STOPPED (stop). While a reload runs
    the reported state is RELOAD_IN_FLIGHT; at most one reload runs at a
    time and a second request is rejected rather than queued.
    """

    def __init__(
        self,
        loader,
        initial_config: Config,
        notifier: Optional[ChangeNotifier] = None,
        options: Optional[HotReloadOptions] = None,
    ):
        self.loader = loader
        self.notifier = notifier or ChangeNotifier()
        self.options = options or HotReloadOptions()
        self.backups = BackupRing(self.options.max_backups)

        self._config = initial_config
        self._state = ReloadState.IDLE
        self._in_flight = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._observer: Optional[Observer] = None
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._pending_path: Optional[str] = None
        self._watched_files: Set[Path] = set()
        self._watched_dirs: Set[Path] = set()
        self._tasks: Set[asyncio.Task] = set()

        self.reload_count = 0
        self.last_reload_at: Optional[datetime] = None

    # ----------------------------- state -----------------------------

    @property
    def config(self) -> Config:
        return self._config

    @property
    def state(self) -> ReloadState:
        if self._state is ReloadState.STOPPED:
            return ReloadState.STOPPED
        if self._in_flight:
            return ReloadState.RELOAD_IN_FLIGHT
        return self._state

    @property
    def watched_paths(self) -> List[Path]:
        return sorted(self._watched_files | self._watched_dirs)

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "watched_paths": [str(p) for p in self.watched_paths],
            "backup_count": len(self.backups),
            "backups": [backup.describe() for backup in self.backups.list()],
            "reload_count": self.reload_count,
            "last_reload_at": self.last_reload_at.isoformat() if self.last_reload_at else None,
        }

    # ----------------------------- watching -----------------------------

    def start(self, paths: Optional[Iterable[Union[str, Path]]] = None) -> None:
        """
        Start watching ``paths`` (defaults to the loader's layer files).

        Must be called from inside the event loop that should run reloads.
        Paths that cannot be watched are reported as error events and skipped.
        """
        if self._state is ReloadState.WATCHING:
            logger.warning("Hot reload is already watching")
            return

        self._loop = asyncio.get_running_loop()
        targets = list(paths or self.options.watch_paths or self.loader.watch_paths())

        self._watched_files = set()
        self._watched_dirs = set()
        directories: Set[Path] = set()
        for target in targets:
            target = Path(target).resolve()
            if target.is_dir():
                self._watched_dirs.add(target)
                directories.add(target)
            else:
                self._watched_files.add(target)
                directories.add(target.parent)

        self._observer = Observer()
        self._observer.daemon = True
        self._observer.start()
        handler = ConfigFileWatcher(self)
        for directory in sorted(directories):
            if not directory.is_dir():
                self._emit(
                    ChangeEventType.ERROR,
                    f"Cannot watch {directory}: directory does not exist",
                    {"path": str(directory)},
                )
                continue
            try:
                self._observer.schedule(handler, str(directory), recursive=False)
            except OSError as e:
                logger.error("Failed to watch %s: %s", directory, e)
                self._emit(
                    ChangeEventType.ERROR,
                    f"Cannot watch {directory}: {e}",
                    {"path": str(directory), "error": str(e)},
                )

        self._state = ReloadState.WATCHING
        logger.info(
            "Hot reload watching configuration files",
            extra={"paths": [str(p) for p in self.watched_paths],
                   "debounce_seconds": self.options.debounce_seconds}
        )

    def stop(self) -> None:
        """Stop watching. A reload that already started runs to completion."""
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        self._pending_path = None

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=OBSERVER_JOIN_TIMEOUT)
            if self._observer.is_alive():
                logger.debug("Observer thread still shutting down")
            self._observer = None

        if self._state is not ReloadState.STOPPED:
            logger.info("Hot reload stopped")
        self._state = ReloadState.STOPPED

    def is_watched_directory(self, path: str) -> bool:
        return Path(path).resolve() in self._watched_dirs

    def is_relevant(self, path: str) -> bool:
        resolved = Path(path).resolve()
        if resolved in self._watched_files:
            return True
        # Inside a watched directory every visible file counts
        return resolved.parent in self._watched_dirs and not resolved.name.startswith(".")

    def dispatch_file_event(self, path: str) -> None:
        """Called from the observer thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.handle_file_event, path)
        except RuntimeError:
            logger.debug("Event loop closed; dropping file event for %s", path)

    def report_watch_error(self, path: str, message: str) -> None:
        """Called from the observer thread when a watched location goes away."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        event = ChangeEvent(
            type=ChangeEventType.ERROR,
            message=f"Watch error on {path}: {message}",
            payload={"path": path, "error": message},
        )
        try:
            loop.call_soon_threadsafe(self.notifier.publish, event)
        except RuntimeError:
            logger.debug("Event loop closed; dropping watch error for %s", path)

    def handle_file_event(self, path: str) -> None:
        """Restart the debounce timer; runs on the event loop."""
        if self._state is not ReloadState.WATCHING:
            return
        self._pending_path = str(path)
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = self._loop.call_later(
            self.options.debounce_seconds, self._on_debounce
        )

    def _on_debounce(self) -> None:
        self._debounce_handle = None
        if self._state is not ReloadState.WATCHING:
            return
        if self._in_flight:
            # Try again once the running reload has had time to finish
            self._debounce_handle = self._loop.call_later(
                self.options.debounce_seconds, self._on_debounce
            )
            return

        path, self._pending_path = self._pending_path, None
        self._in_flight = True
        task = self._loop.create_task(self._reload_quietly(f"file-change:{path}"))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for any watch-triggered reloads that are already running."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ----------------------------- reloading -----------------------------

    async def reload(self, reason: str = "manual") -> ValidationResult:
        """
        Reload now, bypassing the debounce.

        Returns the ValidationResult of the new configuration. Raises
        ReentrantReloadRejectedError if a reload is already running and
        re-raises any load or validation error after publishing it.
        """
        if self._in_flight:
            raise ReentrantReloadRejectedError(
                "A configuration reload is already in progress",
                context={"reason": reason}
            )
        self._in_flight = True
        return await self._run_reload(reason)

    async def reload_config(self, reason: str = "manual") -> bool:
        """Reload now; returns False instead of raising when rejected or failed."""
        if self._in_flight:
            logger.warning("Reload rejected, another reload is in progress", extra={"reason": reason})
            return False
        self._in_flight = True
        return await self._reload_quietly(reason)

    async def _reload_quietly(self, reason: str) -> bool:
        try:
            await self._run_reload(reason)
        except Exception:
            # Already logged and published by _run_reload
            return False
        return True

    async def _run_reload(self, reason: str) -> ValidationResult:
        """Caller must have set the in-flight flag."""
        try:
            backup = None
            if self.options.backup_on_reload:
                backup = self.create_backup(f"pre-reload:{reason}")

            try:
                result = await asyncio.to_thread(
                    self.loader.load, validate=self.options.validate_on_reload
                )
            except ConfigurationError as e:
                logger.warning(
                    "Configuration reload rejected, keeping current configuration",
                    extra={"reason": reason, "error_code": e.error_code,
                           "issues": [str(issue) for issue in e.issues]}
                )
                self._emit(
                    ChangeEventType.VALIDATION,
                    f"Configuration reload rejected: {e.message}",
                    {"reason": reason, "error_code": e.error_code,
                     "issues": [issue.to_dict() for issue in e.issues]},
                )
                raise
            except EnvStackError as e:
                logger.error("Configuration reload failed: %s", e.message, extra={"reason": reason})
                self._emit(
                    ChangeEventType.ERROR,
                    f"Configuration reload failed: {e.message}",
                    {"reason": reason, "error": e.to_dict()},
                )
                raise
            except Exception as e:
                logger.exception("Unexpected error during configuration reload")
                self._emit(
                    ChangeEventType.ERROR,
                    f"Configuration reload failed: {e}",
                    {"reason": reason, "error": str(e), "error_type": type(e).__name__},
                )
                raise

            previous = self._config
            self._config = result.config
            self.reload_count += 1
            self.last_reload_at = datetime.now(timezone.utc)

            diff = diff_configs(previous, result.config)
            logger.info(
                "Configuration reloaded",
                extra={"reason": reason, "changed": diff.differences}
            )
            self._emit(
                ChangeEventType.RELOAD,
                "Configuration reloaded",
                {"reason": reason,
                 "changed": diff.differences,
                 "warnings": list(result.validation.warnings),
                 "backup_id": backup.id if backup else None},
            )
            return result.validation
        finally:
            self._in_flight = False

    # ----------------------------- backups -----------------------------

    def create_backup(self, reason: str = "manual") -> Backup:
        backup = Backup(id=new_backup_id(), reason=reason, snapshot=self._config.snapshot())
        evicted = self.backups.add(backup)
        if evicted:
            logger.debug("Evicted %d old backup(s)", len(evicted))
        self._emit(
            ChangeEventType.BACKUP,
            f"Configuration backup created ({reason})",
            {"backup_id": backup.id, "reason": reason,
             "evicted": [b.id for b in evicted], "backup_count": len(self.backups)},
        )
        return backup

    def rollback(self, backup_id: Optional[str] = None) -> Backup:
        """
        Restore a backup (the most recent one by default).

        The current configuration is backed up first so the rollback itself
        can be undone. Raises RollbackTargetNotFoundError without side
        effects when the ring is empty or the id is unknown.
        """
        target = self.backups.latest() if backup_id is None else self.backups.get(backup_id)
        if target is None:
            raise RollbackTargetNotFoundError(
                "No configuration backups available" if backup_id is None
                else f"Backup {backup_id} not found",
                backup_id=backup_id
            )
        if self._in_flight:
            raise ReentrantReloadRejectedError(
                "Cannot roll back while a reload is in progress",
                context={"backup_id": target.id}
            )

        safety = self.create_backup(f"rollback-before:{target.id}")
        previous = self._config
        self._config = target.snapshot
        diff = diff_configs(previous, target.snapshot)

        logger.info("Configuration rolled back", extra={"backup_id": target.id})
        self._emit(
            ChangeEventType.RELOAD,
            f"Configuration rolled back to {target.id}",
            {"reason": f"rollback:{target.id}",
             "tag": "rollback",
             "backup_id": target.id,
             "safety_backup_id": safety.id,
             "changed": diff.differences},
        )
        return target

    def _emit(self, event_type: ChangeEventType, message: str, payload: Dict[str, Any]) -> None:
        self.notifier.publish(ChangeEvent(type=event_type, message=message, payload=payload))
