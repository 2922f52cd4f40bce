"""Advisory lock file serializing first-run installs across processes."""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sourced_compose.compose.cancellation import CancelContext
from sourced_compose.errors import InstallLockError

logger = logging.getLogger(__name__)

STALE_AFTER_SECONDS = 10 * 60
_POLL_SECONDS = 0.2


def _is_process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def _read_holder(lock_path: Path) -> tuple[int | None, float | None]:
    try:
        data = json.loads(lock_path.read_text("utf-8"))
        return int(data["pid"]), float(data["timestamp"])
    except (OSError, ValueError, KeyError, TypeError):
        return None, None


def _try_create(lock_path: Path) -> bool:
    try:
        fd = os.open(str(lock_path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    except FileExistsError:
        return False
    try:
        os.write(fd, json.dumps({"pid": os.getpid(), "timestamp": time.time()}).encode())
    finally:
        os.close(fd)
    return True


def _is_stale(
    lock_path: Path,
    pid: int | None,
    timestamp: float | None,
    stale_after: float,
) -> bool:
    if pid is None or timestamp is None:
        # Unreadable while the holder is still writing it; judge by mtime.
        try:
            timestamp = lock_path.stat().st_mtime
        except FileNotFoundError:
            return False
        return time.time() - timestamp > stale_after
    return time.time() - timestamp > stale_after or not _is_process_alive(pid)


def _break_stale(
    lock_path: Path,
    observed: tuple[int | None, float | None],
    stale_after: float,
) -> bool:
    """Remove ``lock_path`` if it still holds the stale ``observed`` holder.

    Takeovers are serialized through a sibling ``.break`` file so that a waiter
    acting on an old observation cannot remove a lock another waiter just took.
    """

    breaker = lock_path.with_name(f"{lock_path.name}.break")
    if not _try_create(breaker):
        if _is_stale(breaker, *_read_holder(breaker), stale_after):
            breaker.unlink(missing_ok=True)
        return False
    try:
        current = _read_holder(lock_path)
        if current == observed and _is_stale(lock_path, *current, stale_after):
            logger.warning("Taking over stale install lock %s (pid %s)", lock_path, current[0])
            lock_path.unlink(missing_ok=True)
            return True
        return False
    finally:
        breaker.unlink(missing_ok=True)


@contextmanager
def install_lock(
    lock_path: Path,
    *,
    timeout_seconds: float,
    stale_after_seconds: float = STALE_AFTER_SECONDS,
    context: CancelContext | None = None,
) -> Iterator[None]:
    """Hold ``lock_path`` exclusively for the duration of the block."""

    lock_path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + timeout_seconds
    while not _try_create(lock_path):
        pid, timestamp = _read_holder(lock_path)
        if _is_stale(lock_path, pid, timestamp, stale_after_seconds) and _break_stale(
            lock_path,
            (pid, timestamp),
            stale_after_seconds,
        ):
            continue
        if time.monotonic() >= deadline:
            raise InstallLockError(lock_path, pid)
        if context is not None:
            if context.wait(_POLL_SECONDS):
                raise InstallLockError(lock_path, pid)
        else:
            time.sleep(_POLL_SECONDS)
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)
