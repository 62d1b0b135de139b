import hashlib
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import packages.config as config


_registry_lock = threading.Lock()
_thread_locks: dict[tuple[str, str], threading.Lock] = {}


def _thread_lock(store_key: str, kind: str) -> threading.Lock:
    with _registry_lock:
        lock = _thread_locks.get((store_key, kind))
        if lock is None:
            lock = threading.Lock()
            _thread_locks[(store_key, kind)] = lock
        return lock


def lock_path(store_key: str, kind: str) -> Path:
    digest = hashlib.sha1(store_key.encode("utf-8")).hexdigest()[:12]
    return config.LOCK_DIR / f"runstats_{digest}_{kind}.lock"


def _is_stale(path: Path) -> bool:
    try:
        mtime = os.path.getmtime(path)
    except OSError:
        return False
    if (time.time() - mtime) > config.LOCK_TTL_SECONDS:
        return True

    # If the lock holder process is gone, treat as stale even if within TTL.
    try:
        payload = path.read_text(encoding="utf-8")
    except OSError:
        return False
    pid = None
    for part in payload.split():
        if part.startswith("pid="):
            try:
                pid = int(part.split("=", 1)[1])
            except ValueError:
                pid = None
            break
    if pid is None or pid <= 0:
        return False
    try:
        os.kill(pid, 0)
        return False
    except ProcessLookupError:
        return True
    except PermissionError:
        # PID exists but we can't signal it; assume it's alive.
        return False
    except OSError:
        return False


def _acquire(path: Path) -> bool:
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False
    try:
        payload = f"pid={os.getpid()} time={time.time()}\n"
        os.write(fd, payload.encode("utf-8"))
    finally:
        os.close(fd)
    return True


def _release(path: Path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


@contextmanager
def computation_lock(
    store_key: str,
    kind: str,
    retries: Optional[int] = None,
    delay: Optional[float] = None,
) -> Iterator[bool]:
    """Serialize recomputes of one kind against one store.

    Yields True when both the in-process lock and the lock file were taken.
    Gives up after the configured retries instead of blocking.
    """
    retries = config.LOCK_RETRIES if retries is None else retries
    delay = config.LOCK_RETRY_SEC if delay is None else delay
    timeout = max(retries, 0) * delay
    thread_lock = _thread_lock(store_key, kind)
    if timeout > 0:
        got_thread_lock = thread_lock.acquire(timeout=timeout)
    else:
        got_thread_lock = thread_lock.acquire(blocking=False)
    if not got_thread_lock:
        yield False
        return

    path = lock_path(store_key, kind)
    acquired = False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        for attempt in range(retries + 1):
            if _acquire(path):
                acquired = True
                break
            if _is_stale(path):
                _release(path)
                if _acquire(path):
                    acquired = True
                    break
            if attempt < retries:
                time.sleep(delay)
        yield acquired
    finally:
        if acquired:
            _release(path)
        thread_lock.release()
