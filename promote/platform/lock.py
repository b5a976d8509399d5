"""Advisory lock on the promotion work directory.

Promotions are not queued: if another run already holds the lock, the new
one fails straight away instead of waiting.

Usage:
    match acquire_lock(work_dir):
        case Ok(lock):
            with lock:
                ...  # run the pipeline
        case Err(e):
            print(e.message)
"""

from __future__ import annotations

import fcntl
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import IO

from promote.core.result import Err, Ok, Result

__all__ = ["LOCK_FILE_NAME", "LockError", "WorkLock", "acquire_lock"]

LOCK_FILE_NAME = ".lock"


@dataclass(frozen=True, slots=True)
class LockError:
    """Error acquiring the work directory lock.

    Attributes:
        path: The lock file.
        message: What went wrong.
        contended: True if another process holds the lock.
    """

    path: Path
    message: str
    contended: bool = False


class WorkLock:
    """Held exclusive lock; releases on `release()` or leaving a `with` block."""

    def __init__(self, path: Path, handle: IO[str]) -> None:
        self.path = path
        self._handle: IO[str] | None = handle

    @property
    def held(self) -> bool:
        return self._handle is not None

    def release(self) -> None:
        """Unlock and close the lock file. Safe to call more than once."""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    def __enter__(self) -> WorkLock:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def acquire_lock(work_dir: Path) -> Result[WorkLock, LockError]:
    """Create `work_dir` if needed and take a non-blocking exclusive lock in it."""
    lock_path = work_dir / LOCK_FILE_NAME
    try:
        work_dir.mkdir(parents=True, exist_ok=True)
        handle = lock_path.open("a+", encoding="utf-8")
    except OSError as e:
        return Err(LockError(path=lock_path, message=f"cannot open lock file: {e}"))

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        handle.close()
        return Err(
            LockError(
                path=lock_path,
                message=f"another promotion is running in {work_dir}",
                contended=True,
            )
        )
    except OSError as e:
        handle.close()
        return Err(LockError(path=lock_path, message=f"cannot lock {lock_path}: {e}"))

    return Ok(WorkLock(lock_path, handle))
