"""Platform layer: processes, files, locking."""

from promote.platform.files import atomic_write_text, list_files, reset_dir
from promote.platform.lock import LockError, WorkLock, acquire_lock
from promote.platform.process import ProcessError, run, run_silent

__all__ = [
    # files
    "atomic_write_text",
    "list_files",
    "reset_dir",
    # lock
    "LockError",
    "WorkLock",
    "acquire_lock",
    # process
    "ProcessError",
    "run",
    "run_silent",
]
