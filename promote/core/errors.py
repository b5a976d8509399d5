"""Process exit codes.

A promotion either finishes (published or skipped) or stops at the first
failing step. The exit code tells an operator, or the cron wrapper around
us, which family of failure stopped the run.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (released or nothing to do)
    - 1: User error (bad arguments, unknown channel)
    - 2: Environment error (bad secrets file, inconsistent channel state)
    - 3: Build error (signing tool failed, incomplete artifacts)
    - 4: Network error (git, manifest download, storage, CDN)
    - 5: I/O error (local filesystem)
    - 6: Another promotion holds the work directory lock
    - 7: Release published but CDN caches were not invalidated
    - 8: Internal error (a bug in the promotion pipeline)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    LOCKED = 6
    CACHE_STALE = 7
    INTERNAL_ERROR = 8

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
