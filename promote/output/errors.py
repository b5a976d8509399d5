"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from promote.core.errors import ErrorCode
from promote.output.console import Style

if TYPE_CHECKING:
    from promote.output.console import ConsoleProtocol
    from promote.services.errors import PromoteError

__all__ = ["print_promote_error", "promote_error_exit_code"]


def print_promote_error(error: PromoteError, console: ConsoleProtocol) -> None:
    """Print a promotion error with its step and hint."""
    console.error(error.pretty())
    if error.kind == "invalidation_failed":
        console.warning("the release is published but CDN caches may serve stale files")
    if error.hint:
        for line in error.hint.splitlines():
            console.print(f"hint: {line}", Style.DIM)


def promote_error_exit_code(error: PromoteError) -> int:
    """Get exit code for a promotion error."""
    match error.kind:
        case "lock_contention":
            return int(ErrorCode.LOCKED)
        case "invalidation_failed":
            return int(ErrorCode.CACHE_STALE)
        case "config_invalid" | "channel_mismatch":
            return int(ErrorCode.ENV_ERROR)
        case "no_artifacts" | "incomplete_components" | "no_version" | "build_tool_failed":
            return int(ErrorCode.BUILD_ERROR)
        case "vcs_failed" | "manifest_fetch_failed" | "storage_failed":
            return int(ErrorCode.NETWORK_ERROR)
        case "io_failed":
            return int(ErrorCode.IO_ERROR)
        case "invalid_transition":
            return int(ErrorCode.INTERNAL_ERROR)
