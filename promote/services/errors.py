from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PromoteErrorKind = Literal[
    "lock_contention",
    "vcs_failed",
    "manifest_fetch_failed",
    "no_artifacts",
    "incomplete_components",
    "channel_mismatch",
    "no_version",
    "build_tool_failed",
    "storage_failed",
    "invalidation_failed",
    "config_invalid",
    "io_failed",
    "invalid_transition",
]


@dataclass(frozen=True, slots=True)
class PromoteError:
    """Why a promotion stopped.

    `step` is filled in by the pipeline with the state that was running;
    `hint` usually carries the failing command's stderr.
    """

    kind: PromoteErrorKind
    message: str
    hint: str | None = None
    step: str | None = None

    def pretty(self) -> str:
        prefix = f"[{self.step}] " if self.step else ""
        return f"{prefix}{self.message}"
