from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from promote.core.result import Err, Ok, Result
from promote.git.repository import GitError, Repository
from promote.output.console import ConsoleProtocol
from promote.services.channel import Channel, branch_for
from promote.services.errors import PromoteError


class SourceTracker(Protocol):
    def sync(self) -> Result[None, PromoteError]:
        """Bring the local mirror up to date with upstream."""
        ...

    def resolve(self, channel: Channel) -> Result[str, PromoteError]:
        """Tip revision of the branch backing `channel`."""
        ...


def _vcs_error(e: GitError) -> PromoteError:
    return PromoteError(
        kind="vcs_failed",
        message=f"git {e.command} failed (exit {e.returncode})",
        hint=e.message,
    )


class GitSourceTracker:
    """Keeps a clone of the upstream repository and reads branch tips from it."""

    def __init__(
        self,
        *,
        repo: Repository,
        url: str,
        branches: Mapping[str, str],
        override_branch: str | None,
        console: ConsoleProtocol,
    ) -> None:
        self.repo = repo
        self._url = url
        self._branches = dict(branches)
        self._override = override_branch
        self._console = console

    def sync(self) -> Result[None, PromoteError]:
        if self.repo.exists():
            self._console.print(f"fetching {self.repo.path}")
            result = self.repo.fetch("origin")
        else:
            self._console.print(f"cloning {self._url}")
            result = self.repo.clone(self._url)
        if isinstance(result, Err):
            return Err(_vcs_error(result.error))
        return Ok(None)

    def resolve(self, channel: Channel) -> Result[str, PromoteError]:
        branch = branch_for(channel, branches=self._branches, override=self._override)
        rev = self.repo.rev_parse(f"origin/{branch}")
        if isinstance(rev, Err):
            return Err(_vcs_error(rev.error))
        self._console.print(f"{channel} rev is {rev.value} (origin/{branch})")
        return rev


def _empty_revisions() -> dict[str, str]:
    return {}


@dataclass
class MockSourceTracker:
    """Serves fixed branch tips; ``syncs`` counts `sync()` calls."""

    revisions: dict[str, str] = field(default_factory=_empty_revisions)
    fail_sync: bool = False
    syncs: int = 0

    def sync(self) -> Result[None, PromoteError]:
        self.syncs += 1
        if self.fail_sync:
            return Err(PromoteError(kind="vcs_failed", message="git fetch origin failed (mock)"))
        return Ok(None)

    def resolve(self, channel: Channel) -> Result[str, PromoteError]:
        rev = self.revisions.get(channel)
        if rev is None:
            return Err(PromoteError(kind="vcs_failed", message=f"no branch for {channel} (mock)"))
        return Ok(rev)
