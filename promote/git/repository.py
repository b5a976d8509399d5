"""Git repository abstraction.

The promotion keeps a local mirror of the upstream source repository. It
is cloned once, fetched on every run, and only reset to a revision when
the signing tool needs a checkout to run from.

Usage:
    repo = Repository(work / "source")
    if not repo.exists():
        repo.clone("https://github.com/rust-lang/rust")
    match repo.rev_parse("origin/master"):
        case Ok(sha):
            print(sha)
        case Err(e):
            print(f"{e.command}: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from promote.core.result import Err, Ok, Result
from promote.platform.process import ProcessError
from promote.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 60.0
# Cloning the full upstream history is slow.
_GIT_NETWORK_TIMEOUT_SECONDS = 60 * 60.0

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """A local git checkout. All methods that can fail return Results.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git repository."""
        return (self.path / ".git").exists()

    def clone(self, url: str) -> Result[None, GitError]:
        """Clone `url` into this repository's path."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        result = run_process(
            ["git", "clone", url, str(self.path)],
            cwd=self.path.parent,
            timeout=_GIT_NETWORK_TIMEOUT_SECONDS,
        )
        return self._check(result, "clone").map(lambda _: None)

    def fetch(self, remote: str = "origin") -> Result[None, GitError]:
        """Fetch remote refs without touching the working tree."""
        return self._check(self._run(["fetch", remote]), f"fetch {remote}").map(lambda _: None)

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        """Resolve `ref` to a full commit hash."""
        result = self._check(self._run(["rev-parse", ref]), f"rev-parse {ref}")
        if isinstance(result, Err):
            return result
        sha = result.value.strip()
        if not sha:
            return Err(GitError(command=f"rev-parse {ref}", message="empty output"))
        return Ok(sha)

    def reset_hard(self, revision: str) -> Result[None, GitError]:
        """Point the working tree at `revision`, discarding local changes."""
        result = self._run(["reset", "--hard", revision])
        return self._check(result, f"reset --hard {revision}").map(lambda _: None)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "clone"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    @staticmethod
    def _check(result: Result[str, ProcessError], command: str) -> Result[str, GitError]:
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=command,
                        message=e.detail or f"git {command} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout)
