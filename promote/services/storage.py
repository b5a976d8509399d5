"""Object storage access (CI artifacts and the public distribution bucket).

Production shells out to the aws CLI with credentials from the secrets
document. MockStorage keeps "remote" prefixes in memory for tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from promote.core.result import Err, Ok, Result
from promote.output.console import ConsoleProtocol
from promote.platform.process import run as run_process
from promote.services.errors import PromoteError
from promote.services.timeouts import AWS_TRANSFER_TIMEOUT_SECONDS


def _local(path: Path) -> str:
    # aws s3 treats a trailing slash as "contents of this directory".
    return f"{path}/"


def _remote(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


class ObjectStorage(Protocol):
    def download_tree(self, src_url: str, dest: Path) -> Result[None, PromoteError]:
        """Copy every object under `src_url` into the local directory `dest`."""
        ...

    def upload_tree(
        self,
        src: Path,
        dest_url: str,
        *,
        cache_control: str | None = None,
    ) -> Result[None, PromoteError]:
        """Copy every file under `src` to `dest_url`, overwriting existing objects."""
        ...

    def mirror_tree(self, src: Path, dest_url: str) -> Result[None, PromoteError]:
        """Make `dest_url` match `src`, deleting remote objects absent locally."""
        ...


class AwsCliStorage:
    """ObjectStorage backed by ``aws s3``."""

    def __init__(
        self,
        *,
        credentials: Mapping[str, str],
        cwd: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._credentials = dict(credentials)
        self._cwd = cwd
        self._console = console

    def download_tree(self, src_url: str, dest: Path) -> Result[None, PromoteError]:
        return self._s3(["cp", "--recursive", "--only-show-errors", _remote(src_url), _local(dest)])

    def upload_tree(
        self,
        src: Path,
        dest_url: str,
        *,
        cache_control: str | None = None,
    ) -> Result[None, PromoteError]:
        args = ["cp", "--recursive", "--only-show-errors"]
        if cache_control is not None:
            args += ["--metadata-directive", "REPLACE", "--cache-control", cache_control]
        return self._s3([*args, _local(src), _remote(dest_url)])

    def mirror_tree(self, src: Path, dest_url: str) -> Result[None, PromoteError]:
        return self._s3(["sync", "--delete", "--only-show-errors", _local(src), _remote(dest_url)])

    def _s3(self, args: list[str]) -> Result[None, PromoteError]:
        cmd = ["aws", "s3", *args]
        self._console.command(cmd)
        result = run_process(
            cmd,
            cwd=self._cwd,
            extra_env=self._credentials,
            timeout=AWS_TRANSFER_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            e = result.error
            return Err(
                PromoteError(
                    kind="storage_failed",
                    message=f"aws s3 {args[0]} failed (exit {e.returncode})",
                    hint=e.detail,
                )
            )
        return Ok(None)


def _empty_buckets() -> dict[str, dict[str, bytes]]:
    return {}


def _empty_ops() -> list[tuple[str, str]]:
    return []


def _empty_urls() -> set[str]:
    return set()


def _empty_cache_control() -> dict[str, str | None]:
    return {}


@dataclass
class MockStorage:
    """In-memory storage keyed by remote prefix (``s3://bucket/dir/``).

    `objects[prefix]` maps relative file paths to contents. `operations`
    records ``(verb, url)`` pairs in call order.
    """

    objects: dict[str, dict[str, bytes]] = field(default_factory=_empty_buckets)
    operations: list[tuple[str, str]] = field(default_factory=_empty_ops)
    fail_on: set[str] = field(default_factory=_empty_urls)
    cache_control: dict[str, str | None] = field(default_factory=_empty_cache_control)

    def seed(self, url: str, files: Mapping[str, bytes]) -> None:
        self.objects.setdefault(_remote(url), {}).update(files)

    def listing(self, url: str) -> dict[str, bytes]:
        return dict(self.objects.get(_remote(url), {}))

    def download_tree(self, src_url: str, dest: Path) -> Result[None, PromoteError]:
        failed = self._record("download", src_url)
        if failed is not None:
            return failed
        dest.mkdir(parents=True, exist_ok=True)
        for rel, data in self.objects.get(_remote(src_url), {}).items():
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        return Ok(None)

    def upload_tree(
        self,
        src: Path,
        dest_url: str,
        *,
        cache_control: str | None = None,
    ) -> Result[None, PromoteError]:
        failed = self._record("upload", dest_url)
        if failed is not None:
            return failed
        self.cache_control[_remote(dest_url)] = cache_control
        self.objects.setdefault(_remote(dest_url), {}).update(_read_tree(src))
        return Ok(None)

    def mirror_tree(self, src: Path, dest_url: str) -> Result[None, PromoteError]:
        failed = self._record("mirror", dest_url)
        if failed is not None:
            return failed
        self.objects[_remote(dest_url)] = _read_tree(src)
        return Ok(None)

    def _record(self, verb: str, url: str) -> Err[PromoteError] | None:
        self.operations.append((verb, _remote(url)))
        if _remote(url) in self.fail_on:
            return Err(PromoteError(kind="storage_failed", message=f"{verb} {url} failed (mock)"))
        return None


def _read_tree(root: Path) -> dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }
