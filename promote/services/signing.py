"""Manifest generation and signing via the upstream build tool.

The tool is run from a checkout of the candidate revision. It reads the
staged artifacts from ``sign-folder`` and writes the channel manifest plus
a detached signature and checksum per artifact into ``build/dist``. It
needs the public download address to put correct URLs in the manifest.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from promote.core.config import DistConfig
from promote.core.result import Err, Ok, Result
from promote.git.repository import Repository
from promote.output.console import ConsoleProtocol
from promote.platform.files import atomic_write_text, list_files, reset_dir
from promote.platform.process import run as run_process
from promote.platform.process import run_silent
from promote.services.artifacts import SIGNATURE_SUFFIXES
from promote.services.channel import Channel
from promote.services.errors import PromoteError
from promote.services.timeouts import CONFIGURE_TIMEOUT_SECONDS

BUILD_CONFIG_NAME = "config.toml"


class BuildTool(Protocol):
    def sign(self, revision: str, staging_dir: Path) -> Result[Path, PromoteError]:
        """Generate the manifest and signatures; return the directory holding them."""
        ...


def _toml_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _table_name(header: str) -> str:
    # '[ "dist" ]  # comment' -> "dist"; array tables keep their inner brackets.
    name = header.split("#", 1)[0].strip().removeprefix("[").removesuffix("]")
    return name.strip().strip("\"'")


def render_build_config(
    existing: str,
    *,
    sign_folder: Path,
    gpg_password_file: str,
    upload_addr: str,
) -> str:
    """Replace the ``[dist]`` table of a build config with our signing settings."""
    kept: list[str] = []
    in_dist = False
    for line in existing.splitlines():
        stripped = line.strip()
        if stripped.startswith("["):
            in_dist = _table_name(stripped) == "dist"
            if in_dist:
                continue
        if in_dist:
            continue
        kept.append(line)

    while kept and not kept[-1].strip():
        kept.pop()

    dist = [
        "[dist]",
        f"sign-folder = {_toml_str(str(sign_folder))}",
        f"gpg-password-file = {_toml_str(gpg_password_file)}",
        f"upload-addr = {_toml_str(upload_addr)}",
    ]
    if kept:
        kept.append("")
    return "\n".join([*kept, *dist]) + "\n"


class DistBuildTool:
    """Runs ``configure`` and ``x.py dist hash-and-sign`` from the source mirror."""

    def __init__(
        self,
        *,
        repo: Repository,
        build_dir: Path,
        channel: Channel,
        dist: DistConfig,
        console: ConsoleProtocol,
    ) -> None:
        self._repo = repo
        self.build_dir = build_dir
        self._channel = channel
        self._dist = dist
        self._console = console

    @property
    def output_dir(self) -> Path:
        return self.build_dir / "build" / "dist"

    def sign(self, revision: str, staging_dir: Path) -> Result[Path, PromoteError]:
        try:
            reset_dir(self.build_dir)
        except OSError as e:
            return Err(PromoteError(kind="io_failed", message=f"cannot reset {self.build_dir}: {e}"))

        checkout = self._repo.reset_hard(revision)
        if isinstance(checkout, Err):
            return Err(
                PromoteError(
                    kind="vcs_failed",
                    message=f"git {checkout.error.command} failed",
                    hint=checkout.error.message,
                )
            )

        configure = [str(self._repo.path / "configure"), f"--release-channel={self._channel}"]
        self._console.command(configure)
        configured = run_process(configure, cwd=self.build_dir, timeout=CONFIGURE_TIMEOUT_SECONDS)
        if isinstance(configured, Err):
            return Err(
                PromoteError(
                    kind="build_tool_failed",
                    message=str(configured.error),
                    hint=configured.error.detail,
                )
            )

        written = self._write_config(staging_dir)
        if isinstance(written, Err):
            return written

        sign = [str(self._repo.path / "x.py"), "dist", "hash-and-sign"]
        self._console.command(sign)
        signed = run_silent(sign, cwd=self.build_dir)
        if isinstance(signed, Err):
            return Err(PromoteError(kind="build_tool_failed", message=str(signed.error)))

        if not list_files(self.output_dir):
            return Err(
                PromoteError(
                    kind="build_tool_failed",
                    message="hash-and-sign produced no files",
                    hint=str(self.output_dir),
                )
            )
        return Ok(self.output_dir)

    def _write_config(self, staging_dir: Path) -> Result[None, PromoteError]:
        path = self.build_dir / BUILD_CONFIG_NAME
        try:
            existing = path.read_text(encoding="utf-8") if path.is_file() else ""
            atomic_write_text(
                path,
                render_build_config(
                    existing,
                    sign_folder=staging_dir,
                    gpg_password_file=self._dist.gpg_password_file,
                    upload_addr=self._dist.public_addr,
                ),
            )
        except (OSError, UnicodeDecodeError) as e:
            return Err(PromoteError(kind="io_failed", message=f"cannot write {path}: {e}"))
        return Ok(None)


@dataclass
class MockBuildTool:
    """Writes a manifest and fake checksums/signatures like the real tool would."""

    output_dir: Path
    manifest_name: str
    product: str
    version: str
    fail: bool = False
    calls: int = 0

    def sign(self, revision: str, staging_dir: Path) -> Result[Path, PromoteError]:
        self.calls += 1
        if self.fail:
            return Err(PromoteError(kind="build_tool_failed", message="hash-and-sign failed (mock)"))

        reset_dir(self.output_dir)
        for name in list_files(staging_dir):
            if name.endswith(SIGNATURE_SUFFIXES):
                continue
            digest = hashlib.sha256((staging_dir / name).read_bytes()).hexdigest()
            (self.output_dir / f"{name}.sha256").write_text(f"{digest}  {name}\n")
            (self.output_dir / f"{name}.asc").write_text(f"signature of {name}\n")

        manifest = f'[pkg.{self.product}]\nversion = {_toml_str(self.version)}\n'
        (self.output_dir / self.manifest_name).write_text(manifest)
        (self.output_dir / f"{self.manifest_name}.sha256").write_text("manifest digest\n")
        return Ok(self.output_dir)
