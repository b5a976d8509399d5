from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from promote.core.config import PromoteSettings
from promote.core.result import Err, Ok, Result
from promote.output.console import ConsoleProtocol, Style
from promote.platform.files import list_files, reset_dir
from promote.services.archives import ArchiveError, read_version_file, recompress_xz_to_gz
from promote.services.artifacts import SIGNATURE_SUFFIXES, ArtifactSet
from promote.services.channel import Channel
from promote.services.errors import PromoteError
from promote.services.storage import ObjectStorage
from promote.services.version import ToolchainVersion


@dataclass(frozen=True, slots=True)
class NormalizeReport:
    removed: tuple[str, ...]
    recompressed: tuple[str, ...]


def normalize(root: Path) -> Result[NormalizeReport, PromoteError]:
    """Drop residue signatures and add missing ``.gz`` twins of ``.xz`` archives.

    Signature and checksum files show up when an earlier run died after
    signing, or when a release was pre-signed with a development key. The
    signing step must produce them fresh.
    """
    removed: list[str] = []
    recompressed: list[str] = []

    for name in list_files(root):
        path = root / name
        if name.endswith(SIGNATURE_SUFFIXES):
            try:
                path.unlink()
            except OSError as e:
                return Err(PromoteError(kind="io_failed", message=f"cannot remove {name}: {e}"))
            removed.append(name)

    for name in list_files(root):
        if not name.endswith(".xz"):
            continue
        gz = root / f"{name.removesuffix('.xz')}.gz"
        if gz.is_file():
            continue
        try:
            recompress_xz_to_gz(root / name, gz)
        except ArchiveError as e:
            return Err(PromoteError(kind="io_failed", message=str(e)))
        recompressed.append(gz.name)

    return Ok(NormalizeReport(removed=tuple(removed), recompressed=tuple(recompressed)))


def missing_components(
    artifacts: ArtifactSet,
    *,
    target: str,
    components: tuple[str, ...],
) -> tuple[str, ...]:
    names = artifacts.for_target(target)
    return tuple(c for c in components if not any(n.startswith(f"{c}-") for n in names))


def read_candidate_version(
    artifacts: ArtifactSet,
    *,
    component: str,
) -> Result[ToolchainVersion, PromoteError]:
    """Version baked into the first `component` archive that carries one."""
    for name in artifacts.component_archives(component):
        try:
            text = read_version_file(artifacts.path(name))
        except ArchiveError as e:
            return Err(PromoteError(kind="io_failed", message=str(e)))
        if text is not None and text.strip():
            return Ok(ToolchainVersion.parse(text))

    return Err(
        PromoteError(
            kind="no_version",
            message=f"no {component}-*.tar.gz archive with a version file",
            hint=str(artifacts.root),
        )
    )


class ArtifactStager:
    """Fetches, normalizes and validates the CI artifacts for one revision."""

    def __init__(
        self,
        *,
        settings: PromoteSettings,
        storage: ObjectStorage,
        staging_dir: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._settings = settings
        self._storage = storage
        self.staging_dir = staging_dir
        self._console = console

    def stage(self, revision: str) -> Result[ArtifactSet, PromoteError]:
        try:
            reset_dir(self.staging_dir)
        except OSError as e:
            return Err(
                PromoteError(kind="io_failed", message=f"cannot reset {self.staging_dir}: {e}")
            )

        fetched = self._storage.download_tree(self._settings.ci_url(revision), self.staging_dir)
        if isinstance(fetched, Err):
            return fetched

        artifacts = ArtifactSet.scan(self.staging_dir)
        if artifacts.is_empty:
            return Err(
                PromoteError(
                    kind="no_artifacts",
                    message=f"no artifacts found for revision {revision}",
                    hint="Is this a stable/beta branch awaiting its release-channel PR?",
                )
            )
        self._console.print(f"fetched {len(artifacts.files)} files", Style.DIM)

        report = normalize(self.staging_dir)
        if isinstance(report, Err):
            return report
        for name in report.value.removed:
            self._console.print(f"removed stale {name}", Style.DIM)
        for name in report.value.recompressed:
            self._console.print(f"recompressed {name}", Style.DIM)

        return Ok(artifacts.rescan())

    def validate_components(
        self,
        artifacts: ArtifactSet,
        channel: Channel,
    ) -> Result[None, PromoteError]:
        """Require the minimum component set where the channel policy asks for it."""
        if channel not in self._settings.enforce_components:
            return Ok(None)

        target = self._settings.reference_target
        missing = missing_components(
            artifacts,
            target=target,
            components=self._settings.required_components,
        )
        self._console.print(
            f"components for {target}: {', '.join(artifacts.for_target(target)) or '(none)'}",
            Style.DIM,
        )
        if missing:
            return Err(
                PromoteError(
                    kind="incomplete_components",
                    message=f"{channel} release is missing {', '.join(missing)} for {target}",
                )
            )
        return Ok(None)
