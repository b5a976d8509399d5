"""Publishing a signed release.

Upload order is what keeps a crash harmless:

1. dated archive copy (``<upload-dir>/<date>/``), a permanent record
2. documentation mirrors
3. the channel's current pointer (``<upload-dir>/``), what installers poll

If we die between steps, the worst visible state is an archive or docs
ahead of a stale current pointer, never a pointer to missing artifacts.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from promote.core.config import PromoteConfig
from promote.core.result import Err, Ok, Result
from promote.output.console import ConsoleProtocol, Style
from promote.platform.files import list_files
from promote.services.artifacts import ArtifactSet
from promote.services.channel import Channel, docs_label
from promote.services.docs import build_docs_tree
from promote.services.errors import PromoteError
from promote.services.storage import ObjectStorage
from promote.services.version import ToolchainVersion

ARCHIVE_CACHE_CONTROL = "public"


@dataclass(frozen=True, slots=True)
class PublishReport:
    archive_url: str
    current_url: str
    docs_dirs: tuple[str, ...]


def merge_signed(signed_dir: Path, artifacts: ArtifactSet) -> Result[ArtifactSet, PromoteError]:
    """Copy the manifest and signatures next to the artifacts they describe."""
    for name in list_files(signed_dir):
        try:
            shutil.copyfile(signed_dir / name, artifacts.path(name))
        except OSError as e:
            return Err(PromoteError(kind="io_failed", message=f"cannot merge {name}: {e}"))
    return Ok(artifacts.rescan())


class Publisher:
    def __init__(
        self,
        *,
        config: PromoteConfig,
        storage: ObjectStorage,
        docs_dir: Path,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._storage = storage
        self.docs_dir = docs_dir
        self._console = console

    @property
    def _bucket(self) -> str:
        return f"s3://{self._config.dist.upload_bucket}"

    def archive_url(self, date: str) -> str:
        return f"{self._bucket}/{self._config.dist.upload_dir}/{date}/"

    def current_url(self) -> str:
        return f"{self._bucket}/{self._config.dist.upload_dir}/"

    def docs_url(self, docs_dir: str) -> str:
        return f"{self._bucket}/doc/{docs_dir}/"

    def publish(
        self,
        *,
        artifacts: ArtifactSet,
        signed_dir: Path,
        channel: Channel,
        version: ToolchainVersion,
        date: str,
    ) -> Result[PublishReport, PromoteError]:
        merged = merge_signed(signed_dir, artifacts)
        if isinstance(merged, Err):
            return merged
        artifacts = merged.value

        archive = self.archive_url(date)
        self._console.print(f"archiving to {archive}")
        uploaded = self._storage.upload_tree(
            artifacts.root, archive, cache_control=ARCHIVE_CACHE_CONTROL
        )
        if isinstance(uploaded, Err):
            return uploaded

        docs = self.publish_docs(artifacts=artifacts, channel=channel, version=version)
        if isinstance(docs, Err):
            return docs

        current = self.current_url()
        self._console.print(f"publishing to {current}")
        uploaded = self._storage.upload_tree(artifacts.root, current)
        if isinstance(uploaded, Err):
            return uploaded

        return Ok(PublishReport(archive_url=archive, current_url=current, docs_dirs=docs.value))

    def publish_docs(
        self,
        *,
        artifacts: ArtifactSet,
        channel: Channel,
        version: ToolchainVersion,
    ) -> Result[tuple[str, ...], PromoteError]:
        """Mirror the docs to ``doc/<channel>/`` (and ``doc/<version>/`` for stable)."""
        label = docs_label(channel, version.number)
        tree = build_docs_tree(
            artifacts=artifacts,
            label=label,
            target=self._config.promote.reference_target,
            docs_dir=self.docs_dir,
        )
        if isinstance(tree, Err):
            return tree

        dirs: list[str] = [channel]
        if channel == "stable":
            dirs.append(label)

        for d in dirs:
            url = self.docs_url(d)
            self._console.print(f"syncing docs to {url}", Style.DIM)
            synced = self._storage.mirror_tree(tree.value, url)
            if isinstance(synced, Err):
                return synced

        return Ok(tuple(dirs))
