from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from promote.platform.files import list_files

# Detached signatures and checksums; regenerated by the signing step.
SIGNATURE_SUFFIXES = (".asc", ".sha256")


@dataclass(frozen=True, slots=True)
class ArtifactSet:
    """Files staged locally for one revision.

    The same directory moves through three states: fetched from CI, then
    normalized, then signed (manifest and signatures merged in). Take a new
    snapshot with `rescan()` after changing the directory.
    """

    root: Path
    files: tuple[str, ...]

    @classmethod
    def scan(cls, root: Path) -> ArtifactSet:
        return cls(root=root, files=list_files(root))

    def rescan(self) -> ArtifactSet:
        return ArtifactSet.scan(self.root)

    @property
    def is_empty(self) -> bool:
        return not self.files

    def path(self, name: str) -> Path:
        return self.root / name

    def for_target(self, target: str) -> tuple[str, ...]:
        return tuple(f for f in self.files if target in f)

    def with_suffix(self, suffix: str) -> tuple[str, ...]:
        return tuple(f for f in self.files if f.endswith(suffix))

    def component_archives(self, component: str, *, suffix: str = ".tar.gz") -> tuple[str, ...]:
        """Archives of `component` (``<component>-<version>-<target><suffix>``)."""
        return tuple(f for f in self.with_suffix(suffix) if f.startswith(f"{component}-"))
