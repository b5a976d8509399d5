from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

VersionLabel = Literal["nightly", "beta", "stable"]

SHORT_REVISION_LEN = 7


def short_revision(revision: str) -> str:
    return revision[:SHORT_REVISION_LEN]


@dataclass(frozen=True, slots=True)
class ToolchainVersion:
    """A version string as printed by the toolchain.

    Example: ``1.50.0-beta.3 (abcdef123 2021-01-01)``. The first token is the
    version number; the parenthesised part embeds a short revision and date.
    """

    raw: str

    @classmethod
    def parse(cls, text: str) -> ToolchainVersion:
        return cls(raw=text.strip())

    @property
    def number(self) -> str:
        parts = self.raw.split()
        return parts[0] if parts else ""

    @property
    def label(self) -> VersionLabel:
        if "nightly" in self.raw:
            return "nightly"
        if "beta" in self.raw:
            return "beta"
        return "stable"

    def mentions_revision(self, revision: str) -> bool:
        return short_revision(revision) in self.raw

    def same_release_as(self, other: ToolchainVersion) -> bool:
        return self.number == other.number

    def __str__(self) -> str:
        return self.raw


def channel_switch_suspected(previous: ToolchainVersion, current: ToolchainVersion) -> bool:
    """True if the candidate and the live version carry different channel labels.

    This happens right after a branch is repointed (master -> beta, beta ->
    stable) while the change updating its release channel is still pending.
    """
    return current.label != previous.label
