from __future__ import annotations

from collections.abc import Mapping
from typing import Literal, cast

Channel = Literal["nightly", "beta", "stable"]

CHANNELS: tuple[Channel, ...] = ("nightly", "beta", "stable")

# Environment variable substituting one branch for every channel.
OVERRIDE_BRANCH_ENV = "PROMOTE_RELEASE_OVERRIDE_BRANCH"


def parse_channel(value: str) -> Channel | None:
    v = value.strip().lower()
    if v in CHANNELS:
        return cast(Channel, v)
    return None


def branch_for(
    channel: Channel,
    *,
    branches: Mapping[str, str],
    override: str | None,
) -> str:
    """Remote branch whose tip is the release candidate for `channel`."""
    if override:
        return override
    return branches.get(channel, channel)


def docs_label(channel: Channel, version_number: str | None) -> str:
    """Label in documentation tarball names and the versioned docs dir.

    Stable docs tarballs are named after the version number; the others
    after the channel.
    """
    if channel == "stable":
        if not version_number:
            raise ValueError("stable docs need the release version number")
        return version_number
    return channel
