from __future__ import annotations

import tomllib

from promote.core.config import DistConfig
from promote.core.result import Err, Ok, Result
from promote.core.structured import StrDict, as_str_dict, get_dotted
from promote.platform.http import HttpClient
from promote.services.channel import Channel
from promote.services.errors import PromoteError
from promote.services.version import ToolchainVersion


def manifest_name(product: str, channel: Channel) -> str:
    return f"channel-{product}-{channel}.toml"


def manifest_url(dist: DistConfig, product: str, channel: Channel) -> str:
    return f"{dist.public_addr}/{manifest_name(product, channel)}"


def parse_manifest(text: str) -> Result[StrDict, PromoteError]:
    try:
        data = as_str_dict(tomllib.loads(text))
    except tomllib.TOMLDecodeError as e:
        return Err(PromoteError(kind="manifest_fetch_failed", message=f"invalid manifest: {e}"))
    if data is None:
        return Err(PromoteError(kind="manifest_fetch_failed", message="manifest is not a table"))
    return Ok(data)


def previous_version(manifest: StrDict, product: str) -> Result[ToolchainVersion, PromoteError]:
    """The ``pkg.<product>.version`` string of a published manifest."""
    value = get_dotted(manifest, f"pkg.{product}.version")
    if not isinstance(value, str) or not value.strip():
        return Err(
            PromoteError(
                kind="manifest_fetch_failed",
                message=f"manifest has no string pkg.{product}.version",
            )
        )
    return Ok(ToolchainVersion.parse(value))


def fetch_previous_version(
    *,
    http: HttpClient,
    dist: DistConfig,
    product: str,
    channel: Channel,
) -> Result[ToolchainVersion, PromoteError]:
    """Download the live manifest for `channel` and read its version."""
    url = manifest_url(dist, product, channel)
    body = http.get_text(url)
    if isinstance(body, Err):
        return Err(
            PromoteError(
                kind="manifest_fetch_failed",
                message=f"cannot download {url}",
                hint=str(body.error),
            )
        )

    manifest = parse_manifest(body.value)
    if isinstance(manifest, Err):
        return manifest
    return previous_version(manifest.value, product)
