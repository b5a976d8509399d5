"""Typed loading of the secrets/configuration document.

The document is a TOML file with a required ``[dist]`` table (publish
target, signing and credential settings) and an optional ``[promote]``
table that tunes where artifacts come from and which ones are required.
It is loaded once at startup and passed by reference to every component.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_str_list, get_table

__all__ = [
    "ConfigError",
    "DistConfig",
    "PromoteConfig",
    "PromoteSettings",
    "CHANNEL_NAMES",
    "DEFAULT_BRANCHES",
    "load_config",
]

DEFAULT_REPOSITORY = "https://github.com/rust-lang/rust"
DEFAULT_CI_BUCKET = "rust-lang-ci2"
DEFAULT_CI_PREFIX = "rustc-builds"
DEFAULT_PRODUCT = "rust"
DEFAULT_REFERENCE_TARGET = "x86_64-unknown-linux-gnu"
DEFAULT_VERSION_COMPONENT = "rustc"
DEFAULT_REQUIRED_COMPONENTS = ("rustc", "rust-std", "cargo")
DEFAULT_ENFORCE_COMPONENTS = ("nightly",)

DEFAULT_BRANCHES: Mapping[str, str] = MappingProxyType(
    {
        "nightly": "master",
        "beta": "beta",
        "stable": "stable",
    }
)

# Channel names accepted in `[promote]` policy lists and branch tables.
CHANNEL_NAMES = tuple(DEFAULT_BRANCHES)

_REQUIRED_DIST_KEYS = (
    "upload-addr",
    "upload-dir",
    "upload-bucket",
    "gpg-password-file",
    "cloudfront-distribution-id",
    "rustdoc-cf-distribution-id",
    "aws-access-key-id",
    "aws-secret-key",
)


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the configuration cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class DistConfig:
    """Public distribution target and credentials (``[dist]``)."""

    upload_addr: str
    upload_dir: str
    upload_bucket: str
    gpg_password_file: str
    cloudfront_distribution_id: str
    docs_distribution_id: str
    aws_access_key_id: str
    aws_secret_key: str = field(repr=False)

    @property
    def public_addr(self) -> str:
        """Base URL users download releases from."""
        return f"{self.upload_addr.rstrip('/')}/{self.upload_dir}"

    def aws_env(self) -> dict[str, str]:
        return {
            "AWS_ACCESS_KEY_ID": self.aws_access_key_id,
            "AWS_SECRET_ACCESS_KEY": self.aws_secret_key,
        }


@dataclass(frozen=True, slots=True)
class PromoteSettings:
    """Artifact source and validation policy (``[promote]``)."""

    repository: str = DEFAULT_REPOSITORY
    ci_bucket: str = DEFAULT_CI_BUCKET
    ci_prefix: str = DEFAULT_CI_PREFIX
    product: str = DEFAULT_PRODUCT
    reference_target: str = DEFAULT_REFERENCE_TARGET
    version_component: str = DEFAULT_VERSION_COMPONENT
    required_components: tuple[str, ...] = DEFAULT_REQUIRED_COMPONENTS
    enforce_components: tuple[str, ...] = DEFAULT_ENFORCE_COMPONENTS
    branches: tuple[tuple[str, str], ...] = tuple(DEFAULT_BRANCHES.items())

    def branch_map(self) -> dict[str, str]:
        """Channel -> branch, as a fresh dict."""
        return dict(self.branches)

    def ci_url(self, revision: str) -> str:
        """CI storage prefix holding the artifacts built for `revision`."""
        return f"s3://{self.ci_bucket}/{self.ci_prefix}/{revision}/"


@dataclass(frozen=True, slots=True)
class PromoteConfig:
    """Main configuration container."""

    dist: DistConfig
    promote: PromoteSettings = field(default_factory=PromoteSettings)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PromoteConfig:
        """Create a config from parsed TOML.

        Raises:
            ValueError: If ``[dist]`` or one of its required keys is missing, or
                a ``[promote]`` entry names an unknown channel.
        """
        dist = get_table(data, "dist")
        if dist is None:
            raise ValueError("missing [dist] table")

        missing = [key for key in _REQUIRED_DIST_KEYS if get_str(dist, key) is None]
        if missing:
            raise ValueError(f"missing [dist] keys: {', '.join(missing)}")

        def req(key: str) -> str:
            value = get_str(dist, key)
            assert value is not None
            return value

        promote: StrDict = get_table(data, "promote") or {}
        branches = dict(DEFAULT_BRANCHES)
        for key, branch in (get_table(promote, "branches") or {}).items():
            channel = _channel_name(key, "[promote.branches]")
            if not isinstance(branch, str) or not branch.strip():
                raise ValueError(f"invalid branch for channel {key!r}")
            branches[channel] = branch.strip()

        return cls(
            dist=DistConfig(
                upload_addr=req("upload-addr"),
                upload_dir=req("upload-dir").strip("/"),
                upload_bucket=req("upload-bucket"),
                gpg_password_file=req("gpg-password-file"),
                cloudfront_distribution_id=req("cloudfront-distribution-id"),
                docs_distribution_id=req("rustdoc-cf-distribution-id"),
                aws_access_key_id=req("aws-access-key-id"),
                aws_secret_key=req("aws-secret-key"),
            ),
            promote=PromoteSettings(
                repository=get_str(promote, "repository") or DEFAULT_REPOSITORY,
                ci_bucket=get_str(promote, "ci-bucket") or DEFAULT_CI_BUCKET,
                ci_prefix=(get_str(promote, "ci-prefix") or DEFAULT_CI_PREFIX).strip("/"),
                product=get_str(promote, "product") or DEFAULT_PRODUCT,
                reference_target=get_str(promote, "reference-target")
                or DEFAULT_REFERENCE_TARGET,
                version_component=get_str(promote, "version-component")
                or DEFAULT_VERSION_COMPONENT,
                required_components=_str_list(promote, "required-components")
                or DEFAULT_REQUIRED_COMPONENTS,
                enforce_components=tuple(
                    _channel_name(c, "[promote] enforce-components")
                    for c in _str_list(promote, "enforce-components")
                )
                if "enforce-components" in promote
                else DEFAULT_ENFORCE_COMPONENTS,
                branches=tuple(branches.items()),
            ),
        )


def _channel_name(value: str, where: str) -> str:
    name = value.strip().lower()
    if name not in CHANNEL_NAMES:
        raise ValueError(
            f"{where}: unknown channel {value!r} (expected one of: {', '.join(CHANNEL_NAMES)})"
        )
    return name


def _str_list(table: StrDict, key: str) -> tuple[str, ...]:
    if key not in table:
        return ()
    values = get_str_list(table, key)
    if values is None:
        raise ValueError(f"[promote] {key} must be a list of strings")
    return values


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[PromoteConfig, ConfigError]:
    """Load and validate the secrets/configuration document.

    Args:
        path: Path to the TOML secrets file

    Returns:
        Ok(PromoteConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(PromoteConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
