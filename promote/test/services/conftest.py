"""Fixtures shared by the service tests: configs and fake CI releases."""

from __future__ import annotations

import io
import lzma
import tarfile
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from promote.core.config import DistConfig, PromoteConfig, PromoteSettings

TARGET = "x86_64-unknown-linux-gnu"
OTHER_TARGET = "aarch64-unknown-linux-gnu"
HTML = "share/doc/rust/html"

ReleaseFactory = Callable[..., dict[str, bytes]]


def tar_gz(members: Mapping[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def ci_release(
    version: str,
    label: str,
    *,
    components: tuple[str, ...] = ("rustc", "rust-std", "cargo"),
    target: str = TARGET,
    compiler_docs: bool = False,
    residue: bool = True,
) -> dict[str, bytes]:
    """Files CI would upload for one revision.

    `label` is the channel name, or the version number for stable.
    """
    files: dict[str, bytes] = {}
    for component in components:
        top = f"{component}-{label}-{target}"
        members = {f"{top}/version": f"{version}\n".encode(), f"{top}/README": b"readme"}
        files[f"{top}.tar.gz"] = tar_gz(members)

    docs = f"rust-docs-{label}-{target}"
    files[f"{docs}.tar.gz"] = tar_gz(
        {
            f"{docs}/version": f"{version}\n".encode(),
            f"{docs}/rust-docs/{HTML}/index.html": b"<html>std</html>",
            f"{docs}/rust-docs/{HTML}/std/index.html": b"<html>std::</html>",
        }
    )
    if compiler_docs:
        rustc_docs = f"rustc-docs-{label}-{target}"
        files[f"{rustc_docs}.tar.gz"] = tar_gz(
            {f"{rustc_docs}/rustc-docs/{HTML}/rustc/index.html": b"<html>rustc</html>"}
        )

    src = f"rust-src-{label}"
    files[f"{src}.tar.xz"] = lzma.compress(tar_gz({f"{src}/lib.rs": b"fn main() {}"}))
    files[f"cargo-{label}-{OTHER_TARGET}.tar.gz"] = tar_gz({f"cargo-{label}/README": b"x"})

    if residue:
        files[f"rustc-{label}-{target}.tar.gz.asc"] = b"dev signature"
        files[f"rustc-{label}-{target}.tar.gz.sha256"] = b"dev checksum"
    return files


def write_files(root: Path, files: Mapping[str, bytes]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for name, data in files.items():
        (root / name).write_bytes(data)
    return root


def manifest_text(product: str, version: str) -> str:
    return f'manifest-version = "2"\n\n[pkg.{product}]\nversion = "{version}"\n'


@pytest.fixture
def make_release() -> ReleaseFactory:
    return ci_release


@pytest.fixture
def dist() -> DistConfig:
    return DistConfig(
        upload_addr="https://static.example.org",
        upload_dir="dist",
        upload_bucket="static-bucket",
        gpg_password_file="/secrets/gpg-pass",
        cloudfront_distribution_id="E1INDEX",
        docs_distribution_id="E2DOCS",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_key="s3cr3t",
    )


@pytest.fixture
def config(dist: DistConfig) -> PromoteConfig:
    return PromoteConfig(dist=dist, promote=PromoteSettings())


@pytest.fixture
def make_tar_gz() -> Callable[[Mapping[str, bytes]], bytes]:
    return tar_gz


@pytest.fixture
def write_tree() -> Callable[[Path, Mapping[str, bytes]], Path]:
    return write_files


@pytest.fixture
def make_manifest() -> Callable[[str, str], str]:
    return manifest_text
