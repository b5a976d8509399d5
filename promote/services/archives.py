"""Tarball helpers for staged artifacts.

Everything here works on the byte streams directly with the standard
library codecs; archives are never repacked.
"""

from __future__ import annotations

import gzip
import lzma
import os
import shutil
import tarfile
from pathlib import Path, PurePosixPath

__all__ = [
    "ArchiveError",
    "extract_subtree",
    "has_member_dir",
    "read_version_file",
    "recompress_xz_to_gz",
]

_COPY_CHUNK = 1024 * 1024


class ArchiveError(Exception):
    """An archive could not be read or written."""


def recompress_xz_to_gz(src: Path, dst: Path) -> None:
    """Decompress the xz stream in `src` and write it gzip'd (level 9) to `dst`.

    The output is written to a temporary sibling first so an interrupted run
    never leaves a truncated ``.gz`` that a later run would trust. The gzip
    header carries no file name and a zero timestamp, so the same input
    always produces the same bytes (and checksums).

    Raises:
        ArchiveError: If `src` is not a valid xz stream or I/O fails.
    """
    tmp = dst.with_name(f".{dst.name}.tmp")
    try:
        with (
            lzma.open(src, "rb") as xz,
            tmp.open("wb") as raw,
            gzip.GzipFile(filename="", mode="wb", fileobj=raw, compresslevel=9, mtime=0) as gz,
        ):
            shutil.copyfileobj(xz, gz, _COPY_CHUNK)
        os.replace(tmp, dst)
    except (lzma.LZMAError, EOFError, OSError) as e:
        tmp.unlink(missing_ok=True)
        raise ArchiveError(f"cannot recompress {src.name}: {e}") from e


def read_version_file(tarball: Path) -> str | None:
    """Return the contents of ``<top>/version`` inside a ``.tar.gz``, if any.

    Raises:
        ArchiveError: If the tarball cannot be read.
    """
    try:
        with tarfile.open(tarball, mode="r:gz") as tar:
            for member in tar:
                parts = PurePosixPath(member.name).parts
                if len(parts) != 2 or parts[1] != "version" or not member.isfile():
                    continue
                f = tar.extractfile(member)
                if f is None:
                    continue
                with f:
                    return f.read().decode("utf-8")
    except (tarfile.TarError, OSError, EOFError, UnicodeDecodeError) as e:
        raise ArchiveError(f"cannot read {tarball.name}: {e}") from e
    return None


def _relative_member(name: str, member_dir: str) -> PurePosixPath | None:
    prefix = member_dir.rstrip("/") + "/"
    if not name.startswith(prefix):
        return None
    rel = PurePosixPath(name[len(prefix) :])
    if not rel.parts or rel.is_absolute() or ".." in rel.parts:
        return None
    return rel


def has_member_dir(tarball: Path, member_dir: str) -> bool:
    """True if any member lives under `member_dir` inside the tarball.

    Raises:
        ArchiveError: If the tarball cannot be read.
    """
    try:
        with tarfile.open(tarball, mode="r:gz") as tar:
            return any(_relative_member(m.name, member_dir) is not None for m in tar)
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ArchiveError(f"cannot read {tarball.name}: {e}") from e


def extract_subtree(tarball: Path, member_dir: str, dest: Path) -> int:
    """Extract the files under `member_dir` into `dest`, dropping that prefix.

    Equivalent to ``tar xf <tarball> --strip-components=N <member_dir>`` where
    N is the depth of `member_dir`. Returns the number of files written.

    Raises:
        ArchiveError: If the tarball cannot be read or has no such directory.
    """
    written = 0
    try:
        with tarfile.open(tarball, mode="r:gz") as tar:
            for member in tar:
                rel = _relative_member(member.name, member_dir)
                if rel is None:
                    continue
                target = dest.joinpath(*rel.parts)
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if not member.isfile():
                    continue
                src = tar.extractfile(member)
                if src is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with src, target.open("wb") as out:
                    shutil.copyfileobj(src, out, _COPY_CHUNK)
                written += 1
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ArchiveError(f"cannot extract {member_dir} from {tarball.name}: {e}") from e

    if written == 0:
        raise ArchiveError(f"{tarball.name} has no files under {member_dir}")
    return written
