"""Tests for promote.platform.files module."""

from __future__ import annotations

from pathlib import Path

from promote.platform.files import atomic_write_text, list_files, reset_dir


def test_atomic_write_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "config.toml"
    atomic_write_text(path, "[dist]\n")

    assert path.read_text(encoding="utf-8") == "[dist]\n"
    assert list(path.parent.glob("*.tmp")) == []


def test_atomic_write_replaces(tmp_path: Path) -> None:
    path = tmp_path / "payload.json"
    atomic_write_text(path, "old")
    atomic_write_text(path, "new")

    assert path.read_text(encoding="utf-8") == "new"


def test_reset_dir_empties_existing(tmp_path: Path) -> None:
    target = tmp_path / "dl"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "file").write_text("x", encoding="utf-8")

    reset_dir(target)

    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_reset_dir_creates_missing(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"
    reset_dir(target)
    assert target.is_dir()


def test_list_files_skips_directories(tmp_path: Path) -> None:
    (tmp_path / "b.tar.gz").write_bytes(b"")
    (tmp_path / "a.tar.xz").write_bytes(b"")
    (tmp_path / "sub").mkdir()

    assert list_files(tmp_path) == ("a.tar.xz", "b.tar.gz")
    assert list_files(tmp_path / "missing") == ()
