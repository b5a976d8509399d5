"""Tests for promote.services.signing module."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

import promote.git.repository as repository_mod
import promote.services.signing as signing_mod
from promote.core.config import DistConfig
from promote.core.result import Err, Ok, Result
from promote.git.repository import Repository
from promote.output.console import MockConsole
from promote.platform.process import ProcessError
from promote.services.signing import DistBuildTool, MockBuildTool, render_build_config


class TestRenderBuildConfig:
    def test_appends_dist_section(self, tmp_path: Path) -> None:
        existing = 'changelog-seen = 2\n\n[rust]\nchannel = "beta"\n'

        text = render_build_config(
            existing,
            sign_folder=tmp_path / "dl",
            gpg_password_file="/secrets/gpg-pass",
            upload_addr="https://static.example.org/dist",
        )

        parsed = tomllib.loads(text)
        assert parsed["rust"] == {"channel": "beta"}
        assert parsed["dist"] == {
            "sign-folder": str(tmp_path / "dl"),
            "gpg-password-file": "/secrets/gpg-pass",
            "upload-addr": "https://static.example.org/dist",
        }

    def test_replaces_existing_dist_section(self) -> None:
        existing = '[dist]\nsign-folder = "/old"\n\n[llvm]\nninja = true\n'

        text = render_build_config(
            existing, sign_folder=Path("/new"), gpg_password_file="p", upload_addr="u"
        )

        parsed = tomllib.loads(text)
        assert parsed["dist"]["sign-folder"] == "/new"
        assert parsed["llvm"] == {"ninja": True}
        assert text.count("[dist]") == 1

    @pytest.mark.parametrize(
        "header",
        ["[dist]  # set by configure", "[ dist ]", '["dist"]', "  [dist]"],
    )
    def test_replaces_dist_header_variants(self, header: str) -> None:
        existing = f'{header}\nsign-folder = "/old"\n\n[llvm]\nninja = true\n'

        text = render_build_config(
            existing, sign_folder=Path("/new"), gpg_password_file="p", upload_addr="u"
        )

        parsed = tomllib.loads(text)
        assert parsed["dist"]["sign-folder"] == "/new"
        assert parsed["llvm"] == {"ninja": True}
        assert "/old" not in text

    def test_keeps_tables_that_only_mention_dist(self) -> None:
        existing = "[distribution]\nkeep = true\n"

        text = render_build_config(
            existing, sign_folder=Path("/new"), gpg_password_file="p", upload_addr="u"
        )

        assert tomllib.loads(text)["distribution"] == {"keep": True}

    def test_escapes_quotes(self) -> None:
        text = render_build_config(
            "", sign_folder=Path("/dl"), gpg_password_file='we"ird', upload_addr="u"
        )

        assert tomllib.loads(text)["dist"]["gpg-password-file"] == 'we"ird'


class FakeTools:
    """Stands in for git, configure and x.py."""

    def __init__(self, output_dir: Path, *, produce: bool = True) -> None:
        self.calls: list[list[str]] = []
        self._output_dir = output_dir
        self._produce = produce

    def run(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del timeout
        self.calls.append(cmd)
        if cmd[-1].startswith("--release-channel="):
            (cwd / "config.toml").write_text('[llvm]\nninja = false\n', encoding="utf-8")
        return Ok("")

    def run_silent(self, cmd: list[str], cwd: Path) -> Result[None, ProcessError]:
        del cwd
        self.calls.append(cmd)
        if self._produce:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            (self._output_dir / "channel-rust-beta.toml").write_text("manifest", encoding="utf-8")
        return Ok(None)


class TestDistBuildTool:
    def _tool(self, tmp_path: Path, dist: DistConfig) -> DistBuildTool:
        return DistBuildTool(
            repo=Repository(tmp_path / "source"),
            build_dir=tmp_path / "build",
            channel="beta",
            dist=dist,
            console=MockConsole(),
        )

    def test_runs_configure_then_hash_and_sign(
        self, tmp_path: Path, dist: DistConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        tool = self._tool(tmp_path, dist)
        fake = FakeTools(tool.output_dir)
        monkeypatch.setattr(repository_mod, "run_process", fake.run)
        monkeypatch.setattr(signing_mod, "run_process", fake.run)
        monkeypatch.setattr(signing_mod, "run_silent", fake.run_silent)

        result = tool.sign("1234567deadbeef", tmp_path / "dl")

        assert result == Ok(tool.output_dir)
        source = tmp_path / "source"
        assert fake.calls == [
            ["git", "-C", str(source), "reset", "--hard", "1234567deadbeef"],
            [str(source / "configure"), "--release-channel=beta"],
            [str(source / "x.py"), "dist", "hash-and-sign"],
        ]
        config = tomllib.loads((tmp_path / "build" / "config.toml").read_text(encoding="utf-8"))
        assert config["llvm"] == {"ninja": False}
        assert config["dist"]["sign-folder"] == str(tmp_path / "dl")
        assert config["dist"]["upload-addr"] == "https://static.example.org/dist"

    def test_no_output_is_failure(
        self, tmp_path: Path, dist: DistConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        tool = self._tool(tmp_path, dist)
        fake = FakeTools(tool.output_dir, produce=False)
        monkeypatch.setattr(repository_mod, "run_process", fake.run)
        monkeypatch.setattr(signing_mod, "run_process", fake.run)
        monkeypatch.setattr(signing_mod, "run_silent", fake.run_silent)

        result = tool.sign("1234567deadbeef", tmp_path / "dl")

        assert isinstance(result, Err)
        assert result.error.kind == "build_tool_failed"

    def test_sign_failure(
        self, tmp_path: Path, dist: DistConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        tool = self._tool(tmp_path, dist)
        fake = FakeTools(tool.output_dir)

        def failing(cmd: list[str], cwd: Path) -> Result[None, ProcessError]:
            del cwd
            return Err(ProcessError(tuple(cmd), 1, "", ""))

        monkeypatch.setattr(repository_mod, "run_process", fake.run)
        monkeypatch.setattr(signing_mod, "run_process", fake.run)
        monkeypatch.setattr(signing_mod, "run_silent", failing)

        result = tool.sign("1234567deadbeef", tmp_path / "dl")

        assert isinstance(result, Err)
        assert result.error.kind == "build_tool_failed"
        assert "hash-and-sign" in result.error.message


class TestMockBuildTool:
    def test_signs_every_staged_file(self, tmp_path: Path) -> None:
        staging = tmp_path / "dl"
        staging.mkdir()
        (staging / "rustc.tar.gz").write_bytes(b"rustc")
        tool = MockBuildTool(
            output_dir=tmp_path / "out",
            manifest_name="channel-rust-beta.toml",
            product="rust",
            version="1.51.0-beta.5 (1234567 2021-03-02)",
        )

        result = tool.sign("1234567", staging)

        assert result == Ok(tmp_path / "out")
        names = sorted(p.name for p in (tmp_path / "out").iterdir())
        assert names == [
            "channel-rust-beta.toml",
            "channel-rust-beta.toml.sha256",
            "rustc.tar.gz.asc",
            "rustc.tar.gz.sha256",
        ]
        manifest = tomllib.loads((tmp_path / "out" / "channel-rust-beta.toml").read_text())
        assert manifest["pkg"]["rust"]["version"] == "1.51.0-beta.5 (1234567 2021-03-02)"
