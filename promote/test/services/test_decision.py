"""Tests for promote.services.decision module."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

from promote.core.config import PromoteConfig
from promote.core.result import Err, Ok, Result
from promote.output.console import MockConsole
from promote.platform.http import MockHttpClient
from promote.services.artifacts import ArtifactSet
from promote.services.channel import Channel
from promote.services.decision import ReleaseDecisionEngine, evaluate
from promote.services.errors import PromoteError
from promote.services.version import ToolchainVersion

TARGET = "x86_64-unknown-linux-gnu"
MakeTarGz = Callable[[Mapping[str, bytes]], bytes]


class FakeStage:
    """Stages a single rustc archive carrying `version`."""

    def __init__(self, root: Path, make_tar_gz: MakeTarGz, version: str | None) -> None:
        self.root = root
        self.calls: list[str] = []
        self._make_tar_gz = make_tar_gz
        self._version = version

    def __call__(self, revision: str) -> Result[ArtifactSet, PromoteError]:
        self.calls.append(revision)
        self.root.mkdir(parents=True, exist_ok=True)
        top = f"rustc-x-{TARGET}"
        members = {f"{top}/README": b"x"}
        if self._version is not None:
            members[f"{top}/version"] = self._version.encode()
        (self.root / f"{top}.tar.gz").write_bytes(self._make_tar_gz(members))
        return Ok(ArtifactSet.scan(self.root))


def _evaluate(
    channel: Channel, revision: str, previous: str, stage: FakeStage
) -> Result[object, PromoteError]:
    return evaluate(
        channel=channel,
        revision=revision,
        previous=ToolchainVersion.parse(previous),
        stage=stage,
        version_component="rustc",
        console=MockConsole(),
    )


class TestEvaluate:
    def test_same_revision_skips_without_staging(
        self, tmp_path: Path, make_tar_gz: MakeTarGz
    ) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.51.0 (zzzzzzz 2021-03-01)")

        result = evaluate(
            channel="stable",
            revision="abcdef1999999999",
            previous=ToolchainVersion.parse("1.50.0 (abcdef1 2021-01-01)"),
            stage=stage,
            version_component="rustc",
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        assert result.value.action == "skip"
        assert not result.value.should_release
        assert stage.calls == []

    def test_same_revision_skips_nightly_too(self, tmp_path: Path, make_tar_gz: MakeTarGz) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "unused")

        result = _evaluate(
            "nightly", "abcdef1234", "1.52.0-nightly (abcdef1 2021-03-01)", stage
        )

        assert isinstance(result, Ok)
        assert stage.calls == []

    def test_stable_same_version_new_revision_skips(
        self, tmp_path: Path, make_tar_gz: MakeTarGz
    ) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.50.0 (9999999aa 2021-02-01)\n")

        result = evaluate(
            channel="stable",
            revision="1234567deadbeef",
            previous=ToolchainVersion.parse("1.50.0 (abcdef1 2021-01-01)"),
            stage=stage,
            version_component="rustc",
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        decision = result.value
        assert decision.action == "skip"
        assert decision.current is not None
        assert decision.current.number == "1.50.0"
        assert stage.calls == ["1234567deadbeef"]

    def test_beta_version_bump_proceeds(self, tmp_path: Path, make_tar_gz: MakeTarGz) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.51.0-beta.5 (1234567 2021-03-02)")

        result = evaluate(
            channel="beta",
            revision="1234567deadbeef",
            previous=ToolchainVersion.parse("1.51.0-beta.4 (abcdef1 2021-02-27)"),
            stage=stage,
            version_component="rustc",
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        decision = result.value
        assert decision.should_release
        assert decision.artifacts is not None
        assert decision.reason == "1.51.0-beta.4 -> 1.51.0-beta.5"

    def test_nightly_never_skips_on_equal_version(
        self, tmp_path: Path, make_tar_gz: MakeTarGz
    ) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.52.0-nightly (1234567 2021-03-02)")

        result = evaluate(
            channel="nightly",
            revision="1234567deadbeef",
            previous=ToolchainVersion.parse("1.52.0-nightly (abcdef1 2021-03-01)"),
            stage=stage,
            version_component="rustc",
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        assert result.value.action == "proceed"

    def test_label_change_aborts(self, tmp_path: Path, make_tar_gz: MakeTarGz) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.52.0-nightly (1234567 2021-03-02)")

        result = evaluate(
            channel="beta",
            revision="1234567deadbeef",
            previous=ToolchainVersion.parse("1.51.0-beta.4 (abcdef1 2021-02-27)"),
            stage=stage,
            version_component="rustc",
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "channel_mismatch"
        assert result.error.hint is not None

    def test_label_change_aborts_towards_stable(
        self, tmp_path: Path, make_tar_gz: MakeTarGz
    ) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.51.0 (1234567 2021-03-02)")

        result = _evaluate("beta", "1234567deadbeef", "1.51.0-beta.4 (abcdef1 2021-02-27)", stage)

        assert isinstance(result, Err)
        assert result.error.kind == "channel_mismatch"

    def test_missing_version_file(self, tmp_path: Path, make_tar_gz: MakeTarGz) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, None)

        result = _evaluate("nightly", "1234567deadbeef", "1.52.0-nightly (abcdef1 x)", stage)

        assert isinstance(result, Err)
        assert result.error.kind == "no_version"

    def test_stage_failure_propagates(self) -> None:
        def stage(revision: str) -> Result[ArtifactSet, PromoteError]:
            return Err(PromoteError(kind="no_artifacts", message=f"nothing for {revision}"))

        result = evaluate(
            channel="beta",
            revision="1234567deadbeef",
            previous=ToolchainVersion.parse("1.51.0-beta.4 (abcdef1 2021-02-27)"),
            stage=stage,
            version_component="rustc",
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "no_artifacts"


class TestReleaseDecisionEngine:
    def test_reads_live_manifest(
        self,
        tmp_path: Path,
        config: PromoteConfig,
        make_tar_gz: MakeTarGz,
        make_manifest: Callable[[str, str], str],
    ) -> None:
        http = MockHttpClient()
        http.set_text(
            "https://static.example.org/dist/channel-rust-stable.toml",
            make_manifest("rust", "1.50.0 (abcdef1 2021-01-01)"),
        )
        stage = FakeStage(tmp_path, make_tar_gz, "1.51.0 (1234567 2021-03-25)")
        engine = ReleaseDecisionEngine(config=config, http=http, stage=stage, console=MockConsole())

        result = engine.decide("stable", "1234567deadbeef")

        assert isinstance(result, Ok)
        assert result.value.should_release
        assert result.value.previous.number == "1.50.0"

    def test_manifest_unavailable_is_fatal(
        self, tmp_path: Path, config: PromoteConfig, make_tar_gz: MakeTarGz
    ) -> None:
        stage = FakeStage(tmp_path, make_tar_gz, "1.51.0 (1234567 2021-03-25)")
        engine = ReleaseDecisionEngine(
            config=config, http=MockHttpClient(), stage=stage, console=MockConsole()
        )

        result = engine.decide("stable", "1234567deadbeef")

        assert isinstance(result, Err)
        assert result.error.kind == "manifest_fetch_failed"
        assert stage.calls == []
