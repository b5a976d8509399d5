"""One promotion run for one channel.

Steps run strictly in order and never go back:

    locking -> syncing -> deciding -> staging -> signing -> publishing
            -> invalidating -> done

`deciding` ends the run early when there is nothing new to release. Any
error stops the run; the `PromoteError` returned names the step it happened
in. Runs hold no state between invocations, so a failed run is simply
started again and re-derives every decision from upstream and the live
manifest.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from promote.core.config import PromoteConfig
from promote.core.result import Err, Ok, Result
from promote.output.console import ConsoleProtocol
from promote.platform.http import HttpClient
from promote.platform.lock import WorkLock, acquire_lock
from promote.services.artifacts import ArtifactSet
from promote.services.cdn import Invalidator
from promote.services.channel import Channel
from promote.services.decision import Decision, ReleaseDecisionEngine
from promote.services.errors import PromoteError
from promote.services.fsm import StepOutcome, advance, finish, run_state_machine
from promote.services.publisher import PublishReport, Publisher
from promote.services.signing import BuildTool
from promote.services.source import SourceTracker
from promote.services.stager import ArtifactStager
from promote.services.storage import ObjectStorage

Step = Literal[
    "locking",
    "syncing",
    "deciding",
    "staging",
    "signing",
    "publishing",
    "invalidating",
    "done",
]

STEP_ORDER: tuple[Step, ...] = (
    "locking",
    "syncing",
    "deciding",
    "staging",
    "signing",
    "publishing",
    "invalidating",
    "done",
)


@dataclass(frozen=True, slots=True)
class WorkPaths:
    """Layout of the work directory shared by all runs."""

    root: Path

    @property
    def source(self) -> Path:
        return self.root / "source"

    @property
    def staging(self) -> Path:
        return self.root / "dl"

    @property
    def build(self) -> Path:
        return self.root / "build"

    @property
    def docs(self) -> Path:
        return self.root / "docs"


@dataclass(frozen=True, slots=True)
class RunState:
    step: Step
    history: tuple[Step, ...] = ()
    revision: str | None = None
    decision: Decision | None = None
    signed_dir: Path | None = None
    report: PublishReport | None = None

    def to(self, step: Step, **changes: object) -> RunState:
        return replace(self, step=step, history=(*self.history, self.step), **changes)


@dataclass(frozen=True, slots=True)
class PipelineOutcome:
    released: bool
    revision: str | None
    decision: Decision | None
    report: PublishReport | None
    history: tuple[Step, ...]


class PromotionPipeline:
    def __init__(
        self,
        *,
        config: PromoteConfig,
        channel: Channel,
        paths: WorkPaths,
        date: str,
        console: ConsoleProtocol,
        source: SourceTracker,
        storage: ObjectStorage,
        build_tool: BuildTool,
        invalidator: Invalidator,
        http: HttpClient,
        plan_only: bool = False,
    ) -> None:
        self._config = config
        self._channel = channel
        self._paths = paths
        self._date = date
        self._console = console
        self._source = source
        self._storage = storage
        self._build_tool = build_tool
        self._invalidator = invalidator
        self._plan_only = plan_only

        self._stager = ArtifactStager(
            settings=config.promote,
            storage=storage,
            staging_dir=paths.staging,
            console=console,
        )
        self._engine = ReleaseDecisionEngine(
            config=config,
            http=http,
            stage=self._stager.stage,
            console=console,
        )
        self._publisher = Publisher(
            config=config,
            storage=storage,
            docs_dir=paths.docs,
            console=console,
        )
        self._lock: WorkLock | None = None

    def run(self) -> Result[PipelineOutcome, PromoteError]:
        try:
            final = run_state_machine(
                initial_state=RunState(step="locking"),
                get_step=lambda s: s.step,
                handlers={
                    "locking": self._locking,
                    "syncing": self._syncing,
                    "deciding": self._deciding,
                    "staging": self._staging,
                    "signing": self._signing,
                    "publishing": self._publishing,
                    "invalidating": self._invalidating,
                },
                order=STEP_ORDER,
                on_enter=self._console.header,
            )
        finally:
            if self._lock is not None:
                self._lock.release()
                self._lock = None

        if isinstance(final, Err):
            return final
        state = final.value
        return Ok(
            PipelineOutcome(
                released=state.report is not None,
                revision=state.revision,
                decision=state.decision,
                report=state.report,
                history=(*state.history, state.step),
            )
        )

    def _locking(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        lock = lock_work_dir(self._paths.root)
        if isinstance(lock, Err):
            return lock
        self._lock = lock.value
        return Ok(advance(state.to("syncing")))

    def _syncing(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        synced = self._source.sync()
        if isinstance(synced, Err):
            return synced
        rev = self._source.resolve(self._channel)
        if isinstance(rev, Err):
            return rev
        return Ok(advance(state.to("deciding", revision=rev.value)))

    def _deciding(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        assert state.revision is not None
        decided = self._engine.decide(self._channel, state.revision)
        if isinstance(decided, Err):
            return decided
        decision = decided.value

        if not decision.should_release:
            self._console.info(f"nothing to release: {decision.reason}")
            self._discard_staging()
            return Ok(finish(state.to("done", decision=decision)))

        self._console.info(f"releasing {self._channel}: {decision.reason}")
        if self._plan_only:
            self._discard_staging()
            return Ok(finish(state.to("done", decision=decision)))
        return Ok(advance(state.to("staging", decision=decision)))

    def _staging(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        validated = self._stager.validate_components(self._artifacts(state), self._channel)
        if isinstance(validated, Err):
            return validated
        return Ok(advance(state.to("signing")))

    def _signing(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        assert state.revision is not None
        signed = self._build_tool.sign(state.revision, self._paths.staging)
        if isinstance(signed, Err):
            return signed

        # Keep the signatures next to the CI artifacts they cover.
        ci_url = self._config.promote.ci_url(state.revision)
        self._console.print(f"uploading signatures to {ci_url}")
        uploaded = self._storage.upload_tree(signed.value, ci_url)
        if isinstance(uploaded, Err):
            return uploaded
        return Ok(advance(state.to("publishing", signed_dir=signed.value)))

    def _publishing(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        decision = state.decision
        assert decision is not None and decision.current is not None
        assert state.signed_dir is not None
        published = self._publisher.publish(
            artifacts=self._artifacts(state),
            signed_dir=state.signed_dir,
            channel=self._channel,
            version=decision.current,
            date=self._date,
        )
        if isinstance(published, Err):
            return published
        self._console.success(f"published {decision.current} to {published.value.current_url}")
        return Ok(advance(state.to("invalidating", report=published.value)))

    def _invalidating(self, state: RunState) -> Result[StepOutcome[RunState], PromoteError]:
        assert state.report is not None
        invalidated = invalidate_release(self._invalidator, state.report.docs_dirs)
        if isinstance(invalidated, Err):
            return invalidated
        self._discard_staging()
        return Ok(finish(state.to("done")))

    def _artifacts(self, state: RunState) -> ArtifactSet:
        assert state.decision is not None and state.decision.artifacts is not None
        return state.decision.artifacts

    def _discard_staging(self) -> None:
        staging = self._paths.staging
        if not staging.exists():
            return
        try:
            shutil.rmtree(staging)
        except OSError as e:
            # The next run resets the directory before using it.
            self._console.warning(f"could not remove {staging}: {e}")


def invalidate_release(
    invalidator: Invalidator, docs_dirs: tuple[str, ...]
) -> Result[None, PromoteError]:
    """Invalidate the release index, then each published docs directory."""
    index = invalidator.invalidate_index()
    if isinstance(index, Err):
        return Err(_stale_cache(index.error))
    for d in docs_dirs:
        docs = invalidator.invalidate_docs(d)
        if isinstance(docs, Err):
            return Err(_stale_cache(docs.error))
    return Ok(None)


def _stale_cache(error: PromoteError) -> PromoteError:
    rerun = "The release is live. Run `promote-release invalidate` to refresh the CDN."
    hint = f"{error.hint}\n{rerun}" if error.hint else rerun
    return replace(error, hint=hint)


def lock_work_dir(root: Path) -> Result[WorkLock, PromoteError]:
    """Take the work directory lock; only one promotion may use `root` at a time."""
    lock = acquire_lock(root)
    if isinstance(lock, Err):
        e = lock.error
        return Err(
            PromoteError(
                kind="lock_contention" if e.contended else "io_failed",
                message=e.message,
                hint=str(e.path),
            )
        )
    return lock
