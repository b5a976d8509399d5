"""Whether a channel needs a new release.

Two checks, cheapest first:

1. The live manifest's version string embeds a short revision. If it is the
   candidate's, nothing changed upstream and we stop before touching CI
   storage.
2. Otherwise the candidate artifacts are staged and the version baked into
   them is compared with the live one. A changed revision with the same
   version number is a merge that has not bumped the version yet (beta and
   stable only; every new nightly revision is a release).

Both checks read durable state, so re-running after any failure re-derives
the same answer and never republishes identical content.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from promote.core.config import PromoteConfig
from promote.core.result import Err, Ok, Result
from promote.output.console import ConsoleProtocol, Style
from promote.platform.http import HttpClient
from promote.services.artifacts import ArtifactSet
from promote.services.channel import Channel
from promote.services.errors import PromoteError
from promote.services.manifest import fetch_previous_version
from promote.services.stager import read_candidate_version
from promote.services.version import ToolchainVersion, channel_switch_suspected, short_revision

DecisionAction = Literal["skip", "proceed"]

StageArtifacts = Callable[[str], Result[ArtifactSet, PromoteError]]


@dataclass(frozen=True, slots=True)
class Decision:
    action: DecisionAction
    reason: str
    previous: ToolchainVersion
    current: ToolchainVersion | None = None
    artifacts: ArtifactSet | None = None

    @property
    def should_release(self) -> bool:
        return self.action == "proceed"


def evaluate(
    *,
    channel: Channel,
    revision: str,
    previous: ToolchainVersion,
    stage: StageArtifacts,
    version_component: str,
    console: ConsoleProtocol,
) -> Result[Decision, PromoteError]:
    if previous.mentions_revision(revision):
        return Ok(
            Decision(
                action="skip",
                reason=f"revision {short_revision(revision)} is already published",
                previous=previous,
            )
        )

    staged = stage(revision)
    if isinstance(staged, Err):
        return staged
    artifacts = staged.value

    current_r = read_candidate_version(artifacts, component=version_component)
    if isinstance(current_r, Err):
        return current_r
    current = current_r.value
    console.print(f"candidate version: {current}", Style.DIM)

    if channel_switch_suspected(previous, current):
        return Err(
            PromoteError(
                kind="channel_mismatch",
                message=(
                    f"candidate version '{current}' does not match the {channel} channel "
                    f"(live: '{previous}')"
                ),
                hint="Was this branch just created with a pending PR to change its release channel?",
            )
        )

    if channel != "nightly" and current.same_release_as(previous):
        return Ok(
            Decision(
                action="skip",
                reason=f"version {current.number} is unchanged (version bump not merged yet)",
                previous=previous,
                current=current,
                artifacts=artifacts,
            )
        )

    return Ok(
        Decision(
            action="proceed",
            reason=f"{previous.number} -> {current.number}",
            previous=previous,
            current=current,
            artifacts=artifacts,
        )
    )


class ReleaseDecisionEngine:
    def __init__(
        self,
        *,
        config: PromoteConfig,
        http: HttpClient,
        stage: StageArtifacts,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._http = http
        self._stage = stage
        self._console = console

    def decide(self, channel: Channel, revision: str) -> Result[Decision, PromoteError]:
        previous = fetch_previous_version(
            http=self._http,
            dist=self._config.dist,
            product=self._config.promote.product,
            channel=channel,
        )
        if isinstance(previous, Err):
            return previous
        self._console.print(f"previous version: {previous.value}", Style.DIM)

        return evaluate(
            channel=channel,
            revision=revision,
            previous=previous.value,
            stage=self._stage,
            version_component=self._config.promote.version_component,
            console=self._console,
        )
