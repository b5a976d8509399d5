from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from promote.core.config import PromoteConfig, load_config
from promote.core.errors import ErrorCode
from promote.core.result import Err
from promote.git.repository import Repository
from promote.output.console import ConsoleProtocol, RichConsole, Style
from promote.platform.http import HttpClient, RealHttpClient
from promote.services.cdn import CloudFrontInvalidator, Invalidator
from promote.services.channel import OVERRIDE_BRANCH_ENV, Channel, parse_channel
from promote.services.pipeline import WorkPaths
from promote.services.signing import BuildTool, DistBuildTool
from promote.services.source import GitSourceTracker, SourceTracker
from promote.services.storage import AwsCliStorage, ObjectStorage


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: PromoteConfig
    channel: Channel
    paths: WorkPaths
    console: ConsoleProtocol
    source: SourceTracker
    storage: ObjectStorage
    build_tool: BuildTool
    invalidator: Invalidator
    http: HttpClient


def resolve_channel(value: str, console: ConsoleProtocol) -> Channel:
    channel = parse_channel(value)
    if channel is None:
        console.error(f"unknown channel: {value}")
        console.print("expected one of: nightly, beta, stable", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return channel


def build_context(work: Path, channel_name: str, secrets: Path) -> CLIContext:
    console = RichConsole()
    channel = resolve_channel(channel_name, console)

    config_result = load_config(secrets)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    config = config_result.value

    try:
        root = work.expanduser().resolve()
    except OSError as e:
        console.error(f"invalid work directory: {e}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    paths = WorkPaths(root=root)

    repo = Repository(paths.source)
    return CLIContext(
        config=config,
        channel=channel,
        paths=paths,
        console=console,
        source=GitSourceTracker(
            repo=repo,
            url=config.promote.repository,
            branches=config.promote.branch_map(),
            override_branch=os.environ.get(OVERRIDE_BRANCH_ENV) or None,
            console=console,
        ),
        storage=AwsCliStorage(credentials=config.dist.aws_env(), cwd=root, console=console),
        build_tool=DistBuildTool(
            repo=repo,
            build_dir=paths.build,
            channel=channel,
            dist=config.dist,
            console=console,
        ),
        invalidator=CloudFrontInvalidator(
            dist=config.dist,
            product=config.promote.product,
            work_dir=root,
            console=console,
        ),
        http=RealHttpClient(),
    )
