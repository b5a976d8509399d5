from __future__ import annotations

import json
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from promote.core.config import DistConfig
from promote.core.result import Err, Ok, Result
from promote.output.console import ConsoleProtocol
from promote.platform.files import atomic_write_text
from promote.platform.process import run as run_process
from promote.services.errors import PromoteError
from promote.services.timeouts import AWS_API_TIMEOUT_SECONDS

PAYLOAD_FILE_NAME = "payload.json"


class Invalidator(Protocol):
    def invalidate_index(self) -> Result[None, PromoteError]:
        """Drop cached release index paths (manifests, channel files)."""
        ...

    def invalidate_docs(self, docs_dir: str) -> Result[None, PromoteError]:
        """Drop cached documentation under ``doc/<docs_dir>``."""
        ...


def index_paths(upload_dir: str, product: str) -> list[str]:
    base = f"/{upload_dir}"
    return [f"{base}/channel*", f"{base}/{product}*", f"{base}/index*", f"{base}/"]


def docs_paths(docs_dir: str) -> list[str]:
    # Stable docs replace the site root landing pages too.
    if docs_dir == "stable":
        return ["/*"]
    return [f"/{docs_dir}/*"]


def invalidation_batch(paths: list[str], caller_reference: str) -> dict[str, object]:
    return {
        "Paths": {"Items": list(paths), "Quantity": len(paths)},
        "CallerReference": caller_reference,
    }


def _random_reference() -> str:
    return f"rct-{random.getrandbits(63)}"


class CloudFrontInvalidator:
    """Submits invalidations through ``aws cloudfront create-invalidation``."""

    def __init__(
        self,
        *,
        dist: DistConfig,
        product: str,
        work_dir: Path,
        console: ConsoleProtocol,
        caller_reference: Callable[[], str] = _random_reference,
    ) -> None:
        self._dist = dist
        self._product = product
        self._work_dir = work_dir
        self._console = console
        self._caller_reference = caller_reference

    def invalidate_index(self) -> Result[None, PromoteError]:
        payload = self._work_dir / PAYLOAD_FILE_NAME
        batch = invalidation_batch(
            index_paths(self._dist.upload_dir, self._product), self._caller_reference()
        )
        try:
            atomic_write_text(payload, json.dumps(batch))
        except OSError as e:
            return Err(PromoteError(kind="io_failed", message=f"cannot write {payload}: {e}"))

        return self._create_invalidation(
            [
                "--invalidation-batch",
                f"file://{payload}",
                "--distribution-id",
                self._dist.cloudfront_distribution_id,
            ]
        )

    def invalidate_docs(self, docs_dir: str) -> Result[None, PromoteError]:
        return self._create_invalidation(
            [
                "--distribution-id",
                self._dist.docs_distribution_id,
                "--paths",
                *docs_paths(docs_dir),
            ]
        )

    def _create_invalidation(self, args: list[str]) -> Result[None, PromoteError]:
        cmd = ["aws", "cloudfront", "create-invalidation", *args]
        self._console.command(cmd)
        result = run_process(
            cmd,
            cwd=self._work_dir,
            extra_env=self._dist.aws_env(),
            timeout=AWS_API_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            e = result.error
            return Err(
                PromoteError(
                    kind="invalidation_failed",
                    message=f"cloudfront invalidation failed (exit {e.returncode})",
                    hint=e.detail,
                )
            )
        return Ok(None)


def _empty_calls() -> list[str]:
    return []


@dataclass
class MockInvalidator:
    """Records invalidations; ``calls`` holds ``"index"`` or ``"docs:<dir>"``."""

    calls: list[str] = field(default_factory=_empty_calls)
    fail: bool = False

    def invalidate_index(self) -> Result[None, PromoteError]:
        return self._record("index")

    def invalidate_docs(self, docs_dir: str) -> Result[None, PromoteError]:
        return self._record(f"docs:{docs_dir}")

    def _record(self, call: str) -> Result[None, PromoteError]:
        self.calls.append(call)
        if self.fail:
            return Err(PromoteError(kind="invalidation_failed", message=f"{call} failed (mock)"))
        return Ok(None)
