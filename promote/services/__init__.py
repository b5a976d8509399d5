"""Promotion services.

Each step of a promotion lives in its own module; `pipeline` strings them
together. External systems (git, object storage, the signing tool, the CDN)
sit behind protocols with real and mock implementations.
"""

from promote.services.decision import Decision, ReleaseDecisionEngine
from promote.services.errors import PromoteError, PromoteErrorKind
from promote.services.pipeline import PipelineOutcome, PromotionPipeline, WorkPaths

__all__ = [
    "Decision",
    "ReleaseDecisionEngine",
    "PromoteError",
    "PromoteErrorKind",
    "PipelineOutcome",
    "PromotionPipeline",
    "WorkPaths",
]
