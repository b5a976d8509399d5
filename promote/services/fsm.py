from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import TypeVar

from promote.core.result import Err, Ok, Result
from promote.services.errors import PromoteError

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class StepAdvance[S]:
    session: S


@dataclass(frozen=True, slots=True)
class StepFinish[S]:
    session: S


StepOutcome = StepAdvance[S] | StepFinish[S]
StepHandler = Callable[[S], Result[StepOutcome[S], PromoteError]]
GetStep = Callable[[S], str]
OnEnter = Callable[[str], None]


def advance[S](session: S) -> StepAdvance[S]:
    return StepAdvance(session=session)


def finish[S](session: S) -> StepFinish[S]:
    return StepFinish(session=session)


def run_state_machine(
    *,
    initial_state: S,
    get_step: GetStep[S],
    handlers: Mapping[str, StepHandler[S]],
    order: Sequence[str],
    on_enter: OnEnter | None = None,
) -> Result[S, PromoteError]:
    """Run handlers until one finishes or fails.

    Steps only move forward through `order`; a handler that goes back to an
    earlier (or the same) step is an error. A failed run is always restarted
    from the beginning, never resumed. Errors are stamped with the step that
    produced them.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None or step not in order:
            return Err(PromoteError(kind="invalid_transition", message=f"unknown step: {step}"))

        if on_enter is not None:
            on_enter(step)

        outcome = handler(current)
        if isinstance(outcome, Err):
            error = outcome.error
            return Err(error if error.step else replace(error, step=step))

        if isinstance(outcome.value, StepFinish):
            return Ok(outcome.value.session)

        current = outcome.value.session
        next_step = get_step(current)
        if next_step in order and order.index(next_step) <= order.index(step):
            return Err(
                PromoteError(
                    kind="invalid_transition",
                    message=f"step {step} cannot go back to {next_step}",
                    step=step,
                )
            )
