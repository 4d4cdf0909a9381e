"""
Ordered steps with compensations (a minimal saga runner).

Why:
    Provisioning touches several independent stores without a shared
    transaction. Describing the flow as `(forward, compensate)` pairs makes
    the rollback order a property of the runner instead of repeated
    hand-written cleanup in every failure branch.

Behavior:
    - Forwards run in list order. Each forward receives the shared context
      dict and its return value is stored under `context[step.name]`.
    - On the first failing forward, compensations of the completed steps run
      in exact reverse order, then `StepFailed` is raised with the original
      exception as `cause` (and `__cause__`).
    - Compensation is best-effort: a failing compensation is logged and the
      remaining ones still run. It is never retried.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

logger = structlog.get_logger("trainwithus.provisioning.saga")

Context = Dict[str, Any]


@dataclass(frozen=True)
class Step:
    name: str
    forward: Callable[[Context], Any]
    compensate: Optional[Callable[[Context], None]] = None


class StepFailed(Exception):
    def __init__(self, step: str, cause: BaseException, *, compensated: Sequence[str] = ()) -> None:
        super().__init__(str(cause))
        self.step = step
        self.cause = cause
        self.compensated = list(compensated)


@dataclass
class SagaRun:
    context: Context
    completed: List[str] = field(default_factory=list)


def _compensate(completed: List[Step], context: Context) -> List[str]:
    done: List[str] = []
    for step in reversed(completed):
        if step.compensate is None:
            continue
        try:
            step.compensate(context)
            done.append(step.name)
        except Exception as exc:
            logger.error(
                "provisioning_compensation_failed",
                step=step.name,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
    return done


def run_saga(steps: Sequence[Step], context: Optional[Context] = None) -> SagaRun:
    """Execute `steps` in order; unwind completed steps on the first failure."""
    names = [s.name for s in steps]
    if len(set(names)) != len(names):
        raise ValueError("duplicate_step_name")
    run = SagaRun(context=context if context is not None else {})
    completed: List[Step] = []
    for step in steps:
        try:
            run.context[step.name] = step.forward(run.context)
        except Exception as exc:
            logger.warning(
                "provisioning_step_failed",
                step=step.name,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            compensated = _compensate(completed, run.context)
            raise StepFailed(step.name, exc, compensated=compensated) from exc
        completed.append(step)
        run.completed.append(step.name)
    return run


__all__ = ["Step", "StepFailed", "SagaRun", "run_saga"]
