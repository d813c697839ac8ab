from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from .context import BuildContext
from .lib.command import Policy
from .lib.errors import BuildError, StepFailed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single pipeline step."""

    step_id: str
    policy: Policy

    def run(self, ctx: BuildContext) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str]
    warnings: int


def run_pipeline(ctx: BuildContext, steps: Sequence[Step]) -> PipelineResult:
    """Run steps in order, applying each step's policy to its failure.

    A mandatory step's error stops the pipeline as StepFailed. A best-effort
    step's error is recorded as a warning and the next step runs.
    """

    report = ctx.report

    for step in steps:
        report.current_step = step.step_id
        logger.info("Running step %s", step.step_id)
        try:
            step.run(ctx)
        except (BuildError, OSError) as e:
            if step.policy is Policy.BEST_EFFORT:
                logger.warning("Step %s failed (continuing): %s", step.step_id, e)
                report.warn(str(e))
            else:
                logger.error("Step %s failed: %s", step.step_id, e)
                raise StepFailed(step.step_id, e) from e
        report.ran_steps.append(step.step_id)

    report.current_step = None
    return PipelineResult(ran_steps=list(report.ran_steps), warnings=len(report.warnings))
