"""Data models for reporting coordination outcomes.

This module defines the structures returned by the plan executor and the
coordination engine after a request has been handled.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from task_coordinator.models.base import LanguageCode, ModelBase
from task_coordinator.models.enums import Action, Agent, ExecutionType, StepRole
from task_coordinator.models.intent import Intent
from task_coordinator.models.plan import ExecutionPlan


class StepResult(ModelBase):
    """The outcome of one capability call.

    Attributes:
        step: Step number within the plan (1 for single-step runs).
        agent: Capability provider that ran the step.
        action: Action performed.
        result: Produced text, when successful.
        success: Whether the call produced a result.
        error: Error text (with any remediation hint) when it failed.
        role: Role of the step within the run.
    """

    step: int = Field(..., ge=1, description="Step number.")
    agent: Agent = Field(..., description="Capability provider name.")
    action: Action = Field(..., description="Action name.")
    result: Optional[str] = Field(
        default=None, description="Produced text, when successful."
    )
    success: bool = Field(..., description="Whether the call produced a result.")
    error: Optional[str] = Field(
        default=None, description="Error text when the step failed."
    )
    role: StepRole = Field(..., description="Role of the step within the run.")


class ProcessingStats(ModelBase):
    """Counts of executed steps."""

    total: int = Field(default=0, ge=0)
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

    @classmethod
    def from_results(cls, results: list[StepResult]) -> "ProcessingStats":
        succeeded = sum(1 for r in results if r.success)
        return cls(
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
        )


class CoordinationResult(ModelBase):
    """The structured answer to one coordination call.

    Attributes:
        intent: Classification of the request.
        plan: The executed plan, for multi-step runs.
        results: Step results in plan order.
        success: True when at least one step succeeded or the run degraded
            into the fallback answer.
        execution_type: Topology that produced the results.
        processing_stats: Step counts.
        final_output_language: Language of the final answer, if known.
        degraded: Whether every tier failed and the fallback answer was used.
        message: User-facing explanation for a degraded answer.
        timestamp: When the run completed.
    """

    intent: Intent = Field(..., description="Classification of the request.")
    plan: Optional[ExecutionPlan] = Field(
        default=None, description="The executed plan, for multi-step runs."
    )
    results: list[StepResult] = Field(
        default_factory=list, description="Step results in plan order."
    )
    success: bool = Field(..., description="Overall outcome.")
    execution_type: ExecutionType = Field(
        ..., description="Topology that produced the results."
    )
    processing_stats: ProcessingStats = Field(
        default_factory=ProcessingStats, description="Step counts."
    )
    final_output_language: Optional[LanguageCode] = Field(
        default=None, description="Language of the final answer."
    )
    degraded: bool = Field(
        default=False,
        description="Whether the fallback answer replaced real results.",
    )
    message: Optional[str] = Field(
        default=None, description="User-facing explanation for a degraded answer."
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the run completed.",
    )

    @property
    def successful_results(self) -> list[StepResult]:
        return [r for r in self.results if r.success]
