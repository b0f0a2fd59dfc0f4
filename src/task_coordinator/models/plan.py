"""Data models for multi-step execution plans.

This module defines the structure for plans proposed by the plan synthesizer
when a request needs more than one capability, either chained (sequential)
or side by side (parallel).
"""

from typing import Any, Optional

from pydantic import Field, model_validator

from task_coordinator.errors import PlanValidationError
from task_coordinator.models.base import (
    RESERVED_INPUTS,
    USER_MESSAGE,
    LanguageCode,
    ModelBase,
    OutputKey,
)
from task_coordinator.models.enums import (
    AGENT_ACTIONS,
    Action,
    Agent,
    ExecutionType,
    IntentCategory,
)


class ExecutionStep(ModelBase):
    """One capability call inside a plan.

    Attributes:
        step: Position of the step; strictly increasing in sequential plans.
        agent: Capability provider that runs the step.
        action: Action performed by the provider.
        input: Either a reserved source (``current_page``, ``user_message``)
            or the output key of an earlier step.
        output: Key under which the result is stored for later steps.
        params: Action-specific parameters.
    """

    step: int = Field(..., ge=1, description="Step number.")
    agent: Agent = Field(..., description="Capability provider name.")
    action: Action = Field(..., description="Action name.")
    input: str = Field(
        default=USER_MESSAGE,
        min_length=1,
        description="Reserved source or a prior step's output key.",
    )
    output: Optional[OutputKey] = Field(
        default=None,
        description="Key under which this step's result is stored.",
    )
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Action-specific parameters.",
    )

    @model_validator(mode="after")
    def _check_agent_action(self) -> "ExecutionStep":
        if self.action not in AGENT_ACTIONS[self.agent]:
            allowed = ", ".join(sorted(a.value for a in AGENT_ACTIONS[self.agent]))
            raise PlanValidationError(
                f"Action '{self.action.value}' is not available on agent "
                f"'{self.agent.value}' (allowed: {allowed})."
            )
        if self.output in RESERVED_INPUTS:
            raise PlanValidationError(
                f"Step {self.step} cannot use reserved name '{self.output}' "
                "as its output key."
            )
        return self

    @property
    def reads_reserved_input(self) -> bool:
        return self.input in RESERVED_INPUTS


class ExecutionPlan(ModelBase):
    """Represents how a request is fulfilled across several capabilities.

    A plan carries the synthesizer's own classification so that it can be
    reported in place of an intent.

    Attributes:
        execution_type: Topology of the plan.
        steps: Steps in execution order.
        final_output_language: Language of the final answer, if known.
        primary: Main category detected by the synthesizer.
        secondary: Further categories detected by the synthesizer.
        reasoning: Why this plan was chosen.
        confidence: Synthesizer confidence in [0, 1].
        ai_powered: Whether the plan came from the text-generation provider.
    """

    execution_type: ExecutionType = Field(
        ..., description="Topology of the plan."
    )
    steps: list[ExecutionStep] = Field(
        ..., min_length=1, description="Steps in execution order."
    )
    final_output_language: Optional[LanguageCode] = Field(
        default=None, description="Language of the final answer."
    )
    primary: Optional[IntentCategory] = Field(
        default=None, description="Main category detected by the synthesizer."
    )
    secondary: list[IntentCategory] = Field(
        default_factory=list,
        description="Further categories detected by the synthesizer.",
    )
    reasoning: str = Field(default="", description="Why this plan was chosen.")
    confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Synthesizer confidence."
    )
    ai_powered: bool = Field(
        default=False,
        description="Whether the plan came from the text-generation provider.",
    )

    @model_validator(mode="after")
    def _check_topology(self) -> "ExecutionPlan":
        if self.execution_type == ExecutionType.SINGLE:
            if len(self.steps) != 1:
                raise PlanValidationError(
                    f"A single plan needs exactly one step, got {len(self.steps)}."
                )
        elif self.execution_type == ExecutionType.SEQUENTIAL:
            self._check_sequential()
        else:
            for step in self.steps:
                if not step.reads_reserved_input:
                    raise PlanValidationError(
                        f"Parallel step {step.step} reads '{step.input}'; "
                        "parallel steps may only read the request or the page."
                    )
        return self

    def _check_sequential(self) -> None:
        produced_at: dict[str, int] = {}
        for step in self.steps:
            if step.output and step.output not in produced_at:
                produced_at[step.output] = step.step

        previous = 0
        for step in self.steps:
            if step.step <= previous:
                raise PlanValidationError(
                    f"Sequential step numbers must increase: {step.step} "
                    f"follows {previous}."
                )
            previous = step.step
            if step.reads_reserved_input:
                continue
            producer = produced_at.get(step.input)
            if producer is None:
                raise PlanValidationError(
                    f"Step {step.step} reads '{step.input}', which no step produces."
                )
            if producer >= step.step:
                raise PlanValidationError(
                    f"Step {step.step} reads '{step.input}' before step "
                    f"{producer} produces it."
                )

    @property
    def is_multi_step(self) -> bool:
        return self.execution_type != ExecutionType.SINGLE

    @property
    def agent_chain(self) -> list[Agent]:
        return [step.agent for step in self.steps]
