"""Plan execution.

Runs the steps of an :class:`ExecutionPlan` through the capability dispatcher,
either as a strict await-chain (sequential) or as concurrently scheduled tasks
joined with a wait-all barrier (parallel).
"""

import asyncio
from typing import Optional

from task_coordinator.execution.dispatcher import CapabilityDispatcher, StepInput
from task_coordinator.execution.progress import ProgressChannel
from task_coordinator.models.base import CURRENT_PAGE, USER_MESSAGE
from task_coordinator.models.enums import (
    CATEGORY_AGENTS,
    ExecutionType,
    IntentCategory,
    StepRole,
)
from task_coordinator.models.execution_result import (
    CoordinationResult,
    ProcessingStats,
    StepResult,
)
from task_coordinator.models.intent import Intent
from task_coordinator.models.plan import ExecutionPlan, ExecutionStep
from task_coordinator.models.request import PageContext
from task_coordinator.observability.logging import get_logger
from task_coordinator.observability.metrics import (
    STEP_OUTCOMES_TOTAL,
    EngineMetrics,
)

logger = get_logger(__name__)


def intent_from_plan(plan: ExecutionPlan, message: str) -> Intent:
    """Summarizes a plan as an intent for reporting."""
    primary = plan.primary
    if primary is None:
        first_agent = plan.steps[0].agent
        primary = next(
            category
            for category, agent in CATEGORY_AGENTS.items()
            if agent == first_agent
        )
    secondary = list(plan.secondary)
    for step in plan.steps[1:]:
        for category, agent in CATEGORY_AGENTS.items():
            if agent == step.agent and category not in secondary:
                secondary.append(category)

    target_language = None
    if IntentCategory.TRANSLATE in [primary, *secondary]:
        target_language = plan.final_output_language

    return Intent(
        primary=primary,
        secondary=secondary,
        confidence=plan.confidence,
        reasoning=plan.reasoning,
        crafted_prompt=message,
        original_message=message,
        ai_powered=plan.ai_powered,
        is_multi_step=plan.is_multi_step,
        target_language=target_language,
    )


class PlanExecutor:
    """Executes multi-step plans for one engine.

    The intermediate result store lives only for the duration of one
    :meth:`execute` call.
    """

    def __init__(
        self,
        dispatcher: CapabilityDispatcher,
        metrics: Optional[EngineMetrics] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._metrics = metrics or EngineMetrics()

    async def execute(
        self,
        plan: ExecutionPlan,
        message: str,
        context: Optional[PageContext] = None,
        *,
        intent: Optional[Intent] = None,
        progress: Optional[ProgressChannel] = None,
    ) -> CoordinationResult:
        """Runs ``plan`` and collects its step results.

        Args:
            plan: A validated plan.
            message: The raw request text, used for ``user_message`` inputs
                and for inputs whose key no earlier step produced.
            context: The current page, used for ``current_page`` inputs.
            intent: Intent to report; derived from the plan when omitted.
            progress: Optional per-call progress channel.

        Returns:
            The coordination result. ``success`` is True when at least one
            step succeeded.
        """
        logger.info(
            "Executing plan",
            extra={
                "extra_fields": {
                    "execution_type": plan.execution_type.value,
                    "steps": len(plan.steps),
                }
            },
        )
        if plan.execution_type == ExecutionType.PARALLEL:
            results = await self._run_parallel(plan, message, context, progress)
        else:
            results = await self._run_sequential(plan, message, context, progress)

        stats = ProcessingStats.from_results(results)
        return CoordinationResult(
            intent=intent or intent_from_plan(plan, message),
            plan=plan,
            results=results,
            success=stats.succeeded > 0,
            execution_type=plan.execution_type,
            processing_stats=stats,
            final_output_language=plan.final_output_language,
        )

    async def execute_step(
        self,
        step: ExecutionStep,
        resolved_input: StepInput,
        context: Optional[PageContext] = None,
        *,
        role: StepRole = StepRole.PRIMARY,
        progress: Optional[ProgressChannel] = None,
    ) -> StepResult:
        """Runs one step and converts any failure into a failed result."""
        try:
            text = await self._dispatcher.dispatch(
                step.agent,
                step.action,
                resolved_input,
                step.params,
                context,
                progress=progress,
                step=step.step,
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            self._metrics.inc("step.failed")
            STEP_OUTCOMES_TOTAL.labels(
                agent=step.agent.value, outcome="failed"
            ).inc()
            logger.warning(
                "Step failed",
                extra={
                    "extra_fields": {
                        "step": step.step,
                        "agent": step.agent.value,
                        "action": step.action.value,
                        "error_type": type(e).__name__,
                        "error": error[:500],
                    }
                },
            )
            return StepResult(
                step=step.step,
                agent=step.agent,
                action=step.action,
                success=False,
                error=error,
                role=StepRole.FAILED,
            )

        self._metrics.inc("step.success")
        STEP_OUTCOMES_TOTAL.labels(agent=step.agent.value, outcome="success").inc()
        return StepResult(
            step=step.step,
            agent=step.agent,
            action=step.action,
            result=text,
            success=True,
            role=role,
        )

    def resolve_input(
        self,
        step: ExecutionStep,
        message: str,
        context: Optional[PageContext],
        store: Optional[dict[str, str]] = None,
    ) -> StepInput:
        if step.input == CURRENT_PAGE:
            return context
        if step.input == USER_MESSAGE:
            return message
        if store is not None and step.input in store:
            return store[step.input]
        logger.warning(
            "Intermediate result missing, using the request text",
            extra={"extra_fields": {"step": step.step, "key": step.input}},
        )
        return message

    async def _run_sequential(
        self,
        plan: ExecutionPlan,
        message: str,
        context: Optional[PageContext],
        progress: Optional[ProgressChannel],
    ) -> list[StepResult]:
        store: dict[str, str] = {}
        results: list[StepResult] = []
        last_index = len(plan.steps) - 1

        for index, step in enumerate(plan.steps):
            resolved = self.resolve_input(step, message, context, store)
            if index == last_index:
                role = StepRole.PRIMARY
            else:
                role = StepRole.INTERMEDIATE
            result = await self.execute_step(
                step, resolved, context, role=role, progress=progress
            )
            results.append(result)
            if not result.success:
                skipped = len(plan.steps) - index - 1
                if skipped:
                    logger.warning(
                        "Aborting remaining sequential steps",
                        extra={
                            "extra_fields": {
                                "failed_step": step.step,
                                "skipped": skipped,
                            }
                        },
                    )
                break
            if step.output:
                store[step.output] = result.result

        return results

    async def _run_parallel(
        self,
        plan: ExecutionPlan,
        message: str,
        context: Optional[PageContext],
        progress: Optional[ProgressChannel],
    ) -> list[StepResult]:
        tasks = [
            self.execute_step(
                step,
                self.resolve_input(step, message, context),
                context,
                role=StepRole.PRIMARY if index == 0 else StepRole.SECONDARY,
                progress=progress,
            )
            for index, step in enumerate(plan.steps)
        ]
        # execute_step never raises, so no sibling is cancelled by a failure
        return list(await asyncio.gather(*tasks))
