"""The coordination engine.

Wires the intent classifier, the plan synthesizer, the plan executor and the
result formatter around one provider registry. Every fallback tier is tried
inside :meth:`CoordinationEngine.coordinate`; callers only ever see an
``InvalidRequestError`` for empty requests.
"""

from typing import Optional

from task_coordinator.config import EngineConfig
from task_coordinator.coordination.classifier import IntentClassifier
from task_coordinator.coordination.patterns import suggests_multi_step
from task_coordinator.coordination.planner import PlanSynthesizer
from task_coordinator.errors import InvalidRequestError
from task_coordinator.execution.dispatcher import (
    CapabilityDispatcher,
    StepInput,
    route_intent,
)
from task_coordinator.execution.executor import PlanExecutor
from task_coordinator.execution.formatter import format_result
from task_coordinator.execution.progress import ProgressChannel
from task_coordinator.models.enums import ExecutionType, IntentCategory, StepRole
from task_coordinator.models.execution_result import (
    CoordinationResult,
    ProcessingStats,
    StepResult,
)
from task_coordinator.models.intent import Intent
from task_coordinator.models.plan import ExecutionPlan, ExecutionStep
from task_coordinator.models.request import CoordinationRequest, PageContext
from task_coordinator.observability.logging import get_logger
from task_coordinator.observability.metrics import (
    COORDINATION_RUNS_TOTAL,
    EngineMetrics,
)
from task_coordinator.providers.base import ProviderCapabilities, ProviderRegistry

logger = get_logger(__name__)

FALLBACK_REASONING = "Fallback mode due to system errors"

FALLBACK_MESSAGE = """I encountered some technical difficulties processing your request. Please try:

1. **Refresh the page** and try again
2. **Simplify your request** (e.g., just "summarize this page")
3. **Check the provider configuration** with `task-coordinator capabilities`

Your request: "{message}"

*The system is running in fallback mode.*"""


class CoordinationEngine:
    """Coordinates one request across the registered capability providers.

    The engine holds no per-call state: the intermediate result store, the
    progress channel and all models are scoped to a single call.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: Optional[EngineConfig] = None,
        metrics: Optional[EngineMetrics] = None,
    ) -> None:
        self._registry = registry
        self._config = config or EngineConfig()
        self._metrics = metrics or EngineMetrics()
        self.classifier = IntentClassifier(
            registry.text_generation, self._config, self._metrics
        )
        self.planner = PlanSynthesizer(
            registry.text_generation, self._config, self._metrics
        )
        self.dispatcher = CapabilityDispatcher(registry, self._config)
        self.executor = PlanExecutor(self.dispatcher, self._metrics)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def metrics(self) -> EngineMetrics:
        return self._metrics

    async def coordinate(
        self,
        message: str,
        context: Optional[PageContext] = None,
        *,
        progress: Optional[ProgressChannel] = None,
    ) -> CoordinationResult:
        """Classifies, plans, executes and reports one request.

        Args:
            message: The raw request text.
            context: The page the user is looking at, if any.
            progress: Optional channel receiving step events; closed when the
                call returns.

        Returns:
            The coordination result. When every tier failed the result is
            ``degraded`` and carries an explanatory message.

        Raises:
            InvalidRequestError: If ``message`` is empty or not text. No
                provider is called in that case.
        """
        if not isinstance(message, str) or not message.strip():
            raise InvalidRequestError(
                "Request must be a non-empty text message."
            )
        request = CoordinationRequest(message=message, context=context)

        result: Optional[CoordinationResult] = None
        try:
            result = await self._coordinate(request, progress)
        except Exception:
            logger.error("Coordination failed unexpectedly", exc_info=True)
        finally:
            if progress is not None:
                progress.close()

        if result is None or not result.success:
            result = self._degraded(request, result)
            self._metrics.inc("coordinate.degraded")
            outcome = "degraded"
        else:
            self._metrics.inc(f"coordinate.{result.execution_type.value}")
            outcome = "success"
        COORDINATION_RUNS_TOTAL.labels(
            execution_type=result.execution_type.value, outcome=outcome
        ).inc()

        logger.info(
            "Coordination completed",
            extra={
                "extra_fields": {
                    "execution_type": result.execution_type.value,
                    "primary": result.intent.primary.value,
                    "succeeded": result.processing_stats.succeeded,
                    "failed": result.processing_stats.failed,
                    "degraded": result.degraded,
                }
            },
        )
        return result

    async def process_message(
        self, message: str, context: Optional[PageContext] = None
    ) -> str:
        """Coordinates ``message`` and returns the displayable answer."""
        result = await self.coordinate(message, context)
        return format_result(result)

    async def classify_intent(
        self, message: str, context: Optional[PageContext] = None
    ) -> Intent:
        return await self.classifier.classify(message, context)

    async def synthesize_plan(
        self, message: str, context: Optional[PageContext] = None
    ) -> Optional[ExecutionPlan]:
        return await self.planner.synthesize(message, context)

    async def execute_step(
        self,
        step: ExecutionStep,
        resolved_input: StepInput,
        context: Optional[PageContext] = None,
        *,
        progress: Optional[ProgressChannel] = None,
    ) -> StepResult:
        return await self.executor.execute_step(
            step, resolved_input, context, progress=progress
        )

    async def capabilities(self) -> dict[str, ProviderCapabilities]:
        """Readiness of the provider behind every agent."""
        return await self._registry.capabilities()

    async def _coordinate(
        self,
        request: CoordinationRequest,
        progress: Optional[ProgressChannel],
    ) -> CoordinationResult:
        message, context = request.message, request.context
        intent = await self.classifier.classify(message, context)

        if suggests_multi_step(message, intent.secondary):
            plan = await self.planner.synthesize(message, context)
            if plan is not None and plan.is_multi_step:
                result = await self.executor.execute(
                    plan, message, context, progress=progress
                )
                if result.success:
                    return result
                logger.warning(
                    "Plan produced no results, using single-step path",
                    extra={
                        "extra_fields": {
                            "execution_type": plan.execution_type.value,
                            "failed": result.processing_stats.failed,
                        }
                    },
                )

        return await self._run_single(intent, context, progress)

    async def _run_single(
        self,
        intent: Intent,
        context: Optional[PageContext],
        progress: Optional[ProgressChannel],
    ) -> CoordinationResult:
        categories: list[IntentCategory] = [intent.primary]
        if self._config.dispatch_secondary_intents:
            categories.extend(intent.secondary)

        results: list[StepResult] = []
        for index, category in enumerate(categories):
            step, resolved = route_intent(
                category, intent, context, step=index + 1
            )
            role = StepRole.PRIMARY if index == 0 else StepRole.SECONDARY
            results.append(
                await self.executor.execute_step(
                    step, resolved, context, role=role, progress=progress
                )
            )

        stats = ProcessingStats.from_results(results)
        return CoordinationResult(
            intent=intent,
            results=results,
            success=stats.succeeded > 0,
            execution_type=ExecutionType.SINGLE,
            processing_stats=stats,
            final_output_language=intent.target_language,
        )

    def _degraded(
        self,
        request: CoordinationRequest,
        partial: Optional[CoordinationResult],
    ) -> CoordinationResult:
        logger.warning(
            "All coordination tiers failed, returning fallback answer",
            extra={"extra_fields": {"had_results": partial is not None}},
        )
        results = partial.results if partial is not None else []
        intent = Intent(
            primary=IntentCategory.RESEARCH,
            confidence=0.5,
            reasoning=FALLBACK_REASONING,
            crafted_prompt=request.message,
            original_message=request.message,
            ai_powered=False,
            fallback_used=True,
            ai_error=partial.intent.ai_error if partial is not None else None,
        )
        return CoordinationResult(
            intent=intent,
            results=results,
            success=True,
            execution_type=ExecutionType.SINGLE,
            processing_stats=ProcessingStats.from_results(results),
            degraded=True,
            message=FALLBACK_MESSAGE.format(message=request.message),
        )
