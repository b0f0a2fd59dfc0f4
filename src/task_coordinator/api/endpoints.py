"""API Endpoints implementation for the task coordinator.

This module defines the logic for the headless JSON endpoints. Every handler
returns plain dictionaries so that any transport can serialize them.
"""

from typing import Any, Optional

from task_coordinator.errors import InvalidRequestError
from task_coordinator.execution.engine import CoordinationEngine
from task_coordinator.execution.formatter import format_result
from task_coordinator.models.request import PageContext
from task_coordinator.observability.metrics import get_metrics_content


def _context_from(data: Optional[dict[str, Any]]) -> Optional[PageContext]:
    if not data:
        return None
    return PageContext(**data)


class ApiEndpoints:
    """Handlers for API endpoints."""

    def __init__(self, engine: CoordinationEngine):
        """Initialize with the coordination engine."""
        self.engine = engine

    async def coordinate(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Coordinates one request.

        Args:
            message: The raw request text.
            context: Optional page context with ``title``, ``url`` and
                ``content`` keys.

        Returns:
            The coordination result as a dictionary, with the displayable
            answer under ``answer``. An empty request yields
            ``{"code": "request.invalid", "message": ...}``.
        """
        try:
            result = await self.engine.coordinate(message, _context_from(context))
        except InvalidRequestError as e:
            return {"code": e.code, "message": e.detail}

        payload = result.model_dump(mode="json")
        payload["answer"] = format_result(result)
        return payload

    async def classify(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Classifies a request without executing it."""
        intent = await self.engine.classify_intent(message, _context_from(context))
        return intent.model_dump(mode="json")

    async def plan(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Synthesizes a plan without executing it.

        Returns:
            ``{"is_multi_step": False, "plan": None}`` for single-step
            requests, otherwise the plan under ``plan``.
        """
        plan = await self.engine.synthesize_plan(message, _context_from(context))
        if plan is None:
            return {"is_multi_step": False, "plan": None}
        return {
            "is_multi_step": plan.is_multi_step,
            "plan": plan.model_dump(mode="json"),
        }

    async def capabilities(self) -> dict[str, Any]:
        """Reports the readiness of every capability provider."""
        report = await self.engine.capabilities()
        return {
            agent: readiness.model_dump(mode="json")
            for agent, readiness in report.items()
        }

    def metrics(self) -> dict[str, int]:
        return self.engine.metrics.snapshot()

    def metrics_text(self) -> str:
        """Engine counters as markdown followed by the Prometheus exposition."""
        return f"{self.engine.metrics.render_markdown()}\n\n{get_metrics_content()}"
