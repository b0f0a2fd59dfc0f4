"""Multi-step plan synthesis.

The synthesizer sends a planning prompt to the text-generation provider and
turns its JSON answer into a validated :class:`ExecutionPlan`. If that fails
at any point the narrow pattern detector gets a chance; if it finds nothing
either, no plan is returned and the caller takes the single-step path.
"""

import asyncio
from typing import Any, Optional

import jsonschema
from pydantic import ValidationError

from task_coordinator.config import EngineConfig
from task_coordinator.coordination.patterns import detect_multi_step_plan
from task_coordinator.errors import MalformedResponseError, ProviderUnavailableError
from task_coordinator.models.enums import Agent, ExecutionType, IntentCategory
from task_coordinator.models.plan import ExecutionPlan, ExecutionStep
from task_coordinator.models.request import PageContext
from task_coordinator.observability.logging import get_logger
from task_coordinator.observability.metrics import EngineMetrics
from task_coordinator.providers.base import TextGenerationProvider
from task_coordinator.utils import extract_json_object

logger = get_logger(__name__)

PLAN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["primary", "isMultiStep"],
    "properties": {
        "primary": {"type": "string"},
        "secondary": {"type": ["array", "null"], "items": {"type": "string"}},
        "isMultiStep": {"type": "boolean"},
        "executionType": {
            "type": ["string", "null"],
            "enum": [t.value for t in ExecutionType] + [None],
        },
        "executionPlan": {
            "type": ["array", "null"],
            "items": {
                "type": "object",
                "required": ["step", "agent", "action"],
                "properties": {
                    "step": {"type": "integer", "minimum": 1},
                    "agent": {"type": "string"},
                    "action": {"type": "string"},
                    "input": {"type": ["string", "null"]},
                    "output": {"type": ["string", "null"]},
                    "params": {"type": ["object", "null"]},
                },
            },
        },
        "finalOutputLanguage": {"type": ["string", "null"]},
        "reasoning": {"type": ["string", "null"]},
        "confidence": {"type": ["number", "null"]},
    },
}

PLANNING_PROMPT = """You are a coordinator that decides whether a user request needs several text capabilities working in sequence or in parallel, and writes the execution plan.

AVAILABLE AGENTS AND ACTIONS:
- "summarizer": "summarize_page" (the current page), "summarize_text" (text from a previous step)
- "translator": "translate_page" (the current page), "translate_text" (text from a previous step)
- "writer": "write_content"
- "research-provider": "research_query", "process_prompt"

STEP INPUTS:
- "current_page": the page the user is looking at
- "user_message": the user's message
- otherwise the "output" name of an EARLIER step (sequential plans only)

MULTI-STEP PATTERNS:
- "Brief/short/quick overview in [language]": SUMMARIZE -> TRANSLATE (sequential)
- "[Language] summary", "Give me a [language] summary": SUMMARIZE -> TRANSLATE (sequential)
- "Summarize this and translate to [language]": SUMMARIZE -> TRANSLATE (sequential)
- "Translate and summarize" of independent content: PARALLEL
- "Research [topic] and write about it": RESEARCH -> WRITE (sequential)
- "Tell me about [topic] in [language]": RESEARCH -> TRANSLATE (sequential)
- "Summarize and write [code/sample/example]": SUMMARIZE -> WRITE (sequential)

EXECUTION TYPES:
- "sequential": the output of one step is the input of the next
- "parallel": independent steps on the same input; they may only read "current_page" or "user_message"
- "single": only one capability is needed; set isMultiStep to false

RULES:
1. Summarization plus a language always means summarize first, then translate.
2. "translate_text" must read the output of the previous step.
3. Use ISO 639-1 codes for languages (de, es, fr, it, pt, ru, ja, ko, zh, ar, hi, tr, pl, nl, sv, da, no, fi, en).

RESPONSE FORMAT (JSON only):
{
  "primary": "summarize|translate|write|research",
  "secondary": ["intent", ...],
  "isMultiStep": true/false,
  "executionType": "sequential|parallel|single",
  "executionPlan": [
    {"step": 1, "agent": "agent_name", "action": "action_name", "input": "input_source", "output": "output_name", "params": {"key": "value"}}
  ],
  "finalOutputLanguage": "language code or null",
  "reasoning": "explanation of the plan",
  "confidence": 0.0-1.0
}

EXAMPLE:
User: "Give me a brief overview in German"
Response: {"primary": "summarize", "secondary": ["translate"], "isMultiStep": true, "executionType": "sequential", "executionPlan": [{"step": 1, "agent": "summarizer", "action": "summarize_page", "input": "current_page", "output": "summary_text", "params": {"type": "tldr", "length": "short"}}, {"step": 2, "agent": "translator", "action": "translate_text", "input": "summary_text", "output": "final_result", "params": {"target_language": "de", "source_language": "auto"}}], "finalOutputLanguage": "de", "reasoning": "Summarize the page, then translate the summary to German", "confidence": 0.95}"""


def build_planning_prompt(message: str, context: Optional[PageContext]) -> str:
    prompt = PLANNING_PROMPT
    if context is not None:
        prompt += (
            "\n\nCURRENT PAGE CONTEXT:\n"
            f"Title: {context.title or 'Unknown'}\n"
            f"URL: {context.url or 'Unknown'}\n"
            f"Content available: {'Yes' if context.has_content else 'No'}"
        )
    return (
        f'{prompt}\n\nUSER MESSAGE: "{message}"\n\n'
        "Analyze this message and provide the execution plan as JSON:"
    )


def plan_from_response(data: dict[str, Any]) -> Optional[ExecutionPlan]:
    """Builds a plan from a decoded planning response.

    Returns:
        The validated plan, or None when the response declares the request
        single-step.

    Raises:
        jsonschema.ValidationError: If the response shape is wrong.
        pydantic.ValidationError: If the plan violates its invariants.
    """
    jsonschema.validate(instance=data, schema=PLAN_SCHEMA)
    if not data["isMultiStep"]:
        return None

    steps = [
        ExecutionStep(
            step=entry["step"],
            agent=Agent(entry["agent"]),
            action=entry["action"],
            input=entry.get("input") or "user_message",
            output=entry.get("output"),
            params=entry.get("params") or {},
        )
        for entry in data.get("executionPlan") or []
    ]
    secondary = []
    for value in data.get("secondary") or []:
        try:
            secondary.append(IntentCategory(value))
        except ValueError:
            continue

    confidence = data.get("confidence")
    return ExecutionPlan(
        execution_type=data.get("executionType") or ExecutionType.SEQUENTIAL,
        steps=steps,
        final_output_language=data.get("finalOutputLanguage"),
        primary=data["primary"],
        secondary=secondary,
        reasoning=data.get("reasoning") or "Smart triage analysis completed",
        confidence=0.8 if confidence is None else max(0.0, min(1.0, confidence)),
        ai_powered=True,
    )


class PlanSynthesizer:
    """Decides whether a request needs a multi-step plan and produces it."""

    def __init__(
        self,
        provider: TextGenerationProvider,
        config: Optional[EngineConfig] = None,
        metrics: Optional[EngineMetrics] = None,
    ) -> None:
        self._provider = provider
        self._config = config or EngineConfig()
        self._metrics = metrics or EngineMetrics()

    async def synthesize(
        self, message: str, context: Optional[PageContext] = None
    ) -> Optional[ExecutionPlan]:
        """Returns a multi-step plan, or None for single-step requests."""
        if not isinstance(message, str) or not message.strip():
            return None

        try:
            plan = await self._plan_with_ai(message, context)
        except Exception as e:
            logger.warning(
                "AI plan synthesis failed, trying pattern detector",
                extra={
                    "extra_fields": {
                        "error_type": type(e).__name__,
                        "error": str(e)[:500],
                    }
                },
            )
        else:
            if plan is None:
                self._metrics.inc("plan.none")
                logger.info("AI planner reports a single-step request")
                return None
            self._metrics.inc("plan.ai")
            logger.info(
                "Execution plan synthesized by AI",
                extra={
                    "extra_fields": {
                        "execution_type": plan.execution_type.value,
                        "steps": len(plan.steps),
                    }
                },
            )
            return plan

        plan = detect_multi_step_plan(message, self._config.default_language)
        if plan is None:
            self._metrics.inc("plan.none")
            logger.info("No multi-step pattern detected, using single-step path")
            return None

        self._metrics.inc("plan.pattern")
        logger.info(
            "Execution plan synthesized from patterns",
            extra={
                "extra_fields": {
                    "execution_type": plan.execution_type.value,
                    "agents": [agent.value for agent in plan.agent_chain],
                }
            },
        )
        return plan

    async def _plan_with_ai(
        self, message: str, context: Optional[PageContext]
    ) -> Optional[ExecutionPlan]:
        readiness = await self._provider.capabilities()
        if not readiness.available:
            raise ProviderUnavailableError(
                self._provider.name,
                readiness.error or f"availability is '{readiness.availability}'",
                self._provider.remediation,
            )

        prompt = build_planning_prompt(message, context)
        async with self._provider.session() as session:
            response = await asyncio.wait_for(
                session.generate(prompt),
                timeout=self._config.planning_timeout_s,
            )

        data = extract_json_object(response)
        try:
            return plan_from_response(data)
        except ValidationError:
            raise
        except ValueError as e:
            # enum coercion outside pydantic, e.g. an unknown primary
            raise MalformedResponseError(str(e)) from e
