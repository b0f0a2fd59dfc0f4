import json
from unittest.mock import AsyncMock, patch

import pytest

from conftest import classification, routed, total_calls
from task_coordinator.config import EngineConfig
from task_coordinator.errors import InvalidRequestError
from task_coordinator.execution.engine import FALLBACK_REASONING, CoordinationEngine
from task_coordinator.execution.progress import ProgressChannel
from task_coordinator.models.enums import (
    Action,
    Agent,
    ExecutionType,
    IntentCategory,
    StepRole,
)
from task_coordinator.models.plan import ExecutionStep
from task_coordinator.observability.metrics import EngineMetrics

SUMMARIZE_THEN_TRANSLATE = {
    "primary": "summarize",
    "secondary": ["translate"],
    "isMultiStep": True,
    "executionType": "sequential",
    "executionPlan": [
        {
            "step": 1,
            "agent": "summarizer",
            "action": "summarize_page",
            "input": "current_page",
            "output": "summary_text",
            "params": {"type": "tldr", "length": "short"},
        },
        {
            "step": 2,
            "agent": "translator",
            "action": "translate_text",
            "input": "summary_text",
            "output": "final_result",
            "params": {"target_language": "ja"},
        },
    ],
    "finalOutputLanguage": "ja",
    "reasoning": "Summary requested in Japanese",
    "confidence": 0.93,
}


class TestCoordinate:
    @pytest.mark.asyncio
    async def test_summary_in_german_without_model(self, engine, translator, page):
        result = await engine.coordinate("Give me a brief overview in German", page)

        assert result.success
        assert not result.degraded
        assert result.execution_type == ExecutionType.SEQUENTIAL
        assert [(r.agent, r.action) for r in result.results] == [
            (Agent.SUMMARIZER, Action.SUMMARIZE_PAGE),
            (Agent.TRANSLATOR, Action.TRANSLATE_TEXT),
        ]
        assert translator.requests[0][2] == "de"
        assert result.final_output_language == "de"
        assert result.intent.is_multi_step
        assert result.intent.ai_powered is False
        assert engine.metrics.get("coordinate.sequential") == 1

    @pytest.mark.asyncio
    async def test_ai_plan(self, engine, text_provider, translator, page):
        text_provider.responder = routed(
            classify=classification(
                "summarize", secondary=["translate"], target_language="ja"
            ),
            plan=json.dumps(SUMMARIZE_THEN_TRANSLATE),
        )

        result = await engine.coordinate("Summarize this in Japanese", page)

        assert result.execution_type == ExecutionType.SEQUENTIAL
        assert result.plan.ai_powered is True
        assert result.intent.confidence == 0.93
        assert result.results[-1].result.startswith("JA(SUMMARY(")
        assert result.results[-1].role == StepRole.PRIMARY
        assert translator.requests[0][2] == "ja"

    @pytest.mark.asyncio
    async def test_plain_translation_stays_single(self, engine, text_provider, page):
        text_provider.responder = routed(
            classify=classification("translate", target_language="es")
        )

        with patch.object(
            engine.executor, "execute", new_callable=AsyncMock
        ) as execute:
            result = await engine.coordinate("Translate this to Spanish", page)

        execute.assert_not_called()
        assert not any("execution plan" in p for p in text_provider.prompts)
        assert result.execution_type == ExecutionType.SINGLE
        assert result.intent.ai_powered is True
        assert result.results[0].action == Action.TRANSLATE_PAGE
        assert result.results[0].result.startswith("ES(Quantum computers")
        assert result.final_output_language == "es"
        assert engine.metrics.get("coordinate.single") == 1

    @pytest.mark.asyncio
    async def test_failed_plan_falls_back_to_single_path(
        self, engine, summarizer, translator, page
    ):
        summarizer.error = RuntimeError("summarizer crashed")

        result = await engine.coordinate("Give me a brief overview in German", page)

        assert result.success
        assert result.execution_type == ExecutionType.SINGLE
        assert [r.success for r in result.results] == [False, True]
        assert result.results[1].agent == Agent.TRANSLATOR
        assert result.results[1].role == StepRole.SECONDARY

    @pytest.mark.asyncio
    async def test_secondary_intents_can_be_disabled(
        self, registry, summarizer, translator, page
    ):
        engine = CoordinationEngine(
            registry, EngineConfig(dispatch_secondary_intents=False)
        )
        summarizer.error = RuntimeError("summarizer crashed")

        result = await engine.coordinate("Give me a brief overview in German", page)

        assert result.degraded
        assert translator.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["", "   ", None, 42])
    async def test_invalid_request_calls_nothing(
        self, engine, text_provider, summarizer, translator, writer, message
    ):
        with pytest.raises(InvalidRequestError) as exc:
            await engine.coordinate(message)

        assert exc.value.code == "request.invalid"
        assert total_calls(text_provider, summarizer, translator, writer) == 0

    @pytest.mark.asyncio
    async def test_everything_failing_degrades(self, engine, summarizer, page):
        summarizer.error = RuntimeError("summarizer crashed")

        result = await engine.coordinate("Summarize this page", page)

        assert result.success is True
        assert result.degraded is True
        assert result.intent.ai_powered is False
        assert result.intent.fallback_used is True
        assert result.intent.reasoning == FALLBACK_REASONING
        assert result.intent.ai_error.category == "unexpected"
        assert 'Your request: "Summarize this page"' in result.message
        # partial results are kept for diagnosis
        assert result.results[0].error == "summarizer crashed"
        assert engine.metrics.get("coordinate.degraded") == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_degrades(self, engine):
        engine.classifier.classify = AsyncMock(side_effect=RuntimeError("bug"))

        result = await engine.coordinate("Tell me about bees")

        assert result.degraded
        assert result.results == []
        assert result.intent.primary == IntentCategory.RESEARCH

    @pytest.mark.asyncio
    async def test_progress_channel_is_closed(self, engine, page):
        progress = ProgressChannel()

        await engine.coordinate(
            "Give me a brief overview in German", page, progress=progress
        )

        assert progress.closed
        assert [e.stage for e in progress.events] == [
            "started",
            "completed",
            "started",
            "completed",
        ]
        streamed = [event async for event in progress]
        assert len(streamed) == 4


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_sequential_answer(self, engine, page):
        answer = await engine.process_message(
            "Give me a brief overview in German", page
        )

        assert answer.startswith("DE(SUMMARY(")
        assert "*Agent Chain:* summarizer → translator" in answer
        assert "*Output Language:* German" in answer

    @pytest.mark.asyncio
    async def test_degraded_answer(self, engine, summarizer, page):
        summarizer.error = RuntimeError("summarizer crashed")

        answer = await engine.process_message("Summarize this page", page)

        assert "technical difficulties" in answer


class TestOperations:
    @pytest.mark.asyncio
    async def test_classify_and_plan(self, engine):
        intent = await engine.classify_intent("Translate this to Spanish")
        assert intent.primary == IntentCategory.TRANSLATE

        assert await engine.synthesize_plan("Tell me about rust") is None

    @pytest.mark.asyncio
    async def test_execute_step(self, engine, writer):
        step = ExecutionStep(step=1, agent=Agent.WRITER, action=Action.WRITE_CONTENT)

        result = await engine.execute_step(step, "a haiku")

        assert result.success
        assert result.result == "WRITTEN(a haiku)"
        assert writer.calls == 1

    @pytest.mark.asyncio
    async def test_capabilities(self, engine, summarizer):
        summarizer.ready = False

        report = await engine.capabilities()

        assert set(report) == {a.value for a in Agent}
        assert report["summarizer"].available is False
        assert report["writer"].available is True

    def test_defaults(self, registry):
        engine = CoordinationEngine(registry)
        assert engine.config.default_language == "en"
        assert isinstance(engine.metrics, EngineMetrics)
