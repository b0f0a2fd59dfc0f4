import json

import jsonschema
import pytest
from pydantic import ValidationError

from conftest import FakeTextProvider
from task_coordinator.config import EngineConfig
from task_coordinator.coordination.planner import (
    PlanSynthesizer,
    build_planning_prompt,
    plan_from_response,
)
from task_coordinator.models.enums import (
    Action,
    Agent,
    ExecutionType,
    IntentCategory,
)
from task_coordinator.observability.metrics import EngineMetrics

RESEARCH_THEN_WRITE = {
    "primary": "research",
    "secondary": ["write"],
    "isMultiStep": True,
    "executionType": "sequential",
    "executionPlan": [
        {
            "step": 1,
            "agent": "prompter",
            "action": "research_query",
            "input": "user_message",
            "output": "findings",
        },
        {
            "step": 2,
            "agent": "writer",
            "action": "write_content",
            "input": "findings",
            "output": "final_result",
            "params": {"tone": "casual"},
        },
    ],
    "finalOutputLanguage": None,
    "reasoning": "Research first, then write",
    "confidence": 0.9,
}


def make_synthesizer(provider):
    metrics = EngineMetrics()
    return PlanSynthesizer(provider, EngineConfig(), metrics), metrics


class TestPlanFromResponse:
    def test_sequential_plan(self):
        plan = plan_from_response(RESEARCH_THEN_WRITE)

        assert plan.execution_type == ExecutionType.SEQUENTIAL
        assert plan.agent_chain == [Agent.RESEARCHER, Agent.WRITER]
        assert plan.steps[1].params == {"tone": "casual"}
        assert plan.primary == IntentCategory.RESEARCH
        assert plan.secondary == [IntentCategory.WRITE]
        assert plan.ai_powered is True
        assert plan.confidence == 0.9

    def test_not_multi_step(self):
        assert plan_from_response({"primary": "translate", "isMultiStep": False}) is None

    def test_missing_required_fields(self):
        with pytest.raises(jsonschema.ValidationError):
            plan_from_response({"primary": "translate"})

    def test_forward_reference_is_rejected(self):
        data = json.loads(json.dumps(RESEARCH_THEN_WRITE))
        data["executionPlan"][0]["input"] = "final_result"
        with pytest.raises(ValidationError):
            plan_from_response(data)

    def test_unproduced_input_key_is_rejected(self):
        data = json.loads(json.dumps(RESEARCH_THEN_WRITE))
        data["executionPlan"][1]["input"] = "finding"
        with pytest.raises(ValidationError):
            plan_from_response(data)

    def test_invalid_agent_action_pair(self):
        data = json.loads(json.dumps(RESEARCH_THEN_WRITE))
        data["executionPlan"][1]["action"] = "translate_text"
        with pytest.raises(ValidationError):
            plan_from_response(data)

    def test_defaults(self):
        data = json.loads(json.dumps(RESEARCH_THEN_WRITE))
        del data["executionType"]
        del data["confidence"]
        plan = plan_from_response(data)
        assert plan.execution_type == ExecutionType.SEQUENTIAL
        assert plan.confidence == 0.8


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_ai_plan(self):
        provider = FakeTextProvider(
            "Plan follows:\n```json\n" + json.dumps(RESEARCH_THEN_WRITE) + "\n```"
        )
        synthesizer, metrics = make_synthesizer(provider)

        plan = await synthesizer.synthesize("Research bees and write about them")

        assert plan.agent_chain == [Agent.RESEARCHER, Agent.WRITER]
        assert metrics.get("plan.ai") == 1
        assert provider.released == 1

    @pytest.mark.asyncio
    async def test_ai_single_step_answer(self):
        provider = FakeTextProvider(
            json.dumps({"primary": "translate", "isMultiStep": False})
        )
        synthesizer, metrics = make_synthesizer(provider)

        assert await synthesizer.synthesize("Translate this to Spanish") is None
        assert metrics.get("plan.none") == 1

    @pytest.mark.asyncio
    async def test_failure_uses_pattern_detector(self):
        provider = FakeTextProvider(RuntimeError("offline"))
        synthesizer, metrics = make_synthesizer(provider)

        plan = await synthesizer.synthesize("Give me a brief overview in German")

        assert plan.execution_type == ExecutionType.SEQUENTIAL
        assert [(s.agent, s.action) for s in plan.steps] == [
            (Agent.SUMMARIZER, Action.SUMMARIZE_PAGE),
            (Agent.TRANSLATOR, Action.TRANSLATE_TEXT),
        ]
        assert plan.steps[1].params["target_language"] == "de"
        assert plan.ai_powered is False
        assert metrics.get("plan.pattern") == 1

    @pytest.mark.asyncio
    async def test_invalid_plan_uses_pattern_detector(self):
        data = json.loads(json.dumps(RESEARCH_THEN_WRITE))
        data["executionPlan"][0]["input"] = "final_result"
        provider = FakeTextProvider(json.dumps(data))
        synthesizer, metrics = make_synthesizer(provider)

        plan = await synthesizer.synthesize("Spanish summary please")

        assert plan.ai_powered is False
        assert plan.final_output_language == "es"
        assert metrics.get("plan.pattern") == 1

    @pytest.mark.asyncio
    async def test_unknown_primary_falls_through(self):
        data = dict(RESEARCH_THEN_WRITE, primary="dance")
        provider = FakeTextProvider(json.dumps(data))
        synthesizer, metrics = make_synthesizer(provider)

        assert await synthesizer.synthesize("Research bees and write about them") is None
        assert metrics.get("plan.none") == 1

    @pytest.mark.asyncio
    async def test_nothing_detected(self):
        provider = FakeTextProvider("not json at all")
        synthesizer, metrics = make_synthesizer(provider)

        assert await synthesizer.synthesize("Tell me about rust") is None
        assert metrics.get("plan.none") == 1

    @pytest.mark.asyncio
    async def test_provider_not_ready(self):
        provider = FakeTextProvider(json.dumps(RESEARCH_THEN_WRITE), ready=False)
        synthesizer, _ = make_synthesizer(provider)

        plan = await synthesizer.synthesize("short summary in french")

        assert provider.calls == 0
        assert plan.final_output_language == "fr"

    @pytest.mark.asyncio
    async def test_empty_request(self):
        provider = FakeTextProvider(json.dumps(RESEARCH_THEN_WRITE))
        synthesizer, _ = make_synthesizer(provider)

        assert await synthesizer.synthesize("  ") is None
        assert provider.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [None, 42, ["summarize"]])
    async def test_non_text_request(self, message):
        provider = FakeTextProvider(json.dumps(RESEARCH_THEN_WRITE))
        synthesizer, _ = make_synthesizer(provider)

        assert await synthesizer.synthesize(message) is None
        assert provider.calls == 0

    @pytest.mark.asyncio
    async def test_typo_in_input_key_uses_pattern_detector(self):
        data = json.loads(json.dumps(RESEARCH_THEN_WRITE))
        data["executionPlan"][1]["input"] = "finding"
        provider = FakeTextProvider(json.dumps(data))
        synthesizer, metrics = make_synthesizer(provider)

        plan = await synthesizer.synthesize("Research bees and write about them")

        assert plan is None
        assert metrics.get("plan.ai") == 0
        assert metrics.get("plan.none") == 1


def test_planning_prompt(page):
    prompt = build_planning_prompt("Give me a brief overview in German", page)
    assert "MULTI-STEP PATTERNS" in prompt
    assert "Content available: Yes" in prompt
    assert 'USER MESSAGE: "Give me a brief overview in German"' in prompt
