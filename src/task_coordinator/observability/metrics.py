"""Coordination metrics.

Process-wide Prometheus series live in a dedicated registry; per-engine
outcome counters live on :class:`EngineMetrics`.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest
from pydantic import BaseModel, ConfigDict, Field

REGISTRY = CollectorRegistry()

LLM_TOKEN_USAGE_TOTAL = Counter(
    "llm_token_usage_total",
    "Total tokens consumed by text-generation providers.",
    ["model"],
    registry=REGISTRY,
)

COORDINATION_RUNS_TOTAL = Counter(
    "coordination_runs_total",
    "Coordination calls by execution type and outcome.",
    ["execution_type", "outcome"],
    registry=REGISTRY,
)

STEP_OUTCOMES_TOTAL = Counter(
    "coordination_step_outcomes_total",
    "Capability calls by agent and outcome.",
    ["agent", "outcome"],
    registry=REGISTRY,
)


def get_metrics_content() -> str:
    """Renders the coordinator registry in the Prometheus text format."""
    return generate_latest(REGISTRY).decode("utf-8")


class EngineMetrics(BaseModel):
    """Named outcome counters for one coordination engine."""

    model_config = ConfigDict(extra="forbid")

    counters: dict[str, int] = Field(
        default_factory=dict, description="Named counters for coordination outcomes."
    )

    def inc(self, key: str, n: int = 1) -> None:
        self.counters[key] = self.counters.get(key, 0) + n

    def get(self, key: str) -> int:
        return self.counters.get(key, 0)

    def snapshot(self) -> dict[str, int]:
        return dict(self.counters)

    def render_markdown(self) -> str:
        if not self.counters:
            return "No coordination metrics yet."
        lines = ["### Coordination metrics"]
        for key in sorted(self.counters):
            lines.append(f"- **{key}**: {self.counters[key]}")
        return "\n".join(lines)
