"""Enumeration definitions for the task coordinator.

This module contains the closed vocabularies shared across the coordinator:
intent categories, capability agents and their actions, plan topologies,
step roles, and summarization parameters.
"""

from enum import Enum


class IntentCategory(str, Enum):
    """The four task categories a request can be classified into.

    Attributes:
        SUMMARIZE: Condense page or text content.
        TRANSLATE: Convert text or page content into another language.
        WRITE: Compose new content (emails, posts, code samples).
        RESEARCH: Answer a question or explain a topic.
    """

    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    WRITE = "write"
    RESEARCH = "research"


class Agent(str, Enum):
    """Capability providers a plan step can target.

    Attributes:
        SUMMARIZER: Summarization provider.
        TRANSLATOR: Translation provider.
        WRITER: Writing provider.
        RESEARCHER: General text-generation provider used for research.
    """

    SUMMARIZER = "summarizer"
    TRANSLATOR = "translator"
    WRITER = "writer"
    RESEARCHER = "research-provider"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            alias = AGENT_ALIASES.get(normalized)
            if alias is not None:
                return cls(alias)
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# Names that language models commonly use for the research provider.
AGENT_ALIASES = {
    "prompter": "research-provider",
    "researcher": "research-provider",
    "research": "research-provider",
    "research_provider": "research-provider",
    "summarize": "summarizer",
    "translate": "translator",
    "write": "writer",
}


class Action(str, Enum):
    """Actions a capability provider can perform."""

    SUMMARIZE_PAGE = "summarize_page"
    SUMMARIZE_TEXT = "summarize_text"
    TRANSLATE_PAGE = "translate_page"
    TRANSLATE_TEXT = "translate_text"
    WRITE_CONTENT = "write_content"
    RESEARCH_QUERY = "research_query"
    PROCESS_PROMPT = "process_prompt"


AGENT_ACTIONS: dict[Agent, frozenset[Action]] = {
    Agent.SUMMARIZER: frozenset({Action.SUMMARIZE_PAGE, Action.SUMMARIZE_TEXT}),
    Agent.TRANSLATOR: frozenset({Action.TRANSLATE_PAGE, Action.TRANSLATE_TEXT}),
    Agent.WRITER: frozenset({Action.WRITE_CONTENT}),
    Agent.RESEARCHER: frozenset(
        {Action.RESEARCH_QUERY, Action.PROCESS_PROMPT}
    ),
}

CATEGORY_AGENTS: dict[IntentCategory, Agent] = {
    IntentCategory.SUMMARIZE: Agent.SUMMARIZER,
    IntentCategory.TRANSLATE: Agent.TRANSLATOR,
    IntentCategory.WRITE: Agent.WRITER,
    IntentCategory.RESEARCH: Agent.RESEARCHER,
}


class ExecutionType(str, Enum):
    """Topology of an execution plan.

    Attributes:
        SINGLE: One capability call.
        SEQUENTIAL: Steps run in order; later steps may consume earlier outputs.
        PARALLEL: Independent steps run concurrently on the original request.
    """

    SINGLE = "single"
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class StepRole(str, Enum):
    """Role of a step result within a coordination run."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    INTERMEDIATE = "intermediate"
    FAILED = "failed"


class SummaryType(str, Enum):
    KEY_POINTS = "key-points"
    TLDR = "tldr"
    TEASER = "teaser"
    HEADLINE = "headline"


class SummaryLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
