"""Reduces a coordination result to one displayable answer."""

from task_coordinator.coordination.languages import language_name
from task_coordinator.models.enums import Agent, ExecutionType, StepRole
from task_coordinator.models.execution_result import CoordinationResult

DIVIDER = "\n\n---\n\n"
NO_RESULTS_MESSAGE = "No results available."

AGENT_HEADINGS = {
    Agent.SUMMARIZER: "Summarizer",
    Agent.TRANSLATOR: "Translator",
    Agent.WRITER: "Writer",
    Agent.RESEARCHER: "Research",
}


def _explain_failure(result: CoordinationResult) -> str:
    if result.message:
        return result.message
    errors = [r.error for r in result.results if r.error]
    if errors:
        return f"The request could not be completed: {errors[-1]}"
    return NO_RESULTS_MESSAGE


def format_result(result: CoordinationResult) -> str:
    """Returns the user-facing text for ``result``.

    Never returns an empty string: a run without any successful step yields an
    explanation instead.
    """
    successful = result.successful_results
    if not successful:
        return _explain_failure(result)

    if result.execution_type == ExecutionType.SEQUENTIAL:
        return _format_sequential(result)
    if result.execution_type == ExecutionType.PARALLEL:
        return _format_parallel(result)

    primary = next((r for r in successful if r.role == StepRole.PRIMARY), None)
    lead = primary or successful[0]
    sections = [lead.result or ""]
    # secondary intents dispatched after the primary one
    for r in successful:
        if r is not lead and r.role == StepRole.SECONDARY:
            sections.append(f"### {AGENT_HEADINGS[r.agent]} Result\n\n{r.result or ''}")
    return DIVIDER.join(sections)


def _format_sequential(result: CoordinationResult) -> str:
    successful = result.successful_results
    text = successful[-1].result or ""
    if len(successful) < 2:
        return text

    chain = " → ".join(r.agent.value for r in successful)
    note = (
        "*Multi-Step Processing Completed*\n"
        f"*Agent Chain:* {chain}\n"
        f"*Steps:* {len(successful)}"
    )
    if result.final_output_language:
        note += f"\n*Output Language:* {language_name(result.final_output_language)}"
    return f"{text}{DIVIDER}{note}"


def _format_parallel(result: CoordinationResult) -> str:
    sections = [
        f"### {AGENT_HEADINGS[r.agent]} Result\n\n{r.result or ''}"
        for r in result.successful_results
    ]
    count = len(sections)
    footer = f"*Completed {count} parallel operation{'s' if count != 1 else ''}*"
    return DIVIDER.join(sections) + f"{DIVIDER}{footer}"
