"""CLI tool for the task coordinator."""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from typing_extensions import Annotated

from task_coordinator.config import EngineConfig
from task_coordinator.errors import InvalidRequestError
from task_coordinator.execution.engine import CoordinationEngine
from task_coordinator.execution.formatter import format_result
from task_coordinator.models.request import PageContext
from task_coordinator.observability.logging import setup_logging
from task_coordinator.providers.factory import build_registry

app = typer.Typer(help="Task Coordinator CLI")

TitleOption = Annotated[
    Optional[str], typer.Option("--title", help="Title of the current page")
]
UrlOption = Annotated[
    Optional[str], typer.Option("--url", help="URL of the current page")
]
ContentFileOption = Annotated[
    Optional[Path],
    typer.Option("--content-file", help="Text file holding the page content"),
]
ContextFileOption = Annotated[
    Optional[Path],
    typer.Option(
        "--context-file",
        help="YAML or JSON mapping with title, url and content",
    ),
]
JsonOption = Annotated[
    bool, typer.Option("--json", help="Print the structured result as JSON")
]
MetricsOption = Annotated[
    bool, typer.Option("--metrics", help="Print the coordination counters afterwards")
]


def get_engine() -> CoordinationEngine:
    return CoordinationEngine(build_registry(), EngineConfig.from_env())


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option(help="Log level (defaults to LOG_LEVEL)")
    ] = None,
):
    """Routes language tasks to summarization, translation, writing and research."""
    setup_logging(log_level)


def load_context(
    title: Optional[str] = None,
    url: Optional[str] = None,
    content_file: Optional[Path] = None,
    context_file: Optional[Path] = None,
) -> Optional[PageContext]:
    """Builds the page context from command-line options.

    Explicit options win over the values of ``context_file``.
    """
    data: dict[str, Any] = {}
    if context_file is not None:
        if not context_file.exists():
            typer.echo(f"Error: File not found: {context_file}", err=True)
            raise typer.Exit(code=1)
        try:
            with open(context_file, "r") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            typer.echo(f"Error parsing context file: {str(e)}", err=True)
            raise typer.Exit(code=1)
        if not isinstance(loaded, dict):
            typer.echo("Error: Context file must contain a mapping.", err=True)
            raise typer.Exit(code=1)
        data.update(
            {k: v for k, v in loaded.items() if k in ("title", "url", "content")}
        )

    if content_file is not None:
        if not content_file.exists():
            typer.echo(f"Error: File not found: {content_file}", err=True)
            raise typer.Exit(code=1)
        data["content"] = content_file.read_text()
    if title is not None:
        data["title"] = title
    if url is not None:
        data["url"] = url

    if not data:
        return None
    return PageContext(**{k: str(v) for k, v in data.items() if v is not None})


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command("coordinate")
def coordinate(
    message: Annotated[str, typer.Argument(help="The request to handle")],
    title: TitleOption = None,
    url: UrlOption = None,
    content_file: ContentFileOption = None,
    context_file: ContextFileOption = None,
    as_json: JsonOption = False,
    show_metrics: MetricsOption = False,
):
    """Handles a request end to end and prints the answer."""
    context = load_context(title, url, content_file, context_file)
    engine = get_engine()
    try:
        result = asyncio.run(engine.coordinate(message, context))
    except InvalidRequestError as e:
        typer.echo(f"Error: {e.detail}", err=True)
        raise typer.Exit(code=2)

    if as_json:
        payload = result.model_dump(mode="json")
        payload["answer"] = format_result(result)
        if show_metrics:
            payload["metrics"] = engine.metrics.snapshot()
        _echo_json(payload)
        return

    typer.echo(format_result(result))
    if show_metrics:
        typer.echo(f"\n{engine.metrics.render_markdown()}")


@app.command("classify")
def classify(
    message: Annotated[str, typer.Argument(help="The request to classify")],
    title: TitleOption = None,
    url: UrlOption = None,
    content_file: ContentFileOption = None,
    context_file: ContextFileOption = None,
):
    """Prints the intent of a request without executing it."""
    context = load_context(title, url, content_file, context_file)
    intent = asyncio.run(get_engine().classify_intent(message, context))
    _echo_json(intent.model_dump(mode="json"))


@app.command("plan")
def plan(
    message: Annotated[str, typer.Argument(help="The request to plan")],
    title: TitleOption = None,
    url: UrlOption = None,
    content_file: ContentFileOption = None,
    context_file: ContextFileOption = None,
):
    """Prints the multi-step plan of a request without executing it."""
    context = load_context(title, url, content_file, context_file)
    result = asyncio.run(get_engine().synthesize_plan(message, context))
    if result is None:
        typer.echo("Single-step request; no plan needed.")
        return
    _echo_json(result.model_dump(mode="json"))


@app.command("capabilities")
def capabilities():
    """Lists the readiness of every capability provider."""
    report = asyncio.run(get_engine().capabilities())
    for agent, readiness in report.items():
        status = "Ready" if readiness.available else "Unavailable"
        line = f"[{status}] {agent} ({readiness.availability})"
        if readiness.error:
            line += f": {readiness.error}"
        typer.echo(line)


if __name__ == "__main__":
    app()
