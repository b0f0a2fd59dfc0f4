import io
import json
import logging
import sys

from task_coordinator.errors import StepExecutionError
from task_coordinator.observability.logging import (
    JsonFormatter,
    get_logger,
    setup_logging,
)
from task_coordinator.observability.metrics import (
    COORDINATION_RUNS_TOTAL,
    EngineMetrics,
    get_metrics_content,
)


def test_json_formatter():
    formatter = JsonFormatter()
    log_record = logging.LogRecord(
        name="test_logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg="test message",
        args=(),
        exc_info=None,
    )
    log_record.extra_fields = {"step": 2, "agent": "translator"}
    log_record.request_id = "req-123"

    data = json.loads(formatter.format(log_record))

    assert data["message"] == "test message"
    assert data["level"] == "INFO"
    assert data["component"] == "test_logger"
    assert data["step"] == 2
    assert data["agent"] == "translator"
    assert data["request_id"] == "req-123"
    assert "extra_fields" not in data
    assert "timestamp" in data


def test_json_formatter_error_code():
    formatter = JsonFormatter()
    try:
        raise StepExecutionError("No text provided")
    except StepExecutionError:
        record = logging.LogRecord(
            "test_logger", logging.ERROR, "test.py", 1, "failed", (), None
        )
        record.exc_info = sys.exc_info()

    data = json.loads(formatter.format(record))

    assert data["error_code"] == "step.failed"
    assert "No text provided" in data["exception"]


def test_setup_logging():
    log_output = io.StringIO()
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        setup_logging("debug", stream=log_output)
        get_logger("test_setup").debug(
            "setup test", extra={"extra_fields": {"test": "ok"}}
        )
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)

    data = json.loads(log_output.getvalue())
    assert data["message"] == "setup test"
    assert data["level"] == "DEBUG"
    assert data["test"] == "ok"


def test_get_logger():
    logger = get_logger("my_name")
    assert logger.name == "my_name"
    assert isinstance(logger, logging.Logger)


class TestEngineMetrics:
    def test_counters(self):
        metrics = EngineMetrics()
        metrics.inc("classify.ai")
        metrics.inc("classify.ai", 2)

        assert metrics.get("classify.ai") == 3
        assert metrics.get("classify.fallback") == 0
        assert metrics.snapshot() == {"classify.ai": 3}

    def test_render_markdown(self):
        metrics = EngineMetrics()
        assert metrics.render_markdown() == "No coordination metrics yet."

        metrics.inc("step.success")
        metrics.inc("coordinate.single")
        assert metrics.render_markdown() == (
            "### Coordination metrics\n"
            "- **coordinate.single**: 1\n"
            "- **step.success**: 1"
        )


def test_prometheus_content():
    COORDINATION_RUNS_TOTAL.labels(execution_type="single", outcome="success").inc()

    content = get_metrics_content()

    assert "coordination_runs_total" in content
    assert 'execution_type="single"' in content
