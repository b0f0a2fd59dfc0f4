import json
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from task_coordinator.cli import app, load_context

runner = CliRunner()


class TestCLI:
    @pytest.fixture(autouse=True)
    def setup_engine(self, engine):
        with patch("task_coordinator.cli.get_engine", return_value=engine), patch(
            "task_coordinator.cli.setup_logging"
        ) as setup_logging:
            self.engine = engine
            self.setup_logging = setup_logging
            yield

    @pytest.fixture
    def content_file(self, tmp_path, page):
        path = tmp_path / "page.txt"
        path.write_text(page.content)
        return path

    def test_coordinate(self, content_file):
        result = runner.invoke(
            app,
            [
                "coordinate",
                "Give me a brief overview in German",
                "--title",
                "Quantum Computing",
                "--content-file",
                str(content_file),
            ],
        )
        assert result.exit_code == 0
        assert result.output.startswith("DE(SUMMARY(Quantum computers us))")
        assert "*Agent Chain:* summarizer → translator" in result.output
        self.setup_logging.assert_called_once_with(None)

    def test_coordinate_json(self, content_file):
        result = runner.invoke(
            app,
            [
                "--log-level",
                "DEBUG",
                "coordinate",
                "Give me a brief overview in German",
                "--content-file",
                str(content_file),
                "--json",
            ],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["execution_type"] == "sequential"
        assert data["final_output_language"] == "de"
        assert data["answer"].startswith("DE(")
        self.setup_logging.assert_called_once_with("DEBUG")

    def test_coordinate_with_metrics(self, content_file):
        result = runner.invoke(
            app,
            [
                "coordinate",
                "Give me a brief overview in German",
                "--content-file",
                str(content_file),
                "--metrics",
            ],
        )
        assert result.exit_code == 0
        assert "### Coordination metrics" in result.output
        assert "- **coordinate.sequential**: 1" in result.output
        assert "- **step.success**: 2" in result.output

    def test_coordinate_json_with_metrics(self, content_file):
        result = runner.invoke(
            app,
            [
                "coordinate",
                "Give me a brief overview in German",
                "--content-file",
                str(content_file),
                "--json",
                "--metrics",
            ],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["metrics"]["step.success"] == 2

    def test_coordinate_empty_request(self):
        result = runner.invoke(app, ["coordinate", "   "])
        assert result.exit_code == 2
        assert "Error: Request must be a non-empty text message." in result.output

    def test_classify(self):
        result = runner.invoke(app, ["classify", "Translate this to Spanish"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["primary"] == "translate"
        assert data["target_language"] == "es"
        assert data["ai_powered"] is False

    def test_plan_single_step(self):
        result = runner.invoke(app, ["plan", "Tell me about rust"])
        assert result.exit_code == 0
        assert "Single-step request; no plan needed." in result.output

    def test_plan_multi_step(self):
        result = runner.invoke(app, ["plan", "Give me a brief overview in German"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["execution_type"] == "sequential"
        assert [s["agent"] for s in data["steps"]] == ["summarizer", "translator"]

    def test_capabilities(self, summarizer):
        summarizer.ready = False
        result = runner.invoke(app, ["capabilities"])
        assert result.exit_code == 0
        assert (
            "[Unavailable] summarizer (after-download): model not downloaded"
            in result.output
        )
        assert "[Ready] writer (readily)" in result.output

    def test_missing_context_file(self, tmp_path):
        result = runner.invoke(
            app,
            ["coordinate", "Summarize this", "--context-file", str(tmp_path / "nope.yaml")],
        )
        assert result.exit_code == 1
        assert "File not found" in result.output


class TestLoadContext:
    def test_nothing_given(self):
        assert load_context() is None

    def test_yaml_file_with_overrides(self, tmp_path):
        path = tmp_path / "context.yaml"
        path.write_text(
            "title: From File\nurl: https://example.org\ncontent: Body text\nextra: ignored\n"
        )

        context = load_context(title="Override", context_file=path)

        assert context.title == "Override"
        assert context.url == "https://example.org"
        assert context.content == "Body text"

    def test_json_file(self, tmp_path):
        path = tmp_path / "context.json"
        path.write_text(json.dumps({"title": "T", "content": "C"}))

        context = load_context(context_file=path)

        assert (context.title, context.content) == ("T", "C")

    def test_file_must_hold_a_mapping(self, tmp_path):
        path = tmp_path / "context.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(typer.Exit):
            load_context(context_file=path)
