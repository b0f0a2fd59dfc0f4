import pytest
from pydantic import ValidationError

from task_coordinator.config import EngineConfig


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.default_language == "en"
        assert config.classification_timeout_s == 30
        assert config.planning_timeout_s == 120
        assert config.preview_chars == 500
        assert config.max_input_chars == 100_000
        assert config.dispatch_secondary_intents is True

    def test_unsupported_language_falls_back(self, caplog):
        config = EngineConfig(default_language="de")
        assert config.default_language == "en"
        assert "not supported" in caplog.text

    def test_supported_language(self):
        assert EngineConfig(default_language=" JA ").default_language == "ja"

    def test_frozen(self):
        config = EngineConfig()
        with pytest.raises(ValidationError):
            config.preview_chars = 10

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValidationError):
            EngineConfig(planning_timeout_s=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("COORDINATOR_DEFAULT_LANGUAGE", "es")
        monkeypatch.setenv("COORDINATOR_CLASSIFY_TIMEOUT", "5")
        monkeypatch.setenv("COORDINATOR_PLAN_TIMEOUT", "15.5")
        monkeypatch.setenv("COORDINATOR_PREVIEW_CHARS", "100")
        monkeypatch.setenv("COORDINATOR_MAX_INPUT_CHARS", "2000")
        monkeypatch.setenv("COORDINATOR_DISPATCH_SECONDARY", "false")

        config = EngineConfig.from_env()

        assert config.default_language == "es"
        assert config.classification_timeout_s == 5
        assert config.planning_timeout_s == 15.5
        assert config.preview_chars == 100
        assert config.max_input_chars == 2000
        assert config.dispatch_secondary_intents is False

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("COORDINATOR_DEFAULT_LANGUAGE", "es")
        config = EngineConfig.from_env(default_language="ja")
        assert config.default_language == "ja"
