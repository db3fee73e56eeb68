"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from audit_agent.settings import AuditAgentSettings


class TestAuditAgentSettings:
    """Settings are read from the environment with sane defaults."""

    def test_defaults(self, monkeypatch, tmp_path) -> None:
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        settings = AuditAgentSettings(_env_file=None, db_path=str(tmp_path / "db" / "a.db"))

        assert settings.llm_provider == "gemini"
        assert settings.flash_model == "gemini-3-flash-preview"
        assert settings.pro_model == "gemini-3-pro-preview"
        assert settings.thinking_budget == 32768
        assert settings.log_level == "INFO"
        assert settings.max_pdf_size_bytes == settings.max_pdf_size_mb * 1024 * 1024

    def test_api_key_alias(self, monkeypatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("API_KEY", "secret-key")

        settings = AuditAgentSettings(_env_file=None)

        assert settings.gemini_api_key == "secret-key"
        assert settings.api_key_for() == "secret-key"
        assert settings.api_key_env_name() == "API_KEY"

    def test_openai_provider_uses_openai_key(self, monkeypatch) -> None:
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        settings = AuditAgentSettings(_env_file=None)

        assert settings.api_key_for() == "sk-test"
        assert settings.api_key_env_name() == "OPENAI_API_KEY"
        assert settings.api_key_for("gemini") == settings.gemini_api_key
        assert settings.api_key_env_name("gemini") == "API_KEY"

    def test_rejects_unknown_provider(self, monkeypatch) -> None:
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")

        with pytest.raises(ValidationError):
            AuditAgentSettings(_env_file=None)

    def test_creates_parent_directories(self, tmp_path) -> None:
        metrics_file = tmp_path / "nested" / "metrics" / "m.json"

        AuditAgentSettings(_env_file=None, metrics_file=str(metrics_file))

        assert metrics_file.parent.is_dir()
