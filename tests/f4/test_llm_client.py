"""Tests for LLM client module (F4)."""

from unittest.mock import MagicMock, patch

import pytest

from hujra.config.app_config import AnalysisConfig, AppConfig, ProviderConfig
from hujra.llm.client import (
    LLMClient,
    LLMConfig,
    LLMConnectionError,
    LLMError,
    LLMResponseError,
)


def _completion(content: str | None = "Hello"):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def client():
    with patch("hujra.llm.client.OpenAI") as MockOpenAI:
        instance = LLMClient(LLMConfig(model="test-model", base_url="http://localhost:1234/v1"))
        yield instance, MockOpenAI.return_value


class TestLLMConfig:
    """Tests for LLMConfig dataclass."""

    def test_default_config(self):
        config = LLMConfig()

        assert config.provider == "openai"
        assert config.model == "gpt-4o-mini"
        assert config.temperature == 0.4
        assert config.max_tokens == 800

    def test_from_app_config(self, monkeypatch):
        monkeypatch.setenv("LOCAL_KEY", "secret")
        app_config = AppConfig(
            providers={
                "local": ProviderConfig(
                    base_url="http://localhost:1234/v1",
                    default_model="qwen",
                    api_key_env="LOCAL_KEY",
                )
            },
            analysis=AnalysisConfig(provider="local", temperature=0.1),
        )

        config = LLMConfig.from_app_config(app_config)

        assert config.provider == "local"
        assert config.base_url == "http://localhost:1234/v1"
        assert config.model == "qwen"
        assert config.temperature == 0.1
        assert config.api_key == "secret"

    def test_explicit_model_wins(self):
        app_config = AppConfig(
            providers={"openai": ProviderConfig(base_url=None, default_model="gpt-4o-mini")},
            analysis=AnalysisConfig(provider="openai", model="gpt-4o"),
        )
        assert LLMConfig.from_app_config(app_config).model == "gpt-4o"

    def test_unknown_provider_falls_back(self):
        app_config = AppConfig(analysis=AnalysisConfig(provider="missing"))

        config = LLMConfig.from_app_config(app_config)

        assert config.provider == "missing"
        assert config.base_url is None
        assert config.model == "gpt-4o-mini"


class TestLLMClient:
    """Tests for LLMClient.simple_chat."""

    def test_returns_answer_text(self, client):
        llm, openai = client
        openai.chat.completions.create.return_value = _completion("Hi there")

        assert llm.simple_chat("system", "user") == "Hi there"

    def test_sends_system_then_user(self, client):
        llm, openai = client
        openai.chat.completions.create.return_value = _completion("ok")

        llm.simple_chat("be brief", "how is Ali?")

        kwargs = openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]
        assert kwargs["messages"][1]["content"] == "how is Ali?"

    def test_none_content_becomes_empty(self, client):
        llm, openai = client
        openai.chat.completions.create.return_value = _completion(None)

        assert llm.simple_chat("system", "user") == ""

    def test_connection_error(self, client):
        llm, openai = client
        openai.chat.completions.create.side_effect = Exception("Connection refused")

        with pytest.raises(LLMConnectionError):
            llm.simple_chat("system", "user")

    def test_other_error(self, client):
        llm, openai = client
        openai.chat.completions.create.side_effect = Exception("rate limited")

        with pytest.raises(LLMError) as exc_info:
            llm.simple_chat("system", "user")
        assert not isinstance(exc_info.value, LLMConnectionError)

    def test_empty_choices(self, client):
        llm, openai = client
        response = _completion()
        response.choices = []
        openai.chat.completions.create.return_value = response

        with pytest.raises(LLMResponseError):
            llm.simple_chat("system", "user")
