"""OpenAI-compatible chat client used by the progress analysis.

Works against the OpenAI API or a local server speaking the same protocol
(LM Studio, Ollama). Provider and model come from the analysis section of
the app config.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import structlog
from openai import OpenAI

from hujra.config.app_config import AppConfig, load_app_config

logger = structlog.get_logger(__name__)


class LLMError(Exception):
    """The completion request failed."""

    pass


class LLMConnectionError(LLMError):
    """The provider could not be reached."""

    pass


class LLMResponseError(LLMError):
    """The provider answered without any choices."""

    pass


@dataclass
class LLMConfig:
    """Connection and sampling settings for one provider."""

    provider: str = "openai"
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.4
    max_tokens: int = 800
    timeout: int = 60
    api_key: str | None = None

    @classmethod
    def from_app_config(cls, app_config: AppConfig | None = None) -> LLMConfig:
        """Resolve the analysis provider against the configured providers."""
        if app_config is None:
            app_config = load_app_config()

        analysis = app_config.analysis
        settings = {
            "provider": analysis.provider,
            "temperature": analysis.temperature,
            "max_tokens": analysis.max_tokens,
            "timeout": analysis.timeout,
        }

        provider = app_config.providers.get(analysis.provider)
        if provider is None:
            logger.warning("llm.provider_not_configured", provider=analysis.provider)
            return cls(model=analysis.model or cls.model, **settings)

        return cls(
            base_url=provider.base_url,
            model=analysis.model or provider.default_model,
            api_key=provider.get_api_key(),
            **settings,
        )


class LLMClient:
    """Single-turn completions over an OpenAI-compatible API."""

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig.from_app_config()
        self._client = OpenAI(
            base_url=self.config.base_url,
            # Local servers ignore the key but the SDK requires one
            api_key=self.config.api_key or "local",
            timeout=self.config.timeout,
        )

    def simple_chat(self, system_prompt: str, user_message: str) -> str:
        """Send one system prompt and one user message, return the answer text.

        Raises:
            LLMConnectionError: Provider unreachable
            LLMResponseError: Answer has no choices
            LLMError: Any other failure of the request
        """
        started = time.monotonic()
        try:
            response = self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            if "connect" in str(e).lower():
                raise LLMConnectionError(
                    f"{self.config.provider} unreachable at {self.config.base_url}: {e}"
                ) from e
            raise LLMError(f"Completion request failed: {e}") from e

        if not response.choices:
            raise LLMResponseError("Provider returned no choices")

        logger.debug(
            "llm.completed",
            provider=self.config.provider,
            model=self.config.model,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
        return response.choices[0].message.content or ""
