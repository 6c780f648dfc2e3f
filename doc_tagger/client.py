"""Model clients behind one async chat interface.

The analyzer only needs "send a system + user message, get text and usage
back". The OpenAI-compatible client covers custom endpoints (Ollama,
LiteLLM, vLLM, ...) and OpenAI itself; Anthropic gets its own adapter that
maps usage into the same counters.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any

import anthropic
import openai

from .config import AnalyzerConfig
from .errors import ClientUnavailable, ParseError

logger = logging.getLogger(__name__)

# Reasoning models that reject a temperature parameter.
NO_TEMPERATURE_MODELS = frozenset({"o1", "o1-mini", "o3-mini"})


@dataclass(frozen=True)
class ChatReply:
    """Text and raw usage counters from one completion."""

    text: str
    model: str
    usage: dict[str, int] | None = None


class ChatClient(abc.ABC):
    """Abstract single-turn chat completion client."""

    model: str

    @abc.abstractmethod
    async def complete(
        self,
        *,
        system: str | None,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatReply:
        """Send one system + user exchange and return the reply."""


class OpenAICompatibleClient(ChatClient):
    """Chat completions against OpenAI or any OpenAI-compatible server."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

    async def complete(
        self,
        *,
        system: str | None,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatReply:
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        if temperature is not None and self.model not in NO_TEMPERATURE_MODELS:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        resp = await self._client.chat.completions.create(**kwargs)
        if not resp.choices or not resp.choices[0].message.content:
            raise ParseError("Invalid API response structure")

        usage = None
        if resp.usage is not None:
            usage = {
                "prompt_tokens": resp.usage.prompt_tokens,
                "completion_tokens": resp.usage.completion_tokens,
                "total_tokens": resp.usage.total_tokens,
            }
        return ChatReply(
            text=resp.choices[0].message.content,
            model=resp.model or self.model,
            usage=usage,
        )


class AnthropicChatClient(ChatClient):
    """Claude messages API, reporting usage in chat-completion terms."""

    def __init__(self, api_key: str, model: str, timeout: float = 120.0) -> None:
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

    async def complete(
        self,
        *,
        system: str | None,
        user: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatReply:
        kwargs: dict[str, Any] = {
            "model": self.model,
            # The messages API requires an explicit output cap.
            "max_tokens": max_tokens or 4096,
            "messages": [{"role": "user", "content": user}],
        }
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = min(temperature, 1.0)

        resp = await self._client.messages.create(**kwargs)
        text = "".join(
            block.text for block in resp.content if block.type == "text"
        )
        if not text:
            raise ParseError("Invalid API response structure")

        usage = None
        if resp.usage is not None:
            prompt = resp.usage.input_tokens
            completion = resp.usage.output_tokens
            usage = {
                "prompt_tokens": prompt,
                "completion_tokens": completion,
                "total_tokens": prompt + completion,
            }
        return ChatReply(text=text, model=resp.model or self.model, usage=usage)


def create_client(config: AnalyzerConfig) -> ChatClient:
    """Create the chat client for the configured provider.

    Raises:
        ClientUnavailable: If the provider is missing its base URL or key.
    """
    if config.provider == "custom":
        if not config.api_url:
            raise ClientUnavailable(
                "Custom OpenAI client not initialized - missing CUSTOM_BASE_URL"
            )
        # Local OpenAI-compatible servers usually ignore the key, but the
        # SDK refuses to start without one.
        return OpenAICompatibleClient(
            api_key=config.api_key or "not-needed",
            model=config.model,
            base_url=config.api_url,
            timeout=config.request_timeout,
        )

    if not config.api_key:
        raise ClientUnavailable(
            f"{config.provider} client not initialized - missing API key"
        )

    if config.provider == "anthropic":
        return AnthropicChatClient(
            api_key=config.api_key,
            model=config.model,
            timeout=config.request_timeout,
        )

    return OpenAICompatibleClient(
        api_key=config.api_key,
        model=config.model,
        base_url=config.api_url,
        timeout=config.request_timeout,
    )
