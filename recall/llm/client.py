"""Async Claude client for single-shot completions."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import anthropic

from recall.config import settings
from recall.errors import ExternalServiceError
from recall.llm.prompt import render_transcript

logger = logging.getLogger(__name__)

# (system_prompt, messages) -> response text
CompletionFn = Callable[[str, list[dict[str, str]]], Awaitable[str]]

_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


async def complete_text(
    messages: list[dict[str, Any]],
    *,
    system: str | None = None,
    model: str | None = None,
    max_tokens: int | None = None,
) -> str:
    """Single-shot Claude call — no tools, no streaming.

    Raises ``ExternalServiceError`` when the API call fails or returns no text.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": model or settings.completion_model,
        "max_tokens": max_tokens or settings.completion_max_tokens,
        "messages": messages,
    }
    if system is not None:
        kwargs["system"] = system
    try:
        response = await client.messages.create(**kwargs)
    except anthropic.APIError as exc:
        msg = f"Completion request failed: {exc}"
        raise ExternalServiceError(msg) from exc

    texts = [block.text for block in response.content if block.type == "text"]
    if not texts:
        msg = "Completion response contained no text"
        raise ExternalServiceError(msg)
    return "".join(texts)


async def complete_chat(system_prompt: str, messages: list[dict[str, str]]) -> str:
    """Run *messages* past the model under *system_prompt*, returning its reply.

    The conversation is rendered into a single transcript turn so any
    role ordering is accepted.
    """
    logger.debug("Completion request: %d message(s)", len(messages))
    prompt = render_transcript(messages)
    return await complete_text([{"role": "user", "content": prompt}], system=system_prompt)
