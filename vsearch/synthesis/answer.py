"""LLM answer synthesis over retrieved sources.

``synthesize`` returns the whole answer, retrying transient model failures
with a doubling backoff.  ``synthesize_stream`` yields text chunks as the
model produces them and is not retried (chunks may already have been shown).
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Mapping, Sequence

from vsearch.config import settings
from vsearch.synthesis.prompt import SYSTEM_PROMPT


_RATE_LIMIT_RE = re.compile(r"rate.?limit|too many requests|\b429\b")
_AUTH_RE = re.compile(r"authentication|unauthori[sz]ed|invalid api key|\b401\b")


class SynthesisError(RuntimeError):
    """The chat model produced no usable answer."""


# ---------------------------------------------------------------------------
# LLM helper
# ---------------------------------------------------------------------------

def _get_llm(
    temperature: float | None = None,
    max_tokens: int | None = None,
    streaming: bool = False,
) -> Any:
    """Return a configured LangChain chat model based on ``settings``."""
    temperature = settings.llm_temperature if temperature is None else temperature
    max_tokens = settings.llm_max_tokens if max_tokens is None else max_tokens

    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=settings.openai_chat_model,
            temperature=temperature,
            max_tokens=max_tokens,
            base_url=settings.openai_base_url or None,
            streaming=streaming,
        )

    from langchain_ollama import ChatOllama

    return ChatOllama(
        model=settings.ollama_chat_model,
        base_url=settings.ollama_base_url,
        temperature=temperature,
        num_predict=max_tokens,
    )


def _to_messages(
    prompt: str,
    previous_messages: Sequence[Mapping[str, str]],
    system_prompt: str,
) -> list[Any]:
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    messages: list[Any] = [SystemMessage(content=system_prompt)]
    for turn in previous_messages:
        role = turn.get("role", "user")
        content = turn.get("content", "")
        if role == "assistant":
            messages.append(AIMessage(content=content))
        elif role == "system":
            messages.append(SystemMessage(content=content))
        else:
            messages.append(HumanMessage(content=content))
    messages.append(HumanMessage(content=prompt))
    return messages


def _content_of(response: Any) -> str:
    content = response.content if hasattr(response, "content") else response
    return content if isinstance(content, str) else str(content or "")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def synthesize(
    prompt: str,
    previous_messages: Sequence[Mapping[str, str]] = (),
    system_prompt: str = SYSTEM_PROMPT,
) -> str:
    """Answer *prompt* in the context of *previous_messages*.

    Model calls are retried ``settings.synthesis_max_retries`` times, waiting
    ``synthesis_retry_delay`` seconds before the first retry and doubling the
    wait each time.

    Raises:
        SynthesisError: the model answered with empty content.
        Exception: the provider's own error once the retries are exhausted.
    """
    llm = _get_llm()
    messages = _to_messages(prompt, previous_messages, system_prompt)

    delay = settings.synthesis_retry_delay
    retries = settings.synthesis_max_retries
    while True:
        try:
            response = await llm.ainvoke(messages)
            break
        except Exception as exc:  # noqa: BLE001
            if retries <= 0:
                raise
            print(f"[synthesis] Model call failed ({exc!r}), retrying in {delay:g}s")
            await asyncio.sleep(delay)
            retries -= 1
            delay *= 2

    content = _content_of(response).strip()
    if not content:
        raise SynthesisError("No content returned from the model")
    return content


async def synthesize_stream(
    prompt: str,
    previous_messages: Sequence[Mapping[str, str]] = (),
    system_prompt: str = SYSTEM_PROMPT,
) -> AsyncIterator[str]:
    """Yield answer text chunks as the model streams them."""
    llm = _get_llm(streaming=True)
    messages = _to_messages(prompt, previous_messages, system_prompt)
    async for chunk in llm.astream(messages):
        text = _content_of(chunk)
        if text:
            yield text


def answer_metadata(prompt: str, content: str) -> dict[str, Any]:
    """Model name, timestamp and rough (chars / 4) token estimates."""
    return {
        "model": settings.llm_model_name,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "promptTokens": len(prompt) // 4,
        "completionTokens": len(content) // 4,
    }


def describe_synthesis_error(exc: BaseException) -> str:
    """Map a synthesis failure to a message that can be shown to a user."""
    message = str(exc).lower()
    if _RATE_LIMIT_RE.search(message):
        return "We've reached our API rate limit. Please try again in a moment."
    if (
        isinstance(exc, (asyncio.TimeoutError, TimeoutError))
        or "timeout" in message
        or "timed out" in message
    ):
        return "The request timed out. Please try a simpler query or try again later."
    if _AUTH_RE.search(message):
        return (
            "There's an authentication issue with our AI service. "
            "Please try again later."
        )
    return "We're having trouble generating a response. Please try again."
