"""
TCF Manager — LLM Provider Abstraction.

One coroutine, `complete()`, routed to the provider named by LLM_PROVIDER:
gemini (default), anthropic, openai or cohere. Provider SDKs are imported
inside their call so only the configured one has to import cleanly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMNotConfiguredError(RuntimeError):
    """Raised when no API key is set for the LLM provider."""


@dataclass(frozen=True)
class CompletionRequest:
    system: str
    prompt: str
    max_tokens: int = 1024
    temperature: float = 0.3


# (api_key, model, request) -> text
_CallFn = Callable[[str, str, CompletionRequest], Awaitable[str]]


# ---------------------------------------------------------------------------
# Provider calls
# ---------------------------------------------------------------------------


async def _call_gemini(api_key: str, model: str, req: CompletionRequest) -> str:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    client = genai.GenerativeModel(model_name=model, system_instruction=req.system)
    config = genai.types.GenerationConfig(
        max_output_tokens=req.max_tokens, temperature=req.temperature,
    )
    result = await client.generate_content_async(req.prompt, generation_config=config)
    return result.text


async def _call_anthropic(api_key: str, model: str, req: CompletionRequest) -> str:
    from anthropic import AsyncAnthropic

    result = await AsyncAnthropic(api_key=api_key).messages.create(
        model=model,
        system=req.system,
        messages=[{"role": "user", "content": req.prompt}],
        max_tokens=req.max_tokens,
        temperature=req.temperature,
    )
    return "".join(block.text for block in result.content if block.type == "text")


def _chat_messages(req: CompletionRequest) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": req.system},
        {"role": "user", "content": req.prompt},
    ]


async def _call_openai(api_key: str, model: str, req: CompletionRequest) -> str:
    from openai import AsyncOpenAI

    result = await AsyncOpenAI(api_key=api_key).chat.completions.create(
        model=model,
        messages=_chat_messages(req),
        max_tokens=req.max_tokens,
        temperature=req.temperature,
    )
    return result.choices[0].message.content or ""


async def _call_cohere(api_key: str, model: str, req: CompletionRequest) -> str:
    from cohere import AsyncClientV2

    result = await AsyncClientV2(api_key=api_key).chat(
        model=model,
        messages=_chat_messages(req),
        max_tokens=req.max_tokens,
        temperature=req.temperature,
    )
    return "".join(item.text for item in result.message.content or [])


# provider name -> (call, default model)
_PROVIDERS: dict[str, tuple[_CallFn, str]] = {
    "gemini": (_call_gemini, "gemini-2.5-flash"),
    "anthropic": (_call_anthropic, "claude-haiku-4-5-20251001"),
    "openai": (_call_openai, "gpt-4o-mini"),
    "cohere": (_call_cohere, "command-a-03-2025"),
}


@dataclass(frozen=True)
class _Provider:
    name: str
    call: _CallFn
    model: str
    api_key: str


@lru_cache(maxsize=1)
def _select_provider() -> _Provider:
    """Resolve the configured provider once per process."""
    from tcf_manager.config import settings

    if not settings.llm_configured:
        raise LLMNotConfiguredError("LLM_API_KEY is not set")

    name = settings.LLM_PROVIDER.strip().lower()
    if name not in _PROVIDERS:
        raise ValueError(f"Unknown LLM_PROVIDER={name!r}; expected one of {sorted(_PROVIDERS)}")
    call, default_model = _PROVIDERS[name]
    provider = _Provider(name, call, settings.LLM_MODEL or default_model, settings.LLM_API_KEY)
    logger.info("LLM provider: %s, model: %s", provider.name, provider.model)
    return provider


def is_configured() -> bool:
    from tcf_manager.config import settings

    return settings.llm_configured


async def complete(
    system: str,
    user_message: str,
    max_tokens: int = 1024,
    temperature: float = 0.3,
) -> str:
    """Send one prompt to the configured provider and return its text.

    Raises LLMNotConfiguredError without a key. API errors propagate.
    """
    provider = _select_provider()
    request = CompletionRequest(system, user_message, max_tokens, temperature)
    return await provider.call(provider.api_key, provider.model, request)
