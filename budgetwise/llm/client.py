import asyncio
import logging

import httpx

from budgetwise.config import settings
from budgetwise.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

_api_client = None


def _get_api_client():
    global _api_client
    if _api_client is None:
        import anthropic

        _api_client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _api_client


SDK_MODEL_MAP = {
    "sonnet": "claude-sonnet-4-5-20250929",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-5-20251101",
}


def _resolve_model() -> str:
    return SDK_MODEL_MAP.get(settings.completion_model, settings.completion_model)


def backend_name() -> str:
    return settings.completion_backend


# --- Anthropic SDK backend ---


async def _ask_sdk(prompt: str, system_prompt: str, max_tokens: int, temperature: float) -> str:
    client = _get_api_client()
    kwargs: dict = {
        "model": _resolve_model(),
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": prompt}],
    }
    if system_prompt:
        kwargs["system"] = system_prompt

    response = await client.messages.create(**kwargs)
    return "".join(block.text for block in response.content if block.type == "text")


# --- HTTP chat-completions backend ---


async def _ask_http(prompt: str, system_prompt: str, max_tokens: int, temperature: float) -> str:
    if not settings.completion_api_url:
        raise UpstreamServiceError("completion_api_url is not configured")

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})

    headers = {"Content-Type": "application/json"}
    if settings.completion_api_key:
        headers["Authorization"] = f"Bearer {settings.completion_api_key}"

    url = settings.completion_api_url.rstrip("/") + "/api/v1/chat/completions"
    async with httpx.AsyncClient() as client:
        resp = await client.post(
            url,
            headers=headers,
            json={
                "model": settings.completion_model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )
        resp.raise_for_status()
        data = resp.json()

    choices = data.get("choices") or []
    if not choices:
        raise UpstreamServiceError(f"Completion endpoint returned no choices: {str(data)[:300]}")
    return str(choices[0].get("message", {}).get("content", ""))


# --- Public interface ---


async def ask_completion(
    prompt: str,
    *,
    system_prompt: str = "",
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> str:
    """Single completion call against the configured backend.

    No retries. Timeouts and transport or API failures surface as UpstreamServiceError.
    """
    max_tokens = max_tokens or settings.completion_max_tokens
    temperature = settings.completion_temperature if temperature is None else temperature
    ask = _ask_http if settings.completion_backend == "http" else _ask_sdk

    try:
        return await asyncio.wait_for(
            ask(prompt, system_prompt, max_tokens, temperature),
            timeout=settings.completion_timeout,
        )
    except UpstreamServiceError:
        raise
    except TimeoutError:
        raise UpstreamServiceError(f"Completion timed out after {settings.completion_timeout}s") from None
    except Exception as exc:
        logger.warning("Completion call failed (%s): %s", settings.completion_backend, exc)
        raise UpstreamServiceError(str(exc)) from exc
