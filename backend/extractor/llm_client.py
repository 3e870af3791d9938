"""
OpenAI-compatible LLM client for transcript extraction.
Uses openai SDK with tenacity retry on transient transport errors.
"""

from typing import Optional

from openai import AsyncOpenAI
from openai import APIConnectionError, APITimeoutError, RateLimitError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
REQUEST_TIMEOUT = 120.0


def _create_client(api_config: dict) -> AsyncOpenAI:
    base_url = (api_config.get("baseUrl") or DEFAULT_BASE_URL).rstrip("/")
    api_key = api_config.get("apiKey") or "not-needed"
    return AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=REQUEST_TIMEOUT)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((APIConnectionError, APITimeoutError, RateLimitError)),
)
async def _complete_once(
    client: AsyncOpenAI,
    model: str,
    messages: list[dict],
    temperature: Optional[float],
    response_format: Optional[dict],
) -> str:
    extra: dict = {"temperature": temperature} if temperature is not None else {}
    if response_format:
        extra["response_format"] = response_format
    resp = await client.chat.completions.create(model=model, messages=messages, **extra)
    if not resp.choices:
        return ""
    return resp.choices[0].message.content or ""


async def chat_completion(
    messages: list[dict],
    api_config: dict,
    temperature: Optional[float] = None,
    response_format: Optional[dict] = None,
) -> str:
    """Send one chat request and return the reply text.
    An explicit temperature wins over api_config["temperature"]."""
    model = api_config.get("model") or DEFAULT_MODEL
    temp = temperature if temperature is not None else api_config.get("temperature")
    client = _create_client(api_config)
    try:
        return await _complete_once(client, model, messages, temp, response_format)
    finally:
        await client.close()
