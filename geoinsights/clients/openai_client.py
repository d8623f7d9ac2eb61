"""
OpenAI client with rate limiting using aiolimiter, and an address geocoder built on it.
"""
import json
import math
from typing import Optional, Tuple

from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from geoinsights.config import LLM_MAX_RATE, OPENAI_API_KEY, OPENAI_MODEL


class OpenAIClient:
    """
    OpenAI client for making API requests.
    Uses AsyncLimiter for rate limiting instead of semaphores.
    """

    def __init__(self, api_key: Optional[str] = None, max_rate: int = LLM_MAX_RATE):
        api_key = api_key or OPENAI_API_KEY
        if not api_key:
            raise ValueError("OPENAI_API_KEY must be set in environment or config")

        self.client = AsyncOpenAI(api_key=api_key)
        # Token bucket: max_rate requests per minute
        self.rate_limiter = AsyncLimiter(max_rate=max_rate, time_period=60.0)

    async def chat_completions_create(self, **kwargs):
        """
        Create a chat completion with rate limiting.
        Accepts all arguments that AsyncOpenAI.chat.completions.create accepts.

        Returns:
            The response from OpenAI's chat completions API.
        """
        async with self.rate_limiter:
            try:
                return await self.client.chat.completions.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenAI API request failed: {e}")
                raise


PROMPT_TEMPLATE = """You are a geocoding expert. Given an address, you will return the latitude and longitude of the address.

Respond with ONLY a JSON object of the form {{"latitude": <number>, "longitude": <number>}}.

Address: {address}
"""


def parse_llm_coordinates(text: str) -> Tuple[float, float]:
    """
    Extract (lat, lon) from the model's JSON reply.

    Raises:
        ValueError: If the reply is not a JSON object with finite latitude/longitude.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    try:
        payload = json.loads(cleaned)
        lat = float(payload["latitude"])
        lon = float(payload["longitude"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Unparseable geocoding reply: {text!r}") from e
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"Non-finite coordinates in geocoding reply: {text!r}")
    return lat, lon


class LLMGeocoder:
    """Forward geocoder that asks a language model for an address' coordinates."""

    def __init__(self, client: OpenAIClient, model: str = OPENAI_MODEL):
        self.client = client
        self.model = model

    async def geocode(self, address: str) -> Optional[Tuple[float, float]]:
        resp = await self.client.chat_completions_create(
            model=self.model,
            messages=[{"role": "user", "content": PROMPT_TEMPLATE.format(address=address)}],
            temperature=0,
        )
        return parse_llm_coordinates(resp.choices[0].message.content or "")
