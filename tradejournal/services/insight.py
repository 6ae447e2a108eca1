"""Insight generator: turns (trend, recent lessons) into one sentence.

Backed by the Gemini generateContent REST endpoint. Without an API key, or
on any failure, a canned insight is returned instead.
"""

import logging
import random

import httpx

from tradejournal.schemas.memory import AgentLesson
from tradejournal.utils.constants import TrendContext

logger = logging.getLogger(__name__)

CANNED_INSIGHTS = [
    "I am refining my order block identification based on the recent volatility.",
    "Detected a liquidity sweep; adjusting entry buffer by 0.2%.",
    "Market structure shift confirmed; switching focus to 5m timeframe.",
    "Volume divergence noted on the hourly; caution advised for long entries.",
    "Optimizing strategy parameters based on live data flow.",
    "Volatility spike detected; widening stop-loss parameters slightly.",
]

PROMPT_TEMPLATE = """You are an autonomous trading agent that grows smarter over time.

Current market context: {trend}

Your short-term memory (what you learned recently):
{lessons}

Task: write ONE new short self-learning log entry.
It must be a specific technical observation or strategy adjustment that evolves
your strategy based on the memory above, not a repeat of an old lesson.
Write in first person ("I have observed...", "I am adjusting...")."""


def canned_insight() -> str:
    return random.choice(CANNED_INSIGHTS)


def build_prompt(trend: TrendContext | str, lessons: list[AgentLesson]) -> str:
    recent = lessons[-5:]
    lines = "\n".join(f"- {lesson.insight}" for lesson in recent) or "- (none yet)"
    return PROMPT_TEMPLATE.format(trend=TrendContext(trend).value, lessons=lines)


class InsightGenerator:
    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def generate(self, trend: TrendContext | str, lessons: list[AgentLesson]) -> str:
        if not self.enabled:
            return canned_insight()

        try:
            client = await self._get_client()
            response = await client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json={"contents": [{"parts": [{"text": build_prompt(trend, lessons)}]}]},
            )
            response.raise_for_status()
            result = response.json()
            text = result["candidates"][0]["content"]["parts"][0]["text"].strip()
            if not text:
                return canned_insight()
            logger.info(f"[insight] Generated insight ({len(text)} chars)")
            return text
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"[insight] Generation failed, using canned insight: {e}")
            return canned_insight()

    async def close(self):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None
