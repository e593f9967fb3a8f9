# core/anthropic_client.py
from typing import Any, Dict, Optional
import httpx
from config.settings import settings
import logging
from util.timing import timed

logger = logging.getLogger(__name__)


class SummaryError(RuntimeError):
    pass


async def _post_json(
    url: str,
    headers: Dict[str, str],
    payload: Dict[str, Any],
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Make a JSON POST to `url`. Raises for non-2xx. Returns parsed JSON dict or {} on parse failure.
    """
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0)) as client:
        r = await client.post(url, headers=headers, json=payload)
        r.raise_for_status()
        try:
            return r.json()
        except ValueError:
            return {}


def _summary_user(transcript: str, word_budget: int, instructions: Optional[str]) -> str:
    """
    Build the user message: budget first, optional steering, then the transcript.
    """
    parts = [f"Summarize the following transcript in at most {word_budget} words."]
    extra = (instructions or "").strip()
    if extra:
        parts.append(f"Additional instructions:\n{extra}")
    parts.append(f"TRANSCRIPT:\n{transcript}")
    return "\n\n".join(parts)


def _max_tokens_for(word_budget: int) -> int:
    # ~1.5 tokens per word for latin text plus headroom for markdown
    return max(256, int(word_budget * 2) + 64)


def _response_text(data: Dict[str, Any]) -> str:
    content = data.get("content") or []
    if not isinstance(content, list):
        return ""
    texts = [
        node.get("text") or ""
        for node in content
        if isinstance(node, dict) and node.get("type") == "text"
    ]
    return "".join(texts).strip()


class AnthropicSummarizer:
    """Summarize stage backed by the Anthropic Messages API."""

    def __init__(
        self,
        *,
        api_key: str = settings.ANTHROPIC_API_KEY,
        model: str = settings.ANTHROPIC_MODEL,
        api_url: str = settings.ANTHROPIC_API_URL,
        timeout: Optional[float] = settings.HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = api_url
        self._timeout = timeout

    async def summarize(
        self, transcript: str, word_budget: int, instructions: Optional[str]
    ) -> str:
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": settings.ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": self._model,
            "max_tokens": _max_tokens_for(word_budget),
            "system": settings.SUMMARY_SYSTEM_PROMPT,
            "messages": [
                {
                    "role": "user",
                    "content": _summary_user(transcript, word_budget, instructions),
                }
            ],
            "temperature": 0.2,
        }
        with timed(logger, "ai.summarize", model=self._model, words=word_budget):
            data = await _post_json(self._url, headers, payload, timeout=self._timeout)

        text = _response_text(data)
        if not text:
            raise SummaryError("model returned no text")
        logger.info("ai.summarize.ok words=%d", len(text.split()))
        return text
