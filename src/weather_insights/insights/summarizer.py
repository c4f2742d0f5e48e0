"""Narrative digest via an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from ..config import Settings
from ..exceptions import SummarizerUnavailable
from ..models import CityInsight
from ..redaction import sanitize_text

CONTEXT_CITY_LIMIT = 3

SYSTEM_PROMPT = (
    "You are a concise weather assistant. Always follow the requested format "
    "and write in plain English."
)

INSTRUCTION_TEMPLATE = [
    "Write a short, actionable summary of weather and comfort across the monitored cities.",
    "Use this aggregated data: {context}",
    "ALWAYS answer in markdown, following exactly this format:",
    "## Quick overview",
    "- bullet 1 with an objective insight",
    "- bullet 2 with an objective insight",
    "- bullet 3 with an objective insight",
    "## Practical recommendations",
    "- 3 short bullets using imperative verbs (hydrate, avoid direct sun, wear a coat, etc.)",
    "## Alerts and notes",
    '- list risks/alerts; if there are none, write: "No critical alerts in recent readings."',
    "Keep the tone clear and direct.",
]


class NarrativeSummarizer(Protocol):
    def summarize(self, context_text: str, model: str) -> str: ...


def _fmt(value: float) -> str:
    return f"{value:.1f}"


def build_context_text(insights: list[CityInsight], limit: int = CONTEXT_CITY_LIMIT) -> str:
    """Compact one-line summary of the first ``limit`` city insights."""
    return " | ".join(
        f"{city.city}: avg temp {_fmt(city.average_temperature)} C, "
        f"avg humidity {_fmt(city.average_humidity)}%, "
        f"trend {city.trend}, "
        f"comfort {city.comfort_index if city.comfort_index is not None else 'N/A'}, "
        f"alerts {'; '.join(city.alerts) or 'none'}"
        for city in insights[:limit]
    )


def build_prompt(context_text: str) -> str:
    return " ".join(INSTRUCTION_TEMPLATE).format(context=context_text)


class OpenAINarrativeSummarizer:
    """Asks a chat completions endpoint for a formatted digest.

    Any failure, including a missing credential, surfaces as
    SummarizerUnavailable so callers can degrade without the narrative.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or logging.getLogger("weather_insights.summarizer")
        self._client = client or httpx.Client(timeout=settings.openai_timeout_seconds)

    def __enter__(self) -> OpenAINarrativeSummarizer:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def summarize(self, context_text: str, model: str) -> str:
        api_key = self.settings.openai_api_key
        if not api_key:
            raise SummarizerUnavailable("OPENAI_API_KEY is not configured.")

        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(context_text)},
            ],
            "temperature": self.settings.openai_temperature,
            "max_tokens": self.settings.openai_max_tokens,
        }
        url = f"{self.settings.openai_base_url.rstrip('/')}/chat/completions"
        try:
            response = self._client.post(
                url,
                json=body,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise SummarizerUnavailable(
                f"chat completions failed ({exc.response.status_code}): "
                f"{sanitize_text(exc.response.text[:300])}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SummarizerUnavailable(
                f"chat completions request failed: {type(exc).__name__}"
            ) from exc
        except httpx.InvalidURL as exc:
            raise SummarizerUnavailable(
                f"OPENAI_BASE_URL is not a valid URL: {sanitize_text(str(exc))}"
            ) from exc
        except ValueError as exc:
            raise SummarizerUnavailable("chat completions returned non-JSON response.") from exc

        text = _extract_message_content(data)
        if text is None:
            raise SummarizerUnavailable("chat completions response had no message content.")
        return text


def _extract_message_content(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()
