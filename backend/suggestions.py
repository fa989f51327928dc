"""
AI task suggestions: one prompt, one completion call, one JSON parse.

generate_suggestions() never raises for the expected failure modes; it
returns a SuggestionResult tagged with the reason, and status_for() maps
that tag to an HTTP status.
"""
import enum
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import anthropic

import config
from models import SuggestionRequest
from prompts import SUGGESTION_SYSTEM_PROMPT, build_suggestion_prompt

logger = logging.getLogger(__name__)

TEMPERATURE = 0.8
MAX_TOKENS = 500


class SuggestionFailure(str, enum.Enum):
    NOT_CONFIGURED = "not_configured"
    NO_RESPONSE = "no_response"
    PARSE_ERROR = "parse_error"
    UPSTREAM_ERROR = "upstream_error"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"


# failure -> (status code, error message shown to the client)
FAILURE_RESPONSES = {
    SuggestionFailure.NOT_CONFIGURED: (503, "AI service not configured"),
    SuggestionFailure.UNAUTHORIZED: (401, "Invalid API key"),
    SuggestionFailure.RATE_LIMITED: (429, "Rate limit exceeded"),
    SuggestionFailure.NO_RESPONSE: (500, "Failed to generate tasks"),
    SuggestionFailure.PARSE_ERROR: (500, "Failed to generate tasks"),
    SuggestionFailure.UPSTREAM_ERROR: (500, "Failed to generate tasks"),
}


@dataclass
class SuggestionResult:
    tasks: Optional[list] = None
    failure: Optional[SuggestionFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def status_for(result: SuggestionResult) -> int:
    if result.ok:
        return 200
    return FAILURE_RESPONSES[result.failure][0]


def error_message_for(result: SuggestionResult) -> Optional[str]:
    if result.ok:
        return None
    return FAILURE_RESPONSES[result.failure][1]


@lru_cache(maxsize=1)
def _client_for(api_key: str) -> anthropic.AsyncAnthropic:
    return anthropic.AsyncAnthropic(api_key=api_key)


def get_ai_client() -> Optional[anthropic.AsyncAnthropic]:
    """Shared completion client, or None when no API key is configured."""
    if not config.api_key_configured(config.ANTHROPIC_API_KEY):
        return None
    return _client_for(config.ANTHROPIC_API_KEY)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


def _first_text(response) -> Optional[str]:
    content = getattr(response, "content", None) or []
    if not content:
        return None
    return getattr(content[0], "text", None)


async def generate_suggestions(
    client: Optional[anthropic.AsyncAnthropic],
    request: SuggestionRequest,
    model: Optional[str] = None
) -> SuggestionResult:
    if client is None:
        return SuggestionResult(failure=SuggestionFailure.NOT_CONFIGURED)

    prompt = build_suggestion_prompt(
        request.mood,
        request.energy_level,
        request.available_time,
        request.schedule_notes,
    )

    try:
        response = await client.messages.create(
            model=model or config.AI_MODEL,
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
            system=SUGGESTION_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}]
        )
    except anthropic.AuthenticationError as e:
        logger.error("AI task generation rejected the API key: %s", e)
        return SuggestionResult(failure=SuggestionFailure.UNAUTHORIZED)
    except anthropic.RateLimitError as e:
        logger.warning("AI task generation rate limited: %s", e)
        return SuggestionResult(failure=SuggestionFailure.RATE_LIMITED)
    except anthropic.APIError as e:
        logger.error("AI task generation error: %s", e)
        return SuggestionResult(failure=SuggestionFailure.UPSTREAM_ERROR)

    ai_text = _first_text(response)
    if not ai_text:
        logger.error("AI task generation error: no response text")
        return SuggestionResult(failure=SuggestionFailure.NO_RESPONSE)

    logger.debug("AI response: %s", ai_text)

    try:
        tasks = json.loads(strip_code_fence(ai_text))
    except json.JSONDecodeError as e:
        logger.error("AI task generation error: unparsable response (%s)", e)
        return SuggestionResult(failure=SuggestionFailure.PARSE_ERROR)

    if not isinstance(tasks, list):
        logger.error("AI task generation error: expected a JSON array, got %s", type(tasks).__name__)
        return SuggestionResult(failure=SuggestionFailure.PARSE_ERROR)

    return SuggestionResult(tasks=tasks)
