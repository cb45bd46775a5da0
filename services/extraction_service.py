"""
Meeting-transcript analysis through an OpenAI-compatible chat-completions API.

The model is asked for JSON only; the reply is validated into
TranscriptAnalysis before anything else sees it.
"""

import json
import time

import httpx
from pydantic import ValidationError

from core.config import settings
from schemas.meeting_schemas import TranscriptAnalysis
from utils.logger import get_logger

logger = get_logger(__name__)


class ExtractionError(Exception):
    """The analysis could not be produced (config, transport or bad output)."""


SYSTEM_PROMPT = """You are a meeting notes analyst. Your job is to analyze meeting transcripts and extract action items.

IMPORTANT RULES:
1. Focus on extracting action items that are relevant to the user named "{user_name}".
2. Look for the user's name (or variations/nicknames) throughout the transcript.
3. If the user is directly mentioned or assigned a task, always include it.
4. If a task is assigned to "everyone" or "the team", include it as well.
5. If no tasks are found for the user, return an empty actionItems array.
6. For priority: use URGENT for things with tight deadlines or critical blockers, HIGH for important items, MEDIUM for standard tasks, LOW for nice-to-haves.
7. For suggestedDueDate: only include a date if one was explicitly mentioned in the transcript. Use ISO 8601 format. If no date was mentioned, set to null.
8. Keep task titles concise and actionable (start with a verb).
9. Include relevant context from the meeting in the description.
10. Generate a brief summary of the overall meeting.

You MUST respond with valid JSON in this exact format:
{{
  "summary": "A brief 2-3 sentence summary of the meeting",
  "actionItems": [
    {{
      "title": "Short actionable task title starting with a verb",
      "description": "Detailed description with context from the meeting",
      "priority": "LOW | MEDIUM | HIGH | URGENT",
      "suggestedDueDate": "ISO 8601 date string or null"
    }}
  ]
}}"""


class ExtractionService:
    """
    Client for the extraction backend.

    Args:
        api_key: Bearer key for the backend (default: settings.LLM_API_KEY)
        base_url: API root, e.g. https://api.groq.com/openai/v1
        model: Model name
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.transport = transport

    async def analyze(self, transcript: str, user_name: str) -> TranscriptAnalysis:
        if not self.api_key:
            raise ExtractionError("LLM_API_KEY is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT.format(user_name=user_name)},
                {"role": "user", "content": f"Here is the meeting transcript to analyze:\n\n{transcript}"},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.3,
            "max_tokens": 4096,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Extraction backend HTTP error: {e.response.status_code}",
                extra={"model": self.model}
            )
            raise ExtractionError("Extraction backend returned an error") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Extraction backend unreachable: {e}", extra={"model": self.model})
            raise ExtractionError("Extraction backend unreachable") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExtractionError("No response from extraction backend") from e

        if not content:
            raise ExtractionError("No response from extraction backend")

        try:
            analysis = TranscriptAnalysis.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Extraction backend returned unusable output", extra={"model": self.model})
            raise ExtractionError("Extraction backend returned unusable output") from e

        logger.info(
            "Transcript analyzed",
            extra={
                "model": self.model,
                "action_items": len(analysis.action_items),
                "latency_ms": int((time.monotonic() - start) * 1000)
            }
        )
        return analysis
