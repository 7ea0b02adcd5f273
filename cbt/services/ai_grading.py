import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from cbt.core.config import settings
from cbt.schemas.grading import Suggestion

logger = logging.getLogger(__name__)

GRADING_PROMPT = """You are an expert academic assessor. Grade the following essay response.

Question: "{question_text}"
Max Points: {max_weight}
Student Answer: "{student_answer}"

Provide your grading in JSON format with "score" (number) and "feedback" (string, max 3 sentences)."""


class AIGradingError(Exception):
    """The provider failed or replied with something that is not a usable suggestion."""


def parse_suggestion(raw: Any, max_weight: int) -> Suggestion:
    """Validate an untrusted provider reply. Out-of-range scores are clamped."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise AIGradingError(f"Unparseable grading reply: {e}") from e

    if not isinstance(raw, dict) or "score" not in raw:
        raise AIGradingError("Grading reply has no score")

    score = raw.get("score")
    if isinstance(score, bool):
        raise AIGradingError("Grading reply score is not a number")
    try:
        score = float(score)
    except (TypeError, ValueError) as e:
        raise AIGradingError(f"Grading reply score is not a number: {score!r}") from e
    if math.isnan(score) or math.isinf(score):
        raise AIGradingError("Grading reply score is not finite")

    feedback = raw.get("feedback")
    feedback = "" if feedback is None else str(feedback)
    return Suggestion(score=min(max(score, 0.0), float(max_weight)), feedback=feedback)


class GradingProvider(ABC):
    @abstractmethod
    async def suggest_grade(self, question_text: str, student_answer: str, max_weight: int) -> Suggestion:
        """Return a validated suggestion or raise AIGradingError."""


class GeminiGradingProvider(GradingProvider):
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key or settings.GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY is not set in environment variables")
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.AI_GRADING_TIMEOUT

    def _build_request(self, question_text: str, student_answer: str, max_weight: int) -> dict:
        prompt = GRADING_PROMPT.format(
            question_text=question_text,
            student_answer=student_answer,
            max_weight=max_weight,
        )
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": {
                    "type": "OBJECT",
                    "properties": {
                        "score": {"type": "NUMBER", "description": "Recommended score out of max points."},
                        "feedback": {"type": "STRING", "description": "Constructive feedback for the student."}
                    },
                    "required": ["score", "feedback"]
                }
            }
        }

    def _extract_text(self, body: dict) -> str:
        try:
            return body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise AIGradingError(f"Unexpected provider response shape: {e}") from e

    async def suggest_grade(self, question_text: str, student_answer: str, max_weight: int) -> Suggestion:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = self._build_request(question_text, student_answer, max_weight)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise AIGradingError(f"Provider error {e.response.status_code}: {e.response.text[:200]}") from e
            except httpx.RequestError as e:
                raise AIGradingError(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise AIGradingError(f"Provider returned non-JSON body: {e}") from e

        return parse_suggestion(self._extract_text(body), max_weight)


class UnconfiguredGradingProvider(GradingProvider):
    async def suggest_grade(self, question_text: str, student_answer: str, max_weight: int) -> Suggestion:
        raise AIGradingError("No AI grading provider is configured")


def create_grading_provider() -> GradingProvider:
    if settings.GEMINI_API_KEY:
        logger.info(f"Using Gemini grading provider ({settings.GEMINI_MODEL})")
        return GeminiGradingProvider()

    logger.info("AI grading provider not configured; suggestions unavailable")
    return UnconfiguredGradingProvider()
