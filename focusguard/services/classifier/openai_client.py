"""
OpenAI Visual Classifier Adapter

Sends a webcam frame to a vision-capable OpenAI chat model and parses the
JSON verdict.
"""
import os
import time
from typing import Optional, Dict, Any

from openai import AsyncOpenAI

from focusguard.services.classifier.base import (
    ClassifierError,
    VisualClassifier,
    parse_classification,
    to_data_url,
)
from focusguard.services.logger_service import get_logger
from focusguard.types import ClassificationResult

SYSTEM_INSTRUCTION = "You are a homework monitoring assistant. Be strict but kind."

ANALYSIS_PROMPT = (
    "Analyze this image of a student doing homework.\n"
    "Determine if they are FOCUSED (looking at paper/book, writing, reading), "
    "DISTRACTED (looking away, playing with toys, sleeping, using phone), "
    "or ABSENT (empty chair).\n"
    "Provide a short voice message text in Chinese (Mandarin) suitable for a child.\n"
    "If FOCUSED, say something encouraging like \"很棒，继续保持\".\n"
    "If DISTRACTED, say something gentle like \"请专心写作业哦\".\n"
    "If ABSENT, say \"人去哪里了\".\n"
    "Respond with a JSON object with exactly these keys: "
    "\"status\" (one of FOCUSED, DISTRACTED, ABSENT), "
    "\"message\" (the voice message), "
    "\"confidence\" (number between 0 and 1)."
)


class OpenAIVisualClassifier(VisualClassifier):
    """
    OpenAI API visual classifier.

    Requires: pip install openai>=1.0.0
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout_seconds: float = 20.0,
        max_tokens: int = 200,
    ):
        """
        Initialize the OpenAI classifier adapter.

        Args:
            api_key: OpenAI API key. If None, read from OPENAI_API_KEY.
            model: Vision-capable model name.
            base_url: Optional base URL (proxies, compatible endpoints).
            timeout_seconds: Per-request timeout.
            max_tokens: Completion token budget.
        """
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._model = model
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._max_tokens = max_tokens
        self._client: Optional[AsyncOpenAI] = None
        self._logger = get_logger()

        if self._api_key:
            self._init_client()

    def _init_client(self) -> None:
        kwargs: Dict[str, Any] = {
            "api_key": self._api_key,
            "timeout": self._timeout_seconds,
        }
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)

    def is_configured(self) -> bool:
        return self._client is not None and self._api_key is not None

    def get_model_name(self) -> str:
        return self._model

    async def classify(self, image: bytes) -> ClassificationResult:
        if not self.is_configured():
            raise ClassifierError("API key is missing")
        if not image:
            raise ClassifierError("Empty image")

        start = time.time()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTION},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": ANALYSIS_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": to_data_url(image), "detail": "low"},
                            },
                        ],
                    },
                ],
                max_tokens=self._max_tokens,
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise ClassifierError(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        result = parse_classification(content or "")

        self._logger.system(
            "classification_received",
            {
                "model": self._model,
                "status": result.status.value,
                "confidence": result.confidence,
                "latency_ms": round((time.time() - start) * 1000, 1),
            },
            level="DEBUG",
        )
        return result
