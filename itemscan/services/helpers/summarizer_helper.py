"""
OpenAI Helper that condenses both providers' detections into one item description.
"""
from typing import Any, Dict, List, Optional
import json
import logging

from openai import AsyncOpenAI

from itemscan.api.schemas import DetectedItem, ServiceType, SummarizedResult
from itemscan.core.config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at analyzing object detection results and creating concise, "
    "meaningful product descriptions. You identify the primary object in an image and "
    "combine the detection attributes into a single, clear description."
)


class SummarizerUnavailable(Exception):
    """Raised when the summarization provider is not configured."""
    pass


def _extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Pull the first JSON object out of a model reply (fenced or bare)."""
    json_text = None

    if "```json" in text:
        start = text.find("```json") + 7
        end = text.find("```", start)
        if end > start:
            json_text = text[start:end].strip()
    elif "```" in text:
        start = text.find("```") + 3
        end = text.find("```", start)
        if end > start:
            json_text = text[start:end].strip()

    if not json_text:
        first_brace = text.find("{")
        last_brace = text.rfind("}")
        if first_brace != -1 and last_brace > first_brace:
            json_text = text[first_brace:last_brace + 1]

    if not json_text:
        return None

    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Could not parse summarizer JSON: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_summary(text: str) -> SummarizedResult:
    """Map a model reply onto SummarizedResult, tolerating missing fields."""
    parsed = _extract_json(text)
    if parsed is None:
        return SummarizedResult(
            name="AI Analyzed Item",
            description=text[:100],
            confidence=0.7,
            reasoning="AI provided analysis but format was unclear",
        )

    try:
        confidence = float(parsed.get("confidence") or 0.5)
    except (TypeError, ValueError):
        confidence = 0.5

    return SummarizedResult(
        name=parsed.get("name") or "Unknown Item",
        description=parsed.get("description") or "Item detected",
        confidence=min(max(confidence, 0.0), 1.0),
        reasoning=parsed.get("reasoning") or "AI analysis completed",
    )


class OpenAISummarizer:
    """
    Summarizer backed by an OpenAI chat completion.

    When a usage tracker is supplied, each successful call increments the
    `openai` counter.
    """

    service = ServiceType.OPENAI

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        usage_tracker=None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.usage_tracker = usage_tracker
        self._client = client


    async def close(self) -> None:
        """Release the HTTP connection pool of the OpenAI client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


    def _build_prompt(self, detections: List[Dict[str, Any]]) -> str:
        detection_list = ", ".join(
            f"{d['name']} ({round(d['confidence'] * 100)}% confidence, {d['category']}, {d['source']})"
            for d in sorted(detections, key=lambda d: d["confidence"], reverse=True)
        )

        return f"""Analyze these object detection results and create a single, meaningful product description.

DETECTION RESULTS: {detection_list}

Identify the primary object, ignore background surfaces, and describe the item itself.

Return JSON only:
{{
  "name": "Clear Product Name",
  "description": "Brief description of the item",
  "confidence": 0.85,
  "reasoning": "Why this is the best interpretation"
}}"""


    async def summarize(
        self,
        google_items: List[DetectedItem],
        amazon_items: List[DetectedItem],
    ) -> SummarizedResult:
        """
        Summarize detections from both providers.

        Raises:
            SummarizerUnavailable: If no API key is configured
            openai.OpenAIError: On API failures
        """
        detections = [
            {"name": it.name, "confidence": it.confidence, "category": it.category, "source": "google"}
            for it in google_items
        ] + [
            {"name": it.name, "confidence": it.confidence, "category": it.category, "source": "amazon"}
            for it in amazon_items
        ]

        if not detections:
            return SummarizedResult(
                name="Unknown Item",
                description="No items detected in the image",
                confidence=0.0,
                reasoning="No detection results available",
            )

        if not self.api_key:
            raise SummarizerUnavailable("OPENAI_API_KEY not configured")

        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._build_prompt(detections)},
            ],
            max_tokens=200,
            temperature=0.3,
        )

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise ValueError("No response from OpenAI")

        if self.usage_tracker is not None:
            await self.usage_tracker.increment(ServiceType.OPENAI)

        result = parse_summary(text)
        logger.info(f"Summarized {len(detections)} detections as '{result.name}'")
        return result
