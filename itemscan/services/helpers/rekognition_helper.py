"""
AWS Rekognition Helper for item label detection.
"""
from typing import Any, Dict, List, Optional
import asyncio
import logging
import time
import uuid

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from itemscan.api.schemas import AnalysisOutcome, BoundingBox, DetectedItem, ServiceType
from itemscan.core.config import settings
from itemscan.services.helpers.categories import apply_category_filtering, categorize_item
from itemscan.services.helpers.image_loader import ImageTooLarge, load_image_bytes, shrink_to_limit

logger = logging.getLogger(__name__)


class RekognitionUnavailable(Exception):
    """Raised when Rekognition service is not available or configured."""
    pass


def transform_labels(labels: List[Dict[str, Any]]) -> List[DetectedItem]:
    """Convert Rekognition `Labels` entries into DetectedItems (confidence 0-1)."""
    items = []
    for label in labels:
        name = label["Name"]
        confidence = label["Confidence"]

        bounding_box = None
        instances = label.get("Instances") or []
        if instances and instances[0].get("BoundingBox"):
            box = instances[0]["BoundingBox"]
            bounding_box = BoundingBox(
                x=box.get("Left", 0.0),
                y=box.get("Top", 0.0),
                width=box.get("Width", 0.0),
                height=box.get("Height", 0.0),
            )

        items.append(DetectedItem(
            id=f"amazon_{uuid.uuid4().hex[:12]}",
            name=name,
            confidence=min(max(confidence / 100.0, 0.0), 1.0),
            category=categorize_item(name),
            description=f"{name} detected with {round(confidence)}% confidence",
            bounding_box=bounding_box,
        ))
    return items


class RekognitionHelper:
    """Helper class for AWS Rekognition label detection."""

    service = ServiceType.AMAZON_REKOGNITION

    def __init__(
        self,
        region: Optional[str] = None,
        max_labels: Optional[int] = None,
        min_confidence: Optional[float] = None,
        max_image_mb: Optional[int] = None,
        session: Optional[aioboto3.Session] = None,
    ):
        self.region = region or settings.REKOGNITION_REGION
        self.max_labels = max_labels or settings.REKOGNITION_MAX_LABELS
        self.min_confidence = min_confidence if min_confidence is not None else settings.REKOGNITION_MIN_CONFIDENCE
        self.max_image_bytes = (max_image_mb or settings.REKOGNITION_MAX_IMAGE_MB) * 1024 * 1024
        self._session = session


    async def analyze_image(self, image_ref: str) -> AnalysisOutcome:
        """
        Detect labels in the referenced image.

        Args:
            image_ref: Local path or file:// URI

        Returns:
            AnalysisOutcome; provider errors become a failed outcome

        Raises:
            RekognitionUnavailable: If no region is configured
            FileNotFoundError: If the image does not exist
        """
        if not self.region:
            raise RekognitionUnavailable("REKOGNITION_REGION not configured")

        t0 = time.perf_counter()
        image_bytes = await asyncio.to_thread(load_image_bytes, image_ref)

        try:
            image_bytes = await asyncio.to_thread(shrink_to_limit, image_bytes, self.max_image_bytes)
        except ImageTooLarge as e:
            logger.warning(f"Skipping Rekognition for {image_ref}: {e}")
            return AnalysisOutcome(
                success=False,
                processing_time=time.perf_counter() - t0,
                error=f"Image too large for Amazon Rekognition: {e}. Google Vision will still analyze this image.",
            )

        session = self._session or aioboto3.Session()
        try:
            async with session.client("rekognition", region_name=self.region) as client:
                response = await client.detect_labels(
                    Image={"Bytes": image_bytes},
                    MaxLabels=self.max_labels,
                    MinConfidence=self.min_confidence,
                )
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Rekognition detect_labels error: {e}")
            return AnalysisOutcome(
                success=False,
                processing_time=time.perf_counter() - t0,
                error=str(e),
            )

        items = apply_category_filtering(transform_labels(response.get("Labels", [])))
        elapsed = time.perf_counter() - t0
        logger.info(f"Rekognition detected {len(items)} labels in {elapsed:.2f}s")

        return AnalysisOutcome(success=True, items=items, processing_time=elapsed)
