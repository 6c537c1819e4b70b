"""
Google Cloud Vision Helper for item label detection.

Runs LABEL_DETECTION and OBJECT_LOCALIZATION in one request. Labels
above the minimum score and every localized object become DetectedItems.
"""
from typing import List, Optional
import asyncio
import logging
import time
import uuid

from google.api_core.client_options import ClientOptions
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import vision

from itemscan.api.schemas import AnalysisOutcome, BoundingBox, DetectedItem, ServiceType
from itemscan.core.config import settings
from itemscan.services.helpers.categories import apply_category_filtering, categorize_item
from itemscan.services.helpers.image_loader import load_image_bytes

logger = logging.getLogger(__name__)


class GoogleVisionUnavailable(Exception):
    """Raised when Google Vision is not configured or credentials are missing."""
    pass


def _bounding_box(vertices) -> Optional[BoundingBox]:
    if not vertices:
        return None
    xs = [v.x for v in vertices]
    ys = [v.y for v in vertices]
    return BoundingBox(x=min(xs), y=min(ys), width=max(xs) - min(xs), height=max(ys) - min(ys))


def transform_annotations(response, min_score: float) -> List[DetectedItem]:
    """Convert one AnnotateImageResponse into DetectedItems."""
    items = []

    for label in response.label_annotations:
        if label.score <= min_score:
            continue
        items.append(DetectedItem(
            id=f"google_{uuid.uuid4().hex[:12]}",
            name=label.description,
            confidence=min(max(label.score, 0.0), 1.0),
            category=categorize_item(label.description),
            description=f"{label.description} detected with {round(label.score * 100)}% confidence",
        ))

    for obj in response.localized_object_annotations:
        items.append(DetectedItem(
            id=f"google_{uuid.uuid4().hex[:12]}",
            name=obj.name,
            confidence=min(max(obj.score, 0.0), 1.0),
            category=categorize_item(obj.name),
            description=f"{obj.name} located with {round(obj.score * 100)}% confidence",
            bounding_box=_bounding_box(list(obj.bounding_poly.normalized_vertices)),
        ))

    return items


class GoogleVisionHelper:
    """Helper class for Google Cloud Vision operations."""

    service = ServiceType.GOOGLE_VISION

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_results: Optional[int] = None,
        min_score: Optional[float] = None,
        client: Optional[vision.ImageAnnotatorAsyncClient] = None,
    ):
        self.api_key = api_key or settings.GOOGLE_VISION_API_KEY
        self.max_results = max_results or settings.GOOGLE_VISION_MAX_RESULTS
        self.min_score = min_score if min_score is not None else settings.GOOGLE_VISION_MIN_SCORE
        self._client = client


    @property
    def client(self) -> vision.ImageAnnotatorAsyncClient:
        """Create the async client on first use (API key wins over ADC)."""
        if self._client is None:
            try:
                if self.api_key:
                    self._client = vision.ImageAnnotatorAsyncClient(
                        client_options=ClientOptions(api_key=self.api_key)
                    )
                else:
                    self._client = vision.ImageAnnotatorAsyncClient()
            except DefaultCredentialsError as e:
                raise GoogleVisionUnavailable(
                    f"Google Cloud Vision credentials not configured. Set ITEMSCAN_GOOGLE_VISION_API_KEY "
                    f"or GOOGLE_APPLICATION_CREDENTIALS: {e}"
                )
        return self._client


    async def close(self) -> None:
        """Close the gRPC channel if a client was created."""
        if self._client is not None:
            await self._client.transport.close()
            self._client = None


    def _build_request(self, image_bytes: bytes) -> vision.AnnotateImageRequest:
        return vision.AnnotateImageRequest(
            image=vision.Image(content=image_bytes),
            features=[
                vision.Feature(type_=vision.Feature.Type.LABEL_DETECTION, max_results=self.max_results),
                vision.Feature(type_=vision.Feature.Type.OBJECT_LOCALIZATION, max_results=self.max_results),
            ],
        )


    async def analyze_image(self, image_ref: str) -> AnalysisOutcome:
        """
        Detect labels and objects in the referenced image.

        Raises:
            GoogleVisionUnavailable: If no credentials can be found
            FileNotFoundError: If the image does not exist
        """
        t0 = time.perf_counter()
        image_bytes = await asyncio.to_thread(load_image_bytes, image_ref)
        client = self.client

        try:
            batch = await client.batch_annotate_images(requests=[self._build_request(image_bytes)])
        except GoogleAPIError as e:
            logger.warning(f"Google Vision API error: {e}")
            return AnalysisOutcome(
                success=False,
                processing_time=time.perf_counter() - t0,
                error=f"Google Cloud Vision API error: {e}",
            )

        response = batch.responses[0]
        elapsed = time.perf_counter() - t0

        if response.error.message:
            logger.warning(f"Google Vision API error: {response.error.message}")
            return AnalysisOutcome(
                success=False,
                processing_time=elapsed,
                error=f"Google Cloud Vision API error: {response.error.message}",
            )

        items = apply_category_filtering(transform_annotations(response, self.min_score))
        logger.info(f"Google Vision detected {len(items)} items in {elapsed:.2f}s")

        if not items:
            return AnalysisOutcome(
                success=True,
                processing_time=elapsed,
                error="No items detected with sufficient confidence",
            )

        return AnalysisOutcome(success=True, items=items, processing_time=elapsed)
