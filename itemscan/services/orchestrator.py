"""
Parallel Analysis Orchestrator - runs both recognition providers on one image.

Flow of a single analyze() call:
1. Usage limit checks (both providers, concurrently)
2. Google Vision + Amazon Rekognition (concurrently, settle-all)
3. Usage increments for the providers that succeeded
4. Optional summarization over the successful detections
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from itemscan.api.schemas import (
    AnalysisOutcome,
    CombinedAnalysisResult,
    DetectedItem,
    MergedAnalysis,
    ServiceType,
    SummarizedResult,
)
from itemscan.core.config import settings
from itemscan.services.usage_tracking import UsageTracker

logger = logging.getLogger(__name__)

LIMIT_EXCEEDED_ERROR = "Usage limit exceeded for one or more APIs"
BOTH_FAILED_ERROR = "Both APIs failed to analyze the image"

DEFAULT_FAILURE_MESSAGES = {
    ServiceType.GOOGLE_VISION: "Google Vision API failed",
    ServiceType.AMAZON_REKOGNITION: "Amazon Rekognition API failed",
}


class ImageAnalyzer(Protocol):
    async def analyze_image(self, image_ref: str) -> AnalysisOutcome: ...


class Summarizer(Protocol):
    async def summarize(
        self, google_items: List[DetectedItem], amazon_items: List[DetectedItem]
    ) -> SummarizedResult: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ParallelAnalysisOrchestrator:
    """
    Coordinator for the two-provider image analysis.

    Providers are injected; the orchestrator never lets an exception
    escape analyze(). Failures come back as success=False results.

    Usage:
        orchestrator = ParallelAnalysisOrchestrator(tracker, google, rekognition, summarizer)
        result = await orchestrator.analyze("/path/to/photo.jpg")
    """

    def __init__(
        self,
        usage_tracker: UsageTracker,
        google_vision: ImageAnalyzer,
        amazon_rekognition: ImageAnalyzer,
        summarizer: Optional[Summarizer] = None,
        google_vision_limit: Optional[int] = None,
        amazon_rekognition_limit: Optional[int] = None,
    ):
        """
        Args:
            usage_tracker: Counter store used for limit checks and increments
            google_vision: Google Vision analyzer
            amazon_rekognition: Amazon Rekognition analyzer
            summarizer: Optional summarizer (skipped when None)
            google_vision_limit: Call ceiling for Google Vision (settings default)
            amazon_rekognition_limit: Call ceiling for Rekognition (settings default)
        """
        self.usage_tracker = usage_tracker
        self.google_vision = google_vision
        self.amazon_rekognition = amazon_rekognition
        self.summarizer = summarizer
        self.google_vision_limit = (
            google_vision_limit if google_vision_limit is not None else settings.GOOGLE_VISION_LIMIT
        )
        self.amazon_rekognition_limit = (
            amazon_rekognition_limit if amazon_rekognition_limit is not None else settings.AMAZON_REKOGNITION_LIMIT
        )

        logger.info("ParallelAnalysisOrchestrator initialized")


    async def analyze(self, image_ref: str) -> CombinedAnalysisResult:
        """
        Analyze one image with both providers.

        Args:
            image_ref: Local path or file:// URI of the image

        Returns:
            CombinedAnalysisResult; success is True iff at least one provider succeeded
        """
        t0 = time.perf_counter()
        logger.info(f"Starting parallel analysis for {image_ref}")

        try:
            google_allowed, amazon_allowed = await asyncio.gather(
                self.usage_tracker.check_limit(ServiceType.GOOGLE_VISION, self.google_vision_limit),
                self.usage_tracker.check_limit(ServiceType.AMAZON_REKOGNITION, self.amazon_rekognition_limit),
            )

            if not google_allowed or not amazon_allowed:
                logger.warning(
                    f"Usage limit reached (googleVision allowed={google_allowed}, "
                    f"amazonRekognition allowed={amazon_allowed})"
                )
                return CombinedAnalysisResult(
                    success=False,
                    total_processing_time=time.perf_counter() - t0,
                    error=LIMIT_EXCEEDED_ERROR,
                )

            # Settle-all: a fault in one provider never cancels the other
            google_raw, amazon_raw = await asyncio.gather(
                self.google_vision.analyze_image(image_ref),
                self.amazon_rekognition.analyze_image(image_ref),
                return_exceptions=True,
            )

            google_results = self._settle(ServiceType.GOOGLE_VISION, google_raw)
            amazon_results = self._settle(ServiceType.AMAZON_REKOGNITION, amazon_raw)

            await self._record_usage(
                [
                    service
                    for service, outcome in (
                        (ServiceType.GOOGLE_VISION, google_results),
                        (ServiceType.AMAZON_REKOGNITION, amazon_results),
                    )
                    if outcome.success
                ]
            )

            if not (google_results.success or amazon_results.success):
                logger.warning(f"Both providers failed for {image_ref}")
                return CombinedAnalysisResult(
                    success=False,
                    google_vision_results=google_results,
                    amazon_rekognition_results=amazon_results,
                    total_processing_time=time.perf_counter() - t0,
                    error=BOTH_FAILED_ERROR,
                )

            summarized_result = await self._summarize(google_results, amazon_results)

            total_time = time.perf_counter() - t0
            logger.info(f"Parallel analysis completed for {image_ref} in {total_time:.2f}s")

            return CombinedAnalysisResult(
                success=True,
                google_vision_results=google_results,
                amazon_rekognition_results=amazon_results,
                summarized_result=summarized_result,
                total_processing_time=total_time,
            )

        except Exception as e:
            logger.error(f"Parallel analysis failed for {image_ref}: {e}", exc_info=True)
            return CombinedAnalysisResult(
                success=False,
                total_processing_time=time.perf_counter() - t0,
                error=str(e) or "Unknown error occurred",
            )


    @staticmethod
    def _settle(service: ServiceType, raw) -> AnalysisOutcome:
        """Stamp a completed outcome, or turn a raised fault into a failed one."""
        if isinstance(raw, BaseException):
            logger.warning(f"{service.value} analysis raised: {raw!r}")
            return AnalysisOutcome(
                success=False,
                items=[],
                processing_time=0.0,
                analyzed_at=_now(),
                error=str(raw) or DEFAULT_FAILURE_MESSAGES[service],
            )

        return raw.model_copy(update={"analyzed_at": _now()})


    async def _record_usage(self, services: List[ServiceType]) -> None:
        """Increment counters independently; faults are logged, never returned."""
        if not services:
            return

        results = await asyncio.gather(
            *(self.usage_tracker.increment(service) for service in services),
            return_exceptions=True,
        )
        for service, result in zip(services, results):
            if isinstance(result, BaseException):
                logger.error(f"Usage increment for {service.value} failed: {result}")


    async def _summarize(
        self,
        google_results: AnalysisOutcome,
        amazon_results: AnalysisOutcome,
    ) -> Optional[SummarizedResult]:
        """Best-effort summary; None when disabled or on any fault."""
        if self.summarizer is None:
            return None

        google_items = list(google_results.items) if google_results.success else []
        amazon_items = list(amazon_results.items) if amazon_results.success else []

        try:
            summarized = await self.summarizer.summarize(google_items, amazon_items)
            logger.info(f"Summarization completed: {summarized.name}")
            return summarized
        except Exception as e:
            logger.warning(f"Summarization failed, continuing without it: {e}")
            return None


def combine_results(
    google_results: AnalysisOutcome,
    amazon_results: AnalysisOutcome,
) -> MergedAnalysis:
    """
    Merge two provider outcomes into one deduplicated item list.

    Items match on case-insensitive name plus exact category; of two
    matches the one with the higher confidence is kept in place. The
    processing time is the max of the inputs since the calls overlap.
    Not used by analyze(); kept for ensemble scoring.
    """
    all_items: List[DetectedItem] = []
    if google_results.success:
        all_items.extend(google_results.items)
    if amazon_results.success:
        all_items.extend(amazon_results.items)

    unique_items: List[DetectedItem] = []
    for current in all_items:
        index = next(
            (
                i for i, item in enumerate(unique_items)
                if item.name.lower() == current.name.lower() and item.category == current.category
            ),
            None,
        )
        if index is None:
            unique_items.append(current)
        elif current.confidence > unique_items[index].confidence:
            unique_items[index] = current

    return MergedAnalysis(
        items=unique_items,
        processing_time=max(google_results.processing_time or 0.0, amazon_results.processing_time or 0.0),
        success=google_results.success or amazon_results.success,
        analyzed_at=_now(),
    )
