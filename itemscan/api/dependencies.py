"""
FastAPI dependencies wiring the services together.

Provider helpers own SDK clients (gRPC channel, HTTP pool), so one instance
of each lives for the whole process and is closed by close_providers().
"""
from functools import lru_cache
from typing import Optional
import logging

from fastapi import Depends

from itemscan.core.config import settings
from itemscan.services.helpers import GoogleVisionHelper, OpenAISummarizer, RekognitionHelper
from itemscan.services.orchestrator import ParallelAnalysisOrchestrator
from itemscan.services.storage.kv_store import KeyValueStore, build_key_value_store
from itemscan.services.usage_tracking import UsageTracker

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_key_value_store() -> KeyValueStore:
    return build_key_value_store()


def get_usage_tracker() -> UsageTracker:
    return UsageTracker(get_key_value_store())


@lru_cache(maxsize=1)
def get_google_vision_helper() -> GoogleVisionHelper:
    return GoogleVisionHelper()


@lru_cache(maxsize=1)
def get_rekognition_helper() -> RekognitionHelper:
    return RekognitionHelper()


@lru_cache(maxsize=1)
def get_summarizer() -> Optional[OpenAISummarizer]:
    if not settings.SUMMARIZER_ENABLED:
        return None
    return OpenAISummarizer(usage_tracker=get_usage_tracker())


def get_orchestrator(
    usage_tracker: UsageTracker = Depends(get_usage_tracker),
) -> ParallelAnalysisOrchestrator:
    return ParallelAnalysisOrchestrator(
        usage_tracker,
        google_vision=get_google_vision_helper(),
        amazon_rekognition=get_rekognition_helper(),
        summarizer=get_summarizer(),
    )


async def close_providers() -> None:
    """Close the SDK clients of any provider helper created so far."""
    cached = [get_google_vision_helper, get_summarizer]
    for factory in cached:
        if factory.cache_info().currsize == 0:
            continue
        helper = factory()
        factory.cache_clear()
        if helper is None:
            continue
        try:
            await helper.close()
        except Exception as e:
            logger.warning(f"Failed to close {type(helper).__name__}: {e}")
    get_rekognition_helper.cache_clear()
