"""
Usage tracking for the paid recognition/summarization providers.

Counters are plain base-10 strings under `usage_<service>` keys in an
injected KeyValueStore. Bookkeeping is best-effort: storage faults are
logged and never reach the caller, and limit checks fail open.
"""
from typing import Optional, Union
import asyncio
import logging

from itemscan.api.schemas import ServiceType, UsageStats
from itemscan.services.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

USAGE_KEYS = {
    ServiceType.GOOGLE_VISION: "usage_googleVision",
    ServiceType.AMAZON_REKOGNITION: "usage_amazonRekognition",
    ServiceType.OPENAI: "usage_openai",
}


def usage_key(service: Union[ServiceType, str]) -> str:
    """Storage key for a service; unknown services raise ValueError."""
    try:
        return USAGE_KEYS[ServiceType(service)]
    except (ValueError, KeyError):
        raise ValueError(f"Unknown service type: {service}")


def _service_name(service: Union[ServiceType, str]) -> str:
    return getattr(service, "value", service)


def _parse_count(raw: Optional[str]) -> int:
    if raw is None:
        return 0
    try:
        return max(int(raw), 0)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable usage value: {raw!r}")
        return 0


class UsageTracker:
    """
    Usage Counter Store.

    Stateless over the store: no caching, every call round-trips.
    Increments are read-modify-write without a lock, so concurrent
    increments of the same service may be lost (last writer wins).

    Usage:
        tracker = UsageTracker(FileKeyValueStore(path))
        if await tracker.check_limit(ServiceType.GOOGLE_VISION, 1000):
            ...
            await tracker.increment(ServiceType.GOOGLE_VISION)
    """

    def __init__(self, store: KeyValueStore):
        self.store = store


    async def check_limit(self, service: ServiceType, limit: int) -> bool:
        """Return True iff the stored count is below limit (True on any failure)."""
        try:
            current = _parse_count(await self.store.get_item(usage_key(service)))
        except Exception as e:
            logger.error(f"Failed to check usage limit for {_service_name(service)}: {e}")
            return True

        return current < limit


    async def increment(self, service: ServiceType) -> None:
        """Add one to the service counter; failures are logged only."""
        try:
            key = usage_key(service)
            new_usage = _parse_count(await self.store.get_item(key)) + 1
            await self.store.set_item(key, str(new_usage))
            logger.info(f"Incremented {_service_name(service)} usage to {new_usage}")
        except Exception as e:
            logger.error(f"Failed to increment usage for {_service_name(service)}: {e}")


    async def get_stats(self) -> UsageStats:
        """Read all counters concurrently; missing or failed reads count as 0."""
        services = list(USAGE_KEYS)
        raw_values = await asyncio.gather(
            *(self.store.get_item(USAGE_KEYS[s]) for s in services),
            return_exceptions=True,
        )

        counts = {}
        for service, raw in zip(services, raw_values):
            if isinstance(raw, BaseException):
                logger.error(f"Failed to read usage for {service.value}: {raw}")
                counts[service] = 0
            else:
                counts[service] = _parse_count(raw)

        return UsageStats(
            google_vision=counts[ServiceType.GOOGLE_VISION],
            amazon_rekognition=counts[ServiceType.AMAZON_REKOGNITION],
            openai=counts[ServiceType.OPENAI],
            total=sum(counts.values()),
        )


    async def reset(self, service: ServiceType) -> None:
        try:
            await self.store.set_item(usage_key(service), "0")
            logger.info(f"Reset {_service_name(service)} usage to 0")
        except Exception as e:
            logger.error(f"Failed to reset usage for {_service_name(service)}: {e}")


    async def reset_all(self) -> None:
        try:
            await self.store.multi_set([(key, "0") for key in USAGE_KEYS.values()])
            logger.info("Reset all usage counts to 0")
        except Exception as e:
            logger.error(f"Failed to reset all usage: {e}")
