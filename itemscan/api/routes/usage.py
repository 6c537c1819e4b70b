from fastapi import APIRouter, HTTPException, Depends

from itemscan.api.dependencies import get_usage_tracker
from itemscan.api.schemas import ServiceType, UsageStats
from itemscan.services.usage_tracking import UsageTracker

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("", response_model=UsageStats)
async def get_usage(tracker: UsageTracker = Depends(get_usage_tracker)):
    """Current call counts per provider plus the total."""
    return await tracker.get_stats()


@router.post("/reset", response_model=UsageStats)
async def reset_all_usage(tracker: UsageTracker = Depends(get_usage_tracker)):
    await tracker.reset_all()
    return await tracker.get_stats()


@router.post("/{service}/reset", response_model=UsageStats)
async def reset_usage(service: str, tracker: UsageTracker = Depends(get_usage_tracker)):
    try:
        service_type = ServiceType(service)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown service: {service}. Use one of {', '.join(s.value for s in ServiceType)}",
        )

    await tracker.reset(service_type)
    return await tracker.get_stats()
