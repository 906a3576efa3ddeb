"""Reinvest, donate and gift accrued credits."""

from fastapi import APIRouter, Depends

from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.api.schemas import GiftRequest, ProjectEngagementRequest
from sunyield.sandbox.state import PlatformState, UserRecord

router = APIRouter(prefix="/api/engagement", tags=["engagement"])


@router.get("/stats")
async def stats(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.engagement_stats(user.id).to_api()


@router.get("/history")
async def history(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    return [t.to_api() for t in platform.engagement_history(user.id)]


@router.post("/reinvest")
async def reinvest(
    request: ProjectEngagementRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.reinvest(user.id, request.project_id, request.amount, request.coupon_code).to_api()


@router.post("/donate")
async def donate(
    request: ProjectEngagementRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.donate(user.id, request.project_id, request.amount, request.coupon_code).to_api()


@router.post("/gift")
async def gift(
    request: GiftRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    result = platform.gift(user.id, request.recipient_email, request.amount, request.coupon_code)
    return result.to_api()
