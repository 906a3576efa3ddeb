"""Energy reward earnings."""

from fastapi import APIRouter, Depends

from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.state import PlatformState, UserRecord

router = APIRouter(prefix="/api/earnings", tags=["earnings"])


@router.get("/summary")
async def summary(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.earnings_summary(user.id)


@router.get("/projects")
async def by_project(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    return platform.earnings_by_project(user.id)


@router.get("/period/{period}")
async def by_period(
    period: str,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.earnings_by_period(user.id, period)
