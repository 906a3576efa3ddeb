"""Coupon validation for users and coupon management for admins."""

from fastapi import APIRouter, Depends

from sunyield.models import Coupon
from sunyield.sandbox.api.deps import current_user, get_platform, require_admin
from sunyield.sandbox.api.schemas import CouponValidateRequest
from sunyield.sandbox.state import PlatformState

router = APIRouter(prefix="/api/coupons", tags=["coupons"])
admin_router = APIRouter(
    prefix="/api/admin/coupons",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.post("/validate", dependencies=[Depends(current_user)])
async def validate(
    request: CouponValidateRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    """Quote a coupon. Usage is only counted when a purchase redeems it."""
    valid, discount, message = platform.quote_coupon(request.code, request.amount)
    return {"valid": valid, "discount": discount, "message": message}


@router.get("/active")
async def active(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [c.to_api() for c in platform.coupons.values() if c.is_valid()]


@admin_router.get("")
async def list_coupons(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [c.to_api() for c in platform.coupons.values()]


@admin_router.post("")
async def create_coupon(
    coupon: Coupon,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.save_coupon(coupon).to_api()


@admin_router.put("/{coupon_id}")
async def update_coupon(
    coupon_id: int,
    coupon: Coupon,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.save_coupon(coupon, coupon_id).to_api()


@admin_router.delete("/{coupon_id}")
async def delete_coupon(
    coupon_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.delete_coupon(coupon_id)
    return {"success": True, "message": "Coupon deleted"}
