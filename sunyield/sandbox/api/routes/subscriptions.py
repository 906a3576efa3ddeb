"""Contributions to projects, paid from the wallet or through the gateway."""

import structlog
from fastapi import APIRouter, Depends, Query

from sunyield.models import PaymentStatus
from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.api.schemas import InitiateSubscriptionRequest, SubscribeRequest
from sunyield.sandbox.state import PlatformState, SandboxError, UserRecord

logger = structlog.get_logger()
router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.post("")
async def subscribe(
    request: SubscribeRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.subscribe(
        user.id, request.project_id, request.contribution_amount, request.coupon_code
    )


@router.get("/history")
async def history(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    return [s.to_api() for s in platform.subscription_history(user.id)]


@router.post("/initiate")
async def initiate(
    request: InitiateSubscriptionRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    record = platform.initiate_subscription(
        user.id, request.project_id, request.contribution_amount
    )
    return {
        "success": True,
        "subscriptionId": record.id,
        "paymentOrderId": record.payment_order_id,
        "amount": record.contribution_amount,
        "paymentStatus": record.payment_status.value,
    }


@router.post("/test")
async def test_subscription(
    request: SubscribeRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    """Pricing echo without an identity: no balance, nothing persisted."""
    project = platform.get_project(request.project_id)
    discount = 0.0
    if request.coupon_code:
        _, discount, _ = platform.quote_coupon(request.coupon_code, request.contribution_amount)
    return {
        "success": True,
        "projectName": project.name,
        "originalAmount": request.contribution_amount,
        "discountAmount": discount,
        "amount": round(max(request.contribution_amount - discount, 0.0), 2),
    }


@router.post("/test-auth")
async def test_subscription_with_auth(
    request: SubscribeRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    quote = platform.quote_subscription(
        user.id, request.project_id, request.contribution_amount, request.coupon_code
    )
    return {"success": True, "userEmail": user.email, **quote}


@router.post("/webhook")
async def webhook(
    order_id: str = Query(alias="orderId"),
    status: str = Query(),
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    try:
        payment_status = PaymentStatus(status.upper())
    except ValueError as exc:
        raise SandboxError(f"Unknown payment status: {status}", "validation") from exc
    if payment_status == PaymentStatus.PENDING:
        raise SandboxError("Webhook status must be SUCCESS or FAILED", "validation")
    record = platform.settle_subscription(order_id, payment_status)
    logger.info("subscription_webhook", order_id=order_id, status=payment_status.value)
    return {"success": True, "orderId": order_id, "paymentStatus": record.payment_status.value}
