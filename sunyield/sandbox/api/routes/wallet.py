"""Wallet balance, history and the two-phase add-funds flow."""

from fastapi import APIRouter, Depends

from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.api.schemas import AmountRequest, OrderRequest
from sunyield.sandbox.state import PlatformState, UserRecord

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.get("")
async def get_wallet(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.wallet(user.id).to_api()


@router.get("/history")
async def history(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    return platform.wallet_history(user.id)


@router.post("/add-funds")
async def add_funds(
    request: AmountRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    order = platform.create_order(user.id, request.amount)
    return {
        "success": True,
        "orderId": order.order_id,
        "paymentUrl": f"/mock-gateway/pay/{order.order_id}",
        "amount": order.amount,
        "message": "Payment order created",
    }


@router.post("/add-funds/process-payment")
async def process_payment(
    request: OrderRequest,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    order = platform.confirm_order(user.id, request.order_id)
    return {
        "success": True,
        "message": f"₹{order.amount:,.2f} added to your wallet",
        "amount": order.amount,
        "orderId": order.order_id,
        "newBalance": platform.balance(user.id),
    }


@router.get("/orders/{order_id}")
async def order_status(
    order_id: str,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    order = platform.get_order(user.id, order_id)
    return {"orderId": order.order_id, "amount": order.amount, "status": order.status}
