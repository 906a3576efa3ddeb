"""UPI withdrawal requests against the monthly cap."""

from fastapi import APIRouter, Depends

from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.api.schemas import WithdrawalBody
from sunyield.sandbox.state import PlatformState, UserRecord

router = APIRouter(prefix="/api/withdrawal", tags=["withdrawal"])


@router.post("/request")
async def request_withdrawal(
    request: WithdrawalBody,
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    record = platform.request_withdrawal(
        user.id, request.amount, request.upi_id, request.payout_method
    )
    return {
        "success": True,
        "message": "Withdrawal request submitted",
        "id": record.id,
        "orderId": record.order_id,
        "amount": record.amount,
        "status": record.status.value,
        "newBalance": platform.balance(user.id),
    }


@router.get("/history")
async def history(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    records = sorted(
        (w for w in platform.withdrawals.values() if w.user_id == user.id),
        key=lambda w: w.requested_at,
        reverse=True,
    )
    return [platform.withdrawal_model(w).to_api() for w in records]


@router.get("/cap-info")
async def cap_info(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.cap_info(user.id).to_api()
