"""Coupon application for wizard sessions.

An applied coupon only lives as long as the workflow that applied it. The
server decides the discount; the client subtracts it and never lets the
payable amount go below zero.
"""

from dataclasses import dataclass

import structlog

from sunyield.client.api import CouponAPI
from sunyield.client.errors import ApiError
from sunyield.shared.notifications import Notifier

logger = structlog.get_logger()


@dataclass(frozen=True)
class AppliedCoupon:
    code: str
    discount: float
    # Amount the discount was quoted for; a changed amount needs a re-quote.
    quoted_amount: float


def payable_amount(amount: float, discount: float) -> float:
    return round(max(amount - max(discount, 0.0), 0.0), 2)


def discount_of(coupon: AppliedCoupon | None) -> float:
    return coupon.discount if coupon else 0.0


class CouponApplier:
    def __init__(self, coupon_api: CouponAPI, notifier: Notifier) -> None:
        self._api = coupon_api
        self._notifier = notifier
        self.loading = False

    async def apply(self, code: str, amount: float) -> AppliedCoupon | None:
        """Ask the server for the discount ``code`` grants on ``amount``.

        Returns None (and notifies) when the code is empty, rejected, or the
        request fails.
        """
        code = code.strip()
        if not code:
            self._notifier.error("Please enter a coupon code")
            return None

        self.loading = True
        try:
            result = await self._api.validate(code, amount)
        except ApiError as exc:
            self._notifier.error(exc.message or "Failed to apply coupon")
            return None
        finally:
            self.loading = False

        if not result.valid:
            self._notifier.error(result.message or "Invalid or expired coupon code")
            return None

        applied = AppliedCoupon(code=code.upper(), discount=result.discount, quoted_amount=amount)
        logger.info("coupon_applied", code=applied.code, discount=applied.discount, amount=amount)
        self._notifier.success(f"Coupon applied! ₹{applied.discount:,.0f} discount")
        return applied
