"""Reinvest, donate and gift actions against accrued credits.

The three actions share one form: an amount, an optional coupon, and a
target. Reinvest and donate target a project; gift targets another user by
email and is only offered to senders whose KYC is approved.
"""

import asyncio

import structlog

from sunyield.client.api import CouponAPI, EngagementAPI, ProjectsAPI
from sunyield.client.errors import ApiError
from sunyield.models import (
    Direction,
    EngagementResult,
    EngagementStats,
    EngagementTransaction,
    EngagementType,
    Project,
)
from sunyield.session import Session
from sunyield.shared.notifications import Notifier
from sunyield.store import WalletStore

from .coupons import AppliedCoupon, CouponApplier, discount_of, payable_amount

logger = structlog.get_logger()

_SUCCESS_MESSAGES = {
    EngagementType.REINVEST: "Reinvestment successful!",
    EngagementType.DONATE: "Donation successful!",
    EngagementType.GIFT: "Gift sent successfully!",
}

_FAILURE_MESSAGES = {
    EngagementType.REINVEST: "Failed to reinvest",
    EngagementType.DONATE: "Failed to donate",
    EngagementType.GIFT: "Failed to send gift",
}


def summarize(history: list[EngagementTransaction]) -> EngagementStats:
    """Aggregate totals from the engagement log."""
    totals = {t: 0.0 for t in EngagementType}
    received = 0.0
    for tx in history:
        if tx.direction == Direction.INCOMING:
            received += tx.amount
            continue
        try:
            totals[EngagementType(tx.type)] += tx.amount
        except ValueError:
            logger.debug("engagement_type_unknown", type=tx.type)
    return EngagementStats(
        total_reinvested=round(totals[EngagementType.REINVEST], 2),
        total_donated=round(totals[EngagementType.DONATE], 2),
        total_gifted=round(totals[EngagementType.GIFT], 2),
        total_received=round(received, 2),
        total_transactions=len(history),
    )


def transaction_label(tx: EngagementTransaction) -> str:
    if tx.type == EngagementType.GIFT:
        return "Gift Received" if tx.direction == Direction.INCOMING else "Gift Sent"
    if tx.type == EngagementType.REINVEST:
        return "Reinvestment"
    if tx.type == EngagementType.DONATE:
        return "Donation"
    return tx.type


class EngagementWorkflow:
    def __init__(
        self,
        engagement_api: EngagementAPI,
        projects_api: ProjectsAPI,
        coupon_api: CouponAPI,
        wallet_store: WalletStore,
        session: Session,
        notifier: Notifier | None = None,
    ) -> None:
        self._api = engagement_api
        self._projects_api = projects_api
        self._store = wallet_store
        self._session = session
        self.notifier = notifier or Notifier()
        self._coupons = CouponApplier(coupon_api, self.notifier)

        self.stats: EngagementStats | None = None
        self.history: list[EngagementTransaction] = []
        self.projects: list[Project] = []
        self.loading = False
        self.submitting = False

        self.action: EngagementType | None = None
        self.project_id: int | None = None
        self.recipient_email = ""
        self.amount: float = 0.0
        self.coupon: AppliedCoupon | None = None
        self.last_result: EngagementResult | None = None

    async def load(self) -> None:
        self.loading = True
        try:
            self.stats, self.projects, self.history = await asyncio.gather(
                self._api.stats(),
                self._projects_api.active_projects(),
                self._api.history(),
            )
        except ApiError as exc:
            logger.warning("engagement_load_failed", kind=exc.kind.value)
            self.notifier.error("Failed to load engagement data")
        finally:
            self.loading = False

    def open(self, action: EngagementType) -> None:
        self.action = action
        self.project_id = None
        self.recipient_email = ""
        self.amount = 0.0
        self.coupon = None

    def close(self) -> None:
        self.action = None

    @property
    def gift_allowed(self) -> bool:
        return self._session.kyc_approved

    @property
    def final_amount(self) -> float:
        return payable_amount(self.amount, discount_of(self.coupon))

    @property
    def validation_error(self) -> str | None:
        if self.action is None:
            return "Choose an action"
        if self.action == EngagementType.GIFT:
            if not self.recipient_email.strip() or self.amount <= 0:
                return "Please enter recipient email and a valid amount"
            return None
        if self.project_id is None or self.amount <= 0:
            return "Please select a project and enter a valid amount"
        return None

    @property
    def can_submit(self) -> bool:
        if self.submitting or self.validation_error is not None:
            return False
        if self.action == EngagementType.GIFT and not self.gift_allowed:
            return False
        return True

    def set_amount(self, amount: float) -> None:
        self.amount = amount
        if self.coupon and self.coupon.quoted_amount != amount:
            self.coupon = None
            self.notifier.info("Coupon removed, apply it again for the new amount")

    async def apply_coupon(self, code: str) -> bool:
        self.coupon = await self._coupons.apply(code, self.amount)
        return self.coupon is not None

    def remove_coupon(self) -> None:
        self.coupon = None

    async def submit(self) -> EngagementResult | None:
        error = self.validation_error
        if error:
            self.notifier.error(error)
            return None
        if self.submitting:
            return None

        action = self.action
        code = self.coupon.code if self.coupon else None
        self.submitting = True
        try:
            if action == EngagementType.REINVEST:
                result = await self._api.reinvest(self.project_id, self.amount, code)
            elif action == EngagementType.DONATE:
                result = await self._api.donate(self.project_id, self.amount, code)
            else:
                result = await self._api.gift(self.recipient_email.strip(), self.amount, code)
        except ApiError as exc:
            self.notifier.error(exc.message or _FAILURE_MESSAGES[action])
            return None
        except Exception:
            logger.exception("engagement_unexpected_error", action=action.value)
            self.notifier.error(_FAILURE_MESSAGES[action])
            return None
        finally:
            self.submitting = False

        invested = result.amount if action == EngagementType.REINVEST else 0.0
        self._store.set_balance(result.new_balance, invested_delta=invested)
        self.last_result = result
        logger.info("engagement_completed", action=action.value, amount=result.amount)
        self.notifier.success(f"{_SUCCESS_MESSAGES[action]} New balance: ₹{result.new_balance:,.2f}")
        self.close()
        await self.load()
        return result
