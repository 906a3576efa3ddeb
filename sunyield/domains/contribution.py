"""Contribution (subscription) workflow for a selected project."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

import structlog

from sunyield.client.api import CouponAPI, SubscriptionsAPI
from sunyield.client.errors import ApiError, ErrorKind
from sunyield.models import ContributionResult, PaymentStatus, Project, Subscription
from sunyield.shared.notifications import Notifier
from sunyield.store import WalletStore

from .coupons import AppliedCoupon, CouponApplier, discount_of, payable_amount

logger = structlog.get_logger()


class OutcomeKind(StrEnum):
    SUCCESS = "success"
    DUPLICATE_SUBSCRIPTION = "duplicate_subscription"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass(frozen=True)
class ContributionOutcome:
    kind: OutcomeKind
    result: ContributionResult | None = None
    message: str = ""


@dataclass
class ProjectHolding:
    """All of one user's subscriptions to a project, summed for display."""

    project_id: int
    project_name: str
    total_contribution: float = 0.0
    total_reserved_capacity: float = 0.0
    subscription_count: int = 0
    last_subscribed_at: datetime | None = None


def aggregate_subscriptions(history: list[Subscription]) -> list[ProjectHolding]:
    holdings: dict[int, ProjectHolding] = {}
    for sub in history:
        if sub.payment_status == PaymentStatus.FAILED:
            continue
        holding = holdings.setdefault(
            sub.project_id, ProjectHolding(project_id=sub.project_id, project_name=sub.project_name)
        )
        holding.total_contribution = round(holding.total_contribution + sub.contribution_amount, 2)
        holding.total_reserved_capacity = round(
            holding.total_reserved_capacity + sub.reserved_capacity, 2
        )
        holding.subscription_count += 1
        if sub.subscribed_at and (
            holding.last_subscribed_at is None or sub.subscribed_at > holding.last_subscribed_at
        ):
            holding.last_subscribed_at = sub.subscribed_at
    return sorted(holdings.values(), key=lambda h: h.total_contribution, reverse=True)


class ContributionWorkflow:
    def __init__(
        self,
        project: Project,
        subscriptions_api: SubscriptionsAPI,
        coupon_api: CouponAPI,
        wallet_store: WalletStore,
        notifier: Notifier | None = None,
    ) -> None:
        self.project = project
        self._api = subscriptions_api
        self._store = wallet_store
        self.notifier = notifier or Notifier()
        self._coupons = CouponApplier(coupon_api, self.notifier)

        self.amount: float = project.min_contribution
        self.coupon: AppliedCoupon | None = None
        self.loading = False
        self.show_duplicate_modal = False
        self.result: ContributionResult | None = None

    async def load(self) -> None:
        try:
            await self._store.refresh()
        except ApiError:
            self.notifier.error("Failed to fetch wallet balance")

    @property
    def balance(self) -> float:
        return self._store.balance

    @property
    def discount(self) -> float:
        return discount_of(self.coupon)

    @property
    def final_price(self) -> float:
        return payable_amount(self.amount, self.discount)

    @property
    def shortfall(self) -> float:
        return round(max(self.final_price - self.balance, 0.0), 2)

    @property
    def blocked_reason(self) -> str | None:
        if self.amount < self.project.min_contribution:
            return f"Contribution amount must be at least ₹{self.project.min_contribution:,.0f}"
        if self.final_price > self.balance:
            return "Insufficient wallet balance. Please add funds to your wallet."
        return None

    @property
    def can_submit(self) -> bool:
        return not self.loading and self.blocked_reason is None

    def set_amount(self, amount: float) -> None:
        self.amount = amount
        if self.coupon and self.coupon.quoted_amount != amount:
            self.coupon = None
            self.notifier.info("Coupon removed, apply it again for the new amount")

    async def apply_coupon(self, code: str) -> bool:
        self.coupon = await self._coupons.apply(code, self.amount)
        return self.coupon is not None

    def remove_coupon(self) -> None:
        if self.coupon:
            self.coupon = None
            self.notifier.success("Coupon removed")

    def dismiss_duplicate_modal(self) -> None:
        self.show_duplicate_modal = False

    async def submit(self) -> ContributionOutcome:
        if self.loading:
            return ContributionOutcome(OutcomeKind.BLOCKED, message="Submission in progress")
        reason = self.blocked_reason
        if reason:
            self.notifier.error(reason)
            return ContributionOutcome(OutcomeKind.BLOCKED, message=reason)

        self.loading = True
        try:
            result = await self._api.subscribe(
                self.project.id, self.amount, self.coupon.code if self.coupon else None
            )
        except ApiError as exc:
            if exc.kind == ErrorKind.DUPLICATE_SUBSCRIPTION:
                logger.info("contribution_duplicate", project_id=self.project.id)
                self.show_duplicate_modal = True
                return ContributionOutcome(OutcomeKind.DUPLICATE_SUBSCRIPTION, message=exc.message)
            self.notifier.error(exc.message or "Subscription failed. Please try again.")
            return ContributionOutcome(OutcomeKind.FAILED, message=exc.message)
        except Exception:
            logger.exception("contribution_unexpected_error", project_id=self.project.id)
            message = "Subscription failed. Please try again."
            self.notifier.error(message)
            return ContributionOutcome(OutcomeKind.FAILED, message=message)
        finally:
            self.loading = False

        self.result = result
        self._store.set_balance(result.new_balance, invested_delta=result.amount)
        logger.info(
            "contribution_completed",
            project_id=self.project.id,
            amount=result.amount,
            discount=result.discount_amount,
        )
        self.notifier.success(f"Successfully invested in {result.project_name or self.project.name}!")
        return ContributionOutcome(OutcomeKind.SUCCESS, result=result)
