"""Add-funds wizard: details -> payment -> success.

Payment is a two-phase exchange with the platform: an order is created for
the payable amount, then (after the simulated gateway delay) confirmed.
The created order is kept on the wizard until it is confirmed, so a failed
confirmation is resumed against the same order instead of opening a new
one.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

import structlog

from sunyield.client.api import CouponAPI, WalletAPI
from sunyield.client.errors import ApiError, ErrorKind
from sunyield.config import Settings, settings
from sunyield.shared.notifications import Notifier
from sunyield.store import WalletStore

from .coupons import AppliedCoupon, CouponApplier, discount_of, payable_amount

logger = structlog.get_logger()


class FundingStep(StrEnum):
    DETAILS = "details"
    PAYMENT = "payment"
    SUCCESS = "success"


class PaymentMethod(StrEnum):
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"


class OrderStatus(StrEnum):
    CREATED = "created"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class InvalidTransition(Exception):
    """A wizard was asked to move to a step it cannot reach from here."""


@dataclass
class CardDetails:
    number: str = ""
    name: str = ""
    expiry: str = ""
    cvv: str = ""


@dataclass
class PaymentOrder:
    order_id: str
    amount: float
    status: OrderStatus = OrderStatus.CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class FundingReceipt:
    order_id: str
    amount: float
    method: PaymentMethod
    completed_at: datetime
    new_balance: float


class FundingWizard:
    def __init__(
        self,
        wallet_api: WalletAPI,
        coupon_api: CouponAPI,
        wallet_store: WalletStore,
        notifier: Notifier | None = None,
        config: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or settings
        self._api = wallet_api
        self._store = wallet_store
        self._sleep = sleep
        self.notifier = notifier or Notifier()
        self._coupons = CouponApplier(coupon_api, self.notifier)

        self.step = FundingStep.DETAILS
        self.amount: float = self._config.funding_default_amount
        self.coupon: AppliedCoupon | None = None
        self.method = PaymentMethod.CARD
        self.card = CardDetails()
        self.upi_id = ""
        self.bank = ""
        self.loading = False
        self.order: PaymentOrder | None = None
        self.receipt: FundingReceipt | None = None

    # Details step

    @property
    def discount(self) -> float:
        return discount_of(self.coupon)

    @property
    def final_amount(self) -> float:
        return payable_amount(self.amount, self.discount)

    @property
    def can_continue(self) -> bool:
        return self._config.funding_min_amount <= self.amount <= self._config.funding_max_amount

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

    def proceed(self) -> bool:
        """Move from details to payment. False while the amount is out of range."""
        if self.step != FundingStep.DETAILS:
            raise InvalidTransition(f"cannot continue to payment from {self.step}")
        if not self.can_continue:
            return False
        self.step = FundingStep.PAYMENT
        return True

    def back(self) -> None:
        if self.step != FundingStep.PAYMENT:
            raise InvalidTransition(f"cannot go back from {self.step}")
        self.step = FundingStep.DETAILS

    # Payment step

    def missing_payment_fields(self) -> list[str]:
        if self.method == PaymentMethod.CARD:
            return [
                name
                for name in ("number", "name", "expiry", "cvv")
                if not getattr(self.card, name).strip()
            ]
        if self.method == PaymentMethod.UPI:
            return [] if self.upi_id.strip() else ["upi_id"]
        return [] if self.bank.strip() else ["bank"]

    async def submit(self) -> FundingReceipt | None:
        if self.step != FundingStep.PAYMENT:
            raise InvalidTransition(f"cannot pay from {self.step}")
        if self.loading:
            return None
        if not self.can_continue:
            self.notifier.error(
                f"Amount must be between ₹{self._config.funding_min_amount:,.0f} "
                f"and ₹{self._config.funding_max_amount:,.0f}"
            )
            return None

        missing = self.missing_payment_fields()
        if missing:
            self.notifier.error(_MISSING_FIELD_MESSAGES[self.method])
            return None

        self.loading = True
        try:
            order = await self._ensure_order()
            await self._sleep(self._config.payment_processing_delay_seconds)
            receipt = await self._confirm(order)
        except ApiError as exc:
            self.notifier.error(exc.message or "Payment failed. Please try again.")
            return None
        except Exception:
            logger.exception("funding_unexpected_error")
            self.notifier.error("Payment failed. Please try again.")
            return None
        finally:
            self.loading = False

        self.receipt = receipt
        self.step = FundingStep.SUCCESS
        self.notifier.success("Payment successful! Funds added to your wallet.")
        return receipt

    async def resume(self) -> FundingReceipt | None:
        """Retry confirmation of an order whose confirmation failed."""
        if self.order is None or self.order.status == OrderStatus.CONFIRMED:
            raise InvalidTransition("no payment order awaiting confirmation")
        return await self.submit()

    async def _ensure_order(self) -> PaymentOrder:
        amount = self.final_amount
        if self.order is not None and self.order.status != OrderStatus.CONFIRMED:
            if self.order.amount == amount:
                return self.order
            logger.warning(
                "payment_order_abandoned",
                order_id=self.order.order_id,
                amount=self.order.amount,
            )

        response = await self._api.add_funds(amount)
        if not response.get("success"):
            raise ApiError(
                response.get("message") or "Failed to create payment order",
                kind=ErrorKind.BUSINESS_RULE,
                payload=response,
            )
        self.order = PaymentOrder(order_id=response["orderId"], amount=amount)
        logger.info("payment_order_created", order_id=self.order.order_id, amount=amount)
        return self.order

    async def _confirm(self, order: PaymentOrder) -> FundingReceipt:
        if order.status == OrderStatus.FAILED:
            # The previous confirmation may have landed server-side.
            status = await self._api.order_status(order.order_id)
            if status.get("status") == "PAID":
                logger.info("payment_order_already_confirmed", order_id=order.order_id)
                return self._complete(order, float(status.get("amount", order.amount)))

        order.status = OrderStatus.CONFIRMING
        try:
            response = await self._api.process_add_funds_payment(order.order_id)
        except ApiError:
            order.status = OrderStatus.FAILED
            raise
        if not response.get("success"):
            order.status = OrderStatus.FAILED
            raise ApiError(
                response.get("message") or "Payment processing failed",
                kind=ErrorKind.BUSINESS_RULE,
                payload=response,
            )
        # The server-reported amount wins over the locally computed one.
        return self._complete(order, float(response["amount"]), response.get("newBalance"))

    def _complete(
        self, order: PaymentOrder, amount: float, new_balance: float | None = None
    ) -> FundingReceipt:
        order.status = OrderStatus.CONFIRMED
        if new_balance is not None:
            self._store.set_balance(float(new_balance))
        else:
            self._store.apply_credit(amount)
        logger.info("funds_added", order_id=order.order_id, amount=amount)
        return FundingReceipt(
            order_id=order.order_id,
            amount=amount,
            method=self.method,
            completed_at=datetime.now(UTC),
            new_balance=self._store.balance,
        )


_MISSING_FIELD_MESSAGES = {
    PaymentMethod.CARD: "Please fill in all card details",
    PaymentMethod.UPI: "Please enter UPI ID",
    PaymentMethod.NETBANKING: "Please select a bank",
}
