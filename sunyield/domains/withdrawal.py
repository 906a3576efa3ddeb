"""Withdrawal wizard: details -> success, with a one-way success latch."""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import structlog

from sunyield.client.api import WithdrawalAPI
from sunyield.client.errors import ApiError
from sunyield.config import Settings, settings
from sunyield.models import WithdrawalCapInfo
from sunyield.shared.notifications import Notifier
from sunyield.shared.scope import ViewScope
from sunyield.store import WalletStore

logger = structlog.get_logger()

UPI_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z]{3,}$")


class WithdrawalStep(StrEnum):
    DETAILS = "details"
    SUCCESS = "success"


@dataclass(frozen=True)
class WithdrawalErrors:
    amount: str = ""
    upi_id: str = ""
    general: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.amount or self.upi_id or self.general)


@dataclass(frozen=True)
class WithdrawalReceipt:
    order_id: str
    amount: float
    upi_id: str
    submitted_at: datetime


def validate_withdrawal(
    amount: float,
    upi_id: str,
    balance: float,
    cap_info: WithdrawalCapInfo | None,
    minimum: float = 100.0,
) -> WithdrawalErrors:
    """Pure validation of a withdrawal form; same inputs, same errors."""
    amount_error = ""
    if amount <= 0:
        amount_error = "Amount must be greater than 0"
    elif amount < minimum:
        amount_error = f"Minimum withdrawal amount is ₹{minimum:,.0f}"
    elif amount > balance:
        amount_error = "Insufficient wallet balance"
    elif cap_info is not None and amount > cap_info.remaining_amount:
        amount_error = (
            "Monthly withdrawal limit exceeded. You can withdraw up to "
            f"₹{cap_info.remaining_amount:,.0f} this month."
        )

    upi_error = ""
    if not upi_id.strip():
        upi_error = "UPI ID is required"
    elif not UPI_PATTERN.match(upi_id):
        upi_error = "Please enter a valid UPI ID (e.g., username@bank)"

    return WithdrawalErrors(amount=amount_error, upi_id=upi_error)


class WithdrawalWizard:
    def __init__(
        self,
        withdrawal_api: WithdrawalAPI,
        wallet_store: WalletStore,
        notifier: Notifier | None = None,
        config: Settings | None = None,
    ) -> None:
        self._config = config or settings
        self._api = withdrawal_api
        self._store = wallet_store
        self.notifier = notifier or Notifier()

        self._step = WithdrawalStep.DETAILS
        self._completed = False
        self.amount: float = self._config.withdrawal_default_amount
        self.upi_id = ""
        self.cap_info: WithdrawalCapInfo | None = None
        self.errors = WithdrawalErrors()
        self.loading = False
        self.receipt: WithdrawalReceipt | None = None
        self._unsubscribe: Callable[[], None] | None = self._store.subscribe(
            lambda _wallet: self._revalidate()
        )
        self._revalidate()

    @property
    def step(self) -> WithdrawalStep:
        return self._step

    @step.setter
    def step(self, value: WithdrawalStep) -> None:
        if self._completed and value != WithdrawalStep.SUCCESS:
            logger.debug("withdrawal_step_reset_ignored", requested=value.value)
            return
        self._step = value

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def can_submit(self) -> bool:
        return not self.loading and not self._completed and self.errors.is_empty

    def set_amount(self, amount: float) -> None:
        self.amount = amount
        self._revalidate()

    def set_upi_id(self, upi_id: str) -> None:
        self.upi_id = upi_id
        self._revalidate()

    def open(self, scope: ViewScope) -> None:
        """Start the cap-info fetch in the background of ``scope``; detach when it closes."""
        scope.on_close(self.close)
        scope.spawn(self.refresh_cap_info())

    def close(self) -> None:
        """Stop following wallet changes. Safe to call more than once."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh_cap_info(self) -> None:
        if self._completed:
            return
        try:
            cap_info = await self._api.cap_info()
        except ApiError as exc:
            logger.warning("withdrawal_cap_info_failed", kind=exc.kind.value)
            return
        if self._completed:
            return
        self.cap_info = cap_info
        self._revalidate()

    async def submit(self) -> WithdrawalReceipt | None:
        if self._completed or self.loading:
            return None
        self._revalidate()
        if not self.errors.is_empty:
            self.notifier.error("Please fix the validation errors before proceeding")
            return None

        self.loading = True
        try:
            response = await self._api.request_withdrawal(self.amount, self.upi_id)
        except ApiError as exc:
            self.notifier.error(exc.message or "Withdrawal failed. Please try again.")
            return None
        except Exception:
            logger.exception("withdrawal_unexpected_error")
            self.notifier.error("Withdrawal failed. Please try again.")
            return None
        finally:
            self.loading = False

        order_id = str(response.get("orderId") or response.get("id") or "N/A")
        self.receipt = WithdrawalReceipt(
            order_id=order_id,
            amount=self.amount,
            upi_id=self.upi_id,
            submitted_at=datetime.now(UTC),
        )
        self._completed = True
        self._step = WithdrawalStep.SUCCESS
        self.close()
        if response.get("newBalance") is not None:
            self._store.set_balance(float(response["newBalance"]))
        else:
            self._store.apply_credit(-self.amount)
        logger.info("withdrawal_requested", order_id=order_id, amount=self.amount)
        self.notifier.success("Withdrawal request submitted successfully!")
        return self.receipt

    def _revalidate(self) -> None:
        if self._completed:
            return
        self.errors = validate_withdrawal(
            self.amount,
            self.upi_id,
            self._store.balance,
            self.cap_info,
            self._config.withdrawal_min_amount,
        )
