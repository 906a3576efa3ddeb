"""Tests for withdrawal validation and the withdrawal wizard."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from sunyield.client.errors import ApiError, ErrorKind
from sunyield.config import Settings
from sunyield.domains.withdrawal import (
    WithdrawalStep,
    WithdrawalWizard,
    validate_withdrawal,
)
from sunyield.models import WithdrawalCapInfo
from sunyield.shared.scope import ViewScope
from sunyield.store import WalletStore


def _cap(remaining: float, cap: float = 3000) -> WithdrawalCapInfo:
    return WithdrawalCapInfo(
        monthly_cap=cap,
        total_withdrawn_this_month=cap - remaining,
        remaining_amount=remaining,
        current_month="October 2026",
    )


class TestValidateWithdrawal:
    def test_amount_rules_in_order(self):
        cap = _cap(2000)
        assert validate_withdrawal(0, "ravi@okbank", 5000, cap).amount == (
            "Amount must be greater than 0"
        )
        assert validate_withdrawal(50, "ravi@okbank", 5000, cap).amount == (
            "Minimum withdrawal amount is ₹100"
        )
        assert validate_withdrawal(6000, "ravi@okbank", 5000, cap).amount == (
            "Insufficient wallet balance"
        )
        assert validate_withdrawal(2500, "ravi@okbank", 5000, cap).amount == (
            "Monthly withdrawal limit exceeded. You can withdraw up to ₹2,000 this month."
        )
        assert validate_withdrawal(2000, "ravi@okbank", 5000, cap).is_empty

    def test_cap_unknown_is_not_enforced(self):
        assert validate_withdrawal(4000, "ravi@okbank", 5000, None).is_empty

    def test_upi_rules(self):
        assert validate_withdrawal(500, "  ", 5000, None).upi_id == "UPI ID is required"
        for bad in ("ravi", "ravi@", "ravi@ok", "ra vi@okbank", "ravi@bank1"):
            assert validate_withdrawal(500, bad, 5000, None).upi_id == (
                "Please enter a valid UPI ID (e.g., username@bank)"
            )
        for good in ("ravi@okbank", "ravi.kumar-01@ybl", "r_k@PAYTM"):
            assert validate_withdrawal(500, good, 5000, None).upi_id == ""

    def test_same_inputs_same_errors(self):
        cap = _cap(2000)
        first = validate_withdrawal(2500, "bad", 5000, cap)
        assert validate_withdrawal(2500, "bad", 5000, cap) == first


def _wizard(balance: float = 5000.0, response: dict | None = None):
    withdrawal_api = AsyncMock()
    withdrawal_api.cap_info.return_value = _cap(2000)
    withdrawal_api.request_withdrawal.return_value = response or {
        "success": True,
        "id": 7,
        "orderId": "WD_ABC",
        "amount": 1500,
        "newBalance": balance - 1500,
    }
    store = WalletStore(AsyncMock())
    store.set_balance(balance)
    wizard = WithdrawalWizard(withdrawal_api, store, config=Settings())
    return wizard, withdrawal_api, store


class TestWizard:
    @pytest.mark.asyncio
    async def test_cap_exceeded_blocks_submission(self):
        wizard, api, _ = _wizard()
        await wizard.refresh_cap_info()
        wizard.set_amount(2500)
        wizard.set_upi_id("ravi@okbank")

        assert not wizard.can_submit
        assert await wizard.submit() is None
        assert wizard.notifier.errors() == ["Please fix the validation errors before proceeding"]
        api.request_withdrawal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_successful_request(self):
        wizard, api, store = _wizard()
        await wizard.refresh_cap_info()
        wizard.set_amount(1500)
        wizard.set_upi_id("ravi@okbank")

        receipt = await wizard.submit()

        assert receipt.order_id == "WD_ABC"
        assert wizard.step == WithdrawalStep.SUCCESS
        assert wizard.completed
        assert store.balance == 3500
        api.request_withdrawal.assert_awaited_once_with(1500, "ravi@okbank")

    @pytest.mark.asyncio
    async def test_order_id_fallbacks(self):
        wizard, *_ = _wizard(response={"success": True, "id": 42})
        wizard.set_upi_id("ravi@okbank")
        assert (await wizard.submit()).order_id == "42"

        wizard, *_ = _wizard(response={"success": True})
        wizard.set_upi_id("ravi@okbank")
        assert (await wizard.submit()).order_id == "N/A"

    @pytest.mark.asyncio
    async def test_success_is_terminal(self):
        wizard, api, store = _wizard()
        wizard.set_amount(1500)
        wizard.set_upi_id("ravi@okbank")
        await wizard.submit()

        wizard.step = WithdrawalStep.DETAILS
        await wizard.refresh_cap_info()
        store.set_balance(10)
        wizard.set_amount(99999)

        assert wizard.step == WithdrawalStep.SUCCESS
        assert wizard.errors.is_empty
        assert await wizard.submit() is None
        api.request_withdrawal.assert_awaited_once()
        api.cap_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_late_cap_info_after_success_is_ignored(self):
        wizard, api, _ = _wizard()
        release = asyncio.Event()

        async def slow_cap_info():
            await release.wait()
            return _cap(0)

        api.cap_info.side_effect = slow_cap_info
        scope = ViewScope("withdraw")
        wizard.open(scope)
        await asyncio.sleep(0)

        wizard.set_amount(1500)
        wizard.set_upi_id("ravi@okbank")
        await wizard.submit()
        release.set()
        await scope.wait()

        assert wizard.step == WithdrawalStep.SUCCESS
        assert wizard.cap_info is None

    @pytest.mark.asyncio
    async def test_closing_scope_cancels_cap_fetch(self):
        wizard, api, _ = _wizard()

        async def never():
            await asyncio.Event().wait()

        api.cap_info.side_effect = never
        scope = ViewScope("withdraw")
        wizard.open(scope)
        await asyncio.sleep(0)
        await scope.close()
        assert wizard.cap_info is None

    @pytest.mark.asyncio
    async def test_balance_change_revalidates(self):
        wizard, _, store = _wizard(balance=5000)
        wizard.set_amount(1500)
        wizard.set_upi_id("ravi@okbank")
        assert wizard.errors.is_empty

        store.set_balance(1000)
        assert wizard.errors.amount == "Insufficient wallet balance"

    @pytest.mark.asyncio
    async def test_server_refusal_is_reported(self):
        wizard, api, store = _wizard()
        api.request_withdrawal.side_effect = ApiError(
            "KYC approval required for withdrawal. Current status: PENDING",
            400,
            ErrorKind.KYC_REQUIRED,
        )
        wizard.set_upi_id("ravi@okbank")

        assert await wizard.submit() is None
        assert wizard.step == WithdrawalStep.DETAILS
        assert store.balance == 5000
        assert wizard.notifier.errors() == [
            "KYC approval required for withdrawal. Current status: PENDING"
        ]


class TestWalletListener:
    def test_close_detaches_from_store(self):
        store = WalletStore(AsyncMock())
        wizards = [WithdrawalWizard(AsyncMock(), store, config=Settings()) for _ in range(50)]
        assert store.listener_count == 50

        for wizard in wizards:
            wizard.close()
            wizard.close()

        assert store.listener_count == 0

    @pytest.mark.asyncio
    async def test_success_detaches_from_store(self):
        wizard, _, store = _wizard()
        wizard.set_amount(1500)
        wizard.set_upi_id("ravi@okbank")

        await wizard.submit()

        assert store.listener_count == 0

    @pytest.mark.asyncio
    async def test_closing_the_view_detaches(self):
        wizard, _, store = _wizard()
        async with ViewScope("withdraw") as scope:
            wizard.open(scope)
            assert store.listener_count == 1
        assert store.listener_count == 0

        store.set_balance(10)
        assert wizard.errors.amount == ""
