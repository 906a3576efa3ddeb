"""Tests for the contribution workflow and holdings aggregation."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from sunyield.client.errors import ApiError, ErrorKind
from sunyield.domains.contribution import (
    ContributionWorkflow,
    OutcomeKind,
    aggregate_subscriptions,
)
from sunyield.models import (
    ContributionResult,
    CouponValidation,
    PaymentStatus,
    Project,
    Subscription,
    Wallet,
)
from sunyield.store import WalletStore


def _project(min_contribution: float = 999.0) -> Project:
    return Project(id=3, name="Rajasthan Solar Park", min_contribution=min_contribution)


async def _workflow(balance: float, min_contribution: float = 999.0):
    wallet_api = AsyncMock()
    wallet_api.get_wallet.return_value = Wallet(balance=balance)
    subscriptions_api = AsyncMock()
    coupon_api = AsyncMock()
    store = WalletStore(wallet_api)
    workflow = ContributionWorkflow(
        _project(min_contribution), subscriptions_api, coupon_api, store
    )
    await workflow.load()
    return workflow, subscriptions_api, coupon_api, store


class TestPricing:
    @pytest.mark.asyncio
    async def test_amount_starts_at_minimum(self):
        workflow, *_ = await _workflow(5000)
        assert workflow.amount == 999
        assert workflow.can_submit

    @pytest.mark.asyncio
    async def test_coupon_discount(self):
        workflow, _, coupon_api, _ = await _workflow(5000)
        coupon_api.validate.return_value = CouponValidation(valid=True, discount=1500)
        workflow.set_amount(5000)

        assert await workflow.apply_coupon("SUN30")
        assert workflow.final_price == 3500
        assert workflow.can_submit

    @pytest.mark.asyncio
    async def test_below_minimum_is_blocked(self):
        workflow, *_ = await _workflow(5000)
        workflow.set_amount(500)
        assert workflow.blocked_reason == "Contribution amount must be at least ₹999"
        assert not workflow.can_submit

    @pytest.mark.asyncio
    async def test_shortfall(self):
        workflow, *_ = await _workflow(500)
        assert workflow.shortfall == 499
        assert workflow.blocked_reason == (
            "Insufficient wallet balance. Please add funds to your wallet."
        )

    @pytest.mark.asyncio
    async def test_load_failure_notifies(self):
        wallet_api = AsyncMock()
        wallet_api.get_wallet.side_effect = ApiError("down", 503, ErrorKind.UNEXPECTED)
        workflow = ContributionWorkflow(_project(), AsyncMock(), AsyncMock(), WalletStore(wallet_api))
        await workflow.load()
        assert workflow.notifier.errors() == ["Failed to fetch wallet balance"]


class TestSubmit:
    @pytest.mark.asyncio
    async def test_insufficient_balance_makes_no_request(self):
        workflow, subscriptions_api, *_ = await _workflow(500)

        outcome = await workflow.submit()

        assert outcome.kind == OutcomeKind.BLOCKED
        subscriptions_api.subscribe.assert_not_awaited()
        assert workflow.notifier.errors() == [
            "Insufficient wallet balance. Please add funds to your wallet."
        ]

    @pytest.mark.asyncio
    async def test_success_updates_wallet_store(self):
        workflow, subscriptions_api, _, store = await _workflow(5000)
        subscriptions_api.subscribe.return_value = ContributionResult(
            project_name="Rajasthan Solar Park",
            amount=999,
            original_amount=999,
            reserved_capacity=19.98,
            new_balance=4001,
        )

        outcome = await workflow.submit()

        assert outcome.kind == OutcomeKind.SUCCESS
        assert store.balance == 4001
        assert store.wallet.total_invested == 999
        subscriptions_api.subscribe.assert_awaited_once_with(3, 999, None)
        assert workflow.notifier.last.message == "Successfully invested in Rajasthan Solar Park!"

    @pytest.mark.asyncio
    async def test_coupon_code_is_sent(self):
        workflow, subscriptions_api, coupon_api, _ = await _workflow(5000)
        coupon_api.validate.return_value = CouponValidation(valid=True, discount=100)
        subscriptions_api.subscribe.return_value = ContributionResult(amount=899, new_balance=4101)
        await workflow.apply_coupon("sun100")

        await workflow.submit()
        subscriptions_api.subscribe.assert_awaited_once_with(3, 999, "SUN100")

    @pytest.mark.asyncio
    async def test_duplicate_opens_modal_without_toast(self):
        workflow, subscriptions_api, _, store = await _workflow(5000)
        subscriptions_api.subscribe.side_effect = ApiError(
            "You have already subscribed to this project", 400, ErrorKind.DUPLICATE_SUBSCRIPTION
        )

        outcome = await workflow.submit()

        assert outcome.kind == OutcomeKind.DUPLICATE_SUBSCRIPTION
        assert workflow.show_duplicate_modal
        assert workflow.notifier.errors() == []
        assert store.balance == 5000

        workflow.dismiss_duplicate_modal()
        assert not workflow.show_duplicate_modal

    @pytest.mark.asyncio
    async def test_other_failure_shows_server_message(self):
        workflow, subscriptions_api, *_ = await _workflow(5000)
        subscriptions_api.subscribe.side_effect = ApiError(
            "Rajasthan Solar Park is not accepting contributions", 400, ErrorKind.BUSINESS_RULE
        )

        outcome = await workflow.submit()

        assert outcome.kind == OutcomeKind.FAILED
        assert not workflow.show_duplicate_modal
        assert workflow.notifier.errors() == ["Rajasthan Solar Park is not accepting contributions"]
        assert not workflow.loading


class TestAggregateSubscriptions:
    def test_groups_by_project(self):
        history = [
            Subscription(
                id=1,
                project_id=3,
                project_name="Rajasthan Solar Park",
                contribution_amount=1000,
                reserved_capacity=20,
                payment_status=PaymentStatus.SUCCESS,
                subscribed_at=datetime(2026, 1, 5, tzinfo=UTC),
            ),
            Subscription(
                id=2,
                project_id=3,
                project_name="Rajasthan Solar Park",
                contribution_amount=500,
                reserved_capacity=10,
                payment_status=PaymentStatus.SUCCESS,
                subscribed_at=datetime(2026, 3, 5, tzinfo=UTC),
            ),
            Subscription(
                id=3,
                project_id=4,
                project_name="Pune Rooftop Cluster",
                contribution_amount=2000,
                reserved_capacity=40,
                payment_status=PaymentStatus.PENDING,
            ),
            Subscription(
                id=4,
                project_id=4,
                project_name="Pune Rooftop Cluster",
                contribution_amount=9000,
                payment_status=PaymentStatus.FAILED,
            ),
        ]

        holdings = aggregate_subscriptions(history)

        assert [h.project_id for h in holdings] == [4, 3]
        pune, rajasthan = holdings
        assert pune.total_contribution == 2000
        assert pune.subscription_count == 1
        assert rajasthan.total_contribution == 1500
        assert rajasthan.total_reserved_capacity == 30
        assert rajasthan.subscription_count == 2
        assert rajasthan.last_subscribed_at == datetime(2026, 3, 5, tzinfo=UTC)
