"""Tests for the shared wallet store."""

from unittest.mock import AsyncMock

import pytest

from sunyield.models import Wallet
from sunyield.store import WalletStore


def _store(balance: float = 1000.0) -> WalletStore:
    api = AsyncMock()
    api.get_wallet.return_value = Wallet(balance=balance, total_earnings=50, total_invested=200)
    return WalletStore(api)


class TestWalletStore:
    def test_empty_until_loaded(self):
        store = _store()
        assert not store.loaded
        assert store.balance == 0.0

    @pytest.mark.asyncio
    async def test_refresh_notifies_listeners(self):
        store = _store(1200)
        seen = []
        store.subscribe(lambda w: seen.append(w.balance))

        await store.refresh()
        assert store.balance == 1200
        assert seen == [1200]

    @pytest.mark.asyncio
    async def test_ensure_loaded_fetches_once(self):
        store = _store()
        await store.ensure_loaded()
        await store.ensure_loaded()
        store._api.get_wallet.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_set_balance_keeps_other_totals(self):
        store = _store()
        await store.refresh()
        store.set_balance(700, invested_delta=300)
        assert store.wallet == Wallet(balance=700, total_earnings=50, total_invested=500)

    def test_apply_credit(self):
        store = _store()
        store.set_balance(100)
        store.apply_credit(50.5)
        store.apply_credit(-20)
        assert store.balance == 130.5

    def test_unsubscribe(self):
        store = _store()
        seen = []
        unsubscribe = store.subscribe(lambda w: seen.append(w.balance))
        store.set_balance(10)
        unsubscribe()
        store.set_balance(20)
        assert seen == [10]
