"""Session-wide wallet cache.

All views read the balance from one ``WalletStore``. It changes only in
response to the server: a fresh fetch, or a figure reported back by a
successful mutation. Subscribers are told about every change.
"""

from collections.abc import Callable

import structlog

from sunyield.client.api import WalletAPI
from sunyield.models import Wallet

logger = structlog.get_logger()

WalletListener = Callable[[Wallet], None]


class WalletStore:
    def __init__(self, wallet_api: WalletAPI) -> None:
        self._api = wallet_api
        self._wallet: Wallet | None = None
        self._listeners: list[WalletListener] = []

    @property
    def wallet(self) -> Wallet | None:
        return self._wallet

    @property
    def balance(self) -> float:
        return self._wallet.balance if self._wallet else 0.0

    @property
    def loaded(self) -> bool:
        return self._wallet is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: WalletListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> Wallet:
        wallet = await self._api.get_wallet()
        self._replace(wallet, source="fetch")
        return wallet

    async def ensure_loaded(self) -> Wallet:
        if self._wallet is None:
            return await self.refresh()
        return self._wallet

    def set_balance(self, balance: float, invested_delta: float = 0.0) -> None:
        """Adopt a balance the server reported after a mutation."""
        current = self._wallet or Wallet()
        wallet = current.model_copy(
            update={
                "balance": round(balance, 2),
                "total_invested": round(current.total_invested + invested_delta, 2),
            }
        )
        self._replace(wallet, source="server_balance")

    def apply_credit(self, amount: float) -> None:
        """Add an amount the server confirmed was credited (or debited, if negative)."""
        self.set_balance(self.balance + amount)

    def _replace(self, wallet: Wallet, source: str) -> None:
        self._wallet = wallet
        logger.debug("wallet_updated", balance=wallet.balance, source=source)
        for listener in list(self._listeners):
            listener(wallet)
