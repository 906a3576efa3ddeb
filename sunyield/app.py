"""One wired-up client: transport, tokens, session, wallet store and workflows."""

import httpx
import structlog

from sunyield.client.api import PlatformAPI
from sunyield.client.http import ApiClient, Navigator
from sunyield.client.tokens import TokenStore
from sunyield.config import Settings, settings
from sunyield.domains.admin import AdminDashboard
from sunyield.domains.contribution import ContributionWorkflow
from sunyield.domains.engagement import EngagementWorkflow
from sunyield.domains.funding import FundingWizard
from sunyield.domains.withdrawal import WithdrawalWizard
from sunyield.models import Project
from sunyield.session import Session
from sunyield.shared.logging import setup_logging
from sunyield.shared.notifications import Notifier
from sunyield.store import WalletStore

logger = structlog.get_logger()


class SunYieldClient:
    def __init__(
        self,
        config: Settings | None = None,
        tokens: TokenStore | None = None,
        navigator: Navigator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        configure_logging: bool = False,
    ) -> None:
        self.config = config or settings
        if configure_logging:
            setup_logging(self.config.log_level)
        self.http = ApiClient(self.config, tokens, navigator, transport)
        self.api = PlatformAPI(self.http)
        self.notifier = Notifier()
        self.session = Session(self.api.auth, self.http.tokens, self.notifier, self.api.admin)
        self.wallet = WalletStore(self.api.wallet)
        logger.debug("client_initialized", api_url=self.config.api_url)

    @property
    def navigator(self) -> Navigator:
        return self.http.navigator

    @property
    def tokens(self) -> TokenStore:
        return self.http.tokens

    def funding_wizard(self) -> FundingWizard:
        return FundingWizard(
            self.api.wallet, self.api.coupons, self.wallet, self.notifier, self.config
        )

    def withdrawal_wizard(self) -> WithdrawalWizard:
        return WithdrawalWizard(self.api.withdrawal, self.wallet, self.notifier, self.config)

    def contribution(self, project: Project) -> ContributionWorkflow:
        return ContributionWorkflow(
            project, self.api.subscriptions, self.api.coupons, self.wallet, self.notifier
        )

    def engagement(self) -> EngagementWorkflow:
        return EngagementWorkflow(
            self.api.engagement,
            self.api.projects,
            self.api.coupons,
            self.wallet,
            self.session,
            self.notifier,
        )

    def admin_dashboard(self) -> AdminDashboard:
        return AdminDashboard(self.api.admin, self.notifier)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "SunYieldClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
