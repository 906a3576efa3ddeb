"""Shared test fixtures for the SunYield client tests."""

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from sunyield.app import SunYieldClient
from sunyield.config import Settings
from sunyield.models import KycStatus
from sunyield.sandbox.main import create_app
from sunyield.sandbox.state import PlatformState, UserRecord

PASSWORD = "solar-pass-1"


class CountingTransport(httpx.AsyncBaseTransport):
    """Delegating transport that records every request it forwards."""

    def __init__(self, inner: httpx.AsyncBaseTransport) -> None:
        self.inner = inner
        self.requests: list[httpx.Request] = []

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return await self.inner.handle_async_request(request)


@pytest.fixture
def config() -> Settings:
    return Settings(
        api_url="http://sandbox.test",
        payment_processing_delay_seconds=0,
        token_store_path=None,
        sandbox_monthly_withdrawal_cap=3000,
    )


@pytest.fixture
def platform(config: Settings) -> PlatformState:
    return PlatformState(config)


@pytest.fixture
def app(config: Settings, platform: PlatformState):
    return create_app(config, platform)


@pytest.fixture
def transport(app) -> CountingTransport:
    return CountingTransport(ASGITransport(app=app))


@pytest_asyncio.fixture
async def client(config: Settings, transport: CountingTransport):
    async with SunYieldClient(config, transport=transport) as sunyield:
        yield sunyield


@pytest_asyncio.fixture
async def http(app):
    """Raw HTTP client against the sandbox app."""
    async with httpx.AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as raw:
        yield raw


def add_investor(
    platform: PlatformState,
    email: str = "ravi@example.com",
    balance: float = 0.0,
    kyc_status: KycStatus = KycStatus.PENDING,
    full_name: str = "Ravi Kumar",
) -> UserRecord:
    user = platform.add_user(email, PASSWORD, full_name=full_name, kyc_status=kyc_status)
    if balance:
        platform.credit(user.id, balance, notes="Opening balance")
    return user


def bearer(platform: PlatformState, user: UserRecord) -> dict[str, str]:
    return {"Authorization": f"Bearer {platform.issue_token(user)}"}


def admin_bearer(platform: PlatformState, config: Settings) -> dict[str, str]:
    token = platform.admin_login(config.sandbox_admin_email, config.sandbox_admin_password)
    return {"Authorization": f"Bearer {token}"}


def add_solar_project(platform: PlatformState, **overrides):
    fields = {
        "name": "Rajasthan Solar Park",
        "location": "Jodhpur, Rajasthan",
        "energy_capacity": 500.0,
        "min_contribution": 999.0,
        "efficiency": "HIGH",
        "operational_validity_year": 2045,
        "project_type": "Utility",
    }
    fields.update(overrides)
    return platform.add_project(**fields)
