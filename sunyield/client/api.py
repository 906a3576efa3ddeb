"""Endpoint groups of the platform API.

Each group is a thin wrapper: it names the path, shapes the request body and
parses the response into a model. Business rules live server-side.
"""

from typing import Any

from sunyield.models import (
    AuthResponse,
    ContributionResult,
    Coupon,
    CouponValidation,
    DashboardStats,
    EngagementResult,
    EngagementStats,
    EngagementTransaction,
    KycRecord,
    Project,
    Role,
    Subscription,
    User,
    Wallet,
    WithdrawalCapInfo,
    WithdrawalRequest,
)

from .errors import error_from_payload
from .http import ApiClient


def _checked(data: Any) -> Any:
    """Raise for 2xx bodies that still report ``success: false``."""
    if isinstance(data, dict) and data.get("success") is False:
        raise error_from_payload(data, 200)
    return data


class _Group:
    def __init__(self, client: ApiClient) -> None:
        self._client = client


class AuthAPI(_Group):
    async def register(self, email: str, password: str, full_name: str, contact: str) -> Any:
        return await self._client.post(
            "/auth/register",
            json={"email": email, "password": password, "fullName": full_name, "contact": contact},
        )

    async def verify_otp(self, email: str, otp: str) -> AuthResponse:
        data = await self._client.post("/auth/verify-otp", json={"email": email, "otp": otp})
        return AuthResponse.model_validate(data)

    async def resend_otp(self, email: str) -> Any:
        return await self._client.post("/auth/resend-otp", json={"email": email})

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self._client.post("/auth/login", json={"email": email, "password": password})
        return AuthResponse.model_validate(data)

    async def current_user(self) -> User:
        return User.model_validate(await self._client.get("/auth/me"))

    async def forgot_password(self, email: str) -> Any:
        return await self._client.post("/auth/forgot-password", json={"email": email})

    async def reset_password(self, email: str, otp: str, new_password: str) -> Any:
        return await self._client.post(
            "/auth/reset-password",
            json={"email": email, "otp": otp, "newPassword": new_password},
        )


class ProjectsAPI(_Group):
    async def active_projects(self) -> list[Project]:
        data = await self._client.get("/api/projects/active")
        return [Project.model_validate(p) for p in data or []]


def _subscription_body(project_id: int, amount: float, coupon_code: str | None) -> dict:
    body: dict[str, Any] = {"projectId": project_id, "contributionAmount": amount}
    if coupon_code:
        body["couponCode"] = coupon_code
    return body


class SubscriptionsAPI(_Group):
    async def subscribe(
        self, project_id: int, amount: float, coupon_code: str | None = None
    ) -> ContributionResult:
        data = await self._client.post(
            "/api/subscriptions", json=_subscription_body(project_id, amount, coupon_code)
        )
        return ContributionResult.model_validate(_checked(data))

    async def history(self) -> list[Subscription]:
        data = await self._client.get("/api/subscriptions/history")
        return [Subscription.model_validate(s) for s in data or []]

    async def test_subscription(
        self, project_id: int, amount: float, coupon_code: str | None = None
    ) -> dict:
        """Dry run: echoes the pricing the server would apply, persists nothing."""
        return await self._client.post(
            "/api/subscriptions/test", json=_subscription_body(project_id, amount, coupon_code)
        )

    async def test_subscription_with_auth(
        self, project_id: int, amount: float, coupon_code: str | None = None
    ) -> dict:
        return await self._client.post(
            "/api/subscriptions/test-auth", json=_subscription_body(project_id, amount, coupon_code)
        )

    async def webhook(self, order_id: str, status: str) -> Any:
        return await self._client.post(
            "/api/subscriptions/webhook", params={"orderId": order_id, "status": status}
        )


class WalletAPI(_Group):
    async def get_wallet(self) -> Wallet:
        return Wallet.model_validate(await self._client.get("/api/wallet"))

    async def history(self) -> list[dict]:
        return await self._client.get("/api/wallet/history") or []

    async def add_funds(self, amount: float) -> dict:
        """Phase one of funding: create a payment order."""
        return await self._client.post("/api/wallet/add-funds", json={"amount": amount})

    async def process_add_funds_payment(self, order_id: str) -> dict:
        """Phase two of funding: confirm the order and credit the wallet."""
        return await self._client.post(
            "/api/wallet/add-funds/process-payment", json={"orderId": order_id}
        )

    async def order_status(self, order_id: str) -> dict:
        return await self._client.get(f"/api/wallet/orders/{order_id}")


class WithdrawalAPI(_Group):
    async def request_withdrawal(
        self, amount: float, upi_id: str, payout_method: str = "UPI"
    ) -> dict:
        return await self._client.post(
            "/api/withdrawal/request",
            json={"amount": amount, "payoutMethod": payout_method, "upiId": upi_id},
        )

    async def history(self) -> list[WithdrawalRequest]:
        data = await self._client.get("/api/withdrawal/history")
        return [WithdrawalRequest.model_validate(w) for w in data or []]

    async def cap_info(self) -> WithdrawalCapInfo:
        return WithdrawalCapInfo.model_validate(await self._client.get("/api/withdrawal/cap-info"))


class KycAPI(_Group):
    async def submit(
        self,
        document_type: str,
        document_number: str,
        document: bytes,
        filename: str = "document.pdf",
        content_type: str = "application/pdf",
    ) -> KycRecord:
        data = await self._client.post(
            "/api/kyc/submit",
            data={"documentType": document_type, "documentNumber": document_number},
            files={"document": (filename, document, content_type)},
        )
        return KycRecord.model_validate(data)

    async def status(self) -> KycRecord | None:
        data = await self._client.get("/api/kyc/status")
        return KycRecord.model_validate(data) if data else None


class EngagementAPI(_Group):
    async def stats(self) -> EngagementStats:
        return EngagementStats.model_validate(await self._client.get("/api/engagement/stats"))

    async def history(self) -> list[EngagementTransaction]:
        data = await self._client.get("/api/engagement/history")
        return [EngagementTransaction.model_validate(t) for t in data or []]

    async def reinvest(
        self, project_id: int, amount: float, coupon_code: str | None = None
    ) -> EngagementResult:
        body = {"projectId": project_id, "amount": amount, "couponCode": coupon_code}
        data = await self._client.post("/api/engagement/reinvest", json=body)
        return EngagementResult.model_validate(_checked(data))

    async def donate(
        self, project_id: int, amount: float, coupon_code: str | None = None
    ) -> EngagementResult:
        body = {"projectId": project_id, "amount": amount, "couponCode": coupon_code}
        data = await self._client.post("/api/engagement/donate", json=body)
        return EngagementResult.model_validate(_checked(data))

    async def gift(
        self, recipient_email: str, amount: float, coupon_code: str | None = None
    ) -> EngagementResult:
        body = {"recipientEmail": recipient_email, "amount": amount, "couponCode": coupon_code}
        data = await self._client.post("/api/engagement/gift", json=body)
        return EngagementResult.model_validate(_checked(data))


class CouponAPI(_Group):
    async def validate(self, code: str, amount: float) -> CouponValidation:
        data = await self._client.post("/api/coupons/validate", json={"code": code, "amount": amount})
        return CouponValidation.model_validate(data)

    async def active(self) -> list[Coupon]:
        data = await self._client.get("/api/coupons/active")
        return [Coupon.model_validate(c) for c in data or []]


class EarningsAPI(_Group):
    async def summary(self) -> dict:
        return await self._client.get("/api/earnings/summary")

    async def project_breakdown(self) -> list[dict]:
        return await self._client.get("/api/earnings/projects") or []

    async def by_period(self, period: str) -> dict:
        return await self._client.get(f"/api/earnings/period/{period}")


class AdminAPI(_Group):
    async def login(self, email: str, password: str) -> str:
        data = await self._client.post("/admin/login", json={"email": email, "password": password})
        return data["token"]

    async def dashboard_stats(self) -> DashboardStats:
        return DashboardStats.model_validate(await self._client.get("/admin/dashboard/stats"))

    # Users
    async def users(self) -> list[User]:
        return [User.model_validate(u) for u in await self._client.get("/admin/users") or []]

    async def update_role(self, user_id: int, role: Role) -> User:
        data = await self._client.put(f"/admin/users/{user_id}/role", json={"role": role.value})
        return User.model_validate(data)

    async def delete_user(self, user_id: int) -> Any:
        return await self._client.delete(f"/admin/users/{user_id}")

    async def add_credits(self, user_id: int, amount: float, notes: str = "") -> dict:
        return await self._client.post(
            f"/admin/users/{user_id}/add-credits", json={"amount": amount, "notes": notes}
        )

    # Projects
    async def projects(self) -> list[Project]:
        return [Project.model_validate(p) for p in await self._client.get("/admin/projects") or []]

    async def create_project(self, project: dict) -> Project:
        return Project.model_validate(await self._client.post("/admin/projects", json=project))

    async def update_project(self, project_id: int, changes: dict) -> Project:
        data = await self._client.put(f"/admin/projects/{project_id}", json=changes)
        return Project.model_validate(data)

    async def pause_project(self, project_id: int) -> Project:
        return Project.model_validate(await self._client.patch(f"/admin/projects/{project_id}/pause"))

    async def set_project_status(self, project_id: int, status: str) -> Project:
        data = await self._client.patch(
            f"/admin/projects/{project_id}/status", json={"status": status}
        )
        return Project.model_validate(data)

    async def delete_project(self, project_id: int) -> Any:
        return await self._client.delete(f"/admin/projects/{project_id}")

    async def upload_project_image(
        self, project_id: int, image: bytes, filename: str, content_type: str = "image/jpeg"
    ) -> Project:
        data = await self._client.post(
            f"/admin/projects/{project_id}/image",
            files={"image": (filename, image, content_type)},
        )
        return Project.model_validate(data)

    async def add_energy(self, project_id: int, energy_produced: float, date: str) -> dict:
        return await self._client.post(
            f"/admin/projects/{project_id}/add-energy",
            json={"energyProduced": energy_produced, "date": date},
        )

    # KYC
    async def kyc_pending(self) -> list[KycRecord]:
        return [KycRecord.model_validate(k) for k in await self._client.get("/admin/kyc/pending") or []]

    async def kyc_all(self) -> list[KycRecord]:
        return [KycRecord.model_validate(k) for k in await self._client.get("/admin/kyc/all") or []]

    async def approve_kyc(self, kyc_id: int) -> KycRecord:
        return KycRecord.model_validate(await self._client.post(f"/admin/kyc/{kyc_id}/approve"))

    async def reject_kyc(self, kyc_id: int) -> KycRecord:
        return KycRecord.model_validate(await self._client.post(f"/admin/kyc/{kyc_id}/reject"))

    # Payments
    async def pending_subscriptions(self) -> list[Subscription]:
        data = await self._client.get("/admin/subscriptions/pending")
        return [Subscription.model_validate(s) for s in data or []]

    async def approve_subscription(self, order_id: str) -> Any:
        return await self._client.post(f"/admin/subscriptions/{order_id}/approve")

    async def reject_subscription(self, order_id: str) -> Any:
        return await self._client.post(f"/admin/subscriptions/{order_id}/reject")

    async def withdrawals(self) -> list[WithdrawalRequest]:
        data = await self._client.get("/admin/withdrawals")
        return [WithdrawalRequest.model_validate(w) for w in data or []]

    async def approve_withdrawal(self, withdrawal_id: int) -> WithdrawalRequest:
        data = await self._client.post(f"/admin/withdrawals/{withdrawal_id}/approve")
        return WithdrawalRequest.model_validate(data)

    async def reject_withdrawal(self, withdrawal_id: int) -> WithdrawalRequest:
        data = await self._client.post(f"/admin/withdrawals/{withdrawal_id}/reject")
        return WithdrawalRequest.model_validate(data)

    # Coupons
    async def coupons(self) -> list[Coupon]:
        return [Coupon.model_validate(c) for c in await self._client.get("/api/admin/coupons") or []]

    async def create_coupon(self, coupon: Coupon) -> Coupon:
        data = await self._client.post("/api/admin/coupons", json=coupon.to_api())
        return Coupon.model_validate(data)

    async def update_coupon(self, coupon_id: int, coupon: Coupon) -> Coupon:
        data = await self._client.put(f"/api/admin/coupons/{coupon_id}", json=coupon.to_api())
        return Coupon.model_validate(data)

    async def delete_coupon(self, coupon_id: int) -> Any:
        return await self._client.delete(f"/api/admin/coupons/{coupon_id}")

    # Configuration
    async def config(self) -> dict:
        return await self._client.get("/admin/config")

    async def monthly_withdrawal_cap(self) -> float:
        data = await self._client.get("/admin/config/monthly-withdrawal-cap")
        return float(data["monthlyWithdrawalCap"])

    async def set_monthly_withdrawal_cap(self, cap: float) -> float:
        data = await self._client.post(
            "/admin/config/monthly-withdrawal-cap", json={"monthlyWithdrawalCap": cap}
        )
        return float(data["monthlyWithdrawalCap"])


class PlatformAPI:
    """All endpoint groups over one configured client."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.auth = AuthAPI(client)
        self.projects = ProjectsAPI(client)
        self.subscriptions = SubscriptionsAPI(client)
        self.wallet = WalletAPI(client)
        self.withdrawal = WithdrawalAPI(client)
        self.kyc = KycAPI(client)
        self.engagement = EngagementAPI(client)
        self.coupons = CouponAPI(client)
        self.earnings = EarningsAPI(client)
        self.admin = AdminAPI(client)
