"""Admin dashboard panels.

Every panel follows the same cycle: fetch its list when the tab is
activated, run a row action against the matching mutation endpoint, then
fetch the list again. Nothing is updated optimistically and there is no
version check, so concurrent admins race with last-write-wins.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, Generic, TypeVar

import structlog

from sunyield.client.api import AdminAPI
from sunyield.client.errors import ApiError
from sunyield.models import (
    Coupon,
    DashboardStats,
    KycRecord,
    Project,
    ProjectStatus,
    Role,
    Subscription,
    User,
    WithdrawalRequest,
)
from sunyield.shared.notifications import Notifier

logger = structlog.get_logger()

T = TypeVar("T")


class AdminTab(StrEnum):
    USERS = "users"
    PROJECTS = "projects"
    KYC = "kyc"
    PAYMENTS = "payments"
    COUPONS = "coupons"
    CONFIG = "config"


class AdminPanel(ABC, Generic[T]):
    name = "panel"

    def __init__(self, admin_api: AdminAPI, notifier: Notifier) -> None:
        self._api = admin_api
        self.notifier = notifier
        self.items: list[T] = []
        self.loading = False

    @abstractmethod
    async def fetch(self) -> list[T]:
        """Load the rows this panel lists."""

    async def activate(self) -> list[T]:
        self.loading = True
        try:
            self.items = await self.fetch()
        except ApiError as exc:
            logger.warning("admin_fetch_failed", panel=self.name, kind=exc.kind.value)
            self.notifier.error(f"Failed to load {self.name}")
        finally:
            self.loading = False
        return self.items

    async def run(
        self,
        action: Callable[[], Awaitable[Any]],
        success_message: str,
        failure_message: str,
    ) -> bool:
        """Run one mutation, then refresh the list whatever the outcome."""
        try:
            await action()
        except ApiError as exc:
            self.notifier.error(exc.message or failure_message)
            await self.activate()
            return False
        logger.info("admin_action", panel=self.name, message=success_message)
        self.notifier.success(success_message)
        await self.activate()
        return True


class UsersPanel(AdminPanel[User]):
    name = "users"

    async def fetch(self) -> list[User]:
        return await self._api.users()

    async def change_role(self, user_id: int, role: Role) -> bool:
        return await self.run(
            lambda: self._api.update_role(user_id, role),
            f"Role updated to {role.value}",
            "Failed to update role",
        )

    async def delete(self, user_id: int) -> bool:
        return await self.run(
            lambda: self._api.delete_user(user_id), "User deleted", "Failed to delete user"
        )

    async def add_credits(self, user_id: int, amount: float, notes: str = "") -> bool:
        if amount <= 0:
            self.notifier.error("Please enter a valid amount")
            return False
        return await self.run(
            lambda: self._api.add_credits(user_id, amount, notes),
            f"₹{amount:,.2f} credited",
            "Failed to add credits",
        )


class ProjectsPanel(AdminPanel[Project]):
    name = "projects"

    async def fetch(self) -> list[Project]:
        return await self._api.projects()

    async def create(self, project: dict) -> bool:
        return await self.run(
            lambda: self._api.create_project(project), "Project created", "Failed to create project"
        )

    async def update(self, project_id: int, changes: dict) -> bool:
        return await self.run(
            lambda: self._api.update_project(project_id, changes),
            "Project updated",
            "Failed to update project",
        )

    async def pause(self, project_id: int) -> bool:
        return await self.run(
            lambda: self._api.pause_project(project_id), "Project paused", "Failed to pause project"
        )

    async def set_status(self, project_id: int, status: ProjectStatus) -> bool:
        return await self.run(
            lambda: self._api.set_project_status(project_id, status.value),
            f"Project marked {status.value}",
            "Failed to change project status",
        )

    async def delete(self, project_id: int) -> bool:
        return await self.run(
            lambda: self._api.delete_project(project_id),
            "Project deleted",
            "Failed to delete project",
        )

    async def upload_image(self, project_id: int, image: bytes, filename: str) -> bool:
        return await self.run(
            lambda: self._api.upload_project_image(project_id, image, filename),
            "Image uploaded",
            "Failed to upload image",
        )

    async def add_energy(self, project_id: int, energy_produced: float, date: str) -> bool:
        return await self.run(
            lambda: self._api.add_energy(project_id, energy_produced, date),
            "Energy data recorded and rewards distributed",
            "Failed to add energy data",
        )


class KycPanel(AdminPanel[KycRecord]):
    name = "kyc requests"

    def __init__(self, admin_api: AdminAPI, notifier: Notifier, pending_only: bool = True) -> None:
        super().__init__(admin_api, notifier)
        self.pending_only = pending_only

    async def fetch(self) -> list[KycRecord]:
        if self.pending_only:
            return await self._api.kyc_pending()
        return await self._api.kyc_all()

    async def approve(self, kyc_id: int) -> bool:
        return await self.run(
            lambda: self._api.approve_kyc(kyc_id), "KYC approved", "Failed to approve KYC"
        )

    async def reject(self, kyc_id: int) -> bool:
        return await self.run(
            lambda: self._api.reject_kyc(kyc_id), "KYC rejected", "Failed to reject KYC"
        )


class PaymentsPanel(AdminPanel[Subscription]):
    """Pending subscription payments, with withdrawal requests alongside."""

    name = "payments"

    def __init__(self, admin_api: AdminAPI, notifier: Notifier) -> None:
        super().__init__(admin_api, notifier)
        self.withdrawals: list[WithdrawalRequest] = []

    async def fetch(self) -> list[Subscription]:
        self.withdrawals = await self._api.withdrawals()
        return await self._api.pending_subscriptions()

    async def approve_subscription(self, order_id: str) -> bool:
        return await self.run(
            lambda: self._api.approve_subscription(order_id),
            "Payment approved",
            "Failed to approve payment",
        )

    async def reject_subscription(self, order_id: str) -> bool:
        return await self.run(
            lambda: self._api.reject_subscription(order_id),
            "Payment rejected",
            "Failed to reject payment",
        )

    async def approve_withdrawal(self, withdrawal_id: int) -> bool:
        return await self.run(
            lambda: self._api.approve_withdrawal(withdrawal_id),
            "Withdrawal approved",
            "Failed to approve withdrawal",
        )

    async def reject_withdrawal(self, withdrawal_id: int) -> bool:
        return await self.run(
            lambda: self._api.reject_withdrawal(withdrawal_id),
            "Withdrawal rejected",
            "Failed to reject withdrawal",
        )


class CouponsPanel(AdminPanel[Coupon]):
    name = "coupons"

    async def fetch(self) -> list[Coupon]:
        return await self._api.coupons()

    async def save(self, coupon: Coupon) -> bool:
        if coupon.id is None:
            return await self.run(
                lambda: self._api.create_coupon(coupon),
                "Coupon created successfully",
                "Failed to save coupon",
            )
        return await self.run(
            lambda: self._api.update_coupon(coupon.id, coupon),
            "Coupon updated successfully",
            "Failed to save coupon",
        )

    async def delete(self, coupon_id: int) -> bool:
        return await self.run(
            lambda: self._api.delete_coupon(coupon_id),
            "Coupon deleted successfully",
            "Failed to delete coupon",
        )

    async def toggle_active(self, coupon: Coupon) -> bool:
        updated = coupon.model_copy(update={"is_active": not coupon.is_active})
        return await self.save(updated)


class ConfigPanel(AdminPanel[dict]):
    name = "configuration"

    def __init__(self, admin_api: AdminAPI, notifier: Notifier) -> None:
        super().__init__(admin_api, notifier)
        self.monthly_withdrawal_cap: float | None = None

    async def fetch(self) -> list[dict]:
        entries = await self._api.config()
        self.monthly_withdrawal_cap = await self._api.monthly_withdrawal_cap()
        return [{"key": k, "value": v} for k, v in sorted(entries.items())]

    async def set_monthly_withdrawal_cap(self, cap: float) -> bool:
        if cap <= 0:
            self.notifier.error("Monthly withdrawal cap must be greater than 0")
            return False
        return await self.run(
            lambda: self._api.set_monthly_withdrawal_cap(cap),
            f"Monthly withdrawal cap set to ₹{cap:,.0f}",
            "Failed to update monthly withdrawal cap",
        )


class AdminDashboard:
    def __init__(self, admin_api: AdminAPI, notifier: Notifier | None = None) -> None:
        self._api = admin_api
        self.notifier = notifier or Notifier()
        self.stats: DashboardStats | None = None
        self.active_tab: AdminTab | None = None
        self.panels: dict[AdminTab, AdminPanel] = {
            AdminTab.USERS: UsersPanel(admin_api, self.notifier),
            AdminTab.PROJECTS: ProjectsPanel(admin_api, self.notifier),
            AdminTab.KYC: KycPanel(admin_api, self.notifier),
            AdminTab.PAYMENTS: PaymentsPanel(admin_api, self.notifier),
            AdminTab.COUPONS: CouponsPanel(admin_api, self.notifier),
            AdminTab.CONFIG: ConfigPanel(admin_api, self.notifier),
        }

    async def load_stats(self) -> DashboardStats | None:
        try:
            self.stats = await self._api.dashboard_stats()
        except ApiError as exc:
            logger.warning("admin_stats_failed", kind=exc.kind.value)
            self.notifier.error("Failed to load dashboard stats")
        return self.stats

    async def open_tab(self, tab: AdminTab) -> AdminPanel:
        self.active_tab = tab
        panel = self.panels[tab]
        await panel.activate()
        return panel
