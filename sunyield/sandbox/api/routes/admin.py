"""Admin endpoints: users, projects, KYC, payments, withdrawals and config."""

import structlog
from fastapi import APIRouter, Depends, File, UploadFile

from sunyield.models import KycStatus, PaymentStatus, Project, ProjectStatus, WithdrawalStatus
from sunyield.sandbox.api.deps import get_platform, require_admin
from sunyield.sandbox.api.schemas import (
    CreditRequest,
    EnergyRequest,
    LoginRequest,
    MonthlyCapRequest,
    ProjectStatusRequest,
    RoleRequest,
)
from sunyield.sandbox.state import MONTHLY_CAP_KEY, PlatformState, SandboxError

logger = structlog.get_logger()

login_router = APIRouter(prefix="/admin", tags=["admin"])
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@login_router.post("/login")
async def admin_login(
    request: LoginRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    token = platform.admin_login(request.email, request.password)
    logger.info("admin_logged_in")
    return {"token": token}


@router.get("/dashboard/stats")
async def dashboard_stats(platform: PlatformState = Depends(get_platform)) -> dict:  # noqa: B008
    return platform.dashboard_stats().to_api()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users")
async def list_users(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [u.to_model().to_api() for u in platform.users.values()]


@router.put("/users/{user_id}/role")
async def update_role(
    user_id: int,
    request: RoleRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.set_role(user_id, request.role).to_model().to_api()


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.delete_user(user_id)
    return {"success": True, "message": "User deleted"}


@router.post("/users/{user_id}/add-credits")
async def add_credits(
    user_id: int,
    request: CreditRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.get_user(user_id)
    platform.credit(user_id, request.amount, notes=request.notes or "Admin credit")
    return {"success": True, "userId": user_id, "newBalance": platform.balance(user_id)}


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@router.get("/projects")
async def list_projects(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [p.to_api() for p in platform.projects.values()]


@router.post("/projects")
async def create_project(
    body: dict,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    fields = Project.model_validate({**body, "id": 0}).model_dump(exclude={"id"})
    return platform.add_project(**fields).to_api()


@router.put("/projects/{project_id}")
async def update_project(
    project_id: int,
    body: dict,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.update_project(project_id, body).to_api()


@router.patch("/projects/{project_id}/pause")
async def pause_project(
    project_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.update_project(project_id, {"status": ProjectStatus.PAUSED.value}).to_api()


@router.patch("/projects/{project_id}/status")
async def set_project_status(
    project_id: int,
    request: ProjectStatusRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.update_project(project_id, {"status": request.status.value}).to_api()


@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.delete_project(project_id)
    return {"success": True, "message": "Project deleted"}


@router.post("/projects/{project_id}/image")
async def upload_image(
    project_id: int,
    image: UploadFile = File(),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    if image.content_type and not image.content_type.startswith("image/"):
        raise SandboxError("Only image files are allowed", "validation")
    url = f"/uploads/projects/{project_id}/{image.filename}"
    return platform.update_project(project_id, {"imageUrl": url}).to_api()


@router.post("/projects/{project_id}/add-energy")
async def add_energy(
    project_id: int,
    request: EnergyRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.add_energy(project_id, request.energy_produced, request.on)


# ---------------------------------------------------------------------------
# KYC
# ---------------------------------------------------------------------------


@router.get("/kyc/pending")
async def kyc_pending(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [k.to_api() for k in platform.kyc.values() if k.status == KycStatus.PENDING]


@router.get("/kyc/all")
async def kyc_all(platform: PlatformState = Depends(get_platform)) -> list[dict]:  # noqa: B008
    return [k.to_api() for k in platform.kyc.values()]


@router.post("/kyc/{kyc_id}/approve")
async def approve_kyc(
    kyc_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.decide_kyc(kyc_id, approve=True).to_api()


@router.post("/kyc/{kyc_id}/reject")
async def reject_kyc(
    kyc_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.decide_kyc(kyc_id, approve=False).to_api()


# ---------------------------------------------------------------------------
# Subscription payments and withdrawals
# ---------------------------------------------------------------------------


@router.get("/subscriptions/pending")
async def pending_subscriptions(
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    return [
        platform.subscription_model(s).to_api()
        for s in platform.subscriptions.values()
        if s.payment_status == PaymentStatus.PENDING
    ]


@router.post("/subscriptions/{order_id}/approve")
async def approve_subscription(
    order_id: str,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    record = platform.settle_subscription(order_id, PaymentStatus.SUCCESS)
    return platform.subscription_model(record).to_api()


@router.post("/subscriptions/{order_id}/reject")
async def reject_subscription(
    order_id: str,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    record = platform.settle_subscription(order_id, PaymentStatus.FAILED)
    return platform.subscription_model(record).to_api()


@router.get("/withdrawals")
async def list_withdrawals(
    status: WithdrawalStatus | None = None,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> list[dict]:
    return [
        platform.withdrawal_model(w).to_api()
        for w in platform.withdrawals.values()
        if status is None or w.status == status
    ]


@router.post("/withdrawals/{withdrawal_id}/approve")
async def approve_withdrawal(
    withdrawal_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.withdrawal_model(platform.decide_withdrawal(withdrawal_id, True)).to_api()


@router.post("/withdrawals/{withdrawal_id}/reject")
async def reject_withdrawal(
    withdrawal_id: int,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    return platform.withdrawal_model(platform.decide_withdrawal(withdrawal_id, False)).to_api()


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@router.get("/config")
async def get_config(platform: PlatformState = Depends(get_platform)) -> dict:  # noqa: B008
    return dict(platform.system_config)


@router.get("/config/monthly-withdrawal-cap")
async def get_monthly_cap(platform: PlatformState = Depends(get_platform)) -> dict:  # noqa: B008
    return {"monthlyWithdrawalCap": platform.monthly_cap}


@router.post("/config/monthly-withdrawal-cap")
async def set_monthly_cap(
    request: MonthlyCapRequest,
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    platform.system_config[MONTHLY_CAP_KEY] = str(request.monthly_withdrawal_cap)
    logger.info("monthly_cap_updated", cap=request.monthly_withdrawal_cap)
    return {"monthlyWithdrawalCap": platform.monthly_cap}
