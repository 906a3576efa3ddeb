"""Request bodies accepted by the sandbox routes."""

from datetime import date

from pydantic import EmailStr, Field

from sunyield.models import ApiModel, ProjectStatus, Role


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str
    full_name: str = ""
    contact: str | None = None


class EmailRequest(ApiModel):
    email: EmailStr


class OtpRequest(ApiModel):
    email: EmailStr
    otp: str


class LoginRequest(ApiModel):
    email: str
    password: str


class ResetPasswordRequest(ApiModel):
    email: EmailStr
    otp: str
    new_password: str


class SubscribeRequest(ApiModel):
    project_id: int
    contribution_amount: float
    coupon_code: str | None = None


class InitiateSubscriptionRequest(ApiModel):
    project_id: int
    contribution_amount: float


class AmountRequest(ApiModel):
    amount: float


class OrderRequest(ApiModel):
    order_id: str


class WithdrawalBody(ApiModel):
    amount: float
    upi_id: str
    payout_method: str = "UPI"


class ProjectEngagementRequest(ApiModel):
    project_id: int
    amount: float
    coupon_code: str | None = None


class GiftRequest(ApiModel):
    recipient_email: str
    amount: float
    coupon_code: str | None = None


class CouponValidateRequest(ApiModel):
    code: str
    amount: float


class RoleRequest(ApiModel):
    role: Role


class CreditRequest(ApiModel):
    amount: float = Field(gt=0)
    notes: str = ""


class ProjectStatusRequest(ApiModel):
    status: ProjectStatus


class EnergyRequest(ApiModel):
    energy_produced: float
    on: date = Field(alias="date")


class MonthlyCapRequest(ApiModel):
    monthly_withdrawal_cap: float = Field(gt=0)
