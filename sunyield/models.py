"""Pydantic models for the platform entities as the client sees them.

The API speaks camelCase JSON; every model accepts both the camelCase
alias and the snake_case field name.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class KycStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Role(StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class Efficiency(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ProjectStatus(StrEnum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class PaymentStatus(StrEnum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class DiscountType(StrEnum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class Direction(StrEnum):
    INCOMING = "INCOMING"
    OUTGOING = "OUTGOING"


class EngagementType(StrEnum):
    REINVEST = "REINVEST"
    DONATE = "DONATE"
    GIFT = "GIFT"


class WithdrawalStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ApiModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class User(ApiModel):
    id: int
    email: str
    full_name: str = ""
    contact: str | None = None
    kyc_status: KycStatus = KycStatus.PENDING
    role: Role = Role.USER
    is_verified: bool = False


class AuthResponse(ApiModel):
    token: str
    user: User


class Project(ApiModel):
    id: int
    name: str
    location: str = ""
    energy_capacity: float = 0.0
    min_contribution: float = 0.0
    efficiency: Efficiency = Efficiency.MEDIUM
    operational_validity_year: int | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    image_url: str | None = None
    project_type: str | None = None
    description: str | None = None

    def is_expired(self, current_year: int | None = None) -> bool:
        """Display-only: a project past its validity year is shown as expired."""
        if self.operational_validity_year is None:
            return False
        year = current_year if current_year is not None else datetime.now(UTC).year
        return self.operational_validity_year < year


class Subscription(ApiModel):
    id: int
    project_id: int
    project_name: str = ""
    contribution_amount: float
    reserved_capacity: float = 0.0
    discount_amount: float = 0.0
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_order_id: str | None = None
    subscribed_at: datetime | None = None
    updated_at: datetime | None = None


class Wallet(ApiModel):
    balance: float = 0.0
    total_earnings: float = 0.0
    total_invested: float = 0.0


class Coupon(ApiModel):
    id: int | None = None
    code: str
    name: str = ""
    description: str = ""
    discount_type: DiscountType = DiscountType.FIXED
    discount_value: float = 0.0
    min_amount: float | None = None
    max_discount: float | None = None
    max_usage: int | None = None
    current_usage: int = 0
    is_active: bool = True
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        if not self.is_active:
            return False
        if self.valid_from and now < self.valid_from:
            return False
        if self.valid_until and now > self.valid_until:
            return False
        if self.max_usage is not None and self.current_usage >= self.max_usage:
            return False
        return True

    def calculate_discount(self, amount: float) -> float:
        """Discount this coupon grants on ``amount``, never more than ``amount``."""
        if amount <= 0:
            return 0.0
        if self.discount_type == DiscountType.PERCENTAGE:
            discount = amount * self.discount_value / 100
            if self.max_discount is not None:
                discount = min(discount, self.max_discount)
        else:
            discount = self.discount_value
        return round(max(0.0, min(discount, amount)), 2)


class CouponValidation(ApiModel):
    valid: bool
    discount: float = 0.0
    message: str | None = None


class NamedRef(ApiModel):
    name: str


class UserRef(ApiModel):
    email: str
    full_name: str = ""


class EngagementTransaction(ApiModel):
    id: int
    type: str
    amount: float
    date: datetime | None = None
    notes: str | None = None
    direction: Direction = Direction.OUTGOING
    project: NamedRef | None = None
    from_user: UserRef | None = None
    to_user: UserRef | None = None


class EngagementStats(ApiModel):
    total_reinvested: float = 0.0
    total_donated: float = 0.0
    total_gifted: float = 0.0
    total_received: float = 0.0
    available_credits: float = 0.0
    total_transactions: int = 0


class WithdrawalCapInfo(ApiModel):
    monthly_cap: float
    total_withdrawn_this_month: float = 0.0
    remaining_amount: float
    current_month: str = ""


class WithdrawalRequest(ApiModel):
    id: int
    amount: float
    upi_id: str | None = None
    payout_method: str = "UPI"
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    order_id: str | None = None
    user_email: str | None = None
    requested_at: datetime | None = None
    processed_at: datetime | None = None


class KycRecord(ApiModel):
    id: int
    user_id: int | None = None
    user_email: str | None = None
    document_type: str
    document_number: str
    document_name: str | None = None
    status: KycStatus = KycStatus.PENDING
    submitted_at: datetime | None = None


class ContributionResult(ApiModel):
    success: bool = True
    message: str = ""
    project_name: str = ""
    amount: float = 0.0
    original_amount: float = 0.0
    discount_amount: float = 0.0
    reserved_capacity: float = 0.0
    applied_coupon: str | None = None
    new_balance: float = 0.0


class EngagementResult(ApiModel):
    success: bool = True
    message: str = ""
    amount: float = 0.0
    new_balance: float = 0.0


class DashboardStats(ApiModel):
    total_users: int = 0
    total_projects: int = 0
    active_projects: int = 0
    total_subscriptions: int = 0
    total_invested: float = 0.0
    pending_kyc: int = 0
    pending_withdrawals: int = 0
    extra: dict = Field(default_factory=dict)
