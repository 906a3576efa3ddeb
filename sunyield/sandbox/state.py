"""In-memory platform state for the sandbox backend.

Balances are never stored: a user's balance is the sum of ledger credits
addressed to them minus the debits they made, the same way the production
backend derives it from its transfer log.
"""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum

import structlog

from sunyield.config import Settings, settings
from sunyield.models import (
    Coupon,
    DashboardStats,
    Direction,
    EngagementResult,
    EngagementStats,
    EngagementTransaction,
    KycRecord,
    KycStatus,
    NamedRef,
    PaymentStatus,
    Project,
    ProjectStatus,
    Role,
    Subscription,
    User,
    UserRef,
    Wallet,
    WithdrawalCapInfo,
    WithdrawalRequest,
    WithdrawalStatus,
)

logger = structlog.get_logger()

MONTHLY_CAP_KEY = "MONTHLY_WITHDRAWAL_CAP"


class SandboxError(Exception):
    """A business rule refused the request."""

    def __init__(self, message: str, code: str = "business_rule", status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class TransferType(StrEnum):
    ADD_FUNDS = "ADD_FUNDS"
    ADMIN_CREDIT = "ADMIN_CREDIT"
    ENERGY_REWARD = "ENERGY_REWARD"
    GIFT = "GIFT"
    WITHDRAWAL_REVERSAL = "WITHDRAWAL_REVERSAL"
    SUBSCRIPTION = "SUBSCRIPTION"
    WITHDRAWAL = "WITHDRAWAL"
    REINVEST = "REINVEST"
    DONATE = "DONATE"


CREDIT_TYPES = frozenset(
    {
        TransferType.ADD_FUNDS,
        TransferType.ADMIN_CREDIT,
        TransferType.ENERGY_REWARD,
        TransferType.GIFT,
        TransferType.WITHDRAWAL_REVERSAL,
    }
)
DEBIT_TYPES = frozenset(
    {
        TransferType.SUBSCRIPTION,
        TransferType.WITHDRAWAL,
        TransferType.REINVEST,
        TransferType.DONATE,
        TransferType.GIFT,
    }
)
ENGAGEMENT_TYPES = frozenset({TransferType.REINVEST, TransferType.DONATE, TransferType.GIFT})


def _now() -> datetime:
    return datetime.now(UTC)


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.sha256((salt + password).encode()).hexdigest()
    return digest, salt


@dataclass
class UserRecord:
    id: int
    email: str
    password_hash: str
    salt: str
    full_name: str = ""
    contact: str | None = None
    kyc_status: KycStatus = KycStatus.PENDING
    role: Role = Role.USER
    is_verified: bool = False
    otp: str | None = None
    created_at: datetime = field(default_factory=_now)

    def check_password(self, password: str) -> bool:
        return hash_password(password, self.salt)[0] == self.password_hash

    def to_model(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            full_name=self.full_name,
            contact=self.contact,
            kyc_status=self.kyc_status,
            role=self.role,
            is_verified=self.is_verified,
        )


@dataclass
class LedgerEntry:
    id: int
    type: TransferType
    amount: float
    from_user_id: int | None = None
    to_user_id: int | None = None
    project_id: int | None = None
    notes: str = ""
    kwh: float | None = None
    created_at: datetime = field(default_factory=_now)


@dataclass
class PaymentOrderRecord:
    order_id: str
    user_id: int
    amount: float
    status: str = "ACTIVE"
    created_at: datetime = field(default_factory=_now)


@dataclass
class SubscriptionRecord:
    id: int
    user_id: int
    project_id: int
    contribution_amount: float
    reserved_capacity: float
    discount_amount: float = 0.0
    payment_status: PaymentStatus = PaymentStatus.SUCCESS
    payment_order_id: str | None = None
    subscription_type: str = "DIRECT"
    subscribed_at: datetime = field(default_factory=_now)
    updated_at: datetime | None = None


@dataclass
class WithdrawalRecord:
    id: int
    user_id: int
    amount: float
    upi_id: str
    order_id: str
    payout_method: str = "UPI"
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    requested_at: datetime = field(default_factory=_now)
    processed_at: datetime | None = None
    ledger_id: int | None = None


@dataclass
class EmailMessage:
    to: str
    subject: str
    body: str
    otp: str | None = None


class PlatformState:
    def __init__(self, config: Settings | None = None) -> None:
        self._config = config or settings
        self._ids: dict[str, int] = {}
        self.users: dict[int, UserRecord] = {}
        self.projects: dict[int, Project] = {}
        self.coupons: dict[int, Coupon] = {}
        self.ledger: list[LedgerEntry] = []
        self.orders: dict[str, PaymentOrderRecord] = {}
        self.subscriptions: dict[int, SubscriptionRecord] = {}
        self.withdrawals: dict[int, WithdrawalRecord] = {}
        self.kyc: dict[int, KycRecord] = {}
        self.system_config: dict[str, str] = {
            MONTHLY_CAP_KEY: str(self._config.sandbox_monthly_withdrawal_cap)
        }
        self.tokens: dict[str, int] = {}
        self.admin_tokens: set[str] = set()
        self.outbox: list[EmailMessage] = []
        # Mock gateway outcome for the next confirmations ("SUCCESS" or "FAILED").
        self.gateway_status = "SUCCESS"
        # Render business errors as bare text, like servers without error codes.
        self.legacy_errors = False

    def _next_id(self, kind: str) -> int:
        self._ids[kind] = self._ids.get(kind, 0) + 1
        return self._ids[kind]

    # Users and auth

    def add_user(
        self,
        email: str,
        password: str,
        full_name: str = "",
        contact: str | None = None,
        verified: bool = True,
        kyc_status: KycStatus = KycStatus.PENDING,
        role: Role = Role.USER,
    ) -> UserRecord:
        digest, salt = hash_password(password)
        record = UserRecord(
            id=self._next_id("user"),
            email=email.lower(),
            password_hash=digest,
            salt=salt,
            full_name=full_name,
            contact=contact,
            kyc_status=kyc_status,
            role=role,
            is_verified=verified,
        )
        self.users[record.id] = record
        return record

    def find_user(self, email: str) -> UserRecord | None:
        email = email.lower()
        return next((u for u in self.users.values() if u.email == email), None)

    def get_user(self, user_id: int) -> UserRecord:
        user = self.users.get(user_id)
        if user is None:
            raise SandboxError("User not found", "not_found", 404)
        return user

    def issue_token(self, user: UserRecord) -> str:
        token = secrets.token_urlsafe(24)
        self.tokens[token] = user.id
        return token

    def user_for_token(self, token: str) -> UserRecord | None:
        user_id = self.tokens.get(token)
        return self.users.get(user_id) if user_id is not None else None

    def _send_otp(self, user: UserRecord, subject: str) -> None:
        user.otp = f"{secrets.randbelow(1_000_000):06d}"
        self.outbox.append(
            EmailMessage(
                to=user.email,
                subject=subject,
                body=f"Your verification code is {user.otp}",
                otp=user.otp,
            )
        )
        logger.info("otp_dispatched", user_id=user.id, subject=subject)

    def register(self, email: str, password: str, full_name: str, contact: str | None) -> None:
        existing = self.find_user(email)
        if existing and existing.is_verified:
            raise SandboxError("Email already registered", "validation")
        if len(password) < 6:
            raise SandboxError("Password must be at least 6 characters", "validation")
        if existing is None:
            existing = self.add_user(email, password, full_name, contact, verified=False)
        self._send_otp(existing, "Verify your SunYield account")

    def verify_otp(self, email: str, otp: str) -> tuple[str, UserRecord]:
        user = self.find_user(email)
        if user is None or not user.otp or not secrets.compare_digest(user.otp, otp):
            raise SandboxError("Invalid or expired OTP", "validation")
        user.otp = None
        user.is_verified = True
        return self.issue_token(user), user

    def resend_otp(self, email: str) -> None:
        user = self.find_user(email)
        if user is None:
            raise SandboxError("User not found", "not_found", 404)
        if user.is_verified:
            raise SandboxError("Account already verified", "validation")
        self._send_otp(user, "Verify your SunYield account")

    def login(self, email: str, password: str) -> tuple[str, UserRecord]:
        user = self.find_user(email)
        if user is None or not user.check_password(password):
            raise SandboxError("Invalid email or password", "validation")
        if not user.is_verified:
            raise SandboxError("Please verify your email before logging in", "validation")
        return self.issue_token(user), user

    def forgot_password(self, email: str) -> None:
        user = self.find_user(email)
        # Unknown addresses get the same answer as known ones.
        if user is not None:
            self._send_otp(user, "Reset your SunYield password")

    def reset_password(self, email: str, otp: str, new_password: str) -> None:
        user = self.find_user(email)
        if user is None or not user.otp or not secrets.compare_digest(user.otp, otp):
            raise SandboxError("Invalid or expired OTP", "validation")
        if len(new_password) < 6:
            raise SandboxError("Password must be at least 6 characters", "validation")
        user.password_hash, user.salt = hash_password(new_password)
        user.otp = None

    def admin_login(self, email: str, password: str) -> str:
        if email.lower() != self._config.sandbox_admin_email.lower() or not secrets.compare_digest(
            password, self._config.sandbox_admin_password
        ):
            raise SandboxError("Invalid admin credentials", "validation")
        token = secrets.token_urlsafe(24)
        self.admin_tokens.add(token)
        return token

    # Ledger and wallet

    def record(self, type_: TransferType, amount: float, **kwargs) -> LedgerEntry:
        entry = LedgerEntry(id=self._next_id("ledger"), type=type_, amount=round(amount, 2), **kwargs)
        self.ledger.append(entry)
        return entry

    def credit(self, user_id: int, amount: float, type_: TransferType = TransferType.ADMIN_CREDIT,
               notes: str = "") -> LedgerEntry:
        return self.record(type_, amount, to_user_id=user_id, notes=notes)

    def balance(self, user_id: int) -> float:
        total = 0.0
        for entry in self.ledger:
            if entry.to_user_id == user_id and entry.type in CREDIT_TYPES:
                total += entry.amount
            if entry.from_user_id == user_id and entry.type in DEBIT_TYPES:
                total -= entry.amount
        return round(total, 2)

    def wallet(self, user_id: int) -> Wallet:
        earnings = sum(
            e.amount
            for e in self.ledger
            if e.to_user_id == user_id and e.type == TransferType.ENERGY_REWARD
        )
        invested = sum(
            e.amount
            for e in self.ledger
            if e.from_user_id == user_id
            and e.type in (TransferType.SUBSCRIPTION, TransferType.REINVEST)
        )
        return Wallet(
            balance=self.balance(user_id),
            total_earnings=round(earnings, 2),
            total_invested=round(invested, 2),
        )

    def wallet_history(self, user_id: int) -> list[dict]:
        rows = []
        for entry in self.ledger:
            if entry.to_user_id == user_id and entry.type in CREDIT_TYPES:
                direction = Direction.INCOMING
            elif entry.from_user_id == user_id and entry.type in DEBIT_TYPES:
                direction = Direction.OUTGOING
            else:
                continue
            project = self.projects.get(entry.project_id) if entry.project_id else None
            rows.append(
                {
                    "id": entry.id,
                    "type": "REWARD" if entry.type == TransferType.ENERGY_REWARD else "TRANSACTION",
                    "transactionType": entry.type.value,
                    "amount": entry.amount,
                    "date": entry.created_at.isoformat(),
                    "notes": entry.notes,
                    "direction": direction.value,
                    "project": project.name if project else None,
                    "kwh": entry.kwh,
                }
            )
        return sorted(rows, key=lambda r: r["date"], reverse=True)

    def _require_funds(self, user_id: int, amount: float, label: str = "Required") -> None:
        available = self.balance(user_id)
        if available < amount:
            raise SandboxError(
                f"Insufficient wallet balance. Available: ₹{available:,.2f}, {label}: ₹{amount:,.2f}",
                "insufficient_balance",
            )

    # Add funds (mock gateway)

    def create_order(self, user_id: int, amount: float) -> PaymentOrderRecord:
        if amount <= 0:
            raise SandboxError("Amount must be greater than 0", "validation")
        order = PaymentOrderRecord(
            order_id=f"ORDER_{secrets.token_hex(6).upper()}", user_id=user_id, amount=round(amount, 2)
        )
        self.orders[order.order_id] = order
        logger.info("payment_order_created", order_id=order.order_id, amount=order.amount)
        return order

    def get_order(self, user_id: int, order_id: str) -> PaymentOrderRecord:
        order = self.orders.get(order_id)
        if order is None or order.user_id != user_id:
            raise SandboxError("Order not found", "not_found", 404)
        return order

    def confirm_order(self, user_id: int, order_id: str) -> PaymentOrderRecord:
        order = self.get_order(user_id, order_id)
        if order.status == "PAID":
            raise SandboxError("Order already processed")
        if self.gateway_status != "SUCCESS":
            order.status = "FAILED"
            raise SandboxError(f"Payment was not successful. Status: {self.gateway_status}")
        order.status = "PAID"
        self.credit(user_id, order.amount, TransferType.ADD_FUNDS, notes=f"Order {order.order_id}")
        logger.info("payment_order_paid", order_id=order.order_id, amount=order.amount)
        return order

    # Coupons

    def find_coupon(self, code: str) -> Coupon | None:
        code = code.strip().upper()
        return next((c for c in self.coupons.values() if c.code.upper() == code), None)

    def quote_coupon(self, code: str, amount: float) -> tuple[bool, float, str | None]:
        coupon = self.find_coupon(code)
        if coupon is None or not coupon.is_valid(_now()):
            return False, 0.0, "Invalid or expired coupon"
        if coupon.min_amount is not None and amount < coupon.min_amount:
            return False, 0.0, f"Minimum amount for this coupon is ₹{coupon.min_amount:,.0f}"
        return True, coupon.calculate_discount(amount), None

    def redeem_coupon(self, code: str | None, amount: float) -> float:
        if not code:
            return 0.0
        valid, discount, message = self.quote_coupon(code, amount)
        if not valid:
            raise SandboxError(message or "Invalid or expired coupon code", "validation")
        coupon = self.find_coupon(code)
        coupon.current_usage += 1
        return discount

    def save_coupon(self, coupon: Coupon, coupon_id: int | None = None) -> Coupon:
        clash = self.find_coupon(coupon.code)
        if clash is not None and clash.id != coupon_id:
            raise SandboxError("Coupon code already exists", "validation")
        if coupon_id is None:
            coupon = coupon.model_copy(update={"id": self._next_id("coupon"), "code": coupon.code.upper()})
        else:
            if coupon_id not in self.coupons:
                raise SandboxError("Coupon not found", "not_found", 404)
            usage = self.coupons[coupon_id].current_usage
            coupon = coupon.model_copy(
                update={"id": coupon_id, "code": coupon.code.upper(), "current_usage": usage}
            )
        self.coupons[coupon.id] = coupon
        return coupon

    def delete_coupon(self, coupon_id: int) -> None:
        if self.coupons.pop(coupon_id, None) is None:
            raise SandboxError("Coupon not found", "not_found", 404)

    # Projects

    def add_project(self, **fields) -> Project:
        project = Project(id=self._next_id("project"), **fields)
        self.projects[project.id] = project
        return project

    def get_project(self, project_id: int) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise SandboxError("Project not found", "not_found", 404)
        return project

    def update_project(self, project_id: int, changes: dict) -> Project:
        project = self.get_project(project_id)
        updated = Project.model_validate({**project.to_api(), **changes, "id": project_id})
        self.projects[project_id] = updated
        return updated

    def delete_project(self, project_id: int) -> None:
        self.get_project(project_id)
        if any(s.project_id == project_id for s in self.subscriptions.values()):
            raise SandboxError("Project has subscriptions and cannot be deleted; pause it instead")
        del self.projects[project_id]

    # Subscriptions

    def _price(self, user_id: int, project_id: int, amount: float, coupon_code: str | None,
               redeem: bool) -> tuple[Project, float, float]:
        project = self.get_project(project_id)
        if project.status != ProjectStatus.ACTIVE:
            raise SandboxError(f"{project.name} is not accepting contributions")
        if amount < project.min_contribution:
            raise SandboxError(
                f"Contribution amount must be at least ₹{project.min_contribution:,.0f}", "validation"
            )
        if redeem:
            discount = self.redeem_coupon(coupon_code, amount)
        elif coupon_code:
            valid, discount, message = self.quote_coupon(coupon_code, amount)
            if not valid:
                raise SandboxError(message or "Invalid or expired coupon code", "validation")
        else:
            discount = 0.0
        return project, discount, round(max(amount - discount, 0.0), 2)

    def has_direct_subscription(self, user_id: int, project_id: int) -> bool:
        return any(
            s.user_id == user_id
            and s.project_id == project_id
            and s.subscription_type == "DIRECT"
            and s.payment_status != PaymentStatus.FAILED
            for s in self.subscriptions.values()
        )

    def quote_subscription(self, user_id: int, project_id: int, amount: float,
                           coupon_code: str | None) -> dict:
        project, discount, final_price = self._price(user_id, project_id, amount, coupon_code, False)
        balance = self.balance(user_id)
        return {
            "projectName": project.name,
            "originalAmount": amount,
            "discountAmount": discount,
            "amount": final_price,
            "balance": balance,
            "sufficientBalance": balance >= final_price,
            "alreadySubscribed": self.has_direct_subscription(user_id, project_id),
        }

    def subscribe(self, user_id: int, project_id: int, amount: float,
                  coupon_code: str | None) -> dict:
        if self.has_direct_subscription(user_id, project_id):
            raise SandboxError(
                "You have already subscribed to this project", "duplicate_subscription"
            )
        # A refused request must leave the coupon unused.
        _, _, final_price = self._price(user_id, project_id, amount, coupon_code, False)
        self._require_funds(user_id, final_price)
        project, discount, final_price = self._price(user_id, project_id, amount, coupon_code, True)

        record = self._add_subscription(user_id, project, final_price, discount)
        self.record(
            TransferType.SUBSCRIPTION,
            final_price,
            from_user_id=user_id,
            project_id=project.id,
            notes=f"Contribution to {project.name}",
        )
        logger.info("subscription_created", user_id=user_id, project_id=project.id, amount=final_price)
        return {
            "success": True,
            "message": "Contribution successful",
            "projectName": project.name,
            "projectType": project.project_type,
            "amount": final_price,
            "originalAmount": amount,
            "reservedCapacity": record.reserved_capacity,
            "efficiency": project.efficiency.value,
            "discountAmount": discount,
            "appliedCoupon": coupon_code.upper() if coupon_code else None,
            "newBalance": self.balance(user_id),
        }

    def _add_subscription(self, user_id: int, project: Project, amount: float, discount: float,
                          status: PaymentStatus = PaymentStatus.SUCCESS,
                          subscription_type: str = "DIRECT") -> SubscriptionRecord:
        record = SubscriptionRecord(
            id=self._next_id("subscription"),
            user_id=user_id,
            project_id=project.id,
            contribution_amount=amount,
            reserved_capacity=round(amount / self._config.sandbox_capacity_divisor, 2),
            discount_amount=discount,
            payment_status=status,
            payment_order_id=f"SUB_{secrets.token_hex(6).upper()}",
            subscription_type=subscription_type,
        )
        self.subscriptions[record.id] = record
        return record

    def initiate_subscription(self, user_id: int, project_id: int, amount: float) -> SubscriptionRecord:
        """Gateway-paid subscription: stays PENDING until webhook or admin decides."""
        project, _, final_price = self._price(user_id, project_id, amount, None, False)
        return self._add_subscription(user_id, project, final_price, 0.0, PaymentStatus.PENDING)

    def subscription_model(self, record: SubscriptionRecord) -> Subscription:
        project = self.projects.get(record.project_id)
        return Subscription(
            id=record.id,
            project_id=record.project_id,
            project_name=project.name if project else "",
            contribution_amount=record.contribution_amount,
            reserved_capacity=record.reserved_capacity,
            discount_amount=record.discount_amount,
            payment_status=record.payment_status,
            payment_order_id=record.payment_order_id,
            subscribed_at=record.subscribed_at,
            updated_at=record.updated_at,
        )

    def subscription_history(self, user_id: int) -> list[Subscription]:
        return [
            self.subscription_model(s)
            for s in sorted(self.subscriptions.values(), key=lambda s: s.subscribed_at, reverse=True)
            if s.user_id == user_id
        ]

    def settle_subscription(self, order_id: str, status: PaymentStatus) -> SubscriptionRecord:
        record = next(
            (s for s in self.subscriptions.values() if s.payment_order_id == order_id), None
        )
        if record is None:
            raise SandboxError("Subscription not found", "not_found", 404)
        if record.payment_status != PaymentStatus.PENDING:
            raise SandboxError(f"Subscription already {record.payment_status.value}")
        record.payment_status = status
        record.updated_at = _now()
        return record

    # Withdrawals

    @property
    def monthly_cap(self) -> float:
        try:
            return float(self.system_config[MONTHLY_CAP_KEY])
        except (KeyError, ValueError):
            logger.error("monthly_cap_invalid", value=self.system_config.get(MONTHLY_CAP_KEY))
            return self._config.sandbox_monthly_withdrawal_cap

    def cap_info(self, user_id: int, now: datetime | None = None) -> WithdrawalCapInfo:
        now = now or _now()
        withdrawn = sum(
            w.amount
            for w in self.withdrawals.values()
            if w.user_id == user_id
            and w.status != WithdrawalStatus.REJECTED
            and (w.requested_at.year, w.requested_at.month) == (now.year, now.month)
        )
        cap = self.monthly_cap
        return WithdrawalCapInfo(
            monthly_cap=cap,
            total_withdrawn_this_month=round(withdrawn, 2),
            remaining_amount=round(max(cap - withdrawn, 0.0), 2),
            current_month=now.strftime("%B %Y"),
        )

    def request_withdrawal(self, user_id: int, amount: float, upi_id: str,
                           payout_method: str = "UPI") -> WithdrawalRecord:
        user = self.get_user(user_id)
        if user.kyc_status != KycStatus.APPROVED:
            raise SandboxError(
                f"KYC approval required for withdrawal. Current status: {user.kyc_status.value}",
                "kyc_required",
            )
        if amount <= 0:
            raise SandboxError("Amount must be greater than 0", "validation")
        info = self.cap_info(user_id)
        if amount > info.remaining_amount:
            raise SandboxError(
                f"Monthly withdrawal cap exceeded. Monthly limit: ₹{info.monthly_cap:,.0f}, "
                f"Already withdrawn: ₹{info.total_withdrawn_this_month:,.0f}"
            )
        self._require_funds(user_id, amount, "Requested")
        entry = self.record(TransferType.WITHDRAWAL, amount, from_user_id=user_id, notes=f"UPI {upi_id}")
        record = WithdrawalRecord(
            id=self._next_id("withdrawal"),
            user_id=user_id,
            amount=round(amount, 2),
            upi_id=upi_id,
            payout_method=payout_method,
            order_id=f"WD_{secrets.token_hex(6).upper()}",
            ledger_id=entry.id,
        )
        self.withdrawals[record.id] = record
        logger.info("withdrawal_created", user_id=user_id, amount=amount, order_id=record.order_id)
        return record

    def withdrawal_model(self, record: WithdrawalRecord) -> WithdrawalRequest:
        user = self.users.get(record.user_id)
        return WithdrawalRequest(
            id=record.id,
            amount=record.amount,
            upi_id=record.upi_id,
            payout_method=record.payout_method,
            status=record.status,
            order_id=record.order_id,
            user_email=user.email if user else None,
            requested_at=record.requested_at,
            processed_at=record.processed_at,
        )

    def decide_withdrawal(self, withdrawal_id: int, approve: bool) -> WithdrawalRecord:
        record = self.withdrawals.get(withdrawal_id)
        if record is None:
            raise SandboxError("Withdrawal request not found", "not_found", 404)
        if record.status != WithdrawalStatus.PENDING:
            raise SandboxError(f"Withdrawal already {record.status.value}")
        record.status = WithdrawalStatus.APPROVED if approve else WithdrawalStatus.REJECTED
        record.processed_at = _now()
        if not approve:
            self.credit(
                record.user_id,
                record.amount,
                TransferType.WITHDRAWAL_REVERSAL,
                notes=f"Reversal of {record.order_id}",
            )
        return record

    # KYC

    def submit_kyc(self, user_id: int, document_type: str, document_number: str,
                   document_name: str | None) -> KycRecord:
        user = self.get_user(user_id)
        current = self.latest_kyc(user_id)
        if current is not None and current.status in (KycStatus.PENDING, KycStatus.APPROVED):
            raise SandboxError(f"KYC already submitted. Current status: {current.status.value}")
        if not document_type.strip() or not document_number.strip():
            raise SandboxError("Document type and number are required", "validation")
        record = KycRecord(
            id=self._next_id("kyc"),
            user_id=user_id,
            user_email=user.email,
            document_type=document_type,
            document_number=document_number,
            document_name=document_name,
            status=KycStatus.PENDING,
            submitted_at=_now(),
        )
        self.kyc[record.id] = record
        user.kyc_status = KycStatus.PENDING
        return record

    def latest_kyc(self, user_id: int) -> KycRecord | None:
        records = [k for k in self.kyc.values() if k.user_id == user_id]
        return max(records, key=lambda k: k.id) if records else None

    def decide_kyc(self, kyc_id: int, approve: bool) -> KycRecord:
        record = self.kyc.get(kyc_id)
        if record is None:
            raise SandboxError("KYC request not found", "not_found", 404)
        record.status = KycStatus.APPROVED if approve else KycStatus.REJECTED
        user = self.users.get(record.user_id)
        if user is not None:
            user.kyc_status = record.status
        return record

    # Engagement

    def _engage(self, user_id: int, type_: TransferType, amount: float, coupon_code: str | None,
                project: Project | None = None, recipient: UserRecord | None = None) -> EngagementResult:
        if amount <= 0:
            raise SandboxError("Amount must be greater than 0", "validation")
        if coupon_code:
            valid, discount, message = self.quote_coupon(coupon_code, amount)
            if not valid:
                raise SandboxError(message or "Invalid or expired coupon code", "validation")
        else:
            discount = 0.0
        final = round(max(amount - discount, 0.0), 2)
        available = self.balance(user_id)
        if available < final:
            raise SandboxError(
                f"Insufficient credits. Available: ₹{available:,.2f}, Requested: ₹{final:,.2f}",
                "insufficient_balance",
            )
        self.redeem_coupon(coupon_code, amount)
        self.record(
            type_,
            final,
            from_user_id=user_id,
            to_user_id=recipient.id if recipient else None,
            project_id=project.id if project else None,
            notes=f"{type_.value.title()} {project.name if project else recipient.email}",
        )
        if type_ == TransferType.REINVEST:
            self._add_subscription(user_id, project, final, discount, subscription_type="REINVEST")
        logger.info("engagement_recorded", user_id=user_id, type=type_.value, amount=final)
        return EngagementResult(
            success=True,
            message=f"{type_.value.title()} successful",
            amount=final,
            new_balance=self.balance(user_id),
        )

    def reinvest(self, user_id: int, project_id: int, amount: float, coupon_code: str | None) -> EngagementResult:
        project = self.get_project(project_id)
        if project.status != ProjectStatus.ACTIVE:
            raise SandboxError(f"{project.name} is not accepting contributions")
        return self._engage(user_id, TransferType.REINVEST, amount, coupon_code, project=project)

    def donate(self, user_id: int, project_id: int, amount: float, coupon_code: str | None) -> EngagementResult:
        project = self.get_project(project_id)
        return self._engage(user_id, TransferType.DONATE, amount, coupon_code, project=project)

    def gift(self, user_id: int, recipient_email: str, amount: float, coupon_code: str | None) -> EngagementResult:
        sender = self.get_user(user_id)
        if sender.kyc_status != KycStatus.APPROVED:
            raise SandboxError(
                f"KYC approval required to send gifts. Current status: {sender.kyc_status.value}",
                "kyc_required",
            )
        recipient = self.find_user(recipient_email)
        if recipient is None:
            raise SandboxError("Recipient not found", "not_found", 404)
        if recipient.id == user_id:
            raise SandboxError("You cannot gift credits to yourself", "validation")
        return self._engage(user_id, TransferType.GIFT, amount, coupon_code, recipient=recipient)

    def engagement_history(self, user_id: int) -> list[EngagementTransaction]:
        rows = []
        for entry in reversed(self.ledger):
            if entry.type not in ENGAGEMENT_TYPES:
                continue
            if entry.from_user_id == user_id:
                direction = Direction.OUTGOING
            elif entry.to_user_id == user_id:
                direction = Direction.INCOMING
            else:
                continue
            project = self.projects.get(entry.project_id) if entry.project_id else None
            sender = self.users.get(entry.from_user_id)
            recipient = self.users.get(entry.to_user_id) if entry.to_user_id else None
            rows.append(
                EngagementTransaction(
                    id=entry.id,
                    type=entry.type.value,
                    amount=entry.amount,
                    date=entry.created_at,
                    notes=entry.notes,
                    direction=direction,
                    project=NamedRef(name=project.name) if project else None,
                    from_user=UserRef(email=sender.email, full_name=sender.full_name) if sender else None,
                    to_user=UserRef(email=recipient.email, full_name=recipient.full_name)
                    if recipient
                    else None,
                )
            )
        return rows

    def engagement_stats(self, user_id: int) -> EngagementStats:
        history = self.engagement_history(user_id)

        def total(type_: TransferType, direction: Direction) -> float:
            return round(
                sum(t.amount for t in history if t.type == type_ and t.direction == direction), 2
            )

        return EngagementStats(
            total_reinvested=total(TransferType.REINVEST, Direction.OUTGOING),
            total_donated=total(TransferType.DONATE, Direction.OUTGOING),
            total_gifted=total(TransferType.GIFT, Direction.OUTGOING),
            total_received=total(TransferType.GIFT, Direction.INCOMING),
            available_credits=self.balance(user_id),
            total_transactions=len(history),
        )

    # Energy rewards and earnings

    def add_energy(self, project_id: int, energy_produced: float, on: date) -> dict:
        project = self.get_project(project_id)
        if energy_produced <= 0:
            raise SandboxError("Energy produced must be greater than 0", "validation")
        for entry in self.ledger:
            if (
                entry.type == TransferType.ENERGY_REWARD
                and entry.project_id == project_id
                and (entry.created_at.year, entry.created_at.month) == (on.year, on.month)
                and entry.notes.endswith(f"{energy_produced} kWh")
            ):
                raise SandboxError(
                    f"Energy data for {project.name} with {energy_produced} kWh for {on:%B %Y} "
                    "has already been processed"
                )

        subs = [
            s
            for s in self.subscriptions.values()
            if s.project_id == project_id and s.payment_status == PaymentStatus.SUCCESS
        ]
        if not subs:
            raise SandboxError(f"No active subscriptions found for project {project.name}")

        total_investment = sum(s.contribution_amount for s in subs)
        rate = self._config.sandbox_reward_rate_per_kwh
        distributed = 0.0
        rewarded: set[int] = set()
        created_at = datetime.combine(on, datetime.min.time(), tzinfo=UTC)
        for sub in subs:
            share = sub.contribution_amount / total_investment
            kwh = round(energy_produced * share, 4)
            reward = round(kwh * rate, 2)
            self.record(
                TransferType.ENERGY_REWARD,
                reward,
                to_user_id=sub.user_id,
                project_id=project_id,
                kwh=kwh,
                notes=f"Energy production reward for {project.name}: {energy_produced} kWh",
                created_at=created_at,
            )
            distributed += reward
            rewarded.add(sub.user_id)
        logger.info("energy_rewards_distributed", project_id=project_id, total=distributed)
        return {
            "success": True,
            "projectName": project.name,
            "energyProduced": energy_produced,
            "usersRewarded": len(rewarded),
            "totalRewardsDistributed": round(distributed, 2),
        }

    def _rewards(self, user_id: int) -> list[LedgerEntry]:
        return [
            e for e in self.ledger if e.to_user_id == user_id and e.type == TransferType.ENERGY_REWARD
        ]

    def earnings_summary(self, user_id: int, now: datetime | None = None) -> dict:
        now = now or _now()
        rewards = self._rewards(user_id)
        this_month = [
            e for e in rewards if (e.created_at.year, e.created_at.month) == (now.year, now.month)
        ]
        return {
            "totalEarnings": round(sum(e.amount for e in rewards), 2),
            "thisMonthEarnings": round(sum(e.amount for e in this_month), 2),
            "totalKwh": round(sum(e.kwh or 0.0 for e in rewards), 4),
            "rewardCount": len(rewards),
        }

    def earnings_by_project(self, user_id: int) -> list[dict]:
        grouped: dict[int, dict] = {}
        for entry in self._rewards(user_id):
            project = self.projects.get(entry.project_id)
            row = grouped.setdefault(
                entry.project_id,
                {
                    "projectId": entry.project_id,
                    "projectName": project.name if project else "",
                    "totalEarnings": 0.0,
                    "totalKwh": 0.0,
                },
            )
            row["totalEarnings"] = round(row["totalEarnings"] + entry.amount, 2)
            row["totalKwh"] = round(row["totalKwh"] + (entry.kwh or 0.0), 4)
        return sorted(grouped.values(), key=lambda r: r["totalEarnings"], reverse=True)

    def earnings_by_period(self, user_id: int, period: str) -> dict:
        formats = {"daily": "%Y-%m-%d", "monthly": "%Y-%m", "yearly": "%Y"}
        if period not in formats:
            raise SandboxError(f"Unknown period: {period}", "validation")
        buckets: dict[str, float] = {}
        for entry in self._rewards(user_id):
            key = entry.created_at.strftime(formats[period])
            buckets[key] = round(buckets.get(key, 0.0) + entry.amount, 2)
        return {"period": period, "earnings": dict(sorted(buckets.items()))}

    # Admin

    def set_role(self, user_id: int, role: Role) -> UserRecord:
        user = self.get_user(user_id)
        user.role = role
        return user

    def delete_user(self, user_id: int) -> None:
        self.get_user(user_id)
        del self.users[user_id]
        self.tokens = {t: uid for t, uid in self.tokens.items() if uid != user_id}

    def dashboard_stats(self) -> DashboardStats:
        successful = [
            s for s in self.subscriptions.values() if s.payment_status == PaymentStatus.SUCCESS
        ]
        return DashboardStats(
            total_users=len(self.users),
            total_projects=len(self.projects),
            active_projects=sum(
                1 for p in self.projects.values() if p.status == ProjectStatus.ACTIVE
            ),
            total_subscriptions=len(self.subscriptions),
            total_invested=round(sum(s.contribution_amount for s in successful), 2),
            pending_kyc=sum(1 for k in self.kyc.values() if k.status == KycStatus.PENDING),
            pending_withdrawals=sum(
                1 for w in self.withdrawals.values() if w.status == WithdrawalStatus.PENDING
            ),
        )


def seed_demo_data(state: PlatformState) -> None:
    """A few projects and a welcome coupon for local runs."""
    state.add_project(
        name="Rajasthan Solar Park",
        location="Jodhpur, Rajasthan",
        energy_capacity=500.0,
        min_contribution=999.0,
        efficiency="HIGH",
        operational_validity_year=2045,
        project_type="Utility",
    )
    state.add_project(
        name="Pune Rooftop Cluster",
        location="Pune, Maharashtra",
        energy_capacity=120.0,
        min_contribution=499.0,
        efficiency="MEDIUM",
        operational_validity_year=2038,
        project_type="Rooftop",
    )
    state.save_coupon(
        Coupon(
            code="WELCOME10",
            name="Welcome offer",
            description="10% off up to ₹500",
            discount_type="PERCENTAGE",
            discount_value=10.0,
            max_discount=500.0,
        )
    )
