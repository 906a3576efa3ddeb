"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "sunyield-client"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Platform API
    api_url: str = "http://localhost:8080"
    api_timeout_seconds: float = 30.0
    admin_path_prefixes: tuple[str, ...] = ("/admin", "/api/admin")
    user_login_path: str = "/login"
    admin_login_path: str = "/admin/login"

    # Persisted tokens (memory only when unset)
    token_store_path: str | None = None

    # Add-funds wizard
    funding_min_amount: float = 100.0
    funding_max_amount: float = 100_000.0
    funding_default_amount: float = 1000.0
    payment_processing_delay_seconds: float = 3.0

    # Withdrawal wizard
    withdrawal_min_amount: float = 100.0
    withdrawal_default_amount: float = 1000.0

    # Sandbox backend
    host: str = "0.0.0.0"
    port: int = 8080
    sandbox_monthly_withdrawal_cap: float = 3000.0
    sandbox_capacity_divisor: float = 50.0
    sandbox_reward_rate_per_kwh: float = 5.0
    sandbox_admin_email: str = "admin@sunyield.local"
    sandbox_admin_password: str = "sunyield-admin-dev-only"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
