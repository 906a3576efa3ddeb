"""Tests for configuration defaults and environment overrides."""

from sunyield.config import Settings


class TestSettings:
    def test_defaults(self):
        config = Settings()
        assert config.admin_path_prefixes == ("/admin", "/api/admin")
        assert config.funding_min_amount == 100
        assert config.funding_max_amount == 100_000
        assert config.withdrawal_min_amount == 100
        assert config.sandbox_monthly_withdrawal_cap == 3000
        assert config.sandbox_capacity_divisor == 50
        assert config.token_store_path is None

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("API_URL", "https://platform.example")
        monkeypatch.setenv("PAYMENT_PROCESSING_DELAY_SECONDS", "0")
        config = Settings()
        assert config.api_url == "https://platform.example"
        assert config.payment_processing_delay_seconds == 0
