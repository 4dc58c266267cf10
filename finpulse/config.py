"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from finpulse.domain.models import RiskThresholds


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./finpulse.db"

    # Service
    service_name: str = "finpulse"
    log_level: str = "INFO"
    default_currency: str = "USD"

    # Exchange rate provider
    rate_api_base: str = "https://www.alphavantage.co/query"
    rate_api_key: str | None = None  # unset or "demo" = mock rates only
    http_timeout_seconds: float = 5.0

    # Rate cache and retry
    rate_cache_ttl_seconds: int = 15 * 60
    rate_max_retries: int = 3
    rate_retry_delay_seconds: float = 1.0  # Linear backoff: delay * attempt

    # Quote refresh politeness
    quote_batch_size: int = 5
    quote_batch_delay_seconds: float = 1.0

    # Portfolio composition thresholds (percent of total value)
    crypto_high_share: float = 20.0
    crypto_medium_share: float = 5.0
    stocks_high_share: float = 80.0
    stocks_medium_share: float = 50.0

    # Currency exposure thresholds (percent of total value)
    concentration_high: float = 50.0
    concentration_medium: float = 30.0
    dominant_exposure_alert: float = 70.0
    high_risk_exposure_alert: float = 20.0
    min_currency_count: int = 3
    hedging_exposure_threshold: float = 25.0
    hedge_ratio: float = 0.5

    # Foreign-currency share thresholds for income and debt exposure
    income_foreign_high: float = 50.0
    income_foreign_medium: float = 20.0
    loan_foreign_high: float = 50.0
    loan_foreign_medium: float = 25.0

    @property
    def uses_live_rates(self) -> bool:
        return bool(self.rate_api_key) and self.rate_api_key != "demo"

    def risk_thresholds(self) -> RiskThresholds:
        """Snapshot the tunable thresholds for the pure domain functions"""
        return RiskThresholds(
            crypto_high_share=self.crypto_high_share,
            crypto_medium_share=self.crypto_medium_share,
            stocks_high_share=self.stocks_high_share,
            stocks_medium_share=self.stocks_medium_share,
            concentration_high=self.concentration_high,
            concentration_medium=self.concentration_medium,
            dominant_exposure_alert=self.dominant_exposure_alert,
            high_risk_exposure_alert=self.high_risk_exposure_alert,
            min_currency_count=self.min_currency_count,
            hedging_exposure_threshold=self.hedging_exposure_threshold,
            hedge_ratio=self.hedge_ratio,
            income_foreign_high=self.income_foreign_high,
            income_foreign_medium=self.income_foreign_medium,
            loan_foreign_high=self.loan_foreign_high,
            loan_foreign_medium=self.loan_foreign_medium,
        )


settings = Settings()
