from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Engine defaults applied to every new proposal
    BASIS_POINTS: int = 10_000
    FEE_BPS: int = 30
    MAX_PRICE_IMPACT_BPS: int = 1_000
    MINIMUM_LIQUIDITY: int = 1_000
    TWAP_STEP_MAX: int = 1_000
    TWAP_START_DELAY_MS: int = 60_000
    TWAP_INTERVAL_MS: int = 60_000
    REVIEW_PERIOD_MS: int = 86_400_000   # 1 day
    TRADING_PERIOD_MS: int = 259_200_000  # 3 days
    MIN_OUTCOMES: int = 2
    MAX_OUTCOMES: int = 10

    # App
    APP_NAME: str = "Futarchy Market Engine"
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev


settings = Settings()
