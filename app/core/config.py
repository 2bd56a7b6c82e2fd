from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Split Ledger Backend"
    DATABASE_URL: str = "sqlite+aiosqlite:///./split_ledger.db"
    SQL_ECHO: bool = False

    JWT_SECRET: str = "change-me-split-ledger-dev-secret-key"
    JWT_ALGO: str = "HS256"
    ACCESS_TOKEN_MINUTES: int = 30

    # settle straight from PENDING is allowed unless strict
    SPLIT_STRICT_SETTLEMENT: bool = False
    SPLIT_SUM_TOLERANCE: Decimal = Decimal("0.01")

    LOG_LEVEL: str = "INFO"


settings = Settings()
