from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'shop_user'
    POSTGRES_PASSWORD: str = 'shop_pass'
    POSTGRES_DB: str = 'shop_ledger'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    # Full URL override (e.g. sqlite:///./local.db for a quick local run)
    DATABASE_URL: Optional[str] = None

    # Transaction deadlines applied to PostgreSQL sessions (milliseconds)
    DB_LOCK_TIMEOUT_MS: int = 10000
    DB_STATEMENT_TIMEOUT_MS: int = 20000

    # JWT settings
    APP_SECRET_STRING: str = 'change-this-secret-in-production'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 days, same as the web session

    # Reports
    REPORT_TOP_N: int = 10
    WALK_IN_CUSTOMER_NAME: str = 'Walk-in Customer'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
