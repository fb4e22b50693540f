from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Service settings; every field can be overridden by an environment variable of the same name."""

    APP_NAME:  str  = "Facility Maintenance Service"
    APP_ENV:   str  = "development"     # development | test | production
    APP_DEBUG: bool = True
    APP_HOST:  str  = "0.0.0.0"
    APP_PORT:  int  = 8000

    # PostgreSQL in deployment, sqlite:// for local runs and tests
    DATABASE_URL:          str
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False

    # Must match the identity provider's signing key
    SECRET_KEY:                  str
    ALGORITHM:                   str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = {"env_file": ".env.example", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
