"""
Configuration & Environment Management for the Xplorium back-office
"""

import logging
import secrets
from functools import lru_cache
from typing import List, Optional, Union

from pydantic import EmailStr, field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings

logger = logging.getLogger(__name__)


class DatabaseSettings(PydanticBaseSettings):
    """Database configuration settings"""

    URL: Optional[str] = None
    HOST: str = "localhost"
    PORT: int = 5432
    USER: str = "postgres"
    PASSWORD: str = ""
    NAME: str = "xplorium"

    # Connection Pool Settings
    POOL_SIZE: int = 10
    MAX_OVERFLOW: int = 20
    POOL_TIMEOUT: int = 30
    POOL_RECYCLE: int = 1800
    POOL_PRE_PING: bool = True
    ECHO: bool = False

    # Connection Timeouts
    COMMAND_TIMEOUT: int = 60
    STATEMENT_TIMEOUT: str = "60s"

    @property
    def database_url(self) -> str:
        """Generate database URL for async connections"""
        if self.URL:
            if self.URL.startswith("postgresql://"):
                return self.URL.replace("postgresql://", "postgresql+asyncpg://", 1)
            return self.URL
        return f"postgresql+asyncpg://{self.USER}:{self.PASSWORD}@{self.HOST}:{self.PORT}/{self.NAME}"

    model_config = {"env_prefix": "DB_", "case_sensitive": True}


class RedisSettings(PydanticBaseSettings):
    """Redis configuration settings"""

    ENABLED: bool = False
    HOST: str = "localhost"
    PORT: int = 6379
    DB: int = 0
    PASSWORD: Optional[str] = None
    USERNAME: Optional[str] = None

    MAX_CONNECTIONS: int = 50
    RETRY_ON_TIMEOUT: bool = True
    SOCKET_TIMEOUT: float = 5.0
    SOCKET_CONNECT_TIMEOUT: float = 5.0
    HEALTH_CHECK_INTERVAL: int = 30

    @property
    def redis_url(self) -> str:
        """Generate Redis URL"""
        auth = ""
        if self.USERNAME and self.PASSWORD:
            auth = f"{self.USERNAME}:{self.PASSWORD}@"
        elif self.PASSWORD:
            auth = f":{self.PASSWORD}@"

        return f"redis://{auth}{self.HOST}:{self.PORT}/{self.DB}"

    model_config = {"env_prefix": "REDIS_", "case_sensitive": True}


class SecuritySettings(PydanticBaseSettings):
    """Security and authentication settings"""

    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"

    # Token Expiration
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = 60

    PASSWORD_MIN_LENGTH: int = 8

    model_config = {"env_prefix": "SECURITY_", "case_sensitive": True}


class RateLimitSettings(PydanticBaseSettings):
    """Sliding-window limits per action class"""

    ENABLED: bool = True
    KEY_PREFIX: str = "ratelimit"

    AUTH_MAX_REQUESTS: int = 5
    AUTH_WINDOW_MINUTES: int = 15

    API_MAX_REQUESTS: int = 30
    API_WINDOW_MINUTES: int = 1

    STRICT_MAX_REQUESTS: int = 3
    STRICT_WINDOW_MINUTES: int = 60

    BOOKING_MAX_REQUESTS: int = 5
    BOOKING_WINDOW_MINUTES: int = 60

    model_config = {"env_prefix": "RATE_LIMIT_", "case_sensitive": True}


class MonitoringSettings(PydanticBaseSettings):
    """Logging settings"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = {"env_prefix": "MONITORING_", "case_sensitive": True}


class AnalyticsSettings(PydanticBaseSettings):
    """Dashboard and forecast tuning"""

    BOOKINGS_OVER_TIME_DAYS: int = 30
    FORECAST_HISTORY_MONTHS: int = 12
    FORECAST_HORIZON_MONTHS: int = 3

    model_config = {"env_prefix": "ANALYTICS_", "case_sensitive": True}


class Settings(PydanticBaseSettings):
    """Main application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    TESTING: bool = False
    VERSION: str = "1.0.0"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Xplorium"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        return []

    # Bootstrap admin account, created on startup when both are set
    FIRST_SUPERUSER: Optional[EmailStr] = None
    FIRST_SUPERUSER_PASSWORD: Optional[str] = None

    # Component Settings
    database: DatabaseSettings = DatabaseSettings()
    redis: RedisSettings = RedisSettings()
    security: SecuritySettings = SecuritySettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    monitoring: MonitoringSettings = MonitoringSettings()
    analytics: AnalyticsSettings = AnalyticsSettings()

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.TESTING:
            return "sqlite+aiosqlite:///:memory:"
        return self.database.database_url

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "validate_assignment": True,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
