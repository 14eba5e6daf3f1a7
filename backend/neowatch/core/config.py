from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "NeoWatch"
    API_V1_STR: str = "/api/v1"

    POSTGRES_USER: str = "neowatch"
    POSTGRES_PASSWORD: str = "secure_password"
    POSTGRES_DB: str = "neowatch"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    NASA_BASE_URL: str = "https://api.nasa.gov/neo/rest/v1"
    NASA_API_KEY: str = "DEMO_KEY"
    UPSTREAM_TIMEOUT_SECONDS: float = 30.0

    CACHE_MAX_AGE_HOURS: int = 24
    FEED_MAX_DAYS: int = 7

    ALERT_CHECK_INTERVAL_MINUTES: int = 60
    CACHE_REFRESH_INTERVAL_HOURS: int = 6

    JWT_SECRET: str = "neowatch-jwt-secret-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_STORAGE_URI: Optional[str] = None

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    DATABASE_URL: Optional[str] = None

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            # Managed providers hand out 'postgres://', which SQLAlchemy no longer accepts
            url = self.DATABASE_URL
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    class Config:
        case_sensitive = True
        env_file = ".env"

settings = Settings()
