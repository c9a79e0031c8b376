"""Configuration for the Chatline API service."""

from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Chatline configuration settings."""

    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/chatline.db"

    # JWT
    JWT_SECRET: str = "dev_secret_change_in_production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REFRESH_COOKIE_NAME: str = "refresh_token"

    # Public URLs
    FRONTEND_URL: str = "http://localhost:5173"
    API_URL: str = "http://localhost:5000"
    CORS_ORIGINS: Optional[str] = None  # comma separated, defaults to FRONTEND_URL

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_CALLBACK_URL: Optional[str] = None

    # Facebook OAuth
    FACEBOOK_APP_ID: Optional[str] = None
    FACEBOOK_APP_SECRET: Optional[str] = None
    FACEBOOK_CALLBACK_URL: Optional[str] = None

    # Object storage (S3 or S3-compatible)
    AWS_REGION: str = "us-east-1"
    AWS_S3_BUCKET_NAME: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_S3_ENDPOINT_URL: Optional[str] = None
    CLOUDFRONT_DOMAIN: Optional[str] = None

    # Uploads
    UPLOAD_URL_TTL_SECONDS: int = 60
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    UPLOAD_CLEANUP_INTERVAL_SECONDS: int = 300

    # Redis for Celery
    REDIS_URL: str = "redis://localhost:6379/0"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    RELOAD: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def cors_origins(self) -> List[str]:
        if not self.CORS_ORIGINS:
            return [self.FRONTEND_URL]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
