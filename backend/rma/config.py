"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "RMA Returns Management"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Redis (login throttling only)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Proxy / client IP handling
    # Only trust X-Forwarded-* headers when running behind a trusted reverse proxy (e.g. nginx).
    TRUST_PROXY_HEADERS: bool = False

    # JWT
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "auth"
    JWT_AUDIENCE: str = "api"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    JWT_LEEWAY_SECONDS: int = 30  # clock skew tolerance for exp validation

    # Password policy
    PASSWORD_MIN_LENGTH: int = 8
    PASSWORD_MAX_LENGTH: int = 256

    # Auth hardening (rate limits / lockouts)
    AUTH_RATE_LIMIT_ENABLED: bool = True
    AUTH_LOGIN_IP_LIMIT_PER_MINUTE: int = 10
    AUTH_LOGIN_USER_FAIL_THRESHOLD: int = 5
    AUTH_LOGIN_USER_LOCK_SECONDS: int = 15 * 60  # 15 minutes

    # Credential sealing passphrase (required, checked when the sealing module loads)
    CRED_ENC_KEY: str | None = None

    # Remote storage
    STORAGE_BACKEND: str = "sftp"  # "sftp" or "local"
    SFTP_HOST: str | None = None
    SFTP_PORT: int = 22
    SFTP_USERNAME: str | None = None
    SFTP_PASSWORD: str | None = None
    SFTP_BASE_PATH: str = "/uploads/attachments"
    SFTP_TIMEOUT_SECONDS: int = 20
    STORAGE_PUBLIC_BASE_URL: str | None = None
    LOCAL_STORAGE_DIR: str = "./var/storage"

    # Upload limits
    SHEET_ATTACHMENT_MAX_SIZE: int = 50 * 1024 * 1024  # 50MB
    SHEET_ATTACHMENT_MAX_FILES: int = 10
    SHEET_ATTACHMENT_MIME_TYPES: str = (
        "image/jpeg,image/jpg,image/png,image/gif,image/webp,image/bmp,image/tiff,"
        "application/pdf,text/plain"
    )
    ENQUIRY_ATTACHMENT_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    ENQUIRY_ATTACHMENT_MAX_FILES: int = 5
    ENQUIRY_ATTACHMENT_MIME_TYPES: str = (
        "image/jpeg,image/png,image/gif,image/webp,application/pdf,text/plain"
    )

    # ShipStation
    SHIPSTATION_API_KEY: str | None = None
    SHIPSTATION_API_SECRET: str | None = None
    SHIPSTATION_BASE_URL: str = "https://ssapi.shipstation.com"
    SHIPSTATION_CARRIER_CODE: str = "royalmail"
    SHIPSTATION_SERVICE_CODE: str = "royal_mail_tracked_24"
    SHIPSTATION_DEFAULT_WEIGHT_GRAMS: int = 250

    # Back Market
    BACKMARKET_API_URL: str = "https://www.backmarket.fr/ws/orders/"

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: int = 30

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def sheet_attachment_mime_types(self) -> set[str]:
        return {t.strip().lower() for t in self.SHEET_ATTACHMENT_MIME_TYPES.split(",") if t.strip()}

    @property
    def enquiry_attachment_mime_types(self) -> set[str]:
        return {t.strip().lower() for t in self.ENQUIRY_ATTACHMENT_MIME_TYPES.split(",") if t.strip()}


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
