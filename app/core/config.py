from pydantic_settings import BaseSettings
from typing import Optional, Any, List
from loguru import logger

DEV_SECRET_KEY = "dev-only-secret-not-for-production"


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Concession Connection"
    ENVIRONMENT: str = "development"

    SECRET_KEY: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    TOKEN_ISSUER: str = "concession-connection"
    TOKEN_AUDIENCE: str = "concession-connection-users"

    # Comma-separated list, e.g. "owner@truck.com,chef@truck.com"
    ADMIN_EMAILS: str = ""

    DATABASE_URL: Optional[str] = None

    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_PORT: str = "5432"
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    REDIS_HOST: str = "localhost"
    REDIS_PORT: str = "6379"
    REDIS_PASSWORD: Optional[str] = None

    SMTP_TLS: bool = True
    SMTP_PORT: Optional[int] = None
    SMTP_HOST: Optional[str] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAILS_FROM_EMAIL: Optional[str] = None
    EMAILS_FROM_NAME: Optional[str] = None

    SQUARE_ACCESS_TOKEN: Optional[str] = None
    SQUARE_LOCATION_ID: Optional[str] = None
    SQUARE_ENVIRONMENT: str = "sandbox"
    SQUARE_API_VERSION: str = "2024-07-17"
    SQUARE_TIMEOUT_SECONDS: float = 15.0
    SQUARE_MAX_RETRIES: int = 2

    PAYMENT_PROCESSING_STALE_SECONDS: int = 5 * 60
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 10
    VERIFICATION_MAX_ATTEMPTS: int = 3
    POINTS_PER_DOLLAR: int = 1

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def __init__(self, **data: Any):
        super().__init__(**data)
        if self.DATABASE_URL:
            self.SQLALCHEMY_DATABASE_URI = self.DATABASE_URL
        else:
            self.SQLALCHEMY_DATABASE_URI = f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

        if not self.SECRET_KEY:
            if self.is_production:
                raise ValueError("SECRET_KEY is required in production but was not provided")
            logger.warning("SECRET_KEY not set, using the development signing key")
            self.SECRET_KEY = DEV_SECRET_KEY

        if not self.EMAILS_FROM_NAME:
            self.EMAILS_FROM_NAME = self.PROJECT_NAME

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def admin_emails(self) -> List[str]:
        return [email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()]

    @property
    def square_configured(self) -> bool:
        return bool(self.SQUARE_ACCESS_TOKEN and self.SQUARE_LOCATION_ID)

    @property
    def square_base_url(self) -> str:
        if self.SQUARE_ENVIRONMENT.lower() == "production":
            return "https://connect.squareup.com"
        return "https://connect.squareupsandbox.com"

    def missing_production_settings(self) -> List[str]:
        required = {
            "SECRET_KEY": self.SECRET_KEY != DEV_SECRET_KEY,
            "SQUARE_ACCESS_TOKEN": self.SQUARE_ACCESS_TOKEN,
            "SQUARE_LOCATION_ID": self.SQUARE_LOCATION_ID,
            "ADMIN_EMAILS": self.ADMIN_EMAILS,
        }
        return [name for name, value in required.items() if not value]


settings = Settings()
