from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_NAME: str = "TimeClock"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "production"  # development, production, test

    # Database
    DATABASE_URL: str = "sqlite:///./timeclock.db"

    # Security
    JWT_SECRET: str  # required, no default
    JWT_ALGORITHM: str = "HS256"
    AUTH_TOKEN_MAX_AGE: int = 60 * 60 * 24 * 7  # 7 days
    EMPLOYEE_SESSION_MAX_AGE: int = 60 * 5  # 5 minutes

    # Scheduled cleanup
    CRON_SECRET: str = ""
    IMAGE_RETENTION_DAYS: int = 40
    CLEANUP_SCHEDULER_ENABLED: bool = False
    CLEANUP_INTERVAL_HOURS: int = 24

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Image upload
    UPLOAD_DIR: str = "./uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024  # 5MB
    TIMESHEET_IMAGE_FOLDER: str = "timesheet"
    EMPLOYEE_IMAGE_FOLDER: str = "employees"
    IMAGE_HOST: str = ""  # empty: host of the configured storage

    # S3 (Optional - for production)
    USE_S3: bool = False
    S3_BUCKET: str = ""
    S3_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    @field_validator("JWT_SECRET")
    @classmethod
    def check_jwt_secret(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 32:
            raise ValueError(
                f"JWT_SECRET must be at least 32 characters (current length: {len(value)}). "
                "Generate one with: openssl rand -hex 32"
            )
        return value

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
