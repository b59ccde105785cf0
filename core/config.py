from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):

    DATABASE_URL: str
    JWT_SECRET: str
    AWS_ACCESS_KEY_ID: str
    AWS_SECRET_ACCESS_KEY: str
    AWS_S3_BUCKET_NAME: str
    AWS_S3_ENDPOINT_URL: str
    AWS_S3_REGION: str
    AWS_S3_SECURE: bool = False
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # Matching and engagement rules
    MAX_ACTIVE_MATCHES: int = 10
    INITIAL_MESSAGE_LIMIT: int = 3
    MESSAGES_FOR_DATE_SUGGESTION: int = 10
    MAX_VENUE_SUGGESTIONS: int = 3
    DISCOVER_PAGE_SIZE: int = 20
    DEFAULT_MAX_DISTANCE: int = 25

    # Photos
    PHOTO_EXPIRATION_DAYS: int = 30
    MAX_GALLERY_PHOTOS: int = 9

    # Calendar day used by the message limiter
    TIMEZONE: str = "UTC"

    PUBLIC_BASE_URL: Optional[str] = None
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def s3_base_url(self) -> str:
        base = self.PUBLIC_BASE_URL or self.AWS_S3_ENDPOINT_URL
        return base.rstrip("/") + "/" + self.AWS_S3_BUCKET_NAME


# Создаём глобальный объект, который будем импортировать везде
settings = Settings()
