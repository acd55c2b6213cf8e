from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./placement.db", alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Placement rules
    max_active_applications: int = Field(3, alias="MAX_ACTIVE_APPLICATIONS")
    max_active_postings: int = Field(5, alias="MAX_ACTIVE_POSTINGS")
    min_slots: int = Field(1, alias="MIN_SLOTS")
    max_slots: int = Field(10, alias="MAX_SLOTS")
    senior_year_threshold: int = Field(3, alias="SENIOR_YEAR_THRESHOLD")
    subject_wildcard: str = Field("All", alias="SUBJECT_WILDCARD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
