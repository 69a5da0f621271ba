"""
Configuration settings for the application.
"""
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator

logger = logging.getLogger(__name__)

# Load environment variables from .env file if it exists
env_path = Path(__file__).resolve().parent.parent.parent / ".env"

if env_path.exists():
    load_dotenv(dotenv_path=env_path)
    logger.debug(f"[ENV] Loaded .env from: {env_path}")
else:
    logger.debug(f"[ENV] No .env file at {env_path}, using process environment")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    # API configuration
    API_PORT: int = Field(default=7780)
    API_HOST: str = Field(default="0.0.0.0")
    LOG_LEVEL: str = Field(default="INFO")

    # Database configuration
    DB_HOST: str = Field(default="localhost")
    DB_PORT: str = Field(default="5432")
    DB_USER: str = Field(default="inoconnect")
    DB_PASSWORD: str = Field(default="")
    DB_NAME: str = Field(default="InnoConnect")
    DB_ECHO: bool = Field(default=False)

    # Full URL wins over the DB_* parts (Railway, Heroku, etc.)
    DATABASE_URL: Optional[str] = None

    # CORS configuration
    CORS_ORIGINS: Union[str, List[str]] = Field(default="*")

    # JWT configuration (tokens are issued by the identity provider)
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRATION_MINUTES: int = Field(default=60 * 24)  # 24 hours

    # Membership and graph policy
    ENFORCE_TEAM_CAPACITY: bool = Field(default=True)
    DELETE_GROUP_CHANNEL_WITH_PROJECT: bool = Field(default=True)
    SUGGESTED_USERS_LIMIT: int = Field(default=50, ge=1, le=500)
    USER_SEARCH_LIMIT: int = Field(default=20, ge=1, le=100)

    @field_validator("DATABASE_URL", mode="after")
    def assemble_db_url(cls, v: Optional[str], info: Any) -> str:
        """
        Normalize DATABASE_URL to an asyncio driver, or assemble it from the DB_* parts.
        """
        if v:
            if v.startswith("postgres://"):
                return v.replace("postgres://", "postgresql+asyncpg://", 1)
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+asyncpg://", 1)
            return v

        values = info.data
        user = values.get("DB_USER")
        password = values.get("DB_PASSWORD")
        host = values.get("DB_HOST")
        port = values.get("DB_PORT")
        name = values.get("DB_NAME")

        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"

    @field_validator("CORS_ORIGINS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        """
        Parse a comma-separated string into a list of CORS origins.
        """
        if isinstance(v, str) and v != "*":
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if v == "*":
            return ["*"]
        return v

    class Config:
        """Config for the BaseSettings class."""
        env_file = ".env"
        case_sensitive = True
        extra = 'ignore'  # Ignore extra fields from environment
        validate_default = True


# Create settings object
settings = Settings()
