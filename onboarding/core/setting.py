from pydantic import AnyUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

class Settings(BaseSettings):
    """
    Application settings class.
    Reads variables from .env file automatically.
    """

    BASE_DIR: str = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    UPLOAD_DIR: str = os.path.join(BASE_DIR, "uploads")

    # API Config
    PROJECT_NAME: str = "Onboarding Training API"
    API_V1_STR: str = "/api"

    # MongoDB Config
    MONGODB_URL: AnyUrl
    DATABASE_NAME: str

    # Security Config (tokens are issued by the identity service, only verified here)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Kolkata"

    # Redis / Dragonfly (gate sessions)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    GATE_SESSION_TTL_SECONDS: int = 4 * 60 * 60

    # Training rules
    VIDEO_SEEK_TOLERANCE_SECONDS: float = 2.0
    VIDEO_COMPLETION_RATIO: float = 0.95
    READING_COMPLETION_PERCENT: float = 90.0
    DEFAULT_DUE_DAYS: int = 30

    # Pydantic V2 Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

# It creates the 'config' object that main.py uses.
config = Settings()
