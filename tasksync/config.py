"""
Task Sync - Configuration Management

Loads configuration from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Task Sync"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Local record store
    DATABASE_URL: str = "sqlite:///./data/tasks.sqlite3"

    # Remote authority
    API_BASE_URL: str = "http://localhost:3000/api"
    REMOTE_TIMEOUT_SECONDS: float = 10.0
    CONNECTIVITY_TIMEOUT_SECONDS: float = 5.0

    # Sync settings (0 disables the periodic pass)
    SYNC_INTERVAL_SECONDS: int = 0
    QUEUE_PAGE_SIZE: int = 50
    QUEUE_PAGE_MAX: int = 500

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Security
    ALLOWED_HOSTS: List[str] = ["*"]
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
