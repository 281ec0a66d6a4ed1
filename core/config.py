"""
MOODFIT Analytics Configuration

Environment variables and application settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "MOODFIT Analytics"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    
    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    
    # Session analysis defaults
    DEFAULT_SMOOTHING_RADIUS: int = 2
    DEFAULT_SAMPLE_STRIDE: int = 1
    MAX_FRAMES_PER_SESSION: int = 20000
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
