# lostfound/config.py
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    TELEGRAM_BOT_TOKEN: str = ""

    DATABASE_URL: str = "sqlite+sqlite:///./lostfound.db"

    LOG_LEVEL: str = "INFO"

    WEB_HOST: str = "0.0.0.0"
    WEB_PORT: int = 8000

    # map frontend; only linked from the bot when served over https
    FRONT_URL: str = "http://localhost:5173"

    # 32-byte key: 64 hex chars, 32 raw chars or base64
    SECRETS_KEY: Optional[str] = None

    MATCH_RADIUS_KM: float = 5.0
    MATCH_MIN_SCORE: float = 50.0
    MATCH_LIMIT: int = 3
    MATCH_CANDIDATE_LIMIT: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
