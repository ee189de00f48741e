import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _get_list(name: str, fallback: str = "") -> List[str]:
    raw_value = os.getenv(name, fallback)
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    encryption_key: str = _require_env("ENCRYPTION_KEY")
    line_channel_id: str = _require_env("LINE_CHANNEL_ID")
    line_channel_secret: str = _require_env("LINE_CHANNEL_SECRET")
    line_redirect_uri: str = os.getenv(
        "LINE_REDIRECT_URI", "http://localhost:8000/api/auth/line/callback"
    )
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./shopping_cart.db")
    identity_timeout_seconds: int = int(os.getenv("IDENTITY_TIMEOUT_SECONDS", "10"))
    allowed_origins: List[str] = field(
        default_factory=lambda: _get_list("ALLOWED_ORIGINS", "*")
    )


settings = Settings()
