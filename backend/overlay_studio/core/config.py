import os
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()  # loads .env if present


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Overlay Studio")
    API_V1_PREFIX: str = "/api/v1"

    BACKEND_CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("BACKEND_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg2://postgres:postgres@db:5432/overlay_studio",
    )

    # Returned by GET /stream-settings until an operator saves their own
    DEFAULT_RTSP_URL: str = os.getenv(
        "DEFAULT_RTSP_URL",
        "rtsp://wowzaec2demo.streamlock.net/vod/mp4:BigBuckBunny_115k.mp4",
    )

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    # Empty means console only
    LOG_DIR: str = os.getenv("LOG_DIR", "")
    LOG_MAX_MB: int = int(os.getenv("LOG_MAX_MB", "10"))
    LOG_BACKUP_COUNT: int = int(os.getenv("LOG_BACKUP_COUNT", "5"))

    # Client side: where the sync layer finds the API
    OVERLAY_API_URL: str = os.getenv("OVERLAY_API_URL", "http://localhost:8000/api/v1")
    ROLLBACK_ON_FAILED_UPDATE: bool = _env_bool("ROLLBACK_ON_FAILED_UPDATE", False)


@lru_cache
def get_settings():
    return Settings()
