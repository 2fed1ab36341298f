from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os

from dotenv import load_dotenv


def _truthy(v: str | None) -> bool:
    if v is None:
        return False
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    api_url: str
    db_path: Path
    timezone: str
    web_host: str
    web_port: int
    http_timeout: float
    mock_fallback: bool
    log_level: str

    @staticmethod
    def load() -> "Settings":
        load_dotenv()

        api_url = os.getenv("AFFDASH_API_URL", "http://localhost:8080/api").strip().rstrip("/")
        db_path = Path(os.getenv("AFFDASH_DB_PATH", "./data/affdash.sqlite3"))
        timezone = os.getenv("AFFDASH_TIMEZONE", "Asia/Ho_Chi_Minh").strip() or "Asia/Ho_Chi_Minh"
        web_host = os.getenv("AFFDASH_WEB_HOST", "127.0.0.1")
        web_port = int(os.getenv("AFFDASH_WEB_PORT", "8020"))
        http_timeout = float(os.getenv("AFFDASH_HTTP_TIMEOUT", "30"))
        mock_fallback = _truthy(os.getenv("AFFDASH_MOCK_FALLBACK", "1"))
        log_level = os.getenv("AFFDASH_LOG_LEVEL", "INFO").strip().upper() or "INFO"

        return Settings(
            api_url=api_url,
            db_path=db_path,
            timezone=timezone,
            web_host=web_host,
            web_port=web_port,
            http_timeout=http_timeout,
            mock_fallback=mock_fallback,
            log_level=log_level,
        )

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logging.getLogger("httpx").setLevel(logging.WARNING)
