import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _split_origins(raw: str) -> List[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


def normalize_database_url(url: str) -> str:
    """Make sure the URL names an async driver SQLAlchemy can use"""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite://"):
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


@dataclass
class Settings:
    database_url: str
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_format: str = "text"
    sql_echo: bool = False

    @classmethod
    def from_env(cls, database_url: Optional[str] = None) -> "Settings":
        """Build settings from the process environment"""
        if database_url is None:
            database_url = os.getenv("DATABASE_URL")
        if not database_url:
            db_path = os.getenv("DB_PATH", "./tasks.db")
            database_url = f"sqlite+aiosqlite:///{db_path}"

        return cls(
            database_url=normalize_database_url(database_url),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=_env_bool("DEBUG"),
            allowed_origins=_split_origins(os.getenv("ALLOWED_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
            sql_echo=_env_bool("SQL_ECHO"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
