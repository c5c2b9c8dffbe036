import logging
import os
from dataclasses import dataclass
from typing import Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_URL = "sqlite:///./photoshare.db"


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or "").strip() or default


def _env_int(name: str, default: int) -> int:
    val = _env(name, str(default))
    try:
        return int(val)
    except ValueError:
        return default


def _normalize_host(raw_host: str) -> str:
    """
    Normalize POSTGRES_URL value into a host-only string when it contains a URL.

    Some deployments write POSTGRES_URL as a URL (e.g. "postgresql://localhost:5000/myapp"),
    others provide just a hostname (e.g. "localhost").
    """
    raw = (raw_host or "").strip()
    if not raw:
        return ""

    if raw.startswith(("postgres://", "postgresql://")):
        parsed = urlparse(raw)
        return parsed.hostname or ""

    return raw


def _split_host_port(host_value: str, fallback_port: str) -> Tuple[str, str]:
    """Split "host[:port]" into (host, port). If no port in host_value, use fallback_port."""
    hv = (host_value or "").strip()
    if not hv:
        return "", fallback_port

    if ":" in hv:
        host, port = hv.rsplit(":", 1)
        return host.strip(), (port.strip() or fallback_port)

    return hv, fallback_port


# PUBLIC_INTERFACE
def build_postgres_dsn() -> str:
    """
    Build a PostgreSQL DSN from the POSTGRES_* environment variables.

    Expected env vars:
      - POSTGRES_URL, POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_PORT

    POSTGRES_URL may be a bare hostname or a full URL, in which case only the
    hostname is used. SQLAlchemy psycopg3 driver prefix is "postgresql+psycopg://".
    """
    keys = ["POSTGRES_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB", "POSTGRES_PORT"]
    missing = [k for k in keys if not _env(k)]
    if missing:
        raise RuntimeError(
            f"Missing required database environment variables: {', '.join(missing)}."
        )

    host, port = _split_host_port(_normalize_host(_env("POSTGRES_URL")), _env("POSTGRES_PORT"))
    if not host:
        raise RuntimeError(
            "Invalid POSTGRES_URL. Expected hostname (e.g. 'localhost') or URL (e.g. 'postgresql://localhost:5000/myapp')."
        )

    user = _env("POSTGRES_USER")
    password = _env("POSTGRES_PASSWORD")
    db = _env("POSTGRES_DB")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{db}"


def _database_url() -> str:
    explicit = _env("DATABASE_URL")
    if explicit:
        return explicit
    if _env("POSTGRES_URL"):
        return build_postgres_dsn()
    logger.warning("No DATABASE_URL or POSTGRES_* settings found, using %s", DEFAULT_SQLITE_URL)
    return DEFAULT_SQLITE_URL


def _allowed_extensions() -> Tuple[str, ...]:
    raw = _env("ALLOWED_PHOTO_EXTENSIONS", ".jpg,.jpeg,.png")
    exts = []
    for item in raw.split(","):
        item = item.strip().lower()
        if not item:
            continue
        exts.append(item if item.startswith(".") else f".{item}")
    return tuple(exts)


def _cors_origins() -> Tuple[str, ...]:
    """
    Parse CORS allow-origins.

    CORS_ALLOW_ORIGINS is a comma-separated list of origins, or '*' to allow all.
    """
    raw = _env("CORS_ALLOW_ORIGINS", "*")
    if raw == "*":
        return ("*",)
    return tuple(o.strip() for o in raw.split(",") if o.strip())


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for one application instance."""

    database_url: str = DEFAULT_SQLITE_URL
    jwt_secret: str = ""
    access_token_minutes: int = 120
    bcrypt_rounds: int = 12
    storage_dir: str = "static/photos"
    public_base_url: str = ""
    max_upload_kb: int = 2048
    allowed_extensions: Tuple[str, ...] = (".jpg", ".jpeg", ".png")
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"


# PUBLIC_INTERFACE
def load_config() -> AppConfig:
    """Read an AppConfig from environment variables."""
    return AppConfig(
        database_url=_database_url(),
        jwt_secret=_env("JWT_SECRET"),
        access_token_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 120),
        bcrypt_rounds=_env_int("BCRYPT_ROUNDS", 12),
        storage_dir=_env("IMAGE_STORAGE_DIR", "static/photos"),
        public_base_url=_env("PUBLIC_API_BASE_URL").rstrip("/"),
        max_upload_kb=_env_int("MAX_UPLOAD_KB", 2048),
        allowed_extensions=_allowed_extensions(),
        cors_origins=_cors_origins(),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )
