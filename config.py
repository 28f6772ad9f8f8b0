import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def _env_list(name: str, default: str = "") -> List[str]:
    return [o.strip() for o in (os.getenv(name, default) or "").split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, built once at startup and passed around explicitly."""

    mongo_uri: str = "mongodb://localhost:27017"
    database_name: str = "potions"
    db_timeout_ms: int = 5000

    jwt_secret: str = "dev_secret"
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 24 * 60

    cookie_name: str = "demo_node+mongo_token"
    cookie_secure: bool = False

    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    port: int = 3000
    log_level: str = "INFO"


def load_settings(overrides: Optional[dict] = None) -> Settings:
    values = dict(
        mongo_uri=os.getenv("MONGO_URI") or os.getenv("DATABASE_URL") or "mongodb://localhost:27017",
        database_name=os.getenv("DATABASE_NAME", "potions"),
        db_timeout_ms=int(os.getenv("DB_TIMEOUT_MS", "5000")),
        jwt_secret=os.getenv("JWT_SECRET", "dev_secret"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        token_ttl_minutes=int(os.getenv("TOKEN_TTL_MINUTES", str(24 * 60))),
        cookie_name=os.getenv("COOKIE_NAME", "demo_node+mongo_token"),
        cookie_secure=_env_bool("COOKIE_SECURE", False),
        cors_allow_origins=_env_list("CORS_ALLOW_ORIGINS", "*"),
        port=int(os.getenv("PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    if overrides:
        values.update(overrides)
    return Settings(**values)
