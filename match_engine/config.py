import os
from functools import lru_cache
from pydantic import BaseModel, Field
from pathlib import Path as _Path

from dotenv import load_dotenv as _load_dotenv

# Load .env early so settings see env vars before get_settings() caches them
_load_dotenv(dotenv_path=_Path(__file__).resolve().parent.parent / ".env", override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _redis_pubsub_enabled_default() -> bool:
    explicit = os.getenv("REDIS_PUBSUB_ENABLED")
    if explicit is not None:
        return explicit.lower() in ("1", "true", "yes")
    return bool(os.getenv("REDIS_URL"))


class Settings(BaseModel):
    # Support multiple common env var names for Mongo connection string
    mongo_uri: str = Field(
        default_factory=lambda: (
            os.getenv("MONGO_URI")
            or os.getenv("MONGODB_URI")
            or os.getenv("MONGO_URL")
            or ""
        )
    )
    mongo_db: str = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME", "match_engine"))
    # Optional: non-SRV fallback URI (e.g., mongodb://127.0.0.1:27017)
    mongo_alt_uri: str = Field(default_factory=lambda: os.getenv("MONGO_ALT_URI", ""))
    # Optional: force direct connection (applies to non-SRV URIs)
    mongo_direct: bool = Field(default_factory=lambda: _env_flag("MONGO_DIRECT"))
    cors_origin: str = Field(default_factory=lambda: os.getenv("CORS_ORIGIN", "http://localhost:3000"))
    port: int = Field(default_factory=lambda: int(os.getenv("PY_BACKEND_PORT", "8081")))
    slow_request_ms: int = Field(default_factory=lambda: int(os.getenv("SLOW_REQUEST_MS", "800")))

    # Identity is issued elsewhere; this service only verifies bearer tokens
    jwt_secret: str = Field(default_factory=lambda: os.getenv("JWT_SECRET", ""))
    jwt_algorithm: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))

    # Redis (event pub/sub)
    redis_url: str = Field(default_factory=lambda: os.getenv("REDIS_URL", ""))
    redis_pubsub_enabled: bool = Field(default_factory=_redis_pubsub_enabled_default)
    redis_pubsub_prefix: str = Field(default_factory=lambda: os.getenv("REDIS_PUBSUB_PREFIX", "me"))

    # Discovery
    discovery_max_page_size: int = Field(default_factory=lambda: int(os.getenv("DISCOVERY_MAX_PAGE_SIZE", "20")))
    # Product policy: require candidates to also accept the requester
    discovery_symmetric: bool = Field(default_factory=lambda: _env_flag("DISCOVERY_SYMMETRIC"))

    # Messaging
    messages_max_page_size: int = Field(default_factory=lambda: int(os.getenv("MESSAGES_MAX_PAGE_SIZE", "50")))
    matches_max_page_size: int = Field(default_factory=lambda: int(os.getenv("MATCHES_MAX_PAGE_SIZE", "50")))


@lru_cache()
def get_settings() -> Settings:
    return Settings()
