"""Best-effort Redis pub/sub publisher for match engine events.

Topics published: ``matches`` (match.created), ``swipes`` (swipe.super_like)
and ``messages`` (message.sent). Notification collaborators subscribe to
``<prefix>.<topic>``. Publishing never fails the calling operation.
"""

import json
import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import get_settings

LOGGER = logging.getLogger("uvicorn.error")

_client: Optional[Redis] = None


def _channel(topic: str) -> str:
    prefix = (get_settings().redis_pubsub_prefix or "").strip()
    return f"{prefix}.{topic}" if prefix else topic


async def _ensure_client() -> Optional[Redis]:
    global _client
    if _client is not None:
        return _client
    settings = get_settings()
    if not settings.redis_url:
        return None
    try:
        client = Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )
        await client.ping()
        _client = client
    except (RedisError, OSError) as exc:
        LOGGER.warning("Redis unavailable, events disabled for now: %s", exc)
        _client = None
    return _client


async def publish(topic: str, event: Dict[str, Any]) -> bool:
    """Publish ``event`` on ``topic``; returns False when skipped or failed."""

    if not get_settings().redis_pubsub_enabled:
        return False
    client = await _ensure_client()
    if not client:
        return False
    try:
        payload = json.dumps(event, separators=(",", ":")).encode("utf-8")
        await client.publish(_channel(topic), payload)
    except (RedisError, OSError, TypeError) as exc:
        LOGGER.warning("Failed to publish %s event: %s", topic, exc)
        return False
    return True


async def stop() -> None:
    global _client
    if _client is not None:
        try:
            await _client.aclose()
        except (RedisError, OSError) as exc:  # pragma: no cover - shutdown path
            LOGGER.debug("Redis close failed: %s", exc)
        _client = None


__all__ = ["publish", "stop"]
