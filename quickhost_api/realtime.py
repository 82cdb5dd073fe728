"""Row-change notifications over Redis pub/sub.

Each table has its own channel (quickhost:realtime:{table}). Payloads are
JSON: {"type": "INSERT", "table": ..., "record": {...}}.
"""
import json

from quickhost_api import dependencies
from quickhost_api.logging_config import get_logger

logger = get_logger(__name__)

CHANNEL_PREFIX = "quickhost:realtime:"

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"


def channel_for(table: str) -> str:
    return f"{CHANNEL_PREFIX}{table}"


async def publish_change(table: str, record: dict, event_type: str = EVENT_INSERT) -> None:
    """Publish a row change. Delivery is best-effort; failures are logged."""
    redis_conn = dependencies.get_optional_redis()
    if redis_conn is None:
        logger.debug(f"Redis not connected, skipping {event_type} event for {table}")
        return

    payload = json.dumps(
        {"type": event_type, "table": table, "record": record},
        default=str,
    )
    try:
        await redis_conn.publish(channel_for(table), payload)
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} event for {table}: {e}")
