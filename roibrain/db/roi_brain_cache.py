"""Database operations for the persistent ROI Brain response cache.

The synchronous functions talk to Supabase directly. The async wrappers run
them on a worker thread and never raise: a failing persistent tier degrades to
a miss (reads) or a logged no-op (writes).
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

from roibrain.core.config import get_settings
from roibrain.core.logging import get_logger
from roibrain.db.supabase_client import get_supabase

logger = get_logger(__name__)


def _table() -> str:
    return get_settings().CACHE_L2_TABLE


def get_cached_response(cache_key: str) -> dict[str, Any] | None:
    """
    Get an unexpired cached payload.

    Args:
        cache_key: Content-hash cache key

    Returns:
        Stored payload or None if absent or expired

    Raises:
        Exception: If database query fails
    """
    supabase = get_supabase()
    now = datetime.now(timezone.utc).isoformat()

    response = (
        supabase.table(_table())
        .select("payload")
        .eq("cache_key", cache_key)
        .gt("expires_at", now)
        .maybe_single()
        .execute()
    )
    if not response or not response.data:
        return None
    return response.data.get("payload")


def upsert_cached_response(
    cache_key: str, payload: dict[str, Any], ttl_seconds: int, vertical: str | None = None
) -> None:
    """
    Insert or replace a cached payload.

    Raises:
        Exception: If database write fails
    """
    supabase = get_supabase()
    now = datetime.now(timezone.utc)
    row = {
        "cache_key": cache_key,
        "payload": payload,
        "vertical": vertical,
        "expires_at": (now + timedelta(seconds=ttl_seconds)).isoformat(),
        "updated_at": now.isoformat(),
    }
    supabase.table(_table()).upsert(row, on_conflict="cache_key").execute()


def delete_expired_responses() -> int:
    """
    Delete expired rows.

    Returns:
        Number of rows deleted
    """
    supabase = get_supabase()
    now = datetime.now(timezone.utc).isoformat()
    response = supabase.table(_table()).delete().lt("expires_at", now).execute()
    return len(response.data or [])


async def read_cached_response(cache_key: str) -> dict[str, Any] | None:
    """Persistent-tier read; any failure is logged and treated as a miss."""
    try:
        return await asyncio.to_thread(get_cached_response, cache_key)
    except Exception as e:
        logger.warning(f"Persistent cache read failed for {cache_key[:12]}: {e}")
        return None


async def store_cached_response(
    cache_key: str, payload: dict[str, Any], ttl_seconds: int, vertical: str | None = None
) -> bool:
    """Persistent-tier write; any failure is logged and reported as False."""
    try:
        await asyncio.to_thread(upsert_cached_response, cache_key, payload, ttl_seconds, vertical)
        return True
    except Exception as e:
        logger.warning(f"Persistent cache write failed for {cache_key[:12]}: {e}")
        return False


async def purge_expired_responses() -> int:
    """Delete expired persistent rows; any failure is logged and reported as 0."""
    try:
        return await asyncio.to_thread(delete_expired_responses)
    except Exception as e:
        logger.warning(f"Persistent cache purge failed: {e}")
        return 0
