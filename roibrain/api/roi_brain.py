"""API endpoints for ROI report generation and cache diagnostics."""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import Field

from roibrain.core.cache import get_response_cache
from roibrain.core.logging import get_logger
from roibrain.core.roi_brain import run_roi_brain
from roibrain.core.schemas_roi_brain import CamelModel, Vertical
from roibrain.core.signal_rules import get_rule_failure_counts, get_signal_extraction_metrics

logger = get_logger(__name__)

router = APIRouter()

DISCONNECT_POLL_SECONDS = 0.5


class SignalDebugRequest(CamelModel):
    """Body for the signal extraction debug endpoint."""

    vertical: Vertical
    audit_answers: dict[str, Any] = Field(default_factory=dict)


async def _watch_disconnect(request: Request, abort: asyncio.Event) -> None:
    while not abort.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, aborting ROI Brain request")
            abort.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("")
async def generate_roi_brain(request: Request) -> JSONResponse:
    """
    Generate (or serve from cache) the ROI report for an audit.

    The body is validated by the orchestrator so that every failure shares
    one error format. A client disconnect aborts the wait.

    Returns:
        JSONResponse with the orchestrator's status code and body
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    abort = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, abort))
    try:
        result = await run_roi_brain(payload, abort=abort)
    finally:
        watcher.cancel()

    return JSONResponse(content=result.body, status_code=result.status_code)


@router.get("/cache/metrics")
async def get_cache_metrics() -> dict:
    """
    Cache tier sizes, TTLs, in-flight count and hit counters.

    Also reports signal-rule failures since process start.
    """
    try:
        return {
            "cache": get_response_cache().metrics(),
            "ruleFailures": get_rule_failure_counts(),
        }
    except Exception:
        logger.exception("Failed to collect cache metrics")
        raise HTTPException(status_code=500, detail="Failed to collect cache metrics")


@router.post("/cache/clear")
async def clear_cache() -> dict:
    """Drop every in-process cache entry. Persistent rows expire on their own."""
    cache = get_response_cache()
    before = cache.metrics()["l1"]["size"]
    cache.clear()
    logger.info(f"ROI Brain cache cleared ({before} entries)")
    return {"cleared": before}


@router.post("/cache/cleanup")
async def cleanup_cache() -> dict:
    """Drop expired entries from both cache tiers."""
    removed = await get_response_cache().cleanup()
    logger.info(f"ROI Brain cache cleanup removed {removed['l1']} L1 / {removed['l2']} L2 entries")
    return {"removed": removed}


@router.post("/signals")
async def debug_signals(body: SignalDebugRequest) -> dict:
    """Signal tags, bound sections and rule statistics for a set of answers."""
    return get_signal_extraction_metrics(body.audit_answers, body.vertical)
