"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from roibrain.api import router as api_router
from roibrain.core.cache import get_response_cache
from roibrain.core.logging import get_logger
from roibrain.core.roi_brain import check_configuration

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    report = check_configuration()
    if not report["isValid"]:
        logger.warning(
            f"ROI Brain configuration issues: {len(report['missingSections'])} sections, "
            f"{len(report['missingSkills'])} skills"
        )
    removed = await get_response_cache().cleanup()
    if removed["l2"]:
        logger.info(f"Purged {removed['l2']} expired persistent cache rows")
    yield
    await get_response_cache().drain()


app = FastAPI(
    title="ROI Brain",
    description="Audit-to-ROI report generation with signal routing and two-tier caching",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
