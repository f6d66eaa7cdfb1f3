"""API router for v1 endpoints."""

from fastapi import APIRouter

from roibrain.api import roi_brain

router = APIRouter()

# ROI report generation and cache diagnostics
router.include_router(roi_brain.router, prefix="/roi-brain", tags=["roi_brain"])
