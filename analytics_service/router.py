"""
MOODFIT Analytics Service Router

Endpoints for batch analysis of recorded activity sessions and for
inspecting the activity rule registry.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from core.config import settings
from shared.utils import handle_exceptions, success_response

from .models import (
    Activity,
    AnalysisOptions,
    EmptySessionError,
    RULES,
    Session,
    analyze,
    resolve_rule,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============= Pydantic Models =============

class FramePayload(BaseModel):
    t: float = 0
    # Landmarks are parsed leniently so one malformed entry only nulls its metrics
    landmarks: List[Any] = []


class SessionPayload(BaseModel):
    id: Optional[str] = None
    activity_id: Optional[str] = None
    exercise: Optional[str] = None  # capture layer's name for activity_id
    mode: Optional[str] = None
    start_ts: Optional[float] = None
    end_ts: Optional[float] = None
    duration_ms: Optional[float] = None
    frames: List[FramePayload] = []
    meta: Dict[str, Any] = {}


class AnalyzeRequest(BaseModel):
    session: SessionPayload
    smoothing_radius: Optional[int] = Field(default=None, ge=0)
    sample_stride: Optional[int] = Field(default=None, ge=1)


# ============= REST Endpoints =============

@router.get("/activities")
async def list_activities():
    """List every registered activity with its scoring rule."""
    return success_response(
        data=[RULES[activity].to_dict() for activity in Activity],
        message=f"{len(RULES)} activities registered",
    )


@router.get("/rules/{activity_id}")
async def get_resolved_rule(activity_id: str):
    """Show which rule a free-text activity identifier resolves to."""
    rule = resolve_rule(activity_id)
    return success_response(
        data={"activity_id": activity_id, "rule": rule.to_dict()},
        message=f"Resolved to '{rule.name}'",
    )


@router.post("/analyze")
@handle_exceptions
def analyze_session(request: AnalyzeRequest):
    """
    Analyze a recorded session.

    Returns per-frame timeline, detected reps and aggregate quality metrics.
    Runs synchronously in FastAPI's threadpool.
    """
    frame_count = len(request.session.frames)
    if frame_count > settings.MAX_FRAMES_PER_SESSION:
        raise HTTPException(
            status_code=413,
            detail=f"Session has {frame_count} frames; limit is {settings.MAX_FRAMES_PER_SESSION}",
        )

    options = AnalysisOptions(
        smoothing_radius=(
            request.smoothing_radius
            if request.smoothing_radius is not None
            else settings.DEFAULT_SMOOTHING_RADIUS
        ),
        sample_stride=(
            request.sample_stride
            if request.sample_stride is not None
            else settings.DEFAULT_SAMPLE_STRIDE
        ),
    )

    session = Session.from_dict(request.session.model_dump())

    try:
        result = analyze(session, options)
    except EmptySessionError as e:
        logger.warning(f"Rejected empty session: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    return success_response(
        data=result.to_dict(),
        message=f"Analyzed {result.total_frames} frames",
    )
