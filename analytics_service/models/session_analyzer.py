"""
MOODFIT Analytics Service - Session Analyzer

Batch analysis of a recorded session: per-frame metrics and scores,
rep segmentation over the smoothed primary metric, and the aggregated
quality report.
"""

import logging
import math
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from shared.utils import log_execution_time

from .geometry import Landmark
from .metrics import extract_metrics
from .rules import Rule, resolve_rule
from .scoring import QualityCategory, empty_category_counts, score_frame
from .segmentation import Rep, segment_reps
from .signal import find_extrema, smooth_series

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ERRORS
# ═══════════════════════════════════════════════════════════════════════════════

class EmptySessionError(ValueError):
    """Raised when a session has no frames to analyze."""


# ═══════════════════════════════════════════════════════════════════════════════
# INPUT MODEL
# ═══════════════════════════════════════════════════════════════════════════════

class SessionMode(Enum):
    """Recording mode chosen by the user."""
    EXERCISE = "exercise"
    YOGA = "yoga"


@dataclass(frozen=True)
class Frame:
    """One timestamped snapshot of all landmarks."""
    t: float  # milliseconds
    landmarks: Tuple[Optional[Landmark], ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Frame":
        """Build a frame, degrading malformed landmark entries to None."""
        t = _number(data.get("t"))
        if t is None:
            t = 0.0
        raw_landmarks = data.get("landmarks") or []
        if not isinstance(raw_landmarks, (list, tuple)):
            raw_landmarks = []
        landmarks = tuple(Landmark.from_raw(lm) for lm in raw_landmarks)
        return cls(t=t, landmarks=landmarks)


@dataclass(frozen=True)
class Session:
    """
    A recorded activity attempt.

    Created by the capture layer and never mutated by the analyzer.
    """
    activity_id: str
    frames: Tuple[Frame, ...]
    session_id: str = ""
    mode: SessionMode = SessionMode.EXERCISE
    start_ts: float = 0.0
    end_ts: float = 0.0
    duration_ms: float = 0.0
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Session":
        """
        Normalize a recorded session payload.

        Accepts either "activity_id" or the capture layer's "exercise" key.
        Missing ids and timestamps are filled in, unknown modes become
        exercise, and a non-list frames field becomes an empty session.
        """
        activity_id = data.get("activity_id") or data.get("exercise") or "unknown"

        raw_frames = data.get("frames")
        if not isinstance(raw_frames, (list, tuple)):
            raw_frames = []
        # Non-object entries still count as frames, with no landmarks
        frames = tuple(
            Frame.from_dict(f) if isinstance(f, Mapping) else Frame(t=0.0)
            for f in raw_frames
        )

        start_ts = _number(data.get("start_ts", data.get("startTs")))
        if start_ts is None:
            start_ts = time.time() * 1000
        duration_ms = _number(data.get("duration_ms", data.get("durationMs")))
        if duration_ms is None:
            duration_ms = 0.0
        end_ts = _number(data.get("end_ts", data.get("endTs")))
        if end_ts is None:
            end_ts = start_ts + duration_ms

        mode = SessionMode.YOGA if data.get("mode") == SessionMode.YOGA.value else SessionMode.EXERCISE

        return cls(
            activity_id=str(activity_id),
            frames=frames,
            session_id=str(data.get("session_id") or data.get("id") or uuid.uuid4().hex[:8]),
            mode=mode,
            start_ts=start_ts,
            end_ts=end_ts,
            duration_ms=duration_ms,
            meta=dict(data.get("meta") or {}),
        )


def _number(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class AnalysisOptions:
    """Tuning knobs for a single analysis call."""
    smoothing_radius: int = 2
    sample_stride: int = 1

    def __post_init__(self):
        if self.smoothing_radius < 0:
            raise ValueError(f"smoothing_radius must be >= 0, got {self.smoothing_radius}")
        if self.sample_stride < 1:
            raise ValueError(f"sample_stride must be >= 1, got {self.sample_stride}")


# ═══════════════════════════════════════════════════════════════════════════════
# OUTPUT MODEL
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AnalyticsPoint:
    """Per-frame derived data."""
    t: float
    metrics: Mapping[str, Optional[float]]
    score: Optional[float]
    category: QualityCategory
    passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "t": self.t,
            "metrics": {
                name: (round(value, 2) if value is not None else None)
                for name, value in self.metrics.items()
            },
            "score": self.score,
            "category": self.category.value,
            "passed": self.passed,
        }


@dataclass(frozen=True)
class ChartPoint:
    """Down-sampled timeline point for charting."""
    time_sec: int
    primary_value: Optional[float]
    secondary_value: Optional[float]
    passed: bool
    score: Optional[float]
    category: QualityCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_sec": self.time_sec,
            "primary_value": self.primary_value,
            "secondary_value": self.secondary_value,
            "passed": self.passed,
            "score": self.score,
            "category": self.category.value,
        }


@dataclass
class AnalyticsResult:
    """Aggregated quality report for one session."""
    activity: str
    total_frames: int
    correct_frames: int
    accuracy_pct: int
    overall_weighted_score: int
    timeline: List[AnalyticsPoint]
    reps: List[Rep]
    good_rep_count: int
    bad_rep_count: int
    frame_category_counts: Dict[str, int]
    rep_category_counts: Dict[str, int]
    downsampled_series: List[ChartPoint]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "activity": self.activity,
            "total_frames": self.total_frames,
            "correct_frames": self.correct_frames,
            "accuracy_pct": self.accuracy_pct,
            "overall_weighted_score": self.overall_weighted_score,
            "good_rep_count": self.good_rep_count,
            "bad_rep_count": self.bad_rep_count,
            "frame_category_counts": dict(self.frame_category_counts),
            "rep_category_counts": dict(self.rep_category_counts),
            "reps": [r.to_dict() for r in self.reps],
            "timeline": [p.to_dict() for p in self.timeline],
            "downsampled_series": [p.to_dict() for p in self.downsampled_series],
        }


# ═══════════════════════════════════════════════════════════════════════════════
# PIPELINE
# ═══════════════════════════════════════════════════════════════════════════════

def build_timeline(frames: Sequence[Frame], rule: Rule) -> List[AnalyticsPoint]:
    """Extract metrics and score every frame."""
    timeline: List[AnalyticsPoint] = []
    previous_t = None

    for frame in frames:
        if previous_t is not None and frame.t < previous_t:
            logger.warning(f"Non-monotonic frame timestamp {frame.t} after {previous_t}")
        previous_t = frame.t

        metrics = extract_metrics(frame.landmarks)
        scored = score_frame(metrics, rule)
        timeline.append(AnalyticsPoint(
            t=frame.t,
            metrics=metrics,
            score=scored.score,
            category=scored.category,
            passed=scored.passed,
        ))

    return timeline


def weighted_score(timeline: Sequence[AnalyticsPoint]) -> int:
    """round(100 x mean frame score), unscoreable frames counted as 0."""
    if not timeline:
        return 0
    total = sum(p.score if p.score is not None else 0.0 for p in timeline)
    return int(round(100 * total / len(timeline)))


def downsample(timeline: Sequence[AnalyticsPoint], rule: Rule, stride: int = 1) -> List[ChartPoint]:
    """Every stride-th point reduced to primary/secondary metric values."""
    secondary_metric = next((m for m in rule.metrics if m != rule.primary_metric), None)

    sampled: List[ChartPoint] = []
    for point in timeline[::stride]:
        primary = point.metrics.get(rule.primary_metric)
        secondary = point.metrics.get(secondary_metric) if secondary_metric else None
        sampled.append(ChartPoint(
            time_sec=int(round(point.t / 1000)) if math.isfinite(point.t) else 0,
            primary_value=round(primary, 2) if primary is not None else None,
            secondary_value=round(secondary, 2) if secondary is not None else None,
            passed=point.passed,
            score=point.score,
            category=point.category,
        ))
    return sampled


def aggregate(
    timeline: List[AnalyticsPoint],
    reps: List[Rep],
    rule: Rule,
    sample_stride: int = 1,
) -> AnalyticsResult:
    """Fold per-frame and per-rep results into the session report."""
    frame_counts = empty_category_counts()
    for point in timeline:
        frame_counts[point.category.value] += 1

    rep_counts = empty_category_counts()
    for rep in reps:
        rep_counts[rep.category.value] += 1

    good_reps = sum(1 for r in reps if r.is_good)
    score = weighted_score(timeline)

    return AnalyticsResult(
        activity=rule.name,
        total_frames=len(timeline),
        correct_frames=sum(1 for p in timeline if p.passed),
        accuracy_pct=score,
        overall_weighted_score=score,
        timeline=timeline,
        reps=reps,
        good_rep_count=good_reps,
        bad_rep_count=len(reps) - good_reps,
        frame_category_counts=frame_counts,
        rep_category_counts=rep_counts,
        downsampled_series=downsample(timeline, rule, sample_stride),
    )


@log_execution_time
def analyze(session: Session, options: Optional[AnalysisOptions] = None) -> AnalyticsResult:
    """
    Analyze a recorded session.

    Args:
        session: Recorded session (activity id + ordered frames)
        options: Smoothing radius and chart sample stride

    Returns:
        Fresh AnalyticsResult for this call

    Raises:
        EmptySessionError: if the session has no frames
    """
    options = options or AnalysisOptions()
    if not session.frames:
        raise EmptySessionError(f"Session '{session.session_id}' has no frames")

    rule = resolve_rule(session.activity_id)
    timeline = build_timeline(session.frames, rule)

    reps: List[Rep] = []
    if not rule.is_hold:
        primary = [p.metrics.get(rule.primary_metric) for p in timeline]
        smoothed = smooth_series(primary, options.smoothing_radius)
        valleys, peaks = find_extrema(smoothed)
        reps = segment_reps(
            times=[p.t for p in timeline],
            scores=[p.score for p in timeline],
            smoothed=smoothed,
            valleys=valleys,
            peaks=peaks,
            rule=rule,
        )

    result = aggregate(timeline, reps, rule, options.sample_stride)

    logger.info(
        f"Analyzed session '{session.session_id}' ({rule.name}): "
        f"{result.total_frames} frames, {result.correct_frames} correct, "
        f"accuracy {result.accuracy_pct}%, reps {result.good_rep_count} good / "
        f"{result.bad_rep_count} bad"
    )
    return result
