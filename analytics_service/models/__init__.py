"""
MOODFIT Analytics Service Models

Batch session analytics: joint angles, rule-based frame scoring,
rep segmentation and report aggregation.
"""

from .geometry import Landmark, joint_angle

from .rules import (
    Activity,
    Polarity,
    MetricSpec,
    Segmented,
    Continuous,
    Rule,
    RULES,
    resolve_rule,
)

from .metrics import JointType, METRIC_NAMES, extract_metrics

from .scoring import (
    QualityCategory,
    FrameScore,
    metric_score,
    categorize,
    score_frame,
)

from .signal import smooth_series, find_extrema

from .segmentation import Rep, segment_reps

from .session_analyzer import (
    EmptySessionError,
    SessionMode,
    Frame,
    Session,
    AnalysisOptions,
    AnalyticsPoint,
    ChartPoint,
    AnalyticsResult,
    analyze,
)

__all__ = [
    # Geometry
    "Landmark",
    "joint_angle",
    # Rules
    "Activity",
    "Polarity",
    "MetricSpec",
    "Segmented",
    "Continuous",
    "Rule",
    "RULES",
    "resolve_rule",
    # Metrics
    "JointType",
    "METRIC_NAMES",
    "extract_metrics",
    # Scoring
    "QualityCategory",
    "FrameScore",
    "metric_score",
    "categorize",
    "score_frame",
    # Signal
    "smooth_series",
    "find_extrema",
    # Segmentation
    "Rep",
    "segment_reps",
    # Session Analyzer
    "EmptySessionError",
    "SessionMode",
    "Frame",
    "Session",
    "AnalysisOptions",
    "AnalyticsPoint",
    "ChartPoint",
    "AnalyticsResult",
    "analyze",
]
