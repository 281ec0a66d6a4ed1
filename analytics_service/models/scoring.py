"""
MOODFIT Analytics Service - Frame Scorer

Converts extracted metrics into a per-frame quality score and category.

Scoring:
- per-metric error factor = |value - ideal| / tolerance (capped at 1)
- per-metric score = 1 - error factor
- frame score = mean of metric scores, ignoring missing metrics
- categories: Excellent (>=0.85), Good (>=0.65), Fair (>=0.40), Poor (<0.40)
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional

from .rules import MetricSpec, Rule


class QualityCategory(Enum):
    """Quality tiers for frames and reps."""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    UNKNOWN = "Unknown"


# Lower bounds, highest first
CATEGORY_BREAKPOINTS = (
    (0.85, QualityCategory.EXCELLENT),
    (0.65, QualityCategory.GOOD),
    (0.40, QualityCategory.FAIR),
)

SCORE_DECIMALS = 3


@dataclass(frozen=True)
class FrameScore:
    """Score, category and pass flag for one frame."""
    score: Optional[float]
    category: QualityCategory
    passed: bool


def metric_score(value: Optional[float], spec: Optional[MetricSpec]) -> Optional[float]:
    """Score in [0, 1] for one metric value, None when it cannot be scored."""
    if value is None or spec is None or not math.isfinite(value):
        return None

    error = abs(value - spec.ideal)
    if spec.tolerance <= 0:
        error_factor = 0.0 if error == 0 else 1.0
    else:
        error_factor = min(1.0, error / spec.tolerance)

    return max(0.0, 1.0 - error_factor)


def categorize(score: Optional[float]) -> QualityCategory:
    """Map a score onto the four quality tiers (Unknown for None/NaN)."""
    if score is None or math.isnan(score):
        return QualityCategory.UNKNOWN
    for lower_bound, category in CATEGORY_BREAKPOINTS:
        if score >= lower_bound:
            return category
    return QualityCategory.POOR


def frame_score(metrics: Mapping[str, Optional[float]], rule: Rule) -> Optional[float]:
    """Mean metric score over the rule's metrics that have a value."""
    scores: List[float] = []
    for name, spec in rule.metrics.items():
        score = metric_score(metrics.get(name), spec)
        if score is not None:
            scores.append(score)

    if not scores:
        return None

    mean = sum(scores) / len(scores)
    return round(min(1.0, max(0.0, mean)), SCORE_DECIMALS)


def score_frame(metrics: Mapping[str, Optional[float]], rule: Rule) -> FrameScore:
    """Score, categorize and pass/fail one frame against a rule."""
    score = frame_score(metrics, rule)
    passed = score is not None and score >= rule.frame_pass_threshold
    return FrameScore(score=score, category=categorize(score), passed=passed)


def empty_category_counts() -> Dict[str, int]:
    """Histogram with every category present at zero."""
    return {category.value: 0 for category in QualityCategory}
