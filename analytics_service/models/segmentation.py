"""
MOODFIT Analytics Service - Rep Segmenter

Pairs consecutive same-type extrema of the smoothed primary metric into
repetition windows, then validates and classifies each window.

A rep is "good" when it either reaches full depth (primary extremum within
the metric tolerance of the ideal) with a mean frame score at or above the
rule's correct-ratio threshold, or comes close to depth (within half the
tolerance) with a mean frame score at or above a softer threshold.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .rules import MetricSpec, Polarity, Rule
from .scoring import QualityCategory, categorize

logger = logging.getLogger(__name__)

SOFT_THRESHOLD_FLOOR = 0.4
SOFT_THRESHOLD_MARGIN = 0.18


@dataclass(frozen=True)
class Rep:
    """One detected repetition."""
    start_t: float
    end_t: float
    min_value: float
    max_value: float
    mean_frame_score: float
    category: QualityCategory
    is_good: bool
    frame_count: int
    start_index: int
    end_index: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "start_t": self.start_t,
            "end_t": self.end_t,
            "min_value": round(self.min_value, 2),
            "max_value": round(self.max_value, 2),
            "mean_frame_score": round(self.mean_frame_score, 3),
            "category": self.category.value,
            "is_good": self.is_good,
            "frame_count": self.frame_count,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }


def soft_threshold(correct_ratio_threshold: float) -> float:
    """Relaxed score threshold used for close-to-depth reps."""
    return max(SOFT_THRESHOLD_FLOOR, correct_ratio_threshold - SOFT_THRESHOLD_MARGIN)


def _within(value: float, spec: MetricSpec, scale: float = 1.0) -> bool:
    return abs(value - spec.ideal) <= spec.tolerance * scale


def segment_reps(
    times: Sequence[float],
    scores: Sequence[Optional[float]],
    smoothed: Sequence[float],
    valleys: Sequence[int],
    peaks: Sequence[int],
    rule: Rule,
) -> List[Rep]:
    """
    Build Rep records from extrema of the smoothed primary series.

    Args:
        times: Frame timestamps (ms)
        scores: Per-frame scores (None for unscoreable frames)
        smoothed: Smoothed primary metric series (NaN where undefined)
        valleys: Local minima indices
        peaks: Local maxima indices
        rule: Resolved activity rule

    Returns:
        Reps in chronological order; empty for hold activities
    """
    polarity = rule.polarity
    if polarity is Polarity.NONE:
        return []

    min_frames = rule.min_frames_for_rep
    keys = list(valleys if polarity is Polarity.VALLEY else peaks)
    smoothed = np.asarray(smoothed, dtype=float)
    primary_spec = rule.primary_spec
    threshold = rule.correct_ratio_threshold
    soft = soft_threshold(threshold)

    reps: List[Rep] = []
    for start, end in zip(keys, keys[1:]):
        if end - start < min_frames:
            continue

        window = smoothed[start:end + 1]
        finite = window[np.isfinite(window)]
        if finite.size == 0:
            continue

        min_v = float(finite.min())
        max_v = float(finite.max())

        # Unscoreable frames count as 0
        window_scores = [s if s is not None else 0.0 for s in scores[start:end + 1]]
        mean_score = sum(window_scores) / len(window_scores)

        if primary_spec is None:
            meets_depth = True
            close_depth = False
        else:
            extremum = min_v if polarity is Polarity.VALLEY else max_v
            meets_depth = _within(extremum, primary_spec)
            close_depth = _within(extremum, primary_spec, scale=0.5)

        is_good = (meets_depth and mean_score >= threshold) or (close_depth and mean_score >= soft)

        reps.append(Rep(
            start_t=times[start],
            end_t=times[end],
            min_value=min_v,
            max_value=max_v,
            mean_frame_score=mean_score,
            category=categorize(mean_score),
            is_good=is_good,
            frame_count=end - start + 1,
            start_index=start,
            end_index=end,
        ))

    logger.debug(
        f"Segmented {len(reps)} reps from {len(keys)} {polarity.value} extrema "
        f"(rule={rule.name})"
    )
    return reps
