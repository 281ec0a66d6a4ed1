"""
MOODFIT Analytics Service - Rule Registry

Activity-specific scoring and segmentation configuration.
Each supported activity carries a constant Rule; free-text activity
identifiers are mapped onto the closed Activity enumeration.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class Activity(Enum):
    """
    Supported activities.

    Declaration order is the matching order used by from_identifier().
    """
    SQUAT = "squat"
    PUSHUP = "pushup"
    PLANK = "plank"
    LUNGE = "lunge"
    TREE = "tree"
    WARRIOR2 = "warrior2"
    DEFAULT = "default"

    @classmethod
    def from_identifier(cls, activity_id: Optional[str]) -> "Activity":
        """
        Map a free-text activity identifier onto an Activity.

        The identifier is lowercased and trimmed, then the first declared
        activity whose key is a substring of it wins. Unknown identifiers
        map to DEFAULT.
        """
        normalized = (activity_id or "").lower().strip()
        for activity in cls:
            if activity is cls.DEFAULT:
                continue
            if activity.value in normalized:
                return activity
        return cls.DEFAULT


class Polarity(Enum):
    """Which extremum bounds a repetition cycle."""
    VALLEY = "valley"
    PEAK = "peak"
    NONE = "none"


@dataclass(frozen=True)
class MetricSpec:
    """Ideal angle and tolerance for one metric."""
    ideal: float  # degrees
    tolerance: float  # degrees

    def to_dict(self) -> Dict[str, float]:
        return {"ideal": self.ideal, "tolerance": self.tolerance}


@dataclass(frozen=True)
class Segmented:
    """Repetition activity: reps are bounded by consecutive extrema."""
    min_frames: int
    polarity: Polarity

    def __post_init__(self):
        if self.polarity is Polarity.NONE:
            raise ValueError("Segmented mode requires valley or peak polarity")


@dataclass(frozen=True)
class Continuous:
    """Hold activity: the whole session is one continuous interval."""


SegmentationMode = Union[Segmented, Continuous]


@dataclass(frozen=True)
class Rule:
    """Scoring and segmentation configuration for an activity."""
    name: str
    primary_metric: str
    metrics: Mapping[str, MetricSpec]
    segmentation: SegmentationMode
    correct_ratio_threshold: float
    frame_pass_threshold: float
    description: str = field(default="", compare=False)

    @property
    def polarity(self) -> Polarity:
        if isinstance(self.segmentation, Segmented):
            return self.segmentation.polarity
        return Polarity.NONE

    @property
    def min_frames_for_rep(self) -> Optional[int]:
        """Minimum rep window length, or None when unbounded (hold)."""
        if isinstance(self.segmentation, Segmented):
            return self.segmentation.min_frames
        return None

    @property
    def is_hold(self) -> bool:
        return isinstance(self.segmentation, Continuous)

    @property
    def primary_spec(self) -> Optional[MetricSpec]:
        return self.metrics.get(self.primary_metric)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "name": self.name,
            "description": self.description,
            "primary_metric": self.primary_metric,
            "metrics": {name: spec.to_dict() for name, spec in self.metrics.items()},
            "min_frames_for_rep": self.min_frames_for_rep,
            "polarity": self.polarity.value,
            "correct_ratio_threshold": self.correct_ratio_threshold,
            "frame_pass_threshold": self.frame_pass_threshold,
        }


def _metrics(**specs) -> Mapping[str, MetricSpec]:
    return MappingProxyType({name: MetricSpec(*spec) for name, spec in specs.items()})


# ═══════════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════════

RULES: Mapping[Activity, Rule] = MappingProxyType({
    Activity.SQUAT: Rule(
        name="squat",
        description="Bodyweight squat, reps bounded by knee-angle valleys",
        primary_metric="knee",
        metrics=_metrics(knee=(90, 28), back=(180, 40)),
        segmentation=Segmented(min_frames=6, polarity=Polarity.VALLEY),
        correct_ratio_threshold=0.55,
        frame_pass_threshold=0.6,
    ),
    Activity.PUSHUP: Rule(
        name="pushup",
        description="Push-up, reps bounded by elbow-angle valleys",
        primary_metric="elbow",
        metrics=_metrics(elbow=(90, 28), body=(180, 20)),
        segmentation=Segmented(min_frames=6, polarity=Polarity.VALLEY),
        correct_ratio_threshold=0.55,
        frame_pass_threshold=0.6,
    ),
    Activity.PLANK: Rule(
        name="plank",
        description="Plank hold, straight shoulder-hip-ankle line",
        primary_metric="body",
        metrics=_metrics(body=(180, 12)),
        segmentation=Continuous(),
        correct_ratio_threshold=0.85,
        frame_pass_threshold=0.85,
    ),
    Activity.LUNGE: Rule(
        name="lunge",
        description="Forward lunge, reps bounded by front-knee valleys",
        primary_metric="front_knee",
        metrics=_metrics(front_knee=(90, 22), torso=(180, 30)),
        segmentation=Segmented(min_frames=6, polarity=Polarity.VALLEY),
        correct_ratio_threshold=0.55,
        frame_pass_threshold=0.6,
    ),
    Activity.TREE: Rule(
        name="tree",
        description="Tree pose hold, straight standing leg and raised arms",
        primary_metric="standing_leg",
        metrics=_metrics(standing_leg=(180, 15), arms=(180, 25)),
        segmentation=Continuous(),
        correct_ratio_threshold=0.9,
        frame_pass_threshold=0.85,
    ),
    Activity.WARRIOR2: Rule(
        name="warrior2",
        description="Warrior II hold, bent front knee and extended arms",
        primary_metric="front_knee",
        metrics=_metrics(front_knee=(90, 20), arms=(180, 20)),
        segmentation=Continuous(),
        correct_ratio_threshold=0.85,
        frame_pass_threshold=0.8,
    ),
    Activity.DEFAULT: Rule(
        name="default",
        description="Generic knee-driven movement",
        primary_metric="knee",
        metrics=_metrics(knee=(90, 40), back=(180, 40)),
        segmentation=Segmented(min_frames=6, polarity=Polarity.VALLEY),
        correct_ratio_threshold=0.5,
        frame_pass_threshold=0.55,
    ),
})


def resolve_rule(activity_id: Optional[str]) -> Rule:
    """
    Resolve the Rule for a free-text activity identifier.

    Falls back to the default rule when nothing matches.
    """
    activity = Activity.from_identifier(activity_id)
    if activity is Activity.DEFAULT:
        logger.debug(f"No rule matches activity '{activity_id}', using default")
    else:
        logger.debug(f"Activity '{activity_id}' resolved to rule '{activity.value}'")
    return RULES[activity]
