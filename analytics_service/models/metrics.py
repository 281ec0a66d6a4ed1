"""
MOODFIT Analytics Service - Metric Extractor

Turns one frame's landmark list into named joint-angle metrics.
Landmark indices follow the MediaPipe Pose 33-point topology.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .geometry import Landmark, joint_angle


class JointType(Enum):
    """Body joint types for pose estimation."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


Triple = Tuple[JointType, JointType, JointType]

# (left triple, right triple); the angle is measured at the middle joint
BILATERAL_TRIPLES: Dict[str, Tuple[Triple, Triple]] = {
    "knee": (
        (JointType.LEFT_HIP, JointType.LEFT_KNEE, JointType.LEFT_ANKLE),
        (JointType.RIGHT_HIP, JointType.RIGHT_KNEE, JointType.RIGHT_ANKLE),
    ),
    "back": (
        (JointType.LEFT_EAR, JointType.LEFT_SHOULDER, JointType.LEFT_HIP),
        (JointType.RIGHT_EAR, JointType.RIGHT_SHOULDER, JointType.RIGHT_HIP),
    ),
    "elbow": (
        (JointType.LEFT_SHOULDER, JointType.LEFT_ELBOW, JointType.LEFT_WRIST),
        (JointType.RIGHT_SHOULDER, JointType.RIGHT_ELBOW, JointType.RIGHT_WRIST),
    ),
    "body": (
        (JointType.LEFT_SHOULDER, JointType.LEFT_HIP, JointType.LEFT_ANKLE),
        (JointType.RIGHT_SHOULDER, JointType.RIGHT_HIP, JointType.RIGHT_ANKLE),
    ),
}

HIP_TRIPLES: Tuple[Triple, Triple] = (
    (JointType.LEFT_SHOULDER, JointType.LEFT_HIP, JointType.LEFT_KNEE),
    (JointType.RIGHT_SHOULDER, JointType.RIGHT_HIP, JointType.RIGHT_KNEE),
)

METRIC_NAMES: Tuple[str, ...] = (
    "knee", "back", "elbow", "body",
    "front_knee", "standing_leg", "torso", "hip", "arms",
)


def _point(landmarks: Sequence[Optional[Landmark]], joint: JointType) -> Optional[Landmark]:
    idx = joint.value
    if idx < len(landmarks):
        return landmarks[idx]
    return None


def _triple_angle(landmarks: Sequence[Optional[Landmark]], triple: Triple) -> Optional[float]:
    a, b, c = (_point(landmarks, joint) for joint in triple)
    return joint_angle(a, b, c)


def bilateral_mean(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """Mean of both sides when both exist, the single side otherwise."""
    values = [v for v in (left, right) if v is not None]
    if not values:
        return None
    return sum(values) / len(values)


def front_leg_side(landmarks: Sequence[Optional[Landmark]]) -> Optional[int]:
    """
    Index (0 = left, 1 = right) of the operative front leg.

    Heuristic: the knee with the smaller y (higher in the camera frame) is
    treated as the forward/raised leg. Ties go to the right leg. None when
    either knee landmark is missing.
    """
    left_knee = _point(landmarks, JointType.LEFT_KNEE)
    right_knee = _point(landmarks, JointType.RIGHT_KNEE)
    if left_knee is None or right_knee is None:
        return None
    return 0 if left_knee.y < right_knee.y else 1


def extract_metrics(landmarks: Optional[Sequence[Optional[Landmark]]]) -> Dict[str, Optional[float]]:
    """
    Calculate all named metrics for one frame.

    Returns dict with metric names and angles in degrees (None when the
    metric cannot be computed from the available landmarks).
    """
    lm: List[Optional[Landmark]] = list(landmarks or [])
    metrics: Dict[str, Optional[float]] = {}

    for name, (left, right) in BILATERAL_TRIPLES.items():
        metrics[name] = bilateral_mean(_triple_angle(lm, left), _triple_angle(lm, right))

    knee_triples = BILATERAL_TRIPLES["knee"]
    front = front_leg_side(lm)
    if front is None:
        metrics["front_knee"] = metrics["knee"]
        metrics["standing_leg"] = metrics["knee"]
    else:
        metrics["front_knee"] = _triple_angle(lm, knee_triples[front])
        # standing leg is the lower knee, i.e. the other side
        metrics["standing_leg"] = _triple_angle(lm, knee_triples[1 - front])

    # Hip prefers the left side
    hip = _triple_angle(lm, HIP_TRIPLES[0])
    if hip is None:
        hip = _triple_angle(lm, HIP_TRIPLES[1])
    metrics["hip"] = hip

    # Torso line runs through the rear leg
    torso = None
    if front is not None:
        torso = _triple_angle(lm, HIP_TRIPLES[1 - front])
    metrics["torso"] = torso if torso is not None else hip

    metrics["arms"] = metrics["elbow"]

    return metrics
