"""
MOODFIT Analytics Service - Geometry

Joint angle calculation from pose landmarks.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np


@dataclass(frozen=True)
class Landmark:
    """A single pose landmark in normalized image coordinates."""
    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None

    def to_numpy(self) -> np.ndarray:
        """Image-plane position (x, y)."""
        return np.array([self.x, self.y], dtype=float)

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Landmark"]:
        """
        Build a landmark from a dict or attribute-style object.

        Returns None for missing or malformed entries instead of raising.
        """
        if raw is None:
            return None
        if isinstance(raw, Landmark):
            return raw

        if isinstance(raw, dict):
            get = raw.get
        else:
            def get(key, default=None):
                return getattr(raw, key, default)

        try:
            x = float(get("x"))
            y = float(get("y"))
        except (TypeError, ValueError):
            return None

        z = _optional_float(get("z", None))
        visibility = _optional_float(get("visibility", None))
        return cls(x=x, y=y, z=z, visibility=visibility)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z, "visibility": self.visibility}


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def joint_angle(
    a: Optional[Landmark],
    b: Optional[Landmark],
    c: Optional[Landmark],
) -> Optional[float]:
    """
    Calculate angle at point b formed by points a-b-c.

    Args:
        a, b, c: Landmarks (only x/y are used)

    Returns:
        Angle in degrees (0-180), or None if a point is missing or
        either ray has zero length
    """
    if a is None or b is None or c is None:
        return None
    if not (a.is_finite and b.is_finite and c.is_finite):
        return None

    ba = a.to_numpy() - b.to_numpy()
    bc = c.to_numpy() - b.to_numpy()

    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba == 0 or norm_bc == 0:
        return None

    cosine_angle = np.dot(ba, bc) / (norm_ba * norm_bc)
    cosine_angle = np.clip(cosine_angle, -1.0, 1.0)
    angle = float(np.degrees(np.arccos(cosine_angle)))

    if not math.isfinite(angle):
        return None
    return angle
