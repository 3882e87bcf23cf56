"""
2D vector helpers for the juggling engine.

Points and forces are plain float64 numpy arrays of shape (2,). Addition,
subtraction and scalar multiply/divide are the numpy operators; every helper
here returns a new array and never mutates its arguments.
"""

import math
from typing import Optional

import numpy as np


def vec(x: float = 0.0, y: float = 0.0) -> np.ndarray:
    return np.array([float(x), float(y)])


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))


def lerp(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    """Linear interpolation from a (t=0) to b (t=1)."""
    return a + (b - a) * t


def rotate(point: np.ndarray, angle: float, pivot: Optional[np.ndarray] = None) -> np.ndarray:
    """Rotate point by angle (radians, counter-clockwise in math axes) around pivot."""
    if pivot is None:
        pivot = vec()
    cs, sn = math.cos(angle), math.sin(angle)
    dx, dy = point[0] - pivot[0], point[1] - pivot[1]
    return np.array([pivot[0] + dx * cs - dy * sn,
                     pivot[1] + dx * sn + dy * cs])
