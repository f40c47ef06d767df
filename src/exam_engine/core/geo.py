"""
Planar tolerance matching for map questions.

The map is a flat image overlay, so distances are plain Euclidean distances
in the overlay's own coordinate space; no spherical correction is applied.
"""
import math
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from exam_engine import config
from exam_engine.models.question_models import MapPoint

PointLike = Union[MapPoint, Mapping[str, Any], Sequence[float]]


def as_coordinates(point: PointLike) -> Optional[Tuple[float, float]]:
    """
    Read ``(lat, lng)`` from a MapPoint, a mapping or a 2-sequence.

    Returns None when the point has no usable numeric coordinates.
    """
    try:
        if isinstance(point, MapPoint):
            return point.lat, point.lng
        if isinstance(point, Mapping):
            lat = point.get("lat", point.get("y"))
            lng = point.get("lng", point.get("x"))
        elif isinstance(point, (list, tuple)) and len(point) == 2:
            lat, lng = point
        else:
            return None
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(lat) or math.isnan(lng):
        return None
    return lat, lng


def resolve_tolerance(value: Any) -> float:
    """Return ``value`` as a positive tolerance, or the default constant."""
    if isinstance(value, bool):
        return config.DEFAULT_MAP_TOLERANCE
    try:
        tolerance = float(value)
    except (TypeError, ValueError, OverflowError):
        return config.DEFAULT_MAP_TOLERANCE
    if math.isnan(tolerance) or math.isinf(tolerance) or tolerance <= 0:
        return config.DEFAULT_MAP_TOLERANCE
    return tolerance


def planar_distance(a: PointLike, b: PointLike) -> float:
    """Euclidean distance between two points; ``inf`` if either is unusable."""
    first, second = as_coordinates(a), as_coordinates(b)
    if first is None or second is None:
        return math.inf
    return math.hypot(first[0] - second[0], first[1] - second[1])


def within_tolerance(user_point: PointLike, target_point: PointLike, tolerance: Any = None) -> bool:
    """True when the placed point lies within ``tolerance`` of the target (inclusive)."""
    return planar_distance(user_point, target_point) <= resolve_tolerance(tolerance)
