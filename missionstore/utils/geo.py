import math
from typing import Iterable, Sequence, Tuple, Union

from missionstore.drone.models import Coordinate, WaypointRecord


EARTH_RADIUS_M = 6_371_000.0

PointLike = Union[WaypointRecord, Coordinate, Tuple[float, float], Sequence[float]]


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    dlat, dlon = rlat2 - rlat1, rlon2 - rlon1
    a = math.sin(dlat/2)**2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def _lat_lon(point: PointLike) -> Tuple[float, float]:
    # Accepts WaypointRecord / ORM rows, our Coordinate, or a plain (lat, lon) pair
    if hasattr(point, "latitude"):
        return float(point.latitude), float(point.longitude)
    if isinstance(point, Coordinate):
        return float(point.lat), float(point.lon)
    return float(point[0]), float(point[1])


def path_distance_m(points: Iterable[PointLike]) -> float:
    """
    Horizontal length of a path through the points in order, in meters,
    rounded to 2 decimals. Altitude changes are not counted.
    """
    coords = [_lat_lon(p) for p in points]
    if len(coords) < 2:
        return 0.0
    total = 0.0
    for (lat1, lon1), (lat2, lon2) in zip(coords, coords[1:]):
        total += haversine_m(lat1, lon1, lat2, lon2)
    return round(total, 2)
