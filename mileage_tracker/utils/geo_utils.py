"""
Geospatial utility functions for mileage tracking.
Handles great-circle distance calculations and route distance totals.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .number_utils import round_int

# Earth's radius in miles
EARTH_RADIUS_MILES = 3959

PointLike = Union["Location", Mapping[str, Any], Sequence[float]]


@dataclass
class Location:
    """Represents a geographical location."""
    latitude: float
    longitude: float
    address: Optional[str] = None

    def __post_init__(self):
        self.validate_coordinates()

    def validate_coordinates(self):
        """Validate latitude and longitude ranges."""
        if not (-90 <= self.latitude <= 90):
            raise ValueError(f"Invalid latitude: {self.latitude}. Must be between -90 and 90.")
        if not (-180 <= self.longitude <= 180):
            raise ValueError(f"Invalid longitude: {self.longitude}. Must be between -180 and 180.")

    def to_tuple(self) -> Tuple[float, float]:
        """Return coordinates as (lat, lng) tuple."""
        return (self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        """Return the stored JSON shape for trip and visit locations."""
        return {
            'lat': self.latitude,
            'lng': self.longitude,
            'address': self.address
        }


def coordinates_of(point: PointLike) -> Tuple[float, float]:
    """
    Extract (lat, lng) from a Location, a {"lat", "lng"} mapping or a
    [lat, lng] pair.
    """
    if isinstance(point, Location):
        return point.to_tuple()
    if isinstance(point, Mapping):
        lat = point.get('lat', point.get('latitude'))
        lng = point.get('lng', point.get('longitude'))
        return float(lat), float(lng)
    return float(point[0]), float(point[1])


class GeoUtils:
    """Distance helpers for trip mileage."""

    @staticmethod
    def haversine_distance(point_a: PointLike, point_b: PointLike) -> float:
        """
        Calculate the great circle distance between two points using the
        Haversine formula. Returns distance in miles.
        """
        lat1, lng1 = coordinates_of(point_a)
        lat2, lng2 = coordinates_of(point_b)

        dlat = math.radians(lat2 - lat1)
        dlng = math.radians(lng2 - lng1)

        a = (math.sin(dlat / 2) ** 2
             + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlng / 2) ** 2)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_MILES * c

    @staticmethod
    def polyline_distance(points: Sequence[PointLike]) -> float:
        """Sum of consecutive segment distances along an ordered route."""
        total = 0.0
        for i in range(1, len(points)):
            total += GeoUtils.haversine_distance(points[i - 1], points[i])
        return total

    @staticmethod
    def route_distance(
        route_points: Optional[Sequence[PointLike]],
        start: Optional[PointLike] = None,
        end: Optional[PointLike] = None
    ) -> float:
        """
        Total trip distance in miles. Recorded route points win when there are
        at least two of them; otherwise the straight line from start to end is
        used, or 0 when either end is unknown.
        """
        points = list(route_points or [])
        if len(points) > 1:
            return GeoUtils.polyline_distance(points)
        if start is not None and end is not None:
            return GeoUtils.haversine_distance(start, end)
        return 0.0

    @staticmethod
    def estimate_drive_minutes(distance_miles: float, avg_speed_mph: float) -> int:
        """Drive time estimate at a constant average speed."""
        if avg_speed_mph <= 0:
            return 0
        return round_int(distance_miles / avg_speed_mph * 60)


def distance_miles(point_a: PointLike, point_b: PointLike) -> float:
    """Great-circle distance in miles between two points."""
    return GeoUtils.haversine_distance(point_a, point_b)
