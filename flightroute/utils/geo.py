#!/usr/bin/env python3
"""
Great-circle geometry for route tracking.

Provides the position and line types used by the route and the
line/point distance primitive every tracking decision is based on:

    result = distance_meter_to_line(aircraft, leg_start, leg_end)
    if result.status == LineDistanceStatus.ALONG_TRACK:
        cross_track_m = result.distance

Conventions:
    - Positions are (lon_x, lat_y) in degrees, altitude in feet
    - Distances are in meters unless the name says otherwise
    - Courses are true courses in degrees (0-360, 0=North, 90=East)
    - Cross-track distance is positive right of track, negative left

The along-track component is computed with atan2 instead of the textbook
acos(cos(d13) / cos(dxt)) form, which loses all precision for segments of
a few meters.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from flightroute.utils.constants import (
    EARTH_RADIUS_M,
    INVALID_DISTANCE_VALUE,
    POS_EPSILON_DEG,
)


# =============================================================================
# Angles
# =============================================================================

def normalize_course(course: float) -> float:
    """Normalize a course to the 0-360 range."""
    return course % 360.0


def course_difference(course1: float, course2: float) -> float:
    """
    Calculate the smallest angular difference between two courses.

    Returns:
        Absolute angular difference in degrees (0-180)
    """
    diff = (course1 - course2 + 360.0) % 360.0
    if diff > 180.0:
        diff = 360.0 - diff
    return diff


# =============================================================================
# Positions
# =============================================================================

@dataclass(frozen=True)
class Pos:
    """
    A geographic position.

    Attributes:
        lon_x: Longitude in degrees
        lat_y: Latitude in degrees
        altitude: Altitude in feet (MSL)
    """
    lon_x: float
    lat_y: float
    altitude: float = 0.0

    def is_valid(self) -> bool:
        if not (math.isfinite(self.lon_x) and math.isfinite(self.lat_y)):
            return False
        return -180.0 <= self.lon_x <= 180.0 and -90.0 <= self.lat_y <= 90.0

    def almost_equal(self, other: Optional["Pos"], epsilon: float = POS_EPSILON_DEG) -> bool:
        """Compare coordinates only, ignoring altitude."""
        if other is None:
            return False
        return (abs(self.lon_x - other.lon_x) < epsilon and
                abs(self.lat_y - other.lat_y) < epsilon)

    def distance_rad_to(self, other: "Pos") -> float:
        """Great-circle distance as a central angle, using the haversine formula."""
        lat1_rad = math.radians(self.lat_y)
        lat2_rad = math.radians(other.lat_y)
        dlat = math.radians(other.lat_y - self.lat_y)
        dlon = math.radians(other.lon_x - self.lon_x)

        a = (math.sin(dlat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
        return 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))

    def distance_meter_to(self, other: "Pos") -> float:
        return self.distance_rad_to(other) * EARTH_RADIUS_M

    def angle_deg_to(self, other: "Pos") -> float:
        """
        Calculate initial bearing from this position to another one.

        Returns:
            Bearing in degrees (0-360, where 0=North, 90=East, etc.)
        """
        lat1_rad = math.radians(self.lat_y)
        lat2_rad = math.radians(other.lat_y)
        dlon_rad = math.radians(other.lon_x - self.lon_x)

        x = math.sin(dlon_rad) * math.cos(lat2_rad)
        y = (math.cos(lat1_rad) * math.sin(lat2_rad) -
             math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon_rad))

        return normalize_course(math.degrees(math.atan2(x, y)))

    def interpolate(self, other: "Pos", fraction: float) -> "Pos":
        """
        Calculate the intermediate point on the great circle towards other.

        Args:
            other: End position
            fraction: Interpolation fraction (0 = self, 1 = other), clamped

        Returns:
            Interpolated position. Altitude is interpolated linearly.
        """
        fraction = max(0.0, min(1.0, fraction))
        altitude = self.altitude + fraction * (other.altitude - self.altitude)

        dist = self.distance_rad_to(other)
        if dist < 1e-12:
            return Pos(self.lon_x, self.lat_y, altitude)

        lat1 = math.radians(self.lat_y)
        lon1 = math.radians(self.lon_x)
        lat2 = math.radians(other.lat_y)
        lon2 = math.radians(other.lon_x)

        a = math.sin((1.0 - fraction) * dist) / math.sin(dist)
        b = math.sin(fraction * dist) / math.sin(dist)

        x = a * math.cos(lat1) * math.cos(lon1) + b * math.cos(lat2) * math.cos(lon2)
        y = a * math.cos(lat1) * math.sin(lon1) + b * math.cos(lat2) * math.sin(lon2)
        z = a * math.sin(lat1) + b * math.sin(lat2)

        lat = math.atan2(z, math.sqrt(x * x + y * y))
        lon = math.atan2(y, x)
        return Pos(math.degrees(lon), math.degrees(lat), altitude)

    def endpoint(self, distance_meter: float, bearing_deg: float) -> "Pos":
        """Calculate the position reached after travelling along a great circle."""
        dist = distance_meter / EARTH_RADIUS_M
        brg = math.radians(bearing_deg)
        lat1 = math.radians(self.lat_y)
        lon1 = math.radians(self.lon_x)

        lat2 = math.asin(math.sin(lat1) * math.cos(dist) +
                         math.cos(lat1) * math.sin(dist) * math.cos(brg))
        lon2 = lon1 + math.atan2(math.sin(brg) * math.sin(dist) * math.cos(lat1),
                                 math.cos(dist) - math.sin(lat1) * math.sin(lat2))
        lon2 = (math.degrees(lon2) + 540.0) % 360.0 - 180.0
        return Pos(lon2, math.degrees(lat2), self.altitude)


@dataclass(frozen=True)
class PosCourse:
    """Aircraft position together with its true course in degrees."""
    pos: Pos
    course: float

    def is_valid(self) -> bool:
        return self.pos is not None and self.pos.is_valid() and math.isfinite(self.course)


# =============================================================================
# Line distance
# =============================================================================

class LineDistanceStatus(Enum):
    """Where the projection of a position falls relative to a segment."""
    INVALID = "invalid"
    BEFORE_START = "before_start"
    ALONG_TRACK = "along_track"
    AFTER_END = "after_end"


@dataclass
class LineDistance:
    """
    Result of a line/point distance calculation.

    Attributes:
        distance: Signed distance in meters. Cross-track distance when
            ALONG_TRACK, otherwise the distance to the nearer endpoint
            carrying the side of track sign.
        status: Projection classification
        distance_from1: Distance from the position to the segment start in meters
        distance_from2: Distance from the position to the segment end in meters
    """
    distance: float = INVALID_DISTANCE_VALUE
    status: LineDistanceStatus = LineDistanceStatus.INVALID
    distance_from1: float = INVALID_DISTANCE_VALUE
    distance_from2: float = INVALID_DISTANCE_VALUE

    def is_valid(self) -> bool:
        return self.status != LineDistanceStatus.INVALID


def distance_meter_to_line(pos: Pos, pos1: Pos, pos2: Pos) -> LineDistance:
    """
    Calculate the distance from a position to the great-circle segment pos1 -> pos2.

    A segment with identical endpoints is treated as a point: the result is
    the plain distance with status ALONG_TRACK.

    Args:
        pos: Query position
        pos1: Segment start
        pos2: Segment end

    Returns:
        LineDistance with status INVALID if any position is invalid
    """
    result = LineDistance()
    if pos is None or pos1 is None or pos2 is None:
        return result
    if not (pos.is_valid() and pos1.is_valid() and pos2.is_valid()):
        return result

    if pos1.almost_equal(pos2):
        dist = pos.distance_meter_to(pos1)
        result.distance = dist
        result.distance_from1 = dist
        result.distance_from2 = dist
        result.status = LineDistanceStatus.ALONG_TRACK
        return result

    dist13 = pos1.distance_rad_to(pos)
    dist12 = pos1.distance_rad_to(pos2)
    dist23 = pos2.distance_rad_to(pos)

    theta13 = math.radians(pos1.angle_deg_to(pos))
    theta12 = math.radians(pos1.angle_deg_to(pos2))
    dtheta = theta13 - theta12

    cross_track = math.asin(max(-1.0, min(1.0, math.sin(dist13) * math.sin(dtheta))))
    along_track = math.atan2(math.sin(dist13) * math.cos(dtheta), math.cos(dist13))

    result.distance_from1 = dist13 * EARTH_RADIUS_M
    result.distance_from2 = dist23 * EARTH_RADIUS_M

    if along_track < 0.0:
        result.status = LineDistanceStatus.BEFORE_START
        result.distance = math.copysign(result.distance_from1, cross_track)
    elif along_track > dist12:
        result.status = LineDistanceStatus.AFTER_END
        result.distance = math.copysign(result.distance_from2, cross_track)
    else:
        result.status = LineDistanceStatus.ALONG_TRACK
        result.distance = cross_track * EARTH_RADIUS_M
    return result


# =============================================================================
# Lines
# =============================================================================

@dataclass(frozen=True)
class Line:
    """A great-circle segment from pos1 to pos2."""
    pos1: Pos
    pos2: Pos

    def is_valid(self) -> bool:
        return self.pos1.is_valid() and self.pos2.is_valid()

    def is_point(self) -> bool:
        return self.pos1.almost_equal(self.pos2)

    def length_meter(self) -> float:
        return self.pos1.distance_meter_to(self.pos2)

    def angle_deg(self) -> float:
        return self.pos1.angle_deg_to(self.pos2)

    def distance_meter_to_line(self, pos: Pos) -> LineDistance:
        return distance_meter_to_line(pos, self.pos1, self.pos2)


@dataclass
class LineString:
    """
    An ordered polyline, used for curved procedure geometry (arcs, intercepts).

    Fractions and along-track distances are measured along the polyline length.
    """
    points: List[Pos] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def __getitem__(self, index):
        return self.points[index]

    def size(self) -> int:
        return len(self.points)

    def _segment_lengths(self) -> List[float]:
        return [self.points[i].distance_meter_to(self.points[i + 1])
                for i in range(len(self.points) - 1)]

    def length_meter(self) -> float:
        return sum(self._segment_lengths())

    def interpolate(self, fraction: float) -> Optional[Pos]:
        """
        Find the position at a fraction of the polyline length.

        Returns:
            Interpolated position, or None for an empty line string
        """
        if not self.points:
            return None
        if fraction <= 0.0 or len(self.points) == 1:
            return self.points[0]
        if fraction >= 1.0:
            return self.points[-1]

        lengths = self._segment_lengths()
        target = sum(lengths) * fraction
        travelled = 0.0
        for i, length in enumerate(lengths):
            if travelled + length >= target and length > 0.0:
                return self.points[i].interpolate(self.points[i + 1], (target - travelled) / length)
            travelled += length
        return self.points[-1]

    def distance_meter_to_line_string(self, pos: Pos) -> LineDistance:
        """
        Calculate the distance from a position to the nearest segment of the polyline.

        BEFORE_START and AFTER_END are only reported for the first and the last
        segment; a position outside an interior joint counts as ALONG_TRACK.
        distance_from1 and distance_from2 are measured along the polyline.
        """
        if len(self.points) == 1:
            return distance_meter_to_line(pos, self.points[0], self.points[0])

        best = LineDistance()
        best_index = -1
        for i in range(len(self.points) - 1):
            tmp = distance_meter_to_line(pos, self.points[i], self.points[i + 1])
            if tmp.is_valid() and abs(tmp.distance) < abs(best.distance):
                best = tmp
                best_index = i

        if best_index < 0:
            return best

        last_index = len(self.points) - 2
        if best.status == LineDistanceStatus.BEFORE_START and best_index > 0:
            best.status = LineDistanceStatus.ALONG_TRACK
        elif best.status == LineDistanceStatus.AFTER_END and best_index < last_index:
            best.status = LineDistanceStatus.ALONG_TRACK

        lengths = self._segment_lengths()
        best.distance_from1 += sum(lengths[:best_index])
        best.distance_from2 += sum(lengths[best_index + 1:])
        return best
