#!/usr/bin/env python3
"""
Route tracking and distance calculation.

A Route owns the ordered legs of a flight plan and follows the aircraft
along them. It provides methods to:
- Find the leg nearest to a position
- Track the active leg, one position update at a time
- Report distance from start, distance to destination, distance to the
  next waypoint and cross-track distance
- Find the position at a given distance along the route (top of descent)

Usage:
    route = Route([RouteLeg("KSEA", Pos(-122.309, 47.449)), ...],
                  cruise_altitude_ft=35000)

    # Once per new position sample, in temporal order
    route.update_active_leg(aircraft_pos, aircraft_course)

    distances = route.get_route_distances()
    if distances is not None:
        print(distances.dist_to_dest)

    tod = route.get_top_of_descent(DescentConfig(tod_rule=3.0))

Active leg:
    Leg i is flown from leg i-1 to leg i, so leg 0 is never active on a
    route with more than one leg. The active leg is unset until the first
    valid position arrives near the route (within 100 nm), and is reset
    whenever the route is replaced, cleared or an invalid position is given.

Thread Safety:
    This class is NOT thread-safe. Topology changes and position updates
    must be serialized by the caller.
"""

import copy
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from flightroute.descent import DescentConfig, top_of_descent_from_destination
from flightroute.routeleg import RouteLeg
from flightroute.utils.constants import (
    DEFAULT_EPSILON_M,
    DEFAULT_MAX_COURSE_DIFF_DEG,
    HOLD_ENTRY_DISTANCE_NM,
    HOLD_EXIT_HELPER_THRESHOLD_NM,
    HOLD_EXIT_MAX_COURSE_DIFF_DEG,
    HOLD_EXIT_MAX_CROSS_TRACK_NM,
    HOLD_EXIT_MIN_PROGRESS_NM,
    MAX_NEAREST_LEG_DISTANCE_NM,
    PROCEDURE_TURN_EPSILON_M,
    PROCEDURE_TURN_MAX_COURSE_DIFF_DEG,
    meter_to_nm,
    nm_to_meter,
)
from flightroute.utils.geo import (
    LineDistance,
    LineDistanceStatus,
    Pos,
    PosCourse,
    course_difference,
    distance_meter_to_line,
    normalize_course,
)

import logging
log = logging.getLogger(__name__)


@dataclass
class RouteDistances:
    """
    Distances for the active position, all in nautical miles.

    Attributes:
        dist_from_start: Distance flown along the route
        dist_to_dest: Remaining distance to the destination, or to the end
            of the missed approach when flying it
        next_leg_distance: Distance to the end of the active leg
        cross_track: Signed cross-track distance (right of track positive),
            None if the position is not abeam the active leg
    """
    dist_from_start: float
    dist_to_dest: float
    next_leg_distance: float
    cross_track: Optional[float]


def _is_smaller(dist1: LineDistance, dist2: LineDistance, epsilon: float) -> bool:
    """Compare cross-track distances fuzzy."""
    return abs(dist1.distance) < abs(dist2.distance) + epsilon


class Route:
    """
    Ordered route legs plus the state needed to track the aircraft along them.

    Mutating methods (append, insert, remove_at, clear, set_legs) keep the
    derived values consistent: leg distances, total distance, procedure
    offsets and the active leg index.
    Legs are copied when they are added. Two routes never share a leg, so
    the per leg distances always belong to the route that computed them.
    """

    def __init__(self, legs: Optional[Iterable[RouteLeg]] = None,
                 cruise_altitude_ft: float = 0.0,
                 show_missed_approach: bool = True,
                 descent_config: Optional[DescentConfig] = None):
        """
        Args:
            legs: Route legs in flight order, index 0 is the origin
            cruise_altitude_ft: Planned cruise altitude for top of descent
            show_missed_approach: Whether missed approach legs are displayed.
                The active leg never advances onto a hidden missed approach.
            descent_config: Top of descent rule used when none is passed
                to the top of descent methods
        """
        self._legs: List[RouteLeg] = copy.deepcopy(list(legs)) if legs is not None else []
        self.cruise_altitude_ft = cruise_altitude_ft
        self.show_missed_approach = show_missed_approach
        self.descent_config = descent_config if descent_config is not None else DescentConfig()

        self._total_distance = 0.0
        self._departure_legs_offset: Optional[int] = None
        self._departure_legs_count = 0
        self._star_legs_offset: Optional[int] = None
        self._arrival_legs_offset: Optional[int] = None

        self._active_leg: Optional[int] = None
        self._active_leg_result = LineDistance()
        self._active_pos: Optional[PosCourse] = None

        self.update_all()

    # ------------------------------------------------------------------
    # Sequence access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._legs)

    def __iter__(self) -> Iterator[RouteLeg]:
        return iter(self._legs)

    def __getitem__(self, index: int) -> RouteLeg:
        return self._legs[index]

    def size(self) -> int:
        return len(self._legs)

    def is_empty(self) -> bool:
        return not self._legs

    def at(self, index: int) -> RouteLeg:
        return self._legs[index]

    def first(self) -> RouteLeg:
        return self._legs[0]

    def last(self) -> RouteLeg:
        return self._legs[-1]

    def position_at(self, index: int) -> Pos:
        return self._legs[index].position

    def append(self, leg: RouteLeg) -> None:
        self._legs.append(copy.deepcopy(leg))
        self.update_all()

    def insert(self, index: int, leg: RouteLeg) -> None:
        if not 0 <= index <= len(self._legs):
            raise IndexError(f"Insert index {index} out of range for {len(self._legs)} legs")
        self._legs.insert(index, copy.deepcopy(leg))
        self.update_all()

    def remove_at(self, index: int) -> RouteLeg:
        leg = self._legs.pop(index)
        self.update_all()
        return leg

    def clear(self) -> None:
        self._legs = []
        self.reset_active()
        self.update_all()

    def set_legs(self, legs: Iterable[RouteLeg]) -> None:
        """Replace all legs. Tracking starts over."""
        self._legs = copy.deepcopy(list(legs))
        self.reset_active()
        self.update_all()
        log.info(f"Route replaced with {len(self._legs)} legs, "
                 f"total distance {self._total_distance:.1f} nm")

    def copy(self) -> "Route":
        """Create an independent copy including the active leg state."""
        other = Route(cruise_altitude_ft=self.cruise_altitude_ft,
                      show_missed_approach=self.show_missed_approach,
                      descent_config=self.descent_config)
        other._legs = copy.deepcopy(self._legs)
        other._active_leg = self._active_leg
        other._active_leg_result = copy.copy(self._active_leg_result)
        other._active_pos = self._active_pos
        other.update_all()
        return other

    @classmethod
    def from_config(cls, cfg, legs: Optional[Iterable[RouteLeg]] = None,
                    cruise_altitude_ft: float = 0.0) -> "Route":
        """Create a route using the [route] and [descent] settings of an RTConfig."""
        route = cls(legs, cruise_altitude_ft=cruise_altitude_ft)
        cfg.apply_to_route(route)
        return route

    def __repr__(self) -> str:
        return (f"Route(legs={len(self._legs)}, total={self._total_distance:.1f}nm, "
                f"active={self._active_leg})")

    # ------------------------------------------------------------------
    # Topology bookkeeping
    # ------------------------------------------------------------------

    @property
    def total_distance(self) -> float:
        """Total distance in nautical miles, excluding missed approach legs."""
        return self._total_distance

    @property
    def departure_legs_offset(self) -> Optional[int]:
        return self._departure_legs_offset

    @property
    def star_legs_offset(self) -> Optional[int]:
        return self._star_legs_offset

    @property
    def arrival_legs_offset(self) -> Optional[int]:
        return self._arrival_legs_offset

    def has_any_departure_procedure(self) -> bool:
        return self._departure_legs_offset is not None

    def has_any_star_procedure(self) -> bool:
        return self._star_legs_offset is not None

    def has_any_arrival_procedure(self) -> bool:
        return self._arrival_legs_offset is not None

    def update_all(self) -> None:
        """Recalculate all values that depend on the leg topology."""
        self.update_indices_and_offsets()
        self.update_distances_and_course()

    def update_indices_and_offsets(self) -> None:
        if self._active_leg is not None:
            if not self._legs:
                self.reset_active()
            else:
                # Put the active leg back into bounds
                self._active_leg = max(0, min(self._active_leg, len(self._legs) - 1))

        self._departure_legs_offset = None
        self._departure_legs_count = 0
        self._star_legs_offset = None
        self._arrival_legs_offset = None

        for i, leg in enumerate(self._legs):
            if leg.is_any_departure():
                if self._departure_legs_offset is None:
                    self._departure_legs_offset = i
                self._departure_legs_count += 1

            if leg.is_any_star() and self._star_legs_offset is None:
                self._star_legs_offset = i

            if leg.is_arrival() and self._arrival_legs_offset is None:
                self._arrival_legs_offset = i

    def update_distances_and_course(self) -> None:
        self._total_distance = 0.0
        prev = None
        for i, leg in enumerate(self._legs):
            if self._is_airport_after_arrival(i):
                leg.distance_to = 0.0
                leg.course_to = 0.0
                break

            leg.update_distance_and_course(i, prev)
            if not leg.is_missed():
                self._total_distance += leg.distance_to
            prev = leg

    def _is_airport_after_arrival(self, index: int) -> bool:
        return (self.has_any_arrival_procedure() and
                index == len(self._legs) - 1 and
                self._legs[index].is_airport)

    def can_edit_leg(self, index: int) -> bool:
        """Legs between or inside procedures cannot be edited."""
        if (self.has_any_departure_procedure() and
                index < self._departure_legs_offset + self._departure_legs_count):
            return False

        if self.has_any_star_procedure() and index > self._star_legs_offset:
            return False

        if self.has_any_arrival_procedure() and index > self._arrival_legs_offset:
            return False

        return True

    def can_edit_point(self, index: int) -> bool:
        return self._legs[index].is_route()

    # ------------------------------------------------------------------
    # Nearest leg
    # ------------------------------------------------------------------

    def nearest_leg(self, pos: Pos, editable_only: bool = False) -> Tuple[Optional[int], LineDistance]:
        """
        Find the leg whose segment is closest to a position.

        Args:
            pos: Position to check
            editable_only: Skip legs that cannot be edited (procedure legs)

        Returns:
            Tuple of (leg_index, line_distance). (None, invalid result) if no
            segment was found or the closest one is more than 100 nm away.
        """
        if pos is None or not pos.is_valid():
            return (None, LineDistance())

        best_index = None
        best_result = LineDistance()

        for i in range(1, len(self._legs)):
            if editable_only and not self.can_edit_leg(i):
                continue

            result = distance_meter_to_line(pos, self._legs[i - 1].position, self._legs[i].position)
            if result.is_valid() and abs(result.distance) < abs(best_result.distance):
                best_result = result
                best_index = i

        if best_index is None:
            return (None, LineDistance())

        if abs(best_result.distance) > nm_to_meter(MAX_NEAREST_LEG_DISTANCE_NM):
            # Too far away from any segment or point
            log.debug(f"Nearest leg {best_index} is {meter_to_nm(abs(best_result.distance)):.1f} nm away, ignoring")
            return (None, LineDistance())

        return (best_index, best_result)

    # ------------------------------------------------------------------
    # Active leg
    # ------------------------------------------------------------------

    @property
    def active_leg_index(self) -> Optional[int]:
        """Index of the active leg or None if not tracking."""
        return self._active_leg

    @property
    def active_leg(self) -> Optional[RouteLeg]:
        if self._active_leg is None:
            return None
        return self._legs[self._active_leg]

    @property
    def active_leg_result(self) -> LineDistance:
        """Line distance of the last position to the active leg."""
        return self._active_leg_result

    @property
    def active_pos(self) -> Optional[PosCourse]:
        return self._active_pos

    def reset_active(self) -> None:
        if self._active_leg is not None:
            log.debug(f"Resetting active leg {self._active_leg}")
        self._active_leg = None
        self._active_leg_result = LineDistance()
        self._active_pos = None

    def _leg_distance(self, pos: Pos, index: int) -> LineDistance:
        """Line distance of pos to the leg at index (from index - 1 to index)."""
        if len(self._legs) == 1:
            return distance_meter_to_line(pos, self._legs[0].position, self._legs[0].position)
        return distance_meter_to_line(pos, self._legs[index - 1].position, self._legs[index].position)

    def set_active_leg(self, index: int) -> None:
        """
        Force the active leg.

        Out of range values select the first leg with a segment. The line
        distance is recalculated for the last known position.
        """
        if not self._legs:
            return

        if len(self._legs) == 1:
            self._active_leg = 0
        elif 0 < index < len(self._legs):
            self._active_leg = index
        else:
            self._active_leg = 1

        pos = self._active_pos.pos if self._active_pos is not None else None
        self._active_leg_result = self._leg_distance(pos, self._active_leg)

    def update_active_leg(self, pos: Pos, course: float) -> None:
        """Update the active leg for a new aircraft position and true course."""
        self.update_active_leg_and_pos(PosCourse(pos, course))

    def update_active_leg_and_pos(self, pos_course: Optional[PosCourse] = None) -> None:
        """
        Update the active leg for a new aircraft position.

        Advances at most one leg per call. Positions have to be given in
        temporal order. Without an argument the last position is used again,
        e.g. after the route was edited.

        Args:
            pos_course: Aircraft position and true course
        """
        if pos_course is None:
            pos_course = self._active_pos

        if not self._legs or pos_course is None or not pos_course.is_valid():
            self.reset_active()
            return

        pos = pos_course.pos

        if self._active_leg is None:
            # Start with nearest leg
            self._active_leg, _ = self.nearest_leg(pos)
            if self._active_leg is None and len(self._legs) > 1:
                self._active_pos = pos_course
                self._active_leg_result = LineDistance()
                return
            log.info(f"Start tracking at leg {self._active_leg}")

        if self._active_leg is None or self._active_leg >= len(self._legs):
            self._active_leg = len(self._legs) - 1

        self._active_pos = pos_course

        if len(self._legs) == 1:
            # Special case point route
            self._active_leg = 0
            self._active_leg_result = self._leg_distance(pos, 0)
            return

        if self._active_leg == 0:
            # Reset from point route
            self._active_leg = 1

        self._active_leg_result = self._leg_distance(pos, self._active_leg)

        next_leg = self._next_leg_index(self._active_leg)
        if next_leg is None:
            return

        pos1 = self._legs[next_leg - 1].position
        pos2 = self._legs[next_leg].position
        leg_course = normalize_course(pos1.angle_deg_to(pos2))
        course_diff = course_difference(pos_course.course, leg_course)

        next_leg_result = distance_meter_to_line(pos, pos1, pos2)

        if not self._switch_to_next_leg(pos, next_leg, next_leg_result, course_diff):
            return

        if self._legs[next_leg].is_missed() and not self.show_missed_approach:
            # Do not track on missed if legs are not displayed
            log.debug(f"Not switching to hidden missed approach leg {next_leg}")
            return

        log.debug(f"Switching active leg {self._active_leg} -> {next_leg} "
                  f"({self._legs[next_leg].ident}), course diff {course_diff:.1f}")
        self._active_leg = next_leg
        self._active_leg_result = self._leg_distance(pos, self._active_leg)

    def _next_leg_index(self, active: int) -> Optional[int]:
        """
        Find the candidate for the next active leg.

        Initial fixes are points instead of lines. They are skipped if they
        coincide with the previous leg, or always when leaving a hold.
        """
        next_leg = active + 1
        size = len(self._legs)
        if next_leg >= size:
            return None

        if not self._legs[active].is_hold():
            while (self._legs[next_leg].is_initial_fix() and
                   self._legs[next_leg - 1].position.almost_equal(self._legs[next_leg].position) and
                   next_leg < size - 2):
                next_leg += 1
        else:
            # Jump all initial fixes for holds since the next line can probably not overlap
            while self._legs[next_leg].is_initial_fix() and next_leg < size - 2:
                next_leg += 1
        return next_leg

    def _switch_to_next_leg(self, pos: Pos, next_leg: int,
                            next_leg_result: LineDistance, course_diff: float) -> bool:
        active = self._legs[self._active_leg]
        following = self._legs[next_leg]

        if active.is_hold():
            # Start of the next leg, the previous leg position if no procedure line is given
            next_start = (following.line.pos1 if following.line is not None
                          else self._legs[next_leg - 1].position)
            if next_start.almost_equal(active.position):
                # Hold point is the same as next leg starting point
                return (next_leg_result.status == LineDistanceStatus.ALONG_TRACK and
                        abs(next_leg_result.distance) < nm_to_meter(HOLD_EXIT_MAX_CROSS_TRACK_NM) and
                        next_leg_result.distance_from1 > nm_to_meter(HOLD_EXIT_MIN_PROGRESS_NM) and
                        course_diff < HOLD_EXIT_MAX_COURSE_DIFF_DEG)

            if active.hold_line is not None:
                # Hold point differs from next leg start - use the helper line
                hold_result = active.hold_line.distance_meter_to_line(pos)
                threshold = (-HOLD_EXIT_HELPER_THRESHOLD_NM if active.turn_direction == "R"
                             else HOLD_EXIT_HELPER_THRESHOLD_NM)
                return (hold_result.status == LineDistanceStatus.ALONG_TRACK and
                        hold_result.distance < nm_to_meter(threshold))
            # No helper line - fall through to the default rules

        if following.is_hold():
            # Ignore all other rules and use distance to hold point to activate hold
            return abs(next_leg_result.distance) < nm_to_meter(HOLD_ENTRY_DISTANCE_NM)

        if active.is_procedure_turn():
            # Ignore the after end indication since the turn can happen earlier
            return (_is_smaller(next_leg_result, self._active_leg_result, PROCEDURE_TURN_EPSILON_M) and
                    course_diff < PROCEDURE_TURN_MAX_COURSE_DIFF_DEG)

        return (self._active_leg_result.status == LineDistanceStatus.AFTER_END or
                (_is_smaller(next_leg_result, self._active_leg_result, DEFAULT_EPSILON_M) and
                 course_diff < DEFAULT_MAX_COURSE_DIFF_DEG))

    def is_active_missed(self) -> bool:
        leg = self.active_leg
        return leg is not None and leg.is_missed()

    def is_passed_last_leg(self) -> bool:
        """True if the end of the route or the start of the missed approach was passed."""
        if self._active_leg is None:
            return False

        active = self._active_leg
        at_end = (active >= len(self._legs) - 1 or
                  (active + 1 < len(self._legs) and self._legs[active + 1].is_missed()))
        return at_end and self._active_leg_result.status == LineDistanceStatus.AFTER_END

    # ------------------------------------------------------------------
    # Distances
    # ------------------------------------------------------------------

    def get_route_distances(self) -> Optional[RouteDistances]:
        """
        Calculate distances for the last tracked position.

        Missed approach legs are ignored unless the active leg is a missed
        approach leg. Curved procedure legs are measured along their geometry.
        Cross track on a curved leg comes from the geometry only. It is None
        when the position is not abeam the geometry or the geometry is
        invalid. An invalid geometry falls back to the straight distance to
        the leg end for the remaining distances.

        Returns:
            RouteDistances or None if no leg is active
        """
        if self._active_leg is None or self._active_pos is None or not self._legs:
            return None

        pos = self._active_pos.pos
        route_index = min(self._active_leg, len(self._legs) - 1)
        active = self._legs[route_index]

        curved = active.is_any_procedure() and active.has_curved_geometry()
        if curved:
            # Use arc or intercept geometry to calculate distance
            line_result = active.geometry.distance_meter_to_line_string(pos)
        else:
            line_result = self._active_leg_result

        cross_track = None
        if line_result.status == LineDistanceStatus.ALONG_TRACK:
            cross_track = meter_to_nm(line_result.distance)

        if curved and line_result.is_valid():
            dist_to_current = meter_to_nm(line_result.distance_from2)
        else:
            dist_to_current = meter_to_nm(active.position.distance_meter_to(pos))

        active_is_missed = active.is_missed()

        # Ignore missed approach legs until the active is a missed approach leg
        from_start = 0.0
        for leg in self._legs[:route_index + 1]:
            if leg.is_missed() and not active_is_missed:
                break
            from_start += leg.distance_to
        from_start = max(from_start - dist_to_current, 0.0)

        if not active_is_missed:
            to_dest = max(self._total_distance - from_start, 0.0)
        else:
            # Remaining missed approach distance
            to_dest = sum(leg.distance_to for leg in self._legs[route_index + 1:] if leg.is_missed())
            to_dest += dist_to_current

        return RouteDistances(
            dist_from_start=from_start,
            dist_to_dest=to_dest,
            next_leg_distance=dist_to_current,
            cross_track=cross_track,
        )

    def get_distance_from_start(self, pos: Pos, editable_only: bool = False) -> Optional[float]:
        """
        Calculate the distance along the route for any position abeam a leg.

        Args:
            pos: Position to check
            editable_only: Only consider editable (non procedure) legs

        Returns:
            Distance from start in nautical miles or None if the position
            is not abeam its nearest leg
        """
        index, result = self.nearest_leg(pos, editable_only)
        if index is None or result.status != LineDistanceStatus.ALONG_TRACK:
            return None

        from_start = 0.0
        for leg in self._legs[1:index]:
            if leg.is_missed():
                break
            from_start += leg.distance_to
        return max(from_start + meter_to_nm(result.distance_from1), 0.0)

    # ------------------------------------------------------------------
    # Positions along the route
    # ------------------------------------------------------------------

    def position_at_distance(self, dist_from_start_nm: float) -> Optional[Pos]:
        """
        Find the position at a distance along the route.

        Args:
            dist_from_start_nm: Distance from the origin in nautical miles

        Returns:
            Position or None if the distance is outside of the route
        """
        if not self._legs or dist_from_start_nm < 0.0 or dist_from_start_nm > self._total_distance:
            return None

        total = 0.0
        for i in range(1, len(self._legs)):
            leg = self._legs[i]
            total += leg.distance_to
            if total > dist_from_start_nm:
                # Distance is within this leg
                fraction = (dist_from_start_nm - (total - leg.distance_to)) / leg.distance_to
                if leg.has_curved_geometry():
                    return leg.geometry.interpolate(fraction)
                return self._legs[i - 1].position.interpolate(leg.position, fraction)

        # Exactly at the end of the route
        for leg in reversed(self._legs):
            if not leg.is_missed() and leg.distance_to > 0.0:
                return leg.position
        return self._legs[0].position

    def get_top_of_descent_from_destination(self, config: Optional[DescentConfig] = None) -> float:
        """Distance of the top of descent before the destination in nautical miles."""
        if not self._legs:
            return 0.0
        return top_of_descent_from_destination(self.cruise_altitude_ft,
                                               self.last().position.altitude,
                                               config or self.descent_config)

    def get_top_of_descent_from_start(self, config: Optional[DescentConfig] = None) -> float:
        """Distance of the top of descent from the origin in nautical miles."""
        if not self._legs:
            return 0.0
        return self._total_distance - self.get_top_of_descent_from_destination(config)

    def get_top_of_descent(self, config: Optional[DescentConfig] = None) -> Optional[Pos]:
        """
        Find the top of descent position.

        Returns:
            Position or None if the route is empty or too short to descend
            from cruise altitude
        """
        if not self._legs:
            return None
        return self.position_at_distance(self.get_top_of_descent_from_start(config))
