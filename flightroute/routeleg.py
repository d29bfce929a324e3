#!/usr/bin/env python3
"""
Route leg model.

A leg runs from the previous leg's position to its own position. Plain
route legs are straight great-circle segments. Procedure legs (SID, STAR,
approach, missed approach) may carry a curved geometry and, for holds, an
exit helper line and a turn direction.

The distance and course to the previous leg are derived values. They are
maintained by the owning Route whenever its topology changes and are
never computed per position update.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

from flightroute.utils.constants import meter_to_nm
from flightroute.utils.geo import Line, LineString, Pos, normalize_course


class LegType(enum.Enum):
    """Leg path terminator (ARINC 424 codes). NONE is a plain route waypoint."""
    NONE = ""
    INITIAL_FIX = "IF"
    START_OF_PROCEDURE = "STRT"
    TRACK_TO_FIX = "TF"
    COURSE_TO_FIX = "CF"
    DIRECT_TO_FIX = "DF"
    ARC_TO_FIX = "AF"
    RADIUS_TO_FIX = "RF"
    PROCEDURE_TURN = "PI"
    HOLD_TO_ALTITUDE = "HA"
    HOLD_TO_FIX = "HF"
    HOLD_TO_MANUAL_TERMINATION = "HM"


HOLD_TYPES = (LegType.HOLD_TO_ALTITUDE, LegType.HOLD_TO_FIX, LegType.HOLD_TO_MANUAL_TERMINATION)
INITIAL_FIX_TYPES = (LegType.INITIAL_FIX, LegType.START_OF_PROCEDURE)


class ProcedureType(enum.Flag):
    """Procedure membership of a leg."""
    NONE = 0
    SID = 1
    SID_TRANSITION = 2
    STAR = 4
    STAR_TRANSITION = 8
    TRANSITION = 16
    APPROACH = 32
    MISSED = 64

    DEPARTURE = SID | SID_TRANSITION
    STAR_ALL = STAR | STAR_TRANSITION
    ARRIVAL = TRANSITION | APPROACH | MISSED
    ALL = DEPARTURE | STAR_ALL | ARRIVAL


@dataclass
class RouteLeg:
    """
    One leg of a route.

    Attributes:
        ident: Waypoint identifier (e.g., "BOPTA", "KSEA")
        position: Leg endpoint
        leg_type: Path terminator
        procedure_type: Procedure membership flags, NONE for route legs
        geometry: Curved leg geometry from the previous endpoint to this one.
            More than two points means a true curve.
        line: The procedure leg's own start/end line. Used to check if a
            hold exits at the start of the following leg.
        hold_line: Exit helper line for holds
        turn_direction: "L" or "R" for holds and turns, empty otherwise
        is_airport: True if the leg terminates at an airport
        distance_to: Distance from the previous leg in nautical miles
        course_to: True course from the previous leg in degrees
    """
    ident: str
    position: Pos
    leg_type: LegType = LegType.NONE
    procedure_type: ProcedureType = ProcedureType.NONE
    geometry: LineString = field(default_factory=LineString)
    line: Optional[Line] = None
    hold_line: Optional[Line] = None
    turn_direction: str = ""
    is_airport: bool = False
    distance_to: float = 0.0
    course_to: float = 0.0

    def __post_init__(self):
        self.turn_direction = (self.turn_direction or "").upper()

    def is_hold(self) -> bool:
        return self.leg_type in HOLD_TYPES

    def is_initial_fix(self) -> bool:
        """Initial fix or start of procedure, both zero length placeholder points."""
        return self.leg_type in INITIAL_FIX_TYPES

    def is_procedure_turn(self) -> bool:
        return self.leg_type == LegType.PROCEDURE_TURN

    def is_missed(self) -> bool:
        return bool(self.procedure_type & ProcedureType.MISSED)

    def is_any_procedure(self) -> bool:
        return bool(self.procedure_type & ProcedureType.ALL)

    def is_route(self) -> bool:
        return not self.is_any_procedure()

    def is_any_departure(self) -> bool:
        return bool(self.procedure_type & ProcedureType.DEPARTURE)

    def is_any_star(self) -> bool:
        return bool(self.procedure_type & ProcedureType.STAR_ALL)

    def is_arrival(self) -> bool:
        return bool(self.procedure_type & ProcedureType.ARRIVAL)

    def has_curved_geometry(self) -> bool:
        return len(self.geometry) > 2

    def update_distance_and_course(self, index: int, prev: Optional["RouteLeg"]) -> None:
        """
        Recalculate distance and course from the previous leg.

        Args:
            index: Position of this leg in the route
            prev: Previous leg, None for the first one
        """
        if index == 0 or prev is None:
            self.distance_to = 0.0
            self.course_to = 0.0
        elif self.has_curved_geometry():
            self.distance_to = meter_to_nm(self.geometry.length_meter())
            self.course_to = normalize_course(self.geometry[-2].angle_deg_to(self.geometry[-1]))
        elif prev.position.almost_equal(self.position):
            self.distance_to = 0.0
            self.course_to = 0.0
        else:
            self.distance_to = meter_to_nm(prev.position.distance_meter_to(self.position))
            self.course_to = normalize_course(prev.position.angle_deg_to(self.position))

    def __repr__(self) -> str:
        return (f"RouteLeg({self.ident!r}, {self.leg_type.name}, {self.procedure_type}, "
                f"lat={self.position.lat_y:.5f}, lon={self.position.lon_x:.5f}, "
                f"dist={self.distance_to:.2f}nm)")
