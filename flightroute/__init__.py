"""Active leg tracking and route distance calculation for flight plans."""

from flightroute.descent import DescentConfig
from flightroute.route import Route, RouteDistances
from flightroute.routeleg import LegType, ProcedureType, RouteLeg
from flightroute.utils.geo import Line, LineDistance, LineDistanceStatus, LineString, Pos, PosCourse
from flightroute.version import __version__

__all__ = [
    "DescentConfig",
    "LegType",
    "Line",
    "LineDistance",
    "LineDistanceStatus",
    "LineString",
    "Pos",
    "PosCourse",
    "ProcedureType",
    "Route",
    "RouteDistances",
    "RouteLeg",
    "__version__",
]
