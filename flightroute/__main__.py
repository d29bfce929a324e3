#!/usr/bin/env python3
"""
Command line front end.

    flightroute KSEA:47.449,-122.309,433 SEA:47.435,-122.310 \\
        BTG:45.748,-122.592 KPDX:45.589,-122.597,31 \\
        --position 46.5,-122.45 --course 175 --cruise 12000
"""

import sys
import argparse

from flightroute.logsetup import setuplogs
from flightroute.route import Route
from flightroute.routeleg import RouteLeg
from flightroute.rtconfig import RTConfig
from flightroute.utils.geo import Pos
from flightroute.version import __version__

import logging
log = logging.getLogger(__name__)


def parse_position(text):
    """Parse LAT,LON[,ALT] into a Pos."""
    try:
        values = [float(v) for v in text.split(',')]
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a position: {text!r}")
    if len(values) not in (2, 3):
        raise argparse.ArgumentTypeError(f"expected LAT,LON[,ALT]: {text!r}")

    pos = Pos(values[1], values[0], values[2] if len(values) == 3 else 0.0)
    if not pos.is_valid():
        raise argparse.ArgumentTypeError(f"position out of range: {text!r}")
    return pos


def parse_waypoint(text):
    """Parse IDENT:LAT,LON[,ALT] into a route leg."""
    ident, sep, coords = text.partition(':')
    if not sep or not ident:
        raise argparse.ArgumentTypeError(f"expected IDENT:LAT,LON[,ALT]: {text!r}")
    return RouteLeg(ident, parse_position(coords))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="flightroute: active leg and route distances for a flight plan"
    )
    parser.add_argument(
        "waypoints",
        help = "Route waypoints in flight order as IDENT:LAT,LON[,ALT]",
        nargs="+",
        type=parse_waypoint
    )
    parser.add_argument(
        "-p",
        "--position",
        help = "Aircraft position as LAT,LON",
        type=parse_position
    )
    parser.add_argument(
        "--course",
        help = "Aircraft true course in degrees",
        default=0.0,
        type=float
    )
    parser.add_argument(
        "--cruise",
        help = "Cruise altitude in feet, enables the top of descent",
        default=0.0,
        type=float
    )
    parser.add_argument(
        "-c",
        "--config",
        help = "Config file (default ~/.flightroute)",
        default=None
    )

    args = parser.parse_args(argv)

    cfg = RTConfig(conf_file=args.config)
    setuplogs(cfg)
    log.info(f"flightroute version: {__version__}")

    route = Route.from_config(cfg, args.waypoints, cruise_altitude_ft=args.cruise)
    log.info(f"Loaded {route}")
    print(f"Route: {route.size()} legs, {route.total_distance:.1f} nm")

    if args.cruise > 0.0:
        tod = route.get_top_of_descent()
        if tod is None:
            print("Top of descent: route too short")
        else:
            print(f"Top of descent: {tod.lat_y:.4f},{tod.lon_x:.4f} "
                  f"({route.get_top_of_descent_from_destination():.1f} nm before destination)")

    if args.position is None:
        return 0

    route.update_active_leg(args.position, args.course)
    distances = route.get_route_distances()
    if distances is None:
        print("Position is not near the route")
        return 1

    print(f"Active leg: {route.active_leg_index} ({route.active_leg.ident})")
    print(f"From start: {distances.dist_from_start:.1f} nm")
    print(f"To destination: {distances.dist_to_dest:.1f} nm")
    print(f"To next waypoint: {distances.next_leg_distance:.1f} nm")
    if distances.cross_track is not None:
        print(f"Cross track: {distances.cross_track:.2f} nm")
    return 0


if __name__ == "__main__":
    sys.exit(main())
