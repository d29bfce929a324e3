#!/usr/bin/env python3
"""
Top of descent rule.

The descent rule is expressed the way pilots state it: a distance needed
per 1000 units of altitude to lose, e.g. 3 nm per 1000 ft. Both units are
configurable so the same rule can be given as km per 1000 m.

Usage:
    from flightroute.descent import DescentConfig, top_of_descent_from_destination

    config = DescentConfig(tod_rule=3.0)
    dist_nm = top_of_descent_from_destination(35000, 433, config)  # ~103.7 nm
"""

from dataclasses import dataclass

from flightroute.utils.constants import FT_TO_M, KM_TO_M, MI_TO_M, NM_TO_M


DISTANCE_UNITS_M = {
    "nm": NM_TO_M,
    "km": KM_TO_M,
    "mi": MI_TO_M,
}

ALTITUDE_UNITS_M = {
    "ft": FT_TO_M,
    "m": 1.0,
}

DEFAULT_TOD_RULE = 3.0


@dataclass
class DescentConfig:
    """
    Descent rule settings.

    Attributes:
        tod_rule: Distance units needed per 1000 altitude units of descent
        distance_unit: Unit of tod_rule distance ("nm", "km" or "mi")
        altitude_unit: Unit of the 1000 altitude reference ("ft" or "m")

    Example:
        DescentConfig(tod_rule=5.0, distance_unit="km", altitude_unit="m")
        means "5 km for every 1000 m to lose"
    """

    tod_rule: float = DEFAULT_TOD_RULE
    distance_unit: str = "nm"
    altitude_unit: str = "ft"

    def __post_init__(self):
        """Validate and normalize values after initialization."""
        # Handles string inputs from config
        self.tod_rule = float(self.tod_rule)
        self.distance_unit = str(self.distance_unit).strip().lower()
        self.altitude_unit = str(self.altitude_unit).strip().lower()

        if self.tod_rule <= 0.0:
            raise ValueError(f"Descent rule must be positive, got {self.tod_rule}")
        if self.distance_unit not in DISTANCE_UNITS_M:
            raise ValueError(f"Unknown distance unit {self.distance_unit!r}")
        if self.altitude_unit not in ALTITUDE_UNITS_M:
            raise ValueError(f"Unknown altitude unit {self.altitude_unit!r}")

    @property
    def nm_per_1000ft(self) -> float:
        """Descent rule converted to nautical miles per 1000 feet."""
        rule_nm = self.tod_rule * DISTANCE_UNITS_M[self.distance_unit] / NM_TO_M
        reference_ft = 1000.0 * ALTITUDE_UNITS_M[self.altitude_unit] / FT_TO_M
        return rule_nm / reference_ft * 1000.0


def top_of_descent_from_destination(cruise_altitude_ft: float,
                                    destination_elevation_ft: float,
                                    config: DescentConfig) -> float:
    """
    Calculate the distance of the top of descent before the destination.

    Args:
        cruise_altitude_ft: Planned cruise altitude in feet
        destination_elevation_ft: Destination elevation in feet
        config: Descent rule

    Returns:
        Distance in nautical miles. Negative if the destination is above
        the cruise altitude.
    """
    diff_ft = cruise_altitude_ft - destination_elevation_ft
    return diff_ft / 1000.0 * config.nm_per_1000ft
