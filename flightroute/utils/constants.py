"""module to hold constants used throughout the project"""

EARTH_RADIUS_M = 6371000
NM_TO_M = 1852.0
FT_TO_M = 0.3048
KM_TO_M = 1000.0
MI_TO_M = 1609.344

# Sentinels
INVALID_DISTANCE_VALUE = float('inf')

# Two positions closer than this (degrees) are the same point
POS_EPSILON_DEG = 0.00001

# Nearest leg search gives up beyond this distance from any segment
MAX_NEAREST_LEG_DISTANCE_NM = 100.0

# Active leg switching tolerances
HOLD_EXIT_MAX_CROSS_TRACK_NM = 0.5
HOLD_EXIT_MIN_PROGRESS_NM = 0.75
HOLD_EXIT_MAX_COURSE_DIFF_DEG = 25.0
HOLD_EXIT_HELPER_THRESHOLD_NM = 0.5
HOLD_ENTRY_DISTANCE_NM = 0.5
PROCEDURE_TURN_EPSILON_M = 100.0
PROCEDURE_TURN_MAX_COURSE_DIFF_DEG = 45.0
DEFAULT_EPSILON_M = 10.0
DEFAULT_MAX_COURSE_DIFF_DEG = 90.0


def nm_to_meter(nm: float) -> float:
    return nm * NM_TO_M


def meter_to_nm(meter: float) -> float:
    return meter / NM_TO_M
