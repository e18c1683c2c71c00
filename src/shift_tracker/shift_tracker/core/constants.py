"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

ALL_WORKERS = "all"

DEFAULT_CHART_DAYS = 7
DEFAULT_TICK_SECONDS = 1.0
DEFAULT_LOCAL_TIMEZONE = "Europe/Dublin"

MS_PER_HOUR = 3_600_000
