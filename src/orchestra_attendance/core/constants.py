"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TREND_WEEKS = 4
# Percentage points per week below which a weekly trend counts as flat.
DEFAULT_TREND_SLOPE_THRESHOLD = 0.5

ACADEMIC_YEAR_START_MONTH = 9
ACADEMIC_YEAR_END_MONTH = 5

DEFAULT_FETCH_MAX_RETRIES = 3
DEFAULT_FETCH_BASE_DELAY = 1.0

INSTRUMENT_ORDER = ("Violin", "Viola", "Cello", "Bass", "Not assigned")
NOT_ASSIGNED_INSTRUMENT = INSTRUMENT_ORDER[-1]
