from .calc import (
    FORMAT_12H,
    FORMAT_24H,
    FORMAT_FLOAT,
    FORMAT_RAW_FRACTION,
    INVALID_TIME,
    Coordinates,
    PrayTimes,
    Settings,
    TimeSet,
    compute_daily_times,
    format_time,
    sun_position,
)
from .methods import METHODS, CalculationMethod, resolve

__version__ = "1.0.0"
