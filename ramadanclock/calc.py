import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Union

from .methods import (
    DEFAULT_METHOD,
    HIGH_LATS_ANGLE_BASED,
    HIGH_LATS_NIGHT_MIDDLE,
    HIGH_LATS_NONE,
    HIGH_LATS_ONE_SEVENTH,
    MIDNIGHT_JAFARI,
    TIME_NAMES,
    Angle,
    CalculationMethod,
    MinutesAfter,
    MinutesBefore,
    asr_factor,
    resolve,
)

logger = logging.getLogger(__name__)

FORMAT_24H = "24h"
FORMAT_12H = "12h"
FORMAT_12H_NO_SUFFIX = "12hNS"
FORMAT_FLOAT = "Float"
FORMAT_RAW_FRACTION = "rawFraction"
TIME_FORMATS = (FORMAT_24H, FORMAT_12H, FORMAT_12H_NO_SUFFIX, FORMAT_FLOAT, FORMAT_RAW_FRACTION)

INVALID_TIME = "-----"
TIME_SUFFIXES = ("am", "pm")

_SEED_TIMES = {
    "imsak": 5,
    "fajr": 5,
    "sunrise": 6,
    "dhuhr": 12,
    "asr": 13,
    "sunset": 18,
    "maghrib": 18,
    "isha": 18
}


def _dtr(d):
    return (d * math.pi) / 180.0


def _rtd(r):
    return (r * 180.0) / math.pi


def _sin(d):
    return math.sin(_dtr(d))


def _cos(d):
    return math.cos(_dtr(d))


def _tan(d):
    return math.tan(_dtr(d))


def _arcsin(x):
    return _rtd(math.asin(x))


def _arccos(x):
    return _rtd(math.acos(x))


def _arccot(x):
    return _rtd(math.atan(1.0 / x))


def _arctan2(y, x):
    return _rtd(math.atan2(y, x))


def _fix_angle(a):
    return a - 360.0 * math.floor(a / 360.0)


def _fix_hour(h):
    return h - 24.0 * math.floor(h / 24.0)


def _offset(time, minutes):
    if time is None:
        return None
    return time + minutes / 60.0


def _julian_date(y, m, d):
    if m <= 2:
        y -= 1
        m += 12
    a = math.floor(y / 100)
    b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (y + 4716)) + math.floor(30.6001 * (m + 1)) + d + b - 1524.5


def sun_position(jd):
    """Return the sun's declination (degrees) and the equation of time (hours) at a Julian date."""
    d = jd - 2451545.0
    g = _fix_angle(357.529 + 0.98560028 * d)
    q = _fix_angle(280.459 + 0.98564736 * d)
    L = _fix_angle(q + 1.915 * _sin(g) + 0.020 * _sin(2 * g))
    e = 23.439 - 0.00000036 * d
    ra = _fix_hour(_arctan2(_cos(e) * _sin(L), _cos(L)) / 15.0)
    eqt = q / 15.0 - ra
    decl = _arcsin(_sin(e) * _sin(L))
    return decl, eqt


def format_time(time, time_format=FORMAT_24H, suffixes=TIME_SUFFIXES):
    """Render an hour value; undefined values always become INVALID_TIME."""
    if isinstance(time, str):
        return time
    if time is None or math.isnan(time):
        return INVALID_TIME
    if time_format in (FORMAT_FLOAT, FORMAT_RAW_FRACTION):
        return time

    time = _fix_hour(time + 0.5 / 60.0)
    hours = int(math.floor(time))
    minutes = int(math.floor((time - hours) * 60))
    if time_format == FORMAT_24H:
        return f"{hours:02d}:{minutes:02d}"
    suffix = suffixes[0 if hours < 12 else 1] if time_format == FORMAT_12H else ""
    return f"{(hours + 11) % 12 + 1}:{minutes:02d}{suffix}"


@dataclass
class Coordinates:
    lat: float
    lng: float
    elevation: float = 0.0


@dataclass(frozen=True)
class ComputationContext:
    jdate: float
    utc_offset: float
    lat: float
    lng: float
    elevation: float


@dataclass
class Settings:
    """Per-engine calculation parameters derived from a CalculationMethod."""

    method: CalculationMethod
    fajr: Angle
    isha: Union[Angle, MinutesAfter]
    maghrib: Union[Angle, MinutesAfter]
    midnight: str
    imsak: Union[Angle, MinutesBefore] = MinutesBefore(10)
    dhuhr_minutes: float = 0.0
    asr: Union[str, float] = "Standard"
    high_lats: str = HIGH_LATS_NIGHT_MIDDLE
    offsets: Dict[str, float] = field(default_factory=lambda: {name: 0 for name in TIME_NAMES})

    @classmethod
    def for_method(
        cls,
        method,
        asr_method="Standard",
        imsak_minutes=10,
        imsak_angle=None,
        dhuhr_minutes=0,
        maghrib_minutes=None,
        isha_minutes=None,
        high_lats=HIGH_LATS_NIGHT_MIDDLE,
        offsets=None,
    ):
        settings = cls(
            method=method,
            fajr=method.fajr,
            isha=method.isha,
            maghrib=method.maghrib,
            midnight=method.midnight,
            imsak=Angle(imsak_angle) if imsak_angle is not None else MinutesBefore(imsak_minutes),
            dhuhr_minutes=dhuhr_minutes,
            asr=asr_method,
            high_lats=high_lats,
        )
        if maghrib_minutes is not None:
            settings.maghrib = MinutesAfter(maghrib_minutes)
        if isha_minutes is not None:
            settings.isha = MinutesAfter(isha_minutes)
        if offsets:
            settings.tune(offsets)
        return settings

    def tune(self, offsets):
        for name, minutes in offsets.items():
            if name in self.offsets and minutes is not None:
                self.offsets[name] = float(minutes)


@dataclass
class TimeSet:
    imsak: Union[str, float]
    fajr: Union[str, float]
    sunrise: Union[str, float]
    dhuhr: Union[str, float]
    asr: Union[str, float]
    sunset: Union[str, float]
    maghrib: Union[str, float]
    isha: Union[str, float]
    midnight: Union[str, float]

    def as_dict(self):
        return {name: getattr(self, name) for name in TIME_NAMES}


def _as_coordinates(coords):
    if isinstance(coords, Coordinates):
        return coords
    if isinstance(coords, Mapping):
        return Coordinates(**coords)
    return Coordinates(*coords)


def _as_ymd(day):
    if isinstance(day, (tuple, list)):
        return tuple(day)
    return day.year, day.month, day.day


class PrayTimes:
    num_iterations = 1

    def __init__(self, method_key=DEFAULT_METHOD, **options):
        self.method = resolve(method_key)
        self.settings = Settings.for_method(self.method, **options)

    def get_times(self, day, coords, tz_hours, dst=False, time_format=FORMAT_24H):
        times = self.get_raw_times(day, coords, tz_hours, dst)
        return TimeSet(**{name: format_time(times[name], time_format) for name in TIME_NAMES})

    def get_raw_times(self, day, coords, tz_hours, dst=False):
        """Compute the nine times as hours (None where undefined) before formatting."""
        coords = _as_coordinates(coords)
        y, m, d = _as_ymd(day)
        ctx = ComputationContext(
            jdate=_julian_date(y, m, d) - coords.lng / (15 * 24),
            utc_offset=tz_hours + (1 if dst else 0),
            lat=coords.lat,
            lng=coords.lng,
            elevation=coords.elevation or 0.0,
        )
        times = dict(_SEED_TIMES)
        for _ in range(self.num_iterations):
            times = self._compute_prayer_times(ctx, times)
        times = self._adjust_times(ctx, times)
        times["midnight"] = self._compute_midnight(times)
        return self._tune_times(times)

    def _mid_day(self, ctx, time):
        if time is None:
            return None
        _, eqt = sun_position(ctx.jdate + time)
        return _fix_hour(12 - eqt)

    def _sun_angle_time(self, ctx, angle, time, direction):
        if time is None:
            return None
        decl, _ = sun_position(ctx.jdate + time)
        noon = self._mid_day(ctx, time)
        x = (-_sin(angle) - _sin(decl) * _sin(ctx.lat)) / (_cos(decl) * _cos(ctx.lat))
        if not -1.0 <= x <= 1.0:
            return None
        t = _arccos(x) / 15.0
        return noon - t if direction == "ccw" else noon + t

    def _angle_time(self, ctx, param, time, direction):
        # minute-based parameters are resolved from their anchors in _adjust_times
        if not isinstance(param, Angle):
            return None
        return self._sun_angle_time(ctx, param.degrees, time, direction)

    def _asr_time(self, ctx, factor, time):
        if time is None:
            return None
        decl, _ = sun_position(ctx.jdate + time)
        angle = -_arccot(factor + _tan(abs(ctx.lat - decl)))
        return self._sun_angle_time(ctx, angle, time, "cw")

    def _rise_set_angle(self, ctx):
        return 0.833 + 0.0347 * math.sqrt(ctx.elevation)

    def _compute_prayer_times(self, ctx, times):
        times = {k: (None if v is None else v / 24) for k, v in times.items()}
        s = self.settings
        rise_set = self._rise_set_angle(ctx)
        return {
            "imsak": self._angle_time(ctx, s.imsak, times["imsak"], "ccw"),
            "fajr": self._angle_time(ctx, s.fajr, times["fajr"], "ccw"),
            "sunrise": self._sun_angle_time(ctx, rise_set, times["sunrise"], "ccw"),
            "dhuhr": self._mid_day(ctx, times["dhuhr"]),
            "asr": self._asr_time(ctx, asr_factor(s.asr), times["asr"]),
            "sunset": self._sun_angle_time(ctx, rise_set, times["sunset"], "cw"),
            "maghrib": self._angle_time(ctx, s.maghrib, times["maghrib"], "cw"),
            "isha": self._angle_time(ctx, s.isha, times["isha"], "cw")
        }

    def _adjust_times(self, ctx, times):
        s = self.settings
        tz_adjust = ctx.utc_offset - ctx.lng / 15.0
        times = {k: (None if v is None else v + tz_adjust) for k, v in times.items()}

        if s.high_lats != HIGH_LATS_NONE:
            times = self._adjust_high_lats(times)

        if isinstance(s.imsak, MinutesBefore):
            times["imsak"] = _offset(times["fajr"], -s.imsak.minutes)
        if isinstance(s.maghrib, MinutesAfter):
            times["maghrib"] = _offset(times["sunset"], s.maghrib.minutes)
        if isinstance(s.isha, MinutesAfter):
            times["isha"] = _offset(times["maghrib"], s.isha.minutes)

        times["dhuhr"] = _offset(times["dhuhr"], s.dhuhr_minutes)
        return times

    def _adjust_high_lats(self, times):
        s = self.settings
        night = self._time_diff(times["sunset"], times["sunrise"])
        for name, base, direction in (
            ("imsak", "sunrise", "ccw"),
            ("fajr", "sunrise", "ccw"),
            ("isha", "sunset", "cw"),
            ("maghrib", "sunset", "cw"),
        ):
            param = getattr(s, name)
            if isinstance(param, Angle):
                times[name] = self._adjust_hl_time(name, times[name], times[base], param.degrees, night, direction)
        return times

    def _adjust_hl_time(self, name, time, base, angle, night, direction):
        portion = self._night_portion(angle, night)
        if base is None or portion is None:
            return time
        if time is not None:
            diff = self._time_diff(time, base) if direction == "ccw" else self._time_diff(base, time)
            if diff <= portion:
                return time
        logger.debug("High latitude adjustment for %s: %.2f hour portion (%s)", name, portion, self.settings.high_lats)
        return base - portion if direction == "ccw" else base + portion

    def _night_portion(self, angle, night):
        if night is None:
            return None
        rule = self.settings.high_lats
        portion = 1 / 2.0
        if rule == HIGH_LATS_ANGLE_BASED:
            portion = angle / 60.0
        elif rule == HIGH_LATS_ONE_SEVENTH:
            portion = 1 / 7.0
        return portion * night

    def _compute_midnight(self, times):
        if self.settings.midnight == MIDNIGHT_JAFARI:
            anchor = times["fajr"]
        else:
            anchor = times["sunrise"]
        gap = self._time_diff(times["sunset"], anchor)
        if gap is None:
            return None
        return times["sunset"] + gap / 2.0

    def _tune_times(self, times):
        offsets = self.settings.offsets
        return {name: _offset(times[name], offsets.get(name, 0)) for name in TIME_NAMES}

    def _time_diff(self, time1, time2):
        if time1 is None or time2 is None:
            return None
        return _fix_hour(time2 - time1)


def compute_daily_times(
    day,
    coords,
    utc_offset,
    method_key=DEFAULT_METHOD,
    time_format=FORMAT_24H,
    offsets=None,
    dst=False,
    **options
):
    """Compute one day's prayer times for a location and a UTC offset in hours."""
    pray = PrayTimes(method_key, offsets=offsets, **options)
    return pray.get_times(day, coords, utc_offset, dst=dst, time_format=time_format)
