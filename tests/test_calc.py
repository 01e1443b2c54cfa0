# tests/test_calc.py

from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from ramadanclock.calc import (
    FORMAT_12H,
    FORMAT_24H,
    FORMAT_FLOAT,
    FORMAT_RAW_FRACTION,
    INVALID_TIME,
    Coordinates,
    PrayTimes,
    TimeSet,
    _julian_date,
    compute_daily_times,
    sun_position,
)
from ramadanclock.methods import MinutesAfter, MinutesBefore, TIME_NAMES

MINUTE = 1 / 60.0
ORDERED = ["imsak", "fajr", "sunrise", "dhuhr", "asr", "sunset", "maghrib", "isha"]


def wrap(hours):
    return hours % 24


def test_julian_date():
    assert _julian_date(2000, 1, 1) == 2451544.5
    assert _julian_date(2026, 2, 18) == 2461089.5


def test_sun_position_near_equinox_and_solstice():
    decl, eqt = sun_position(_julian_date(2026, 3, 20))
    assert abs(decl) < 0.5
    decl, _ = sun_position(_julian_date(2026, 6, 21))
    assert decl == pytest.approx(23.44, abs=0.05)
    # Equation of time in early November is about +16 minutes
    _, eqt = sun_position(_julian_date(2026, 11, 3))
    assert eqt * 60 == pytest.approx(16.4, abs=0.5)


def test_new_york_isna_raw_values(new_york, ramadan_start):
    """Raw hours match a reference run of the same ephemeris."""
    times = PrayTimes("ISNA").get_raw_times(ramadan_start, new_york, -5)
    expected = {
        "imsak": 5.336247,
        "fajr": 5.502914,
        "sunrise": 6.764220,
        "dhuhr": 12.164904,
        "asr": 15.130770,
        "sunset": 17.576250,
        "maghrib": 17.576250,
        "isha": 18.837673,
        "midnight": 24.170235,
    }
    for name, value in expected.items():
        assert times[name] == pytest.approx(value, abs=1e-3), name


def test_new_york_isna_12h(new_york, ramadan_start):
    times = compute_daily_times(ramadan_start, new_york, -5, "ISNA", FORMAT_12H)
    assert isinstance(times, TimeSet)
    assert times.imsak == "5:20am"
    assert times.fajr == "5:30am"
    assert times.sunrise == "6:46am"
    assert times.dhuhr == "12:10pm"
    assert times.asr == "3:08pm"
    assert times.isha == "6:50pm"
    assert times.midnight == "12:10am"
    assert list(times.as_dict()) == list(TIME_NAMES)


def test_new_york_times_are_ordered(new_york, ramadan_start):
    times = PrayTimes("ISNA").get_raw_times(ramadan_start, new_york, -5)
    values = [times[name] for name in ORDERED]
    assert values == sorted(values)


def test_accepts_tuples_for_day_and_coordinates():
    a = PrayTimes().get_raw_times((2026, 2, 18), (40.7128, -74.0060), -5)
    b = PrayTimes().get_raw_times(date(2026, 2, 18), {"lat": 40.7128, "lng": -74.0060}, -5)
    assert a == b


def test_unknown_method_matches_isna(new_york, ramadan_start):
    unknown = PrayTimes("NoSuchMethod").get_raw_times(ramadan_start, new_york, -5)
    isna = PrayTimes("ISNA").get_raw_times(ramadan_start, new_york, -5)
    assert unknown == isna


def test_single_iteration_is_kept():
    assert PrayTimes.num_iterations == 1


def test_makkah_isha_is_ninety_minutes_after_maghrib(new_york, arctic, ramadan_start):
    for coords, day in ((new_york, ramadan_start), (arctic, date(2026, 6, 21)), (Coordinates(21.4225, 39.8262), ramadan_start)):
        times = PrayTimes("Makkah").get_raw_times(day, coords, 3)
        assert times["maghrib"] == pytest.approx(times["sunset"])
        assert times["isha"] - times["maghrib"] == pytest.approx(1.5)


def test_makkah_reference(ramadan_start):
    times = PrayTimes("Makkah").get_raw_times(ramadan_start, Coordinates(21.4225, 39.8262), 3)
    assert times["fajr"] == pytest.approx(5.544493, abs=1e-3)
    assert times["isha"] == pytest.approx(19.832603, abs=1e-3)


def test_jafari_midnight_uses_fajr(ramadan_start):
    tehran = Coordinates(35.6892, 51.389)
    times = PrayTimes("Jafari").get_raw_times(ramadan_start, tehran, 3.5)
    expected = times["sunset"] + wrap(times["fajr"] - times["sunset"]) / 2
    assert times["midnight"] == pytest.approx(expected)
    assert times["midnight"] == pytest.approx(23.680375, abs=1e-3)
    # Maghrib comes from a 4 degree angle, not from sunset
    assert times["maghrib"] == pytest.approx(18.0824, abs=1e-3)
    assert times["maghrib"] > times["sunset"]


def test_standard_midnight_uses_sunrise(new_york, ramadan_start):
    times = PrayTimes("ISNA").get_raw_times(ramadan_start, new_york, -5)
    expected = times["sunset"] + wrap(times["sunrise"] - times["sunset"]) / 2
    assert times["midnight"] == pytest.approx(expected)


def test_high_latitude_night_middle(arctic):
    pray = PrayTimes("ISNA")
    times = pray.get_raw_times(date(2026, 6, 21), arctic, 3)
    night = wrap(times["sunrise"] - times["sunset"])
    assert night == pytest.approx(1.964, abs=1e-2)
    assert times["fajr"] is not None
    assert times["isha"] is not None
    assert wrap(times["sunrise"] - times["fajr"]) == pytest.approx(night / 2)
    assert wrap(times["isha"] - times["sunset"]) == pytest.approx(night / 2)
    formatted = pray.get_times(date(2026, 6, 21), arctic, 3)
    assert formatted.fajr != INVALID_TIME
    assert formatted.isha != INVALID_TIME


@pytest.mark.parametrize("rule, fraction", [("AngleBased", 15 / 60.0), ("OneSeventh", 1 / 7.0)])
def test_high_latitude_other_rules(arctic, rule, fraction):
    times = PrayTimes("ISNA", high_lats=rule).get_raw_times(date(2026, 6, 21), arctic, 3)
    night = wrap(times["sunrise"] - times["sunset"])
    assert wrap(times["sunrise"] - times["fajr"]) == pytest.approx(night * fraction)
    assert wrap(times["isha"] - times["sunset"]) == pytest.approx(night * fraction)


def test_high_latitude_disabled_leaves_times_undefined(arctic):
    times = PrayTimes("ISNA", high_lats="None").get_times(date(2026, 6, 21), arctic, 3)
    assert times.fajr == INVALID_TIME
    assert times.isha == INVALID_TIME
    assert times.imsak == INVALID_TIME
    assert times.sunrise != INVALID_TIME


def test_high_latitude_keeps_times_within_portion(new_york, ramadan_start):
    clamped = PrayTimes("ISNA").get_raw_times(ramadan_start, new_york, -5)
    plain = PrayTimes("ISNA", high_lats="None").get_raw_times(ramadan_start, new_york, -5)
    assert clamped == plain


def test_polar_day_renders_placeholders():
    svalbard = Coordinates(lat=80.0, lng=15.0)
    times = PrayTimes("MWL").get_times(date(2026, 6, 21), svalbard, 2, time_format=FORMAT_FLOAT)
    for name in ("imsak", "fajr", "sunrise", "sunset", "maghrib", "isha", "midnight"):
        assert getattr(times, name) == INVALID_TIME, name
    assert isinstance(times.dhuhr, float)
    assert isinstance(times.asr, float)


def test_float_format_is_not_normalized(new_york, ramadan_start):
    times = compute_daily_times(ramadan_start, new_york, -5, time_format=FORMAT_FLOAT)
    assert times.midnight == pytest.approx(24.170235, abs=1e-3)


def test_raw_fraction_returns_hours(new_york, ramadan_start):
    times = compute_daily_times(ramadan_start, new_york, -5, "ISNA", FORMAT_RAW_FRACTION)
    assert isinstance(times.fajr, float)
    assert times.fajr == pytest.approx(5.502914, abs=1e-3)
    assert times.midnight == pytest.approx(24.170235, abs=1e-3)


def test_dst_adds_one_hour(new_york, ramadan_start):
    standard = PrayTimes().get_raw_times(ramadan_start, new_york, -5)
    daylight = PrayTimes().get_raw_times(ramadan_start, new_york, -5, dst=True)
    for name in TIME_NAMES:
        assert daylight[name] - standard[name] == pytest.approx(1.0)


def test_elevation_widens_day(new_york, ramadan_start):
    ground = PrayTimes().get_raw_times(ramadan_start, new_york, -5)
    summit = PrayTimes().get_raw_times(ramadan_start, Coordinates(new_york.lat, new_york.lng, 1000), -5)
    assert summit["sunrise"] < ground["sunrise"]
    assert summit["sunset"] > ground["sunset"]
    assert summit["fajr"] == pytest.approx(ground["fajr"])


def test_hanafi_asr_is_later(new_york, ramadan_start):
    standard = PrayTimes(asr_method="Standard").get_raw_times(ramadan_start, new_york, -5)
    hanafi = PrayTimes(asr_method="Hanafi").get_raw_times(ramadan_start, new_york, -5)
    assert hanafi["asr"] > standard["asr"]
    assert hanafi["asr"] < hanafi["sunset"]


def test_minute_overrides(new_york, ramadan_start):
    pray = PrayTimes("ISNA", imsak_minutes=20, dhuhr_minutes=5, maghrib_minutes=3, isha_minutes=90)
    assert pray.settings.imsak == MinutesBefore(20)
    assert pray.settings.isha == MinutesAfter(90)
    base = PrayTimes("ISNA").get_raw_times(ramadan_start, new_york, -5)
    times = pray.get_raw_times(ramadan_start, new_york, -5)
    assert times["imsak"] == pytest.approx(times["fajr"] - 20 * MINUTE)
    assert times["dhuhr"] == pytest.approx(base["dhuhr"] + 5 * MINUTE)
    assert times["maghrib"] == pytest.approx(times["sunset"] + 3 * MINUTE)
    assert times["isha"] == pytest.approx(times["maghrib"] + 90 * MINUTE)


def test_imsak_angle(new_york, ramadan_start):
    times = PrayTimes("ISNA", imsak_angle=18).get_raw_times(ramadan_start, new_york, -5)
    assert times["imsak"] < times["fajr"]
    assert times["fajr"] - times["imsak"] != pytest.approx(10 * MINUTE)


def test_tuning_offsets(new_york, ramadan_start):
    base = PrayTimes().get_raw_times(ramadan_start, new_york, -5)
    tuned = PrayTimes(offsets={"fajr": 2, "isha": -3, "bogus": 10}).get_raw_times(ramadan_start, new_york, -5)
    assert tuned["fajr"] == pytest.approx(base["fajr"] + 2 * MINUTE)
    assert tuned["isha"] == pytest.approx(base["isha"] - 3 * MINUTE)
    assert tuned["sunrise"] == pytest.approx(base["sunrise"])


def test_tuning_skips_missing_offsets(new_york, ramadan_start):
    base = PrayTimes().get_raw_times(ramadan_start, new_york, -5)
    pray = PrayTimes(offsets={"fajr": None, "isha": "2"})
    assert pray.settings.offsets["fajr"] == 0
    tuned = pray.get_raw_times(ramadan_start, new_york, -5)
    assert tuned["fajr"] == pytest.approx(base["fajr"])
    assert tuned["isha"] == pytest.approx(base["isha"] + 2 * MINUTE)


def test_settings_are_per_engine():
    a = PrayTimes("MWL", offsets={"fajr": 5})
    b = PrayTimes("MWL")
    assert a.settings.offsets["fajr"] == 5
    assert b.settings.offsets["fajr"] == 0


def test_concurrent_calls_agree(new_york):
    pray = PrayTimes("Karachi")
    days = [date(2026, 2, 18 + i) for i in range(8)]
    expected = [pray.get_times(day, new_york, -5, time_format=FORMAT_24H) for day in days]
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda day: pray.get_times(day, new_york, -5, time_format=FORMAT_24H), days))
    assert results == expected
