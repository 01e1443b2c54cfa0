import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Angle:
    """Sun depression below the horizon, in degrees."""
    degrees: float


@dataclass(frozen=True)
class MinutesBefore:
    """Fixed number of minutes before an anchor time."""
    minutes: float


@dataclass(frozen=True)
class MinutesAfter:
    """Fixed number of minutes after an anchor time."""
    minutes: float


MIDNIGHT_STANDARD = "Standard"
MIDNIGHT_JAFARI = "Jafari"

HIGH_LATS_NIGHT_MIDDLE = "NightMiddle"
HIGH_LATS_ANGLE_BASED = "AngleBased"
HIGH_LATS_ONE_SEVENTH = "OneSeventh"
HIGH_LATS_NONE = "None"
HIGH_LATS_RULES = (HIGH_LATS_NIGHT_MIDDLE, HIGH_LATS_ANGLE_BASED, HIGH_LATS_ONE_SEVENTH, HIGH_LATS_NONE)

ASR_FACTORS = {"standard": 1, "shafi": 1, "maliki": 1, "hanbali": 1, "hanafi": 2}

DEFAULT_METHOD = "ISNA"

TIME_NAMES = ("imsak", "fajr", "sunrise", "dhuhr", "asr", "sunset", "maghrib", "isha", "midnight")


@dataclass(frozen=True)
class CalculationMethod:
    key: str
    name: str
    fajr: Angle
    isha: Union[Angle, MinutesAfter]
    maghrib: Union[Angle, MinutesAfter] = MinutesAfter(0)
    midnight: str = MIDNIGHT_STANDARD


METHODS = MappingProxyType({
    "MWL": CalculationMethod(
        "MWL", "Muslim World League",
        fajr=Angle(18), isha=Angle(17)),
    "ISNA": CalculationMethod(
        "ISNA", "Islamic Society of North America (ISNA)",
        fajr=Angle(15), isha=Angle(15)),
    "Egypt": CalculationMethod(
        "Egypt", "Egyptian General Authority of Survey",
        fajr=Angle(19.5), isha=Angle(17.5)),
    "Makkah": CalculationMethod(
        "Makkah", "Umm Al-Qura University, Makkah",
        fajr=Angle(18.5), isha=MinutesAfter(90)),
    "Karachi": CalculationMethod(
        "Karachi", "University of Islamic Sciences, Karachi",
        fajr=Angle(18), isha=Angle(18)),
    "Tehran": CalculationMethod(
        "Tehran", "Institute of Geophysics, University of Tehran",
        fajr=Angle(17.7), isha=Angle(14), maghrib=Angle(4.5), midnight=MIDNIGHT_JAFARI),
    "Jafari": CalculationMethod(
        "Jafari", "Shia Ithna-Ashari, Leva Institute, Qum",
        fajr=Angle(16), isha=Angle(14), maghrib=Angle(4), midnight=MIDNIGHT_JAFARI),
})


def resolve(method_key=None):
    """Look up a calculation method, falling back to ISNA for unknown or missing names."""
    method = METHODS.get(method_key)
    if method is None:
        if method_key:
            logger.debug("Unknown calculation method %r, falling back to %s", method_key, DEFAULT_METHOD)
        return METHODS[DEFAULT_METHOD]
    return method


def asr_factor(asr_method):
    if isinstance(asr_method, (int, float)):
        return float(asr_method)
    return ASR_FACTORS.get(str(asr_method).lower(), 2)
