import copy
import json
import logging
import os

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".config", "ramadan-clock")
CONFIG_PATH = os.path.join(CONFIG_DIR, "config.json")

DEFAULT_CONFIG = {
    "location": None,
    "locations": {},
    "default_tz": None,
    "method": "ISNA",
    "asr_method": "Standard",
    "high_lats": "NightMiddle",
    "imsak_minutes": 10,
    "dhuhr_minutes": 0,
    "maghrib_minutes": None,
    "isha_minutes": None,
    "adjustments": {
        "imsak": 0,
        "fajr": 0,
        "sunrise": 0,
        "dhuhr": 0,
        "asr": 0,
        "sunset": 0,
        "maghrib": 0,
        "isha": 0,
        "midnight": 0
    },
    "time_format": "12h",
    "ramadan_start": "2026-02-18",
    "ramadan_days": 31
}


def _merge(base, override):
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path=CONFIG_PATH):
    """Return the default config overlaid with the JSON file at path, if any."""
    if not os.path.exists(path):
        logger.debug("No config at %s, using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file {path}: expected a JSON object")
    return _merge(copy.deepcopy(DEFAULT_CONFIG), data)


def get_location(config, location_key=None):
    location_key = location_key or config.get("location")
    if not location_key:
        return None, None
    loc = config.get("locations", {}).get(location_key)
    if loc is None:
        raise ValueError(f"Unknown location: {location_key}")
    if loc.get("lat") is None or loc.get("lng") is None:
        raise ValueError(f"Location {location_key} has no coordinates")
    return location_key, loc


def engine_options(config):
    """Map config keys onto PrayTimes keyword options."""
    return {
        "asr_method": config.get("asr_method", "Standard"),
        "high_lats": config.get("high_lats", "NightMiddle"),
        "imsak_minutes": config.get("imsak_minutes", 10),
        "dhuhr_minutes": config.get("dhuhr_minutes", 0),
        "maghrib_minutes": config.get("maghrib_minutes"),
        "isha_minutes": config.get("isha_minutes"),
        "offsets": config.get("adjustments", {})
    }
