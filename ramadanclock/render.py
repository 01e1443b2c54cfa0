import logging
import re
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .calc import FORMAT_12H, FORMAT_24H, INVALID_TIME, PrayTimes, format_time
from .methods import DEFAULT_METHOD

logger = logging.getLogger(__name__)

CALENDAR_PRODID = "-//RamadanClock//EN"
SEHRI_LEAD = timedelta(minutes=30)
IFTAAR_LENGTH = timedelta(minutes=30)
FOLD_LIMIT = 75

_ICAL_SPECIAL_RE = re.compile(r"([\\;,])")

TEXT_ORDER = [
    ("Imsak", "imsak"),
    ("Fajr", "fajr"),
    ("Sunrise", "sunrise"),
    ("Dhuhr", "dhuhr"),
    ("Asr", "asr"),
    ("Sunset", "sunset"),
    ("Maghrib", "maghrib"),
    ("Isha", "isha"),
    ("Midnight", "midnight")
]


def get_timezone(tz_name):
    if tz_name:
        return ZoneInfo(tz_name)
    return datetime.now().astimezone().tzinfo


def tz_hours_for_day(day, tzinfo):
    dt = datetime(day.year, day.month, day.day, 0, 0, 0, tzinfo=tzinfo)
    offset = dt.utcoffset()
    return offset.total_seconds() / 3600.0 if offset else 0.0


def render_json(day, coords, tz_name, tz_offset, method_key, times):
    return {
        "date": day.isoformat(),
        "coordinates": {"lat": coords.lat, "lng": coords.lng},
        "timezone": tz_name,
        "timezoneOffset": tz_offset,
        "method": method_key,
        "times": times.as_dict()
    }


def render_text(times, method_name, asr_method, location_label):
    lines = [f"{location_label} ({method_name}, Asr: {asr_method})"]
    for label, key in TEXT_ORDER:
        lines.append(f"{label:<9}{getattr(times, key)}")
    return "\n".join(lines)


def escape_text(value):
    return _ICAL_SPECIAL_RE.sub(r"\\\1", value)


def fold_line(line, limit=FOLD_LIMIT):
    """Split a content line into CRLF-joined chunks of at most limit octets."""
    chunks = []
    current = ""
    size = 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > limit:
            chunks.append(current)
            current = " "
            size = 1
        current += char
        size += width
    chunks.append(current)
    return "\r\n".join(chunks)


def _clock_time(value):
    if value == INVALID_TIME:
        return None
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _ical_datetime(dt):
    return dt.strftime("%Y%m%dT%H%M%S")


def _event(kind, day, tz_name, stamp, start, end, summary, description, trigger, alarm):
    tzid = f";TZID={tz_name}" if tz_name else ""
    return [
        "BEGIN:VEVENT",
        f"UID:{kind}-{day.isoformat()}@ramadan-clock",
        f"DTSTAMP:{stamp}",
        f"DTSTART{tzid}:{_ical_datetime(start)}",
        f"DTEND{tzid}:{_ical_datetime(end)}",
        f"SUMMARY:{escape_text(summary)}",
        f"DESCRIPTION:{escape_text(description)}",
        "BEGIN:VALARM",
        f"TRIGGER:{trigger}",
        "ACTION:DISPLAY",
        f"DESCRIPTION:{escape_text(alarm)}",
        "END:VALARM",
        "END:VEVENT"
    ]


def render_calendar(start, coords, tz_name=None, method_key=DEFAULT_METHOD, days=31, now=None, utc_offset=0.0, **options):
    """Build the Ramadan iCalendar document with a Sehri and an Iftaar event per day.

    With a tz_name the offset is looked up for every day and events carry a TZID,
    otherwise the fixed utc_offset is used and events are floating local times.
    """
    pray = PrayTimes(method_key, **options)
    tzinfo = ZoneInfo(tz_name) if tz_name else None
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{CALENDAR_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:Ramadan {start.year}"
    ]
    if tz_name:
        lines.append(f"X-WR-TIMEZONE:{tz_name}")

    for i in range(days):
        day = start + timedelta(days=i)
        day_num = i + 1
        offset = tz_hours_for_day(day, tzinfo) if tzinfo else utc_offset
        raw = pray.get_raw_times(day, coords, offset)
        fajr = _clock_time(format_time(raw["fajr"], FORMAT_24H))
        maghrib = _clock_time(format_time(raw["maghrib"], FORMAT_24H))

        if fajr is not None:
            fajr_dt = datetime.combine(day, fajr)
            lines.extend(_event(
                "sehri", day, tz_name, stamp,
                fajr_dt - SEHRI_LEAD, fajr_dt,
                f"Sehri - Day {day_num}",
                f"Fajr at {format_time(raw['fajr'], FORMAT_12H)}. Stop eating by Fajr.",
                "-PT10M", "Sehri ending soon",
            ))
        else:
            logger.warning("No Fajr time on %s, skipping Sehri event", day.isoformat())

        if maghrib is not None:
            maghrib_dt = datetime.combine(day, maghrib)
            lines.extend(_event(
                "iftaar", day, tz_name, stamp,
                maghrib_dt, maghrib_dt + IFTAAR_LENGTH,
                f"Iftaar - Day {day_num}",
                f"Maghrib at {format_time(raw['maghrib'], FORMAT_12H)}. Break your fast!",
                "PT0M", "Time to break your fast!",
            ))
        else:
            logger.warning("No Maghrib time on %s, skipping Iftaar event", day.isoformat())

    lines.append("END:VCALENDAR")
    return "".join(fold_line(line) + "\r\n" for line in lines)


def describe_location(coords, label=None):
    if label:
        return label
    return f"{coords.lat:.4f}, {coords.lng:.4f}"
