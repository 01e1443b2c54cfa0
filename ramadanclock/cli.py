import argparse
import json
import logging
import sys
from datetime import date, datetime

from .calc import TIME_FORMATS, Coordinates, PrayTimes
from .config import CONFIG_PATH, engine_options, get_location, load_config
from .methods import DEFAULT_METHOD, HIGH_LATS_RULES, METHODS, TIME_NAMES
from .render import describe_location, get_timezone, render_calendar, render_json, render_text, tz_hours_for_day

logger = logging.getLogger(__name__)


def _parse_date(value):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value} (expected YYYY-MM-DD)") from exc


def _apply_overrides(args, config):
    if args.method:
        config["method"] = args.method
    if args.asr:
        config["asr_method"] = args.asr
    if args.high_lats:
        config["high_lats"] = args.high_lats
    if args.format:
        config["time_format"] = args.format
    for prayer, minutes in args.offset or []:
        prayer_key = prayer.lower()
        if prayer_key not in TIME_NAMES:
            raise ValueError(f"Unknown prayer for offset: {prayer}")
        try:
            config["adjustments"][prayer_key] = float(minutes)
        except ValueError as exc:
            raise ValueError(f"Invalid offset for {prayer}: {minutes}") from exc


def _resolve_coordinates(args, config):
    if args.lat is not None or args.lng is not None:
        if args.lat is None or args.lng is None:
            raise ValueError("Both --lat and --lng are required")
        coords = Coordinates(lat=args.lat, lng=args.lng, elevation=args.elevation or 0.0)
        return coords, None, args.tz or config.get("default_tz")

    location_key, loc = get_location(config, args.location)
    if loc is None:
        raise ValueError("No location given (use --lat/--lng or --location)")
    elevation = args.elevation if args.elevation is not None else loc.get("elevation", 0.0)
    coords = Coordinates(lat=float(loc["lat"]), lng=float(loc["lng"]), elevation=float(elevation or 0.0))
    return coords, loc.get("label") or location_key, args.tz or loc.get("tz") or config.get("default_tz")


def _print_calendar(args, config, coords, tz_name, method_key, options):
    start = _parse_date(args.start or config["ramadan_start"])
    days = args.days or config["ramadan_days"]
    if args.utc_offset is not None or not tz_name:
        if args.utc_offset is not None:
            offset = args.utc_offset
        else:
            offset = tz_hours_for_day(start, get_timezone(None))
        offset += 1 if args.dst else 0
        text = render_calendar(start, coords, None, method_key, days, utc_offset=offset, **options)
    else:
        if args.dst:
            raise ValueError("--dst only applies with --utc-offset or the system zone")
        text = render_calendar(start, coords, tz_name, method_key, days, **options)
    sys.stdout.write(text)
    return 0


def handle_cli(args):
    config = load_config(args.config)

    if args.list_methods:
        for key, method in METHODS.items():
            print(f"{key}: {method.name}")
        return 0

    if args.list_locations:
        for name, loc in config.get("locations", {}).items():
            label = loc.get("label") or name
            tz = loc.get("tz", "local")
            print(f"{name}: {label} ({loc.get('lat')}, {loc.get('lng')}) [{tz}]")
        return 0

    _apply_overrides(args, config)
    coords, label, tz_name = _resolve_coordinates(args, config)

    method_key = config.get("method") or DEFAULT_METHOD
    if method_key not in METHODS:
        logger.warning("Unknown method %s, using %s", method_key, DEFAULT_METHOD)
    options = engine_options(config)

    if args.calendar:
        return _print_calendar(args, config, coords, tz_name, method_key, options)

    if args.utc_offset is not None:
        day = _parse_date(args.date) if args.date else date.today()
        tz_offset = args.utc_offset
    else:
        tzinfo = get_timezone(tz_name)
        day = _parse_date(args.date) if args.date else datetime.now(tzinfo).date()
        tz_offset = tz_hours_for_day(day, tzinfo)

    pray = PrayTimes(method_key, **options)
    times = pray.get_times(day, coords, tz_offset, dst=args.dst, time_format=config["time_format"])

    if args.json:
        payload = render_json(day, coords, tz_name, tz_offset, method_key, times)
        print(json.dumps(payload, ensure_ascii=True))
        return 0

    print(render_text(times, pray.method.name, config["asr_method"], describe_location(coords, label)))
    return 0


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Daily prayer times and Ramadan calendar")
    parser.add_argument("--config", default=CONFIG_PATH, help="Path to the JSON config file")
    parser.add_argument("--list-methods", action="store_true", help="List calculation methods")
    parser.add_argument("--list-locations", action="store_true", help="List locations from config")
    parser.add_argument("--location", help="Saved location name from config")
    parser.add_argument("--lat", type=float, help="Latitude in degrees")
    parser.add_argument("--lng", type=float, help="Longitude in degrees")
    parser.add_argument("--elevation", type=float, help="Elevation in meters")
    parser.add_argument("--tz", help="IANA time zone (defaults to the location's or the system zone)")
    parser.add_argument("--utc-offset", type=float, help="Fixed UTC offset in hours, overrides --tz")
    parser.add_argument("--dst", action="store_true",
                        help="Add one hour of daylight saving to a fixed offset (not with --tz and --calendar)")
    parser.add_argument("--date", help="Date as YYYY-MM-DD (default: today)")
    parser.add_argument("--method", help="Calculation method (unknown names fall back to ISNA)")
    parser.add_argument("--asr", help="Asr juristic method: Standard or Hanafi")
    parser.add_argument("--high-lats", choices=HIGH_LATS_RULES, help="Higher latitude adjustment")
    parser.add_argument("--format", choices=TIME_FORMATS, help="Time format")
    parser.add_argument("--offset", nargs=2, action="append", metavar=("PRAYER", "MIN"),
                        help="Tune a time by minutes (repeatable)")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="Output a JSON payload")
    output.add_argument("--calendar", action="store_true", help="Output the Ramadan iCalendar document")
    parser.add_argument("--start", help="Ramadan start date for --calendar (YYYY-MM-DD)")
    parser.add_argument("--days", type=int, help="Number of days for --calendar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    try:
        return handle_cli(args)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
