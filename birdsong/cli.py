#!/usr/bin/env python3
"""
Bird Song Explorer command line

    birdsong [--config explorer.yaml] [--date 2024-03-09] voice
    birdsong plan intro --voice-seconds 6.5
    birdsong --date 2024-03-09 outros [--day mon]
    birdsong bird --lat 40.71 --lon -74.01 [--city "New York"]
    birdsong bird --ip 8.8.8.8
    birdsong daily-update
    birdsong program --lat 40.71 --lon -74.01 --out ./today

Global options (--config, --date) go before the subcommand.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path

from birdsong.config import load_config
from birdsong.daily import DailySelector
from birdsong.errors import ConfigError
from birdsong.location import Location, location_for_timezone, location_key, lookup_ip_location
from birdsong.outros import DAY_KEYS, IntroOutroSelector, content_type_for_day
from birdsong.timeline import compile_filter_graph, plan_boost, plan_intro, plan_narration, plan_outro


def _parse_day(value: str | None) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ConfigError(f"Invalid --date format: {exc}") from exc


def _location(args: argparse.Namespace) -> Location:
    if args.ip:
        return lookup_ip_location(args.ip)
    if args.lat is not None and args.lon is not None:
        return Location(latitude=args.lat, longitude=args.lon, city=args.city or "")
    if args.timezone:
        found = location_for_timezone(args.timezone)
        if found is not None:
            return found
    raise ConfigError("Give --lat/--lon, --ip, or a known --timezone")


def _add_location_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lon", type=float)
    parser.add_argument("--city")
    parser.add_argument("--ip", help="Resolve location from an IP address")
    parser.add_argument("--timezone", help="Device timezone, e.g. America/New_York")
    parser.add_argument("--card", default="default", help="Card id for the daily cache")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Bird Song Explorer tools")
    parser.add_argument("--config", help="Path to explorer.yaml (default: $BIRDSONG_CONFIG or the bundled explorer.yaml)")
    parser.add_argument("--date", help="Override the day (YYYY-MM-DD)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("voice", help="Print the day's voice and ambience")

    p_plan = sub.add_parser("plan", help="Print a timing plan and its ffmpeg filter graph")
    p_plan.add_argument("kind", choices=["intro", "narration", "outro", "boost"])
    p_plan.add_argument("--voice-seconds", type=float, default=None)

    p_outros = sub.add_parser("outros", help="Check the pre-rendered outro pool")
    p_outros.add_argument("--day", choices=DAY_KEYS, help="Show the outro each voice gets on this weekday")

    p_bird = sub.add_parser("bird", help="Resolve today's bird for a location")
    _add_location_args(p_bird)

    sub.add_parser("daily-update", help="Pick and store the global daily fallback bird")

    p_program = sub.add_parser("program", help="Render intro, narration and outro to a directory")
    _add_location_args(p_program)
    p_program.add_argument("--voice", help="Voice id (default: the day's voice)")
    p_program.add_argument("--out", default=".", help="Output directory")

    args = parser.parse_args(argv)
    try:
        config = load_config(Path(args.config).expanduser() if args.config else None)
        day = _parse_day(args.date)
    except ConfigError as exc:
        parser.error(str(exc))

    if args.cmd == "voice":
        selector = DailySelector(config)
        voice = selector.daily_voice(day)
        ambience = selector.daily_ambience(day)
        print(f"{day} voice={voice.name} ({voice.voice_id}) ambience={ambience.name}")
        return 0

    if args.cmd == "plan":
        seconds = args.voice_seconds or config.audio.fallback_voice_seconds
        audio = config.audio
        if args.kind == "intro":
            plan = plan_intro(seconds, audio.intro)
        elif args.kind == "narration":
            plan = plan_narration(seconds, audio.narration)
        elif args.kind == "outro":
            plan = plan_outro(seconds, audio.outro)
        else:
            plan = plan_boost(seconds, audio.boost_only_volume)
        print(f"delays_ms={plan.per_layer_delay_ms} lead_in={plan.lead_in_seconds:.2f}s")
        print(f"fade_out={plan.fade_out_start_seconds:.2f}s+{plan.fade_out_duration_seconds:.2f}s "
              f"total={plan.total_duration_seconds:.2f}s")
        print(compile_filter_graph(plan))
        return 0

    if args.cmd == "outros":
        outros = IntroOutroSelector(config.assets_dir)
        names = [voice.name for voice in config.voices]
        if args.day:
            weekday = DAY_KEYS.index(args.day)
            for name in names:
                path = outros.select_outro(weekday, name, day)
                print(f"{name}: {content_type_for_day(weekday)} -> {path.name if path else 'none'}")
            return 0
        for key, count in outros.count_available(names).items():
            print(f"{key}: {count}")
        missing = outros.missing(names)
        if missing:
            print(f"Missing: {', '.join(missing)}")
            return 1
        print("OK")
        return 0

    # Everything below talks to upstream services
    from birdsong.explorer import BirdSongExplorer

    explorer = BirdSongExplorer.from_config(config)

    if args.cmd == "daily-update":
        bird = explorer.refresh_global_daily(day)
        print(f"{day} global daily bird: {bird.common_name} ({bird.scientific_name})")
        return 0

    try:
        location = _location(args)
    except ConfigError as exc:
        parser.error(str(exc))
    when = day if args.date else None

    if args.cmd == "bird":
        bird = explorer.get_bird_for_location(location, args.card, when, args.timezone)
        print(json.dumps({"location_key": location_key(location.latitude, location.longitude), **asdict(bird)}, indent=2))
        return 0

    program = explorer.build_daily_program(location, args.card, args.voice, args.timezone, when)
    out_dir = Path(args.out).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    for name in ("intro", "narration", "outro"):
        (out_dir / f"{name}.mp3").write_bytes(getattr(program, name))
    (out_dir / "narration.txt").write_text(program.narration_text + "\n")
    print(f"{program.day} {program.bird.common_name} voice={program.voice.name} "
          f"ambience={program.ambience.name} outro={program.outro_source} -> {out_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
