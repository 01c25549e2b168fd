"""
LocalMatch CLI entrypoint.

Intended for local demos and debugging of the matching engine:
- `discover`: rank a provider catalog around a position
- `locate`: show where the position provider thinks you are
- `distance`: great-circle distance and bearing between two points
"""

from __future__ import annotations

import argparse
import json
import time
from typing import Any

from pydantic import ValidationError

from localmatch.config.settings import Settings, get_settings
from localmatch.catalog.loader import load_candidates
from localmatch.core.cache import LocationStore
from localmatch.core.env import resolve_project_path
from localmatch.core.geo import bearing, distance
from localmatch.core.logging import configure_logging
from localmatch.core.time import ClockContext, FixedClock, SystemClock, parse_datetime
from localmatch.discovery.session import DiscoverySession
from localmatch.domain.errors import DiscoveryLocationError, InvalidCandidateError, NoLocationAvailable
from localmatch.domain.models import Coordinates, DiscoveryFilters, PriceRange
from localmatch.ingestion.geocoding_client import BigDataCloudReverseGeocoder, NullReverseGeocoder
from localmatch.ingestion.ip_geolocation_client import IpApiGeolocator
from localmatch.location.platform import LocationPlatform, StaticLocationPlatform, UnsupportedPlatform
from localmatch.location.provider import PositionProvider
from localmatch.scoring.explain import compass_point, one_line_summary


def _build_clock(args: argparse.Namespace, settings: Settings) -> ClockContext:
    if getattr(args, "at", None):
        local = parse_datetime(args.at, settings.app.timezone)
        return FixedClock(millis=int(time.time() * 1000), local=local)
    return SystemClock(settings.app.timezone)


def build_position_provider(
    args: argparse.Namespace, settings: Settings, clock: ClockContext
) -> PositionProvider:
    """Wire a provider from CLI flags: fixed `--lat/--lon`, else IP fallback only."""
    platform: LocationPlatform
    if args.lat is not None and args.lon is not None:
        coords = Coordinates(latitude=float(args.lat), longitude=float(args.lon))
        platform = StaticLocationPlatform(coords, clock_millis=clock.now_millis)
    else:
        platform = UnsupportedPlatform()

    offline = bool(getattr(args, "offline", False))
    geo = settings.geolocation
    store = None
    if geo.persist_cache:
        store = LocationStore(resolve_project_path(geo.cache_dir))
    return PositionProvider(
        platform,
        clock=clock,
        settings=geo,
        geocoder=NullReverseGeocoder() if offline else BigDataCloudReverseGeocoder(settings),
        ip_geolocator=None if offline else IpApiGeolocator(settings, clock),
        store=store,
    )


def _filters_from_args(args: argparse.Namespace) -> DiscoveryFilters:
    price_range = None
    if args.min_price is not None or args.max_price is not None:
        price_range = PriceRange(
            min=float(args.min_price or 0),
            max=float(args.max_price) if args.max_price is not None else float("inf"),
        )
    return DiscoveryFilters(
        category=args.category,
        urgency=args.urgency,
        price_range=price_range,
        rating=args.min_rating,
        availability=args.availability,
        radius=args.radius,
        verified=True if args.verified else None,
    )


def _options_from_args(args: argparse.Namespace) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if args.max_radius is not None:
        options["max_radius_km"] = float(args.max_radius)
    if args.preferred_radius is not None:
        options["preferred_radius_km"] = float(args.preferred_radius)
    if args.no_traffic:
        options["traffic_awareness"] = False
    if args.no_time_weighting:
        options["time_of_day_weighting"] = False
    if args.no_urgency_boost:
        options["urgency_boost"] = False
    return options


def _cmd_discover(args: argparse.Namespace) -> int:
    """Handle the `discover` subcommand."""
    settings = get_settings()
    clock = _build_clock(args, settings)
    provider = build_position_provider(args, settings, clock)
    session = DiscoverySession(provider, clock=clock, settings=settings, max_workers=args.workers)

    try:
        candidates = load_candidates(args.catalog)
    except InvalidCandidateError as exc:
        print(f"error: {exc}")
        return 2
    try:
        results = session.discover(candidates, _filters_from_args(args), _options_from_args(args))
    except DiscoveryLocationError as exc:
        print(f"error: {exc} ({exc.__cause__})")
        return 2

    if args.json:
        payload = {
            "location": session.current_location.model_dump(mode="json"),
            "results": [r.model_dump(mode="json") for r in results],
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    loc = session.current_location
    print(
        f"Location: {loc.coordinates.latitude:.4f},{loc.coordinates.longitude:.4f} "
        f"({loc.source}, {loc.address.city})"
    )
    if not results:
        print("No providers matched.")
        return 0
    for i, r in enumerate(results[: args.limit] if args.limit else results, start=1):
        label = r.candidate.name or r.candidate.id
        print(
            f"{i:>2}. {label} [{r.candidate.category}] {r.distance_km:.2f} km "
            f"{compass_point(r.bearing_degrees)}  {one_line_summary(r)}"
        )
        if r.reasons:
            print(f"    - {'; '.join(r.reasons[:4])}")
    return 0


def _cmd_locate(args: argparse.Namespace) -> int:
    settings = get_settings()
    clock = _build_clock(args, settings)
    provider = build_position_provider(args, settings, clock)

    permission = provider.check_permission()
    try:
        location = provider.get_current_position()
    except NoLocationAvailable as exc:
        print(f"error: {exc} (permission: {permission.state})")
        return 2

    if args.json:
        print(json.dumps(location.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0
    c = location.coordinates
    a = location.address
    print(f"{c.latitude:.5f},{c.longitude:.5f} via {location.source} (accuracy {c.accuracy or 'n/a'} m)")
    print(f"{a.city}, {a.state}, {a.country} [{a.country_code}]")
    print(f"Permission: {permission.state} - {permission.message}")
    return 0


def _cmd_distance(args: argparse.Namespace) -> int:
    try:
        a = Coordinates(latitude=args.lat1, longitude=args.lon1)
        b = Coordinates(latitude=args.lat2, longitude=args.lon2)
    except ValidationError as exc:
        print(f"error: invalid coordinates ({exc.errors()[0]['msg']})")
        return 2
    d = distance(a, b, args.unit)
    br = bearing(a, b)
    print(f"{d:.2f} {args.unit}, bearing {br:.1f} deg ({compass_point(br)})")
    return 0


def _add_position_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--lat", type=float, default=None, help="Device latitude (omit to use IP fallback)")
    p.add_argument("--lon", type=float, default=None, help="Device longitude")
    p.add_argument("--offline", action="store_true", help="Disable reverse geocoding and IP lookups")
    p.add_argument("--at", default=None, help="Local ISO datetime to score at (e.g. 2026-01-05T10:00)")
    p.add_argument("--json", action="store_true", help="Output machine-readable JSON")


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the LocalMatch CLI."""
    parser = argparse.ArgumentParser(prog="localmatch")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    dis = sub.add_parser("discover", help="Rank providers from a catalog around a position.")
    dis.add_argument("--catalog", required=True, help="JSON file with provider records")
    _add_position_args(dis)
    dis.add_argument("--category", default=None)
    dis.add_argument("--urgency", choices=["low", "medium", "high", "emergency"], default=None)
    dis.add_argument("--min-price", type=float, default=None)
    dis.add_argument("--max-price", type=float, default=None)
    dis.add_argument("--min-rating", type=float, default=None)
    dis.add_argument("--verified", action="store_true")
    dis.add_argument("--availability", choices=["now", "today", "this_week", "flexible"], default=None)
    dis.add_argument("--radius", type=float, default=None, help="Per-request radius (km)")
    dis.add_argument("--max-radius", type=float, default=None)
    dis.add_argument("--preferred-radius", type=float, default=None)
    dis.add_argument("--no-traffic", action="store_true")
    dis.add_argument("--no-time-weighting", action="store_true")
    dis.add_argument("--no-urgency-boost", action="store_true")
    dis.add_argument("--workers", type=int, default=None, help="Thread pool size for scoring")
    dis.add_argument("--limit", type=int, default=None)
    dis.set_defaults(func=_cmd_discover)

    loc = sub.add_parser("locate", help="Acquire the current position (device, IP, cache).")
    _add_position_args(loc)
    loc.set_defaults(func=_cmd_locate)

    dst = sub.add_parser("distance", help="Distance and bearing between two points.")
    dst.add_argument("lat1", type=float)
    dst.add_argument("lon1", type=float)
    dst.add_argument("lat2", type=float)
    dst.add_argument("lon2", type=float)
    dst.add_argument("--unit", choices=["km", "miles"], default="km")
    dst.set_defaults(func=_cmd_distance)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m localmatch.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
