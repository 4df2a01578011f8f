"""
servicedir CLI entrypoint.

This CLI is intended for quick local checks of the directory without a browser.
It delegates query logic to `servicedir.query.engine.query_listings`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from servicedir.config.settings import get_settings
from servicedir.core.env import resolve_project_path
from servicedir.core.geo import format_distance
from servicedir.core.logging import configure_logging
from servicedir.domain.models import Coordinate, QueryCriteria
from servicedir.location.errors import LocationError
from servicedir.location.resolver import build_resolver
from servicedir.query.engine import query_listings
from servicedir.query.facets import category_counts
from servicedir.store.json_store import JsonListingStore


def _store(args: argparse.Namespace) -> JsonListingStore:
    settings = get_settings()
    return JsonListingStore(resolve_project_path(args.data or settings.store.path))


def _detect_location() -> Coordinate | None:
    try:
        return asyncio.run(build_resolver(get_settings()).resolve())
    except LocationError as e:
        print(f"(no location: {e.message})")
        return None


def _cmd_search(args: argparse.Namespace) -> int:
    """Handle the `search` subcommand."""
    settings = get_settings()

    user_location: Coordinate | None = None
    if args.lat is not None and args.lng is not None:
        user_location = Coordinate(lat=float(args.lat), lng=float(args.lng))
    elif args.locate:
        user_location = _detect_location()

    criteria = QueryCriteria(
        query=args.query,
        category=args.category,
        user_location=user_location,
        max_distance=args.max_distance,
        sort_by=args.sort_by,
        text_match="with_author" if args.match_author else settings.query.default_text_match,
    )
    results = query_listings(_store(args).list_all(), criteria)

    if args.json:
        print(json.dumps([r.model_dump(mode="json", by_alias=True) for r in results], ensure_ascii=False, indent=2))
        return 0

    print(f"{len(results)} service{'s' if len(results) != 1 else ''}")
    for i, listing in enumerate(results, start=1):
        where = f"  {format_distance(listing.distance)}" if listing.distance is not None else ""
        print(f"{i:>2}. {listing.title or '(untitled)'} [{listing.category or '-'}]{where}")
    return 0


def _cmd_categories(args: argparse.Namespace) -> int:
    settings = get_settings()
    for c in category_counts(_store(args).list_all(), order=settings.query.category_order):
        print(f"{c.name}: {c.count}")
    return 0


def _cmd_locate(_: argparse.Namespace) -> int:
    location = _detect_location()
    if location is None:
        return 1
    print(f"lat={location.lat:.5f} lng={location.lng:.5f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the servicedir CLI."""
    parser = argparse.ArgumentParser(prog="servicedir")
    parser.add_argument("--data", type=str, default=None, help="Path to services.json (defaults to settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    s = sub.add_parser("search", help="Search and filter listings, optionally by distance.")
    s.add_argument("--query", type=str, default=None)
    s.add_argument("--category", type=str, default=None)
    s.add_argument("--lat", type=float, default=None)
    s.add_argument("--lng", type=float, default=None)
    s.add_argument("--locate", action="store_true", help="Use the configured location provider")
    s.add_argument("--max-distance", dest="max_distance", type=float, default=None, help="km")
    s.add_argument("--sort-by", dest="sort_by", choices=["distance", "date", "views"], default=None)
    s.add_argument("--match-author", action="store_true", help="Also match author name/username")
    s.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    s.set_defaults(func=_cmd_search)

    c = sub.add_parser("categories", help="List categories with listing counts.")
    c.set_defaults(func=_cmd_categories)

    loc = sub.add_parser("locate", help="Resolve the current location with the configured provider.")
    loc.set_defaults(func=_cmd_locate)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m servicedir.cli`."""
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
