#!/usr/bin/env python3
"""
flowboard: command line entry point

Build and inspect shareable report links, and manage saved filter presets.

Usage:
    flowboard share analytics --filter projectId=p1 --filter priority=high
    flowboard share analytics --json '{"dateRange": {"from": "2024-01-01", "to": null}}'
    flowboard inspect "http://localhost:3000/analytics?filters=eyJwcm9qZWN0SWQiOiJwMSJ9"
    flowboard presets list
    flowboard presets save "My week" --filter dateRange=week
    flowboard presets delete <id>
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from flowboard.config import Config, ConfigError
from flowboard.presets import FilterPresetStore
from flowboard.sharing import ShareLinkError, build_shareable_url, extract_filters_from_url

logger = logging.getLogger("flowboard")


def parse_filter_args(pairs: List[str], raw_json: Optional[str] = None) -> Dict[str, Any]:
    """
    Build a filters dict from ``key=value`` pairs and an optional JSON object.
    Values are parsed as JSON when possible, otherwise kept as strings.
    """
    filters: Dict[str, Any] = {}
    if raw_json:
        loaded = json.loads(raw_json)
        if not isinstance(loaded, dict):
            raise ValueError("--json must be a JSON object")
        filters.update(loaded)

    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        try:
            filters[key] = json.loads(value)
        except ValueError:
            filters[key] = value
    return filters


def cmd_share(args, cfg: Config) -> int:
    filters = parse_filter_args(args.filter, args.json)
    print(build_shareable_url(args.base_url or cfg.share_base_url, args.path, filters))
    return 0


def cmd_inspect(args, cfg: Config) -> int:
    filters = extract_filters_from_url(args.url)
    if filters is None:
        print("No filters in URL", file=sys.stderr)
        return 1
    print(json.dumps(filters, indent=2, sort_keys=True))
    return 0


def cmd_presets(args, cfg: Config) -> int:
    store = FilterPresetStore(cfg.presets_db, max_presets=cfg.max_presets)

    if args.action == "list":
        for preset in store.load_presets():
            print(f"{preset.id}  {preset.created_at:%Y-%m-%d %H:%M}  {preset.name}")
        return 0

    if args.action == "save":
        preset = store.save_preset(args.name, parse_filter_args(args.filter, args.json))
        print(preset.id)
        return 0

    if not store.delete_preset(args.preset_id):
        print(f"No preset {args.preset_id}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="flowboard",
        description="Shareable report links and saved filter presets",
    )
    ap.add_argument("--config", default=None, help="Path to flowboard.yaml")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    share = sub.add_parser("share", help="Build a shareable URL")
    share.add_argument("path", help="Page path, e.g. analytics")
    share.add_argument("--base-url", default=None, help="Override share_base_url")
    share.add_argument("--filter", action="append", default=[], metavar="KEY=VALUE")
    share.add_argument("--json", default=None, help="Filters as a JSON object")
    share.set_defaults(func=cmd_share)

    inspect = sub.add_parser("inspect", help="Decode the filters carried by a URL")
    inspect.add_argument("url")
    inspect.set_defaults(func=cmd_inspect)

    presets = sub.add_parser("presets", help="Manage saved filter presets")
    actions = presets.add_subparsers(dest="action", required=True)
    actions.add_parser("list")
    save = actions.add_parser("save")
    save.add_argument("name")
    save.add_argument("--filter", action="append", default=[], metavar="KEY=VALUE")
    save.add_argument("--json", default=None)
    delete = actions.add_parser("delete")
    delete.add_argument("preset_id")
    presets.set_defaults(func=cmd_presets)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [flowboard] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        cfg = Config.load(args.config)
        return args.func(args, cfg)
    except (ConfigError, ShareLinkError, ValueError) as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
