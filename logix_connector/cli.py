#!/usr/bin/env python3
"""Logix cache admin CLI.

Toggles caching, switches providers, and runs maintenance against the
configured cache from the command line.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import admin
from .cache.adapter import CachingAdapter
from .cache.refresh import CacheRefresher, run_periodic_refresh
from .config.cache_config import CACHE_PROVIDERS, CacheConfigStore
from .config.settings import Settings, setup_logging
from .connector import format_rows, get_data
from .upstream.districts import DISTRICTS, list_districts, resolve_tenant
from .upstream.logix import LogixClient
from .utils.cli_helpers import CLIFormatter
from .utils.http_client import cleanup_http_client

logger = logging.getLogger(__name__)


def cmd_status(config: CacheConfigStore) -> int:
    status = admin.caching_status(config)
    Settings.log_config()
    print(CLIFormatter.header("Cache Status"))
    enabled = CLIFormatter.success("enabled") if status["enabled"] else CLIFormatter.warning("disabled")
    unset = CLIFormatter.colorize("not set", CLIFormatter.DIM)
    print(CLIFormatter.field("Caching", enabled))
    print(CLIFormatter.field("Provider", status["provider"]))
    print(CLIFormatter.field("Proxy URL", status["proxy_url"] or unset))
    print(CLIFormatter.field("Credentials", "stored" if status["credentials"] else "missing"))
    return 0


def cmd_set_provider(config: CacheConfigStore, name: str) -> int:
    if admin.use_provider(config, name):
        print(CLIFormatter.success(f"Cache provider set to {name}"))
        return 0
    print(CLIFormatter.error(f"Could not switch to {name}"))
    return 1


def cmd_proxy_url(config: CacheConfigStore, url: str) -> int:
    if admin.configure_proxy_url(config, url):
        print(CLIFormatter.success(f"Proxy URL set to {config.get_proxy_base_url()}"))
        return 0
    print(CLIFormatter.error("Invalid URL. Must start with http:// or https://"))
    return 1


def cmd_credentials(config: CacheConfigStore, path: str) -> int:
    source = Path(path)
    try:
        raw = source.read_text(encoding="utf-8")
    except OSError as e:
        print(CLIFormatter.error(f"Could not read {source}: {e}"))
        return 1
    if admin.store_service_account_credentials(config, raw):
        print(CLIFormatter.success("Service account credentials stored"))
        return 0
    print(CLIFormatter.error("Invalid service account credentials"))
    return 1


async def cmd_clear(adapter: CachingAdapter) -> int:
    if not adapter.is_enabled():
        print(CLIFormatter.warning("Caching is disabled"))
        return 1
    counts = await admin.clear_all_cached_data(adapter)
    print(
        CLIFormatter.success(
            f"Cache cleared. Deleted: {counts['deleted']}, Failed: {counts['failed']}"
        )
    )
    return 0 if counts["failed"] == 0 else 1


async def cmd_refresh(
    refresher: CacheRefresher,
    deadline: Optional[float],
    watch: bool,
    interval: Optional[float],
) -> int:
    if watch:
        print(CLIFormatter.info("Refreshing on a schedule. Press Ctrl+C to stop."))
        await run_periodic_refresh(refresher, interval_seconds=interval, deadline=deadline)
        return 0

    result = await admin.manually_refresh_all_caches(refresher, deadline=deadline)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success and result.failed == 0 else 1


async def cmd_test(adapter: CachingAdapter, provider: Optional[str]) -> int:
    name = provider or adapter.config.get_provider_name()
    print(CLIFormatter.info(f"Testing {name} provider..."))
    if await admin.test_cache_provider(adapter, name):
        print(CLIFormatter.success(f"{name} provider is working"))
        return 0
    print(CLIFormatter.error(f"{name} provider test failed"))
    return 1


async def cmd_fetch(
    adapter: CachingAdapter, fetcher: LogixClient, district: str, fields: Sequence[str]
) -> int:
    tenant_id = resolve_tenant(district)
    rows = await get_data(tenant_id, fields, adapter=adapter, fetcher=fetcher)
    print(json.dumps(format_rows(rows, fields), indent=2))
    return 0 if rows else 1


def cmd_districts() -> int:
    print(CLIFormatter.header("Districts"))
    for district in list_districts():
        print(CLIFormatter.field(district.id, f"{district.db_number}  {district.label}"))
    return 0


async def cmd_element_types(fetcher: LogixClient, district: str) -> int:
    names = await fetcher.fetch_element_types(resolve_tenant(district))
    if not names:
        print(CLIFormatter.warning("No element types returned"))
        return 1
    for name in names:
        print(name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Logix cache administration")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("status", help="Show caching status and provider configuration")
    subparsers.add_parser("enable", help="Enable caching")
    subparsers.add_parser("disable", help="Disable caching")

    provider_parser = subparsers.add_parser("provider", help="Switch the cache provider")
    provider_parser.add_argument("name", choices=CACHE_PROVIDERS, help="Provider name")

    proxy_parser = subparsers.add_parser("proxy-url", help="Set the cache proxy base URL")
    proxy_parser.add_argument("url", help="Base URL, e.g. https://cache.example.com")

    creds_parser = subparsers.add_parser(
        "credentials", help="Store Firebase service account credentials"
    )
    creds_parser.add_argument("path", help="Path to the service account JSON file")

    subparsers.add_parser("clear", help="Delete every cached entry")

    refresh_parser = subparsers.add_parser("refresh", help="Refresh every cached entry")
    refresh_parser.add_argument(
        "--deadline", type=float, default=None, help="Time budget for the sweep in seconds"
    )
    refresh_parser.add_argument(
        "--watch", action="store_true", help="Keep refreshing on a fixed interval"
    )
    refresh_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between sweeps with --watch (default: CACHE_REFRESH_INTERVAL_SECONDS)",
    )

    test_parser = subparsers.add_parser("test", help="Write, read and delete a test entry")
    test_parser.add_argument(
        "--provider", choices=CACHE_PROVIDERS, help="Provider to test (defaults to current)"
    )

    fetch_parser = subparsers.add_parser("fetch", help="Read report fields through the cache")
    fetch_parser.add_argument("district", help=f"District id ({', '.join(DISTRICTS)})")
    fetch_parser.add_argument("fields", nargs="+", help="Field ids to select")

    subparsers.add_parser("districts", help="List known districts and their database numbers")

    types_parser = subparsers.add_parser(
        "element-types", help="List the element types defined for a district"
    )
    types_parser.add_argument("district", help=f"District id ({', '.join(DISTRICTS)})")

    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "NO"],
        help="Set log level",
    )
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    if args.command is None:
        parser.print_help()
        return 1

    config = CacheConfigStore()

    if args.command == "status":
        return cmd_status(config)
    if args.command == "enable":
        admin.enable_caching(config)
        print(CLIFormatter.success(f"Caching enabled ({config.get_provider_name()})"))
        return 0
    if args.command == "disable":
        admin.disable_caching(config)
        print(CLIFormatter.success("Caching disabled"))
        return 0
    if args.command == "provider":
        return cmd_set_provider(config, args.name)
    if args.command == "proxy-url":
        return cmd_proxy_url(config, args.url)
    if args.command == "credentials":
        return cmd_credentials(config, args.path)
    if args.command == "districts":
        return cmd_districts()

    adapter = CachingAdapter(config)
    fetcher = LogixClient()
    try:
        if args.command == "clear":
            return await cmd_clear(adapter)
        if args.command == "refresh":
            refresher = CacheRefresher(adapter, fetcher, delay_ms=Settings.CACHE_REFRESH_DELAY_MS)
            return await cmd_refresh(refresher, args.deadline, args.watch, args.interval)
        if args.command == "test":
            return await cmd_test(adapter, args.provider)
        if args.command == "fetch":
            return await cmd_fetch(adapter, fetcher, args.district, args.fields)
        if args.command == "element-types":
            return await cmd_element_types(fetcher, args.district)
    finally:
        await cleanup_http_client()

    return 1


def run() -> None:
    """Entry point for the CLI application."""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\n👋 Stopped")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        print(CLIFormatter.error(f"Unexpected error: {e}"))
        sys.exit(1)


if __name__ == "__main__":
    run()
