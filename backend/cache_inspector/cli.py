from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence

from .config import ConnectionConfig, resolve
from .exceptions import CacheInspectorError
from .inspector import KeyInspector, render_report
from .logging_config import configure_structlog
from .probe import probe
from .redis_client import open_connection
from .settings import settings


def check_redis_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Check the connection to the Redis server. Uses REDIS_HOST / REDIS_PORT / "
            "REDIS_PASSWORD / REDIS_DB from the environment, else backend/.env."
        )
    )
    parser.parse_args(argv)
    configure_structlog()

    config = resolve()
    print(f"Connecting to Redis {config.describe()}...", flush=True)
    result = asyncio.run(probe(config))
    if result.ok:
        print("Redis: PONG - connection OK.")
    else:
        print(f"Redis: failed - {result.error}", file=sys.stderr)
    return result.exit_code


async def _list_keys(config: ConnectionConfig, args: argparse.Namespace) -> int:
    async with open_connection(config) as client:
        inspector = KeyInspector(
            client, args.prefix, show_values=args.show_values, use_scan=args.scan
        )
        keys = await inspector.matching_keys()

        if args.json:
            reports: list[dict] = []
            payload = {"prefix": args.prefix, "count": 0, "keys": reports}
            try:
                async for report in inspector.reports(keys):
                    reports.append(report.to_dict())
            except CacheInspectorError as exc:
                # reports gathered before the failure are still emitted
                payload["error"] = exc.message
                raise
            finally:
                payload["count"] = len(reports)
                print(json.dumps(payload, ensure_ascii=False, indent=2))
            return 0

        if not keys:
            print(f'No cached keys (prefix "{args.prefix}").')
            return 0

        print(f"{len(keys)} key(s) in cache:\n")
        async for report in inspector.reports(keys):
            print(render_report(report), flush=True)
    return 0


def list_cache_keys_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="List the keys currently cached in Redis with their TTL."
    )
    parser.add_argument(
        "--show-values",
        action="store_true",
        help="Append a short preview of each value",
    )
    parser.add_argument(
        "--prefix",
        default=settings.KEY_PREFIX,
        help=f"Namespace prefix to inspect (default: {settings.KEY_PREFIX!r})",
    )
    parser.add_argument(
        "--scan",
        action="store_true",
        help="Enumerate with cursor-based SCAN instead of a single KEYS call",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    args = parser.parse_args(argv)
    configure_structlog(verbose=args.verbose)

    config = resolve()
    try:
        return asyncio.run(_list_keys(config, args))
    except CacheInspectorError as exc:
        sys.stdout.flush()
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1


__all__ = ["check_redis_main", "list_cache_keys_main"]
