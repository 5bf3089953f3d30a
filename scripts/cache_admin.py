#!/usr/bin/env python3
"""Inspect and maintain the durable catalog cache."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog_cache.context import build_context
from catalog_cache.core.logging import configure_logging
from catalog_cache.core.settings import get_settings


def _guard_environment(command: str) -> None:
    settings = get_settings()
    if settings.environment == "production" and command == "clear":
        raise SystemExit("Refusing to clear the catalog cache in production.")


async def _run(command: str) -> int:
    context = build_context()
    cache = context.cache
    try:
        if command == "stats":
            stats = await cache.stats()
            print(f"Namespace:     {cache.namespace}")
            print(f"Version:       {cache.version}")
            print(f"Entries:       {stats.total_entries}")
            print(f"Size (bytes):  {stats.total_size_bytes}")
        elif command == "cleanup":
            purged = await cache.cleanup()
            print(f"Purged {purged} stale entries.")
        elif command == "clear":
            removed = await cache.clear()
            print(f"Removed {removed} entries.")
        elif command == "warm":
            await context.aggregator.load_all()
            await context.aggregator.load_full()
            stats = await context.stats.get_stats()
            print(
                "Warmed catalog cache: "
                f"{stats.courses_count} courses, {stats.instructors_count} instructors, "
                f"{stats.reviews_count} reviews."
            )
        return 0
    finally:
        await context.close()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Durable catalog cache maintenance.")
    parser.add_argument("command", choices=["stats", "cleanup", "clear", "warm"])
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    configure_logging()
    _guard_environment(args.command)
    raise SystemExit(asyncio.run(_run(args.command)))


if __name__ == "__main__":
    main()
