"""CLI tool for admin operations.

Usage:
    python -m tradejournal.cli init-db
    python -m tradejournal.cli stats
    python -m tradejournal.cli sync-memory <memory_file> [server_url]
    python -m tradejournal.cli memory-agent <memory_file> [server_url]
"""

import asyncio
import json
import logging
import sys

from tradejournal.config import settings
from tradejournal.database import build_engine, create_db_and_tables
from tradejournal.engine.scheduler import add_memory_sync_job, build_scheduler, stop_scheduler
from tradejournal.services.memory import JsonFileMemoryStore, MemoryReplica
from tradejournal.services.memory_sync import MemorySyncClient
from tradejournal.services.stats import StatsAggregator
from tradejournal.services.trade_store import TradeStore
from tradejournal.utils.logging import setup_logging
from tradejournal.utils.timeutils import resolve_tz

logger = logging.getLogger(__name__)


def init_db():
    engine = build_engine(settings.database_url)
    create_db_and_tables(engine)
    print(f"Database ready at {settings.database_url}")


def print_stats():
    engine = build_engine(settings.database_url)
    create_db_and_tables(engine)
    tz = resolve_tz(settings.timezone)
    aggregator = StatsAggregator(TradeStore(engine, tz), tz)
    report = {
        "stats": aggregator.stats().to_wire(),
        "strategies": [s.to_wire() for s in aggregator.strategy_stats()],
    }
    print(json.dumps(report, indent=2))


def _sync_client(memory_file: str, server_url: str | None) -> MemorySyncClient:
    replica = MemoryReplica(JsonFileMemoryStore(memory_file))
    return MemorySyncClient(
        replica,
        server_url or settings.memory_server_url,
        cooldown_seconds=settings.memory_sync_cooldown_seconds,
    )


async def _sync_once(client: MemorySyncClient) -> bool:
    try:
        return await client.force_sync()
    finally:
        await client.close()


async def _run_agent(client: MemorySyncClient):
    """Pull once, then push on the configured interval until cancelled."""
    scheduler = build_scheduler()
    add_memory_sync_job(scheduler, client, settings.memory_sync_interval_seconds)
    scheduler.start()
    try:
        await client.sync_from_shared(force=True)
        await asyncio.Event().wait()
    finally:
        stop_scheduler(scheduler)
        await client.close()


def sync_memory(memory_file: str, server_url: str | None = None):
    client = _sync_client(memory_file, server_url)
    ok = asyncio.run(_sync_once(client))
    memory = client.replica.get()
    print(f"Sync {'succeeded' if ok else 'failed'}: level {memory.level} ({memory.brain_version}), "
          f"{len(memory.lessons)} lessons")
    if not ok:
        sys.exit(1)


def memory_agent(memory_file: str, server_url: str | None = None):
    client = _sync_client(memory_file, server_url)
    try:
        asyncio.run(_run_agent(client))
    except KeyboardInterrupt:
        print("Memory agent stopped.")


def main():
    setup_logging()
    if len(sys.argv) < 2:
        print("Usage: python -m tradejournal.cli <command>")
        print("Commands: init-db, stats, sync-memory, memory-agent")
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]
    if command == "init-db":
        init_db()
    elif command == "stats":
        print_stats()
    elif command in ("sync-memory", "memory-agent"):
        if not args:
            print(f"Usage: python -m tradejournal.cli {command} <memory_file> [server_url]")
            sys.exit(1)
        server_url = args[1] if len(args) > 1 else None
        if command == "sync-memory":
            sync_memory(args[0], server_url)
        else:
            memory_agent(args[0], server_url)
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
