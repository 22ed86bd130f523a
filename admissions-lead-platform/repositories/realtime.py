"""
Supabase realtime bridge.

Subscribes to Postgres change events for a table and asks the matching
SupabaseCollection to push a fresh snapshot to its listeners. The change payload
itself is ignored: subscribers always get the full current table.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from repositories.supabase_store import SupabaseCollection

logger = logging.getLogger(__name__)


async def watch_collection(async_client: Any, collection: SupabaseCollection, schema: str = "public") -> Any:
    """
    Start forwarding remote changes of collection's table.

    Returns the realtime channel; call `await channel.unsubscribe()` on shutdown.
    """

    loop = asyncio.get_running_loop()

    def _on_change(payload: Any) -> None:
        logger.debug("Realtime change received", extra={"table": collection.name})
        # refresh() uses the blocking client; keep it off the event loop.
        future = loop.run_in_executor(None, collection.refresh)
        future.add_done_callback(_log_failure)

    def _log_failure(future: "asyncio.Future[None]") -> None:
        if not future.cancelled() and future.exception() is not None:
            logger.error(
                "Realtime refresh failed",
                extra={"table": collection.name, "error": str(future.exception())},
            )

    channel = async_client.channel(f"{collection.name}-changes")
    channel.on_postgres_changes(
        "*",
        schema=schema,
        table=collection.name,
        callback=_on_change,
    )
    await channel.subscribe()
    logger.info("Watching realtime changes", extra={"table": collection.name})
    return channel


__all__ = ["watch_collection"]
