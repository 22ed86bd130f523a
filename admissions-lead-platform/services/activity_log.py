"""
Activity log service.

Writes business events to the append-only system log and mirrors them to the
application logger.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from domain.activity import SystemLog, UserAction
from domain.time import Clock, utc_now
from repositories.log_repository import LogRepository
from services.context import ActorContext

logger = logging.getLogger(__name__)


class ActivityLog:
    def __init__(self, logs: LogRepository, clock: Clock = utc_now) -> None:
        self.logs = logs
        self.clock = clock

    def record(self, ctx: ActorContext, action: UserAction, details: str) -> SystemLog:
        entry = SystemLog(
            log_id=str(uuid4()),
            actor_id=ctx.actor.staff_id,
            actor_name=ctx.actor.name,
            action=action,
            details=details,
            timestamp=self.clock(),
        )
        self.logs.append(entry)
        logger.info(
            details,
            extra={"actor_id": entry.actor_id, "action": action.value, "log_id": entry.log_id},
        )
        return entry


__all__ = ["ActivityLog"]
