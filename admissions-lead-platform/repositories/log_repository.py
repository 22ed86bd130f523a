"""
System log repository (append-only).

Entries are written once and never updated or deleted by the application.
"""

from __future__ import annotations

from typing import List

from domain.activity import SystemLog, UserAction
from repositories.rows import parse_utc_datetime, to_iso_utc
from repositories.store import DocumentCollection

LOGS_TABLE: str = "system_logs"
LOG_ID_FIELD: str = "log_id"


class LogRepository:
    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection

    def append(self, entry: SystemLog) -> None:
        self.collection.upsert(
            entry.log_id,
            {
                "actor_id": entry.actor_id,
                "actor_name": entry.actor_name,
                "action": entry.action.value,
                "details": entry.details,
                "timestamp_utc": to_iso_utc(entry.timestamp),
            },
        )

    def list_logs(self) -> List[SystemLog]:
        return [
            SystemLog(
                log_id=str(row[LOG_ID_FIELD]),
                actor_id=str(row["actor_id"]),
                actor_name=str(row.get("actor_name") or ""),
                action=UserAction(str(row["action"])),
                details=str(row.get("details") or ""),
                timestamp=parse_utc_datetime(row["timestamp_utc"]),
            )
            for row in self.collection.get_all()
        ]


__all__ = ["LOGS_TABLE", "LOG_ID_FIELD", "LogRepository"]
