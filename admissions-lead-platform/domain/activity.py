"""
Domain: System activity log entries (append-only).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .time import require_utc_timestamp


class UserAction(str, Enum):
    LOGIN = "Login"
    LOGOUT = "Logout"
    IMPORT_LEADS = "Import Leads"
    MANUAL_ADD = "Manual Entry"
    ASSIGNMENT = "Assignment"
    CLASSIFICATION = "Classification"
    APPROVAL = "Approval"
    VERIFICATION = "Verification"
    FORWARD = "Forward"
    PURGE = "Purge"


@dataclass(frozen=True, slots=True)
class SystemLog:
    log_id: str
    actor_id: str
    actor_name: str
    action: UserAction
    details: str
    timestamp: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)
