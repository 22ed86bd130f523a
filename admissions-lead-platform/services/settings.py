"""
Application settings.

Values come from the environment (a .env file in the admissions-lead-platform
directory is loaded first). Every setting has a default so the in-memory backend
runs without configuration.

Environment variables:
- LEAD_STORE_BACKEND: "supabase" (default) or "memory"
- MIN_CALL_DURATION_SECONDS: institution-wide minimum call length (default 20)
- DEFAULT_LEAD_DEPARTMENT: department tagged on imported leads
- EVIDENCE_BUCKET: Supabase Storage bucket for verification evidence
- ENABLE_REALTIME: "true" to follow remote changes through Supabase realtime
- LEADS_TABLE / STAFF_TABLE / LOGS_TABLE: table names
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from domain.lead import Department
from repositories.lead_repository import LEADS_TABLE
from repositories.log_repository import LOGS_TABLE
from repositories.staff_repository import STAFF_TABLE

env_path = Path(__file__).parent.parent / ".env"

# One threshold for every counseling flow.
DEFAULT_MIN_CALL_DURATION_SECONDS: int = 20


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "supabase"
    min_call_duration_seconds: int = DEFAULT_MIN_CALL_DURATION_SECONDS
    default_lead_department: Department = Department.COMPUTER
    evidence_bucket: str = "verification-evidence"
    enable_realtime: bool = False
    leads_table: str = LEADS_TABLE
    staff_table: str = STAFF_TABLE
    logs_table: str = LOGS_TABLE

    def __post_init__(self) -> None:
        if self.store_backend not in ("supabase", "memory"):
            raise ValueError(f"Unknown store backend: {self.store_backend!r}")
        if self.min_call_duration_seconds < 1:
            raise ValueError("min_call_duration_seconds must be >= 1")


def load_settings() -> Settings:
    load_dotenv(dotenv_path=env_path)
    return Settings(
        store_backend=os.getenv("LEAD_STORE_BACKEND", "supabase").strip().lower(),
        min_call_duration_seconds=int(
            os.getenv("MIN_CALL_DURATION_SECONDS", str(DEFAULT_MIN_CALL_DURATION_SECONDS))
        ),
        default_lead_department=Department(
            os.getenv("DEFAULT_LEAD_DEPARTMENT", Department.COMPUTER.value)
        ),
        evidence_bucket=os.getenv("EVIDENCE_BUCKET", "verification-evidence"),
        enable_realtime=os.getenv("ENABLE_REALTIME", "false").strip().lower() in ("1", "true", "yes"),
        leads_table=os.getenv("LEADS_TABLE", LEADS_TABLE),
        staff_table=os.getenv("STAFF_TABLE", STAFF_TABLE),
        logs_table=os.getenv("LOGS_TABLE", LOGS_TABLE),
    )


__all__ = ["DEFAULT_MIN_CALL_DURATION_SECONDS", "Settings", "load_settings"]
