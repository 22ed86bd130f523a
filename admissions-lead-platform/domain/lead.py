"""
Domain: Student lead entity.

Contract excerpts implemented here:
- A Lead represents one prospective student and is identified by an opaque lead_id.
- A Lead has at most one assigned department head and at most one assigned teacher.
- call_duration is proof of engagement; it is only ever written together with
  call_verified=True and a call_timestamp (a verified call event).
- New leads start in stage UNASSIGNED.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp

# A phone number is valid for dialing when it has exactly this many digits.
PHONE_LENGTH: int = 10


class Department(str, Enum):
    MECHANICAL = "Mechanical Engineering"
    COMPUTER = "Computer Technology"
    ETC = "E&TC Engineering"
    IT = "Information Technology"
    ELECTRICAL = "Electrical Engineering"
    AI_ML = "AI & ML"


class StudentResponse(str, Enum):
    INTERESTED = "Interested"
    NOT_INTERESTED = "Not Interested"
    CONFUSED = "Confused"
    GRADE_11_12 = "11th / 12th"
    NOT_RESPONDING = "Not Responding"
    NOT_REACHABLE = "Not Reachable"
    OTHERS = "Others"


class LeadStage(str, Enum):
    UNASSIGNED = "Unassigned"
    ASSIGNED = "Assigned"
    TARGETED = "Targeted by College"
    DISCARDED = "Discarded"
    FORWARDED = "Forwarded to Sub-Branch"
    NO_ACTION = "No Action"


def digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Snapshot of a student lead as last pushed by the store.

    Immutability:
    - Leads are never mutated in place. Every change is a merge-patch sent to the
      store, and the next snapshot carries the result.
    """

    lead_id: str
    name: str
    phone: str
    source_file: str
    department: Department
    stage: LeadStage = LeadStage.UNASSIGNED
    response: Optional[StudentResponse] = None
    call_verified: bool = False
    call_timestamp: Optional[datetime] = None
    call_duration: Optional[int] = None
    assigned_hod_id: Optional[str] = None
    assigned_teacher_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.call_timestamp is not None:
            require_utc_timestamp("call_timestamp", self.call_timestamp)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def has_valid_phone(self) -> bool:
        return len(self.phone) == PHONE_LENGTH and self.phone.isdigit()

    @property
    def is_pending(self) -> bool:
        """Pending leads still wait for a counseling outcome."""

        return self.stage in (LeadStage.UNASSIGNED, LeadStage.ASSIGNED)
