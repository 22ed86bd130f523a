"""
Staff directory repository.

Provides functions to query and update staff directory entries. The verification
challenge is embedded in the staff row as a JSON column.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from domain.lead import Department
from domain.staff import RegistrationStatus, StaffMember, UserRole
from domain.verification import VerificationChallenge, VerificationStatus
from repositories.rows import optional_str, parse_date, parse_utc_datetime, to_iso_utc
from repositories.store import DocumentCollection, ErrorListener, SnapshotSource, Unsubscribe

logger = logging.getLogger(__name__)

STAFF_TABLE: str = "staff"
STAFF_ID_FIELD: str = "staff_id"


def challenge_to_json(challenge: VerificationChallenge) -> Dict[str, Any]:
    return {
        "status": challenge.status.value,
        "lead_id": challenge.lead_id,
        "lead_name": challenge.lead_name,
        "lead_phone": challenge.lead_phone,
        "actual_duration": challenge.actual_duration,
        "actual_timestamp_utc": to_iso_utc(challenge.actual_timestamp),
        "reported_duration": challenge.reported_duration,
        "reported_date": challenge.reported_date.isoformat() if challenge.reported_date else None,
        "evidence_ref": challenge.evidence_ref,
        "rejection_reason": challenge.rejection_reason,
        "previous_rejection_reason": challenge.previous_rejection_reason,
        "issued_at_utc": to_iso_utc(challenge.issued_at),
        "responded_at_utc": to_iso_utc(challenge.responded_at),
        "decided_at_utc": to_iso_utc(challenge.decided_at),
    }


def json_to_challenge(data: Mapping[str, Any]) -> VerificationChallenge:
    def get_int(key: str) -> Optional[int]:
        value = data.get(key)
        return int(value) if value is not None else None

    return VerificationChallenge(
        status=VerificationStatus(str(data.get("status") or VerificationStatus.NONE.value)),
        lead_id=optional_str(data, "lead_id"),
        lead_name=optional_str(data, "lead_name"),
        lead_phone=optional_str(data, "lead_phone"),
        actual_duration=get_int("actual_duration"),
        actual_timestamp=parse_utc_datetime(data.get("actual_timestamp_utc")),
        reported_duration=get_int("reported_duration"),
        reported_date=parse_date(data.get("reported_date")),
        evidence_ref=optional_str(data, "evidence_ref"),
        rejection_reason=optional_str(data, "rejection_reason"),
        previous_rejection_reason=optional_str(data, "previous_rejection_reason"),
        issued_at=parse_utc_datetime(data.get("issued_at_utc")),
        responded_at=parse_utc_datetime(data.get("responded_at_utc")),
        decided_at=parse_utc_datetime(data.get("decided_at_utc")),
    )


def staff_to_row(staff: StaffMember) -> Dict[str, Any]:
    return {
        STAFF_ID_FIELD: staff.staff_id,
        "name": staff.name,
        "email": staff.email,
        "role": staff.role.value,
        "department": staff.department.value if staff.department else None,
        "registration_status": staff.registration_status.value,
        "approved_by": staff.approved_by,
        "approval_date_utc": to_iso_utc(staff.approval_date),
        "verification": challenge_to_json(staff.verification) if staff.verification else None,
        "created_at_utc": to_iso_utc(staff.created_at),
    }


def row_to_staff(row: Mapping[str, Any]) -> StaffMember:
    department = optional_str(row, "department")
    verification = row.get("verification")
    return StaffMember(
        staff_id=str(row[STAFF_ID_FIELD]),
        name=str(row.get("name") or ""),
        email=str(row.get("email") or ""),
        role=UserRole(str(row["role"])),
        department=Department(department) if department else None,
        registration_status=RegistrationStatus(
            str(row.get("registration_status") or RegistrationStatus.PENDING.value)
        ),
        approved_by=optional_str(row, "approved_by"),
        approval_date=parse_utc_datetime(row.get("approval_date_utc")),
        verification=json_to_challenge(verification) if verification else None,
        created_at=parse_utc_datetime(row.get("created_at_utc")),
    )


def rows_to_staff(rows: Iterable[Mapping[str, Any]]) -> List[StaffMember]:
    members: List[StaffMember] = []
    for row in rows:
        try:
            members.append(row_to_staff(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Skipping malformed staff row",
                extra={"staff_id": row.get(STAFF_ID_FIELD), "error": str(exc)},
            )
    return members


class StaffRepository:
    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection
        self._view: Optional[SnapshotSource[StaffMember]] = None

    def serve_reads_from(self, view: SnapshotSource[StaffMember]) -> None:
        self._view = view

    def list_staff(self) -> List[StaffMember]:
        if self._view is not None and self._view.is_live:
            return self._view.items
        return rows_to_staff(self.collection.get_all())

    def get_staff(self, staff_id: str) -> Optional[StaffMember]:
        row = self.collection.get(staff_id)
        return row_to_staff(row) if row is not None else None

    def find_by_email(self, email: str) -> Optional[StaffMember]:
        wanted = email.strip().lower()
        for member in self.list_staff():
            if member.email.lower() == wanted:
                return member
        return None

    def add(self, staff: StaffMember) -> None:
        row = staff_to_row(staff)
        row.pop(STAFF_ID_FIELD)
        self.collection.upsert(staff.staff_id, row)

    def update_profile(
        self,
        staff_id: str,
        *,
        name: str,
        email: str,
        role: UserRole,
        department: Optional[Department],
    ) -> None:
        self.collection.upsert(
            staff_id,
            {
                "name": name,
                "email": email,
                "role": role.value,
                "department": department.value if department else None,
            },
        )

    def set_registration_status(
        self,
        staff_id: str,
        status: RegistrationStatus,
        approved_by: str,
        approval_date: datetime,
    ) -> None:
        self.collection.upsert(
            staff_id,
            {
                "registration_status": status.value,
                "approved_by": approved_by,
                "approval_date_utc": to_iso_utc(approval_date),
            },
        )

    def set_verification(self, staff_id: str, challenge: VerificationChallenge) -> None:
        self.collection.upsert(staff_id, {"verification": challenge_to_json(challenge)})

    def delete(self, staff_id: str) -> None:
        self.collection.delete(staff_id)

    def subscribe(
        self,
        listener: Callable[[List[StaffMember]], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Unsubscribe:
        return self.collection.subscribe(lambda rows: listener(rows_to_staff(rows)), on_error)


__all__ = [
    "STAFF_ID_FIELD",
    "STAFF_TABLE",
    "StaffRepository",
    "row_to_staff",
    "rows_to_staff",
    "staff_to_row",
]
