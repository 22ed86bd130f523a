"""
Lead intake: spreadsheet import, manual entry and administrative purge.

Import contract:
- Rows arrive already parsed as mappings with name, phone and sourceFile keys
  (snake_case source_file is accepted too).
- Names are trimmed and uppercased; phones keep only their digits.
- Rows whose phone is empty after stripping are rejected and reported.
- Each row gets a stable id (its own "id" column, else derived from source file,
  name and phone), so importing the same row twice leaves one lead.
- New leads start UNASSIGNED in the configured default department.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Tuple
from uuid import NAMESPACE_URL, uuid4, uuid5

from domain.activity import UserAction
from domain.errors import RecordNotFoundError, WorkflowValidationError
from domain.lead import PHONE_LENGTH, Department, Lead, LeadStage, digits_only
from domain.staff import CENTRAL_ROLES, UserRole
from domain.time import Clock, utc_now
from repositories.lead_repository import LeadRepository
from services.activity_log import ActivityLog
from services.context import ActorContext

logger = logging.getLogger(__name__)

MANUAL_SOURCE: str = "Manual Entry"


@dataclass(frozen=True, slots=True)
class RejectedRow:
    row_number: int
    reason: str


@dataclass(frozen=True, slots=True)
class ImportResult:
    """
    total_rows: rows received
    imported: new leads the store reported as written
    duplicates: rows whose lead already existed
    """

    total_rows: int
    imported: int
    duplicates: int
    rejected: List[RejectedRow] = field(default_factory=list)


def stable_lead_id(source_file: str, name: str, phone: str) -> str:
    return str(uuid5(NAMESPACE_URL, f"lead:{source_file}:{name}:{phone}"))


def _get(row: Mapping[str, object], *keys: str) -> str:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def normalize_rows(
    rows: Iterable[Mapping[str, object]],
    default_department: Department,
    created_at: datetime,
    default_source: str = "",
) -> Tuple[List[Lead], List[RejectedRow]]:
    """
    Turn parsed spreadsheet rows into UNASSIGNED leads.

    Row numbers in the rejection report are 1-based positions in rows.
    Duplicate ids inside one batch keep the first row.
    """

    leads: List[Lead] = []
    rejected: List[RejectedRow] = []
    seen = set()

    for row_number, row in enumerate(rows, start=1):
        name = _get(row, "name", "Name").upper()
        phone = digits_only(_get(row, "phone", "Phone"))
        source_file = _get(row, "sourceFile", "source_file", "Source") or default_source

        if not phone:
            rejected.append(RejectedRow(row_number, "Phone number is empty"))
            continue

        lead_id = _get(row, "id", "lead_id") or stable_lead_id(source_file, name, phone)
        if lead_id in seen:
            continue
        seen.add(lead_id)

        leads.append(
            Lead(
                lead_id=lead_id,
                name=name,
                phone=phone,
                source_file=source_file,
                department=default_department,
                stage=LeadStage.UNASSIGNED,
                created_at=created_at,
            )
        )

    return leads, rejected


class LeadIntakeService:
    def __init__(
        self,
        leads: LeadRepository,
        activity: ActivityLog,
        default_department: Department,
        clock: Clock = utc_now,
    ) -> None:
        self.leads = leads
        self.activity = activity
        self.default_department = default_department
        self.clock = clock

    def import_leads(
        self,
        ctx: ActorContext,
        rows: Iterable[Mapping[str, object]],
        source_file: str = "",
        dry_run: bool = False,
    ) -> ImportResult:
        ctx.require_role(CENTRAL_ROLES, "import leads")
        rows = list(rows)
        normalized, rejected = normalize_rows(
            rows, self.default_department, self.clock(), default_source=source_file
        )

        existing = self.leads.get_leads(lead.lead_id for lead in normalized)
        new_leads = [lead for lead in normalized if lead.lead_id not in existing]
        duplicates = len(normalized) - len(new_leads)

        imported = len(new_leads) if dry_run else self.leads.upsert_leads(new_leads)

        logger.info(
            f"Imported {imported} leads",
            extra={
                "actor_id": ctx.actor_id,
                "source_file": source_file,
                "total_rows": len(rows),
                "imported": imported,
                "duplicates": duplicates,
                "rejected": len(rejected),
                "dry_run": dry_run,
            },
        )
        if not dry_run and imported:
            label = f" from {source_file}" if source_file else ""
            self.activity.record(ctx, UserAction.IMPORT_LEADS, f"Imported {imported} leads{label}")

        return ImportResult(
            total_rows=len(rows),
            imported=imported,
            duplicates=duplicates,
            rejected=rejected,
        )

    def add_manual_lead(
        self,
        ctx: ActorContext,
        name: str,
        phone: str,
        department: Optional[Department] = None,
    ) -> Lead:
        ctx.require_role(CENTRAL_ROLES | {UserRole.HOD}, "add leads")
        name = name.strip().upper()
        digits = digits_only(phone)
        if not name:
            raise WorkflowValidationError("Student name is required.")
        if len(digits) != PHONE_LENGTH:
            raise WorkflowValidationError(f"Phone number must have exactly {PHONE_LENGTH} digits.")

        if ctx.actor.role == UserRole.HOD:
            department = ctx.actor.department

        lead = Lead(
            lead_id=str(uuid4()),
            name=name,
            phone=digits,
            source_file=MANUAL_SOURCE,
            department=department or self.default_department,
            created_at=self.clock(),
        )
        self.leads.upsert_leads([lead])

        logger.info("Lead added manually", extra={"actor_id": ctx.actor_id, "lead_id": lead.lead_id})
        self.activity.record(ctx, UserAction.MANUAL_ADD, f"Added lead {lead.name}")
        return lead

    def purge_lead(self, ctx: ActorContext, lead_id: str) -> None:
        ctx.require_role(CENTRAL_ROLES, "purge leads")
        lead = self.leads.get_lead(lead_id)
        if lead is None:
            raise RecordNotFoundError("Lead", lead_id)
        self.leads.purge(lead_id)

        logger.info("Lead purged", extra={"actor_id": ctx.actor_id, "lead_id": lead_id})
        self.activity.record(ctx, UserAction.PURGE, f"Purged lead {lead.name}")


__all__ = [
    "ImportResult",
    "LeadIntakeService",
    "MANUAL_SOURCE",
    "RejectedRow",
    "normalize_rows",
    "stable_lead_id",
]
