"""
Reporting service: role-scoped lead listings, dashboard views and the forwarded-queue export.

Everything here is derived from the current store contents and writes nothing
except the activity-log entry for an export.

Referential gaps:
- The store enforces no foreign keys. A missing assignee renders as "UNASSIGNED"
  and an id that no longer resolves renders as "UNKNOWN"; listings never fail on them.

Security:
- CSV Injection Prevention: every exported text field is sanitized
- Security Logging: stripped formula characters are logged at WARNING
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Dict, List, Mapping, Optional, Sequence

from domain.activity import SystemLog, UserAction
from domain.lead import Department, Lead, LeadStage, StudentResponse
from domain.lifecycle import TERMINAL_STAGES
from domain.staff import CENTRAL_ROLES, StaffMember, UserRole
from repositories.lead_repository import LeadRepository
from repositories.log_repository import LogRepository
from repositories.staff_repository import StaffRepository
from services.activity_log import ActivityLog
from services.context import ActorContext

logger = logging.getLogger(__name__)

UNASSIGNED_PLACEHOLDER: str = "UNASSIGNED"
UNKNOWN_PLACEHOLDER: str = "UNKNOWN"


def sanitize_csv_field(value: str | None, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    Example:
        sanitize_csv_field("=1+1", "name")
        # Returns "1+1" and logs warning about stripped "=" character

        sanitize_csv_field("Normal Name", "name")
        # Returns "Normal Name" (unchanged, no logging)
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def staff_label(staff_by_id: Mapping[str, StaffMember], staff_id: Optional[str]) -> str:
    if not staff_id:
        return UNASSIGNED_PLACEHOLDER
    member = staff_by_id.get(staff_id)
    return member.name if member is not None else UNKNOWN_PLACEHOLDER


def leads_visible_to(actor: StaffMember, leads: Sequence[Lead]) -> List[Lead]:
    """
    Role scoping:
    - Central roles see every lead.
    - A department head sees its department's leads and leads assigned to it.
    - A teacher sees the leads assigned to it.
    """

    if actor.role in CENTRAL_ROLES:
        return list(leads)
    if actor.role == UserRole.HOD:
        return [
            lead
            for lead in leads
            if lead.department == actor.department or lead.assigned_hod_id == actor.staff_id
        ]
    return [lead for lead in leads if lead.assigned_teacher_id == actor.staff_id]


@dataclass(frozen=True, slots=True)
class TeacherProgress:
    teacher_id: str
    teacher_name: str
    total_assigned: int
    completed: int
    pending: int
    progress_pct: int


@dataclass(frozen=True, slots=True)
class DepartmentSummary:
    department: Department
    total: int
    targeted: int
    conversion_pct: int


@dataclass(frozen=True, slots=True)
class StageCount:
    stage: LeadStage
    count: int
    percentage: int


def _pct(part: int, whole: int) -> int:
    return round(part * 100 / whole) if whole else 0


def teacher_progress(teachers: Sequence[StaffMember], leads: Sequence[Lead]) -> List[TeacherProgress]:
    """Completed means the lead has reached a terminal stage."""

    rows = []
    for teacher in teachers:
        assigned = [lead for lead in leads if lead.assigned_teacher_id == teacher.staff_id]
        completed = sum(1 for lead in assigned if lead.stage in TERMINAL_STAGES)
        rows.append(
            TeacherProgress(
                teacher_id=teacher.staff_id,
                teacher_name=teacher.name,
                total_assigned=len(assigned),
                completed=completed,
                pending=len(assigned) - completed,
                progress_pct=_pct(completed, len(assigned)),
            )
        )
    return rows


def department_summary(leads: Sequence[Lead]) -> List[DepartmentSummary]:
    """Per-department totals, largest first."""

    rows = []
    for department in Department:
        dept_leads = [lead for lead in leads if lead.department == department]
        targeted = sum(1 for lead in dept_leads if lead.stage == LeadStage.TARGETED)
        rows.append(
            DepartmentSummary(
                department=department,
                total=len(dept_leads),
                targeted=targeted,
                conversion_pct=_pct(targeted, len(dept_leads)),
            )
        )
    return sorted(rows, key=lambda row: row.total, reverse=True)


def stage_breakdown(leads: Sequence[Lead]) -> List[StageCount]:
    counts = {stage: 0 for stage in LeadStage}
    for lead in leads:
        counts[lead.stage] += 1
    return [
        StageCount(stage=stage, count=count, percentage=_pct(count, len(leads)))
        for stage, count in counts.items()
    ]


def forwarded_csv(leads: Sequence[Lead], staff_by_id: Mapping[str, StaffMember]) -> str:
    """
    Render forwarded leads for the sub-branch as CSV.

    Row numbers start at 1 in the order given.
    """

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "Sr No.",
        "Student Name",
        "Contact",
        "Interested Branch",
        "Counselor",
        "Timestamp",
        "Duration (sec)",
        "Response",
    ])

    for index, lead in enumerate(leads, start=1):
        writer.writerow([
            index,
            sanitize_csv_field(lead.name.upper(), "name"),
            sanitize_csv_field(lead.phone, "phone"),
            lead.department.value,
            sanitize_csv_field(staff_label(staff_by_id, lead.assigned_teacher_id), "counselor"),
            lead.call_timestamp.isoformat() if lead.call_timestamp else "N/A",
            lead.call_duration or 0,
            lead.response.value if lead.response else "",
        ])

    return output.getvalue()


class ReportingService:
    def __init__(
        self,
        leads: LeadRepository,
        staff: StaffRepository,
        logs: LogRepository,
        activity: ActivityLog,
    ) -> None:
        self.leads = leads
        self.staff = staff
        self.logs = logs
        self.activity = activity

    def list_leads(
        self,
        ctx: ActorContext,
        stage: Optional[LeadStage] = None,
        department: Optional[Department] = None,
        response: Optional[StudentResponse] = None,
    ) -> List[Lead]:
        leads = leads_visible_to(ctx.actor, self.leads.list_leads())
        if stage is not None:
            leads = [lead for lead in leads if lead.stage == stage]
        if department is not None:
            leads = [lead for lead in leads if lead.department == department]
        if response is not None:
            leads = [lead for lead in leads if lead.response == response]
        return leads

    def teacher_progress(self, ctx: ActorContext, department: Optional[Department] = None) -> List[TeacherProgress]:
        ctx.require_role(CENTRAL_ROLES | {UserRole.HOD}, "view teacher progress")
        if ctx.actor.role == UserRole.HOD:
            department = ctx.actor.department
        teachers = [
            member
            for member in self.staff.list_staff()
            if member.role == UserRole.TEACHER
            and member.is_approved
            and (department is None or member.department == department)
        ]
        return teacher_progress(teachers, self.leads.list_leads())

    def department_summary(self, ctx: ActorContext) -> List[DepartmentSummary]:
        ctx.require_role(CENTRAL_ROLES, "view institution analytics")
        return department_summary(self.leads.list_leads())

    def stage_breakdown(self, ctx: ActorContext, department: Optional[Department] = None) -> List[StageCount]:
        return stage_breakdown(self.list_leads(ctx, department=department))

    def export_forwarded(self, ctx: ActorContext, exported_at: datetime) -> tuple[str, str, int]:
        """
        Build the sub-branch CSV for forwarded leads visible to the actor.

        Returns (filename, csv_content, lead_count).
        """

        ctx.require_role(CENTRAL_ROLES | {UserRole.HOD}, "forward leads")
        forwarded = self.list_leads(ctx, stage=LeadStage.FORWARDED)
        staff_by_id: Dict[str, StaffMember] = {member.staff_id: member for member in self.staff.list_staff()}
        content = forwarded_csv(forwarded, staff_by_id)
        filename = f"SubBranch_Forwarded_Leads_{exported_at.date().isoformat()}.csv"

        logger.info(
            f"Exported {len(forwarded)} forwarded leads",
            extra={"actor_id": ctx.actor_id, "lead_count": len(forwarded), "export_file": filename},
        )
        self.activity.record(
            ctx, UserAction.FORWARD, f"Forwarded {len(forwarded)} leads to sub-branch"
        )
        return filename, content, len(forwarded)

    def activity_log(self, ctx: ActorContext) -> List[SystemLog]:
        ctx.require_role(CENTRAL_ROLES, "view the activity log")
        return sorted(self.logs.list_logs(), key=lambda entry: entry.timestamp, reverse=True)


__all__ = [
    "DepartmentSummary",
    "ReportingService",
    "StageCount",
    "TeacherProgress",
    "UNASSIGNED_PLACEHOLDER",
    "UNKNOWN_PLACEHOLDER",
    "department_summary",
    "forwarded_csv",
    "leads_visible_to",
    "sanitize_csv_field",
    "stage_breakdown",
    "staff_label",
    "teacher_progress",
]
