"""
Distribution engine: moves leads from the unassigned pool to department heads and
from department heads to teachers.

Rules:
- Round-robin order is strictly the caller's input order; the i-th lead goes to
  pool[i mod len(pool)]. Lead ids are never re-sorted.
- The engine does not re-check assignment state. Callers pre-filter the leads they
  want moved (typically the unassigned subset).
- Only approved staff are eligible assignees. Pools keep directory order.
- Every assignment call is one batch write. A failing batch raises StoreError whose
  `mutated` count reports how many records were written before the failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from domain.activity import UserAction
from domain.errors import PermissionDeniedError, RecordNotFoundError, WorkflowValidationError
from domain.lead import Department
from domain.staff import CENTRAL_ROLES, StaffMember, UserRole
from repositories.lead_repository import LeadRepository
from repositories.staff_repository import StaffRepository
from services.activity_log import ActivityLog
from services.context import ActorContext

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")


def round_robin_partition(items: Sequence[T], pool: Sequence[P]) -> List[Tuple[T, P]]:
    """
    Pair each item with pool[i mod len(pool)] in input order.

    Every pool member ends up with floor(N/K) or ceil(N/K) items. An empty pool
    yields no pairs.
    """

    if not pool:
        return []
    return [(item, pool[index % len(pool)]) for index, item in enumerate(items)]


@dataclass(frozen=True, slots=True)
class DistributionResult:
    """
    moved: records the store reported as written
    assignments: assignee staff_id -> lead ids, in assignment order
    """

    requested: int
    moved: int
    assignments: Dict[str, List[str]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RoutingResult:
    """
    Outcome of routing leads by interested department.

    unrouted: department -> lead ids for departments without an approved head
    missing: lead ids that do not exist in the store
    """

    requested: int
    moved: int
    assignments: Dict[str, List[str]] = field(default_factory=dict)
    unrouted: Dict[Department, List[str]] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)


def _group_by_assignee(pairs: Sequence[Tuple[str, StaffMember]]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for lead_id, member in pairs:
        grouped.setdefault(member.staff_id, []).append(lead_id)
    return grouped


def _dedupe(lead_ids: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(lead_ids))


class DistributionService:
    def __init__(self, leads: LeadRepository, staff: StaffRepository, activity: ActivityLog) -> None:
        self.leads = leads
        self.staff = staff
        self.activity = activity

    # --- pools ---------------------------------------------------------------

    def approved_department_heads(self, department: Optional[Department] = None) -> List[StaffMember]:
        return [
            member
            for member in self.staff.list_staff()
            if member.role == UserRole.HOD
            and member.is_approved
            and (department is None or member.department == department)
        ]

    def approved_teachers(self, department: Department) -> List[StaffMember]:
        return [
            member
            for member in self.staff.list_staff()
            if member.role == UserRole.TEACHER
            and member.is_approved
            and member.department == department
        ]

    # --- department heads ----------------------------------------------------

    def assign_to_department_head(
        self, ctx: ActorContext, lead_ids: Sequence[str], head_id: str
    ) -> DistributionResult:
        ctx.require_role(CENTRAL_ROLES, "assign leads to department heads")
        lead_ids = _dedupe(lead_ids)
        if not lead_ids:
            raise WorkflowValidationError("Select at least one lead to assign.")
        head = self._require_member(head_id)
        if head.role != UserRole.HOD or not head.is_approved or head.department is None:
            raise WorkflowValidationError(f"{head.name} is not an approved department head.")

        return self._apply_head_assignments(ctx, [(lead_id, head) for lead_id in lead_ids])

    def auto_distribute_to_department_heads(
        self, ctx: ActorContext, lead_ids: Sequence[str]
    ) -> DistributionResult:
        ctx.require_role(CENTRAL_ROLES, "distribute leads")
        lead_ids = _dedupe(lead_ids)
        heads = self.approved_department_heads()
        if not lead_ids or not heads:
            logger.info(
                "Nothing to distribute to department heads",
                extra={"lead_count": len(lead_ids), "head_count": len(heads)},
            )
            return DistributionResult(requested=len(lead_ids), moved=0)

        return self._apply_head_assignments(ctx, round_robin_partition(lead_ids, heads))

    def smart_route_by_interest(self, ctx: ActorContext, lead_ids: Sequence[str]) -> RoutingResult:
        """
        Send each lead to a head of the department recorded on the lead.

        The department is the student's interest as set at classification time.
        Several heads of one department share its leads round-robin.
        """

        ctx.require_role(CENTRAL_ROLES, "route leads")
        lead_ids = _dedupe(lead_ids)
        found = self.leads.get_leads(lead_ids)
        missing = [lead_id for lead_id in lead_ids if lead_id not in found]

        by_department: Dict[Department, List[str]] = {}
        for lead_id in lead_ids:
            lead = found.get(lead_id)
            if lead is not None:
                by_department.setdefault(lead.department, []).append(lead_id)

        pairs: List[Tuple[str, StaffMember]] = []
        unrouted: Dict[Department, List[str]] = {}
        for department, ids in by_department.items():
            heads = self.approved_department_heads(department)
            if not heads:
                unrouted[department] = ids
                continue
            pairs.extend(round_robin_partition(ids, heads))

        if pairs:
            result = self._apply_head_assignments(ctx, pairs)
            moved, assignments = result.moved, result.assignments
        else:
            moved, assignments = 0, {}

        if unrouted or missing:
            logger.info(
                "Some leads could not be routed",
                extra={
                    "unrouted": {dept.value: len(ids) for dept, ids in unrouted.items()},
                    "missing_count": len(missing),
                },
            )
        return RoutingResult(
            requested=len(lead_ids),
            moved=moved,
            assignments=assignments,
            unrouted=unrouted,
            missing=missing,
        )

    # --- teachers ------------------------------------------------------------

    def assign_to_teacher(
        self, ctx: ActorContext, lead_ids: Sequence[str], teacher_id: str
    ) -> DistributionResult:
        ctx.require_role(CENTRAL_ROLES | {UserRole.HOD}, "assign leads to teachers")
        lead_ids = _dedupe(lead_ids)
        if not lead_ids:
            raise WorkflowValidationError("Select at least one lead to assign.")
        teacher = self._require_member(teacher_id)
        if teacher.role != UserRole.TEACHER or not teacher.is_approved:
            raise WorkflowValidationError(f"{teacher.name} is not an approved teacher.")
        self._require_department_scope(ctx, teacher.department)

        return self._apply_teacher_assignments(ctx, [(lead_id, teacher) for lead_id in lead_ids])

    def auto_distribute_to_teachers(
        self, ctx: ActorContext, lead_ids: Sequence[str], department: Department
    ) -> DistributionResult:
        ctx.require_role(CENTRAL_ROLES | {UserRole.HOD}, "distribute leads")
        self._require_department_scope(ctx, department)
        lead_ids = _dedupe(lead_ids)
        teachers = self.approved_teachers(department)
        if not lead_ids or not teachers:
            logger.info(
                "Nothing to distribute to teachers",
                extra={
                    "department": department.value,
                    "lead_count": len(lead_ids),
                    "teacher_count": len(teachers),
                },
            )
            return DistributionResult(requested=len(lead_ids), moved=0)

        return self._apply_teacher_assignments(ctx, round_robin_partition(lead_ids, teachers))

    # --- helpers -------------------------------------------------------------

    def _require_member(self, staff_id: str) -> StaffMember:
        member = self.staff.get_staff(staff_id)
        if member is None:
            raise RecordNotFoundError("Staff member", staff_id)
        return member

    @staticmethod
    def _require_department_scope(ctx: ActorContext, department: Optional[Department]) -> None:
        if ctx.actor.role == UserRole.HOD and ctx.actor.department != department:
            raise PermissionDeniedError("Department heads can only assign within their department.")

    def _apply_head_assignments(
        self, ctx: ActorContext, pairs: Sequence[Tuple[str, StaffMember]]
    ) -> DistributionResult:
        moved = self.leads.assign_department_heads(
            (lead_id, head.staff_id, head.department) for lead_id, head in pairs
        )
        assignments = _group_by_assignee(pairs)
        self._log_assignments(ctx, "department heads", moved, assignments)
        return DistributionResult(requested=len(pairs), moved=moved, assignments=assignments)

    def _apply_teacher_assignments(
        self, ctx: ActorContext, pairs: Sequence[Tuple[str, StaffMember]]
    ) -> DistributionResult:
        moved = self.leads.assign_teachers((lead_id, teacher.staff_id) for lead_id, teacher in pairs)
        assignments = _group_by_assignee(pairs)
        self._log_assignments(ctx, "teachers", moved, assignments)
        return DistributionResult(requested=len(pairs), moved=moved, assignments=assignments)

    def _log_assignments(
        self, ctx: ActorContext, target: str, moved: int, assignments: Dict[str, List[str]]
    ) -> None:
        logger.info(
            f"Assigned {moved} leads to {target}",
            extra={
                "actor_id": ctx.actor_id,
                "moved": moved,
                "assignees": {staff_id: len(ids) for staff_id, ids in assignments.items()},
            },
        )
        self.activity.record(
            ctx,
            UserAction.ASSIGNMENT,
            f"Assigned {moved} leads across {len(assignments)} {target}",
        )


__all__ = [
    "DistributionResult",
    "DistributionService",
    "RoutingResult",
    "round_robin_partition",
]
