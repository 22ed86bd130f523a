"""
Call verification audits.

An auditor samples one of a teacher's verified calls uniformly at random and asks
the teacher to report the call's duration and date with call-log evidence. The
reviewer compares the self-report against the recorded values and decides by hand.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from domain.activity import UserAction
from domain.errors import PermissionDeniedError, RecordNotFoundError, WorkflowValidationError
from domain.lead import Lead
from domain.staff import CENTRAL_ROLES, StaffMember, UserRole
from domain.time import Clock, utc_now
from domain.verification import VerificationChallenge, VerificationDecision
from repositories.evidence_storage import EvidenceStorage
from repositories.lead_repository import LeadRepository
from repositories.staff_repository import StaffRepository
from services.activity_log import ActivityLog
from services.context import ActorContext

logger = logging.getLogger(__name__)

Picker = Callable[[Sequence[Lead]], Lead]

AUDITOR_ROLES = CENTRAL_ROLES | {UserRole.HOD}


@dataclass(frozen=True, slots=True)
class AuditComparison:
    """Recorded call vs. teacher self-report, as shown to the reviewer."""

    teacher_id: str
    teacher_name: str
    challenge: VerificationChallenge
    duration_difference: Optional[int]
    date_matches: Optional[bool]


def compare(teacher: StaffMember, challenge: VerificationChallenge) -> AuditComparison:
    difference: Optional[int] = None
    if challenge.actual_duration is not None and challenge.reported_duration is not None:
        difference = challenge.reported_duration - challenge.actual_duration

    matches: Optional[bool] = None
    if challenge.actual_timestamp is not None and challenge.reported_date is not None:
        matches = challenge.actual_timestamp.date() == challenge.reported_date

    return AuditComparison(
        teacher_id=teacher.staff_id,
        teacher_name=teacher.name,
        challenge=challenge,
        duration_difference=difference,
        date_matches=matches,
    )


class AuditService:
    def __init__(
        self,
        leads: LeadRepository,
        staff: StaffRepository,
        evidence: EvidenceStorage,
        activity: ActivityLog,
        min_call_duration_seconds: int,
        picker: Optional[Picker] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.leads = leads
        self.staff = staff
        self.evidence = evidence
        self.activity = activity
        self.min_call_duration_seconds = min_call_duration_seconds
        self.picker: Picker = picker or random.SystemRandom().choice
        self.clock = clock

    def trigger_audit(self, ctx: ActorContext, teacher_id: str) -> VerificationChallenge:
        """
        Start a new verification cycle for teacher_id.

        Allowed from any status; a re-trigger replaces the previous challenge.
        Fails without writing anything when the teacher has no verified calls.
        """

        ctx.require_role(AUDITOR_ROLES, "trigger audits")
        teacher = self._require_teacher(teacher_id)
        self._require_scope(ctx, teacher)

        verified = [
            lead
            for lead in self.leads.list_leads()
            if lead.assigned_teacher_id == teacher.staff_id and lead.call_verified
        ]
        if not verified:
            raise WorkflowValidationError(f"{teacher.name} has no verified calls to audit.")

        sampled = self.picker(verified)
        challenge = VerificationChallenge.issue(sampled, self.clock())
        self.staff.set_verification(teacher.staff_id, challenge)

        logger.info(
            "Verification audit triggered",
            extra={"actor_id": ctx.actor_id, "teacher_id": teacher.staff_id, "lead_id": sampled.lead_id},
        )
        self.activity.record(
            ctx, UserAction.VERIFICATION, f"Audit requested from {teacher.name}"
        )
        return challenge

    def attach_evidence(self, ctx: ActorContext, data: bytes, content_type: str) -> str:
        """Upload call-log evidence for the acting teacher and return its reference."""

        ctx.require_role({UserRole.TEACHER}, "upload verification evidence")
        if not data:
            raise WorkflowValidationError("The evidence file is empty.")
        reference = self.evidence.store(ctx.actor_id, data, content_type)
        logger.info(
            "Verification evidence stored",
            extra={"actor_id": ctx.actor_id, "size": len(data), "content_type": content_type},
        )
        return reference

    def submit_response(
        self,
        ctx: ActorContext,
        reported_duration: int,
        reported_date: date,
        evidence_ref: str,
    ) -> VerificationChallenge:
        ctx.require_role({UserRole.TEACHER}, "answer verification requests")
        teacher = self._require_teacher(ctx.actor_id)
        current = teacher.verification or VerificationChallenge()

        challenge = current.respond(
            reported_duration=reported_duration,
            reported_date=reported_date,
            evidence_ref=evidence_ref,
            minimum_seconds=self.min_call_duration_seconds,
            responded_at=self.clock(),
        )
        self.staff.set_verification(teacher.staff_id, challenge)

        logger.info(
            "Verification response submitted",
            extra={"teacher_id": teacher.staff_id, "reported_duration": reported_duration},
        )
        self.activity.record(
            ctx, UserAction.VERIFICATION, f"{teacher.name} submitted verification evidence"
        )
        return challenge

    def decide(
        self,
        ctx: ActorContext,
        teacher_id: str,
        decision: VerificationDecision,
        reason: Optional[str] = None,
    ) -> VerificationChallenge:
        ctx.require_role(AUDITOR_ROLES, "review verifications")
        teacher = self._require_teacher(teacher_id)
        self._require_scope(ctx, teacher)
        current = teacher.verification or VerificationChallenge()

        decided_at = self.clock()
        if decision == VerificationDecision.APPROVED:
            challenge = current.approve(decided_at)
        else:
            challenge = current.reject(reason or "", decided_at)
        self.staff.set_verification(teacher.staff_id, challenge)

        logger.info(
            f"Verification {decision.value}",
            extra={"actor_id": ctx.actor_id, "teacher_id": teacher.staff_id},
        )
        details = f"Verification for {teacher.name} {decision.value}"
        if challenge.rejection_reason:
            details += f": {challenge.rejection_reason}"
        self.activity.record(ctx, UserAction.VERIFICATION, details)
        return challenge

    def comparison(self, ctx: ActorContext, teacher_id: str) -> AuditComparison:
        teacher = self._require_teacher(teacher_id)
        if ctx.actor_id != teacher.staff_id:
            ctx.require_role(AUDITOR_ROLES, "review verifications")
            self._require_scope(ctx, teacher)
        return compare(teacher, teacher.verification or VerificationChallenge())

    def _require_teacher(self, teacher_id: str) -> StaffMember:
        teacher = self.staff.get_staff(teacher_id)
        if teacher is None or teacher.role != UserRole.TEACHER:
            raise RecordNotFoundError("Teacher", teacher_id)
        return teacher

    @staticmethod
    def _require_scope(ctx: ActorContext, teacher: StaffMember) -> None:
        if ctx.actor.role == UserRole.HOD and ctx.actor.department != teacher.department:
            raise PermissionDeniedError("Department heads can only audit their own teachers.")


__all__ = ["AuditComparison", "AuditService", "Picker", "compare"]
