"""
Staff directory workflow: registration, administrative creation, approval and revocation.

Approval authority lives on StaffMember.can_approve:
- Super Admin approves anyone.
- Admin approves department heads.
- A department head approves teachers of its own department.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from domain.activity import UserAction
from domain.errors import PermissionDeniedError, RecordNotFoundError, WorkflowValidationError
from domain.lead import Department
from domain.staff import (
    CENTRAL_ROLES,
    RegistrationStatus,
    StaffMember,
    UserRole,
    validate_role_department,
)
from domain.time import Clock, utc_now
from repositories.staff_repository import StaffRepository
from services.activity_log import ActivityLog
from services.context import ActorContext

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH: int = 3


def _validate_profile(name: str, email: str, role: UserRole, department: Optional[Department]) -> None:
    if len(name.strip()) < MIN_NAME_LENGTH:
        raise WorkflowValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters.")
    if "@" not in email or email.strip().startswith("@") or email.strip().endswith("@"):
        raise WorkflowValidationError("Enter a valid email address.")
    validate_role_department(role, department)


class StaffService:
    def __init__(self, staff: StaffRepository, activity: ActivityLog, clock: Clock = utc_now) -> None:
        self.staff = staff
        self.activity = activity
        self.clock = clock

    def register(
        self,
        name: str,
        email: str,
        role: UserRole,
        department: Optional[Department] = None,
    ) -> StaffMember:
        """Self-registration; the new account waits for approval."""

        if role == UserRole.SUPER_ADMIN:
            raise WorkflowValidationError("Super Admin accounts cannot be self-registered.")
        member = self._new_member(name, email, role, department, RegistrationStatus.PENDING)
        self.staff.add(member)
        logger.info(
            "Staff registration received",
            extra={"staff_id": member.staff_id, "role": role.value},
        )
        return member

    def create_staff(
        self,
        ctx: ActorContext,
        name: str,
        email: str,
        role: UserRole,
        department: Optional[Department] = None,
    ) -> StaffMember:
        """Administrative creation; the account is approved immediately."""

        ctx.require_role(CENTRAL_ROLES, "create staff accounts")
        if role == UserRole.SUPER_ADMIN and ctx.actor.role != UserRole.SUPER_ADMIN:
            raise PermissionDeniedError("Only a Super Admin can create another Super Admin.")
        member = self._new_member(
            name,
            email,
            role,
            department,
            RegistrationStatus.APPROVED,
            approved_by=ctx.actor_id,
        )
        self.staff.add(member)
        logger.info(
            "Staff account created",
            extra={"actor_id": ctx.actor_id, "staff_id": member.staff_id, "role": role.value},
        )
        self.activity.record(ctx, UserAction.APPROVAL, f"Created {role.value} account for {member.name}")
        return member

    def update_staff(
        self,
        ctx: ActorContext,
        staff_id: str,
        *,
        name: str,
        email: str,
        role: UserRole,
        department: Optional[Department] = None,
    ) -> StaffMember:
        ctx.require_role(CENTRAL_ROLES, "edit staff accounts")
        member = self._require_member(staff_id)
        _validate_profile(name, email, role, department)
        self._require_unique_email(email, exclude_id=staff_id)

        self.staff.update_profile(
            staff_id,
            name=name.strip(),
            email=email.strip().lower(),
            role=role,
            department=department,
        )
        logger.info("Staff account updated", extra={"actor_id": ctx.actor_id, "staff_id": staff_id})
        return self._require_member(member.staff_id)

    def approval_candidates(self, ctx: ActorContext) -> List[StaffMember]:
        """Pending registrations the actor is allowed to decide."""

        return [
            member
            for member in self.staff.list_staff()
            if member.registration_status == RegistrationStatus.PENDING
            and ctx.actor.can_approve(member)
        ]

    def decide_registration(self, ctx: ActorContext, staff_id: str, approve: bool) -> StaffMember:
        member = self._require_member(staff_id)
        if member.staff_id == ctx.actor_id:
            raise PermissionDeniedError("You cannot decide your own registration.")
        if not ctx.actor.can_approve(member):
            raise PermissionDeniedError(f"You are not allowed to approve {member.role.value} accounts.")
        if member.registration_status != RegistrationStatus.PENDING:
            raise WorkflowValidationError(
                f"This registration was already {member.registration_status.value}."
            )

        status = RegistrationStatus.APPROVED if approve else RegistrationStatus.REJECTED
        self.staff.set_registration_status(staff_id, status, ctx.actor_id, self.clock())

        logger.info(
            f"Registration {status.value}",
            extra={"actor_id": ctx.actor_id, "staff_id": staff_id},
        )
        self.activity.record(
            ctx, UserAction.APPROVAL, f"{status.value.capitalize()} {member.role.value} {member.name}"
        )
        return self._require_member(staff_id)

    def revoke(self, ctx: ActorContext, staff_id: str) -> None:
        ctx.require_role(CENTRAL_ROLES, "revoke staff accounts")
        if staff_id == ctx.actor_id:
            raise WorkflowValidationError("You cannot revoke your own account.")
        member = self._require_member(staff_id)
        if member.role == UserRole.SUPER_ADMIN and ctx.actor.role != UserRole.SUPER_ADMIN:
            raise PermissionDeniedError("Only a Super Admin can revoke another Super Admin.")

        self.staff.delete(staff_id)
        logger.info("Staff account revoked", extra={"actor_id": ctx.actor_id, "staff_id": staff_id})
        self.activity.record(ctx, UserAction.APPROVAL, f"Revoked {member.role.value} {member.name}")

    def _new_member(
        self,
        name: str,
        email: str,
        role: UserRole,
        department: Optional[Department],
        status: RegistrationStatus,
        approved_by: Optional[str] = None,
    ) -> StaffMember:
        _validate_profile(name, email, role, department)
        self._require_unique_email(email)
        now = self.clock()
        return StaffMember(
            staff_id=str(uuid4()),
            name=name.strip(),
            email=email.strip().lower(),
            role=role,
            department=department,
            registration_status=status,
            approved_by=approved_by,
            approval_date=now if status == RegistrationStatus.APPROVED else None,
            created_at=now,
        )

    def _require_unique_email(self, email: str, exclude_id: Optional[str] = None) -> None:
        existing = self.staff.find_by_email(email)
        if existing is not None and existing.staff_id != exclude_id:
            raise WorkflowValidationError("An account with this email already exists.")

    def _require_member(self, staff_id: str) -> StaffMember:
        member = self.staff.get_staff(staff_id)
        if member is None:
            raise RecordNotFoundError("Staff member", staff_id)
        return member


__all__ = ["MIN_NAME_LENGTH", "StaffService"]
