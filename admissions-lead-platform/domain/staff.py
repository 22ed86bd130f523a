"""
Domain: Staff members (directory entries).

Represents institutional staff who work the lead pipeline:
- Central roles (Super Admin, Admin) have no department.
- Department heads (HOD) and teachers belong to exactly one department.
- Only approved staff participate in assignment pools.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import WorkflowValidationError
from .lead import Department
from .time import require_utc_timestamp
from .verification import VerificationChallenge


class UserRole(str, Enum):
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    HOD = "HOD"
    TEACHER = "Teacher"


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


CENTRAL_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})
DEPARTMENT_ROLES = frozenset({UserRole.HOD, UserRole.TEACHER})


def validate_role_department(role: UserRole, department: Optional[Department]) -> None:
    """Department heads and teachers need a department; central roles must not have one."""

    if role in DEPARTMENT_ROLES and department is None:
        raise WorkflowValidationError(f"A department is required for the {role.value} role.")
    if role in CENTRAL_ROLES and department is not None:
        raise WorkflowValidationError(f"The {role.value} role cannot belong to a department.")


@dataclass(frozen=True, slots=True)
class StaffMember:
    """
    Staff directory entry with approval and verification tracking.
    """

    staff_id: str
    name: str
    email: str
    role: UserRole
    department: Optional[Department] = None
    registration_status: RegistrationStatus = RegistrationStatus.PENDING

    # Approval metadata
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None

    verification: Optional[VerificationChallenge] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.approval_date is not None:
            require_utc_timestamp("approval_date", self.approval_date)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    @property
    def is_approved(self) -> bool:
        return self.registration_status == RegistrationStatus.APPROVED

    @property
    def is_central(self) -> bool:
        return self.role in CENTRAL_ROLES

    def can_approve(self, candidate: "StaffMember") -> bool:
        """
        Approval authority:
        - Super Admin approves anyone.
        - Admin approves department heads.
        - A department head approves teachers of its own department.
        """

        if not self.is_approved:
            return False
        if self.role == UserRole.SUPER_ADMIN:
            return True
        if self.role == UserRole.ADMIN:
            return candidate.role == UserRole.HOD
        if self.role == UserRole.HOD:
            return candidate.role == UserRole.TEACHER and candidate.department == self.department
        return False
