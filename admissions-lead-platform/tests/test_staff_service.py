"""
Tests for `services/staff_service.py` and the approval rules on `domain/staff.py`.
"""

from __future__ import annotations

import pytest

from conftest import make_staff
from domain.errors import PermissionDeniedError, WorkflowValidationError
from domain.lead import Department
from domain.staff import RegistrationStatus, UserRole


def test_register_creates_pending_account(container) -> None:
    member = container.staff_directory.register(" Neha Shah ", "Neha@College.edu", UserRole.TEACHER, Department.IT)

    stored = container.staff.get_staff(member.staff_id)
    assert stored.registration_status == RegistrationStatus.PENDING
    assert stored.name == "Neha Shah"
    assert stored.email == "neha@college.edu"


@pytest.mark.parametrize(
    "name,email,role,department",
    [
        ("Al", "al@college.edu", UserRole.TEACHER, Department.IT),
        ("Alok", "alok.college.edu", UserRole.TEACHER, Department.IT),
        ("Alok", "alok@college.edu", UserRole.HOD, None),
        ("Alok", "alok@college.edu", UserRole.ADMIN, Department.IT),
        ("Alok", "alok@college.edu", UserRole.SUPER_ADMIN, None),
    ],
)
def test_register_validation(container, name, email, role, department) -> None:
    with pytest.raises(WorkflowValidationError):
        container.staff_directory.register(name, email, role, department)


def test_register_rejects_duplicate_email(container) -> None:
    with pytest.raises(WorkflowValidationError):
        container.staff_directory.register("Someone", "TEACHER-CT-1@college.edu", UserRole.TEACHER, Department.COMPUTER)


class TestApproval:
    def test_hod_approves_own_department_teacher(self, container, ctx_for) -> None:
        pending = container.staff_directory.register("Vikram", "vikram@college.edu", UserRole.TEACHER, Department.COMPUTER)

        assert [m.staff_id for m in container.staff_directory.approval_candidates(ctx_for("hod-ct"))] == [
            pending.staff_id
        ]
        assert container.staff_directory.approval_candidates(ctx_for("hod-it")) == []

        approved = container.staff_directory.decide_registration(ctx_for("hod-ct"), pending.staff_id, True)

        assert approved.is_approved
        assert approved.approved_by == "hod-ct"
        assert approved.approval_date is not None

    def test_hod_cannot_approve_other_department(self, container, ctx_for) -> None:
        pending = container.staff_directory.register("Vikram", "vikram@college.edu", UserRole.TEACHER, Department.COMPUTER)

        with pytest.raises(PermissionDeniedError):
            container.staff_directory.decide_registration(ctx_for("hod-it"), pending.staff_id, True)

    def test_admin_approves_heads_only(self, container, ctx_for) -> None:
        head = container.staff_directory.register("Priya", "priya@college.edu", UserRole.HOD, Department.ETC)
        admin = container.staff_directory.register("Arjun", "arjun@college.edu", UserRole.ADMIN)

        container.staff_directory.decide_registration(ctx_for("admin-1"), head.staff_id, True)
        with pytest.raises(PermissionDeniedError):
            container.staff_directory.decide_registration(ctx_for("admin-1"), admin.staff_id, True)

    def test_super_admin_rejects(self, container, ctx_for) -> None:
        admin = container.staff_directory.register("Arjun", "arjun@college.edu", UserRole.ADMIN)

        rejected = container.staff_directory.decide_registration(ctx_for("super-1"), admin.staff_id, False)

        assert rejected.registration_status == RegistrationStatus.REJECTED

    def test_decided_registration_cannot_be_decided_again(self, container, ctx_for) -> None:
        head = container.staff_directory.register("Priya", "priya@college.edu", UserRole.HOD, Department.ETC)
        container.staff_directory.decide_registration(ctx_for("admin-1"), head.staff_id, True)

        with pytest.raises(WorkflowValidationError, match="already approved"):
            container.staff_directory.decide_registration(ctx_for("super-1"), head.staff_id, False)
        with pytest.raises(WorkflowValidationError):
            container.staff_directory.decide_registration(ctx_for("super-1"), head.staff_id, True)

        member = container.staff.get_staff(head.staff_id)
        assert member.registration_status == RegistrationStatus.APPROVED
        assert member.approved_by == "admin-1"

    def test_unapproved_member_cannot_approve(self, container, ctx_for) -> None:
        container.staff.add(make_staff("hod-new", UserRole.HOD, Department.COMPUTER, status=RegistrationStatus.PENDING))
        pending = container.staff_directory.register("Vikram", "vikram@college.edu", UserRole.TEACHER, Department.COMPUTER)

        with pytest.raises(PermissionDeniedError):
            container.staff_directory.decide_registration(ctx_for("hod-new"), pending.staff_id, True)


class TestAdministration:
    def test_create_staff_is_preapproved(self, container, ctx_for) -> None:
        member = container.staff_directory.create_staff(
            ctx_for("admin-1"), "Sanjay Rao", "sanjay@college.edu", UserRole.TEACHER, Department.IT
        )

        assert member.is_approved
        assert member.approved_by == "admin-1"
        assert container.logs.list_logs()[0].actor_id == "admin-1"

    def test_admin_cannot_create_super_admin(self, container, ctx_for) -> None:
        with pytest.raises(PermissionDeniedError):
            container.staff_directory.create_staff(ctx_for("admin-1"), "Root User", "root@college.edu", UserRole.SUPER_ADMIN)

    def test_update_staff(self, container, ctx_for) -> None:
        updated = container.staff_directory.update_staff(
            ctx_for("super-1"),
            "teacher-it-1",
            name="Teacher It One",
            email="t.it@college.edu",
            role=UserRole.HOD,
            department=Department.IT,
        )

        assert updated.role == UserRole.HOD
        assert updated.email == "t.it@college.edu"

    def test_update_rejects_taken_email(self, container, ctx_for) -> None:
        with pytest.raises(WorkflowValidationError):
            container.staff_directory.update_staff(
                ctx_for("super-1"),
                "teacher-it-1",
                name="Teacher It One",
                email="hod-ct@college.edu",
                role=UserRole.TEACHER,
                department=Department.IT,
            )

    def test_cannot_revoke_self(self, container, ctx_for) -> None:
        with pytest.raises(WorkflowValidationError):
            container.staff_directory.revoke(ctx_for("admin-1"), "admin-1")

    def test_admin_cannot_revoke_super_admin(self, container, ctx_for) -> None:
        with pytest.raises(PermissionDeniedError):
            container.staff_directory.revoke(ctx_for("admin-1"), "super-1")

    def test_revoke_removes_member(self, container, ctx_for) -> None:
        container.staff_directory.revoke(ctx_for("super-1"), "teacher-ct-2")

        assert container.staff.get_staff("teacher-ct-2") is None
