"""
Pytest configuration and shared fixtures.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add the admissions-lead-platform directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.lead import Department, Lead, LeadStage
from domain.staff import RegistrationStatus, StaffMember, UserRole
from services.container import build_container
from services.context import ActorContext
from services.settings import Settings

MIN_SECONDS = 20


class FakeClock:
    """Deterministic clock; advance() moves time forward."""

    def __init__(self, start: datetime = datetime(2025, 6, 2, 9, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def make_staff(
    staff_id: str,
    role: UserRole,
    department: Department | None = None,
    status: RegistrationStatus = RegistrationStatus.APPROVED,
    name: str | None = None,
) -> StaffMember:
    return StaffMember(
        staff_id=staff_id,
        name=name or staff_id.replace("-", " ").title(),
        email=f"{staff_id}@college.edu",
        role=role,
        department=department,
        registration_status=status,
    )


def make_lead(
    lead_id: str,
    department: Department = Department.COMPUTER,
    stage: LeadStage = LeadStage.UNASSIGNED,
    **kwargs,
) -> Lead:
    return Lead(
        lead_id=lead_id,
        name=kwargs.pop("name", lead_id.upper()),
        phone=kwargs.pop("phone", "9876543210"),
        source_file=kwargs.pop("source_file", "fair.xlsx"),
        department=department,
        stage=stage,
        **kwargs,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", min_call_duration_seconds=MIN_SECONDS)


@pytest.fixture
def container(settings, clock):
    """In-memory services with a small staff directory."""

    services = build_container(settings, clock=clock, picker=lambda leads: leads[0])
    for member in [
        make_staff("super-1", UserRole.SUPER_ADMIN),
        make_staff("admin-1", UserRole.ADMIN),
        make_staff("hod-ct", UserRole.HOD, Department.COMPUTER),
        make_staff("hod-it", UserRole.HOD, Department.IT),
        make_staff("teacher-ct-1", UserRole.TEACHER, Department.COMPUTER),
        make_staff("teacher-ct-2", UserRole.TEACHER, Department.COMPUTER),
        make_staff("teacher-it-1", UserRole.TEACHER, Department.IT),
    ]:
        services.staff.add(member)
    return services


@pytest.fixture
def ctx_for(container):
    """Build an ActorContext for a seeded staff id."""

    contexts = {}

    def _ctx(staff_id: str) -> ActorContext:
        if staff_id not in contexts:
            contexts[staff_id] = ActorContext(actor=container.staff.get_staff(staff_id))
        return contexts[staff_id]

    return _ctx
