"""
Tests for `domain/lead.py`.

Covers contract rules:
- New leads start UNASSIGNED with no call metadata.
- Timestamps must be UTC.
- Lead is immutable (frozen).
- Phone validity means exactly 10 digits.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from domain.lead import Department, Lead, LeadStage, digits_only


def _lead(**kwargs) -> Lead:
    values = dict(
        lead_id="lead-1",
        name="AARAV PATIL",
        phone="9876543210",
        source_file="fair.xlsx",
        department=Department.COMPUTER,
    )
    values.update(kwargs)
    return Lead(**values)


def test_new_lead_defaults_to_unassigned() -> None:
    lead = _lead()

    assert lead.stage == LeadStage.UNASSIGNED
    assert lead.call_verified is False
    assert lead.call_duration is None
    assert lead.assigned_hod_id is None
    assert lead.assigned_teacher_id is None
    assert lead.is_pending


def test_lead_timestamps_must_be_utc() -> None:
    """Verify call_timestamp and created_at must be timezone-aware UTC (offset 0)."""

    with pytest.raises(ValueError):
        _lead(call_timestamp=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=5, minutes=30))))


def test_lead_is_immutable() -> None:
    lead = _lead()

    with pytest.raises(FrozenInstanceError):
        lead.stage = LeadStage.ASSIGNED  # type: ignore[misc]


@pytest.mark.parametrize(
    "phone,valid",
    [
        ("9876543210", True),
        ("987654321", False),
        ("98765432101", False),
        ("", False),
    ],
)
def test_has_valid_phone(phone: str, valid: bool) -> None:
    assert _lead(phone=phone).has_valid_phone is valid


def test_terminal_lead_is_not_pending() -> None:
    assert not _lead(stage=LeadStage.FORWARDED).is_pending


def test_digits_only_strips_formatting() -> None:
    assert digits_only("+91 98765-43210") == "919876543210"
    assert digits_only("n/a") == ""
