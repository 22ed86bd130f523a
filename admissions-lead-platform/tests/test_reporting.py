"""
Tests for `services/reporting_service.py`.

Covers:
- Role scoping of lead listings.
- Placeholders for missing and dangling assignee ids.
- Teacher progress, department summary and stage breakdown numbers.
- Forwarded-lead CSV export, including CSV injection sanitization.
- Listings keep working from the live snapshot when store reads fail.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from conftest import make_lead, make_staff
from domain.errors import PermissionDeniedError
from domain.lead import Department, LeadStage, StudentResponse
from domain.staff import UserRole
from repositories.store import StoreError
from services.reporting_service import (
    UNASSIGNED_PLACEHOLDER,
    UNKNOWN_PLACEHOLDER,
    forwarded_csv,
    sanitize_csv_field,
    staff_label,
    teacher_progress,
)

CALLED_AT = datetime(2025, 6, 1, 11, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def seeded(container):
    container.leads.upsert_leads(
        [
            make_lead("l1", stage=LeadStage.TARGETED, assigned_hod_id="hod-ct", assigned_teacher_id="teacher-ct-1"),
            make_lead("l2", stage=LeadStage.ASSIGNED, assigned_hod_id="hod-ct", assigned_teacher_id="teacher-ct-1"),
            make_lead("l3", stage=LeadStage.DISCARDED, assigned_hod_id="hod-ct", assigned_teacher_id="teacher-ct-2"),
            make_lead("l4", Department.IT, LeadStage.UNASSIGNED),
            make_lead(
                "l5",
                Department.IT,
                LeadStage.FORWARDED,
                assigned_hod_id="hod-it",
                assigned_teacher_id="teacher-it-1",
                response=StudentResponse.GRADE_11_12,
                call_verified=True,
                call_duration=33,
                call_timestamp=CALLED_AT,
            ),
        ]
    )
    return container


class TestScoping:
    def test_central_roles_see_everything(self, seeded, ctx_for) -> None:
        assert len(seeded.reporting.list_leads(ctx_for("admin-1"))) == 5

    def test_hod_sees_department(self, seeded, ctx_for) -> None:
        ids = {lead.lead_id for lead in seeded.reporting.list_leads(ctx_for("hod-it"))}

        assert ids == {"l4", "l5"}

    def test_teacher_sees_assigned(self, seeded, ctx_for) -> None:
        ids = [lead.lead_id for lead in seeded.reporting.list_leads(ctx_for("teacher-ct-1"))]

        assert ids == ["l1", "l2"]

    def test_filters(self, seeded, ctx_for) -> None:
        ctx = ctx_for("admin-1")

        assert [l.lead_id for l in seeded.reporting.list_leads(ctx, stage=LeadStage.TARGETED)] == ["l1"]
        assert len(seeded.reporting.list_leads(ctx, department=Department.IT)) == 2
        assert [
            l.lead_id for l in seeded.reporting.list_leads(ctx, response=StudentResponse.GRADE_11_12)
        ] == ["l5"]


class TestDashboards:
    def test_teacher_progress_for_hod(self, seeded, ctx_for) -> None:
        rows = seeded.reporting.teacher_progress(ctx_for("hod-ct"))

        by_id = {row.teacher_id: row for row in rows}
        assert set(by_id) == {"teacher-ct-1", "teacher-ct-2"}
        assert by_id["teacher-ct-1"].total_assigned == 2
        assert by_id["teacher-ct-1"].completed == 1
        assert by_id["teacher-ct-1"].pending == 1
        assert by_id["teacher-ct-1"].progress_pct == 50
        assert by_id["teacher-ct-2"].progress_pct == 100

    def test_progress_without_leads_is_zero(self) -> None:
        rows = teacher_progress([make_staff("t", UserRole.TEACHER, Department.IT)], [])

        assert rows[0].progress_pct == 0

    def test_teachers_cannot_view_progress(self, seeded, ctx_for) -> None:
        with pytest.raises(PermissionDeniedError):
            seeded.reporting.teacher_progress(ctx_for("teacher-ct-1"))

    def test_department_summary(self, seeded, ctx_for) -> None:
        rows = seeded.reporting.department_summary(ctx_for("super-1"))

        assert rows[0].department == Department.COMPUTER
        assert rows[0].total == 3
        assert rows[0].targeted == 1
        assert rows[0].conversion_pct == 33
        assert len(rows) == len(Department)

    def test_stage_breakdown(self, seeded, ctx_for) -> None:
        counts = {row.stage: row.count for row in seeded.reporting.stage_breakdown(ctx_for("admin-1"))}

        assert counts[LeadStage.TARGETED] == 1
        assert counts[LeadStage.FORWARDED] == 1
        assert counts[LeadStage.NO_ACTION] == 0
        assert sum(counts.values()) == 5

    def test_activity_log_newest_first(self, seeded, ctx_for, clock) -> None:
        ctx = ctx_for("admin-1")
        seeded.distribution.assign_to_department_head(ctx, ["l4"], "hod-it")
        clock.advance(60)
        seeded.intake.purge_lead(ctx, "l4")

        entries = seeded.reporting.activity_log(ctx)

        assert [entry.details for entry in entries][0].startswith("Purged lead")
        with pytest.raises(PermissionDeniedError):
            seeded.reporting.activity_log(ctx_for("hod-ct"))


class TestLabels:
    def test_placeholders(self) -> None:
        staff = {"t1": make_staff("t1", UserRole.TEACHER, Department.IT, name="Asha")}

        assert staff_label(staff, "t1") == "Asha"
        assert staff_label(staff, None) == UNASSIGNED_PLACEHOLDER
        assert staff_label(staff, "gone") == UNKNOWN_PLACEHOLDER


class TestForwardedExport:
    def test_export_forwarded(self, seeded, ctx_for) -> None:
        filename, content, count = seeded.reporting.export_forwarded(ctx_for("admin-1"), CALLED_AT)

        rows = list(csv.reader(StringIO(content)))
        assert filename == "SubBranch_Forwarded_Leads_2025-06-01.csv"
        assert count == 1
        assert rows[0][0] == "Sr No."
        assert rows[1] == [
            "1",
            "L5",
            "9876543210",
            Department.IT.value,
            "Teacher It 1",
            CALLED_AT.isoformat(),
            "33",
            StudentResponse.GRADE_11_12.value,
        ]

    def test_export_is_scoped_for_hod(self, seeded, ctx_for) -> None:
        _, _, count = seeded.reporting.export_forwarded(ctx_for("hod-ct"), CALLED_AT)

        assert count == 0

    def test_export_sanitizes_and_labels_unknown(self) -> None:
        lead = make_lead("x", stage=LeadStage.FORWARDED, name="=cmd|'/c calc'!A1", assigned_teacher_id="gone")

        rows = list(csv.reader(StringIO(forwarded_csv([lead], {}))))

        assert rows[1][1] == "CMD|'/C CALC'!A1"
        assert rows[1][4] == UNKNOWN_PLACEHOLDER
        assert rows[1][5] == "N/A"


class TestSanitizeCsvField:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("=1+1", "1+1"),
            ("+91", "91"),
            ("@SUM(A1)", "SUM(A1)"),
            ("-=-x", "x"),
            ("Normal Name", "Normal Name"),
            (None, ""),
            ("", ""),
        ],
    )
    def test_sanitization(self, value, expected) -> None:
        assert sanitize_csv_field(value, "name") == expected

    def test_stripping_is_logged(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            sanitize_csv_field("=evil", "name")

        assert any("CSV injection" in record.message for record in caplog.records)


class TestLiveSnapshotReads:
    def test_listing_served_from_snapshot_when_store_read_fails(self, container, ctx_for, monkeypatch) -> None:
        container.leads.upsert_leads([make_lead("l1"), make_lead("l2")])
        container.start_views()

        def fail():
            raise StoreError("subscription dropped")

        monkeypatch.setattr(container.leads.collection, "get_all", fail)
        monkeypatch.setattr(container.staff.collection, "get_all", fail)

        leads = container.reporting.list_leads(ctx_for("admin-1"))
        progress = container.reporting.teacher_progress(ctx_for("admin-1"))

        assert [lead.lead_id for lead in leads] == ["l1", "l2"]
        assert {row.teacher_id for row in progress} >= {"teacher-ct-1", "teacher-it-1"}
        container.stop_views()

    def test_stopped_views_read_from_store(self, container, ctx_for) -> None:
        container.start_views()
        container.stop_views()
        container.leads.upsert_leads([make_lead("l1")])

        assert container.lead_view.items == []
        assert [lead.lead_id for lead in container.reporting.list_leads(ctx_for("admin-1"))] == ["l1"]
