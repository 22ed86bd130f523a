"""
HTTP-level tests for the FastAPI application, on the in-memory backend.

Covers:
- Actor resolution from the X-Actor-Id header (unknown -> 401, pending -> 403).
- Service errors mapped to 403 / 404 / 422.
- End-to-end flows: import, distribute, call, classify, audit and export.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from conftest import MIN_SECONDS, make_lead, make_staff
from api.dependencies import CallSessionRegistry, get_container, get_session_registry
from api.main import app
from domain.lead import Department, LeadStage
from domain.staff import RegistrationStatus, UserRole

API = "/api/v1"


def _as(staff_id: str) -> dict:
    return {"X-Actor-Id": staff_id}


@pytest.fixture
def registry() -> CallSessionRegistry:
    return CallSessionRegistry(ticker_factory=None)


@pytest.fixture
def client(container, registry):
    app.dependency_overrides[get_container] = lambda: container
    app.dependency_overrides[get_session_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["backend"] == "memory"
    assert response.json()["stale_views"] == []


class TestCallSessionRegistry:
    def test_concurrent_first_lookups_share_one_session(self) -> None:
        created = []

        def slow_ticker():
            time.sleep(0.01)
            created.append(1)
            return None

        registry = CallSessionRegistry(ticker_factory=slow_ticker)
        with ThreadPoolExecutor(max_workers=8) as pool:
            sessions = list(pool.map(lambda _: registry.session_for("teacher-ct-1"), range(8)))

        assert len(created) == 1
        assert all(session is sessions[0] for session in sessions)


class TestActorResolution:
    def test_missing_header(self, client) -> None:
        assert client.get(f"{API}/leads").status_code == 422

    def test_unknown_actor(self, client) -> None:
        assert client.get(f"{API}/leads", headers=_as("nobody")).status_code == 401

    def test_pending_actor(self, client, container) -> None:
        container.staff.add(make_staff("late-1", UserRole.TEACHER, Department.IT, status=RegistrationStatus.PENDING))

        assert client.get(f"{API}/leads", headers=_as("late-1")).status_code == 403


class TestLeads:
    def test_import_and_list(self, client) -> None:
        body = {
            "rows": [
                {"name": "aarav patil", "phone": "98765-43210", "sourceFile": "fair.xlsx"},
                {"name": "no phone", "phone": ""},
            ]
        }

        response = client.post(f"{API}/leads/import", json=body, headers=_as("admin-1"))

        assert response.status_code == 200
        assert response.json()["imported"] == 1
        assert response.json()["rejected"] == [{"row_number": 2, "reason": "Phone number is empty"}]

        listing = client.get(f"{API}/leads", params={"stage": "Unassigned"}, headers=_as("admin-1")).json()
        assert listing["total_count"] == 1
        assert listing["items"][0]["name"] == "AARAV PATIL"
        assert listing["filters_applied"] == {"stage": "Unassigned"}

    def test_teacher_cannot_import(self, client) -> None:
        response = client.post(
            f"{API}/leads/import", json={"rows": [{"name": "a", "phone": "1"}]}, headers=_as("teacher-ct-1")
        )

        assert response.status_code == 403

    def test_manual_lead_validation(self, client) -> None:
        bad = client.post(f"{API}/leads", json={"name": "Kabir", "phone": "12345"}, headers=_as("admin-1"))
        good = client.post(f"{API}/leads", json={"name": "Kabir", "phone": "9876543210"}, headers=_as("hod-it"))

        assert bad.status_code == 422
        assert good.status_code == 201
        assert good.json()["department"] == Department.IT.value

    def test_distribute_and_route(self, client, container) -> None:
        container.leads.upsert_leads([make_lead(f"lead-{i}") for i in range(4)])
        container.leads.upsert_leads([make_lead("lead-mech", Department.MECHANICAL, LeadStage.TARGETED)])

        distributed = client.post(
            f"{API}/leads/distribute/hods",
            json={"lead_ids": ["lead-0", "lead-1", "lead-2", "lead-3"]},
            headers=_as("admin-1"),
        ).json()
        routed = client.post(
            f"{API}/leads/route-by-interest",
            json={"lead_ids": ["lead-mech", "ghost"]},
            headers=_as("admin-1"),
        ).json()

        assert distributed["moved"] == 4
        assert distributed["assignments"] == {"hod-ct": ["lead-0", "lead-2"], "hod-it": ["lead-1", "lead-3"]}
        assert routed["moved"] == 0
        assert routed["unrouted"] == {Department.MECHANICAL.value: ["lead-mech"]}
        assert routed["missing"] == ["ghost"]

    def test_assign_to_teacher_scope(self, client, container) -> None:
        container.leads.upsert_leads([make_lead("lead-0", assigned_hod_id="hod-ct")])

        denied = client.post(
            f"{API}/leads/assign/teacher",
            json={"lead_ids": ["lead-0"], "assignee_id": "teacher-it-1"},
            headers=_as("hod-ct"),
        )
        allowed = client.post(
            f"{API}/leads/assign/teacher",
            json={"lead_ids": ["lead-0"], "assignee_id": "teacher-ct-1"},
            headers=_as("hod-ct"),
        )

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert container.leads.get_lead("lead-0").assigned_teacher_id == "teacher-ct-1"

    def test_purge(self, client, container) -> None:
        container.leads.upsert_leads([make_lead("lead-0")])

        assert client.delete(f"{API}/leads/lead-0", headers=_as("admin-1")).status_code == 204
        assert client.delete(f"{API}/leads/lead-0", headers=_as("admin-1")).status_code == 404

    def test_export_forwarded(self, client, container) -> None:
        container.leads.upsert_leads([make_lead("lead-f", stage=LeadStage.FORWARDED)])

        response = client.get(f"{API}/leads/forwarded/export", headers=_as("admin-1"))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "SubBranch_Forwarded_Leads_" in response.headers["content-disposition"]
        assert "LEAD-F" in response.text


class TestCalls:
    @pytest.fixture
    def assigned(self, container):
        container.leads.upsert_leads(
            [make_lead("lead-1", stage=LeadStage.ASSIGNED, assigned_hod_id="hod-ct", assigned_teacher_id="teacher-ct-1")]
        )

    def test_call_and_classify(self, client, container, registry, assigned) -> None:
        headers = _as("teacher-ct-1")

        started = client.post(f"{API}/calls/lead-1/start", headers=headers)
        registry.session_for("teacher-ct-1").tick(MIN_SECONDS + 10)
        current = client.get(f"{API}/calls/current", headers=headers).json()
        classified = client.post(
            f"{API}/calls/lead-1/classify",
            json={"response": "Interested", "department": "AI & ML"},
            headers=headers,
        )

        assert started.json()["dial_uri"] == "tel:9876543210"
        assert current["elapsed_seconds"] == MIN_SECONDS + 10
        assert classified.status_code == 200
        assert classified.json()["stage"] == LeadStage.TARGETED.value
        lead = container.leads.get_lead("lead-1")
        assert lead.department == Department.AI_ML
        assert lead.call_duration == MIN_SECONDS + 10

    def test_short_call_rejected(self, client, registry, assigned) -> None:
        headers = _as("teacher-ct-1")
        client.post(f"{API}/calls/lead-1/start", headers=headers)
        registry.session_for("teacher-ct-1").tick(MIN_SECONDS - 1)
        ended = client.post(f"{API}/calls/current/end", headers=headers)

        response = client.post(f"{API}/calls/lead-1/classify", json={"response": "Others"}, headers=headers)

        assert ended.json()["duration_seconds"] == MIN_SECONDS - 1
        assert response.status_code == 422

    def test_sessions_are_per_actor(self, client, registry, assigned) -> None:
        client.post(f"{API}/calls/lead-1/start", headers=_as("teacher-ct-1"))

        other = client.get(f"{API}/calls/current", headers=_as("teacher-ct-2")).json()

        assert other["lead_id"] is None
        assert registry.session_for("teacher-ct-1").lead_id == "lead-1"

    def test_teardown(self, client, assigned) -> None:
        headers = _as("teacher-ct-1")
        client.post(f"{API}/calls/lead-1/start", headers=headers)

        response = client.delete(f"{API}/calls/current", headers=headers)

        assert response.json()["lead_id"] is None
        assert response.json()["is_active"] is False

    def test_unknown_lead(self, client) -> None:
        assert client.post(f"{API}/calls/missing/start", headers=_as("teacher-ct-1")).status_code == 404


class TestAudits:
    def test_audit_cycle(self, client, container) -> None:
        container.leads.upsert_leads(
            [
                make_lead(
                    "lead-v",
                    stage=LeadStage.TARGETED,
                    assigned_teacher_id="teacher-ct-1",
                    call_verified=True,
                    call_duration=42,
                    call_timestamp=container.activity.clock(),
                )
            ]
        )
        teacher = _as("teacher-ct-1")

        triggered = client.post(f"{API}/audits/teacher-ct-1", headers=_as("hod-ct"))
        upload = client.post(
            f"{API}/audits/me/evidence",
            content=b"\x89PNG fake",
            headers={**teacher, "Content-Type": "image/png"},
        )
        evidence_ref = upload.json()["evidence_ref"]
        responded = client.post(
            f"{API}/audits/me/response",
            json={
                "reported_duration": 40,
                "reported_date": container.activity.clock().date().isoformat(),
                "evidence_ref": evidence_ref,
            },
            headers=teacher,
        )
        comparison = client.get(f"{API}/audits/teacher-ct-1", headers=_as("hod-ct")).json()
        decided = client.post(
            f"{API}/audits/teacher-ct-1/decision",
            json={"decision": "rejected", "reason": "Blurry"},
            headers=_as("hod-ct"),
        )

        assert triggered.json()["status"] == "pending"
        assert triggered.json()["lead_id"] == "lead-v"
        assert evidence_ref.endswith(".png")
        assert responded.json()["status"] == "responded"
        assert comparison["duration_difference"] == -2
        assert comparison["date_matches"] is True
        assert decided.json()["status"] == "rejected"
        assert decided.json()["evidence_ref"] is None

    def test_audit_without_verified_calls(self, client) -> None:
        response = client.post(f"{API}/audits/teacher-ct-2", headers=_as("admin-1"))

        assert response.status_code == 422


class TestStaff:
    def test_register_and_approve(self, client) -> None:
        registered = client.post(
            f"{API}/staff/register",
            json={"name": "Neha Shah", "email": "neha@college.edu", "role": "Teacher", "department": "Computer Technology"},
        )
        staff_id = registered.json()["staff_id"]

        queue = client.get(f"{API}/staff/approvals", headers=_as("hod-ct")).json()
        decided = client.post(f"{API}/staff/{staff_id}/decision", json={"approve": True}, headers=_as("hod-ct"))

        assert registered.status_code == 201
        assert registered.json()["registration_status"] == "pending"
        assert [member["staff_id"] for member in queue] == [staff_id]
        assert decided.json()["registration_status"] == "approved"

    def test_revoke_self_rejected(self, client) -> None:
        assert client.delete(f"{API}/staff/admin-1", headers=_as("admin-1")).status_code == 422


class TestReports:
    def test_reports(self, client, container) -> None:
        container.leads.upsert_leads(
            [make_lead("l1", stage=LeadStage.TARGETED, assigned_teacher_id="teacher-ct-1")]
        )

        progress = client.get(f"{API}/reports/teacher-progress", headers=_as("hod-ct")).json()
        departments = client.get(f"{API}/reports/departments", headers=_as("admin-1")).json()
        stages = client.get(f"{API}/reports/stages", headers=_as("admin-1")).json()
        denied = client.get(f"{API}/reports/activity", headers=_as("teacher-ct-1"))

        assert {row["teacher_id"]: row["completed"] for row in progress} == {"teacher-ct-1": 1, "teacher-ct-2": 0}
        assert departments[0]["department"] == Department.COMPUTER.value
        assert {row["stage"]: row["count"] for row in stages}[LeadStage.TARGETED.value] == 1
        assert denied.status_code == 403
