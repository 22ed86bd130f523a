"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead domain entity.
No business rules (stage transitions, duration gates, distribution) belong here.

Every write is a merge-patch that names only the columns it changes, so edits made
concurrently by another staff member on unrelated columns survive.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from domain.call_session import CompletedCall
from domain.lead import Department, Lead, LeadStage, StudentResponse
from domain.lifecycle import Classification
from repositories.rows import optional_str, parse_utc_datetime, to_iso_utc
from repositories.store import DocumentCollection, ErrorListener, SnapshotSource, Unsubscribe

logger = logging.getLogger(__name__)

# Table / collection name for Lead records.
LEADS_TABLE: str = "leads"
LEAD_ID_FIELD: str = "lead_id"


def lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a full row payload."""

    return {
        LEAD_ID_FIELD: lead.lead_id,
        "name": lead.name,
        "phone": lead.phone,
        "source_file": lead.source_file,
        "department": lead.department.value,
        "stage": lead.stage.value,
        "response": lead.response.value if lead.response else None,
        "call_verified": lead.call_verified,
        "call_timestamp_utc": to_iso_utc(lead.call_timestamp),
        "call_duration_seconds": lead.call_duration,
        "assigned_hod_id": lead.assigned_hod_id,
        "assigned_teacher_id": lead.assigned_teacher_id,
        "notes": lead.notes,
        "created_at_utc": to_iso_utc(lead.created_at),
    }


def row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a stored row into a domain Lead."""

    response = optional_str(row, "response")
    duration = row.get("call_duration_seconds")
    return Lead(
        lead_id=str(row[LEAD_ID_FIELD]),
        name=str(row.get("name") or ""),
        phone=str(row.get("phone") or ""),
        source_file=str(row.get("source_file") or ""),
        department=Department(str(row["department"])),
        stage=LeadStage(str(row.get("stage") or LeadStage.UNASSIGNED.value)),
        response=StudentResponse(response) if response else None,
        call_verified=bool(row.get("call_verified", False)),
        call_timestamp=parse_utc_datetime(row.get("call_timestamp_utc")),
        call_duration=int(duration) if duration is not None else None,
        assigned_hod_id=optional_str(row, "assigned_hod_id"),
        assigned_teacher_id=optional_str(row, "assigned_teacher_id"),
        notes=optional_str(row, "notes"),
        created_at=parse_utc_datetime(row.get("created_at_utc")),
    )


def rows_to_leads(rows: Iterable[Mapping[str, Any]]) -> List[Lead]:
    """
    Convert rows, skipping malformed ones.

    The store enforces no schema, so one bad row must not break a whole listing.
    """

    leads: List[Lead] = []
    for row in rows:
        try:
            leads.append(row_to_lead(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Skipping malformed lead row",
                extra={"lead_id": row.get(LEAD_ID_FIELD), "error": str(exc)},
            )
    return leads


class LeadRepository:
    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection
        self._view: Optional[SnapshotSource[Lead]] = None

    def serve_reads_from(self, view: SnapshotSource[Lead]) -> None:
        """List reads use view while it is live; a stale view keeps its last snapshot."""
        self._view = view

    def list_leads(self) -> List[Lead]:
        if self._view is not None and self._view.is_live:
            return self._view.items
        return rows_to_leads(self.collection.get_all())

    def get_lead(self, lead_id: str) -> Optional[Lead]:
        row = self.collection.get(lead_id)
        return row_to_lead(row) if row is not None else None

    def get_leads(self, lead_ids: Iterable[str]) -> Dict[str, Lead]:
        wanted = set(lead_ids)
        return {lead.lead_id: lead for lead in self.list_leads() if lead.lead_id in wanted}

    def upsert_leads(self, leads: Iterable[Lead]) -> int:
        items = []
        for lead in leads:
            row = lead_to_row(lead)
            row.pop(LEAD_ID_FIELD)
            items.append((lead.lead_id, row))
        return self.collection.batch_upsert(items)

    def assign_department_heads(self, assignments: Iterable[Tuple[str, str, Department]]) -> int:
        """Apply (lead_id, hod_id, department) assignments as one batch."""

        return self.collection.batch_upsert(
            [
                (
                    lead_id,
                    {
                        "assigned_hod_id": hod_id,
                        "department": department.value,
                        "stage": LeadStage.ASSIGNED.value,
                    },
                )
                for lead_id, hod_id, department in assignments
            ]
        )

    def assign_teachers(self, assignments: Iterable[Tuple[str, str]]) -> int:
        """Apply (lead_id, teacher_id) assignments as one batch."""

        return self.collection.batch_upsert(
            [
                (
                    lead_id,
                    {"assigned_teacher_id": teacher_id, "stage": LeadStage.ASSIGNED.value},
                )
                for lead_id, teacher_id in assignments
            ]
        )

    def record_call(self, call: CompletedCall) -> None:
        """Persist a verified call event (re-contact keeps the current stage)."""

        self.collection.upsert(
            call.lead_id,
            {
                "call_verified": True,
                "call_timestamp_utc": to_iso_utc(call.ended_at),
                "call_duration_seconds": call.duration_seconds,
            },
        )

    def record_classification(self, lead_id: str, classification: Classification) -> None:
        patch: Dict[str, Any] = {
            "response": classification.response.value,
            "stage": classification.stage.value,
            "call_verified": True,
            "call_timestamp_utc": to_iso_utc(classification.classified_at),
            "call_duration_seconds": classification.call_duration,
        }
        if classification.department is not None:
            patch["department"] = classification.department.value
        self.collection.upsert(lead_id, patch)

    def purge(self, lead_id: str) -> None:
        self.collection.delete(lead_id)

    def subscribe(
        self,
        listener: Callable[[List[Lead]], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Unsubscribe:
        return self.collection.subscribe(lambda rows: listener(rows_to_leads(rows)), on_error)


__all__ = [
    "LEADS_TABLE",
    "LEAD_ID_FIELD",
    "LeadRepository",
    "lead_to_row",
    "row_to_lead",
    "rows_to_leads",
]
