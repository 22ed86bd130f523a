"""
Domain: Call verification challenges.

A challenge audits one of a teacher's verified calls:

    none -> pending -> responded -> {approved | rejected}
    rejected -> responded            (resubmission)
    any -> pending                   (re-trigger starts a new cycle)

The actual duration/timestamp are snapshotted from the sampled lead when the
challenge is issued. The teacher's self-report is compared against them by a human
reviewer; nothing here approves or rejects automatically.

Transitions return new instances; challenges are never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional

from .errors import WorkflowValidationError
from .lead import Lead
from .time import require_utc_timestamp


class VerificationStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    RESPONDED = "responded"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class VerificationChallenge:
    status: VerificationStatus = VerificationStatus.NONE

    # Sampled call (ground truth)
    lead_id: Optional[str] = None
    lead_name: Optional[str] = None
    lead_phone: Optional[str] = None
    actual_duration: Optional[int] = None
    actual_timestamp: Optional[datetime] = None

    # Teacher self-report
    reported_duration: Optional[int] = None
    reported_date: Optional[date] = None
    evidence_ref: Optional[str] = None

    # Reviewer
    rejection_reason: Optional[str] = None
    previous_rejection_reason: Optional[str] = None

    issued_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None

    @staticmethod
    def issue(lead: Lead, issued_at: datetime) -> "VerificationChallenge":
        """Start a new cycle against a verified call of the teacher."""

        require_utc_timestamp("issued_at", issued_at)
        if not lead.call_verified:
            raise WorkflowValidationError("Only verified calls can be audited.")
        return VerificationChallenge(
            status=VerificationStatus.PENDING,
            lead_id=lead.lead_id,
            lead_name=lead.name,
            lead_phone=lead.phone,
            actual_duration=lead.call_duration,
            actual_timestamp=lead.call_timestamp,
            issued_at=issued_at,
        )

    @property
    def accepts_response(self) -> bool:
        return self.status in (VerificationStatus.PENDING, VerificationStatus.REJECTED)

    def respond(
        self,
        *,
        reported_duration: int,
        reported_date: date,
        evidence_ref: str,
        minimum_seconds: int,
        responded_at: datetime,
    ) -> "VerificationChallenge":
        require_utc_timestamp("responded_at", responded_at)
        if not self.accepts_response:
            raise WorkflowValidationError(
                f"No verification request is awaiting a response (status: {self.status.value})."
            )
        if not evidence_ref or not evidence_ref.strip():
            raise WorkflowValidationError("Attach call-log evidence before submitting.")
        if reported_duration < minimum_seconds:
            raise WorkflowValidationError(
                f"Reported duration must be at least {minimum_seconds}s."
            )
        return replace(
            self,
            status=VerificationStatus.RESPONDED,
            reported_duration=reported_duration,
            reported_date=reported_date,
            evidence_ref=evidence_ref.strip(),
            previous_rejection_reason=self.rejection_reason or self.previous_rejection_reason,
            rejection_reason=None,
            responded_at=responded_at,
        )

    def approve(self, decided_at: datetime) -> "VerificationChallenge":
        self._require_responded()
        require_utc_timestamp("decided_at", decided_at)
        return replace(
            self,
            status=VerificationStatus.APPROVED,
            rejection_reason=None,
            previous_rejection_reason=None,
            decided_at=decided_at,
        )

    def reject(self, reason: str, decided_at: datetime) -> "VerificationChallenge":
        """Rejecting discards the evidence so the teacher must resubmit from scratch."""

        self._require_responded()
        require_utc_timestamp("decided_at", decided_at)
        if not reason or not reason.strip():
            raise WorkflowValidationError("A reason is required to reject a verification.")
        return replace(
            self,
            status=VerificationStatus.REJECTED,
            rejection_reason=reason.strip(),
            previous_rejection_reason=None,
            evidence_ref=None,
            reported_duration=None,
            reported_date=None,
            decided_at=decided_at,
        )

    def _require_responded(self) -> None:
        if self.status != VerificationStatus.RESPONDED:
            raise WorkflowValidationError(
                f"Only responded verifications can be decided (status: {self.status.value})."
            )
