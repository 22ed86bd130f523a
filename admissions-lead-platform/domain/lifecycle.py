"""
Domain: Lead lifecycle state machine.

States:
    UNASSIGNED -> ASSIGNED -> {TARGETED | DISCARDED | FORWARDED | NO_ACTION}

The terminal stage of a lead is derived from the counselor's classification of the
call outcome. A terminal lead can be called again (call metadata is re-recorded) and
stays in its stage unless it is explicitly re-classified.

This module is pure: no I/O and no implicit clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import WorkflowValidationError
from .lead import Department, LeadStage, StudentResponse
from .time import require_utc_timestamp

RESPONSE_STAGES: Mapping[StudentResponse, LeadStage] = MappingProxyType(
    {
        StudentResponse.INTERESTED: LeadStage.TARGETED,
        StudentResponse.CONFUSED: LeadStage.TARGETED,
        StudentResponse.NOT_INTERESTED: LeadStage.DISCARDED,
        StudentResponse.NOT_RESPONDING: LeadStage.DISCARDED,
        StudentResponse.NOT_REACHABLE: LeadStage.DISCARDED,
        StudentResponse.GRADE_11_12: LeadStage.FORWARDED,
        StudentResponse.OTHERS: LeadStage.NO_ACTION,
    }
)

TERMINAL_STAGES = frozenset(
    {LeadStage.TARGETED, LeadStage.DISCARDED, LeadStage.FORWARDED, LeadStage.NO_ACTION}
)


def stage_for_response(response: StudentResponse) -> LeadStage:
    return RESPONSE_STAGES[response]


@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of classifying a call, ready to be written to the lead."""

    response: StudentResponse
    stage: LeadStage
    call_duration: int
    classified_at: datetime
    department: Optional[Department] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("classified_at", self.classified_at)


def classify_call(
    response: StudentResponse,
    *,
    elapsed_seconds: int,
    minimum_seconds: int,
    classified_at: datetime,
    selected_department: Optional[Department] = None,
) -> Classification:
    """
    Apply the response -> stage table to a finished call.

    Rules:
    - The call must have lasted at least minimum_seconds.
    - "Interested" requires the student's branch of interest; it replaces the
      lead's department. Other responses leave the department untouched.
    """

    if elapsed_seconds < minimum_seconds:
        raise WorkflowValidationError(
            f"Call lasted {elapsed_seconds}s; at least {minimum_seconds}s of "
            f"conversation is required before classifying."
        )

    department: Optional[Department] = None
    if response == StudentResponse.INTERESTED:
        if selected_department is None:
            raise WorkflowValidationError(
                "Select the department the student is interested in."
            )
        department = selected_department

    return Classification(
        response=response,
        stage=stage_for_response(response),
        call_duration=elapsed_seconds,
        classified_at=classified_at,
        department=department,
    )
