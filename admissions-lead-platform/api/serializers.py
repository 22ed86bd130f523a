"""
Conversions from domain objects to API response models.
"""

from typing import Optional

from api.models import LeadResponse, StaffResponse, VerificationResponse
from domain.lead import Lead
from domain.staff import StaffMember
from domain.verification import VerificationChallenge


def lead_response(lead: Lead) -> LeadResponse:
    return LeadResponse(
        lead_id=lead.lead_id,
        name=lead.name,
        phone=lead.phone,
        source_file=lead.source_file,
        department=lead.department,
        stage=lead.stage,
        response=lead.response,
        call_verified=lead.call_verified,
        call_timestamp=lead.call_timestamp,
        call_duration=lead.call_duration,
        assigned_hod_id=lead.assigned_hod_id,
        assigned_teacher_id=lead.assigned_teacher_id,
        notes=lead.notes,
        created_at=lead.created_at,
    )


def verification_response(challenge: Optional[VerificationChallenge]) -> Optional[VerificationResponse]:
    if challenge is None:
        return None
    return VerificationResponse(
        status=challenge.status,
        lead_id=challenge.lead_id,
        lead_name=challenge.lead_name,
        lead_phone=challenge.lead_phone,
        actual_duration=challenge.actual_duration,
        actual_timestamp=challenge.actual_timestamp,
        reported_duration=challenge.reported_duration,
        reported_date=challenge.reported_date,
        evidence_ref=challenge.evidence_ref,
        rejection_reason=challenge.rejection_reason,
        previous_rejection_reason=challenge.previous_rejection_reason,
        issued_at=challenge.issued_at,
        responded_at=challenge.responded_at,
        decided_at=challenge.decided_at,
    )


def staff_response(member: StaffMember) -> StaffResponse:
    return StaffResponse(
        staff_id=member.staff_id,
        name=member.name,
        email=member.email,
        role=member.role,
        department=member.department,
        registration_status=member.registration_status,
        approved_by=member.approved_by,
        approval_date=member.approval_date,
        verification=verification_response(member.verification),
    )
