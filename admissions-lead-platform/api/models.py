"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from domain.lead import Department, LeadStage, StudentResponse
from domain.staff import RegistrationStatus, UserRole
from domain.verification import VerificationDecision, VerificationStatus


# ============================================================================
# Lead Models
# ============================================================================

class LeadResponse(BaseModel):
    """Single lead in API response."""
    lead_id: str
    name: str
    phone: str
    source_file: str
    department: Department
    stage: LeadStage
    response: Optional[StudentResponse] = None
    call_verified: bool
    call_timestamp: Optional[datetime] = None
    call_duration: Optional[int] = None
    assigned_hod_id: Optional[str] = None
    assigned_teacher_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "lead_id": "3f0c8a5e-6d1b-5b7a-9c61-0a2f4e9b7d11",
                "name": "AARAV PATIL",
                "phone": "9876543210",
                "source_file": "fair_2025.xlsx",
                "department": "Computer Technology",
                "stage": "Targeted by College",
                "response": "Interested",
                "call_verified": True,
                "call_timestamp": "2025-06-02T10:15:00Z",
                "call_duration": 95,
                "assigned_hod_id": "hod-ct",
                "assigned_teacher_id": "teacher-ct-1",
                "notes": None,
                "created_at": "2025-06-01T08:00:00Z"
            }
        }


class LeadListResponse(BaseModel):
    """Response for lead listing."""
    items: List[LeadResponse]
    total_count: int
    filters_applied: dict


class ImportLeadsRequest(BaseModel):
    """Already-parsed spreadsheet rows to import."""
    rows: List[Dict[str, Any]] = Field(
        ...,
        min_length=1,
        description="Rows with name, phone and sourceFile keys"
    )
    source_file: Optional[str] = Field(None, description="Label used for rows without sourceFile")
    dry_run: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "rows": [
                    {"name": "aarav patil", "phone": "98765-43210", "sourceFile": "fair_2025.xlsx"}
                ],
                "source_file": "fair_2025.xlsx",
                "dry_run": False
            }
        }


class RejectedRowResponse(BaseModel):
    row_number: int
    reason: str


class ImportLeadsResponse(BaseModel):
    total_rows: int
    imported: int
    duplicates: int
    rejected: List[RejectedRowResponse]


class ManualLeadRequest(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., description="10-digit phone number")
    department: Optional[Department] = None


class AssignLeadsRequest(BaseModel):
    """Manual assignment of leads to one staff member."""
    lead_ids: List[str] = Field(..., min_length=1)
    assignee_id: str

    class Config:
        json_schema_extra = {
            "example": {
                "lead_ids": ["lead-1", "lead-2"],
                "assignee_id": "hod-ct"
            }
        }


class DistributeLeadsRequest(BaseModel):
    """Round-robin distribution; lead order is the assignment order."""
    lead_ids: List[str] = Field(default_factory=list)


class DistributeToTeachersRequest(DistributeLeadsRequest):
    department: Department


class DistributionResponse(BaseModel):
    requested: int
    moved: int
    assignments: Dict[str, List[str]]


class RoutingResponse(DistributionResponse):
    unrouted: Dict[str, List[str]]
    missing: List[str]


# ============================================================================
# Call Models
# ============================================================================

class CallStartResponse(BaseModel):
    lead_id: str
    dial_uri: str
    started_at: datetime


class CallSessionResponse(BaseModel):
    lead_id: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    elapsed_seconds: int
    is_active: bool


class CompletedCallResponse(BaseModel):
    lead_id: str
    started_at: datetime
    ended_at: datetime
    duration_seconds: int


class ClassifyCallRequest(BaseModel):
    response: StudentResponse
    department: Optional[Department] = Field(
        None,
        description="Branch the student is interested in; required for 'Interested'"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "response": "Interested",
                "department": "Computer Technology"
            }
        }


class ClassificationResponse(BaseModel):
    lead_id: str
    response: StudentResponse
    stage: LeadStage
    call_duration: int
    classified_at: datetime
    department: Optional[Department] = None


# ============================================================================
# Verification Models
# ============================================================================

class VerificationResponse(BaseModel):
    status: VerificationStatus
    lead_id: Optional[str] = None
    lead_name: Optional[str] = None
    lead_phone: Optional[str] = None
    actual_duration: Optional[int] = None
    actual_timestamp: Optional[datetime] = None
    reported_duration: Optional[int] = None
    reported_date: Optional[date] = None
    evidence_ref: Optional[str] = None
    rejection_reason: Optional[str] = None
    previous_rejection_reason: Optional[str] = None
    issued_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None


class SubmitVerificationRequest(BaseModel):
    reported_duration: int = Field(..., ge=0, description="Call length in seconds from the phone's call log")
    reported_date: date
    evidence_ref: str = Field("", description="Reference returned by the evidence upload")

    class Config:
        json_schema_extra = {
            "example": {
                "reported_duration": 95,
                "reported_date": "2025-06-02",
                "evidence_ref": "https://example.supabase.co/storage/v1/object/public/verification-evidence/t1/a.png"
            }
        }


class DecideVerificationRequest(BaseModel):
    decision: VerificationDecision
    reason: Optional[str] = None


class EvidenceUploadResponse(BaseModel):
    evidence_ref: str


class AuditComparisonResponse(BaseModel):
    teacher_id: str
    teacher_name: str
    verification: VerificationResponse
    duration_difference: Optional[int] = None
    date_matches: Optional[bool] = None


# ============================================================================
# Staff Models
# ============================================================================

class StaffRequest(BaseModel):
    name: str
    email: str
    role: UserRole
    department: Optional[Department] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Priya Kulkarni",
                "email": "priya.k@college.edu",
                "role": "Teacher",
                "department": "Computer Technology"
            }
        }


class StaffResponse(BaseModel):
    staff_id: str
    name: str
    email: str
    role: UserRole
    department: Optional[Department] = None
    registration_status: RegistrationStatus
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None
    verification: Optional[VerificationResponse] = None


class RegistrationDecisionRequest(BaseModel):
    approve: bool


# ============================================================================
# Report Models
# ============================================================================

class TeacherProgressResponse(BaseModel):
    teacher_id: str
    teacher_name: str
    total_assigned: int
    completed: int
    pending: int
    progress_pct: int


class DepartmentSummaryResponse(BaseModel):
    department: Department
    total: int
    targeted: int
    conversion_pct: int


class StageCountResponse(BaseModel):
    stage: LeadStage
    count: int
    percentage: int


class SystemLogResponse(BaseModel):
    log_id: str
    actor_id: str
    actor_name: str
    action: str
    details: str
    timestamp: datetime

