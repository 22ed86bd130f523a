"""
Audits API Endpoints.

Call verification: triggering an audit, uploading call-log evidence, the teacher's
self-report and the reviewer's decision.
"""

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_actor_context, get_container, service_errors
from api.models import (
    AuditComparisonResponse,
    DecideVerificationRequest,
    EvidenceUploadResponse,
    SubmitVerificationRequest,
    VerificationResponse,
)
from api.serializers import verification_response
from services.container import ServiceContainer
from services.context import ActorContext

router = APIRouter()


@router.post(
    "/audits/{teacher_id}",
    response_model=VerificationResponse,
    summary="Trigger Audit",
    description="Sample one of the teacher's verified calls at random and request a self-report."
)
def trigger_audit(
    teacher_id: str,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """Fails with 422 and changes nothing when the teacher has no verified calls."""
    with service_errors("trigger audit"):
        challenge = container.audits.trigger_audit(ctx, teacher_id)
    return verification_response(challenge)


@router.post(
    "/audits/me/evidence",
    response_model=EvidenceUploadResponse,
    summary="Upload Evidence",
    description="Upload a call-log screenshot as the raw request body."
)
async def upload_evidence(
    request: Request,
    content_type: str = Header("application/octet-stream"),
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    data = await request.body()
    with service_errors("upload evidence"):
        reference = await run_in_threadpool(container.audits.attach_evidence, ctx, data, content_type)
    return EvidenceUploadResponse(evidence_ref=reference)


@router.post(
    "/audits/me/response",
    response_model=VerificationResponse,
    summary="Submit Verification Response",
)
def submit_response(
    request: SubmitVerificationRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    Accepted while the request is pending or after a rejection. Evidence is required
    and the reported duration must meet the minimum call duration.
    """
    with service_errors("submit verification"):
        challenge = container.audits.submit_response(
            ctx, request.reported_duration, request.reported_date, request.evidence_ref
        )
    return verification_response(challenge)


@router.post(
    "/audits/{teacher_id}/decision",
    response_model=VerificationResponse,
    summary="Decide Verification",
)
def decide(
    teacher_id: str,
    request: DecideVerificationRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """Rejecting requires a reason and discards the submitted evidence."""
    with service_errors("decide verification"):
        challenge = container.audits.decide(ctx, teacher_id, request.decision, request.reason)
    return verification_response(challenge)


@router.get(
    "/audits/{teacher_id}",
    response_model=AuditComparisonResponse,
    summary="Audit Comparison",
    description="Recorded call values next to the teacher's self-report."
)
def comparison(
    teacher_id: str,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("load audit"):
        result = container.audits.comparison(ctx, teacher_id)
    return AuditComparisonResponse(
        teacher_id=result.teacher_id,
        teacher_name=result.teacher_name,
        verification=verification_response(result.challenge),
        duration_difference=result.duration_difference,
        date_matches=result.date_matches,
    )
