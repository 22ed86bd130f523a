"""
Calls API Endpoints.

Counseling call sessions for the acting staff member. The endpoints are async so
the call timer ticks on the server's event loop and session state is only touched
there. Ticks delayed by a blocking store call are caught up by the timer.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_actor_context, get_container, service_errors
from api.models import (
    CallSessionResponse,
    CallStartResponse,
    ClassificationResponse,
    ClassifyCallRequest,
    CompletedCallResponse,
)
from services.container import ServiceContainer
from services.context import ActorContext

router = APIRouter()


def _session_response(ctx: ActorContext, container: ServiceContainer) -> CallSessionResponse:
    snapshot = container.counseling.current_call(ctx)
    return CallSessionResponse(
        lead_id=snapshot.lead_id,
        started_at=snapshot.started_at,
        ended_at=snapshot.ended_at,
        elapsed_seconds=snapshot.elapsed_seconds,
        is_active=snapshot.is_active,
    )


@router.post(
    "/calls/{lead_id}/start",
    response_model=CallStartResponse,
    summary="Start Call",
)
async def start_call(
    lead_id: str,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    Resets the caller's session and starts timing. The returned `dial_uri` is
    opened by the client; no connection confirmation comes back.
    """
    with service_errors("start call"):
        started = container.counseling.start_call(ctx, lead_id)
    return CallStartResponse(
        lead_id=started.lead_id,
        dial_uri=started.dial_uri,
        started_at=started.started_at,
    )


@router.post(
    "/calls/current/end",
    response_model=CompletedCallResponse,
    summary="End Call",
)
async def end_call(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """Stops the timer; the elapsed time stays available for classification."""
    with service_errors("end call"):
        completed = container.counseling.finish_call(ctx)
    return CompletedCallResponse(
        lead_id=completed.lead_id,
        started_at=completed.started_at,
        ended_at=completed.ended_at,
        duration_seconds=completed.duration_seconds,
    )


@router.get(
    "/calls/current",
    response_model=CallSessionResponse,
    summary="Current Call Session",
)
async def current_call(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    return _session_response(ctx, container)


@router.post(
    "/calls/{lead_id}/classify",
    response_model=ClassificationResponse,
    summary="Classify Call Outcome",
)
async def classify_call(
    lead_id: str,
    request: ClassifyCallRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    | Response | Stage |
    |---|---|
    | Interested, Confused | Targeted by College |
    | Not Interested, Not Responding, Not Reachable | Discarded |
    | 11th / 12th | Forwarded to Sub-Branch |
    | Others | No Action |

    Requires the caller's session for this lead to have reached the minimum duration.
    """
    with service_errors("classify call"):
        classification = container.counseling.classify(
            ctx, lead_id, request.response, request.department
        )
    return ClassificationResponse(
        lead_id=lead_id,
        response=classification.response,
        stage=classification.stage,
        call_duration=classification.call_duration,
        classified_at=classification.classified_at,
        department=classification.department,
    )


@router.delete(
    "/calls/current",
    response_model=CallSessionResponse,
    summary="Tear Down Call Session",
    description="Releases the call timer; clients call this on disconnect or when leaving the call screen."
)
async def teardown_call(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    container.counseling.teardown(ctx)
    return _session_response(ctx, container)
