"""
Counseling calls: dialing a lead, timing the conversation, and classifying the outcome.

Flow for one lead:
1. start_call: the actor's call session is reset and starts timing; the telephony
   collaborator is asked to dial (fire-and-forget, no connection signal).
2. finish_call: the timer stops; elapsed seconds stay available for classification.
3. classify: requires the session to belong to the lead and to have reached the
   minimum duration. The response decides the stage; the session is consumed.

Leads already in a terminal stage can be called again. Finishing such a call
re-records the call metadata without changing the stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from domain.activity import UserAction
from domain.call_session import CallSessionSnapshot, CompletedCall
from domain.errors import PermissionDeniedError, RecordNotFoundError, WorkflowValidationError
from domain.lead import Department, Lead, StudentResponse
from domain.lifecycle import TERMINAL_STAGES, Classification, classify_call
from domain.staff import UserRole
from domain.time import Clock, utc_now
from repositories.lead_repository import LeadRepository
from services.activity_log import ActivityLog
from services.context import ActorContext

logger = logging.getLogger(__name__)


class Telephony(Protocol):
    def dial(self, phone: str) -> str:
        """Request a call to phone and return the dial reference handed to the client."""
        ...


class TelUriTelephony:
    """Builds a tel: URI; the client's phone places the actual call."""

    def dial(self, phone: str) -> str:
        return f"tel:{phone}"


@dataclass(frozen=True, slots=True)
class CallStart:
    lead_id: str
    dial_uri: str
    started_at: datetime


class CounselingService:
    def __init__(
        self,
        leads: LeadRepository,
        activity: ActivityLog,
        min_call_duration_seconds: int,
        telephony: Optional[Telephony] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.leads = leads
        self.activity = activity
        self.min_call_duration_seconds = min_call_duration_seconds
        self.telephony = telephony or TelUriTelephony()
        self.clock = clock

    def start_call(self, ctx: ActorContext, lead_id: str) -> CallStart:
        ctx.require_role({UserRole.TEACHER, UserRole.HOD}, "call students")
        lead = self._require_lead(lead_id)
        self._require_caller(ctx, lead)
        if not lead.has_valid_phone:
            raise WorkflowValidationError(f"{lead.name} has no valid phone number.")

        started_at = self.clock()
        ctx.call_session.start(lead.lead_id, started_at)
        dial_uri = self.telephony.dial(lead.phone)
        logger.info(
            "Call started",
            extra={"actor_id": ctx.actor_id, "lead_id": lead.lead_id},
        )
        return CallStart(lead_id=lead.lead_id, dial_uri=dial_uri, started_at=started_at)

    def finish_call(self, ctx: ActorContext) -> CompletedCall:
        completed = ctx.call_session.end(self.clock())
        logger.info(
            "Call ended",
            extra={
                "actor_id": ctx.actor_id,
                "lead_id": completed.lead_id,
                "duration_seconds": completed.duration_seconds,
            },
        )

        lead = self.leads.get_lead(completed.lead_id)
        if (
            lead is not None
            and lead.stage in TERMINAL_STAGES
            and completed.duration_seconds >= self.min_call_duration_seconds
        ):
            self.leads.record_call(completed)
        return completed

    def current_call(self, ctx: ActorContext) -> CallSessionSnapshot:
        return ctx.call_session.snapshot()

    def classify(
        self,
        ctx: ActorContext,
        lead_id: str,
        response: StudentResponse,
        selected_department: Optional[Department] = None,
    ) -> Classification:
        ctx.require_role({UserRole.TEACHER, UserRole.HOD}, "classify calls")
        lead = self._require_lead(lead_id)
        self._require_caller(ctx, lead)

        session = ctx.call_session
        elapsed = session.require_minimum(lead.lead_id, self.min_call_duration_seconds)
        classification = classify_call(
            response,
            elapsed_seconds=elapsed,
            minimum_seconds=self.min_call_duration_seconds,
            classified_at=self.clock(),
            selected_department=selected_department,
        )

        if session.is_active:
            session.end(classification.classified_at)
        self.leads.record_classification(lead.lead_id, classification)
        session.teardown()

        logger.info(
            f"Lead classified as {response.value}",
            extra={
                "actor_id": ctx.actor_id,
                "lead_id": lead.lead_id,
                "stage": classification.stage.value,
                "duration_seconds": classification.call_duration,
            },
        )
        self.activity.record(
            ctx,
            UserAction.CLASSIFICATION,
            f"{lead.name}: {response.value} -> {classification.stage.value} "
            f"({classification.call_duration}s)",
        )
        return classification

    def teardown(self, ctx: ActorContext) -> None:
        """Release the call timer; used on disconnect and when the overlay is abandoned."""

        if ctx.call_session.lead_id is not None:
            logger.info(
                "Call session torn down",
                extra={"actor_id": ctx.actor_id, "lead_id": ctx.call_session.lead_id},
            )
        ctx.call_session.teardown()

    def _require_lead(self, lead_id: str) -> Lead:
        lead = self.leads.get_lead(lead_id)
        if lead is None:
            raise RecordNotFoundError("Lead", lead_id)
        return lead

    @staticmethod
    def _require_caller(ctx: ActorContext, lead: Lead) -> None:
        if ctx.actor.role == UserRole.TEACHER and lead.assigned_teacher_id != ctx.actor_id:
            raise PermissionDeniedError("This lead is not assigned to you.")
        if ctx.actor.role == UserRole.HOD and lead.assigned_hod_id != ctx.actor_id:
            raise PermissionDeniedError("This lead is not assigned to your department.")


__all__ = ["CallStart", "CounselingService", "TelUriTelephony", "Telephony"]
