"""
Wires repositories and services for the configured store backend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from domain.lead import Lead
from domain.staff import StaffMember
from domain.time import Clock, utc_now
from repositories.evidence_storage import (
    EvidenceStorage,
    InMemoryEvidenceStorage,
    SupabaseEvidenceStorage,
)
from repositories.lead_repository import LEAD_ID_FIELD, LeadRepository
from repositories.log_repository import LOG_ID_FIELD, LogRepository
from repositories.staff_repository import STAFF_ID_FIELD, StaffRepository
from repositories.store import DocumentCollection, InMemoryCollection
from services.activity_log import ActivityLog
from services.audit_service import AuditService, Picker
from services.counseling_service import CounselingService, Telephony
from services.distribution_service import DistributionService
from services.lead_intake_service import LeadIntakeService
from services.live_view import LiveCollectionView
from services.reporting_service import ReportingService
from services.settings import Settings
from services.staff_service import StaffService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    collections: List[DocumentCollection]
    leads: LeadRepository
    staff: StaffRepository
    logs: LogRepository
    activity: ActivityLog
    distribution: DistributionService
    counseling: CounselingService
    audits: AuditService
    intake: LeadIntakeService
    staff_directory: StaffService
    reporting: ReportingService
    lead_view: LiveCollectionView[Lead] = field(init=False)
    staff_view: LiveCollectionView[StaffMember] = field(init=False)

    def __post_init__(self) -> None:
        self.lead_view = LiveCollectionView("leads", self.leads.subscribe)
        self.staff_view = LiveCollectionView("staff", self.staff.subscribe)
        self.leads.serve_reads_from(self.lead_view)
        self.staff.serve_reads_from(self.staff_view)

    def start_views(self) -> None:
        self.lead_view.start()
        self.staff_view.start()

    def stop_views(self) -> None:
        self.lead_view.stop()
        self.staff_view.stop()


def build_container(
    settings: Settings,
    *,
    client: Optional[object] = None,
    evidence: Optional[EvidenceStorage] = None,
    picker: Optional[Picker] = None,
    telephony: Optional[Telephony] = None,
    clock: Clock = utc_now,
) -> ServiceContainer:
    """
    Build services on the configured backend.

    The Supabase client is only created when the supabase backend is selected and
    no client is passed in.
    """

    if settings.store_backend == "memory":
        lead_collection: DocumentCollection = InMemoryCollection(settings.leads_table, LEAD_ID_FIELD)
        staff_collection: DocumentCollection = InMemoryCollection(settings.staff_table, STAFF_ID_FIELD)
        log_collection: DocumentCollection = InMemoryCollection(settings.logs_table, LOG_ID_FIELD)
        evidence = evidence or InMemoryEvidenceStorage()
    else:
        from repositories.client import get_supabase
        from repositories.supabase_store import SupabaseCollection

        client = client or get_supabase()
        lead_collection = SupabaseCollection(client, settings.leads_table, LEAD_ID_FIELD, order_by="created_at_utc")
        staff_collection = SupabaseCollection(client, settings.staff_table, STAFF_ID_FIELD, order_by="created_at_utc")
        log_collection = SupabaseCollection(client, settings.logs_table, LOG_ID_FIELD, order_by="timestamp_utc")
        evidence = evidence or SupabaseEvidenceStorage(client, settings.evidence_bucket)

    leads = LeadRepository(lead_collection)
    staff = StaffRepository(staff_collection)
    logs = LogRepository(log_collection)
    activity = ActivityLog(logs, clock=clock)

    logger.info(
        "Services configured",
        extra={
            "backend": settings.store_backend,
            "min_call_duration_seconds": settings.min_call_duration_seconds,
        },
    )
    return ServiceContainer(
        settings=settings,
        collections=[lead_collection, staff_collection, log_collection],
        leads=leads,
        staff=staff,
        logs=logs,
        activity=activity,
        distribution=DistributionService(leads, staff, activity),
        counseling=CounselingService(
            leads,
            activity,
            settings.min_call_duration_seconds,
            telephony=telephony,
            clock=clock,
        ),
        audits=AuditService(
            leads,
            staff,
            evidence,
            activity,
            settings.min_call_duration_seconds,
            picker=picker,
            clock=clock,
        ),
        intake=LeadIntakeService(leads, activity, settings.default_lead_department, clock=clock),
        staff_directory=StaffService(staff, activity, clock=clock),
        reporting=ReportingService(leads, staff, logs, activity),
    )


__all__ = ["ServiceContainer", "build_container"]
