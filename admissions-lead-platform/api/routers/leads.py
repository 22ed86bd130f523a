"""
Leads API Endpoints.

Endpoints for listing, importing, assigning, routing and exporting student leads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_actor_context, get_container, service_errors
from api.models import (
    AssignLeadsRequest,
    DistributeLeadsRequest,
    DistributeToTeachersRequest,
    DistributionResponse,
    ImportLeadsRequest,
    ImportLeadsResponse,
    LeadListResponse,
    LeadResponse,
    ManualLeadRequest,
    RejectedRowResponse,
    RoutingResponse,
)
from api.serializers import lead_response
from domain.lead import Department, LeadStage, StudentResponse
from domain.time import utc_now
from services.container import ServiceContainer
from services.context import ActorContext
from services.distribution_service import DistributionResult

router = APIRouter()


def _distribution_response(result: DistributionResult) -> DistributionResponse:
    return DistributionResponse(
        requested=result.requested,
        moved=result.moved,
        assignments=result.assignments,
    )


@router.get(
    "/leads",
    response_model=LeadListResponse,
    summary="List Leads",
    description="Leads visible to the acting staff member, with optional filters."
)
def list_leads(
    stage: Optional[LeadStage] = Query(None, description="Filter by stage"),
    department: Optional[Department] = Query(None, description="Filter by department"),
    response: Optional[StudentResponse] = Query(None, description="Filter by call response"),
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    Role scoping:
    - Admins see every lead
    - Department heads see their department's leads and leads assigned to them
    - Teachers see the leads assigned to them
    """
    with service_errors("list leads"):
        leads = container.reporting.list_leads(ctx, stage=stage, department=department, response=response)

    filters = {
        key: value.value
        for key, value in (("stage", stage), ("department", department), ("response", response))
        if value is not None
    }
    return LeadListResponse(
        items=[lead_response(lead) for lead in leads],
        total_count=len(leads),
        filters_applied=filters,
    )


@router.post(
    "/leads/import",
    response_model=ImportLeadsResponse,
    summary="Import Leads",
    description="Normalize and store already-parsed spreadsheet rows."
)
def import_leads(
    request: ImportLeadsRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    Names are uppercased and phones reduced to digits. Rows without a phone are
    rejected and listed in the response. Re-importing a row does not duplicate it.
    """
    with service_errors("import leads"):
        result = container.intake.import_leads(
            ctx, request.rows, source_file=request.source_file or "", dry_run=request.dry_run
        )
    return ImportLeadsResponse(
        total_rows=result.total_rows,
        imported=result.imported,
        duplicates=result.duplicates,
        rejected=[RejectedRowResponse(row_number=r.row_number, reason=r.reason) for r in result.rejected],
    )


@router.post(
    "/leads",
    response_model=LeadResponse,
    status_code=201,
    summary="Add Lead Manually",
)
def add_lead(
    request: ManualLeadRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("add lead"):
        lead = container.intake.add_manual_lead(ctx, request.name, request.phone, request.department)
    return lead_response(lead)


@router.post(
    "/leads/assign/hod",
    response_model=DistributionResponse,
    summary="Assign Leads to Department Head",
)
def assign_to_department_head(
    request: AssignLeadsRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("assign leads"):
        result = container.distribution.assign_to_department_head(ctx, request.lead_ids, request.assignee_id)
    return _distribution_response(result)


@router.post(
    "/leads/assign/teacher",
    response_model=DistributionResponse,
    summary="Assign Leads to Teacher",
)
def assign_to_teacher(
    request: AssignLeadsRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("assign leads"):
        result = container.distribution.assign_to_teacher(ctx, request.lead_ids, request.assignee_id)
    return _distribution_response(result)


@router.post(
    "/leads/distribute/hods",
    response_model=DistributionResponse,
    summary="Auto-Distribute to Department Heads",
    description="Round-robin over approved department heads in the given lead order."
)
def distribute_to_department_heads(
    request: DistributeLeadsRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """Moves nothing (moved = 0) when there are no leads or no approved heads."""
    with service_errors("distribute leads"):
        result = container.distribution.auto_distribute_to_department_heads(ctx, request.lead_ids)
    return _distribution_response(result)


@router.post(
    "/leads/distribute/teachers",
    response_model=DistributionResponse,
    summary="Auto-Distribute to Teachers",
    description="Round-robin over approved teachers of one department."
)
def distribute_to_teachers(
    request: DistributeToTeachersRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("distribute leads"):
        result = container.distribution.auto_distribute_to_teachers(ctx, request.lead_ids, request.department)
    return _distribution_response(result)


@router.post(
    "/leads/route-by-interest",
    response_model=RoutingResponse,
    summary="Route Leads by Interested Department",
)
def route_by_interest(
    request: DistributeLeadsRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    Each lead goes to a head of the department recorded on it. Departments without
    an approved head come back under `unrouted`; unknown ids under `missing`.
    """
    with service_errors("route leads"):
        result = container.distribution.smart_route_by_interest(ctx, request.lead_ids)
    return RoutingResponse(
        requested=result.requested,
        moved=result.moved,
        assignments=result.assignments,
        unrouted={department.value: ids for department, ids in result.unrouted.items()},
        missing=result.missing,
    )


@router.get(
    "/leads/forwarded/export",
    summary="Export Forwarded Leads",
    description="CSV of forwarded (11th / 12th) leads for the sub-branch.",
    response_class=Response
)
def export_forwarded(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    **Security:**
    - CSV injection prevention (dangerous characters stripped)
    - The export is recorded in the activity log
    """
    with service_errors("export forwarded leads"):
        filename, content, _ = container.reporting.export_forwarded(ctx, utc_now())
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.delete(
    "/leads/{lead_id}",
    status_code=204,
    summary="Purge Lead",
)
def purge_lead(
    lead_id: str,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("purge lead"):
        container.intake.purge_lead(ctx, lead_id)
    return Response(status_code=204)
