"""
Reports API Endpoints.

Dashboard views derived from the current leads and staff, plus the activity log.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_actor_context, get_container, service_errors
from api.models import (
    DepartmentSummaryResponse,
    StageCountResponse,
    SystemLogResponse,
    TeacherProgressResponse,
)
from domain.lead import Department
from services.container import ServiceContainer
from services.context import ActorContext

router = APIRouter()


@router.get(
    "/reports/teacher-progress",
    response_model=List[TeacherProgressResponse],
    summary="Teacher Progress",
)
def teacher_progress(
    department: Optional[Department] = Query(None, description="Ignored for department heads"),
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("load teacher progress"):
        rows = container.reporting.teacher_progress(ctx, department)
    return [
        TeacherProgressResponse(
            teacher_id=row.teacher_id,
            teacher_name=row.teacher_name,
            total_assigned=row.total_assigned,
            completed=row.completed,
            pending=row.pending,
            progress_pct=row.progress_pct,
        )
        for row in rows
    ]


@router.get(
    "/reports/departments",
    response_model=List[DepartmentSummaryResponse],
    summary="Department Summary",
)
def department_summary(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("load department summary"):
        rows = container.reporting.department_summary(ctx)
    return [
        DepartmentSummaryResponse(
            department=row.department,
            total=row.total,
            targeted=row.targeted,
            conversion_pct=row.conversion_pct,
        )
        for row in rows
    ]


@router.get(
    "/reports/stages",
    response_model=List[StageCountResponse],
    summary="Stage Breakdown",
)
def stage_breakdown(
    department: Optional[Department] = Query(None),
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("load stage breakdown"):
        rows = container.reporting.stage_breakdown(ctx, department)
    return [StageCountResponse(stage=row.stage, count=row.count, percentage=row.percentage) for row in rows]


@router.get(
    "/reports/activity",
    response_model=List[SystemLogResponse],
    summary="Activity Log",
)
def activity_log(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("load activity log"):
        entries = container.reporting.activity_log(ctx)
    return [
        SystemLogResponse(
            log_id=entry.log_id,
            actor_id=entry.actor_id,
            actor_name=entry.actor_name,
            action=entry.action.value,
            details=entry.details,
            timestamp=entry.timestamp,
        )
        for entry in entries
    ]
