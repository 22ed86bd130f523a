"""
Staff API Endpoints.

Registration, administrative account management and the approval queue.
"""

from typing import List

from fastapi import APIRouter, Depends, Response

from api.dependencies import get_actor_context, get_container, service_errors
from api.models import RegistrationDecisionRequest, StaffRequest, StaffResponse
from api.serializers import staff_response
from services.container import ServiceContainer
from services.context import ActorContext

router = APIRouter()


@router.post(
    "/staff/register",
    response_model=StaffResponse,
    status_code=201,
    summary="Register",
    description="Self-registration; the account stays pending until approved."
)
def register(
    request: StaffRequest,
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("register"):
        member = container.staff_directory.register(
            request.name, request.email, request.role, request.department
        )
    return staff_response(member)


@router.get(
    "/staff",
    response_model=List[StaffResponse],
    summary="List Staff",
)
def list_staff(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("list staff"):
        members = container.staff.list_staff()
    return [staff_response(member) for member in members]


@router.post(
    "/staff",
    response_model=StaffResponse,
    status_code=201,
    summary="Create Staff Account",
    description="Administrative creation; the account is approved immediately."
)
def create_staff(
    request: StaffRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("create staff account"):
        member = container.staff_directory.create_staff(
            ctx, request.name, request.email, request.role, request.department
        )
    return staff_response(member)


@router.put(
    "/staff/{staff_id}",
    response_model=StaffResponse,
    summary="Update Staff Account",
)
def update_staff(
    staff_id: str,
    request: StaffRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("update staff account"):
        member = container.staff_directory.update_staff(
            ctx,
            staff_id,
            name=request.name,
            email=request.email,
            role=request.role,
            department=request.department,
        )
    return staff_response(member)


@router.get(
    "/staff/approvals",
    response_model=List[StaffResponse],
    summary="Approval Queue",
    description="Pending registrations the acting staff member may decide."
)
def approval_queue(
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("load approval queue"):
        members = container.staff_directory.approval_candidates(ctx)
    return [staff_response(member) for member in members]


@router.post(
    "/staff/{staff_id}/decision",
    response_model=StaffResponse,
    summary="Approve or Reject Registration",
)
def decide_registration(
    staff_id: str,
    request: RegistrationDecisionRequest,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    """
    **Approval authority:**
    - Super Admin: anyone
    - Admin: department heads
    - Department head: teachers of its own department
    """
    with service_errors("decide registration"):
        member = container.staff_directory.decide_registration(ctx, staff_id, request.approve)
    return staff_response(member)


@router.delete(
    "/staff/{staff_id}",
    status_code=204,
    summary="Revoke Staff Account",
)
def revoke(
    staff_id: str,
    ctx: ActorContext = Depends(get_actor_context),
    container: ServiceContainer = Depends(get_container),
):
    with service_errors("revoke staff account"):
        container.staff_directory.revoke(ctx, staff_id)
    return Response(status_code=204)
