"""
Permission Management API Routes
Department access grants, checks, ownership transfer and templates
"""

import uuid
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from gad_procurement.api.dependencies import get_current_actor, get_permission_service
from gad_procurement.core.clock import utcnow
from gad_procurement.core.logging import get_logger
from gad_procurement.services.permissions import PermissionService
from gad_procurement.services.permissions.models import (
    AccessContext,
    AccessCreate,
    AccessLevel,
    AccessRecord,
    AccessScope,
    AccessSearchFilters,
    AccessSearchResult,
    AccessUpdate,
    ActorContext,
    BatchCheckResult,
    PermissionCheckRequest,
    PermissionCheckResult,
    PermissionHistoryEntry,
    PermissionTemplate,
    TemplateApplicationResult,
    TemplateCreate,
    TransferResult,
    UserAccessHistory,
    ValidityPatch,
)

logger = get_logger(__name__)
router = APIRouter()


# Pydantic models for permission requests
class ReasonRequest(BaseModel):
    """Request body carrying an optional reason"""
    reason: str = Field("", max_length=500, description="Why the change is made")


class ReactivateRequest(ReasonRequest):
    """Request model for reactivation; an expired grant needs a new window"""
    validity: Optional[ValidityPatch] = None


class CheckPermissionRequest(PermissionCheckRequest):
    """Permission check; restrictions are enforced only when context is sent"""
    context: Optional[AccessContext] = Field(
        None, description="Moment and client address; ip_address defaults to the caller's"
    )


class TransferOwnershipRequest(BaseModel):
    """Request model for transferring department ownership"""
    department_id: uuid.UUID
    from_user_id: uuid.UUID
    to_user_id: uuid.UUID


class SystemActionCheckRequest(BaseModel):
    """Request model for checking a named system action"""
    user_id: uuid.UUID
    department_id: uuid.UUID
    action: str = Field(..., description="System action, e.g. CREATE_CONTRACT")
    contract_id: Optional[uuid.UUID] = None


class BatchCheckRequest(BaseModel):
    checks: List[PermissionCheckRequest] = Field(..., min_length=1)


class ApplyTemplateRequest(BaseModel):
    """Request model for applying a template to several users"""
    user_ids: List[Any] = Field(..., min_length=1)
    department_id: uuid.UUID


# ============================================
# ACCESS RECORDS
# ============================================


@router.post("/access", response_model=AccessRecord, status_code=status.HTTP_201_CREATED)
async def create_access(
    request: AccessCreate,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    """
    Grant a user access to a department

    Permissions are derived from the access level unless supplied.
    """
    return await service.create_access(request, actor)


@router.get("/access", response_model=AccessSearchResult)
async def search_accesses(
    user_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    access_level: Optional[str] = Query(None),
    access_status: Optional[str] = Query("ACTIVE", alias="status"),
    is_active: Optional[bool] = Query(True),
    has_global_access: Optional[bool] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    """
    Search grants

    Defaults to ACTIVE grants. Revoked, suspended and expired grants are
    inactive, so pair those statuses with ``is_active=false``. An empty
    ``status`` matches every status.
    """
    return await service.search_accesses(
        AccessSearchFilters(
            user_id=user_id,
            department_id=department_id,
            access_level=access_level,
            status=access_status,
            is_active=is_active,
            has_global_access=has_global_access,
            limit=limit,
            offset=offset,
        )
    )


@router.post("/access/expire", response_model=List[AccessRecord])
async def expire_stale_accesses(
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    """Expire every active grant whose end date has passed"""
    return await service.expire_stale_accesses(actor)


@router.get("/access/{access_id}", response_model=AccessRecord)
async def get_access(
    access_id: uuid.UUID,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.get_access(access_id)


@router.patch("/access/{access_id}", response_model=AccessRecord)
async def update_access(
    access_id: uuid.UUID,
    request: AccessUpdate,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.update_access(access_id, request, actor)


@router.post("/access/{access_id}/deactivate", response_model=AccessRecord)
async def deactivate_access(
    access_id: uuid.UUID,
    request: ReasonRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.deactivate_access(access_id, actor, request.reason)


@router.post("/access/{access_id}/reactivate", response_model=AccessRecord)
async def reactivate_access(
    access_id: uuid.UUID,
    request: ReactivateRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.reactivate_access(access_id, actor, request.reason, request.validity)


@router.post("/access/{access_id}/suspend", response_model=AccessRecord)
async def suspend_access(
    access_id: uuid.UUID,
    request: ReasonRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.suspend_access(access_id, actor, request.reason)


@router.post("/access/{access_id}/activate", response_model=AccessRecord)
async def activate_access(
    access_id: uuid.UUID,
    request: ReasonRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.activate_access(access_id, actor, request.reason)


@router.get("/access/{access_id}/history", response_model=List[PermissionHistoryEntry])
async def get_access_history(
    access_id: uuid.UUID,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.get_permission_history(access_id)


@router.get("/users/{user_id}/access", response_model=List[AccessRecord])
async def list_user_accesses(
    user_id: uuid.UUID,
    include_inactive: bool = Query(False),
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.get_user_accesses(user_id, include_inactive=include_inactive)


@router.get("/users/{user_id}/history", response_model=List[UserAccessHistory])
async def get_user_history(
    user_id: uuid.UUID,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.get_user_permission_history(user_id)


@router.get("/users/{user_id}/scope", response_model=AccessScope)
async def get_user_scope(
    user_id: uuid.UUID,
    category: str = Query("contracts"),
    permission: str = Query("can_view_department"),
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    """Departments in which the user holds the given permission"""
    return await service.resolve_accessible_departments(user_id, category, permission)


@router.get("/departments/{department_id}/access", response_model=List[AccessRecord])
async def list_department_accesses(
    department_id: uuid.UUID,
    access_level: Optional[AccessLevel] = Query(None),
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.find_users_with_department_access(department_id, access_level)


@router.post("/transfer-ownership", response_model=TransferResult)
async def transfer_ownership(
    request: TransferOwnershipRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.transfer_ownership(
        request.department_id,
        request.from_user_id,
        request.to_user_id,
        actor,
    )


# ============================================
# CHECKS
# ============================================


@router.post("/check", response_model=PermissionCheckResult)
async def check_permission(
    request: CheckPermissionRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    """
    Denials are returned as allowed=false, never as an error status

    Time, day and IP restrictions are evaluated only when ``context`` is
    sent. Missing context fields default to now and the caller's address.
    """
    context = None
    if request.context is not None:
        context = AccessContext(
            at=request.context.at or utcnow(),
            ip_address=request.context.ip_address or actor.ip_address,
        )
    return await service.check_user_permission(
        request.user_id,
        request.department_id,
        request.category,
        request.permission,
        request.contract_id,
        context=context,
    )


@router.post("/check-action", response_model=PermissionCheckResult)
async def check_system_action(
    request: SystemActionCheckRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.can_perform_system_action(
        request.user_id,
        request.department_id,
        request.action,
        request.contract_id,
    )


@router.post("/check-batch", response_model=List[BatchCheckResult])
async def check_batch(
    request: BatchCheckRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.batch_check_permissions(request.checks)


# ============================================
# TEMPLATES
# ============================================


@router.post("/templates", response_model=PermissionTemplate, status_code=status.HTTP_201_CREATED)
async def create_template(
    request: TemplateCreate,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.create_template(request, actor)


@router.get("/templates", response_model=List[PermissionTemplate])
async def list_templates(
    role: Optional[str] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    return await service.get_applicable_templates(role, department_id)


@router.post("/templates/{template_id}/apply", response_model=List[TemplateApplicationResult])
async def apply_template(
    template_id: uuid.UUID,
    request: ApplyTemplateRequest,
    service: PermissionService = Depends(get_permission_service),
    actor: ActorContext = Depends(get_current_actor),
):
    """Per-user failures are reported in the result list"""
    results = await service.apply_template_to_users(
        template_id, request.user_ids, request.department_id, actor
    )
    logger.info(
        f"Template {template_id} applied by {actor.user_id}: "
        f"{sum(1 for r in results if r.status != 'error')}/{len(results)} succeeded"
    )
    return results
