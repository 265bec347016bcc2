"""
Access Control Service
Multi-department permission engine for the digital procurement file

This service provides:
- Default permission matrices per access level
- Allow/deny evaluation against a department or a contract
- Grant lifecycle (create, update, suspend, revoke, reactivate, expire)
- Ownership transfer and bulk template application
- Append-only history of every transition

Example:
    ```python
    from gad_procurement.services.permissions import build_permission_service

    service = build_permission_service(session)

    result = await service.check_user_permission(
        user_id, department_id, "documents", "can_upload", contract_id=contract_id
    )
    if not result.allowed:
        print(result.reason)
    ```
"""

from sqlalchemy.ext.asyncio import AsyncSession

from gad_procurement.services.permissions.catalog import (
    SYSTEM_ACTION_PERMISSIONS,
    RequiredPermission,
    SystemAction,
    resolve_system_action,
)
from gad_procurement.services.permissions.defaults import derive_permissions
from gad_procurement.services.permissions.evaluator import (
    can_access_contract,
    evaluate_restrictions,
    has_permission,
    is_expired,
    is_usable,
)
from gad_procurement.services.permissions.models import (
    AccessContext,
    AccessCreate,
    AccessLevel,
    AccessRecord,
    AccessSearchFilters,
    AccessSearchResult,
    AccessStatus,
    AccessUpdate,
    ActorContext,
    ContractRef,
    HistoryAction,
    PermissionCategory,
    PermissionCheckResult,
    PermissionMatrix,
    PermissionTemplate,
    TemplateCreate,
    ValidityPatch,
)
from gad_procurement.services.permissions.repository import (
    AccessRepository,
    ContractLookup,
    SqlContractLookup,
)
from gad_procurement.services.permissions.service import PermissionService


def build_permission_service(session: AsyncSession) -> PermissionService:
    """Wire a PermissionService to a database session"""
    return PermissionService(AccessRepository(session), SqlContractLookup(session))


__all__ = [
    # Service
    "PermissionService",
    "build_permission_service",
    "AccessRepository",
    "ContractLookup",
    "SqlContractLookup",
    # Catalog and derivation
    "SystemAction",
    "RequiredPermission",
    "SYSTEM_ACTION_PERMISSIONS",
    "resolve_system_action",
    "derive_permissions",
    # Evaluation
    "has_permission",
    "can_access_contract",
    "evaluate_restrictions",
    "is_expired",
    "is_usable",
    # Models
    "AccessContext",
    "AccessCreate",
    "AccessLevel",
    "AccessRecord",
    "AccessSearchFilters",
    "AccessSearchResult",
    "AccessStatus",
    "AccessUpdate",
    "ActorContext",
    "ContractRef",
    "HistoryAction",
    "PermissionCategory",
    "PermissionCheckResult",
    "PermissionMatrix",
    "PermissionTemplate",
    "TemplateCreate",
    "ValidityPatch",
]
