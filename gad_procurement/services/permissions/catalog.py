"""
Permission Catalog
System actions and the permission flag each one requires
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional

from gad_procurement.services.permissions.models import PermissionCategory


class SystemAction(str, Enum):
    CREATE_CONTRACT = "CREATE_CONTRACT"
    VIEW_CONTRACT = "VIEW_CONTRACT"
    EDIT_CONTRACT = "EDIT_CONTRACT"
    DELETE_CONTRACT = "DELETE_CONTRACT"
    UPLOAD_DOCUMENT = "UPLOAD_DOCUMENT"
    DOWNLOAD_DOCUMENT = "DOWNLOAD_DOCUMENT"
    VIEW_DOCUMENT = "VIEW_DOCUMENT"
    DELETE_DOCUMENT = "DELETE_DOCUMENT"
    ADD_OBSERVATION = "ADD_OBSERVATION"
    EDIT_OBSERVATION = "EDIT_OBSERVATION"
    DELETE_OBSERVATION = "DELETE_OBSERVATION"
    VIEW_FINANCIAL_DATA = "VIEW_FINANCIAL_DATA"
    VIEW_ALL_DEPARTMENTS = "VIEW_ALL_DEPARTMENTS"
    EXPORT_DATA = "EXPORT_DATA"


class RequiredPermission(NamedTuple):
    category: PermissionCategory
    flag: str


SYSTEM_ACTION_PERMISSIONS: Dict[SystemAction, RequiredPermission] = {
    SystemAction.CREATE_CONTRACT: RequiredPermission(PermissionCategory.CONTRACTS, "can_create"),
    SystemAction.VIEW_CONTRACT: RequiredPermission(PermissionCategory.CONTRACTS, "can_view_department"),
    SystemAction.EDIT_CONTRACT: RequiredPermission(PermissionCategory.CONTRACTS, "can_edit"),
    SystemAction.DELETE_CONTRACT: RequiredPermission(PermissionCategory.CONTRACTS, "can_delete"),
    SystemAction.UPLOAD_DOCUMENT: RequiredPermission(PermissionCategory.DOCUMENTS, "can_upload"),
    SystemAction.DOWNLOAD_DOCUMENT: RequiredPermission(PermissionCategory.DOCUMENTS, "can_download"),
    SystemAction.VIEW_DOCUMENT: RequiredPermission(PermissionCategory.DOCUMENTS, "can_view"),
    SystemAction.DELETE_DOCUMENT: RequiredPermission(PermissionCategory.DOCUMENTS, "can_delete"),
    SystemAction.ADD_OBSERVATION: RequiredPermission(PermissionCategory.INTERACTIONS, "can_add_observations"),
    SystemAction.EDIT_OBSERVATION: RequiredPermission(PermissionCategory.INTERACTIONS, "can_edit_own_observations"),
    SystemAction.DELETE_OBSERVATION: RequiredPermission(PermissionCategory.INTERACTIONS, "can_delete_own_observations"),
    SystemAction.VIEW_FINANCIAL_DATA: RequiredPermission(PermissionCategory.SPECIAL, "can_view_financial_data"),
    SystemAction.VIEW_ALL_DEPARTMENTS: RequiredPermission(PermissionCategory.SPECIAL, "can_view_cross_department"),
    SystemAction.EXPORT_DATA: RequiredPermission(PermissionCategory.SPECIAL, "can_export_data"),
}


def resolve_system_action(action: str) -> Optional[RequiredPermission]:
    """Map a system action name to its required permission, or None if unknown"""
    try:
        return SYSTEM_ACTION_PERMISSIONS[SystemAction(action)]
    except ValueError:
        return None
