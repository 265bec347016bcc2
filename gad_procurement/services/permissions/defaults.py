"""
Default Permission Derivation
Maps an access level to its complete permission matrix
"""

from typing import Any

from gad_procurement.services.permissions.models import (
    AccessLevel,
    ContractPermissions,
    CrossDepartmentAccess,
    DocumentPermissions,
    InteractionPermissions,
    PermissionMatrix,
    SpecialPermissions,
)


def _read_only_matrix() -> PermissionMatrix:
    # Fallback for unrecognized levels: view and download only
    return PermissionMatrix(
        contracts=ContractPermissions(can_view_own=True, can_view_department=True),
        documents=DocumentPermissions(can_download=True, can_view=True),
        interactions=InteractionPermissions(can_view_all_observations=True),
        special=SpecialPermissions(),
    )


def derive_permissions(level: Any) -> PermissionMatrix:
    """
    Build the default permission matrix for an access level

    Never raises: anything that is not a known AccessLevel gets the
    read-only fallback matrix.
    """
    try:
        level = AccessLevel(level)
    except (ValueError, TypeError):
        return _read_only_matrix()

    # Shared by all four named levels
    interactions = InteractionPermissions(
        can_add_observations=True,
        can_edit_own_observations=True,
        can_delete_own_observations=level is AccessLevel.OWNER,
        can_view_all_observations=True,
    )

    if level is AccessLevel.OWNER:
        return PermissionMatrix(
            contracts=ContractPermissions(
                can_create=True,
                can_view_own=True,
                can_view_department=True,
                can_edit=True,
                can_delete=True,
            ),
            documents=DocumentPermissions(
                can_upload=True,
                can_download=True,
                can_view=True,
                can_delete=True,
                can_manage_all=True,
            ),
            interactions=interactions,
            special=SpecialPermissions(
                can_view_financial_data=True,
                can_export_data=True,
            ),
        )

    if level is AccessLevel.REPOSITORY:
        return PermissionMatrix(
            contracts=ContractPermissions(
                can_view_own=True,
                can_view_department=True,
                can_view_all=True,
            ),
            documents=DocumentPermissions(can_download=True, can_view=True),
            interactions=interactions,
            special=SpecialPermissions(
                can_view_financial_data=True,
                can_export_data=True,
                can_view_cross_department=True,
            ),
        )

    if level is AccessLevel.CONTRIBUTOR:
        return PermissionMatrix(
            contracts=ContractPermissions(can_view_own=True, can_view_department=True),
            documents=DocumentPermissions(
                can_upload=True,
                can_download=True,
                can_view=True,
            ),
            interactions=interactions,
            special=SpecialPermissions(),
        )

    # OBSERVER
    return PermissionMatrix(
        contracts=ContractPermissions(can_view_own=True, can_view_department=True),
        documents=DocumentPermissions(can_download=True, can_view=True),
        interactions=interactions,
        special=SpecialPermissions(),
    )


def apply_global_access(
    level: AccessLevel,
    cross: CrossDepartmentAccess,
    recompute: bool = False,
) -> CrossDepartmentAccess:
    """
    REPOSITORY implies global visibility

    With ``recompute`` (a level change) the flag is reset for every other
    level; otherwise an explicitly granted flag is kept.
    """
    if level is AccessLevel.REPOSITORY:
        return cross.model_copy(update={"has_global_access": True})
    if recompute:
        return cross.model_copy(update={"has_global_access": False})
    return cross
