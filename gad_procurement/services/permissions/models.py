"""
Access Control Models
Pydantic models for department access grants, templates and history
"""

import re
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from gad_procurement.core.clock import as_utc, utcnow


class AccessLevel(str, Enum):
    """Coarse role a user holds inside one department"""

    OWNER = "OWNER"
    CONTRIBUTOR = "CONTRIBUTOR"
    OBSERVER = "OBSERVER"
    REPOSITORY = "REPOSITORY"


class AccessStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"
    PENDING = "PENDING"


class CrossDepartmentLevel(str, Enum):
    READ_ONLY = "READ_ONLY"
    OBSERVE_COMMENT = "OBSERVE_COMMENT"
    COLLABORATE = "COLLABORATE"


class AssignmentPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class HistoryAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    ACTIVATED = "ACTIVATED"
    SUSPENDED = "SUSPENDED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"
    RESTORED = "RESTORED"


class PermissionCategory(str, Enum):
    CONTRACTS = "contracts"
    DOCUMENTS = "documents"
    INTERACTIONS = "interactions"
    SPECIAL = "special"


class Weekday(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


# ============================================
# PERMISSION MATRIX
# ============================================


class ContractPermissions(BaseModel):
    can_create: bool = False
    can_view_own: bool = False
    can_view_department: bool = False
    can_view_all: bool = False
    can_edit: bool = False
    can_delete: bool = False


class DocumentPermissions(BaseModel):
    can_upload: bool = False
    can_download: bool = False
    can_view: bool = False
    can_delete: bool = False
    can_manage_all: bool = False


class InteractionPermissions(BaseModel):
    can_add_observations: bool = False
    can_edit_own_observations: bool = False
    can_delete_own_observations: bool = False
    can_view_all_observations: bool = False


class SpecialPermissions(BaseModel):
    can_view_financial_data: bool = False
    can_export_data: bool = False
    can_view_cross_department: bool = False
    can_manage_permissions: bool = False


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_flag(flag: str) -> str:
    """Accept both ``canViewAll`` and ``can_view_all`` spellings"""
    return _CAMEL_BOUNDARY.sub("_", flag).lower()


class PermissionMatrix(BaseModel):
    """Four categories of boolean capability flags"""

    contracts: ContractPermissions
    documents: DocumentPermissions
    interactions: InteractionPermissions
    special: SpecialPermissions

    def flag(self, category: str, flag: str) -> bool:
        """
        Look up a single flag

        Unknown categories or flags resolve to False rather than raising.
        """
        try:
            section = PermissionCategory(category)
        except ValueError:
            return False
        group = getattr(self, section.value)
        name = normalize_flag(flag)
        if name not in type(group).model_fields:
            return False
        return bool(getattr(group, name))

    @classmethod
    def has_flag(cls, category: str, flag: str) -> bool:
        """Whether ``category.flag`` names a real permission"""
        try:
            section = PermissionCategory(category)
        except ValueError:
            return False
        group_model = cls.model_fields[section.value].annotation
        return normalize_flag(flag) in group_model.model_fields


# ============================================
# ACCESS RECORD PARTS
# ============================================

_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class TimeRestrictions(BaseModel):
    start_time: Optional[str] = Field(default=None, description="HH:MM")
    end_time: Optional[str] = Field(default=None, description="HH:MM")
    allowed_days: List[Weekday] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _TIME_PATTERN.match(v):
            raise ValueError("Time must use HH:MM format")
        return v


class Restrictions(BaseModel):
    allowed_contract_types: List[uuid.UUID] = Field(default_factory=list)
    allowed_phases: List[uuid.UUID] = Field(default_factory=list)
    max_amount: Optional[float] = Field(default=None, ge=0)
    time_restrictions: TimeRestrictions = Field(default_factory=TimeRestrictions)
    ip_allow_list: List[str] = Field(default_factory=list)
    ip_deny_list: List[str] = Field(default_factory=list)


class CrossDepartmentGrant(BaseModel):
    department_id: uuid.UUID
    access_level: CrossDepartmentLevel = CrossDepartmentLevel.READ_ONLY
    granted_by: Optional[uuid.UUID] = None
    granted_at: Optional[datetime] = None


class CrossDepartmentAccess(BaseModel):
    viewable_departments: List[CrossDepartmentGrant] = Field(default_factory=list)
    has_global_access: bool = False

    def grants_department(self, department_id: uuid.UUID) -> bool:
        return any(g.department_id == department_id for g in self.viewable_departments)


class Assignment(BaseModel):
    assigned_by: Optional[uuid.UUID] = None
    assignment_reason: Optional[str] = None
    is_primary: bool = False
    priority: AssignmentPriority = AssignmentPriority.NORMAL


class Validity(BaseModel):
    start_date: datetime = Field(default_factory=utcnow)
    end_date: Optional[datetime] = None
    is_temporary: bool = False
    auto_expire_after_days: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def check_window(self) -> "Validity":
        if self.end_date is None and self.auto_expire_after_days:
            self.end_date = self.start_date + timedelta(days=self.auto_expire_after_days)
        if self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        if self.is_temporary and self.end_date is None:
            raise ValueError("Temporary access requires end_date or auto_expire_after_days")
        return self


class ValidityPatch(BaseModel):
    """Validity fields to change; unset fields keep their stored values"""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_temporary: Optional[bool] = None
    auto_expire_after_days: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def merge_into(self, current: Validity) -> Validity:
        """Overlay the explicitly set fields on ``current`` and re-check the window"""
        changes = self.model_dump(exclude_unset=True)
        merged = {**current.model_dump(), **changes}
        if changes.get("auto_expire_after_days") and "end_date" not in changes:
            # Re-derive end_date from the new day count
            merged["end_date"] = None
        return Validity.model_validate(merged)


# ============================================
# ACCESS RECORD
# ============================================


class AccessRecord(BaseModel):
    """One user's grant to one department"""

    id: uuid.UUID
    user_id: uuid.UUID
    department_id: uuid.UUID
    access_level: AccessLevel
    permissions: PermissionMatrix
    restrictions: Restrictions = Field(default_factory=Restrictions)
    cross_department_access: CrossDepartmentAccess = Field(default_factory=CrossDepartmentAccess)
    assignment: Assignment = Field(default_factory=Assignment)
    validity: Validity = Field(default_factory=Validity)
    status: AccessStatus = AccessStatus.ACTIVE
    is_active: bool = True
    observations: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def snapshot(self) -> Dict[str, Any]:
        """Mutable state captured in history entries"""
        return self.model_dump(
            mode="json",
            include={
                "user_id",
                "department_id",
                "access_level",
                "permissions",
                "restrictions",
                "cross_department_access",
                "assignment",
                "validity",
                "status",
                "is_active",
                "observations",
            },
        )


class AccessCreate(BaseModel):
    """Input for creating a department grant"""

    user_id: uuid.UUID
    department_id: uuid.UUID
    access_level: AccessLevel
    permissions: Optional[PermissionMatrix] = None
    restrictions: Restrictions = Field(default_factory=Restrictions)
    cross_department_access: CrossDepartmentAccess = Field(default_factory=CrossDepartmentAccess)
    assignment: Assignment = Field(default_factory=Assignment)
    validity: Validity = Field(default_factory=Validity)
    status: AccessStatus = AccessStatus.ACTIVE
    observations: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_initial_status(cls, v: AccessStatus) -> AccessStatus:
        if v not in (AccessStatus.ACTIVE, AccessStatus.PENDING):
            raise ValueError("New access must start as ACTIVE or PENDING")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": "6f1c2d7e-5a4b-4c3d-9e8f-0a1b2c3d4e5f",
                "department_id": "0d9c8b7a-6f5e-4d3c-2b1a-09f8e7d6c5b4",
                "access_level": "CONTRIBUTOR",
                "assignment": {"assignment_reason": "Technical reviewer"},
            }
        }
    }


class AccessUpdate(BaseModel):
    """Partial update; absent fields are left untouched"""

    user_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    access_level: Optional[AccessLevel] = None
    permissions: Optional[PermissionMatrix] = None
    restrictions: Optional[Restrictions] = None
    cross_department_access: Optional[CrossDepartmentAccess] = None
    assignment: Optional[Assignment] = None
    validity: Optional[ValidityPatch] = None
    observations: Optional[str] = None


class AccessSearchFilters(BaseModel):
    """
    Filters for listing grants

    ``access_level`` and ``status`` stay plain strings so the service can
    reject unknown values with a domain error. Status defaults to ACTIVE
    and ``is_active`` to True; pass None to drop either filter.
    """

    user_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    access_level: Optional[str] = None
    status: Optional[str] = AccessStatus.ACTIVE.value
    is_active: Optional[bool] = True
    has_global_access: Optional[bool] = None
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)


class AccessSearchResult(BaseModel):
    total: int
    limit: int
    offset: int
    results: List[AccessRecord]


# ============================================
# TEMPLATES AND HISTORY
# ============================================


class PermissionTemplate(BaseModel):
    """Named, reusable permission matrix"""

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    default_access_level: AccessLevel
    permission_template: PermissionMatrix
    applicable_roles: List[str] = Field(default_factory=list)
    applicable_departments: List[uuid.UUID] = Field(default_factory=list)
    is_active: bool = True
    created_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None


class TemplateCreate(BaseModel):
    name: str
    description: Optional[str] = None
    default_access_level: AccessLevel
    permission_template: PermissionMatrix
    applicable_roles: List[str] = Field(default_factory=list)
    applicable_departments: List[uuid.UUID] = Field(default_factory=list)


class AuditInfo(BaseModel):
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=500)
    request_id: Optional[str] = Field(default=None, max_length=100)


class ActorContext(BaseModel):
    """Who performs a lifecycle action, passed explicitly to every mutation"""

    user_id: uuid.UUID
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None

    def audit_info(self) -> AuditInfo:
        return AuditInfo(
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            request_id=self.request_id,
        )


class PermissionHistoryEntry(BaseModel):
    """Immutable record of one lifecycle transition"""

    id: uuid.UUID
    access_id: uuid.UUID
    action_type: HistoryAction
    changed_by: uuid.UUID
    change_date: datetime
    previous_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    audit_info: AuditInfo = Field(default_factory=AuditInfo)

    model_config = {"frozen": True}


class UserAccessHistory(BaseModel):
    access_id: uuid.UUID
    department_id: uuid.UUID
    history: List[PermissionHistoryEntry]


# ============================================
# EVALUATION
# ============================================


class ContractRef(BaseModel):
    """Minimal contract shape consumed by the evaluator"""

    id: uuid.UUID
    requesting_department_id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    contract_type_id: Optional[uuid.UUID] = None
    phase_id: Optional[uuid.UUID] = None
    amount: Optional[float] = None


class AccessContext(BaseModel):
    """Request circumstances checked against record restrictions"""

    at: Optional[datetime] = None
    ip_address: Optional[str] = None


class PermissionCheckResult(BaseModel):
    allowed: bool
    reason: str
    access_level: Optional[AccessLevel] = None


class PermissionCheckRequest(BaseModel):
    user_id: uuid.UUID
    department_id: uuid.UUID
    category: str
    permission: str
    contract_id: Optional[uuid.UUID] = None


class BatchCheckResult(PermissionCheckRequest):
    result: PermissionCheckResult


class AccessScope(BaseModel):
    """Departments in which a user holds a given flag"""

    user_id: uuid.UUID
    permission: str
    has_global_access: bool = False
    department_ids: List[uuid.UUID] = Field(default_factory=list)
    access_levels: Dict[str, AccessLevel] = Field(default_factory=dict)


class TransferResult(BaseModel):
    new_owner: AccessRecord
    previous_owner: AccessRecord


class TemplateApplicationStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ERROR = "error"


class TemplateApplicationResult(BaseModel):
    user_id: Any
    status: TemplateApplicationStatus
    access: Optional[AccessRecord] = None
    error: Optional[str] = None
