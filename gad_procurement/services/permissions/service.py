"""
Permission Service
Multi-department access control: evaluation, lifecycle and templates
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional, Sequence

from pydantic import ValidationError

from gad_procurement.core.clock import utcnow
from gad_procurement.core.config import settings
from gad_procurement.core.exceptions import (
    AlreadyExistsException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from gad_procurement.core.logging import bind_actor, get_logger
from gad_procurement.services.permissions.catalog import resolve_system_action
from gad_procurement.services.permissions.defaults import apply_global_access, derive_permissions
from gad_procurement.services.permissions.evaluator import (
    can_access_contract,
    evaluate_restrictions,
    has_permission,
    is_expired,
)
from gad_procurement.services.permissions.models import (
    AccessContext,
    AccessCreate,
    AccessLevel,
    AccessRecord,
    AccessScope,
    AccessSearchFilters,
    AccessSearchResult,
    AccessStatus,
    AccessUpdate,
    ActorContext,
    Assignment,
    BatchCheckResult,
    HistoryAction,
    PermissionCategory,
    PermissionCheckRequest,
    PermissionCheckResult,
    PermissionHistoryEntry,
    PermissionTemplate,
    TemplateApplicationResult,
    TemplateApplicationStatus,
    TemplateCreate,
    TransferResult,
    UserAccessHistory,
    Validity,
    ValidityPatch,
)
from gad_procurement.services.permissions.repository import AccessRepository, ContractLookup

logger = get_logger(__name__)


def _coerce_uuid(value: Any, field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationException(
            message=f"Invalid {field}",
            details={field: str(value), "expected_format": "UUID"},
        )


def _merge_validity(current: Validity, patch: ValidityPatch) -> Validity:
    try:
        return patch.merge_into(current)
    except ValidationError as e:
        raise ValidationException(
            message="Invalid validity window",
            details={"errors": [err["msg"] for err in e.errors()]},
        )


class PermissionService:
    """
    Access-control engine for the digital procurement file

    Evaluation methods return PermissionCheckResult and never raise for a
    denial. Lifecycle methods validate before writing, raise AppException
    subclasses on failure, and commit once per operation.
    """

    def __init__(self, repository: AccessRepository, contracts: ContractLookup):
        self.repository = repository
        self.contracts = contracts

    # ============================================
    # EVALUATION
    # ============================================

    async def check_user_permission(
        self,
        user_id: uuid.UUID,
        department_id: uuid.UUID,
        category: str,
        permission: str,
        contract_id: Optional[uuid.UUID] = None,
        context: Optional[AccessContext] = None,
    ) -> PermissionCheckResult:
        """
        Decide whether a user may use ``category.permission`` in a department

        When ``contract_id`` is given the contract must also be reachable
        from the user's record. Restrictions are enforced only when an
        explicit ``context`` is supplied.
        """
        if not user_id or not department_id or not category or not permission:
            raise ValidationException(message="Missing required parameters")

        record = await self.repository.find_active(user_id, department_id)
        if record is None:
            return PermissionCheckResult(allowed=False, reason="No access found")

        contract = None
        if contract_id is not None:
            contract = await self.contracts.get_contract(contract_id)
            if contract is None:
                return PermissionCheckResult(
                    allowed=False,
                    reason="Contract not found",
                    access_level=record.access_level,
                )
            if not can_access_contract(record, contract):
                return PermissionCheckResult(
                    allowed=False,
                    reason="No access to this contract",
                    access_level=record.access_level,
                )

        if context is not None:
            outcome = evaluate_restrictions(record, context, contract)
            if not outcome.allowed:
                return PermissionCheckResult(
                    allowed=False,
                    reason=outcome.reason,
                    access_level=record.access_level,
                )

        allowed = has_permission(record, category, permission)
        logger.debug(
            f"User {user_id} {'granted' if allowed else 'denied'} "
            f"{category}.{permission} in department {department_id}"
        )
        return PermissionCheckResult(
            allowed=allowed,
            reason="Permission granted" if allowed else "Permission denied",
            access_level=record.access_level,
        )

    async def can_perform_system_action(
        self,
        user_id: uuid.UUID,
        department_id: uuid.UUID,
        action: str,
        contract_id: Optional[uuid.UUID] = None,
    ) -> PermissionCheckResult:
        """Check a named system action through its mapped permission flag"""
        if not user_id or not department_id or not action:
            raise ValidationException(message="Missing required parameters")

        required = resolve_system_action(action)
        if required is None:
            return PermissionCheckResult(allowed=False, reason="Unrecognized system action")

        return await self.check_user_permission(
            user_id,
            department_id,
            required.category.value,
            required.flag,
            contract_id,
        )

    async def batch_check_permissions(
        self,
        checks: Sequence[PermissionCheckRequest],
    ) -> List[BatchCheckResult]:
        """Evaluate many checks; a failure in one never affects the others"""
        if not checks:
            raise ValidationException(message="At least one permission check is required")

        results = []
        for check in checks:
            try:
                result = await self.check_user_permission(
                    check.user_id,
                    check.department_id,
                    check.category,
                    check.permission,
                    check.contract_id,
                )
            except Exception as e:
                logger.warning(f"Permission check failed for user {check.user_id}: {e}")
                result = PermissionCheckResult(allowed=False, reason=str(e))
            results.append(BatchCheckResult(**check.model_dump(), result=result))
        return results

    async def resolve_accessible_departments(
        self,
        user_id: uuid.UUID,
        category: str,
        permission: str,
    ) -> AccessScope:
        """Departments where the user currently holds ``category.permission``"""
        scope = AccessScope(user_id=user_id, permission=f"{category}.{permission}")
        for record in await self.repository.list_by_user(user_id):
            if not has_permission(record, category, permission):
                continue
            if record.department_id not in scope.department_ids:
                scope.department_ids.append(record.department_id)
            scope.access_levels[str(record.department_id)] = record.access_level
            if record.cross_department_access.has_global_access and has_permission(
                record, PermissionCategory.CONTRACTS.value, "can_view_all"
            ):
                scope.has_global_access = True
        return scope

    # ============================================
    # LIFECYCLE
    # ============================================

    async def _load(self, access_id: uuid.UUID) -> AccessRecord:
        record = await self.repository.get(access_id)
        if record is None:
            raise NotFoundException("Access", details={"access_id": str(access_id)})
        return record

    async def _ensure_no_active(
        self,
        user_id: uuid.UUID,
        department_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        existing = await self.repository.find_active(user_id, department_id, exclude_id=exclude_id)
        if existing is not None:
            raise AlreadyExistsException(
                message="User already has active access to this department",
                details={
                    "user_id": str(user_id),
                    "department_id": str(department_id),
                    "existing_access_id": str(existing.id),
                },
            )

    def _check_text_limits(
        self,
        assignment: Optional[Assignment],
        observations: Optional[str],
    ) -> None:
        reason = assignment.assignment_reason if assignment else None
        if reason and len(reason) > settings.ASSIGNMENT_REASON_MAX_LENGTH:
            raise ValidationException(
                message="Assignment reason is too long",
                details={"max_length": settings.ASSIGNMENT_REASON_MAX_LENGTH},
            )
        if observations and len(observations) > settings.OBSERVATIONS_MAX_LENGTH:
            raise ValidationException(
                message="Observations are too long",
                details={"max_length": settings.OBSERVATIONS_MAX_LENGTH},
            )

    async def _record_history(
        self,
        record: AccessRecord,
        action: HistoryAction,
        actor: ActorContext,
        previous: Optional[dict] = None,
        reason: Optional[str] = None,
    ) -> None:
        await self.repository.append_history(
            PermissionHistoryEntry(
                id=uuid.uuid4(),
                access_id=record.id,
                action_type=action,
                changed_by=actor.user_id,
                change_date=utcnow(),
                previous_values=previous,
                new_values=record.snapshot(),
                reason=reason,
                audit_info=actor.audit_info(),
            )
        )

    async def _create(self, data: AccessCreate, actor: ActorContext) -> AccessRecord:
        """Validate and insert without committing"""
        self._check_text_limits(data.assignment, data.observations)
        if data.status == AccessStatus.ACTIVE:
            await self._ensure_no_active(data.user_id, data.department_id)

        assignment = data.assignment
        if assignment.assigned_by is None:
            assignment = assignment.model_copy(update={"assigned_by": actor.user_id})

        record = AccessRecord(
            id=uuid.uuid4(),
            user_id=data.user_id,
            department_id=data.department_id,
            access_level=data.access_level,
            permissions=data.permissions or derive_permissions(data.access_level),
            restrictions=data.restrictions,
            cross_department_access=apply_global_access(
                data.access_level, data.cross_department_access
            ),
            assignment=assignment,
            validity=data.validity,
            status=data.status,
            is_active=True,
            observations=data.observations,
        )
        record = await self.repository.insert(record)
        await self._record_history(record, HistoryAction.CREATED, actor)
        bind_actor(logger, actor).info(
            f"Granted {record.access_level.value} access to user {record.user_id} "
            f"in department {record.department_id}"
        )
        return record

    async def _update(
        self,
        record: AccessRecord,
        patch: AccessUpdate,
        actor: ActorContext,
        keep_supplied_permissions: bool = False,
        reason: Optional[str] = None,
    ) -> AccessRecord:
        """
        Apply a patch without committing

        A level change re-derives the matrix unless ``keep_supplied_permissions``
        is set (template application installs the template matrix verbatim).
        """
        self._check_text_limits(patch.assignment, patch.observations)
        previous = record.snapshot()
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        changes.pop("access_level", None)
        changes.pop("permissions", None)
        changes.pop("validity", None)
        updated = record.model_copy(
            update={field: getattr(patch, field) for field in changes}
        )
        if patch.validity is not None:
            updated = updated.model_copy(
                update={"validity": _merge_validity(record.validity, patch.validity)}
            )

        if (updated.user_id, updated.department_id) != (record.user_id, record.department_id):
            if updated.status == AccessStatus.ACTIVE:
                await self._ensure_no_active(
                    updated.user_id, updated.department_id, exclude_id=record.id
                )

        new_level = patch.access_level
        if new_level is not None and new_level != record.access_level:
            if keep_supplied_permissions and patch.permissions is not None:
                permissions = patch.permissions
            else:
                permissions = derive_permissions(new_level)
            updated = updated.model_copy(
                update={
                    "access_level": new_level,
                    "permissions": permissions,
                    "cross_department_access": apply_global_access(
                        new_level, updated.cross_department_access, recompute=True
                    ),
                }
            )
            bind_actor(logger, actor).info(
                f"Access {record.id} level changed from {record.access_level.value} "
                f"to {new_level.value}; permissions re-derived"
            )
        elif patch.permissions is not None:
            updated = updated.model_copy(update={"permissions": patch.permissions})
            bind_actor(logger, actor).info(f"Access {record.id} custom permissions applied")

        updated = await self.repository.save(updated)
        await self._record_history(updated, HistoryAction.UPDATED, actor, previous, reason)
        return updated

    async def _transition(
        self,
        record: AccessRecord,
        actor: ActorContext,
        action: HistoryAction,
        status: AccessStatus,
        is_active: bool,
        reason: Optional[str],
        observation: str,
        validity: Optional[Validity] = None,
    ) -> AccessRecord:
        previous = record.snapshot()
        changes = {"status": status, "is_active": is_active, "observations": observation}
        if validity is not None:
            changes["validity"] = validity
        updated = record.model_copy(update=changes)
        try:
            updated = await self.repository.save(updated)
            await self._record_history(updated, action, actor, previous, reason)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        bind_actor(logger, actor).info(f"Access {record.id} {action.value.lower()}")
        return updated

    async def create_access(self, data: AccessCreate, actor: ActorContext) -> AccessRecord:
        """Grant a user access to a department"""
        try:
            record = await self._create(data, actor)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        return record

    async def update_access(
        self,
        access_id: uuid.UUID,
        patch: AccessUpdate,
        actor: ActorContext,
    ) -> AccessRecord:
        """Update a grant; a level change always re-derives the permission matrix"""
        record = await self._load(access_id)
        if not record.is_active:
            raise InvalidStateException(
                message="Access is inactive",
                details={"access_id": str(access_id), "status": record.status.value},
            )
        try:
            record = await self._update(record, patch, actor)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        return record

    async def deactivate_access(
        self,
        access_id: uuid.UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AccessRecord:
        """Revoke a grant; revoking an inactive grant is an error"""
        record = await self._load(access_id)
        if not record.is_active:
            raise InvalidStateException(
                message="Access is already inactive",
                details={"access_id": str(access_id), "status": record.status.value},
            )
        return await self._transition(
            record,
            actor,
            HistoryAction.REVOKED,
            AccessStatus.REVOKED,
            False,
            reason,
            f"Access revoked: {reason}" if reason else "Access revoked without a stated reason",
        )

    async def suspend_access(
        self,
        access_id: uuid.UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AccessRecord:
        """Temporarily withdraw an ACTIVE grant; lift it with reactivate_access"""
        record = await self._load(access_id)
        if not record.is_active or record.status != AccessStatus.ACTIVE:
            raise InvalidStateException(
                message="Only active access can be suspended",
                details={"access_id": str(access_id), "status": record.status.value},
            )
        return await self._transition(
            record,
            actor,
            HistoryAction.SUSPENDED,
            AccessStatus.SUSPENDED,
            False,
            reason,
            f"Access suspended: {reason}" if reason else "Access suspended",
        )

    async def reactivate_access(
        self,
        access_id: uuid.UUID,
        actor: ActorContext,
        reason: str = "",
        validity: Optional[ValidityPatch] = None,
    ) -> AccessRecord:
        """
        Restore a revoked, suspended or expired grant

        A grant whose end date has passed is only restored together with
        a ``validity`` patch that moves the end date into the future.
        """
        record = await self._load(access_id)
        if record.is_active:
            raise InvalidStateException(
                message="Access is already active",
                details={"access_id": str(access_id), "status": record.status.value},
            )
        new_validity = _merge_validity(record.validity, validity) if validity else None
        restored = record.model_copy(update={"validity": new_validity or record.validity})
        if is_expired(restored):
            raise InvalidStateException(
                message="Access validity has ended; supply a new validity window",
                details={
                    "access_id": str(access_id),
                    "end_date": restored.validity.end_date.isoformat(),
                },
            )
        await self._ensure_no_active(record.user_id, record.department_id, exclude_id=record.id)
        return await self._transition(
            record,
            actor,
            HistoryAction.RESTORED,
            AccessStatus.ACTIVE,
            True,
            reason,
            f"Access reactivated: {reason}" if reason else "Access reactivated",
            validity=new_validity,
        )

    async def activate_access(
        self,
        access_id: uuid.UUID,
        actor: ActorContext,
        reason: str = "",
    ) -> AccessRecord:
        """Promote a PENDING grant to ACTIVE"""
        record = await self._load(access_id)
        if record.status != AccessStatus.PENDING or not record.is_active:
            raise InvalidStateException(
                message="Only pending access can be activated",
                details={"access_id": str(access_id), "status": record.status.value},
            )
        await self._ensure_no_active(record.user_id, record.department_id, exclude_id=record.id)
        return await self._transition(
            record,
            actor,
            HistoryAction.ACTIVATED,
            AccessStatus.ACTIVE,
            True,
            reason,
            f"Access activated: {reason}" if reason else "Access activated",
        )

    async def expire_stale_accesses(
        self,
        actor: ActorContext,
        now: Optional[datetime] = None,
    ) -> List[AccessRecord]:
        """Mark every ACTIVE grant past its end date as EXPIRED"""
        expired = []
        try:
            for record in await self.repository.list_expired(now):
                previous = record.snapshot()
                updated = await self.repository.save(
                    record.model_copy(
                        update={
                            "status": AccessStatus.EXPIRED,
                            "is_active": False,
                            "observations": "Access expired",
                        }
                    )
                )
                await self._record_history(
                    updated, HistoryAction.EXPIRED, actor, previous, "Validity period ended"
                )
                expired.append(updated)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        if expired:
            bind_actor(logger, actor).info(f"Expired {len(expired)} access records")
        return expired

    async def transfer_ownership(
        self,
        department_id: uuid.UUID,
        from_user_id: uuid.UUID,
        to_user_id: uuid.UUID,
        actor: ActorContext,
    ) -> TransferResult:
        """
        Move department ownership between users

        The new owner is promoted (or granted OWNER as primary) and the
        previous owner is demoted to CONTRIBUTOR. All writes share one
        transaction: either both records change or neither does.
        """
        if not department_id or not from_user_id or not to_user_id:
            raise ValidationException(message="Missing required parameters")
        if from_user_id == to_user_id:
            raise ValidationException(message="Cannot transfer ownership to the same user")

        current_owner = await self.repository.find_active(from_user_id, department_id)
        if current_owner is None or current_owner.access_level != AccessLevel.OWNER:
            raise InvalidStateException(
                message="Current user is not owner of the department",
                details={"user_id": str(from_user_id), "department_id": str(department_id)},
            )

        reason = "Ownership transfer"
        try:
            target = await self.repository.find_active(to_user_id, department_id)
            if target is not None:
                new_owner = await self._update(
                    target, AccessUpdate(access_level=AccessLevel.OWNER), actor, reason=reason
                )
            else:
                new_owner = await self._create(
                    AccessCreate(
                        user_id=to_user_id,
                        department_id=department_id,
                        access_level=AccessLevel.OWNER,
                        assignment=Assignment(
                            assigned_by=actor.user_id,
                            is_primary=True,
                            assignment_reason=reason,
                        ),
                    ),
                    actor,
                )
            previous_owner = await self._update(
                current_owner,
                AccessUpdate(access_level=AccessLevel.CONTRIBUTOR),
                actor,
                reason=reason,
            )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            bind_actor(logger, actor).error(
                f"Ownership transfer in department {department_id} rolled back"
            )
            raise

        bind_actor(logger, actor).info(
            f"Ownership of department {department_id} moved from {from_user_id} to {to_user_id}"
        )
        return TransferResult(new_owner=new_owner, previous_owner=previous_owner)

    # ============================================
    # TEMPLATES
    # ============================================

    def _validate_template(self, data: TemplateCreate) -> str:
        name = (data.name or "").strip()
        if not (settings.TEMPLATE_NAME_MIN_LENGTH <= len(name) <= settings.TEMPLATE_NAME_MAX_LENGTH):
            raise ValidationException(
                message=(
                    f"Template name must be between {settings.TEMPLATE_NAME_MIN_LENGTH} "
                    f"and {settings.TEMPLATE_NAME_MAX_LENGTH} characters"
                ),
                details={"name": data.name},
            )
        return name

    async def create_template(self, data: TemplateCreate, actor: ActorContext) -> PermissionTemplate:
        """Register a named permission template"""
        name = self._validate_template(data)
        if await self.repository.find_template_by_name(name) is not None:
            raise AlreadyExistsException(
                message=f"Template '{name}' already exists",
                details={"name": name},
            )
        template = PermissionTemplate(
            id=uuid.uuid4(),
            name=name,
            description=data.description,
            default_access_level=data.default_access_level,
            permission_template=data.permission_template,
            applicable_roles=data.applicable_roles,
            applicable_departments=data.applicable_departments,
            created_by=actor.user_id,
        )
        try:
            template = await self.repository.insert_template(template)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise
        bind_actor(logger, actor).info(f"Permission template '{name}' created")
        return template

    async def get_template(self, template_id: uuid.UUID) -> PermissionTemplate:
        template = await self.repository.get_template(template_id)
        if template is None:
            raise NotFoundException("Template", details={"template_id": str(template_id)})
        return template

    async def get_applicable_templates(
        self,
        role: Optional[str] = None,
        department_id: Optional[uuid.UUID] = None,
    ) -> List[PermissionTemplate]:
        """Active templates matching a role and/or department; empty lists match anything"""
        templates = []
        for template in await self.repository.list_templates(active_only=True):
            if role and template.applicable_roles and role not in template.applicable_roles:
                continue
            if (
                department_id
                and template.applicable_departments
                and department_id not in template.applicable_departments
            ):
                continue
            templates.append(template)
        return templates

    async def apply_template_to_users(
        self,
        template_id: uuid.UUID,
        user_ids: Sequence[Any],
        department_id: uuid.UUID,
        actor: ActorContext,
    ) -> List[TemplateApplicationResult]:
        """
        Apply a template to each user independently

        Each user is committed on its own; a failure is reported in that
        user's result and never undoes the others.
        """
        if not template_id or not user_ids:
            raise ValidationException(message="A template and at least one user are required")

        template = await self.repository.get_template(template_id)
        if template is None or not template.is_active:
            raise NotFoundException("Template", details={"template_id": str(template_id)})

        results = []
        for raw_user_id in user_ids:
            try:
                user_id = _coerce_uuid(raw_user_id, "user_id")
                existing = await self.repository.find_active(user_id, department_id)
                if existing is not None:
                    access = await self._update(
                        existing,
                        AccessUpdate(
                            access_level=template.default_access_level,
                            permissions=template.permission_template,
                        ),
                        actor,
                        keep_supplied_permissions=True,
                        reason=f"Applied template: {template.name}",
                    )
                    status = TemplateApplicationStatus.UPDATED
                else:
                    access = await self._create(
                        AccessCreate(
                            user_id=user_id,
                            department_id=department_id,
                            access_level=template.default_access_level,
                            permissions=template.permission_template,
                            assignment=Assignment(
                                assigned_by=actor.user_id,
                                assignment_reason=f"Applied template: {template.name}",
                            ),
                        ),
                        actor,
                    )
                    status = TemplateApplicationStatus.CREATED
                await self.repository.commit()
                results.append(
                    TemplateApplicationResult(user_id=user_id, status=status, access=access)
                )
            except Exception as e:
                await self.repository.rollback()
                bind_actor(logger, actor).warning(
                    f"Template {template.name} failed for user {raw_user_id}: {e}"
                )
                results.append(
                    TemplateApplicationResult(
                        user_id=raw_user_id,
                        status=TemplateApplicationStatus.ERROR,
                        error=getattr(e, "message", str(e)),
                    )
                )
        return results

    # ============================================
    # QUERIES
    # ============================================

    async def get_access(self, access_id: uuid.UUID) -> AccessRecord:
        return await self._load(access_id)

    async def get_user_accesses(
        self,
        user_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> List[AccessRecord]:
        if not user_id:
            raise ValidationException(message="User ID is required")
        return await self.repository.list_by_user(user_id, include_inactive=include_inactive)

    async def find_users_with_department_access(
        self,
        department_id: uuid.UUID,
        access_level: Optional[AccessLevel] = None,
    ) -> List[AccessRecord]:
        if not department_id:
            raise ValidationException(message="Department ID is required")
        return await self.repository.list_by_department(department_id, access_level)

    async def search_accesses(self, filters: AccessSearchFilters) -> AccessSearchResult:
        """Filtered, paginated listing of grants, newest first"""
        access_level = None
        if filters.access_level:
            try:
                access_level = AccessLevel(filters.access_level)
            except ValueError:
                raise ValidationException(
                    message="Invalid access level",
                    details={
                        "access_level": filters.access_level,
                        "allowed": [level.value for level in AccessLevel],
                    },
                )
        status = None
        if filters.status:
            try:
                status = AccessStatus(filters.status)
            except ValueError:
                raise ValidationException(
                    message="Invalid status",
                    details={
                        "status": filters.status,
                        "allowed": [s.value for s in AccessStatus],
                    },
                )

        records, total = await self.repository.search(
            user_id=filters.user_id,
            department_id=filters.department_id,
            access_level=access_level,
            status=status,
            is_active=filters.is_active,
            has_global_access=filters.has_global_access,
            limit=filters.limit,
            offset=filters.offset,
        )
        return AccessSearchResult(
            total=total,
            limit=filters.limit,
            offset=filters.offset,
            results=records,
        )

    async def get_permission_history(self, access_id: uuid.UUID) -> List[PermissionHistoryEntry]:
        await self._load(access_id)
        return await self.repository.list_history(access_id)

    async def get_user_permission_history(self, user_id: uuid.UUID) -> List[UserAccessHistory]:
        history = []
        for record in await self.repository.list_by_user(user_id, include_inactive=True):
            history.append(
                UserAccessHistory(
                    access_id=record.id,
                    department_id=record.department_id,
                    history=await self.repository.list_history(record.id),
                )
            )
        return history
