"""
Access Repository
Session-bound persistence for access records, templates and history
"""

import uuid
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gad_procurement.core.clock import as_utc, utcnow
from gad_procurement.core.exceptions import AlreadyExistsException
from gad_procurement.core.logging import get_logger
from gad_procurement.db.models import Contract
from gad_procurement.db.models import PermissionHistory as HistoryRow
from gad_procurement.db.models import PermissionTemplate as TemplateRow
from gad_procurement.db.models import UserDepartmentAccess as AccessRow
from gad_procurement.services.permissions.models import (
    AccessLevel,
    AccessRecord,
    AccessStatus,
    ContractRef,
    PermissionHistoryEntry,
    PermissionTemplate,
)

logger = get_logger(__name__)


class ContractLookup(Protocol):
    """Source of the contract fields the evaluator needs"""

    async def get_contract(self, contract_id: uuid.UUID) -> Optional[ContractRef]:
        ...


class SqlContractLookup:
    """ContractLookup backed by the contracts table"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_contract(self, contract_id: uuid.UUID) -> Optional[ContractRef]:
        row = await self.session.get(Contract, contract_id)
        if row is None:
            return None
        return ContractRef(
            id=row.id,
            requesting_department_id=row.requesting_department_id,
            created_by=row.created_by,
            contract_type_id=row.contract_type_id,
            phase_id=row.phase_id,
            amount=row.amount,
        )


def _record_from_row(row: AccessRow) -> AccessRecord:
    return AccessRecord.model_validate(
        {
            "id": row.id,
            "user_id": row.user_id,
            "department_id": row.department_id,
            "access_level": row.access_level,
            "permissions": row.permissions,
            "restrictions": row.restrictions or {},
            "cross_department_access": row.cross_department_access or {},
            "assignment": row.assignment or {},
            "validity": {
                "start_date": as_utc(row.start_date),
                "end_date": as_utc(row.end_date),
                "is_temporary": row.is_temporary,
                "auto_expire_after_days": row.auto_expire_after_days,
            },
            "status": row.status,
            "is_active": row.is_active,
            "observations": row.observations,
            "created_at": as_utc(row.created_at),
            "updated_at": as_utc(row.updated_at),
        }
    )


def _copy_into_row(record: AccessRecord, row: AccessRow) -> None:
    row.user_id = record.user_id
    row.department_id = record.department_id
    row.access_level = record.access_level.value
    row.status = record.status.value
    row.is_active = record.is_active
    row.permissions = record.permissions.model_dump(mode="json")
    row.restrictions = record.restrictions.model_dump(mode="json")
    row.cross_department_access = record.cross_department_access.model_dump(mode="json")
    row.assignment = record.assignment.model_dump(mode="json")
    row.start_date = record.validity.start_date
    row.end_date = record.validity.end_date
    row.is_temporary = record.validity.is_temporary
    row.auto_expire_after_days = record.validity.auto_expire_after_days
    row.observations = record.observations


def _template_from_row(row: TemplateRow) -> PermissionTemplate:
    return PermissionTemplate.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "default_access_level": row.default_access_level,
            "permission_template": row.permission_template,
            "applicable_roles": row.applicable_roles or [],
            "applicable_departments": row.applicable_departments or [],
            "is_active": row.is_active,
            "created_by": row.created_by,
            "created_at": as_utc(row.created_at),
        }
    )


def _history_from_row(row: HistoryRow) -> PermissionHistoryEntry:
    return PermissionHistoryEntry.model_validate(
        {
            "id": row.id,
            "access_id": row.access_id,
            "action_type": row.action_type,
            "changed_by": row.changed_by,
            "change_date": as_utc(row.change_date),
            "previous_values": row.previous_values,
            "new_values": row.new_values,
            "reason": row.reason,
            "audit_info": row.audit_info or {},
        }
    )


class AccessRepository:
    """
    Storage adapter for the access-control engine

    Methods flush but never commit; the calling service owns the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Integrity violation on access write: {e.orig}")
            raise AlreadyExistsException(
                message="User already has active access to this department",
                details={"constraint": "uq_active_user_department"},
            )

    # ============================================
    # ACCESS RECORDS
    # ============================================

    async def get(self, access_id: uuid.UUID) -> Optional[AccessRecord]:
        row = await self.session.get(AccessRow, access_id)
        return _record_from_row(row) if row else None

    async def find_active(
        self,
        user_id: uuid.UUID,
        department_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[AccessRecord]:
        """The unique ACTIVE record for (user, department), if any"""
        stmt = select(AccessRow).where(
            AccessRow.user_id == user_id,
            AccessRow.department_id == department_id,
            AccessRow.status == AccessStatus.ACTIVE.value,
            AccessRow.is_active.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(AccessRow.id != exclude_id)
        result = await self.session.execute(stmt)
        row = result.scalars().first()
        return _record_from_row(row) if row else None

    async def list_by_user(
        self,
        user_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> List[AccessRecord]:
        stmt = select(AccessRow).where(AccessRow.user_id == user_id)
        if not include_inactive:
            stmt = stmt.where(
                AccessRow.status == AccessStatus.ACTIVE.value,
                AccessRow.is_active.is_(True),
            )
        result = await self.session.execute(stmt.order_by(AccessRow.created_at.desc()))
        records = [_record_from_row(row) for row in result.scalars().all()]
        # Primary assignments first, newest first within each group (stable sort)
        return sorted(records, key=lambda r: not r.assignment.is_primary)

    async def list_by_department(
        self,
        department_id: uuid.UUID,
        access_level: Optional[AccessLevel] = None,
    ) -> List[AccessRecord]:
        stmt = select(AccessRow).where(
            AccessRow.department_id == department_id,
            AccessRow.status == AccessStatus.ACTIVE.value,
            AccessRow.is_active.is_(True),
        )
        if access_level is not None:
            stmt = stmt.where(AccessRow.access_level == access_level.value)
        result = await self.session.execute(stmt.order_by(AccessRow.created_at))
        return [_record_from_row(row) for row in result.scalars().all()]

    async def search(
        self,
        user_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
        access_level: Optional[AccessLevel] = None,
        status: Optional[AccessStatus] = None,
        is_active: Optional[bool] = None,
        has_global_access: Optional[bool] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[AccessRecord], int]:
        """One page of matching records plus the total match count; None skips a filter"""
        conditions = []
        if user_id is not None:
            conditions.append(AccessRow.user_id == user_id)
        if department_id is not None:
            conditions.append(AccessRow.department_id == department_id)
        if access_level is not None:
            conditions.append(AccessRow.access_level == access_level.value)
        if status is not None:
            conditions.append(AccessRow.status == status.value)
        if is_active is not None:
            conditions.append(AccessRow.is_active.is_(is_active))
        if has_global_access is not None:
            conditions.append(
                AccessRow.cross_department_access["has_global_access"].as_boolean()
                == has_global_access
            )

        total = await self.session.scalar(
            select(func.count()).select_from(AccessRow).where(*conditions)
        )
        result = await self.session.execute(
            select(AccessRow)
            .where(*conditions)
            .order_by(AccessRow.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [_record_from_row(row) for row in result.scalars().all()], total or 0

    async def list_expired(self, now: Optional[datetime] = None) -> List[AccessRecord]:
        """ACTIVE records whose end date has passed"""
        result = await self.session.execute(
            select(AccessRow).where(
                AccessRow.status == AccessStatus.ACTIVE.value,
                AccessRow.end_date.is_not(None),
                AccessRow.end_date < (now or utcnow()),
            )
        )
        return [_record_from_row(row) for row in result.scalars().all()]

    async def insert(self, record: AccessRecord) -> AccessRecord:
        row = AccessRow(id=record.id)
        _copy_into_row(record, row)
        self.session.add(row)
        await self._flush()
        return _record_from_row(row)

    async def save(self, record: AccessRecord) -> AccessRecord:
        row = await self.session.get(AccessRow, record.id)
        if row is None:
            raise LookupError(f"Access {record.id} vanished during update")
        _copy_into_row(record, row)
        await self._flush()
        return _record_from_row(row)

    # ============================================
    # TEMPLATES
    # ============================================

    async def insert_template(self, template: PermissionTemplate) -> PermissionTemplate:
        row = TemplateRow(
            id=template.id,
            name=template.name,
            description=template.description,
            default_access_level=template.default_access_level.value,
            permission_template=template.permission_template.model_dump(mode="json"),
            applicable_roles=list(template.applicable_roles),
            applicable_departments=[str(d) for d in template.applicable_departments],
            is_active=template.is_active,
            created_by=template.created_by,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise AlreadyExistsException(
                message=f"Template '{template.name}' already exists",
                details={"name": template.name},
            )
        return _template_from_row(row)

    async def get_template(self, template_id: uuid.UUID) -> Optional[PermissionTemplate]:
        row = await self.session.get(TemplateRow, template_id)
        return _template_from_row(row) if row else None

    async def find_template_by_name(self, name: str) -> Optional[PermissionTemplate]:
        result = await self.session.execute(select(TemplateRow).where(TemplateRow.name == name))
        row = result.scalars().first()
        return _template_from_row(row) if row else None

    async def list_templates(self, active_only: bool = True) -> List[PermissionTemplate]:
        stmt = select(TemplateRow)
        if active_only:
            stmt = stmt.where(TemplateRow.is_active.is_(True))
        result = await self.session.execute(stmt.order_by(TemplateRow.created_at.desc()))
        return [_template_from_row(row) for row in result.scalars().all()]

    # ============================================
    # HISTORY
    # ============================================

    async def append_history(self, entry: PermissionHistoryEntry) -> PermissionHistoryEntry:
        row = HistoryRow(
            id=entry.id,
            access_id=entry.access_id,
            action_type=entry.action_type.value,
            changed_by=entry.changed_by,
            change_date=entry.change_date,
            previous_values=entry.previous_values,
            new_values=entry.new_values,
            reason=entry.reason,
            audit_info=entry.audit_info.model_dump(mode="json"),
        )
        self.session.add(row)
        await self.session.flush()
        return entry

    async def list_history(self, access_id: uuid.UUID) -> List[PermissionHistoryEntry]:
        result = await self.session.execute(
            select(HistoryRow)
            .where(HistoryRow.access_id == access_id)
            .order_by(HistoryRow.change_date.desc())
        )
        return [_history_from_row(row) for row in result.scalars().all()]
