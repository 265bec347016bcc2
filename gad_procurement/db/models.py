"""
SQLAlchemy Database Models
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from gad_procurement.core.clock import utcnow
from gad_procurement.db.base import Base, JSONDocument, TimestampMixin, UUIDMixin

ACTIVE_ONLY = text("status = 'ACTIVE'")


class UserDepartmentAccess(UUIDMixin, TimestampMixin, Base):
    """One user's grant to one department"""

    __tablename__ = "user_department_access"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    department_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    access_level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    # Nested documents
    permissions: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    restrictions: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    cross_department_access: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    assignment: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)

    # Validity window (scalar so expiry sweeps can query it)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_temporary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_expire_after_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    observations: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        # At most one ACTIVE grant per (user, department)
        Index(
            "uq_active_user_department",
            "user_id",
            "department_id",
            unique=True,
            postgresql_where=ACTIVE_ONLY,
            sqlite_where=ACTIVE_ONLY,
        ),
        Index("ix_access_user_status", "user_id", "status"),
        Index("ix_access_status_end_date", "status", "end_date"),
    )


class PermissionTemplate(UUIDMixin, TimestampMixin, Base):
    """Reusable permission matrix"""

    __tablename__ = "permission_templates"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    default_access_level: Mapped[str] = mapped_column(String(20), nullable=False)
    permission_template: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    applicable_roles: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    applicable_departments: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)


class PermissionHistory(UUIDMixin, Base):
    """Append-only lifecycle log; access_id is a back-reference, not a cascade"""

    __tablename__ = "permission_history"

    access_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    changed_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    change_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    previous_values: Mapped[Optional[dict]] = mapped_column(JSONDocument, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSONDocument, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    audit_info: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)


class Contract(UUIDMixin, TimestampMixin, Base):
    """Read model of a contract, limited to what access decisions need"""

    __tablename__ = "contracts"

    requesting_department_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    contract_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    phase_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
