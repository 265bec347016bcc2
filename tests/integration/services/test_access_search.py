#!/usr/bin/env python3
"""
Integration Tests for Access Search
Filtered, paginated listing of grants
"""

import uuid

import pytest

from gad_procurement.core.exceptions import ValidationException
from gad_procurement.services.permissions.models import (
    AccessCreate,
    AccessLevel,
    AccessSearchFilters,
    AccessStatus,
)


def grant(user_id, department_id, level=AccessLevel.CONTRIBUTOR, **kwargs) -> AccessCreate:
    return AccessCreate(user_id=user_id, department_id=department_id, access_level=level, **kwargs)


@pytest.mark.integration
class TestSearchAccesses:
    """Test filtering by user, department, level, status and global access"""

    @pytest.mark.asyncio
    async def test_defaults_to_active_grants(self, service, actor, department_id):
        active = await service.create_access(grant(uuid.uuid4(), department_id), actor)
        revoked = await service.create_access(grant(uuid.uuid4(), department_id), actor)
        await service.deactivate_access(revoked.id, actor, "Left")

        page = await service.search_accesses(AccessSearchFilters(department_id=department_id))

        assert page.total == 1
        assert [r.id for r in page.results] == [active.id]

    @pytest.mark.asyncio
    async def test_inactive_statuses_of_a_department(self, service, actor, department_id):
        suspended = await service.create_access(grant(uuid.uuid4(), department_id), actor)
        await service.suspend_access(suspended.id, actor, "Audit")
        revoked = await service.create_access(grant(uuid.uuid4(), department_id), actor)
        await service.deactivate_access(revoked.id, actor, "Left")
        await service.create_access(grant(uuid.uuid4(), department_id), actor)

        page = await service.search_accesses(
            AccessSearchFilters(department_id=department_id, status="SUSPENDED", is_active=False)
        )
        assert [r.id for r in page.results] == [suspended.id]

        every_status = await service.search_accesses(
            AccessSearchFilters(department_id=department_id, status=None, is_active=None)
        )
        assert every_status.total == 3

    @pytest.mark.asyncio
    async def test_global_access_holders(
        self, service, actor, department_id, other_department_id
    ):
        archivist = await service.create_access(
            grant(uuid.uuid4(), department_id, AccessLevel.REPOSITORY), actor
        )
        await service.create_access(grant(uuid.uuid4(), other_department_id, AccessLevel.OWNER), actor)

        holders = await service.search_accesses(AccessSearchFilters(has_global_access=True))
        assert [r.id for r in holders.results] == [archivist.id]

        others = await service.search_accesses(AccessSearchFilters(has_global_access=False))
        assert archivist.id not in {r.id for r in others.results}
        assert others.total == 1

    @pytest.mark.asyncio
    async def test_user_and_level_filters(
        self, service, actor, department_id, other_department_id
    ):
        user_id = uuid.uuid4()
        owner = await service.create_access(grant(user_id, department_id, AccessLevel.OWNER), actor)
        await service.create_access(grant(user_id, other_department_id, AccessLevel.OBSERVER), actor)
        await service.create_access(grant(uuid.uuid4(), department_id, AccessLevel.OWNER), actor)

        page = await service.search_accesses(
            AccessSearchFilters(user_id=user_id, access_level="OWNER")
        )
        assert [r.id for r in page.results] == [owner.id]

    @pytest.mark.asyncio
    async def test_pagination(self, service, actor, department_id):
        for _ in range(5):
            await service.create_access(grant(uuid.uuid4(), department_id), actor)

        first = await service.search_accesses(
            AccessSearchFilters(department_id=department_id, limit=2)
        )
        rest = await service.search_accesses(
            AccessSearchFilters(department_id=department_id, limit=2, offset=2)
        )

        assert first.total == rest.total == 5
        assert len(first.results) == 2
        assert len(rest.results) == 2
        assert not {r.id for r in first.results} & {r.id for r in rest.results}

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, service):
        with pytest.raises(ValidationException, match="Invalid status") as exc_info:
            await service.search_accesses(AccessSearchFilters(status="ARCHIVED"))
        assert AccessStatus.PENDING.value in exc_info.value.details["allowed"]

    @pytest.mark.asyncio
    async def test_invalid_access_level_rejected(self, service):
        with pytest.raises(ValidationException, match="Invalid access level"):
            await service.search_accesses(AccessSearchFilters(access_level="ADMIN"))
