"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os
import uuid
from typing import AsyncGenerator, Optional

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-access-control-suite")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gad_procurement.db import models
from gad_procurement.db.base import Base
from gad_procurement.services.permissions import (
    AccessRepository,
    PermissionService,
    SqlContractLookup,
)
from gad_procurement.services.permissions.models import ActorContext


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_collection_modifyitems(config, items):
    """Add default markers based on test file path"""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest_asyncio.fixture
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """File-backed SQLite database with all tables created"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'access.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def repository(db_session) -> AccessRepository:
    return AccessRepository(db_session)


@pytest.fixture
def service(db_session, repository) -> PermissionService:
    return PermissionService(repository, SqlContractLookup(db_session))


@pytest.fixture
def actor() -> ActorContext:
    """Administrator performing lifecycle actions"""
    return ActorContext(
        user_id=uuid.uuid4(),
        ip_address="10.0.0.5",
        user_agent="pytest",
        request_id="req-test",
    )


@pytest.fixture
def department_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_department_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_contract(db_session):
    """Insert a contract row and return its ID"""

    async def _make(
        department_id: uuid.UUID,
        contract_type_id: Optional[uuid.UUID] = None,
        phase_id: Optional[uuid.UUID] = None,
        amount: Optional[float] = None,
    ) -> uuid.UUID:
        contract = models.Contract(
            id=uuid.uuid4(),
            requesting_department_id=department_id,
            contract_type_id=contract_type_id,
            phase_id=phase_id,
            amount=amount,
        )
        db_session.add(contract)
        await db_session.commit()
        return contract.id

    return _make
