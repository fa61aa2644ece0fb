"""Pytest fixtures for testing"""

from datetime import date, datetime

import pytest

from src.audit import AuditLogger
from src.config import AppSettings
from src.engine import ReconciliationEngine
from src.models.club import ClubSnapshot, Member
from src.services.storage import InMemorySnapshotStorage
from src.store import EntityStore


FIXED_NOW = datetime(2024, 3, 10, 9, 30)


@pytest.fixture
def app_settings() -> AppSettings:
    """Default settings, isolated from any local .env file"""
    return AppSettings(_env_file=None, storage_backend="memory")


@pytest.fixture
def member_m1() -> Member:
    return Member(
        id="M1",
        name="Ahmad bin Zulkifli",
        ic_number="900101-14-5543",
        member_number="1",
        phone="012-3456789",
        join_date=date(2023, 1, 15),
    )


@pytest.fixture
def member_m2() -> Member:
    return Member(
        id="M2",
        name="Mohd Razif",
        ic_number="880210-08-6677",
        member_number="2",
        phone="017-1122334",
        join_date=date(2024, 2, 10),
    )


@pytest.fixture
def store(member_m1: Member, member_m2: Member) -> EntityStore:
    """Store with two members and nothing else"""
    return EntityStore(ClubSnapshot(members=[member_m1, member_m2]))


@pytest.fixture
def memory_storage() -> InMemorySnapshotStorage:
    return InMemorySnapshotStorage()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def engine(
    store: EntityStore,
    memory_storage: InMemorySnapshotStorage,
    audit_logger: AuditLogger,
    app_settings: AppSettings,
) -> ReconciliationEngine:
    """Engine over the two-member store with a fixed clock"""
    return ReconciliationEngine(
        store,
        storage=memory_storage,
        audit_logger=audit_logger,
        settings=app_settings,
        clock=lambda: FIXED_NOW,
    )
