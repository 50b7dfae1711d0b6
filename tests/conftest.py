# tests/conftest.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from uws.database.database import Base, create_session_factory
from uws.database import models  # noqa: F401  (테이블 등록)
from uws.repositories.memory import InMemoryInstanceRepository
from uws.services.compute_service import ComputeService
from uws.utils.scheduler import ManualScheduler


@pytest.fixture
def db_engine():
    """테스트마다 새로 만드는 인메모리 SQLite 엔진. 모든 연결이 같은 DB를 보도록 StaticPool 사용."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def scheduler() -> ManualScheduler:
    """advance()로만 시간이 흐르는 가짜 시계."""
    return ManualScheduler()


@pytest.fixture
def instance_repo() -> InMemoryInstanceRepository:
    return InMemoryInstanceRepository()


@pytest.fixture
def compute_service(instance_repo, scheduler) -> ComputeService:
    """기본 지연 시간(생성 5초, 시작/정지 3초, 재시작 2+3초)을 사용하는 ComputeService."""
    return ComputeService(instance_repo, scheduler)
