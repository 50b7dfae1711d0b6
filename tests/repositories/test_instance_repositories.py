# tests/repositories/test_instance_repositories.py
from datetime import datetime, timedelta, timezone

import pytest

from uws.database import models
from uws.repositories.memory import InMemoryInstanceRepository
from uws.repositories.sqlalchemy import SqlalchemyInstanceRepository

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

# ===================================================================
#  Fixture 설정: 두 구현이 같은 계약을 지키는지 동일한 테스트로 검증
# ===================================================================

@pytest.fixture(params=["memory", "sqlalchemy"])
def repo(request):
    if request.param == "memory":
        return InMemoryInstanceRepository()
    session_factory = request.getfixturevalue("session_factory")
    return SqlalchemyInstanceRepository(session_factory)


def make_instance(instance_id, owner_id="u1", status="starting", offset_seconds=0):
    return models.Instance(
        id=instance_id,
        owner_id=owner_id,
        name=f"vm-{instance_id}",
        instance_class="small",
        cpu=1,
        memory=2,
        storage=20,
        status=status,
        ip_address="172.0.0.1",
        region="us-east-1",
        created_at=BASE_TIME + timedelta(seconds=offset_seconds),
    )

# ===================================================================
#  get / put / remove
# ===================================================================

def test_get_missing_returns_none(repo):
    assert repo.get("nope") is None


def test_put_then_get(repo):
    repo.put(make_instance("i-1"))

    found = repo.get("i-1")

    assert found is not None
    assert found.owner_id == "u1"
    assert found.status == "starting"


def test_put_overwrites_existing(repo):
    repo.put(make_instance("i-1"))

    instance = repo.get("i-1")
    instance.status = "running"
    repo.put(instance)

    assert repo.get("i-1").status == "running"


def test_remove(repo):
    repo.put(make_instance("i-1"))

    assert repo.remove("i-1") is True
    assert repo.get("i-1") is None
    # 없는 인스턴스 삭제는 예외 없이 False
    assert repo.remove("i-1") is False

# ===================================================================
#  list_by_owner
# ===================================================================

def test_list_by_owner_filters_and_orders_by_creation(repo):
    repo.put(make_instance("i-late", offset_seconds=20))
    repo.put(make_instance("i-early", offset_seconds=0))
    repo.put(make_instance("i-other", owner_id="u2", offset_seconds=10))

    instances = repo.list_by_owner("u1")

    assert [i.id for i in instances] == ["i-early", "i-late"]
    assert all(i.owner_id == "u1" for i in instances)
    assert repo.list_by_owner("u3") == []
