# tests/repositories/test_sqlalchemy_user_repository.py
from uws.database import models
from uws.repositories.sqlalchemy import SqlalchemyUserRepository


def test_create_and_find_user(session_factory):
    """사용자를 생성한 뒤 ID와 이름으로 다시 조회할 수 있는지 테스트합니다."""
    # === Arrange ===
    db = session_factory()
    repo = SqlalchemyUserRepository(db)

    # === Act ===
    created = repo.create(models.User(username="alice", password_hash="salt$hash"))

    # === Assert ===
    assert created.id is not None
    assert repo.find_by_id(created.id).username == "alice"
    assert repo.find_by_username("alice").id == created.id
    assert repo.find_by_username("bob") is None
    db.close()
