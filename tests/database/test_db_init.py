# tests/database/test_db_init.py
from uws.config import settings
from uws.database.db_init import initialize_db
from uws.database.models import User
from uws.services.identity_service import verify_password


def test_initialize_db_seeds_admin_once(db_engine, session_factory):
    """관리자 계정이 한 번만 생성되고, 설정된 비밀번호로 검증되는지 테스트합니다."""
    # === Act ===
    initialize_db(db_engine, session_factory)
    initialize_db(db_engine, session_factory)

    # === Assert ===
    with session_factory() as db:
        admins = db.query(User).filter(User.username == settings.ADMIN_USERNAME).all()
    assert len(admins) == 1
    assert verify_password(settings.ADMIN_PASSWORD, admins[0].password_hash)
