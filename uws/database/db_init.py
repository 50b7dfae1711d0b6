import logging

from uws.config import settings
from uws.services.identity_service import hash_password
from .database import engine as default_engine, SessionLocal, Base
from .models import User

logger = logging.getLogger(__name__)

def initialize_db(engine=None, session_factory=None):
    """
    테이블을 생성하고, 관리자 계정이 없으면 기본 관리자 계정을 삽입합니다.
    SQLAlchemy 모델을 사용하여 모든 작업을 수행합니다.
    """
    engine = engine or default_engine
    session_factory = session_factory or SessionLocal
    logger.info("Initializing database at %s", engine.url)

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=engine)

    db = session_factory()
    try:
        if db.query(User).filter(User.username == settings.ADMIN_USERNAME).first():
            logger.info("Admin user already exists. Skipping seed.")
            return

        admin_user = User(
            username=settings.ADMIN_USERNAME,
            password_hash=hash_password(settings.ADMIN_PASSWORD),
        )
        db.add(admin_user)
        db.commit()
        logger.info("Seeded admin user '%s'.", settings.ADMIN_USERNAME)

    except Exception:
        logger.exception("Database initialization failed.")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == '__main__':
    from uws.logging_config import configure_logging
    configure_logging(settings.LOG_LEVEL)
    initialize_db()
