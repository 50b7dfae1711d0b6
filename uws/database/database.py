from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from uws.config import settings


def create_db_engine(database_url: str):
    """
    데이터베이스 URL로 SQLAlchemy 엔진을 생성합니다.
    SQLite는 타이머 스레드에서도 접근하므로 check_same_thread를 끕니다.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(bind):
    # 세션을 닫은 뒤에도 객체 속성을 읽을 수 있도록 expire_on_commit=False
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = create_db_engine(settings.DATABASE_URL)

SessionLocal = create_session_factory(engine)

# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()
