from sqlalchemy import Column, Integer, String, DateTime, func
from ..database import Base

class User(Base):
    """
    시스템에 로그인하고 인스턴스를 소유할 수 있는 사용자를 나타냅니다.
    인스턴스의 owner_id에는 이 모델의 id가 문자열로 저장됩니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
