from sqlalchemy import Column, Integer, String, DateTime
from ..database import Base

class Instance(Base):
    """
    사용자가 생성하고 관리하는 시뮬레이션 컴퓨트 인스턴스를 나타냅니다.
    인스턴스 클래스(small/medium/large)에 따라 CPU, 메모리(GB), 스토리지(GB)가 정해지며,
    status 필드가 수명 주기(starting/running/stopping/stopped/error)를 결정합니다.
    AWS의 'EC2 Instance'에 해당합니다.
    """
    __tablename__ = "instances"
    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    instance_class = Column(String, nullable=False)
    cpu = Column(Integer, nullable=False)
    memory = Column(Integer, nullable=False)
    storage = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    ip_address = Column(String, nullable=False)
    region = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)
