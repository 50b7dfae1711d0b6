from typing import List, Optional
from sqlalchemy.orm import sessionmaker
from uws.database import models
from uws.repositories.interfaces import IInstanceRepository

class SqlalchemyInstanceRepository(IInstanceRepository):
    """
    인스턴스를 instances 테이블에 저장하는 영속 저장소입니다.
    지연 작업은 요청 세션과 다른 스레드에서 실행되므로, 요청 세션을 공유하지 않고
    연산마다 세션 팩토리에서 짧은 세션을 열어 사용합니다.
    """
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, instance_id: str) -> Optional[models.Instance]:
        with self.session_factory() as db:
            return db.get(models.Instance, instance_id)

    def put(self, instance: models.Instance) -> models.Instance:
        with self.session_factory() as db:
            db.merge(instance) # INSERT OR UPDATE와 유사한 동작
            db.commit()
        return instance

    def remove(self, instance_id: str) -> bool:
        with self.session_factory() as db:
            instance = db.get(models.Instance, instance_id)
            if not instance:
                return False
            db.delete(instance)
            db.commit()
            return True

    def list_by_owner(self, owner_id: str) -> List[models.Instance]:
        with self.session_factory() as db:
            return db.query(models.Instance).filter(
                models.Instance.owner_id == owner_id
            ).order_by(models.Instance.created_at.asc(), models.Instance.id.asc()).all()
