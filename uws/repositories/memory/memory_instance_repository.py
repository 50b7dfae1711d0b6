import threading
from typing import Dict, List, Optional
from uws.database import models
from uws.repositories.interfaces import IInstanceRepository

class InMemoryInstanceRepository(IInstanceRepository):
    """
    프로세스 메모리의 딕셔너리에 인스턴스를 보관하는 기본 저장소입니다.
    영속성이 없으므로 프로세스가 재시작되면 모든 인스턴스가 사라집니다.
    """
    def __init__(self):
        self._instances: Dict[str, models.Instance] = {}
        # 지연 작업이 타이머 스레드에서 실행되므로 딕셔너리 접근을 직렬화
        self._lock = threading.RLock()

    def get(self, instance_id: str) -> Optional[models.Instance]:
        with self._lock:
            return self._instances.get(instance_id)

    def put(self, instance: models.Instance) -> models.Instance:
        with self._lock:
            self._instances[instance.id] = instance
            return instance

    def remove(self, instance_id: str) -> bool:
        with self._lock:
            return self._instances.pop(instance_id, None) is not None

    def list_by_owner(self, owner_id: str) -> List[models.Instance]:
        with self._lock:
            owned = [i for i in self._instances.values() if i.owner_id == owner_id]
        return sorted(owned, key=lambda i: (i.created_at, i.id))
