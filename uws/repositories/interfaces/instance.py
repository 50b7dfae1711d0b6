from abc import ABC, abstractmethod
from typing import List, Optional
from uws.database import models

class IInstanceRepository(ABC):
    @abstractmethod
    def get(self, instance_id: str) -> Optional[models.Instance]:
        """고유 ID로 특정 인스턴스를 조회합니다. 없으면 None을 반환합니다."""
        pass

    @abstractmethod
    def put(self, instance: models.Instance) -> models.Instance:
        """인스턴스를 저장합니다. 같은 ID가 이미 있으면 덮어씁니다."""
        pass

    @abstractmethod
    def remove(self, instance_id: str) -> bool:
        """
        인스턴스를 삭제합니다.

        Returns:
            삭제했으면 True, 원래 없었으면 False (예외를 발생시키지 않습니다).
        """
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[models.Instance]:
        """특정 사용자가 소유한 모든 인스턴스를 생성 시각 오름차순으로 조회합니다."""
        pass
