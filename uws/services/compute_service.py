import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from uws.database import models
from uws.repositories.interfaces import IInstanceRepository
from uws.utils.instance_profile import resolve_profile, generate_ip_address, generate_metrics
from uws.utils.scheduler import Scheduler, ScheduledTask
from uws.services.exceptions import (
    InstanceNotFoundError,
    InstanceAccessDeniedError,
    InstanceAlreadyInStateError,
    InvalidInstanceClassError,
    InstanceValidationError,
)

logger = logging.getLogger(__name__)

STATUS_STARTING = "starting"
STATUS_RUNNING = "running"
STATUS_STOPPING = "stopping"
STATUS_STOPPED = "stopped"
STATUS_ERROR = "error"

INSTANCE_STATUSES = (STATUS_STARTING, STATUS_RUNNING, STATUS_STOPPING, STATUS_STOPPED, STATUS_ERROR)

MAX_NAME_LENGTH = 50

DEFAULT_DELAYS = {
    "create": 5.0,
    "start": 3.0,
    "stop": 3.0,
    "restart_stop": 2.0,
    "restart_start": 3.0,
}


class ComputeService:
    """
    인메모리(또는 DB) 저장소 위에서 컴퓨트 인스턴스의 수명 주기를 시뮬레이션합니다.

    명령(create/start/stop/restart)은 전이 상태를 즉시 기록하고, 최종 상태로의 전환은
    스케줄러에 지연 작업으로 예약합니다. 인스턴스당 대기 중인 전이는 최대 하나이며,
    새 명령이나 삭제가 들어오면 이전 전이는 취소됩니다.
    """

    def __init__(self, instance_repo: IInstanceRepository, scheduler: Scheduler,
                 delays: Optional[Dict[str, float]] = None, default_region: str = "us-east-1"):
        """
        ComputeService를 초기화합니다.

        Args:
            instance_repo: 인스턴스 데이터에 접근하기 위한 리포지토리.
            scheduler: 지연 상태 전이를 예약할 스케줄러.
            delays: DEFAULT_DELAYS의 일부 키를 덮어쓸 지연 시간(초).
            default_region: 리전을 지정하지 않았을 때 사용할 리전.
        """
        self.instance_repo = instance_repo
        self.scheduler = scheduler
        self.delays = dict(DEFAULT_DELAYS)
        if delays:
            self.delays.update(delays)
        self.default_region = default_region
        self._pending: Dict[str, ScheduledTask] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # 명령 (Lifecycle)
    # ------------------------------------------------------------------

    def create_instance(self, owner_id: str, name: str, instance_class: str,
                        region: Optional[str] = None) -> Dict[str, Any]:
        """
        새 인스턴스를 'starting' 상태로 생성하고, 일정 시간 뒤 'running'으로 전환하도록 예약합니다.

        Args:
            owner_id: 인스턴스를 소유할 사용자의 ID.
            name: 인스턴스 이름 (1~50자).
            instance_class: 'small', 'medium', 'large' 중 하나.
            region: 리전. 생략하면 기본 리전을 사용합니다.

        Returns:
            생성된 인스턴스의 정보를 담은 딕셔너리 (status는 항상 'starting').

        Raises:
            InvalidInstanceClassError: 지원하지 않는 인스턴스 클래스일 때.
            InstanceValidationError: 이름이나 리전 값이 올바르지 않을 때.
        """
        profile = resolve_profile(instance_class)
        if profile is None:
            raise InvalidInstanceClassError(f"Invalid instance type '{instance_class}'.")
        if not isinstance(name, str) or not 1 <= len(name) <= MAX_NAME_LENGTH:
            raise InstanceValidationError(f"Instance name must be 1-{MAX_NAME_LENGTH} characters.")
        if region is not None and not isinstance(region, str):
            raise InstanceValidationError("Region must be a string.")

        instance = models.Instance(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            name=name,
            instance_class=instance_class,
            cpu=profile["cpu"],
            memory=profile["memory"],
            storage=profile["storage"],
            status=STATUS_STARTING,
            ip_address=generate_ip_address(),
            region=region or self.default_region,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self.instance_repo.put(instance)
            self._schedule_transition(instance.id, self.delays["create"], STATUS_RUNNING)

        logger.info("Instance %s (%s) created for owner %s.", instance.id, instance_class, owner_id)
        return self._to_dict(instance)

    def start_instance(self, owner_id: str, instance_id: str) -> Dict[str, str]:
        """
        인스턴스를 시작합니다. 'starting'으로 즉시 바뀌고, 완료는 지연 작업으로 처리됩니다.

        Raises:
            InstanceNotFoundError: 인스턴스가 없을 때.
            InstanceAccessDeniedError: 다른 사용자의 인스턴스일 때.
            InstanceAlreadyInStateError: 이미 실행 중일 때.
        """
        with self._lock:
            instance = self._get_owned_instance(owner_id, instance_id)
            if instance.status == STATUS_RUNNING:
                raise InstanceAlreadyInStateError("Instance is already running")
            self._set_status(instance, STATUS_STARTING)
            self._schedule_transition(instance_id, self.delays["start"], STATUS_RUNNING)
        return {"message": "Instance is starting", "status": STATUS_STARTING}

    def stop_instance(self, owner_id: str, instance_id: str) -> Dict[str, str]:
        """
        인스턴스를 정지합니다. 'stopping'으로 즉시 바뀌고, 완료는 지연 작업으로 처리됩니다.

        Raises:
            InstanceNotFoundError: 인스턴스가 없을 때.
            InstanceAccessDeniedError: 다른 사용자의 인스턴스일 때.
            InstanceAlreadyInStateError: 이미 정지되어 있을 때.
        """
        with self._lock:
            instance = self._get_owned_instance(owner_id, instance_id)
            if instance.status == STATUS_STOPPED:
                raise InstanceAlreadyInStateError("Instance is already stopped")
            self._set_status(instance, STATUS_STOPPING)
            self._schedule_transition(instance_id, self.delays["stop"], STATUS_STOPPED)
        return {"message": "Instance is stopping", "status": STATUS_STOPPING}

    def restart_instance(self, owner_id: str, instance_id: str) -> Dict[str, str]:
        """
        인스턴스를 재시작합니다. 상태와 관계없이 stopping -> starting -> running 순서로
        두 개의 연쇄된 지연 작업을 통해 전환됩니다.

        Raises:
            InstanceNotFoundError: 인스턴스가 없을 때.
            InstanceAccessDeniedError: 다른 사용자의 인스턴스일 때.
        """
        with self._lock:
            instance = self._get_owned_instance(owner_id, instance_id)
            self._set_status(instance, STATUS_STOPPING)
            self._schedule_transition(
                instance_id, self.delays["restart_stop"], STATUS_STARTING,
                then=(self.delays["restart_start"], STATUS_RUNNING),
            )
        return {"message": "Instance is restarting", "status": STATUS_STOPPING}

    def delete_instance(self, owner_id: str, instance_id: str) -> Dict[str, str]:
        """
        인스턴스를 즉시 삭제하고, 대기 중인 지연 전이가 있으면 취소합니다.

        Raises:
            InstanceNotFoundError: 인스턴스가 없을 때.
            InstanceAccessDeniedError: 다른 사용자의 인스턴스일 때.
        """
        with self._lock:
            self._get_owned_instance(owner_id, instance_id)
            self._cancel_pending(instance_id)
            self.instance_repo.remove(instance_id)
        logger.info("Instance %s deleted by owner %s.", instance_id, owner_id)
        return {"message": "Instance deleted successfully"}

    # ------------------------------------------------------------------
    # 조회 (Query)
    # ------------------------------------------------------------------

    def list_instances(self, owner_id: str) -> List[Dict[str, Any]]:
        """특정 사용자가 소유한 인스턴스 목록을 반환합니다. (metrics 제외)"""
        return [self._to_dict(i) for i in self.instance_repo.list_by_owner(owner_id)]

    def get_instance_detail(self, owner_id: str, instance_id: str) -> Dict[str, Any]:
        """
        인스턴스 상세 정보를 반환합니다.

        실행 중인 인스턴스에는 조회할 때마다 새로 생성한 가상 사용률(metrics)을 붙입니다.
        metrics는 응답에만 포함되며 저장소에는 기록되지 않습니다.

        Raises:
            InstanceNotFoundError: 인스턴스가 없을 때.
            InstanceAccessDeniedError: 다른 사용자의 인스턴스일 때.
        """
        instance = self._get_owned_instance(owner_id, instance_id)
        detail = self._to_dict(instance)
        if instance.status == STATUS_RUNNING:
            detail["metrics"] = generate_metrics()
        return detail

    def shutdown(self):
        """대기 중인 모든 지연 전이를 취소합니다. 서버 종료 시 호출합니다."""
        with self._lock:
            for instance_id in list(self._pending):
                self._cancel_pending(instance_id)
        self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _get_owned_instance(self, owner_id: str, instance_id: str) -> models.Instance:
        instance = self.instance_repo.get(instance_id)
        if not instance:
            raise InstanceNotFoundError("Instance not found")
        if instance.owner_id != owner_id:
            raise InstanceAccessDeniedError("Unauthorized")
        return instance

    def _set_status(self, instance: models.Instance, status: str):
        previous = instance.status
        instance.status = status
        self.instance_repo.put(instance)
        logger.info("Instance %s: %s -> %s", instance.id, previous, status)

    def _cancel_pending(self, instance_id: str):
        task = self._pending.pop(instance_id, None)
        if task and task.cancel():
            logger.debug("Cancelled pending transition %r.", task)

    def _schedule_transition(self, instance_id: str, delay: float, target_status: str, then=None):
        """
        delay초 뒤 인스턴스를 target_status로 바꾸는 지연 작업을 예약합니다.
        then=(delay, status)가 주어지면 전환 직후 다음 전이를 이어서 예약합니다.
        반드시 self._lock을 잡은 상태에서 호출해야 합니다.
        """
        self._cancel_pending(instance_id)
        task = None

        def fire():
            with self._lock:
                # 다른 명령이 이 전이를 대체했으면 무시
                if self._pending.get(instance_id) is not task:
                    logger.debug("Skipping superseded transition %r.", task)
                    return
                del self._pending[instance_id]
                try:
                    instance = self.instance_repo.get(instance_id)
                    if instance is None:
                        logger.debug("Instance %s no longer exists; skipping transition.", instance_id)
                        return
                    self._set_status(instance, target_status)
                    if then:
                        next_delay, next_status = then
                        self._schedule_transition(instance_id, next_delay, next_status)
                except Exception:
                    logger.exception("Transition of instance %s to '%s' failed.", instance_id, target_status)
                    self._mark_error(instance_id)

        task = self.scheduler.schedule(delay, fire, name=f"{instance_id}:{target_status}")
        self._pending[instance_id] = task
        return task

    def _mark_error(self, instance_id: str):
        try:
            instance = self.instance_repo.get(instance_id)
            if instance is not None:
                self._set_status(instance, STATUS_ERROR)
        except Exception:
            logger.exception("Could not record error state for instance %s.", instance_id)

    @staticmethod
    def _to_dict(instance: models.Instance) -> Dict[str, Any]:
        return {
            "id": instance.id,
            "owner_id": instance.owner_id,
            "name": instance.name,
            "instance_class": instance.instance_class,
            "cpu": instance.cpu,
            "memory": instance.memory,
            "storage": instance.storage,
            "status": instance.status,
            "ip_address": instance.ip_address,
            "region": instance.region,
            "created_at": instance.created_at.isoformat(),
        }
