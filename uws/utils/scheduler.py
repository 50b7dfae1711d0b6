# uws/utils/scheduler.py
"""
인스턴스 상태 전이를 일정 시간 뒤에 실행하는 지연 작업 스케줄러.

모든 스케줄러는 취소 가능한 ScheduledTask 핸들을 반환합니다.
- ThreadingScheduler: threading.Timer 기반. 실제 서버에서 사용합니다.
- ManualScheduler: advance()로만 시간이 흐르는 가짜 시계. 테스트에서 사용합니다.
"""
import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ScheduledTask:
    """한 번만 실행되는 지연 작업의 핸들."""

    def __init__(self, callback: Callable[[], None], due: float, name: str = ""):
        self.callback = callback
        self.due = due
        self.name = name
        self._cancelled = False
        self._done = False
        self._timer: Optional[threading.Timer] = None
        # run()과 cancel()은 서로 다른 스레드에서 호출될 수 있다
        self._state_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._done

    def cancel(self) -> bool:
        """
        아직 실행되지 않은 작업을 취소합니다.

        Returns:
            취소에 성공했으면 True, 이미 실행되었거나 취소된 작업이면 False.
        """
        with self._state_lock:
            if self._done or self._cancelled:
                return False
            self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        return True

    def run(self):
        with self._state_lock:
            if self._cancelled or self._done:
                return
            self._done = True
        try:
            self.callback()
        except Exception:
            # 지연 작업의 실패는 호출자에게 전달할 경로가 없으므로 기록만 남긴다
            logger.exception("Deferred task '%s' failed.", self.name)

    def __repr__(self):
        state = "cancelled" if self._cancelled else "done" if self._done else "pending"
        return f"<ScheduledTask {self.name!r} due={self.due} {state}>"


class Scheduler(ABC):
    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], None], name: str = "") -> ScheduledTask:
        """delay초 뒤에 callback을 한 번 실행하도록 예약하고 핸들을 반환합니다."""
        pass

    @abstractmethod
    def shutdown(self):
        """대기 중인 모든 작업을 취소합니다."""
        pass


class ThreadingScheduler(Scheduler):
    def __init__(self):
        self._tasks: List[ScheduledTask] = []
        self._lock = threading.Lock()

    def schedule(self, delay: float, callback: Callable[[], None], name: str = "") -> ScheduledTask:
        task = ScheduledTask(callback, due=time.monotonic() + delay, name=name)
        timer = threading.Timer(delay, task.run)
        timer.daemon = True
        task._timer = timer
        with self._lock:
            self._tasks = [t for t in self._tasks if not (t.done or t.cancelled)]
            self._tasks.append(task)
        timer.start()
        return task

    def shutdown(self):
        with self._lock:
            tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()


class ManualScheduler(Scheduler):
    """
    명시적으로 advance()를 호출할 때만 시간이 흐르는 결정적 스케줄러.

    advance() 도중에 콜백이 새로 예약한 작업도 목표 시각 안에 들어오면 함께 실행되므로,
    재시작처럼 연쇄된 지연 작업을 한 번의 advance()로 검증할 수 있습니다.
    """

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._counter = itertools.count()

    def schedule(self, delay: float, callback: Callable[[], None], name: str = "") -> ScheduledTask:
        task = ScheduledTask(callback, due=self.now + delay, name=name)
        # 같은 시각이면 예약 순서대로 실행
        heapq.heappush(self._queue, (task.due, next(self._counter), task))
        return task

    def advance(self, seconds: float) -> int:
        """
        시계를 seconds만큼 진행하며 그 사이에 도래한 작업을 시각 순서대로 실행합니다.

        Returns:
            실제로 실행된 작업의 수.
        """
        target = self.now + seconds
        executed = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now = due
            task.run()
            executed += 1
        self.now = target
        return executed

    def pending(self) -> List[ScheduledTask]:
        """아직 실행되지도 취소되지도 않은 작업 목록을 실행 예정 순서로 반환합니다."""
        return [task for _, _, task in sorted(self._queue) if not (task.cancelled or task.done)]

    def shutdown(self):
        for _, _, task in self._queue:
            task.cancel()
        self._queue = []
