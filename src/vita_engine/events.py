"""
이벤트 소스 모듈: 걸음 센서와 화면 사용 추적기

두 협력자 모두 이미 읽어 온 값(가속도, 포커스 전환 시각)을 받아
원시 샘플을 만들고 구독자에게 전달합니다. 실제 기기 API는 다루지 않습니다.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from math import sqrt
from typing import Callable, Generic, List, Optional, TypeVar

from .data_models import RawScreenSample, RawStepSample
from .screen_time import MIN_SESSION_MINUTES, is_wellness_app, sample_category

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 걸음으로 인정하는 최소 가속도 크기
STEP_THRESHOLD = 10.0

# 연속된 걸음 사이 최소 간격
MIN_STEP_INTERVAL = timedelta(milliseconds=250)

# 가속도 크기별 활동 종류 판단 기준
RUNNING_THRESHOLD = 25.0
STAIRS_THRESHOLD = 15.0

DEFAULT_APP_NAME = "Vita Navigator"


class EventSource(Generic[T]):
    """
    타입이 지정된 이벤트 소스

    subscribe 는 구독 해제 함수를 반환합니다.
    """

    def __init__(self) -> None:
        self._subscribers: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: T) -> None:
        # 콜백 안에서 구독 해제해도 안전하도록 복사본 순회
        for callback in list(self._subscribers):
            callback(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


def classify_motion(magnitude: float) -> str:
    if magnitude > RUNNING_THRESHOLD:
        return "running"
    if magnitude > STAIRS_THRESHOLD:
        return "stairs"
    return "walking"


class StepSensor(EventSource[RawStepSample]):
    """
    가속도 값으로 걸음을 감지하는 센서

    start() 이후에만 샘플을 만들며, 크기가 임계값을 넘고 직전 걸음과
    250ms 이상 떨어진 움직임 하나를 걸음 1회로 기록합니다.
    """

    def __init__(self) -> None:
        super().__init__()
        self.is_tracking = False
        self._last_step_at: Optional[datetime] = None

    def start(self) -> None:
        if self.is_tracking:
            return
        self.is_tracking = True
        logger.info("Step sensor started")

    def stop(self) -> None:
        if not self.is_tracking:
            return
        self.is_tracking = False
        self._last_step_at = None
        logger.info("Step sensor stopped")

    def handle_motion(self, x: float, y: float, z: float, at: datetime) -> Optional[RawStepSample]:
        """
        가속도 측정값 하나를 처리하는 함수

        Returns:
            걸음으로 판정되면 발행된 샘플, 아니면 None
        """
        if not self.is_tracking:
            return None

        magnitude = sqrt(x * x + y * y + z * z)
        if magnitude <= STEP_THRESHOLD:
            return None
        if self._last_step_at is not None and at - self._last_step_at <= MIN_STEP_INTERVAL:
            return None

        self._last_step_at = at
        sample = RawStepSample(
            timestamp=at,
            count=1,
            source="device",
            activity_type=classify_motion(magnitude),
            confidence=min(1.0, max(0.5, magnitude / 20)),
        )
        self.emit(sample)
        return sample


class ScreenTimeTracker(EventSource[RawScreenSample]):
    """
    앱 포커스 전환으로 화면 사용 세션을 기록하는 추적기

    포커스를 잃거나 화면이 가려질 때 세션이 끝나며, 30초 미만 세션은 버립니다.
    """

    def __init__(self, app_name: str = DEFAULT_APP_NAME) -> None:
        super().__init__()
        self.active_app = app_name
        self._session_start: Optional[datetime] = None

    def handle_focus(self, at: datetime, app_name: Optional[str] = None) -> None:
        if app_name is not None:
            self.active_app = app_name
        self._session_start = at

    def handle_blur(self, at: datetime) -> Optional[RawScreenSample]:
        if self._session_start is None:
            return None

        started = self._session_start
        self._session_start = None
        minutes = (at - started).total_seconds() / 60
        if minutes < MIN_SESSION_MINUTES:
            return None

        sample = RawScreenSample(
            timestamp=started,
            app_name=self.active_app,
            duration_minutes=minutes,
            category=sample_category(self.active_app),
            is_wellness_app=is_wellness_app(self.active_app),
        )
        self.emit(sample)
        return sample

    def handle_visibility_change(self, hidden: bool, at: datetime) -> Optional[RawScreenSample]:
        if hidden:
            return self.handle_blur(at)
        self.handle_focus(at)
        return None
