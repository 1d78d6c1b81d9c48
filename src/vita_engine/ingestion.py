"""
활동 데이터 수집 모듈: 원시 샘플을 버퍼링하고 배치 단위로 저장하는 서비스

이 모듈은 다음 기능들을 제공합니다:
- 최대 크기와 보관 기간이 있는 메모리 버퍼 (RetentionBuffer)
- 배치 크기 도달 또는 주기적 타이머에 의한 저장
- 저장 실패 시 배치 재대기열 처리
- 보관 기간이 지난 배치 정리, 기간별 조회, 저장소 통계
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Callable, Deque, Dict, Generic, List, Optional, Set, TypeVar

from .activity_signals import summarize_day
from .config import EngineConfig
from .data_models import DailyActivitySummary, RawScreenSample, RawStepSample
from .events import ScreenTimeTracker, StepSensor
from .storage import (
    KeyValueStore,
    PersistenceError,
    screen_from_json,
    screen_to_json,
    step_from_json,
    step_to_json,
)

logger = logging.getLogger(__name__)

# 저장소 통계에 보고하는 용량 한도
STEP_STORAGE_LIMIT = 1_000_000
SCREEN_STORAGE_LIMIT = 100_000

S = TypeVar("S", RawStepSample, RawScreenSample)


class RetentionBuffer(Generic[S]):
    """
    최대 샘플 수와 보관 기간으로 제한되는 메모리 버퍼

    추가 순서를 유지하며, 한도를 넘거나 보관 기간이 지난 가장 오래된
    샘플부터 버립니다.
    """

    def __init__(self, max_samples: int, retention: timedelta) -> None:
        self.max_samples = max_samples
        self.retention = retention
        self._samples: Deque[S] = deque()

    def append(self, sample: S) -> None:
        self._samples.append(sample)
        while len(self._samples) > self.max_samples:
            self._samples.popleft()

    def evict_older_than(self, now: datetime) -> int:
        """보관 기간이 지난 샘플을 제거하고 제거된 개수를 반환"""
        cutoff = now - self.retention
        kept = [sample for sample in self._samples if sample.timestamp > cutoff]
        removed = len(self._samples) - len(kept)
        self._samples = deque(kept)
        return removed

    def samples(self) -> List[S]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)


class _Batch:
    def __init__(self, created_at: datetime) -> None:
        self.steps: List[RawStepSample] = []
        self.screen_time: List[RawScreenSample] = []
        self.created_at = created_at

    def is_empty(self) -> bool:
        return not self.steps and not self.screen_time

    def to_json(self) -> Dict[str, Any]:
        return {
            "steps": [step_to_json(sample) for sample in self.steps],
            "screen_time": [screen_to_json(sample) for sample in self.screen_time],
            "timestamp": self.created_at.isoformat(),
        }


def _batch_timestamp(batch: Any) -> Optional[datetime]:
    """저장된 배치의 생성 시각 (없거나 읽을 수 없으면 None)"""
    try:
        return datetime.fromisoformat(batch["timestamp"])
    except (KeyError, TypeError, ValueError):
        return None


class ActivityDataService:
    """
    활동 데이터 수집 서비스

    저장소, 설정, 요약 콜백, 시계를 주입받습니다. 요약 콜백은 배치를
    처리할 때마다 오늘의 DailyActivitySummary 를 받습니다.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[EngineConfig] = None,
        on_summary: Optional[Callable[[DailyActivitySummary], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.on_summary = on_summary
        self.clock = clock or datetime.now

        retention = timedelta(days=self.config.retention_days)
        self.step_buffer: RetentionBuffer[RawStepSample] = RetentionBuffer(
            self.config.buffer_max_samples, retention
        )
        self.screen_buffer: RetentionBuffer[RawScreenSample] = RetentionBuffer(
            self.config.buffer_max_samples, retention
        )

        self._batch = _Batch(self.clock())
        self._is_processing = False
        self.last_processed_timestamp: Optional[datetime] = None

        self._background: Set[asyncio.Task] = set()
        self._periodic: List[asyncio.Task] = []
        self._unsubscribers: List[Callable[[], None]] = []
        self._sensor: Optional[StepSensor] = None

    # ------------------------------------------------------------------
    # 샘플 입력
    # ------------------------------------------------------------------

    def add_step_data(self, sample: RawStepSample) -> None:
        self.step_buffer.append(sample)
        self._batch.steps.append(sample)
        if len(self._batch.steps) >= self.config.batch_size:
            self._schedule_flush()

    def add_screen_time_data(self, sample: RawScreenSample) -> None:
        self.screen_buffer.append(sample)
        self._batch.screen_time.append(sample)
        if len(self._batch.screen_time) >= self.config.batch_size:
            self._schedule_flush()

    @property
    def pending_counts(self) -> Dict[str, int]:
        """아직 저장되지 않은 배치의 샘플 수"""
        return {"steps": len(self._batch.steps), "screen_time": len(self._batch.screen_time)}

    def _schedule_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 실행 중인 루프가 없으면 다음 주기적 저장이나 명시적 호출을 기다림
            logger.debug("Batch full but no running event loop; flush deferred")
            return
        task = loop.create_task(self._flush_in_background())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _flush_in_background(self) -> None:
        try:
            await self.process_batch()
        except PersistenceError:
            # process_batch 에서 이미 로그를 남기고 배치를 되돌려 놓음
            pass
        except Exception as exc:
            logger.error(f"Background activity flush failed: {exc!r}")

    # ------------------------------------------------------------------
    # 배치 처리
    # ------------------------------------------------------------------

    async def process_batch(self, force: bool = False) -> Optional[DailyActivitySummary]:
        """
        현재 배치를 저장하고 오늘의 요약을 발행하는 함수

        처리 중이거나 (force 가 아닐 때) 배치가 비어 있으면 아무것도 하지 않습니다.
        저장에 실패하면 어떤 예외든 배치를 다시 대기열에 넣고 그대로 발생시킵니다.
        요약은 저장이 끝난 뒤에 발행하므로 콜백이 실패해도 배치는 이미 저장되어 있습니다.

        Args:
            force: 빈 배치라도 처리할지 여부

        Returns:
            발행된 오늘의 요약 (건너뛴 경우 None)
        """
        if self._is_processing or (not force and self._batch.is_empty()):
            return None

        self._is_processing = True
        batch = self._batch
        self._batch = _Batch(self.clock())

        try:
            try:
                await self._append_batch(batch)
            except BaseException as exc:
                logger.error(f"Error processing activity batch: {exc!r}")
                # 실패한 배치를 새 배치 앞쪽에 되돌려 놓음
                self._batch.steps[:0] = batch.steps
                self._batch.screen_time[:0] = batch.screen_time
                raise

            self.last_processed_timestamp = self.clock()
            logger.debug(
                f"Processed batch: {len(batch.steps)} steps, {len(batch.screen_time)} screen sessions"
            )

            summary = self.today_summary()
            if self.on_summary is not None:
                self.on_summary(summary)
            return summary
        finally:
            self._is_processing = False

    def today_summary(self) -> DailyActivitySummary:
        """버퍼에 있는 오늘 샘플로 하루 요약을 계산"""
        now = self.clock()
        return summarize_day(
            self.step_buffer.samples(),
            self.screen_buffer.samples(),
            day=now.date(),
            step_goal=self.config.step_goal,
        )

    async def _append_batch(self, batch: _Batch) -> None:
        # 기존 데이터를 읽지 못하면 덮어쓰지 않도록 쓰기 실패로 취급
        data = await self.store.get(self.config.storage_key) or {"batches": []}
        batches = list(data.get("batches", []))
        batches.append(batch.to_json())
        data["batches"] = batches
        await self.store.set(self.config.storage_key, data)

    async def load(self) -> Dict[str, Any]:
        """저장된 배치 목록을 읽는 함수 (실패하면 빈 기본값)"""
        try:
            data = await self.store.get(self.config.storage_key)
        except PersistenceError as exc:
            logger.warning(f"Error loading activity data: {exc}")
            return {"batches": []}
        if not data:
            return {"batches": []}
        data.setdefault("batches", [])
        return data

    async def cleanup_old_data(self) -> int:
        """
        보관 기간이 지난 배치와 버퍼 샘플을 제거하는 함수

        저장소 실패는 로그만 남기고 전파하지 않습니다. 생성 시각을 읽을 수 없는
        배치는 지우지 않고 그대로 둡니다.

        Returns:
            제거된 배치 수
        """
        now = self.clock()
        self.step_buffer.evict_older_than(now)
        self.screen_buffer.evict_older_than(now)

        cutoff = now - timedelta(days=self.config.retention_days)
        try:
            data = await self.store.get(self.config.storage_key)
            if not data:
                return 0
            batches = data.get("batches", [])
            kept = []
            malformed = 0
            for batch in batches:
                stamp = _batch_timestamp(batch)
                if stamp is None:
                    malformed += 1
                    kept.append(batch)
                elif stamp > cutoff:
                    kept.append(batch)
            if malformed:
                logger.warning(f"Skipped {malformed} activity batches without a valid timestamp")
            data["batches"] = kept
            await self.store.set(self.config.storage_key, data)
            removed = len(batches) - len(kept)
            if removed:
                logger.info(f"Removed {removed} activity batches older than {cutoff.date()}")
            return removed
        except PersistenceError as exc:
            logger.error(f"Error cleaning up old activity data: {exc}")
            return 0

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    async def get_storage_stats(self) -> Dict[str, Dict[str, int]]:
        data = await self.load()
        steps_used = sum(len(batch.get("steps", [])) for batch in data["batches"])
        screen_used = sum(len(batch.get("screen_time", [])) for batch in data["batches"])
        return {
            "steps": {"total": STEP_STORAGE_LIMIT, "used": steps_used},
            "screen_time": {"total": SCREEN_STORAGE_LIMIT, "used": screen_used},
        }

    async def get_step_data_for_range(self, start: datetime, end: datetime) -> List[RawStepSample]:
        data = await self.load()
        samples = (
            step_from_json(item)
            for batch in data["batches"]
            for item in batch.get("steps", [])
        )
        return [sample for sample in samples if start <= sample.timestamp <= end]

    async def get_screen_time_data_for_range(
        self, start: datetime, end: datetime
    ) -> List[RawScreenSample]:
        data = await self.load()
        samples = (
            screen_from_json(item)
            for batch in data["batches"]
            for item in batch.get("screen_time", [])
        )
        return [sample for sample in samples if start <= sample.timestamp <= end]

    def is_service_healthy(self) -> bool:
        if self.last_processed_timestamp is None:
            return False
        elapsed = (self.clock() - self.last_processed_timestamp).total_seconds()
        return elapsed < self.config.sync_interval_seconds * 2

    # ------------------------------------------------------------------
    # 수명 주기
    # ------------------------------------------------------------------

    def start(self) -> None:
        """실행 중인 이벤트 루프에 주기적 저장과 정리 작업을 등록"""
        if self._periodic:
            return
        loop = asyncio.get_running_loop()
        self._periodic = [
            loop.create_task(self._run_every(self.config.sync_interval_seconds, self._flush_in_background)),
            loop.create_task(self._run_every(self.config.cleanup_interval_seconds, self.cleanup_old_data)),
        ]
        logger.info("Activity data service started")

    async def stop(self) -> None:
        """주기 작업을 취소하고 남은 배치를 강제로 저장"""
        for task in self._periodic:
            task.cancel()
        results = await asyncio.gather(*self._periodic, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                logger.error(f"Periodic activity job failed: {result!r}")
        self._periodic = []

        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

        await self.process_batch(force=True)
        logger.info("Activity data service stopped")

    @staticmethod
    async def _run_every(interval: float, job) -> None:
        while True:
            await asyncio.sleep(interval)
            await job()

    def start_tracking(self, sensor: StepSensor, screen_tracker: ScreenTimeTracker) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            sensor.subscribe(self.add_step_data),
            screen_tracker.subscribe(self.add_screen_time_data),
        ]
        sensor.start()
        self._sensor = sensor

    def stop_tracking(self) -> None:
        if not self._unsubscribers:
            return
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._sensor is not None:
            self._sensor.stop()
            self._sensor = None

    @property
    def is_tracking(self) -> bool:
        return bool(self._unsubscribers)
