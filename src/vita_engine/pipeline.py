"""
파이프라인 모듈: 집계, 패턴 마이닝, 예측, 추천을 하나로 묶는 조립 계층

전역 인스턴스 없이 모든 협력자를 생성자로 주입받습니다.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .config import EngineConfig
from .data_models import (
    DailyActivitySummary,
    MLPrediction,
    RecommendationContext,
    ScheduledTask,
    UserPattern,
    UserPreferences,
    UserProfile,
    UserProgress,
)
from .pattern_mining import mine, with_activity_data
from .recommendation import (
    FeedbackOutcome,
    RankedTask,
    RecommendationEngine,
    TaskFeedback,
    apply_feedback,
)
from .task_catalog import default_catalog
from .task_predictor import predict

logger = logging.getLogger(__name__)


class WellnessPipeline:
    """
    웰니스 추천 파이프라인

    과제 이력, 완료 기록, 하루 요약을 보관하고 필요할 때 패턴을 새로 계산합니다.
    활동 데이터가 추가되면 활동 관련 필드만 다시 계산하고,
    analyze_patterns 를 호출하면 전체를 처음부터 다시 계산합니다.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        catalog: Optional[Sequence[ScheduledTask]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.catalog = list(catalog) if catalog is not None else default_catalog()
        self.id_factory = id_factory
        self.history: List[ScheduledTask] = []
        self.completions: Dict[str, bool] = {}
        self.summaries: List[DailyActivitySummary] = []
        self.pattern = UserPattern.default()

    def add_historical_data(self, tasks: Iterable[ScheduledTask], completions: Dict[str, bool]) -> UserPattern:
        self.history = list(tasks)
        self.completions = dict(completions)
        return self.analyze_patterns()

    def add_activity_data(self, summary: DailyActivitySummary) -> UserPattern:
        """
        하루 요약을 추가하고 활동 관련 패턴만 다시 계산하는 함수

        같은 날짜의 요약은 새 요약으로 교체되며, 보관 기간을 넘는 날은 버립니다.
        """
        by_date = {item.date: item for item in self.summaries}
        by_date[summary.date] = summary
        self.summaries = [by_date[day] for day in sorted(by_date)][-self.config.retention_days:]
        self.pattern = with_activity_data(self.pattern, self.summaries)
        return self.pattern

    def analyze_patterns(self) -> UserPattern:
        self.pattern = mine(self.history, self.completions, self.summaries)
        logger.info(
            f"Patterns analyzed: {len(self.history)} tasks, {len(self.summaries)} daily summaries"
        )
        return self.pattern

    def predict(self, task: ScheduledTask) -> MLPrediction:
        return predict(task, self.pattern)

    def recommend(
        self,
        profile: UserProfile,
        preferences: UserPreferences,
        progress: UserProgress,
        context: RecommendationContext,
        count: int = 5,
    ) -> List[RankedTask]:
        engine = RecommendationEngine(self.pattern, self.history, id_factory=self.id_factory)
        return engine.recommend(profile, preferences, progress, context, self.catalog, count=count)

    def toggle_completion(self, task_id: str) -> Optional[ScheduledTask]:
        """
        이력 안의 과제 완료 상태를 뒤집는 함수

        결과는 다음 패턴 계산부터 반영됩니다. 완료 기록이 기준이며,
        과제 객체의 completed 값은 기록에 맞춰 함께 갱신됩니다.

        Returns:
            토글된 과제 (이력에 없으면 None)
        """
        for index, task in enumerate(self.history):
            if task.id == task_id:
                completed = not self.completions.get(task_id, task.completed)
                toggled = replace(task, completed=completed)
                self.history[index] = toggled
                self.completions[task_id] = completed
                return toggled
        logger.warning(f"Cannot toggle unknown task {task_id}")
        return None

    def schedule(self, tasks: Iterable[ScheduledTask]) -> None:
        """추천된 과제를 이력에 등록 (완료 여부는 False 로 기록)"""
        for task in tasks:
            self.history.append(task)
            self.completions.setdefault(task.id, task.completed)

    def record_feedback(
        self,
        task: ScheduledTask,
        feedback: TaskFeedback,
        preferences: UserPreferences,
        progress: UserProgress,
    ) -> FeedbackOutcome:
        """피드백을 반영하고 갱신된 이력으로 패턴을 다시 계산"""
        history = [item for item in self.history if item.id != task.id]
        outcome = apply_feedback(task, feedback, preferences, progress, history, self.completions)
        self.history = outcome.history
        self.completions = outcome.completions
        self.analyze_patterns()
        return outcome
