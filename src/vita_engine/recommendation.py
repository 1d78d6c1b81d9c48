"""추천 엔진 모듈: 여러 요인을 결합하여 개인화된 웰니스 과제 추천을 생성하는 모듈

이 모듈은 다음 요인들을 종합하여 추천 점수를 계산합니다:
- 프로필 요인: 나이, 성별, 체력 수준, 건강 상태, 최적 운동 시간, 강도, 회복 여부
- 선호 요인: 좋아하는/싫어하는 활동, 최대 강도, 선호 시간
- 시간 요인: 과제 시각과 현재 시각의 차이
- 진행 요인: 카테고리별 향상도, 연속 기록, 도전 수준
- 날씨 요인: 야외 과제의 날씨 적합성
- 다양성 요인: 최근 같은 카테고리 반복 여부
- 예측 요인: 과제 예측기의 성공 가능성 x 신뢰도
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .data_models import (
    INTENSITY_SCORES,
    CategoryProgress,
    MLPrediction,
    RecommendationContext,
    ScheduledTask,
    UserPattern,
    UserPreferences,
    UserProfile,
    UserProgress,
)
from .scheduling import instantiate, new_task_id
from .task_predictor import predict

# 각 요인의 가중치 (합계 1.0, 예측 요인은 별도로 더해짐)
WEIGHTS = {
    "profile": 0.30,      # 프로필 일치 30%
    "preference": 0.20,   # 사용자 선호 20%
    "time": 0.15,         # 시간 일치 15%
    "progress": 0.15,     # 진행 상황 15%
    "weather": 0.10,      # 날씨 10%
    "variety": 0.10,      # 다양성 10%
}

# 예측 요인 가중치 (정규화하지 않으므로 최대 점수는 1.2)
ML_WEIGHT = 0.2

# 선호 시간과의 허용 차이 (분)
DURATION_TOLERANCE = 15

# 회복 시간 검사가 필요한 카테고리
RECOVERY_CATEGORIES = ("cardio", "strength")


@dataclass
class RankedTask:
    """
    순위가 매겨진 추천 결과를 담는 데이터 클래스

    점수 계산에 쓰인 요인별 점수와 예측 결과를 함께 담아 설명 생성에 사용합니다.
    """
    task: ScheduledTask                    # 새로 인스턴스화된 과제
    score: float                           # 최종 가중 합 점수
    reasoning_tokens: Dict[str, float]     # 요인 이름 -> 요인 점수
    prediction: MLPrediction               # 성공 가능성 예측


class RecommendationEngine:
    """
    추천 엔진 클래스: 카탈로그 과제를 요인별로 점수화하여 순위를 매김

    사용자 패턴과 과거 과제 목록은 생성 시 주입받으며, 추천 호출마다
    프로필/선호/진행 상황을 읽기 전용으로 받습니다.
    """

    def __init__(
        self,
        pattern: Optional[UserPattern] = None,
        historical_tasks: Sequence[ScheduledTask] = (),
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        """
        추천 엔진을 초기화하는 함수

        Args:
            pattern: 마이닝된 사용자 패턴 (None이면 기본 패턴)
            historical_tasks: 회복 시간 검사에 쓰이는 과거 과제
            id_factory: 새 과제 식별자 생성 함수 (None이면 uuid4)
        """
        self.pattern = pattern or UserPattern.default()
        self.historical_tasks = list(historical_tasks)
        self.id_factory = id_factory or new_task_id
        self.weights = dict(WEIGHTS)

    def recommend(
        self,
        profile: UserProfile,
        preferences: UserPreferences,
        progress: UserProgress,
        context: RecommendationContext,
        catalog: Iterable[ScheduledTask],
        count: int = 5,
    ) -> List[RankedTask]:
        """
        카탈로그의 각 과제를 점수화하여 상위 count 개를 반환하는 함수

        각 후보는 새 식별자와 completed=False 로 인스턴스화됩니다.
        정렬은 안정 정렬이므로 같은 점수는 카탈로그 순서를 유지합니다.

        Args:
            profile: 사용자 프로필
            preferences: 사용자 선호
            progress: 사용자 진행 상황
            context: 현재 시각, 요일, 날씨 등 컨텍스트
            catalog: 후보 과제 템플릿 목록
            count: 최대 추천 개수

        Returns:
            점수 내림차순으로 정렬된 추천 목록
        """
        ranked: List[RankedTask] = []

        for template in catalog:
            task = instantiate(template, self.id_factory, scheduled_date=context.reference_date)

            # 1. 프로필 요인
            profile_score = self._profile_match(task, profile)

            # 2. 선호 요인
            preference_score = self._preference_match(task, preferences)

            # 3. 시간 요인
            time_score = self._time_match(task, context.time_of_day)

            # 4. 진행 요인
            progress_score = self._progress_alignment(task, progress)

            # 5. 날씨 요인
            weather_score = self._weather_impact(task, context)

            # 6. 다양성 요인
            variety_score = self._variety_bonus(task, progress)

            # 7. 예측 요인
            prediction = predict(task, self.pattern)
            ml_score = prediction.likelihood * prediction.confidence

            score = (
                profile_score * self.weights["profile"]
                + preference_score * self.weights["preference"]
                + time_score * self.weights["time"]
                + progress_score * self.weights["progress"]
                + weather_score * self.weights["weather"]
                + variety_score * self.weights["variety"]
                + ml_score * ML_WEIGHT
            )

            ranked.append(
                RankedTask(
                    task=task,
                    score=score,
                    reasoning_tokens={
                        "profile": profile_score,
                        "preference": preference_score,
                        "time": time_score,
                        "progress": progress_score,
                        "weather": weather_score,
                        "variety": variety_score,
                        "ml": ml_score,
                    },
                    prediction=prediction,
                )
            )

        ranked.sort(key=lambda item: item.score, reverse=True)
        return ranked[:count]

    def _profile_match(self, task: ScheduledTask, profile: UserProfile) -> float:
        """
        7가지 조건 중 충족한 비율을 계산하는 내부 함수

        건강 상태 조건은 사용자의 어떤 상태도 과제 목록에 포함되지 않을 때 충족됩니다.
        """
        recommended = task.recommended_for
        if recommended is None:
            return 0.5

        efficiency = self.pattern.activity_patterns.exercise_efficiency
        low, high = recommended.age_range

        checks = [
            low <= profile.age <= high,
            profile.gender in recommended.genders,
            profile.activity_level in recommended.fitness_levels,
            all(condition not in recommended.medical_conditions for condition in profile.medical_conditions),
            task.hour in self.pattern.time_preference.optimal_exercise_time,
            task.intensity == efficiency.optimal_intensity,
            self._has_recovered(task, efficiency.recovery_needed)
            if task.category in RECOVERY_CATEGORIES else True,
        ]
        return sum(1 for check in checks if check) / len(checks)

    def _has_recovered(self, task: ScheduledTask, recovery_needed: int) -> bool:
        """같은 카테고리의 마지막 고강도 과제 이후 충분한 시간이 지났는지 확인"""
        task_at = task.scheduled_at()
        if task_at is None:
            return True

        previous: List[datetime] = [
            past_at
            for past in self.historical_tasks
            if past.category == task.category and past.intensity == "high"
            for past_at in (past.scheduled_at(),)
            if past_at is not None and past_at <= task_at
        ]
        if not previous:
            return True

        hours_since = (task_at - max(previous)).total_seconds() / 3600
        return hours_since >= recovery_needed

    @staticmethod
    def _preference_match(task: ScheduledTask, preferences: UserPreferences) -> float:
        score = 0.0
        if any(tag in task.tags for tag in preferences.favorite_activities):
            score += 0.3
        if any(tag in task.tags for tag in preferences.disliked_activities):
            score -= 0.3

        within_max = INTENSITY_SCORES[task.intensity] <= INTENSITY_SCORES[preferences.max_intensity]
        score += 0.2 if within_max else -0.2

        preferred = preferences.preferred_duration.get(
            task.category, preferences.preferred_duration.get("other", 30)
        )
        score += 0.2 if abs(task.duration - preferred) <= DURATION_TOLERANCE else -0.2

        return max(0.0, min(1.0, score + 0.5))

    @staticmethod
    def _time_match(task: ScheduledTask, time_of_day: int) -> float:
        hour_diff = abs(task.hour - time_of_day)
        return max(0.0, 1 - hour_diff / 12)

    @staticmethod
    def _progress_alignment(task: ScheduledTask, progress: UserProgress) -> float:
        category_progress = progress.progress_by_category.get(task.category)
        if category_progress is None:
            return 0.5

        score = 0.5 + category_progress.improvement * 0.2
        if category_progress.streak > 0:
            score += min(0.2, category_progress.streak * 0.05)
        if task.recommended_for is not None and progress.challenge_level in task.recommended_for.fitness_levels:
            score += 0.2
        return max(0.0, min(1.0, score))

    @staticmethod
    def _weather_impact(task: ScheduledTask, context: RecommendationContext) -> float:
        if context.weather is not None and "outdoor" in task.tags:
            return 1.0 if context.weather.is_outdoor_favorable else 0.0
        return 0.5

    @staticmethod
    def _variety_bonus(task: ScheduledTask, progress: UserProgress) -> float:
        repeats = sum(1 for category in progress.last_completed_tasks if category == task.category)
        return max(0.0, 1 - repeats * 0.2)


# ---------------------------------------------------------------------------
# 피드백 반영과 점진적 과부하
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaskFeedback:
    completed: bool
    difficulty: str = "just_right"   # too_easy | just_right | too_hard
    enjoyment: int = 3               # 1-5
    energy: int = 3                  # 1-5


@dataclass
class FeedbackOutcome:
    """피드백 반영 후의 새 선호/진행 상황/이력 (입력은 변경하지 않음)"""
    preferences: UserPreferences
    progress: UserProgress
    history: List[ScheduledTask]
    completions: Dict[str, bool] = field(default_factory=dict)


def apply_feedback(
    task: ScheduledTask,
    feedback: TaskFeedback,
    preferences: UserPreferences,
    progress: UserProgress,
    history: Sequence[ScheduledTask] = (),
    completions: Optional[Mapping[str, bool]] = None,
    now: Optional[datetime] = None,
) -> FeedbackOutcome:
    """
    과제 피드백을 선호와 진행 상황에 반영하는 함수

    - 너무 어려움: 선호 강도를 낮춤 (medium/high -> low, low -> medium)
    - 너무 쉬움 + 완료: 선호 강도를 높임 (low/medium -> high, high -> medium)
    - 즐거움 4 이상: 과제 태그를 좋아하는 활동에 추가, 2 이하면 싫어하는 활동에 추가
    - 카테고리 향상도 +-0.1, 연속 기록 +1 또는 0으로 초기화

    Returns:
        갱신된 사본들을 담은 FeedbackOutcome
    """
    new_preferences = replace(
        preferences,
        favorite_activities=list(preferences.favorite_activities),
        disliked_activities=list(preferences.disliked_activities),
    )

    current = INTENSITY_SCORES[preferences.preferred_intensity]
    if feedback.difficulty == "too_hard":
        new_preferences.preferred_intensity = "low" if current > 1 else "medium"
    elif feedback.difficulty == "too_easy" and feedback.completed:
        new_preferences.preferred_intensity = "high" if current < 3 else "medium"

    if feedback.enjoyment >= 4:
        new_preferences.favorite_activities = _merge_tags(new_preferences.favorite_activities, task.tags)
    elif feedback.enjoyment <= 2:
        new_preferences.disliked_activities = _merge_tags(new_preferences.disliked_activities, task.tags)

    by_category = {
        category: replace(entry) for category, entry in progress.progress_by_category.items()
    }
    entry = by_category.get(task.category, CategoryProgress())
    by_category[task.category] = CategoryProgress(
        improvement=0.1 if feedback.completed else -0.1,
        streak=entry.streak + 1 if feedback.completed else 0,
        last_activity=now or datetime.now(),
    )
    last_completed = list(progress.last_completed_tasks)
    if feedback.completed:
        last_completed.append(task.category)
    new_progress = replace(
        progress,
        task_completion_rate=dict(progress.task_completion_rate),
        last_completed_tasks=last_completed,
        progress_by_category=by_category,
    )

    recorded = replace(task, completed=feedback.completed)
    new_completions = dict(completions or {})
    new_completions[task.id] = feedback.completed

    return FeedbackOutcome(
        preferences=new_preferences,
        progress=new_progress,
        history=[*history, recorded],
        completions=new_completions,
    )


def _merge_tags(existing: List[str], tags: Iterable[str]) -> List[str]:
    merged = list(existing)
    for tag in sorted(tags):
        if tag not in merged:
            merged.append(tag)
    return merged


def generate_progressive_overload(
    base_task: ScheduledTask,
    weeks: int,
    id_factory: Optional[Callable[[], str]] = None,
) -> List[ScheduledTask]:
    """
    주차별로 부하를 늘린 과제 목록을 생성하는 함수

    유산소/근력은 매주 시간을 10% (최대 10분) 늘리고 4주차마다 고강도로,
    나머지 카테고리는 매주 5% (최대 5분) 늘립니다.

    Args:
        base_task: 기준 과제
        weeks: 생성할 주 수
        id_factory: 새 식별자 생성 함수

    Returns:
        주차 순서의 과제 목록 (설명 앞에 "Week N: " 표시)
    """
    make_id = id_factory or new_task_id
    progression: List[ScheduledTask] = []
    duration = float(base_task.duration)
    intensity = base_task.intensity

    for week in range(weeks):
        if base_task.category in RECOVERY_CATEGORIES:
            duration = min(duration * 1.1, duration + 10)
            if week % 4 == 3:
                intensity = "high"
        else:
            duration = min(duration * 1.05, duration + 5)

        progression.append(
            replace(
                base_task,
                id=make_id(),
                duration=int(round(duration)),
                intensity=intensity,
                description=f"Week {week + 1}: {base_task.description}",
            )
        )

    return progression
