"""
데이터 모델 정의 모듈: 웰니스 추천 엔진에서 사용되는 핵심 데이터 구조들

이 모듈은 다음 데이터 클래스들을 정의합니다:
- RawStepSample / RawScreenSample: 센서와 화면 추적기가 만드는 원시 샘플
- DailyActivitySummary: 하루 단위 활동 요약
- ScheduledTask: 추천 후보이자 일정에 등록되는 웰니스 과제
- UserProfile / UserPreferences / UserProgress: 추천 시 읽기 전용 입력
- UserPattern: 패턴 마이닝 결과 (매번 새로 계산되는 불변 값)
- MLPrediction: 과제 성공 가능성 예측 결과
- PersonalizedTask: 개인화 조정기에 입력되는 운동/요가/명상 과제
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, FrozenSet, List, Optional, Tuple

# 과제 카테고리 고정 집합 (순서가 통계 계산의 기본 순서가 됨)
TASK_CATEGORIES = (
    "cardio",
    "strength",
    "flexibility",
    "mindfulness",
    "nutrition",
    "sleep",
    "hydration",
    "posture",
    "rehabilitation",
    "meditation",
)

# 강도 등급을 비교 가능한 숫자로 매핑
INTENSITY_SCORES = {
    "low": 1,
    "medium": 2,
    "high": 3,
}

# 신체 활동으로 분류되는 카테고리
PHYSICAL_CATEGORIES = frozenset({"cardio", "strength", "flexibility"})

SCREEN_CATEGORIES = ("productivity", "social", "entertainment", "wellness", "other")


@dataclass(frozen=True)
class RawStepSample:
    """
    걸음 센서가 만들어내는 원시 걸음 샘플

    센서 협력자가 생성하며 신호 집계기가 소비합니다.
    """
    timestamp: datetime   # 샘플이 기록된 시각 (로컬 시간)
    count: int            # 걸음 수 (0 이상)
    source: str = "device"          # device | estimated
    activity_type: str = "walking"  # walking | running | stairs
    confidence: float = 1.0         # 0.0 ~ 1.0


@dataclass(frozen=True)
class RawScreenSample:
    """
    화면 사용 세션 하나를 나타내는 원시 샘플

    앱 포커스/블러 전환 시점에 생성됩니다.
    """
    timestamp: datetime      # 세션 시작 시각
    app_name: str            # 앱 이름
    duration_minutes: float  # 세션 길이 (분)
    category: str = "other"  # productivity | social | entertainment | wellness | other
    is_wellness_app: bool = False


@dataclass(frozen=True)
class ScreenTimeSummary:
    """하루 화면 사용 시간 요약"""
    total: float = 0.0
    by_category: Dict[str, float] = field(default_factory=dict, hash=False)
    wellness_app_minutes: float = 0.0


@dataclass(frozen=True)
class DailyActivitySummary:
    """
    하루 단위 활동 요약

    같은 날의 원시 샘플로부터 한 번 만들어지며 이후 변경되지 않습니다.
    다시 계산하면 새 인스턴스가 이전 것을 대체합니다.
    """
    date: date
    total_steps: int = 0
    step_goal: int = 10000
    active_minutes: int = 0
    calories_burned: float = 0.0
    distance_covered_km: float = 0.0
    hourly_steps: Tuple[int, ...] = (0,) * 24
    peak_activity_hours: Tuple[int, ...] = ()
    screen_time: ScreenTimeSummary = field(default_factory=ScreenTimeSummary)

    @classmethod
    def empty(cls, day: date, step_goal: int = 10000) -> "DailyActivitySummary":
        return cls(date=day, step_goal=step_goal)


@dataclass(frozen=True)
class TimeSlot:
    """12시간제 시간 슬롯 (hour 1-12, AM/PM)"""
    hour: int
    minute: int = 0
    period: str = "AM"

    @property
    def hour_24(self) -> int:
        """24시간제 시각 (12 AM -> 0, 12 PM -> 12)"""
        base = self.hour % 12
        return base + 12 if self.period == "PM" else base


@dataclass(frozen=True)
class RecommendedFor:
    """과제가 권장되는 사용자 조건"""
    age_range: Tuple[int, int] = (0, 120)
    genders: FrozenSet[str] = frozenset({"male", "female", "other"})
    fitness_levels: FrozenSet[str] = frozenset({"beginner", "intermediate", "advanced"})
    medical_conditions: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class ScheduledTask:
    """
    웰니스 과제 (카탈로그 템플릿 또는 일정에 등록된 인스턴스)

    템플릿은 불변 카탈로그 항목이며, 추천 주기마다 새 식별자와
    completed=False 로 인스턴스가 만들어집니다. 이후에는 완료 토글로만 바뀝니다.
    """
    id: str
    title: str
    category: str
    duration: int = 30                  # 분
    intensity: str = "medium"           # low | medium | high
    completed: bool = False
    description: str = ""
    time_slot: TimeSlot = field(default_factory=lambda: TimeSlot(hour=7))
    priority: str = "medium"            # high | medium | low
    frequency: str = "daily"            # daily | weekly | monthly | custom
    tags: FrozenSet[str] = frozenset()
    recommended_for: Optional[RecommendedFor] = None
    scheduled_date: Optional[date] = None
    calories_burn: Optional[int] = None

    @property
    def hour(self) -> int:
        return self.time_slot.hour_24

    def scheduled_at(self) -> Optional[datetime]:
        """예정 일시 (날짜가 없으면 None)"""
        if self.scheduled_date is None:
            return None
        return datetime(
            self.scheduled_date.year,
            self.scheduled_date.month,
            self.scheduled_date.day,
            self.time_slot.hour_24,
            self.time_slot.minute,
        )

    def toggle_completed(self) -> "ScheduledTask":
        return replace(self, completed=not self.completed)


@dataclass
class UserProfile:
    name: str
    age: int
    gender: str                                  # male | female | other
    medical_conditions: List[str] = field(default_factory=lambda: ["none"])
    fitness_goal: str = "general_health"
    activity_level: str = "beginner"             # beginner | intermediate | advanced


@dataclass
class UserPreferences:
    preferred_times: Dict[str, List[str]] = field(default_factory=dict)
    # 카테고리별 선호 시간 (분), 없는 카테고리는 "other" 값을 사용
    preferred_duration: Dict[str, int] = field(default_factory=lambda: {"other": 30})
    disliked_activities: List[str] = field(default_factory=list)
    favorite_activities: List[str] = field(default_factory=list)
    equipment_available: List[str] = field(default_factory=list)
    indoor_preference: float = 0.5
    preferred_intensity: str = "medium"
    max_intensity: str = "high"


@dataclass
class CategoryProgress:
    improvement: float = 0.0   # -1 ~ 1
    streak: int = 0
    last_activity: Optional[datetime] = None


@dataclass
class UserProgress:
    task_completion_rate: Dict[str, float] = field(default_factory=dict)
    consistency_score: float = 0.0
    # 최근 완료한 과제들의 카테고리 (다양성 보너스 계산에 사용)
    last_completed_tasks: List[str] = field(default_factory=list)
    progress_by_category: Dict[str, CategoryProgress] = field(default_factory=dict)
    challenge_level: str = "beginner"


@dataclass(frozen=True)
class WeatherContext:
    is_outdoor_favorable: bool
    temperature: float = 20.0
    condition: str = "clear"


@dataclass(frozen=True)
class RecommendationContext:
    """추천 호출 시점의 컨텍스트"""
    time_of_day: int                      # 0-23
    day_of_week: int = 0                  # 0-6
    weather: Optional[WeatherContext] = None
    reference_date: Optional[date] = None  # 후보 과제의 예정 날짜


@dataclass(frozen=True)
class MLPrediction:
    likelihood: float
    confidence: float
    supporting_factors: Tuple[str, ...] = ()
    risks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TimePreference:
    most_productive_time: Tuple[int, ...] = ()
    least_productive_time: Tuple[int, ...] = ()
    optimal_exercise_time: Tuple[int, ...] = ()


@dataclass(frozen=True)
class PerformancePatterns:
    best_performing_categories: Tuple[str, ...] = ()
    struggling_categories: Tuple[str, ...] = ()
    # 카테고리별 완료율 (0.0 ~ 1.0)
    category_completion_rates: Dict[str, float] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class AdherencePatterns:
    most_consistent_days: Tuple[int, ...] = ()
    most_skipped_tasks: Tuple[str, ...] = ()
    completion_time_preference: Dict[str, Tuple[int, ...]] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ProgressionPatterns:
    fastest_improving_categories: Tuple[str, ...] = ()
    plateaued_categories: Tuple[str, ...] = ()
    # 카테고리별 주간 완료율 변화량
    weekly_deltas: Dict[str, Tuple[float, ...]] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ScreenTimeImpact:
    productive_hours: Tuple[int, ...] = ()
    distracted_hours: Tuple[int, ...] = ()
    wellness_app_correlation: float = 0.0


@dataclass(frozen=True)
class ExerciseEfficiency:
    best_step_ratios: Tuple[float, ...] = ()
    optimal_intensity: str = "medium"
    recovery_needed: int = 12   # 시간


@dataclass(frozen=True)
class ActivityPatterns:
    peak_step_hours: Tuple[int, ...] = ()
    low_activity_periods: Tuple[int, ...] = ()
    screen_time_impact: ScreenTimeImpact = field(default_factory=ScreenTimeImpact)
    exercise_efficiency: ExerciseEfficiency = field(default_factory=ExerciseEfficiency)


@dataclass(frozen=True)
class UserPattern:
    """
    패턴 마이닝 결과

    마이닝할 때마다 처음부터 새로 계산되며 하위 소비자에게는 읽기 전용입니다.
    latest_summary 는 가장 최근 하루 요약으로, 예측기가 "오늘" 데이터로 사용합니다.
    """
    time_preference: TimePreference = field(default_factory=TimePreference)
    performance_patterns: PerformancePatterns = field(default_factory=PerformancePatterns)
    adherence_patterns: AdherencePatterns = field(default_factory=AdherencePatterns)
    progression_patterns: ProgressionPatterns = field(default_factory=ProgressionPatterns)
    activity_patterns: ActivityPatterns = field(default_factory=ActivityPatterns)
    latest_summary: Optional[DailyActivitySummary] = None

    @classmethod
    def default(cls) -> "UserPattern":
        return cls()

    @property
    def has_activity_data(self) -> bool:
        return self.latest_summary is not None


@dataclass(frozen=True)
class PersonalizedTask:
    """
    개인화 조정기가 다루는 운동/요가/명상 과제

    intensity_level 은 0-10 척도입니다.
    """
    id: str
    title: str
    type: str                      # exercise | yoga | meditation
    category: str                  # strength | cardio | flexibility | meditation | yoga
    duration: int                  # 분
    intensity_level: float
    difficulty: str = "beginner"   # beginner | intermediate | advanced
    description: str = ""
    equipment: Tuple[str, ...] = ()
    age_group: str = "18-30"
    gender_specific: str = "both"  # male | female | other | both
    health_condition_safe: Tuple[str, ...] = ()
    trimester_safe: Optional[Tuple[int, ...]] = None
    adapted_for: Dict[str, str] = field(default_factory=dict, hash=False)
