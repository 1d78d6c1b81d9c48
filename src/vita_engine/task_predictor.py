"""
과제 예측 모듈: 사용자 패턴을 바탕으로 과제 성공 가능성을 추정하는 모듈

다섯 가지 요인을 같은 가중치로 결합합니다:
- 시간 요인: 생산적/비생산적 시간대와의 일치
- 카테고리 요인: 카테고리별 과거 수행도
- 향상 요인: 최근 향상 또는 정체 추세
- 활동 요인: 오늘의 걸음 수와 회복 필요 여부
- 화면 사용 요인: 집중/산만 시간대와 오늘의 화면 사용량

신뢰도는 요인 점수가 서로 일치할수록 높아집니다.
"""
from __future__ import annotations

from math import sqrt
from typing import List, Sequence, Tuple

from .data_models import PHYSICAL_CATEGORIES, MLPrediction, ScheduledTask, UserPattern

NEUTRAL_SCORE = 0.5

# 오늘 걸음 목표 달성률 기준
HIGH_GOAL_PROGRESS = 0.8
LOW_GOAL_PROGRESS = 0.3

# 최근 3시간 걸음 수가 이 값을 넘으면 활동량이 높은 것으로 판단
RECENT_ACTIVITY_STEPS = 1000

# 하루 화면 사용 시간이 8시간을 넘으면 과다 사용
HIGH_SCREEN_MINUTES = 480

# 웰니스 앱 사용과 걸음 수의 상관관계 기준
STRONG_CORRELATION = 0.6

Factor = Tuple[float, List[str], List[str]]


def predict(task: ScheduledTask, pattern: UserPattern) -> MLPrediction:
    """
    과제 하나의 성공 가능성을 예측하는 함수

    Args:
        task: 예측할 과제
        pattern: 마이닝된 사용자 패턴

    Returns:
        가능성(요인 평균), 신뢰도, 지지 요인과 위험 요인 목록
    """
    factors = [
        _time_factor(task, pattern),
        _category_factor(task, pattern),
        _progression_factor(task, pattern),
        _activity_factor(task, pattern),
        _screen_time_factor(task, pattern),
    ]

    scores = [score for score, _, _ in factors]
    supporting = [reason for _, support, _ in factors for reason in support]
    risks = [reason for _, _, risk in factors for reason in risk]

    return MLPrediction(
        likelihood=sum(scores) / len(scores),
        confidence=calculate_confidence(scores),
        supporting_factors=tuple(supporting),
        risks=tuple(risks),
    )


def calculate_confidence(scores: Sequence[float]) -> float:
    """요인 점수의 표준편차가 작을수록 높은 신뢰도 (최소 0.5)"""
    if not scores:
        return NEUTRAL_SCORE
    mean = sum(scores) / len(scores)
    variance = sum((score - mean) ** 2 for score in scores) / len(scores)
    return max(0.5, 1 - sqrt(variance))


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _time_factor(task: ScheduledTask, pattern: UserPattern) -> Factor:
    preference = pattern.time_preference
    if task.hour in preference.most_productive_time:
        return 0.8, ["Scheduled during peak performance time"], []
    if task.hour in preference.least_productive_time:
        return 0.3, [], ["Scheduled during typically unproductive time"]
    return 0.6, [], []


def _category_factor(task: ScheduledTask, pattern: UserPattern) -> Factor:
    performance = pattern.performance_patterns
    if task.category in performance.best_performing_categories:
        return 0.9, ["Strong historical performance in this category"], []
    if task.category in performance.struggling_categories:
        return 0.4, [], ["Category needs additional support or modifications"]
    return 0.6, [], []


def _progression_factor(task: ScheduledTask, pattern: UserPattern) -> Factor:
    progression = pattern.progression_patterns
    if task.category in progression.fastest_improving_categories:
        return 0.85, ["Showing consistent improvement in this area"], []
    if task.category in progression.plateaued_categories:
        return 0.5, [], ["Progress has plateaued - consider adjusting difficulty"]
    return 0.7, [], []


def _activity_factor(task: ScheduledTask, pattern: UserPattern) -> Factor:
    """오늘의 걸음 데이터로 신체/비신체 과제의 적합성을 평가"""
    today = pattern.latest_summary
    if today is None:
        return NEUTRAL_SCORE, [], []

    activity = pattern.activity_patterns
    score = NEUTRAL_SCORE
    support: List[str] = []
    risks: List[str] = []

    goal_progress = today.total_steps / today.step_goal if today.step_goal else 0.0
    recent_steps = sum(today.hourly_steps[-3:])
    high_recent_activity = recent_steps > RECENT_ACTIVITY_STEPS

    if task.category in PHYSICAL_CATEGORIES:
        if goal_progress > HIGH_GOAL_PROGRESS:
            score -= 0.2
            risks.append("You've already reached 80% of your daily step goal")
        elif goal_progress < LOW_GOAL_PROGRESS:
            score += 0.2
            support.append("Good timing for physical activity")

        if high_recent_activity:
            score -= 0.1
            risks.append("High recent physical activity")

        if activity.exercise_efficiency.recovery_needed > 0:
            score -= 0.2
            risks.append("Recovery period recommended")
    else:
        if task.hour in activity.peak_step_hours:
            score += 0.1
            support.append("Scheduled during your naturally active time")
        if high_recent_activity and task.category == "meditation":
            score += 0.2
            support.append("Good time for recovery and mindfulness")

    return _clamp(score), support, risks


def _screen_time_factor(task: ScheduledTask, pattern: UserPattern) -> Factor:
    """화면 사용 패턴으로 과제 시간대와 오늘의 화면 사용량을 평가"""
    today = pattern.latest_summary
    if today is None:
        return NEUTRAL_SCORE, [], []

    impact = pattern.activity_patterns.screen_time_impact
    score = NEUTRAL_SCORE
    support: List[str] = []
    risks: List[str] = []

    if task.hour in impact.productive_hours:
        score += 0.2
        support.append("Scheduled during your productive screen time hours")
    if task.hour in impact.distracted_hours:
        score -= 0.2
        risks.append("This time is typically associated with distractions")

    if today.screen_time.total > HIGH_SCREEN_MINUTES:
        score -= 0.1
        risks.append("High screen time today - consider offline activities")
        if task.category in ("meditation", "cardio"):
            score += 0.2
            support.append("Good timing for a screen break")

    if impact.wellness_app_correlation > STRONG_CORRELATION:
        score += 0.1
        support.append("You tend to complete tasks better with app support")

    return _clamp(score), support, risks
