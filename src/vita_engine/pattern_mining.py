"""
패턴 마이닝 모듈: 과제 이력과 하루 활동 요약에서 사용자 행동 패턴을 추출하는 모듈

이 모듈은 두 개의 독립적인 분석 단계를 제공합니다:
1. 과제 이력 분석: 시간대별 완료율, 카테고리별 수행도, 주간 향상/정체 추세
2. 활동 요약 분석: 피크 걸음 시간대, 화면 사용 영향, 운동 효율과 회복 시간

모든 함수는 입력만으로 결과가 결정되는 순수 함수이며,
매 호출마다 새로운 UserPattern 값을 만들어 반환합니다.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date
from math import sqrt
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .data_models import (
    TASK_CATEGORIES,
    ActivityPatterns,
    AdherencePatterns,
    DailyActivitySummary,
    ExerciseEfficiency,
    PerformancePatterns,
    ProgressionPatterns,
    ScheduledTask,
    ScreenTimeImpact,
    TimePreference,
    UserPattern,
)

logger = logging.getLogger(__name__)

# 정체 판단 기준: 최근 변화량 평균의 절댓값이 5% 미만
PLATEAU_THRESHOLD = 0.05

# 정체 판단에 사용하는 최근 데이터 포인트 수
PLATEAU_WINDOW = 4

# 평균 대비 20% 미만인 시간대를 저활동 시간대로 분류
LOW_ACTIVITY_RATIO = 0.2

# 화면 사용 영향 판단 기준
PRODUCTIVE_MIN_STEPS = 8000
PRODUCTIVE_MIN_WELLNESS_RATIO = 0.3
DISTRACTED_MAX_STEPS = 5000
DISTRACTED_MIN_SCREEN_MINUTES = 240

# 걸음당 칼로리 기준 최적 강도 구간
HIGH_INTENSITY_CALORIES_PER_STEP = 0.05
MEDIUM_INTENSITY_CALORIES_PER_STEP = 0.03

# 회복 시간 추정: 효율이 전날의 70% 미만으로 떨어지면 하락, 90% 초과로 돌아오면 회복
RECOVERY_DROP_RATIO = 0.7
RECOVERY_RETURN_RATIO = 0.9
DEFAULT_RECOVERY_HOURS = 24

Rates = Dict[str, Tuple[int, int]]


def mine(
    tasks: Iterable[ScheduledTask],
    completions: Mapping[str, bool],
    summaries: Sequence[DailyActivitySummary] = (),
) -> UserPattern:
    """
    과제 이력과 활동 요약 전체로부터 UserPattern을 새로 계산하는 함수

    Args:
        tasks: 과거에 예정되었던 과제 목록
        completions: 과제 ID -> 완료 여부
        summaries: 날짜 순으로 쌓인 하루 활동 요약 목록

    Returns:
        처음부터 다시 계산된 사용자 패턴
    """
    time_preference, performance, adherence, progression = mine_task_history(tasks, completions)
    pattern = UserPattern(
        time_preference=time_preference,
        performance_patterns=performance,
        adherence_patterns=adherence,
        progression_patterns=progression,
    )
    return with_activity_data(pattern, summaries)


def with_activity_data(
    pattern: UserPattern,
    summaries: Sequence[DailyActivitySummary],
) -> UserPattern:
    """
    활동 요약에서 파생되는 필드만 다시 계산한 새 패턴을 반환하는 함수

    과제 이력에서 나온 필드는 그대로 유지됩니다. 요약이 없으면 패턴을 바꾸지 않습니다.
    """
    if not summaries:
        return pattern

    activity, optimal_exercise_time = mine_activity_patterns(summaries)
    return replace(
        pattern,
        activity_patterns=activity,
        time_preference=replace(
            pattern.time_preference,
            optimal_exercise_time=optimal_exercise_time,
        ),
        latest_summary=summaries[-1],
    )


# ---------------------------------------------------------------------------
# 과제 이력 분석
# ---------------------------------------------------------------------------


def mine_task_history(
    tasks: Iterable[ScheduledTask],
    completions: Mapping[str, bool],
) -> Tuple[TimePreference, PerformancePatterns, AdherencePatterns, ProgressionPatterns]:
    """
    과제 이력에서 시간 선호, 카테고리 수행도, 꾸준함, 향상 추세를 계산하는 함수

    Args:
        tasks: 과거 과제 목록
        completions: 과제 ID -> 완료 여부

    Returns:
        (시간 선호, 수행 패턴, 꾸준함 패턴, 향상 패턴) 튜플
    """
    task_list = list(tasks)

    hourly = _completion_counts(task_list, completions, key=lambda task: task.hour)
    # 시간 오름차순으로 정렬한 뒤 안정 정렬로 완료율 내림차순
    hour_ranking = _rank_by_rate({hour: hourly[hour] for hour in sorted(hourly)})
    time_preference = TimePreference(
        most_productive_time=tuple(hour_ranking[:3]),
        least_productive_time=tuple(hour_ranking[-3:]),
    )

    by_category = _completion_counts(task_list, completions, key=lambda task: task.category)
    ordered = {category: by_category[category] for category in TASK_CATEGORIES if category in by_category}
    category_ranking = _rank_by_rate(ordered)
    performance = PerformancePatterns(
        best_performing_categories=tuple(category_ranking[:2]),
        struggling_categories=tuple(category_ranking[-2:]),
        category_completion_rates={category: _rate(counts) for category, counts in ordered.items()},
    )

    progression = _analyze_progression(task_list, completions)
    adherence = _analyze_adherence(task_list, completions)
    return time_preference, performance, adherence, progression


def _completion_counts(tasks, completions, key) -> Dict:
    """그룹별 (완료 수, 전체 수) 집계"""
    counts: Dict = defaultdict(lambda: [0, 0])
    for task in tasks:
        entry = counts[key(task)]
        entry[1] += 1
        if completions.get(task.id):
            entry[0] += 1
    return {group: (completed, total) for group, (completed, total) in counts.items()}


def _rate(counts: Tuple[int, int]) -> float:
    completed, total = counts
    return completed / total if total else 0.0


def _rank_by_rate(groups: Mapping) -> List:
    return sorted(groups, key=lambda group: _rate(groups[group]), reverse=True)


def week_number(day: date) -> Tuple[int, int]:
    """1월 1일 이후 경과 일수를 7로 나눈 주 번호 (연도와 함께 반환)"""
    return day.year, (day - date(day.year, 1, 1)).days // 7


def _analyze_progression(
    tasks: Sequence[ScheduledTask],
    completions: Mapping[str, bool],
) -> ProgressionPatterns:
    """
    주 단위 카테고리 완료율 변화로 향상/정체 카테고리를 찾는 내부 함수

    날짜가 없는 과제는 주 버킷을 정할 수 없으므로 제외합니다.
    변화량은 해당 카테고리 과제가 있는 연속한 두 주 사이에서만 계산합니다.
    """
    weekly: Dict[Tuple[int, int], Dict[str, List[int]]] = defaultdict(
        lambda: defaultdict(lambda: [0, 0])
    )
    for task in tasks:
        if task.scheduled_date is None:
            continue
        entry = weekly[week_number(task.scheduled_date)][task.category]
        entry[1] += 1
        if completions.get(task.id):
            entry[0] += 1

    deltas: Dict[str, List[float]] = defaultdict(list)
    weeks = sorted(weekly)
    for previous_week, current_week in zip(weeks, weeks[1:]):
        for category, (completed, total) in weekly[current_week].items():
            previous = weekly[previous_week].get(category)
            if not previous:
                continue
            current_rate = completed / total
            previous_rate = previous[0] / previous[1]
            deltas[category].append(current_rate - previous_rate)

    ordered = [category for category in TASK_CATEGORIES if deltas.get(category)]
    averages = {category: sum(deltas[category]) / len(deltas[category]) for category in ordered}
    fastest = sorted(ordered, key=lambda category: averages[category], reverse=True)[:2]

    plateaued = []
    for category in ordered:
        recent = deltas[category][-PLATEAU_WINDOW:]
        if abs(sum(recent) / len(recent)) < PLATEAU_THRESHOLD:
            plateaued.append(category)

    return ProgressionPatterns(
        fastest_improving_categories=tuple(fastest),
        plateaued_categories=tuple(plateaued),
        weekly_deltas={category: tuple(deltas[category]) for category in ordered},
    )


def _analyze_adherence(
    tasks: Sequence[ScheduledTask],
    completions: Mapping[str, bool],
) -> AdherencePatterns:
    dated = [task for task in tasks if task.scheduled_date is not None]
    by_weekday = _completion_counts(dated, completions, key=lambda task: task.scheduled_date.weekday())
    consistent_days = _rank_by_rate({day: by_weekday[day] for day in sorted(by_weekday)})[:3]

    # 완료하지 못한 횟수가 많은 과제 제목
    skipped: Dict[str, int] = defaultdict(int)
    for task in tasks:
        if not completions.get(task.id):
            skipped[task.title] += 1
    most_skipped = sorted(skipped, key=lambda title: skipped[title], reverse=True)[:3]

    # 카테고리별 실제로 완료한 시간대 (완료 횟수 내림차순)
    completed_hours: Dict[str, Dict[int, int]] = defaultdict(lambda: defaultdict(int))
    for task in tasks:
        if completions.get(task.id):
            completed_hours[task.category][task.hour] += 1
    time_preference = {
        category: tuple(sorted(sorted(hours), key=lambda hour: hours[hour], reverse=True))
        for category, hours in completed_hours.items()
    }

    return AdherencePatterns(
        most_consistent_days=tuple(consistent_days),
        most_skipped_tasks=tuple(most_skipped),
        completion_time_preference=time_preference,
    )


# ---------------------------------------------------------------------------
# 활동 요약 분석
# ---------------------------------------------------------------------------


def mine_activity_patterns(
    summaries: Sequence[DailyActivitySummary],
) -> Tuple[ActivityPatterns, Tuple[int, ...]]:
    """
    하루 활동 요약 목록에서 활동 패턴과 최적 운동 시간대를 계산하는 함수

    Args:
        summaries: 날짜 순으로 쌓인 하루 요약 목록 (비어 있으면 기본값)

    Returns:
        (활동 패턴, 최적 운동 시간대) 튜플
    """
    if not summaries:
        return ActivityPatterns(), ()

    peak_hours, low_hours = _analyze_step_patterns(summaries)
    impact = _analyze_screen_time_impact(summaries)
    efficiency = _analyze_exercise_efficiency(summaries)

    # 피크 걸음 시간대와 생산적 시간대의 교집합, 없으면 피크 시간대
    overlap = tuple(hour for hour in peak_hours if hour in impact.productive_hours)
    optimal_exercise_time = overlap or peak_hours

    logger.debug(
        f"Activity patterns mined from {len(summaries)} days: "
        f"peak={peak_hours}, recovery={efficiency.recovery_needed}h"
    )

    return (
        ActivityPatterns(
            peak_step_hours=peak_hours,
            low_activity_periods=low_hours,
            screen_time_impact=impact,
            exercise_efficiency=efficiency,
        ),
        optimal_exercise_time,
    )


def _analyze_step_patterns(
    summaries: Sequence[DailyActivitySummary],
) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
    """시간대별 평균 걸음으로 피크 시간대(상위 3개)와 저활동 시간대를 찾는 내부 함수"""
    totals = [0.0] * 24
    for summary in summaries:
        for hour, steps in enumerate(summary.hourly_steps):
            totals[hour] += steps
    averages = [total / len(summaries) for total in totals]

    ranked = sorted(
        (hour for hour in range(24) if averages[hour] > 0),
        key=lambda hour: averages[hour],
        reverse=True,
    )
    threshold = max(averages) * LOW_ACTIVITY_RATIO
    low = tuple(hour for hour in range(24) if averages[hour] < threshold)
    return tuple(ranked[:3]), low


def _analyze_screen_time_impact(summaries: Sequence[DailyActivitySummary]) -> ScreenTimeImpact:
    """
    걸음 수와 화면 사용 시간의 관계를 분석하는 내부 함수

    하루 요약에는 시간 정보가 없으므로 날짜의 시각(자정, 0시)을 해당 날의
    시간대로 기록합니다.
    """
    productive: List[int] = []
    distracted: List[int] = []

    for summary in summaries:
        total_screen = summary.screen_time.total
        wellness = summary.screen_time.wellness_app_minutes
        ratio = wellness / total_screen if total_screen > 0 else 0.0
        hour = _date_hour(summary.date)

        if summary.total_steps > PRODUCTIVE_MIN_STEPS and ratio > PRODUCTIVE_MIN_WELLNESS_RATIO:
            productive.append(hour)
        if summary.total_steps < DISTRACTED_MAX_STEPS and total_screen > DISTRACTED_MIN_SCREEN_MINUTES:
            distracted.append(hour)

    correlation = pearson_correlation(
        [summary.screen_time.wellness_app_minutes for summary in summaries],
        [summary.total_steps for summary in summaries],
    )

    return ScreenTimeImpact(
        productive_hours=tuple(dict.fromkeys(productive)),
        distracted_hours=tuple(dict.fromkeys(distracted)),
        wellness_app_correlation=correlation,
    )


def _date_hour(day: date) -> int:
    # 날짜만 있는 값이므로 항상 0시
    return 0


def _analyze_exercise_efficiency(summaries: Sequence[DailyActivitySummary]) -> ExerciseEfficiency:
    """걸음/활동시간 비율과 걸음당 칼로리로 운동 효율을 분석하는 내부 함수"""
    step_ratios = [
        summary.total_steps / summary.active_minutes if summary.active_minutes else 0.0
        for summary in summaries
    ]
    calories_per_step = [
        summary.calories_burned / summary.total_steps if summary.total_steps else 0.0
        for summary in summaries
    ]

    best_ratios = tuple(sorted(step_ratios, reverse=True)[:3])

    average_calories = sum(calories_per_step) / len(calories_per_step)
    if average_calories > HIGH_INTENSITY_CALORIES_PER_STEP:
        optimal_intensity = "high"
    elif average_calories > MEDIUM_INTENSITY_CALORIES_PER_STEP:
        optimal_intensity = "medium"
    else:
        optimal_intensity = "low"

    return ExerciseEfficiency(
        best_step_ratios=best_ratios,
        optimal_intensity=optimal_intensity,
        recovery_needed=calculate_recovery_needed(step_ratios),
    )


def calculate_recovery_needed(step_ratios: Sequence[float]) -> int:
    """
    효율 하락 후 회복까지 걸린 평균 시간을 추정하는 함수

    어떤 날의 효율이 전날의 70% 미만으로 떨어지면, 그날부터 효율이 전날의
    90%를 넘는 날까지의 일수 x 24시간을 회복 시간으로 봅니다.
    하락 패턴이 없으면 24시간을 반환합니다.

    Args:
        step_ratios: 날짜 순 하루 걸음/활동시간 비율

    Returns:
        평균 회복 시간 (시간, 반올림)
    """
    total_hours = 0
    periods = 0

    for index in range(1, len(step_ratios)):
        previous = step_ratios[index - 1]
        if step_ratios[index] < previous * RECOVERY_DROP_RATIO:
            recovery_end = _first_index(
                step_ratios[index:],
                lambda ratio: ratio > previous * RECOVERY_RETURN_RATIO,
            )
            if recovery_end is not None and recovery_end > 0:
                total_hours += recovery_end * 24
                periods += 1

    if not periods:
        return DEFAULT_RECOVERY_HOURS
    return int(round(total_hours / periods))


def _first_index(values: Sequence[float], predicate) -> Optional[int]:
    for index, value in enumerate(values):
        if predicate(value):
            return index
    return None


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    두 수열의 피어슨 상관계수를 계산하는 함수

    데이터가 2개 미만이거나 어느 한쪽의 분산이 0이면 0.0을 반환하며,
    결과는 항상 [-1, 1] 범위로 제한됩니다.
    """
    n = min(len(xs), len(ys))
    if n < 2:
        return 0.0

    xs, ys = list(xs[:n]), list(ys[:n])
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    covariance = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys)) / n
    variance_x = sum((x - mean_x) ** 2 for x in xs) / n
    variance_y = sum((y - mean_y) ** 2 for y in ys) / n

    if variance_x == 0 or variance_y == 0:
        return 0.0
    return max(-1.0, min(1.0, covariance / sqrt(variance_x * variance_y)))
