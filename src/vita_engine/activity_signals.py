"""신호 집계 모듈: 원시 걸음/화면 샘플을 하루 단위 활동 요약으로 변환하는 모듈

이 모듈은 다음 기능들을 제공합니다:
- 로컬 날짜 기준 샘플 필터링
- 시간대(0-23시)별 걸음 수 버킷팅
- 칼로리, 이동 거리, 활동 시간 추정
- 카테고리별 화면 사용 시간 집계
- 걸음 수 기준 피크 활동 시간 계산
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .data_models import DailyActivitySummary, RawScreenSample, RawStepSample, ScreenTimeSummary

# 걸음당 소모 칼로리 (기본값)
CALORIES_PER_STEP = 0.04

# 평균 보폭 (미터)
METERS_PER_STEP = 0.762

# 활동 종류별 칼로리 가중치, 나머지 활동은 1.0
ACTIVITY_MULTIPLIERS = {
    "running": 1.5,
    "stairs": 1.3,
}

# 같은 활동 묶음으로 볼 최대 샘플 간격
ACTIVE_BURST_WINDOW = timedelta(milliseconds=60000)

DEFAULT_STEP_GOAL = 10000


def summarize_day(
    step_samples: Iterable[RawStepSample],
    screen_samples: Iterable[RawScreenSample],
    day: Optional[date] = None,
    step_goal: int = DEFAULT_STEP_GOAL,
    now: Optional[datetime] = None,
) -> DailyActivitySummary:
    """
    하루치 원시 샘플을 활동 요약으로 집계하는 함수

    두 샘플 집합을 지정된 날짜(로컬 시간)로 필터링한 뒤 걸음, 칼로리,
    거리, 활동 시간, 화면 사용 시간을 계산합니다. 부작용이 없는 순수 함수이며
    해당 날짜 데이터가 없으면 모든 값이 0인 요약을 반환합니다.

    Args:
        step_samples: 걸음 샘플 목록
        screen_samples: 화면 사용 샘플 목록
        day: 집계할 날짜 (None이면 now 기준 오늘)
        step_goal: 하루 걸음 목표
        now: "오늘" 판단 기준 시각 (None이면 현재 시각)

    Returns:
        해당 날짜의 DailyActivitySummary
    """
    if day is None:
        day = (now or datetime.now()).date()

    # 같은 날 샘플만 시간 순으로 정렬하여 사용
    day_steps = sorted(
        (sample for sample in step_samples if sample.timestamp.date() == day),
        key=lambda sample: sample.timestamp,
    )
    day_screen = [sample for sample in screen_samples if sample.timestamp.date() == day]

    if not day_steps and not day_screen:
        return DailyActivitySummary.empty(day, step_goal)

    # 시간대별 걸음 수
    hourly_steps = [0] * 24
    for sample in day_steps:
        hourly_steps[sample.timestamp.hour] += sample.count

    # 카테고리별 화면 사용 시간과 웰니스 앱 사용 시간
    by_category: Dict[str, float] = defaultdict(float)
    wellness_minutes = 0.0
    for sample in day_screen:
        by_category[sample.category] += sample.duration_minutes
        if sample.is_wellness_app:
            wellness_minutes += sample.duration_minutes

    return DailyActivitySummary(
        date=day,
        total_steps=sum(sample.count for sample in day_steps),
        step_goal=step_goal,
        active_minutes=calculate_active_minutes(day_steps),
        calories_burned=calculate_calories_burned(day_steps),
        distance_covered_km=calculate_distance_km(day_steps),
        hourly_steps=tuple(hourly_steps),
        peak_activity_hours=find_peak_activity_hours(hourly_steps),
        screen_time=ScreenTimeSummary(
            total=sum(sample.duration_minutes for sample in day_screen),
            by_category=dict(by_category),
            wellness_app_minutes=wellness_minutes,
        ),
    )


def calculate_active_minutes(steps: Sequence[RawStepSample]) -> int:
    """
    연속 활동 구간을 활동 시간(분)으로 추정하는 함수

    직전 샘플과 60초 이내에 기록된 샘플 하나를 1분으로 셉니다.
    하루의 첫 샘플은 직전 샘플이 없으므로 세지 않습니다.
    """
    active_minutes = 0
    previous: Optional[datetime] = None
    for sample in steps:
        if previous is not None and sample.timestamp - previous <= ACTIVE_BURST_WINDOW:
            active_minutes += 1
        previous = sample.timestamp
    return active_minutes


def calculate_calories_burned(steps: Iterable[RawStepSample]) -> float:
    return sum(
        sample.count * CALORIES_PER_STEP * ACTIVITY_MULTIPLIERS.get(sample.activity_type, 1.0)
        for sample in steps
    )


def calculate_distance_km(steps: Iterable[RawStepSample]) -> float:
    total_meters = sum(sample.count * METERS_PER_STEP for sample in steps)
    return total_meters / 1000


def find_peak_activity_hours(hourly_steps: Sequence[int], limit: int = 3) -> Tuple[int, ...]:
    """
    걸음 수가 가장 많은 시간대 상위 limit개를 찾는 함수

    걸음이 없는 시간대는 제외하며, 동점이면 이른 시간이 앞섭니다
    (안정 정렬 사용).
    """
    ranked = sorted(
        (hour for hour, steps in enumerate(hourly_steps) if steps > 0),
        key=lambda hour: hourly_steps[hour],
        reverse=True,
    )
    return tuple(ranked[:limit])


def group_by_day(
    step_samples: Iterable[RawStepSample],
    screen_samples: Iterable[RawScreenSample],
) -> Dict[date, Tuple[List[RawStepSample], List[RawScreenSample]]]:
    """샘플들을 로컬 날짜별로 묶는 함수 (날짜 오름차순)"""
    groups: Dict[date, Tuple[List[RawStepSample], List[RawScreenSample]]] = {}
    for sample in step_samples:
        groups.setdefault(sample.timestamp.date(), ([], []))[0].append(sample)
    for sample in screen_samples:
        groups.setdefault(sample.timestamp.date(), ([], []))[1].append(sample)
    return dict(sorted(groups.items()))


def summarize_history(
    step_samples: Iterable[RawStepSample],
    screen_samples: Iterable[RawScreenSample],
    step_goal: int = DEFAULT_STEP_GOAL,
) -> List[DailyActivitySummary]:
    """데이터가 있는 날마다 요약을 하나씩 만들어 날짜 순으로 반환"""
    return [
        summarize_day(steps, screens, day=day, step_goal=step_goal)
        for day, (steps, screens) in group_by_day(step_samples, screen_samples).items()
    ]


@dataclass(frozen=True)
class DailyProgressScores:
    """진행 상황 시각화를 위한 하루 점수 (0-100 척도)"""
    date: date
    cardio: float
    strength: float
    flexibility: float
    mindfulness: float
    overall: float
    steps: int
    screen_time: Dict[str, float]


def progress_scores(
    summary: DailyActivitySummary,
    step_samples: Iterable[RawStepSample] = (),
) -> DailyProgressScores:
    """
    하루 요약에서 카테고리별 진행 점수를 계산하는 함수

    Args:
        summary: 하루 활동 요약
        step_samples: 같은 날 걸음 샘플 (계단 활동 여부 판단용)

    Returns:
        카테고리별 점수와 화면 사용 시간 분류
    """
    steps = summary.total_steps
    cardio = min(100.0, steps / 10000 * 100)
    strength = min(100.0, steps / 12000 * 100)
    used_stairs = any(
        sample.activity_type == "stairs" and sample.timestamp.date() == summary.date
        for sample in step_samples
    )
    flexibility = 75.0 if used_stairs else 60.0

    by_category = summary.screen_time.by_category
    mindfulness = by_category.get("wellness", 0.0) / 60 * 100

    return DailyProgressScores(
        date=summary.date,
        cardio=cardio,
        strength=strength,
        flexibility=flexibility,
        mindfulness=mindfulness,
        overall=(cardio + strength + flexibility + mindfulness) / 4,
        steps=steps,
        screen_time={
            "total": sum(by_category.values()),
            "productive": by_category.get("productivity", 0.0),
            "entertainment": by_category.get("entertainment", 0.0),
            "social": by_category.get("social", 0.0),
            "wellness": by_category.get("wellness", 0.0),
        },
    )
