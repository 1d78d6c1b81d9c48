"""일정 유틸리티 모듈: 시간 슬롯 생성/표시, 일정 충돌 검사, 템플릿 인스턴스화"""
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date
from typing import Callable, Optional, Sequence

from .data_models import ScheduledTask, TimeSlot

# 대체 시간 탐색 범위 (06:00 ~ 21:30, 30분 단위)
FIRST_SUGGESTED_HOUR = 6
LAST_SUGGESTED_HOUR = 21
SUGGESTION_STEP_MINUTES = 30


def create_time_slot(hour: int, minute: int = 0) -> TimeSlot:
    """24시간제 시각을 12시간제 TimeSlot 으로 변환 (0시 -> 12 AM, 12시 -> 12 PM)"""
    period = "PM" if hour >= 12 else "AM"
    if hour > 12:
        adjusted = hour - 12
    elif hour == 0:
        adjusted = 12
    else:
        adjusted = hour
    return TimeSlot(hour=adjusted, minute=minute, period=period)


def format_time_slot(slot: TimeSlot) -> str:
    return f"{slot.hour}:{slot.minute:02d} {slot.period}"


def _span_minutes(task: ScheduledTask):
    start = task.time_slot.hour_24 * 60 + task.time_slot.minute
    return start, start + task.duration


def is_time_slot_available(schedule: Sequence[ScheduledTask], task: ScheduledTask) -> bool:
    """
    새 과제가 기존 일정과 겹치지 않는지 검사하는 함수

    구간은 [시작, 시작 + duration) 로 보며, 한 과제가 끝나는 시각에
    다음 과제가 시작하는 것은 허용합니다. 같은 id 의 과제는 무시합니다.
    """
    start, end = _span_minutes(task)
    for existing in schedule:
        if existing.id == task.id:
            continue
        other_start, other_end = _span_minutes(existing)
        if start < other_end and other_start < end:
            return False
    return True


def suggest_alternative_time_slot(schedule: Sequence[ScheduledTask], task: ScheduledTask) -> TimeSlot:
    """
    과제가 들어갈 수 있는 가장 이른 30분 단위 슬롯을 찾는 함수

    빈 슬롯이 없으면 오전 6시를 반환합니다.
    """
    for hour in range(FIRST_SUGGESTED_HOUR, LAST_SUGGESTED_HOUR + 1):
        for minute in range(0, 60, SUGGESTION_STEP_MINUTES):
            slot = create_time_slot(hour, minute)
            if is_time_slot_available(schedule, replace(task, time_slot=slot)):
                return slot
    return create_time_slot(FIRST_SUGGESTED_HOUR, 0)


def new_task_id() -> str:
    return uuid.uuid4().hex


def instantiate(
    template: ScheduledTask,
    id_factory: Optional[Callable[[], str]] = None,
    scheduled_date: Optional[date] = None,
) -> ScheduledTask:
    """
    카탈로그 템플릿으로 새 과제 인스턴스를 만드는 함수

    새 식별자를 부여하고 completed=False 로 초기화합니다.
    """
    make_id = id_factory or new_task_id
    return replace(template, id=make_id(), completed=False, scheduled_date=scheduled_date)
