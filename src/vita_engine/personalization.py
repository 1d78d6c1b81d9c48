"""
개인화 조정 모듈: 나이대, 성별, 건강 상태, 진행도에 맞게 과제를 조정하는 모듈

조정 순서:
1. 성별 전용 과제 제외
2. 나이대 기본 시간 적용
3. 성별별 강도 배수와 여성 사용자 안내 문구
4. PCOD/PCOS 조건별 조정
5. 진행도에 따른 난이도 상향
6. 나이대 최대 강도 제한
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from .data_models import PersonalizedTask

logger = logging.getLogger(__name__)

# 나이대별 최대 강도(0-10)와 기본 시간(분)
AGE_GROUP_PARAMETERS = {
    "18-30": {"max_intensity": 10, "default_duration": 45},
    "31-50": {"max_intensity": 8, "default_duration": 35},
    "51+": {"max_intensity": 6, "default_duration": 25},
}

# 성별별 카테고리 강도 배수
GENDER_MODIFICATIONS = {
    "female": {"strength": 0.9, "cardio": 1.1, "flexibility": 1.2},
    "male": {"strength": 1.2, "cardio": 1.0, "flexibility": 0.9},
}

# 임신 중 안전하지 않은 과제를 나타내는 설명 키워드
PREGNANCY_UNSAFE_TERMS = ("high-impact", "inversion", "hot-yoga")

MENSTRUAL_NOTE = "\nNote: Consider reducing intensity during menstruation."

PCOD_CONDITION = "pcod_pcos"

# 진행도(%) 기준 난이도 상향
INTERMEDIATE_PROGRESS = 80
ADVANCED_PROGRESS = 90


def age_group(age: int) -> str:
    if age <= 30:
        return "18-30"
    if age <= 50:
        return "31-50"
    return "51+"


def is_pregnancy_safe(task: PersonalizedTask) -> bool:
    description = task.description.lower()
    return not any(term in description for term in PREGNANCY_UNSAFE_TERMS)


class PersonalizationService:
    """
    개인화 조정기 클래스

    활동 종류별 진행도(0-100)를 보관하며, 나머지 사용자 정보는
    adjust 호출마다 인자로 받습니다.
    """

    def __init__(self, adaptive_difficulty: bool = True) -> None:
        self.adaptive_difficulty = adaptive_difficulty
        # 활동 종류(exercise | yoga | meditation) -> 진행도
        self.progress: Dict[str, float] = {}

    def update_progress(self, activity_type: str, value: float) -> None:
        self.progress[activity_type] = value

    def adjust(
        self,
        task: PersonalizedTask,
        age: int,
        gender: str,
        active_condition: Optional[str] = None,
    ) -> Optional[PersonalizedTask]:
        """
        과제 하나를 사용자에 맞게 조정하는 함수

        Args:
            task: 조정할 과제
            age: 사용자 나이
            gender: 사용자 성별 (male | female | other)
            active_condition: 사용자의 활성 건강 상태 (None이면 과제 표시만으로 판단)

        Returns:
            조정된 새 과제, 다른 성별 전용 과제면 None
        """
        if task.gender_specific != "both" and task.gender_specific != gender:
            return None

        group = age_group(age)
        parameters = AGE_GROUP_PARAMETERS[group]
        adjusted = replace(
            task,
            age_group=group,
            duration=parameters["default_duration"],
            adapted_for=dict(task.adapted_for, age_group=group),
        )

        adjusted = self._adjust_for_gender(adjusted, gender)

        if (
            gender == "female"
            and PCOD_CONDITION in adjusted.health_condition_safe
            and active_condition in (None, PCOD_CONDITION)
        ):
            adjusted = self._adjust_for_pcod(adjusted)

        adjusted = self._adjust_for_progress(adjusted)

        return replace(
            adjusted,
            intensity_level=min(adjusted.intensity_level, parameters["max_intensity"]),
        )

    @staticmethod
    def _adjust_for_gender(task: PersonalizedTask, gender: str) -> PersonalizedTask:
        modifications = GENDER_MODIFICATIONS.get(gender)
        if modifications is None:
            return task

        multiplier = modifications.get(task.category, 1.0)
        adjusted = replace(
            task,
            intensity_level=task.intensity_level * multiplier,
            adapted_for=dict(task.adapted_for, gender=gender),
        )

        if gender == "female":
            adjusted = replace(adjusted, trimester_safe=(1, 2, 3) if is_pregnancy_safe(task) else ())
            if adjusted.intensity_level > 7:
                adjusted = replace(adjusted, description=adjusted.description + MENSTRUAL_NOTE)

        return adjusted

    @staticmethod
    def _adjust_for_pcod(task: PersonalizedTask) -> PersonalizedTask:
        adapted_for = dict(task.adapted_for, condition=PCOD_CONDITION)

        if task.type == "exercise":
            return replace(
                task,
                intensity_level=min(task.intensity_level * 0.8, 7),
                duration=min(task.duration, 30),
                description=task.description + "\n• Modified for PCOD/PCOS\n• Focus on low-impact movements",
                adapted_for=adapted_for,
            )
        if task.type == "yoga":
            return replace(
                task,
                title=f"{task.title} (PCOD-friendly)",
                description=task.description + "\n• Hormone-balancing poses\n• Stress-reducing sequences",
                adapted_for=adapted_for,
            )
        if task.type == "meditation":
            return replace(
                task,
                duration=max(task.duration, 15),
                description=task.description + "\n• Stress management focus\n• Hormonal balance visualization",
                adapted_for=adapted_for,
            )
        return task

    def _adjust_for_progress(self, task: PersonalizedTask) -> PersonalizedTask:
        if not self.adaptive_difficulty:
            return task

        progress = self.progress.get(task.type, 0)
        if progress > INTERMEDIATE_PROGRESS and task.difficulty == "beginner":
            logger.debug(f"Promoting {task.id} to intermediate (progress {progress})")
            return replace(
                task,
                difficulty="intermediate",
                intensity_level=min(10, task.intensity_level * 1.2),
            )
        if progress > ADVANCED_PROGRESS and task.difficulty == "intermediate":
            logger.debug(f"Promoting {task.id} to advanced (progress {progress})")
            return replace(
                task,
                difficulty="advanced",
                intensity_level=min(10, task.intensity_level * 1.3),
            )
        return task

    def recommended_tasks(
        self,
        tasks: Iterable[PersonalizedTask],
        age: int,
        gender: str,
        active_condition: Optional[str] = None,
    ) -> List[PersonalizedTask]:
        """사용자 나이대와 성별에 맞는 과제만 골라 조정한 목록"""
        group = age_group(age)
        recommended = []
        for task in tasks:
            if task.age_group != group:
                continue
            adjusted = self.adjust(task, age, gender, active_condition)
            if adjusted is not None:
                recommended.append(adjusted)
        return recommended

    @staticmethod
    def health_warnings(age: int, gender: str) -> List[str]:
        warnings = []
        if age_group(age) == "51+":
            warnings.append("Consider consulting your doctor before starting new high-intensity exercises.")
        if gender == "female":
            warnings.append("Adjust exercise intensity based on your menstrual cycle.")
        return warnings
