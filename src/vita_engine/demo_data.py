from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Dict, List, Tuple

from .data_models import (
    CategoryProgress,
    PersonalizedTask,
    RawScreenSample,
    RawStepSample,
    ScheduledTask,
    UserPreferences,
    UserProfile,
    UserProgress,
)
from .screen_time import is_wellness_app, sample_category
from .task_catalog import TASK_TEMPLATES

BASE_DATE = date(2025, 9, 15)
DEMO_DAYS = 14


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def create_sample_steps() -> List[RawStepSample]:
    samples: List[RawStepSample] = []
    for offset in range(DEMO_DAYS):
        day = BASE_DATE + timedelta(days=offset)
        is_weekend = day.weekday() >= 5

        # Morning walk or jog, 30-second sensor batches
        morning_type = "walking" if is_weekend else "running"
        for index in range(40):
            samples.append(
                RawStepSample(
                    timestamp=_at(day, 7) + timedelta(seconds=30 * index),
                    count=60 if morning_type == "running" else 45,
                    activity_type=morning_type,
                )
            )

        # Stairs at the office on weekdays
        if not is_weekend:
            for index in range(10):
                samples.append(
                    RawStepSample(
                        timestamp=_at(day, 9) + timedelta(seconds=20 * index),
                        count=20,
                        activity_type="stairs",
                    )
                )

        # Evening walk, longer on the weekend
        evening_batches = 60 if is_weekend else 25
        for index in range(evening_batches):
            samples.append(
                RawStepSample(
                    timestamp=_at(day, 18) + timedelta(seconds=45 * index),
                    count=50,
                )
            )
    return samples


def _screen(day: date, hour: int, app_name: str, minutes: float) -> RawScreenSample:
    return RawScreenSample(
        timestamp=_at(day, hour),
        app_name=app_name,
        duration_minutes=minutes,
        category=sample_category(app_name),
        is_wellness_app=is_wellness_app(app_name),
    )


def create_sample_screen_time() -> List[RawScreenSample]:
    samples: List[RawScreenSample] = []
    for offset in range(DEMO_DAYS):
        day = BASE_DATE + timedelta(days=offset)
        if day.weekday() >= 5:
            samples.extend(
                [
                    _screen(day, 10, "Headspace", 40),
                    _screen(day, 14, "Netflix", 90),
                    _screen(day, 21, "Instagram", 30),
                ]
            )
        else:
            samples.extend(
                [
                    _screen(day, 8, "Vita Navigator", 20),
                    _screen(day, 10, "Slack", 120),
                    _screen(day, 14, "Notion", 90),
                    _screen(day, 20, "YouTube", 60),
                    _screen(day, 22, "Calm", 15),
                ]
            )
    return samples


def create_sample_history() -> Tuple[List[ScheduledTask], Dict[str, bool]]:
    """두 주 동안의 과제 이력과 완료 기록"""
    tasks: List[ScheduledTask] = []
    completions: Dict[str, bool] = {}
    plan = [
        ("morningJog", lambda day: day.weekday() < 5 and day.weekday() != 2),
        ("morningYoga", lambda day: day.weekday() >= 5),
        ("meditationSession", lambda day: day.day % 2 == 0),
        ("hiitWorkout", lambda day: day.weekday() == 3 and day >= BASE_DATE + timedelta(days=7)),
        ("mealPrep", lambda day: day.weekday() == 6),
    ]
    for offset in range(DEMO_DAYS):
        day = BASE_DATE + timedelta(days=offset)
        for key, completed_if in plan:
            task = replace(
                TASK_TEMPLATES[key],
                id=f"{key}-{day.isoformat()}",
                scheduled_date=day,
            )
            done = completed_if(day)
            tasks.append(replace(task, completed=done))
            completions[task.id] = done
    return tasks, completions


def create_sample_profile() -> Tuple[UserProfile, UserPreferences, UserProgress]:
    profile = UserProfile(
        name="Minji",
        age=28,
        gender="female",
        medical_conditions=["none"],
        fitness_goal="endurance",
        activity_level="intermediate",
    )
    preferences = UserPreferences(
        preferred_times={"workout": ["07:00"], "meditation": ["21:00"], "meals": ["12:00"]},
        preferred_duration={"cardio": 30, "mindfulness": 15, "other": 30},
        favorite_activities=["morning", "endurance"],
        disliked_activities=["intense"],
        equipment_available=["yoga_mat"],
        indoor_preference=0.4,
        preferred_intensity="medium",
        max_intensity="medium",
    )
    progress = UserProgress(
        task_completion_rate={"cardio": 0.8, "mindfulness": 0.5},
        consistency_score=0.7,
        last_completed_tasks=["cardio", "cardio", "mindfulness"],
        progress_by_category={
            "cardio": CategoryProgress(improvement=0.3, streak=4),
            "mindfulness": CategoryProgress(improvement=-0.1, streak=0),
        },
        challenge_level="intermediate",
    )
    return profile, preferences, progress


def create_sample_personalized_tasks() -> List[PersonalizedTask]:
    return [
        PersonalizedTask(
            id="squat-circuit",
            title="Squat Circuit",
            type="exercise",
            category="strength",
            duration=40,
            intensity_level=7,
            difficulty="beginner",
            description="Bodyweight squats, lunges and glute bridges",
            age_group="18-30",
            health_condition_safe=("pcod_pcos",),
        ),
        PersonalizedTask(
            id="sun-salutation",
            title="Sun Salutation Flow",
            type="yoga",
            category="flexibility",
            duration=25,
            intensity_level=5,
            difficulty="beginner",
            description="Twelve-pose flowing sequence",
            age_group="18-30",
            health_condition_safe=("pcod_pcos",),
        ),
        PersonalizedTask(
            id="hot-yoga",
            title="Power Hot Yoga",
            type="yoga",
            category="yoga",
            duration=60,
            intensity_level=8,
            difficulty="intermediate",
            description="Vigorous hot-yoga session with inversion work",
            age_group="18-30",
        ),
        PersonalizedTask(
            id="body-scan",
            title="Body Scan Meditation",
            type="meditation",
            category="meditation",
            duration=10,
            intensity_level=1,
            description="Guided body scan for relaxation",
            age_group="18-30",
            health_condition_safe=("pcod_pcos",),
        ),
        PersonalizedTask(
            id="prostate-health",
            title="Pelvic Floor Strength",
            type="exercise",
            category="strength",
            duration=20,
            intensity_level=4,
            description="Targeted pelvic floor routine",
            age_group="18-30",
            gender_specific="male",
        ),
    ]
