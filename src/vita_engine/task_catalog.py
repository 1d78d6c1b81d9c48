"""기본 과제 카탈로그: 추천 후보로 쓰이는 웰니스 과제 템플릿"""
from __future__ import annotations

from typing import Dict

from .data_models import RecommendedFor, ScheduledTask
from .scheduling import create_time_slot

ALL_GENDERS = frozenset({"male", "female", "other"})
ALL_LEVELS = frozenset({"beginner", "intermediate", "advanced"})


TASK_TEMPLATES: Dict[str, ScheduledTask] = {
    # 유산소
    "morningJog": ScheduledTask(
        id="morningJog",
        title="Morning Jog",
        category="cardio",
        duration=30,
        intensity="medium",
        description="Start your day with an energizing jog",
        time_slot=create_time_slot(7),
        calories_burn=300,
        tags=frozenset({"outdoor", "morning", "endurance"}),
        recommended_for=RecommendedFor(
            age_range=(16, 65),
            genders=ALL_GENDERS,
            fitness_levels=ALL_LEVELS,
            medical_conditions=frozenset({"none", "stress", "mild_anxiety"}),
        ),
    ),
    "hiitWorkout": ScheduledTask(
        id="hiitWorkout",
        title="HIIT Circuit Training",
        category="cardio",
        duration=20,
        intensity="high",
        description="High-intensity interval training for maximum calorie burn",
        time_slot=create_time_slot(18),
        calories_burn=250,
        tags=frozenset({"indoor", "intense", "weight_loss"}),
        recommended_for=RecommendedFor(
            age_range=(18, 45),
            genders=ALL_GENDERS,
            fitness_levels=frozenset({"intermediate", "advanced"}),
            medical_conditions=frozenset({"none"}),
        ),
    ),
    # 근력
    "bodyweightStrength": ScheduledTask(
        id="bodyweightStrength",
        title="Bodyweight Strength Training",
        category="strength",
        duration=45,
        intensity="medium",
        description="Full body strength workout using your own body weight",
        time_slot=create_time_slot(17),
        calories_burn=200,
        tags=frozenset({"indoor", "no_equipment", "strength"}),
        recommended_for=RecommendedFor(
            age_range=(16, 70),
            genders=ALL_GENDERS,
            fitness_levels=frozenset({"beginner", "intermediate"}),
            medical_conditions=frozenset({"none", "mild_joint_pain"}),
        ),
    ),
    # 유연성
    "morningYoga": ScheduledTask(
        id="morningYoga",
        title="Morning Yoga Flow",
        category="flexibility",
        duration=20,
        intensity="low",
        description="Gentle yoga routine to improve flexibility and start your day",
        time_slot=create_time_slot(6, 30),
        calories_burn=100,
        tags=frozenset({"indoor", "morning", "relaxation"}),
        recommended_for=RecommendedFor(
            age_range=(16, 80),
            genders=ALL_GENDERS,
            fitness_levels=ALL_LEVELS,
            medical_conditions=frozenset({"stress", "anxiety", "mild_back_pain"}),
        ),
    ),
    # 마음챙김
    "meditationSession": ScheduledTask(
        id="meditationSession",
        title="Guided Meditation",
        category="mindfulness",
        duration=15,
        intensity="low",
        description="Mindful meditation for stress relief and mental clarity",
        time_slot=create_time_slot(21),
        tags=frozenset({"indoor", "relaxation", "mental_health"}),
        recommended_for=RecommendedFor(
            age_range=(16, 100),
            genders=ALL_GENDERS,
            fitness_levels=ALL_LEVELS,
            medical_conditions=frozenset({"stress", "anxiety", "depression"}),
        ),
    ),
    # 영양
    "mealPrep": ScheduledTask(
        id="mealPrep",
        title="Healthy Meal Preparation",
        category="nutrition",
        duration=60,
        intensity="low",
        description="Prepare healthy meals for the day",
        time_slot=create_time_slot(12),
        tags=frozenset({"meal_prep", "nutrition", "health"}),
        recommended_for=RecommendedFor(
            age_range=(16, 100),
            genders=ALL_GENDERS,
            fitness_levels=ALL_LEVELS,
            medical_conditions=frozenset({"diabetes", "hypertension", "none"}),
        ),
    ),
}


def default_catalog():
    return list(TASK_TEMPLATES.values())
