import itertools
from dataclasses import replace
from datetime import date, datetime

import pytest

from vita_engine.data_models import (
    ActivityPatterns,
    CategoryProgress,
    ExerciseEfficiency,
    RecommendationContext,
    RecommendedFor,
    ScheduledTask,
    UserPattern,
    UserPreferences,
    UserProfile,
    UserProgress,
    WeatherContext,
)
from vita_engine.recommendation import (
    RecommendationEngine,
    TaskFeedback,
    apply_feedback,
    generate_progressive_overload,
)
from vita_engine.scheduling import create_time_slot
from vita_engine.task_catalog import TASK_TEMPLATES, default_catalog

DAY = date(2025, 9, 15)


def _ids():
    counter = itertools.count(1)
    return lambda: f"rec-{next(counter)}"


def _profile(**overrides):
    values = dict(name="Minji", age=28, gender="female", activity_level="intermediate")
    values.update(overrides)
    return UserProfile(**values)


def _recommend(engine=None, profile=None, preferences=None, progress=None, context=None, catalog=None, count=5):
    engine = engine or RecommendationEngine(id_factory=_ids())
    return engine.recommend(
        profile or _profile(),
        preferences or UserPreferences(),
        progress or UserProgress(),
        context or RecommendationContext(time_of_day=7),
        catalog if catalog is not None else default_catalog(),
        count=count,
    )


def test_morning_jog_ranks_first_in_the_morning():
    ranked = _recommend()

    assert [item.task.title for item in ranked[:2]] == ["Morning Jog", "Morning Yoga Flow"]
    assert ranked[0].score == pytest.approx(0.8766, abs=1e-4)
    assert ranked[1].score == pytest.approx(0.8641, abs=1e-4)
    assert ranked[0].reasoning_tokens["time"] == 1.0
    assert set(ranked[0].reasoning_tokens) == {
        "profile", "preference", "time", "progress", "weather", "variety", "ml",
    }


def test_results_are_sorted_and_limited():
    ranked = _recommend(count=3)

    assert len(ranked) == 3
    scores = [item.score for item in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(0.0 <= item.score <= 1.2 for item in ranked)


def test_candidates_are_fresh_instances():
    ranked = _recommend(context=RecommendationContext(time_of_day=7, reference_date=DAY))

    assert {item.task.id for item in ranked} <= {f"rec-{n}" for n in range(1, 7)}
    assert all(not item.task.completed for item in ranked)
    assert all(item.task.scheduled_date == DAY for item in ranked)
    assert TASK_TEMPLATES["morningJog"].id == "morningJog"


def test_same_inputs_give_same_ranking():
    first = _recommend()
    second = _recommend()

    assert [(item.task.id, item.score) for item in first] == [(item.task.id, item.score) for item in second]


def test_empty_catalog_gives_no_recommendations():
    assert _recommend(catalog=[]) == []


def test_gender_mismatch_lowers_profile_match():
    female_only = replace(
        TASK_TEMPLATES["morningYoga"],
        recommended_for=RecommendedFor(genders=frozenset({"female"})),
    )

    for_female = _recommend(catalog=[female_only])[0]
    for_male = _recommend(profile=_profile(gender="male"), catalog=[female_only])[0]

    assert for_male.reasoning_tokens["profile"] < for_female.reasoning_tokens["profile"]
    assert for_male.score < for_female.score


def test_task_without_recommended_for_gets_neutral_profile_score():
    plain = ScheduledTask(id="walk", title="Walk", category="cardio", time_slot=create_time_slot(7))

    assert _recommend(catalog=[plain])[0].reasoning_tokens["profile"] == 0.5


def test_listed_medical_condition_fails_profile_check():
    jog = TASK_TEMPLATES["morningJog"]

    healthy = _recommend(profile=_profile(medical_conditions=["asthma"]), catalog=[jog])[0]
    stressed = _recommend(profile=_profile(medical_conditions=["stress"]), catalog=[jog])[0]

    assert healthy.reasoning_tokens["profile"] > stressed.reasoning_tokens["profile"]


def test_recent_high_intensity_session_blocks_recovery_check():
    hiit = replace(TASK_TEMPLATES["hiitWorkout"], id="hiit-yesterday", scheduled_date=date(2025, 9, 14))
    context = RecommendationContext(time_of_day=7, reference_date=DAY)
    jog = TASK_TEMPLATES["morningJog"]
    slow_recovery = UserPattern(
        activity_patterns=ActivityPatterns(exercise_efficiency=ExerciseEfficiency(recovery_needed=24)),
    )

    recovered = _recommend(
        engine=RecommendationEngine(historical_tasks=[hiit], id_factory=_ids()),
        context=context,
        catalog=[jog],
    )[0]
    not_recovered = _recommend(
        engine=RecommendationEngine(pattern=slow_recovery, historical_tasks=[hiit], id_factory=_ids()),
        context=context,
        catalog=[jog],
    )[0]

    assert recovered.reasoning_tokens["profile"] == pytest.approx(5 / 7)
    assert not_recovered.reasoning_tokens["profile"] == pytest.approx(4 / 7)


def test_preferences_shape_preference_score():
    preferences = UserPreferences(
        favorite_activities=["morning"],
        disliked_activities=["intense"],
        max_intensity="medium",
    )

    ranked = {item.task.title: item for item in _recommend(preferences=preferences, count=6)}

    assert ranked["Morning Jog"].reasoning_tokens["preference"] == 1.0
    assert ranked["HIIT Circuit Training"].reasoning_tokens["preference"] == pytest.approx(0.2)


def test_weather_and_variety_factors():
    context = RecommendationContext(
        time_of_day=7,
        weather=WeatherContext(is_outdoor_favorable=False, temperature=3, condition="rain"),
    )
    progress = UserProgress(last_completed_tasks=["cardio", "cardio", "cardio"])

    ranked = {item.task.title: item for item in _recommend(context=context, progress=progress, count=6)}

    assert ranked["Morning Jog"].reasoning_tokens["weather"] == 0.0
    assert ranked["Morning Yoga Flow"].reasoning_tokens["weather"] == 0.5
    assert ranked["Morning Jog"].reasoning_tokens["variety"] == pytest.approx(0.4)
    assert ranked["Morning Yoga Flow"].reasoning_tokens["variety"] == 1.0


def test_progress_alignment_uses_category_progress():
    progress = UserProgress(
        progress_by_category={"cardio": CategoryProgress(improvement=0.5, streak=10)},
        challenge_level="intermediate",
    )

    ranked = {item.task.title: item for item in _recommend(progress=progress, count=6)}

    assert ranked["Morning Jog"].reasoning_tokens["progress"] == 1.0
    assert ranked["Guided Meditation"].reasoning_tokens["progress"] == 0.5


def test_too_hard_feedback_lowers_intensity_and_resets_streak():
    task = replace(TASK_TEMPLATES["hiitWorkout"], id="hiit-1")
    preferences = UserPreferences(preferred_intensity="medium")
    progress = UserProgress(progress_by_category={"cardio": CategoryProgress(improvement=0.3, streak=4)})

    outcome = apply_feedback(
        task,
        TaskFeedback(completed=False, difficulty="too_hard", enjoyment=1),
        preferences,
        progress,
        now=datetime(2025, 9, 15, 19),
    )

    assert outcome.preferences.preferred_intensity == "low"
    assert outcome.preferences.disliked_activities == ["indoor", "intense", "weight_loss"]
    cardio = outcome.progress.progress_by_category["cardio"]
    assert cardio.improvement == -0.1
    assert cardio.streak == 0
    assert cardio.last_activity == datetime(2025, 9, 15, 19)
    assert outcome.completions == {"hiit-1": False}
    assert outcome.history[-1].completed is False

    # 입력은 그대로
    assert preferences.preferred_intensity == "medium"
    assert preferences.disliked_activities == []
    assert progress.progress_by_category["cardio"].streak == 4


def test_too_easy_completed_feedback_raises_intensity():
    task = replace(TASK_TEMPLATES["morningYoga"], id="yoga-1")
    preferences = UserPreferences(preferred_intensity="low", favorite_activities=["morning"])

    outcome = apply_feedback(
        task,
        TaskFeedback(completed=True, difficulty="too_easy", enjoyment=5),
        preferences,
        UserProgress(),
        history=[],
        completions={"old": True},
    )

    assert outcome.preferences.preferred_intensity == "high"
    assert outcome.preferences.favorite_activities == ["morning", "indoor", "relaxation"]
    flexibility = outcome.progress.progress_by_category["flexibility"]
    assert flexibility.improvement == 0.1
    assert flexibility.streak == 1
    assert outcome.progress.last_completed_tasks == ["flexibility"]
    assert outcome.completions == {"old": True, "yoga-1": True}


def test_too_easy_without_completion_keeps_intensity():
    outcome = apply_feedback(
        TASK_TEMPLATES["morningJog"],
        TaskFeedback(completed=False, difficulty="too_easy"),
        UserPreferences(preferred_intensity="high"),
        UserProgress(),
    )

    assert outcome.preferences.preferred_intensity == "high"
    assert outcome.progress.last_completed_tasks == []


def test_progressive_overload_for_cardio():
    weeks = generate_progressive_overload(TASK_TEMPLATES["morningJog"], 4, id_factory=_ids())

    assert [task.duration for task in weeks] == [33, 36, 40, 44]
    assert [task.intensity for task in weeks] == ["medium", "medium", "medium", "high"]
    assert [task.id for task in weeks] == ["rec-1", "rec-2", "rec-3", "rec-4"]
    assert weeks[0].description == "Week 1: Start your day with an energizing jog"


def test_progressive_overload_for_other_categories():
    weeks = generate_progressive_overload(TASK_TEMPLATES["meditationSession"], 2, id_factory=_ids())

    assert [task.duration for task in weeks] == [16, 17]
    assert all(task.intensity == "low" for task in weeks)
    assert generate_progressive_overload(TASK_TEMPLATES["meditationSession"], 0) == []
