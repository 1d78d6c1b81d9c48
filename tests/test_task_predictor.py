from dataclasses import replace
from datetime import date

import pytest

from vita_engine.data_models import (
    ActivityPatterns,
    DailyActivitySummary,
    ExerciseEfficiency,
    PerformancePatterns,
    ProgressionPatterns,
    ScheduledTask,
    ScreenTimeImpact,
    ScreenTimeSummary,
    TimePreference,
    UserPattern,
)
from vita_engine.scheduling import create_time_slot
from vita_engine.task_predictor import calculate_confidence, predict


def _task(category="cardio", hour=7):
    return ScheduledTask(id="t", title="Task", category=category, time_slot=create_time_slot(hour))


def _today(steps=0, hourly=None, screen_total=0.0):
    return DailyActivitySummary(
        date=date(2025, 9, 15),
        total_steps=steps,
        hourly_steps=hourly or (0,) * 24,
        screen_time=ScreenTimeSummary(total=screen_total),
    )


def test_default_pattern_gives_neutral_prediction():
    prediction = predict(_task(), UserPattern.default())

    assert prediction.likelihood == pytest.approx(0.58)
    assert prediction.confidence == pytest.approx(0.9252, abs=1e-4)
    assert prediction.supporting_factors == ()
    assert prediction.risks == ()


def test_history_factors_add_reasons():
    pattern = UserPattern(
        time_preference=TimePreference(most_productive_time=(7,), least_productive_time=(21,)),
        performance_patterns=PerformancePatterns(best_performing_categories=("cardio",)),
        progression_patterns=ProgressionPatterns(plateaued_categories=("cardio",)),
    )

    prediction = predict(_task("cardio", 7), pattern)

    assert prediction.likelihood == pytest.approx((0.8 + 0.9 + 0.5 + 0.5 + 0.5) / 5)
    assert prediction.supporting_factors == (
        "Scheduled during peak performance time",
        "Strong historical performance in this category",
    )
    assert prediction.risks == ("Progress has plateaued - consider adjusting difficulty",)


def test_unproductive_hour_and_struggling_category_are_risks():
    pattern = UserPattern(
        time_preference=TimePreference(least_productive_time=(21,)),
        performance_patterns=PerformancePatterns(struggling_categories=("mindfulness",)),
    )

    prediction = predict(_task("mindfulness", 21), pattern)

    assert "Scheduled during typically unproductive time" in prediction.risks
    assert "Category needs additional support or modifications" in prediction.risks


def test_physical_task_after_step_goal_is_penalized():
    hourly = (0,) * 21 + (500, 500, 500)
    pattern = UserPattern(latest_summary=_today(steps=9000, hourly=hourly))

    prediction = predict(_task("cardio"), pattern)

    assert "You've already reached 80% of your daily step goal" in prediction.risks
    assert "High recent physical activity" in prediction.risks
    assert "Recovery period recommended" in prediction.risks
    assert prediction.likelihood == pytest.approx((0.6 + 0.6 + 0.7 + 0.0 + 0.5) / 5)


def test_physical_task_on_quiet_day_is_supported():
    pattern = UserPattern(
        activity_patterns=ActivityPatterns(exercise_efficiency=ExerciseEfficiency(recovery_needed=0)),
        latest_summary=_today(steps=1000),
    )

    prediction = predict(_task("strength"), pattern)

    assert "Good timing for physical activity" in prediction.supporting_factors
    assert prediction.risks == ()


def test_meditation_after_activity_and_screen_heavy_day():
    hourly = (0,) * 21 + (800, 800, 800)
    pattern = UserPattern(
        activity_patterns=ActivityPatterns(
            peak_step_hours=(21,),
            screen_time_impact=ScreenTimeImpact(
                productive_hours=(21,),
                wellness_app_correlation=0.8,
            ),
        ),
        latest_summary=_today(steps=2400, hourly=hourly, screen_total=500),
    )

    prediction = predict(_task("meditation", 21), pattern)

    assert "Scheduled during your naturally active time" in prediction.supporting_factors
    assert "Good time for recovery and mindfulness" in prediction.supporting_factors
    assert "Good timing for a screen break" in prediction.supporting_factors
    assert "You tend to complete tasks better with app support" in prediction.supporting_factors
    assert "High screen time today - consider offline activities" in prediction.risks


def test_factor_scores_are_clamped():
    pattern = UserPattern(
        activity_patterns=ActivityPatterns(
            screen_time_impact=ScreenTimeImpact(productive_hours=(7,), wellness_app_correlation=0.9),
        ),
        latest_summary=_today(screen_total=600),
    )

    prediction = predict(_task("cardio", 7), pattern)

    assert 0.0 <= prediction.likelihood <= 1.0
    assert 0.5 <= prediction.confidence <= 1.0


def test_confidence_of_identical_scores_is_one():
    assert calculate_confidence([0.5] * 5) == 1.0
    assert calculate_confidence([0.0, 1.0]) == 0.5
    assert calculate_confidence([]) == 0.5


def test_prediction_is_deterministic():
    pattern = UserPattern(latest_summary=_today(steps=4000))
    task = _task("flexibility", 6)

    assert predict(task, pattern) == predict(replace(task), pattern)
