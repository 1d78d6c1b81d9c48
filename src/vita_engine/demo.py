from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from itertools import count

from .activity_signals import summarize_history
from .data_models import RecommendationContext, WeatherContext
from .demo_data import (
    BASE_DATE,
    create_sample_history,
    create_sample_personalized_tasks,
    create_sample_profile,
    create_sample_screen_time,
    create_sample_steps,
)
from .ingestion import ActivityDataService
from .llm import ExplanationGenerator
from .personalization import PersonalizationService
from .pipeline import WellnessPipeline
from .scheduling import format_time_slot
from .storage import InMemoryKeyValueStore


async def _ingest_demo_day(pipeline: WellnessPipeline) -> None:
    """마지막 날 샘플을 수집 서비스에 흘려보내 요약이 파이프라인에 전달되는지 확인"""
    last_day = max(sample.timestamp for sample in create_sample_steps()).date()
    service = ActivityDataService(
        InMemoryKeyValueStore(),
        on_summary=pipeline.add_activity_data,
        clock=lambda: datetime(last_day.year, last_day.month, last_day.day, 23, 0),
    )
    for sample in create_sample_steps():
        if sample.timestamp.date() == last_day:
            service.add_step_data(sample)
    for sample in create_sample_screen_time():
        if sample.timestamp.date() == last_day:
            service.add_screen_time_data(sample)
    await service.process_batch(force=True)
    stats = await service.get_storage_stats()
    print(f"Stored samples: {stats['steps']['used']} steps, {stats['screen_time']['used']} screen sessions\n")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    ids = count(1)
    pipeline = WellnessPipeline(id_factory=lambda: f"rec-{next(ids)}")

    tasks, completions = create_sample_history()
    pipeline.add_historical_data(tasks, completions)
    for summary in summarize_history(create_sample_steps(), create_sample_screen_time()):
        pipeline.add_activity_data(summary)

    asyncio.run(_ingest_demo_day(pipeline))

    pattern = pipeline.pattern
    print("--- Pattern ---")
    print(f"most productive hours={pattern.time_preference.most_productive_time}")
    print(f"optimal exercise time={pattern.time_preference.optimal_exercise_time}")
    print(f"best categories={pattern.performance_patterns.best_performing_categories}")
    print(f"peak step hours={pattern.activity_patterns.peak_step_hours}")
    print(f"recovery needed={pattern.activity_patterns.exercise_efficiency.recovery_needed}h\n")

    profile, preferences, progress = create_sample_profile()
    context = RecommendationContext(
        time_of_day=7,
        day_of_week=BASE_DATE.weekday(),
        weather=WeatherContext(is_outdoor_favorable=True),
        reference_date=BASE_DATE,
    )
    ranked = pipeline.recommend(profile, preferences, progress, context, count=3)

    generator = ExplanationGenerator()

    print("--- Recommendations ---")
    for item in ranked:
        task = item.task
        print(f"{task.title} at {format_time_slot(task.time_slot)}: score={item.score:.3f}")
        reasoning = {key: round(value, 3) for key, value in item.reasoning_tokens.items()}
        print(f"  reasoning={reasoning}")
        print(f"  message={generator.build_message(item)}\n")

    personalization = PersonalizationService()
    personalization.update_progress("exercise", 85)

    print("--- Personalized tasks ---")
    for task in personalization.recommended_tasks(
        create_sample_personalized_tasks(), profile.age, profile.gender, "pcod_pcos"
    ):
        print(f"{task.title}: {task.duration} min, intensity={task.intensity_level:.1f}, {task.difficulty}")
    for warning in personalization.health_warnings(profile.age, profile.gender):
        print(f"  warning: {warning}")


if __name__ == "__main__":
    main()
