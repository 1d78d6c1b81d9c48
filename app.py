import streamlit as st
import sys
import os
import logging
from datetime import date
from itertools import count

# Load environment variables from .env file
from pathlib import Path
env_path = Path(__file__).parent / '.env'
if env_path.exists():
    with open(env_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ[key.strip()] = value.strip()

# Add src directory to Python path
src_path = os.path.join(os.getcwd(), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from vita_engine.activity_signals import progress_scores, summarize_history
from vita_engine.config import load_config
from vita_engine.data_models import RecommendationContext, WeatherContext
from vita_engine.demo_data import (
    BASE_DATE,
    create_sample_history,
    create_sample_personalized_tasks,
    create_sample_profile,
    create_sample_screen_time,
    create_sample_steps,
)
from vita_engine.llm import ExplanationGenerator, OpenAICoachNarrator
from vita_engine.personalization import PersonalizationService
from vita_engine.pipeline import WellnessPipeline
from vita_engine.scheduling import format_time_slot

logging.basicConfig(level=logging.INFO)

st.set_page_config(page_title="Vita Navigator", page_icon="🌿", layout="wide")

# Initialize session state
if 'pipeline' not in st.session_state:
    ids = count(1)
    pipeline = WellnessPipeline(config=load_config(), id_factory=lambda: f"rec-{next(ids)}")

    tasks, completions = create_sample_history()
    pipeline.add_historical_data(tasks, completions)

    summaries = summarize_history(create_sample_steps(), create_sample_screen_time())
    for summary in summaries:
        pipeline.add_activity_data(summary)

    # Template-based explanation (fast and reliable)
    explanation_gen = ExplanationGenerator()

    # Optional OpenAI coaching narrator
    try:
        narrator = OpenAICoachNarrator(model="gpt-3.5-turbo", temperature=0.3, max_tokens=120)
        st.session_state.llm_available = True
    except Exception as e:
        st.warning(f"⚠️ OpenAI API initialization failed: {str(e)}. Set OPENAI_API_KEY environment variable.")
        narrator = None
        st.session_state.llm_available = False

    st.session_state.pipeline = pipeline
    st.session_state.summaries = summaries
    st.session_state.explanation_gen = explanation_gen
    st.session_state.narrator = narrator

pipeline = st.session_state.pipeline
pattern = pipeline.pattern

# Header
st.title("🌿 Vita Navigator")
st.markdown("**On-device wellness recommendations from your activity and screen-time patterns**")

# Show API status
if st.session_state.get('llm_available', False):
    st.success("🤖 **Coaching messages**: OpenAI API active")
else:
    st.info("💬 **Coaching messages**: Template-based (Set OPENAI_API_KEY to enable the LLM coach)")

# Sidebar - User Context Input
st.sidebar.header("🎯 Context")

profile, preferences, progress = create_sample_profile()

reference_date = st.sidebar.date_input("Date", BASE_DATE)
time_of_day = st.sidebar.slider("Hour", 0, 23, 7)
outdoor_ok = st.sidebar.checkbox("Good weather for outdoor activities", value=True)
limit = st.sidebar.slider("Number of Recommendations", 1, 6, 3)

st.sidebar.subheader("👤 Profile")
profile.age = st.sidebar.number_input("Age", min_value=16, max_value=100, value=profile.age)
profile.gender = st.sidebar.selectbox("Gender", ["female", "male", "other"], index=0)
profile.activity_level = st.sidebar.selectbox(
    "Fitness level", ["beginner", "intermediate", "advanced"], index=1
)
preferences.max_intensity = st.sidebar.selectbox("Maximum intensity", ["low", "medium", "high"], index=1)

context = RecommendationContext(
    time_of_day=time_of_day,
    day_of_week=reference_date.weekday(),
    weather=WeatherContext(is_outdoor_favorable=outdoor_ok),
    reference_date=reference_date if isinstance(reference_date, date) else None,
)

col1, col2 = st.columns([1, 1])

with col1:
    st.header("✅ Recommended Tasks")

    recommendations = pipeline.recommend(profile, preferences, progress, context, count=limit)

    for i, item in enumerate(recommendations, 1):
        task = item.task
        with st.container():
            st.markdown(f"### {i}. {task.title}")
            st.caption(
                f"{task.category} · {task.duration} min · {task.intensity} intensity · "
                f"{format_time_slot(task.time_slot)}"
            )

            col_score1, col_score2 = st.columns([1, 2])
            with col_score1:
                st.metric("Final Score", f"{item.score:.3f}")
            with col_score2:
                st.metric("Success Likelihood", f"{item.prediction.likelihood:.0%}")
                st.caption(f"Confidence: {item.prediction.confidence:.2f}")

            if st.session_state.narrator is not None:
                message = st.session_state.narrator.narrate(item)
            else:
                message = st.session_state.explanation_gen.build_message(item)
            st.info(f"💬 {message}")

            with st.expander("📈 Score Breakdown"):
                for factor, score in item.reasoning_tokens.items():
                    st.progress(min(1.0, max(0.0, score)), text=f"{factor}: {score:.3f}")
                for reason in item.prediction.supporting_factors:
                    st.write(f"👍 {reason}")
                for risk in item.prediction.risks:
                    st.write(f"⚠️ {risk}")

            st.divider()

with col2:
    st.header("🧭 Your Patterns")

    st.write(f"**Most productive hours:** {', '.join(map(str, pattern.time_preference.most_productive_time)) or '-'}")
    st.write(f"**Optimal exercise time:** {', '.join(map(str, pattern.time_preference.optimal_exercise_time)) or '-'}")
    st.write(f"**Best categories:** {', '.join(pattern.performance_patterns.best_performing_categories) or '-'}")
    st.write(f"**Struggling categories:** {', '.join(pattern.performance_patterns.struggling_categories) or '-'}")
    st.write(f"**Plateaued categories:** {', '.join(pattern.progression_patterns.plateaued_categories) or '-'}")

    efficiency = pattern.activity_patterns.exercise_efficiency
    st.write(f"**Optimal intensity:** {efficiency.optimal_intensity}")
    st.write(f"**Recovery needed:** {efficiency.recovery_needed} h")
    st.write(
        f"**Wellness app / steps correlation:** "
        f"{pattern.activity_patterns.screen_time_impact.wellness_app_correlation:.2f}"
    )

    if pattern.latest_summary is not None:
        st.subheader("⏱️ Hourly steps (latest day)")
        st.bar_chart({"steps": list(pattern.latest_summary.hourly_steps)})

    st.subheader("🧘 Personalized sessions")
    personalization = PersonalizationService()
    for task in personalization.recommended_tasks(
        create_sample_personalized_tasks(), profile.age, profile.gender
    ):
        st.write(f"- {task.title}: {task.duration} min, intensity {task.intensity_level:.1f}/10")
    for warning in personalization.health_warnings(profile.age, profile.gender):
        st.caption(f"⚠️ {warning}")

# Footer - Activity Statistics
st.header("📊 Activity Statistics")

summaries = st.session_state.summaries
col_stat1, col_stat2, col_stat3, col_stat4 = st.columns(4)

with col_stat1:
    st.metric("Days Tracked", len(summaries))

with col_stat2:
    average_steps = sum(s.total_steps for s in summaries) / len(summaries) if summaries else 0
    st.metric("Average Steps", f"{average_steps:,.0f}")

with col_stat3:
    st.metric("Tasks Logged", len(pipeline.history))

with col_stat4:
    completed = sum(1 for done in pipeline.completions.values() if done)
    st.metric("Tasks Completed", completed)

with st.expander("📅 Daily progress scores", expanded=False):
    for summary in reversed(summaries):
        scores = progress_scores(summary)
        st.text(
            f"{summary.date.isoformat()} | steps {summary.total_steps:>6} | "
            f"cardio {scores.cardio:5.1f} | mindfulness {scores.mindfulness:5.1f} | "
            f"screen {summary.screen_time.total:5.0f} min"
        )
