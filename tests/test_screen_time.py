from datetime import date, datetime

import pytest

from vita_engine.screen_time import (
    AppUsageTracker,
    categorize_app,
    focus_score,
    is_wellness_app,
    sample_category,
)

DAY = date(2025, 9, 15)


def test_app_categories():
    assert categorize_app("Slack") == "productivity"
    assert categorize_app("Coursera") == "educational"
    assert categorize_app("Some Unknown App") == "other"
    assert sample_category("Coursera") == "productivity"
    assert sample_category("Netflix") == "entertainment"
    assert is_wellness_app("Headspace")
    assert not is_wellness_app("Instagram")


def test_focus_score_weights():
    assert focus_score("Slack", 30, datetime(2025, 9, 15, 10), 0) == pytest.approx(1.0)
    assert focus_score("Netflix", 15, datetime(2025, 9, 15, 22), 300) == pytest.approx(0.34)


def test_short_sessions_are_ignored():
    tracker = AppUsageTracker()

    assert tracker.record_session("Slack", 0.2, datetime(2025, 9, 15, 10)) is None
    assert tracker.app_usage == {}


def test_record_session_keeps_running_stats():
    tracker = AppUsageTracker()
    tracker.record_session("Slack", 30, datetime(2025, 9, 15, 10))
    stats = tracker.record_session("Slack", 10, datetime(2025, 9, 15, 11))

    assert stats.sessions == 2
    assert stats.total_time == 40
    assert stats.avg_session_length == 20
    assert stats.last_used == datetime(2025, 9, 15, 11)
    assert 0 < stats.focus_score <= 1


def test_daily_report_totals_and_tips():
    tracker = AppUsageTracker()
    tracker.record_session("Slack", 60, datetime(2025, 9, 15, 10))
    tracker.record_session("Instagram", 60, datetime(2025, 9, 15, 20))
    tracker.record_session("Netflix", 90, datetime(2025, 9, 14, 20))

    report = tracker.daily_report(DAY)

    assert report.total_screen_time == 120
    assert report.productive_time == 60
    assert report.social_time == 60
    assert report.entertainment_time == 0
    assert report.focus_score == pytest.approx((1.0 + 0.69) / 2)
    assert [app.app_name for app in report.most_used_apps] == ["Slack", "Instagram"]
    assert "Set specific times for checking social media" in report.productivity_tips
    assert "Schedule short wellness breaks throughout the day" in report.wellness_recommendations


def test_empty_day_report_caps_tips_at_three():
    report = AppUsageTracker().daily_report(DAY)

    assert report.total_screen_time == 0
    assert report.focus_score == 0
    assert len(report.productivity_tips) == 3
    assert len(report.wellness_recommendations) == 3
