"""화면 사용 분석 모듈: 앱 사용 세션을 분류하고 하루 화면 사용 리포트를 만드는 모듈

이 모듈은 다음 기능들을 제공합니다:
- 앱 이름에서 사용 카테고리로의 매핑
- 세션 단위 집중도 점수 계산
- 앱별 누적 사용 통계 관리
- 하루 리포트와 생산성/웰니스 팁 생성
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

# 앱 카테고리별 대표 앱 목록
APP_CATEGORIES = {
    "productivity": (
        "Microsoft Word", "Microsoft Excel", "Microsoft PowerPoint", "Google Docs",
        "Notion", "Slack", "Visual Studio Code", "Trello", "Asana", "Monday.com",
    ),
    "social": (
        "WhatsApp", "Facebook", "Instagram", "Twitter", "LinkedIn",
        "Telegram", "Discord", "TikTok", "Snapchat",
    ),
    "entertainment": (
        "Netflix", "YouTube", "Spotify", "Amazon Prime", "Disney+",
        "Twitch", "HBO Max", "Games",
    ),
    "wellness": (
        "Vita Navigator", "MyFitnessPal", "Strava", "Headspace", "Calm",
        "Nike Training Club", "Fitbod", "Sleep Cycle",
    ),
    "educational": (
        "Coursera", "Udemy", "edX", "Duolingo", "Khan Academy", "Brilliant", "Codecademy",
    ),
}

# 리포트 카테고리에서 원시 샘플 카테고리로의 매핑 (교육 앱은 생산성으로 취급)
SAMPLE_CATEGORY = {
    "productivity": "productivity",
    "educational": "productivity",
    "social": "social",
    "entertainment": "entertainment",
    "wellness": "wellness",
}

# 카테고리별 집중도 가중치
CATEGORY_FOCUS = {
    "productivity": 1.0,
    "educational": 1.0,
    "wellness": 0.8,
    "social": 0.3,
    "entertainment": 0.3,
}

# 30초 미만 세션은 기록하지 않음
MIN_SESSION_MINUTES = 0.5


def categorize_app(app_name: str) -> str:
    for category, apps in APP_CATEGORIES.items():
        if app_name in apps:
            return category
    return "other"


def sample_category(app_name: str) -> str:
    return SAMPLE_CATEGORY.get(categorize_app(app_name), "other")


def is_wellness_app(app_name: str) -> bool:
    return categorize_app(app_name) == "wellness"


def focus_score(app_name: str, minutes: float, at: datetime, idle_seconds: float = 0.0) -> float:
    """
    세션 하나의 집중도 점수를 계산하는 함수

    세션 길이(30%), 시간대(20%), 앱 카테고리(30%), 사용자 입력 활동(20%)의
    가중 평균으로 0.0-1.0 점수를 만듭니다.

    Args:
        app_name: 앱 이름
        minutes: 세션 길이 (분)
        at: 세션이 끝난 시각 (시간대 판단용)
        idle_seconds: 마지막 입력 이후 경과 시간 (초)

    Returns:
        집중도 점수 (0.0-1.0)
    """
    duration_factor = min(minutes / 30, 1.0)
    time_factor = 1.0 if 9 <= at.hour <= 17 else 0.5
    category_factor = CATEGORY_FOCUS.get(categorize_app(app_name), 0.5)
    # 입력이 없으면 5분에 걸쳐 0으로 감소
    activity_factor = max(0.0, 1 - idle_seconds / 300)

    return (
        duration_factor * 0.3
        + time_factor * 0.2
        + category_factor * 0.3
        + activity_factor * 0.2
    )


@dataclass
class AppUsageStats:
    app_name: str
    category: str
    total_time: float = 0.0
    sessions: int = 0
    avg_session_length: float = 0.0
    last_used: Optional[datetime] = None
    focus_score: float = 0.0


@dataclass(frozen=True)
class DailyScreenTimeReport:
    date: date
    total_screen_time: float
    productive_time: float
    social_time: float
    entertainment_time: float
    wellness_time: float
    educational_time: float
    focus_score: float
    most_used_apps: Tuple[AppUsageStats, ...] = ()
    productivity_tips: Tuple[str, ...] = ()
    wellness_recommendations: Tuple[str, ...] = ()


class AppUsageTracker:
    """
    앱 사용 추적기 클래스: 세션 단위 앱 사용 통계를 누적 관리

    세션을 기록할 때마다 앱별 누적 시간, 평균 세션 길이,
    이동 평균 집중도 점수를 갱신합니다.
    """

    def __init__(self) -> None:
        # 앱 이름 -> 누적 사용 통계
        self.app_usage: Dict[str, AppUsageStats] = {}

    def record_session(
        self,
        app_name: str,
        minutes: float,
        ended_at: datetime,
        idle_seconds: float = 0.0,
    ) -> Optional[AppUsageStats]:
        """
        앱 사용 세션 하나를 기록하는 함수

        Returns:
            갱신된 앱 통계 (짧은 세션은 무시하고 None 반환)
        """
        if minutes < MIN_SESSION_MINUTES:
            return None

        stats = self.app_usage.get(app_name)
        if stats is None:
            stats = AppUsageStats(app_name=app_name, category=categorize_app(app_name))
            self.app_usage[app_name] = stats

        score = focus_score(app_name, minutes, ended_at, idle_seconds)
        stats.total_time += minutes
        stats.sessions += 1
        stats.avg_session_length = stats.total_time / stats.sessions
        stats.last_used = ended_at
        # 세션 수 기준 이동 평균
        stats.focus_score = (stats.focus_score * (stats.sessions - 1) + score) / stats.sessions
        return stats

    def daily_report(self, day: date) -> DailyScreenTimeReport:
        """
        지정된 날짜에 사용된 앱들로 하루 화면 사용 리포트를 생성하는 함수

        Args:
            day: 리포트 날짜

        Returns:
            카테고리별 사용 시간, 평균 집중도, 상위 앱, 팁이 담긴 리포트
        """
        stats = [
            app for app in self.app_usage.values()
            if app.last_used is not None and app.last_used.date() == day
        ]

        category_times: Dict[str, float] = {}
        for app in stats:
            category_times[app.category] = category_times.get(app.category, 0.0) + app.total_time

        total_time = sum(app.total_time for app in stats)
        avg_focus = sum(app.focus_score for app in stats) / len(stats) if stats else 0.0
        tips, wellness_recs = generate_recommendations(category_times, avg_focus)

        return DailyScreenTimeReport(
            date=day,
            total_screen_time=total_time,
            productive_time=category_times.get("productivity", 0.0),
            social_time=category_times.get("social", 0.0),
            entertainment_time=category_times.get("entertainment", 0.0),
            wellness_time=category_times.get("wellness", 0.0),
            educational_time=category_times.get("educational", 0.0),
            focus_score=avg_focus,
            most_used_apps=tuple(sorted(stats, key=lambda app: app.total_time, reverse=True)[:5]),
            productivity_tips=tuple(tips),
            wellness_recommendations=tuple(wellness_recs),
        )


def generate_recommendations(
    category_times: Dict[str, float],
    focus: float,
) -> Tuple[List[str], List[str]]:
    """카테고리별 사용 시간과 집중도로 생산성 팁과 웰니스 권장 사항을 최대 3개씩 생성"""
    tips: List[str] = []
    wellness_recs: List[str] = []

    total_time = sum(category_times.values())
    # 사용 기록이 없는 날은 비율을 0으로 둠
    if total_time > 0:
        productivity_ratio = category_times.get("productivity", 0.0) / total_time
        social_ratio = category_times.get("social", 0.0) / total_time
        wellness_ratio = category_times.get("wellness", 0.0) / total_time
    else:
        productivity_ratio = social_ratio = wellness_ratio = 0.0

    if focus < 0.6:
        tips.append("Consider using the Pomodoro technique to improve focus")
        tips.append("Try working in shorter, more focused sessions")
    if productivity_ratio < 0.4:
        tips.append("Schedule dedicated productivity blocks in your calendar")
        tips.append("Use website blockers during work hours")
    if social_ratio > 0.3:
        tips.append("Set specific times for checking social media")
        tips.append("Use app limits for social platforms")

    if total_time > 480:
        wellness_recs.append("Take regular screen breaks using the 20-20-20 rule")
        wellness_recs.append("Consider using blue light filters in the evening")
    if wellness_ratio < 0.1:
        wellness_recs.append("Schedule short wellness breaks throughout the day")
        wellness_recs.append("Try mindfulness exercises between tasks")
    if focus < 0.4:
        wellness_recs.append("Take a short walk to refresh your mind")
        wellness_recs.append("Practice deep breathing exercises")

    return tips[:3], wellness_recs[:3]
