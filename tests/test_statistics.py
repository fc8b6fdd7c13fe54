# ============================================================================
# Study Statistics Tests
# ============================================================================
import pytest
from datetime import date, datetime, timedelta, timezone

from app.models.practice import PracticeSession
from app.services.analytics.study_statistics import StudyStatisticsService

TODAY = date(2024, 5, 15)  # a Wednesday

def _session(user_id, day, minutes=10, accuracy=50.0, completed=True, practice_type="daily"):
    started = datetime(day.year, day.month, day.day, 9, 0, tzinfo=timezone.utc)
    return PracticeSession(
        user_id=user_id,
        title="Practice",
        practice_type=practice_type,
        total_questions=10,
        correct_count=int(accuracy / 10),
        accuracy=accuracy,
        time_started=started,
        time_completed=started + timedelta(minutes=minutes) if completed else None,
        completed=completed,
    )

class TestStudyStatistics:
    """Tests for the statistics summary"""

    @pytest.mark.asyncio
    async def test_no_sessions(self, db_session, user_id):
        stats = await StudyStatisticsService(db_session).get_statistics(user_id, today=TODAY)

        assert stats["totalPractices"] == 0
        assert stats["averageAccuracy"] == 0
        assert stats["streak"] == 0
        assert stats["todayTasks"]["dailyPractice"] is False
        assert stats["weekProgress"]["completionRate"] == 0
        assert stats["recentPractices"] == []
        assert stats["mistakes"] == {"unresolved": 0, "reviewing": 0, "resolved": 0}

    @pytest.mark.asyncio
    async def test_totals_and_streak(self, db_session, user_id):
        db_session.add_all([
            _session(user_id, TODAY, minutes=20, accuracy=80.0),
            _session(user_id, TODAY - timedelta(days=1), minutes=10, accuracy=60.0),
            _session(user_id, TODAY - timedelta(days=2), completed=False, practice_type="random"),
            _session(user_id, TODAY - timedelta(days=5), minutes=30, accuracy=40.0),
            _session("someone-else", TODAY, minutes=99, accuracy=100.0),
        ])
        await db_session.commit()

        stats = await StudyStatisticsService(db_session).get_statistics(user_id, today=TODAY)

        assert stats["totalPractices"] == 4
        assert stats["averageAccuracy"] == 60.0
        assert stats["totalTime"] == 60
        assert stats["streak"] == 3
        assert stats["todayTasks"]["dailyPractice"] is True
        assert stats["todayTasks"]["completedTasks"] == stats["todayTasks"]["totalTasks"]
        assert len(stats["recentPractices"]) == 4

    @pytest.mark.asyncio
    async def test_week_starts_on_sunday(self, db_session, user_id):
        db_session.add_all([
            _session(user_id, date(2024, 5, 12), minutes=15),  # Sunday
            _session(user_id, date(2024, 5, 13), completed=False),
            _session(user_id, date(2024, 5, 11), minutes=45),  # previous Saturday
        ])
        await db_session.commit()

        stats = await StudyStatisticsService(db_session).get_statistics(user_id, today=TODAY)

        assert stats["weekProgress"]["time"] == 15
        assert stats["weekProgress"]["completionRate"] == 50.0
