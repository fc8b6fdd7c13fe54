# ============================================================================
# Study Statistics
# ============================================================================
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import date, datetime, timedelta

from app.core.database import utcnow
from app.models.practice import PracticeSession, PracticeType
from app.services.practice.mistake_ledger import MistakeLedger

DAILY_TASK_COUNT = 5
RECENT_SESSION_COUNT = 5

def _minutes(session: PracticeSession) -> int:
    if not session.time_started or not session.time_completed:
        return 0
    started, finished = session.time_started, session.time_completed
    # SQLite hands back naive datetimes, PostgreSQL aware ones
    if (started.tzinfo is None) != (finished.tzinfo is None):
        started, finished = started.replace(tzinfo=None), finished.replace(tzinfo=None)
    return round((finished - started).total_seconds() / 60)

def _day(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value else None

class StudyStatisticsService:
    """Practice statistics for one user"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_statistics(self, user_id: str, today: Optional[date] = None) -> Dict:
        today = today or utcnow().date()
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)  # weeks start on Sunday
        week_end = week_start + timedelta(days=6)

        result = await self.db.execute(
            select(PracticeSession)
            .where(PracticeSession.user_id == user_id)
            .order_by(PracticeSession.time_started.desc())
        )
        sessions = list(result.scalars().all())
        completed = [s for s in sessions if s.completed]

        average_accuracy = (
            sum(s.accuracy for s in completed) / len(completed) if completed else 0
        )

        week_sessions = [
            s for s in sessions if week_start <= _day(s.time_started) <= week_end
        ]
        today_daily = next(
            (
                s for s in sessions
                if s.practice_type == PracticeType.DAILY.value and _day(s.time_started) == today
            ),
            None
        )
        daily_done = bool(today_daily and today_daily.completed)

        return {
            "totalPractices": len(sessions),
            "averageAccuracy": round(average_accuracy, 1),
            "totalTime": sum(_minutes(s) for s in completed),
            "streak": self._streak({_day(s.time_started) for s in sessions}, today),
            "todayTasks": {
                "dailyPractice": daily_done,
                "totalTasks": DAILY_TASK_COUNT,
                "completedTasks": DAILY_TASK_COUNT if daily_done else 0,
            },
            "weekProgress": {
                "time": sum(_minutes(s) for s in week_sessions if s.completed),
                "completionRate": (
                    sum(1 for s in week_sessions if s.completed) / len(week_sessions) * 100
                    if week_sessions else 0
                ),
            },
            "recentPractices": self._recent(sessions[:RECENT_SESSION_COUNT]),
            "mistakes": await MistakeLedger(self.db).status_counts(user_id),
        }

    @staticmethod
    def _streak(practice_days: set, today: date) -> int:
        """Consecutive days with at least one session, counting back from today"""
        streak = 0
        current = today
        while current in practice_days:
            streak += 1
            current -= timedelta(days=1)
        return streak

    @staticmethod
    def _recent(sessions: List[PracticeSession]) -> List[Dict]:
        return [
            {
                "id": str(s.id),
                "title": s.title,
                "type": s.practice_type,
                "category": s.category,
                "completed": s.completed,
                "accuracy": s.accuracy,
                "timeStarted": s.time_started.isoformat() if s.time_started else None,
            }
            for s in sessions
        ]
