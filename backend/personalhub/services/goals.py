# backend/personalhub/services/goals.py
"""
Goal tracking: period normalisation, achievement toggling and streaks.

Achievements are stored at the start date of the period they belong to
(the day itself, the user's week start, the first of the month or 1 Jan),
so "completed" and the streak counters agree for every goal type.
"""
import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from personalhub.core.exceptions import NotFoundError, ValidationError
from personalhub.models.goal import Goal, GoalAchievement, GoalStreak, GoalType
from personalhub.models.user import DEFAULT_WEEK_START_DAY, User

logger = logging.getLogger(__name__)

FILTERS = ("active", "inactive", "all")


@dataclass
class StreakInfo:
    current: int
    longest: int


# ── Period arithmetic ─────────────────────────────────────────────

def week_start(day: date, week_start_day: Optional[int]) -> date:
    """
    Previous-or-same week start. ``week_start_day`` uses 0 = Sunday,
    1 = Monday ... 6 = Saturday.
    """
    if week_start_day is None:
        week_start_day = DEFAULT_WEEK_START_DAY
    iso_start = 7 if week_start_day == 0 else week_start_day
    back = (day.isoweekday() - iso_start) % 7
    return day - timedelta(days=back)


def normalize_date(day: date, goal_type: GoalType, week_start_day: Optional[int] = None) -> date:
    if goal_type == GoalType.WEEKLY:
        return week_start(day, week_start_day)
    if goal_type == GoalType.MONTHLY:
        return day.replace(day=1)
    if goal_type == GoalType.ANNUAL:
        return date(day.year, 1, 1)
    return day


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def previous_period(day: date, goal_type: GoalType) -> date:
    if goal_type == GoalType.WEEKLY:
        return day - timedelta(weeks=1)
    if goal_type == GoalType.MONTHLY:
        return _add_months(day, -1).replace(day=1)
    if goal_type == GoalType.ANNUAL:
        return date(day.year - 1, 1, 1)
    return day - timedelta(days=1)


def next_period(day: date, goal_type: GoalType) -> date:
    if goal_type == GoalType.WEEKLY:
        return day + timedelta(weeks=1)
    if goal_type == GoalType.MONTHLY:
        return _add_months(day, 1).replace(day=1)
    if goal_type == GoalType.ANNUAL:
        return date(day.year + 1, 1, 1)
    return day + timedelta(days=1)


# ── Streaks ───────────────────────────────────────────────────────

def current_streak(achieved: Set[date], goal_type: GoalType, reference: date, week_start_day: Optional[int] = None) -> int:
    period = normalize_date(reference, goal_type, week_start_day)
    streak = 0
    while period in achieved:
        streak += 1
        period = previous_period(period, goal_type)
    return streak


def longest_streak(achieved: Iterable[date], goal_type: GoalType) -> int:
    ordered = sorted(set(achieved))
    if not ordered:
        return 0
    longest = run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if next_period(prev, goal_type) == curr:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def calculate_streak(
    achieved_dates: Iterable[date],
    goal_type: GoalType,
    reference: date,
    week_start_day: Optional[int] = None,
) -> StreakInfo:
    normalized = {normalize_date(d, goal_type, week_start_day) for d in achieved_dates}
    if not normalized:
        return StreakInfo(0, 0)
    return StreakInfo(
        current=current_streak(normalized, goal_type, reference, week_start_day),
        longest=longest_streak(normalized, goal_type),
    )


def matches_filter(goal: Goal, day: date, filter_name: Optional[str]) -> bool:
    if filter_name in (None, "all"):
        return True
    in_range = goal.is_in_range(day)
    if filter_name == "active":
        return bool(goal.is_active) and in_range
    if filter_name == "inactive":
        return not goal.is_active or not in_range
    return True


# ── Persistence ───────────────────────────────────────────────────

def get_owned_goal(db: Session, goal_id: int, user: User) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user.id).first()
    if goal is None:
        raise NotFoundError("Goal not found or access denied")
    return goal


def _achieved_dates(db: Session, goal_id: int) -> List[date]:
    rows = db.query(GoalAchievement.achieved_date).filter(GoalAchievement.goal_id == goal_id).all()
    return [row[0] for row in rows]


def describe_goal(db: Session, goal: Goal, user: User, reference: date) -> dict:
    """Goal fields plus completion for the reference period and streaks."""
    achieved = _achieved_dates(db, goal.id)
    period = normalize_date(reference, goal.goal_type, user.week_start_day)
    normalized = {normalize_date(d, goal.goal_type, user.week_start_day) for d in achieved}
    streak = calculate_streak(achieved, goal.goal_type, reference, user.week_start_day)
    return {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "goal_type": goal.goal_type,
        "is_active": goal.is_active,
        "start_date": goal.start_date,
        "end_date": goal.end_date,
        "completed": period in normalized,
        "current_streak": streak.current,
        "longest_streak": streak.longest,
        "created_at": goal.created_at,
        "updated_at": goal.updated_at,
    }


def grouped_goals(db: Session, user: User, reference: date, filter_name: str = "active") -> Dict[str, List[dict]]:
    if filter_name not in FILTERS:
        raise ValidationError(f"Unknown filter '{filter_name}' (expected one of {', '.join(FILTERS)})")

    goals = db.query(Goal).filter(Goal.user_id == user.id).order_by(Goal.created_at, Goal.id).all()
    grouped: Dict[str, List[dict]] = {"daily": [], "weekly": [], "monthly": [], "annual": []}
    for goal in goals:
        if matches_filter(goal, reference, filter_name):
            grouped[goal.goal_type.value.lower()].append(describe_goal(db, goal, user, reference))
    return grouped


def create_goal(
    db: Session,
    user: User,
    title: str,
    goal_type: GoalType,
    description: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Goal:
    today = today or date.today()
    start = start_date or date(today.year, 1, 1)
    end = end_date or date(today.year, 12, 31)
    if end < start:
        raise ValidationError("end_date must not be before start_date")

    goal = Goal(
        user_id=user.id,
        title=title,
        description=description,
        goal_type=goal_type,
        is_active=True,
        start_date=start,
        end_date=end,
    )
    db.add(goal)
    db.commit()
    db.refresh(goal)
    logger.info("GOAL_CREATED goal_id=%s user_id=%s type=%s", goal.id, user.id, goal_type.value)
    return goal


def update_goal(
    db: Session,
    goal: Goal,
    title: str,
    description: Optional[str],
    is_active: Optional[bool] = None,
) -> Goal:
    goal.title = title
    goal.description = description
    if is_active is not None:
        goal.is_active = is_active
    db.commit()
    db.refresh(goal)
    return goal


def delete_goal(db: Session, goal: Goal):
    logger.info("GOAL_DELETED goal_id=%s user_id=%s", goal.id, goal.user_id)
    db.delete(goal)
    db.commit()


def toggle_achievement(db: Session, goal: Goal, user: User, day: Optional[date] = None) -> dict:
    """Flip the achievement for the period containing ``day`` (default today)."""
    day = day or date.today()
    period = normalize_date(day, goal.goal_type, user.week_start_day)

    existing = (
        db.query(GoalAchievement)
        .filter(GoalAchievement.goal_id == goal.id, GoalAchievement.achieved_date == period)
        .first()
    )
    if existing is not None:
        db.delete(existing)
        achieved = False
    else:
        db.add(GoalAchievement(goal_id=goal.id, achieved_date=period))
        achieved = True
    db.flush()

    _sync_streak(db, goal, user)
    db.commit()

    logger.info(
        "GOAL_ACHIEVEMENT_TOGGLED goal_id=%s period=%s achieved=%s", goal.id, period.isoformat(), achieved
    )
    return {
        "goal_id": goal.id,
        "period_type": goal.goal_type,
        "period_date": period,
        "achieved": achieved,
    }


def _sync_streak(db: Session, goal: Goal, user: User):
    """Bring the stored GoalStreak in line with the achievement history."""
    streak = goal.streak
    if streak is None:
        streak = GoalStreak(goal_id=goal.id)
        goal.streak = streak

    achieved = _achieved_dates(db, goal.id)
    info = calculate_streak(achieved, goal.goal_type, date.today(), user.week_start_day)
    if info.current == 0 and streak.current_streak > 0:
        streak.streak_broken_date = date.today()
    streak.current_streak = info.current
    streak.longest_streak = info.longest
    streak.last_achieved_date = max(achieved) if achieved else None


def get_streak(db: Session, goal: Goal) -> GoalStreak:
    streak = goal.streak
    if streak is None:
        streak = GoalStreak(goal_id=goal.id)
        goal.streak = streak
        db.commit()
        db.refresh(streak)
    return streak


def achievement_history(
    db: Session,
    goal: Goal,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict:
    if date_from is not None and date_to is not None and date_to < date_from:
        raise ValidationError("'to' must not be before 'from'")
    start = date_from or goal.start_date
    end = date_to or date.today()
    if end < start:
        # goal not started yet
        return {"achievements": [], "total_days": 0, "achieved_days": 0, "achievement_rate": 0.0}

    achieved = {
        row[0]
        for row in db.query(GoalAchievement.achieved_date)
        .filter(
            GoalAchievement.goal_id == goal.id,
            GoalAchievement.achieved_date >= start,
            GoalAchievement.achieved_date <= end,
        )
        .all()
    }

    records = []
    day = start
    while day <= end:
        records.append({"date": day, "achieved": day in achieved})
        day += timedelta(days=1)

    total_days = (end - start).days + 1
    achieved_days = len(achieved)
    return {
        "achievements": records,
        "total_days": total_days,
        "achieved_days": achieved_days,
        "achievement_rate": achieved_days / total_days if total_days > 0 else 0.0,
    }
