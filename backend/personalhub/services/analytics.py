# backend/personalhub/services/analytics.py
"""
Dashboard statistics and todo activity, derived from the user's todos,
events and notes.
"""
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from personalhub.models.event import Event
from personalhub.models.note import Note
from personalhub.models.todo import Todo, TodoStatus
from personalhub.models.user import User

logger = logging.getLogger(__name__)

PRODUCTIVITY_DAYS = 7
TODO_COMPLETION_WEIGHT = 3.0
EVENT_WEIGHT = 1.0
NOTE_WEIGHT = 2.0


# ── Helpers ───────────────────────────────────────────────────────

def _empty_days(start: date, end: date) -> Dict[date, int]:
    days: Dict[date, int] = {}
    day = start
    while day <= end:
        days[day] = 0
        day += timedelta(days=1)
    return days


def _bucket(dates: Iterable[date], start: date, end: date) -> Dict[date, int]:
    counts = _empty_days(start, end)
    for day in dates:
        if start <= day <= end:
            counts[day] += 1
    return counts


def _as_list(counts: Dict[date, int]) -> List[dict]:
    return [{"date": day, "count": count} for day, count in counts.items()]


def daily_completions(todos: List[Todo], start: date, end: date) -> Dict[date, int]:
    """DONE todos, bucketed by the day they were last updated."""
    return _bucket(
        (t.updated_at.date() for t in todos if t.status == TodoStatus.DONE and t.updated_at),
        start,
        end,
    )


def daily_creations(todos: List[Todo], start: date, end: date) -> Dict[date, int]:
    return _bucket((t.created_at.date() for t in todos if t.created_at), start, end)


def is_overdue(todo: Todo, today: date) -> bool:
    return todo.due_date is not None and todo.due_date < today and todo.status != TodoStatus.DONE


def average_completion_days(todos: List[Todo]) -> float:
    spans = [
        (t.updated_at.date() - t.created_at.date()).days
        for t in todos
        if t.status == TodoStatus.DONE and t.created_at and t.updated_at
    ]
    spans = [s for s in spans if s >= 0]
    return sum(spans) / len(spans) if spans else 0.0


def _user_todos(db: Session, user: User) -> List[Todo]:
    return db.query(Todo).filter(Todo.user_id == user.id).all()


# ── Stats blocks ──────────────────────────────────────────────────

def todo_stats(todos: List[Todo], today: date) -> dict:
    total = len(todos)
    by_status = Counter(t.status for t in todos)
    completed = by_status.get(TodoStatus.DONE, 0)
    rate = completed / total * 100 if total else 0.0
    return {
        "total_todos": total,
        "completed_todos": completed,
        "in_progress_todos": by_status.get(TodoStatus.IN_PROGRESS, 0),
        "pending_todos": by_status.get(TodoStatus.TODO, 0),
        "completion_rate": round(rate, 2),
        "overdue_count": sum(1 for t in todos if is_overdue(t, today)),
    }


def event_stats(events: List[Event], now: datetime) -> dict:
    start_of_day = datetime.combine(now.date(), time.min)
    end_of_day = start_of_day + timedelta(days=1) - timedelta(seconds=1)
    return {
        "total_events": len(events),
        "upcoming_events": sum(1 for e in events if e.start_date_time > now),
        "past_events": sum(1 for e in events if e.end_date_time < now),
        "today_events": sum(1 for e in events if e.overlaps(start_of_day, end_of_day)),
    }


def note_stats(notes: List[Note], now: datetime) -> dict:
    week_ago = now - timedelta(weeks=1)
    month_ago = now - timedelta(days=30)
    tags = {tag for note in notes for tag in note.tag_list}
    return {
        "total_notes": len(notes),
        "notes_this_week": sum(1 for n in notes if n.created_at > week_ago),
        "notes_this_month": sum(1 for n in notes if n.created_at > month_ago),
        "total_tags": len(tags),
    }


def productivity_stats(todos: List[Todo], events: List[Event], notes: List[Note], today: date) -> dict:
    start = today - timedelta(days=PRODUCTIVITY_DAYS)
    completions = daily_completions(todos, start, today)
    event_counts = _bucket((e.start_date_time.date() for e in events), start, today)
    note_counts = _bucket((n.created_at.date() for n in notes if n.created_at), start, today)
    score = (
        sum(completions.values()) * TODO_COMPLETION_WEIGHT
        + sum(event_counts.values()) * EVENT_WEIGHT
        + sum(note_counts.values()) * NOTE_WEIGHT
    )
    return {
        "daily_todo_completions": _as_list(completions),
        "daily_event_counts": _as_list(event_counts),
        "daily_note_creations": _as_list(note_counts),
        "weekly_productivity_score": round(score, 2),
    }


# ── Entry points ──────────────────────────────────────────────────

def dashboard(db: Session, user: User, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now()
    today = now.date()
    logger.info("ANALYTICS_DASHBOARD user_id=%s", user.id)

    todos = _user_todos(db, user)
    events = db.query(Event).filter(Event.user_id == user.id).all()
    notes = db.query(Note).filter(Note.user_id == user.id).all()

    return {
        "todo_stats": todo_stats(todos, today),
        "event_stats": event_stats(events, now),
        "note_stats": note_stats(notes, now),
        "productivity_stats": productivity_stats(todos, events, notes, today),
    }


def todo_activity(db: Session, user: User, start: date, end: date) -> dict:
    logger.info("ANALYTICS_TODO_ACTIVITY user_id=%s from=%s to=%s", user.id, start, end)
    todos = _user_todos(db, user)
    return {
        "daily_completions": _as_list(daily_completions(todos, start, end)),
        "daily_creations": _as_list(daily_creations(todos, start, end)),
        "priority_distribution": dict(Counter(t.priority.value for t in todos)),
        "status_distribution": dict(Counter(t.status.value for t in todos)),
        "average_completion_time": average_completion_days(todos),
    }
