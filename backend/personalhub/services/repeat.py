# backend/personalhub/services/repeat.py
"""Repeating todos: next due date calculation and instance generation."""
import logging
from calendar import monthrange
from datetime import date, timedelta
from typing import List, Optional
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from personalhub.core.exceptions import ValidationError
from personalhub.models.todo import RepeatType, Todo, TodoStatus

logger = logging.getLogger(__name__)


def parse_days_of_week(raw: Optional[str]) -> List[int]:
    """'1, 3,5' -> [1, 3, 5] (ISO weekdays, 1 = Monday)"""
    if not raw:
        return []
    return [int(part.strip()) for part in raw.split(",") if part.strip()]


def format_days_of_week(days: Optional[List[int]]) -> Optional[str]:
    if not days:
        return None
    return ",".join(str(day) for day in days)


def _add_months(day: date, months: int, target_day: Optional[int] = None) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    wanted = target_day if target_day is not None else day.day
    return date(year, month, min(wanted, monthrange(year, month)[1]))


def _add_years(day: date, years: int) -> date:
    year = day.year + years
    return date(year, day.month, min(day.day, monthrange(year, day.month)[1]))


def _next_weekly(current: date, days_of_week: Optional[str]) -> date:
    days = sorted(parse_days_of_week(days_of_week))
    if not days:
        return current + timedelta(weeks=1)
    weekday = current.isoweekday()
    for day in days:
        if day > weekday:
            return current + timedelta(days=day - weekday)
    return current + timedelta(days=7 - weekday + days[0])


def next_due_date(todo: Todo, current: Optional[date] = None) -> Optional[date]:
    """Due date following ``current`` (defaults to the todo's own due date)."""
    current = current or todo.due_date
    if current is None or todo.repeat_type is None:
        return None

    interval = todo.repeat_interval or 1
    if todo.repeat_type == RepeatType.DAILY:
        return current + timedelta(days=interval)
    if todo.repeat_type == RepeatType.WEEKLY:
        return _next_weekly(current, todo.repeat_days_of_week)
    if todo.repeat_type == RepeatType.MONTHLY:
        return _add_months(current, 1, todo.repeat_day_of_month)
    if todo.repeat_type == RepeatType.YEARLY:
        return _add_years(current, interval)
    return None  # ONCE


def is_end_reached(todo: Todo, next_date: date) -> bool:
    return todo.repeat_end_date is not None and next_date > todo.repeat_end_date


def _instance_exists(db: Session, original_id: int, due: date) -> bool:
    return (
        db.query(Todo.id)
        .filter(Todo.original_todo_id == original_id, Todo.due_date == due)
        .first()
        is not None
    )


def series_anchor(db: Session, original: Todo) -> Optional[date]:
    """Latest due date in the series (the original or its newest instance)."""
    latest = (
        db.query(func.max(Todo.due_date))
        .filter(Todo.original_todo_id == original.id)
        .scalar()
    )
    if original.due_date is None:
        return None
    if latest is None or latest < original.due_date:
        return original.due_date
    return latest


def generate_next_occurrence(db: Session, original: Todo, after: Optional[date] = None) -> Optional[Todo]:
    """
    Add the next instance of a repeatable todo to the session (not committed).

    The instance follows ``after`` when given (the due date of the todo that
    was just completed), otherwise the latest due date in the series.
    Returns None when the series ended or the instance already exists.
    """
    if not original.is_repeatable or original.repeat_type is None:
        raise ValidationError("Todo is not repeatable")

    due = next_due_date(original, after or series_anchor(db, original))
    if due is None or is_end_reached(original, due):
        logger.debug("Repeat period ended for todo %s", original.id)
        return None
    if _instance_exists(db, original.id, due):
        logger.debug("Instance for %s already exists for todo %s", due, original.id)
        return None

    instance = Todo(
        user_id=original.user_id,
        title=original.title,
        description=original.description,
        status=TodoStatus.TODO,
        priority=original.priority,
        due_date=due,
        parent_id=original.parent_id,
        is_repeatable=False,
        original_todo_id=original.id,
    )
    db.add(instance)
    db.flush()
    logger.info("TODO_REPEAT_GENERATED instance_id=%s original_id=%s due=%s", instance.id, original.id, due)
    return instance


def needs_generation(db: Session, todo: Todo, today: Optional[date] = None) -> bool:
    if todo.repeat_type == RepeatType.ONCE or todo.due_date is None:
        return False
    anchor = series_anchor(db, todo)
    if anchor > (today or date.today()):
        return False
    due = next_due_date(todo, anchor)
    if due is None or is_end_reached(todo, due):
        return False
    return not _instance_exists(db, todo.id, due)


def generate_pending(db: Session, user_id: uuid.UUID, today: Optional[date] = None) -> List[Todo]:
    repeatable = (
        db.query(Todo)
        .filter(Todo.user_id == user_id, Todo.is_repeatable.is_(True))
        .order_by(Todo.id)
        .all()
    )
    created = []
    for todo in repeatable:
        if needs_generation(db, todo, today):
            instance = generate_next_occurrence(db, todo)
            if instance is not None:
                created.append(instance)
    return created
