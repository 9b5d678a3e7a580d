# backend/personalhub/services/todos.py
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from personalhub.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from personalhub.models.todo import RepeatType, Todo, TodoPriority, TodoStatus
from personalhub.models.user import User
from personalhub.services import repeat

logger = logging.getLogger(__name__)

TOGGLE_TRANSITIONS = {
    TodoStatus.TODO: TodoStatus.DONE,
    TodoStatus.IN_PROGRESS: TodoStatus.DONE,
    TodoStatus.DONE: TodoStatus.TODO,
}


def get_owned_todo(db: Session, todo_id: int, user: User) -> Todo:
    todo = db.query(Todo).filter(Todo.id == todo_id).first()
    if todo is None:
        raise NotFoundError(f"TODO not found with id: {todo_id}")
    if todo.user_id != user.id:
        raise AccessDeniedError(f"Access denied to TODO with id: {todo_id}")
    return todo


def _check_repeat_args(is_repeatable: bool, repeat_config) -> None:
    if is_repeatable and repeat_config is None:
        raise ValidationError("repeat_config is required when is_repeatable is true")
    if not is_repeatable and repeat_config is not None:
        raise ValidationError("repeat_config can only be set when is_repeatable is true")


def _apply_repeat_config(todo: Todo, repeat_config) -> None:
    """``repeat_config`` exposes repeat_type, interval, days_of_week, day_of_month, end_date."""
    todo.is_repeatable = True
    todo.repeat_type = repeat_config.repeat_type
    interval = repeat_config.interval
    if interval is None and repeat_config.repeat_type != RepeatType.ONCE:
        interval = 1
    todo.repeat_interval = interval
    todo.repeat_days_of_week = repeat.format_days_of_week(repeat_config.days_of_week)
    todo.repeat_day_of_month = repeat_config.day_of_month
    todo.repeat_end_date = repeat_config.end_date


def create_todo(
    db: Session,
    user: User,
    title: str,
    description: Optional[str] = None,
    priority: Optional[TodoPriority] = None,
    due_date: Optional[date] = None,
    parent_id: Optional[int] = None,
    is_repeatable: bool = False,
    repeat_config=None,
) -> Todo:
    _check_repeat_args(is_repeatable, repeat_config)
    if parent_id is not None:
        get_owned_todo(db, parent_id, user)

    todo = Todo(
        user_id=user.id,
        title=title,
        description=description,
        status=TodoStatus.TODO,
        priority=priority or TodoPriority.MEDIUM,
        due_date=due_date,
        parent_id=parent_id,
        is_repeatable=False,
    )
    if is_repeatable:
        _apply_repeat_config(todo, repeat_config)

    db.add(todo)
    db.commit()
    db.refresh(todo)
    logger.info("TODO_CREATED todo_id=%s user_id=%s repeatable=%s", todo.id, user.id, todo.is_repeatable)
    return todo


def list_by_status(db: Session, user: User, status: TodoStatus) -> List[Todo]:
    return (
        db.query(Todo)
        .filter(Todo.user_id == user.id, Todo.status == status)
        .order_by(Todo.created_at.desc(), Todo.id.desc())
        .all()
    )


def update_todo(
    db: Session,
    todo: Todo,
    user: User,
    title: str,
    status: TodoStatus,
    priority: TodoPriority,
    description: Optional[str] = None,
    due_date: Optional[date] = None,
    parent_id: Optional[int] = None,
    is_repeatable: bool = False,
    repeat_config=None,
) -> Todo:
    if parent_id is not None and parent_id != todo.parent_id:
        if parent_id == todo.id:
            raise ValidationError("A task cannot be its own parent")
        get_owned_todo(db, parent_id, user)

    previous_status = todo.status
    todo.title = title
    todo.description = description
    todo.status = status
    todo.priority = priority
    todo.due_date = due_date
    todo.parent_id = parent_id

    if is_repeatable and repeat_config is not None:
        _apply_repeat_config(todo, repeat_config)
    else:
        todo.clear_repeat_config()

    completed = status == TodoStatus.DONE and previous_status != TodoStatus.DONE
    if completed and todo.is_repeatable and todo.original_todo_id is None:
        repeat.generate_next_occurrence(db, todo, after=todo.due_date)

    db.commit()
    db.refresh(todo)
    logger.info("TODO_UPDATED todo_id=%s user_id=%s status=%s", todo.id, user.id, status.value)
    return todo


def delete_todo(db: Session, todo: Todo):
    # Children are removed with their parent
    db.query(Todo).filter(Todo.parent_id == todo.id).delete()
    db.query(Todo).filter(Todo.original_todo_id == todo.id).update({Todo.original_todo_id: None})
    db.delete(todo)
    db.commit()
    logger.info("TODO_DELETED todo_id=%s user_id=%s", todo.id, todo.user_id)


def children(db: Session, parent: Todo) -> List[Todo]:
    return db.query(Todo).filter(Todo.parent_id == parent.id).order_by(Todo.id).all()


def repeatable_todos(db: Session, user: User) -> List[Todo]:
    return (
        db.query(Todo)
        .filter(Todo.user_id == user.id, Todo.is_repeatable.is_(True))
        .order_by(Todo.id)
        .all()
    )


def repeat_instances(db: Session, original: Todo) -> List[Todo]:
    return (
        db.query(Todo)
        .filter(Todo.original_todo_id == original.id)
        .order_by(Todo.due_date, Todo.id)
        .all()
    )


def generate_pending_instances(db: Session, user: User) -> List[Todo]:
    created = repeat.generate_pending(db, user.id)
    db.commit()
    for todo in created:
        db.refresh(todo)
    logger.info("TODO_REPEAT_BATCH user_id=%s generated=%s", user.id, len(created))
    return created


def toggle_status(db: Session, todo: Todo) -> Todo:
    previous = todo.status
    todo.status = TOGGLE_TRANSITIONS[previous]

    completed = todo.status == TodoStatus.DONE and previous != TodoStatus.DONE
    if completed and todo.original_todo_id is not None:
        original = db.query(Todo).filter(Todo.id == todo.original_todo_id).first()
        if original is not None and original.is_repeatable:
            repeat.generate_next_occurrence(db, original, after=todo.due_date)

    db.commit()
    db.refresh(todo)
    logger.info("TODO_STATUS_TOGGLED todo_id=%s from=%s to=%s", todo.id, previous.value, todo.status.value)
    return todo
