# backend/personalhub/services/pomodoro.py
import logging
from datetime import datetime
from typing import List, Optional
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from personalhub.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from personalhub.models.pomodoro import (
    AlarmSound, PomodoroConfig, PomodoroSession, PomodoroTask, SessionStatus, SessionType,
)
from personalhub.models.user import User

logger = logging.getLogger(__name__)

ACTIONS = ("START", "PAUSE", "RESUME", "COMPLETE", "CANCEL", "SWITCH_TYPE")

CONFIG_FIELDS = (
    "work_duration",
    "short_break_duration",
    "long_break_duration",
    "cycles_before_long_break",
    "alarm_volume",
    "auto_start_breaks",
    "auto_start_work",
)


def find_active_session(db: Session, user: User) -> Optional[PomodoroSession]:
    return (
        db.query(PomodoroSession)
        .filter(PomodoroSession.user_id == user.id, PomodoroSession.status == SessionStatus.ACTIVE)
        .order_by(PomodoroSession.created_at.desc())
        .first()
    )


def get_owned_session(db: Session, session_id: uuid.UUID, user: User) -> PomodoroSession:
    session = (
        db.query(PomodoroSession)
        .filter(PomodoroSession.id == session_id, PomodoroSession.user_id == user.id)
        .first()
    )
    if session is None:
        raise NotFoundError("Session not found")
    return session


def get_owned_task(db: Session, session: PomodoroSession, task_id: uuid.UUID) -> PomodoroTask:
    task = (
        db.query(PomodoroTask)
        .filter(PomodoroTask.id == task_id, PomodoroTask.session_id == session.id)
        .first()
    )
    if task is None:
        raise NotFoundError("Task not found")
    return task


def create_session(
    db: Session,
    user: User,
    work_duration: int,
    break_duration: int,
    session_type: SessionType = SessionType.WORK,
    tasks: Optional[List[dict]] = None,
) -> PomodoroSession:
    """``tasks`` items carry ``description`` and optional ``todo_id``."""
    if find_active_session(db, user) is not None:
        raise ConflictError("User already has an active Pomodoro session")

    session = PomodoroSession(
        user_id=user.id,
        start_time=datetime.now(),
        work_duration=work_duration,
        break_duration=break_duration,
        completed_cycles=0,
        status=SessionStatus.ACTIVE,
        session_type=session_type,
    )
    db.add(session)
    db.flush()

    for index, task in enumerate(tasks or []):
        db.add(PomodoroTask(
            session_id=session.id,
            description=task["description"],
            todo_id=task.get("todo_id"),
            completed=False,
            order_index=index,
        ))

    db.commit()
    db.refresh(session)
    logger.info("POMODORO_SESSION_CREATED session_id=%s user_id=%s", session.id, user.id)
    return session


def apply_action(
    db: Session,
    session: PomodoroSession,
    action: str,
    session_type: Optional[SessionType] = None,
) -> PomodoroSession:
    if action not in ACTIONS:
        raise ValidationError(f"Unknown action: {action}")

    if action == "START":
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError("Session is not active")
        session.start_time = datetime.now()
    elif action == "PAUSE":
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError("Session is not active")
        session.status = SessionStatus.PAUSED
    elif action == "RESUME":
        if session.status != SessionStatus.PAUSED:
            raise InvalidStateError("Session is not paused")
        session.status = SessionStatus.ACTIVE
    elif action == "COMPLETE":
        session.status = SessionStatus.COMPLETED
        session.end_time = datetime.now()
        if session.session_type == SessionType.WORK:
            session.completed_cycles = (session.completed_cycles or 0) + 1
    elif action == "CANCEL":
        session.status = SessionStatus.CANCELLED
        session.end_time = datetime.now()
    elif action == "SWITCH_TYPE":
        if session_type is not None:
            session.session_type = session_type

    db.commit()
    db.refresh(session)
    logger.info("POMODORO_SESSION_%s session_id=%s status=%s", action, session.id, session.status.value)
    return session


def history_query(db: Session, user: User):
    return (
        db.query(PomodoroSession)
        .filter(PomodoroSession.user_id == user.id)
        .order_by(PomodoroSession.created_at.desc(), PomodoroSession.id)
    )


def add_task(db: Session, session: PomodoroSession, description: str, todo_id: Optional[int] = None) -> PomodoroTask:
    max_index = (
        db.query(func.max(PomodoroTask.order_index))
        .filter(PomodoroTask.session_id == session.id)
        .scalar()
    )
    task = PomodoroTask(
        session_id=session.id,
        description=description,
        todo_id=todo_id,
        completed=False,
        order_index=(max_index if max_index is not None else -1) + 1,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def set_task_completed(db: Session, task: PomodoroTask, completed: bool) -> PomodoroTask:
    task.completed = completed
    db.commit()
    db.refresh(task)
    return task


def remove_task(db: Session, task: PomodoroTask):
    db.delete(task)
    db.commit()


def get_or_create_config(db: Session, user: User) -> PomodoroConfig:
    config = db.query(PomodoroConfig).filter(PomodoroConfig.user_id == user.id).first()
    if config is None:
        config = PomodoroConfig(user_id=user.id)
        db.add(config)
        db.commit()
        db.refresh(config)
    return config


def update_config(db: Session, user: User, changes: dict) -> PomodoroConfig:
    """Partial update: only keys present in ``changes`` with non-None values are applied."""
    config = get_or_create_config(db, user)
    for field in CONFIG_FIELDS:
        if changes.get(field) is not None:
            setattr(config, field, changes[field])
    if changes.get("alarm_sound") is not None:
        config.alarm_sound = AlarmSound.from_value(changes["alarm_sound"])
    db.commit()
    db.refresh(config)
    return config
