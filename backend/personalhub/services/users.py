# backend/personalhub/services/users.py
import logging
from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy.orm import Session

from personalhub.core.exceptions import (
    AccessDeniedError, AuthenticationError, ConflictError, NotFoundError, ValidationError,
)
from personalhub.core.security import get_password_hash, verify_password
from personalhub.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(db: Session, email: str, password: Optional[str], username: str, **profile) -> User:
    """Shared user-creation logic (checks duplicates, hashes password)."""
    email = normalize_email(email)
    if find_by_email(db, email):
        raise ConflictError("Email already exists")
    user = User(
        email=email,
        password_hash=get_password_hash(password) if password else None,
        username=username,
        enabled=True,
        **profile,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("USER_CREATED user_id=%s email=%s username=%s", user.id, user.email, user.username)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.enabled:
        raise AuthenticationError("Account is disabled")
    return user


def get_owned_user(db: Session, user_id: uuid.UUID, current_user: User) -> User:
    """Users may only read or modify their own account."""
    if user_id != current_user.id:
        raise AccessDeniedError("You can only access your own account")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError(f"User not found with id: {user_id}")
    return user


def update_profile(
    db: Session,
    user: User,
    username: Optional[str] = None,
    email: Optional[str] = None,
    current_password: Optional[str] = None,
) -> User:
    if user.password_hash and not verify_password(current_password or "", user.password_hash):
        raise ValidationError("Current password is incorrect")

    if username is not None:
        if not username.strip():
            raise ValidationError("Username must not be blank")
        user.username = username.strip()

    if email is not None:
        new_email = normalize_email(email)
        if new_email != user.email:
            if find_by_email(db, new_email):
                raise ConflictError("Email already exists")
            user.email = new_email
            user.email_verified = False

    db.commit()
    db.refresh(user)
    logger.info("USER_UPDATED user_id=%s", user.id)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str):
    if user.password_hash and not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info("USER_PASSWORD_CHANGED user_id=%s", user.id)


def set_week_start_day(db: Session, user: User, week_start_day: int) -> User:
    if not 0 <= week_start_day <= 6:
        raise ValidationError("Week start day must be between 0 and 6")
    user.week_start_day = week_start_day
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User):
    logger.info("USER_DELETED user_id=%s email=%s", user.id, user.email)
    db.delete(user)
    db.commit()


def mark_login(db: Session, user: User, client_ip: str):
    user.last_login_at = datetime.now()
    user.last_login_ip = client_ip
    db.commit()
