# backend/personalhub/services/password_reset.py
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from personalhub.core.exceptions import ValidationError
from personalhub.core.security import generate_secure_token, get_password_hash
from personalhub.models.oauth import PasswordResetToken
from personalhub.models.user import User
from personalhub.services.users import find_by_email

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
TOKEN_TTL = timedelta(hours=1)


def request_reset(db: Session, email: str) -> Optional[str]:
    """
    Create a fresh reset token for the account, replacing older ones.
    Returns the token, or None when no such account exists (callers must not
    reveal the difference).
    """
    user = find_by_email(db, email)
    if user is None:
        logger.warning("PASSWORD_RESET_UNKNOWN_EMAIL email=%s", email)
        return None

    db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).delete()
    token = generate_secure_token(TOKEN_BYTES)
    db.add(PasswordResetToken(
        token=token,
        user_id=user.id,
        expires_at=datetime.now() + TOKEN_TTL,
        used=False,
    ))
    db.commit()
    logger.info("PASSWORD_RESET_REQUESTED user_id=%s", user.id)
    return token


def _valid_token(db: Session, token: str) -> PasswordResetToken:
    reset_token = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).first()
    if reset_token is None or not reset_token.is_valid():
        raise ValidationError("Invalid or expired reset token")
    return reset_token


def is_token_valid(db: Session, token: str) -> bool:
    try:
        _valid_token(db, token)
    except ValidationError:
        return False
    return True


def reset_password(db: Session, token: str, new_password: str) -> User:
    reset_token = _valid_token(db, token)
    user = reset_token.user
    user.password_hash = get_password_hash(new_password)
    reset_token.used = True
    db.commit()
    logger.info("PASSWORD_RESET_COMPLETED user_id=%s", user.id)
    return user

