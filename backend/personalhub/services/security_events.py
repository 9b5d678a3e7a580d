# backend/personalhub/services/security_events.py
import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, List, Optional
import uuid

from sqlalchemy.orm import Session

from personalhub.config import settings
from personalhub.models.oauth import SecurityEvent

logger = logging.getLogger(__name__)


class SecurityEventType:
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    LOGOUT = "LOGOUT"
    TOKEN_REFRESH = "TOKEN_REFRESH"
    TOKEN_REVOKE = "TOKEN_REVOKE"
    AUTHORIZATION_CODE_ISSUED = "AUTHORIZATION_CODE_ISSUED"
    AUTHORIZATION_CODE_USED = "AUTHORIZATION_CODE_USED"
    AUTHORIZATION_CODE_EXPIRED = "AUTHORIZATION_CODE_EXPIRED"
    PASSWORD_RESET = "PASSWORD_RESET"
    SOCIAL_LOGIN = "SOCIAL_LOGIN"


def record_event(
    db: Session,
    event_type: str,
    success: bool,
    user_id: Optional[uuid.UUID] = None,
    client_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    error_code: Optional[str] = None,
    error_description: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> SecurityEvent:
    """Persist an audit event. Committed together with the caller's transaction."""
    event = SecurityEvent(
        event_type=event_type,
        success=success,
        user_id=user_id,
        client_id=client_id,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:500] or None,
        error_code=error_code,
        error_description=error_description,
        metadata_json=metadata,
    )
    db.add(event)
    log = logger.info if success else logger.warning
    log(
        "SECURITY_EVENT type=%s success=%s user_id=%s client_id=%s ip=%s error=%s",
        event_type,
        success,
        user_id or "",
        client_id or "",
        ip_address or "",
        error_code or "",
    )
    return event


def recent_events(db: Session, user_id: uuid.UUID, limit: int = 20) -> List[SecurityEvent]:
    return (
        db.query(SecurityEvent)
        .filter(SecurityEvent.user_id == user_id)
        .order_by(SecurityEvent.created_at.desc(), SecurityEvent.id.desc())
        .limit(limit)
        .all()
    )


class FailedAttemptTracker:
    """
    In-memory failed login counter keyed by client IP.
    After ``max_attempts`` failures the IP is locked for ``lockout``.
    """

    def __init__(self, max_attempts: int, lockout: timedelta):
        self.max_attempts = max_attempts
        self.lockout = lockout
        self._attempts: Dict[str, int] = {}
        self._locked_until: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def is_locked(self, ip: str) -> bool:
        with self._lock:
            until = self._locked_until.get(ip)
            if until is None:
                return False
            if datetime.now() >= until:
                del self._locked_until[ip]
                self._attempts.pop(ip, None)
                return False
            return True

    def record_failure(self, ip: str) -> int:
        with self._lock:
            count = self._attempts.get(ip, 0) + 1
            self._attempts[ip] = count
            if count >= self.max_attempts:
                self._locked_until[ip] = datetime.now() + self.lockout
                logger.warning("AUTH_IP_LOCKED ip=%s attempts=%s", ip, count)
            return count

    def record_success(self, ip: str):
        with self._lock:
            self._attempts.pop(ip, None)
            self._locked_until.pop(ip, None)

    def reset(self):
        with self._lock:
            self._attempts.clear()
            self._locked_until.clear()


# Singleton used across the app
failed_attempts = FailedAttemptTracker(
    settings.MAX_FAILED_LOGIN_ATTEMPTS,
    timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES),
)
