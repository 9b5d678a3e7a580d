# backend/personalhub/models/oauth.py
from datetime import datetime
import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Uuid, JSON
from sqlalchemy.orm import relationship

from personalhub.core.database import Base


class OAuthApplication(Base):
    """A registered OIDC client"""
    __tablename__ = "oauth_applications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(String(255), unique=True, index=True, nullable=False)
    client_secret_hash = Column(String(255), nullable=False)
    application_name = Column(String(255), nullable=False)
    redirect_uris = Column(JSON, nullable=False, default=list)
    scopes = Column(JSON, nullable=False, default=list)
    grant_types = Column(JSON, nullable=False, default=list)
    response_types = Column(JSON, nullable=False, default=list)
    application_type = Column(String(50), default="web", nullable=False)
    client_uri = Column(String(500), nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)


class AuthorizationCode(Base):
    __tablename__ = "authorization_codes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    code = Column(String(255), unique=True, index=True, nullable=False)
    client_id = Column(String(255), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    redirect_uri = Column(String(500), nullable=False)
    scopes = Column(JSON, nullable=False, default=list)
    code_challenge = Column(String(255), nullable=True)
    code_challenge_method = Column(String(10), nullable=True)
    nonce = Column(String(255), nullable=True)
    state = Column(String(255), nullable=True)
    auth_time = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    user = relationship("User")

    def is_expired(self) -> bool:
        return datetime.now() > self.expires_at

    def is_valid(self) -> bool:
        return not self.used and not self.is_expired()


class RefreshToken(Base):
    """OIDC refresh token; only the SHA-256 digest of the token value is stored"""
    __tablename__ = "refresh_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token_hash = Column(String(64), unique=True, index=True, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(255), nullable=False)
    scopes = Column(JSON, nullable=False, default=list)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    user = relationship("User")

    def is_expired(self) -> bool:
        return datetime.now() > self.expires_at

    def is_valid(self) -> bool:
        return not self.revoked and not self.is_expired()

    def revoke(self):
        self.revoked = True
        self.revoked_at = datetime.now()


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(255), unique=True, index=True, nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    user = relationship("User")

    def is_valid(self) -> bool:
        return not self.used and datetime.now() <= self.expires_at


class SecurityEvent(Base):
    """Audit trail for authentication and token activity"""
    __tablename__ = "security_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(50), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    client_id = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    success = Column(Boolean, nullable=False)
    error_code = Column(String(100), nullable=True)
    error_description = Column(String(500), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    def __repr__(self):
        return f"<SecurityEvent(type={self.event_type}, success={self.success})>"
