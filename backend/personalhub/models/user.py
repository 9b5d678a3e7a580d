# backend/personalhub/models/user.py
from datetime import datetime
import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from personalhub.core.database import Base

DEFAULT_WEEK_START_DAY = 1  # Monday


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # NULL for social-only accounts
    username = Column(String(100), nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Profile (mostly filled from social providers)
    profile_picture_url = Column(String(500), nullable=True)
    given_name = Column(String(100), nullable=True)
    family_name = Column(String(100), nullable=True)
    locale = Column(String(20), nullable=True)

    # 0 = Sunday ... 6 = Saturday
    week_start_day = Column(Integer, default=DEFAULT_WEEK_START_DAY, nullable=False)

    # Audit
    last_login_at = Column(DateTime, nullable=True)
    last_login_ip = Column(String(64), nullable=True)
    last_logout_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    social_accounts = relationship(
        "UserSocialAccount", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class UserSocialAccount(Base):
    """Link between a local user and an external identity provider account"""
    __tablename__ = "user_social_accounts"
    __table_args__ = (UniqueConstraint("provider", "provider_user_id"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(50), nullable=False)           # 'github'
    provider_user_id = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    profile_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="social_accounts")

    def __repr__(self):
        return f"<UserSocialAccount(provider={self.provider}, user_id={self.user_id})>"
