"""Cached CV analysis: one row per (user, CV content hash). Write-once."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Index
from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CvAnalysis(Base):
    __tablename__ = "cv_analyses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)  # JWT subject
    cv_hash = Column(String(64), nullable=False)  # sha256 hex of cv_content
    cv_content = Column(Text, nullable=False)
    filename = Column(String(255), nullable=False, default="")  # display label, not part of the key
    analysis = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("ix_cv_analyses_user_hash", "user_id", "cv_hash", unique=True),)
