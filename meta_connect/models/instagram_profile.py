from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON

from .base import Base


class InstagramProfile(Base):
    """Instagram 프로필 스냅샷 (읽기 캐시, 언제든 API로 재조회 가능)"""
    __tablename__ = "instagram_profiles"

    id = Column(Integer, primary_key=True, index=True)
    instagram_business_account_id = Column(String(64), nullable=False, unique=True, index=True)
    profile_name = Column(String(255), nullable=True)
    user_id = Column(String(64), nullable=True)
    username = Column(String(255), nullable=True)
    profile_picture = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    account_type = Column(String(50), nullable=True)
    followers_count = Column(Integer, nullable=True)
    follows_count = Column(Integer, nullable=True)
    media_count = Column(Integer, nullable=True)
    website = Column(Text, nullable=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    raw_api_response = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
