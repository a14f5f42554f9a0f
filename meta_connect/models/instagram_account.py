"""
Instagram Business 계정 모델

OAuth 콜백에서 upsert 되며, 토큰 갱신/페이지 연결 시 수정됩니다.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON

from .base import Base


class InstagramBusinessAccount(Base):
    __tablename__ = "instagram_business_accounts"

    id = Column(Integer, primary_key=True, index=True)
    instagram_business_account_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, default="")
    access_token = Column(Text, nullable=False)
    # comma-joined scope list, e.g. "instagram_business_basic,instagram_business_manage_messages"
    permissions = Column(Text, nullable=True)
    tasks = Column(JSON, nullable=True)
    facebook_page_id = Column(String(64), nullable=True, index=True)
    token_obtained_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def permission_list(self) -> list[str]:
        if not self.permissions:
            return []
        return [p.strip() for p in self.permissions.split(",") if p.strip()]

    def __repr__(self) -> str:  # pragma: no cover - 디버깅 헬퍼
        return f"<InstagramBusinessAccount(id={self.instagram_business_account_id}, name={self.name})>"
