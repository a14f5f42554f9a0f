from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON

from .base import Base


class FacebookPage(Base):
    """Facebook 페이지와 페이지 액세스 토큰"""
    __tablename__ = "facebook_pages"

    id = Column(Integer, primary_key=True, index=True)
    page_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, default="")
    access_token = Column(Text, nullable=False, default="")
    tasks = Column(JSON, nullable=True)
    # 연결된 Instagram Business 계정 ID
    instagram_business_account_id = Column(String(64), nullable=True, index=True)
    token_obtained_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:  # pragma: no cover - 디버깅 헬퍼
        return f"<FacebookPage(page_id={self.page_id}, name={self.name})>"
