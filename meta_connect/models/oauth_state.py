"""
OAuth state 저장 모델

authorization URL 생성 시 발급한 state 토큰을 콜백까지 보관해 CSRF를 막습니다.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime

from .base import Base


class OAuthService(str, Enum):
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"


class OAuthState(Base):
    """단기 OAuth state 토큰 (1회용)"""
    __tablename__ = "oauth_states"

    id = Column(Integer, primary_key=True, index=True)
    state = Column(String(128), nullable=False, unique=True, index=True)
    service = Column(String(20), nullable=False, index=True)
    ip_address = Column(String(64), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:  # pragma: no cover - 디버깅 헬퍼
        return f"<OAuthState(service={self.service}, state={self.state[:8]}...)>"
