"""
OAuth state 저장소 서비스

authorization URL 생성 시 state를 발급/저장하고, 콜백에서 1회만 소비합니다.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from ..database import transaction
from ..models.oauth_state import OAuthService
from ..repositories import OAuthStateRepository, SqlAlchemyOAuthStateRepository

logger = structlog.get_logger(__name__)

# 160-bit random token -> 40 hex chars
STATE_TOKEN_BYTES = 20


def generate_state_token() -> str:
    return secrets.token_hex(STATE_TOKEN_BYTES)


class OAuthStateService:
    def __init__(
        self,
        db: Session,
        ttl_minutes: int = 10,
        repository: Optional[OAuthStateRepository] = None,
    ) -> None:
        self.db = db
        self.ttl = timedelta(minutes=ttl_minutes)
        self.repository = repository or SqlAlchemyOAuthStateRepository(db)

    def create(
        self,
        service: OAuthService | str,
        source_ip: Optional[str] = None,
        state: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """state를 저장하고 반환합니다. state 미지정 시 새로 생성합니다."""
        service = OAuthService(service).value
        state = state or generate_state_token()
        now = now or datetime.now(timezone.utc)
        # 중복 state 등 실패 시 롤백되어 세션은 계속 사용 가능
        with transaction(self.db):
            self.repository.add(
                state=state,
                service=service,
                ip_address=source_ip,
                expires_at=now + self.ttl,
            )
        logger.debug("oauth_state_stored", service=service, ip_address=source_ip)
        return state

    def is_valid(self, state: str, service: OAuthService | str, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.repository.find_valid(state, OAuthService(service).value, now) is not None

    def consume(self, state: str, service: OAuthService | str, now: Optional[datetime] = None) -> bool:
        """Delete a valid state. Returns False when it is unknown, expired,
        issued for another service or already used."""
        now = now or datetime.now(timezone.utc)
        with transaction(self.db):
            deleted = self.repository.delete_valid(state, OAuthService(service).value, now)
        if not deleted:
            logger.error("oauth_state_invalid_or_expired", service=OAuthService(service).value)
            return False
        return True

    def verify_callback_state(
        self,
        state: Optional[str],
        service: OAuthService | str,
        required: bool = False,
    ) -> bool:
        """콜백 state 검증. 전달된 state는 검증과 동시에 소비됩니다."""
        if state:
            return self.consume(state, service)
        logger.warning("oauth_callback_without_state", service=OAuthService(service).value, required=required)
        return not required

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        with transaction(self.db):
            removed = self.repository.delete_expired(now)
        if removed:
            logger.info("oauth_states_purged", count=removed)
        return removed
