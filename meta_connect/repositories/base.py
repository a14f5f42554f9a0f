"""
엔티티별 저장소 인터페이스

호스트 애플리케이션은 자체 저장소를 주입할 수 있습니다. 저장소는 flush까지만
수행하며 커밋/롤백은 서비스 계층의 트랜잭션이 담당합니다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from ..models import FacebookPage, InstagramBusinessAccount, InstagramProfile, OAuthState


class OAuthStateRepository(Protocol):
    def add(self, *, state: str, service: str, ip_address: Optional[str], expires_at: datetime) -> OAuthState: ...

    def find_valid(self, state: str, service: str, now: datetime) -> Optional[OAuthState]: ...

    def delete_valid(self, state: str, service: str, now: datetime) -> int: ...

    def delete_expired(self, now: datetime) -> int: ...


class InstagramAccountRepository(Protocol):
    def get_by_external_id(self, external_id: str) -> Optional[InstagramBusinessAccount]: ...

    def get_by_access_token(self, access_token: str) -> Optional[InstagramBusinessAccount]: ...

    def upsert(self, external_id: str, **fields: Any) -> InstagramBusinessAccount: ...


class InstagramProfileRepository(Protocol):
    def get_by_account_id(self, external_id: str) -> Optional[InstagramProfile]: ...

    def upsert(self, external_id: str, **fields: Any) -> InstagramProfile: ...


class FacebookPageRepository(Protocol):
    def get_by_page_id(self, page_id: str) -> Optional[FacebookPage]: ...

    def upsert(self, page_id: str, **fields: Any) -> FacebookPage: ...
