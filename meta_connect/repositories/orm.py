from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import FacebookPage, InstagramBusinessAccount, InstagramProfile, OAuthState


class SqlAlchemyOAuthStateRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, *, state: str, service: str, ip_address: Optional[str], expires_at: datetime) -> OAuthState:
        row = OAuthState(state=state, service=service, ip_address=ip_address, expires_at=expires_at)
        self.db.add(row)
        self.db.flush()
        return row

    def find_valid(self, state: str, service: str, now: datetime) -> Optional[OAuthState]:
        return (
            self.db.query(OAuthState)
            .filter(
                OAuthState.state == state,
                OAuthState.service == service,
                OAuthState.expires_at > now,
            )
            .first()
        )

    def delete_valid(self, state: str, service: str, now: datetime) -> int:
        # 단일 DELETE로 검증과 소비를 동시에 처리 (동시 콜백 중 하나만 성공)
        return (
            self.db.query(OAuthState)
            .filter(
                OAuthState.state == state,
                OAuthState.service == service,
                OAuthState.expires_at > now,
            )
            .delete(synchronize_session=False)
        )

    def delete_expired(self, now: datetime) -> int:
        return (
            self.db.query(OAuthState)
            .filter(OAuthState.expires_at <= now)
            .delete(synchronize_session=False)
        )


class SqlAlchemyInstagramAccountRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_external_id(self, external_id: str) -> Optional[InstagramBusinessAccount]:
        return (
            self.db.query(InstagramBusinessAccount)
            .filter(InstagramBusinessAccount.instagram_business_account_id == external_id)
            .first()
        )

    def get_by_access_token(self, access_token: str) -> Optional[InstagramBusinessAccount]:
        return (
            self.db.query(InstagramBusinessAccount)
            .filter(InstagramBusinessAccount.access_token == access_token)
            .first()
        )

    def upsert(self, external_id: str, **fields: Any) -> InstagramBusinessAccount:
        account = self.get_by_external_id(external_id)
        if account is None:
            account = InstagramBusinessAccount(instagram_business_account_id=external_id)
            self.db.add(account)
        for key, value in fields.items():
            setattr(account, key, value)
        self.db.flush()
        return account


class SqlAlchemyInstagramProfileRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_account_id(self, external_id: str) -> Optional[InstagramProfile]:
        return (
            self.db.query(InstagramProfile)
            .filter(InstagramProfile.instagram_business_account_id == external_id)
            .first()
        )

    def upsert(self, external_id: str, **fields: Any) -> InstagramProfile:
        profile = self.get_by_account_id(external_id)
        if profile is None:
            profile = InstagramProfile(instagram_business_account_id=external_id)
            self.db.add(profile)
        for key, value in fields.items():
            setattr(profile, key, value)
        self.db.flush()
        return profile


class SqlAlchemyFacebookPageRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_page_id(self, page_id: str) -> Optional[FacebookPage]:
        return self.db.query(FacebookPage).filter(FacebookPage.page_id == page_id).first()

    def upsert(self, page_id: str, **fields: Any) -> FacebookPage:
        page = self.get_by_page_id(page_id)
        if page is None:
            page = FacebookPage(page_id=page_id)
            self.db.add(page)
        for key, value in fields.items():
            setattr(page, key, value)
        self.db.flush()
        return page
