"""
Instagram Business 계정 서비스

Instagram Business Login(OAuth), 장기 토큰 교환/갱신, 프로필/미디어 조회를 처리합니다.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import structlog
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.exceptions import MetaApiError, PreconditionError
from ..database import transaction
from ..graph.client import GraphApiClient
from ..models import InstagramBusinessAccount, OAuthService
from ..repositories import (
    InstagramAccountRepository,
    InstagramProfileRepository,
    SqlAlchemyInstagramAccountRepository,
    SqlAlchemyInstagramProfileRepository,
)
from .oauth_state import OAuthStateService
from .token_response import join_permissions, normalize_token_response

logger = structlog.get_logger(__name__)

DEFAULT_SCOPES: List[str] = [
    "instagram_business_basic",
    "instagram_business_manage_messages",
    "instagram_business_manage_comments",
    "instagram_business_content_publish",
    "instagram_business_manage_insights",
]

PROFILE_FIELDS = (
    "id,user_id,username,account_type,media_count,followers_count,follows_count,"
    "name,profile_picture_url,biography,website"
)
MEDIA_FIELDS = "id,caption,media_type,media_url,thumbnail_url,timestamp,permalink,children{media_url,media_type}"
MEDIA_DETAIL_FIELDS = (
    "id,media_type,media_url,thumbnail_url,timestamp,username,caption,permalink,children{media_url,media_type}"
)

# 장기 토큰은 발급 후 24시간이 지나야 갱신 가능
REFRESH_MIN_TOKEN_AGE = timedelta(hours=24)
REFRESH_REQUIRED_PERMISSION = "instagram_business_basic"


def _as_utc(value: datetime) -> datetime:
    # SQLite는 tz 정보를 보존하지 않음
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InstagramAccountService:
    """Instagram Business Login 및 Graph API 계정 작업"""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        accounts: Optional[InstagramAccountRepository] = None,
        profiles: Optional[InstagramProfileRepository] = None,
        states: Optional[OAuthStateService] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        ig = self.settings.instagram

        self.api_client = GraphApiClient(
            ig.graph_base_url,
            ig.api_version,
            ig.api_timeout,
            ig.api_retry_attempts,
            self.settings.retry_base_delay,
            http_client,
        )
        # 토큰 교환 엔드포인트는 버전 세그먼트가 없음
        self.token_client = GraphApiClient(
            ig.graph_base_url,
            "",
            ig.api_timeout,
            ig.api_retry_attempts,
            self.settings.retry_base_delay,
            http_client,
        )
        # authorization code는 1회용이므로 코드 교환 POST는 재시도하지 않음
        self.oauth_client = GraphApiClient(ig.oauth_base_url, "", ig.api_timeout, 1, http_client=http_client)

        self.accounts = accounts or SqlAlchemyInstagramAccountRepository(db)
        self.profiles = profiles or SqlAlchemyInstagramProfileRepository(db)
        self.states = states or OAuthStateService(db, ttl_minutes=self.settings.oauth_state_ttl_minutes)

    # ------------------------------------------------------------------
    # Profile / media
    # ------------------------------------------------------------------

    async def get_profile_info(
        self,
        access_token: Optional[str] = None,
        *,
        account: Optional[InstagramBusinessAccount] = None,
    ) -> Optional[Dict[str, Any]]:
        """프로필 정보 조회"""
        access_token = access_token or (account.access_token if account else None)
        if not access_token:
            raise PreconditionError("Access token is required")

        try:
            return await self._fetch_profile(access_token)
        except MetaApiError as e:
            logger.error("instagram_profile_fetch_failed", error=str(e))
            return None

    async def get_user_media(
        self,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
        *,
        account: Optional[InstagramBusinessAccount] = None,
    ) -> Optional[Dict[str, Any]]:
        """사용자 미디어 목록 조회"""
        if account is not None:
            user_id = user_id or account.instagram_business_account_id
            access_token = access_token or account.access_token
        if not user_id or not access_token:
            raise PreconditionError("User ID and access token are required")

        try:
            return await self.api_client.request(
                "GET",
                f"{user_id}/media",
                extra_params={"access_token": access_token, "fields": MEDIA_FIELDS},
            )
        except MetaApiError as e:
            logger.error("instagram_media_fetch_failed", user_id=user_id, error=str(e))
            return None

    async def get_media_details(
        self,
        media_id: str,
        access_token: Optional[str] = None,
        *,
        account: Optional[InstagramBusinessAccount] = None,
    ) -> Optional[Dict[str, Any]]:
        """특정 미디어 상세 조회"""
        access_token = access_token or (account.access_token if account else None)
        if not access_token:
            raise PreconditionError("Access token is required")

        try:
            return await self.api_client.request(
                "GET",
                media_id,
                extra_params={"access_token": access_token, "fields": MEDIA_DETAIL_FIELDS},
            )
        except MetaApiError as e:
            logger.error("instagram_media_detail_failed", media_id=media_id, error=str(e))
            return None

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def get_authorization_url(
        self,
        scopes: Optional[List[str]] = None,
        state: Optional[str] = None,
        source_ip: Optional[str] = None,
    ) -> str:
        ig = self.settings.instagram
        if not ig.client_id:
            raise PreconditionError("INSTAGRAM_CLIENT_ID is not configured")
        if not ig.redirect_uri:
            raise PreconditionError("INSTAGRAM_REDIRECT_URI is not configured")

        state = self.states.create(OAuthService.INSTAGRAM, source_ip=source_ip, state=state)

        params = urlencode({
            "client_id": ig.client_id,
            "redirect_uri": ig.redirect_uri,
            "scope": ",".join(scopes or DEFAULT_SCOPES),
            "response_type": "code",
            "state": state,
            "force_reauth": "true",
        })
        return f"{ig.authorize_url}?{params}"

    async def handle_callback(self, code: str, state: Optional[str] = None) -> Optional[InstagramBusinessAccount]:
        """Exchange the authorization code and upsert the account.

        Returns None on any failure: invalid state, unexpected token
        response, missing token/user id, profile fetch or persistence error.
        Nothing is written unless every step succeeds.
        """
        ig = self.settings.instagram
        if not ig.client_id or not ig.client_secret or not ig.redirect_uri:
            raise PreconditionError("Instagram OAuth credentials are not configured")

        if not self.states.verify_callback_state(state, OAuthService.INSTAGRAM, self.settings.require_oauth_state):
            return None

        try:
            response = await self.oauth_client.request(
                "POST",
                "oauth/access_token",
                data={
                    "client_id": ig.client_id,
                    "client_secret": ig.client_secret,
                    "grant_type": "authorization_code",
                    "redirect_uri": ig.redirect_uri,
                    "code": code,
                },
            )

            token = normalize_token_response(response)
            if token is None:
                logger.error("instagram_oauth_unexpected_response", keys=sorted(response.keys()))
                return None
            if not token.complete:
                logger.error("instagram_oauth_missing_token_or_user", has_token=bool(token.access_token))
                return None

            profile = await self._fetch_profile(token.access_token)

            with transaction(self.db):
                account = self._store_account(
                    token.user_id,
                    access_token=token.access_token,
                    permissions=token.permissions,
                    profile=profile,
                )
            logger.info("instagram_oauth_success", account_id=token.user_id)
            return account

        except Exception as e:
            logger.error("instagram_oauth_callback_failed", error=str(e))
            return None

    # ------------------------------------------------------------------
    # Token lifecycle
    # ------------------------------------------------------------------

    async def exchange_for_long_lived_token(self, short_lived_token: str) -> Optional[Dict[str, Any]]:
        """단기 토큰을 장기 토큰으로 교환 (저장하지 않음)"""
        try:
            return await self.token_client.request(
                "GET",
                "access_token",
                extra_params={
                    "grant_type": "ig_exchange_token",
                    "client_secret": self.settings.instagram.client_secret,
                    "access_token": short_lived_token,
                },
            )
        except MetaApiError as e:
            logger.error("instagram_token_exchange_failed", error=str(e))
            return None

    async def refresh_long_lived_token(
        self,
        long_lived_token: str,
        now: Optional[datetime] = None,
    ) -> Optional[Dict[str, Any]]:
        """장기 토큰 갱신.

        토큰 발급 후 24시간 이상 경과했고 instagram_business_basic 권한이 있을
        때만 Graph API를 호출합니다.
        """
        account = self.accounts.get_by_access_token(long_lived_token)
        if account is None or account.token_obtained_at is None:
            logger.error("instagram_token_refresh_rejected", reason="account_not_found_or_no_obtained_at")
            return None

        now = now or datetime.now(timezone.utc)
        if now - _as_utc(account.token_obtained_at) < REFRESH_MIN_TOKEN_AGE:
            logger.error("instagram_token_refresh_rejected", reason="token_younger_than_24h")
            return None

        if not self.has_permission(account, REFRESH_REQUIRED_PERMISSION):
            logger.error("instagram_token_refresh_rejected", reason=f"missing_{REFRESH_REQUIRED_PERMISSION}")
            return None

        try:
            return await self.token_client.request(
                "GET",
                "refresh_access_token",
                extra_params={
                    "grant_type": "ig_refresh_token",
                    "access_token": long_lived_token,
                },
            )
        except MetaApiError as e:
            logger.error("instagram_token_refresh_failed", error=str(e))
            return None

    @staticmethod
    def has_permission(account: InstagramBusinessAccount, permission: str) -> bool:
        """Exact match against the comma-split, trimmed permission list."""
        return permission.strip() in account.permission_list

    async def store_long_lived_token(self, account_id: str) -> Optional[InstagramBusinessAccount]:
        """현재 단기 토큰을 장기 토큰으로 교환하고 계정에 저장"""
        account = self.accounts.get_by_external_id(account_id)
        if account is None:
            logger.error("instagram_account_not_found", account_id=account_id)
            return None

        response = await self.exchange_for_long_lived_token(account.access_token)
        return await self._replace_account_token(account, response)

    async def renew_account_token(
        self,
        account_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[InstagramBusinessAccount]:
        """장기 토큰을 갱신하고 계정에 저장"""
        account = self.accounts.get_by_external_id(account_id)
        if account is None:
            logger.error("instagram_account_not_found", account_id=account_id)
            return None

        response = await self.refresh_long_lived_token(account.access_token, now=now)
        return await self._replace_account_token(account, response, now=now)

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def link_with_facebook_page(self, instagram_account_id: str, facebook_page_id: str) -> bool:
        """Instagram 계정을 Facebook 페이지와 연결"""
        try:
            with transaction(self.db):
                account = self.accounts.get_by_external_id(instagram_account_id)
                if account is None:
                    return False
                account.facebook_page_id = facebook_page_id
            logger.info("instagram_account_linked", account_id=instagram_account_id, page_id=facebook_page_id)
            return True
        except Exception as e:
            logger.error("instagram_account_link_failed", account_id=instagram_account_id, error=str(e))
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch_profile(self, access_token: str) -> Dict[str, Any]:
        return await self.api_client.request(
            "GET",
            "me",
            extra_params={"fields": PROFILE_FIELDS, "access_token": access_token},
        )

    async def _replace_account_token(
        self,
        account: InstagramBusinessAccount,
        response: Optional[Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> Optional[InstagramBusinessAccount]:
        if not response or not response.get("access_token"):
            return None

        account_id = account.instagram_business_account_id
        permissions = join_permissions(response.get("permissions")) or account.permissions
        try:
            profile = await self._fetch_profile(response["access_token"])
            with transaction(self.db):
                stored = self._store_account(
                    account_id,
                    access_token=response["access_token"],
                    permissions=permissions,
                    profile=profile,
                    now=now,
                )
            logger.info("instagram_account_token_replaced", account_id=account_id)
            return stored
        except Exception as e:
            logger.error("instagram_account_token_replace_failed", account_id=account_id, error=str(e))
            return None

    def _store_account(
        self,
        external_id: str,
        *,
        access_token: str,
        permissions: Optional[str],
        profile: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> InstagramBusinessAccount:
        now = now or datetime.now(timezone.utc)
        account = self.accounts.upsert(
            external_id,
            access_token=access_token,
            name=profile.get("name") or "",
            permissions=permissions,
            token_obtained_at=now,
        )

        if profile:
            self.profiles.upsert(
                external_id,
                profile_name=profile.get("name") or "",
                user_id=_str_or_none(profile.get("user_id")),
                username=profile.get("username"),
                profile_picture=profile.get("profile_picture_url"),
                bio=profile.get("biography"),
                account_type=profile.get("account_type"),
                followers_count=profile.get("followers_count"),
                follows_count=profile.get("follows_count"),
                media_count=profile.get("media_count"),
                website=profile.get("website"),
                last_synced_at=now,
                raw_api_response=profile,
            )
        return account


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)
