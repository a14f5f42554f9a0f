"""
Facebook 페이지 OAuth 서비스
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import structlog
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.exceptions import MetaApiError, PreconditionError
from ..database import transaction
from ..graph.client import GraphApiClient
from ..models import OAuthService
from ..repositories import FacebookPageRepository, SqlAlchemyFacebookPageRepository
from .oauth_state import OAuthStateService

logger = structlog.get_logger(__name__)

DEFAULT_SCOPES: List[str] = ["pages_show_list", "pages_read_engagement", "pages_messaging"]
PAGE_FIELDS = "id,name,access_token,tasks,instagram_business_account"


class FacebookAccountService:
    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        pages: Optional[FacebookPageRepository] = None,
        states: Optional[OAuthStateService] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        fb = self.settings.facebook
        self.api_client = GraphApiClient(
            fb.api_base_url,
            fb.api_version,
            fb.api_timeout,
            fb.api_retry_attempts,
            self.settings.retry_base_delay,
            http_client,
        )
        # authorization code는 1회용이므로 코드 교환은 재시도하지 않음
        self.oauth_client = GraphApiClient(fb.api_base_url, fb.api_version, fb.api_timeout, 1, http_client=http_client)
        self.pages = pages or SqlAlchemyFacebookPageRepository(db)
        self.states = states or OAuthStateService(db, ttl_minutes=self.settings.oauth_state_ttl_minutes)

    def get_authorization_url(
        self,
        scopes: Optional[List[str]] = None,
        state: Optional[str] = None,
        source_ip: Optional[str] = None,
    ) -> str:
        """Facebook Login 다이얼로그 URL 생성 (state 저장 포함)"""
        fb = self.settings.facebook
        if not fb.client_id:
            raise PreconditionError("FACEBOOK_CLIENT_ID is not configured")
        if not fb.redirect_uri:
            raise PreconditionError("FACEBOOK_REDIRECT_URI is not configured")

        state = self.states.create(OAuthService.FACEBOOK, source_ip=source_ip, state=state)

        params = urlencode({
            "client_id": fb.client_id,
            "redirect_uri": fb.redirect_uri,
            "scope": ",".join(scopes or DEFAULT_SCOPES),
            "response_type": "code",
            "state": state,
        })
        return f"{fb.dialog_base_url.rstrip('/')}/{fb.api_version}/dialog/oauth?{params}"

    async def handle_callback(self, code: str, state: Optional[str] = None) -> bool:
        """사용자 토큰을 얻어 관리 중인 페이지들을 저장합니다."""
        fb = self.settings.facebook
        if not fb.client_id or not fb.client_secret or not fb.redirect_uri:
            raise PreconditionError("Facebook OAuth credentials are not configured")

        if not self.states.verify_callback_state(state, OAuthService.FACEBOOK, self.settings.require_oauth_state):
            return False

        try:
            token_response = await self.oauth_client.request(
                "GET",
                "oauth/access_token",
                extra_params={
                    "client_id": fb.client_id,
                    "client_secret": fb.client_secret,
                    "redirect_uri": fb.redirect_uri,
                    "code": code,
                },
            )

            access_token = token_response.get("access_token")
            if not access_token:
                logger.error("facebook_oauth_missing_access_token", keys=sorted(token_response.keys()))
                return False

            pages = await self._fetch_pages(access_token)
            if not pages:
                logger.warning("facebook_oauth_no_pages")
                return False

            now = datetime.now(timezone.utc)
            with transaction(self.db):
                for page in pages:
                    linked = page.get("instagram_business_account") or {}
                    self.pages.upsert(
                        str(page["id"]),
                        name=page.get("name") or "",
                        access_token=page.get("access_token") or "",
                        tasks=page.get("tasks") or [],
                        instagram_business_account_id=linked.get("id"),
                        token_obtained_at=now,
                    )

            logger.info("facebook_oauth_success", page_count=len(pages))
            return True

        except Exception as e:
            logger.error("facebook_oauth_callback_failed", error=str(e))
            return False

    async def get_pages(self, user_access_token: str) -> Optional[List[Dict[str, Any]]]:
        """사용자가 관리하는 페이지 목록 조회"""
        if not user_access_token:
            raise PreconditionError("Access token is required")
        try:
            return await self._fetch_pages(user_access_token)
        except MetaApiError as e:
            logger.error("facebook_pages_fetch_failed", error=str(e))
            return None

    async def _fetch_pages(self, access_token: str) -> List[Dict[str, Any]]:
        response = await self.api_client.request(
            "GET",
            "me/accounts",
            extra_params={"fields": PAGE_FIELDS, "access_token": access_token},
        )
        return list(response.get("data") or [])
