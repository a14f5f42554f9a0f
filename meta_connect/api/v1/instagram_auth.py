"""
Instagram Business Login / 계정 API
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...core.config import Settings, get_settings
from ...database import get_db
from ...models import InstagramBusinessAccount
from ...services.instagram_account import InstagramAccountService

router = APIRouter(prefix="/instagram", tags=["instagram"])


def get_instagram_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> InstagramAccountService:
    return InstagramAccountService(db, settings)


def _account_or_404(service: InstagramAccountService, account_id: str) -> InstagramBusinessAccount:
    account = service.accounts.get_by_external_id(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Instagram account not found")
    return account


def _public_account(account: InstagramBusinessAccount) -> Dict[str, Any]:
    # access_token은 민감정보이므로 미노출
    return {
        "account_id": account.instagram_business_account_id,
        "name": account.name,
        "permissions": account.permission_list,
        "facebook_page_id": account.facebook_page_id,
        "token_obtained_at": account.token_obtained_at.isoformat() if account.token_obtained_at else None,
    }


@router.get("/auth/url")
async def get_instagram_auth_url(
    request: Request,
    scopes: Optional[List[str]] = Query(None, description="요청할 권한 (미지정 시 기본 권한)"),
    service: InstagramAccountService = Depends(get_instagram_service),
):
    """Instagram OAuth 인증 URL 생성 (state는 서버에 저장됨)"""
    source_ip = request.client.host if request.client else None
    return {"auth_url": service.get_authorization_url(scopes=scopes, source_ip=source_ip)}


@router.get("/auth/callback")
async def instagram_auth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    service: InstagramAccountService = Depends(get_instagram_service),
):
    if error or not code:
        raise HTTPException(status_code=400, detail=error_description or error or "Missing authorization code")

    account = await service.handle_callback(code, state)
    if account is None:
        raise HTTPException(status_code=400, detail="Instagram authorization failed")
    return {"success": True, "account": _public_account(account)}


@router.post("/accounts/{account_id}/token/long-lived")
async def exchange_long_lived_token(
    account_id: str,
    service: InstagramAccountService = Depends(get_instagram_service),
):
    _account_or_404(service, account_id)
    account = await service.store_long_lived_token(account_id)
    if account is None:
        raise HTTPException(status_code=502, detail="Long-lived token exchange failed")
    return {"success": True, "account": _public_account(account)}


@router.post("/accounts/{account_id}/token/refresh")
async def refresh_token(
    account_id: str,
    service: InstagramAccountService = Depends(get_instagram_service),
):
    _account_or_404(service, account_id)
    account = await service.renew_account_token(account_id)
    if account is None:
        raise HTTPException(status_code=409, detail="Token refresh not allowed or failed")
    return {"success": True, "account": _public_account(account)}


@router.get("/accounts/{account_id}/profile")
async def get_profile(
    account_id: str,
    service: InstagramAccountService = Depends(get_instagram_service),
):
    account = _account_or_404(service, account_id)
    profile = await service.get_profile_info(account=account)
    if profile is None:
        raise HTTPException(status_code=502, detail="Failed to fetch profile")
    return profile


@router.get("/accounts/{account_id}/media")
async def get_media(
    account_id: str,
    service: InstagramAccountService = Depends(get_instagram_service),
):
    account = _account_or_404(service, account_id)
    media = await service.get_user_media(account=account)
    if media is None:
        raise HTTPException(status_code=502, detail="Failed to fetch media")
    return media


@router.get("/accounts/{account_id}/media/{media_id}")
async def get_media_details(
    account_id: str,
    media_id: str,
    service: InstagramAccountService = Depends(get_instagram_service),
):
    account = _account_or_404(service, account_id)
    media = await service.get_media_details(media_id, account=account)
    if media is None:
        raise HTTPException(status_code=502, detail="Failed to fetch media details")
    return media


@router.put("/accounts/{account_id}/facebook-page/{page_id}")
async def link_facebook_page(
    account_id: str,
    page_id: str,
    service: InstagramAccountService = Depends(get_instagram_service),
):
    if not service.link_with_facebook_page(account_id, page_id):
        raise HTTPException(status_code=404, detail="Instagram account not found")
    return {"success": True, "account_id": account_id, "facebook_page_id": page_id}
