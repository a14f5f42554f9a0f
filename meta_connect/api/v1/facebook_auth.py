"""
Facebook Login 엔드포인트
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...core.config import Settings, get_settings
from ...database import get_db
from ...services.facebook_account import FacebookAccountService

router = APIRouter(prefix="/facebook", tags=["facebook"])


def get_facebook_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> FacebookAccountService:
    return FacebookAccountService(db, settings)


@router.get("/auth/url")
async def get_facebook_auth_url(
    request: Request,
    scopes: Optional[List[str]] = Query(None),
    service: FacebookAccountService = Depends(get_facebook_service),
):
    source_ip = request.client.host if request.client else None
    return {"auth_url": service.get_authorization_url(scopes=scopes, source_ip=source_ip)}


@router.get("/auth/callback")
async def facebook_auth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    service: FacebookAccountService = Depends(get_facebook_service),
):
    if error or not code:
        raise HTTPException(status_code=400, detail=error_description or error or "Missing authorization code")

    if not await service.handle_callback(code, state):
        raise HTTPException(status_code=400, detail="Facebook authorization failed")
    return {"success": True}
