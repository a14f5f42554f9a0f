"""
Instagram persistent menu / ice breakers API
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ...services.instagram_account import InstagramAccountService
from ...services.messenger_profile import MessengerProfileService
from .instagram_auth import get_instagram_service

router = APIRouter(prefix="/instagram/accounts/{account_id}/messenger-profile", tags=["messenger-profile"])


class PersistentMenuRequest(BaseModel):
    persistent_menu: List[Dict[str, Any]]


class IceBreakersRequest(BaseModel):
    ice_breakers: List[Dict[str, Any]]


def get_messenger_profile_service(
    account_id: str,
    accounts: InstagramAccountService = Depends(get_instagram_service),
) -> MessengerProfileService:
    account = accounts.accounts.get_by_external_id(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Instagram account not found")
    return MessengerProfileService(
        accounts.api_client,
        access_token=account.access_token,
        user_id=account.instagram_business_account_id,
    )


def _ok(response: Dict[str, Any] | None) -> Dict[str, Any]:
    if response is None:
        raise HTTPException(status_code=502, detail="Graph API request failed")
    return response


@router.get("/persistent-menu")
async def get_persistent_menu(service: MessengerProfileService = Depends(get_messenger_profile_service)):
    return _ok(await service.get_persistent_menu())


@router.post("/persistent-menu")
async def set_persistent_menu(
    body: PersistentMenuRequest,
    service: MessengerProfileService = Depends(get_messenger_profile_service),
):
    return _ok(await service.set_persistent_menu(body.persistent_menu))


@router.delete("/persistent-menu")
async def delete_persistent_menu(service: MessengerProfileService = Depends(get_messenger_profile_service)):
    return _ok(await service.delete_persistent_menu())


@router.get("/ice-breakers")
async def get_ice_breakers(service: MessengerProfileService = Depends(get_messenger_profile_service)):
    return _ok(await service.get_ice_breakers())


@router.post("/ice-breakers")
async def set_ice_breakers(
    body: IceBreakersRequest,
    service: MessengerProfileService = Depends(get_messenger_profile_service),
):
    return _ok(await service.set_ice_breakers(body.ice_breakers))


@router.delete("/ice-breakers")
async def delete_ice_breakers(service: MessengerProfileService = Depends(get_messenger_profile_service)):
    return _ok(await service.delete_ice_breakers())
