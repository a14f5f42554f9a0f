"""
Instagram Messenger Profile 서비스

persistent menu와 ice breakers를 검증한 뒤 `{user_id}/messenger_profile`
리소스에 그대로 전달합니다.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx
import structlog

from ..core.config import Settings, get_settings
from ..core.exceptions import MessengerProfileValidationError, MetaApiError, PreconditionError
from ..graph.client import GraphApiClient

logger = structlog.get_logger(__name__)

PLATFORM = "instagram"

MAX_MENU_ITEMS = 5
MAX_BUTTON_TITLE_LENGTH = 30
MENU_BUTTON_TYPES = ("web_url", "postback")
WEBVIEW_HEIGHT_RATIOS = ("compact", "tall", "full")

MAX_ICE_BREAKERS = 4
MAX_QUESTION_LENGTH = 100


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_persistent_menu(menus: Sequence[Mapping[str, Any]]) -> None:
    """Raise MessengerProfileValidationError naming the first violated rule."""
    for menu in menus:
        if not isinstance(menu, Mapping):
            raise MessengerProfileValidationError("Each menu must be an object")
        if _blank(menu.get("locale")):
            raise MessengerProfileValidationError("Each menu must have a locale")
        if not isinstance(menu.get("composer_input_disabled"), bool):
            raise MessengerProfileValidationError("Each menu must have a boolean composer_input_disabled")

        actions = menu.get("call_to_actions")
        if not isinstance(actions, list):
            raise MessengerProfileValidationError("Each menu must have a call_to_actions array")
        if len(actions) > MAX_MENU_ITEMS:
            raise MessengerProfileValidationError(f"A menu cannot have more than {MAX_MENU_ITEMS} items")

        for button in actions:
            if not isinstance(button, Mapping) or button.get("type") not in MENU_BUTTON_TYPES:
                raise MessengerProfileValidationError("Invalid button type. Only web_url and postback are allowed")

            title = button.get("title")
            if _blank(title):
                raise MessengerProfileValidationError("Each button must have a title")
            if len(str(title)) > MAX_BUTTON_TITLE_LENGTH:
                raise MessengerProfileValidationError(
                    f"Button title cannot exceed {MAX_BUTTON_TITLE_LENGTH} characters"
                )

            if button["type"] == "web_url":
                if _blank(button.get("url")):
                    raise MessengerProfileValidationError("web_url buttons require a url")
                if button.get("webview_height_ratio") not in WEBVIEW_HEIGHT_RATIOS:
                    raise MessengerProfileValidationError(
                        "web_url buttons require webview_height_ratio (compact, tall or full)"
                    )
            elif _blank(button.get("payload")):
                raise MessengerProfileValidationError("postback buttons require a payload")


def validate_ice_breakers(ice_breakers: Sequence[Mapping[str, Any]]) -> None:
    for ice_breaker in ice_breakers:
        if not isinstance(ice_breaker, Mapping):
            raise MessengerProfileValidationError("Each ice breaker must be an object")
        if _blank(ice_breaker.get("locale")):
            raise MessengerProfileValidationError("Each ice breaker must have a locale")

        actions = ice_breaker.get("call_to_actions")
        if not isinstance(actions, list):
            raise MessengerProfileValidationError("Each ice breaker must have a call_to_actions array")
        if len(actions) > MAX_ICE_BREAKERS:
            raise MessengerProfileValidationError(
                f"An ice breaker cannot have more than {MAX_ICE_BREAKERS} questions"
            )

        for action in actions:
            if not isinstance(action, Mapping) or _blank(action.get("question")):
                raise MessengerProfileValidationError("Each action must have a question")
            if _blank(action.get("payload")):
                raise MessengerProfileValidationError("Each action must have a payload")
            if len(str(action["question"])) > MAX_QUESTION_LENGTH:
                raise MessengerProfileValidationError(
                    f"Question cannot exceed {MAX_QUESTION_LENGTH} characters"
                )


class MessengerProfileService:
    """Persistent menu / ice breakers for one Instagram professional account.

    Credentials are bound per instance; ``with_access_token`` and
    ``with_user_id`` return new instances so a shared service is never
    mutated between calls.
    """

    def __init__(
        self,
        api_client: Optional[GraphApiClient] = None,
        access_token: Optional[str] = None,
        user_id: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if api_client is None:
            settings = settings or get_settings()
            ig = settings.instagram
            api_client = GraphApiClient(
                ig.graph_base_url,
                ig.api_version,
                ig.api_timeout,
                ig.api_retry_attempts,
                settings.retry_base_delay,
                http_client,
            )
        self.api_client = api_client
        self.access_token = access_token
        self.user_id = user_id

    def with_access_token(self, access_token: str) -> "MessengerProfileService":
        return MessengerProfileService(self.api_client, access_token, self.user_id)

    def with_user_id(self, user_id: str) -> "MessengerProfileService":
        return MessengerProfileService(self.api_client, self.access_token, user_id)

    def _validate_credentials(self) -> None:
        if not self.access_token:
            raise PreconditionError("Access token is required. Use with_access_token() first.")
        if not self.user_id:
            raise PreconditionError("Instagram user ID is required. Use with_user_id() first.")

    @property
    def _path(self) -> str:
        return f"{self.user_id}/messenger_profile"

    # ------------------------------------------------------------------
    # Persistent menu
    # ------------------------------------------------------------------

    async def set_persistent_menu(self, menus: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        self._validate_credentials()
        validate_persistent_menu(menus)
        return await self._call(
            "persistent_menu_set",
            "POST",
            json={"platform": PLATFORM, "persistent_menu": menus},
            extra_params={"access_token": self.access_token},
        )

    async def get_persistent_menu(self) -> Optional[Dict[str, Any]]:
        self._validate_credentials()
        return await self._call(
            "persistent_menu_get",
            "GET",
            extra_params={"access_token": self.access_token, "fields": "persistent_menu", "platform": PLATFORM},
        )

    async def delete_persistent_menu(self) -> Optional[Dict[str, Any]]:
        self._validate_credentials()
        return await self._call(
            "persistent_menu_delete",
            "DELETE",
            json={"fields": ["persistent_menu"]},
            extra_params={"access_token": self.access_token, "platform": PLATFORM},
        )

    # ------------------------------------------------------------------
    # Ice breakers
    # ------------------------------------------------------------------

    async def set_ice_breakers(self, ice_breakers: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        self._validate_credentials()
        validate_ice_breakers(ice_breakers)
        return await self._call(
            "ice_breakers_set",
            "POST",
            json={"platform": PLATFORM, "ice_breakers": ice_breakers},
            extra_params={"access_token": self.access_token},
        )

    async def get_ice_breakers(self) -> Optional[Dict[str, Any]]:
        self._validate_credentials()
        return await self._call(
            "ice_breakers_get",
            "GET",
            extra_params={"access_token": self.access_token, "fields": "ice_breakers", "platform": PLATFORM},
        )

    async def delete_ice_breakers(self) -> Optional[Dict[str, Any]]:
        self._validate_credentials()
        return await self._call(
            "ice_breakers_delete",
            "DELETE",
            json={"fields": ["ice_breakers"]},
            extra_params={"access_token": self.access_token, "platform": PLATFORM},
        )

    async def _call(self, operation: str, method: str, **kwargs: Any) -> Optional[Dict[str, Any]]:
        try:
            response = await self.api_client.request(method, self._path, **kwargs)
        except MetaApiError as e:
            logger.error(f"{operation}_failed", user_id=self.user_id, error=str(e))
            return None
        logger.info(f"{operation}_success", user_id=self.user_id)
        return response

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    @staticmethod
    def create_localized_menu(
        locale: str,
        composer_input_disabled: bool,
        call_to_actions: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        return {
            "locale": locale,
            "composer_input_disabled": composer_input_disabled,
            "call_to_actions": call_to_actions,
        }

    @staticmethod
    def create_url_button(title: str, url: str, webview_height_ratio: str = "full") -> Dict[str, Any]:
        return {
            "type": "web_url",
            "title": title,
            "url": url,
            "webview_height_ratio": webview_height_ratio,
        }

    @staticmethod
    def create_postback_button(title: str, payload: str) -> Dict[str, Any]:
        return {"type": "postback", "title": title, "payload": payload}

    @staticmethod
    def create_ice_breaker(locale: str, call_to_actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {"locale": locale, "call_to_actions": call_to_actions}

    @staticmethod
    def create_ice_breaker_action(question: str, payload: str) -> Dict[str, Any]:
        return {"question": question, "payload": payload}
