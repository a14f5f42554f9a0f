from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel


class TokenExchangeResult(BaseModel):
    """OAuth 토큰 교환 응답 (정규화된 형태)"""
    access_token: Optional[str] = None
    user_id: Optional[str] = None
    # comma-joined
    permissions: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.access_token) and bool(self.user_id)


def join_permissions(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set)):
        return ",".join(str(p).strip() for p in value if str(p).strip())
    return str(value)


def normalize_token_response(response: Mapping[str, Any]) -> Optional[TokenExchangeResult]:
    """Normalize both documented token-exchange shapes.

    Legacy: ``{"data": [{"access_token", "user_id", "permissions": "a,b"}]}``
    Current: ``{"access_token", "user_id", "permissions": ["a", "b"]}``

    Returns None for any other shape.
    """
    data = response.get("data")
    if isinstance(data, list) and data and isinstance(data[0], Mapping) and data[0].get("access_token"):
        entry = data[0]
    elif response.get("access_token"):
        entry = response
    else:
        return None

    user_id = entry.get("user_id")
    return TokenExchangeResult(
        access_token=entry.get("access_token"),
        user_id=str(user_id) if user_id not in (None, "") else None,
        permissions=join_permissions(entry.get("permissions")),
    )
