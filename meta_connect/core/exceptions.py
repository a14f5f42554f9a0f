from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

# Graph API가 "잠시 후 재시도"로 문서화한 오류 코드 (API Unknown, API Service)
TRANSIENT_ERROR_CODES = frozenset({1, 2})


@dataclass(slots=True)
class MetaApiError(Exception):
    """Graph API / OAuth 호스트 호출 실패.

    status_code is None for transport failures (timeouts, DNS, refused
    connections); otherwise it carries the upstream HTTP status.
    """

    message: str
    status_code: int | None = None
    body: Any = None
    retry_after_seconds: float | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def graph_error(self) -> Mapping[str, Any]:
        error = self.body.get("error") if isinstance(self.body, Mapping) else None
        return error if isinstance(error, Mapping) else {}

    @property
    def retryable(self) -> bool:
        if self.status_code is None or self.status_code == 429 or self.status_code >= 500:
            return True
        error = self.graph_error
        return bool(error.get("is_transient")) or error.get("code") in TRANSIENT_ERROR_CODES

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status_code": self.status_code,
            "body": self.body,
        }


class PreconditionError(Exception):
    """필수 자격 증명/식별자가 없는 상태에서 호출된 경우"""


class MessengerProfileValidationError(ValueError):
    """persistent menu / ice breaker 구조 검증 실패"""
