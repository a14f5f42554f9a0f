"""
Webhook 페이로드 처리기

호스트 애플리케이션은 WebhookPayloadProcessor를 구현해 의존성을 교체합니다.
기본 구현은 구조만 확인하고 이벤트를 로깅합니다.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)


class WebhookPayloadProcessor(Protocol):
    async def process_webhook_payload(self, payload: Any) -> None: ...


class LoggingWebhookPayloadProcessor:
    """Default processor: rejects malformed payloads, logs each event."""

    async def process_webhook_payload(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            raise ValueError("Webhook payload must be a JSON object")
        entries = payload.get("entry")
        if not isinstance(entries, list):
            raise ValueError("Webhook payload has no entry list")

        source = payload.get("object")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError("Webhook entry must be an object")
            for event in entry.get("messaging") or []:
                logger.info(
                    "webhook_messaging_event",
                    object=source,
                    entry_id=entry.get("id"),
                    sender=(event.get("sender") or {}).get("id"),
                    kind=_messaging_kind(event),
                )
            for change in entry.get("changes") or []:
                logger.info(
                    "webhook_change_event",
                    object=source,
                    entry_id=entry.get("id"),
                    field=change.get("field"),
                )


def _messaging_kind(event: dict) -> str:
    for kind in ("message", "postback", "reaction", "read", "referral", "message_edit"):
        if kind in event:
            return kind
    return "unknown"


_default_processor = LoggingWebhookPayloadProcessor()


def get_message_processor() -> WebhookPayloadProcessor:
    """FastAPI 의존성 (호스트 앱에서 dependency_overrides로 교체)"""
    return _default_processor
