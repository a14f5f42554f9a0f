"""
Meta Webhook 수신 엔드포인트

GET: 구독 검증(hub.challenge 반환), POST: 이벤트를 메시지 처리기로 전달.
"""

import json
import secrets
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
import structlog

from ...core.config import Settings, get_settings
from ...services.message_processor import WebhookPayloadProcessor, get_message_processor


router = APIRouter(prefix="/webhooks", tags=["webhooks"])
log = structlog.get_logger(__name__)

EVENT_RECEIVED = "EVENT_RECEIVED"
ERROR_PROCESSING = "ERROR_PROCESSING"


def _hub_param(request: Request, name: str) -> Optional[str]:
    # Meta는 hub.challenge 형식으로 보내지만 hub_challenge 도 허용
    params = request.query_params
    return params.get(f"hub.{name}") or params.get(f"hub_{name}")


def verify_subscription(challenge: Optional[str], verify_token: Optional[str], expected_token: Optional[str]) -> bool:
    if not challenge or not verify_token or not expected_token:
        return False
    return secrets.compare_digest(verify_token.encode(), expected_token.encode())


def _handle_verification(request: Request, provider: str, expected_token: Optional[str]) -> PlainTextResponse:
    challenge = _hub_param(request, "challenge")
    verify_token = _hub_param(request, "verify_token")

    if verify_subscription(challenge, verify_token, expected_token):
        log.info("webhook_verified", provider=provider)
        return PlainTextResponse(challenge, status_code=200)

    log.warning("webhook_verification_failed", provider=provider, has_challenge=bool(challenge))
    return PlainTextResponse("Forbidden", status_code=403)


async def _handle_event(request: Request, provider: str, processor: WebhookPayloadProcessor) -> PlainTextResponse:
    raw = await request.body()
    payload: Any = raw.decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw)
        log.info("webhook_event_received", provider=provider, object=_object_of(payload))
        await processor.process_webhook_payload(payload)
    except Exception as e:
        log.error("webhook_processing_failed", provider=provider, error=str(e), payload=payload)
        return PlainTextResponse(ERROR_PROCESSING, status_code=500)
    return PlainTextResponse(EVENT_RECEIVED, status_code=200)


def _object_of(payload: Any) -> Optional[str]:
    return payload.get("object") if isinstance(payload, dict) else None


@router.get("/instagram", response_class=PlainTextResponse)
async def instagram_webhook_verify(request: Request, settings: Settings = Depends(get_settings)):
    return _handle_verification(request, "instagram", settings.instagram.webhook_verify_token)


@router.post("/instagram", response_class=PlainTextResponse)
async def instagram_webhook_event(
    request: Request,
    processor: WebhookPayloadProcessor = Depends(get_message_processor),
):
    return await _handle_event(request, "instagram", processor)


@router.get("/facebook", response_class=PlainTextResponse)
async def facebook_webhook_verify(request: Request, settings: Settings = Depends(get_settings)):
    return _handle_verification(request, "facebook", settings.facebook.webhook_verify_token)


@router.post("/facebook", response_class=PlainTextResponse)
async def facebook_webhook_event(
    request: Request,
    processor: WebhookPayloadProcessor = Depends(get_message_processor),
):
    return await _handle_event(request, "facebook", processor)
