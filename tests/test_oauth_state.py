"""
OAuth state 저장소 테스트
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from meta_connect.models import OAuthService, OAuthState
from meta_connect.services.oauth_state import OAuthStateService, generate_state_token


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_generated_state_is_40_hex_chars():
    token = generate_state_token()
    assert len(token) == 40
    int(token, 16)
    assert token != generate_state_token()


def test_create_persists_state_with_ttl(db_session):
    service = OAuthStateService(db_session, ttl_minutes=10)

    state = service.create(OAuthService.INSTAGRAM, source_ip="10.0.0.1", now=NOW)

    row = db_session.query(OAuthState).filter_by(state=state).one()
    assert row.service == "instagram"
    assert row.ip_address == "10.0.0.1"
    assert row.expires_at.replace(tzinfo=timezone.utc) == NOW + timedelta(minutes=10)


def test_state_is_single_use(db_session):
    service = OAuthStateService(db_session)
    state = service.create("instagram", now=NOW)

    assert service.consume(state, "instagram", now=NOW + timedelta(minutes=1)) is True
    assert service.consume(state, "instagram", now=NOW + timedelta(minutes=1)) is False


def test_expired_state_is_rejected(db_session):
    service = OAuthStateService(db_session, ttl_minutes=10)
    state = service.create("facebook", now=NOW)

    assert service.is_valid(state, "facebook", now=NOW + timedelta(minutes=9))
    assert not service.is_valid(state, "facebook", now=NOW + timedelta(minutes=11))
    assert service.consume(state, "facebook", now=NOW + timedelta(minutes=11)) is False


def test_state_is_bound_to_service(db_session):
    service = OAuthStateService(db_session)
    state = service.create(OAuthService.FACEBOOK, now=NOW)

    assert service.consume(state, OAuthService.INSTAGRAM, now=NOW) is False
    # 다른 서비스로의 시도는 state를 소비하지 않음
    assert service.consume(state, OAuthService.FACEBOOK, now=NOW) is True


def test_callback_without_state(db_session):
    service = OAuthStateService(db_session)

    assert service.verify_callback_state(None, "instagram") is True
    assert service.verify_callback_state("", "instagram", required=True) is False


def test_callback_with_unknown_state(db_session):
    service = OAuthStateService(db_session)
    assert service.verify_callback_state("not-issued", "instagram") is False


def test_purge_expired(db_session):
    service = OAuthStateService(db_session, ttl_minutes=10)
    old = service.create("instagram", now=NOW - timedelta(hours=1))
    fresh = service.create("instagram", now=NOW)

    assert service.purge_expired(now=NOW) == 1
    remaining = {row.state for row in db_session.query(OAuthState).all()}
    assert remaining == {fresh}
    assert old not in remaining


def test_duplicate_state_rolls_back(db_session):
    service = OAuthStateService(db_session)
    service.create("instagram", state="dup", now=NOW)

    with pytest.raises(IntegrityError):
        service.create("instagram", state="dup", now=NOW)

    assert db_session.query(OAuthState).count() == 1
    assert service.consume("dup", "instagram", now=NOW) is True
