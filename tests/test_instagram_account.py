"""
Instagram Business 계정 서비스 테스트
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy.exc import IntegrityError

from meta_connect.core.exceptions import PreconditionError
from meta_connect.models import InstagramBusinessAccount, InstagramProfile, OAuthState
from meta_connect.services.instagram_account import DEFAULT_SCOPES, InstagramAccountService


OAUTH_URL = "https://api.instagram.com/oauth/access_token"
ME_URL = "https://graph.instagram.com/v19.0/me"
EXCHANGE_URL = "https://graph.instagram.com/access_token"
REFRESH_URL = "https://graph.instagram.com/refresh_access_token"

PROFILE = {
    "id": "U",
    "user_id": 17841400000,
    "username": "shop",
    "name": "Shop",
    "account_type": "BUSINESS",
    "followers_count": 10,
    "follows_count": 2,
    "media_count": 3,
}

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def service(db_session, settings, http_client):
    return InstagramAccountService(db_session, settings, http_client=http_client)


def seed_account(db_session, **overrides):
    fields = {
        "instagram_business_account_id": "U",
        "name": "Shop",
        "access_token": "LONG",
        "permissions": "instagram_business_basic,instagram_business_manage_messages",
        "token_obtained_at": NOW - timedelta(hours=25),
    }
    fields.update(overrides)
    account = InstagramBusinessAccount(**fields)
    db_session.add(account)
    db_session.commit()
    return account


def test_authorization_url_persists_state(service, db_session):
    url = service.get_authorization_url(source_ip="127.0.0.1")

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://www.instagram.com/oauth/authorize"
    query = parse_qs(parts.query)
    assert query["client_id"] == ["ig-app"]
    assert query["redirect_uri"] == ["https://app.test/instagram/callback"]
    assert query["scope"] == [",".join(DEFAULT_SCOPES)]
    assert query["response_type"] == ["code"]
    assert query["force_reauth"] == ["true"]

    state = query["state"][0]
    row = db_session.query(OAuthState).filter_by(state=state).one()
    assert row.service == "instagram"
    assert row.ip_address == "127.0.0.1"


def test_duplicate_state_leaves_session_usable(service, db_session):
    seed_account(db_session)
    service.get_authorization_url(state="fixed-state")

    with pytest.raises(IntegrityError):
        service.get_authorization_url(state="fixed-state")

    # 실패한 insert는 롤백되어 같은 세션으로 계속 조회 가능
    assert service.accounts.get_by_external_id("U") is not None
    assert db_session.query(OAuthState).count() == 1


def test_authorization_url_requires_client_id(db_session, settings):
    settings.instagram.client_id = None
    with pytest.raises(PreconditionError):
        InstagramAccountService(db_session, settings).get_authorization_url()


async def test_callback_requires_credentials(db_session, settings, http_client):
    settings.instagram.client_secret = None
    service = InstagramAccountService(db_session, settings, http_client=http_client)
    with pytest.raises(PreconditionError):
        await service.handle_callback("code")


async def test_callback_creates_account(service, graph, db_session):
    graph.add("POST", OAUTH_URL, json={"access_token": "T", "user_id": "U", "permissions": ["a", "b"]})
    graph.add("GET", ME_URL, json=PROFILE)
    url = service.get_authorization_url()

    account = await service.handle_callback("code-1", state=parse_qs(urlsplit(url).query)["state"][0])

    assert account is not None
    stored = db_session.query(InstagramBusinessAccount).one()
    assert stored.instagram_business_account_id == "U"
    assert stored.access_token == "T"
    assert stored.permissions == "a,b"
    assert stored.name == "Shop"
    assert stored.token_obtained_at is not None

    profile = db_session.query(InstagramProfile).one()
    assert profile.username == "shop"
    assert profile.user_id == "17841400000"
    assert profile.followers_count == 10

    token_request = graph.calls("POST", "/oauth/access_token")[0]
    form = parse_qs(token_request.content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["code-1"]
    assert form["client_secret"] == ["ig-secret"]

    profile_request = graph.calls("GET", "/v19.0/me")[0]
    assert profile_request.url.params["access_token"] == "T"


async def test_callback_accepts_legacy_response(service, graph, db_session):
    graph.add(
        "POST",
        OAUTH_URL,
        json={"data": [{"access_token": "T", "user_id": "U", "permissions": "instagram_business_basic"}]},
    )
    graph.add("GET", ME_URL, json=PROFILE)

    account = await service.handle_callback("code")

    assert account is not None
    assert db_session.query(InstagramBusinessAccount).one().permissions == "instagram_business_basic"


async def test_callback_updates_existing_account(service, graph, db_session):
    seed_account(db_session, access_token="OLD", facebook_page_id="PAGE")
    graph.add("POST", OAUTH_URL, json={"access_token": "NEW", "user_id": "U", "permissions": ["a"]})
    graph.add("GET", ME_URL, json=PROFILE)

    assert await service.handle_callback("code") is not None

    stored = db_session.query(InstagramBusinessAccount).one()
    assert stored.access_token == "NEW"
    assert stored.facebook_page_id == "PAGE"


async def test_state_cannot_be_replayed(service, graph, db_session):
    graph.add("POST", OAUTH_URL, json={"access_token": "T", "user_id": "U"})
    graph.add("GET", ME_URL, json=PROFILE)
    url = service.get_authorization_url()
    state = parse_qs(urlsplit(url).query)["state"][0]

    assert await service.handle_callback("code", state=state) is not None
    assert await service.handle_callback("code", state=state) is None
    assert len(graph.calls("POST", "/oauth/access_token")) == 1


async def test_unknown_state_is_rejected_before_exchange(service, graph, db_session):
    assert await service.handle_callback("code", state="forged") is None
    assert graph.requests == []
    assert db_session.query(InstagramBusinessAccount).count() == 0


async def test_missing_state_rejected_when_required(db_session, settings, http_client, graph):
    settings.require_oauth_state = True
    service = InstagramAccountService(db_session, settings, http_client=http_client)

    assert await service.handle_callback("code") is None
    assert graph.requests == []


async def test_missing_user_id_stores_nothing(service, graph, db_session):
    graph.add("POST", OAUTH_URL, json={"access_token": "T"})

    assert await service.handle_callback("code") is None
    assert db_session.query(InstagramBusinessAccount).count() == 0


async def test_token_exchange_error_returns_none(service, graph, db_session):
    graph.add("POST", OAUTH_URL, json={"error_type": "OAuthException", "code": 400}, status_code=400)

    assert await service.handle_callback("code") is None
    assert db_session.query(InstagramBusinessAccount).count() == 0


async def test_profile_failure_leaves_no_partial_account(service, graph, db_session):
    graph.add("POST", OAUTH_URL, json={"access_token": "T", "user_id": "U"})
    graph.add("GET", ME_URL, json={"error": {"message": "boom"}}, status_code=400)

    assert await service.handle_callback("code") is None
    assert db_session.query(InstagramBusinessAccount).count() == 0
    assert db_session.query(InstagramProfile).count() == 0


async def test_profile_and_media_require_credentials(service):
    with pytest.raises(PreconditionError):
        await service.get_profile_info()
    with pytest.raises(PreconditionError):
        await service.get_user_media(user_id="U")
    with pytest.raises(PreconditionError):
        await service.get_media_details("M1")


async def test_media_uses_account_credentials(service, graph, db_session):
    account = seed_account(db_session)
    graph.add("GET", "https://graph.instagram.com/v19.0/U/media", json={"data": [{"id": "M1"}]})
    graph.add("GET", "https://graph.instagram.com/v19.0/M1", json={"id": "M1", "media_type": "IMAGE"})

    media = await service.get_user_media(account=account)
    detail = await service.get_media_details("M1", account=account)

    assert media == {"data": [{"id": "M1"}]}
    assert detail["media_type"] == "IMAGE"
    assert all(r.url.params["access_token"] == "LONG" for r in graph.requests)


async def test_profile_error_returns_none(service, graph):
    graph.add("GET", ME_URL, json={"error": {"message": "expired"}}, status_code=401)
    assert await service.get_profile_info("T") is None


async def test_exchange_for_long_lived_token(service, graph):
    graph.add("GET", EXCHANGE_URL, json={"access_token": "LONG", "token_type": "bearer", "expires_in": 5183944})

    result = await service.exchange_for_long_lived_token("SHORT")

    assert result["access_token"] == "LONG"
    params = graph.requests[0].url.params
    assert params["grant_type"] == "ig_exchange_token"
    assert params["client_secret"] == "ig-secret"
    assert params["access_token"] == "SHORT"


async def test_refresh_rejected_for_young_token(service, graph, db_session):
    seed_account(db_session, token_obtained_at=NOW - timedelta(hours=23))

    assert await service.refresh_long_lived_token("LONG", now=NOW) is None
    assert graph.requests == []


async def test_refresh_rejected_one_second_before_24h(service, graph, db_session):
    seed_account(db_session, token_obtained_at=NOW - timedelta(hours=24) + timedelta(seconds=1))

    assert await service.refresh_long_lived_token("LONG", now=NOW) is None
    assert graph.requests == []


async def test_refresh_allowed_at_exactly_24h(service, graph, db_session):
    seed_account(db_session, token_obtained_at=NOW - timedelta(hours=24))
    graph.add("GET", REFRESH_URL, json={"access_token": "LONG2", "expires_in": 5183944})

    result = await service.refresh_long_lived_token("LONG", now=NOW)

    assert result == {"access_token": "LONG2", "expires_in": 5183944}
    assert len(graph.calls("GET", "/refresh_access_token")) == 1


async def test_refresh_rejected_without_basic_permission(service, graph, db_session):
    seed_account(db_session, permissions="instagram_business_manage_messages")

    assert await service.refresh_long_lived_token("LONG", now=NOW) is None
    assert graph.requests == []


async def test_refresh_rejected_for_unknown_token(service, graph):
    assert await service.refresh_long_lived_token("UNKNOWN", now=NOW) is None
    assert graph.requests == []


async def test_refresh_calls_graph_api_when_allowed(service, graph, db_session):
    seed_account(db_session, permissions=" instagram_business_basic , x")
    graph.add("GET", REFRESH_URL, json={"access_token": "LONG2", "expires_in": 5183944})

    result = await service.refresh_long_lived_token("LONG", now=NOW)

    assert result["access_token"] == "LONG2"
    params = graph.requests[0].url.params
    assert params["grant_type"] == "ig_refresh_token"
    assert params["access_token"] == "LONG"


def test_has_permission_is_exact_and_trimmed(db_session):
    account = seed_account(db_session, permissions="instagram_business_basic_extra, instagram_business_manage_messages ")

    assert InstagramAccountService.has_permission(account, "instagram_business_manage_messages")
    assert InstagramAccountService.has_permission(account, " instagram_business_manage_messages")
    assert not InstagramAccountService.has_permission(account, "instagram_business_basic")


async def test_renew_account_token_replaces_token_and_profile(service, graph, db_session):
    seed_account(db_session)
    graph.add("GET", REFRESH_URL, json={"access_token": "LONG2", "expires_in": 5183944})
    graph.add("GET", ME_URL, json=PROFILE)

    account = await service.renew_account_token("U", now=NOW)

    assert account is not None
    stored = db_session.query(InstagramBusinessAccount).one()
    assert stored.access_token == "LONG2"
    assert stored.permissions == "instagram_business_basic,instagram_business_manage_messages"
    assert stored.token_obtained_at.replace(tzinfo=timezone.utc) == NOW
    assert db_session.query(InstagramProfile).one().username == "shop"


async def test_renew_keeps_old_token_when_profile_fetch_fails(service, graph, db_session):
    seed_account(db_session)
    graph.add("GET", REFRESH_URL, json={"access_token": "LONG2"})
    graph.add("GET", ME_URL, json={"error": {"message": "boom"}}, status_code=400)

    assert await service.renew_account_token("U", now=NOW) is None
    assert db_session.query(InstagramBusinessAccount).one().access_token == "LONG"


async def test_store_long_lived_token(service, graph, db_session):
    seed_account(db_session, access_token="SHORT")
    graph.add("GET", EXCHANGE_URL, json={"access_token": "LONG", "expires_in": 5183944})
    graph.add("GET", ME_URL, json=PROFILE)

    assert await service.store_long_lived_token("U") is not None
    assert db_session.query(InstagramBusinessAccount).one().access_token == "LONG"


def test_link_with_facebook_page(service, db_session):
    seed_account(db_session)

    assert service.link_with_facebook_page("U", "PAGE-1") is True
    assert db_session.query(InstagramBusinessAccount).one().facebook_page_id == "PAGE-1"
    assert service.link_with_facebook_page("missing", "PAGE-1") is False
