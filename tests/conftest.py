from typing import Any, Callable, Dict, List, Tuple
from urllib.parse import urlsplit

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from meta_connect.core.config import FacebookSettings, InstagramSettings, Settings
from meta_connect.models import Base


class GraphStub:
    """httpx.MockTransport handler that answers canned responses per (method, host, path)."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str, str], List[Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, json: Any = None, status_code: int = 200) -> None:
        parts = urlsplit(url)
        self.routes.setdefault((method, parts.netloc, parts.path), []).append((status_code, json))

    def add_handler(self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        parts = urlsplit(url)
        self.routes.setdefault((method, parts.netloc, parts.path), []).append(handler)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.host, request.url.path)
        queue = self.routes.get(key)
        if not queue:
            return httpx.Response(404, json={"error": {"message": f"no stub for {key}"}})
        # 마지막 응답은 계속 재사용
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(entry):
            return entry(request)
        status_code, body = entry
        return httpx.Response(status_code, json=body)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def db_session():
    """테스트용 인메모리 데이터베이스 세션"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite:///:memory:",
        retry_base_delay=0,
        log_colors=False,
        facebook=FacebookSettings(
            client_id="fb-app",
            client_secret="fb-secret",
            redirect_uri="https://app.test/facebook/callback",
            webhook_verify_token="fb-verify",
        ),
        instagram=InstagramSettings(
            client_id="ig-app",
            client_secret="ig-secret",
            redirect_uri="https://app.test/instagram/callback",
            webhook_verify_token="ig-verify",
        ),
    )


@pytest.fixture
def graph():
    return GraphStub()


@pytest.fixture
def http_client(graph):
    return httpx.AsyncClient(transport=httpx.MockTransport(graph))
