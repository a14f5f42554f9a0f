from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic import ConfigDict


class FacebookSettings(BaseSettings):
    """Facebook Graph API / Meta OAuth 설정 (FACEBOOK_*)"""
    model_config = ConfigDict(env_prefix="FACEBOOK_", extra="ignore")

    api_base_url: str = Field(default="https://graph.facebook.com")
    api_version: str = Field(default="v19.0")
    api_timeout: float = Field(default=30, description="Graph API 요청 타임아웃 (초)")
    api_retry_attempts: int = Field(default=3, ge=1, description="첫 시도를 포함한 최대 시도 횟수")

    webhook_verify_token: str | None = Field(default="default_token")

    # Meta OAuth
    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None
    dialog_base_url: str = Field(default="https://www.facebook.com")


class InstagramSettings(BaseSettings):
    """Instagram Graph API / Instagram Business Login 설정 (INSTAGRAM_*)"""
    model_config = ConfigDict(env_prefix="INSTAGRAM_", extra="ignore")

    # OAuth 토큰 교환용 호스트 (버전 세그먼트 없음)
    oauth_base_url: str = Field(default="https://api.instagram.com")
    graph_base_url: str = Field(default="https://graph.instagram.com")
    authorize_url: str = Field(default="https://www.instagram.com/oauth/authorize")

    api_version: str = Field(default="v19.0")
    api_timeout: float = Field(default=30, description="Graph API 요청 타임아웃 (초)")
    api_retry_attempts: int = Field(default=3, ge=1, description="첫 시도를 포함한 최대 시도 횟수")

    webhook_verify_token: str | None = Field(default="default_token")

    # Meta OAuth
    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str | None = None


class Settings(BaseSettings):
    model_config = ConfigDict(env_prefix="METACONNECT_", extra="ignore")
    app_name: str = Field(default="Meta Connect Backend")
    app_version: str = Field(default="0.1.0")

    database_url: str | None = None
    log_level: str = Field(default="INFO")
    log_colors: bool = Field(default=True)

    # OAuth state (CSRF 보호)
    oauth_state_ttl_minutes: int = Field(default=10, ge=1, description="OAuth state 유효 시간 (분)")
    require_oauth_state: bool = Field(default=False, description="콜백에서 state 누락 시 거부 여부")

    # Graph API 재시도 백오프 기본 지연 (초)
    retry_base_delay: float = Field(default=0.5, ge=0)

    facebook: FacebookSettings = Field(default_factory=FacebookSettings)
    instagram: InstagramSettings = Field(default_factory=InstagramSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
