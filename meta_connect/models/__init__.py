from .base import Base
from .facebook_page import FacebookPage
from .instagram_account import InstagramBusinessAccount
from .instagram_profile import InstagramProfile
from .oauth_state import OAuthService, OAuthState

__all__ = [
    "Base",
    "FacebookPage",
    "InstagramBusinessAccount",
    "InstagramProfile",
    "OAuthService",
    "OAuthState",
]
