from .base import (
    FacebookPageRepository,
    InstagramAccountRepository,
    InstagramProfileRepository,
    OAuthStateRepository,
)
from .orm import (
    SqlAlchemyFacebookPageRepository,
    SqlAlchemyInstagramAccountRepository,
    SqlAlchemyInstagramProfileRepository,
    SqlAlchemyOAuthStateRepository,
)

__all__ = [
    "FacebookPageRepository",
    "InstagramAccountRepository",
    "InstagramProfileRepository",
    "OAuthStateRepository",
    "SqlAlchemyFacebookPageRepository",
    "SqlAlchemyInstagramAccountRepository",
    "SqlAlchemyInstagramProfileRepository",
    "SqlAlchemyOAuthStateRepository",
]
