"""Service layer exports."""

from .accounts import AccountService
from .posting import PostingService
from .social_auth import SocialAuthService
from .token_cipher import TokenCipherService

__all__ = [
    "AccountService",
    "PostingService",
    "SocialAuthService",
    "TokenCipherService",
]
