"""Public schema exports."""

from .auth import AuthorizationUrlResponse, ErrorResponse
from .social import AccountSummary, AccountsResponse, PostResponse

__all__ = [
    "AccountSummary",
    "AccountsResponse",
    "AuthorizationUrlResponse",
    "ErrorResponse",
    "PostResponse",
]
