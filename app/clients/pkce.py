"""
Proof Key for Code Exchange (RFC 7636) helpers.
"""

from __future__ import annotations

import base64
import re
import secrets
from hashlib import sha256

from app.models.oauth import PKCEPair

VERIFIER_LENGTH = 43
_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def generate_verifier() -> str:
    """Return a 43 character verifier drawn from ``[A-Za-z0-9]``."""
    verifier = ""
    while len(verifier) < VERIFIER_LENGTH:
        chunk = secrets.token_urlsafe(32)
        verifier += _NON_ALPHANUMERIC.sub("", chunk)
    return verifier[:VERIFIER_LENGTH]


def generate_challenge(verifier: str) -> str:
    """base64url(SHA-256(verifier)) without padding."""
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce_pair() -> PKCEPair:
    verifier = generate_verifier()
    return PKCEPair(verifier=verifier, challenge=generate_challenge(verifier))


__all__ = ["VERIFIER_LENGTH", "generate_challenge", "generate_pkce_pair", "generate_verifier"]
