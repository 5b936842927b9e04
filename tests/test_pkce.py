try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import re

from app.clients.pkce import (
    VERIFIER_LENGTH,
    generate_challenge,
    generate_pkce_pair,
    generate_verifier,
)


def test_verifier_is_43_alphanumeric_characters() -> None:
    for _ in range(50):
        verifier = generate_verifier()
        assert len(verifier) == VERIFIER_LENGTH == 43
        assert re.fullmatch(r"[A-Za-z0-9]{43}", verifier)


def test_verifiers_are_not_reused() -> None:
    assert len({generate_verifier() for _ in range(20)}) == 20


def test_challenge_matches_rfc7636_example() -> None:
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert generate_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_challenge_is_deterministic_and_unpadded() -> None:
    pair = generate_pkce_pair()
    assert pair.challenge == generate_challenge(pair.verifier)
    assert "=" not in pair.challenge
    assert re.fullmatch(r"[A-Za-z0-9_-]{43}", pair.challenge)
