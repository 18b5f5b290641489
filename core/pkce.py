"""PKCE primitives — random verifier, SHA-256 and base64url encoding.

See RFC 7636.  Pure functions, no I/O.
"""

from __future__ import annotations

import hashlib
import secrets
from base64 import urlsafe_b64encode

from core.models import PkceChallenge

# Letters and digits only, so the verifier survives any URL / storage layer.
_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

VERIFIER_LENGTH = 64


def generate_random_string(length: int = VERIFIER_LENGTH) -> str:
    """Random string of *length* characters drawn from ``[A-Za-z0-9]``."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def sha256(text: str) -> bytes:
    return hashlib.sha256(text.encode("ascii")).digest()


def base64url_encode(data: bytes) -> str:
    """URL-safe base64 without padding (no ``+``, ``/`` or ``=``)."""
    return urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_challenge(verifier: str) -> str:
    """S256 code challenge = BASE64URL(SHA256(verifier))."""
    return base64url_encode(sha256(verifier))


def generate_pkce_pair(length: int = VERIFIER_LENGTH) -> PkceChallenge:
    verifier = generate_random_string(length)
    return PkceChallenge(
        code_verifier=verifier,
        code_challenge=generate_code_challenge(verifier),
    )
