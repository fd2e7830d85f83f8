"""
PKCE (Proof Key for Code Exchange) utilities for OAuth security.

PKCE is an extension to the Authorization Code flow to prevent
authorization code interception attacks. It's used for public
clients (like CLI apps) that cannot securely store a client secret.

The CSRF ``state`` token is generated here too, but independently of the
verifier: a leaked verifier must not reveal the state and vice versa.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from .constants import PkceProtocol


@dataclass(frozen=True)
class PkceCodes:
    """PKCE code verifier and challenge pair.

    Attributes:
        code_verifier: Cryptographically random string (43-128 chars)
        code_challenge: Base64url-encoded SHA256 hash of verifier
        code_challenge_method: Always "S256"
    """

    code_verifier: str
    code_challenge: str
    code_challenge_method: str = PkceProtocol.CODE_CHALLENGE_METHOD


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_verifier() -> str:
    """Generate a PKCE code verifier.

    32 bytes from the OS CSPRNG, base64url-encoded without padding,
    which yields 43 characters (the RFC 7636 minimum).
    """
    return _b64url(secrets.token_bytes(PkceProtocol.CODE_VERIFIER_BYTES))


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for ``verifier``.

    Deterministic: the same verifier always yields the same challenge.

    Raises:
        UnicodeEncodeError: If the verifier is not ASCII
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return _b64url(digest)


def generate_state() -> str:
    """Generate an opaque CSRF state token with the same entropy as the verifier."""
    return _b64url(secrets.token_bytes(PkceProtocol.STATE_BYTES))


def generate_pkce() -> PkceCodes:
    """Generate a fresh verifier and its challenge.

    Example:
        >>> pkce = generate_pkce()
        >>> derive_challenge(pkce.code_verifier) == pkce.code_challenge
        True
    """
    verifier = generate_verifier()
    return PkceCodes(code_verifier=verifier, code_challenge=derive_challenge(verifier))


__all__ = [
    "PkceCodes",
    "generate_verifier",
    "derive_challenge",
    "generate_state",
    "generate_pkce",
]
