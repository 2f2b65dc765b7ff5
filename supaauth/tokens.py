"""
Access Token Verification for SupaAuth

Verifies HS256-signed access tokens against the project's JWT secret without
a round trip to the auth server.

Security:
- Only HS256 is accepted; ``alg: none`` and other algorithms are rejected
- Signature, ``exp`` and ``nbf`` are checked by PyJWT, with optional leeway
- The ``aud`` claim is not checked

Example:
    from supaauth.tokens import verify_access_token, TokenVerificationError

    try:
        claims = verify_access_token(token, os.environ["SUPABASE_JWT_SECRET"])
        user_id = claims["sub"]
    except TokenVerificationError as e:
        return {"error": str(e)}, 401
"""

from enum import Enum
from typing import Any, Dict, Optional

import jwt

from .errors import SupaAuthError


ALGORITHM = "HS256"


class TokenVerificationErrorCode(str, Enum):
    """Error codes for token verification failures."""
    MISSING_TOKEN = "MISSING_TOKEN"
    MISSING_SECRET = "MISSING_SECRET"
    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    UNSUPPORTED_ALGORITHM = "UNSUPPORTED_ALGORITHM"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_NOT_YET_VALID = "TOKEN_NOT_YET_VALID"
    INVALID_TOKEN = "INVALID_TOKEN"


class TokenVerificationError(SupaAuthError):
    """Raised when an access token fails verification."""

    def __init__(self, code: TokenVerificationErrorCode, message: str) -> None:
        super().__init__(code.value, message, 401)
        self.code = code


def decode_unverified(token: str) -> Dict[str, Any]:
    """Decode the claims of a token without checking its signature."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.DecodeError as e:
        raise TokenVerificationError(
            TokenVerificationErrorCode.MALFORMED_TOKEN,
            f"Malformed token: {e}",
        ) from e


def verify_access_token(
    token: Optional[str],
    secret: Optional[str],
    leeway: int = 0,
) -> Dict[str, Any]:
    """
    Verify an HS256 access token.

    Args:
        token: The access token (e.g. ``session.access_token``)
        secret: The project's JWT secret
        leeway: Seconds of clock skew tolerated on ``exp`` and ``nbf``

    Returns:
        The token's claims

    Raises:
        TokenVerificationError: If verification fails
    """
    if not token:
        raise TokenVerificationError(
            TokenVerificationErrorCode.MISSING_TOKEN,
            "Missing access token"
        )

    if not secret:
        raise TokenVerificationError(
            TokenVerificationErrorCode.MISSING_SECRET,
            "Missing JWT secret"
        )

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            leeway=leeway,
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenVerificationError(TokenVerificationErrorCode.TOKEN_EXPIRED, "Token expired") from e
    except jwt.ImmatureSignatureError as e:
        raise TokenVerificationError(
            TokenVerificationErrorCode.TOKEN_NOT_YET_VALID, "Token is not valid yet"
        ) from e
    except jwt.InvalidAlgorithmError as e:
        raise TokenVerificationError(
            TokenVerificationErrorCode.UNSUPPORTED_ALGORITHM, f"Unsupported token algorithm: {e}"
        ) from e
    # InvalidSignatureError subclasses DecodeError; order matters
    except jwt.InvalidSignatureError as e:
        raise TokenVerificationError(
            TokenVerificationErrorCode.SIGNATURE_MISMATCH, "Token signature does not match"
        ) from e
    except jwt.DecodeError as e:
        raise TokenVerificationError(
            TokenVerificationErrorCode.MALFORMED_TOKEN, f"Malformed token: {e}"
        ) from e
    except jwt.InvalidTokenError as e:
        raise TokenVerificationError(
            TokenVerificationErrorCode.INVALID_TOKEN, f"Invalid token: {e}"
        ) from e


def create_test_token(
    claims: Dict[str, Any],
    secret: str,
    algorithm: str = ALGORITHM,
) -> str:
    """
    Create a signed token for testing purposes.

    Args:
        claims: Token payload
        secret: The signing secret (ignored for ``none``)
        algorithm: Signing algorithm

    Returns:
        Encoded token
    """
    key = None if algorithm == "none" else secret
    return jwt.encode(claims, key, algorithm=algorithm)
