"""
Bearer identity extraction. The subject (`sub` claim) scopes every cache read and write,
so it is only trusted after a TokenVerifier has accepted the token.
"""
import base64
import binascii
import json
import logging
from typing import Protocol

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt

from app.config import AuthMode, Settings
from app.services.errors import (
    InvalidCredentialError,
    MalformedCredentialError,
    MissingCredentialError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


class TokenVerifier(Protocol):
    def verify(self, token: str) -> str:
        """Return the subject of a valid token or raise UnauthorizedError."""
        ...


def _subject_from_claims(claims: object) -> str:
    if not isinstance(claims, dict):
        raise MalformedCredentialError("Token payload is not a JSON object")
    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise MalformedCredentialError("Token has no subject")
    return sub


class JoseTokenVerifier:
    """Checks signature and expiry (plus audience/issuer when configured) with python-jose."""

    def __init__(
        self,
        key: str,
        algorithms: list[str],
        audience: str | None = None,
        issuer: str | None = None,
    ):
        self._key = key
        self._algorithms = algorithms
        self._audience = audience or None
        self._issuer = issuer or None

    def verify(self, token: str) -> str:
        try:
            claims = jwt.decode(
                token,
                self._key,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                options={"verify_aud": self._audience is not None, "require_exp": True},
            )
        except JWTError as e:
            raise InvalidCredentialError(f"Invalid or expired token: {e}") from e
        return _subject_from_claims(claims)


class UnverifiedTokenDecoder:
    """
    DEV/TEST ONLY. Reads `sub` from the payload segment without checking the signature,
    so any caller can claim any subject. Selected by AUTH_MODE=unverified-dev.
    """

    def __init__(self):
        logger.warning(
            "Bearer tokens are NOT verified (auth_mode=unverified-dev). Never run this mode in production."
        )

    def verify(self, token: str) -> str:
        segments = token.split(".")
        if len(segments) != 3:
            raise MalformedCredentialError("Token must have three dot-separated segments")
        payload_segment = segments[1]
        try:
            # JWT segments are base64url without padding
            padded = payload_segment + "=" * (-len(payload_segment) % 4)
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            claims = json.loads(raw)
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise MalformedCredentialError("Token payload is not valid base64url JSON") from e
        return _subject_from_claims(claims)


def build_token_verifier(settings: Settings) -> TokenVerifier:
    if settings.auth_mode == AuthMode.UNVERIFIED_DEV:
        return UnverifiedTokenDecoder()
    if not settings.secret_key:
        raise RuntimeError("SECRET_KEY must be set when AUTH_MODE=verified")
    return JoseTokenVerifier(
        settings.secret_key,
        [settings.algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )


def parse_bearer(authorization: str | None) -> str:
    """Token from an `Authorization: Bearer <token>` header value."""
    if not authorization:
        raise MissingCredentialError("Authorization header required")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise MissingCredentialError("Invalid authorization header format")
    return parts[1]


def extract_subject(authorization: str | None, verifier: TokenVerifier) -> str:
    token = parse_bearer(authorization)
    if len(token.split(".")) != 3:
        raise MalformedCredentialError("Token must have three dot-separated segments")
    return verifier.verify(token)


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_current_subject(
    authorization: str | None = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str:
    """Dependency for read endpoints: authenticated subject or 401."""
    try:
        return extract_subject(authorization, verifier)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
