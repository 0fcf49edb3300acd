"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (separate secrets for access and refresh tokens)
- HMAC-SHA256 lookup hash for persisted refresh tokens
- JTI generation for token identifiers
"""
from __future__ import annotations

import hashlib
import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    pass


class ExpiredToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID)."""
    return str(uuid.uuid4())


class CredentialHasher:
    """One-way password hashing with argon2id."""

    def __init__(
        self,
        time_cost: Optional[int] = None,
        memory_cost: Optional[int] = None,
        parallelism: Optional[int] = None,
    ):
        params = {
            "time_cost": time_cost,
            "memory_cost": memory_cost,
            "parallelism": parallelism,
        }
        self._ph = PasswordHasher(**{k: v for k, v in params.items() if v is not None})

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password using Argon2 (fresh salt each call)."""
        return self._ph.hash(plaintext)

    def verify(self, digest: str, plaintext: str) -> bool:
        """Verify a plaintext password; a mismatch or a malformed digest returns False."""
        try:
            return self._ph.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False


class TokenSigner:
    """
    Issues and verifies signed, time-limited bearer tokens.

    Access tokens carry enough claims (account id, username, role) for
    authorization checks without a database round trip. Refresh tokens
    carry the account id only; their ``jti`` just keeps them unique.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        issuer: str = "endlleestube-api",
        clock: Callable[[], datetime] = utcnow,
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("access and refresh secrets are required")
        if access_secret == refresh_secret:
            raise ValueError("access and refresh tokens must use distinct secrets")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.issuer = issuer
        self._clock = clock

    def _encode(self, which: str, ttl: timedelta, claims: Dict[str, Any]) -> str:
        now = self._clock()
        payload = {
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "type": which,
            "jti": generate_jti(),
            **claims,
        }
        return jwt.encode(payload, self._secrets[which], algorithm=self.algorithm)

    def issue_access_token(self, account_id: str, username: str, role: str) -> str:
        return self._encode(
            ACCESS,
            self.access_ttl,
            {"sub": str(account_id), "username": username, "role": role},
        )

    def issue_refresh_token(self, account_id: str) -> str:
        return self._encode(REFRESH, self.refresh_ttl, {"sub": str(account_id)})

    def verify(self, token: str, which: str = ACCESS) -> Dict[str, Any]:
        """
        Decode and validate a JWT against the secret for its class.
        Raises InvalidSignature for bad signature/shape/type and ExpiredToken
        once the clock reaches ``exp``.
        """
        if which not in self._secrets:
            raise ValueError(f"unknown token class: {which}")
        try:
            decoded = jwt.decode(
                token,
                self._secrets[which],
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "iat", "sub"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignature(f"Invalid token: {exc}") from exc

        if decoded.get("type") != which:
            raise InvalidSignature("Wrong token type")
        # exp is checked here so the boundary instant is already expired
        if int(self._clock().timestamp()) >= int(decoded["exp"]):
            raise ExpiredToken("Token expired")
        return decoded


def refresh_token_digest(raw_token: str, key: str) -> str:
    """Deterministic keyed hash used as the refresh token lookup key."""
    return hmac.new(key.encode("utf-8"), raw_token.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_ip(ip: str) -> str:
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()
