"""
Session/credential orchestration: registration, login, refresh-token
rotation, logout and access-token verification.

Access tokens are stateless. Logging out or rotating revokes refresh tokens
only; an access token already handed out stays valid until its short expiry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.user import Role, User
from services.errors import (
    Conflict,
    InvalidAccessToken,
    InvalidCredentials,
    InvalidRefreshToken,
    TokenError,
)
from services.refresh_store import RefreshTokenStore
from utils.security import ACCESS, REFRESH, CredentialHasher, TokenSigner

logger = logging.getLogger(__name__)

# Verified against when the identifier is unknown so both login failures cost one argon2 verify
_DUMMY_PASSWORD = "endlleestube-dummy-password"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class SessionService:
    def __init__(
        self,
        storage,
        hasher: CredentialHasher,
        signer: TokenSigner,
        refresh_store: RefreshTokenStore,
    ):
        self.storage = storage
        self.hasher = hasher
        self.signer = signer
        self.refresh_store = refresh_store
        self._dummy_hash = hasher.hash(_DUMMY_PASSWORD)

    def _issue(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.signer.issue_access_token(user.id, user.username, Role(user.role).value),
            refresh_token=self.signer.issue_refresh_token(user.id),
        )

    def _start_session(self, user: User) -> TokenPair:
        tokens = self._issue(user)
        self.refresh_store.save(user.id, tokens.refresh_token, self.signer.refresh_ttl)
        return tokens

    def register(self, display_name: str, email: str, username: str, password: str) -> Tuple[User, TokenPair]:
        session = self.storage.get_session()
        existing = (
            session.query(User)
            .filter(or_(User.email == email, User.username == username))
            .first()
        )
        if existing:
            raise Conflict()

        user = User(
            display_name=display_name,
            email=email,
            username=username,
            password_hash=self.hasher.hash(password),
            role=Role.ORDINARY,
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError as exc:
            # lost a race against a concurrent registration
            raise Conflict() from exc

        tokens = self._start_session(user)
        logger.info("Registered user %s", user.id)
        return user, tokens

    def login(self, identifier: str, password: str) -> Tuple[User, TokenPair]:
        session = self.storage.get_session()
        user = (
            session.query(User)
            .filter(or_(User.email == identifier, User.username == identifier))
            .first()
        )
        if user is None:
            self.hasher.verify(self._dummy_hash, password)
            logger.info("Login failed: unknown identifier")
            raise InvalidCredentials()
        if not self.hasher.verify(user.password_hash, password):
            logger.info("Login failed for user %s", user.id)
            raise InvalidCredentials()

        tokens = self._start_session(user)
        logger.info("User %s logged in", user.id)
        return user, tokens

    def refresh(self, raw_refresh_token: str) -> TokenPair:
        if not raw_refresh_token:
            raise InvalidRefreshToken()
        try:
            claims = self.signer.verify(raw_refresh_token, REFRESH)
        except TokenError as exc:
            logger.info("Refresh rejected: %s", exc)
            raise InvalidRefreshToken() from exc

        record = self.refresh_store.find_by_raw_token(raw_refresh_token)
        if record is None or record.user_id != claims["sub"]:
            raise InvalidRefreshToken()
        if self.refresh_store.is_expired(record):
            raise InvalidRefreshToken()

        user = self.storage.get(User, record.user_id)
        if user is None:
            raise InvalidRefreshToken()

        tokens = self._issue(user)
        if not self.refresh_store.rotate(record.id, user.id, tokens.refresh_token, self.signer.refresh_ttl):
            logger.warning("Refresh token for user %s was already consumed", user.id)
            raise InvalidRefreshToken()
        return tokens

    def logout(self, raw_refresh_token: str | None) -> None:
        if not raw_refresh_token:
            return
        try:
            deleted = self.refresh_store.delete_all_by_raw_token(raw_refresh_token)
        except SQLAlchemyError:
            logger.exception("Failed to delete refresh token on logout")
            return
        logger.debug("Logout removed %d refresh session(s)", deleted)

    def verify_access_token(self, raw_access_token: str) -> Dict[str, Any]:
        if not raw_access_token:
            raise InvalidAccessToken()
        try:
            return self.signer.verify(raw_access_token, ACCESS)
        except TokenError as exc:
            raise InvalidAccessToken() from exc
