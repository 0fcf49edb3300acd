"""
Server-side record of issued refresh tokens.

Rows are keyed by an HMAC of the raw token, so presenting the raw token is
enough to find its row while the database never holds the token itself.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.base_model import utc_naive
from models.refresh_token import RefreshToken
from utils.security import refresh_token_digest, utcnow

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    def __init__(self, storage, hash_key: str, clock: Callable[[], datetime] = utcnow):
        if not hash_key:
            raise ValueError("a refresh token hash key is required")
        self._storage = storage
        self._hash_key = hash_key
        self._clock = clock

    def _session(self):
        return self._storage.get_session()

    def digest(self, raw_token: str) -> str:
        return refresh_token_digest(raw_token, self._hash_key)

    def _new_record(self, account_id: str, raw_token: str, ttl: timedelta) -> RefreshToken:
        return RefreshToken(
            user_id=str(account_id),
            token_hash=self.digest(raw_token),
            expires_at=utc_naive(self._clock() + ttl),
        )

    def save(self, account_id: str, raw_token: str, ttl: timedelta) -> RefreshToken:
        record = self._new_record(account_id, raw_token, ttl)
        self._storage.new(record)
        self._storage.save()
        return record

    def find_by_raw_token(self, raw_token: str) -> Optional[RefreshToken]:
        return (
            self._session()
            .query(RefreshToken)
            .filter(RefreshToken.token_hash == self.digest(raw_token))
            .first()
        )

    def is_expired(self, record: RefreshToken) -> bool:
        return utc_naive(record.expires_at) <= utc_naive(self._clock())

    def delete_by_id(self, record_id: str) -> int:
        deleted = (
            self._session()
            .query(RefreshToken)
            .filter(RefreshToken.id == record_id)
            .delete(synchronize_session=False)
        )
        self._storage.save()
        return deleted

    def delete_all_by_raw_token(self, raw_token: str) -> int:
        deleted = (
            self._session()
            .query(RefreshToken)
            .filter(RefreshToken.token_hash == self.digest(raw_token))
            .delete(synchronize_session=False)
        )
        self._storage.save()
        return deleted

    def rotate(self, old_id: str, account_id: str, new_raw_token: str, ttl: timedelta) -> bool:
        """
        Replace a consumed row with a new one in a single commit.

        Returns False (and writes nothing) when the consumed row is already
        gone, i.e. another request rotated the same token first.
        """
        session = self._session()
        try:
            deleted = (
                session.query(RefreshToken)
                .filter(RefreshToken.id == old_id)
                .delete(synchronize_session=False)
            )
            if deleted != 1:
                session.rollback()
                return False
            session.add(self._new_record(account_id, new_raw_token, ttl))
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Refresh token rotation failed for user %s", account_id)
            raise
        return True
