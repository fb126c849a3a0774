"""
Refresh token ledger: the server-side record of which refresh tokens are live.

A signed JWT cannot be revoked by its signature alone, so a refresh token is
only honoured while its row exists here. Rows are inserted and deleted, never
updated; rotation is delete-old plus insert-new inside one transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from models.refresh_token import RefreshToken
from utils.errors import AuthError, ErrorKind

logger = logging.getLogger(__name__)


class RefreshTokenLedger:
    def __init__(self, storage):
        self._storage = storage

    def store(self, user_id: int, token: str, expires_at: datetime) -> RefreshToken:
        """Insert a record. A duplicate token string raises IntegrityError."""
        record = RefreshToken(user_id=user_id, token=token, expires_at=expires_at)
        with self._storage.transaction() as session:
            session.add(record)
            session.flush()
        return record

    def find_by_token(self, token: str) -> Optional[RefreshToken]:
        with self._storage.transaction() as session:
            return session.query(RefreshToken).filter(RefreshToken.token == token).first()

    def delete_by_token(self, token: str) -> int:
        with self._storage.transaction() as session:
            return (
                session.query(RefreshToken)
                .filter(RefreshToken.token == token)
                .delete()
            )

    def delete_by_id(self, record_id: int) -> int:
        with self._storage.transaction() as session:
            return (
                session.query(RefreshToken)
                .filter(RefreshToken.id == record_id)
                .delete()
            )

    def rotate(self, record_id: int, user_id: int, new_token: str, expires_at: datetime) -> RefreshToken:
        """
        Replace record `record_id` with a new one for `new_token`, atomically.

        If the old row is already gone another request rotated or revoked it
        first; nothing is written and INVALID_TOKEN is raised.
        """
        with self._storage.transaction():
            if not self.delete_by_id(record_id):
                logger.warning("Refresh token %s was consumed concurrently", record_id)
                raise AuthError(ErrorKind.INVALID_TOKEN, "Invalid refresh token")
            return self.store(user_id, new_token, expires_at)
