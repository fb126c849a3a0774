"""
Credential store: lookups and writes for User rows.

Writes only add and flush; committing is left to the outermost
`storage.transaction()` so a caller can group several writes.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from models.user import Role, User
from utils.errors import AuthError, ErrorKind

UPDATABLE_FIELDS = ("name", "email", "is_active", "role")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    def __init__(self, storage):
        self._storage = storage

    def get(self, user_id: int) -> Optional[User]:
        return self._storage.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        # emails are stored lower-cased, so the unique index serves this lookup
        with self._storage.transaction() as session:
            return session.query(User).filter(User.email == normalize_email(email)).first()

    def list(
        self,
        page: int,
        limit: int,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Tuple[List[User], int]:
        """Page through users, optionally matching `search` against name or email."""
        with self._storage.transaction() as session:
            query = session.query(User)
            if search:
                pattern = f"%{search.strip().lower()}%"
                query = query.filter(or_(func.lower(User.name).like(pattern), User.email.like(pattern)))
            if is_active is not None:
                query = query.filter(User.is_active.is_(is_active))
            total = query.count()
            rows = query.order_by(User.id.asc()).offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def create(self, name: str, email: str, password_hash: str, role: Role = Role.USER) -> User:
        """Insert a user; losing a race on the unique email raises DUPLICATE_EMAIL."""
        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            is_active=True,
        )
        try:
            with self._storage.transaction() as session:
                session.add(user)
                session.flush()
        except IntegrityError as exc:
            raise AuthError(ErrorKind.DUPLICATE_EMAIL) from exc
        return user

    def update(self, user_id: int, **changes) -> User:
        """
        Apply `changes` (name, email, is_active, role) to a user.

        Raises USER_NOT_FOUND for an unknown id and DUPLICATE_EMAIL when the new
        email belongs to someone else.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if changes.get("email") is not None:
            changes["email"] = normalize_email(changes["email"])
        if changes.get("name") is not None:
            changes["name"] = changes["name"].strip()

        try:
            with self._storage.transaction() as session:
                user = session.get(User, user_id)
                if user is None:
                    raise AuthError(ErrorKind.USER_NOT_FOUND)
                if "email" in changes and changes["email"] != user.email:
                    taken = session.query(User.id).filter(User.email == changes["email"]).first()
                    if taken is not None:
                        raise AuthError(ErrorKind.DUPLICATE_EMAIL)
                for field, value in changes.items():
                    setattr(user, field, value)
                session.flush()
        except IntegrityError as exc:
            raise AuthError(ErrorKind.DUPLICATE_EMAIL) from exc
        return user

    def delete(self, user_id: int) -> bool:
        """Delete a user; their refresh tokens go with them (ON DELETE CASCADE)."""
        with self._storage.transaction() as session:
            user = session.get(User, user_id)
            if user is None:
                return False
            session.delete(user)
        return True
