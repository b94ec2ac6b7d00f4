"""User repository for identity lookups and credential checks."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from tokenvault.models.user import User
from tokenvault.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles JWT or session creation — only DB-level identity access.
    """

    model = User

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a user by email and password.

        Activity is not checked here; the caller decides how to treat
        deactivated identities.

        :returns: Matching user or ``None`` when credentials fail.
        :rtype: User | None
        """
        user = self.get_by_email(email)
        if not user or not user.verify_password(password):
            return None
        return user
