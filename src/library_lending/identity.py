"""
Identity collaborator interface.

Authentication and blacklist administration live outside the lending core.
The core only needs to ask, for an already-authenticated user id, whether
that user may borrow.
"""

from abc import ABC, abstractmethod

from .database.member_repository import MemberRepository
from .database.session import DatabaseManager
from .errors import UserNotFound


class IdentityProvider(ABC):
    """What the lending core needs from the identity service."""

    @abstractmethod
    def is_blacklisted(self, user_id: int) -> bool:
        """
        Return the user's blacklist flag.

        Raises:
            UserNotFound: If the identity service does not know the user
        """


class MemberDirectory(IdentityProvider):
    """Identity provider backed by the local ``members`` table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def is_blacklisted(self, user_id: int) -> bool:
        # Own short read; no lock outlives this call
        with self.db_manager.session_scope() as session:
            member = MemberRepository(session).get(user_id)
        if member is None:
            raise UserNotFound(f"User {user_id} not found")
        return member.is_blacklisted
