"""Member repository - the identity service's accounts as stored locally."""

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import LendingValidationError, UserNotFound
from ..models.member import Member as MemberModel
from ..models.member import Role
from .schema import Member as MemberDB
from .schema import RoleEnum
from .session import safe_query


class MemberCreateSchema(BaseModel):
    """Schema for registering a member."""

    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    name: str = Field(..., min_length=1, max_length=200)
    role: Role = Role.USER
    is_blacklisted: bool = False


class MemberRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, data: MemberCreateSchema) -> MemberModel:
        member = MemberDB(
            email=data.email,
            name=data.name,
            role=RoleEnum(data.role.value),
            is_blacklisted=data.is_blacklisted,
        )
        self.session.add(member)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise LendingValidationError(f"Member with email {data.email} already exists") from e
        return self._to_model(member)

    def get(self, user_id: int) -> MemberModel | None:
        member = self._get_row(user_id)
        return self._to_model(member) if member is not None else None

    def set_blacklisted(self, user_id: int, is_blacklisted: bool) -> MemberModel:
        """Mirror a blacklist change made by the identity service."""
        member = self._get_row(user_id)
        if member is None:
            raise UserNotFound(f"User {user_id} not found")
        member.is_blacklisted = is_blacklisted
        safe_query(self.session, lambda s: s.flush(), "Failed to update member")
        return self._to_model(member)

    def _get_row(self, user_id: int) -> MemberDB | None:
        return safe_query(
            self.session,
            lambda s: s.execute(
                select(MemberDB).where(MemberDB.id == user_id)
            ).scalar_one_or_none(),
            "Failed to get member",
        )

    @staticmethod
    def _to_model(member: MemberDB) -> MemberModel:
        return MemberModel(
            id=member.id,
            email=member.email,
            name=member.name,
            role=Role(member.role.value),
            is_blacklisted=member.is_blacklisted,
            created_at=member.created_at,
        )
