import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, or_, select

from crud_users.errors import ApiError, UNIQUE_FIELDS
from crud_users.models.user import User


def parse_id(value: str) -> str:
    """Normalize a user id, raising an INVALID_ID error if it is malformed."""
    try:
        return uuid.UUID(str(value)).hex
    except ValueError:
        raise ApiError.invalid_id(value)


class UserStore:
    """Owns every read and write of user records."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> User | None:
        return self.session.get(User, parse_id(user_id))

    def list(self) -> list[User]:
        return list(
            self.session.exec(select(User).order_by(col(User.created_at).desc())).all()
        )

    def find_by_identifier(self, identifier: str) -> User | None:
        return self.session.exec(
            select(User).where(
                or_(User.email == identifier, User.username == identifier)
            )
        ).first()

    def find_conflict(
        self,
        *,
        email: str | None = None,
        username: str | None = None,
        phone_number: str | None = None,
        exclude_id: str | None = None,
    ) -> str | None:
        """Return the API name of the first unique field already taken, if any."""
        wanted = {
            "phone_number": phone_number,
            "email": email,
            "username": username,
        }
        for column, field in UNIQUE_FIELDS.items():
            value = wanted[column]
            if value is None:
                continue
            stmt = select(User.id).where(getattr(User, column) == value)
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            if self.session.exec(stmt).first() is not None:
                return field
        return None

    def save(self, user: User) -> User:
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        self.session.refresh(user)
        return user

    def delete(self, user: User) -> None:
        self.session.delete(user)
        self.session.commit()
