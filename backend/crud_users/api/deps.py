from fastapi import Depends, Header, Request
from sqlmodel import Session, SQLModel

from crud_users.auth import extract_bearer_token, verify_token
from crud_users.database import get_session
from crud_users.errors import ApiError
from crud_users.models.user import Role, User
from crud_users.store import UserStore, parse_id


def get_user_store(session: Session = Depends(get_session)) -> UserStore:
    return UserStore(session)


async def get_current_user(
    authorization: str | None = Header(default=None),
    store: UserStore = Depends(get_user_store),
) -> User:
    token = extract_bearer_token(authorization)
    if token is None:
        raise ApiError.unauthorized("You are not logged in. Please log in to get access.")

    payload = verify_token(token)
    if payload is None:
        raise ApiError.unauthorized("Invalid or expired token. Please log in again.")

    try:
        user = store.get(payload["sub"])
    except ApiError:
        user = None
    if user is None:
        raise ApiError.unauthorized("The user belonging to this token no longer exists.")
    if not user.is_active:
        raise ApiError.unauthorized("Your account has been deactivated.")
    return user


def require_roles(*roles: Role):
    allowed = set(roles)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise ApiError.forbidden()
        return user

    return dependency


get_admin_user = require_roles(Role.ADMIN)


def owner_or_admin(model: type[SQLModel], owner_field: str = "user_id", param: str = "id"):
    """Admins pass; everyone else must own the resource named by path ``param``.

    A missing resource, a malformed id and somebody else's resource all look
    the same to the caller.
    """

    async def dependency(
        request: Request,
        user: User = Depends(get_current_user),
        session: Session = Depends(get_session),
    ) -> User:
        if user.role == Role.ADMIN:
            return user
        try:
            resource = session.get(model, parse_id(request.path_params[param]))
        except ApiError:
            resource = None
        if resource is None or getattr(resource, owner_field) != user.id:
            raise ApiError.not_found()
        return user

    return dependency
