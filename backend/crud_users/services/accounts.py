"""Account operations.

Each function receives the :class:`UserStore` it works against, so handlers
and tests decide which storage is used. Inputs are plain dicts keyed by model
attribute name, already reduced to the fields the client actually sent.
"""

import logging

from fastapi.concurrency import run_in_threadpool

from crud_users.auth import create_access_token, hash_password, verify_password
from crud_users.errors import ApiError
from crud_users.models.user import Role, User, utcnow
from crud_users.store import UserStore
from crud_users.validation import validate_full, validate_login, validate_partial

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
PROFILE_FIELDS = (
    "name",
    "last_name",
    "mother_last_name",
    "phone_number",
    "email",
    "username",
)
ADMIN_ONLY_FIELDS = ("role", "is_active")


def _ensure_unique(store: UserStore, data: dict, exclude_id: str | None = None) -> None:
    field = store.find_conflict(
        email=data.get("email"),
        username=data.get("username"),
        phone_number=data.get("phone_number"),
        exclude_id=exclude_id,
    )
    if field is not None:
        raise ApiError.conflict(field)


async def create_account(store: UserStore, data: dict, role: Role | None = None) -> User:
    errors = validate_full(data)
    if errors:
        raise ApiError.validation(errors)
    _ensure_unique(store, data)

    password_hash = await run_in_threadpool(hash_password, data["password"])
    user = User(
        **{f: data.get(f) for f in PROFILE_FIELDS},
        password_hash=password_hash,
        role=role or Role.USER,
    )
    return store.save(user)


async def register(store: UserStore, data: dict) -> tuple[User, str]:
    user = await create_account(store, data)
    logger.info("Registered user %s", user.id)
    return user, create_access_token(user.id)


async def login(store: UserStore, identifier: str | None, password: str | None) -> tuple[User, str]:
    errors = validate_login({"identifier": identifier, "password": password})
    if errors:
        raise ApiError.validation(errors)

    user = store.find_by_identifier(identifier)
    if user is None:
        raise ApiError.unauthorized(INVALID_CREDENTIALS)
    if not await run_in_threadpool(verify_password, password, user.password_hash):
        raise ApiError.unauthorized(INVALID_CREDENTIALS)
    if not user.is_active:
        raise ApiError.unauthorized("Your account has been deactivated")

    user.last_login = utcnow()
    store.save(user)
    logger.info("User %s logged in", user.id)
    return user, create_access_token(user.id)


def get_account(store: UserStore, user_id: str) -> User:
    user = store.get(user_id)
    if user is None:
        raise ApiError.not_found("User not found")
    return user


async def update_account(store: UserStore, user_id: str, changes: dict, actor: User) -> User:
    """Apply only the keys present in ``changes``; everything else is untouched."""
    user = get_account(store, user_id)

    if actor.role != Role.ADMIN and any(f in changes for f in ADMIN_ONLY_FIELDS):
        raise ApiError.forbidden("Only administrators can change role or status")

    errors = validate_partial(changes)
    for attr, field in (("role", "role"), ("is_active", "isActive")):
        if attr in changes and changes[attr] is None:
            errors.append({"field": field, "message": f"The {field} cannot be empty"})
    if errors:
        raise ApiError.validation(errors)
    _ensure_unique(store, changes, exclude_id=user.id)

    for field in PROFILE_FIELDS + ADMIN_ONLY_FIELDS:
        if field in changes:
            setattr(user, field, changes[field])
    if "password" in changes:
        user.password_hash = await run_in_threadpool(hash_password, changes["password"])
    return store.save(user)


def delete_account(store: UserStore, user_id: str) -> None:
    user = get_account(store, user_id)
    store.delete(user)
    logger.info("Deleted user %s", user_id)
