from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from crud_users.api.deps import get_admin_user, get_current_user, get_user_store, owner_or_admin
from crud_users.models.user import Role, User
from crud_users.services import accounts
from crud_users.store import UserStore

router = APIRouter(prefix="/users", tags=["users"])

owner_or_admin_user = owner_or_admin(User, owner_field="id", param="user_id")


class ApiModel(BaseModel):
    """JSON bodies use camelCase; Python code uses the snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserFields(ApiModel):
    # Every field is optional here so missing values are reported by the
    # validation rules as a field list rather than rejected by the parser.
    name: str | None = None
    last_name: str | None = None
    mother_last_name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    username: str | None = None
    password: str | None = None


class CreateUserRequest(UserFields):
    role: Role | None = None


class UpdateUserRequest(UserFields):
    role: Role | None = None
    is_active: bool | None = None


class UserResponse(ApiModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    last_name: str
    mother_last_name: str | None
    phone_number: str
    email: str
    username: str
    role: Role
    is_active: bool
    last_login: datetime | None
    created_at: datetime
    updated_at: datetime


def to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    store: UserStore = Depends(get_user_store),
    _admin: User = Depends(get_admin_user),
):
    return [to_response(u) for u in store.list()]


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: CreateUserRequest,
    store: UserStore = Depends(get_user_store),
    _admin: User = Depends(get_admin_user),
):
    user = await accounts.create_account(store, body.model_dump(), role=body.role)
    return to_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return to_response(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    store: UserStore = Depends(get_user_store),
    _user: User = Depends(owner_or_admin_user),
):
    return to_response(accounts.get_account(store, user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    store: UserStore = Depends(get_user_store),
    user: User = Depends(owner_or_admin_user),
):
    changes = body.model_dump(exclude_unset=True)
    updated = await accounts.update_account(store, user_id, changes, actor=user)
    return to_response(updated)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    store: UserStore = Depends(get_user_store),
    _admin: User = Depends(get_admin_user),
):
    accounts.delete_account(store, user_id)
    return {}
