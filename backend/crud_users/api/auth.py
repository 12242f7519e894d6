from fastapi import APIRouter, Depends
from pydantic import BaseModel

from crud_users.api.deps import get_current_user, get_user_store
from crud_users.api.users import ApiModel, UserFields, UserResponse, to_response
from crud_users.models.user import User
from crud_users.services import accounts
from crud_users.store import UserStore

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(UserFields):
    pass


class LoginRequest(BaseModel):
    identifier: str | None = None
    password: str | None = None


class AuthResponse(ApiModel):
    user: UserResponse
    token: str


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, store: UserStore = Depends(get_user_store)):
    user, token = await accounts.register(store, body.model_dump())
    return AuthResponse(user=to_response(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, store: UserStore = Depends(get_user_store)):
    user, token = await accounts.login(store, body.identifier, body.password)
    return AuthResponse(user=to_response(user), token=token)


@router.post("/logout")
async def logout(_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy.
    return {"detail": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return to_response(user)
