"""Account and login session endpoints."""

from fastapi import APIRouter, status

from todoboard.api.dependencies import CurrentUserDep, PersistenceStoreDep, TokenDep
from todoboard.api.models import (
    APIResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=APIResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(request: RegisterRequest, store: PersistenceStoreDep) -> APIResponse[UserResponse]:
    """Create an account."""
    user = store.create_user(request.email, request.password)
    return APIResponse(data=UserResponse.model_validate(user))


@router.post("/login", response_model=APIResponse[LoginResponse])
def login(request: LoginRequest, store: PersistenceStoreDep) -> APIResponse[LoginResponse]:
    """Exchange credentials for a bearer token."""
    user = store.authenticate(request.email, request.password)
    token = store.create_session(user.id)
    return APIResponse(data=LoginResponse(token=token, user=UserResponse.model_validate(user)))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(token: TokenDep, store: PersistenceStoreDep) -> None:
    """Invalidate the current bearer token."""
    store.delete_session(token)


@router.get("/me", response_model=APIResponse[UserResponse])
def me(user: CurrentUserDep) -> APIResponse[UserResponse]:
    """Get the account owning the bearer token."""
    return APIResponse(data=UserResponse.model_validate(user))
