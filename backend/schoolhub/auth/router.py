"""Authentication endpoints."""

from fastapi import APIRouter, Depends, status

from ..models import User
from ..schemas.user import RegisterRequest, UserOut
from .models import AuthResponse, FederatedLogin, LoginRequest
from .service import AuthService, get_auth_service, get_current_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue(service: AuthService, user: User) -> AuthResponse:
    return AuthResponse(token=service.create_access_token(user), user=UserOut.model_validate(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Register a student, teacher or parent account."""
    user = service.register_user(data)
    return _issue(service, user)


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    user = service.authenticate_user(data.email, data.password)
    return _issue(service, user)


@router.post("/firebase", response_model=AuthResponse)
async def federated_login(data: FederatedLogin, service: AuthService = Depends(get_auth_service)):
    """Sign in with a third-party id-token."""
    user = service.federated_sign_in(data.id_token)
    return _issue(service, user)


@router.post("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    return {"success": True, "data": {}}


@router.get("/me")
async def read_users_me(current_user: User = Depends(get_current_user)):
    """Get the current user's profile."""
    return {"success": True, "data": UserOut.model_validate(current_user).dump()}
