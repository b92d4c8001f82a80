"""Authentication routes."""
from fastapi import APIRouter, Depends

from ...schemas.auth import (
    AuthUser, CapabilitiesResponse, LoginRequest, LoginResult,
    PasswordChangeRequest, RegisterRequest
)
from ...schemas.common import SuccessResponse
from ...core.auth import Authenticator
from ...core.logging import SecurityLogger
from ...core.policy import allowed_routes, capabilities_for
from ...core.security import (
    get_authenticator, get_bearer_token, get_current_user, token_issuer
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResult)
async def login_user(
    login_request: LoginRequest,
    authenticator: Authenticator = Depends(get_authenticator)
):
    """Login user and return a session token."""
    return await authenticator.authenticate(
        login_request.email, login_request.password
    )


@router.post("/register", response_model=AuthUser, status_code=201)
async def register_user(
    register_request: RegisterRequest,
    authenticator: Authenticator = Depends(get_authenticator)
):
    """Register a new account; it stays pending until an admin approves it."""
    return await authenticator.register(register_request)


@router.get("/me", response_model=AuthUser)
async def get_current_user_info(
    current_user: AuthUser = Depends(get_current_user)
):
    """Get current user information."""
    return current_user


@router.get("/capabilities", response_model=CapabilitiesResponse)
async def get_current_capabilities(
    current_user: AuthUser = Depends(get_current_user)
):
    """Capabilities and dashboard routes open to the current user."""
    return CapabilitiesResponse(
        role=current_user.role,
        capabilities=sorted(c.value for c in capabilities_for(current_user.role)),
        routes=allowed_routes(current_user.role),
    )


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(
    password_change: PasswordChangeRequest,
    current_user: AuthUser = Depends(get_current_user),
    authenticator: Authenticator = Depends(get_authenticator)
):
    """Change user password."""
    await authenticator.change_password(
        current_user.id,
        password_change.current_password,
        password_change.new_password,
    )
    return SuccessResponse(message="Password changed successfully")


@router.post("/logout", response_model=SuccessResponse)
async def logout_user(
    token: str = Depends(get_bearer_token),
    current_user: AuthUser = Depends(get_current_user)
):
    """Logout user; the token is revoked until it would have expired."""
    token_issuer.revoke(token)
    SecurityLogger.log_logout(user_id=str(current_user.id))
    return SuccessResponse(message="Logged out successfully")
