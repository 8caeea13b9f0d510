"""
Authentication API endpoints.
"""

from fastapi import APIRouter, Depends, status

from ..models import RefreshTokenRequest, SigninRequest, SignupRequest
from ..services import AuthService
from ..utils.auth import get_auth_service

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user.

    Returns the access token, the refresh token and a short user summary.
    """
    result = await auth_service.signup(body.email, body.password)
    return result.to_response("User registered successfully")


@router.post("/signin")
async def signin(
    body: SigninRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Sign in with email and password."""
    result = await auth_service.signin(body.email, body.password)
    return result.to_response("Login successful")


@router.post("/refresh-token")
async def refresh_token(
    body: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Exchange a refresh token for a new access token."""
    tokens = await auth_service.refresh_access_token(body.refresh_token)
    return {
        "success": True,
        "message": "Token refreshed successfully",
        "tokens": tokens,
    }
