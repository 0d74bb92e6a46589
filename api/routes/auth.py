"""
api/routes/auth.py -- Public account endpoints.

Routes:
  POST /api/auth/register               -- self-registration (pending customer)
  POST /api/auth/login                  -- credentials -> token + user summary
  POST /api/auth/forgot-password        -- issue reset token (link is logged)
  POST /api/auth/reset-password/{token} -- set a new password

None of these pass through the access control gate.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_directory
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    LoginUser,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
)
from auth.directory import UserDirectory

router = APIRouter()


@router.post("/register", response_model=MessageResponse, status_code=201)
def register(body: RegisterRequest, directory: UserDirectory = Depends(get_directory)) -> MessageResponse:
    """Create a pending customer account. Staff must approve it before login."""
    directory.register(body.name, body.email, body.password, body.phone)
    return MessageResponse(msg="User registered successfully. Awaiting admin approval.")


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, directory: UserDirectory = Depends(get_directory)) -> JSONResponse:
    """Authenticate with email and password.

    Pending and suspended accounts are refused even with the right password.
    """
    token, user = directory.login(body.email, body.password)
    resp = JSONResponse(
        content=LoginResponse(
            token=token,
            user=LoginUser(id=user.id, name=user.name, email=user.email, role=user.role),
        ).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(body: ForgotPasswordRequest, directory: UserDirectory = Depends(get_directory)) -> MessageResponse:
    directory.request_password_reset(body.email)
    return MessageResponse(msg="Password reset link has been sent to your email")


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password(
    token: str,
    body: ResetPasswordRequest,
    directory: UserDirectory = Depends(get_directory),
) -> MessageResponse:
    directory.reset_password(token, body.password)
    return MessageResponse(msg="Password has been reset successfully")
