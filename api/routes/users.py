"""
api/routes/users.py -- User management endpoints (gated).

Routes (in registration order to avoid path capture conflicts):
  GET    /api/users               -- list users visible to the caller
  POST   /api/users/create        -- provision an active account
  PUT    /api/users/approve/{id}  -- status -> active
  PUT    /api/users/suspend/{id}  -- status -> suspended
  PUT    /api/users/{id}          -- partial update
  DELETE /api/users/{id}          -- admin only

Auth policy: every route requires the gate (router-level dependency). Role
and ownership checks are made by UserDirectory; a user the caller may not
manage answers 404, the same as a missing one.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_directory
from api.models import MessageResponse, UserCreateRequest, UserPatchRequest, UserResponse
from auth.dependencies import get_current_actor
from auth.directory import UserDirectory
from auth.models import Actor

router = APIRouter(dependencies=[Depends(get_current_actor)])


@router.get("", response_model=list[UserResponse])
def list_users(
    actor: Actor = Depends(get_current_actor),
    directory: UserDirectory = Depends(get_directory),
) -> list[UserResponse]:
    """Admins see every account; employees see the accounts they created."""
    users = directory.list_users(actor)
    creators = directory.creators_of(users)
    return [UserResponse.from_user(u, creators) for u in users]


@router.post("/create", response_model=UserResponse, status_code=201)
def create_user(
    body: UserCreateRequest,
    actor: Actor = Depends(get_current_actor),
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    """Create an active account. Employees may only create customers."""
    created = directory.create_user(actor, body.name, body.email, body.password, body.role, body.phone)
    return UserResponse.from_user(created, directory.creators_of([created]))


@router.put("/approve/{user_id}", response_model=MessageResponse)
def approve_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    directory: UserDirectory = Depends(get_directory),
) -> MessageResponse:
    directory.approve(actor, user_id)
    return MessageResponse(msg="User approved successfully")


@router.put("/suspend/{user_id}", response_model=MessageResponse)
def suspend_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    directory: UserDirectory = Depends(get_directory),
) -> MessageResponse:
    directory.suspend(actor, user_id)
    return MessageResponse(msg="User suspended successfully")


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UserPatchRequest,
    actor: Actor = Depends(get_current_actor),
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    updated = directory.update_user(actor, user_id, body.model_dump(exclude_unset=True))
    return UserResponse.from_user(updated, directory.creators_of([updated]))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    directory: UserDirectory = Depends(get_directory),
) -> MessageResponse:
    directory.delete_user(actor, user_id)
    return MessageResponse(msg="User deleted")
