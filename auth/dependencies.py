"""
auth/dependencies.py -- FastAPI Depends() helpers: the access control gate.

get_current_actor() is the gate in front of every protected route:
  1. Read the token from the x-auth-token header (401 if absent).
  2. Verify it with the TokenCodec stored on app.state (401 on any failure).
  3. Reload the user from the UserStore (401 if the account no longer exists).
  4. Reject suspended and pending accounts (403) using the *stored* status,
     so a suspension takes effect on the very next request rather than when
     the token expires.

The returned Actor carries the stored role, not the role claimed in the
token, for the same reason.

The gate only establishes who is calling. Per-resource decisions (role
capabilities, ownership) belong to the services.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.models import Actor
from auth.permissions import Status
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.errors import Forbidden, Unauthenticated

logger = logging.getLogger("autosales.auth")

TOKEN_HEADER = "x-auth-token"


def authenticate(token: str | None, codec: TokenCodec, user_store: UserStore) -> Actor:
    """Resolve a raw header value to an active Actor or raise.

    Kept free of Request so it can be exercised without an ASGI stack.
    """
    if not token:
        raise Unauthenticated("No token, authorization denied")

    claims = codec.verify_access(token)
    if claims is None:
        raise Unauthenticated("Token is not valid")

    user = user_store.get_by_id(claims["user_id"])
    if user is None:
        raise Unauthenticated("Token is not valid")

    if user.status == Status.suspended:
        logger.info("Rejected request from suspended user %d", user.id)
        raise Forbidden("Your account is suspended. Contact admin.")
    if user.status == Status.pending:
        raise Forbidden("Your account is awaiting approval. Please wait for admin approval.")

    return Actor.from_user(user)


def get_current_actor(request: Request) -> Actor:
    """Require an authenticated, active caller.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(actor: Actor = Depends(get_current_actor)): ...
    """
    return authenticate(
        request.headers.get(TOKEN_HEADER),
        request.app.state.codec,
        request.app.state.user_store,
    )
