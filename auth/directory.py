"""
auth/directory.py -- User directory service: accounts, login, lifecycle.

UserDirectory holds the business rules for user records and is the only
caller of UserStore besides the gate. Route handlers build one per request
from app.state and translate nothing: every failure is a core.errors
exception mapped to HTTP in api/main.py.

Authorization pattern for targeted operations (approve, suspend, update,
delete): require() the capability, then pass user_scope(actor) to the store
so the ownership filter and the write happen in one statement. A target the
actor may not see is indistinguishable from a missing one -- both are
NotFound, so an employee cannot discover accounts they did not provision.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError

from auth.models import Actor, User
from auth.permissions import Action, Role, Status, creatable_roles, is_staff, require, user_scope
from auth.store import UserStore
from auth.tokens import TokenCodec, hash_password, verify_password
from core.errors import (
    Conflict,
    Forbidden,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFound,
    ValidationError,
    field_error,
)

logger = logging.getLogger("autosales.directory")

MIN_PASSWORD_LENGTH = 6


def _check_password(password: str, param: str = "password") -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError.single(param, f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


class UserDirectory:
    """Directory operations over a UserStore.

    Usage:
        directory = UserDirectory(user_store, codec, frontend_url="http://localhost:3000")
        directory.register("Ann", "ann@example.com", "secret1", "5550001111")
    """

    def __init__(self, store: UserStore, codec: TokenCodec, frontend_url: str = "") -> None:
        self.store = store
        self.codec = codec
        self.frontend_url = frontend_url.rstrip("/")

    # ------------------------------------------------------------------
    # Public (ungated) operations
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, phone: str) -> User:
        """Self-registration. Always a pending customer with no creator."""
        _check_password(password)
        return self._insert(
            User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                phone=phone,
                role=Role.customer.value,
                status=Status.pending.value,
                created_by=None,
            )
        )

    def login(self, email: str, password: str) -> tuple[str, User]:
        """Check credentials and status; return (token, user)."""
        user = self.store.get_by_email(email)
        if user is None:
            raise NotFound("User not found")
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials("Invalid credentials")
        if user.status == Status.suspended:
            raise Forbidden("Your account has been suspended.")
        if user.status == Status.pending:
            raise Forbidden("Your account is awaiting admin approval.")

        token = self.codec.issue_access(user.id, user.role)
        logger.info("User %d logged in", user.id)
        return token, user

    def request_password_reset(self, email: str) -> str:
        """Issue and store a reset token; the link is logged, not mailed."""
        user = self.store.get_by_email(email)
        if user is None:
            raise NotFound("User not found")

        token = self.codec.issue_reset(user.id)
        expiry = datetime.now(timezone.utc) + timedelta(seconds=self.codec.reset_ttl)
        self.store.set_reset_token(user.id, token, expiry.isoformat())
        logger.info("Password reset link: %s/reset-password/%s", self.frontend_url, token)
        return token

    def reset_password(self, token: str, new_password: str) -> None:
        claims = self.codec.verify_reset(token)
        if claims is None:
            raise InvalidOrExpiredToken()
        user = self.store.get_by_id(claims["user_id"])
        if user is None or user.reset_token != token or not user.reset_token_expiry:
            raise InvalidOrExpiredToken()
        if datetime.fromisoformat(user.reset_token_expiry) < datetime.now(timezone.utc):
            raise InvalidOrExpiredToken()
        _check_password(new_password)

        self.store.complete_password_reset(user.id, hash_password(new_password))
        logger.info("Password reset completed for user %d", user.id)

    # ------------------------------------------------------------------
    # Gated operations
    # ------------------------------------------------------------------

    def list_users(self, actor: Actor) -> list[User]:
        require(actor, Action.list_users)
        return self.store.list_users(**user_scope(actor))

    def creators_of(self, users: list[User]) -> dict[int, User]:
        """Resolve created_by references for a page of users."""
        return self.store.get_many({u.created_by for u in users if u.created_by is not None})

    def create_user(self, actor: Actor, name: str, email: str, password: str, role: str, phone: str) -> User:
        """Provision an active account owned by the calling staff member."""
        require(actor, Action.create_user)
        if role not in creatable_roles(actor.role):
            raise ValidationError.single("role", "Invalid role specified")
        _check_password(password)
        created = self._insert(
            User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                phone=phone,
                role=role,
                status=Status.active.value,
                created_by=actor.id,
            )
        )
        logger.info("User %d created user %d with role %s", actor.id, created.id, role)
        return created

    def approve(self, actor: Actor, user_id: int) -> User:
        require(actor, Action.approve_user)
        return self._set_status(actor, user_id, Status.active)

    def suspend(self, actor: Actor, user_id: int) -> User:
        require(actor, Action.suspend_user)
        if user_id == actor.id:
            raise ValidationError.single("id", "You cannot suspend your own account", location="params")
        return self._set_status(actor, user_id, Status.suspended)

    def update_user(self, actor: Actor, user_id: int, patch: dict) -> User:
        """Apply a partial update to a user the actor may see.

        patch keys: name, email, phone, password, role, status. Keys absent
        from the patch keep their stored values.
        """
        require(actor, Action.update_user)
        fields = {k: v for k, v in patch.items() if v is not None}
        for key in ("role", "status"):
            if key in fields:
                fields[key] = str(getattr(fields[key], "value", fields[key]))

        errors = []
        if "role" in fields:
            errors.extend(self._role_change_errors(actor, user_id, fields["role"]))
        if "password" in fields and len(fields["password"]) < MIN_PASSWORD_LENGTH:
            errors.append(field_error("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"))
        if user_id == actor.id and fields.get("status") == Status.suspended:
            errors.append(field_error("status", "You cannot suspend your own account"))
        if errors:
            raise ValidationError(errors)

        if "password" in fields:
            fields["password_hash"] = hash_password(fields.pop("password"))

        try:
            updated = self.store.update_user(user_id, scope=user_scope(actor), **fields)
        except IntegrityError as exc:
            raise Conflict("User already exists") from exc
        if updated is None:
            raise NotFound("User not found")
        return updated

    def delete_user(self, actor: Actor, user_id: int) -> None:
        require(actor, Action.delete_user)
        if user_id == actor.id:
            raise ValidationError.single("id", "You cannot delete your own account", location="params")
        if not self.store.delete_user(user_id, scope=user_scope(actor)):
            raise NotFound("User not found")
        logger.info("User %d deleted user %d", actor.id, user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _insert(self, user: User) -> User:
        if self.store.get_by_email(user.email) is not None:
            raise Conflict("User already exists")
        try:
            user_id = self.store.create_user(user)
        except IntegrityError as exc:
            raise Conflict("User already exists") from exc
        return self.store.get_by_id(user_id)

    def _role_change_errors(self, actor: Actor, user_id: int, role: str) -> list[dict]:
        """Check a role patch against the stored role of a visible target.

        Sales and createdBy links assume staff stay staff and customers stay
        customers, so a role may only change within its side of that line.
        """
        if role not in creatable_roles(actor.role):
            return [field_error("role", "Invalid role specified")]
        visible = self.store.list_users(id=user_id, **user_scope(actor))
        if not visible:
            raise NotFound("User not found")
        current = visible[0].role
        if role == current:
            return []
        if user_id == actor.id:
            return [field_error("role", "You cannot change your own role")]
        if is_staff(role) != is_staff(current):
            return [field_error("role", "Role cannot change between staff and customer")]
        return []

    def _set_status(self, actor: Actor, user_id: int, status: Status) -> User:
        updated = self.store.update_user(user_id, scope=user_scope(actor), status=status.value)
        if updated is None:
            raise NotFound("User not found")
        logger.info("User %d set status of user %d to %s", actor.id, user_id, status.value)
        return updated
