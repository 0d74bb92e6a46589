"""
auth/models.py -- Domain dataclasses for user accounts.

Pure data containers with zero logic. The directory service and the store do
the work; api/models.py owns the wire representation.

Layer rule: no imports from api/ or ledger/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A stored user account.

    created_by is None for self-registered accounts and holds the provisioning
    staff member's id otherwise. reset_token / reset_token_expiry are only set
    between a forgot-password request and the matching reset.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    password_hash: str
    phone: str
    role: str = "customer"  # "admin" | "employee" | "customer"
    status: str = "pending"  # "pending" | "active" | "suspended"
    created_by: int | None = None
    reset_token: str | None = None
    reset_token_expiry: str | None = None  # ISO 8601
    created_at: str = ""  # ISO 8601, set by store on insert
    id: int | None = None


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, built from a freshly loaded User record."""

    id: int
    role: str
    status: str
    name: str = ""
    email: str = ""

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role, status=user.status, name=user.name, email=user.email)
