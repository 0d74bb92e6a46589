"""
auth/permissions.py -- Role capability table and ownership visibility rules.

Every authorization decision in the services goes through this module:

  require(actor, action)   -- role check against CAPABILITIES, raises Forbidden
  creatable_roles(role)    -- which roles an actor may provision or assign
  user_scope(actor)        -- equality filter restricting visible user records
  sale_scope(actor)        -- equality filter restricting visible sale records

Scopes are plain dicts of column -> value so they can be unit tested without a
database and merged into any store query (see UserStore / SaleStore).
An empty dict means "no restriction".

Layer rule: imports only core/ and auth/models.
"""

from __future__ import annotations

from enum import Enum

from auth.models import Actor
from core.errors import Forbidden


class Role(str, Enum):
    admin = "admin"
    employee = "employee"
    customer = "customer"


class Status(str, Enum):
    pending = "pending"
    active = "active"
    suspended = "suspended"


class Action(str, Enum):
    list_users = "users:list"
    create_user = "users:create"
    approve_user = "users:approve"
    suspend_user = "users:suspend"
    update_user = "users:update"
    delete_user = "users:delete"

    list_sales = "sales:list"
    list_customer_sales = "sales:list_customer"
    list_own_purchases = "sales:list_mine"
    create_sale = "sales:create"
    update_sale = "sales:update"
    reassign_seller = "sales:reassign_seller"
    delete_sale = "sales:delete"


STAFF_ROLES = frozenset({Role.admin, Role.employee})

CAPABILITIES: dict[Role, frozenset[Action]] = {
    # "My purchases" only makes sense for a buyer.
    Role.admin: frozenset(Action) - {Action.list_own_purchases},
    Role.employee: frozenset(
        {
            Action.list_users,
            Action.create_user,
            Action.approve_user,
            Action.suspend_user,
            Action.update_user,
            Action.list_sales,
            Action.list_customer_sales,
            Action.create_sale,
            Action.update_sale,
        }
    ),
    Role.customer: frozenset({Action.list_customer_sales, Action.list_own_purchases}),
}

_CREATABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.admin: frozenset(Role),
    Role.employee: frozenset({Role.customer}),
    Role.customer: frozenset(),
}


def _role(value: str) -> Role | None:
    try:
        return Role(value)
    except ValueError:
        return None


def can(role: str, action: Action) -> bool:
    """Return True if the given role holds the capability for action."""
    r = _role(role)
    return r is not None and action in CAPABILITIES[r]


def require(actor: Actor, action: Action) -> None:
    """Raise Forbidden unless actor's role holds the capability for action."""
    if not can(actor.role, action):
        raise Forbidden("Access denied")


def is_staff(role: str) -> bool:
    return _role(role) in STAFF_ROLES


def creatable_roles(role: str) -> frozenset[str]:
    """Role values an actor with the given role may create or assign."""
    r = _role(role)
    if r is None:
        return frozenset()
    return frozenset(c.value for c in _CREATABLE_ROLES[r])


def user_scope(actor: Actor) -> dict:
    """Visibility predicate over user records.

    admin    -> everything
    employee -> only accounts the employee provisioned
    other    -> nothing; callers reject customers with require() first
    """
    if actor.role == Role.admin:
        return {}
    if actor.role == Role.employee:
        return {"created_by": actor.id}
    raise Forbidden("Access denied")


def sale_scope(actor: Actor) -> dict:
    """Visibility predicate over vehicle sale records.

    admin    -> everything
    employee -> sales the employee sold
    customer -> sales the customer bought
    """
    if actor.role == Role.admin:
        return {}
    if actor.role == Role.employee:
        return {"seller_id": actor.id}
    if actor.role == Role.customer:
        return {"customer_id": actor.id}
    raise Forbidden("Access denied")
