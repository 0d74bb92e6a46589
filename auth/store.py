"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Services and route
code never touch SQL directly.

Ownership scoping: the mutating methods accept a `scope` dict of equality
filters (see auth.permissions.user_scope). The scope is folded into the WHERE
clause of a single UPDATE/DELETE, so the ownership check and the write are
one atomic statement.

Security:
  All queries use bound parameters. Scope keys are checked against the table's
  columns before use.

Layer rule: no imports from api/ or ledger/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, and_
from sqlalchemy.engine import Engine

from auth.models import User
from core.db import make_engine, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("phone", String(32), nullable=False),
    Column("role", String(20), nullable=False, server_default="customer"),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("created_by", Integer),  # NULL for self-registered accounts
    Column("reset_token", Text),
    Column("reset_token_expiry", String(32)),
    Column("created_at", String(32), nullable=False),
)

# Columns a caller may change through update_user(). id / created_by /
# created_at are fixed at insert time.
_MUTABLE_FIELDS = frozenset({"name", "email", "password_hash", "phone", "role", "status"})


def _scoped(user_id: int, scope: dict | None):
    clauses = [_users.c.id == user_id]
    for key, value in (scope or {}).items():
        if key not in _users.c:
            raise ValueError(f"Unknown user scope column: {key!r}")
        clauses.append(_users.c[key] == value)
    return and_(*clauses)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///autosales.db")
        uid = store.create_user(User(name="Ann", email="ann@example.com", password_hash=h, phone="5550001111"))
        user = store.get_by_email("ann@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        The directory service checks first and treats a late IntegrityError
        as the same Conflict (a concurrent registration won the race).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    name=user.name,
                    email=user.email.lower(),
                    password_hash=user.password_hash,
                    phone=user.phone,
                    role=user.role,
                    status=user.status,
                    created_by=user.created_by,
                    created_at=now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email. Emails are stored lowercase."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_many(self, user_ids: set[int]) -> dict[int, User]:
        """Batch lookup used to populate references. Missing ids are omitted."""
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.id.in_(sorted(user_ids)))).fetchall()
        return {row.id: _row_to_user(row) for row in rows}

    def list_users(self, **filters) -> list[User]:
        """Return users matching all equality filters, ordered by id."""
        query = _users.select().order_by(_users.c.id)
        for key, value in filters.items():
            if key not in _users.c:
                raise ValueError(f"Unknown user filter column: {key!r}")
            query = query.where(_users.c[key] == value)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_user(r) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_user(self, user_id: int, scope: dict | None = None, **fields) -> User | None:
        """Atomically update a user visible under scope.

        Returns the updated User, or None when no row matched the id + scope
        filter (absent, or owned by someone else -- callers cannot tell which).
        Raises IntegrityError if an email change collides with another account.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)!r}")
        if "email" in fields:
            fields["email"] = fields["email"].lower()
        where = _scoped(user_id, scope)
        with self.engine.connect() as conn:
            if fields:
                result = conn.execute(_users.update().where(where).values(**fields))
                matched = result.rowcount > 0
            else:
                matched = conn.execute(_users.select().where(where)).fetchone() is not None
            conn.commit()
        return self.get_by_id(user_id) if matched else None

    def delete_user(self, user_id: int, scope: dict | None = None) -> bool:
        """Permanently delete a user. Returns False if no row matched.

        Sales referencing the user are left in place (no cascade).
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_scoped(user_id, scope)))
            conn.commit()
        return result.rowcount > 0

    def set_reset_token(self, user_id: int, token: str, expiry_iso: str) -> None:
        with self.engine.connect() as conn:
            conn.execute(
                _users.update().where(_users.c.id == user_id).values(reset_token=token, reset_token_expiry=expiry_iso)
            )
            conn.commit()

    def complete_password_reset(self, user_id: int, password_hash: str) -> None:
        """Store the new hash and clear the reset token and its expiry."""
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user_id)
                .values(password_hash=password_hash, reset_token=None, reset_token_expiry=None)
            )
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        phone=row.phone,
        role=row.role,
        status=row.status,
        created_by=row.created_by,
        reset_token=row.reset_token,
        reset_token_expiry=row.reset_token_expiry,
        created_at=row.created_at,
    )
