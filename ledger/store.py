"""
ledger/store.py -- SQLAlchemy-backed persistence for vehicle sales.

Uses SQLAlchemy Core (not ORM) so the dataclasses in ledger/models.py remain
the authoritative domain representation. The nested vehicle / payment groups
are flattened into plain columns, which lets a partial update write exactly
the columns a caller supplied and nothing else.

Pattern: Repository + Data Mapper, same as auth/store.py.

Usage:
    store = SaleStore("sqlite:///autosales.db")
    sale_id = store.create_sale(sale)
    store.list_sales(seller_id=3)
    store.update_sale(sale_id, status="shipped")
    store.close()
"""

from typing import Optional

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, and_
from sqlalchemy.engine import Engine

from core.db import make_engine, now_iso
from ledger.models import PaymentDetails, VehicleDetails, VehicleSale

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_sales = Table(
    "vehicle_sales",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # vehicleDetails
    Column("make", String(100), nullable=False),
    Column("model", String(100), nullable=False),
    Column("year", Integer, nullable=False),
    Column("vin", String(17), nullable=False),
    Column("price", Float, nullable=False),
    # references (no FK: deleting a user does not cascade)
    Column("customer_id", Integer, nullable=False),
    Column("seller_id", Integer, nullable=False),
    # paymentDetails
    Column("amount_paid", Float, nullable=False),
    Column("amount_due", Float),
    Column("payment_status", String(20), nullable=False, server_default="Pending"),
    Column("currency", String(10), nullable=False),
    # lifecycle
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("estimated_delivery", Text),
    Column("sale_date", String(32), nullable=False),
)

# Flat column names accepted by update_sale().
UPDATABLE_COLUMNS = frozenset(
    {
        "make",
        "model",
        "year",
        "vin",
        "price",
        "customer_id",
        "seller_id",
        "amount_paid",
        "amount_due",
        "payment_status",
        "currency",
        "status",
        "estimated_delivery",
    }
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SaleStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def create_sale(self, sale: VehicleSale) -> int:
        """Insert a sale and return its id. sale_date defaults to now."""
        with self.engine.connect() as conn:
            result = conn.execute(_sales.insert().values(**_sale_to_columns(sale), sale_date=sale.sale_date or now_iso()))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_sale(self, sale_id: int) -> Optional[VehicleSale]:
        with self.engine.connect() as conn:
            row = conn.execute(_sales.select().where(_sales.c.id == sale_id)).fetchone()
        return _row_to_sale(row) if row is not None else None

    def list_sales(self, **filters) -> list[VehicleSale]:
        """Return sales matching all equality filters, newest first."""
        query = _sales.select().order_by(_sales.c.sale_date.desc(), _sales.c.id.desc())
        for key, value in filters.items():
            if key not in _sales.c:
                raise ValueError(f"Unknown sale filter column: {key!r}")
            query = query.where(_sales.c[key] == value)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_sale(r) for r in rows]

    def update_sale(self, sale_id: int, scope: Optional[dict] = None, **columns) -> Optional[VehicleSale]:
        """Overwrite only the given columns of a sale visible under scope.

        Returns None when no row matched the id + scope filter.
        """
        unknown = set(columns) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)!r}")
        clauses = [_sales.c.id == sale_id]
        for key, value in (scope or {}).items():
            if key not in _sales.c:
                raise ValueError(f"Unknown sale scope column: {key!r}")
            clauses.append(_sales.c[key] == value)
        with self.engine.connect() as conn:
            if columns:
                result = conn.execute(_sales.update().where(and_(*clauses)).values(**columns))
                matched = result.rowcount > 0
            else:
                matched = conn.execute(_sales.select().where(and_(*clauses))).fetchone() is not None
            conn.commit()
        return self.get_sale(sale_id) if matched else None

    def delete_sale(self, sale_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_sales.delete().where(_sales.c.id == sale_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def _sale_to_columns(sale: VehicleSale) -> dict:
    return {
        "make": sale.vehicle.make,
        "model": sale.vehicle.model,
        "year": sale.vehicle.year,
        "vin": sale.vehicle.vin,
        "price": sale.vehicle.price,
        "customer_id": sale.customer_id,
        "seller_id": sale.seller_id,
        "amount_paid": sale.payment.amount_paid,
        "amount_due": sale.payment.amount_due,
        "payment_status": sale.payment.payment_status,
        "currency": sale.payment.currency,
        "status": sale.status,
        "estimated_delivery": sale.estimated_delivery,
    }


def _row_to_sale(row) -> VehicleSale:
    return VehicleSale(
        id=row.id,
        vehicle=VehicleDetails(make=row.make, model=row.model, year=row.year, vin=row.vin, price=row.price),
        payment=PaymentDetails(
            amount_paid=row.amount_paid,
            amount_due=row.amount_due,
            payment_status=row.payment_status,
            currency=row.currency,
        ),
        customer_id=row.customer_id,
        seller_id=row.seller_id,
        status=row.status,
        estimated_delivery=row.estimated_delivery,
        sale_date=row.sale_date,
    )
