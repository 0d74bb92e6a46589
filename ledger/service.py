"""
ledger/service.py -- Sale ledger service: role- and ownership-scoped sale CRUD.

Policy summary:
  list               admin: all (optional seller filter); employee: own sales
  list_for_customer  composed with sale_scope(); a customer may only ask for
                     their own id
  list_mine          customers only
  create / update    admin + employee; employees only for customers they
                     provisioned and sales they sold
  delete             admin only

Field-level format checks (VIN length, year range, enums, ISO dates,
non-negative amounts) happen in the request models (api/models.py). This
service checks what needs the database: that referenced users exist, hold
the right role, and belong to the calling employee.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from auth.models import Actor, User
from auth.permissions import Action, Role, can, is_staff, require, sale_scope
from auth.store import UserStore
from core.errors import Forbidden, NotFound, ValidationError, field_error
from ledger.models import PaymentDetails, VehicleDetails, VehicleSale
from ledger.store import SaleStore

logger = logging.getLogger("autosales.ledger")

# patch group -> {patch key: (column, wire name reported in errors)}
_VEHICLE_COLUMNS = {key: (key, f"vehicleDetails.{key}") for key in ("make", "model", "year", "vin", "price")}
_PAYMENT_COLUMNS = {
    "amount_paid": ("amount_paid", "paymentDetails.amountPaid"),
    "amount_due": ("amount_due", "paymentDetails.amountDue"),
    "payment_status": ("payment_status", "paymentDetails.paymentStatus"),
    "currency": ("currency", "paymentDetails.currency"),
}
# Columns that may be cleared by sending an explicit null.
_NULLABLE_COLUMNS = frozenset({"amount_due", "estimated_delivery"})


def _iso(value) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class SaleLedger:
    """Sale operations over a SaleStore, resolving references via a UserStore."""

    def __init__(self, sales: SaleStore, users: UserStore) -> None:
        self.sales = sales
        self.users = users

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sales(self, actor: Actor, seller_id: Optional[int] = None) -> list[VehicleSale]:
        require(actor, Action.list_sales)
        filters = sale_scope(actor)
        # Only an unscoped (admin) view may narrow by seller.
        if seller_id is not None and not filters:
            filters["seller_id"] = seller_id
        return self.sales.list_sales(**filters)

    def list_for_customer(self, actor: Actor, customer_id: int) -> list[VehicleSale]:
        require(actor, Action.list_customer_sales)
        if actor.role == Role.customer and customer_id != actor.id:
            raise Forbidden("Access denied")
        filters = sale_scope(actor)
        filters["customer_id"] = customer_id
        return self.sales.list_sales(**filters)

    def list_mine(self, actor: Actor) -> list[VehicleSale]:
        require(actor, Action.list_own_purchases)
        return self.sales.list_sales(customer_id=actor.id)

    def parties(self, sales: list[VehicleSale]) -> dict[int, User]:
        """Resolve the customer and seller of each sale in one query."""
        ids = {s.customer_id for s in sales} | {s.seller_id for s in sales}
        return self.users.get_many(ids)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_sale(
        self,
        actor: Actor,
        vehicle: VehicleDetails,
        customer_id: int,
        payment: PaymentDetails,
        estimated_delivery=None,
    ) -> VehicleSale:
        require(actor, Action.create_sale)

        customer = self.users.get_by_id(customer_id)
        if customer is None:
            raise NotFound("Customer not found")
        if customer.role != Role.customer:
            raise ValidationError.single("customer", "Customer must reference a user with role customer")
        if actor.role == Role.employee and customer.created_by != actor.id:
            raise Forbidden("Access denied: Unauthorized customer")

        sale = VehicleSale(
            vehicle=vehicle,
            payment=payment,
            customer_id=customer.id,
            seller_id=actor.id,
            estimated_delivery=_iso(estimated_delivery),
        )
        sale_id = self.sales.create_sale(sale)
        logger.info("User %d recorded sale %d for customer %d", actor.id, sale_id, customer.id)
        return self.sales.get_sale(sale_id)

    def update_sale(self, actor: Actor, sale_id: int, patch: dict) -> VehicleSale:
        """Partially update a sale.

        patch mirrors the request body in snake_case:
          vehicle_details: {make, model, year, vin, price}
          payment_details: {amount_paid, amount_due, payment_status, currency}
          customer, seller: user ids
          status, estimated_delivery
        Only keys present in the patch are written.
        """
        require(actor, Action.update_sale)

        sale = self.sales.get_sale(sale_id)
        if sale is None:
            raise NotFound("Sale not found")
        if actor.role == Role.employee and sale.seller_id != actor.id:
            raise Forbidden("Access denied")

        columns: dict = {}
        params = {"status": "status", "estimated_delivery": "estimatedDelivery"}
        for group, mapping in (("vehicle_details", _VEHICLE_COLUMNS), ("payment_details", _PAYMENT_COLUMNS)):
            for key, (column, param) in mapping.items():
                if key in (patch.get(group) or {}):
                    columns[column] = patch[group][key]
                    params[column] = param
        if "status" in patch:
            columns["status"] = patch["status"]
        if "estimated_delivery" in patch:
            columns["estimated_delivery"] = _iso(patch["estimated_delivery"])

        errors = [
            field_error(params[column], f"{params[column]} may not be null")
            for column, value in columns.items()
            if value is None and column not in _NULLABLE_COLUMNS
        ]

        if patch.get("seller") is not None:
            if not can(actor.role, Action.reassign_seller):
                raise Forbidden("Access denied: only an admin can reassign the seller")
            seller = self.users.get_by_id(patch["seller"])
            if seller is None or not is_staff(seller.role):
                errors.append(field_error("seller", "Seller must reference an existing admin or employee"))
            else:
                columns["seller_id"] = seller.id

        if patch.get("customer") is not None:
            customer = self.users.get_by_id(patch["customer"])
            if customer is None or customer.role != Role.customer:
                errors.append(field_error("customer", "Customer must reference an existing user with role customer"))
            elif actor.role == Role.employee and customer.created_by != actor.id:
                raise Forbidden("Access denied: Unauthorized customer")
            else:
                columns["customer_id"] = customer.id

        if errors:
            raise ValidationError(errors)

        # Ownership is re-checked inside the UPDATE.
        updated = self.sales.update_sale(sale_id, scope=sale_scope(actor), **columns)
        if updated is None:
            raise NotFound("Sale not found")
        logger.info("User %d updated sale %d (%s)", actor.id, sale_id, ", ".join(sorted(columns)) or "no changes")
        return updated

    def delete_sale(self, actor: Actor, sale_id: int) -> None:
        require(actor, Action.delete_sale)
        if not self.sales.delete_sale(sale_id):
            raise NotFound("Sale not found")
        logger.info("User %d deleted sale %d", actor.id, sale_id)
