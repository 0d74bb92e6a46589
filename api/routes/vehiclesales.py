"""
api/routes/vehiclesales.py -- Vehicle sale endpoints (gated).

Routes (in registration order -- /customer and /create must be registered
before /{user_id} so FastAPI does not capture them as ids):
  GET    /api/vehiclesales                 -- scoped list (?seller= for admins)
  GET    /api/vehiclesales/customer        -- the calling customer's purchases
  POST   /api/vehiclesales/create          -- record a sale (caller is seller)
  GET    /api/vehiclesales/{user_id}       -- sales for one customer
  PUT    /api/vehiclesales/{sale_id}       -- partial update
  DELETE /api/vehiclesales/{sale_id}       -- admin only
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from api.dependencies import get_ledger
from api.models import MessageResponse, SaleCreateRequest, SalePatchRequest, SaleResponse
from auth.dependencies import get_current_actor
from auth.models import Actor
from ledger.models import PaymentDetails, VehicleDetails, VehicleSale
from ledger.service import SaleLedger

router = APIRouter(dependencies=[Depends(get_current_actor)])


def _render(ledger: SaleLedger, sales: list[VehicleSale]) -> list[SaleResponse]:
    users = ledger.parties(sales)
    return [SaleResponse.from_sale(s, users) for s in sales]


@router.get("", response_model=list[SaleResponse])
def list_sales(
    seller: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    ledger: SaleLedger = Depends(get_ledger),
) -> list[SaleResponse]:
    """Admins see every sale (optionally for one seller); employees see their own."""
    return _render(ledger, ledger.list_sales(actor, seller_id=seller))


@router.get("/customer", response_model=list[SaleResponse])
def list_my_purchases(
    actor: Actor = Depends(get_current_actor),
    ledger: SaleLedger = Depends(get_ledger),
) -> list[SaleResponse]:
    return _render(ledger, ledger.list_mine(actor))


@router.post("/create", response_model=SaleResponse, status_code=201)
def create_sale(
    body: SaleCreateRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: SaleLedger = Depends(get_ledger),
) -> SaleResponse:
    v, p = body.vehicle_details, body.payment_details
    sale = ledger.create_sale(
        actor,
        vehicle=VehicleDetails(make=v.make, model=v.model, year=v.year, vin=v.vin, price=v.price),
        customer_id=body.customer,
        payment=PaymentDetails(
            amount_paid=p.amount_paid,
            amount_due=p.amount_due,
            payment_status=p.payment_status.value,
            currency=p.currency,
        ),
        estimated_delivery=body.estimated_delivery,
    )
    return _render(ledger, [sale])[0]


@router.get("/{user_id}", response_model=list[SaleResponse])
def list_customer_sales(
    user_id: int,
    actor: Actor = Depends(get_current_actor),
    ledger: SaleLedger = Depends(get_ledger),
) -> list[SaleResponse]:
    return _render(ledger, ledger.list_for_customer(actor, user_id))


@router.put("/{sale_id}", response_model=SaleResponse)
def update_sale(
    sale_id: int,
    body: SalePatchRequest,
    actor: Actor = Depends(get_current_actor),
    ledger: SaleLedger = Depends(get_ledger),
) -> SaleResponse:
    """Overwrite only the fields present in the body."""
    patch = body.model_dump(mode="json", exclude_unset=True)
    sale = ledger.update_sale(actor, sale_id, patch)
    return _render(ledger, [sale])[0]


@router.delete("/{sale_id}", response_model=MessageResponse)
def delete_sale(
    sale_id: int,
    actor: Actor = Depends(get_current_actor),
    ledger: SaleLedger = Depends(get_ledger),
) -> MessageResponse:
    ledger.delete_sale(actor, sale_id)
    return MessageResponse(msg="Sale deleted successfully")
