"""
ledger/models.py -- Domain dataclasses for the vehicle sale ledger.

Pure data containers. The nested groups mirror the wire shape
(vehicleDetails / paymentDetails); ledger/store.py flattens them into
columns and back.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SaleStatus(str, Enum):
    pending = "pending"
    in_progress = "in progress"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    paid = "Paid"
    pending = "Pending"


@dataclass
class VehicleDetails:
    make: str
    model: str
    year: int
    vin: str
    price: float


@dataclass
class PaymentDetails:
    amount_paid: float
    currency: str
    amount_due: Optional[float] = None
    payment_status: str = PaymentStatus.pending.value


@dataclass
class VehicleSale:
    """One vehicle sale.

    seller_id references the admin or employee who recorded the sale;
    customer_id references a customer-role user. Neither is a foreign key:
    deleting a user leaves the sale in place with a dangling reference.

    id is None before the record is written to the database.
    """

    vehicle: VehicleDetails
    payment: PaymentDetails
    customer_id: int
    seller_id: int
    status: str = SaleStatus.pending.value
    estimated_delivery: Optional[str] = None  # ISO 8601
    sale_date: str = ""  # ISO 8601, set by store on insert when empty
    id: Optional[int] = None
