"""
API request and response models for the AutoSales REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
ledger/models.py, which own the internal domain representation. Route
handlers map between the two.

Wire fields are camelCase (vehicleDetails, amountPaid, createdBy, ...).
Every model uses the to_camel alias generator with populate_by_name so the
Python side stays snake_case.

Format rules live here (email shape, phone digits, password length, VIN
length, year range, non-negative money, enum membership, ISO-8601 dates).
Failures surface as 400 {"errors": [...]} through the RequestValidationError
handler in api/main.py.
"""

import re
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from auth.permissions import Status
from ledger.models import PaymentStatus, SaleStatus, VehicleSale

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"\d{10}")
MIN_VEHICLE_YEAR = 1900
VIN_MIN_LENGTH = 11
VIN_MAX_LENGTH = 17

# Passwords are taken exactly as sent, whitespace included.
Password = Annotated[str, StringConstraints(strip_whitespace=False, min_length=6, max_length=72)]
LoginPassword = Annotated[str, StringConstraints(strip_whitespace=False, min_length=1, max_length=72)]


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# ---------------------------------------------------------------------------
# Shared validators
# ---------------------------------------------------------------------------


def _check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please include a valid email")
    return value.lower()


def _check_phone(value: str) -> str:
    if not PHONE_PATTERN.search(value):
        raise ValueError(f"{value} is not a valid phone number!")
    return value


def _check_year(value: int) -> int:
    current = datetime.now().year
    if not MIN_VEHICLE_YEAR <= value <= current:
        raise ValueError(f"Year must be between {MIN_VEHICLE_YEAR} and {current}")
    return value


def _not_null(value):
    # Runs only when the client sent the key; omitted keys keep their default.
    if value is None:
        raise ValueError("Field may not be null")
    return value


# ---------------------------------------------------------------------------
# Auth requests
# ---------------------------------------------------------------------------


class RegisterRequest(_Model):
    """Request body for POST /api/auth/register. Any submitted role is ignored."""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255)
    password: Password
    phone: str = Field(max_length=32)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, value: str) -> str:
        return _check_phone(value)


class LoginRequest(_Model):
    email: str = Field(max_length=255)
    password: LoginPassword

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        return _check_email(value)


class ForgotPasswordRequest(_Model):
    email: str = Field(max_length=255)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        return _check_email(value)


class ResetPasswordRequest(_Model):
    password: Password


# ---------------------------------------------------------------------------
# User management requests
# ---------------------------------------------------------------------------


class UserCreateRequest(_Model):
    """Request body for POST /api/users/create.

    role is a free string: whether the caller may grant it is decided by the
    directory service, which answers "Invalid role specified".
    """

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255)
    password: Password
    role: str = Field(default="customer", max_length=20)
    phone: str = Field(max_length=32)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, value: str) -> str:
        return _check_phone(value)


class UserPatchRequest(_Model):
    """Request body for PUT /api/users/{id}. Omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=32)
    password: Optional[Password] = None
    role: Optional[str] = Field(default=None, max_length=20)
    status: Optional[Status] = None

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value) if value is not None else value

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone(value) if value is not None else value


# ---------------------------------------------------------------------------
# Vehicle sale requests
# ---------------------------------------------------------------------------


class VehicleDetailsIn(_Model):
    make: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    year: int
    vin: str = Field(min_length=VIN_MIN_LENGTH, max_length=VIN_MAX_LENGTH)
    price: float = Field(ge=0)

    @field_validator("year")
    @classmethod
    def year_range(cls, value: int) -> int:
        return _check_year(value)


class PaymentDetailsIn(_Model):
    amount_paid: float = Field(ge=0)
    amount_due: Optional[float] = Field(default=None, ge=0)
    payment_status: PaymentStatus = PaymentStatus.pending
    currency: str = Field(min_length=1, max_length=10)


class SaleCreateRequest(_Model):
    """Request body for POST /api/vehiclesales/create. seller is always the caller."""

    vehicle_details: VehicleDetailsIn
    customer: int
    payment_details: PaymentDetailsIn
    estimated_delivery: Optional[datetime] = None


class VehicleDetailsPatch(_Model):
    make: Optional[str] = Field(default=None, min_length=1, max_length=100)
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    year: Optional[int] = None
    vin: Optional[str] = Field(default=None, min_length=VIN_MIN_LENGTH, max_length=VIN_MAX_LENGTH)
    price: Optional[float] = Field(default=None, ge=0)

    @field_validator("make", "model", "year", "vin", "price", mode="before")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)

    @field_validator("year")
    @classmethod
    def year_range(cls, value: Optional[int]) -> Optional[int]:
        return _check_year(value) if value is not None else value


class PaymentDetailsPatch(_Model):
    amount_paid: Optional[float] = Field(default=None, ge=0)
    amount_due: Optional[float] = Field(default=None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    currency: Optional[str] = Field(default=None, min_length=1, max_length=10)

    @field_validator("amount_paid", "payment_status", "currency", mode="before")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class SalePatchRequest(_Model):
    """Request body for PUT /api/vehiclesales/{id}.

    Nested groups merge field by field: {"paymentDetails": {"amountPaid": 500}}
    changes amountPaid and nothing else.
    """

    vehicle_details: Optional[VehicleDetailsPatch] = None
    payment_details: Optional[PaymentDetailsPatch] = None
    customer: Optional[int] = None
    seller: Optional[int] = None
    status: Optional[SaleStatus] = None
    estimated_delivery: Optional[datetime] = None

    @field_validator("customer", "seller", "status", mode="before")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class MessageResponse(_Model):
    msg: str


class HealthResponse(_Model):
    status: str = "ok"
    version: str


class UserRef(_Model):
    """Populated reference to another user (createdBy, seller)."""

    id: int
    name: str
    email: str

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["UserRef"]:
        if user is None:
            return None
        return cls(id=user.id, name=user.name, email=user.email)


class CustomerRef(UserRef):
    phone: str

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["CustomerRef"]:
        if user is None:
            return None
        return cls(id=user.id, name=user.name, email=user.email, phone=user.phone)


class LoginUser(_Model):
    id: int
    name: str
    email: str
    role: str


class LoginResponse(_Model):
    token: str
    user: LoginUser


class UserResponse(_Model):
    """A user record as returned by the API. Hashes and reset tokens never leave the server."""

    id: int
    name: str
    email: str
    phone: str
    role: str
    status: str
    created_by: Optional[UserRef] = None
    created_at: str

    @classmethod
    def from_user(cls, user: User, creators: Optional[dict[int, User]] = None) -> "UserResponse":
        creator = (creators or {}).get(user.created_by) if user.created_by is not None else None
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            status=user.status,
            created_by=UserRef.from_user(creator),
            created_at=user.created_at,
        )


class VehicleDetailsOut(_Model):
    make: str
    model: str
    year: int
    vin: str
    price: float


class PaymentDetailsOut(_Model):
    amount_paid: float
    amount_due: Optional[float] = None
    payment_status: str
    currency: str


class SaleResponse(_Model):
    """A vehicle sale with customer and seller populated.

    customer / seller are null when the referenced account has been deleted.
    """

    id: int
    vehicle_details: VehicleDetailsOut
    customer: Optional[CustomerRef] = None
    payment_details: PaymentDetailsOut
    status: str
    seller: Optional[UserRef] = None
    estimated_delivery: Optional[str] = None
    sale_date: str

    @classmethod
    def from_sale(cls, sale: VehicleSale, users: dict[int, User]) -> "SaleResponse":
        v, p = sale.vehicle, sale.payment
        return cls(
            id=sale.id,
            vehicle_details=VehicleDetailsOut(make=v.make, model=v.model, year=v.year, vin=v.vin, price=v.price),
            customer=CustomerRef.from_user(users.get(sale.customer_id)),
            payment_details=PaymentDetailsOut(
                amount_paid=p.amount_paid,
                amount_due=p.amount_due,
                payment_status=p.payment_status,
                currency=p.currency,
            ),
            status=sale.status,
            seller=UserRef.from_user(users.get(sale.seller_id)),
            estimated_delivery=sale.estimated_delivery,
            sale_date=sale.sale_date,
        )
