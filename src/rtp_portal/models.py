"""Domain and input models for payment requests, recipients and receipts."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Self
from uuid import UUID

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from rtp_portal.errors import ValidationError

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class PaymentStatus(StrEnum):
    """Lifecycle of a payment request."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class VerificationStatus(StrEnum):
    """Trust state of a recipient."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not VerificationStatus.PENDING


class Profile(BaseModel):
    """The signed-in user's profile, maintained outside this package."""

    id: UUID | str
    full_name: str | None = None
    funds_available: Decimal = Field(default=Decimal("0"), ge=0)
    is_verified: bool = False


class PaymentRequest(BaseModel):
    """Money requested by the user from a payer."""

    model_config = ConfigDict(frozen=True)

    id: UUID | str
    user_id: UUID | str
    amount: Decimal = Field(gt=0)
    description: str = Field(min_length=1)
    invoice_number: str | None = None
    due_date: date | None = None
    status: PaymentStatus
    created_at: datetime


class Recipient(BaseModel):
    """A payee on the user's trust list."""

    model_config = ConfigDict(frozen=True)

    id: UUID | str
    user_id: UUID | str
    recipient_name: str = Field(min_length=1)
    recipient_email: str = Field(min_length=1)
    recipient_phone: str | None = None
    verification_status: VerificationStatus
    created_at: datetime
    verified_at: datetime | None = None


class Receipt(BaseModel):
    """Immutable record of a settled payment."""

    model_config = ConfigDict(frozen=True)

    id: UUID | str
    user_id: UUID | str | None = None
    receipt_number: str = Field(min_length=1)
    amount: Decimal
    transaction_date: datetime
    payment_method: str | None = None
    notes: str | None = None


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    @classmethod
    def parse(cls, **values: object) -> Self:
        """Validate keyword input, raising the portal's ValidationError."""
        try:
            return cls.model_validate(values)
        except pydantic.ValidationError as exc:
            raise ValidationError.from_pydantic(exc) from exc


class NewPaymentRequest(_Input):
    """Form input for creating a payment request."""

    amount: Decimal = Field(gt=0, decimal_places=2)
    description: str = Field(min_length=1)
    invoice_number: str | None = None
    due_date: date | None = None

    @field_validator("invoice_number")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return value or None


class NewRecipient(_Input):
    """Form input for adding a recipient."""

    recipient_name: str = Field(min_length=1)
    recipient_email: str = Field(min_length=1, pattern=EMAIL_PATTERN)
    recipient_phone: str | None = None

    @field_validator("recipient_phone")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        return value or None


class PaymentStats(BaseModel):
    """Summary figures shown on the dashboard."""

    total_received: Decimal = Decimal("0")
    pending_amount: Decimal = Decimal("0")
    verified_recipient_count: int = 0
