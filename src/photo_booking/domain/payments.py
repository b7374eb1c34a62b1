"""Domain models for payments and checkouts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class PaymentStatus(StrEnum):
    """Payment state mirrored from the processor."""

    PENDING = "pending"
    PROCESSING = "processing"
    REQUIRES_ACTION = "requires_action"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"

    @classmethod
    def from_processor(cls, raw: str) -> "PaymentStatus":
        """Map a processor intent status onto a payment status."""
        if raw in {"requires_payment_method", "requires_confirmation"}:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.FAILED


class PaymentTiming(StrEnum):
    """When the participant pays. Card intents are always prepaid."""

    PREPAID = "prepaid"


@dataclass(frozen=True)
class PaymentMetadata:
    """Identifiers attached to a payment intent.

    ``extra_booking_ids`` lists the other bookings covered by the same intent
    when several slots are paid together.
    """

    booking_id: UUID
    photo_session_id: UUID
    user_id: UUID
    payment_timing: PaymentTiming = PaymentTiming.PREPAID
    extra_booking_ids: tuple[UUID, ...] = ()

    @property
    def booking_ids(self) -> tuple[UUID, ...]:
        return (self.booking_id, *self.extra_booking_ids)

    def as_dict(self) -> dict[str, str]:
        data = {
            "booking_id": str(self.booking_id),
            "photo_session_id": str(self.photo_session_id),
            "user_id": str(self.user_id),
            "payment_timing": self.payment_timing.value,
        }
        if self.extra_booking_ids:
            data["extra_booking_ids"] = ",".join(
                str(booking_id) for booking_id in self.extra_booking_ids
            )
        return data


@dataclass(frozen=True)
class PaymentIntentParams:
    """Input for creating a payment intent."""

    amount: int
    metadata: PaymentMetadata
    currency: str = "jpy"
    capture_method: str = "automatic"


@dataclass(frozen=True)
class ProcessorIntent:
    """Processor-side view of a payment intent."""

    id: str
    status: str
    amount: int
    client_secret: str | None = None


@dataclass(frozen=True)
class PaymentRecord:
    """A payment row tied to a booking."""

    id: UUID
    booking_id: UUID
    payment_intent_id: str | None
    amount: int
    status: PaymentStatus
    currency: str = "jpy"
    platform_fee: int = 0
    processor_fee: int = 0
    organizer_payout: int = 0
    paid_at: datetime | None = None
    refund_amount: int | None = None
    extra_booking_ids: tuple[UUID, ...] = ()

    @property
    def booking_ids(self) -> tuple[UUID, ...]:
        """Every booking this payment pays for."""
        return (self.booking_id, *self.extra_booking_ids)


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a payment action."""

    success: bool
    payment_intent_id: str | None = None
    client_secret: str | None = None
    status: PaymentStatus | None = None
    error: str | None = None


@dataclass(frozen=True)
class BillingDetails:
    """Billing identity passed to card confirmation."""

    name: str
    email: str


@dataclass(frozen=True)
class CardPayment:
    """A tokenized card and its billing details."""

    payment_method_id: str
    billing: BillingDetails


class CheckoutStage(StrEnum):
    """Server-side progress of a paid booking."""

    PENDING_BOOKING = "pending_booking"
    INTENT_CREATED = "intent_created"
    CHARGE_CAPTURED = "charge_captured"
    CONFIRMED = "confirmed"
    FAILED = "failed"


STUCK_STAGES = frozenset({CheckoutStage.INTENT_CREATED, CheckoutStage.CHARGE_CAPTURED})


@dataclass(frozen=True)
class CheckoutRecord:
    """Persisted orchestration state for one booking."""

    id: UUID
    booking_id: UUID
    user_id: UUID
    photo_session_id: UUID
    amount: int
    stage: CheckoutStage
    slot_id: UUID | None = None
    payment_intent_id: str | None = None
    last_error: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of running the payment pipeline."""

    success: bool
    stage: CheckoutStage
    booking_id: UUID | None = None
    checkout_id: UUID | None = None
    payment_intent_id: str | None = None
    amount: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class ReconcileReport:
    """Summary of a reconciliation pass."""

    examined: int = 0
    confirmed: list[UUID] = field(default_factory=list)
    still_pending: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)
