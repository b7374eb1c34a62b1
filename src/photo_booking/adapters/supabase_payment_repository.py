"""Supabase-backed payment repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from photo_booking.domain.payments import (
    PaymentIntentParams,
    PaymentRecord,
    PaymentStatus,
)
from photo_booking.domain.pricing import FeeBreakdown
from photo_booking.services.payments import PaymentRepository

_COLUMNS = (
    "id, booking_id, stripe_payment_intent_id, amount, currency, status, "
    "platform_fee, stripe_fee, organizer_payout, paid_at, refund_amount, metadata"
)


@dataclass
class SupabasePaymentRepository(PaymentRepository):
    """Supabase implementation for payment rows."""

    client: Client

    def find_succeeded_payment(self, booking_id: UUID) -> PaymentRecord | None:
        """Return a succeeded payment for the booking, if any."""
        response = (
            self.client.table("payments")
            .select(_COLUMNS)
            .eq("booking_id", str(booking_id))
            .eq("status", PaymentStatus.SUCCEEDED.value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _payment_from_row(response.data[0])

    def create_payment(
        self,
        params: PaymentIntentParams,
        payment_intent_id: str,
        fees: FeeBreakdown,
    ) -> PaymentRecord:
        """Insert a pending payment row."""
        response = (
            self.client.table("payments")
            .insert(
                {
                    "booking_id": str(params.metadata.booking_id),
                    "stripe_payment_intent_id": payment_intent_id,
                    "amount": params.amount,
                    "platform_fee": fees.platform_fee,
                    "stripe_fee": fees.processor_fee,
                    "organizer_payout": fees.organizer_payout,
                    "currency": params.currency,
                    "payment_method": "card",
                    "payment_timing": params.metadata.payment_timing.value,
                    "status": PaymentStatus.PENDING.value,
                    "metadata": params.metadata.as_dict(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create payment record")
        return _payment_from_row(response.data[0])

    def update_status(
        self,
        payment_intent_id: str,
        status: PaymentStatus,
        paid_at: datetime | None,
    ) -> PaymentRecord | None:
        """Update a payment by intent id and return it."""
        payload: dict[str, object] = {
            "status": status.value,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if paid_at is not None:
            payload["paid_at"] = paid_at.isoformat()
        response = (
            self.client.table("payments")
            .update(payload)
            .eq("stripe_payment_intent_id", payment_intent_id)
            .execute()
        )
        if not response.data:
            return None
        return _payment_from_row(response.data[0])

    def get_payment(self, payment_id: UUID) -> PaymentRecord | None:
        """Return a payment by id, if present."""
        response = (
            self.client.table("payments")
            .select(_COLUMNS)
            .eq("id", str(payment_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _payment_from_row(response.data[0])

    def record_refund(
        self,
        payment_id: UUID,
        status: PaymentStatus,
        refund_amount: int,
        reason: str,
    ) -> None:
        """Store refund details on a payment."""
        now = datetime.now(tz=UTC).isoformat()
        self.client.table("payments").update(
            {
                "status": status.value,
                "refunded_at": now,
                "refund_amount": refund_amount,
                "refund_reason": reason,
                "updated_at": now,
            }
        ).eq("id", str(payment_id)).execute()


def _payment_from_row(row: dict[str, object]) -> PaymentRecord:
    paid_at = row.get("paid_at")
    refund_amount = row.get("refund_amount")
    return PaymentRecord(
        id=UUID(str(row["id"])),
        booking_id=UUID(str(row["booking_id"])),
        payment_intent_id=row.get("stripe_payment_intent_id"),
        amount=int(row["amount"]),
        status=PaymentStatus(row["status"]),
        currency=str(row.get("currency") or "jpy"),
        platform_fee=int(row.get("platform_fee") or 0),
        processor_fee=int(row.get("stripe_fee") or 0),
        organizer_payout=int(row.get("organizer_payout") or 0),
        paid_at=datetime.fromisoformat(str(paid_at)) if paid_at else None,
        refund_amount=int(refund_amount) if refund_amount is not None else None,
        extra_booking_ids=_extra_booking_ids(row.get("metadata")),
    )


def _extra_booking_ids(metadata: object) -> tuple[UUID, ...]:
    if not isinstance(metadata, dict):
        return ()
    raw = metadata.get("extra_booking_ids")
    if not raw:
        return ()
    return tuple(UUID(item) for item in str(raw).split(","))
