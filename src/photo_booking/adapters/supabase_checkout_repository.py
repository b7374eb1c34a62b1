"""Supabase-backed checkout repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from photo_booking.domain.payments import CheckoutRecord, CheckoutStage
from photo_booking.services.checkout import CheckoutRepository

_COLUMNS = (
    "id, booking_id, user_id, photo_session_id, slot_id, amount, stage, "
    "payment_intent_id, last_error, updated_at"
)


@dataclass
class SupabaseCheckoutRepository(CheckoutRepository):
    """Supabase implementation for checkout progress rows."""

    client: Client

    def create_checkout(  # noqa: PLR0913
        self,
        booking_id: UUID,
        user_id: UUID,
        photo_session_id: UUID,
        slot_id: UUID | None,
        amount: int,
    ) -> CheckoutRecord:
        """Insert a checkout at the pending_booking stage."""
        response = (
            self.client.table("checkouts")
            .insert(
                {
                    "booking_id": str(booking_id),
                    "user_id": str(user_id),
                    "photo_session_id": str(photo_session_id),
                    "slot_id": str(slot_id) if slot_id else None,
                    "amount": amount,
                    "stage": CheckoutStage.PENDING_BOOKING.value,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create checkout")
        return _checkout_from_row(response.data[0])

    def update_checkout(
        self,
        checkout_id: UUID,
        stage: CheckoutStage,
        payment_intent_id: str | None = None,
        last_error: str | None = None,
    ) -> None:
        """Advance a checkout's stage."""
        payload: dict[str, object] = {
            "stage": stage.value,
            "last_error": last_error,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if payment_intent_id is not None:
            payload["payment_intent_id"] = payment_intent_id
        self.client.table("checkouts").update(payload).eq(
            "id", str(checkout_id)
        ).execute()

    def list_checkouts(
        self, stages: frozenset[CheckoutStage], updated_before: datetime
    ) -> list[CheckoutRecord]:
        """Return checkouts in the given stages last touched before a time."""
        response = (
            self.client.table("checkouts")
            .select(_COLUMNS)
            .in_("stage", sorted(stage.value for stage in stages))
            .lt("updated_at", updated_before.isoformat())
            .order("updated_at")
            .execute()
        )
        return [_checkout_from_row(row) for row in response.data or []]


def _checkout_from_row(row: dict[str, object]) -> CheckoutRecord:
    updated_at = row.get("updated_at")
    return CheckoutRecord(
        id=UUID(str(row["id"])),
        booking_id=UUID(str(row["booking_id"])),
        user_id=UUID(str(row["user_id"])),
        photo_session_id=UUID(str(row["photo_session_id"])),
        amount=int(row["amount"]),
        stage=CheckoutStage(row["stage"]),
        slot_id=UUID(str(row["slot_id"])) if row.get("slot_id") else None,
        payment_intent_id=row.get("payment_intent_id"),
        last_error=row.get("last_error"),
        updated_at=datetime.fromisoformat(str(updated_at)) if updated_at else None,
    )
