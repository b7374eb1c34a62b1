"""Supabase-backed booking repository using capacity-guarded procedures."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from photo_booking.domain.bookings import BookingRecord, BookingStatus, SlotBookingResult
from photo_booking.errors import BackendError
from photo_booking.services.bookings import BookingRepository


@dataclass
class SupabaseBookingRepository(BookingRepository):
    """Supabase implementation for bookings.

    Seat counts are only changed inside the database procedures, which lock
    the session or slot row before checking capacity.
    """

    client: Client

    def create_photo_session_booking(self, session_id: UUID, user_id: UUID) -> UUID:
        """Book a whole session and return the booking id."""
        data = self._rpc(
            "create_photo_session_booking",
            {"p_photo_session_id": str(session_id), "p_user_id": str(user_id)},
        )
        row = _first(data)
        if isinstance(row, dict):
            return UUID(str(row["booking_id"]))
        if row is None:
            raise BackendError("Failed to create booking")
        return UUID(str(row))

    def create_slot_booking(self, slot_id: UUID, user_id: UUID) -> SlotBookingResult:
        """Book one slot."""
        data = self._rpc(
            "create_slot_booking",
            {"p_slot_id": str(slot_id), "p_user_id": str(user_id)},
        )
        return _slot_result(_first(data))

    def cancel_photo_session_booking(self, booking_id: UUID, user_id: UUID) -> None:
        """Cancel a session booking and release its seat."""
        self._rpc(
            "cancel_photo_session_booking",
            {"p_booking_id": str(booking_id), "p_user_id": str(user_id)},
        )

    def cancel_slot_booking(
        self, booking_id: UUID, user_id: UUID
    ) -> SlotBookingResult:
        """Cancel a slot booking and release its seat."""
        data = self._rpc(
            "cancel_slot_booking",
            {"p_booking_id": str(booking_id), "p_user_id": str(user_id)},
        )
        return _slot_result(_first(data))

    def get_booking(self, booking_id: UUID) -> BookingRecord | None:
        """Return a booking by id, if present."""
        response = (
            self.client.table("bookings")
            .select("id, user_id, photo_session_id, slot_id, status")
            .eq("id", str(booking_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return BookingRecord(
            id=UUID(row["id"]),
            user_id=UUID(row["user_id"]),
            photo_session_id=UUID(row["photo_session_id"]),
            status=BookingStatus(row["status"]),
            slot_id=UUID(row["slot_id"]) if row.get("slot_id") else None,
        )

    def update_status(self, booking_id: UUID, status: BookingStatus) -> None:
        """Set a booking's status."""
        self.client.table("bookings").update(
            {"status": status.value, "updated_at": datetime.now(tz=UTC).isoformat()}
        ).eq("id", str(booking_id)).execute()

    def _rpc(self, name: str, params: dict[str, str]) -> object:
        try:
            response = self.client.rpc(name, params).execute()
        except APIError as exc:
            raise BackendError(exc.message or str(exc)) from exc
        return response.data


def _first(data: object) -> object:
    if isinstance(data, list):
        return data[0] if data else None
    return data


def _slot_result(row: object) -> SlotBookingResult:
    if not isinstance(row, dict):
        raise BackendError("Unexpected booking procedure response")
    booking_id = row.get("booking_id")
    return SlotBookingResult(
        success=bool(row.get("success")),
        booking_id=UUID(str(booking_id)) if booking_id else None,
        message=row.get("message"),
    )
