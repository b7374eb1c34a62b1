"""Supabase-backed photo session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from photo_booking.domain.pricing import parse_discount_type
from photo_booking.domain.sessions import BookingType, PhotoSession, PhotoSessionDraft
from photo_booking.domain.slots import PhotoSessionSlot
from photo_booking.services.photo_sessions import PhotoSessionRepository

_SESSION_COLUMNS = (
    "id, organizer_id, title, description, location, address, start_time, "
    "end_time, max_participants, current_participants, price_per_person, "
    "booking_type, allow_multiple_bookings, booking_settings, is_published, "
    "image_urls"
)
_SLOT_COLUMNS = (
    "id, photo_session_id, slot_number, start_time, end_time, "
    "break_duration_minutes, price_per_person, max_participants, "
    "current_participants, discount_type, discount_value, discount_condition, "
    "costume_image_url, costume_description, notes, is_active"
)


@dataclass
class SupabasePhotoSessionRepository(PhotoSessionRepository):
    """Supabase implementation for sessions and their slots."""

    client: Client

    def create_session(
        self, organizer_id: UUID, draft: PhotoSessionDraft
    ) -> PhotoSession:
        """Insert a session row and return it."""
        payload = _draft_payload(draft)
        payload["organizer_id"] = str(organizer_id)
        response = self.client.table("photo_sessions").insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create photo session")
        return _session_from_row(response.data[0])

    def update_session(self, session_id: UUID, draft: PhotoSessionDraft) -> PhotoSession:
        """Update a session row and return it."""
        payload = _draft_payload(draft)
        payload["updated_at"] = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table("photo_sessions")
            .update(payload)
            .eq("id", str(session_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update photo session")
        return _session_from_row(response.data[0])

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session row."""
        self.client.table("photo_sessions").delete().eq("id", str(session_id)).execute()

    def get_session(self, session_id: UUID) -> PhotoSession | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("photo_sessions")
            .select(_SESSION_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _session_from_row(response.data[0])

    def insert_slots(
        self, session_id: UUID, slots: tuple[PhotoSessionSlot, ...]
    ) -> None:
        """Insert slot rows for a session."""
        rows = [_slot_payload(session_id, slot) for slot in slots]
        response = self.client.table("photo_session_slots").insert(rows).execute()
        if not response.data:
            raise RuntimeError("Failed to create slots")

    def delete_slots(self, session_id: UUID) -> None:
        """Delete every slot row of a session."""
        self.client.table("photo_session_slots").delete().eq(
            "photo_session_id", str(session_id)
        ).execute()

    def list_slots(self, session_id: UUID) -> list[PhotoSessionSlot]:
        """Return active slots ordered by slot number."""
        response = (
            self.client.table("photo_session_slots")
            .select(_SLOT_COLUMNS)
            .eq("photo_session_id", str(session_id))
            .eq("is_active", True)
            .order("slot_number")
            .execute()
        )
        return [_slot_from_row(row) for row in response.data or []]

    def get_slot(self, slot_id: UUID) -> PhotoSessionSlot | None:
        """Return a slot by id, if present."""
        response = (
            self.client.table("photo_session_slots")
            .select(_SLOT_COLUMNS)
            .eq("id", str(slot_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _slot_from_row(response.data[0])


def _draft_payload(draft: PhotoSessionDraft) -> dict[str, object]:
    return {
        "title": draft.title,
        "description": draft.description,
        "location": draft.location,
        "address": draft.address,
        "start_time": draft.schedule.start_time.isoformat(),
        "end_time": draft.schedule.end_time.isoformat(),
        "max_participants": draft.effective_max_participants,
        "price_per_person": draft.price_per_person,
        "booking_type": draft.booking_type.value,
        "allow_multiple_bookings": draft.allow_multiple_bookings,
        "booking_settings": draft.booking_settings,
        "is_published": draft.is_published,
        "image_urls": draft.image_urls,
    }


def _slot_payload(session_id: UUID, slot: PhotoSessionSlot) -> dict[str, object]:
    return {
        "id": str(slot.id),
        "photo_session_id": str(session_id),
        "slot_number": slot.slot_number,
        "start_time": slot.start_time.isoformat(),
        "end_time": slot.end_time.isoformat(),
        "break_duration_minutes": slot.break_duration_minutes,
        "price_per_person": slot.price_per_person,
        "max_participants": slot.max_participants,
        "discount_type": slot.discount_type.value,
        "discount_value": slot.discount_value,
        "discount_condition": slot.discount_condition,
        "costume_image_url": slot.costume_image_url,
        "costume_description": slot.costume_description,
        "notes": slot.notes,
        "is_active": slot.is_active,
    }


def _session_from_row(row: dict[str, object]) -> PhotoSession:
    return PhotoSession(
        id=UUID(str(row["id"])),
        organizer_id=UUID(str(row["organizer_id"])),
        title=str(row["title"]),
        location=str(row["location"]),
        start_time=datetime.fromisoformat(str(row["start_time"])),
        end_time=datetime.fromisoformat(str(row["end_time"])),
        max_participants=int(row["max_participants"]),
        price_per_person=int(row["price_per_person"]),
        current_participants=int(row.get("current_participants") or 0),
        description=row.get("description"),
        address=row.get("address"),
        booking_type=BookingType(row.get("booking_type") or BookingType.FIRST_COME),
        allow_multiple_bookings=bool(row.get("allow_multiple_bookings")),
        booking_settings=row.get("booking_settings") or {},
        is_published=bool(row.get("is_published")),
        image_urls=list(row.get("image_urls") or []),
    )


def _slot_from_row(row: dict[str, object]) -> PhotoSessionSlot:
    return PhotoSessionSlot(
        id=UUID(str(row["id"])),
        photo_session_id=(
            UUID(str(row["photo_session_id"])) if row.get("photo_session_id") else None
        ),
        slot_number=int(row["slot_number"]),
        start_time=datetime.fromisoformat(str(row["start_time"])),
        end_time=datetime.fromisoformat(str(row["end_time"])),
        break_duration_minutes=int(row.get("break_duration_minutes") or 0),
        price_per_person=int(row["price_per_person"]),
        max_participants=int(row["max_participants"]),
        current_participants=int(row.get("current_participants") or 0),
        discount_type=parse_discount_type(str(row.get("discount_type") or "none")),
        discount_value=float(row.get("discount_value") or 0),
        discount_condition=row.get("discount_condition"),
        costume_image_url=row.get("costume_image_url"),
        costume_description=row.get("costume_description"),
        notes=row.get("notes"),
        is_active=bool(row.get("is_active", True)),
    )
