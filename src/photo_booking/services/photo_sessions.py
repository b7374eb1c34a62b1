"""Persist photo sessions together with their slots."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from photo_booking import messages
from photo_booking.domain.pricing import MultiSlotDiscount
from photo_booking.domain.sessions import PhotoSession, PhotoSessionDraft
from photo_booking.domain.slots import PhotoSessionSlot, validate_slot

_logger = logging.getLogger(__name__)


class PhotoSessionRepository(Protocol):
    """Persistence interface for sessions and slots."""

    def create_session(
        self, organizer_id: UUID, draft: PhotoSessionDraft
    ) -> PhotoSession:
        """Insert a session row and return it."""

    def update_session(self, session_id: UUID, draft: PhotoSessionDraft) -> PhotoSession:
        """Update a session row and return it."""

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session row."""

    def get_session(self, session_id: UUID) -> PhotoSession | None:
        """Return a session by id, if present."""

    def insert_slots(
        self, session_id: UUID, slots: tuple[PhotoSessionSlot, ...]
    ) -> None:
        """Insert slot rows for a session."""

    def delete_slots(self, session_id: UUID) -> None:
        """Delete every slot row of a session."""

    def list_slots(self, session_id: UUID) -> list[PhotoSessionSlot]:
        """Return active slots ordered by slot number."""

    def get_slot(self, slot_id: UUID) -> PhotoSessionSlot | None:
        """Return a slot by id, if present."""


@dataclass(frozen=True)
class SessionActionResult:
    """Outcome of a create or update action."""

    success: bool
    session: PhotoSession | None = None
    error: str | None = None


@dataclass
class PhotoSessionService:
    """Create and update sessions with their slot lists."""

    repository: PhotoSessionRepository

    def create_with_slots(
        self, organizer_id: UUID, draft: PhotoSessionDraft
    ) -> SessionActionResult:
        """Create a session and its slots, removing the session if slots fail."""
        _validate_draft(draft)
        try:
            session = self.repository.create_session(organizer_id, draft)
        except Exception:
            _logger.exception("Failed to create photo session")
            return SessionActionResult(
                success=False, error=messages.SESSION_CREATE_FAILED
            )

        if draft.slots:
            try:
                self.repository.insert_slots(session.id, draft.slots)
            except Exception:
                _logger.exception(
                    "Failed to create slots", extra={"session_id": str(session.id)}
                )
                self.repository.delete_session(session.id)
                return SessionActionResult(
                    success=False, error=messages.SLOTS_CREATE_FAILED
                )
        _logger.info(
            "Created photo session %s with %s slots", session.id, len(draft.slots)
        )
        return SessionActionResult(success=True, session=session)

    def update_with_slots(
        self, session_id: UUID, organizer_id: UUID, draft: PhotoSessionDraft
    ) -> SessionActionResult:
        """Update a session owned by the organizer and replace its slots."""
        _validate_draft(draft)
        existing = self.repository.get_session(session_id)
        if existing is None:
            return SessionActionResult(success=False, error=messages.SESSION_NOT_FOUND)
        if existing.organizer_id != organizer_id:
            return SessionActionResult(success=False, error=messages.FORBIDDEN)

        try:
            session = self.repository.update_session(session_id, draft)
        except Exception:
            _logger.exception(
                "Failed to update photo session", extra={"session_id": str(session_id)}
            )
            return SessionActionResult(
                success=False, error=messages.SESSION_UPDATE_FAILED
            )

        try:
            self.repository.delete_slots(session_id)
            if draft.slots:
                self.repository.insert_slots(session_id, draft.slots)
        except Exception:
            _logger.exception(
                "Failed to replace slots", extra={"session_id": str(session_id)}
            )
            return SessionActionResult(
                success=False, session=session, error=messages.SLOTS_UPDATE_FAILED
            )
        return SessionActionResult(success=True, session=session)

    def get_session(self, session_id: UUID) -> PhotoSession | None:
        """Return a session by id."""
        return self.repository.get_session(session_id)

    def list_slots(self, session_id: UUID) -> list[PhotoSessionSlot]:
        """Return the published slots of a session."""
        return self.repository.list_slots(session_id)

    def get_slot(self, slot_id: UUID) -> PhotoSessionSlot | None:
        """Return one slot."""
        return self.repository.get_slot(slot_id)


def _validate_draft(draft: PhotoSessionDraft) -> None:
    """Raise before any write when a slot or the multi-slot rule is invalid."""
    for slot in draft.slots:
        validate_slot(slot)
    MultiSlotDiscount.from_settings(draft.booking_settings)
