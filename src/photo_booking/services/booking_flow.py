"""Three-step booking selection flow: select, confirm, complete."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from photo_booking import messages
from photo_booking.domain.bookings import BookingResult
from photo_booking.domain.pricing import multi_slot_total
from photo_booking.domain.sessions import PhotoSession
from photo_booking.domain.slots import PhotoSessionSlot
from photo_booking.services.bookings import BatchBooker, Booker

MOBILE_BREAKPOINT = 768

_logger = logging.getLogger(__name__)


class BookingStep(StrEnum):
    """Steps of the booking flow."""

    SELECT = "select"
    CONFIRM = "confirm"
    COMPLETE = "complete"


class Presentation(StrEnum):
    """How the flow is rendered for the client's viewport."""

    ACTION_SHEET = "action_sheet"
    STEPPER = "stepper"


class InvalidTransition(RuntimeError):
    """The requested step change is not allowed from the current step."""


class SelectionRequired(InvalidTransition):
    """A slot must be chosen before confirming."""


class SlotNotSelectable(ValueError):
    """The slot is unknown or already full."""


def presentation_for(viewport_width: int) -> Presentation:
    """Pick the presentation strategy for a viewport width."""
    if viewport_width < MOBILE_BREAKPOINT:
        return Presentation.ACTION_SHEET
    return Presentation.STEPPER


@dataclass
class BookingFlow:
    """State machine binding a user to a slot, or to a session without slots.

    Both presentations drive the same transitions and the same booking call.
    A failed booking leaves the flow in ``confirm`` with ``error`` set; the
    caller may submit again, which is not idempotent.
    """

    session: PhotoSession
    user_id: UUID
    slots: list[PhotoSessionSlot] = field(default_factory=list)
    viewport_width: int = MOBILE_BREAKPOINT
    step: BookingStep = BookingStep.SELECT
    selected_slot_ids: list[UUID] = field(default_factory=list)
    booking_ids: list[UUID] = field(default_factory=list)
    error: str | None = None
    booked_count: int = 0
    failed_count: int = 0
    is_submitting: bool = False

    @property
    def presentation(self) -> Presentation:
        return presentation_for(self.viewport_width)

    @property
    def has_slots(self) -> bool:
        return bool(self.slots)

    @property
    def allow_multiple(self) -> bool:
        return self.session.allow_multiple_bookings and self.has_slots

    def selectable_slots(self) -> list[PhotoSessionSlot]:
        """Slots that still have a free seat."""
        return [slot for slot in self.slots if not slot.is_full]

    def is_selectable(self, slot_id: UUID) -> bool:
        return any(slot.id == slot_id for slot in self.selectable_slots())

    def selected_slots(self) -> list[PhotoSessionSlot]:
        by_id = {slot.id: slot for slot in self.slots}
        return [by_id[slot_id] for slot_id in self.selected_slot_ids if slot_id in by_id]

    def select_slot(self, slot_id: UUID) -> list[UUID]:
        """Select a slot, or toggle it when several may be booked."""
        self._require(BookingStep.SELECT)
        if not self.is_selectable(slot_id):
            raise SlotNotSelectable(messages.SLOT_FULL)
        if not self.allow_multiple:
            self.selected_slot_ids = [slot_id]
        elif slot_id in self.selected_slot_ids:
            self.selected_slot_ids.remove(slot_id)
        else:
            self.selected_slot_ids.append(slot_id)
        self.error = None
        return list(self.selected_slot_ids)

    def proceed(self) -> BookingStep:
        """Move from select to confirm."""
        self._require(BookingStep.SELECT)
        if self.has_slots and not self.selected_slots():
            self.error = messages.SLOT_REQUIRED
            raise SelectionRequired(messages.SLOT_REQUIRED)
        self.step = BookingStep.CONFIRM
        self.error = None
        return self.step

    def back(self) -> BookingStep:
        """Return from confirm to select."""
        self._require(BookingStep.CONFIRM)
        self.step = BookingStep.SELECT
        self.error = None
        return self.step

    def confirm_price(self) -> int:
        """Price shown on the confirm step."""
        if not self.has_slots:
            return self.session.price_per_person
        rule = self.session.multi_slot_discount if self.allow_multiple else None
        return multi_slot_total(
            (slot.charge_amount for slot in self.selected_slots()), rule
        )

    def submit(self, booker: Booker) -> BookingStep:
        """Run the booking call and advance to complete on success."""
        self._require(BookingStep.CONFIRM)
        if self.is_submitting:
            raise InvalidTransition("booking already in progress")
        self.is_submitting = True
        self.error = None
        try:
            if self.has_slots:
                self._book_slots(booker)
            else:
                self._book(booker, None)
        finally:
            self.is_submitting = False
        if self.booked_count:
            self.step = BookingStep.COMPLETE
        return self.step

    def _book_slots(self, booker: Booker) -> None:
        slot_ids = [slot.id for slot in self.selected_slots()]
        if isinstance(booker, BatchBooker):
            errors = self._book_batch(booker, slot_ids)
        else:
            errors = [
                error
                for error in (self._book(booker, slot_id) for slot_id in slot_ids)
                if error
            ]
        self.failed_count = len(errors)
        if errors:
            self.error = ", ".join(errors)

    def _book_batch(self, booker: BatchBooker, slot_ids: list[UUID]) -> list[str]:
        try:
            results = booker.book_many(self.session.id, self.user_id, slot_ids)
        except Exception:
            _logger.exception(
                "Batch booking call raised", extra={"session_id": str(self.session.id)}
            )
            return [messages.UNEXPECTED_ERROR for _ in slot_ids]
        return [error for error in map(self._record, results) if error]

    def _book(self, booker: Booker, slot_id: UUID | None) -> str | None:
        try:
            result = booker.book(self.session.id, self.user_id, slot_id)
        except Exception:
            _logger.exception(
                "Booking call raised", extra={"session_id": str(self.session.id)}
            )
            self.error = messages.UNEXPECTED_ERROR
            return self.error
        return self._record(result)

    def _record(self, result: BookingResult) -> str | None:
        if result.success:
            self.booked_count += 1
            if result.booking_id is not None:
                self.booking_ids.append(result.booking_id)
            return None
        self.error = result.error or messages.SLOT_BOOKING_FAILED
        return self.error

    def _require(self, step: BookingStep) -> None:
        if self.step is not step:
            raise InvalidTransition(f"expected step {step}, flow is at {self.step}")
