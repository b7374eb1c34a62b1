"""Working-set editor for a session's slots before it is saved."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from photo_booking import messages
from photo_booking.domain.pricing import DiscountType
from photo_booking.domain.sessions import DerivedSchedule
from photo_booking.domain.slots import (
    PhotoSessionSlot,
    SlotValidationError,
    suggest_next_start,
    validate_slot,
)
from photo_booking.services.images import ImageService, UploadResult

DEFAULT_DURATION = timedelta(minutes=50)
DEFAULT_BREAK_MINUTES = 10

ScheduleListener = Callable[[DerivedSchedule | None], None]


class DuplicateSlotNumber(SlotValidationError):
    """Another slot in the working set already uses this number."""

    field = "slot_number"


class UnknownSlot(LookupError):
    """The slot id is not in the working set."""


@dataclass(frozen=True)
class SlotDraft:
    """Form state for the slot being added or edited."""

    slot_number: int
    start_time: datetime
    end_time: datetime
    break_duration_minutes: int = DEFAULT_BREAK_MINUTES
    price_per_person: int = 0
    max_participants: int = 1
    discount_type: DiscountType = DiscountType.NONE
    discount_value: float = 0
    discount_condition: str | None = None
    costume_image_url: str | None = None
    costume_description: str | None = None
    notes: str | None = None
    editing_id: UUID | None = None

    @classmethod
    def from_slot(cls, slot: PhotoSessionSlot) -> "SlotDraft":
        return cls(
            slot_number=slot.slot_number,
            start_time=slot.start_time,
            end_time=slot.end_time,
            break_duration_minutes=slot.break_duration_minutes,
            price_per_person=slot.price_per_person,
            max_participants=slot.max_participants,
            discount_type=slot.discount_type,
            discount_value=slot.discount_value,
            discount_condition=slot.discount_condition,
            costume_image_url=slot.costume_image_url,
            costume_description=slot.costume_description,
            notes=slot.notes,
            editing_id=slot.id,
        )

    def to_slot(self, photo_session_id: UUID | None) -> PhotoSessionSlot:
        return PhotoSessionSlot(
            id=self.editing_id or uuid4(),
            photo_session_id=photo_session_id,
            slot_number=self.slot_number,
            start_time=self.start_time,
            end_time=self.end_time,
            break_duration_minutes=self.break_duration_minutes,
            price_per_person=self.price_per_person,
            max_participants=self.max_participants,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
            discount_condition=self.discount_condition,
            costume_image_url=self.costume_image_url,
            costume_description=self.costume_description,
            notes=self.notes,
        )


@dataclass
class SlotEditor:
    """Owns the in-memory slot list for one session.

    Every mutation notifies the subscribed listeners with the derived
    schedule (earliest start, latest end) so the session form can refresh its
    own start and end. ``None`` is sent once the list becomes empty.
    """

    base_start: datetime
    photo_session_id: UUID | None = None
    image_service: ImageService | None = None
    slots: list[PhotoSessionSlot] = field(default_factory=list)
    listeners: list[ScheduleListener] = field(default_factory=list)
    draft: SlotDraft = field(init=False)

    def __post_init__(self) -> None:
        self.slots = sorted(self.slots, key=lambda slot: slot.slot_number)
        self.draft = self.fresh_draft()

    @classmethod
    def from_slots(
        cls,
        slots: Iterable[PhotoSessionSlot],
        base_start: datetime,
        photo_session_id: UUID | None = None,
        image_service: ImageService | None = None,
    ) -> "SlotEditor":
        """Start editing an already persisted slot list."""
        return cls(
            base_start=base_start,
            photo_session_id=photo_session_id,
            image_service=image_service,
            slots=list(slots),
        )

    @property
    def schedule(self) -> DerivedSchedule | None:
        """Schedule derived from the current slots, if any."""
        if not self.slots:
            return None
        return DerivedSchedule(tuple(self.slots))

    def subscribe(self, listener: ScheduleListener) -> None:
        """Register a listener and send it the current schedule."""
        self.listeners.append(listener)
        listener(self.schedule)

    def fresh_draft(self) -> SlotDraft:
        """Return a blank draft chained after the last slot."""
        if not self.slots:
            return SlotDraft(
                slot_number=1,
                start_time=self.base_start,
                end_time=self.base_start + DEFAULT_DURATION,
            )
        last = self.slots[-1]
        start = suggest_next_start(last)
        return SlotDraft(
            slot_number=len(self.slots) + 1,
            start_time=start,
            end_time=start + last.duration,
            break_duration_minutes=last.break_duration_minutes,
            price_per_person=last.price_per_person,
            max_participants=last.max_participants,
        )

    def edit(self, slot_id: UUID) -> SlotDraft:
        """Load an existing slot into the draft."""
        self.draft = SlotDraft.from_slot(self._get(slot_id))
        return self.draft

    def add_or_update(self, draft: SlotDraft | None = None) -> PhotoSessionSlot:
        """Validate the draft and append or replace it in the working set."""
        candidate = draft or self.draft
        slot = validate_slot(candidate.to_slot(self.photo_session_id))
        if any(
            other.slot_number == slot.slot_number and other.id != slot.id
            for other in self.slots
        ):
            raise DuplicateSlotNumber(messages.DUPLICATE_SLOT_NUMBER)

        if candidate.editing_id is None:
            self.slots.append(slot)
        else:
            self._index(candidate.editing_id)
            self.slots = [slot if other.id == slot.id else other for other in self.slots]
        self.slots.sort(key=lambda item: item.slot_number)
        self.draft = self.fresh_draft()
        self._notify()
        return slot

    def remove(self, slot_id: UUID) -> None:
        """Drop a slot and renumber the rest in order."""
        self._index(slot_id)
        remaining = [slot for slot in self.slots if slot.id != slot_id]
        self.slots = [
            replace(slot, slot_number=number)
            for number, slot in enumerate(remaining, start=1)
        ]
        self.draft = self.fresh_draft()
        self._notify()

    def copy_from_above(self, slot_id: UUID) -> PhotoSessionSlot:
        """Copy every setting except the time range from the previous slot."""
        index = self._index(slot_id)
        if index == 0:
            return self.slots[0]
        above = self.slots[index - 1]
        current = self.slots[index]
        updated = replace(
            current,
            end_time=current.start_time + above.duration,
            break_duration_minutes=above.break_duration_minutes,
            price_per_person=above.price_per_person,
            max_participants=above.max_participants,
            discount_type=above.discount_type,
            discount_value=above.discount_value,
            discount_condition=above.discount_condition,
            costume_image_url=above.costume_image_url,
            costume_description=above.costume_description,
            notes=above.notes,
        )
        self.slots[index] = updated
        self._notify()
        return updated

    def auto_fill_next(self, slot_id: UUID) -> PhotoSessionSlot | None:
        """Move the following slot so it starts after this one's break."""
        index = self._index(slot_id)
        if index >= len(self.slots) - 1:
            return None
        following = self.slots[index + 1]
        start = suggest_next_start(self.slots[index])
        updated = replace(
            following, start_time=start, end_time=start + following.duration
        )
        self.slots[index + 1] = updated
        self._notify()
        return updated

    def attach_costume_image(
        self, slot_id: UUID, filename: str, content: bytes, content_type: str
    ) -> UploadResult:
        """Upload a costume reference image and store its URL on the slot."""
        index = self._index(slot_id)
        if self.image_service is None:
            return UploadResult(success=False, error=messages.UPLOAD_FAILED)
        result = self.image_service.upload_session_image(
            self.photo_session_id, filename, content, content_type
        )
        if result.success:
            self.slots[index] = replace(
                self.slots[index], costume_image_url=result.url
            )
            self._notify()
        return result

    def commit(self) -> tuple[PhotoSessionSlot, ...]:
        """Return the working set ready for submission."""
        return tuple(self.slots)

    def _get(self, slot_id: UUID) -> PhotoSessionSlot:
        return self.slots[self._index(slot_id)]

    def _index(self, slot_id: UUID) -> int:
        for index, slot in enumerate(self.slots):
            if slot.id == slot_id:
                return index
        raise UnknownSlot(str(slot_id))

    def _notify(self) -> None:
        schedule = self.schedule
        for listener in self.listeners:
            listener(schedule)
