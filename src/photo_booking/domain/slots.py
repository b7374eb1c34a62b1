"""Domain models and validation for photo session slots."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from photo_booking.domain.pricing import (
    MAX_PERCENTAGE,
    Availability,
    DiscountType,
    availability,
    charge_amount,
    discounted_price,
)


class SlotValidationError(ValueError):
    """Base error for a slot that cannot enter the working set."""

    field: str = "slot"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        if field is not None:
            self.field = field


class InvalidTimeRange(SlotValidationError):
    """The slot does not end after it starts."""

    field = "end_time"


class InvalidCapacity(SlotValidationError):
    """The slot admits fewer than one participant."""

    field = "max_participants"


class InvalidPrice(SlotValidationError):
    """The slot has a negative price."""

    field = "price_per_person"


class InvalidDiscountValue(SlotValidationError):
    """The discount value is negative or out of range for its type."""

    field = "discount_value"


class InvalidSlotNumber(SlotValidationError):
    """The slot number is not a positive integer."""

    field = "slot_number"


@dataclass(frozen=True)
class PhotoSessionSlot:
    """A bookable time range inside a photo session."""

    id: UUID
    slot_number: int
    start_time: datetime
    end_time: datetime
    price_per_person: int
    max_participants: int
    break_duration_minutes: int = 0
    current_participants: int = 0
    discount_type: DiscountType = DiscountType.NONE
    discount_value: float = 0
    discount_condition: str | None = None
    costume_image_url: str | None = None
    costume_description: str | None = None
    notes: str | None = None
    photo_session_id: UUID | None = None
    is_active: bool = True

    @property
    def duration(self) -> timedelta:
        """Shooting time of the slot."""
        return self.end_time - self.start_time

    @property
    def is_full(self) -> bool:
        """Return True when no seat is left."""
        return self.current_participants >= self.max_participants

    @property
    def remaining(self) -> int:
        """Seats left, never negative."""
        return max(self.max_participants - self.current_participants, 0)

    @property
    def availability(self) -> Availability:
        """Remaining-capacity label."""
        return availability(self.current_participants, self.max_participants)

    @property
    def has_discount(self) -> bool:
        """Return True when the slot advertises a discount."""
        return self.discount_type is not DiscountType.NONE and self.discount_value > 0

    @property
    def discounted_price(self) -> float:
        """Price after the slot discount."""
        return discounted_price(
            self.price_per_person, self.discount_type, self.discount_value
        )

    @property
    def charge_amount(self) -> int:
        """Amount charged for one participant, in whole yen."""
        return charge_amount(
            self.price_per_person, self.discount_type, self.discount_value
        )


def validate_slot(slot: PhotoSessionSlot) -> PhotoSessionSlot:
    """Check slot invariants and return the slot unchanged."""
    if slot.slot_number < 1:
        raise InvalidSlotNumber("スロット番号は1以上で指定してください")
    if slot.start_time >= slot.end_time:
        raise InvalidTimeRange("終了時刻は開始時刻より後にしてください")
    if slot.max_participants < 1:
        raise InvalidCapacity("定員は1名以上で指定してください")
    if slot.price_per_person < 0:
        raise InvalidPrice("料金は0円以上で指定してください")
    if slot.break_duration_minutes < 0:
        raise SlotValidationError(
            "休憩時間は0分以上で指定してください", field="break_duration_minutes"
        )
    if slot.discount_value < 0:
        raise InvalidDiscountValue("割引額は0以上で指定してください")
    if (
        slot.discount_type is DiscountType.PERCENTAGE
        and slot.discount_value > MAX_PERCENTAGE
    ):
        raise InvalidDiscountValue("割引率は100%以下で指定してください")
    return slot


def suggest_next_start(previous: PhotoSessionSlot) -> datetime:
    """Default start for the slot that follows ``previous``."""
    return previous.end_time + timedelta(minutes=previous.break_duration_minutes)


def format_slot_time(slot: PhotoSessionSlot) -> str:
    """Render the slot range as HH:MM - HH:MM."""
    return f"{slot.start_time:%H:%M} - {slot.end_time:%H:%M}"
