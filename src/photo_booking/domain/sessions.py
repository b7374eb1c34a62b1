"""Domain models for photo sessions and their schedules."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from photo_booking.domain.pricing import MultiSlotDiscount
from photo_booking.domain.slots import PhotoSessionSlot


class BookingType(StrEnum):
    """Admission policy for a session."""

    FIRST_COME = "first_come"
    LOTTERY = "lottery"
    ADMIN_LOTTERY = "admin_lottery"
    PRIORITY = "priority"


class EmptySchedule(ValueError):
    """Raised when a schedule is derived from an empty slot list."""


class InvalidSchedule(ValueError):
    """Raised when a manual schedule does not end after it starts."""


@dataclass(frozen=True)
class ManualSchedule:
    """Start and end entered by the organizer for a session without slots."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidSchedule("終了時刻は開始時刻より後にしてください")

    @property
    def start_time(self) -> datetime:
        return self.start

    @property
    def end_time(self) -> datetime:
        return self.end


@dataclass(frozen=True)
class DerivedSchedule:
    """Schedule spanning the earliest slot start to the latest slot end."""

    slots: tuple[PhotoSessionSlot, ...]

    def __post_init__(self) -> None:
        if not self.slots:
            raise EmptySchedule("スロットがありません")

    @property
    def start_time(self) -> datetime:
        return min(slot.start_time for slot in self.slots)

    @property
    def end_time(self) -> datetime:
        return max(slot.end_time for slot in self.slots)

    @property
    def max_participants(self) -> int:
        """Session capacity is the sum of slot capacities."""
        return sum(slot.max_participants for slot in self.slots)


Schedule = ManualSchedule | DerivedSchedule


def schedule_for(
    slots: Sequence[PhotoSessionSlot], manual: ManualSchedule | None = None
) -> Schedule:
    """Return the derived schedule when slots exist, else the manual one."""
    if slots:
        return DerivedSchedule(tuple(slots))
    if manual is None:
        raise EmptySchedule("開始時刻と終了時刻を入力してください")
    return manual


@dataclass(frozen=True)
class PhotoSessionDraft:
    """Organizer input for creating or updating a session."""

    title: str
    location: str
    schedule: Schedule
    max_participants: int
    price_per_person: int
    description: str | None = None
    address: str | None = None
    booking_type: BookingType = BookingType.FIRST_COME
    allow_multiple_bookings: bool = False
    booking_settings: dict[str, object] = field(default_factory=dict)
    is_published: bool = False
    image_urls: list[str] = field(default_factory=list)

    @property
    def slots(self) -> tuple[PhotoSessionSlot, ...]:
        if isinstance(self.schedule, DerivedSchedule):
            return self.schedule.slots
        return ()

    @property
    def effective_max_participants(self) -> int:
        if isinstance(self.schedule, DerivedSchedule):
            return self.schedule.max_participants
        return self.max_participants


@dataclass(frozen=True)
class PhotoSession:
    """Represents a persisted photo session."""

    id: UUID
    organizer_id: UUID
    title: str
    location: str
    start_time: datetime
    end_time: datetime
    max_participants: int
    price_per_person: int
    current_participants: int = 0
    description: str | None = None
    address: str | None = None
    booking_type: BookingType = BookingType.FIRST_COME
    allow_multiple_bookings: bool = False
    booking_settings: dict[str, object] = field(default_factory=dict)
    is_published: bool = False
    image_urls: list[str] = field(default_factory=list)

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    @property
    def multi_slot_discount(self) -> MultiSlotDiscount | None:
        return MultiSlotDiscount.from_settings(self.booking_settings)
