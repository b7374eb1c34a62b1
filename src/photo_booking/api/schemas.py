"""Pydantic request models and response serializers."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from photo_booking.domain.payments import (
    BillingDetails,
    CardPayment,
    CheckoutRecord,
    CheckoutResult,
    PaymentResult,
)
from photo_booking.domain.pricing import DiscountType
from photo_booking.domain.sessions import (
    BookingType,
    ManualSchedule,
    PhotoSession,
    PhotoSessionDraft,
    schedule_for,
)
from photo_booking.domain.slots import PhotoSessionSlot, format_slot_time
from photo_booking.services.slot_editor import DEFAULT_BREAK_MINUTES, SlotDraft


class SlotIn(BaseModel):
    """One slot of a session form."""

    slot_number: int
    start_time: datetime
    end_time: datetime
    break_duration_minutes: int = DEFAULT_BREAK_MINUTES
    price_per_person: int
    max_participants: int
    discount_type: DiscountType = DiscountType.NONE
    discount_value: float = 0
    discount_condition: str | None = None
    costume_image_url: str | None = None
    costume_description: str | None = None
    notes: str | None = None

    def to_draft(self) -> SlotDraft:
        return SlotDraft(**self.model_dump())


class PhotoSessionIn(BaseModel):
    """Create or update payload for a session and its slots."""

    title: str
    location: str
    description: str | None = None
    address: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    max_participants: int = 1
    price_per_person: int = 0
    booking_type: BookingType = BookingType.FIRST_COME
    allow_multiple_bookings: bool = False
    booking_settings: dict[str, Any] = Field(default_factory=dict)
    is_published: bool = False
    image_urls: list[str] = Field(default_factory=list)
    slots: list[SlotIn] = Field(default_factory=list)

    def manual_schedule(self) -> ManualSchedule | None:
        if self.start_time is None or self.end_time is None:
            return None
        return ManualSchedule(self.start_time, self.end_time)

    def to_draft(self, slots: tuple[PhotoSessionSlot, ...]) -> PhotoSessionDraft:
        """Build the domain draft; slots, when present, own the schedule."""
        return PhotoSessionDraft(
            title=self.title,
            location=self.location,
            schedule=schedule_for(slots, None if slots else self.manual_schedule()),
            max_participants=self.max_participants,
            price_per_person=self.price_per_person,
            description=self.description,
            address=self.address,
            booking_type=self.booking_type,
            allow_multiple_bookings=self.allow_multiple_bookings,
            booking_settings=self.booking_settings,
            is_published=self.is_published,
            image_urls=self.image_urls,
        )


class SlotPreviewIn(BaseModel):
    """Working slot list to validate without saving."""

    base_start: datetime | None = None
    slots: list[SlotIn] = Field(default_factory=list)


class ImageUploadIn(BaseModel):
    """Base64-encoded image upload."""

    filename: str
    content_type: str
    data: str


class PaymentIntentIn(BaseModel):
    """Payment intent request for one booking.

    The charged amount always comes from the booked session or slot. A client
    amount is only compared against it.
    """

    booking_id: UUID
    photo_session_id: UUID
    amount: int | None = Field(default=None, gt=0)


class RefundIn(BaseModel):
    """Refund request; omit amount for a full refund."""

    reason: str
    amount: int | None = Field(default=None, gt=0)


class BillingIn(BaseModel):
    name: str
    email: str


class CheckoutIn(BaseModel):
    """Card checkout for a session or one of its slots."""

    payment_method_id: str
    billing: BillingIn
    slot_id: UUID | None = None

    def to_card(self) -> CardPayment:
        return CardPayment(
            payment_method_id=self.payment_method_id,
            billing=BillingDetails(name=self.billing.name, email=self.billing.email),
        )


def session_out(session: PhotoSession) -> dict[str, object]:
    return {
        "id": str(session.id),
        "organizer_id": str(session.organizer_id),
        "title": session.title,
        "description": session.description,
        "location": session.location,
        "address": session.address,
        "start_time": session.start_time.isoformat(),
        "end_time": session.end_time.isoformat(),
        "max_participants": session.max_participants,
        "current_participants": session.current_participants,
        "price_per_person": session.price_per_person,
        "booking_type": session.booking_type.value,
        "allow_multiple_bookings": session.allow_multiple_bookings,
        "is_published": session.is_published,
        "image_urls": session.image_urls,
    }


def slot_out(slot: PhotoSessionSlot) -> dict[str, object]:
    return {
        "id": str(slot.id),
        "slot_number": slot.slot_number,
        "start_time": slot.start_time.isoformat(),
        "end_time": slot.end_time.isoformat(),
        "time_label": format_slot_time(slot),
        "break_duration_minutes": slot.break_duration_minutes,
        "price_per_person": slot.price_per_person,
        "discounted_price": slot.charge_amount,
        "has_discount": slot.has_discount,
        "max_participants": slot.max_participants,
        "current_participants": slot.current_participants,
        "availability": slot.availability.value,
        "discount_type": slot.discount_type.value,
        "discount_value": slot.discount_value,
        "discount_condition": slot.discount_condition,
        "costume_image_url": slot.costume_image_url,
        "costume_description": slot.costume_description,
        "notes": slot.notes,
    }


def draft_out(draft: SlotDraft) -> dict[str, object]:
    return {
        "slot_number": draft.slot_number,
        "start_time": draft.start_time.isoformat(),
        "end_time": draft.end_time.isoformat(),
        "break_duration_minutes": draft.break_duration_minutes,
        "price_per_person": draft.price_per_person,
        "max_participants": draft.max_participants,
    }


def payment_out(result: PaymentResult) -> dict[str, object]:
    return {
        "success": result.success,
        "payment_intent_id": result.payment_intent_id,
        "client_secret": result.client_secret,
        "status": result.status.value if result.status else None,
        "error": result.error,
    }


def checkout_out(result: CheckoutResult) -> dict[str, object]:
    return {
        "success": result.success,
        "stage": result.stage.value,
        "booking_id": str(result.booking_id) if result.booking_id else None,
        "checkout_id": str(result.checkout_id) if result.checkout_id else None,
        "payment_intent_id": result.payment_intent_id,
        "amount": result.amount,
        "error": result.error,
    }


def checkout_record_out(record: CheckoutRecord) -> dict[str, object]:
    return {
        "id": str(record.id),
        "booking_id": str(record.booking_id),
        "user_id": str(record.user_id),
        "photo_session_id": str(record.photo_session_id),
        "slot_id": str(record.slot_id) if record.slot_id else None,
        "amount": record.amount,
        "stage": record.stage.value,
        "payment_intent_id": record.payment_intent_id,
        "last_error": record.last_error,
        "updated_at": record.updated_at.isoformat() if record.updated_at else None,
    }
