"""Shared test fixtures."""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from photo_booking.config import Settings
from photo_booking.containers import AppContainer
from photo_booking.domain.bookings import BookingRecord, BookingStatus, SlotBookingResult
from photo_booking.domain.payments import (
    CardPayment,
    CheckoutRecord,
    CheckoutStage,
    PaymentIntentParams,
    PaymentRecord,
    PaymentStatus,
    ProcessorIntent,
)
from photo_booking.domain.pricing import FeeBreakdown
from photo_booking.domain.sessions import PhotoSession, PhotoSessionDraft
from photo_booking.domain.slots import PhotoSessionSlot
from photo_booking.errors import BackendError, PaymentProcessorError
from photo_booking.services.bookings import BookingRepository, BookingService
from photo_booking.services.checkout import CheckoutRepository, CheckoutService
from photo_booking.services.images import ImageService, ImageStorage
from photo_booking.services.payments import (
    PaymentGateway,
    PaymentRepository,
    PaymentService,
)
from photo_booking.services.photo_sessions import (
    PhotoSessionRepository,
    PhotoSessionService,
)


@dataclass
class InMemoryPhotoSessionRepository(PhotoSessionRepository):
    """In-memory session and slot storage for tests."""

    sessions: dict[UUID, PhotoSession] = field(default_factory=dict)
    slots: dict[UUID, list[PhotoSessionSlot]] = field(default_factory=dict)
    deleted_sessions: list[UUID] = field(default_factory=list)
    fail_slot_insert: bool = False

    def create_session(
        self, organizer_id: UUID, draft: PhotoSessionDraft
    ) -> PhotoSession:
        session = _session_from_draft(uuid4(), organizer_id, draft)
        self.sessions[session.id] = session
        return session

    def update_session(self, session_id: UUID, draft: PhotoSessionDraft) -> PhotoSession:
        existing = self.sessions[session_id]
        session = _session_from_draft(session_id, existing.organizer_id, draft)
        self.sessions[session_id] = session
        return session

    def delete_session(self, session_id: UUID) -> None:
        self.sessions.pop(session_id, None)
        self.deleted_sessions.append(session_id)

    def get_session(self, session_id: UUID) -> PhotoSession | None:
        return self.sessions.get(session_id)

    def insert_slots(
        self, session_id: UUID, slots: tuple[PhotoSessionSlot, ...]
    ) -> None:
        if self.fail_slot_insert:
            raise RuntimeError("Failed to create slots")
        self.slots[session_id] = [
            replace(slot, photo_session_id=session_id) for slot in slots
        ]

    def delete_slots(self, session_id: UUID) -> None:
        self.slots.pop(session_id, None)

    def list_slots(self, session_id: UUID) -> list[PhotoSessionSlot]:
        active = [slot for slot in self.slots.get(session_id, []) if slot.is_active]
        return sorted(active, key=lambda slot: slot.slot_number)

    def get_slot(self, slot_id: UUID) -> PhotoSessionSlot | None:
        for slots in self.slots.values():
            for slot in slots:
                if slot.id == slot_id:
                    return slot
        return None

    def add_session(self, session: PhotoSession, slots=()) -> PhotoSession:  # type: ignore[no-untyped-def]
        self.sessions[session.id] = session
        self.slots[session.id] = [
            replace(slot, photo_session_id=session.id) for slot in slots
        ]
        return session


def _session_from_draft(
    session_id: UUID, organizer_id: UUID, draft: PhotoSessionDraft
) -> PhotoSession:
    return PhotoSession(
        id=session_id,
        organizer_id=organizer_id,
        title=draft.title,
        location=draft.location,
        start_time=draft.schedule.start_time,
        end_time=draft.schedule.end_time,
        max_participants=draft.effective_max_participants,
        price_per_person=draft.price_per_person,
        description=draft.description,
        address=draft.address,
        booking_type=draft.booking_type,
        allow_multiple_bookings=draft.allow_multiple_bookings,
        booking_settings=draft.booking_settings,
        is_published=draft.is_published,
        image_urls=draft.image_urls,
    )


@dataclass
class InMemoryBookingRepository(BookingRepository):
    """Booking store that enforces seats the way the backend procedures do."""

    bookings: dict[UUID, BookingRecord] = field(default_factory=dict)
    seats: dict[UUID, int] = field(default_factory=dict)
    slot_sessions: dict[UUID, UUID] = field(default_factory=dict)
    session_repository: InMemoryPhotoSessionRepository | None = None
    backend_error: str | None = None
    calls: list[tuple[str, UUID]] = field(default_factory=list)

    def create_photo_session_booking(self, session_id: UUID, user_id: UUID) -> UUID:
        self.calls.append(("session", session_id))
        if self.backend_error:
            raise BackendError(self.backend_error)
        if any(
            booking.photo_session_id == session_id
            and booking.user_id == user_id
            and booking.status is not BookingStatus.CANCELLED
            for booking in self.bookings.values()
        ):
            raise BackendError("既に予約済みです")
        if self.seats.get(session_id, 1) <= 0:
            raise BackendError("満席です")
        return self._book(session_id, user_id, None)

    def create_slot_booking(self, slot_id: UUID, user_id: UUID) -> SlotBookingResult:
        self.calls.append(("slot", slot_id))
        if self.seats.get(slot_id, 1) <= 0:
            return SlotBookingResult(success=False, message="満席です")
        session_id = self._session_of(slot_id)
        booking_id = self._book(session_id, user_id, slot_id)
        return SlotBookingResult(success=True, booking_id=booking_id, message="予約完了")

    def cancel_photo_session_booking(self, booking_id: UUID, user_id: UUID) -> None:
        self._cancel(booking_id)

    def cancel_slot_booking(
        self, booking_id: UUID, user_id: UUID
    ) -> SlotBookingResult:
        self._cancel(booking_id)
        return SlotBookingResult(success=True, booking_id=booking_id)

    def get_booking(self, booking_id: UUID) -> BookingRecord | None:
        return self.bookings.get(booking_id)

    def update_status(self, booking_id: UUID, status: BookingStatus) -> None:
        self.bookings[booking_id] = replace(self.bookings[booking_id], status=status)

    def _book(self, session_id: UUID, user_id: UUID, slot_id: UUID | None) -> UUID:
        key = slot_id or session_id
        if key in self.seats:
            self.seats[key] -= 1
        booking = BookingRecord(
            id=uuid4(),
            user_id=user_id,
            photo_session_id=session_id,
            status=BookingStatus.PENDING,
            slot_id=slot_id,
        )
        self.bookings[booking.id] = booking
        return booking.id

    def _session_of(self, slot_id: UUID) -> UUID:
        if slot_id in self.slot_sessions:
            return self.slot_sessions[slot_id]
        slot = None
        if self.session_repository is not None:
            slot = self.session_repository.get_slot(slot_id)
        if slot is not None and slot.photo_session_id is not None:
            return slot.photo_session_id
        return uuid4()

    def _cancel(self, booking_id: UUID) -> None:
        booking = self.bookings[booking_id]
        self.bookings[booking_id] = replace(booking, status=BookingStatus.CANCELLED)
        key = booking.slot_id or booking.photo_session_id
        if key in self.seats:
            self.seats[key] += 1


@dataclass
class FakePaymentGateway(PaymentGateway):
    """Payment processor fake keeping intents in memory."""

    intents: dict[str, ProcessorIntent] = field(default_factory=dict)
    confirm_status: str = "succeeded"
    decline_message: str | None = None
    fail_create: bool = False
    refunds: list[tuple[str, int | None, dict[str, str]]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)

    def create_payment_intent(self, params: PaymentIntentParams) -> ProcessorIntent:
        self.calls.append("create")
        if self.fail_create:
            raise RuntimeError("processor unavailable")
        intent_id = f"pi_{len(self.intents) + 1}"
        intent = ProcessorIntent(
            id=intent_id,
            status="requires_payment_method",
            amount=params.amount,
            client_secret=f"{intent_id}_secret",
        )
        self.intents[intent_id] = intent
        return intent

    def confirm_card(
        self, payment_intent_id: str, card: CardPayment
    ) -> ProcessorIntent:
        self.calls.append("confirm_card")
        if self.decline_message:
            raise PaymentProcessorError(self.decline_message, code="card_declined")
        intent = replace(self.intents[payment_intent_id], status=self.confirm_status)
        self.intents[payment_intent_id] = intent
        return intent

    def retrieve_payment_intent(self, payment_intent_id: str) -> ProcessorIntent:
        self.calls.append("retrieve")
        return self.intents[payment_intent_id]

    def create_refund(
        self, payment_intent_id: str, amount: int | None, metadata: dict[str, str]
    ) -> str:
        self.refunds.append((payment_intent_id, amount, metadata))
        return f"re_{len(self.refunds)}"


@dataclass
class InMemoryPaymentRepository(PaymentRepository):
    """In-memory payment rows."""

    payments: dict[UUID, PaymentRecord] = field(default_factory=dict)
    refund_reasons: dict[UUID, str] = field(default_factory=dict)
    fail_create: bool = False

    def find_succeeded_payment(self, booking_id: UUID) -> PaymentRecord | None:
        for payment in self.payments.values():
            if (
                payment.booking_id == booking_id
                and payment.status is PaymentStatus.SUCCEEDED
            ):
                return payment
        return None

    def create_payment(
        self,
        params: PaymentIntentParams,
        payment_intent_id: str,
        fees: FeeBreakdown,
    ) -> PaymentRecord:
        if self.fail_create:
            raise RuntimeError("Failed to create payment record")
        payment = PaymentRecord(
            id=uuid4(),
            booking_id=params.metadata.booking_id,
            payment_intent_id=payment_intent_id,
            amount=params.amount,
            status=PaymentStatus.PENDING,
            currency=params.currency,
            platform_fee=fees.platform_fee,
            processor_fee=fees.processor_fee,
            organizer_payout=fees.organizer_payout,
            extra_booking_ids=params.metadata.extra_booking_ids,
        )
        self.payments[payment.id] = payment
        return payment

    def update_status(
        self,
        payment_intent_id: str,
        status: PaymentStatus,
        paid_at: datetime | None,
    ) -> PaymentRecord | None:
        for payment_id, payment in self.payments.items():
            if payment.payment_intent_id == payment_intent_id:
                updated = replace(payment, status=status, paid_at=paid_at)
                self.payments[payment_id] = updated
                return updated
        return None

    def get_payment(self, payment_id: UUID) -> PaymentRecord | None:
        return self.payments.get(payment_id)

    def record_refund(
        self,
        payment_id: UUID,
        status: PaymentStatus,
        refund_amount: int,
        reason: str,
    ) -> None:
        self.payments[payment_id] = replace(
            self.payments[payment_id], status=status, refund_amount=refund_amount
        )
        self.refund_reasons[payment_id] = reason


@dataclass
class InMemoryCheckoutRepository(CheckoutRepository):
    """In-memory checkout progress rows."""

    checkouts: dict[UUID, CheckoutRecord] = field(default_factory=dict)
    history: list[tuple[UUID, CheckoutStage]] = field(default_factory=list)

    def create_checkout(  # noqa: PLR0913
        self,
        booking_id: UUID,
        user_id: UUID,
        photo_session_id: UUID,
        slot_id: UUID | None,
        amount: int,
    ) -> CheckoutRecord:
        checkout = CheckoutRecord(
            id=uuid4(),
            booking_id=booking_id,
            user_id=user_id,
            photo_session_id=photo_session_id,
            amount=amount,
            stage=CheckoutStage.PENDING_BOOKING,
            slot_id=slot_id,
            updated_at=datetime.now(tz=UTC),
        )
        self.checkouts[checkout.id] = checkout
        self.history.append((checkout.id, checkout.stage))
        return checkout

    def update_checkout(
        self,
        checkout_id: UUID,
        stage: CheckoutStage,
        payment_intent_id: str | None = None,
        last_error: str | None = None,
    ) -> None:
        checkout = self.checkouts[checkout_id]
        self.checkouts[checkout_id] = replace(
            checkout,
            stage=stage,
            payment_intent_id=payment_intent_id or checkout.payment_intent_id,
            last_error=last_error,
            updated_at=datetime.now(tz=UTC),
        )
        self.history.append((checkout_id, stage))

    def list_checkouts(
        self, stages: frozenset[CheckoutStage], updated_before: datetime
    ) -> list[CheckoutRecord]:
        return [
            checkout
            for checkout in self.checkouts.values()
            if checkout.stage in stages
            and checkout.updated_at is not None
            and checkout.updated_at < updated_before
        ]


@dataclass
class FakeImageStorage(ImageStorage):
    """Records uploads and returns predictable URLs."""

    uploads: list[tuple[str, int, str]] = field(default_factory=list)
    fail: bool = False

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        if self.fail:
            raise RuntimeError("storage unavailable")
        self.uploads.append((path, len(content), content_type))
        return f"https://cdn.example.com/photo-sessions/{path}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        stripe_secret_key="sk_test_key",
    )


@pytest.fixture
def session_repository() -> InMemoryPhotoSessionRepository:
    return InMemoryPhotoSessionRepository()


@pytest.fixture
def booking_repository(
    session_repository: InMemoryPhotoSessionRepository,
) -> InMemoryBookingRepository:
    return InMemoryBookingRepository(session_repository=session_repository)


@pytest.fixture
def payment_repository() -> InMemoryPaymentRepository:
    return InMemoryPaymentRepository()


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def checkout_repository() -> InMemoryCheckoutRepository:
    return InMemoryCheckoutRepository()


@pytest.fixture
def image_storage() -> FakeImageStorage:
    return FakeImageStorage()


@pytest.fixture
def payment_service(
    gateway: FakePaymentGateway,
    payment_repository: InMemoryPaymentRepository,
    booking_repository: InMemoryBookingRepository,
) -> PaymentService:
    return PaymentService(
        gateway=gateway,
        payment_repository=payment_repository,
        booking_repository=booking_repository,
    )


@pytest.fixture
def checkout_service(
    session_repository: InMemoryPhotoSessionRepository,
    booking_repository: InMemoryBookingRepository,
    payment_service: PaymentService,
    checkout_repository: InMemoryCheckoutRepository,
) -> CheckoutService:
    return CheckoutService(
        session_service=PhotoSessionService(session_repository),
        booking_service=BookingService(booking_repository),
        payment_service=payment_service,
        repository=checkout_repository,
    )


@pytest.fixture
def container(
    settings: Settings,
    session_repository: InMemoryPhotoSessionRepository,
    booking_repository: InMemoryBookingRepository,
    payment_service: PaymentService,
    checkout_service: CheckoutService,
    image_storage: FakeImageStorage,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_service=checkout_service.session_service,
        booking_service=checkout_service.booking_service,
        payment_service=payment_service,
        checkout_service=checkout_service,
        image_service=ImageService(image_storage),
        close_resources=close_resources,
    )


BASE_START = datetime(2026, 5, 10, 10, 0, tzinfo=UTC)


def make_slot(  # noqa: PLR0913
    slot_number: int = 1,
    start: datetime = BASE_START,
    minutes: int = 50,
    price: int = 5000,
    capacity: int = 5,
    **overrides,  # type: ignore[no-untyped-def]
) -> PhotoSessionSlot:
    """Build a valid slot starting at ``start``."""
    values: dict[str, object] = {
        "id": uuid4(),
        "slot_number": slot_number,
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
        "price_per_person": price,
        "max_participants": capacity,
        "break_duration_minutes": 10,
    }
    values.update(overrides)
    return PhotoSessionSlot(**values)  # type: ignore[arg-type]


def make_session(**overrides) -> PhotoSession:  # type: ignore[no-untyped-def]
    """Build a persisted session without slots."""
    values: dict[str, object] = {
        "id": uuid4(),
        "organizer_id": uuid4(),
        "title": "Spring portrait session",
        "location": "Studio A",
        "start_time": BASE_START,
        "end_time": BASE_START + timedelta(hours=3),
        "max_participants": 10,
        "price_per_person": 5000,
    }
    values.update(overrides)
    return PhotoSession(**values)  # type: ignore[arg-type]
