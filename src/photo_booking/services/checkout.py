"""Paid booking pipeline with persisted stages and reconciliation."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from photo_booking import messages
from photo_booking.domain.bookings import BookingErrorCode, BookingResult
from photo_booking.domain.payments import (
    STUCK_STAGES,
    CardPayment,
    CheckoutRecord,
    CheckoutResult,
    CheckoutStage,
    PaymentIntentParams,
    PaymentMetadata,
    PaymentResult,
    PaymentStatus,
    ReconcileReport,
)
from photo_booking.domain.pricing import allocate_total, multi_slot_total
from photo_booking.services.bookings import BookingService
from photo_booking.services.payments import PaymentService
from photo_booking.services.photo_sessions import PhotoSessionService

_logger = logging.getLogger(__name__)

_CAPTURED_STATUSES = {PaymentStatus.SUCCEEDED, PaymentStatus.PROCESSING}


class CheckoutRepository(Protocol):
    """Persistence interface for checkout progress."""

    def create_checkout(  # noqa: PLR0913
        self,
        booking_id: UUID,
        user_id: UUID,
        photo_session_id: UUID,
        slot_id: UUID | None,
        amount: int,
    ) -> CheckoutRecord:
        """Insert a checkout at the pending_booking stage."""

    def update_checkout(
        self,
        checkout_id: UUID,
        stage: CheckoutStage,
        payment_intent_id: str | None = None,
        last_error: str | None = None,
    ) -> None:
        """Advance a checkout's stage."""

    def list_checkouts(
        self, stages: frozenset[CheckoutStage], updated_before: datetime
    ) -> list[CheckoutRecord]:
        """Return checkouts in the given stages last touched before a time."""


@dataclass(frozen=True)
class _OrderLine:
    booking_id: UUID
    slot_id: UUID | None
    amount: int


@dataclass
class CheckoutService:
    """Run booking, intent, card confirmation and payment confirmation in order.

    Each step is a separate remote call. There is no compensation: a failure
    leaves earlier side effects in place and the checkout rows record how far
    the pipeline got, so ``reconcile`` can finish charged-but-unconfirmed
    bookings later.
    """

    session_service: PhotoSessionService
    booking_service: BookingService
    payment_service: PaymentService
    repository: CheckoutRepository
    currency: str = "jpy"
    stale_after: timedelta = timedelta(minutes=15)

    def amount_for(self, session_id: UUID, slot_id: UUID | None) -> int | None:
        """Charge amount for a session or one of its slots."""
        session = self.session_service.get_session(session_id)
        if session is None:
            return None
        if slot_id is None:
            return session.price_per_person
        slot = self.session_service.get_slot(slot_id)
        if slot is None or slot.photo_session_id not in {None, session_id}:
            return None
        return slot.charge_amount

    def create_booking_intent(
        self,
        user_id: UUID,
        booking_id: UUID,
        photo_session_id: UUID,
        requested_amount: int | None = None,
    ) -> PaymentResult:
        """Create an intent for one booking, priced from its session or slot.

        A requested amount that differs from the booked price is rejected.
        """
        booking = self.booking_service.get_booking(booking_id)
        if booking is None or booking.user_id != user_id:
            return PaymentResult(success=False, error=messages.BOOKING_NOT_FOUND)
        amount = self.amount_for(booking.photo_session_id, booking.slot_id)
        if amount is None:
            return PaymentResult(success=False, error=messages.SESSION_NOT_FOUND)
        if requested_amount is not None and requested_amount != amount:
            _logger.warning(
                "Rejected intent amount %s, booking price is %s",
                requested_amount,
                amount,
                extra={"booking_id": str(booking_id)},
            )
            return PaymentResult(success=False, error=messages.PAYMENT_AMOUNT_MISMATCH)
        return self.payment_service.create_payment_intent(
            user_id,
            PaymentIntentParams(
                amount=amount,
                currency=self.currency,
                metadata=PaymentMetadata(
                    booking_id=booking_id,
                    photo_session_id=photo_session_id,
                    user_id=user_id,
                ),
            ),
        )

    def run(
        self,
        session_id: UUID,
        user_id: UUID,
        card: CardPayment,
        slot_id: UUID | None = None,
    ) -> CheckoutResult:
        """Book and pay, stopping at the first failing step."""
        amount = self.amount_for(session_id, slot_id)
        if amount is None:
            return _not_started(messages.SESSION_NOT_FOUND)

        booking = self.booking_service.book(session_id, user_id, slot_id)
        if not booking.success or booking.booking_id is None:
            return _not_started(booking.error or messages.BOOKING_FAILED)
        line = _OrderLine(booking.booking_id, slot_id, amount)
        return self._pay(session_id, user_id, card, [line])[0]

    def run_many(
        self,
        session_id: UUID,
        user_id: UUID,
        card: CardPayment,
        slot_ids: Sequence[UUID],
    ) -> list[CheckoutResult]:
        """Book several slots and pay for them with one charge.

        The charge is the multi-slot total of the slots that were booked,
        with the session's multi-slot discount applied when the session allows
        several bookings. Each checkout records its share of that total.
        Results follow the order of ``slot_ids``.
        """
        session = self.session_service.get_session(session_id)
        if session is None:
            return [_not_started(messages.SESSION_NOT_FOUND) for _ in slot_ids]

        results: dict[int, CheckoutResult] = {}
        booked: list[tuple[int, _OrderLine]] = []
        for index, slot_id in enumerate(slot_ids):
            amount = self.amount_for(session_id, slot_id)
            if amount is None:
                results[index] = _not_started(messages.SLOT_NOT_FOUND)
                continue
            booking = self.booking_service.book(session_id, user_id, slot_id)
            if not booking.success or booking.booking_id is None:
                results[index] = _not_started(booking.error or messages.BOOKING_FAILED)
                continue
            booked.append((index, _OrderLine(booking.booking_id, slot_id, amount)))

        if booked:
            prices = [line.amount for _, line in booked]
            rule = session.multi_slot_discount if session.allow_multiple_bookings else None
            shares = allocate_total(multi_slot_total(prices, rule), prices)
            lines = [
                _OrderLine(line.booking_id, line.slot_id, share)
                for (_, line), share in zip(booked, shares, strict=True)
            ]
            paid = self._pay(session_id, user_id, card, lines)
            for (index, _), result in zip(booked, paid, strict=True):
                results[index] = result
        return [results[index] for index in range(len(slot_ids))]

    def _pay(
        self,
        session_id: UUID,
        user_id: UUID,
        card: CardPayment,
        lines: list[_OrderLine],
    ) -> list[CheckoutResult]:
        """Charge the booked lines with one intent and advance their checkouts."""
        checkouts = [
            self.repository.create_checkout(
                booking_id=line.booking_id,
                user_id=user_id,
                photo_session_id=session_id,
                slot_id=line.slot_id,
                amount=line.amount,
            )
            for line in lines
        ]

        def advance(
            stage: CheckoutStage,
            intent_id: str | None = None,
            last_error: str | None = None,
        ) -> None:
            for checkout in checkouts:
                self.repository.update_checkout(
                    checkout.id, stage, intent_id, last_error=last_error
                )

        def outcome(
            stage: CheckoutStage,
            error: str | None = None,
            intent_id: str | None = None,
        ) -> list[CheckoutResult]:
            return [
                CheckoutResult(
                    success=stage is CheckoutStage.CONFIRMED,
                    stage=stage,
                    booking_id=line.booking_id,
                    checkout_id=checkout.id,
                    payment_intent_id=intent_id,
                    amount=line.amount,
                    error=error,
                )
                for line, checkout in zip(lines, checkouts, strict=True)
            ]

        intent = self.payment_service.create_payment_intent(
            user_id,
            PaymentIntentParams(
                amount=sum(line.amount for line in lines),
                currency=self.currency,
                metadata=PaymentMetadata(
                    booking_id=lines[0].booking_id,
                    photo_session_id=session_id,
                    user_id=user_id,
                    extra_booking_ids=tuple(line.booking_id for line in lines[1:]),
                ),
            ),
        )
        if not intent.success or intent.payment_intent_id is None:
            error = intent.error or messages.PAYMENT_INTENT_FAILED
            advance(CheckoutStage.FAILED, last_error=error)
            return outcome(CheckoutStage.PENDING_BOOKING, error)
        intent_id = intent.payment_intent_id
        advance(CheckoutStage.INTENT_CREATED, intent_id)

        charge = self.payment_service.confirm_card(intent_id, card)
        if not charge.success:
            error = charge.error or messages.CARD_DECLINED
            advance(CheckoutStage.FAILED, intent_id, last_error=error)
            return outcome(CheckoutStage.INTENT_CREATED, error, intent_id)
        if charge.status not in _CAPTURED_STATUSES:
            return outcome(
                CheckoutStage.INTENT_CREATED, messages.CARD_REQUIRES_ACTION, intent_id
            )
        advance(CheckoutStage.CHARGE_CAPTURED, intent_id)

        confirmation = self.payment_service.confirm_payment(intent_id)
        if not confirmation.success or confirmation.status is not PaymentStatus.SUCCEEDED:
            error = confirmation.error or messages.CHECKOUT_CONFIRM_PENDING
            _logger.warning(
                "Charge captured but booking not confirmed",
                extra={"payment_intent_id": intent_id},
            )
            advance(CheckoutStage.CHARGE_CAPTURED, intent_id, last_error=error)
            return outcome(CheckoutStage.CHARGE_CAPTURED, error, intent_id)

        advance(CheckoutStage.CONFIRMED, intent_id)
        _logger.info("Checkout confirmed for %s bookings", len(lines))
        return outcome(CheckoutStage.CONFIRMED, intent_id=intent_id)

    def for_card(self, card: CardPayment) -> "CardCheckoutBooker":
        """Adapt the pipeline to the booking flow's booker interface."""
        return CardCheckoutBooker(self, card)

    def list_stuck(self, now: datetime | None = None) -> list[CheckoutRecord]:
        """Checkouts that stopped between intent creation and confirmation."""
        cutoff = (now or datetime.now(tz=UTC)) - self.stale_after
        return self.repository.list_checkouts(STUCK_STAGES, cutoff)

    def reconcile(self, now: datetime | None = None) -> ReconcileReport:
        """Re-run payment confirmation for stuck checkouts."""
        stuck = self.list_stuck(now)
        report = ReconcileReport(examined=len(stuck))
        for checkout in stuck:
            if checkout.payment_intent_id is None:
                report.still_pending.append(checkout.id)
                continue
            result = self.payment_service.confirm_payment(checkout.payment_intent_id)
            if result.success and result.status is PaymentStatus.SUCCEEDED:
                self.repository.update_checkout(
                    checkout.id, CheckoutStage.CONFIRMED, checkout.payment_intent_id
                )
                report.confirmed.append(checkout.id)
            elif result.status in {PaymentStatus.FAILED, PaymentStatus.CANCELED}:
                self.repository.update_checkout(
                    checkout.id,
                    CheckoutStage.FAILED,
                    checkout.payment_intent_id,
                    last_error=result.status.value,
                )
                report.failed.append(checkout.id)
            else:
                report.still_pending.append(checkout.id)
        _logger.info(
            "Reconciled %s checkouts: %s confirmed, %s failed",
            report.examined,
            len(report.confirmed),
            len(report.failed),
        )
        return report


def _not_started(error: str) -> CheckoutResult:
    return CheckoutResult(
        success=False, stage=CheckoutStage.PENDING_BOOKING, error=error
    )


def _as_booking_result(result: CheckoutResult) -> BookingResult:
    if result.success:
        return BookingResult(success=True, booking_id=result.booking_id)
    return BookingResult.failed(
        result.error or messages.BOOKING_FAILED, BookingErrorCode.UNKNOWN
    )


@dataclass
class CardCheckoutBooker:
    """Booker that pays with a card as part of booking."""

    checkout_service: CheckoutService
    card: CardPayment

    def book(
        self, session_id: UUID, user_id: UUID, slot_id: UUID | None = None
    ) -> BookingResult:
        result = self.checkout_service.run(session_id, user_id, self.card, slot_id)
        return _as_booking_result(result)

    def book_many(
        self, session_id: UUID, user_id: UUID, slot_ids: Sequence[UUID]
    ) -> list[BookingResult]:
        """Book the slots together so the multi-slot price is what gets charged."""
        results = self.checkout_service.run_many(
            session_id, user_id, self.card, slot_ids
        )
        return [_as_booking_result(result) for result in results]
