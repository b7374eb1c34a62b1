"""Payment actions: intents, confirmation and refunds."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from photo_booking import messages
from photo_booking.domain.bookings import BookingStatus
from photo_booking.domain.payments import (
    CardPayment,
    PaymentIntentParams,
    PaymentRecord,
    PaymentResult,
    PaymentStatus,
    ProcessorIntent,
)
from photo_booking.domain.pricing import FeeBreakdown, fee_breakdown
from photo_booking.errors import PaymentProcessorError
from photo_booking.services.bookings import BookingRepository

_logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Interface to the payment processor."""

    def create_payment_intent(self, params: PaymentIntentParams) -> ProcessorIntent:
        """Create a payment intent."""

    def confirm_card(
        self, payment_intent_id: str, card: CardPayment
    ) -> ProcessorIntent:
        """Confirm an intent with a card payment method."""

    def retrieve_payment_intent(self, payment_intent_id: str) -> ProcessorIntent:
        """Fetch the current state of an intent."""

    def create_refund(
        self, payment_intent_id: str, amount: int | None, metadata: dict[str, str]
    ) -> str:
        """Refund an intent, fully or partially, and return the refund id."""


class PaymentRepository(Protocol):
    """Persistence interface for payment rows."""

    def find_succeeded_payment(self, booking_id: UUID) -> PaymentRecord | None:
        """Return a succeeded payment for the booking, if any."""

    def create_payment(
        self,
        params: PaymentIntentParams,
        payment_intent_id: str,
        fees: FeeBreakdown,
    ) -> PaymentRecord:
        """Insert a pending payment row."""

    def update_status(
        self,
        payment_intent_id: str,
        status: PaymentStatus,
        paid_at: datetime | None,
    ) -> PaymentRecord | None:
        """Update a payment by intent id and return it."""

    def get_payment(self, payment_id: UUID) -> PaymentRecord | None:
        """Return a payment by id, if present."""

    def record_refund(
        self,
        payment_id: UUID,
        status: PaymentStatus,
        refund_amount: int,
        reason: str,
    ) -> None:
        """Store refund details on a payment."""


@dataclass
class PaymentService:
    """Server-side payment actions around the processor."""

    gateway: PaymentGateway
    payment_repository: PaymentRepository
    booking_repository: BookingRepository
    platform_fee_rate: float = 0.10
    processor_fee_rate: float = 0.036

    def fees(self, amount: int) -> FeeBreakdown:
        """Informational fee split for an amount."""
        return fee_breakdown(amount, self.platform_fee_rate, self.processor_fee_rate)

    def create_payment_intent(
        self, user_id: UUID, params: PaymentIntentParams
    ) -> PaymentResult:
        """Create an intent for the user's bookings and record a pending payment.

        Every booking covered by the intent must belong to the user and to the
        photo session named in the metadata.
        """
        booking_id = params.metadata.booking_id
        for covered_id in params.metadata.booking_ids:
            booking = self.booking_repository.get_booking(covered_id)
            if booking is None or booking.user_id != user_id:
                return PaymentResult(success=False, error=messages.BOOKING_NOT_FOUND)
            if booking.photo_session_id != params.metadata.photo_session_id:
                return PaymentResult(
                    success=False, error=messages.PAYMENT_SESSION_MISMATCH
                )
        if self.payment_repository.find_succeeded_payment(booking_id):
            return PaymentResult(success=False, error=messages.PAYMENT_ALREADY_COMPLETED)

        try:
            intent = self.gateway.create_payment_intent(params)
        except Exception:
            _logger.exception(
                "Payment intent creation failed", extra={"booking_id": str(booking_id)}
            )
            return PaymentResult(success=False, error=messages.PAYMENT_INTENT_FAILED)

        try:
            self.payment_repository.create_payment(
                params, intent.id, self.fees(params.amount)
            )
        except Exception:
            _logger.exception(
                "Payment record creation failed", extra={"payment_intent_id": intent.id}
            )
            return PaymentResult(success=False, error=messages.PAYMENT_RECORD_FAILED)

        return PaymentResult(
            success=True,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            status=PaymentStatus.from_processor(intent.status),
        )

    def confirm_card(self, payment_intent_id: str, card: CardPayment) -> PaymentResult:
        """Confirm the card with the processor; its message is returned verbatim."""
        try:
            intent = self.gateway.confirm_card(payment_intent_id, card)
        except PaymentProcessorError as exc:
            _logger.warning(
                "Card confirmation declined: %s",
                exc,
                extra={"payment_intent_id": payment_intent_id},
            )
            return PaymentResult(
                success=False, payment_intent_id=payment_intent_id, error=str(exc)
            )
        status = PaymentStatus.from_processor(intent.status)
        if status in {PaymentStatus.FAILED, PaymentStatus.CANCELED}:
            return PaymentResult(
                success=False,
                payment_intent_id=payment_intent_id,
                status=status,
                error=messages.CARD_DECLINED,
            )
        return PaymentResult(
            success=True, payment_intent_id=payment_intent_id, status=status
        )

    def confirm_payment(self, payment_intent_id: str) -> PaymentResult:
        """Mirror the processor status locally and confirm its bookings when paid."""
        try:
            intent = self.gateway.retrieve_payment_intent(payment_intent_id)
            status = PaymentStatus.from_processor(intent.status)
            paid_at = datetime.now(tz=UTC) if status is PaymentStatus.SUCCEEDED else None
            payment = self.payment_repository.update_status(
                payment_intent_id, status, paid_at
            )
            if payment is None:
                return PaymentResult(success=False, error=messages.PAYMENT_NOT_FOUND)
            if status is PaymentStatus.SUCCEEDED:
                for booking_id in payment.booking_ids:
                    self.booking_repository.update_status(
                        booking_id, BookingStatus.CONFIRMED
                    )
        except Exception:
            _logger.exception(
                "Payment confirmation failed",
                extra={"payment_intent_id": payment_intent_id},
            )
            return PaymentResult(success=False, error=messages.PAYMENT_CONFIRM_FAILED)
        return PaymentResult(
            success=True, payment_intent_id=payment_intent_id, status=status
        )

    def process_refund(
        self, payment_id: UUID, reason: str, amount: int | None = None
    ) -> PaymentResult:
        """Refund a payment; a full refund cancels every booking it covers."""
        payment = self.payment_repository.get_payment(payment_id)
        if payment is None:
            return PaymentResult(success=False, error=messages.PAYMENT_NOT_FOUND)
        if not payment.payment_intent_id:
            return PaymentResult(success=False, error=messages.PAYMENT_NO_INTENT)

        refund_amount = amount or payment.amount
        is_partial = refund_amount < payment.amount
        try:
            self.gateway.create_refund(
                payment.payment_intent_id,
                amount,
                {"payment_id": str(payment_id), "reason": reason},
            )
            self.payment_repository.record_refund(
                payment_id,
                PaymentStatus.PARTIALLY_REFUNDED if is_partial else PaymentStatus.REFUNDED,
                refund_amount,
                reason,
            )
            if not is_partial:
                for booking_id in payment.booking_ids:
                    self.booking_repository.update_status(
                        booking_id, BookingStatus.CANCELLED
                    )
        except Exception:
            _logger.exception("Refund failed", extra={"payment_id": str(payment_id)})
            return PaymentResult(success=False, error=messages.REFUND_FAILED)
        return PaymentResult(success=True, payment_intent_id=payment.payment_intent_id)
