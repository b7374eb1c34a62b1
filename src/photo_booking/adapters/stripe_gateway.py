"""Stripe implementation of the payment gateway."""

import logging
from dataclasses import dataclass

import stripe

from photo_booking.domain.payments import (
    CardPayment,
    PaymentIntentParams,
    ProcessorIntent,
)
from photo_booking.errors import PaymentProcessorError
from photo_booking.services.payments import PaymentGateway

_logger = logging.getLogger(__name__)


@dataclass
class StripePaymentGateway(PaymentGateway):
    """Calls the Stripe API with a per-request secret key."""

    api_key: str

    def create_payment_intent(self, params: PaymentIntentParams) -> ProcessorIntent:
        """Create a payment intent."""
        intent = stripe.PaymentIntent.create(
            api_key=self.api_key,
            amount=params.amount,
            currency=params.currency,
            capture_method=params.capture_method,
            metadata=params.metadata.as_dict(),
            automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
        )
        return _to_intent(intent)

    def confirm_card(
        self, payment_intent_id: str, card: CardPayment
    ) -> ProcessorIntent:
        """Confirm an intent with a card; declines carry Stripe's user message."""
        try:
            intent = stripe.PaymentIntent.confirm(
                payment_intent_id,
                api_key=self.api_key,
                payment_method=card.payment_method_id,
                receipt_email=card.billing.email,
            )
        except stripe.CardError as exc:
            raise PaymentProcessorError(
                exc.user_message or str(exc), code=exc.code
            ) from exc
        except stripe.StripeError as exc:
            _logger.warning(
                "Stripe confirmation error",
                extra={"payment_intent_id": payment_intent_id},
            )
            raise PaymentProcessorError(
                exc.user_message or str(exc), code=exc.code
            ) from exc
        return _to_intent(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> ProcessorIntent:
        """Fetch the current state of an intent."""
        intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
        return _to_intent(intent)

    def create_refund(
        self, payment_intent_id: str, amount: int | None, metadata: dict[str, str]
    ) -> str:
        """Refund an intent, fully or partially, and return the refund id."""
        params: dict[str, object] = {
            "payment_intent": payment_intent_id,
            "reason": "requested_by_customer",
            "metadata": metadata,
        }
        if amount is not None:
            params["amount"] = amount
        refund = stripe.Refund.create(api_key=self.api_key, **params)
        return refund.id


def _to_intent(intent: stripe.PaymentIntent) -> ProcessorIntent:
    return ProcessorIntent(
        id=intent.id,
        status=intent.status,
        amount=intent.amount,
        client_secret=intent.client_secret,
    )
