"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from photo_booking.adapters.stripe_gateway import StripePaymentGateway
from photo_booking.adapters.supabase_booking_repository import SupabaseBookingRepository
from photo_booking.adapters.supabase_checkout_repository import (
    SupabaseCheckoutRepository,
)
from photo_booking.adapters.supabase_image_storage import SupabaseImageStorage
from photo_booking.adapters.supabase_payment_repository import (
    SupabasePaymentRepository,
)
from photo_booking.adapters.supabase_photo_session_repository import (
    SupabasePhotoSessionRepository,
)
from photo_booking.config import Settings
from photo_booking.services.bookings import BookingService
from photo_booking.services.checkout import CheckoutService
from photo_booking.services.images import ImageService
from photo_booking.services.payments import PaymentService
from photo_booking.services.photo_sessions import PhotoSessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: PhotoSessionService
    booking_service: BookingService
    payment_service: PaymentService
    checkout_service: CheckoutService
    image_service: ImageService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    booking_repository = SupabaseBookingRepository(supabase_client)
    session_service = PhotoSessionService(
        SupabasePhotoSessionRepository(supabase_client)
    )
    booking_service = BookingService(booking_repository)
    payment_service = PaymentService(
        gateway=StripePaymentGateway(resolved_settings.stripe_secret_key),
        payment_repository=SupabasePaymentRepository(supabase_client),
        booking_repository=booking_repository,
        platform_fee_rate=resolved_settings.platform_fee_rate,
        processor_fee_rate=resolved_settings.processor_fee_rate,
    )
    checkout_service = CheckoutService(
        session_service=session_service,
        booking_service=booking_service,
        payment_service=payment_service,
        repository=SupabaseCheckoutRepository(supabase_client),
        currency=resolved_settings.currency,
        stale_after=timedelta(minutes=resolved_settings.checkout_stale_minutes),
    )
    image_service = ImageService(
        SupabaseImageStorage(supabase_client, resolved_settings.storage_bucket)
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        booking_service=booking_service,
        payment_service=payment_service,
        checkout_service=checkout_service,
        image_service=image_service,
        close_resources=close_resources,
    )
