"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from photo_booking import messages
from photo_booking.api.admin import require_admin
from photo_booking.api.admin import router as admin_router
from photo_booking.api.schemas import (
    CheckoutIn,
    ImageUploadIn,
    PaymentIntentIn,
    PhotoSessionIn,
    RefundIn,
    SlotIn,
    SlotPreviewIn,
    checkout_out,
    draft_out,
    payment_out,
    session_out,
    slot_out,
)
from photo_booking.app_logging import configure_logging
from photo_booking.containers import AppContainer
from photo_booking.domain.bookings import BookingErrorCode, BookingResult
from photo_booking.domain.pricing import InvalidMultiSlotDiscount
from photo_booking.domain.sessions import EmptySchedule, InvalidSchedule
from photo_booking.domain.slots import PhotoSessionSlot, SlotValidationError
from photo_booking.services.photo_sessions import SessionActionResult
from photo_booking.services.slot_editor import SlotEditor

_BOOKING_ERROR_STATUS = {
    BookingErrorCode.FULL: status.HTTP_409_CONFLICT,
    BookingErrorCode.ALREADY_BOOKED: status.HTTP_409_CONFLICT,
    BookingErrorCode.SESSION_ENDED: status.HTTP_409_CONFLICT,
    BookingErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
}
_SESSION_ERROR_STATUS = {
    messages.SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    messages.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


async def current_user(x_user_id: str | None = Header(default=None)) -> UUID:
    """Resolve the authenticated user forwarded by the gateway."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=messages.AUTH_REQUIRED
        )
    try:
        return UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=messages.AUTH_REQUIRED
        ) from exc


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(SlotValidationError)
    async def slot_validation_error(
        _request: Request, exc: SlotValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "field": exc.field},
        )

    @app.exception_handler(InvalidMultiSlotDiscount)
    async def multi_slot_discount_error(
        _request: Request, exc: InvalidMultiSlotDiscount
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": messages.INVALID_MULTI_SLOT_DISCOUNT,
                "reason": str(exc),
                "field": exc.field,
            },
        )

    @app.exception_handler(EmptySchedule)
    @app.exception_handler(InvalidSchedule)
    async def schedule_error(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "field": "schedule"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/photo-sessions", status_code=status.HTTP_201_CREATED)
    async def create_photo_session(
        payload: PhotoSessionIn, request: Request, user_id: UUID = Depends(current_user)
    ) -> dict[str, object]:
        """Create a session together with its slots."""
        state_container: AppContainer = request.app.state.container
        slots = _build_slots(payload.slots, payload.start_time)
        result = state_container.session_service.create_with_slots(
            user_id, payload.to_draft(slots)
        )
        return _session_response(result)

    @app.put("/photo-sessions/{session_id}")
    async def update_photo_session(
        session_id: UUID,
        payload: PhotoSessionIn,
        request: Request,
        user_id: UUID = Depends(current_user),
    ) -> dict[str, object]:
        """Update a session and replace its slots."""
        state_container: AppContainer = request.app.state.container
        slots = _build_slots(payload.slots, payload.start_time, session_id)
        result = state_container.session_service.update_with_slots(
            session_id, user_id, payload.to_draft(slots)
        )
        return _session_response(result)

    @app.get("/photo-sessions/{session_id}/slots")
    async def list_slots(session_id: UUID, request: Request) -> dict[str, object]:
        """Return active slots with their availability."""
        state_container: AppContainer = request.app.state.container
        if state_container.session_service.get_session(session_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=messages.SESSION_NOT_FOUND
            )
        slots = state_container.session_service.list_slots(session_id)
        return {"slots": [slot_out(slot) for slot in slots]}

    @app.post("/photo-sessions/{session_id}/slots/preview")
    async def preview_slots(
        session_id: UUID, payload: SlotPreviewIn, _user_id: UUID = Depends(current_user)
    ) -> dict[str, object]:
        """Validate a working slot list and return the schedule it implies."""
        editor = SlotEditor(
            base_start=payload.base_start or _first_start(payload.slots),
            photo_session_id=session_id,
        )
        for slot in payload.slots:
            editor.add_or_update(slot.to_draft())
        schedule = editor.schedule
        return {
            "slots": [slot_out(slot) for slot in editor.commit()],
            "start_time": schedule.start_time.isoformat() if schedule else None,
            "end_time": schedule.end_time.isoformat() if schedule else None,
            "max_participants": schedule.max_participants if schedule else None,
            "next_slot": draft_out(editor.draft),
        }

    @app.post("/photo-sessions/{session_id}/costume-images")
    async def upload_costume_image(
        session_id: UUID,
        payload: ImageUploadIn,
        request: Request,
        user_id: UUID = Depends(current_user),
    ) -> dict[str, object]:
        """Upload a costume reference image for the organizer's session."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_service.get_session(session_id)
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=messages.SESSION_NOT_FOUND
            )
        if session.organizer_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=messages.FORBIDDEN
            )
        try:
            content = base64.b64decode(payload.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=messages.UPLOAD_FAILED,
            ) from exc
        result = state_container.image_service.upload_session_image(
            session_id, payload.filename, content, payload.content_type
        )
        if not result.success:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
        return {"url": result.url}

    @app.post("/photo-sessions/{session_id}/bookings", status_code=status.HTTP_201_CREATED)
    async def book_session(
        session_id: UUID, request: Request, user_id: UUID = Depends(current_user)
    ) -> dict[str, object]:
        """Book a session that has no slots."""
        state_container: AppContainer = request.app.state.container
        result = state_container.booking_service.book(session_id, user_id)
        return _booking_response(result)

    @app.post("/slots/{slot_id}/bookings", status_code=status.HTTP_201_CREATED)
    async def book_slot(
        slot_id: UUID, request: Request, user_id: UUID = Depends(current_user)
    ) -> dict[str, object]:
        """Book one slot."""
        state_container: AppContainer = request.app.state.container
        slot = state_container.session_service.get_slot(slot_id)
        if slot is None or slot.photo_session_id is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=messages.SLOT_NOT_FOUND
            )
        result = state_container.booking_service.book(
            slot.photo_session_id, user_id, slot_id
        )
        return _booking_response(result)

    @app.delete("/bookings/{booking_id}")
    async def cancel_booking(
        booking_id: UUID, request: Request, user_id: UUID = Depends(current_user)
    ) -> dict[str, object]:
        """Cancel one of the user's bookings."""
        state_container: AppContainer = request.app.state.container
        result = state_container.booking_service.cancel_booking(booking_id, user_id)
        return _booking_response(result)

    @app.post("/payments/intents", status_code=status.HTTP_201_CREATED)
    async def create_payment_intent(
        payload: PaymentIntentIn, request: Request, user_id: UUID = Depends(current_user)
    ) -> JSONResponse:
        """Create a payment intent priced from the booked session or slot."""
        state_container: AppContainer = request.app.state.container
        result = state_container.checkout_service.create_booking_intent(
            user_id, payload.booking_id, payload.photo_session_id, payload.amount
        )
        code = status.HTTP_201_CREATED if result.success else status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=code, content=payment_out(result))

    @app.post("/payments/{payment_intent_id}/confirm")
    async def confirm_payment(
        payment_intent_id: str, request: Request, _user_id: UUID = Depends(current_user)
    ) -> JSONResponse:
        """Mirror the processor's status and confirm its bookings when paid."""
        state_container: AppContainer = request.app.state.container
        result = state_container.payment_service.confirm_payment(payment_intent_id)
        code = status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=code, content=payment_out(result))

    @app.post("/payments/{payment_id}/refund", dependencies=[Depends(require_admin)])
    async def refund_payment(
        payment_id: UUID, payload: RefundIn, request: Request
    ) -> JSONResponse:
        """Refund a payment fully or partially."""
        state_container: AppContainer = request.app.state.container
        result = state_container.payment_service.process_refund(
            payment_id, payload.reason, payload.amount
        )
        code = status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=code, content=payment_out(result))

    @app.post("/photo-sessions/{session_id}/checkout")
    async def checkout(
        session_id: UUID,
        payload: CheckoutIn,
        request: Request,
        user_id: UUID = Depends(current_user),
    ) -> JSONResponse:
        """Book and pay in one call."""
        state_container: AppContainer = request.app.state.container
        result = state_container.checkout_service.run(
            session_id, user_id, payload.to_card(), payload.slot_id
        )
        if not result.success:
            logger.info(
                "Checkout stopped at %s",
                result.stage,
                extra={"session_id": str(session_id)},
            )
        code = status.HTTP_200_OK if result.success else status.HTTP_402_PAYMENT_REQUIRED
        return JSONResponse(status_code=code, content=checkout_out(result))

    return app


def _build_slots(
    slots: list[SlotIn], base_start: datetime | None, session_id: UUID | None = None
) -> tuple[PhotoSessionSlot, ...]:
    """Run submitted slots through the editor so the working-set rules apply."""
    editor = SlotEditor(
        base_start=base_start or _first_start(slots), photo_session_id=session_id
    )
    for slot in slots:
        editor.add_or_update(slot.to_draft())
    return editor.commit()


def _first_start(slots: Iterable[SlotIn]) -> datetime:
    starts = [slot.start_time for slot in slots]
    return min(starts) if starts else datetime.now(tz=UTC)


def _session_response(result: SessionActionResult) -> dict[str, object]:
    if not result.success or result.session is None:
        raise HTTPException(
            status_code=_SESSION_ERROR_STATUS.get(
                result.error, status.HTTP_400_BAD_REQUEST
            ),
            detail=result.error,
        )
    return {"session": session_out(result.session)}


def _booking_response(result: BookingResult) -> dict[str, object]:
    if not result.success:
        raise HTTPException(
            status_code=_BOOKING_ERROR_STATUS.get(
                result.error_code, status.HTTP_400_BAD_REQUEST
            ),
            detail={
                "error": result.error,
                "error_code": result.error_code.value if result.error_code else None,
            },
        )
    return {
        "success": True,
        "booking_id": str(result.booking_id) if result.booking_id else None,
    }


