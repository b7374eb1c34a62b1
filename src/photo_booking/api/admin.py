"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from photo_booking.api.schemas import checkout_record_out

if TYPE_CHECKING:
    from photo_booking.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/checkouts/stuck", dependencies=[Depends(require_admin)])
async def stuck_checkouts(request: Request) -> dict[str, object]:
    """Return checkouts that stopped between intent creation and confirmation."""
    container: AppContainer = request.app.state.container
    stuck = container.checkout_service.list_stuck()
    return {"checkouts": [checkout_record_out(record) for record in stuck]}


@router.post("/checkouts/reconcile", dependencies=[Depends(require_admin)])
async def reconcile_checkouts(request: Request) -> dict[str, object]:
    """Re-run payment confirmation for stuck checkouts."""
    container: AppContainer = request.app.state.container
    report = container.checkout_service.reconcile()
    return {
        "examined": report.examined,
        "confirmed": [str(item) for item in report.confirmed],
        "still_pending": [str(item) for item in report.still_pending],
        "failed": [str(item) for item in report.failed],
    }
