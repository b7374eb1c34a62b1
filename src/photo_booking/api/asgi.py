"""ASGI entrypoint for the photo booking API."""

from photo_booking.api.app import create_app
from photo_booking.containers import build_container

app = create_app(build_container())
