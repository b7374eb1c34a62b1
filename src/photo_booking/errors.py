"""Errors raised by adapters for the services to translate."""


class BackendError(RuntimeError):
    """The hosted backend rejected a call; the message is the backend's."""


class PaymentProcessorError(RuntimeError):
    """The payment processor rejected a call; the message is user-facing."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code
