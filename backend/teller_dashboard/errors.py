"""Error taxonomy for the manual-data API and the JSON handler that renders it."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ManualDataError(Exception):
    """Base for errors that map directly onto an HTTP response."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None, **extra: Any):
        super().__init__(message or self.error)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        payload.update(self.extra)
        return payload


class InvalidInputError(ManualDataError):
    """400 with a caller-chosen error label, e.g. ``validation_failed``."""

    status_code = 400

    def __init__(self, error: str, **extra: Any):
        super().__init__(**extra)
        self.error = error


class NotFoundError(ManualDataError, LookupError):
    status_code = 404
    error = "not_found"

    def to_payload(self) -> dict[str, Any]:
        # Demo routes have always answered with a plain sentence.
        return {"error": self.message or self.error, **self.extra}


class FeatureDisabledError(ManualDataError):
    status_code = 404

    def __init__(self, error: str, *, status_code: int = 404):
        super().__init__(status_code=status_code)
        self.error = error


class ReadOnlyModeError(ManualDataError):
    status_code = 405
    error = "manual_data_readonly"


class StoreUnavailableError(ManualDataError):
    status_code = 503
    error = "manual_data_store_unavailable"

    def __init__(self, error: str | None = None):
        super().__init__()
        if error:
            self.error = error


class ForeignKeyViolationError(ManualDataError):
    """The rent-roll row points at an account id the accounts table lacks."""

    status_code = 424
    error = "Failed to persist manual data"
    code = "FK_VIOLATION"
    hint = "Seed this account_id in the referenced accounts table or relax the FK constraint"

    def __init__(self, message: str = "Foreign key violation: account_id does not exist in the referenced accounts table"):
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["code"] = self.code
        payload["hint"] = self.hint
        return payload


class UpstreamProxyError(ManualDataError):
    status_code = 502
    error = "Backend proxy error"


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def manual_data_error_handler(request: Request, exc: ManualDataError) -> JSONResponse:
    payload = exc.to_payload()
    request_id = get_request_id(request)
    if request_id and not isinstance(exc, (NotFoundError, UpstreamProxyError)):
        payload["request_id"] = request_id
    return JSONResponse(status_code=exc.status_code, content=payload)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ManualDataError, manual_data_error_handler)
