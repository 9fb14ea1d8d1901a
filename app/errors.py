"""Application-wide error utilities and handlers."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from flask import Flask, jsonify


class APIError(Exception):
    """Base class for API-level errors."""

    status_code: int = 400

    def __init__(
        self, message: str, *, status_code: int | None = None, payload: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}


class ValidationError(APIError):
    """Error raised for validation failures."""

    status_code = 422


class UnknownCurrency(APIError):
    """A requested base or symbol is not published in the record(s) queried."""

    status_code = 400

    def __init__(self, codes: Iterable[str]):
        self.codes = sorted({str(code).upper() for code in codes})
        super().__init__(
            f"Unknown currency code(s): {', '.join(self.codes)}.",
            payload={"unknown": list(self.codes)},
        )


class DateNotFound(APIError):
    """The store holds data, just not for the requested date."""

    status_code = 404

    def __init__(self, day: date):
        self.day = day
        super().__init__(
            f"No rates found for {day.isoformat()}; check the available date bounds.",
            payload={"date": day.isoformat()},
        )


class NoData(APIError):
    """The store is empty or the initial load has not completed yet."""

    status_code = 503

    def __init__(self, message: str = "No rates available yet; the initial load is pending."):
        super().__init__(message)


class InvalidRange(APIError):
    """A date range whose start lies after its end."""

    status_code = 400

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(
            f"start_at ({start.isoformat()}) must not be after end_at ({end.isoformat()}).",
            payload={"start_at": start.isoformat(), "end_at": end.isoformat()},
        )


DEFAULT_STATUS_MESSAGES: dict[int, str] = {
    400: "Request could not be processed.",
    404: "Resource not found.",
    409: "Conflicting operation in progress.",
    422: "Submitted data is invalid.",
    429: "Too many requests. Please try again shortly.",
    503: "Service temporarily unavailable. Please retry in a moment.",
}


def register_error_handlers(app: Flask) -> None:
    """Attach error handlers to the Flask application."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        message = error.message or DEFAULT_STATUS_MESSAGES.get(error.status_code, "Request failed.")
        payload = error.payload or {}

        response = {"message": message}
        if payload:
            response.update(payload)

        field_errors = _derive_field_errors(payload, default_message=message)
        if field_errors and "field_errors" not in response:
            response["field_errors"] = field_errors

        return jsonify(response), error.status_code


def _derive_field_errors(
    payload: dict[str, Any],
    *,
    default_message: str | None = None,
) -> dict[str, list[str]]:
    """Translate a ``field`` payload entry into a flat field_errors mapping."""

    if not payload:
        return {}

    if isinstance(payload.get("field_errors"), dict):
        return {
            str(field): _normalize_messages(messages)
            for field, messages in payload["field_errors"].items()
            if _normalize_messages(messages)
        }

    field = payload.get("field")
    if field and default_message:
        return {str(field): [default_message]}

    return {}


def _normalize_messages(messages: Any) -> list[str]:
    if messages is None:
        return []
    if isinstance(messages, str):
        return [messages]
    if isinstance(messages, list):
        return [item if isinstance(item, str) else str(item) for item in messages if item is not None]
    return [str(messages)]
