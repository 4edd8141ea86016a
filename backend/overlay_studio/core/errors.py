"""Error taxonomy shared by the API and the client sync layer.

Every error carries a human readable ``message``, the HTTP status the API
answers with, and a stable ``code`` that travels in the ``error`` field of
error responses so the client can raise the same class again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pydantic import ValidationError as PydanticValidationError


class OverlayError(Exception):
    """Base exception for overlay related failures."""

    status_code: int = 500
    code: str = "OverlayError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message, "error": self.code}


class ValidationError(OverlayError):
    """Client-correctable input problem. Never retried automatically."""

    status_code = 400
    code = "ValidationError"


class MissingField(ValidationError):
    code = "MissingField"


class InvalidType(ValidationError):
    code = "InvalidType"


class ImmutableFieldChange(ValidationError):
    code = "ImmutableFieldChange"


class InvalidField(ValidationError):
    """A value out of range, of the wrong shape, or foreign to the variant."""

    code = "InvalidField"


class InvalidIdentifier(OverlayError):
    status_code = 400
    code = "InvalidIdentifier"


class NotFound(OverlayError):
    status_code = 404
    code = "NotFound"


class TransportError(OverlayError):
    """Network failure or a response the client cannot interpret."""

    status_code = 502
    code = "TransportError"


ERRORS_BY_CODE: dict[str, type[OverlayError]] = {
    cls.code: cls
    for cls in (
        ValidationError,
        MissingField,
        InvalidType,
        ImmutableFieldChange,
        InvalidField,
        InvalidIdentifier,
        NotFound,
        TransportError,
    )
}


def describe_validation_error(exc: PydanticValidationError, subject: str) -> str:
    """One-line summary of a pydantic error, keyed by wire field paths."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or subject
        parts.append(f"{loc}: {err['msg']}")
    return f"Invalid {subject} fields: " + "; ".join(parts)
