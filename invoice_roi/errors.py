from __future__ import annotations


class InvoiceRoiError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    public_message = "Internal error"


class ValidationError(InvoiceRoiError):
    status_code = 400

    def __init__(self, field: str, reason: str):
        super().__init__(reason)
        self.field = field
        self.reason = reason

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.reason

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.field, self.reason) == (other.field, other.reason)

    def __hash__(self) -> int:
        return hash((self.field, self.reason))

    def __repr__(self) -> str:
        return f"ValidationError(field={self.field!r}, reason={self.reason!r})"


class NotFoundError(InvoiceRoiError):
    status_code = 404
    public_message = "Not found"


class PersistenceError(InvoiceRoiError):
    status_code = 500
    public_message = "Failed to access scenario store"


class RenderError(InvoiceRoiError):
    status_code = 500
    public_message = "Failed to generate report"
