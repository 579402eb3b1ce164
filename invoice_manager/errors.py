"""Error taxonomy shared by the engine, the store client and the renderer."""

from __future__ import annotations

from dataclasses import dataclass


class InvoiceError(Exception):
    """Base class for every failure raised by invoice_manager."""


@dataclass(frozen=True)
class FieldError:
    """One violated field, e.g. ``employee_email`` or ``services[2].description``."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class InvoiceValidationError(InvoiceError):
    """Raised when a draft or invoice fails pre-submit validation."""
    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__(f"Invoice validation failed with {len(errors)} error(s):\n" +
                         "\n".join(f"  - {e}" for e in errors))

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class StoreError(InvoiceError):
    """A remote store call failed. Nothing is assumed applied."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportError(StoreError):
    """Non-2xx status or network failure."""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(TransportError):
    """The store has no invoice under the requested identifier."""
    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ApplicationError(StoreError):
    """2xx transport status but the envelope reports ``success=false``."""


class RenderError(InvoiceError):
    """The renderer was handed something it cannot lay out."""
