"""Async client for the remote invoice store.

Every call expects the ``{success, message, data?, error?}`` envelope. A
non-2xx status and an envelope with ``success=false`` both fail the call;
nothing is retried and no partial state is assumed applied.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from invoice_manager.config import Settings
from invoice_manager.errors import ApplicationError, NotFoundError, TransportError
from invoice_manager.models import Draft, Invoice
from invoice_manager.schemas import CustomEmailRequest, Envelope, InvoicePayload

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


@dataclass(frozen=True)
class Document:
    """A binary artifact returned by the store."""
    filename: str
    content: bytes
    media_type: str = "application/pdf"


def _error_from_body(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error:
            return error
    return None


class InvoiceStoreClient:
    """Typed request/response contract to the persistence service.

    Use as ``async with InvoiceStoreClient(url) as store: ...``. A custom
    ``transport`` lets tests mount a mock or an in-process ASGI app.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> InvoiceStoreClient:
        return cls(settings.api_url, timeout=settings.timeout, **kwargs)

    async def __aenter__(self) -> InvoiceStoreClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- transport helpers ---

    async def _send(self, method: str, path: str, failure: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s: %s", failure, e)
            raise TransportError(f"{failure}: {e}") from e

        if response.is_success:
            return response

        message = _error_from_body(response) or f"{failure}: {response.reason_phrase or response.status_code}"
        logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
        if response.status_code == 404:
            raise NotFoundError(message)
        raise TransportError(message, status_code=response.status_code)

    async def _call(self, method: str, path: str, failure: str, model: Any = None, **kwargs):
        response = await self._send(method, path, failure, **kwargs)
        try:
            envelope = Envelope[model if model is not None else Any].model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning("%s: malformed response: %s", failure, e)
            raise ApplicationError(f"{failure}: malformed response from store") from e

        if not envelope.success:
            message = envelope.error or failure
            logger.warning("%s: %s", failure, message)
            raise ApplicationError(message)
        return envelope.data

    @staticmethod
    def _to_invoice(payload: Optional[InvoicePayload], failure: str) -> Invoice:
        if payload is None:
            raise ApplicationError(f"{failure}: store returned no invoice")
        try:
            return payload.to_invoice()
        except ValueError as e:
            raise ApplicationError(f"{failure}: {e}") from e

    def _to_invoices(self, payloads: Optional[list[InvoicePayload]], failure: str) -> list[Invoice]:
        return [self._to_invoice(p, failure) for p in payloads or []]

    # --- CRUD ---

    async def create(self, invoice: Union[Draft, Invoice]) -> Invoice:
        """Submit a draft; the store assigns the canonical identifier."""
        failure = "Failed to create invoice"
        body = InvoicePayload.from_invoice(invoice, include_id=False).to_wire(exclude_none=True)
        data = await self._call("POST", "/", failure, InvoicePayload, json=body)
        return self._to_invoice(data, failure)

    async def update(self, invoice_id: str, invoice: Union[Draft, Invoice]) -> Invoice:
        """Full replace by store identifier. 404 raises :class:`NotFoundError`."""
        failure = "Failed to update invoice"
        payload = InvoicePayload.from_invoice(invoice)
        payload.id = invoice_id
        data = await self._call("PUT", f"/{invoice_id}", failure, InvoicePayload, json=payload.to_wire())
        return self._to_invoice(data, failure)

    async def list(self) -> list[Invoice]:
        failure = "Failed to fetch invoices"
        data = await self._call("GET", "/", failure, list[InvoicePayload])
        return self._to_invoices(data, failure)

    async def get_by_id(self, invoice_id: str) -> Invoice:
        failure = "Failed to fetch invoice"
        data = await self._call("GET", f"/{invoice_id}", failure, InvoicePayload)
        return self._to_invoice(data, failure)

    async def delete_by_id(self, invoice_id: str) -> None:
        await self._call("DELETE", f"/{invoice_id}", "Failed to delete invoice")

    async def list_by_employee(self, employee_id: str) -> list[Invoice]:
        failure = "Failed to fetch invoices"
        data = await self._call("GET", f"/employee/{employee_id}", failure, list[InvoicePayload])
        return self._to_invoices(data, failure)

    # --- side-channel actions ---

    async def request_document(self, invoice_id: str) -> Document:
        response = await self._send("GET", f"/{invoice_id}/download", "Failed to download PDF")
        filename = f"Invoice_{invoice_id}.pdf"
        match = _FILENAME_RE.search(response.headers.get("content-disposition", ""))
        if match:
            filename = match.group(1).strip()
        return Document(
            filename=filename,
            content=response.content,
            media_type=response.headers.get("content-type", "application/pdf").split(";")[0],
        )

    async def request_email_dispatch(self, invoice_id: str) -> None:
        await self._call("POST", f"/{invoice_id}/send-email", "Failed to send email")

    async def request_custom_email_dispatch(self, to: str, subject: str, body: str) -> None:
        """Free-form email through the store. Invoice attachments go through
        :meth:`request_email_dispatch` instead, so none is ever requested here."""
        request = CustomEmailRequest(to=to, subject=subject, body=body, send_invoice_attachment=False)
        await self._call("POST", "/send-custom-email", "Failed to send email", json=request.to_wire())
