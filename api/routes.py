"""API routes for the reference invoice store."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from invoice_manager.errors import InvoiceValidationError, RenderError
from invoice_manager.pdf.renderer import render_invoice_pdf
from invoice_manager.schemas import CustomEmailRequest, InvoicePayload

from api.mailer import SimulatedMailer
from api.schemas import envelope, invoice_data
from api.store import DuplicateInvoice, InvoiceNotFound, InvoiceRepository

logger = logging.getLogger("invoice_manager.api")

router = APIRouter(prefix="/api/invoices")


def _repository(request: Request) -> InvoiceRepository:
    return request.app.state.repository


def _mailer(request: Request) -> SimulatedMailer:
    return request.app.state.mailer


def _fail(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(False, message=message, error=error))


def _ok(message: str, data=None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(True, message=message, data=data))


def _write_error(e: Exception, action: str) -> JSONResponse:
    """Map repository failures from create/update to envelopes."""
    if isinstance(e, InvoiceNotFound):
        return _fail(404, str(e), f"Failed to {action} invoice")
    if isinstance(e, DuplicateInvoice):
        return _fail(409, str(e), f"Failed to {action} invoice")
    if isinstance(e, InvoiceValidationError):
        return _fail(400, "; ".join(str(err) for err in e.errors), f"Failed to {action} invoice")
    return _fail(400, str(e), f"Failed to {action} invoice")


@router.post("/")
async def create_invoice(payload: InvoicePayload, request: Request):
    try:
        invoice = _repository(request).create(payload)
    except (DuplicateInvoice, InvoiceValidationError, ValueError) as e:
        return _write_error(e, "create")
    return _ok("Invoice created successfully", invoice_data(invoice), status_code=201)


@router.put("/{invoice_id}")
async def update_invoice(invoice_id: str, payload: InvoicePayload, request: Request):
    try:
        invoice = _repository(request).update(invoice_id, payload)
    except (InvoiceNotFound, DuplicateInvoice, InvoiceValidationError, ValueError) as e:
        return _write_error(e, "update")
    return _ok("Invoice updated successfully", invoice_data(invoice))


@router.get("/")
async def list_invoices(request: Request):
    invoices = _repository(request).list_all()
    return _ok("Invoices retrieved successfully", [invoice_data(inv) for inv in invoices])


@router.get("/employee/{employee_id}")
async def list_employee_invoices(employee_id: str, request: Request):
    invoices = _repository(request).list_by_employee(employee_id)
    return _ok("Invoices retrieved successfully", [invoice_data(inv) for inv in invoices])


@router.post("/send-custom-email")
async def send_custom_email(body: CustomEmailRequest, request: Request):
    if "@" not in body.to:
        return _fail(400, f"Invalid recipient address: {body.to}", "Failed to send email")
    if body.send_invoice_attachment:
        return _fail(400, "Invoice attachments are sent through /{id}/send-email", "Failed to send email")
    _mailer(request).send_custom(body.to, body.subject, body.body)
    return _ok("Email sent successfully")


@router.get("/{invoice_id}")
async def get_invoice(invoice_id: str, request: Request):
    try:
        invoice = _repository(request).get(invoice_id)
    except InvoiceNotFound as e:
        return _fail(404, str(e), "Failed to fetch invoice")
    return _ok("Invoice retrieved successfully", invoice_data(invoice))


@router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: str, request: Request):
    try:
        _repository(request).delete(invoice_id)
    except InvoiceNotFound as e:
        return _fail(404, str(e), "Failed to delete invoice")
    return _ok("Invoice deleted successfully")


@router.get("/{invoice_id}/download")
async def download_invoice(invoice_id: str, request: Request):
    try:
        invoice = _repository(request).get(invoice_id)
        pdf = render_invoice_pdf(invoice)
    except InvoiceNotFound as e:
        return _fail(404, str(e), "Failed to download PDF")
    except RenderError as e:
        logger.error("PDF generation failed for %s: %s", invoice_id, e)
        return _fail(500, str(e), "Failed to download PDF")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Invoice_{invoice.invoice_number}.pdf"'},
    )


@router.post("/{invoice_id}/send-email")
async def send_invoice_email(invoice_id: str, request: Request):
    try:
        invoice = _repository(request).get(invoice_id)
        _mailer(request).send_invoice(invoice)
    except InvoiceNotFound as e:
        return _fail(404, str(e), "Failed to send email")
    except RenderError as e:
        return _fail(500, str(e), "Failed to send email")
    return _ok(f"Invoice email sent to {invoice.employee_email}")
