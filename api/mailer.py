"""Simulated email channel. Messages are recorded and logged, never delivered."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from invoice_manager.engine.calculator import format_amount
from invoice_manager.models import Invoice
from invoice_manager.pdf.renderer import render_invoice_pdf

logger = logging.getLogger("invoice_manager.api.mailer")


@dataclass(frozen=True)
class OutboxMessage:
    sender: str
    to: str
    subject: str
    body: str
    attachment_name: Optional[str] = None
    attachment: Optional[bytes] = None


class SimulatedMailer:
    def __init__(self, sender: str = "invoices@localhost") -> None:
        self.sender = sender
        self.outbox: list[OutboxMessage] = []

    def _record(self, message: OutboxMessage) -> OutboxMessage:
        self.outbox.append(message)
        logger.info("Simulated email to %s: %s", message.to, message.subject)
        return message

    def send_invoice(self, invoice: Invoice) -> OutboxMessage:
        """Email the invoice to its employee with the PDF attached."""
        body = (
            f"<html><body><h2>Invoice Details</h2>"
            f"<p>Dear {invoice.employee_name},</p>"
            f"<p>Please find your invoice details below:</p>"
            f"<table>"
            f"<tr><td><strong>Invoice #</strong></td><td>{invoice.invoice_number}</td></tr>"
            f"<tr><td><strong>Date</strong></td><td>{invoice.date.isoformat()}</td></tr>"
            f"<tr><td><strong>Grand Total</strong></td><td>{format_amount(invoice.grand_total)}</td></tr>"
            f"</table>"
            f"<p>A detailed invoice PDF is attached to this email.</p>"
            f"<p>Thank you!</p></body></html>"
        )
        return self._record(OutboxMessage(
            sender=self.sender,
            to=invoice.employee_email,
            subject=f"Your Invoice #{invoice.invoice_number}",
            body=body,
            attachment_name=f"Invoice_{invoice.invoice_number}.pdf",
            attachment=render_invoice_pdf(invoice),
        ))

    def send_custom(self, to: str, subject: str, body: str) -> OutboxMessage:
        return self._record(OutboxMessage(sender=self.sender, to=to, subject=subject, body=body))
