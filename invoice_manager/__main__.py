"""CLI entry point.

Usage:
    python -m invoice_manager list
    python -m invoice_manager create invoice.json
    python -m invoice_manager render --file invoice.json --out-dir out/
    python -m invoice_manager download <id>
    python -m invoice_manager serve --port 8080

The store URL comes from INVOICE_API_URL (see invoice_manager.config).
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from invoice_manager.client import InvoiceStoreClient
from invoice_manager.config import Settings
from invoice_manager.controller import InvoiceController, OperationResult, sorted_for_display, summarize
from invoice_manager.engine.calculator import format_amount, format_rate
from invoice_manager.errors import StoreError
from invoice_manager.logging_config import configure_logging
from invoice_manager.models import Draft, Invoice

app = typer.Typer(help="Create, edit, list, delete and export invoices.", no_args_is_help=True)

T = TypeVar("T")

# Store-side or derived keys a JSON file may carry; never copied into a draft
_SKIPPED_KEYS = {
    "id", "services", "invoiceNumber", "invoice_number",
    "subTotal", "taxAmount", "grandTotal", "sub_total", "tax_amount", "grand_total",
}


def _settings() -> Settings:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return settings


def _with_controller(action: Callable[[InvoiceController], Awaitable[T]], mount: bool = False) -> T:
    """Run ``action`` against a controller bound to the configured store."""
    settings = _settings()

    async def runner() -> T:
        async with InvoiceStoreClient.from_settings(settings) as store:
            controller = InvoiceController(store)
            try:
                if mount:
                    loaded = await controller.mount()
                    if not loaded.ok:
                        _fail(loaded)
                return await action(controller)
            finally:
                controller.close()

    return asyncio.run(runner())


def _fail(result: OperationResult) -> None:
    for err in result.field_errors:
        typer.echo(f"  ERROR: {err}", err=True)
    if not result.field_errors:
        typer.echo(f"ERROR: {result.error}", err=True)
    raise typer.Exit(1)


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as e:
        typer.echo(f"ERROR: Cannot read {path}: {e}", err=True)
        raise typer.Exit(1)
    if not isinstance(data, dict):
        typer.echo(f"ERROR: {path} must contain a JSON object", err=True)
        raise typer.Exit(1)
    return data


def _load_draft(path: Path, draft: Draft, data: Optional[dict] = None) -> Draft:
    """Fill ``draft`` from a JSON file using camelCase or snake_case keys."""
    if data is None:
        data = _read_json(path)

    aliases = {
        "employeeName": "employee_name",
        "employeeId": "employee_id",
        "employeeEmail": "employee_email",
        "employeeAddress": "employee_address",
        "employeeMobile": "employee_mobile",
        "taxRate": "tax_rate",
    }
    try:
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in _SKIPPED_KEYS:
                continue
            draft.set_field(name, value)
        if "services" in data:
            draft.services = []
            for s in data["services"]:
                draft.add_service(
                    description=str(s.get("description", "")),
                    hours=s.get("hours", 1.0),
                    rate=s.get("rate", 0.0),
                )
    except (ValueError, AttributeError) as e:
        typer.echo(f"ERROR: Invalid invoice file {path}: {e}", err=True)
        raise typer.Exit(1)
    return draft


def _echo_invoice(invoice: Invoice) -> None:
    typer.echo(f"Invoice {invoice.invoice_number}  (id: {invoice.id})")
    typer.echo(f"  Date:     {invoice.date.isoformat()}")
    typer.echo(f"  Employee: {invoice.employee_name} [{invoice.employee_id}]")
    typer.echo(f"            {invoice.employee_email} / {invoice.employee_mobile}")
    typer.echo(f"            {invoice.employee_address}")
    for item in invoice.services:
        typer.echo(f"  - {item.description}: {item.hours:.2f}h x {format_amount(item.rate)} = {format_amount(item.amount)}")
    typer.echo(f"  Subtotal:    {format_amount(invoice.sub_total)}")
    typer.echo(f"  Tax ({format_rate(invoice.tax_rate)}%):  {format_amount(invoice.tax_amount)}")
    typer.echo(f"  Grand Total: {format_amount(invoice.grand_total)}")


@app.command("list")
def list_invoices(
    employee: Optional[str] = typer.Option(None, "--employee", help="Only invoices for this employee ID"),
) -> None:
    """List invoices in the store."""
    async def action(controller: InvoiceController) -> list[Invoice]:
        if employee:
            try:
                return await controller.store.list_by_employee(employee)
            except StoreError as e:
                _fail(OperationResult(ok=False, error=e.message))
        return list(controller.invoices)

    invoices = _with_controller(action, mount=not employee)
    for inv in sorted_for_display(invoices):
        typer.echo(
            f"{inv.id}  {inv.invoice_number}  {inv.date.isoformat()}  "
            f"{inv.employee_name}  {format_amount(inv.grand_total)}"
        )
    summary = summarize(invoices)
    typer.echo(f"\n{summary['count']} invoice(s), total {format_amount(summary['grand_total'])}")


@app.command()
def show(invoice_id: str) -> None:
    """Show one invoice with its derived totals."""
    async def action(controller: InvoiceController) -> Invoice:
        try:
            return await controller.store.get_by_id(invoice_id)
        except StoreError as e:
            _fail(OperationResult(ok=False, error=e.message))

    _echo_invoice(_with_controller(action))


@app.command()
def create(file: Path = typer.Argument(..., help="Invoice JSON file")) -> None:
    """Create an invoice from a JSON file."""
    async def action(controller: InvoiceController) -> OperationResult:
        _load_draft(file, controller.draft)
        return await controller.save()

    result = _with_controller(action, mount=True)
    if not result.ok:
        _fail(result)
    typer.echo("Invoice created.")
    _echo_invoice(result.invoice)


@app.command()
def update(invoice_id: str, file: Path = typer.Argument(..., help="Invoice JSON file")) -> None:
    """Replace an existing invoice with the contents of a JSON file."""
    async def action(controller: InvoiceController) -> OperationResult:
        selected = controller.select(invoice_id)
        if not selected.ok:
            return selected
        _load_draft(file, controller.draft)
        return await controller.save()

    result = _with_controller(action, mount=True)
    if not result.ok:
        _fail(result)
    typer.echo("Invoice updated.")
    _echo_invoice(result.invoice)


@app.command()
def delete(invoice_id: str) -> None:
    """Delete an invoice by its store id."""
    async def action(controller: InvoiceController) -> OperationResult:
        return await controller.delete(invoice_id)

    result = _with_controller(action)
    if not result.ok:
        _fail(result)
    typer.echo(f"Invoice {invoice_id} deleted.")


@app.command()
def render(
    invoice_id: Optional[str] = typer.Argument(None, help="Store id of the invoice to render"),
    file: Optional[Path] = typer.Option(None, "--file", help="Render a local invoice JSON file instead"),
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", help="Output directory"),
) -> None:
    """Render an invoice to a local PDF, without contacting the store for --file."""
    from invoice_manager.pdf.renderer import export_invoice_pdf

    settings = _settings()
    if file is not None:
        data = _read_json(file)
        draft = Draft.new()
        number = data.get("invoiceNumber") or data.get("invoice_number")
        if number:
            draft = replace(draft, invoice_number=str(number))
        invoice = _load_draft(file, draft, data).to_invoice()
    elif invoice_id:
        async def action(controller: InvoiceController) -> Invoice:
            try:
                return await controller.store.get_by_id(invoice_id)
            except StoreError as e:
                _fail(OperationResult(ok=False, error=e.message))

        invoice = _with_controller(action)
    else:
        typer.echo("ERROR: Give an invoice id or --file", err=True)
        raise typer.Exit(1)

    result = export_invoice_pdf(invoice, out_dir or settings.output_dir)
    if not result.ok:
        typer.echo(f"ERROR: {result.error}", err=True)
        raise typer.Exit(1)
    typer.echo(f"PDF saved to: {result.path}")


@app.command()
def download(
    invoice_id: str,
    out_dir: Optional[Path] = typer.Option(None, "--out-dir", help="Output directory"),
) -> None:
    """Download the store-rendered PDF."""
    target_dir = out_dir or Settings.from_env().output_dir

    async def action(controller: InvoiceController) -> OperationResult:
        return await controller.download(invoice_id, target_dir)

    result = _with_controller(action)
    if not result.ok:
        _fail(result)
    typer.echo(f"PDF saved to: {Path(target_dir) / result.document.filename}")


@app.command("send-email")
def send_email(invoice_id: str) -> None:
    """Ask the store to email the invoice to its employee."""
    async def action(controller: InvoiceController) -> OperationResult:
        return await controller.send_email(invoice_id)

    result = _with_controller(action)
    if not result.ok:
        _fail(result)
    typer.echo("Email dispatch requested.")


@app.command("send-custom-email")
def send_custom_email(
    to: str = typer.Option(..., "--to"),
    subject: str = typer.Option(..., "--subject"),
    body: str = typer.Option(..., "--body"),
) -> None:
    """Send a free-form email through the store."""
    async def action(controller: InvoiceController) -> OperationResult:
        return await controller.send_custom_email(to, subject, body)

    result = _with_controller(action)
    if not result.ok:
        _fail(result)
    typer.echo("Email dispatch requested.")


@app.command("export-excel")
def export_excel(out: Path = typer.Argument(Path("Invoice_Register.xlsx"), help="Output .xlsx path")) -> None:
    """Export every invoice in the store to an Excel register."""
    from invoice_manager.excel import generate_excel_register

    async def action(controller: InvoiceController) -> tuple[Invoice, ...]:
        return controller.invoices

    invoices = _with_controller(action, mount=True)
    path = generate_excel_register(invoices, out)
    typer.echo(f"Excel register saved to: {path} ({len(invoices)} invoice(s))")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8080, "--port"),
) -> None:
    """Run the reference in-memory store API."""
    import uvicorn

    _settings()
    uvicorn.run("api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
