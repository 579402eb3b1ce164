"""PDF document rendering."""
from invoice_manager.pdf.renderer import (
    RenderResult,
    build_layout,
    export_invoice_pdf,
    render_invoice_pdf,
)

__all__ = ["RenderResult", "build_layout", "export_invoice_pdf", "render_invoice_pdf"]
