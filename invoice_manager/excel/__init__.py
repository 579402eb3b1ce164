"""Excel export."""
from invoice_manager.excel.generator import generate_excel_register

__all__ = ["generate_excel_register"]
