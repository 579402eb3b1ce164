"""Calculation, identifier and validation engines."""
from invoice_manager.engine.calculator import Totals, calculate_totals, format_amount
from invoice_manager.engine.identifiers import IdentifierFactory
from invoice_manager.engine.validator import validate_draft, validate_invoice

__all__ = [
    "Totals",
    "calculate_totals",
    "format_amount",
    "IdentifierFactory",
    "validate_draft",
    "validate_invoice",
]
