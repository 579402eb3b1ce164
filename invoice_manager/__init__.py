"""Invoice manager: billed-hours invoices persisted through a remote store."""

__version__ = "1.0.0"
