"""Provisional identifiers for drafts and line items.

Wall-clock milliseconds alone collide when two drafts are created in the
same millisecond, so every identifier mixes a nanosecond clock, a random
per-process nonce and a monotonically increasing counter.
"""

from __future__ import annotations

import itertools
import secrets
import threading
import time

INVOICE_NUMBER_PREFIX = "INV#OF-"


class IdentifierFactory:
    """Issues ids and invoice numbers that never repeat within one process."""

    def __init__(self, nonce: str | None = None) -> None:
        self.nonce = nonce or secrets.token_hex(4)
        self._counter = itertools.count(1)
        self._last_millis = 0
        self._issued_suffixes: set[str] = set()
        self._lock = threading.Lock()

    def _next(self) -> tuple[int, int]:
        with self._lock:
            return time.time_ns(), next(self._counter)

    def invoice_id(self) -> str:
        stamp, seq = self._next()
        return f"invoice-{stamp}-{self.nonce}-{seq}"

    def line_item_id(self) -> str:
        stamp, seq = self._next()
        return f"service-{stamp}-{self.nonce}-{seq}"

    def invoice_number(self) -> str:
        """Return ``INV#OF-`` plus the last six digits of a millisecond stamp.

        The stamp is forced strictly increasing, so back-to-back calls in
        the same millisecond still get distinct numbers. Six digits wrap
        every 1,000,000 ms (about 16.7 minutes); a suffix this factory has
        already issued is skipped by advancing the stamp. Other processes
        can still pick the same number, and the store rejects those with a
        duplicate-invoice conflict.
        """
        with self._lock:
            if len(self._issued_suffixes) >= 1_000_000:
                raise RuntimeError("Every six-digit invoice number has been issued")
            millis = time.time_ns() // 1_000_000
            if millis <= self._last_millis:
                millis = self._last_millis + 1
            suffix = str(millis)[-6:]
            while suffix in self._issued_suffixes:
                millis += 1
                suffix = str(millis)[-6:]
            self._last_millis = millis
            self._issued_suffixes.add(suffix)
        return f"{INVOICE_NUMBER_PREFIX}{suffix}"


default_factory = IdentifierFactory()
