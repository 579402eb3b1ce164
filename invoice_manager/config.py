"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_API_URL = "http://localhost:8080/api/invoices"
DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    output_dir: Path = Path(".")
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ

        raw_timeout = env.get("INVOICE_HTTP_TIMEOUT", "").strip()
        timeout = DEFAULT_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ValueError(f"INVOICE_HTTP_TIMEOUT must be a number of seconds, got {raw_timeout!r}")
            if timeout <= 0:
                raise ValueError(f"INVOICE_HTTP_TIMEOUT must be positive, got {raw_timeout!r}")

        return cls(
            api_url=(env.get("INVOICE_API_URL", "").strip() or DEFAULT_API_URL).rstrip("/"),
            output_dir=Path(env.get("INVOICE_OUTPUT_DIR", "").strip() or "."),
            timeout=timeout,
            log_level=(env.get("INVOICE_LOG_LEVEL", "").strip() or "WARNING").upper(),
        )
