"""FastAPI application for the reference invoice store."""

from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invoice_manager import __version__

from api.mailer import SimulatedMailer
from api.routes import router
from api.schemas import envelope
from api.store import InvoiceRepository

# CORS: allow frontend origins
# Set ALLOWED_ORIGINS="*" to allow any origin
_origins_env = os.environ.get("ALLOWED_ORIGINS", "")
_origins_list = [o.strip() for o in _origins_env.split(",") if o.strip()]

_allow_all = "*" in _origins_list

if _allow_all:
    ALLOWED_ORIGINS: list[str] = ["*"]
elif _origins_list:
    ALLOWED_ORIGINS = _origins_list
else:
    ALLOWED_ORIGINS = [
        "http://localhost:8501",
        "http://localhost:3000",
        "http://127.0.0.1:8501",
    ]


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'body'}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content=envelope(False, message="Invalid request", error=details))


def create_app() -> FastAPI:
    """Build an app with its own empty repository and outbox."""
    app = FastAPI(
        title="Invoice Store API",
        description="Reference in-memory store for invoice_manager.",
        version=__version__,
    )
    app.state.repository = InvoiceRepository()
    app.state.mailer = SimulatedMailer()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=not _allow_all,  # credentials not allowed with wildcard
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "name": "Invoice Store API",
            "version": __version__,
            "docs": "/docs",
            "invoices": "/api/invoices",
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
