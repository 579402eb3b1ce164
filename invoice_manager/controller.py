"""Client-side reconciliation of the canonical invoice collection.

State changes only through :func:`reduce`, a pure ``(state, event) -> state``
function. :class:`InvoiceController` drives the store client, turns each
confirmed response into an event and drops responses that arrive after the
session that issued them was closed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

from invoice_manager.client import Document, InvoiceStoreClient
from invoice_manager.engine.identifiers import IdentifierFactory, default_factory
from invoice_manager.engine.validator import validate_draft
from invoice_manager.errors import FieldError, InvoiceValidationError, StoreError
from invoice_manager.models import Draft, Invoice

logger = logging.getLogger(__name__)


class Status(Enum):
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class ControllerState:
    status: Status = Status.LOADING
    invoices: tuple[Invoice, ...] = ()
    error: Optional[str] = None
    selected_id: Optional[str] = None

    def find(self, invoice_id: str) -> Optional[Invoice]:
        for inv in self.invoices:
            if inv.id == invoice_id:
                return inv
        return None

    @property
    def selected(self) -> Optional[Invoice]:
        return self.find(self.selected_id) if self.selected_id else None


# --- Events ---

@dataclass(frozen=True)
class Loaded:
    invoices: tuple[Invoice, ...]


@dataclass(frozen=True)
class LoadFailed:
    message: str


@dataclass(frozen=True)
class Created:
    invoice: Invoice


@dataclass(frozen=True)
class Updated:
    target_id: str
    invoice: Invoice


@dataclass(frozen=True)
class Deleted:
    invoice_id: str


@dataclass(frozen=True)
class MutationFailed:
    message: str


@dataclass(frozen=True)
class Selected:
    invoice_id: str


@dataclass(frozen=True)
class SelectionCleared:
    pass


@dataclass(frozen=True)
class ErrorDismissed:
    pass


Event = Union[
    Loaded, LoadFailed, Created, Updated, Deleted,
    MutationFailed, Selected, SelectionCleared, ErrorDismissed,
]


def reduce(state: ControllerState, event: Event) -> ControllerState:
    """Apply one event to the canonical collection."""
    if isinstance(event, Loaded):
        invoices = tuple(event.invoices)
        selected_id = state.selected_id
        if selected_id is not None and all(inv.id != selected_id for inv in invoices):
            selected_id = None
        return replace(state, status=Status.READY, invoices=invoices, error=None, selected_id=selected_id)

    if isinstance(event, LoadFailed):
        return replace(state, status=Status.READY, invoices=(), error=event.message, selected_id=None)

    if isinstance(event, Created):
        # The store-issued id is the only key; never merge by provisional id.
        return replace(
            state,
            invoices=state.invoices + (event.invoice,),
            selected_id=None,
            error=None,
        )

    if isinstance(event, Updated):
        if state.find(event.target_id) is None:
            return replace(
                state,
                selected_id=None,
                error=f"Invoice {event.target_id} no longer exists; the update was not applied",
            )
        invoices = tuple(
            event.invoice if inv.id == event.target_id else inv
            for inv in state.invoices
        )
        return replace(state, invoices=invoices, selected_id=None, error=None)

    if isinstance(event, Deleted):
        invoices = tuple(inv for inv in state.invoices if inv.id != event.invoice_id)
        selected_id = None if state.selected_id == event.invoice_id else state.selected_id
        return replace(state, invoices=invoices, selected_id=selected_id, error=None)

    if isinstance(event, MutationFailed):
        return replace(state, error=event.message)

    if isinstance(event, Selected):
        if state.find(event.invoice_id) is None:
            return replace(state, error=f"Invoice {event.invoice_id} not found")
        return replace(state, selected_id=event.invoice_id)

    if isinstance(event, SelectionCleared):
        return replace(state, selected_id=None)

    if isinstance(event, ErrorDismissed):
        return replace(state, error=None)

    raise TypeError(f"Unknown controller event: {event!r}")


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    invoice: Optional[Invoice] = None
    error: Optional[str] = None
    field_errors: tuple[FieldError, ...] = ()
    stale: bool = False
    document: Optional[Document] = None


_STALE = OperationResult(ok=False, error="Session closed before the response arrived", stale=True)


class InvoiceController:
    """Owns the single canonical collection, the selection and the editor draft."""

    def __init__(
        self,
        store: InvoiceStoreClient,
        factory: IdentifierFactory = default_factory,
    ) -> None:
        self.store = store
        self.factory = factory
        self.state = ControllerState()
        self.draft = Draft.new(factory)
        self._generation = 0
        self._closed = False

    # --- state plumbing ---

    @property
    def invoices(self) -> tuple[Invoice, ...]:
        return self.state.invoices

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def is_loading(self) -> bool:
        return self.state.status is Status.LOADING

    def _dispatch(self, event: Event) -> None:
        previous = self.state
        self.state = reduce(previous, event)
        if self.state.selected_id != previous.selected_id or isinstance(event, (Created, Updated)):
            self._sync_draft()

    def _sync_draft(self) -> None:
        selected = self.state.selected
        if selected is not None:
            self.draft = Draft.from_invoice(selected, self.factory)
        else:
            self.draft = Draft.new(self.factory)

    def _token(self) -> int:
        return self._generation

    def _is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    def close(self) -> None:
        """Stop applying responses; anything still in flight is ignored."""
        self._closed = True
        self._generation += 1

    # --- collection lifecycle ---

    async def mount(self) -> OperationResult:
        return await self.refresh()

    async def refresh(self) -> OperationResult:
        token = self._token()
        try:
            invoices = await self.store.list()
        except StoreError as e:
            if not self._is_current(token):
                logger.debug("Dropping late list failure: %s", e)
                return _STALE
            self._dispatch(LoadFailed(e.message))
            return OperationResult(ok=False, error=e.message)

        if not self._is_current(token):
            logger.debug("Dropping late list response (%d invoices)", len(invoices))
            return _STALE
        self._dispatch(Loaded(tuple(invoices)))
        return OperationResult(ok=True)

    async def save(self) -> OperationResult:
        """Validate the draft, then create or update it in the store."""
        draft = self.draft
        try:
            validate_draft(draft)
        except InvoiceValidationError as e:
            return OperationResult(ok=False, error=str(e), field_errors=tuple(e.errors))

        token = self._token()
        target_id = draft.source_id
        try:
            if target_id is not None:
                invoice = await self.store.update(target_id, draft)
            else:
                invoice = await self.store.create(draft)
        except StoreError as e:
            return self._fail(token, e)

        if not self._is_current(token):
            logger.debug("Dropping late save response for %s", invoice.id)
            return _STALE

        if target_id is not None:
            self._dispatch(Updated(target_id, invoice))
        else:
            self._dispatch(Created(invoice))
        if self.state.error:
            return OperationResult(ok=False, invoice=invoice, error=self.state.error)
        return OperationResult(ok=True, invoice=invoice)

    async def delete(self, invoice_id: str) -> OperationResult:
        token = self._token()
        try:
            await self.store.delete_by_id(invoice_id)
        except StoreError as e:
            return self._fail(token, e)

        if not self._is_current(token):
            logger.debug("Dropping late delete response for %s", invoice_id)
            return _STALE
        self._dispatch(Deleted(invoice_id))
        return OperationResult(ok=True)

    def _fail(self, token: int, error: StoreError) -> OperationResult:
        if not self._is_current(token):
            logger.debug("Dropping late failure: %s", error)
            return _STALE
        self._dispatch(MutationFailed(error.message))
        return OperationResult(ok=False, error=error.message)

    # --- selection ---

    def select(self, invoice_id: str) -> OperationResult:
        self._dispatch(Selected(invoice_id))
        if self.state.selected_id != invoice_id:
            return OperationResult(ok=False, error=self.state.error)
        # Re-read the canonical entry even when re-selecting the same id.
        self._sync_draft()
        return OperationResult(ok=True, invoice=self.state.selected)

    def clear_selection(self) -> None:
        self._dispatch(SelectionCleared())
        self.draft = Draft.new(self.factory)

    def dismiss_error(self) -> None:
        self._dispatch(ErrorDismissed())

    # --- side-channel actions; never touch the collection ---

    async def request_document(self, invoice_id: str) -> OperationResult:
        token = self._token()
        try:
            document = await self.store.request_document(invoice_id)
        except StoreError as e:
            return self._fail(token, e)
        if not self._is_current(token):
            return _STALE
        return OperationResult(ok=True, document=document)

    async def download(self, invoice_id: str, output_dir: Union[str, Path]) -> OperationResult:
        result = await self.request_document(invoice_id)
        if not result.ok or result.document is None:
            return result
        target = Path(output_dir) / Path(result.document.filename).name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(result.document.content)
        except OSError as e:
            message = f"Failed to save {target}: {e}"
            self._dispatch(MutationFailed(message))
            return OperationResult(ok=False, error=message)
        return result

    async def send_email(self, invoice_id: str) -> OperationResult:
        token = self._token()
        try:
            await self.store.request_email_dispatch(invoice_id)
        except StoreError as e:
            return self._fail(token, e)
        if not self._is_current(token):
            return _STALE
        return OperationResult(ok=True)

    async def send_custom_email(self, to: str, subject: str, body: str) -> OperationResult:
        token = self._token()
        try:
            await self.store.request_custom_email_dispatch(to, subject, body)
        except StoreError as e:
            return self._fail(token, e)
        if not self._is_current(token):
            return _STALE
        return OperationResult(ok=True)


def summarize(invoices: Sequence[Invoice]) -> dict:
    """Headline numbers for list views."""
    return {
        "count": len(invoices),
        "grand_total": sum((inv.grand_total for inv in invoices), 0.0),
    }


def sorted_for_display(invoices: Sequence[Invoice]) -> list[Invoice]:
    """Newest first by date, then by invoice number. The input is left as is."""
    return sorted(invoices, key=lambda inv: (inv.date, inv.invoice_number), reverse=True)
