"""Streamlit front end for the invoice store.

Drives the same InvoiceController as the CLI. No business logic here.

    streamlit run invoice_manager/ui/app.py
"""

from __future__ import annotations

import asyncio
import datetime
from typing import Mapping, MutableMapping, Optional

import streamlit as st

from invoice_manager.client import InvoiceStoreClient
from invoice_manager.config import Settings
from invoice_manager.controller import InvoiceController, sorted_for_display, summarize
from invoice_manager.engine.calculator import format_amount, format_rate
from invoice_manager.errors import RenderError
from invoice_manager.excel import generate_excel_register
from invoice_manager.logging_config import configure_logging
from invoice_manager.pdf import render_invoice_pdf


def _run(coro):
    # The client is bound to this loop, so every call goes through it.
    return st.session_state.loop.run_until_complete(coro)


PENDING_DELETE_KEY = "pending_delete"


def request_delete(session: MutableMapping, invoice_id: str) -> None:
    """Mark one invoice as awaiting confirmation; replaces any earlier request."""
    session[PENDING_DELETE_KEY] = invoice_id


def pending_delete(session: Mapping) -> Optional[str]:
    return session.get(PENDING_DELETE_KEY)


def clear_pending_delete(session: MutableMapping) -> None:
    session.pop(PENDING_DELETE_KEY, None)


def _controller() -> InvoiceController:
    if "controller" not in st.session_state:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        st.session_state.loop = asyncio.new_event_loop()
        store = InvoiceStoreClient.from_settings(settings)
        controller = InvoiceController(store)
        st.session_state.controller = controller
        _run(controller.mount())
    return st.session_state.controller


def _show_error(controller: InvoiceController) -> None:
    if not controller.error:
        return
    col_msg, col_btn = st.columns([5, 1])
    with col_msg:
        st.error(controller.error)
    with col_btn:
        if st.button("Dismiss", key="dismiss_error"):
            controller.dismiss_error()
            st.rerun()


def _draft_form(controller: InvoiceController) -> None:
    draft = controller.draft
    title = f"Edit Invoice {draft.invoice_number}" if draft.is_editing else "New Invoice"
    st.subheader(title)
    st.caption(f"Invoice # {draft.invoice_number}")

    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Employee Name", value=draft.employee_name)
        employee_id = st.text_input(
            "Employee ID", value=draft.employee_id, disabled=draft.is_editing,
        )
        email = st.text_input("Employee Email", value=draft.employee_email)
    with col2:
        address = st.text_input("Employee Address", value=draft.employee_address)
        mobile = st.text_input("Employee Mobile", value=draft.employee_mobile)
        date = st.date_input("Date", value=draft.date)
        tax_rate = st.number_input("Tax Rate %", value=float(draft.tax_rate), step=0.5)

    draft.set_field("employee_name", name)
    if not draft.is_editing:
        draft.set_field("employee_id", employee_id)
    draft.set_field("employee_email", email)
    draft.set_field("employee_address", address)
    draft.set_field("employee_mobile", mobile)
    draft.set_field("date", date if isinstance(date, datetime.date) else draft.date)
    draft.set_field("tax_rate", tax_rate)

    st.markdown("**Services**")
    for item in list(draft.services):
        c_desc, c_hours, c_rate, c_amount, c_remove = st.columns([4, 1, 1, 1, 1])
        with c_desc:
            description = st.text_input("Description", value=item.description, key=f"desc_{item.id}")
        with c_hours:
            hours = st.number_input("Hours", value=float(item.hours), min_value=0.0, key=f"hours_{item.id}")
        with c_rate:
            rate = st.number_input("Rate", value=float(item.rate), min_value=0.0, key=f"rate_{item.id}")
        updated = draft.update_service(item.id, description=description, hours=hours, rate=rate)
        with c_amount:
            st.text(format_amount(updated.amount))
        with c_remove:
            if st.button("Remove", key=f"remove_{item.id}"):
                draft.remove_service(item.id)
                st.rerun()

    if st.button("Add Service"):
        draft.add_service()
        st.rerun()

    st.write(f"Subtotal: {format_amount(draft.sub_total)}")
    st.write(f"Tax ({format_rate(draft.tax_rate)}%): {format_amount(draft.tax_amount)}")
    st.write(f"**Grand Total: {format_amount(draft.grand_total)}**")

    col_save, col_cancel = st.columns(2)
    with col_save:
        if st.button("Save Invoice", type="primary"):
            result = _run(controller.save())
            if result.ok:
                st.success(f"Invoice {result.invoice.invoice_number} saved.")
                st.rerun()
            for err in result.field_errors:
                st.error(f"  - {err}")
    with col_cancel:
        if draft.is_editing and st.button("Cancel Edit"):
            controller.clear_selection()
            st.rerun()


def _invoice_list(controller: InvoiceController) -> None:
    st.subheader("Invoices")
    if controller.is_loading:
        st.info("Loading invoices...")
        return

    summary = summarize(controller.invoices)
    st.caption(f"{summary['count']} invoice(s), total {format_amount(summary['grand_total'])}")

    for inv in sorted_for_display(controller.invoices):
        with st.expander(f"{inv.invoice_number}  {inv.employee_name}  {format_amount(inv.grand_total)}"):
            st.write(f"Date: {inv.date.isoformat()}")
            st.write(f"Employee: {inv.employee_name} [{inv.employee_id}] {inv.employee_email}")
            for item in inv.services:
                st.write(f"- {item.description}: {item.hours:g}h x {format_amount(item.rate)} = {format_amount(item.amount)}")

            c_edit, c_delete, c_pdf, c_email = st.columns(4)
            with c_edit:
                if st.button("Edit", key=f"edit_{inv.id}"):
                    controller.select(inv.id)
                    st.rerun()
            with c_delete:
                if st.button("Delete", key=f"delete_{inv.id}"):
                    request_delete(st.session_state, inv.id)
                    st.rerun()
            with c_pdf:
                if st.button("Fetch PDF", key=f"pdf_{inv.id}"):
                    result = _run(controller.request_document(inv.id))
                    if result.ok:
                        st.download_button(
                            "Download PDF",
                            data=result.document.content,
                            file_name=result.document.filename,
                            mime=result.document.media_type,
                            key=f"dl_{inv.id}",
                        )
            with c_email:
                if st.button("Send Email", key=f"email_{inv.id}"):
                    if _run(controller.send_email(inv.id)).ok:
                        st.success(f"Email requested for {inv.employee_email}")

            if pending_delete(st.session_state) == inv.id:
                st.warning(f"Delete invoice {inv.invoice_number}? This cannot be undone.")
                c_confirm, c_keep = st.columns(2)
                with c_confirm:
                    if st.button("Confirm Delete", key=f"confirm_delete_{inv.id}", type="primary"):
                        clear_pending_delete(st.session_state)
                        _run(controller.delete(inv.id))
                        st.rerun()
                with c_keep:
                    if st.button("Cancel", key=f"cancel_delete_{inv.id}"):
                        clear_pending_delete(st.session_state)
                        st.rerun()


def _exports(controller: InvoiceController) -> None:
    st.subheader("Exports")
    col_a, col_b = st.columns(2)
    with col_a:
        if st.button("Preview Draft PDF"):
            try:
                pdf = render_invoice_pdf(controller.draft)
            except RenderError as e:
                st.error(f"Cannot render draft: {e}")
            else:
                st.download_button(
                    "Download Draft PDF",
                    data=pdf,
                    file_name=f"invoice-{controller.draft.invoice_number}.pdf",
                    mime="application/pdf",
                )
    with col_b:
        if st.button("Build Excel Register", disabled=not controller.invoices):
            out_path = Settings.from_env().output_dir / "Invoice_Register.xlsx"
            generate_excel_register(controller.invoices, out_path)
            st.download_button(
                "Download Excel Register",
                data=out_path.read_bytes(),
                file_name="Invoice_Register.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )


def main() -> None:
    st.set_page_config(page_title="Invoice Manager", layout="wide")
    st.title("Invoice Manager")

    controller = _controller()
    _show_error(controller)

    if st.button("Refresh"):
        _run(controller.refresh())
        st.rerun()

    col_form, col_list = st.columns([3, 2])
    with col_form:
        _draft_form(controller)
    with col_list:
        _invoice_list(controller)

    _exports(controller)


if __name__ == "__main__":
    main()
