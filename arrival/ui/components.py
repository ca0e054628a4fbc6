"""
Reusable UI components (banners, badges, rows, message thread).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import streamlit as st

from arrival.checklist import DocumentState, completion_block_reason, document_actions, document_state
from arrival.config import REVIEW_STATUS_COLORS, RISK_LEVEL_COLORS
from arrival.domain import (
    Message,
    ReviewStatus,
    SenderType,
    Student,
    StudentChecklistItem,
    StudentDocument,
    StudentRequest,
)


def render_error_with_retry(message: Optional[str], retry_key: str) -> bool:
    """Show the page's error banner. Returns True when the user hits Retry."""
    if not message:
        return False
    col1, col2 = st.columns([5, 1])
    with col1:
        st.error(message)
    with col2:
        return st.button("Retry", key=f"retry_{retry_key}", use_container_width=True)


def render_loading(label: str) -> None:
    st.caption(f"⏳ {label}")


def status_badge(value: str, colors: dict[str, str]) -> str:
    return f":{colors.get(value, 'gray')}[{value or '—'}]"


def format_timestamp(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


def render_students_table(students: tuple[Student, ...], selected_id: Optional[str]) -> Optional[str]:
    """Student rows with a select button each. Returns the clicked student id."""
    clicked = None
    header = st.columns([3, 3, 2, 2, 2, 1])
    for col, label in zip(header, ("Name", "Email", "Status", "Risk", "Progress", "")):
        col.markdown(f"**{label}**")

    for student in students:
        cols = st.columns([3, 3, 2, 2, 2, 1])
        marker = "▶ " if student.id == selected_id else ""
        cols[0].write(f"{marker}{student.full_name}")
        cols[1].write(student.personal_email)
        cols[2].write(student.status or "—")
        cols[3].markdown(status_badge(student.risk_level, RISK_LEVEL_COLORS))
        cols[4].progress(student.progress_fraction, text=f"{student.progress_fraction:.0%}")
        if cols[5].button("View", key=f"student_{student.id}", disabled=student.id == selected_id):
            clicked = student.id
    return clicked


def render_document_row(document: StudentDocument, *, busy: bool) -> Optional[tuple[ReviewStatus, str]]:
    """One document with notes and approve/reject. Returns (decision, notes) when clicked."""
    actions = document_actions(document)
    with st.container(border=True):
        col1, col2 = st.columns([4, 1])
        with col1:
            step = document.step_title or "Unlinked step"
            if document.step_category:
                step += f" · {document.step_category}"
            st.markdown(f"**{step}**")
            st.caption(f"{document.file_name} {format_timestamp(document.uploaded_at)}".strip())
        with col2:
            st.markdown(status_badge(document.reviewed_status.value, REVIEW_STATUS_COLORS))
            if document.public_url:
                st.link_button("View file", document.public_url, use_container_width=True)

        notes = st.text_area(
            "Reviewer notes (optional)",
            value=document.reviewer_notes or "",
            key=f"doc_notes_{document.id}",
            height=68,
        )
        c1, c2 = st.columns(2)
        with c1:
            if st.button(
                "Approve",
                key=f"approve_{document.id}",
                disabled=busy or not actions.can_approve,
                use_container_width=True,
            ):
                return ReviewStatus.APPROVED, notes
        with c2:
            if st.button(
                "Reject",
                key=f"reject_{document.id}",
                disabled=busy or not actions.can_reject,
                use_container_width=True,
            ):
                return ReviewStatus.REJECTED, notes
    return None


def render_request_row(request: StudentRequest, *, busy: bool) -> Optional[tuple[ReviewStatus, str]]:
    with st.container(border=True):
        st.markdown(f"**{request.request_type}** · {request.recipient_type.value}")
        st.write(request.description)
        st.markdown(status_badge(request.status.value, REVIEW_STATUS_COLORS))
        pending = request.status.value == "PENDING"
        notes = st.text_input("Admin notes", value=request.admin_notes or "", key=f"req_notes_{request.id}")
        c1, c2 = st.columns(2)
        if c1.button("Approve", key=f"req_approve_{request.id}", disabled=busy or not pending):
            return ReviewStatus.APPROVED, notes
        if c2.button("Reject", key=f"req_reject_{request.id}", disabled=busy or not pending):
            return ReviewStatus.REJECTED, notes
    return None


def render_checklist_item(item: StudentChecklistItem, *, saving: bool) -> Optional[str]:
    """
    One student checklist row.

    Returns "mark" when the completion button is clicked, "upload" when a file
    is submitted, otherwise None.
    """
    with st.container(border=True):
        col1, col2 = st.columns([4, 1])
        with col1:
            title = f"**{item.title}**"
            if item.is_required:
                title += " :red[REQUIRED]"
            st.markdown(title)
            if item.description:
                st.caption(item.description)
            if item.category:
                st.caption(item.category.upper())
            if item.requires_document:
                state = document_state(item)
                st.caption(f"Document: {state.value.replace('_', ' ').lower()}")
        with col2:
            if item.is_done:
                st.markdown(":green[Done]")
                return None
            reason = completion_block_reason(item)
            label = "Saving..." if saving else "Mark as done"
            if st.button(
                label,
                key=f"mark_{item.checklist_step_id}",
                disabled=saving or reason is not None,
                help=reason,
            ):
                return "mark"

        if item.requires_document and document_state(item) in (DocumentState.NO_DOCUMENT, DocumentState.REJECTED):
            uploaded = st.file_uploader("Upload document", key=f"upload_{item.checklist_step_id}")
            if uploaded is not None and st.button("Submit document", key=f"submit_{item.checklist_step_id}"):
                return "upload"
    return None


def render_message_thread(messages: tuple[Message, ...], viewer: SenderType) -> None:
    if not messages:
        st.info("No messages yet. Send a message to start the conversation!")
        return
    for message in messages:
        own = message.sender_type is viewer
        role = "user" if own else "assistant"
        with st.chat_message(role):
            if not own and message.sender_name:
                st.caption(message.sender_name)
            st.write(message.content)
            st.caption(format_timestamp(message.created_at))
