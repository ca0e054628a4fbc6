"""
Page renderers for Streamlit UI.
"""

from __future__ import annotations

import logging
from datetime import date

import streamlit as st

from arrival.client import BackendClient
from arrival.config import PROGRAM_TYPES, settings
from arrival.controllers import AdminController, StudentPortal, backend_health_label, find_item
from arrival.domain import RecipientType, SenderType
from arrival.state import AdminState, ProgramForm, Resource
from arrival.ui.components import (
    render_checklist_item,
    render_document_row,
    render_error_with_retry,
    render_loading,
    render_message_thread,
    render_request_row,
    render_students_table,
)
from arrival.ui.session import (
    get_admin_state,
    get_messaging_state,
    get_portal_state,
    hide_messages,
    messages_visible,
    messaging_panel_for,
    set_admin_state,
    set_messaging_state,
    set_portal_state,
    show_messages,
)

logger = logging.getLogger(__name__)


def _commit_admin(state: AdminState) -> None:
    set_admin_state(state)
    st.rerun()


def render_home_page(client: BackendClient) -> None:
    st.title("Arrival Console")
    st.write("Backend health:", backend_health_label(client, settings.backend_health_url or None))
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Open admin dashboard", use_container_width=True):
            st.query_params["view"] = "admin"
            st.rerun()
    with col2:
        student_id = st.text_input("Student ID", placeholder="Paste your student id")
        if st.button("Open my checklist", disabled=not student_id.strip(), use_container_width=True):
            st.query_params["view"] = "student"
            st.query_params["student"] = student_id.strip()
            st.rerun()


# =============================================================================
# Admin dashboard
# =============================================================================


def render_admin_page(controller: AdminController) -> None:
    state = get_admin_state(controller)

    st.title("Arrival Admin Dashboard")
    st.caption("Track programs, students, and review documents for your partner institutions.")

    if render_error_with_retry(state.error, "admin"):
        _commit_admin(controller.reload(state))

    _render_institutions(controller, state)
    _render_programs(controller, state)
    _render_students(controller, state)
    _render_checklist(controller, state)
    _render_documents(controller, state)
    _render_requests(controller, state)
    _render_admin_messages(controller, state)


def _render_institutions(controller: AdminController, state: AdminState) -> None:
    st.markdown("### 1. Select Institution")
    if state.is_loading(Resource.INSTITUTIONS):
        render_loading("Loading institutions…")
        return
    if not state.institutions:
        st.info("No institutions found.")
        return

    ids = [i.id for i in state.institutions]
    names = {i.id: i.name for i in state.institutions}
    index = ids.index(state.institution_id) if state.institution_id in ids else 0
    chosen = st.selectbox("Institution", ids, index=index, format_func=lambda x: names.get(x, x))
    if chosen != state.institution_id:
        _commit_admin(controller.select_institution(state, chosen))


def _render_programs(controller: AdminController, state: AdminState) -> None:
    st.markdown("### 2. Programs / Cohorts")
    if not state.institution_id:
        st.caption("Select an institution to see its programs.")
        return
    if state.is_loading(Resource.PROGRAMS):
        render_loading("Loading programs…")

    if not state.programs:
        st.info("No programs found for this institution yet.")
    else:
        cols = st.columns(min(len(state.programs), 4))
        for i, program in enumerate(state.programs):
            with cols[i % len(cols)]:
                selected = program.id == state.program_id
                if st.button(
                    program.label,
                    key=f"program_{program.id}",
                    type="primary" if selected else "secondary",
                    use_container_width=True,
                ):
                    if not selected:
                        _commit_admin(controller.select_program(state, program.id))

    with st.expander("Create program"):
        version = state.form_version
        form = state.program_form
        types = sorted(PROGRAM_TYPES, reverse=True)
        name = st.text_input("Program name", value=form.name, key=f"prog_name_{version}")
        term_label = st.text_input("Term label", value=form.term_label, key=f"prog_term_{version}", placeholder="Fall 2026")
        start = st.date_input("Term start date", value=None, key=f"prog_start_{version}")
        program_type = st.selectbox(
            "Program type",
            types,
            index=types.index(form.program_type) if form.program_type in types else 0,
            key=f"prog_type_{version}",
        )
        busy = state.is_busy("create_program")
        if st.button("Adding…" if busy else "Create program", disabled=busy, key="create_program"):
            submitted = ProgramForm(
                name=name,
                term_label=term_label,
                term_start_date=start.isoformat() if isinstance(start, date) else "",
                program_type=program_type,
            )
            _commit_admin(controller.create_program(state, submitted))


def _render_students(controller: AdminController, state: AdminState) -> None:
    st.markdown("### 3. Students in Selected Program")
    if not state.program_sections_enabled:
        st.caption("Select a program to see its students and checklist.")
        return
    if state.is_loading(Resource.STUDENTS):
        render_loading("Loading students…")

    if not state.students:
        st.info("No students found for this program yet.")
    else:
        clicked = render_students_table(state.students, state.student_id)
        if clicked:
            _commit_admin(controller.select_student(state, clicked))

    with st.expander("Bulk add students"):
        st.caption("One student per line: Name, email, target_university")
        text = st.text_area(
            "Students",
            value=state.bulk_text,
            key=f"bulk_text_{state.form_version}",
            height=140,
            placeholder="Jane Doe, jane@example.com, MIT",
        )
        busy = state.is_busy("bulk_add_students")
        if st.button("Adding…" if busy else "Add students", disabled=busy, key="bulk_add"):
            _commit_admin(controller.bulk_add_students(state, text))


def _render_checklist(controller: AdminController, state: AdminState) -> None:
    st.markdown("### 4. Arrival Checklist for this Program")
    if not state.program_sections_enabled:
        st.caption("Select a program to see its students and checklist.")
        return
    if state.is_loading(Resource.CHECKLIST):
        render_loading("Loading checklist…")

    if not state.checklist:
        st.info("No steps defined yet. Add the first arrival step for this program.")
    else:
        for step in sorted(state.checklist, key=lambda s: s.sort_order):
            with st.container(border=True):
                line = f"**{step.sort_order}. {step.title}**"
                if step.is_required:
                    line += " :red[REQUIRED]"
                st.markdown(line)
                if step.description:
                    st.caption(step.description)
                if step.category:
                    st.caption(step.category.upper())

    col1, col2 = st.columns([3, 1])
    with col1:
        template = st.selectbox("Checklist template", settings.checklist_templates, key="template_choice")
    with col2:
        st.write("")
        if st.button("Apply template", disabled=state.is_busy("apply_template"), use_container_width=True):
            _commit_admin(controller.apply_template(state, template or ""))

    st.markdown("#### Add a new checklist step")
    version = state.form_version
    form = state.step_form
    c1, c2 = st.columns(2)
    title = c1.text_input("Step title", value=form.title, key=f"step_title_{version}", placeholder="Upload passport")
    category = c2.text_input("Category", value=form.category, key=f"step_cat_{version}", placeholder="visa, docs")
    description = st.text_area(
        "Optional description or instructions",
        value=form.description,
        key=f"step_desc_{version}",
        height=68,
    )
    is_required = st.checkbox("Required", value=form.is_required, key=f"step_req_{version}")
    busy = state.is_busy("create_step")
    if st.button("Adding…" if busy else "Add Step", disabled=busy or not title.strip(), key="add_step"):
        _commit_admin(
            controller.add_checklist_step(
                state, title=title, category=category, description=description, is_required=is_required
            )
        )


def _render_documents(controller: AdminController, state: AdminState) -> None:
    st.markdown("### 5. Documents for Selected Student")
    if not state.student_id:
        st.caption("Select a student to view their uploaded documents.")
        return
    if state.is_loading(Resource.DOCUMENTS):
        render_loading("Loading documents…")
    if not state.documents:
        st.info("This student has not uploaded any documents yet.")
        return

    for document in state.documents:
        action = f"review_document_{document.id}"
        decision = render_document_row(document, busy=state.is_busy(action))
        if decision is not None:
            verdict, notes = decision
            _commit_admin(controller.review_document(state, document.id, verdict, notes))


def _render_requests(controller: AdminController, state: AdminState) -> None:
    program = state.selected_program
    if program is None:
        return
    st.markdown(f"### 6. Requests to {program.program_type.value.title()}")
    if state.is_loading(Resource.REQUESTS):
        render_loading("Loading requests…")
    if not state.requests:
        st.caption("No requests for this program.")
        return
    for request in state.requests:
        decision = render_request_row(request, busy=state.is_busy(f"review_request_{request.id}"))
        if decision is not None:
            verdict, notes = decision
            _commit_admin(controller.review_request(state, request.id, verdict, notes))


def _render_admin_messages(controller: AdminController, state: AdminState) -> None:
    if not state.student_id:
        return
    student = state.selected_student
    st.markdown(f"### 7. Messages with {student.full_name if student else 'student'}")
    render_messages_panel(controller.client, SenderType.ADMIN, state.student_id)


# =============================================================================
# Messaging
# =============================================================================


def render_messages_panel(client: BackendClient, viewer: SenderType, student_id: str) -> None:
    """
    Conversation thread with a send form.

    Nothing is fetched until the user opens the panel: opening loads the
    conversation and marks it read, so a collapsed panel must not do either.
    """
    if not messages_visible(viewer, student_id):
        st.button(
            "Open messages",
            key=f"open_messages_{viewer.value}_{student_id}",
            on_click=show_messages,
            args=(viewer, student_id),
        )
        return

    panel = messaging_panel_for(client, viewer, student_id)
    state = get_messaging_state(panel, student_id)
    st.button(
        "Close messages",
        key=f"close_messages_{viewer.value}_{student_id}",
        on_click=hide_messages,
        args=(viewer, student_id),
    )

    if state.conversation is None:
        if state.is_busy("open"):
            render_loading("Loading messages...")
        if render_error_with_retry(state.error or "Conversation unavailable.", f"conv_{viewer.value}_{student_id}"):
            set_messaging_state(panel, panel.open(state.clear_error()))
            st.rerun()
        return

    render_message_thread(state.messages, viewer)
    if state.error:
        st.error(state.error)

    sending = state.is_busy("send_message")
    with st.form(key=f"send_{viewer.value}_{student_id}", clear_on_submit=True):
        text = st.text_area("Message", value=state.draft, placeholder="Type your message...", height=80)
        col1, col2 = st.columns([1, 1])
        send = col1.form_submit_button("Sending..." if sending else "Send", disabled=sending)
        refresh = col2.form_submit_button("Refresh")
    if send:
        set_messaging_state(panel, panel.send(state, text))
        st.rerun()
    if refresh:
        set_messaging_state(panel, panel.refresh(state.clear_error()))
        st.rerun()
    if viewer is SenderType.STUDENT:
        st.caption("Need help? Message your program admin here anytime.")


# =============================================================================
# Student portal
# =============================================================================


def render_student_page(portal: StudentPortal, student_id: str) -> None:
    if not student_id:
        st.warning("Missing student ID in the URL.")
        return

    state = get_portal_state(portal, student_id)

    st.title("Your Arrival Checklist")
    st.caption("Complete each step below to get ready for your arrival on campus.")

    if render_error_with_retry(state.error, f"portal_{student_id}"):
        set_portal_state(portal.load(state.clear_error()))
        st.rerun()

    tab_checklist, tab_requests, tab_messages = st.tabs(["Checklist", "Requests", "Messages"])

    with tab_checklist:
        if state.is_loading(Resource.CHECKLIST):
            render_loading("Loading checklist…")
        elif not state.checklist:
            st.info("Your program has not set up an arrival checklist yet.")
        else:
            progress = portal.progress(state)
            st.progress(progress, text=f"{progress:.0%} complete")
            for item in sorted(state.checklist, key=lambda i: i.sort_order):
                action = render_checklist_item(item, saving=state.is_busy(f"mark_{item.checklist_step_id}"))
                if action == "mark":
                    set_portal_state(portal.mark_done(state, item.checklist_step_id))
                    st.rerun()
                elif action == "upload":
                    _submit_upload(portal, state, item.checklist_step_id)

    with tab_requests:
        _render_student_requests(portal, state)

    with tab_messages:
        render_messages_panel(portal.client, SenderType.STUDENT, student_id)


def _submit_upload(portal: StudentPortal, state, checklist_step_id: str) -> None:
    uploaded = st.session_state.get(f"upload_{checklist_step_id}")
    if uploaded is None or find_item(state, checklist_step_id) is None:
        return
    logger.info("Uploading %s for step %s", uploaded.name, checklist_step_id)
    set_portal_state(
        portal.upload_document(
            state,
            checklist_step_id,
            file_name=uploaded.name,
            content=uploaded.getvalue(),
            content_type=uploaded.type or "application/octet-stream",
        )
    )
    st.rerun()


def _render_student_requests(portal: StudentPortal, state) -> None:
    version = state.form_version
    with st.form(key=f"request_form_{version}"):
        request_type = st.text_input("Request type", placeholder="e.g. Housing, Stipend")
        description = st.text_area("Describe what you need")
        recipient = st.radio(
            "Send to",
            [r.value for r in RecipientType],
            horizontal=True,
            format_func=lambda v: v.title(),
        )
        submitted = st.form_submit_button("Submit request", disabled=state.is_busy("submit_request"))
    if submitted:
        set_portal_state(
            portal.submit_request(
                state,
                request_type=request_type,
                description=description,
                recipient_type=RecipientType(recipient),
            )
        )
        st.rerun()

    if state.is_loading(Resource.REQUESTS):
        render_loading("Loading requests…")
    elif not state.requests:
        st.caption("You have not submitted any requests yet.")
    for request in state.requests:
        with st.container(border=True):
            st.markdown(f"**{request.request_type}** · {request.recipient_type.value.title()} · {request.status.value}")
            st.write(request.description)
            if request.admin_notes:
                st.caption(f"Admin notes: {request.admin_notes}")
