"""
Page controllers: the glue between ``BackendClient`` and the page states.

Controllers hold no page state themselves. Each operation takes the current
state and returns the next one, so a Streamlit page just stores whatever comes
back in ``st.session_state``.

Every mutation goes through ``write_through``: validate locally, send the
mutation, then reload the collection that owns the changed record. The
response body of a mutation is never applied to displayed state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict
from typing import Any, Optional, TypeVar

from arrival.bulk import parse_bulk_students
from arrival.checklist import can_upload, ensure_can_mark_done
from arrival.client import BackendClient
from arrival.config import PROGRAM_TYPES, settings
from arrival.domain import ItemStatus, RecipientType, ReviewStatus, SenderType, StudentChecklistItem
from arrival.exceptions import (
    ArrivalError,
    ChecklistGateError,
    MissingRequiredFieldError,
    ValidationError,
)
from arrival.logging_config import log_error, log_event
from arrival.state import (
    AdminState,
    MessagingState,
    ProgramForm,
    Resource,
    StudentPortalState,
    _CollectionState,
)

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=_CollectionState)


# =============================================================================
# Shared helpers
# =============================================================================


def load_collection(state: S, resource: Resource, fetch: Callable[[], list]) -> S:
    """Fetch ``resource`` and replace it wholesale; on failure leave it empty and set the banner."""
    state, ticket = state.begin_fetch(resource)
    try:
        items = fetch()
    except ArrivalError as exc:
        log_error(f"{resource.value}_load_failed", resource=resource.value, error=str(exc))
        return state.fail(ticket, str(exc))
    return state.resolve(ticket, items)


def write_through(
    state: S,
    *,
    action: str,
    mutate: Callable[[], Any],
    refetch: Callable[[S], S],
    validate: Optional[Callable[[], None]] = None,
    on_success: Optional[Callable[[S], S]] = None,
) -> S:
    """
    Run one mutation with write-through semantics.

    1. ``validate`` raises ``ValidationError`` to stop before any request.
    2. ``mutate`` sends the request; its return value is ignored.
    3. On success, ``on_success`` (form resets) runs, then ``refetch`` reloads
       the owning collection.

    A failure at step 1 or 2 returns ``state`` untouched apart from the
    banner message.
    """
    if validate is not None:
        try:
            validate()
        except ValidationError as exc:
            logger.info("%s rejected locally: %s", action, exc)
            return state.with_error(str(exc))

    busy = state.begin_action(action)
    try:
        mutate()
    except ArrivalError as exc:
        exc.log(logging.WARNING)
        return state.with_error(str(exc))

    log_event(f"{action}_succeeded")
    state = busy.end_action(action)
    if on_success is not None:
        state = on_success(state)
    return refetch(state)


def _require(value: Any, field_name: str, label: str | None = None) -> str:
    text = (value or "").strip() if isinstance(value, str) else value
    if not text:
        raise MissingRequiredFieldError(field_name, label=label)
    return text


# =============================================================================
# Admin dashboard
# =============================================================================


class AdminController:
    """Cascading selection and admin mutations for the dashboard."""

    def __init__(self, client: BackendClient, *, reviewer: str | None = None) -> None:
        self.client = client
        self.reviewer = reviewer or settings.reviewer_name

    # -- selection chain ------------------------------------------------------

    def load_institutions(self, state: AdminState) -> AdminState:
        state = load_collection(state, Resource.INSTITUTIONS, self.client.list_institutions)
        if state.institution_id is None and state.institutions:
            state = self.select_institution(state, state.institutions[0].id)
        return state

    def select_institution(self, state: AdminState, institution_id: Optional[str]) -> AdminState:
        state = state.select_institution(institution_id)
        if not state.institution_id:
            return state
        return self.load_programs(state)

    def load_programs(self, state: AdminState) -> AdminState:
        institution_id = state.institution_id
        state = load_collection(state, Resource.PROGRAMS, lambda: self.client.list_programs(institution_id))
        if state.program_id is None and state.programs:
            state = self.select_program(state, state.programs[0].id)
        return state

    def select_program(self, state: AdminState, program_id: Optional[str]) -> AdminState:
        state = state.select_program(program_id)
        if not state.program_id:
            return state
        state = self.load_checklist(state)
        state = self.load_requests(state)
        return self.load_students(state)

    def load_students(self, state: AdminState) -> AdminState:
        program_id = state.program_id
        state = load_collection(state, Resource.STUDENTS, lambda: self.client.list_students(program_id))
        if state.student_id is None and state.students:
            state = self.select_student(state, state.students[0].id)
        return state

    def load_checklist(self, state: AdminState) -> AdminState:
        program_id = state.program_id
        return load_collection(state, Resource.CHECKLIST, lambda: self.client.list_checklist_steps(program_id))

    def load_requests(self, state: AdminState) -> AdminState:
        """Requests addressed to the selected program's kind of sponsor."""
        program = state.selected_program
        recipient = RecipientType(program.program_type.value) if program is not None else None
        program_id = state.program_id
        return load_collection(
            state,
            Resource.REQUESTS,
            lambda: self.client.list_admin_requests(program_id=program_id, recipient_type=recipient),
        )

    def select_student(self, state: AdminState, student_id: Optional[str]) -> AdminState:
        state = state.select_student(student_id)
        if not state.student_id:
            return state
        return self.load_documents(state)

    def load_documents(self, state: AdminState) -> AdminState:
        student_id = state.student_id
        return load_collection(state, Resource.DOCUMENTS, lambda: self.client.list_student_documents(student_id))

    def reload(self, state: AdminState) -> AdminState:
        """Retry from the deepest selection that is still set."""
        state = state.clear_error()
        if state.program_id:
            return self.select_program(state, state.program_id)
        if state.institution_id:
            return self.select_institution(state, state.institution_id)
        return self.load_institutions(state)

    # -- mutations -------------------------------------------------------------

    def create_program(self, state: AdminState, form: ProgramForm) -> AdminState:
        values: dict[str, str] = {}

        def validate() -> None:
            if not state.institution_id:
                raise ValidationError("Select an institution first", field="institution_id")
            values["name"] = _require(form.name, "name", "Program name")
            values["term_label"] = _require(form.term_label, "term_label", "Term label")
            values["term_start_date"] = _require(form.term_start_date, "term_start_date", "Term start date")
            program_type = (form.program_type or "").strip().upper()
            if program_type not in PROGRAM_TYPES:
                raise ValidationError(
                    f"Program type must be one of {', '.join(sorted(PROGRAM_TYPES))}", field="program_type"
                )
            values["program_type"] = program_type

        return write_through(
            state.with_program_form(**asdict(form)),
            action="create_program",
            validate=validate,
            mutate=lambda: self.client.create_program(institution_id=state.institution_id, **values),
            on_success=lambda s: s.reset_forms(),
            refetch=self.load_programs,
        )

    def add_checklist_step(
        self,
        state: AdminState,
        *,
        title: str,
        category: str = "",
        description: str = "",
        is_required: bool = True,
    ) -> AdminState:
        def validate() -> None:
            if not state.program_id:
                raise ValidationError("Select a program first", field="program_id")
            _require(title, "title", "Step title")

        return write_through(
            state.with_step_form(title=title, category=category, description=description, is_required=is_required),
            action="create_step",
            validate=validate,
            mutate=lambda: self.client.create_checklist_step(
                program_id=state.program_id,
                title=title.strip(),
                description=(description or "").strip() or None,
                category=(category or "").strip() or None,
                is_required=is_required,
                sort_order=len(state.checklist) + 1,
            ),
            on_success=lambda s: s.reset_forms(),
            refetch=self.load_checklist,
        )

    def apply_template(self, state: AdminState, template: str) -> AdminState:
        def validate() -> None:
            if not state.program_id:
                raise ValidationError("Select a program first", field="program_id")
            _require(template, "template", "Template")

        return write_through(
            state,
            action="apply_template",
            validate=validate,
            mutate=lambda: self.client.apply_template(state.program_id, template.strip()),
            refetch=self.load_checklist,
        )

    def bulk_add_students(self, state: AdminState, text: str) -> AdminState:
        students: list[dict[str, str]] = []

        def validate() -> None:
            if not state.program_id:
                raise ValidationError("Select a program first", field="program_id")
            students.extend(parse_bulk_students(text))
            if not students:
                raise ValidationError(
                    "No valid student lines found. Use: Name, email, target_university",
                    field="students",
                )

        def refetch(s: AdminState) -> AdminState:
            log_event("students_bulk_added", program_id=s.program_id, count=len(students))
            return self.load_students(s)

        return write_through(
            state.with_bulk_text(text),
            action="bulk_add_students",
            validate=validate,
            mutate=lambda: self.client.bulk_add_students(state.program_id, students),
            on_success=lambda s: s.reset_forms(),
            refetch=refetch,
        )

    def review_document(
        self,
        state: AdminState,
        document_id: str,
        decision: ReviewStatus,
        notes: str = "",
    ) -> AdminState:
        def validate() -> None:
            if decision not in (ReviewStatus.APPROVED, ReviewStatus.REJECTED):
                raise ValidationError("Decision must be APPROVED or REJECTED", field="decision")

        def refetch(s: AdminState) -> AdminState:
            # progress_fraction on the student row is computed from reviews
            s = self.load_documents(s)
            program_id = s.program_id
            return load_collection(s, Resource.STUDENTS, lambda: self.client.list_students(program_id))

        return write_through(
            state,
            action=f"review_document_{document_id}",
            validate=validate,
            mutate=lambda: self.client.review_document(
                document_id,
                decision,
                reviewer=self.reviewer,
                reviewer_notes=(notes or "").strip() or None,
            ),
            refetch=refetch,
        )

    def review_request(
        self,
        state: AdminState,
        request_id: str,
        decision: ReviewStatus,
        notes: str = "",
    ) -> AdminState:
        def validate() -> None:
            if decision not in (ReviewStatus.APPROVED, ReviewStatus.REJECTED):
                raise ValidationError("Decision must be APPROVED or REJECTED", field="decision")

        return write_through(
            state,
            action=f"review_request_{request_id}",
            validate=validate,
            mutate=lambda: self.client.review_request(
                request_id, decision, admin_notes=(notes or "").strip() or None
            ),
            refetch=self.load_requests,
        )


# =============================================================================
# Student portal
# =============================================================================


def find_item(state: StudentPortalState, checklist_step_id: str) -> Optional[StudentChecklistItem]:
    return next((i for i in state.checklist if i.checklist_step_id == checklist_step_id), None)


def checklist_progress(items: tuple) -> float:
    """Share of checklist items marked DONE; 0.0 for an empty checklist."""
    if not items:
        return 0.0
    return sum(1 for item in items if item.status is ItemStatus.DONE) / len(items)


class StudentPortal:
    """The student's own checklist, uploads and support requests."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    def load(self, state: StudentPortalState) -> StudentPortalState:
        state = self.load_checklist(state)
        return self.load_requests(state)

    def load_checklist(self, state: StudentPortalState) -> StudentPortalState:
        student_id = state.student_id
        return load_collection(state, Resource.CHECKLIST, lambda: self.client.get_student_checklist(student_id))

    def load_requests(self, state: StudentPortalState) -> StudentPortalState:
        student_id = state.student_id
        return load_collection(state, Resource.REQUESTS, lambda: self.client.list_student_requests(student_id))

    def _item_or_raise(self, state: StudentPortalState, checklist_step_id: str) -> StudentChecklistItem:
        item = find_item(state, checklist_step_id)
        if item is None:
            raise ChecklistGateError(checklist_step_id, reason="Unknown checklist step")
        return item

    def mark_done(self, state: StudentPortalState, checklist_step_id: str) -> StudentPortalState:
        def validate() -> None:
            ensure_can_mark_done(self._item_or_raise(state, checklist_step_id))

        return write_through(
            state,
            action=f"mark_{checklist_step_id}",
            validate=validate,
            mutate=lambda: self.client.mark_step(state.student_id, checklist_step_id, ItemStatus.DONE.value),
            refetch=self.load_checklist,
        )

    def upload_document(
        self,
        state: StudentPortalState,
        checklist_step_id: str,
        *,
        file_name: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> StudentPortalState:
        def validate() -> None:
            item = self._item_or_raise(state, checklist_step_id)
            if not can_upload(item):
                raise ChecklistGateError(
                    checklist_step_id, reason="A document for this step is already under review or approved"
                )
            _require(file_name, "file", "File")
            if not content:
                raise ValidationError("The selected file is empty", field="file")

        return write_through(
            state,
            action=f"upload_{checklist_step_id}",
            validate=validate,
            mutate=lambda: self.client.upload_document(
                state.student_id,
                checklist_step_id,
                file_name=file_name,
                content=content,
                content_type=content_type,
            ),
            refetch=self.load_checklist,
        )

    def submit_request(
        self,
        state: StudentPortalState,
        *,
        request_type: str,
        description: str,
        recipient_type: RecipientType = RecipientType.UNIVERSITY,
    ) -> StudentPortalState:
        def validate() -> None:
            _require(request_type, "request_type", "Request type")
            _require(description, "description", "Description")

        return write_through(
            state,
            action="submit_request",
            validate=validate,
            mutate=lambda: self.client.submit_request(
                state.student_id,
                request_type=request_type.strip(),
                description=description.strip(),
                recipient_type=recipient_type,
            ),
            on_success=lambda s: s.reset_forms(),
            refetch=self.load_requests,
        )

    @staticmethod
    def progress(state: StudentPortalState) -> float:
        return checklist_progress(state.checklist)


# =============================================================================
# Messaging panel
# =============================================================================


class MessagingPanel:
    """One conversation per student; the backend's message list is authoritative."""

    def __init__(
        self,
        client: BackendClient,
        *,
        viewer: SenderType,
        sender_id: str,
        page_size: int | None = None,
    ) -> None:
        self.client = client
        self.viewer = viewer
        self.sender_id = sender_id
        self.page_size = page_size or settings.messages_page_size

    def open(self, state: MessagingState) -> MessagingState:
        """Resolve (or create) the conversation, then load its messages."""
        state = state.begin_action("open")
        try:
            conversation = self.client.get_conversation(state.student_id)
        except ArrivalError as exc:
            logger.error("Conversation error: %s", exc)
            return state.end_action("open").with_conversation(None).with_error(str(exc))
        state = state.end_action("open").with_conversation(conversation)
        return self.refresh(state)

    def refresh(self, state: MessagingState) -> MessagingState:
        conversation = state.conversation
        if conversation is None:
            return state
        state = load_collection(
            state,
            Resource.MESSAGES,
            lambda: self.client.list_messages(conversation.id, limit=self.page_size, offset=0),
        )
        if state.collection(Resource.MESSAGES).loaded:
            self._mark_read(conversation.id)
        return state

    def _mark_read(self, conversation_id: str) -> None:
        # Runs after every successful fetch; failures never reach the banner.
        try:
            self.client.mark_read(conversation_id, self.viewer)
        except ArrivalError as exc:
            logger.warning("Mark read error: %s", exc)

    def send(self, state: MessagingState, text: str) -> MessagingState:
        content = (text or "").strip()

        def validate() -> None:
            if state.conversation is None:
                raise ValidationError("No conversation loaded", field="conversation")
            if not content:
                raise MissingRequiredFieldError("content", label="Message")

        return write_through(
            state.with_draft(text or ""),
            action="send_message",
            validate=validate,
            mutate=lambda: self.client.send_message(
                state.conversation.id,
                sender_type=self.viewer,
                sender_id=self.sender_id,
                content=content,
            ),
            on_success=lambda s: s.with_draft(""),
            refetch=self.refresh,
        )


# =============================================================================
# Backend health
# =============================================================================


def backend_health_label(client: BackendClient, url: str | None = None) -> str:
    """Short status string for the landing page."""
    try:
        data = client.check_health(url)
    except ArrivalError as exc:
        logger.warning("Backend health check failed: %s", exc)
        return f"Error: {exc}"
    status = data.get("status")
    return str(status) if status is not None else str(data)
