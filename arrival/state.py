"""
Immutable page state for the admin dashboard, student portal and messaging
panel.

Every transition returns a new state object; nothing here does I/O, so the
cascade and stale-response rules can be tested without Streamlit or a backend.

Fetches are guarded by a per-collection generation counter. ``begin_fetch``
hands out a ``FetchTicket`` stamped with the collection's generation; clearing
the collection or starting a newer fetch bumps the generation, and
``resolve``/``fail`` ignore any ticket that no longer matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S", bound="_CollectionState")


class Resource(str, Enum):
    INSTITUTIONS = "institutions"
    PROGRAMS = "programs"
    STUDENTS = "students"
    CHECKLIST = "checklist"
    REQUESTS = "requests"
    DOCUMENTS = "documents"
    MESSAGES = "messages"


# Collections that must be emptied when the given selection changes.
PROGRAM_SCOPED = (Resource.STUDENTS, Resource.CHECKLIST, Resource.REQUESTS, Resource.DOCUMENTS)
INSTITUTION_SCOPED = (Resource.PROGRAMS, *PROGRAM_SCOPED)
STUDENT_SCOPED = (Resource.DOCUMENTS,)


@dataclass(frozen=True)
class FetchTicket:
    resource: Resource
    generation: int


@dataclass(frozen=True)
class Collection:
    items: tuple = ()
    generation: int = 0
    loading: bool = False
    loaded: bool = False

    def cleared(self) -> Collection:
        return Collection(generation=self.generation + 1)


class _CollectionState:
    """Fetch bookkeeping shared by the page states below."""

    collections: dict[Resource, Collection]
    error: Optional[str]
    busy: frozenset[str]

    def collection(self, resource: Resource) -> Collection:
        return self.collections.get(resource, Collection())

    def items(self, resource: Resource) -> tuple:
        return self.collection(resource).items

    def is_loading(self, resource: Resource) -> bool:
        return self.collection(resource).loading

    def _with(self: S, resource: Resource, coll: Collection, **changes: Any) -> S:
        collections = dict(self.collections)
        collections[resource] = coll
        return replace(self, collections=collections, **changes)

    def _clear(self: S, *resources: Resource) -> S:
        collections = dict(self.collections)
        for resource in resources:
            collections[resource] = self.collection(resource).cleared()
        return replace(self, collections=collections)

    def begin_fetch(self: S, resource: Resource) -> tuple[S, FetchTicket]:
        """Mark ``resource`` loading and issue a ticket."""
        current = self.collection(resource)
        generation = current.generation + 1
        state = self._with(
            resource,
            Collection(items=(), generation=generation, loading=True, loaded=False),
        )
        return state, FetchTicket(resource, generation)

    def is_current(self, ticket: FetchTicket) -> bool:
        return self.collection(ticket.resource).generation == ticket.generation

    def resolve(self: S, ticket: FetchTicket, items: Any) -> S:
        """Replace the collection wholesale, unless the ticket is stale."""
        if not self.is_current(ticket):
            logger.debug("Dropping stale %s response (generation %s)", ticket.resource.value, ticket.generation)
            return self
        return self._with(
            ticket.resource,
            Collection(items=tuple(items), generation=ticket.generation, loading=False, loaded=True),
        )

    def fail(self: S, ticket: FetchTicket, message: str) -> S:
        """Leave the collection empty and surface ``message``, unless stale."""
        if not self.is_current(ticket):
            logger.debug("Dropping stale %s failure (generation %s)", ticket.resource.value, ticket.generation)
            return self
        return self._with(
            ticket.resource,
            Collection(items=(), generation=ticket.generation, loading=False, loaded=False),
            error=message,
        )

    def with_error(self: S, message: Optional[str]) -> S:
        return replace(self, error=message)

    def clear_error(self: S) -> S:
        return replace(self, error=None)

    def begin_action(self: S, action: str) -> S:
        return replace(self, busy=self.busy | {action}, error=None)

    def end_action(self: S, action: str) -> S:
        return replace(self, busy=self.busy - {action})

    def is_busy(self, action: str) -> bool:
        return action in self.busy


# =============================================================================
# Admin dashboard
# =============================================================================


@dataclass(frozen=True)
class StepForm:
    title: str = ""
    category: str = ""
    description: str = ""
    is_required: bool = True


@dataclass(frozen=True)
class ProgramForm:
    name: str = ""
    term_label: str = ""
    term_start_date: str = ""
    program_type: str = "UNIVERSITY"


@dataclass(frozen=True)
class AdminState(_CollectionState):
    """Institution → program → student selection chain plus dependent collections."""

    institution_id: Optional[str] = None
    program_id: Optional[str] = None
    student_id: Optional[str] = None
    collections: dict[Resource, Collection] = field(default_factory=dict)
    error: Optional[str] = None
    busy: frozenset[str] = frozenset()
    step_form: StepForm = StepForm()
    program_form: ProgramForm = ProgramForm()
    bulk_text: str = ""
    # Bumped when a form is reset so widgets keyed on it start empty.
    form_version: int = 0

    def select_institution(self, institution_id: Optional[str]) -> AdminState:
        state = self._clear(*INSTITUTION_SCOPED)
        return replace(state, institution_id=institution_id or None, program_id=None, student_id=None, error=None)

    def select_program(self, program_id: Optional[str]) -> AdminState:
        state = self._clear(*PROGRAM_SCOPED)
        return replace(state, program_id=program_id or None, student_id=None, error=None)

    def select_student(self, student_id: Optional[str]) -> AdminState:
        state = self._clear(*STUDENT_SCOPED)
        return replace(state, student_id=student_id or None, error=None)

    def with_step_form(self, **changes: Any) -> AdminState:
        return replace(self, step_form=replace(self.step_form, **changes))

    def with_program_form(self, **changes: Any) -> AdminState:
        return replace(self, program_form=replace(self.program_form, **changes))

    def with_bulk_text(self, text: str) -> AdminState:
        return replace(self, bulk_text=text)

    def reset_forms(self) -> AdminState:
        return replace(
            self,
            step_form=StepForm(),
            program_form=ProgramForm(),
            bulk_text="",
            form_version=self.form_version + 1,
        )

    @property
    def institutions(self) -> tuple:
        return self.items(Resource.INSTITUTIONS)

    @property
    def programs(self) -> tuple:
        return self.items(Resource.PROGRAMS)

    @property
    def students(self) -> tuple:
        return self.items(Resource.STUDENTS)

    @property
    def checklist(self) -> tuple:
        return self.items(Resource.CHECKLIST)

    @property
    def documents(self) -> tuple:
        return self.items(Resource.DOCUMENTS)

    @property
    def requests(self) -> tuple:
        return self.items(Resource.REQUESTS)

    @property
    def selected_program(self):
        return next((p for p in self.programs if p.id == self.program_id), None)

    @property
    def selected_student(self):
        return next((s for s in self.students if s.id == self.student_id), None)

    @property
    def program_sections_enabled(self) -> bool:
        """Students and checklist sections need a program."""
        return self.program_id is not None


# =============================================================================
# Student portal
# =============================================================================


@dataclass(frozen=True)
class StudentPortalState(_CollectionState):
    student_id: str = ""
    collections: dict[Resource, Collection] = field(default_factory=dict)
    error: Optional[str] = None
    busy: frozenset[str] = frozenset()
    form_version: int = 0

    @property
    def checklist(self) -> tuple:
        return self.items(Resource.CHECKLIST)

    @property
    def requests(self) -> tuple:
        return self.items(Resource.REQUESTS)

    def reset_forms(self) -> StudentPortalState:
        return replace(self, form_version=self.form_version + 1)


# =============================================================================
# Messaging panel
# =============================================================================


@dataclass(frozen=True)
class MessagingState(_CollectionState):
    student_id: str = ""
    conversation: Any = None
    collections: dict[Resource, Collection] = field(default_factory=dict)
    error: Optional[str] = None
    busy: frozenset[str] = frozenset()
    draft: str = ""

    @property
    def messages(self) -> tuple:
        return self.items(Resource.MESSAGES)

    def with_conversation(self, conversation: Any) -> MessagingState:
        return replace(self, conversation=conversation)

    def with_draft(self, text: str) -> MessagingState:
        return replace(self, draft=text)
