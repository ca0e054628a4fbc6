"""
Document review gate for student checklist items.

States per item::

    NO_DOCUMENT --upload--> PENDING_REVIEW --approve--> APPROVED
                                           --reject---> REJECTED --re-upload--> PENDING_REVIEW

The backend drives every transition. The client only uses the current state
to decide which actions are enabled.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from arrival.domain import ReviewStatus, StudentChecklistItem, StudentDocument
from arrival.exceptions import ChecklistGateError


class DocumentState(str, Enum):
    NO_DOCUMENT = "NO_DOCUMENT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


TRANSITIONS: dict[DocumentState, frozenset[DocumentState]] = {
    DocumentState.NO_DOCUMENT: frozenset({DocumentState.PENDING_REVIEW}),
    DocumentState.PENDING_REVIEW: frozenset({DocumentState.APPROVED, DocumentState.REJECTED}),
    DocumentState.REJECTED: frozenset({DocumentState.PENDING_REVIEW}),
    DocumentState.APPROVED: frozenset(),
}


def can_transition(current: DocumentState, target: DocumentState) -> bool:
    return target in TRANSITIONS[current]


def document_state(item: StudentChecklistItem) -> DocumentState:
    """Derive the review state from ``has_document`` and ``review_status``."""
    if not item.has_document:
        return DocumentState.NO_DOCUMENT
    if item.review_status is ReviewStatus.APPROVED:
        return DocumentState.APPROVED
    if item.review_status is ReviewStatus.REJECTED:
        return DocumentState.REJECTED
    return DocumentState.PENDING_REVIEW


def completion_block_reason(item: StudentChecklistItem) -> str | None:
    """Why the item cannot be marked done right now, or None if it can."""
    if item.is_done:
        return "This step is already done."
    if not item.requires_document:
        return None

    state = document_state(item)
    if state is DocumentState.APPROVED:
        return None
    if state is DocumentState.NO_DOCUMENT:
        return "Upload the required document before marking this step done."
    if state is DocumentState.REJECTED:
        return "Your document was rejected. Upload a new one before marking this step done."
    return "Your document is waiting for review."


def can_mark_done(item: StudentChecklistItem) -> bool:
    return completion_block_reason(item) is None


def ensure_can_mark_done(item: StudentChecklistItem) -> None:
    """Raise ``ChecklistGateError`` if the item cannot be completed."""
    reason = completion_block_reason(item)
    if reason is not None:
        raise ChecklistGateError(item.checklist_step_id, reason=reason)


def can_upload(item: StudentChecklistItem) -> bool:
    """Upload is open before the first document and after a rejection."""
    if item.is_done:
        return False
    return can_transition(document_state(item), DocumentState.PENDING_REVIEW)


@dataclass(frozen=True)
class DocumentActions:
    can_approve: bool
    can_reject: bool


def document_actions(document: StudentDocument) -> DocumentActions:
    """Approve/reject are offered only while a document awaits review."""
    pending = document.reviewed_status is ReviewStatus.PENDING
    return DocumentActions(can_approve=pending, can_reject=pending)
