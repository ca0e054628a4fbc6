"""
Tests for arrival.checklist (document review gate).
"""

import pytest

from arrival.checklist import (
    DocumentState,
    can_mark_done,
    can_transition,
    can_upload,
    completion_block_reason,
    document_actions,
    document_state,
    ensure_can_mark_done,
)
from arrival.domain import ItemStatus, ReviewStatus, StudentChecklistItem, StudentDocument
from arrival.exceptions import ChecklistGateError


def _item(**overrides) -> StudentChecklistItem:
    values = {"checklist_step_id": "step-1", "title": "Upload passport"}
    values.update(overrides)
    return StudentChecklistItem(**values)


class TestDocumentState:
    def test_no_document(self):
        assert document_state(_item(requires_document=True)) is DocumentState.NO_DOCUMENT

    def test_uploaded_without_review_is_pending(self):
        item = _item(requires_document=True, has_document=True)
        assert document_state(item) is DocumentState.PENDING_REVIEW

    @pytest.mark.parametrize(
        "review, expected",
        [
            (ReviewStatus.PENDING, DocumentState.PENDING_REVIEW),
            (ReviewStatus.APPROVED, DocumentState.APPROVED),
            (ReviewStatus.REJECTED, DocumentState.REJECTED),
        ],
    )
    def test_review_status(self, review, expected):
        item = _item(requires_document=True, has_document=True, review_status=review)
        assert document_state(item) is expected

    def test_transitions(self):
        assert can_transition(DocumentState.NO_DOCUMENT, DocumentState.PENDING_REVIEW)
        assert can_transition(DocumentState.REJECTED, DocumentState.PENDING_REVIEW)
        assert not can_transition(DocumentState.APPROVED, DocumentState.PENDING_REVIEW)
        assert not can_transition(DocumentState.NO_DOCUMENT, DocumentState.APPROVED)


class TestCompletionGate:
    def test_plain_step_can_be_done(self):
        assert can_mark_done(_item())

    def test_done_step_cannot_be_done_again(self):
        assert not can_mark_done(_item(status=ItemStatus.DONE))

    def test_document_required_but_missing(self):
        item = _item(requires_document=True)
        assert "Upload the required document" in completion_block_reason(item)

    def test_document_rejected(self):
        item = _item(requires_document=True, has_document=True, review_status=ReviewStatus.REJECTED)
        assert not can_mark_done(item)
        assert "rejected" in completion_block_reason(item)

    def test_document_pending(self):
        item = _item(requires_document=True, has_document=True, review_status=ReviewStatus.PENDING)
        assert completion_block_reason(item) == "Your document is waiting for review."

    def test_document_approved(self):
        item = _item(requires_document=True, has_document=True, review_status=ReviewStatus.APPROVED)
        assert can_mark_done(item)

    def test_ensure_raises_gate_error(self):
        with pytest.raises(ChecklistGateError) as exc_info:
            ensure_can_mark_done(_item(requires_document=True))
        assert exc_info.value.checklist_step_id == "step-1"
        assert exc_info.value.field == "checklist_step_id"


class TestUploadGate:
    def test_upload_open_before_first_document(self):
        assert can_upload(_item(requires_document=True))

    def test_upload_open_after_rejection(self):
        assert can_upload(_item(requires_document=True, has_document=True, review_status=ReviewStatus.REJECTED))

    def test_upload_closed_while_pending_or_approved(self):
        assert not can_upload(_item(requires_document=True, has_document=True))
        assert not can_upload(_item(requires_document=True, has_document=True, review_status=ReviewStatus.APPROVED))

    def test_upload_closed_when_done(self):
        assert not can_upload(_item(requires_document=True, status=ItemStatus.DONE))


class TestDocumentActions:
    @pytest.mark.parametrize(
        "status, enabled",
        [(ReviewStatus.PENDING, True), (ReviewStatus.APPROVED, False), (ReviewStatus.REJECTED, False)],
    )
    def test_review_buttons(self, status, enabled):
        actions = document_actions(StudentDocument(id="d", file_name="f.pdf", reviewed_status=status))
        assert actions.can_approve is enabled
        assert actions.can_reject is enabled
