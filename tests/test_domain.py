"""
Tests for arrival.domain (building entities from backend JSON).
"""

import pytest

from arrival.domain import (
    ItemStatus,
    Message,
    Program,
    ProgramType,
    ReviewStatus,
    SenderType,
    Student,
    StudentChecklistItem,
    StudentDocument,
    StudentRequest,
    clamp_fraction,
    coerce_enum,
)


class TestCoercion:
    def test_coerce_enum_case_insensitive(self):
        assert coerce_enum(ProgramType, "ngo", ProgramType.UNIVERSITY) is ProgramType.NGO

    def test_coerce_enum_unknown_falls_back(self):
        assert coerce_enum(ReviewStatus, "LOST", ReviewStatus.PENDING) is ReviewStatus.PENDING
        assert coerce_enum(ReviewStatus, None, ReviewStatus.PENDING) is ReviewStatus.PENDING

    @pytest.mark.parametrize(
        "raw, expected",
        [(0.25, 0.25), ("0.5", 0.5), (-1, 0.0), (3, 1.0), (None, 0.0), ("abc", 0.0), (float("nan"), 0.0)],
    )
    def test_clamp_fraction(self, raw, expected):
        assert clamp_fraction(raw) == expected


class TestEntities:
    def test_program_label_without_term(self):
        program = Program.from_dict({"id": 7, "institution_id": 1, "name": "Exchange"})
        assert program.id == "7"
        assert program.label == "Exchange"
        assert program.program_type is ProgramType.UNIVERSITY

    def test_student_defaults(self):
        student = Student.from_dict({"id": "s", "program_id": "p", "full_name": "Jane"})
        assert student.personal_email == ""
        assert student.risk_level == ""
        assert student.progress_fraction == 0.0

    def test_checklist_item_without_review(self):
        item = StudentChecklistItem.from_dict({"checklist_step_id": "s1", "title": "Passport", "status": "done"})
        assert item.is_done
        assert item.status is ItemStatus.DONE
        assert item.review_status is None
        assert item.requires_document is False

    def test_checklist_item_with_review(self):
        item = StudentChecklistItem.from_dict(
            {"checklist_step_id": "s1", "title": "Passport", "has_document": True, "review_status": "REJECTED"}
        )
        assert item.review_status is ReviewStatus.REJECTED

    def test_document(self):
        doc = StudentDocument.from_dict({"id": "d", "file_name": "a.pdf", "reviewer_notes": ""})
        assert doc.reviewed_status is ReviewStatus.PENDING
        assert doc.reviewer_notes is None

    def test_request(self):
        req = StudentRequest.from_dict({"id": "r", "student_id": "s", "request_type": "Visa", "recipient_type": "NGO"})
        assert req.recipient_type.value == "NGO"
        assert req.status.value == "PENDING"

    def test_message(self):
        msg = Message.from_dict({"id": "m", "conversation_id": "c", "sender_type": "student", "content": "Hi"})
        assert msg.sender_type is SenderType.STUDENT
        assert msg.is_read is False
