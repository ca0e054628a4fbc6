"""
Read-through copies of backend resources.

Each entity is built from a backend JSON object via ``from_dict``. Optional
keys may be missing, ids are always strings, and unknown enum values fall back
to the enum's default rather than failing the whole page.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TypeVar

E = TypeVar("E", bound=Enum)


class ProgramType(str, Enum):
    UNIVERSITY = "UNIVERSITY"
    NGO = "NGO"


class ItemStatus(str, Enum):
    PENDING = "PENDING"
    DONE = "DONE"


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RecipientType(str, Enum):
    UNIVERSITY = "UNIVERSITY"
    NGO = "NGO"


class SenderType(str, Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


def coerce_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """Return ``enum_cls(value)`` (case-insensitive), or ``default`` if unknown."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value or "").strip().upper())
    except ValueError:
        return default


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _opt_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_fraction(value: Any) -> float:
    """Progress as a float in [0, 1]; garbage becomes 0."""
    try:
        fraction = float(value)
    except (TypeError, ValueError):
        return 0.0
    if fraction != fraction:  # NaN
        return 0.0
    return max(0.0, min(1.0, fraction))


@dataclass(frozen=True)
class Institution:
    id: str
    name: str
    country: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Institution:
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            country=_opt_str(data.get("country")),
            website=_opt_str(data.get("website")),
        )


@dataclass(frozen=True)
class Program:
    id: str
    institution_id: str
    name: str
    term_label: str = ""
    term_start_date: Optional[str] = None
    program_type: ProgramType = ProgramType.UNIVERSITY

    @classmethod
    def from_dict(cls, data: dict) -> Program:
        return cls(
            id=_str(data.get("id")),
            institution_id=_str(data.get("institution_id")),
            name=_str(data.get("name")),
            term_label=_str(data.get("term_label")),
            term_start_date=_opt_str(data.get("term_start_date")),
            program_type=coerce_enum(ProgramType, data.get("program_type"), ProgramType.UNIVERSITY),
        )

    @property
    def label(self) -> str:
        return f"{self.name} ({self.term_label})" if self.term_label else self.name


@dataclass(frozen=True)
class Student:
    id: str
    program_id: str
    full_name: str
    personal_email: str = ""
    status: str = ""
    risk_level: str = ""
    progress_fraction: float = 0.0
    institution_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Student:
        return cls(
            id=_str(data.get("id")),
            program_id=_str(data.get("program_id")),
            full_name=_str(data.get("full_name")),
            personal_email=_str(data.get("personal_email")),
            status=_str(data.get("status")),
            risk_level=_str(data.get("risk_level")).upper(),
            progress_fraction=clamp_fraction(data.get("progress_fraction")),
            institution_id=_opt_str(data.get("institution_id")),
        )


@dataclass(frozen=True)
class ChecklistStep:
    id: str
    program_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_required: bool = True
    sort_order: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> ChecklistStep:
        return cls(
            id=_str(data.get("id")),
            program_id=_str(data.get("program_id")),
            title=_str(data.get("title")),
            description=_opt_str(data.get("description")),
            category=_opt_str(data.get("category")),
            is_required=bool(data.get("is_required", True)),
            sort_order=_int(data.get("sort_order")),
        )


@dataclass(frozen=True)
class StudentChecklistItem:
    """One student's instance of a checklist step."""

    checklist_step_id: str
    title: str
    status: ItemStatus = ItemStatus.PENDING
    description: Optional[str] = None
    category: Optional[str] = None
    is_required: bool = True
    sort_order: int = 0
    completed_at: Optional[str] = None
    requires_document: bool = False
    has_document: bool = False
    review_status: Optional[ReviewStatus] = None

    @classmethod
    def from_dict(cls, data: dict) -> StudentChecklistItem:
        raw_review = data.get("review_status")
        return cls(
            checklist_step_id=_str(data.get("checklist_step_id")),
            title=_str(data.get("title")),
            status=coerce_enum(ItemStatus, data.get("status"), ItemStatus.PENDING),
            description=_opt_str(data.get("description")),
            category=_opt_str(data.get("category")),
            is_required=bool(data.get("is_required", True)),
            sort_order=_int(data.get("sort_order")),
            completed_at=_opt_str(data.get("completed_at")),
            requires_document=bool(data.get("requires_document", False)),
            has_document=bool(data.get("has_document", False)),
            review_status=(
                coerce_enum(ReviewStatus, raw_review, ReviewStatus.PENDING) if raw_review else None
            ),
        )

    @property
    def is_done(self) -> bool:
        return self.status is ItemStatus.DONE


@dataclass(frozen=True)
class StudentDocument:
    id: str
    file_name: str
    public_url: str = ""
    reviewed_status: ReviewStatus = ReviewStatus.PENDING
    reviewer_notes: Optional[str] = None
    uploaded_at: Optional[str] = None
    step_title: Optional[str] = None
    step_category: Optional[str] = None
    checklist_step_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> StudentDocument:
        return cls(
            id=_str(data.get("id")),
            file_name=_str(data.get("file_name")),
            public_url=_str(data.get("public_url")),
            reviewed_status=coerce_enum(ReviewStatus, data.get("reviewed_status"), ReviewStatus.PENDING),
            reviewer_notes=_opt_str(data.get("reviewer_notes")),
            uploaded_at=_opt_str(data.get("uploaded_at")),
            step_title=_opt_str(data.get("step_title")),
            step_category=_opt_str(data.get("step_category")),
            checklist_step_id=_opt_str(data.get("checklist_step_id")),
        )


@dataclass(frozen=True)
class StudentRequest:
    id: str
    student_id: str
    request_type: str
    description: str = ""
    status: RequestStatus = RequestStatus.PENDING
    admin_notes: Optional[str] = None
    recipient_type: RecipientType = RecipientType.UNIVERSITY
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> StudentRequest:
        return cls(
            id=_str(data.get("id")),
            student_id=_str(data.get("student_id")),
            request_type=_str(data.get("request_type")),
            description=_str(data.get("description")),
            status=coerce_enum(RequestStatus, data.get("status"), RequestStatus.PENDING),
            admin_notes=_opt_str(data.get("admin_notes")),
            recipient_type=coerce_enum(RecipientType, data.get("recipient_type"), RecipientType.UNIVERSITY),
            created_at=_opt_str(data.get("created_at")),
        )


@dataclass(frozen=True)
class Conversation:
    id: str
    student_id: str
    program_id: Optional[str] = None
    subject: Optional[str] = None
    last_message_at: Optional[str] = None
    unread_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> Conversation:
        return cls(
            id=_str(data.get("id")),
            student_id=_str(data.get("student_id")),
            program_id=_opt_str(data.get("program_id")),
            subject=_opt_str(data.get("subject")),
            last_message_at=_opt_str(data.get("last_message_at")),
            unread_count=_int(data.get("unread_count")),
        )


@dataclass(frozen=True)
class Message:
    id: str
    conversation_id: str
    sender_type: SenderType
    content: str
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None
    is_read: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        return cls(
            id=_str(data.get("id")),
            conversation_id=_str(data.get("conversation_id")),
            sender_type=coerce_enum(SenderType, data.get("sender_type"), SenderType.ADMIN),
            content=_str(data.get("content")),
            sender_id=_opt_str(data.get("sender_id")),
            sender_name=_opt_str(data.get("sender_name")),
            is_read=bool(data.get("is_read", False)),
            created_at=_opt_str(data.get("created_at")),
        )
