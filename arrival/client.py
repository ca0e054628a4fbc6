"""
HTTP client for the arrival backend.

One method per REST operation. Reads go through a per-resource parser that
accepts either a bare JSON array or an object enveloping the array; anything
else is an ``UnexpectedShapeError``. Mutations return nothing useful on
purpose: callers refetch the owning collection instead of trusting a
mutation's response body.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from typing import Any, Optional, TypeVar

import requests

from arrival.config import settings
from arrival.domain import (
    ChecklistStep,
    Conversation,
    Institution,
    Message,
    Program,
    RecipientType,
    ReviewStatus,
    SenderType,
    Student,
    StudentChecklistItem,
    StudentDocument,
    StudentRequest,
)
from arrival.exceptions import (
    BackendConnectionError,
    BackendHTTPError,
    ConfigurationError,
    UnexpectedContentTypeError,
    UnexpectedShapeError,
)
from arrival.logging_config import PerformanceTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys accepted by every resource in addition to its own envelope key.
GENERIC_ENVELOPE_KEYS = ("items", "data")


# =============================================================================
# Response parsing
# =============================================================================


def normalize_collection(data: Any, resource: str, envelope_keys: Iterable[str] = ()) -> list[dict]:
    """
    Return the list of records in a collection response.

    Accepts ``[...]`` or ``{"<envelope_key>": [...], ...}``.

    Raises:
        UnexpectedShapeError: for any other shape, or a list holding non-objects.
    """
    records: Any = None
    if isinstance(data, list):
        records = data
    elif isinstance(data, dict):
        for key in (*envelope_keys, *GENERIC_ENVELOPE_KEYS):
            if isinstance(data.get(key), list):
                records = data[key]
                break

    if records is None or not all(isinstance(r, dict) for r in records):
        raise UnexpectedShapeError(resource)
    return records


def _collection_parser(
    factory: Callable[[dict], T], resource: str, *envelope_keys: str
) -> Callable[[Any], list[T]]:
    def parse(data: Any) -> list[T]:
        return [factory(record) for record in normalize_collection(data, resource, envelope_keys)]

    parse.__name__ = f"parse_{resource.replace(' ', '_')}"
    parse.__doc__ = f"Parse a {resource} collection response."
    return parse


parse_institutions = _collection_parser(Institution.from_dict, "institutions", "institutions")
parse_programs = _collection_parser(Program.from_dict, "programs", "programs")
parse_students = _collection_parser(Student.from_dict, "students", "students")
parse_checklist_steps = _collection_parser(ChecklistStep.from_dict, "checklist", "steps", "checklist")
parse_student_checklist = _collection_parser(StudentChecklistItem.from_dict, "checklist", "checklist", "steps")
parse_documents = _collection_parser(StudentDocument.from_dict, "documents", "documents")
parse_requests = _collection_parser(StudentRequest.from_dict, "requests", "requests")
parse_messages = _collection_parser(Message.from_dict, "messages", "messages")


def error_message_from_response(response: requests.Response, action: str) -> Optional[str]:
    """
    Pull the backend's ``detail`` out of an error body.

    FastAPI backends send ``{"detail": "..."}`` for handled errors and
    ``{"detail": [{"msg": ...}, ...]}`` for request validation failures.
    Returns None when there is nothing usable, so the caller can fall back to
    the status-coded message.
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if isinstance(detail, str) and detail.strip():
        return detail.strip()
    if isinstance(detail, list):
        messages = [str(item.get("msg")) for item in detail if isinstance(item, dict) and item.get("msg")]
        if messages:
            return "; ".join(messages)
    return None


def _is_json(response: requests.Response) -> bool:
    return "application/json" in (response.headers.get("content-type") or "").lower()


# =============================================================================
# Client
# =============================================================================


class BackendClient:
    """
    Thin wrapper around a ``requests.Session`` bound to the backend base URL.

    No retries, and no timeout unless ``ARRIVAL_REQUEST_TIMEOUT`` is set.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        base = settings.api_base_url if base_url is None else base_url
        if not base:
            raise ConfigurationError("API base URL is not set", setting_name="ARRIVAL_API_BASE_URL")
        self.base_url = base.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = settings.request_timeout if timeout is None else timeout

    def __repr__(self) -> str:
        return f"BackendClient(base_url={self.base_url!r})"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        params: dict | None = None,
        json_body: Any = None,
        data: dict | None = None,
        files: dict | None = None,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            with PerformanceTracker("backend_call", method=method, path=path):
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    data=data,
                    files=files,
                    timeout=self.timeout,
                )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise BackendConnectionError(action, path=path, reason=str(exc)) from exc

        if not response.ok:
            detail = error_message_from_response(response, action)
            logger.warning(
                "%s %s returned %s",
                method,
                path,
                response.status_code,
                extra={"backend_detail": detail},
            )
            raise BackendHTTPError(action, response.status_code, path=path, backend_detail=detail)
        return response

    def _get_json(self, path: str, *, action: str, resource: str, params: dict | None = None) -> Any:
        response = self._request("GET", path, action=action, params=params)
        if not _is_json(response):
            logger.error("%s response is not JSON. Raw body: %s", resource, (response.text or "")[:500])
            raise UnexpectedContentTypeError(
                resource, content_type=response.headers.get("content-type"), path=path
            )
        try:
            return response.json()
        except ValueError as exc:
            raise UnexpectedContentTypeError(resource, content_type="invalid JSON", path=path) from exc

    def _post(self, path: str, *, action: str, **kwargs: Any) -> None:
        self._request("POST", path, action=action, **kwargs)

    # -------------------------------------------------------------------------
    # Institutions / programs / students
    # -------------------------------------------------------------------------

    def list_institutions(self) -> list[Institution]:
        data = self._get_json("/api/institutions", action="Load institutions", resource="institutions")
        return parse_institutions(data)

    def list_programs(self, institution_id: str) -> list[Program]:
        data = self._get_json(
            "/api/programs",
            action="Load programs",
            resource="programs",
            params={"institution_id": institution_id},
        )
        return parse_programs(data)

    def create_program(
        self,
        *,
        institution_id: str,
        name: str,
        term_label: str,
        term_start_date: str,
        program_type: str,
    ) -> None:
        self._post(
            "/api/programs",
            action="Create program",
            json_body={
                "institution_id": institution_id,
                "name": name,
                "term_label": term_label,
                "term_start_date": term_start_date,
                "program_type": program_type,
            },
        )

    def list_students(self, program_id: str) -> list[Student]:
        data = self._get_json(
            "/api/students",
            action="Load students",
            resource="students",
            params={"program_id": program_id},
        )
        return parse_students(data)

    def bulk_add_students(self, program_id: str, students: list[dict]) -> None:
        self._post(
            f"/api/students/programs/{program_id}/bulk",
            action="Bulk add students",
            json_body={"students": students},
        )

    # -------------------------------------------------------------------------
    # Program checklist
    # -------------------------------------------------------------------------

    def list_checklist_steps(self, program_id: str) -> list[ChecklistStep]:
        data = self._get_json(
            "/api/program-checklist",
            action="Load checklist",
            resource="checklist",
            params={"program_id": program_id},
        )
        return parse_checklist_steps(data)

    def create_checklist_step(
        self,
        *,
        program_id: str,
        title: str,
        description: str | None,
        category: str | None,
        is_required: bool,
        sort_order: int,
    ) -> None:
        self._post(
            "/api/program-checklist",
            action="Create step",
            json_body={
                "program_id": program_id,
                "title": title,
                "description": description,
                "category": category,
                "is_required": is_required,
                "sort_order": sort_order,
            },
        )

    def apply_template(self, program_id: str, template: str) -> None:
        self._post(
            f"/api/programs/{program_id}/apply-template",
            action="Apply template",
            json_body={"template": template},
        )

    # -------------------------------------------------------------------------
    # Student checklist & documents
    # -------------------------------------------------------------------------

    def get_student_checklist(self, student_id: str) -> list[StudentChecklistItem]:
        data = self._get_json(
            "/api/student-checklist",
            action="Load checklist",
            resource="checklist",
            params={"student_id": student_id},
        )
        return parse_student_checklist(data)

    def mark_step(self, student_id: str, checklist_step_id: str, status: str = "DONE") -> None:
        self._post(
            "/api/student-checklist/mark",
            action="Update step",
            json_body={
                "student_id": student_id,
                "checklist_step_id": checklist_step_id,
                "status": status,
            },
        )

    def upload_document(
        self,
        student_id: str,
        checklist_step_id: str,
        *,
        file_name: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        self._post(
            "/api/student-documents/upload",
            action="Upload document",
            data={"student_id": student_id, "checklist_step_id": checklist_step_id},
            files={"file": (file_name, content, content_type)},
        )

    def list_student_documents(self, student_id: str) -> list[StudentDocument]:
        data = self._get_json(
            f"/api/admin/documents/student/{student_id}",
            action="Load documents",
            resource="documents",
        )
        return parse_documents(data)

    def review_document(
        self,
        document_id: str,
        decision: ReviewStatus,
        *,
        reviewer: str,
        reviewer_notes: str | None = None,
    ) -> None:
        verb = "approve" if decision is ReviewStatus.APPROVED else "reject"
        self._post(
            f"/api/admin/documents/{document_id}/{verb}",
            action=f"{verb.capitalize()} document",
            json_body={"reviewer": reviewer, "reviewer_notes": reviewer_notes or None},
        )

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def list_admin_requests(
        self,
        *,
        program_id: str | None = None,
        recipient_type: RecipientType | None = None,
    ) -> list[StudentRequest]:
        params = {}
        if program_id:
            params["program_id"] = program_id
        if recipient_type is not None:
            params["recipient_type"] = recipient_type.value
        data = self._get_json(
            "/api/admin/requests",
            action="Load requests",
            resource="requests",
            params=params or None,
        )
        return parse_requests(data)

    def review_request(
        self,
        request_id: str,
        decision: ReviewStatus,
        *,
        admin_notes: str | None = None,
    ) -> None:
        verb = "approve" if decision is ReviewStatus.APPROVED else "reject"
        self._post(
            f"/api/admin/requests/{request_id}/{verb}",
            action=f"{verb.capitalize()} request",
            json_body={"admin_notes": admin_notes or None},
        )

    def submit_request(
        self,
        student_id: str,
        *,
        request_type: str,
        description: str,
        recipient_type: RecipientType,
    ) -> None:
        self._post(
            f"/api/student/{student_id}/request",
            action="Submit request",
            json_body={
                "request_type": request_type,
                "description": description,
                "recipient_type": recipient_type.value,
            },
        )

    def list_student_requests(self, student_id: str) -> list[StudentRequest]:
        data = self._get_json(
            f"/api/student/{student_id}/requests",
            action="Load requests",
            resource="requests",
        )
        return parse_requests(data)

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    def get_conversation(self, student_id: str) -> Conversation:
        """Get the student's conversation, creating it on the backend if needed."""
        data = self._get_json(
            f"/api/students/{student_id}/conversation",
            action="Load conversation",
            resource="conversation",
        )
        if not isinstance(data, dict) or not data.get("id"):
            raise UnexpectedShapeError("conversation")
        return Conversation.from_dict(data)

    def list_messages(self, conversation_id: str, *, limit: int = 50, offset: int = 0) -> list[Message]:
        data = self._get_json(
            f"/api/conversations/{conversation_id}/messages",
            action="Load messages",
            resource="messages",
            params={"limit": limit, "offset": offset},
        )
        return parse_messages(data)

    def send_message(
        self,
        conversation_id: str,
        *,
        sender_type: SenderType,
        sender_id: str,
        content: str,
    ) -> None:
        self._post(
            f"/api/conversations/{conversation_id}/messages",
            action="Send message",
            json_body={"sender_type": sender_type.value, "sender_id": sender_id, "content": content},
        )

    def mark_read(self, conversation_id: str, reader_type: SenderType) -> None:
        self._post(
            f"/api/conversations/{conversation_id}/mark-read",
            action="Mark as read",
            params={"reader_type": reader_type.value},
        )

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    def check_health(self, url: str | None = None) -> dict:
        """GET the backend health endpoint and return its JSON body."""
        target = url or f"{self.base_url}/api/health"
        try:
            response = self.session.get(target, headers={"Cache-Control": "no-store"}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise BackendConnectionError("Health check", path=target, reason=str(exc)) from exc
        if not response.ok:
            raise BackendHTTPError("Health check", response.status_code, path=target)
        try:
            body = response.json()
        except (ValueError, json.JSONDecodeError) as exc:
            raise UnexpectedContentTypeError("health", content_type="invalid JSON", path=target) from exc
        return body if isinstance(body, dict) else {"status": body}
