"""
Pytest configuration and shared fixtures for arrival console tests.

Nothing here talks to a network: ``FakeSession`` stands in for
``requests.Session`` and answers from a route table.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlsplit

import pytest
import requests

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

BASE_URL = "http://backend.test"


class FakeResponse:
    """Just enough of ``requests.Response`` for the client."""

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        *,
        content_type: str | None = "application/json",
        text: str | None = None,
    ) -> None:
        self.status_code = status_code
        self._body = body
        self.headers = {"content-type": content_type} if content_type else {}
        if text is not None:
            self.text = text
        else:
            self.text = "" if body is None else json.dumps(body)

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeSession:
    """
    Route table keyed by (method, path).

    A route holds one response (returned every time), a list of responses
    (consumed in order, the last one repeats) or an exception to raise.
    """

    def __init__(self) -> None:
        self.routes: Dict[tuple[str, str], Any] = {}
        self.calls: list[dict[str, Any]] = []

    def route(self, method: str, path: str, *responses: Any) -> "FakeSession":
        self.routes[(method.upper(), path)] = list(responses)
        return self

    def json(self, method: str, path: str, body: Any, status_code: int = 200) -> "FakeSession":
        return self.route(method, path, FakeResponse(status_code, body))

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method.upper() and c["path"] == path]

    def _answer(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        path = urlsplit(url).path
        self.calls.append({"method": method.upper(), "path": path, "url": url, **kwargs})
        queue = self.routes.get((method.upper(), path))
        if queue is None:
            raise AssertionError(f"Unexpected request: {method} {path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        return self._answer(method, url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._answer("GET", url, **kwargs)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep host environment out of the shared settings singleton."""
    from arrival.config import settings

    monkeypatch.setattr(settings, "backend_health_url", "")
    monkeypatch.setattr(settings, "reviewer_name", "Admin")
    monkeypatch.setattr(settings, "messages_page_size", 50)
    monkeypatch.setattr(settings, "request_timeout_seconds", 0.0)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session):
    from arrival.client import BackendClient

    return BackendClient(BASE_URL, session=session)


@pytest.fixture
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("Connection refused")


# =============================================================================
# Sample backend payloads
# =============================================================================


@pytest.fixture
def sample_institutions() -> list[Dict[str, Any]]:
    return [
        {"id": "inst-1", "name": "Acme U", "country": "US", "website": "https://acme.example"},
        {"id": "inst-2", "name": "Globex Institute", "country": "DE"},
    ]


@pytest.fixture
def sample_programs() -> list[Dict[str, Any]]:
    return [
        {
            "id": "prog-1",
            "institution_id": "inst-2",
            "name": "Engineering Exchange",
            "term_label": "Fall 2026",
            "term_start_date": "2026-09-01",
            "program_type": "UNIVERSITY",
        },
        {
            "id": "prog-2",
            "institution_id": "inst-2",
            "name": "Refugee Scholars",
            "term_label": "Spring 2027",
            "term_start_date": "2027-01-15",
            "program_type": "NGO",
        },
    ]


@pytest.fixture
def sample_students() -> list[Dict[str, Any]]:
    return [
        {
            "id": "stu-1",
            "program_id": "prog-1",
            "full_name": "Jane Doe",
            "personal_email": "jane@example.com",
            "status": "ACTIVE",
            "risk_level": "green",
            "progress_fraction": 0.5,
        },
        {
            "id": "stu-2",
            "program_id": "prog-1",
            "full_name": "John Roe",
            "personal_email": "john@example.com",
            "status": "ACTIVE",
            "risk_level": "RED",
            "progress_fraction": 1.7,
        },
    ]


@pytest.fixture
def sample_steps() -> list[Dict[str, Any]]:
    return [
        {
            "id": "step-1",
            "program_id": "prog-1",
            "title": "Upload passport",
            "category": "docs",
            "is_required": True,
            "sort_order": 1,
        },
        {
            "id": "step-2",
            "program_id": "prog-1",
            "title": "Book flight",
            "category": "travel",
            "is_required": False,
            "sort_order": 2,
        },
    ]


@pytest.fixture
def sample_documents() -> list[Dict[str, Any]]:
    return [
        {
            "id": "doc-1",
            "file_name": "passport.pdf",
            "public_url": "https://files.example/passport.pdf",
            "reviewed_status": "PENDING",
            "uploaded_at": "2026-08-01T10:00:00Z",
            "step_title": "Upload passport",
            "step_category": "docs",
            "checklist_step_id": "step-1",
        }
    ]


@pytest.fixture
def sample_requests() -> list[Dict[str, Any]]:
    return [
        {
            "id": "req-1",
            "student_id": "stu-1",
            "request_type": "Housing",
            "description": "Need a room near campus",
            "status": "PENDING",
            "recipient_type": "UNIVERSITY",
        }
    ]


@pytest.fixture
def sample_checklist_items() -> list[Dict[str, Any]]:
    return [
        {
            "checklist_step_id": "step-1",
            "title": "Upload passport",
            "status": "PENDING",
            "requires_document": True,
            "has_document": False,
            "sort_order": 1,
        },
        {
            "checklist_step_id": "step-2",
            "title": "Book flight",
            "status": "PENDING",
            "requires_document": False,
            "sort_order": 2,
        },
        {
            "checklist_step_id": "step-3",
            "title": "Visa appointment",
            "status": "DONE",
            "requires_document": False,
            "sort_order": 3,
        },
    ]


@pytest.fixture
def admin_backend(
    session,
    sample_institutions,
    sample_programs,
    sample_students,
    sample_steps,
    sample_documents,
    sample_requests,
) -> FakeSession:
    """Every read the admin dashboard cascade performs, answered with sample data."""
    session.json("GET", "/api/institutions", sample_institutions)
    session.json("GET", "/api/programs", {"programs": sample_programs})
    session.json("GET", "/api/students", {"students": sample_students})
    session.json("GET", "/api/program-checklist", {"steps": sample_steps})
    session.json("GET", "/api/admin/requests", {"requests": sample_requests})
    session.json("GET", "/api/admin/documents/student/stu-1", {"documents": sample_documents})
    session.json("GET", "/api/admin/documents/student/stu-2", [])
    return session
