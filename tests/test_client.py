"""
Tests for arrival.client.

Covers:
- Collection shape normalization (bare array vs envelope)
- Error detail extraction and the error taxonomy
- Content-type checks
- Request construction for mutations
- Health check
"""

import pytest

from arrival.client import (
    BackendClient,
    error_message_from_response,
    normalize_collection,
    parse_checklist_steps,
    parse_programs,
    parse_students,
)
from arrival.domain import ProgramType, RecipientType, ReviewStatus, SenderType
from arrival.exceptions import (
    BackendConnectionError,
    BackendHTTPError,
    ConfigurationError,
    UnexpectedContentTypeError,
    UnexpectedShapeError,
)

from conftest import BASE_URL, FakeResponse


class TestNormalizeCollection:
    """Tests for bare-array and envelope responses."""

    def test_bare_array(self):
        assert normalize_collection([{"id": 1}], "programs") == [{"id": 1}]

    def test_resource_envelope(self):
        data = {"programs": [{"id": "p"}], "total": 1}
        assert normalize_collection(data, "programs", ("programs",)) == [{"id": "p"}]

    def test_generic_envelope_keys(self):
        assert normalize_collection({"items": [{"id": "a"}]}, "students") == [{"id": "a"}]
        assert normalize_collection({"data": [{"id": "b"}]}, "students") == [{"id": "b"}]

    def test_empty_array_is_valid(self):
        assert normalize_collection([], "students") == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"programs": "nope"},
            {"unexpected": []},
            "a string",
            None,
            42,
            [1, 2, 3],
        ],
    )
    def test_other_shapes_raise(self, payload):
        with pytest.raises(UnexpectedShapeError) as exc_info:
            normalize_collection(payload, "programs", ("programs",))
        assert str(exc_info.value) == "Unexpected programs response shape"

    def test_checklist_accepts_steps_or_checklist(self):
        steps = [{"id": "s1", "title": "Passport", "sort_order": 1}]
        assert parse_checklist_steps({"steps": steps})[0].title == "Passport"
        assert parse_checklist_steps({"checklist": steps})[0].title == "Passport"

    def test_parsers_build_domain_objects(self, sample_programs, sample_students):
        programs = parse_programs({"programs": sample_programs})
        assert [p.program_type for p in programs] == [ProgramType.UNIVERSITY, ProgramType.NGO]
        assert programs[0].label == "Engineering Exchange (Fall 2026)"

        students = parse_students(sample_students)
        assert students[0].risk_level == "GREEN"
        assert students[1].progress_fraction == 1.0


class TestErrorMessageFromResponse:
    def test_string_detail(self):
        response = FakeResponse(400, {"detail": "Email already registered"})
        assert error_message_from_response(response, "Bulk add") == "Email already registered"

    def test_validation_detail_list(self):
        response = FakeResponse(
            422,
            {"detail": [{"loc": ["body", "name"], "msg": "field required"}, {"msg": "bad date"}]},
        )
        assert error_message_from_response(response, "Create program") == "field required; bad date"

    def test_no_detail(self):
        assert error_message_from_response(FakeResponse(500, {"error": "x"}), "Load") is None

    def test_non_json_body(self):
        response = FakeResponse(502, None, content_type="text/html", text="<html>Bad gateway</html>")
        assert error_message_from_response(response, "Load") is None


class TestBackendClientInit:
    def test_missing_base_url_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BackendClient("")
        assert exc_info.value.setting_name == "ARRIVAL_API_BASE_URL"

    def test_trailing_slash_stripped(self, session):
        client = BackendClient("http://backend.test/", session=session)
        assert client.base_url == "http://backend.test"

    def test_no_timeout_by_default(self, client):
        assert client.timeout is None


class TestReads:
    def test_list_programs_sends_institution_filter(self, client, session, sample_programs):
        session.json("GET", "/api/programs", {"programs": sample_programs})

        programs = client.list_programs("inst-2")

        assert [p.id for p in programs] == ["prog-1", "prog-2"]
        call = session.calls_to("GET", "/api/programs")[0]
        assert call["params"] == {"institution_id": "inst-2"}
        assert call["url"] == f"{BASE_URL}/api/programs"

    def test_http_error_uses_backend_detail(self, client, session):
        session.json("GET", "/api/students", {"detail": "Program not found"}, status_code=404)

        with pytest.raises(BackendHTTPError) as exc_info:
            client.list_students("missing")

        assert str(exc_info.value) == "Program not found"
        assert exc_info.value.status_code == 404

    def test_http_error_without_detail(self, client, session):
        session.route("GET", "/api/institutions", FakeResponse(500, None, content_type="text/plain", text="boom"))

        with pytest.raises(BackendHTTPError) as exc_info:
            client.list_institutions()

        assert str(exc_info.value) == "Load institutions failed (500)"

    def test_non_json_success_raises_content_type_error(self, client, session):
        session.route(
            "GET",
            "/api/institutions",
            FakeResponse(200, None, content_type="text/html", text="<!doctype html>"),
        )

        with pytest.raises(UnexpectedContentTypeError) as exc_info:
            client.list_institutions()

        assert exc_info.value.message == "Backend did not return JSON for institutions"

    def test_content_type_with_charset_is_json(self, client, session):
        session.route(
            "GET",
            "/api/institutions",
            FakeResponse(200, [{"id": "i", "name": "Acme U"}], content_type="application/json; charset=utf-8"),
        )
        assert client.list_institutions()[0].name == "Acme U"

    def test_connection_error(self, client, session, connection_error):
        session.route("GET", "/api/institutions", connection_error)

        with pytest.raises(BackendConnectionError) as exc_info:
            client.list_institutions()

        assert exc_info.value.message == "Load institutions failed: could not reach the backend"

    def test_admin_requests_filters(self, client, session, sample_requests):
        session.json("GET", "/api/admin/requests", sample_requests)

        client.list_admin_requests(program_id="prog-2", recipient_type=RecipientType.NGO)

        params = session.calls_to("GET", "/api/admin/requests")[0]["params"]
        assert params == {"program_id": "prog-2", "recipient_type": "NGO"}

    def test_list_messages_paging(self, client, session):
        session.json("GET", "/api/conversations/c1/messages", {"messages": []})

        assert client.list_messages("c1", limit=50, offset=0) == []
        assert session.calls[0]["params"] == {"limit": 50, "offset": 0}

    def test_get_conversation_requires_id(self, client, session):
        session.json("GET", "/api/students/stu-1/conversation", {"student_id": "stu-1"})

        with pytest.raises(UnexpectedShapeError):
            client.get_conversation("stu-1")


class TestMutations:
    def test_bulk_add_posts_students_envelope(self, client, session):
        session.json("POST", "/api/students/programs/prog-1/bulk", {"created": 1})
        students = [{"full_name": "Jane", "personal_email": "j@x.com", "target_university": "MIT"}]

        client.bulk_add_students("prog-1", students)

        assert session.calls[0]["json"] == {"students": students}

    def test_review_document_approve(self, client, session):
        session.json("POST", "/api/admin/documents/doc-1/approve", {})

        client.review_document("doc-1", ReviewStatus.APPROVED, reviewer="Admin", reviewer_notes="")

        assert session.calls[0]["json"] == {"reviewer": "Admin", "reviewer_notes": None}

    def test_review_request_reject(self, client, session):
        session.json("POST", "/api/admin/requests/req-1/reject", {})

        client.review_request("req-1", ReviewStatus.REJECTED, admin_notes="Budget closed")

        assert session.calls[0]["json"] == {"admin_notes": "Budget closed"}

    def test_upload_is_multipart(self, client, session):
        session.json("POST", "/api/student-documents/upload", {"id": "doc-9"})

        client.upload_document("stu-1", "step-1", file_name="p.pdf", content=b"%PDF", content_type="application/pdf")

        call = session.calls[0]
        assert call["data"] == {"student_id": "stu-1", "checklist_step_id": "step-1"}
        assert call["files"] == {"file": ("p.pdf", b"%PDF", "application/pdf")}
        assert call["json"] is None

    def test_mark_read_uses_query_param(self, client, session):
        session.json("POST", "/api/conversations/c1/mark-read", {})

        client.mark_read("c1", SenderType.ADMIN)

        assert session.calls[0]["params"] == {"reader_type": "ADMIN"}

    def test_mutation_http_error_detail(self, client, session):
        session.json("POST", "/api/programs", {"detail": "Duplicate program"}, status_code=409)

        with pytest.raises(BackendHTTPError, match="Duplicate program"):
            client.create_program(
                institution_id="inst-1",
                name="X",
                term_label="Fall",
                term_start_date="2026-09-01",
                program_type="UNIVERSITY",
            )


class TestHealth:
    def test_default_target(self, client, session):
        session.json("GET", "/api/health", {"status": "ok"})

        assert client.check_health() == {"status": "ok"}
        call = session.calls[0]
        assert call["url"] == f"{BASE_URL}/api/health"
        assert call["headers"] == {"Cache-Control": "no-store"}

    def test_non_2xx(self, client, session):
        session.json("GET", "/api/health", {"status": "down"}, status_code=503)

        with pytest.raises(BackendHTTPError) as exc_info:
            client.check_health()
        assert exc_info.value.status_code == 503

    def test_non_dict_body_is_wrapped(self, client, session):
        session.json("GET", "/api/health", "ok")
        assert client.check_health() == {"status": "ok"}

    def test_explicit_base_url_wins_over_configured_health_url(self, client, session, monkeypatch):
        from arrival.config import settings

        monkeypatch.setattr(settings, "backend_health_url", "https://other.example.com/api/health")
        session.json("GET", "/api/health", {"status": "ok"})

        client.check_health()

        assert session.calls[0]["url"] == f"{BASE_URL}/api/health"

    def test_explicit_url_argument(self, client, session):
        session.json("GET", "/ping", {"status": "ok"})

        client.check_health(f"{BASE_URL}/ping")

        assert session.calls[0]["url"] == f"{BASE_URL}/ping"
