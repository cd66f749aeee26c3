import asyncio
import json

import httpx

from conftest import API_BASE, FakeBackend
from core.services.leads_service import (
    LeadsService,
    build_job_application,
    build_lead_payload,
    normalize_form_data,
)


def test_normalize_form_data_maps_legacy_fields():
    normalized = normalize_form_data(
        {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "contact": " +34 600 ",
            "email": " ada@example.com ",
            "interests": ["ERP ", "CRM"],
        }
    )

    assert normalized == {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+34 600",
        "company": "",
        "role": "",
        "interestedIn": ["ERP", "CRM"],
        "message": "",
    }


def test_normalize_form_data_prefers_explicit_name_and_phone():
    normalized = normalize_form_data({"name": " Grace ", "phone": "1", "contact": "2", "interests": "ERP"})

    assert normalized["name"] == "Grace"
    assert normalized["phone"] == "1"
    assert normalized["interestedIn"] == []


def test_build_lead_payload_tags_source_and_merges_metadata():
    payload = build_lead_payload(
        {"name": "Ada", "email": "a@b.c", "phone": "1", "interestedIn": ["ERP"], "metadata": {"page": "/demo"}}
    )

    assert payload["source"] == "demo"
    assert payload["status"] == "new"
    assert payload["interests"] == ["ERP"]
    assert payload["company"] == ""
    assert payload["metadata"] == {"source": "demo-form", "page": "/demo"}


def test_build_job_application_derives_full_name_and_drops_nulls():
    application = build_job_application({"firstName": "Ada", "lastName": None, "position": "Dev", "notes": None})

    assert application == {"firstName": "Ada", "fullName": "Ada", "position": "Dev"}


def test_fetch_submissions_unwraps_list(make_client):
    backend = FakeBackend((200, {"success": True, "submissions": [{"_id": "a"}, {"_id": "b"}]}))
    service = LeadsService(make_client(backend))

    assert asyncio.run(service.fetch_submissions()) == [{"_id": "a"}, {"_id": "b"}]


def test_fetch_submissions_tolerates_unexpected_shape(make_client):
    service = LeadsService(make_client(FakeBackend((200, {"success": True}))))

    assert asyncio.run(service.fetch_submissions()) == []


def test_count_demo_requests(make_client):
    service = LeadsService(make_client(FakeBackend((200, {"count": 12}))))

    assert asyncio.run(service.count_demo_requests()) == 12


def test_delete_submission_encodes_id(make_client):
    backend = FakeBackend((200, {"success": True}))
    service = LeadsService(make_client(backend))

    asyncio.run(service.delete_submission("a/b c"))

    sent = backend.requests[0]
    assert sent.method == "DELETE"
    assert sent.url.raw_path == b"/api/submissions/a%2Fb%20c"


def test_delete_submissions_sends_ids(make_client):
    backend = FakeBackend((200, {"success": True, "deletedCount": 2}))
    service = LeadsService(make_client(backend))

    asyncio.run(service.delete_submissions(iter(["a", "b"])))

    sent = backend.requests[0]
    assert str(sent.url) == f"{API_BASE}/api/submissions/bulk-delete"
    assert json.loads(sent.content) == {"ids": ["a", "b"]}


def test_submit_contact_posts_normalized_payload(make_client):
    backend = FakeBackend((201, {"success": True}))
    service = LeadsService(make_client(backend))

    asyncio.run(service.submit_contact({"firstName": "Ada", "lastName": "L", "email": "a@b.c"}))

    body = json.loads(backend.requests[0].content)
    assert body["name"] == "Ada L"
    assert str(backend.requests[0].url) == f"{API_BASE}/api/submit"


def test_job_application_with_resume_is_multipart(make_client, tmp_path):
    resume = tmp_path / "cv.pdf"
    resume.write_bytes(b"%PDF-1.4 fake")
    backend = FakeBackend((201, {"success": True}))
    service = LeadsService(make_client(backend))

    asyncio.run(service.submit_job_application({"fullName": "Ada", "skills": ["py", "go"]}, resume))

    sent = backend.requests[0]
    assert sent.headers["Content-Type"].startswith("multipart/form-data; boundary=")
    body = sent.content
    assert b'name="resume"; filename="cv.pdf"' in body
    assert b"%PDF-1.4 fake" in body
    assert b"py,go" in body


def test_job_application_without_resume_is_json(make_client):
    backend = FakeBackend((201, {"success": True}))
    service = LeadsService(make_client(backend))

    asyncio.run(service.submit_job_application({"firstName": "Ada", "lastName": "L"}))

    sent = backend.requests[0]
    assert sent.headers["Content-Type"] == "application/json"
    assert json.loads(sent.content)["fullName"] == "Ada L"


def test_ping_backend_reports_failure_after_single_attempt(make_client):
    backend = FakeBackend(httpx.ConnectError("cold start"))
    service = LeadsService(make_client(backend))

    assert asyncio.run(service.ping_backend()) is False
    assert backend.calls == 1


def test_ping_backend_success(make_client):
    service = LeadsService(make_client(FakeBackend((200, {"status": "ok"}))))

    assert asyncio.run(service.ping_backend()) is True
