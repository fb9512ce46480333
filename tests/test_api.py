import pytest
from httpx import ASGITransport, AsyncClient

from docinsight.analysis.orchestrator import AnalysisOrchestrator
from docinsight.analysis.service import get_orchestrator
from docinsight.config import get_settings
from docinsight.documents.store import InMemoryDocumentStore, get_document_store
from docinsight.exceptions import PersistenceError
from docinsight.main import create_application


class FailingStore(InMemoryDocumentStore):
    async def upsert(self, record):
        raise PersistenceError("database offline")


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def providers(make_provider, valid_answer):
    return {
        "primary": make_provider("primary", "garbage"),
        "secondary": make_provider("secondary", valid_answer),
    }


@pytest.fixture
def test_app(both_config, providers, store):
    app = create_application()
    orchestrator = AnalysisOrchestrator(both_config, providers)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_document_store] = lambda: store
    return app


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


ANALYZE_BODY = {
    "fileId": "file-1",
    "content": "Quarterly revenue report body",
    "fileName": "q3.pdf",
    "mimeType": "application/pdf",
}


@pytest.mark.anyio
async def test_analyze_document_returns_analysis_and_stores_record(test_app, providers, store):
    async with _client(test_app) as client:
        response = await client.post("/v1/analyze-document", json=ANALYZE_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "warning" not in body
    analysis = body["analysis"]
    assert analysis["provenance"] == "primary_fallback_to_secondary"
    assert analysis["document_type"] == "financial"
    assert analysis["confidence_level"] == "high"
    assert {"summary", "key_points", "topics", "metadata"} <= set(analysis)
    assert providers["primary"].calls == 1
    assert providers["secondary"].calls == 1

    record = await store.get("file-1")
    assert record is not None
    assert record.summary == analysis["summary"]
    assert record.provenance == "primary_fallback_to_secondary"
    assert record.size == len(ANALYZE_BODY["content"])


@pytest.mark.anyio
async def test_analyze_accepts_document_id_and_empty_content(test_app):
    payload = {"documentId": "d-2", "content": "", "fileName": "empty.txt", "mimeType": "text/plain"}
    async with _client(test_app) as client:
        response = await client.post("/v1/analyze-document", json=payload)
    assert response.status_code == 200
    assert response.json()["success"] is True


@pytest.mark.anyio
async def test_analyze_ignores_extra_and_duplicate_id_keys(test_app, store):
    payload = {**ANALYZE_BODY, "documentId": "file-1", "userId": "user-9"}
    async with _client(test_app) as client:
        response = await client.post("/v1/analyze-document", json=payload)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert await store.get("file-1") is not None


@pytest.mark.anyio
async def test_analyze_missing_fields_is_reported(test_app, providers):
    async with _client(test_app) as client:
        response = await client.post("/v1/analyze-document", json={"fileName": "x.txt"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Missing required fields")
    assert providers["primary"].calls == 0


@pytest.mark.anyio
async def test_analyze_invalid_json_body(test_app):
    async with _client(test_app) as client:
        response = await client.post(
            "/v1/analyze-document",
            content="not valid json",
            headers={"Content-Type": "application/json"},
        )
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.anyio
async def test_analyze_payload_too_large(test_app):
    settings = get_settings()
    original_limit = settings.max_payload_bytes
    settings.max_payload_bytes = 10
    try:
        async with _client(test_app) as client:
            response = await client.post("/v1/analyze-document", json=ANALYZE_BODY)
        assert response.status_code == 413
        assert response.json()["success"] is False
    finally:
        settings.max_payload_bytes = original_limit


@pytest.mark.anyio
async def test_persistence_failure_is_a_warning(test_app):
    test_app.dependency_overrides[get_document_store] = lambda: FailingStore()
    async with _client(test_app) as client:
        response = await client.post("/v1/analyze-document", json=ANALYZE_BODY)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["warning"] == "Failed to save analysis to database"
    assert body["analysis"]["summary"]


@pytest.mark.anyio
async def test_list_search_get_and_delete_documents(test_app, store):
    async with _client(test_app) as client:
        await client.post("/v1/analyze-document", json=ANALYZE_BODY)
        await client.post(
            "/v1/analyze-document",
            json={**ANALYZE_BODY, "fileId": "file-2", "fileName": "letter.txt"},
        )

        listing = await client.get("/v1/documents", params={"search": "LETTER"})
        assert listing.status_code == 200
        body = listing.json()
        assert body["total"] == 1
        assert body["files"][0]["file_id"] == "file-2"

        paged = await client.get("/v1/documents", params={"limit": 1, "page": 2})
        assert paged.json()["total"] == 2
        assert len(paged.json()["files"]) == 1

        detail = await client.get("/v1/documents/file-1")
        assert detail.status_code == 200
        assert detail.json()["document_type"] == "financial"

        deleted = await client.delete("/v1/documents/file-1")
        assert deleted.status_code == 204

        missing = await client.get("/v1/documents/file-1")
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"

        again = await client.delete("/v1/documents/file-1")
        assert again.status_code == 404


@pytest.mark.anyio
async def test_list_documents_rejects_bad_paging(test_app):
    async with _client(test_app) as client:
        response = await client.get("/v1/documents", params={"limit": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.anyio
async def test_feedback_improves_summary(test_app, providers, store):
    async with _client(test_app) as client:
        await client.post("/v1/analyze-document", json=ANALYZE_BODY)
        providers["primary"].script("A corrected summary.")

        response = await client.post(
            "/v1/feedback",
            json={
                "fileId": "file-1",
                "feedbackType": "summary",
                "correctValue": "It is about Q3 revenue",
                "reason": "too vague",
                "userId": "user-1",
            },
        )

    assert response.status_code == 200
    body = response.json()
    assert body == {
        "success": True,
        "message": "Feedback processed and analysis improved",
        "improved": True,
    }
    record = await store.get("file-1")
    assert record.summary == "A corrected summary."
    assert record.confidence == 1.0
    assert record.metadata["feedback_applied"] is True
    assert len(await store.list_feedback("file-1")) == 1


@pytest.mark.anyio
async def test_feedback_for_unknown_file(test_app):
    async with _client(test_app) as client:
        response = await client.post(
            "/v1/feedback",
            json={"fileId": "nope", "feedbackType": "summary", "userId": "user-1"},
        )
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "File not found"}


@pytest.mark.anyio
async def test_feedback_missing_fields(test_app):
    async with _client(test_app) as client:
        response = await client.post("/v1/feedback", json={"fileId": "file-1"})
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.anyio
async def test_metrics_endpoint(test_app):
    async with _client(test_app) as client:
        await client.post("/v1/analyze-document", json=ANALYZE_BODY)
        response = await client.get("/v1/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["total_files"] == 1
    assert body["uploads_today"] == 1
    assert body["success_rate"] == 100.0
    assert body["documents_by_type"] == {"financial": 1}
    assert body["analyses_by_provenance"] == {"primary_fallback_to_secondary": 1}
    assert body["feedback_count"] == 0
    assert body["processing_queue"] == 0


@pytest.mark.anyio
async def test_healthz_endpoint(test_app):
    async with _client(test_app) as client:
        response = await client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"]
    assert set(body["providers"]) == {"primary", "secondary"}
    assert body["preferred_provider"] in {"primary", "secondary"}
