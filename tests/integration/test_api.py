"""Integration tests for the tenderDraft REST API.

Runs the real application (SQLite store, local object store, extraction,
retrieval) against temporary files.  ``TestClient`` is used as a context
manager so the lifespan handler builds and initializes the services.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from tenderdraft.config.settings import Settings
from tenderdraft.main import create_app
from tenderdraft.services.answer_drafter import AnswerDrafter
from tests.conftest import make_sentence_text

API = "/api/v1"


@pytest.fixture
def client(test_settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


def _create_corpus(client: TestClient, name: str = "Reference answers") -> str:
    response = client.post(f"{API}/corpus", json={"name": name, "description": "Past bids"})
    assert response.status_code == 201
    return response.json()["id"]


def _upload(client: TestClient, corpus_id: str, name: str, content: bytes, content_type: str = "text/plain"):
    return client.post(
        f"{API}/corpus/{corpus_id}/documents",
        files={"file": (name, content, content_type)},
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_reports_providers(self, client: TestClient) -> None:
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["providers"]["corpus_store"] == "sqlite"
        assert body["providers"]["object_store"] == "local"
        assert body["providers"]["llm"] is None


# ---------------------------------------------------------------------------
# Corpus CRUD
# ---------------------------------------------------------------------------


class TestCorpusCrud:
    def test_create_get_update_delete(self, client: TestClient) -> None:
        corpus_id = _create_corpus(client)

        fetched = client.get(f"{API}/corpus/{corpus_id}").json()
        assert fetched["name"] == "Reference answers"
        assert fetched["org_id"] == "org-test"
        assert fetched["documents"] == []

        patched = client.patch(f"{API}/corpus/{corpus_id}", json={"name": "Renamed"})
        assert patched.status_code == 200
        assert patched.json()["name"] == "Renamed"
        assert patched.json()["description"] == "Past bids"

        assert client.delete(f"{API}/corpus/{corpus_id}").status_code == 204
        assert client.get(f"{API}/corpus/{corpus_id}").status_code == 404

    def test_list_newest_first(self, client: TestClient) -> None:
        first = _create_corpus(client, "First")
        second = _create_corpus(client, "Second")

        corpora = client.get(f"{API}/corpus").json()["corpora"]

        assert [c["id"] for c in corpora] == [second, first]

    def test_missing_corpus_error_body(self, client: TestClient) -> None:
        response = client.get(f"{API}/corpus/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_empty_name_is_rejected(self, client: TestClient) -> None:
        assert client.post(f"{API}/corpus", json={"name": ""}).status_code == 422


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocumentUpload:
    def test_text_upload_is_chunked(self, client: TestClient) -> None:
        corpus_id = _create_corpus(client)

        response = _upload(client, corpus_id, "capabilities.txt", make_sentence_text(45).encode())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["chunks_produced"] == 3
        assert body["document"]["status"] == "ready"
        assert body["document"]["chunk_count"] == 3
        assert body["document"]["file_url"].startswith("file://")

        chunks = client.get(f"{API}/documents/{body['document']['id']}/chunks").json()["chunks"]
        assert [c["position"] for c in chunks] == [0, 1, 2]

        listed = client.get(f"{API}/corpus/{corpus_id}").json()["documents"]
        assert [d["name"] for d in listed] == ["capabilities.txt"]

    def test_too_short_text_is_error_document(self, client: TestClient) -> None:
        corpus_id = _create_corpus(client)

        body = _upload(client, corpus_id, "tiny.txt", b"hello").json()

        assert body["success"] is False
        assert body["document"]["status"] == "error"
        assert body["document"]["chunk_count"] == 0

    def test_unsupported_type_is_415(self, client: TestClient) -> None:
        corpus_id = _create_corpus(client)
        response = _upload(client, corpus_id, "sheet.xlsx", b"binary", "application/octet-stream")
        assert response.status_code == 415

    def test_unknown_corpus_is_404(self, client: TestClient) -> None:
        assert _upload(client, "missing", "notes.txt", b"Some text here.").status_code == 404

    def test_oversized_upload_is_413(self, test_settings: Settings) -> None:
        small = test_settings.model_copy(update={"max_upload_bytes": 1024})
        with TestClient(create_app(small)) as small_client:
            corpus_id = _create_corpus(small_client)
            response = _upload(small_client, corpus_id, "big.txt", b"x" * 2048)
        assert response.status_code == 413

    def test_delete_document(self, client: TestClient) -> None:
        corpus_id = _create_corpus(client)
        document_id = _upload(client, corpus_id, "notes.txt", b"Some reference text.").json()["document"]["id"]

        assert client.delete(f"{API}/corpus/{corpus_id}/documents/{document_id}").status_code == 204
        assert client.get(f"{API}/documents/{document_id}/chunks").status_code == 404
        assert client.delete(f"{API}/corpus/{corpus_id}/documents/{document_id}").status_code == 404


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestSearch:
    def test_search_returns_ranked_chunks_with_sources(self, client: TestClient) -> None:
        corpus_id = _create_corpus(client)
        _upload(client, corpus_id, "security.txt", b"We encrypt customer data with AES-256 at rest.")
        _upload(client, corpus_id, "hosting.txt", b"Our data centres are located in the EU.")

        response = client.post(
            f"{API}/rag/search",
            json={"query": "We encrypt customer data with AES-256 at rest.", "limit": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["method"] == "vector_search"
        assert body["chunks"][0]["document_name"] == "security.txt"
        assert body["chunks"][0]["similarity"] == pytest.approx(1.0, abs=1e-5)
        assert body["sources"] == ["security.txt", "hosting.txt"]

    def test_organization_without_corpus(self, client: TestClient) -> None:
        body = client.post(f"{API}/rag/search", json={"query": "anything"}).json()
        assert body["chunks"] == []
        assert body["method"] == "none"
        assert body["message"] == "No corpus found"

    def test_limit_out_of_range_is_422(self, client: TestClient) -> None:
        assert client.post(f"{API}/rag/search", json={"query": "x", "limit": 0}).status_code == 422


# ---------------------------------------------------------------------------
# Project links
# ---------------------------------------------------------------------------


class TestProjectLinks:
    def test_link_scopes_search(self, client: TestClient) -> None:
        linked = _create_corpus(client, "Linked")
        other = _create_corpus(client, "Other")
        _upload(client, linked, "linked.txt", b"Linked corpus describes service levels.")
        _upload(client, other, "other.txt", b"Other corpus describes service levels.")

        response = client.post(f"{API}/projects/p1/corpus", json={"corpus_id": linked})
        assert response.status_code == 201
        assert response.json()["corpus_ids"] == [linked]

        body = client.post(
            f"{API}/rag/search",
            json={"query": "service levels", "project_id": "p1"},
        ).json()
        assert body["sources"] == ["linked.txt"]

        assert client.delete(f"{API}/projects/p1/corpus/{linked}").status_code == 204
        assert client.get(f"{API}/projects/p1/corpus").json()["corpus_ids"] == []
        assert client.delete(f"{API}/projects/p1/corpus/{linked}").status_code == 404

    def test_link_unknown_corpus_is_404(self, client: TestClient) -> None:
        assert client.post(f"{API}/projects/p1/corpus", json={"corpus_id": "nope"}).status_code == 404


# ---------------------------------------------------------------------------
# Drafting
# ---------------------------------------------------------------------------


class TestGenerate:
    def test_without_llm_is_500(self, client: TestClient) -> None:
        response = client.post(f"{API}/generate", json={"question": "Describe your team."})
        assert response.status_code == 500
        assert response.json()["error"] == "ConfigurationError"

    def test_draft_uses_corpus(self, client: TestClient, mock_llm_provider) -> None:
        state = client.app.state
        state.answer_drafter = AnswerDrafter(
            state.retrieval_service, mock_llm_provider, projects=state.project_service
        )
        corpus_id = _create_corpus(client)
        _upload(client, corpus_id, "team.txt", b"Our delivery team has twelve certified engineers.")

        response = client.post(
            f"{API}/generate",
            json={"question": "Describe your delivery team.", "project_name": "City portal"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["response"] == "<p>Drafted answer.</p>"
        assert body["sources"] == ["team.txt"]
        assert body["used_rag"] is True

    def test_draft_for_brick_is_saved_on_project(self, client: TestClient, mock_llm_provider) -> None:
        state = client.app.state
        state.answer_drafter = AnswerDrafter(
            state.retrieval_service, mock_llm_provider, projects=state.project_service
        )
        corpus_id = _create_corpus(client)
        _upload(client, corpus_id, "team.txt", b"Our delivery team has twelve certified engineers.")
        project_id = client.post(f"{API}/projects", json={"name": "City portal"}).json()["id"]
        brick = client.post(
            f"{API}/projects/{project_id}/bricks",
            json={"question": "Describe your delivery team."},
        ).json()
        assert brick["status"] == "draft"

        response = client.post(
            f"{API}/generate",
            json={"question": brick["question"], "brick_id": brick["id"]},
        )

        assert response.status_code == 200
        assert response.json()["brick_id"] == brick["id"]
        saved = client.get(f"{API}/projects/{project_id}").json()["bricks"][0]
        assert saved["status"] == "writing"
        assert saved["ai_response_text"] == "<p>Drafted answer.</p>"
        assert saved["ai_sources"] == ["team.txt"]

    def test_draft_for_unknown_brick_is_404(self, client: TestClient, mock_llm_provider) -> None:
        state = client.app.state
        state.answer_drafter = AnswerDrafter(
            state.retrieval_service, mock_llm_provider, projects=state.project_service
        )

        response = client.post(
            f"{API}/generate",
            json={"question": "Describe your team.", "brick_id": "no-such-brick"},
        )

        assert response.status_code == 404
        mock_llm_provider.complete.assert_not_awaited()


# ---------------------------------------------------------------------------
# Projects and bricks
# ---------------------------------------------------------------------------


class TestProjects:
    def test_create_project_and_bricks(self, client: TestClient) -> None:
        created = client.post(
            f"{API}/projects", json={"name": "City portal", "description": "Citizen services."}
        )
        assert created.status_code == 201
        project_id = created.json()["id"]

        first = client.post(f"{API}/projects/{project_id}/bricks", json={"question": "Team?"})
        second = client.post(f"{API}/projects/{project_id}/bricks", json={"question": "Hosting?"})
        assert first.status_code == 201
        assert second.status_code == 201

        body = client.get(f"{API}/projects/{project_id}").json()
        assert body["name"] == "City portal"
        assert [b["question"] for b in body["bricks"]] == ["Team?", "Hosting?"]

    def test_brick_status_update(self, client: TestClient) -> None:
        project_id = client.post(f"{API}/projects", json={"name": "City portal"}).json()["id"]
        brick_id = client.post(
            f"{API}/projects/{project_id}/bricks", json={"question": "Team?"}
        ).json()["id"]

        response = client.patch(f"{API}/bricks/{brick_id}", json={"status": "review"})

        assert response.status_code == 200
        assert response.json()["status"] == "review"

    def test_unknown_status_is_rejected(self, client: TestClient) -> None:
        project_id = client.post(f"{API}/projects", json={"name": "City portal"}).json()["id"]
        brick_id = client.post(
            f"{API}/projects/{project_id}/bricks", json={"question": "Team?"}
        ).json()["id"]

        assert client.patch(f"{API}/bricks/{brick_id}", json={"status": "archived"}).status_code == 422

    def test_unknown_project_and_brick_are_404(self, client: TestClient) -> None:
        assert client.get(f"{API}/projects/nope").status_code == 404
        assert client.post(f"{API}/projects/nope/bricks", json={"question": "Team?"}).status_code == 404
        assert client.patch(f"{API}/bricks/nope", json={"status": "review"}).status_code == 404


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestApiKeyAuth:
    @pytest.fixture
    def keyed_client(self, test_settings: Settings) -> Iterator[TestClient]:
        keyed = test_settings.model_copy(update={"auth_mode": "api_key", "api_key": "s3cret"})
        with TestClient(create_app(keyed)) as test_client:
            yield test_client

    def test_missing_token_is_401(self, keyed_client: TestClient) -> None:
        response = keyed_client.get(f"{API}/corpus")
        assert response.status_code == 401
        assert response.json()["error"] == "AuthenticationError"

    def test_org_header_scopes_corpora(self, keyed_client: TestClient) -> None:
        headers_a = {"Authorization": "Bearer s3cret", "X-Organization-Id": "org-a"}
        headers_b = {"Authorization": "Bearer s3cret", "X-Organization-Id": "org-b"}

        created = keyed_client.post(f"{API}/corpus", json={"name": "A only"}, headers=headers_a)
        assert created.status_code == 201
        corpus_id = created.json()["id"]

        assert len(keyed_client.get(f"{API}/corpus", headers=headers_a).json()["corpora"]) == 1
        assert keyed_client.get(f"{API}/corpus", headers=headers_b).json()["corpora"] == []
        assert keyed_client.get(f"{API}/corpus/{corpus_id}", headers=headers_b).status_code == 404

    def test_search_never_reaches_another_organizations_corpus(self, keyed_client: TestClient) -> None:
        headers_a = {"Authorization": "Bearer s3cret", "X-Organization-Id": "org-a"}
        headers_b = {"Authorization": "Bearer s3cret", "X-Organization-Id": "org-b"}
        corpus_id = keyed_client.post(
            f"{API}/corpus", json={"name": "Pricing"}, headers=headers_a
        ).json()["id"]
        uploaded = keyed_client.post(
            f"{API}/corpus/{corpus_id}/documents",
            files={"file": ("pricing.txt", b"Confidential pricing schedule for client", "text/plain")},
            headers=headers_a,
        )
        assert uploaded.status_code == 201
        query = {"query": "Confidential pricing schedule for client", "corpus_ids": [corpus_id]}

        own = keyed_client.post(f"{API}/rag/search", json=query, headers=headers_a).json()
        foreign = keyed_client.post(f"{API}/rag/search", json=query, headers=headers_b).json()

        assert own["sources"] == ["pricing.txt"]
        assert foreign["chunks"] == []
        assert foreign["message"] == "No corpus found"

    def test_project_links_are_scoped_to_organization(self, keyed_client: TestClient) -> None:
        headers_a = {"Authorization": "Bearer s3cret", "X-Organization-Id": "org-a"}
        headers_b = {"Authorization": "Bearer s3cret", "X-Organization-Id": "org-b"}
        corpus_id = keyed_client.post(
            f"{API}/corpus", json={"name": "Pricing"}, headers=headers_a
        ).json()["id"]
        linked = keyed_client.post(
            f"{API}/projects/p1/corpus", json={"corpus_id": corpus_id}, headers=headers_a
        )
        assert linked.status_code == 201

        listing = keyed_client.get(f"{API}/projects/p1/corpus", headers=headers_b).json()
        assert listing["corpus_ids"] == []
        assert keyed_client.post(
            f"{API}/projects/p1/corpus", json={"corpus_id": corpus_id}, headers=headers_b
        ).status_code == 404
        assert keyed_client.delete(
            f"{API}/projects/p1/corpus/{corpus_id}", headers=headers_b
        ).status_code == 404
        assert keyed_client.get(
            f"{API}/projects/p1/corpus", headers=headers_a
        ).json()["corpus_ids"] == [corpus_id]

    def test_health_is_public(self, keyed_client: TestClient) -> None:
        assert keyed_client.get(f"{API}/health").status_code == 200
