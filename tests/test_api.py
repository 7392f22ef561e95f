"""HTTP surface tests through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from examprep.main import app
from examprep.services import gemini_service
from tests.helpers.samples import png_bytes


@pytest.fixture
def client(monkeypatch):
    async def no_diagram(prompt):
        return None

    monkeypatch.setattr(gemini_service, "_call_image_model", no_diagram)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fake_model(monkeypatch, quiz_json):
    async def call(request):
        return quiz_json

    monkeypatch.setattr(gemini_service, "_call_gemini", call)


def _upload_png(client):
    return client.post("/api/v1/upload", files={"file": ("notes.png", png_bytes(), "image/png")})


class TestSystem:
    def test_page(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Exam Prep Gen" in response.text

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "operational"

    def test_options(self, client):
        body = client.get("/api/v1/options").json()
        assert len(body["academic_levels"]) == 12
        assert "GCE A/L" in body["academic_levels"]
        assert body["languages"] == ["English", "Sinhala"]

    def test_initial_state(self, client):
        body = client.get("/api/v1/state").json()
        assert body["academic_level"] == "GCE O/L"
        assert body["language"] == "English"
        assert body["quiz"] is None
        assert body["material"] is None


class TestSetup:
    def test_upload_and_clear(self, client):
        body = _upload_png(client).json()
        assert body["material"]["kind"] == "image"
        assert body["material"]["filename"] == "notes.png"

        assert client.delete("/api/v1/upload").json()["material"] is None

    def test_empty_upload(self, client):
        response = client.post("/api/v1/upload", files={"file": ("empty.pdf", b"", "application/pdf")})
        assert response.status_code == 400
        assert response.json()["status"] == "error"

    def test_config(self, client):
        body = client.put(
            "/api/v1/config",
            json={"academic_level": "Grade 4", "language": "Sinhala", "focus_topics": "Fractions"},
        ).json()
        assert (body["academic_level"], body["language"], body["focus_topics"]) == ("Grade 4", "Sinhala", "Fractions")

    def test_invalid_level(self, client):
        response = client.put("/api/v1/config", json={"academic_level": "Grade 42"})
        assert response.status_code == 422

    def test_generate_without_upload(self, client):
        response = client.post("/api/v1/generate")
        assert response.status_code == 400
        assert response.json()["message"] == "Please upload a study material first."
        assert client.get("/api/v1/state").json()["error"] == "Please upload a study material first."


class TestQuizFlow:
    def test_full_flow(self, client, fake_model):
        _upload_png(client)
        body = client.post("/api/v1/generate").json()
        assert body["quiz"]["title"] == "Algebra Basics"
        assert len(body["quiz"]["questions"]) == 4
        assert body["quiz"]["questions"][0]["correct_index"] is None

        for question_id, option in ((1, 1), (2, 0), (3, 0), (4, 0)):
            response = client.put(f"/api/v1/answers/{question_id}", json={"option_index": option})
            assert response.status_code == 200
        assert response.json()["can_reveal"] is True

        body = client.post("/api/v1/reveal").json()
        assert body["score"] == {"correct": 3, "total": 4, "percentage": 75}
        assert body["results_revealed"] is True

        response = client.get("/api/v1/export", params={"include_answers": "true"})
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="Algebra_Basics_Answers.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

        body = client.post("/api/v1/retry").json()
        assert body["answers"] == {}
        assert body["quiz"]["title"] == "Algebra Basics"

        body = client.post("/api/v1/reset").json()
        assert body["quiz"] is None
        assert body["material"] is None

    def test_early_reveal_is_rejected(self, client, fake_model):
        _upload_png(client)
        client.post("/api/v1/generate")
        client.put("/api/v1/answers/1", json={"option_index": 0})

        response = client.post("/api/v1/reveal")
        assert response.status_code == 409
        assert response.json()["message"] == "Answer every question before submitting."

    def test_bad_answers(self, client, fake_model):
        _upload_png(client)
        client.post("/api/v1/generate")

        assert client.put("/api/v1/answers/1", json={"option_index": 9}).status_code == 409
        assert client.put("/api/v1/answers/77", json={"option_index": 0}).status_code == 409
        assert client.put("/api/v1/answers/1", json={"option_index": -1}).status_code == 422

    def test_generation_failure(self, client, monkeypatch):
        async def broken(request):
            raise RuntimeError("API key not valid")

        monkeypatch.setattr(gemini_service, "_call_gemini", broken)
        _upload_png(client)

        response = client.post("/api/v1/generate")
        assert response.status_code == 502
        assert "API key not valid" in response.json()["detail"]

        state = client.get("/api/v1/state").json()
        assert state["is_loading"] is False
        assert state["error"] == "Failed to generate quiz. Please check your API key and try again."

    def test_export_without_quiz(self, client):
        response = client.get("/api/v1/export")
        assert response.status_code == 409
