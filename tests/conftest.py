"""Pytest configuration and shared fixtures."""

import copy
import json
from typing import Any, Dict

import pytest
import pytest_asyncio

from examprep.core.config import settings
from examprep.schemas.quiz import GenerationConfig, ImagePayload, Quiz, UploadedMaterial
from examprep.services.exam_session import ExamSession
from examprep.services.quiz_state import QuizStateCoordinator
from tests.helpers.samples import ALGEBRA_QUIZ, FakeRenderer, pdf_bytes, png_bytes

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """No layout delay and the default provider mode in every test."""
    monkeypatch.setattr(settings, "EXPORT_LAYOUT_DELAY_SECONDS", 0)
    monkeypatch.setattr(settings, "AI_PROVIDER", "hybrid")


@pytest.fixture
def quiz_payload() -> Dict[str, Any]:
    return copy.deepcopy(ALGEBRA_QUIZ)


@pytest.fixture
def quiz_json(quiz_payload) -> str:
    return json.dumps(quiz_payload)


@pytest.fixture
def sample_quiz(quiz_payload) -> Quiz:
    return Quiz.model_validate(quiz_payload)


@pytest.fixture
def diagram() -> ImagePayload:
    return ImagePayload(data=png_bytes(), mime_type="image/png")


@pytest.fixture
def pdf_material() -> UploadedMaterial:
    content = pdf_bytes()
    return UploadedMaterial(
        content=content,
        mime_type="application/pdf",
        kind="pdf",
        filename="algebra.pdf",
        size_bytes=len(content),
        page_count=1,
        source_text="Linear equations. To solve 2x + 3 = 11, subtract 3 then divide by 2.",
    )


@pytest.fixture
def image_material() -> UploadedMaterial:
    content = png_bytes()
    return UploadedMaterial(
        content=content,
        mime_type="image/png",
        kind="image",
        filename="notes.png",
        size_bytes=len(content),
    )


@pytest.fixture
def algebra_config() -> GenerationConfig:
    return GenerationConfig(academic_level="GCE O/L", language="English", focus_topics="Algebra")


@pytest_asyncio.fixture
async def renderer(diagram):
    return FakeRenderer(payload=diagram)


@pytest_asyncio.fixture
async def coordinator(renderer):
    coordinator = QuizStateCoordinator(render_diagram=renderer)
    yield coordinator
    await coordinator.aclose()


@pytest_asyncio.fixture
async def session(coordinator):
    return ExamSession(coordinator=coordinator)
