"""
Exam Prep Gen — HTTP Schemas
============================
Request bodies and response envelopes for the /api/v1 surface.
The page only ever reads SessionView; errors always use ErrorResponse.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from examprep.schemas.quiz import AcademicLevel, ImageStatus, Language


# ── Requests ─────────────────────────────────────────────────────────────────

class ConfigUpdate(BaseModel):
    """Body for PUT /config."""
    academic_level: AcademicLevel = AcademicLevel.OL
    language: Language = Language.ENGLISH
    focus_topics: str = Field(default="", max_length=2000)


class AnswerSelection(BaseModel):
    """Body for PUT /answers/{question_id}."""
    option_index: int = Field(..., ge=0)


# ── Views ────────────────────────────────────────────────────────────────────

class MaterialView(BaseModel):
    filename: str
    mime_type: str
    kind: str
    size_bytes: int
    page_count: Optional[int] = None


class QuestionView(BaseModel):
    """A question as the page renders it. Answer data only after reveal."""
    number: int
    question_id: int
    stem_html: str
    options_html: List[str]
    cognitive_level_html: str
    image_url: Optional[str] = None
    image_description: Optional[str] = None
    image_pending: bool = False
    image_status: ImageStatus = ImageStatus.NO_IMAGE_NEEDED
    selected_index: Optional[int] = None
    correct_index: Optional[int] = None
    is_correct: Optional[bool] = None
    explanation_html: Optional[str] = None


class QuizView(BaseModel):
    title: str
    subject: str
    academic_level: str
    language: str
    questions: List[QuestionView]


class ScoreView(BaseModel):
    correct: int
    total: int
    percentage: int


class SessionView(BaseModel):
    """Snapshot of the whole application state."""
    academic_level: AcademicLevel
    language: Language
    focus_topics: str
    material: Optional[MaterialView] = None
    is_loading: bool = False
    is_exporting: bool = False
    error: Optional[str] = None
    quiz: Optional[QuizView] = None
    answers: Dict[int, int] = {}
    results_revealed: bool = False
    can_reveal: bool = False
    images_pending: bool = False
    score: Optional[ScoreView] = None


class OptionsResponse(BaseModel):
    academic_levels: List[str]
    languages: List[str]


# ── Errors ───────────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error envelope."""
    status: str = "error"
    message: str
    detail: Optional[str] = None
