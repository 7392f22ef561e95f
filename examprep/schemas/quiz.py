"""
Exam Prep Gen — Quiz Domain Schemas
===================================
Typed records for the generation pipeline. Everything the model returns is
validated through these before it reaches the session or the exporter.
"""

from __future__ import annotations

import base64
from enum import Enum
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AcademicLevel(str, Enum):
    GRADE_1 = "Grade 1"
    GRADE_2 = "Grade 2"
    GRADE_3 = "Grade 3"
    GRADE_4 = "Grade 4"
    GRADE_5 = "Grade 5"
    GRADE_6 = "Grade 6"
    GRADE_7 = "Grade 7"
    GRADE_8 = "Grade 8"
    GRADE_9 = "Grade 9"
    GRADE_10 = "Grade 10"
    OL = "GCE O/L"
    AL = "GCE A/L"


_PRIMARY_LEVELS = {
    AcademicLevel.GRADE_1,
    AcademicLevel.GRADE_2,
    AcademicLevel.GRADE_3,
    AcademicLevel.GRADE_4,
    AcademicLevel.GRADE_5,
}


def option_count_for(level: AcademicLevel) -> int:
    """Options per question: 3 for Grades 1-5, 5 for A/L, 4 otherwise."""
    if level in _PRIMARY_LEVELS:
        return 3
    if level is AcademicLevel.AL:
        return 5
    return 4


class Language(str, Enum):
    ENGLISH = "English"
    SINHALA = "Sinhala"


MaterialKind = Literal["image", "pdf", "video"]


# ── Inputs ───────────────────────────────────────────────────────────────────

class UploadedMaterial(BaseModel):
    """Raw study material as uploaded. Never modified after creation."""
    model_config = ConfigDict(frozen=True)

    content: bytes = Field(repr=False)
    mime_type: str
    kind: MaterialKind
    filename: str = "upload"
    size_bytes: int = 0
    page_count: Optional[int] = None
    source_text: Optional[str] = Field(default=None, repr=False)


class GenerationConfig(BaseModel):
    """User-chosen generation options, copied into every request."""
    model_config = ConfigDict(frozen=True)

    academic_level: AcademicLevel = AcademicLevel.OL
    language: Language = Language.ENGLISH
    focus_topics: str = ""


# ── Generated Quiz ───────────────────────────────────────────────────────────

class QuizMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    subject: str
    language: str
    academic_level: str


class Question(BaseModel):
    """A single multiple-choice question as produced by the model."""
    model_config = ConfigDict(frozen=True)

    question_id: int
    stem: str
    options: Tuple[str, ...] = Field(..., min_length=1)
    correct_answer_index: int
    explanation: str
    cognitive_level: str
    source_reference: Optional[str] = None
    image_description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, repr=False)

    @field_validator("image_description", "source_reference")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def needs_image(self) -> bool:
        return self.image_description is not None

    def correct_option_index(self) -> Optional[int]:
        """The correct index, or None when it does not point at an option."""
        if 0 <= self.correct_answer_index < len(self.options):
            return self.correct_answer_index
        return None


class Quiz(BaseModel):
    """Complete quiz. Question count and ids are fixed once created."""
    model_config = ConfigDict(frozen=True)

    quiz_metadata: QuizMetadata
    questions: Tuple[Question, ...] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_questions(self) -> "Quiz":
        seen: set[int] = set()
        for q in self.questions:
            if q.question_id in seen:
                raise ValueError(f"Duplicate question_id {q.question_id}")
            seen.add(q.question_id)
            if q.correct_option_index() is None:
                raise ValueError(
                    f"Question {q.question_id}: correct_answer_index "
                    f"{q.correct_answer_index} is outside {len(q.options)} options"
                )
        return self

    def find_question(self, question_id: int) -> Optional[Question]:
        return next((q for q in self.questions if q.question_id == question_id), None)


# ── Diagrams ─────────────────────────────────────────────────────────────────

class ImagePayload(BaseModel):
    """Binary image returned by the image model."""
    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ImageResult(BaseModel):
    """Outcome of one diagram request, tagged with the epoch it belongs to."""
    model_config = ConfigDict(frozen=True)

    question_id: int
    epoch: int
    payload: Optional[ImagePayload] = None


class ImageStatus(str, Enum):
    NO_IMAGE_NEEDED = "no_image_needed"
    PENDING = "pending"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
