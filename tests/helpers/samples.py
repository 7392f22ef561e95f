"""Sample quiz data, media bytes and a diagram renderer double."""

import asyncio
import io
from typing import Any, Dict, Optional

import fitz  # PyMuPDF
from PIL import Image

from examprep.schemas.quiz import ImagePayload


ALGEBRA_QUIZ: Dict[str, Any] = {
    "quiz_metadata": {
        "title": "Algebra Basics",
        "subject": "Mathematics",
        "language": "English",
        "academic_level": "GCE O/L",
    },
    "questions": [
        {
            "question_id": 1,
            "stem": "Solve for $x$: $2x + 3 = 11$",
            "options": ["$x = 3$", "$x = 4$", "$x = 5$", "$x = 7$"],
            "correct_answer_index": 1,
            "explanation": "Subtract 3 and divide by 2.",
            "cognitive_level": "Application",
            "source_reference": "Page 1",
        },
        {
            "question_id": 2,
            "stem": "What is $\\frac{1}{2} + \\frac{1}{4}$?",
            "options": ["$\\frac{3}{4}$", "$\\frac{2}{6}$", "$\\frac{1}{6}$", "$1$"],
            "correct_answer_index": 0,
            "explanation": "Use a common denominator of 4.",
            "cognitive_level": "Understanding",
        },
        {
            "question_id": 3,
            "stem": "The triangle shown has legs 3 cm and 4 cm. How long is the hypotenuse?",
            "options": ["5 cm", "6 cm", "7 cm", "12 cm"],
            "correct_answer_index": 0,
            "explanation": "Pythagoras: 9 + 16 = 25.",
            "cognitive_level": "Application",
            "image_description": "A right-angled triangle with the two shorter sides marked 3 cm and 4 cm.",
        },
        {
            "question_id": 4,
            "stem": "Expand $3(a + 2)$.",
            "options": ["$3a + 2$", "$3a + 6$", "$a + 6$", "$3a + 5$"],
            "correct_answer_index": 1,
            "explanation": "Multiply each term inside the bracket by 3.",
            "cognitive_level": "Remembering",
        },
    ],
}


def png_bytes(width: int = 40, height: int = 30, color: str = "white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def jpeg_bytes(width: int = 40, height: int = 30) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="JPEG")
    return buffer.getvalue()


def pdf_bytes(text: str = "Linear equations. To solve 2x + 3 = 11, subtract 3 then divide by 2.") -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((50, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class FakeRenderer:
    """Diagram renderer double. Optionally blocks until released."""

    def __init__(self, payload: Optional[ImagePayload] = None, block: bool = False, error: Optional[Exception] = None):
        self.payload = payload
        self.error = error
        self.calls = []
        self.release = asyncio.Event()
        if not block:
            self.release.set()

    async def __call__(self, description: str) -> Optional[ImagePayload]:
        self.calls.append(description)
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.payload


