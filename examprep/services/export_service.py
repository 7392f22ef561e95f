"""
Exam Prep Gen — Print Export
============================
Serializes the current quiz into an HTML print layout and rasterizes it to
an A4 PDF with MuPDF's Story engine (PyMuPDF).

  • Question paper or paper + answers (letter + explanation)
  • Same math repair/typesetting as the interactive page
  • Diagrams re-encoded to PNG and bounded in height
  • The print surface is always torn down, on success and on failure
"""

import asyncio
import base64
import binascii
import html
import io
import logging
import re
from typing import Optional, Set, Tuple

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field

from examprep.core.config import settings
from examprep.core.errors import ExportError
from examprep.schemas.quiz import Language, Question, Quiz
from examprep.services.math_notation import to_print_markup

logger = logging.getLogger(__name__)

PAGE_FORMAT = "a4"
PAGE_MARGIN_MM = 10
_MM_TO_PT = 72 / 25.4

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)

PRINT_CSS = """
body { font-family: sans-serif; font-size: 11pt; color: #000000; }
.sinhala { line-height: 1.6; }
.pdf-header { text-align: center; border-bottom: 2px solid #000000; padding-bottom: 8px; margin-bottom: 18px; }
.pdf-header h1 { font-size: 22pt; margin: 0; }
.pdf-header h2 { font-size: 14pt; margin: 6px 0; color: #333333; }
.pdf-header p { font-size: 9pt; color: #666666; text-transform: uppercase; }
.pdf-question { margin-bottom: 18px; }
.pdf-stem { font-weight: bold; font-size: 12pt; margin-bottom: 8px; }
.pdf-figure { text-align: center; margin: 12px 0; }
.pdf-options { margin-left: 24px; }
.pdf-option { margin-bottom: 4px; }
.pdf-letter { font-weight: bold; }
.pdf-feedback { margin-top: 8px; padding: 6px; background-color: #f0fdf4; color: #14532d; }
.pdf-answer { font-weight: bold; font-size: 9pt; color: #166534; text-transform: uppercase; }
"""


class ExportedDocument(BaseModel):
    """A finished download."""
    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes = Field(repr=False)
    media_type: str = "application/pdf"


def option_letter(index: int) -> str:
    return chr(ord("A") + index)


def export_filename(title: str, include_answers: bool) -> str:
    stem = re.sub(r"\s+", "_", title.strip()) or "Quiz"
    return f"{stem}_{'Answers' if include_answers else 'Paper'}.pdf"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SERIALIZATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _decode_data_url(url: str) -> Optional[Tuple[str, bytes]]:
    match = _DATA_URL.match(url)
    if not match:
        return None
    try:
        return match.group("mime"), base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError):
        return None


def _print_image(url: str, max_height: int) -> Optional[Tuple[str, int, int]]:
    """PNG data URL + display size for a question image, or None if unusable."""
    decoded = _decode_data_url(url)
    if decoded is None:
        return None
    _, data = decoded
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            if image.mode not in ("RGB", "RGBA", "L"):
                image = image.convert("RGBA")
            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"[EXPORT] Skipping undecodable image: {e}")
        return None

    if height > max_height:
        width, height = max(1, round(width * max_height / height)), max_height
    png_url = "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
    return png_url, width, height


def _question_html(number: int, question: Question, include_answers: bool) -> str:
    parts = [
        '<div class="pdf-question">',
        f'<div class="pdf-stem">{number}. {to_print_markup(question.stem)}</div>',
    ]

    if question.image_url:
        image = _print_image(question.image_url, settings.EXPORT_IMAGE_MAX_HEIGHT)
        if image is not None:
            src, width, height = image
            parts.append(
                f'<div class="pdf-figure"><img src="{src}" '
                f'style="width:{width}px;height:{height}px" /></div>'
            )

    parts.append('<div class="pdf-options">')
    for index, option in enumerate(question.options):
        parts.append(
            f'<div class="pdf-option"><span class="pdf-letter">{option_letter(index)})</span> '
            f"{to_print_markup(option)}</div>"
        )
    parts.append("</div>")

    if include_answers:
        parts.append('<div class="pdf-feedback">')
        correct = question.correct_option_index()
        if correct is not None:
            parts.append(f'<div class="pdf-answer">Correct Answer: {option_letter(correct)}</div>')
        parts.append(f"<div><b>Explanation:</b> {to_print_markup(question.explanation)}</div>")
        parts.append("</div>")

    parts.append("</div>")
    return "".join(parts)


def build_export_html(quiz: Quiz, include_answers: bool, language: Language = Language.ENGLISH) -> str:
    """The full print layout as one HTML string."""
    meta = quiz.quiz_metadata
    css_class = "pdf-content sinhala" if language is Language.SINHALA else "pdf-content"
    header = (
        '<div class="pdf-header">'
        f"<h1>{html.escape(meta.title)}</h1>"
        f"<h2>{html.escape(meta.subject)} • {html.escape(meta.academic_level)}</h2>"
        "<p>Evaluation Paper - AI Enhanced Assessment</p>"
        "</div>"
    )
    questions = "".join(
        _question_html(number, question, include_answers)
        for number, question in enumerate(quiz.questions, start=1)
    )
    return f'<div class="{css_class}">{header}{questions}</div>'


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RASTERIZATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_active_surfaces: Set["PrintSurface"] = set()


def active_surface_count() -> int:
    return len(_active_surfaces)


class PrintSurface:
    """
    Temporary layout attached to a document writer. Use as a context
    manager; leaving the block always releases it.
    """

    def __init__(self, markup: str) -> None:
        self.markup = markup
        self._buffer: Optional[io.BytesIO] = None
        self._writer = None
        self._story = None

    def __enter__(self) -> "PrintSurface":
        self._buffer = io.BytesIO()
        _active_surfaces.add(self)
        try:
            self._story = fitz.Story(html=self.markup, user_css=PRINT_CSS)
            self._writer = fitz.DocumentWriter(self._buffer)
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def render(self) -> bytes:
        page = fitz.paper_rect(PAGE_FORMAT)
        margin = PAGE_MARGIN_MM * _MM_TO_PT
        where = page + (margin, margin, -margin, -margin)

        more = 1
        while more:
            device = self._writer.begin_page(page)
            more, _ = self._story.place(where)
            self._story.draw(device)
            self._writer.end_page()

        self._writer.close()
        self._writer = None
        return self._buffer.getvalue()

    def close(self) -> None:
        if self._writer is not None:
            try:
                self._writer.close()
            except Exception as e:
                logger.debug(f"[EXPORT] Writer close after failure: {e}")
        self._writer = None
        self._story = None
        self._buffer = None
        _active_surfaces.discard(self)


def _rasterize(markup: str) -> bytes:
    with PrintSurface(markup) as surface:
        return surface.render()


async def export_quiz(quiz: Quiz, include_answers: bool, language: Language = Language.ENGLISH) -> ExportedDocument:
    """
    Build the PDF for the current quiz.
    Raises ExportError; the print surface never outlives the call.
    """
    filename = export_filename(quiz.quiz_metadata.title, include_answers)
    logger.info(f"[EXPORT] Building {filename}")
    try:
        markup = build_export_html(quiz, include_answers, language)
        # layout delay before capture
        await asyncio.sleep(settings.EXPORT_LAYOUT_DELAY_SECONDS)
        content = await asyncio.to_thread(_rasterize, markup)
    except Exception as e:
        logger.error(f"[EXPORT] ✗ PDF generation failed: {e}", exc_info=True)
        raise ExportError("Failed to generate PDF. Please try again.", detail=str(e))

    logger.info(f"[EXPORT] ✓ {filename} — {len(content) / 1024:.0f} KB")
    return ExportedDocument(filename=filename, content=content)
