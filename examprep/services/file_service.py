import logging
import asyncio
import mimetypes
from typing import Optional

import fitz  # PyMuPDF

from examprep.core.config import settings
from examprep.core.errors import UploadError
from examprep.schemas.quiz import MaterialKind, UploadedMaterial

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


def detect_kind(mime_type: str) -> MaterialKind:
    """image/* → image, video/* → video, everything else is sent as a PDF."""
    if mime_type.startswith("image"):
        return "image"
    if mime_type.startswith("video"):
        return "video"
    return "pdf"


def _resolve_mime_type(declared: Optional[str], filename: str, content: bytes) -> str:
    if content[:4].startswith(PDF_MAGIC):
        return "application/pdf"
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/pdf"


async def load_material(content: bytes, filename: str, declared_mime: Optional[str] = None) -> UploadedMaterial:
    """
    Basic sniffing of an uploaded study file.
    PDFs get page count + extracted text (PyMuPDF).
    Raises UploadError when there is nothing usable to send to the model.
    """
    filename = filename or "upload"

    # ── Validate file size ────────────────────────────
    if len(content) == 0:
        raise UploadError("Uploaded file is empty.")

    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise UploadError(
            f"File too large ({len(content) / (1024*1024):.1f} MB). "
            f"Maximum is {settings.MAX_FILE_SIZE_MB} MB."
        )

    mime_type = _resolve_mime_type(declared_mime, filename, content)
    kind = detect_kind(mime_type)

    page_count = None
    source_text = None
    if kind == "pdf" and mime_type == "application/pdf":
        page_count, source_text = await asyncio.to_thread(_inspect_pdf, content)

    logger.info(
        f"[UPLOAD] ✓ {filename} — {kind} ({mime_type}) — "
        f"{len(content) / 1024:.0f} KB"
        + (f" — {page_count} pages" if page_count is not None else "")
    )
    return UploadedMaterial(
        content=content,
        mime_type=mime_type,
        kind=kind,
        filename=filename,
        size_bytes=len(content),
        page_count=page_count,
        source_text=source_text,
    )


def _inspect_pdf(data: bytes) -> tuple[Optional[int], Optional[str]]:
    """Page count and plain text of a PDF. Best effort: the model reads the bytes anyway."""
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            text_blocks = []
            for page in doc:
                page_text = page.get_text("text")
                if page_text.strip():
                    text_blocks.append(page_text)
            text = "\n\n".join(text_blocks).strip()
            return doc.page_count, text[: settings.SOURCE_TEXT_MAX_CHARS] or None
    except Exception as e:
        logger.warning(f"[UPLOAD] PDF inspection failed: {e}")
        return None, None
