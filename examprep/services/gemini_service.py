"""
Exam Prep Gen — AI Engine
=========================
Handles all interactions with the AI providers:
  1. Quiz generation   (Gemini multimodal, Groq text-only failover for PDFs)
  2. Diagram rendering (Gemini image model, one call per question)

Features:
  - Schema-constrained JSON output, validated locally before use
  - Robust JSON extraction with retry logic
  - Multi-provider call with automatic failover
  - Diagram failures are absorbed: a missing image is never fatal
"""

import io
import json
import re
import logging
import asyncio
from typing import Any, Dict, Optional

import google.generativeai as genai
from groq import AsyncGroq
from PIL import Image, UnidentifiedImageError

from examprep.core.config import settings
from examprep.core.errors import GenerationError, GenerationTimeoutError, ImageGenerationFailure
from examprep.schemas.quiz import ImagePayload, Quiz
from examprep.services.request_builder import GenerationRequest

logger = logging.getLogger(__name__)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CLIENT INITIALIZATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

logger.info(f"[AI‑ENGINE] Provider mode: {settings.AI_PROVIDER}")

if settings.GOOGLE_API_KEY:
    genai.configure(api_key=settings.GOOGLE_API_KEY, transport="rest")
    logger.info("[AI‑ENGINE] ✓ Gemini client ready")
else:
    logger.warning("[AI‑ENGINE] ✗ Google API key missing")

groq_client: Optional[AsyncGroq] = None
if settings.GROQ_API_KEY:
    groq_client = AsyncGroq(api_key=settings.GROQ_API_KEY)
    logger.info("[AI‑ENGINE] ✓ Groq client ready")
else:
    logger.info("[AI‑ENGINE] Groq API key missing — PDF failover disabled")


IMAGE_STYLE_INSTRUCTION = (
    "IMPORTANT:\n"
    "1. DO NOT include any answers or solutions in the image.\n"
    "2. DO NOT include labels that explain the concept.\n"
    "3. Only show the problem setup.\n"
    "4. Style: Simple black and white line art or clear professional diagram on a white background. "
    "No text unless it is a coordinate label like 'A', 'B', 'x', 'y'.\n"
    "5. Square (1:1) aspect ratio."
)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# JSON RECOVERY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def clean_and_parse_json(raw_text: str) -> Dict[str, Any]:
    """
    Recover the quiz object from a model reply. Gemini is schema-constrained
    but Groq JSON mode and retried calls can still come back fenced or
    wrapped in prose:
    1. Strip markdown code fences (```json ... ```)
    2. Extract first { ... } block
    3. Parse with json.loads
    Raises ValueError on failure with diagnostic info.
    """
    if not raw_text or not raw_text.strip():
        raise ValueError("Empty AI response received")

    cleaned = raw_text.strip()

    # Strategy 1: Remove ```json ... ``` wrapper
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)\n?\s*```", cleaned, re.DOTALL)
    if fence_match:
        cleaned = fence_match.group(1).strip()

    # Strategy 2: Find the first { ... } block (greedy from first { to last })
    if not cleaned.startswith("{"):
        brace_match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if brace_match:
            cleaned = brace_match.group(0)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed. Raw (first 500 chars): {raw_text[:500]}")
        raise ValueError(f"AI returned invalid JSON: {e}")

    if not isinstance(parsed, dict):
        raise ValueError(f"AI returned {type(parsed).__name__}, expected a JSON object")
    return parsed


def parse_quiz(raw_text: str) -> Quiz:
    """Parse and validate a model response. Raises ValueError on any violation."""
    parsed = clean_and_parse_json(raw_text)
    return Quiz.model_validate(parsed)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PROVIDER CALLS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def _call_gemini(request: GenerationRequest) -> str:
    """Call Gemini with the raw material inline and the response schema enforced."""
    if not settings.GOOGLE_API_KEY:
        raise ValueError("Google API Key missing")

    logger.info(f"[AI‑ENGINE] Calling Gemini ({settings.GEMINI_MODEL})...")
    model = genai.GenerativeModel(
        model_name=settings.GEMINI_MODEL,
        system_instruction=request.system_instruction,
        generation_config={
            "response_mime_type": "application/json",
            "response_schema": request.response_schema,
            "temperature": request.temperature,
        },
    )
    contents = [
        {"mime_type": request.mime_type, "data": request.content},
        request.instruction,
    ]
    response = await asyncio.to_thread(model.generate_content, contents)
    try:
        text = response.text
    except ValueError as e:
        raise ValueError(f"No response text received from Gemini: {e}")
    logger.info("[AI‑ENGINE] ✓ Gemini call succeeded")
    return text


async def _call_groq(request: GenerationRequest) -> str:
    """Call Groq over the extracted document text. JSON mode, schema in the prompt."""
    if not groq_client:
        raise ValueError("Groq API Key missing")

    system_prompt = (
        f"{request.system_instruction}\n\n"
        "Output MUST be valid JSON matching this EXACT schema:\n"
        f"{json.dumps(request.response_schema, indent=1)}"
    )
    user_prompt = f"{request.instruction}\n\nSOURCE TEXT:\n{request.source_text}"

    logger.info(f"[AI‑ENGINE] Calling Groq ({settings.GROQ_MODEL})...")
    completion = await groq_client.chat.completions.create(
        model=settings.GROQ_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        response_format={"type": "json_object"},
        temperature=request.temperature,
        max_tokens=8000,
    )
    result = completion.choices[0].message.content
    logger.info("[AI‑ENGINE] ✓ Groq call succeeded")
    return result


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HYBRID CALL WITH FAILOVER
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def _hybrid_call(request: GenerationRequest) -> str:
    """
    Execute AI call with automatic failover.
    Gemini reads the material itself; Groq can only step in when the
    upload was a PDF with extractable text.
    """
    callers = [("Gemini", _call_gemini)]
    if settings.AI_PROVIDER == "hybrid" and request.source_text:
        callers.append(("Groq", _call_groq))

    last_error = None
    for name, caller in callers:
        try:
            return await caller(request)
        except Exception as e:
            last_error = e
            logger.warning(f"[AI‑ENGINE] {name} failed: {str(e)[:200]}. Trying next...")

    raise RuntimeError(f"All AI providers failed. Last error: {last_error}")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# QUIZ GENERATION WITH RETRY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def _generate_with_retry(request: GenerationRequest) -> Quiz:
    attempts = max(1, settings.GENERATION_MAX_ATTEMPTS)
    last_error = None
    for attempt in range(1, attempts + 1):
        raw = await _hybrid_call(request)
        try:
            quiz = parse_quiz(raw)
        except ValueError as e:
            last_error = e
            logger.warning(f"[QUIZ] Attempt {attempt}/{attempts} returned unusable content: {str(e)[:300]}")
            continue
        logger.info(
            f"[QUIZ] ✓ Generated \"{quiz.quiz_metadata.title}\" — "
            f"{len(quiz.questions)} questions (attempt {attempt})"
        )
        return quiz

    raise ValueError(f"Quiz generation failed after {attempts} attempts: {last_error}")


async def generate_quiz(request: GenerationRequest) -> Quiz:
    """
    Generate one complete quiz. Either a fully validated Quiz comes back or
    GenerationError is raised; there is no partial result.
    """
    logger.info(f"[QUIZ] Starting generation ({request.mime_type}, {len(request.content) / 1024:.0f} KB)")
    try:
        return await asyncio.wait_for(
            _generate_with_retry(request),
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        raise GenerationTimeoutError(
            f"Quiz generation timed out after {settings.AI_TIMEOUT_SECONDS}s.",
            detail="The material may be too large. Try a shorter document.",
        )
    except ValueError as e:
        raise GenerationError("The AI returned an unusable quiz. Please try again.", detail=str(e))
    except RuntimeError as e:
        logger.error(f"[QUIZ] ✗ {e}")
        raise GenerationError(
            "Failed to generate quiz. Please check your API key and try again.",
            detail=str(e),
        )


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DIAGRAMS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def build_image_prompt(description: str) -> str:
    return (
        "A clean, professional educational diagram or illustration for a school test paper: "
        f"{description.strip()}.\n{IMAGE_STYLE_INSTRUCTION}"
    )


def _sniff_image(data: bytes, declared_mime: str) -> ImagePayload:
    """Trust the bytes over the declared type."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            mime_type = Image.MIME.get(image.format or "", declared_mime)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageGenerationFailure("Image model returned undecodable image data", detail=str(e))
    return ImagePayload(data=data, mime_type=mime_type)


def _first_inline_image(response: Any) -> Optional[ImagePayload]:
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            blob = getattr(part, "inline_data", None)
            if blob is not None and blob.data:
                return _sniff_image(bytes(blob.data), blob.mime_type or "image/png")
    return None


async def _call_image_model(prompt: str) -> Optional[ImagePayload]:
    """One image-model call. Raises ImageGenerationFailure on any service error."""
    if not settings.GOOGLE_API_KEY:
        raise ImageGenerationFailure("Google API Key missing")

    model = genai.GenerativeModel(model_name=settings.GEMINI_IMAGE_MODEL)
    try:
        response = await asyncio.wait_for(
            asyncio.to_thread(model.generate_content, prompt),
            timeout=settings.IMAGE_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        raise ImageGenerationFailure(f"Image generation timed out after {settings.IMAGE_TIMEOUT_SECONDS}s")
    except Exception as e:
        raise ImageGenerationFailure(f"Image generation failed: {str(e)[:200]}", detail=str(e))
    return _first_inline_image(response)


async def render_diagram(description: str) -> Optional[ImagePayload]:
    """
    Render the diagram for one question. Returns None when the model
    declines or fails; the question is usable without its picture.
    """
    try:
        payload = await _call_image_model(build_image_prompt(description))
    except ImageGenerationFailure as e:
        logger.warning(f"[IMAGE] ✗ {e.message}")
        return None

    if payload is None:
        logger.info("[IMAGE] Model returned no image content")
    else:
        logger.info(f"[IMAGE] ✓ {payload.mime_type}, {len(payload.data) / 1024:.0f} KB")
    return payload
