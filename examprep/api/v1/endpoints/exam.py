from urllib.parse import quote

from fastapi import APIRouter, File, Query, Request, UploadFile
from fastapi.responses import Response

from examprep.schemas.api import AnswerSelection, ConfigUpdate, OptionsResponse, SessionView
from examprep.schemas.quiz import AcademicLevel, GenerationConfig, Language
from examprep.services.exam_session import ExamSession
from examprep.services.file_service import load_material

router = APIRouter()


def _session(request: Request) -> ExamSession:
    return request.app.state.session


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. CONFIGURATION & UPLOAD
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.get("/options", response_model=OptionsResponse)
async def get_options():
    """Choices for the configuration panel."""
    return OptionsResponse(
        academic_levels=[level.value for level in AcademicLevel],
        languages=[language.value for language in Language],
    )


@router.get("/state", response_model=SessionView)
async def get_state(request: Request):
    """Current application state; the page polls this while diagrams load."""
    return _session(request).view()


@router.post("/upload", response_model=SessionView)
async def upload_file(request: Request, file: UploadFile = File(...)):
    """Select the study material (PDF, image or video)."""
    content = await file.read()
    material = await load_material(content, file.filename or "upload", file.content_type)
    session = _session(request)
    session.upload(material)
    return session.view()


@router.delete("/upload", response_model=SessionView)
async def clear_file(request: Request):
    session = _session(request)
    session.clear_material()
    return session.view()


@router.put("/config", response_model=SessionView)
async def update_config(request: Request, body: ConfigUpdate):
    session = _session(request)
    session.configure(GenerationConfig(
        academic_level=body.academic_level,
        language=body.language,
        focus_topics=body.focus_topics,
    ))
    return session.view()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. GENERATION
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/generate", response_model=SessionView)
async def generate(request: Request):
    """
    Generate the quiz. Returns once the questions exist; diagrams keep
    arriving afterwards and show up in /state.
    """
    session = _session(request)
    await session.start_generation()
    return session.view()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 3. ANSWERING
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.put("/answers/{question_id}", response_model=SessionView)
async def select_answer(request: Request, question_id: int, body: AnswerSelection):
    session = _session(request)
    session.select_answer(question_id, body.option_index)
    return session.view()


@router.post("/reveal", response_model=SessionView)
async def reveal_results(request: Request):
    session = _session(request)
    session.reveal_results()
    return session.view()


@router.post("/retry", response_model=SessionView)
async def retry(request: Request):
    session = _session(request)
    session.retry()
    return session.view()


@router.post("/reset", response_model=SessionView)
async def reset(request: Request):
    """New assessment: clears material, settings and quiz."""
    session = _session(request)
    session.reset()
    return session.view()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 4. EXPORT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.get("/export")
async def export_pdf(request: Request, include_answers: bool = Query(default=False)):
    """Download the question paper, or paper + answers."""
    document = await _session(request).export(include_answers)
    ascii_name = document.filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(document.filename)}"
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": disposition},
    )
