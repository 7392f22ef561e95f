"""
Exam Prep Gen — FastAPI Entry Point
===================================
  • Global exception handler — never crashes, always returns JSON
  • Application errors map to their own status codes
  • One ExamSession per process, created in the lifespan
  • Single-page UI at /, JSON API under /api/v1
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from examprep.api.v1.endpoints import exam
from examprep.core.config import settings
from examprep.core.errors import ExamPrepError
from examprep.schemas.api import ErrorResponse
from examprep.services.exam_session import ExamSession
from examprep.ui.page import EXAM_PAGE_HTML

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ─────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.session = ExamSession()
    logger.info("[APP] ✓ Session ready")
    yield
    await app.state.session.coordinator.aclose()
    logger.info("[APP] Shut down")


# ── App ──────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Exam Prep Gen",
    description=(
        "Turn study material into a multiple-choice practice paper.\n"
        "Upload a PDF, image or video → answer, score, export to PDF."
    ),
    version="1.0.0",
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(ExamPrepError)
async def exam_prep_error_handler(request: Request, exc: ExamPrepError):
    logger.warning(f"[{exc.__class__.__name__}] {request.url.path}: {exc.message}")
    body = ErrorResponse(status="error", message=exc.message, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: every unhandled exception returns a clean JSON envelope."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(
        status="error",
        message="An internal server error occurred.",
        detail=str(exc),
    )
    return JSONResponse(status_code=500, content=body.model_dump())


# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── System ───────────────────────────────────────────────────────────────────
@app.get("/", response_class=HTMLResponse, tags=["UI"])
async def serve_page() -> str:
    return EXAM_PAGE_HTML


@app.get("/health", tags=["System"])
async def health_check():
    return {
        "status": "operational",
        "service": "Exam Prep Gen",
        "version": app.version,
        "ai_provider": settings.AI_PROVIDER,
    }


app.include_router(exam.router, prefix="/api/v1", tags=["Exam"])
