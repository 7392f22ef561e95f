"""
Exam Prep Gen — Quiz Request Builder
====================================
Turns an uploaded file + the user's configuration into one generation
request. Pure: same inputs, same request, inputs untouched.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from examprep.core.config import settings
from examprep.schemas.quiz import GenerationConfig, UploadedMaterial, option_count_for


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SYSTEM POLICY
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

SYSTEM_INSTRUCTION = (
    "You are a Virtual Pedagogical Expert specializing in the Sri Lankan National School "
    "Curriculum (Grades 1-13), including GCE Ordinary (O/L) and Advanced Level (A/L) standards.\n"
    "Your primary objective is to transform multimodal inputs into high-quality practice examinations.\n\n"
    "CORE RULES:\n"
    "1. Linguistic Precision: Generate content in English or formal \"Misra\" Sinhala, exactly as requested. "
    "Every stem, option and explanation must be in the requested language.\n"
    "2. Cognitive Balance: Align every question with Bloom's Taxonomy and name the level in 'cognitive_level'.\n"
    "3. Formatting Integrity:\n"
    "   - Grades 1-5: 3 options.\n"
    "   - Grades 6 - O/L: 4 options.\n"
    "   - GCE A/L: Exactly 5 options.\n"
    "   - 'correct_answer_index' is the 0-based position of the single correct option.\n"
    "4. Mathematical Notation:\n"
    "   - Wrap every mathematical expression in single dollar signs, e.g. $\\frac{1}{2}$.\n"
    "   - Use standard escaped LaTeX commands (\\frac, \\sqrt, \\times, \\text), never Unicode symbols like √.\n"
    "5. Selective Visual Enhancement:\n"
    "   - Provide an 'image_description' ONLY if a visual diagram is strictly necessary to set up the question "
    "(e.g., a geometry figure without lengths labeled, a circuit without the answer shown, "
    "or an unlabeled biological cell).\n"
    "   - CRITICAL: The description MUST NOT include the answer, hints, or any text that solves the problem.\n"
    "   - CRITICAL: Do not describe infographics that explain the concept. "
    "Describe a \"raw\" diagram or a scenario setup.\n"
    "   - If the question does not need a diagram to be understood, leave 'image_description' empty or null.\n"
    "6. Structured Output: Respond ONLY with a valid JSON object matching the provided schema."
)

QUIZ_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "quiz_metadata": {
            "type": "OBJECT",
            "properties": {
                "title": {"type": "STRING"},
                "subject": {"type": "STRING"},
                "language": {"type": "STRING"},
                "academic_level": {"type": "STRING"},
            },
            "required": ["title", "subject", "language", "academic_level"],
        },
        "questions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "question_id": {"type": "INTEGER"},
                    "stem": {"type": "STRING"},
                    "options": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "correct_answer_index": {"type": "INTEGER"},
                    "explanation": {"type": "STRING"},
                    "cognitive_level": {"type": "STRING"},
                    "source_reference": {"type": "STRING"},
                    "image_description": {
                        "type": "STRING",
                        "description": (
                            "A PURELY VISUAL description of a diagram or scene needed to understand "
                            "the question. DO NOT include answers, labels that give away the solution, "
                            "or any explanatory text in this description."
                        ),
                    },
                },
                "required": [
                    "question_id",
                    "stem",
                    "options",
                    "correct_answer_index",
                    "explanation",
                    "cognitive_level",
                ],
            },
        },
    },
    "required": ["quiz_metadata", "questions"],
}


# ── Request ──────────────────────────────────────────────────────────────────

class GenerationRequest(BaseModel):
    """Everything the text model needs for one quiz."""
    model_config = ConfigDict(frozen=True)

    content: bytes = Field(repr=False)
    mime_type: str
    instruction: str
    system_instruction: str = SYSTEM_INSTRUCTION
    response_schema: Dict[str, Any] = Field(default=QUIZ_RESPONSE_SCHEMA, repr=False)
    temperature: float
    source_text: Optional[str] = Field(default=None, repr=False)


def build_instruction(material: UploadedMaterial, config: GenerationConfig) -> str:
    level = config.academic_level.value
    language = config.language.value
    lines = [
        f"Analyze the attached {material.kind} and generate a practice examination for {level} in {language}.",
        f"Every question must have exactly {option_count_for(config.academic_level)} options.",
    ]
    topics = config.focus_topics.strip()
    if topics:
        lines.append(f"Focus specifically on: {topics}")
    lines.extend([
        "",
        "Rules for images:",
        "- Only provide an 'image_description' if the question setup requires a diagram "
        "(like a blank geometry shape or an unlabeled map).",
        "- DO NOT provide an image if the question is purely text-based.",
        "- THE IMAGE DESCRIPTION MUST NOT CONTAIN ANY HINTS, ANSWERS, OR EXPLANATIONS.",
        "- It should only describe the physical setup of the problem.",
    ])
    return "\n".join(lines)


def build_request(material: UploadedMaterial, config: GenerationConfig) -> GenerationRequest:
    return GenerationRequest(
        content=material.content,
        mime_type=material.mime_type,
        instruction=build_instruction(material, config),
        response_schema=QUIZ_RESPONSE_SCHEMA,
        temperature=settings.GEMINI_TEMPERATURE,
        source_text=material.source_text,
    )
