"""Tests for the quiz request builder."""

import pytest

from examprep.core.config import settings
from examprep.schemas.quiz import AcademicLevel, GenerationConfig, Language, option_count_for
from examprep.services.request_builder import (
    QUIZ_RESPONSE_SCHEMA,
    SYSTEM_INSTRUCTION,
    build_instruction,
    build_request,
)


class TestOptionCount:
    @pytest.mark.parametrize(
        "level,expected",
        [
            (AcademicLevel.GRADE_1, 3),
            (AcademicLevel.GRADE_5, 3),
            (AcademicLevel.GRADE_6, 4),
            (AcademicLevel.GRADE_10, 4),
            (AcademicLevel.OL, 4),
            (AcademicLevel.AL, 5),
        ],
    )
    def test_option_count_follows_level(self, level, expected):
        assert option_count_for(level) == expected

    def test_instruction_states_option_count(self, pdf_material):
        config = GenerationConfig(academic_level=AcademicLevel.AL)
        assert "exactly 5 options" in build_instruction(pdf_material, config)


class TestBuildRequest:
    def test_same_inputs_same_request(self, pdf_material, algebra_config):
        assert build_request(pdf_material, algebra_config) == build_request(pdf_material, algebra_config)

    def test_inputs_are_not_modified(self, pdf_material, algebra_config):
        material_before = pdf_material.model_dump()
        config_before = algebra_config.model_dump()
        build_request(pdf_material, algebra_config)
        assert pdf_material.model_dump() == material_before
        assert algebra_config.model_dump() == config_before

    def test_material_is_passed_through(self, pdf_material, algebra_config):
        request = build_request(pdf_material, algebra_config)
        assert request.content == pdf_material.content
        assert request.mime_type == "application/pdf"
        assert request.source_text == pdf_material.source_text

    def test_policy_schema_and_temperature(self, image_material, algebra_config):
        request = build_request(image_material, algebra_config)
        assert request.system_instruction == SYSTEM_INSTRUCTION
        assert request.response_schema == QUIZ_RESPONSE_SCHEMA
        assert request.temperature == settings.GEMINI_TEMPERATURE
        assert request.source_text is None

    def test_instruction_names_level_language_and_focus(self, image_material, algebra_config):
        instruction = build_request(image_material, algebra_config).instruction
        assert "attached image" in instruction
        assert "GCE O/L" in instruction
        assert "English" in instruction
        assert "exactly 4 options" in instruction
        assert "Focus specifically on: Algebra" in instruction

    def test_blank_focus_topics_are_omitted(self, image_material):
        config = GenerationConfig(academic_level=AcademicLevel.GRADE_3, language=Language.SINHALA, focus_topics="   ")
        instruction = build_instruction(image_material, config)
        assert "Focus specifically on" not in instruction
        assert "Sinhala" in instruction
        assert "exactly 3 options" in instruction

    def test_schema_requires_core_question_fields(self):
        required = QUIZ_RESPONSE_SCHEMA["properties"]["questions"]["items"]["required"]
        assert {"question_id", "stem", "options", "correct_answer_index", "explanation"} <= set(required)
        assert "image_description" not in required
