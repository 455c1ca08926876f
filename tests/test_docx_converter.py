"""Tests for the DOCX quiz paper."""

import io

import pytest
from docx import Document

from quizqti.docx_converter import QuizToDocxConverter
from quizqti.models import FillInBlank, MultipleChoice, Option, TrueFalse


def _texts(docx_bytes):
    return [p.text for p in Document(io.BytesIO(docx_bytes)).paragraphs]


class TestQuizToDocxConverter:

    def test_paper_layout(self, all_records):
        docx_bytes = QuizToDocxConverter(all_records, title="Unit 1", description="Closed book").generate_docx_bytes()
        assert docx_bytes[:2] == b"PK"
        texts = _texts(docx_bytes)
        assert texts[0] == "Unit 1"
        assert "Closed book" in texts
        assert "1. 2+2=?" in texts
        assert "A. 4" in texts
        assert "C. 22" in texts
        assert "  (Select all that apply)" in texts
        assert "  True" in texts and "  False" in texts
        assert "Answer Key" not in texts

    def test_fill_in_blank_gets_a_blank(self):
        records = [FillInBlank("Capital of France is ___", ("Paris",)),
                   FillInBlank("Name the largest planet", ("Jupiter",))]
        texts = _texts(QuizToDocxConverter(records).generate_docx_bytes())
        assert "1. Capital of France is " + "_" * 15 in texts
        assert "2. Name the largest planet " + "_" * 15 in texts

    def test_answer_key(self, all_records):
        texts = _texts(QuizToDocxConverter(all_records, include_answers=True).generate_docx_bytes())
        key = texts[texts.index("Answer Key") + 1:]
        assert key == ["1. A", "2. A, B", "3. True", "4. Paris / paris", "5. (open response)"]

    def test_answer_text_edge_cases(self):
        assert QuizToDocxConverter.answer_text(TrueFalse("Undecided", None)) == "-"
        assert QuizToDocxConverter.answer_text(
            MultipleChoice("No key", (Option("a", False), Option("b", False)))) == "-"
        with pytest.raises(TypeError):
            QuizToDocxConverter.answer_text("not a record")

    def test_default_title(self):
        texts = _texts(QuizToDocxConverter([], title="").generate_docx_bytes())
        assert texts[0] == "Quiz Paper"
