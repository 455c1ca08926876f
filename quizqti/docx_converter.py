# Description: Renders decoded question records into a Microsoft Word (.docx) quiz paper.
# file name: docx_converter.py

import io
import logging
import re
from typing import Iterable, Optional

from docx import Document
from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.shared import Inches

from quizqti.models import (
    Essay,
    FillInBlank,
    MultipleAnswer,
    MultipleChoice,
    QuestionRecord,
    TrueFalse,
    question_type_of,
)

logger = logging.getLogger(__name__)

# Simple regex to find potential LaTeX blocks
LATEX_PATTERN = re.compile(r"(\$.*?\$|\$\$[\s\S]*?\$\$|\\\(.*?\\\)|\\\[[\s\S]*?\\\])")
BLANK_PATTERN = re.compile(r"_{2,}")

ESSAY_LINES = 5


class QuizToDocxConverter:
    """Converts a list of question records to a DOCX file."""

    def __init__(self, questions: Iterable[QuestionRecord], title: str = "Quiz Paper",
                 include_answers: bool = False, description: Optional[str] = None):
        """
        Initializes the converter.

        Args:
            questions: Question records, usually from the QTI decoder.
            title (str): The title for the generated Word document.
            include_answers (bool): Append an answer key after the questions.
            description (str): Optional instructions printed under the title.
        """
        self.questions = list(questions)
        self.title = title or "Quiz Paper"
        self.include_answers = include_answers
        self.description = description
        self.doc = Document()

    def _add_text_with_latex(self, paragraph, text):
        """Adds text to a paragraph, formatting detected LaTeX blocks as italic."""
        if not text:
            return
        parts = LATEX_PATTERN.split(text)
        for i, part in enumerate(parts):
            if not part:
                continue
            run = paragraph.add_run(part)
            if i % 2 == 1:
                run.italic = True

    def _add_options(self, options):
        for i, option in enumerate(options):
            p = self.doc.add_paragraph(style='List Paragraph')
            p.paragraph_format.left_indent = Inches(0.25)
            p.paragraph_format.first_line_indent = Inches(-0.25)  # Hanging indent
            p.add_run(f"{chr(65 + i)}. ").bold = True
            self._add_text_with_latex(p, option.text)

    def _add_question(self, record: QuestionRecord, number: int):
        p = self.doc.add_paragraph()
        p.add_run(f"{number}. ").bold = True

        if isinstance(record, FillInBlank):
            # prompts without an underscore run get a blank appended
            prompt = record.prompt if BLANK_PATTERN.search(record.prompt) else f"{record.prompt} ________"
            self._add_text_with_latex(p, BLANK_PATTERN.sub("_" * 15, prompt))
        else:
            self._add_text_with_latex(p, record.prompt)

        if isinstance(record, MultipleAnswer):
            note = self.doc.add_paragraph("  (Select all that apply)")
            note.runs[0].italic = True
            self._add_options(record.options)
        elif isinstance(record, MultipleChoice):
            self._add_options(record.options)
        elif isinstance(record, TrueFalse):
            self.doc.add_paragraph("  True", style='List Bullet')
            self.doc.add_paragraph("  False", style='List Bullet')
        elif isinstance(record, FillInBlank):
            pass
        elif isinstance(record, Essay):
            self.doc.add_paragraph("  Answer:")
            for _ in range(ESSAY_LINES):
                self.doc.add_paragraph("  " + "_" * 60)
        else:
            raise TypeError(f"Not a question record: {type(record).__name__}")

        self.doc.add_paragraph()  # Add space after the question

    @staticmethod
    def answer_text(record: QuestionRecord) -> str:
        """Answer key entry for one record"""
        question_type_of(record)
        if isinstance(record, (MultipleChoice, MultipleAnswer)):
            letters = [chr(65 + i) for i, option in enumerate(record.options) if option.is_correct]
            return ", ".join(letters) if letters else "-"
        elif isinstance(record, TrueFalse):
            if record.answer is None:
                return "-"
            return "True" if record.answer else "False"
        elif isinstance(record, FillInBlank):
            return " / ".join(record.acceptable_answers) if record.acceptable_answers else "-"
        else:
            return "(open response)"

    def _add_answer_key(self):
        self.doc.add_page_break()
        self.doc.add_heading("Answer Key", level=2)
        for number, record in enumerate(self.questions, start=1):
            self.doc.add_paragraph(f"{number}. {self.answer_text(record)}")

    def generate_docx_bytes(self) -> bytes:
        """Generates the DOCX file content as bytes."""
        heading = self.doc.add_heading(self.title, level=1)
        heading.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        if self.description:
            self.doc.add_paragraph(self.description)
        self.doc.add_paragraph()  # Add space after title

        for number, record in enumerate(self.questions, start=1):
            self._add_question(record, number)

        if self.include_answers:
            self._add_answer_key()

        logger.info("Rendered %d question(s) to DOCX", len(self.questions))
        file_stream = io.BytesIO()
        self.doc.save(file_stream)
        file_stream.seek(0)
        return file_stream.getvalue()
