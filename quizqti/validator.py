# Description: Validation rules for question records and quiz documents. Every function here is
# pure: the same input always yields the same list of diagnostics.
# file name: validator.py

from typing import Iterable, List, Optional, Sequence

from quizqti.config import QuizSettings, load_settings
from quizqti.identifiers import is_valid_identifier
from quizqti.models import (
    Diagnostic,
    Essay,
    FillInBlank,
    MultipleAnswer,
    MultipleChoice,
    QuizDocument,
    TrueFalse,
    error,
    has_blocking,
    question_type_of,
    warning,
)
from quizqti.row_ingestor import ingest_row, normalize_tag

__all__ = [
    "validate",
    "validate_row",
    "validate_rows",
    "validate_document",
    "has_blocking",
]


def _row_of(record) -> Optional[int]:
    return record.source.number if record.source is not None else None


def _validate_option_tags(record, settings: QuizSettings) -> List[Diagnostic]:
    """Options read from a row must carry a correct/incorrect tag next to their text"""
    diagnostics = []
    source = record.source
    if source is None:
        return diagnostics

    cells = source.cells
    row = source.number
    for i in range(source.payload_start, len(cells), 2):
        if not cells[i]:
            continue
        tag = cells[i + 1] if i + 1 < len(cells) else ""
        # columns are reported 1-based, pointing at the tag cell
        column = i + 2
        if not tag:
            diagnostics.append(error(
                "options", f"Choice \"{cells[i]}\" is missing its tag; "
                "choice must be tagged as \"correct\" or \"incorrect\"", row, column))
        elif normalize_tag(tag, settings) is None:
            diagnostics.append(error(
                "options", f"Invalid tag \"{tag}\": choice must be tagged as \"correct\" or \"incorrect\"",
                row, column))
    return diagnostics


def _validate_choices(record, settings: QuizSettings) -> List[Diagnostic]:
    row = _row_of(record)
    label = question_type_of(record).label
    diagnostics = _validate_option_tags(record, settings)

    if len(record.options) < settings.min_choices:
        diagnostics.append(error(
            "options", f"{label} question must have at least {settings.min_choices} choices", row))

    correct = sum(1 for option in record.options if option.is_correct)
    if isinstance(record, MultipleChoice):
        if correct != 1:
            diagnostics.append(error(
                "options", f"Multiple Choice question must have exactly 1 correct answer (found {correct})", row))
    elif isinstance(record, MultipleAnswer):
        if correct < settings.multiple_answer_min_correct:
            diagnostics.append(error(
                "options", f"Multiple Answer question must have at least "
                f"{settings.multiple_answer_min_correct} correct answer", row))
        elif correct < settings.multiple_answer_recommended_correct:
            diagnostics.append(warning(
                "options", f"Multiple Answer question should have at least "
                f"{settings.multiple_answer_recommended_correct} correct answers (found {correct})", row))
    return diagnostics


def _validate_true_false(record: TrueFalse) -> List[Diagnostic]:
    row = _row_of(record)
    column = record.source.payload_start + 1 if record.source is not None else None

    if record.source is None:
        # decoded or hand-built records carry no raw cell
        if not isinstance(record.answer, bool):
            return [error("answer", "missing true/false answer", row)]
        return []

    if not record.answer_cell:
        return [error("answer", "missing true/false answer", row, column)]
    if not isinstance(record.answer, bool):
        return [error("answer", f"invalid true/false value \"{record.answer_cell}\"", row, column)]
    return []


def _validate_fill_in_blank(record: FillInBlank) -> List[Diagnostic]:
    answers = [answer for answer in record.acceptable_answers if answer and answer.strip()]
    diagnostics = []
    if not answers:
        diagnostics.append(error(
            "acceptable_answers", "Fill-in-the-Blank question must have at least 1 acceptable answer",
            _row_of(record)))
    elif len(answers) != len(record.acceptable_answers):
        diagnostics.append(error(
            "acceptable_answers", "Fill-in-the-Blank answers cannot be empty", _row_of(record)))
    return diagnostics


def _validate_essay(record: Essay) -> List[Diagnostic]:
    source = record.source
    if source is None:
        return []
    extra = [cell for cell in source.cells[source.payload_start:] if cell]
    if extra:
        return [warning(
            "answers", f"Essay question has {len(extra)} extra answer cell(s) that will be ignored",
            source.number, source.payload_start + 1)]
    return []


def validate(record, settings: Optional[QuizSettings] = None) -> List[Diagnostic]:
    """Return the diagnostics for one question record. Raises TypeError for non-records."""
    settings = settings or load_settings()
    question_type_of(record)
    diagnostics = []

    if not record.prompt or not record.prompt.strip():
        diagnostics.append(error("prompt", "Question text cannot be empty", _row_of(record)))

    if isinstance(record, (MultipleChoice, MultipleAnswer)):
        diagnostics.extend(_validate_choices(record, settings))
    elif isinstance(record, TrueFalse):
        diagnostics.extend(_validate_true_false(record))
    elif isinstance(record, FillInBlank):
        diagnostics.extend(_validate_fill_in_blank(record))
    elif isinstance(record, Essay):
        diagnostics.extend(_validate_essay(record))
    else:
        raise TypeError(f"Not a question record: {type(record).__name__}")

    return diagnostics


def validate_row(cells: Sequence, row_number: Optional[int] = None,
                 settings: Optional[QuizSettings] = None) -> List[Diagnostic]:
    """Ingest a raw row and validate the result. Ingest failures become errors."""
    settings = settings or load_settings()
    result = ingest_row(cells, row_number=row_number, settings=settings)
    if not result.ok:
        column = 1 if result.error and result.error.startswith("Unrecognized") else None
        return [error("row", result.error, row_number, column)]
    return validate(result.record, settings)


def validate_rows(rows: Iterable[Sequence], settings: Optional[QuizSettings] = None,
                  first_row_number: int = 1) -> List[Diagnostic]:
    """Validate every non-blank row; rows are numbered from ``first_row_number``"""
    settings = settings or load_settings()
    diagnostics = []
    for row_number, row in enumerate(rows, start=first_row_number):
        if not row or all(cell is None or not str(cell).strip() for cell in row):
            continue
        diagnostics.extend(validate_row(row, row_number, settings))
    return diagnostics


def validate_document(document: QuizDocument, settings: Optional[QuizSettings] = None) -> List[Diagnostic]:
    """Validate a whole quiz. Diagnostics without a source row carry the question position."""
    settings = settings or load_settings()
    diagnostics = []

    if not document.title or not document.title.strip():
        diagnostics.append(warning(
            "title", f"Quiz title is empty; \"{settings.default_title}\" will be used"))
    if not document.questions:
        diagnostics.append(error("questions", "Quiz must contain at least one question"))
    if document.id and not is_valid_identifier(document.id):
        diagnostics.append(error(
            "id", f"Quiz identifier \"{document.id}\" may only use letters, digits, '_', '.' and '-'"))

    for position, record in enumerate(document.questions, start=1):
        for diagnostic in validate(record, settings):
            if diagnostic.row is None:
                diagnostic = Diagnostic(diagnostic.severity, diagnostic.field, diagnostic.message,
                                        position, diagnostic.column)
            diagnostics.append(diagnostic)
    return diagnostics
