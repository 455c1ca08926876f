# Description: Turns spreadsheet-style rows (lists of cell strings) into typed question records.
# Rows may start with an explicit type tag (MC, MA, TF, FIB, ESS); untagged rows are inferred.
# file name: row_ingestor.py

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from quizqti.config import QuizSettings, load_settings
from quizqti.errors import EmptyInputError
from quizqti.models import (
    Diagnostic,
    Essay,
    FillInBlank,
    MultipleAnswer,
    MultipleChoice,
    Option,
    QuestionRecord,
    QuestionType,
    SourceRow,
    TrueFalse,
    warning,
)

logger = logging.getLogger(__name__)

TAG_SHAPE_RE = re.compile(r"^[A-Za-z]{2,3}$")
# only an upper-case code such as "MX" is treated as a mistyped tag; "Sun" is a prompt
UNKNOWN_TAG_RE = re.compile(r"^[A-Z]{2,3}$")
BLANK_RE = re.compile(r"_{2,}|(?:^|\s)_(?=$|\s|[.,;:?!])")

# checked in order; first hit wins
SHEET_NAME_HINTS = [
    (("multiple answer", "multiple-answer", "multi answer", "select all"), QuestionType.MA),
    (("multiple choice", "multiple-choice", "multichoice"), QuestionType.MC),
    (("true/false", "true false", "true-false", "truefalse", "t/f"), QuestionType.TF),
    (("fill-in", "fill in", "fill the blank", "blank"), QuestionType.FIB),
    (("essay", "open ended", "open-ended", "long answer"), QuestionType.ESS),
]


def _cell(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _trim_trailing(cells: List[str]) -> List[str]:
    while cells and not cells[-1]:
        cells.pop()
    return cells


def normalize_tag(value, settings: Optional[QuizSettings] = None) -> Optional[str]:
    """Map a tag cell to 'correct' or 'incorrect', tolerating configured typos"""
    if value is None:
        return None
    settings = settings or load_settings()
    key = str(value).strip().lower()
    if not key:
        return None
    return settings.tag_aliases.get(key)


def type_from_sheet_name(name: Optional[str]) -> Optional[QuestionType]:
    """Guess a question type from a worksheet name such as 'Multiple Choice' or 'TRUE/FALSE'"""
    if not name:
        return None
    lowered = str(name).strip().lower()
    code = QuestionType.from_code(lowered)
    if code is not None:
        return code
    for needles, qtype in SHEET_NAME_HINTS:
        if any(needle in lowered for needle in needles):
            return qtype
    return None


def coerce_true_false(value: Optional[str], allow_shorthand: bool = False,
                      settings: Optional[QuizSettings] = None) -> Optional[bool]:
    """Return True/False for a true/false-shaped cell, otherwise None"""
    if value is None:
        return None
    settings = settings or load_settings()
    key = str(value).strip().lower()
    if key in settings.true_false_literals:
        return settings.true_false_literals[key]
    if allow_shorthand and key in settings.true_false_shorthand:
        return settings.true_false_shorthand[key]
    return None


@dataclass(frozen=True)
class IngestResult:
    """Outcome of ingesting one row: a record or an error message, never both"""
    record: Optional[QuestionRecord] = None
    error: Optional[str] = None
    row_number: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class IngestBatch:
    records: Tuple[QuestionRecord, ...]
    diagnostics: Tuple[Diagnostic, ...]
    skipped: int = 0


def _infer_type(cells: List[str], settings: QuizSettings) -> Tuple[Optional[QuestionType], bool]:
    """Infer the type of an untagged row. Returns (type, inferred_from_true_false_cell)."""
    prompt = cells[0] if cells else ""
    payload = cells[1:]

    tags = [normalize_tag(cell, settings) for cell in payload]
    correct_count = tags.count("correct")
    if correct_count or "incorrect" in tags:
        return (QuestionType.MA if correct_count > 1 else QuestionType.MC), False

    if payload and coerce_true_false(payload[0], allow_shorthand=True, settings=settings) is not None:
        return QuestionType.TF, True

    non_empty = [cell for cell in cells if cell]
    if len(non_empty) == 1 and len(prompt) > settings.essay_min_prompt_length:
        return QuestionType.ESS, False

    if BLANK_RE.search(prompt):
        return QuestionType.FIB, False

    if len(cells) > 2:
        return QuestionType.MC, False

    return None, False


def _read_options(cells: List[str], start: int, settings: QuizSettings) -> Tuple[Option, ...]:
    options = []
    for i in range(start, len(cells), 2):
        text = cells[i]
        if not text:
            continue
        tag = cells[i + 1] if i + 1 < len(cells) and cells[i + 1] else None
        options.append(Option(text=text, is_correct=normalize_tag(tag, settings) == "correct", tag=tag))
    return tuple(options)


def _build_record(qtype: QuestionType, prompt: str, cells: List[str], start: int,
                  source: SourceRow, allow_shorthand: bool,
                  settings: QuizSettings) -> QuestionRecord:
    if qtype == QuestionType.MC:
        return MultipleChoice(prompt=prompt, options=_read_options(cells, start, settings), source=source)
    elif qtype == QuestionType.MA:
        return MultipleAnswer(prompt=prompt, options=_read_options(cells, start, settings), source=source)
    elif qtype == QuestionType.TF:
        answer_cell = cells[start] if start < len(cells) and cells[start] else None
        answer = coerce_true_false(answer_cell, allow_shorthand=allow_shorthand, settings=settings)
        return TrueFalse(prompt=prompt, answer=answer, answer_cell=answer_cell, source=source)
    elif qtype == QuestionType.FIB:
        answers = tuple(cell for cell in cells[start:] if cell)
        return FillInBlank(prompt=prompt, acceptable_answers=answers, source=source)
    elif qtype == QuestionType.ESS:
        return Essay(prompt=prompt, source=source)
    else:
        raise ValueError(f"Unsupported question type: {qtype}")


def ingest_row(cells: Sequence, row_number: Optional[int] = None,
               sheet_type: Optional[Union[QuestionType, str]] = None,
               settings: Optional[QuizSettings] = None) -> IngestResult:
    """Convert one raw row into a question record.

    Malformed rows produce an ``IngestResult`` with ``error`` set; nothing is raised.
    ``sheet_type`` (a type or a sheet name) is used when the row carries no tag.
    """
    settings = settings or load_settings()
    if isinstance(sheet_type, str):
        sheet_type = type_from_sheet_name(sheet_type)

    cells = _trim_trailing([_cell(c) for c in (cells or [])])
    if not cells:
        return IngestResult(error="Row is empty", row_number=row_number)

    first = cells[0]
    tagged_type = QuestionType.from_code(first) if TAG_SHAPE_RE.match(first) else None
    allow_shorthand = False

    if tagged_type is not None:
        qtype, prompt_index, type_tag = tagged_type, 1, first
    elif UNKNOWN_TAG_RE.match(first) and len(cells) >= 2:
        return IngestResult(error=f"Unrecognized question type tag '{first}'", row_number=row_number)
    else:
        prompt_index, type_tag = 0, None
        if sheet_type is not None:
            qtype = sheet_type
        else:
            qtype, allow_shorthand = _infer_type(cells, settings)

    prompt = cells[prompt_index] if prompt_index < len(cells) else ""
    if not prompt:
        return IngestResult(error="Row has no question prompt", row_number=row_number)
    if qtype is None:
        return IngestResult(error="Could not determine question type", row_number=row_number)

    source = SourceRow(number=row_number, cells=tuple(cells), type_tag=type_tag)
    record = _build_record(qtype, prompt, cells, prompt_index + 1, source, allow_shorthand, settings)
    logger.debug("Row %s ingested as %s", row_number, qtype.value)
    return IngestResult(record=record, row_number=row_number)


def _is_blank(row) -> bool:
    return not row or all(not _cell(c) for c in row)


def ingest_rows(rows: Iterable[Sequence], sheet_type: Optional[Union[QuestionType, str]] = None,
                settings: Optional[QuizSettings] = None, first_row_number: int = 1) -> IngestBatch:
    """Ingest a batch of rows. Failing rows are skipped and reported as warnings."""
    rows = list(rows)
    if not rows:
        raise EmptyInputError("No rows supplied")

    settings = settings or load_settings()
    records = []
    diagnostics = []
    skipped = 0

    for row_number, row in enumerate(rows, start=first_row_number):
        if _is_blank(row):
            continue
        result = ingest_row(row, row_number=row_number, sheet_type=sheet_type, settings=settings)
        if result.ok:
            records.append(result.record)
        else:
            skipped += 1
            logger.debug("Row %s skipped: %s", row_number, result.error)
            diagnostics.append(warning("row", f"Row skipped: {result.error}", row=row_number))

    logger.info("Ingested %d question(s) from %d row(s), %d skipped", len(records), len(rows), skipped)
    return IngestBatch(records=tuple(records), diagnostics=tuple(diagnostics), skipped=skipped)
