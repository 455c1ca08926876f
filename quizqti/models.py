# Description: Question records, quiz documents and diagnostics shared by the ingestor,
# validator, QTI encoder and QTI decoder.
# file name: models.py

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union


class QuestionType(Enum):
    """Question type codes as they appear in the first cell of a row"""
    MC = "MC"
    MA = "MA"
    TF = "TF"
    FIB = "FIB"
    ESS = "ESS"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @property
    def qti_type(self) -> str:
        """Canvas ``question_type`` metadata value; FIB defaults to short answer"""
        return _QTI_TYPES[self]

    @property
    def record_class(self) -> type:
        return _TYPE_RECORDS[self]

    @classmethod
    def from_code(cls, code: str) -> Optional["QuestionType"]:
        """Return the type for a code such as 'mc' or ' FIB ', or None"""
        if code is None:
            return None
        try:
            return cls(str(code).strip().upper())
        except ValueError:
            return None


_TYPE_LABELS = {
    QuestionType.MC: "Multiple Choice",
    QuestionType.MA: "Multiple Answer",
    QuestionType.TF: "True/False",
    QuestionType.FIB: "Fill-in-the-Blank",
    QuestionType.ESS: "Essay",
}


@dataclass(frozen=True)
class SourceRow:
    """Where a record came from: 1-based row number and the raw cells"""
    number: Optional[int]
    cells: Tuple[str, ...]
    type_tag: Optional[str] = None

    @property
    def payload_start(self) -> int:
        """Index of the first cell after the prompt"""
        return 2 if self.type_tag else 1


@dataclass(frozen=True)
class Option:
    text: str
    is_correct: bool
    # raw tag cell the option was read from; None for decoded options
    tag: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class MultipleChoice:
    prompt: str
    options: Tuple[Option, ...] = ()
    source: Optional[SourceRow] = field(default=None, compare=False)


@dataclass(frozen=True)
class MultipleAnswer:
    prompt: str
    options: Tuple[Option, ...] = ()
    source: Optional[SourceRow] = field(default=None, compare=False)


@dataclass(frozen=True)
class TrueFalse:
    prompt: str
    answer: Optional[bool]
    answer_cell: Optional[str] = field(default=None, compare=False)
    source: Optional[SourceRow] = field(default=None, compare=False)


@dataclass(frozen=True)
class FillInBlank:
    prompt: str
    acceptable_answers: Tuple[str, ...] = ()
    source: Optional[SourceRow] = field(default=None, compare=False)


@dataclass(frozen=True)
class Essay:
    prompt: str
    source: Optional[SourceRow] = field(default=None, compare=False)


QuestionRecord = Union[MultipleChoice, MultipleAnswer, TrueFalse, FillInBlank, Essay]

_RECORD_TYPES = {
    MultipleChoice: QuestionType.MC,
    MultipleAnswer: QuestionType.MA,
    TrueFalse: QuestionType.TF,
    FillInBlank: QuestionType.FIB,
    Essay: QuestionType.ESS,
}
_TYPE_RECORDS = {qtype: cls for cls, qtype in _RECORD_TYPES.items()}

_QTI_TYPES = {
    QuestionType.MC: "multiple_choice_question",
    QuestionType.MA: "multiple_answers_question",
    QuestionType.TF: "true_false_question",
    QuestionType.FIB: "short_answer_question",
    QuestionType.ESS: "essay_question",
}


def question_type_of(record: QuestionRecord) -> QuestionType:
    """Return the type code of a record. Raises TypeError for anything else."""
    try:
        return _RECORD_TYPES[type(record)]
    except KeyError:
        raise TypeError(f"Not a question record: {type(record).__name__}")


def correct_options(record: Union[MultipleChoice, MultipleAnswer]) -> Tuple[Option, ...]:
    return tuple(option for option in record.options if option.is_correct)


@dataclass(frozen=True)
class QuizDocument:
    """An ordered, immutable set of questions plus quiz-level text.

    ``id`` is normally left empty and generated by the encoder on every export.
    """
    title: str
    description: str = ""
    questions: Tuple[QuestionRecord, ...] = ()
    id: Optional[str] = None

    def __post_init__(self):
        # accept any iterable of records but always store a tuple
        if not isinstance(self.questions, tuple):
            object.__setattr__(self, "questions", tuple(self.questions))


def replace_question(document: QuizDocument, index: int, record: QuestionRecord) -> QuizDocument:
    """Return a new document with the question at ``index`` replaced"""
    question_type_of(record)
    questions = list(document.questions)
    questions[index] = record
    return replace(document, questions=tuple(questions))


def append_question(document: QuizDocument, record: QuestionRecord) -> QuizDocument:
    question_type_of(record)
    return replace(document, questions=document.questions + (record,))


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A renderer-agnostic validation or decode finding"""
    severity: Severity
    field: str
    message: str
    row: Optional[int] = None
    column: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def describe(self) -> str:
        location = ""
        if self.row is not None:
            location = f"Row {self.row}"
            if self.column is not None:
                location += f", Column {self.column}"
            location += ": "
        return f"{location}{self.message}"


def error(field: str, message: str, row: Optional[int] = None, column: Optional[int] = None) -> Diagnostic:
    return Diagnostic(Severity.ERROR, field, message, row, column)


def warning(field: str, message: str, row: Optional[int] = None, column: Optional[int] = None) -> Diagnostic:
    return Diagnostic(Severity.WARNING, field, message, row, column)


def has_blocking(diagnostics) -> bool:
    """True if any diagnostic is an error"""
    return any(d.is_error for d in diagnostics)
