# Description: Converts a quiz document into a QTI 1.2 package (IMS manifest, Canvas assessment
# metadata and the questestinterop questions file). Supports Multiple Choice, Multiple Answer,
# True/False, Fill-in-the-Blank and Essay questions.
# file name: qti_encoder.py

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Dict, List, Optional, Union
from xml.dom import minidom
from xml.parsers.expat import ExpatError

from quizqti.config import QuizSettings, load_package_template, load_question_templates, load_settings
from quizqti.errors import ExportBlockedError, QTIEncodingError
from quizqti.identifiers import IdentifierSource, RandomIdentifierSource
from quizqti.models import (
    Essay,
    FillInBlank,
    MultipleChoice,
    QuestionRecord,
    QuestionType,
    QuizDocument,
    TrueFalse,
    has_blocking,
    question_type_of,
)
from quizqti.validator import validate_document
from quizqti.xml_utils import escape_xml, prettify, to_html_paragraph

logger = logging.getLogger(__name__)

FULL_CREDIT = "100"


class FibStyle(Enum):
    """Which Canvas question type fill-in-the-blank records are exported as"""
    SHORT_ANSWER = "short_answer_question"
    MULTIPLE_BLANKS = "fill_in_multiple_blanks_question"

    @classmethod
    def from_setting(cls, value: Optional[str]) -> "FibStyle":
        if not value:
            return cls.SHORT_ANSWER
        key = str(value).strip().lower()
        for style in cls:
            if key in (style.name.lower(), style.value):
                return style
        raise ValueError(f"Unknown fill-in-the-blank style: {value}")


@dataclass(frozen=True)
class QTIPackage:
    """The three XML artifacts of one export"""
    quiz_id: str
    title: str
    manifest_xml: str
    assessment_meta_xml: str
    questions_xml: str
    question_count: int = 0

    @property
    def questions_path(self) -> str:
        return f"{self.quiz_id}/questions.xml"

    @property
    def assessment_meta_path(self) -> str:
        return f"{self.quiz_id}/assessment_meta.xml"

    def files(self) -> Dict[str, str]:
        """Archive path -> XML text"""
        return {
            "imsmanifest.xml": self.manifest_xml,
            self.assessment_meta_path: self.assessment_meta_xml,
            self.questions_path: self.questions_xml,
        }


def _format_points(value: float) -> str:
    return f"{value:g}"


def _xml_bool(value: bool) -> str:
    return "true" if value else "false"


class QTIEncoder:
    """Encode question records into QTI 1.2 items and whole packages.

    ``ids`` may be an ``IdentifierSource`` (used as-is) or a zero-argument factory.
    By default every ``encode`` call gets a fresh ``RandomIdentifierSource``.
    """

    def __init__(self, settings: Optional[QuizSettings] = None,
                 ids: Optional[Union[IdentifierSource, Callable[[], IdentifierSource]]] = None,
                 fib_style: Optional[Union[FibStyle, str]] = None):
        self.settings = settings or load_settings()
        self._ids = ids
        if fib_style is None:
            fib_style = FibStyle.from_setting(self.settings.fib_style)
        elif not isinstance(fib_style, FibStyle):
            fib_style = FibStyle.from_setting(fib_style)
        self.fib_style = fib_style
        self.templates = load_question_templates()

    def new_identifier_source(self) -> IdentifierSource:
        if self._ids is None:
            return RandomIdentifierSource(self.settings.identifier_prefixes)
        if isinstance(self._ids, IdentifierSource):
            return self._ids
        return self._ids()

    def qti_type(self, record: QuestionRecord) -> str:
        qtype = question_type_of(record)
        if qtype == QuestionType.FIB:
            return self.fib_style.value
        return qtype.qti_type

    # ------------------------------------------------------------------ items

    def _metadata(self, fields: List[tuple]) -> str:
        return "\n".join(
            self.templates["metadata_field"].format(label=label, entry=escape_xml(entry))
            for label, entry in fields
        )

    def _condition(self, condition: str, score: Optional[str] = FULL_CREDIT) -> str:
        setvar = ""
        if score is not None:
            setvar = f'\n      <setvar action="Set" varname="SCORE">{score}</setvar>'
        return self.templates["respcondition"].format(condition=condition, setvar=setvar)

    @staticmethod
    def _varequal(response_id: str, value: str, case_insensitive: bool = False) -> str:
        case = ' case="No"' if case_insensitive else ""
        return f'        <varequal respident="{response_id}"{case}>{escape_xml(value)}</varequal>'

    def _choice_response(self, response_id: str, labels: List[tuple], cardinality: str) -> str:
        rendered = "\n".join(
            self.templates["response_label"].format(label_id=label_id, text=to_html_paragraph(text))
            for label_id, text in labels
        )
        return self.templates["response_lid"].format(
            response_id=response_id, cardinality=cardinality, labels=rendered)

    def _encode_choices(self, record, ids: IdentifierSource):
        response_id = ids.response_id()
        labels = [(ids.answer_id(), option) for option in record.options]
        correct = [label_id for label_id, option in labels if option.is_correct]

        if isinstance(record, MultipleChoice):
            if len(correct) != 1:
                raise ValueError(f"Multiple Choice question needs exactly 1 correct answer, found {len(correct)}")
            cardinality = "Single"
            conditions = self._condition(self._varequal(response_id, correct[0]))
        else:
            if not correct:
                raise ValueError("Multiple Answer question has no correct answer")
            cardinality = "Multiple"
            parts = [self._varequal(response_id, label_id) for label_id in correct]
            for label_id, option in labels:
                if not option.is_correct:
                    parts.append("        <not>\n  {}\n        </not>".format(
                        self._varequal(response_id, label_id)))
            conditions = self._condition("        <and>\n{}\n        </and>".format(
                "\n".join("  " + part for part in parts)))

        response = self._choice_response(
            response_id, [(label_id, option.text) for label_id, option in labels], cardinality)
        answer_ids = ",".join(label_id for label_id, _ in labels)
        return response, conditions, answer_ids

    def _encode_true_false(self, record: TrueFalse, ids: IdentifierSource):
        if not isinstance(record.answer, bool):
            raise ValueError("True/False question has no true/false answer")
        response_id = ids.response_id()
        true_id = ids.answer_id()
        false_id = ids.answer_id()
        response = self._choice_response(response_id, [(true_id, "true"), (false_id, "false")], "Single")
        conditions = self._condition(self._varequal(response_id, true_id if record.answer else false_id))
        return response, conditions, f"{true_id},{false_id}"

    def _free_text_response(self, ids: IdentifierSource):
        response_id = ids.response_id()
        response = self.templates["response_str"].format(response_id=response_id, label_id=ids.answer_id())
        return response_id, response

    def _encode_fill_in_blank(self, record: FillInBlank, ids: IdentifierSource):
        answers = [answer.strip() for answer in record.acceptable_answers if answer and answer.strip()]
        if not answers:
            raise ValueError("Fill-in-the-Blank question has no acceptable answers")
        response_id, response = self._free_text_response(ids)
        conditions = "\n".join(
            self._condition(self._varequal(response_id, answer, case_insensitive=True))
            for answer in answers
        )
        return response, conditions, None

    def _encode_essay(self, record: Essay, ids: IdentifierSource):
        _, response = self._free_text_response(ids)
        # ungraded: a single catch-all condition without a score
        conditions = self._condition("        <other/>", score=None)
        return response, conditions, None

    def encode_item(self, record: QuestionRecord, ids: IdentifierSource) -> str:
        """Return the ``<item>`` element for one record"""
        qtype = question_type_of(record)
        item_id = ids.item_id()

        if qtype in (QuestionType.MC, QuestionType.MA):
            response, conditions, answer_ids = self._encode_choices(record, ids)
        elif qtype == QuestionType.TF:
            response, conditions, answer_ids = self._encode_true_false(record, ids)
        elif qtype == QuestionType.FIB:
            response, conditions, answer_ids = self._encode_fill_in_blank(record, ids)
        elif qtype == QuestionType.ESS:
            response, conditions, answer_ids = self._encode_essay(record, ids)
        else:
            raise ValueError(f"Unsupported question type: {qtype}")

        item_prefix = ids.prefixes.get("item", "")
        ref_token = item_id[len(item_prefix):] if item_id.startswith(item_prefix) else item_id
        fields = [
            ("question_type", self.qti_type(record)),
            ("points_possible", _format_points(self.settings.points_per_question)),
        ]
        if answer_ids is not None:
            fields.append(("original_answer_ids", answer_ids))
        fields.append(("assessment_question_identifierref", f"question_ref_{ref_token}"))

        return self.templates["item"].format(
            ident=item_id,
            title="Question",
            metadata_fields=self._metadata(fields),
            prompt=to_html_paragraph(record.prompt),
            response=response,
            conditions=conditions,
        )

    # ---------------------------------------------------------------- package

    def _check_well_formed(self, name: str, xml_text: str):
        try:
            minidom.parseString(xml_text.encode("utf-8"))
        except ExpatError as e:
            raise QTIEncodingError(f"Generated {name} is not well-formed XML: {e}") from e

    def encode(self, document: QuizDocument, ids: Optional[IdentifierSource] = None,
               created: Optional[str] = None) -> QTIPackage:
        """Encode a whole document. Any failure raises QTIEncodingError; nothing partial is returned."""
        title = document.title.strip() if document.title and document.title.strip() else self.settings.default_title
        try:
            ids = ids or self.new_identifier_source()
            quiz_id = ids.reserve(document.id) if document.id else ids.quiz_id()

            items = []
            for position, record in enumerate(document.questions, start=1):
                try:
                    items.append(self.encode_item(record, ids))
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Question {position}: {e}") from e

            indented = "\n".join(
                "\n".join("      " + line if line else line for line in item.split("\n"))
                for item in items
            )
            questions_xml = prettify(load_package_template("questions.xml").format(
                quiz_id=quiz_id,
                title=escape_xml(title),
                max_attempts=self.settings.max_attempts_metadata,
                items=indented,
            ))

            count = len(document.questions)
            meta_xml = load_package_template("assessment_meta.xml").format(
                quiz_id=quiz_id,
                title=escape_xml(title),
                description=escape_xml(document.description or ""),
                shuffle_answers=_xml_bool(self.settings.shuffle_answers),
                scoring_policy=escape_xml(self.settings.scoring_policy),
                quiz_type=escape_xml(self.settings.quiz_type),
                points_possible=f"{count * self.settings.points_per_question:.1f}",
                show_correct_answers=_xml_bool(self.settings.show_correct_answers),
                allowed_attempts=self.settings.allowed_attempts,
                one_question_at_a_time=_xml_bool(self.settings.one_question_at_a_time),
                cant_go_back=_xml_bool(self.settings.cant_go_back),
                assignment_id=ids.assignment_id(),
                assignment_group_id=ids.assignment_group_id(),
            )

            manifest_xml = load_package_template("manifest.xml").format(
                quiz_id=quiz_id,
                title=escape_xml(title),
                created=created or date.today().isoformat(),
                questions_href=f"{quiz_id}/questions.xml",
                meta_href=f"{quiz_id}/assessment_meta.xml",
            )

            for name, xml_text in (("imsmanifest.xml", manifest_xml),
                                   ("assessment_meta.xml", meta_xml),
                                   ("questions.xml", questions_xml)):
                self._check_well_formed(name, xml_text)

        except QTIEncodingError:
            logger.error("QTI export of '%s' failed", title, exc_info=True)
            raise
        except Exception as e:
            logger.error("QTI export of '%s' failed: %s", title, e)
            raise QTIEncodingError(f"Failed to encode quiz '{title}': {e}") from e

        logger.info("Encoded quiz %s with %d question(s)", quiz_id, count)
        return QTIPackage(
            quiz_id=quiz_id,
            title=title,
            manifest_xml=manifest_xml,
            assessment_meta_xml=meta_xml,
            questions_xml=questions_xml,
            question_count=count,
        )


def export_package(document: QuizDocument, encoder: Optional[QTIEncoder] = None,
                   settings: Optional[QuizSettings] = None, **encode_kwargs) -> QTIPackage:
    """Validate then encode. Raises ExportBlockedError while any error-level diagnostic exists."""
    encoder = encoder or QTIEncoder(settings=settings)
    diagnostics = validate_document(document, encoder.settings)
    if has_blocking(diagnostics):
        logger.warning("Export of '%s' blocked by validation errors", document.title)
        raise ExportBlockedError(diagnostics)
    return encoder.encode(document, **encode_kwargs)
