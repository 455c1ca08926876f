# Description: Reads QTI 1.2 questions files (our own exports or third-party Canvas-style files)
# back into question records for preview and paper rendering.
# file name: qti_decoder.py

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple, Union

from quizqti.errors import QTIDecodeError
from quizqti.models import (
    Diagnostic,
    Essay,
    FillInBlank,
    MultipleAnswer,
    MultipleChoice,
    Option,
    QuestionRecord,
    QuestionType,
    TrueFalse,
    warning,
)
from quizqti.package import read_zip
from quizqti.xml_utils import clean_html, local_name

logger = logging.getLogger(__name__)

ITEM_RE = re.compile(r"<(?:\w+:)?item\b.*?</(?:\w+:)?item\s*>", re.DOTALL)

# substring of the question_type field -> type; order matters
QTI_TYPE_HINTS = [
    ("multiple_answers", QuestionType.MA),
    ("multiple_choice", QuestionType.MC),
    ("true_false", QuestionType.TF),
    ("short_answer", QuestionType.FIB),
    ("fill_in", QuestionType.FIB),
    ("essay", QuestionType.ESS),
]


@dataclass(frozen=True)
class DecodedItem:
    record: QuestionRecord
    warnings: Tuple[Diagnostic, ...] = ()
    ident: Optional[str] = None


@dataclass(frozen=True)
class DecodedQuiz:
    title: str
    description: str
    questions: Tuple[QuestionRecord, ...]
    warnings: Tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class _Condition:
    element: ET.Element
    action: Optional[str]
    score: float


# ---------------------------------------------------------------- tree helpers

def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if local_name(child.tag) == name]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def _descendants(element: ET.Element, name: str) -> List[ET.Element]:
    return [node for node in element.iter() if local_name(node.tag) == name]


def _first(element: ET.Element, name: str) -> Optional[ET.Element]:
    for node in element.iter():
        if local_name(node.tag) == name:
            return node
    return None


def _text(element: Optional[ET.Element]) -> str:
    if element is None:
        return ""
    return "".join(element.itertext())


def _material_text(element: Optional[ET.Element]) -> str:
    if element is None:
        return ""
    return clean_html(" ".join(_text(node) for node in _descendants(element, "mattext")))


def _parse(xml_text: Union[str, bytes]) -> ET.Element:
    if isinstance(xml_text, str):
        xml_text = xml_text.encode("utf-8")
    return ET.fromstring(xml_text)


# ------------------------------------------------------------ condition logic

def evaluate(node: ET.Element, selected: Set[str]) -> Optional[bool]:
    """Evaluate a condition tree against a selection set.

    Only varequal, not, and and the implicit conjunction of conditionvar are
    understood; anything else makes the result None (unusable).
    """
    name = local_name(node.tag)
    if name == "varequal":
        return _text(node).strip() in selected
    elif name == "not":
        operands = list(node)
        if len(operands) != 1:
            return None
        result = evaluate(operands[0], selected)
        return None if result is None else not result
    elif name in ("and", "conditionvar"):
        operands = list(node)
        if not operands:
            return None
        results = [evaluate(operand, selected) for operand in operands]
        if any(result is None for result in results):
            return None
        return all(results)
    else:
        return None


def _positive_values(node: ET.Element, negated: bool = False) -> List[str]:
    """varequal values that are not under a <not>, in document order"""
    values = []
    name = local_name(node.tag)
    if name == "varequal":
        if not negated:
            values.append(_text(node).strip())
        return values
    for child in node:
        values.extend(_positive_values(child, negated or name == "not"))
    return values


def _conditions(item: ET.Element) -> List[_Condition]:
    conditions = []
    resprocessing = _first(item, "resprocessing")
    if resprocessing is None:
        return conditions
    for respcondition in _descendants(resprocessing, "respcondition"):
        conditionvar = _child(respcondition, "conditionvar")
        if conditionvar is None:
            continue
        action, score = None, 0.0
        for setvar in _children(respcondition, "setvar"):
            action = (setvar.get("action") or "Set").strip()
            try:
                score = float(_text(setvar).strip() or 0)
            except ValueError:
                score = 0.0
        conditions.append(_Condition(conditionvar, action, score))
    return conditions


def _full_credit(conditions: List[_Condition]) -> List[_Condition]:
    return [c for c in conditions if c.action == "Set" and c.score > 0]


def _bool_from_label(text: str, index: int) -> bool:
    key = text.strip().lower()
    if key in ("true", "t", "yes"):
        return True
    if key in ("false", "f", "no"):
        return False
    return index == 0


class QTIDecoder:
    """Decode questestinterop documents into question records"""

    def question_type(self, item: ET.Element) -> Tuple[Optional[QuestionType], str]:
        """Return (type, raw question_type field) from the item metadata"""
        raw = ""
        for field in _descendants(item, "qtimetadatafield"):
            if _text(_child(field, "fieldlabel")).strip() == "question_type":
                raw = _text(_child(field, "fieldentry")).strip()
                break
        lowered = raw.lower()
        for needle, qtype in QTI_TYPE_HINTS:
            if needle in lowered:
                return qtype, raw
        return None, raw

    def infer_type(self, item: ET.Element) -> Optional[QuestionType]:
        response_lid = _first(item, "response_lid")
        if response_lid is not None:
            if (response_lid.get("rcardinality") or "").lower() == "multiple":
                return QuestionType.MA
            labels = [_material_text(label).lower() for label in _descendants(response_lid, "response_label")]
            if sorted(labels) == ["false", "true"]:
                return QuestionType.TF
            return QuestionType.MC
        if _first(item, "response_str") is not None:
            scored = any(_positive_values(c.element) for c in _conditions(item) if c.score > 0)
            return QuestionType.FIB if scored else QuestionType.ESS
        return None

    def _prompt(self, item: ET.Element) -> str:
        presentation = _first(item, "presentation")
        if presentation is None:
            return ""
        materials = _children(presentation, "material")
        if materials:
            texts = [_material_text(material) for material in materials]
            return "\n".join(text for text in texts if text)
        # some exporters wrap the prompt in a flow element
        for material in _descendants(presentation, "material"):
            return _material_text(material)
        return ""

    def _labels(self, item: ET.Element) -> List[Tuple[str, str]]:
        labels = []
        for label in _descendants(item, "response_label"):
            ident = label.get("ident")
            if ident:
                labels.append((ident, _material_text(label)))
        return labels

    def _single_correct(self, labels, conditions) -> List[str]:
        """Labels whose selection on its own earns full credit"""
        full = _full_credit(conditions)
        return [ident for ident, _ in labels
                if any(evaluate(c.element, {ident}) is True for c in full)]

    def _multiple_correct(self, labels, conditions) -> Optional[Set[str]]:
        known = {ident for ident, _ in labels}
        for condition in _full_credit(conditions):
            positives = {value for value in _positive_values(condition.element) if value in known}
            if positives and evaluate(condition.element, positives) is True:
                return positives
        # additive partial credit written by other tools
        additive = set()
        for condition in conditions:
            if condition.action == "Add" and condition.score > 0:
                values = _positive_values(condition.element)
                if len(values) == 1 and values[0] in known:
                    additive.add(values[0])
        return additive or None

    def _fallback_options(self, labels, message: str, warnings: List[Diagnostic],
                          position: Optional[int]) -> Tuple[Option, ...]:
        warnings.append(warning("options", message + "; marking the first option correct", position))
        return tuple(Option(text=text, is_correct=(i == 0)) for i, (_, text) in enumerate(labels))

    def decode_item(self, item: ET.Element, position: Optional[int] = None) -> DecodedItem:
        """Decode one <item>. Raises ValueError when the item cannot be understood at all."""
        warnings: List[Diagnostic] = []
        ident = item.get("ident")
        qtype, raw_type = self.question_type(item)
        if qtype is None:
            qtype = self.infer_type(item)
            if qtype is None:
                raise ValueError(f"Unsupported question type '{raw_type}'")
            warnings.append(warning(
                "question_type",
                f"Question type '{raw_type or 'missing'}' not recognized; treated as {qtype.label}",
                position))

        prompt = self._prompt(item)
        if not prompt:
            warnings.append(warning("prompt", "Question has no text", position))
        labels = self._labels(item)
        conditions = _conditions(item)

        if qtype == QuestionType.MC:
            if not labels:
                raise ValueError("Multiple Choice item has no choices")
            correct = self._single_correct(labels, conditions)
            if len(correct) == 1:
                options = tuple(Option(text=text, is_correct=(label_id == correct[0]))
                                for label_id, text in labels)
            else:
                options = self._fallback_options(
                    labels, "No unambiguous correct answer found", warnings, position)
            record = MultipleChoice(prompt=prompt, options=options)

        elif qtype == QuestionType.MA:
            if not labels:
                raise ValueError("Multiple Answer item has no choices")
            correct = self._multiple_correct(labels, conditions)
            if correct:
                options = tuple(Option(text=text, is_correct=(label_id in correct))
                                for label_id, text in labels)
            else:
                options = self._fallback_options(
                    labels, "No correct answers found", warnings, position)
            record = MultipleAnswer(prompt=prompt, options=options)

        elif qtype == QuestionType.TF:
            if not labels:
                raise ValueError("True/False item has no choices")
            correct = self._single_correct(labels, conditions)
            if len(correct) == 1:
                index = [label_id for label_id, _ in labels].index(correct[0])
                answer = _bool_from_label(labels[index][1], index)
            else:
                warnings.append(warning(
                    "answer", "No unambiguous correct answer found; marking the first option correct", position))
                answer = _bool_from_label(labels[0][1], 0)
            record = TrueFalse(prompt=prompt, answer=answer)

        elif qtype == QuestionType.FIB:
            answers = []
            for condition in conditions:
                if condition.score <= 0:
                    continue
                for value in _positive_values(condition.element):
                    if value and value not in answers:
                        answers.append(value)
            if not answers:
                warnings.append(warning("acceptable_answers", "No acceptable answers found", position))
            record = FillInBlank(prompt=prompt, acceptable_answers=tuple(answers))

        elif qtype == QuestionType.ESS:
            record = Essay(prompt=prompt)

        else:
            raise ValueError(f"Unsupported question type: {qtype}")

        return DecodedItem(record=record, warnings=tuple(warnings), ident=ident)

    def _decode_items(self, items: List[ET.Element], warnings: List[Diagnostic],
                      offset: int = 0) -> List[QuestionRecord]:
        records = []
        for position, item in enumerate(items, start=offset + 1):
            try:
                decoded = self.decode_item(item, position)
            except Exception as e:
                logger.warning("Skipping item %s: %s", position, e)
                warnings.append(warning("item", f"Question {position} skipped: {e}", position))
                continue
            records.append(decoded.record)
            warnings.extend(decoded.warnings)
        return records

    def _recover_items(self, xml_text: str, warnings: List[Diagnostic]) -> List[QuestionRecord]:
        chunks = ITEM_RE.findall(xml_text)
        records = []
        for position, chunk in enumerate(chunks, start=1):
            # prefixed tags lose their namespace declaration once cut out
            chunk = re.sub(r"<(/?)\w+:", r"<\1", chunk)
            try:
                item = _parse(chunk)
            except ET.ParseError as e:
                warnings.append(warning("item", f"Question {position} skipped: malformed XML ({e})", position))
                continue
            records.extend(self._decode_items([item], warnings, offset=position - 1))
        return records

    def decode_questions(self, xml_text: Union[str, bytes]) -> DecodedQuiz:
        """Decode a questions.xml document. Malformed items are skipped with a warning."""
        if isinstance(xml_text, bytes):
            xml_text = xml_text.decode("utf-8-sig", errors="replace")
        warnings: List[Diagnostic] = []
        title = ""

        try:
            root = _parse(xml_text)
        except ET.ParseError as e:
            logger.warning("questions document is not well-formed (%s); recovering items", e)
            records = self._recover_items(xml_text, warnings)
            if not records:
                raise QTIDecodeError(f"Document is not valid XML and no questions could be recovered: {e}") from e
            warnings.insert(0, warning("document", f"Document is not well-formed XML; recovered {len(records)} question(s)"))
            match = re.search(r"<(?:\w+:)?assessment\b[^>]*\btitle=\"([^\"]*)\"", xml_text)
            if match:
                title = clean_html(match.group(1))
            return DecodedQuiz(title=title, description="", questions=tuple(records), warnings=tuple(warnings))

        assessment = root if local_name(root.tag) == "assessment" else _first(root, "assessment")
        if assessment is not None:
            title = (assessment.get("title") or "").strip()
        items = _descendants(root, "item")
        if not items:
            warnings.append(warning("document", "No questions found in document"))
        records = self._decode_items(items, warnings)
        logger.info("Decoded %d of %d question(s)", len(records), len(items))
        return DecodedQuiz(title=title, description="", questions=tuple(records), warnings=tuple(warnings))

    def decode_metadata(self, xml_text: Union[str, bytes]) -> Tuple[str, str]:
        """Return (title, description) from an assessment_meta.xml document"""
        try:
            root = _parse(xml_text)
        except ET.ParseError as e:
            raise QTIDecodeError(f"Assessment metadata is not valid XML: {e}") from e
        title = _text(_child(root, "title")).strip()
        description = clean_html(_text(_child(root, "description")))
        return title, description

    def _locate(self, files: Dict[str, str]) -> Tuple[Optional[str], Optional[str]]:
        """Find (questions path, metadata path) through the manifest, falling back to file names"""
        questions_path, meta_path = None, None
        manifest = next((path for path in files if path.lower().endswith("imsmanifest.xml")), None)
        if manifest is not None:
            try:
                root = _parse(files[manifest])
                resources = {r.get("identifier"): r for r in _descendants(root, "resource")}
                for resource in resources.values():
                    if "imsqti" not in (resource.get("type") or ""):
                        continue
                    file_el = _child(resource, "file")
                    href = resource.get("href") or (file_el.get("href") if file_el is not None else None)
                    if href in files:
                        questions_path = href
                        for dependency in _children(resource, "dependency"):
                            dep = resources.get(dependency.get("identifierref"))
                            dep_href = dep.get("href") if dep is not None else None
                            if dep_href in files:
                                meta_path = dep_href
                        break
            except ET.ParseError:
                logger.warning("imsmanifest.xml is not valid XML; looking for questions.xml directly")

        if questions_path is None:
            questions_path = next((p for p in sorted(files) if p.endswith("questions.xml")), None)
        if meta_path is None and questions_path is not None:
            folder = questions_path.rsplit("/", 1)[0] if "/" in questions_path else ""
            candidate = f"{folder}/assessment_meta.xml" if folder else "assessment_meta.xml"
            meta_path = candidate if candidate in files else None
        return questions_path, meta_path

    def decode_package(self, zip_bytes: bytes) -> DecodedQuiz:
        """Decode a QTI zip. The metadata title and description win over the assessment title."""
        files = read_zip(zip_bytes)
        questions_path, meta_path = self._locate(files)
        if questions_path is None:
            raise QTIDecodeError("No questions file found in package")

        quiz = self.decode_questions(files[questions_path])
        title, description = quiz.title, quiz.description
        warnings = list(quiz.warnings)
        if meta_path is not None:
            try:
                meta_title, meta_description = self.decode_metadata(files[meta_path])
                title = meta_title or title
                description = meta_description or description
            except QTIDecodeError as e:
                warnings.append(warning("metadata", str(e)))
        return DecodedQuiz(title=title, description=description, questions=quiz.questions,
                           warnings=tuple(warnings))
