import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from quizqti.config import load_settings  # noqa: E402
from quizqti.identifiers import SequentialIdentifierSource  # noqa: E402
from quizqti.models import (  # noqa: E402
    Essay,
    FillInBlank,
    MultipleAnswer,
    MultipleChoice,
    Option,
    QuizDocument,
    TrueFalse,
)
from quizqti.qti_encoder import QTIEncoder  # noqa: E402


# ====================
# Row Fixtures
# ====================

@pytest.fixture
def mc_row():
    return ["MC", "2+2=?", "4", "correct", "5", "incorrect"]


@pytest.fixture
def ma_row():
    return ["MA", "Pick two", "A", "correct", "B", "correct", "C", "incorrect"]


@pytest.fixture
def tf_row():
    return ["TF", "Sky is blue", "true"]


@pytest.fixture
def fib_row():
    return ["FIB", "Capital of France is ___", "Paris", "paris"]


@pytest.fixture
def essay_row():
    return ["ESS", "Describe the water cycle in your own words."]


# ====================
# Record Fixtures
# ====================

@pytest.fixture
def settings():
    return load_settings()


@pytest.fixture
def mc_record():
    return MultipleChoice(prompt="2+2=?", options=(
        Option("4", True), Option("5", False), Option("22", False)))


@pytest.fixture
def ma_record():
    return MultipleAnswer(prompt="Pick two", options=(
        Option("A", True), Option("B", True), Option("C", False)))


@pytest.fixture
def tf_record():
    return TrueFalse(prompt="Sky is blue", answer=True)


@pytest.fixture
def fib_record():
    return FillInBlank(prompt="Capital of France is ___", acceptable_answers=("Paris", "paris"))


@pytest.fixture
def essay_record():
    return Essay(prompt="Describe the water cycle.")


@pytest.fixture
def all_records(mc_record, ma_record, tf_record, fib_record, essay_record):
    return [mc_record, ma_record, tf_record, fib_record, essay_record]


@pytest.fixture
def quiz_document(all_records):
    return QuizDocument(title="Unit 1 Review", description="Covers chapters 1 & 2",
                        questions=all_records)


# ====================
# Encoder Fixtures
# ====================

@pytest.fixture
def id_source():
    return SequentialIdentifierSource()


@pytest.fixture
def encoder():
    """Encoder with a fresh deterministic id source per encode"""
    return QTIEncoder(ids=SequentialIdentifierSource)
