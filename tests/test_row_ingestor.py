"""Tests for the row ingestor."""

import pytest

from quizqti.errors import EmptyInputError
from quizqti.models import (
    Essay,
    FillInBlank,
    MultipleAnswer,
    MultipleChoice,
    Option,
    QuestionType,
    Severity,
    TrueFalse,
)
from quizqti.row_ingestor import (
    coerce_true_false,
    ingest_row,
    ingest_rows,
    normalize_tag,
    type_from_sheet_name,
)


class TestHelpers:
    """Tag normalization, sheet names and boolean coercion."""

    def test_normalize_tag(self):
        assert normalize_tag("correct") == "correct"
        assert normalize_tag("  CORRECT ") == "correct"
        assert normalize_tag("Incorrect") == "incorrect"
        assert normalize_tag("corect") == "correct"
        assert normalize_tag("incofrect") == "incorrect"
        assert normalize_tag("maybe") is None
        assert normalize_tag("") is None
        assert normalize_tag(None) is None

    def test_type_from_sheet_name(self):
        assert type_from_sheet_name("Multiple Choice") == QuestionType.MC
        assert type_from_sheet_name("Multiple Answer") == QuestionType.MA
        assert type_from_sheet_name("TRUE/FALSE") == QuestionType.TF
        assert type_from_sheet_name("Fill-in") == QuestionType.FIB
        assert type_from_sheet_name("Essay questions") == QuestionType.ESS
        assert type_from_sheet_name("fib") == QuestionType.FIB
        assert type_from_sheet_name("Sheet1") is None
        assert type_from_sheet_name("") is None

    def test_coerce_true_false(self):
        assert coerce_true_false("TRUE") is True
        assert coerce_true_false("false") is False
        assert coerce_true_false("t") is None
        assert coerce_true_false("t", allow_shorthand=True) is True
        assert coerce_true_false("0", allow_shorthand=True) is False
        assert coerce_true_false("maybe", allow_shorthand=True) is None
        assert coerce_true_false(None) is None


class TestTaggedRows:
    """Rows with an explicit type tag in the first cell."""

    def test_multiple_choice(self, mc_row):
        result = ingest_row(mc_row, row_number=2)
        assert result.ok
        assert result.error is None
        record = result.record
        assert isinstance(record, MultipleChoice)
        assert record.prompt == "2+2=?"
        assert record.options == (Option("4", True, "correct"), Option("5", False, "incorrect"))
        assert record.source.number == 2
        assert record.source.type_tag == "MC"

    def test_multiple_answer(self, ma_row):
        record = ingest_row(ma_row).record
        assert isinstance(record, MultipleAnswer)
        assert [o.is_correct for o in record.options] == [True, True, False]
        assert sum(o.is_correct for o in record.options) == 2

    def test_true_false(self, tf_row):
        record = ingest_row(tf_row).record
        assert isinstance(record, TrueFalse)
        assert record.answer is True
        assert record.answer_cell == "true"

    def test_true_false_invalid_value_keeps_no_answer(self):
        record = ingest_row(["TF", "X", "maybe"]).record
        assert isinstance(record, TrueFalse)
        assert record.answer is None
        assert record.answer_cell == "maybe"

    def test_tagged_true_false_rejects_shorthand(self):
        record = ingest_row(["TF", "X", "t"]).record
        assert record.answer is None

    def test_fill_in_blank(self, fib_row):
        record = ingest_row(fib_row).record
        assert isinstance(record, FillInBlank)
        assert record.acceptable_answers == ("Paris", "paris")

    def test_fill_in_blank_skips_empty_cells(self):
        record = ingest_row(["FIB", "___ is red", " Mars ", "", "mars"]).record
        assert record.acceptable_answers == ("Mars", "mars")

    def test_essay(self, essay_row):
        record = ingest_row(essay_row).record
        assert isinstance(record, Essay)
        assert record.prompt == "Describe the water cycle in your own words."

    def test_lowercase_tag(self):
        record = ingest_row(["mc", "Q", "a", "correct", "b", "incorrect"]).record
        assert isinstance(record, MultipleChoice)

    def test_empty_option_text_skipped(self):
        record = ingest_row(["MC", "Q", "a", "correct", "", "incorrect", "c", "incorrect"]).record
        assert [o.text for o in record.options] == ["a", "c"]

    def test_missing_tag_kept_as_none(self):
        record = ingest_row(["MC", "Q", "a", "correct", "b"]).record
        assert record.options[1] == Option("b", False, None)

    def test_typo_tag_counts_as_correct(self):
        record = ingest_row(["MC", "Q", "a", "Corect", "b", "incorect"]).record
        assert [o.is_correct for o in record.options] == [True, False]


class TestMalformedRows:
    """Malformed rows produce error results, never exceptions."""

    def test_unrecognized_tag(self):
        result = ingest_row(["XX", "What?", "a", "correct"])
        assert not result.ok
        assert result.record is None
        assert "Unrecognized question type tag" in result.error

    @pytest.mark.parametrize("row", [["Sun", "true"], ["Why", "is", "correct", "it", "incorrect"], ["Ant", "t"]])
    def test_short_capitalised_word_is_a_prompt(self, row):
        result = ingest_row(row)
        assert result.ok
        assert result.record.prompt == row[0]

    def test_lower_case_known_tag_still_tagged(self):
        result = ingest_row(["tf", "Water is wet", "true"])
        assert result.record == TrueFalse(prompt="Water is wet", answer=True)

    def test_tag_without_prompt(self):
        result = ingest_row(["MC"])
        assert not result.ok
        assert "no question prompt" in result.error

    def test_empty_row(self):
        result = ingest_row(["", "  ", None])
        assert not result.ok

    def test_undeterminable_type(self):
        result = ingest_row(["Short one"])
        assert not result.ok
        assert "Could not determine" in result.error


class TestInference:
    """Untagged rows: type inferred in priority order."""

    def test_correct_tags_mean_multiple_choice(self):
        record = ingest_row(["2+2=?", "4", "correct", "5", "incorrect"]).record
        assert isinstance(record, MultipleChoice)
        assert record.prompt == "2+2=?"
        assert record.source.payload_start == 1

    def test_two_correct_tags_mean_multiple_answer(self):
        record = ingest_row(["Pick", "A", "correct", "B", "CORRECT", "C", "incorrect"]).record
        assert isinstance(record, MultipleAnswer)

    def test_true_false_shorthand(self):
        record = ingest_row(["The earth is round", "T"]).record
        assert isinstance(record, TrueFalse)
        assert record.answer is True
        record = ingest_row(["The earth is flat", "0"]).record
        assert record.answer is False

    def test_long_single_cell_is_essay(self):
        record = ingest_row(["Explain photosynthesis in detail please."]).record
        assert isinstance(record, Essay)

    def test_underscore_prompt_is_fill_in_blank(self):
        record = ingest_row(["The capital of Italy is __", "Rome"]).record
        assert isinstance(record, FillInBlank)
        assert record.acceptable_answers == ("Rome",)

    def test_lone_underscore_is_fill_in_blank(self):
        record = ingest_row(["2 + _ = 4", "2"]).record
        assert isinstance(record, FillInBlank)

    def test_many_cells_default_to_multiple_choice(self):
        record = ingest_row(["Which?", "a", "b", "c"]).record
        assert isinstance(record, MultipleChoice)

    def test_sheet_type_used_for_untagged_rows(self):
        record = ingest_row(["Name a prime", "2", "3"], sheet_type=QuestionType.FIB).record
        assert isinstance(record, FillInBlank)
        assert record.acceptable_answers == ("2", "3")

    def test_sheet_name_string_accepted(self):
        record = ingest_row(["Sky is blue", "true"], sheet_type="True/False").record
        assert isinstance(record, TrueFalse)

    def test_explicit_tag_beats_sheet_type(self, mc_row):
        record = ingest_row(mc_row, sheet_type=QuestionType.ESS).record
        assert isinstance(record, MultipleChoice)


class TestBatch:
    """ingest_rows skips blank and failing rows."""

    def test_empty_input_raises(self):
        with pytest.raises(EmptyInputError):
            ingest_rows([])

    def test_empty_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            ingest_rows(iter([]))

    def test_blank_rows_skipped_silently(self, mc_row, tf_row):
        batch = ingest_rows([mc_row, [], ["", ""], tf_row])
        assert len(batch.records) == 2
        assert batch.diagnostics == ()
        assert batch.skipped == 0

    def test_failing_rows_become_warnings(self, mc_row):
        batch = ingest_rows([mc_row, ["ZZ", "bad", "x"], mc_row])
        assert len(batch.records) == 2
        assert batch.skipped == 1
        (diagnostic,) = batch.diagnostics
        assert diagnostic.severity == Severity.WARNING
        assert diagnostic.row == 2

    def test_row_numbers_follow_first_row_number(self, mc_row):
        batch = ingest_rows([mc_row, mc_row], first_row_number=5)
        assert [r.source.number for r in batch.records] == [5, 6]
