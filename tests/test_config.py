"""Tests for settings, templates and logger setup."""

import logging

import pytest

from quizqti import config
from quizqti.config import (
    QuizSettings,
    get_config_value,
    load_package_template,
    load_question_templates,
    load_settings,
)
from quizqti.logging_utils import LOG_FORMAT, setup_logger


class TestSettings:

    def test_bundled_settings(self, settings):
        assert isinstance(settings, QuizSettings)
        assert settings.default_title == "Untitled Quiz"
        assert settings.points_per_question == 1
        assert settings.essay_min_prompt_length == 20
        assert settings.tag_aliases["incofrect"] == "incorrect"
        assert settings.true_false_shorthand == {"t": True, "f": False, "1": True, "0": False}
        assert settings.identifier_prefixes["answer"] == "answer_"
        assert settings.fib_style == "short_answer"

    def test_cached_per_path(self):
        assert load_settings() is load_settings()

    def test_custom_file_and_unknown_keys(self, tmp_path):
        path = tmp_path / "metadata.yaml"
        path.write_text(
            "quiz_settings:\n  default_title: Custom\n  shuffle_answers: 'yes'\n  bogus: 1\n"
            "validation:\n  min_choices: 3\n"
            "something_else: true\n",
            encoding="utf-8",
        )
        settings = load_settings(str(path))
        assert settings.default_title == "Custom"
        assert settings.shuffle_answers is True
        assert settings.min_choices == 3
        # untouched sections keep their defaults
        assert settings.scoring_policy == "keep_highest"
        assert settings.tag_aliases["correct"] == "correct"

    def test_templates_dir_override(self, tmp_path, monkeypatch):
        (tmp_path / "package").mkdir()
        (tmp_path / "package" / "manifest.xml").write_text("<manifest id='{quiz_id}'/>", encoding="utf-8")
        monkeypatch.setenv("QUIZQTI_TEMPLATES_DIR", str(tmp_path))
        assert load_package_template("manifest.xml") == "<manifest id='{quiz_id}'/>"
        with pytest.raises(FileNotFoundError):
            load_package_template("missing.xml")

    def test_question_templates(self):
        templates = load_question_templates()
        assert {"item", "metadata_field", "respcondition", "response_label",
                "response_lid", "response_str"} <= set(templates)
        assert "{ident}" in templates["item"]


class TestConfigValues:

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv("QUIZQTI_TEST_KEY", "from-env")
        assert get_config_value("QUIZQTI_TEST_KEY", "default") == "from-env"

    def test_default_when_missing(self, monkeypatch):
        monkeypatch.delenv("QUIZQTI_TEST_KEY", raising=False)
        monkeypatch.setattr(config.st, "secrets", {}, raising=False)
        assert get_config_value("QUIZQTI_TEST_KEY", "default") == "default"


class TestLogger:

    def test_single_handler(self):
        logger = setup_logger("quizqti.test_single", level="DEBUG")
        setup_logger("quizqti.test_single", level="DEBUG")
        handlers = [h for h in logger.handlers if getattr(h, "_quizqti_handler", False)]
        assert len(handlers) == 1
        assert handlers[0].formatter._fmt == LOG_FORMAT
        assert logger.level == logging.DEBUG

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("QUIZQTI_LOG_LEVEL", "warning")
        logger = setup_logger("quizqti.test_env")
        assert logger.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logger("quizqti.test_bad_level", level="chatty")
        assert logger.level == logging.INFO
