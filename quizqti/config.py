# Description: Configuration for the quizqti converter. Quiz settings and ingest rules are read
# from templates/metadata.yaml; runtime switches come from the environment or Streamlit secrets.
# file name: config.py

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st
import yaml
from streamlit.errors import StreamlitAPIException

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


def get_config_value(key: str, default: Optional[Any] = None) -> Optional[Any]:
    """Look up ``key`` in the environment first, then in Streamlit secrets."""
    env_value = os.environ.get(key)
    if env_value is not None:
        return env_value

    # secrets.toml is parsed lazily, so a missing file only surfaces on first access
    try:
        secrets = st.secrets
        if not secrets:
            return default
        return secrets.get(key, default)
    except StreamlitAPIException:
        return default
    except (FileNotFoundError, KeyError):
        return default


def templates_dir() -> Path:
    override = get_config_value("QUIZQTI_TEMPLATES_DIR")
    return Path(override) if override else DEFAULT_TEMPLATES_DIR


@dataclass(frozen=True)
class QuizSettings:
    """Quiz-level defaults written into assessment_meta.xml plus ingest and validation rules"""
    default_title: str = "Untitled Quiz"
    shuffle_answers: bool = False
    scoring_policy: str = "keep_highest"
    quiz_type: str = "assignment"
    allowed_attempts: int = 1
    show_correct_answers: bool = True
    one_question_at_a_time: bool = False
    cant_go_back: bool = False
    points_per_question: float = 1
    max_attempts_metadata: int = 1

    identifier_prefixes: Dict[str, str] = field(default_factory=dict)

    essay_min_prompt_length: int = 20
    true_false_literals: Dict[str, bool] = field(
        default_factory=lambda: {"true": True, "false": False})
    true_false_shorthand: Dict[str, bool] = field(
        default_factory=lambda: {"t": True, "f": False, "1": True, "0": False})
    tag_aliases: Dict[str, str] = field(
        default_factory=lambda: {"correct": "correct", "incorrect": "incorrect"})

    min_choices: int = 2
    multiple_answer_min_correct: int = 1
    multiple_answer_recommended_correct: int = 2

    fib_style: str = "short_answer"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "on")
    return bool(value)


def _settings_from_dict(data: Dict[str, Any]) -> QuizSettings:
    quiz = data.get("quiz_settings") or {}
    ingest = data.get("ingest") or {}
    validation = data.get("validation") or {}
    encoding = data.get("encoding") or {}
    defaults = QuizSettings()

    def pick(section: Dict[str, Any], key: str, cast=None):
        if key not in section or section[key] is None:
            return getattr(defaults, key)
        value = section[key]
        return cast(value) if cast else value

    # YAML keys such as 1 and 0 may load as ints
    def lowered(mapping, cast):
        return {str(k).strip().lower(): cast(v) for k, v in (mapping or {}).items()}

    return QuizSettings(
        default_title=pick(quiz, "default_title", str),
        shuffle_answers=pick(quiz, "shuffle_answers", _as_bool),
        scoring_policy=pick(quiz, "scoring_policy", str),
        quiz_type=pick(quiz, "quiz_type", str),
        allowed_attempts=pick(quiz, "allowed_attempts", int),
        show_correct_answers=pick(quiz, "show_correct_answers", _as_bool),
        one_question_at_a_time=pick(quiz, "one_question_at_a_time", _as_bool),
        cant_go_back=pick(quiz, "cant_go_back", _as_bool),
        points_per_question=pick(quiz, "points_per_question", float),
        max_attempts_metadata=pick(quiz, "max_attempts_metadata", int),
        identifier_prefixes={
            key[:-len("_prefix")]: str(value)
            for key, value in (data.get("identifiers") or {}).items()
            if key.endswith("_prefix")
        },
        essay_min_prompt_length=pick(ingest, "essay_min_prompt_length", int),
        true_false_literals=lowered(ingest.get("true_false_literals"), _as_bool)
        or defaults.true_false_literals,
        true_false_shorthand=lowered(ingest.get("true_false_shorthand"), _as_bool)
        or defaults.true_false_shorthand,
        tag_aliases=lowered(ingest.get("tag_aliases"), lambda v: str(v).strip().lower())
        or defaults.tag_aliases,
        min_choices=pick(validation, "min_choices", int),
        multiple_answer_min_correct=pick(validation, "multiple_answer_min_correct", int),
        multiple_answer_recommended_correct=pick(validation, "multiple_answer_recommended_correct", int),
        fib_style=pick(encoding, "fib_style", str),
    )


@lru_cache(maxsize=8)
def _load_settings_cached(path: str) -> QuizSettings:
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return _settings_from_dict(data)


def load_settings(path: Optional[str] = None) -> QuizSettings:
    """Load settings from metadata.yaml. Results are cached per path."""
    if path is None:
        path = templates_dir() / "metadata.yaml"
    return _load_settings_cached(str(path))


def _read_template(folder: str, name: str) -> str:
    template_path = templates_dir() / folder / name
    if not template_path.exists():
        raise FileNotFoundError(f"Template {name} not found in {template_path.parent}")
    with open(template_path, 'r', encoding='utf-8') as f:
        return f.read()


def load_package_template(name: str) -> str:
    """Return the raw text of a package-level XML template such as 'manifest.xml'"""
    return _read_template("package", name)


def load_question_templates() -> Dict[str, str]:
    """Item-level XML fragments keyed by file stem ('item', 'response_lid', ...)"""
    folder = templates_dir() / "question_types"
    return {path.stem: _read_template("question_types", path.name).rstrip("\n")
            for path in sorted(folder.glob("*.xml"))}
