# Description: Identifier sources used by the QTI encoder. A source is created per export
# and never hands out the same identifier twice.
# file name: identifiers.py

import re
import uuid
from typing import Dict, Optional, Set

from quizqti.errors import DuplicateIdentifierError

DEFAULT_PREFIXES = {
    "quiz": "quiz_",
    "item": "question_",
    "answer": "answer_",
    "response": "response_",
    "assignment": "text2qti_assignment_",
    "assignment_group": "text2qti_assignment-group_",
}

# usable unescaped in XML attributes and archive paths
IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def is_valid_identifier(ident) -> bool:
    return isinstance(ident, str) and IDENTIFIER_RE.match(ident) is not None


class IdentifierSource:
    """Base class. Subclasses only decide what the next token looks like."""

    max_attempts = 16

    def __init__(self, prefixes: Optional[Dict[str, str]] = None):
        self.prefixes = dict(DEFAULT_PREFIXES)
        if prefixes:
            self.prefixes.update(prefixes)
        self._issued: Set[str] = set()

    def _next_token(self) -> str:
        raise NotImplementedError

    @property
    def issued(self) -> Set[str]:
        return set(self._issued)

    def reserve(self, ident: str) -> str:
        """Mark an externally supplied identifier as used"""
        if not is_valid_identifier(ident):
            raise ValueError(f"Invalid identifier {ident!r}: use letters, digits, '_', '.' or '-'")
        if ident in self._issued:
            raise DuplicateIdentifierError(f"Identifier already issued: {ident}")
        self._issued.add(ident)
        return ident

    def new_id(self, kind: str) -> str:
        prefix = self.prefixes[kind]
        for _ in range(self.max_attempts):
            ident = f"{prefix}{self._next_token()}"
            if ident not in self._issued:
                self._issued.add(ident)
                return ident
            self._on_collision(ident)
        raise DuplicateIdentifierError(
            f"Could not generate a unique {kind} identifier after {self.max_attempts} attempts"
        )

    def _on_collision(self, ident: str):
        """Called when a generated id was already issued or reserved; the next attempt retries"""

    def quiz_id(self) -> str:
        return self.new_id("quiz")

    def item_id(self) -> str:
        return self.new_id("item")

    def response_id(self) -> str:
        return self.new_id("response")

    def answer_id(self) -> str:
        return self.new_id("answer")

    def assignment_id(self) -> str:
        return self.new_id("assignment")

    def assignment_group_id(self) -> str:
        return self.new_id("assignment_group")


class RandomIdentifierSource(IdentifierSource):
    """Short random hex tokens. A collision is retried, not reported."""

    def __init__(self, prefixes: Optional[Dict[str, str]] = None, length: int = 8):
        super().__init__(prefixes)
        self.length = length

    def _next_token(self) -> str:
        return uuid.uuid4().hex[:self.length]


class SequentialIdentifierSource(IdentifierSource):
    """Deterministic counter-based tokens, for tests and reproducible exports"""

    def __init__(self, prefixes: Optional[Dict[str, str]] = None, start: int = 1, width: int = 4):
        super().__init__(prefixes)
        self._counter = start
        self.width = width

    def _next_token(self) -> str:
        token = str(self._counter).zfill(self.width)
        self._counter += 1
        return token
