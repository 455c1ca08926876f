# Description: Exception types raised by the quizqti conversion pipeline.
# file name: errors.py

from typing import List


class QuizQTIError(Exception):
    """Base class for all quizqti errors"""


class EmptyInputError(QuizQTIError, ValueError):
    """Raised when a batch of rows contains no rows at all"""


class QTIEncodingError(QuizQTIError):
    """Raised when an export cannot be encoded. Fatal to the whole package."""


class DuplicateIdentifierError(QTIEncodingError):
    """Raised when an identifier source is asked to reissue an identifier"""


class QTIDecodeError(QuizQTIError):
    """Raised when a questions document cannot be decoded at all"""


class ExportBlockedError(QuizQTIError):
    """Raised when blocking diagnostics prevent an export"""

    def __init__(self, diagnostics: List):
        self.diagnostics = list(diagnostics)
        errors = [d for d in self.diagnostics if d.is_error]
        super().__init__(
            f"Export blocked by {len(errors)} validation error(s)"
            + (f": {errors[0].describe()}" if errors else "")
        )
