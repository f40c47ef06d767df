"""
Custom exceptions for the Exam Engine.
"""


class ExamEngineError(Exception):
    """Base exception for all exam engine errors."""
    pass


class EmptyPoolError(ExamEngineError):
    """Raised when a required question pool or sub-range has no questions."""

    def __init__(self, message: str, pool: str = None, requested: int = 0):
        self.pool = pool
        self.requested = requested
        super().__init__(message)


class OracleResponseError(ExamEngineError):
    """Raised when the grading oracle returns something that is not a grade."""

    def __init__(self, message: str, raw_text: str = None):
        self.raw_text = raw_text
        super().__init__(message)
