"""Errors raised by the ask-AI pipeline.

Every error ends the request. Each one knows its HTTP status and the JSON
body the dashboard expects, so the API layer only has to render it.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AskAIError(Exception):
    """Base class for every failure of the ask-AI pipeline."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.sql = sql

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": "Failed to process query",
            "message": self.message,
        }


class EmptyInput(AskAIError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("Question is required")

    def to_response(self) -> Dict[str, Any]:
        return {"error": "Question is required", "success": False}


# =========================
# Validation (the generated statement is echoed back)
# =========================
class SyntaxInvalid(AskAIError):
    status_code = status.HTTP_400_BAD_REQUEST

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": "Invalid SQL syntax",
            "reason": self.message,
            "success": False,
            "sql": self.sql,
        }


class ExtractionEmpty(SyntaxInvalid):
    """The model answered without anything that looks like a query."""

    def __init__(self, sql: Optional[str] = None):
        super().__init__("Empty query", sql=sql)


class UnsafeOperation(AskAIError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self, message: str, sql: Optional[str] = None, keyword: Optional[str] = None
    ):
        super().__init__(message, sql=sql)
        self.keyword = keyword

    def to_response(self) -> Dict[str, Any]:
        return {
            "error": "Unsafe query detected",
            "reason": self.message,
            "success": False,
            "sql": self.sql,
        }


class StatementChaining(UnsafeOperation):
    def __init__(self, sql: Optional[str] = None):
        super().__init__("Multiple queries or query chaining not allowed", sql=sql)


# =========================
# External calls
# =========================
class GenerationFailed(AskAIError):
    pass


class ExecutionFailed(AskAIError):
    pass


class SummarizationFailed(AskAIError):
    pass
