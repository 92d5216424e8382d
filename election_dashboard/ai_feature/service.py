"""Ask-AI orchestration.

Flow:
1. Reject empty questions
2. Ask the model for SQL
3. Extract the bare statement
4. Validate SQL safety and structure
5. Execute the read-only query
6. Ask the model to summarize the rows
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from election_dashboard.ai_feature.errors import (
    AskAIError,
    EmptyInput,
    ExecutionFailed,
    GenerationFailed,
    SummarizationFailed,
)
from election_dashboard.ai_feature.llm import GeminiClient, LLMError
from election_dashboard.ai_feature.prompts import build_sql_prompt, build_summary_prompt
from election_dashboard.ai_feature.sql_guard import extract_sql, validate_sql
from election_dashboard.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class QueryAttempt:
    """Everything one ask-AI request produced. Never persisted."""

    question: str
    sql: str = ""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    answer: str = ""


class QueryLogger:
    """Step-by-step log of one ask-AI request."""

    def __init__(self, attempt_id: Optional[str] = None):
        self.attempt_id = attempt_id or uuid.uuid4().hex[:8]
        self.start_time = datetime.now()
        self.logs: List[Dict[str, Any]] = []

    def log(self, step: str, message: str, level: str = "info"):
        timestamp = datetime.now()
        self.logs.append(
            {
                "timestamp": timestamp.isoformat(),
                "step": step,
                "message": message,
                "level": level,
                "elapsed_seconds": (timestamp - self.start_time).total_seconds(),
            }
        )

        if level == "error":
            logger.error(f"[Query {self.attempt_id}] {step}: {message}")
        elif level == "warning":
            logger.warning(f"[Query {self.attempt_id}] {step}: {message}")
        else:
            logger.info(f"[Query {self.attempt_id}] {step}: {message}")

    def get_summary(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "duration_seconds": (datetime.now() - self.start_time).total_seconds(),
            "total_logs": len(self.logs),
            "logs": self.logs,
        }


async def generate_sql(question: str, llm: GeminiClient) -> str:
    """Ask the model for a statement and strip everything around it."""
    try:
        raw_text = await llm.generate(build_sql_prompt(question))
    except LLMError as error:
        raise GenerationFailed(str(error)) from error
    return extract_sql(raw_text)


async def execute_read_query(
    db: AsyncSession, sql: str
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Run an already validated statement and return all rows.

    On PostgreSQL the statement runs in a READ ONLY transaction, so the
    server refuses writes even if one got past validation.

    Returns:
        (rows, total_rows), each row a column -> value dict

    Raises:
        ExecutionFailed: the database rejected the statement
    """
    # Every colon is literal; the statement has no bind parameters
    statement = text(sql.replace(":", r"\:"))

    try:
        if db.get_bind().dialect.name == "postgresql":
            await db.execute(text("SET TRANSACTION READ ONLY"))
        result = await db.execute(statement)
        rows = [dict(row) for row in result.mappings().all()]
    except SQLAlchemyError as error:
        await db.rollback()
        message = str(getattr(error, "orig", None) or error)
        raise ExecutionFailed(message, sql=sql) from error

    # Nothing to keep: end the read transaction
    await db.rollback()
    return rows, len(rows)


async def summarize(
    llm: GeminiClient,
    question: str,
    rows: List[Dict[str, Any]],
    total_rows: int,
    preview_rows: Optional[int] = None,
) -> str:
    """Turn the first few rows into a short answer. Returned as the model wrote it."""
    if preview_rows is None:
        preview_rows = settings.SUMMARY_PREVIEW_ROWS

    prompt = build_summary_prompt(question, rows, total_rows, preview_rows=preview_rows)
    try:
        answer = await llm.generate(prompt)
    except LLMError as error:
        raise SummarizationFailed(str(error)) from error
    return answer.strip()


async def answer_question(
    question: Optional[str], db: AsyncSession, llm: GeminiClient
) -> QueryAttempt:
    """
    Run the whole ask-AI pipeline for one question.

    Any failure ends the request: there are no partial answers.

    Raises:
        EmptyInput, SyntaxInvalid, UnsafeOperation, GenerationFailed,
        ExecutionFailed, SummarizationFailed
    """
    if not question or not question.strip():
        raise EmptyInput()

    query_logger = QueryLogger()
    query_logger.log("question", question)
    attempt = QueryAttempt(question=question)

    try:
        query_logger.log("generate", "Generating SQL with Gemini...")
        attempt.sql = await generate_sql(question, llm)
        query_logger.log("generate", f"Generated SQL: {attempt.sql}")

        validate_sql(attempt.sql)
        query_logger.log("validate", "Query is safe and well formed")

        attempt.rows, attempt.total_rows = await execute_read_query(db, attempt.sql)
        query_logger.log("execute", f"Rows returned: {attempt.total_rows}")

        attempt.answer = await summarize(llm, question, attempt.rows, attempt.total_rows)
        query_logger.log("summarize", "Summary generated")
    except AskAIError as error:
        level = "error" if error.status_code >= 500 else "warning"
        query_logger.log("failed", f"{type(error).__name__}: {error.message}", level)
        raise

    logger.debug("Query %s finished: %s", query_logger.attempt_id, query_logger.get_summary())
    return attempt
