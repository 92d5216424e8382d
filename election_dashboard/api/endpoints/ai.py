from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from election_dashboard.ai_feature import service
from election_dashboard.ai_feature.llm import GeminiClient, get_llm
from election_dashboard.core import schemas
from election_dashboard.core.config import settings
from election_dashboard.core.database import get_db

router = APIRouter(prefix="/ai", tags=["AI"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
llm_dep = Annotated[GeminiClient, Depends(get_llm)]


@router.post("/query", response_model=schemas.AIQueryResponse)
async def ask_ai(
    db: db_dep, llm: llm_dep, payload: Optional[schemas.AIQueryRequest] = None
):
    """
    Answer a natural-language question about the election data.

    The question becomes one read-only SQL query (validated before it runs),
    and the rows are summarized back into prose. Pipeline errors are rendered
    by the AskAIError handler registered in main.py.
    """
    question = payload.query if payload else None
    attempt = await service.answer_question(question, db, llm)

    return schemas.AIQueryResponse(
        question=attempt.question,
        sql=attempt.sql,
        result=attempt.rows[: settings.RESULT_PREVIEW_ROWS],
        total_rows=attempt.total_rows,
        answer=attempt.answer,
    )
