import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from election_dashboard.core import schemas
from election_dashboard.core.database import get_db

router = APIRouter(tags=["Health"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


@router.get(
    "/health", response_model=schemas.HealthResponse, response_model_exclude_none=True
)
async def health_check(db: db_dep):
    """Check that the server can reach the database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as error:
        logging.error(f"Health check failed: {error}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "error", "db": "disconnected", "error": str(error)},
        )
    return {"status": "ok", "db": "connected"}


@router.get("/ping")
async def ping():
    return {"message": "true"}
