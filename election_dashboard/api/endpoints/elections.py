import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from election_dashboard.core import elections, schemas
from election_dashboard.core.config import settings
from election_dashboard.core.database import get_db

router = APIRouter(tags=["Elections"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


def server_error(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Server error", "message": str(error)},
    )


@router.get("/elections", response_model=schemas.ElectionRecordsResponse)
async def get_election_data(
    db: db_dep,
    year: Optional[int] = None,
    year_start: Annotated[Optional[int], Query(alias="yearStart")] = None,
    year_end: Annotated[Optional[int], Query(alias="yearEnd")] = None,
    states: Optional[str] = None,
    parties: Optional[str] = None,
    genders: Optional[str] = None,
    constituencies: Optional[str] = None,
    limit: Annotated[int, Query(ge=1)] = 5000,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """
    Return election records with flexible filters and pagination.
    List filters are comma separated, e.g. ?parties=BJP,INC
    """
    filters = schemas.ElectionFilters(
        year=year,
        year_start=year_start,
        year_end=year_end,
        states=elections.split_csv(states),
        parties=elections.split_csv(parties),
        genders=elections.split_csv(genders),
        constituencies=elections.split_csv(constituencies),
    )
    try:
        page = await elections.get_election_records(
            filters, min(limit, settings.ELECTIONS_MAX_LIMIT), offset, db
        )
    except SQLAlchemyError as error:
        logging.error(f"Error fetching election data: {error}")
        return server_error(error)

    return {"success": True, **page}


@router.get("/unique/{field}", response_model=schemas.UniqueValuesResponse)
async def get_unique_values(field: str, db: db_dep):
    """Distinct values of one filter column, for dropdowns."""
    if field not in elections.FILTER_FIELDS:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Invalid field name",
                "validFields": list(elections.FILTER_FIELDS),
            },
        )

    try:
        values = await elections.get_unique_values(field, db)
    except SQLAlchemyError as error:
        logging.error(f"Error fetching unique values for {field}: {error}")
        return server_error(error)

    return {"success": True, "field": field, "values": values, "count": len(values)}


@router.get("/filters/all", response_model=schemas.FilterOptionsResponse)
async def get_all_filter_options(db: db_dep):
    """All filter options in one call."""
    try:
        options = await elections.get_all_filter_options(db)
    except SQLAlchemyError as error:
        logging.error(f"Error fetching filter options: {error}")
        return server_error(error)

    return {"success": True, "filters": options}
