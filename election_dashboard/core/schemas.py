from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =========================
# ASK AI
# =========================
class AIQueryRequest(BaseModel):
    # Optional so a missing question is answered with 400, not 422
    query: Optional[str] = None


class AIQueryResponse(BaseModel):
    success: bool = True
    question: str
    sql: str
    result: List[Dict[str, Any]]
    total_rows: int = Field(alias="totalRows")
    answer: str

    model_config = ConfigDict(populate_by_name=True)


# =========================
# ELECTION RECORDS
# =========================
class ElectionFilters(BaseModel):
    """Filters shared by the record queries. Empty lists mean "no filter"."""

    year: Optional[int] = None
    year_start: Optional[int] = None
    year_end: Optional[int] = None
    states: List[str] = []
    parties: List[str] = []
    genders: List[str] = []
    constituencies: List[str] = []


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    returned: int


class ElectionRecordsResponse(BaseModel):
    success: bool = True
    data: List[Dict[str, Any]]
    pagination: Pagination


class UniqueValuesResponse(BaseModel):
    success: bool = True
    field: str
    values: List[Union[int, str]]
    count: int


class FilterOptionsResponse(BaseModel):
    success: bool = True
    filters: Dict[str, List[Union[int, str]]]


class HealthResponse(BaseModel):
    status: str
    db: str
    error: Optional[str] = None
