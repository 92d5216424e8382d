from typing import Any, Dict, List, Union

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from election_dashboard.core import models, schemas


# -----------------------------------------------------------------------------
# ELECTIONS MODULE
# Purpose: filtered reads over the election table for the dashboard.
# Every value reaches the database as a bound parameter.
# -----------------------------------------------------------------------------

# Columns the dashboard offers as dropdown filters
FILTER_FIELDS = ("State_Name", "Year", "Sex", "Party", "Constituency_Name")


def split_csv(value: Union[str, None]) -> List[str]:
    """Turn "BJP, INC," into ["BJP", "INC"]."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def apply_filters(stmt: Select, filters: schemas.ElectionFilters) -> Select:
    """
    Add WHERE clauses for every filter that is set.

    A single year wins over a year range. Constituencies are matched
    case-insensitively, other lists exactly.
    """
    record = models.ElectionRecord

    if filters.year is not None:
        stmt = stmt.where(record.year == filters.year)
    elif filters.year_start is not None and filters.year_end is not None:
        stmt = stmt.where(record.year.between(filters.year_start, filters.year_end))

    if filters.states:
        stmt = stmt.where(record.state_name.in_(filters.states))
    if filters.parties:
        stmt = stmt.where(record.party.in_(filters.parties))
    if filters.genders:
        stmt = stmt.where(record.sex.in_(filters.genders))
    if filters.constituencies:
        names = [name.upper() for name in filters.constituencies]
        stmt = stmt.where(func.upper(record.constituency_name).in_(names))

    return stmt


async def get_election_records(
    filters: schemas.ElectionFilters, limit: int, offset: int, db: AsyncSession
) -> Dict[str, Any]:
    """
    Return one page of filtered records plus the total match count.

    Args:
        filters: Year/state/party/gender/constituency filters
        limit: Page size (already capped by the caller)
        offset: Rows to skip
        db: Database session

    Returns:
        {"data": [...], "pagination": {...}}

    Example:
        {
            "data": [{"Year": 2019, "State_Name": "Kerala", "Party": "INC", ...}],
            "pagination": {"total": 20, "limit": 1, "offset": 0, "returned": 1}
        }
    """
    table = models.ElectionRecord.__table__
    base = apply_filters(select(table), filters)

    # Total before pagination
    count_stmt = select(func.count()).select_from(base.subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        base.order_by(table.c.Year.desc(), table.c.State_Name.asc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(stmt)
    rows = [dict(row) for row in result.mappings().all()]

    return {
        "data": rows,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "returned": len(rows),
        },
    }


async def get_unique_values(field: str, db: AsyncSession) -> List[Any]:
    """Distinct non-null values of one filter column, ascending."""
    if field not in FILTER_FIELDS:
        raise ValueError(f"Invalid field name: {field}")

    column = models.ElectionRecord.__table__.c[field]
    stmt = select(column).where(column.isnot(None)).distinct().order_by(column.asc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_all_filter_options(db: AsyncSession) -> Dict[str, List[Any]]:
    """Every dropdown's values in one call, for UI initialization."""
    options = {}
    for field in FILTER_FIELDS:
        options[field] = await get_unique_values(field, db)
    return options
