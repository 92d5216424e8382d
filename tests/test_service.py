import pytest

from election_dashboard.ai_feature import service
from election_dashboard.ai_feature.errors import (
    EmptyInput,
    ExecutionFailed,
    StatementChaining,
)


@pytest.mark.asyncio
async def test_execute_read_query_returns_dict_rows(db_session):
    rows, total = await service.execute_read_query(
        db_session,
        'SELECT "Candidate", "Votes" FROM election_loksabha_data '
        "WHERE \"Constituency_Name\" = 'WAYANAD' ORDER BY \"Votes\" DESC;",
    )

    assert total == 2
    assert rows[0] == {"Candidate": "Rahul Gandhi", "Votes": 706367}


@pytest.mark.asyncio
async def test_execute_keeps_colons_literal(db_session):
    """A colon inside a literal is not a bind parameter"""
    rows, total = await service.execute_read_query(
        db_session, "SELECT 'ratio:1' AS label FROM election_loksabha_data LIMIT 1;"
    )
    assert total == 1
    assert rows[0]["label"] == "ratio:1"


@pytest.mark.asyncio
async def test_execute_wraps_database_errors(db_session):
    with pytest.raises(ExecutionFailed) as exc_info:
        await service.execute_read_query(db_session, "SELECT nope FROM election_loksabha_data;")

    assert "no such column" in exc_info.value.message
    assert exc_info.value.status_code == 500

    # Session is still usable afterwards
    rows, _ = await service.execute_read_query(
        db_session, "SELECT COUNT(*) AS n FROM election_loksabha_data;"
    )
    assert rows == [{"n": 12}]


@pytest.mark.asyncio
async def test_answer_question_rejects_blank_question(db_session, fake_llm):
    with pytest.raises(EmptyInput):
        await service.answer_question("  ", db_session, fake_llm)
    assert fake_llm.prompts == []


@pytest.mark.asyncio
async def test_answer_question_stops_before_execution(db_session, fake_llm):
    """Rejected SQL is never run and never summarized"""
    fake_llm.responses = [
        "SELECT * FROM election_loksabha_data; DELETE FROM election_loksabha_data;"
    ]

    with pytest.raises(StatementChaining):
        await service.answer_question("Delete it all", db_session, fake_llm)
    assert len(fake_llm.prompts) == 1

    rows, _ = await service.execute_read_query(
        db_session, "SELECT COUNT(*) AS n FROM election_loksabha_data;"
    )
    assert rows == [{"n": 12}]


def test_query_logger_collects_steps():
    query_logger = service.QueryLogger(attempt_id="abc123")
    query_logger.log("generate", "Generating SQL")
    query_logger.log("failed", "boom", "error")

    summary = query_logger.get_summary()
    assert summary["attempt_id"] == "abc123"
    assert summary["total_logs"] == 2
    assert [entry["step"] for entry in summary["logs"]] == ["generate", "failed"]
    assert summary["logs"][1]["level"] == "error"
