from decimal import Decimal

from election_dashboard.ai_feature.prompts import (
    FEW_SHOT_EXAMPLES,
    SQL_RULES,
    build_sql_prompt,
    build_summary_prompt,
)


def test_sql_prompt_sections_in_order():
    """Role, schema, question, rules, examples, then the closing cue"""
    prompt = build_sql_prompt("Which party won the most seats in 2019?")

    positions = [
        prompt.index("You are an expert PostgreSQL database analyst"),
        prompt.index('DATABASE SCHEMA for table "election_loksabha_data"'),
        prompt.index('USER QUESTION: "Which party won the most seats in 2019?"'),
        prompt.index("INSTRUCTIONS:"),
        prompt.index("EXAMPLES:"),
        prompt.index("Now generate the SQL query for the user's question:"),
    ]
    assert positions == sorted(positions)
    assert f"{len(SQL_RULES)}. {SQL_RULES[-1]}" in prompt


def test_sql_prompt_is_deterministic():
    assert build_sql_prompt("Turnout in Kerala") == build_sql_prompt("Turnout in Kerala")


def test_sql_prompt_includes_every_example():
    prompt = build_sql_prompt("anything")
    for example in FEW_SHOT_EXAMPLES:
        assert example["question"] in prompt
        assert example["sql"] in prompt


def test_sql_prompt_without_examples():
    prompt = build_sql_prompt("anything", examples=[])
    assert "EXAMPLES:" not in prompt


def test_summary_prompt_previews_first_rows():
    rows = [{"Party": f"P{i}", "seats": i} for i in range(15)]
    prompt = build_summary_prompt("Seats?", rows, total_rows=15, preview_rows=10)

    assert 'The user asked: "Seats?"' in prompt
    assert "showing first 10 rows" in prompt
    assert '"Party": "P9"' in prompt
    assert '"Party": "P10"' not in prompt
    assert "Total rows returned: 15" in prompt


def test_summary_prompt_handles_decimal_values():
    """Postgres AVG/ROUND come back as Decimal"""
    rows = [{"State_Name": "Kerala", "avg_turnout": Decimal("77.84")}]
    prompt = build_summary_prompt("Turnout?", rows, total_rows=1)
    assert '"avg_turnout": "77.84"' in prompt
