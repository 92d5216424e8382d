"""
PROMPTS - Text sent to the language model

Two prompts per question:
    1. build_sql_prompt()     question + schema + rules + examples -> one SQL statement
    2. build_summary_prompt() question + result preview            -> short prose answer

Both are pure functions: same input, same prompt.
"""

import json
from typing import Any, Dict, List, Sequence

from election_dashboard.core.models import TABLE_NAME

AVAILABLE_YEARS = (1991, 1996, 1998, 1999, 2004, 2009, 2014, 2019)
LATEST_YEAR = 2019
# "Consecutive elections" always means the two most recent ones
COMPARISON_YEARS = (2014, 2019)
NATIONAL_PARTIES = ("AAP", "BJP", "INC", "BSP", "CPI", "CPI-M", "NCP")
MAX_RESULT_ROWS = 100

_NATIONAL_LIST = ", ".join(f"'{party}'" for party in NATIONAL_PARTIES)
_YEARS_LIST = ", ".join(str(year) for year in AVAILABLE_YEARS)

SCHEMA_CONTEXT = f"""
DATABASE SCHEMA for table "{TABLE_NAME}":

Key Columns (with data types and examples):
- "Year" (bigint): Available years: {_YEARS_LIST}
- "State_Name" (text): Examples: 'Maharashtra', 'Uttar_Pradesh', 'Karnataka', 'Tamil_Nadu'
  Note: Uses underscores (e.g., 'Uttar_Pradesh' not 'Uttar Pradesh')
- "Constituency_Name" (text): Examples: 'NANDURBAR', 'MUMBAI NORTH', 'DELHI SOUTH'
- "Party" (text): Examples: 'BJP', 'INC', 'AITC', 'DMK', 'BSP', 'SP', 'TDP'
- "Candidate" (text): Full name of the candidate
- "Sex" (text): 'Male', 'Female', 'Unknown', 'O'
- "Votes" (bigint): Number of votes received
- "Is_Winner" (bigint): 1 for winner, 0 for loser
- "Turnout_Percentage" (bigint): Voter turnout percentage (0-100)
- "Vote_Share_Percentage" (double precision): Vote share percentage for candidate
- "Margin" (bigint): Victory margin in votes
- "Margin_Percentage" (double precision): Victory margin as percentage
- "Electors" (bigint): Total number of electors
- "Valid_Votes" (bigint): Total valid votes cast
- "Party_Type_TCPD" (text): 'National Party', 'State Party', 'Local Party'
- "MyNeta_education" (text): Education level of candidate
- "Position" (bigint): Rank of candidate (1 = winner, 2 = runner-up, etc.)

IMPORTANT NOTES:
1. State names use underscores: 'Andhra_Pradesh', 'West_Bengal', 'Jammu_&_Kashmir'
2. To count seats won by a party: COUNT(*) WHERE "Is_Winner" = 1 AND "Party" = 'BJP'
3. To find the winner in a constituency: WHERE "Is_Winner" = 1
4. Turnout is already calculated: use "Turnout_Percentage" directly
5. Each row represents ONE CANDIDATE in an election, not a constituency
6. Latest election year is {LATEST_YEAR}

PARTY CLASSIFICATION (National vs Regional):
NATIONAL PARTIES (only these {len(NATIONAL_PARTIES)}): {_NATIONAL_LIST}
REGIONAL PARTIES: every other party, e.g. 'AITC' (West Bengal), 'DMK' and 'ADMK'
(Tamil Nadu), 'SP' (Uttar Pradesh), 'TDP' (Andhra Pradesh), 'BJD' (Odisha),
'SHS' (Maharashtra), 'JD-U' (Bihar)

To classify parties in queries:
  CASE WHEN "Party" IN ({_NATIONAL_LIST}) THEN 'National' ELSE 'Regional' END

COMMON QUERY PATTERNS:

Seats won by party:
  SELECT "Party", COUNT(*) AS seats
  FROM {TABLE_NAME}
  WHERE "Is_Winner" = 1 AND "Year" = {LATEST_YEAR}
  GROUP BY "Party" ORDER BY seats DESC LIMIT 10;

Highest turnout state:
  SELECT "State_Name", AVG("Turnout_Percentage") AS avg_turnout
  FROM {TABLE_NAME}
  WHERE "Year" = {LATEST_YEAR}
  GROUP BY "State_Name"
  ORDER BY avg_turnout DESC LIMIT 1;

Women candidates:
  SELECT COUNT(*) AS total_women
  FROM {TABLE_NAME}
  WHERE "Sex" = 'Female' AND "Year" = {LATEST_YEAR};
""".strip()


def _seat_change_query(first: int, second: int) -> str:
    return (
        f'WITH seats_{first} AS (SELECT "Party", COUNT(*) AS seats FROM {TABLE_NAME} '
        f'WHERE "Year" = {first} AND "Is_Winner" = 1 GROUP BY "Party"), '
        f'seats_{second} AS (SELECT "Party", COUNT(*) AS seats FROM {TABLE_NAME} '
        f'WHERE "Year" = {second} AND "Is_Winner" = 1 GROUP BY "Party") '
        f'SELECT COALESCE(a."Party", b."Party") AS "Party", '
        f"COALESCE(a.seats, 0) AS seats_{first}, COALESCE(b.seats, 0) AS seats_{second}, "
        f"COALESCE(b.seats, 0) - COALESCE(a.seats, 0) AS seat_change "
        f'FROM seats_{first} a FULL OUTER JOIN seats_{second} b ON a."Party" = b."Party" '
        f"ORDER BY ABS(COALESCE(b.seats, 0) - COALESCE(a.seats, 0)) DESC LIMIT 10;"
    )


FEW_SHOT_EXAMPLES: List[Dict[str, str]] = [
    {
        "question": "Which party won the most seats in 2019?",
        "sql": (
            f'SELECT "Party", COUNT(*) AS seats FROM {TABLE_NAME} '
            f'WHERE "Is_Winner" = 1 AND "Year" = 2019 '
            f'GROUP BY "Party" ORDER BY seats DESC LIMIT 10;'
        ),
    },
    {
        "question": "What was the voter turnout in Maharashtra in 2014?",
        "sql": (
            f'SELECT "State_Name", "Year", AVG("Turnout_Percentage") AS avg_turnout '
            f"FROM {TABLE_NAME} "
            f"WHERE \"State_Name\" = 'Maharashtra' AND \"Year\" = 2014 "
            f'GROUP BY "State_Name", "Year" LIMIT 1;'
        ),
    },
    {
        "question": "Which state had the highest voter turnout in 2019?",
        "sql": (
            f'SELECT "State_Name", AVG("Turnout_Percentage") AS avg_turnout '
            f'FROM {TABLE_NAME} WHERE "Year" = 2019 '
            f'GROUP BY "State_Name" ORDER BY avg_turnout DESC LIMIT 1;'
        ),
    },
    {
        "question": "Which party gained or lost the most seats between consecutive elections?",
        "sql": _seat_change_query(*COMPARISON_YEARS),
    },
    {
        "question": "How has the vote share of national vs regional parties changed over time?",
        "sql": (
            f'SELECT "Year", CASE WHEN "Party" IN ({_NATIONAL_LIST}) '
            f"THEN 'National' ELSE 'Regional' END AS party_type, "
            f'SUM("Votes") AS total_votes, '
            f'ROUND(AVG("Vote_Share_Percentage")::numeric, 2) AS avg_vote_share_pct, '
            f'COUNT(DISTINCT "Party") AS num_parties FROM {TABLE_NAME} '
            f'GROUP BY "Year", party_type ORDER BY "Year", party_type LIMIT 100;'
        ),
    },
]

SQL_RULES = [
    f'Generate a single PostgreSQL SELECT query for the "{TABLE_NAME}" table',
    'Use EXACT column names with double quotes (e.g., "Year", "State_Name")',
    "State names MUST use underscores (e.g., 'Maharashtra', 'Uttar_Pradesh')",
    "Remember: each row is a CANDIDATE, not a constituency",
    'To count seats won: WHERE "Is_Winner" = 1',
    f"For the latest election, use Year = {LATEST_YEAR}",
    'For "highest" or "most", use ORDER BY ... DESC LIMIT',
    "For comparisons between years, use CTEs (WITH clause)",
    'For "consecutive elections", use the two most recent years: '
    f"{COMPARISON_YEARS[0]} and {COMPARISON_YEARS[1]}",
    "NEVER use window functions (LAG, LEAD, ROW_NUMBER, RANK) in WHERE or JOIN conditions",
    f"ALWAYS add a LIMIT clause (max {MAX_RESULT_ROWS} rows)",
    "Return ONLY the SQL query - no explanations, no markdown",
]


def _build_rules() -> str:
    lines = ["INSTRUCTIONS:"]
    lines.extend(f"{i}. {rule}" for i, rule in enumerate(SQL_RULES, 1))
    return "\n".join(lines)


def _build_examples(examples: Sequence[Dict[str, str]]) -> str:
    lines = ["EXAMPLES:"]
    for example in examples:
        lines.append(f'\nQuestion: "{example["question"]}"')
        lines.append(f"Query: {example['sql']}")
    return "\n".join(lines)


def build_sql_prompt(
    question: str,
    schema: str = SCHEMA_CONTEXT,
    examples: Sequence[Dict[str, str]] = FEW_SHOT_EXAMPLES,
) -> str:
    """
    Build the prompt that turns a question into one SQL statement.

    Args:
        question: The user's question, as typed
        schema: Table description given to the model
        examples: Worked question -> query pairs

    Returns:
        Complete prompt string
    """
    parts = [
        "You are an expert PostgreSQL database analyst for Indian Lok Sabha election data.",
        schema,
        f'USER QUESTION: "{question}"',
        _build_rules(),
    ]
    if examples:
        parts.append(_build_examples(examples))
    parts.append("Now generate the SQL query for the user's question:")

    return "\n\n".join(parts)


def build_summary_prompt(
    question: str,
    rows: Sequence[Dict[str, Any]],
    total_rows: int,
    preview_rows: int = 10,
) -> str:
    """Build the prompt that turns a result preview into a short answer."""
    # Decimal, date and friends are not JSON serializable
    preview = json.dumps(list(rows[:preview_rows]), indent=2, default=str)

    return f"""The user asked: "{question}"

Here are the SQL query results (showing first {preview_rows} rows):
{preview}

Total rows returned: {total_rows}

Provide a clear, concise answer to the user's question based on these results.
Format your response in 2-3 paragraphs maximum.
If there are interesting patterns or insights, highlight them."""
