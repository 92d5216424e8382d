"""
SQL GUARD - Turn model output into a statement that is safe to run

Purpose:
    1. extract_sql()       strip markdown and chatter around the statement
    2. check_safety()      keyword deny-list over comment-free text
    3. check_structure()   cheap shape checks (SELECT/WITH, table, CTE form)
    4. check_query_tree()  parse with sqlglot and allow only read-only query nodes

Data Flow:
    model text -> extract_sql() -> validate_sql() -> executor

Only statements that pass every check are executed.
"""

import logging
import re
from typing import Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from election_dashboard.ai_feature.errors import (
    ExtractionEmpty,
    StatementChaining,
    SyntaxInvalid,
    UnsafeOperation,
)
from election_dashboard.core.models import TABLE_NAME

logger = logging.getLogger(__name__)

SQL_DIALECT = "postgres"

# Statement-level words that write, change schema, control transactions or run code
FORBIDDEN_KEYWORDS = (
    "insert",
    "update",
    "delete",
    "drop",
    "truncate",
    "alter",
    "create",
    "replace",
    "merge",
    "grant",
    "revoke",
    "exec",
    "execute",
    "call",
    "backup",
    "restore",
    "rename",
    "commit",
    "rollback",
)
_FORBIDDEN_PATTERNS = [
    (keyword, re.compile(rf"\b{keyword}\b", re.IGNORECASE))
    for keyword in FORBIDDEN_KEYWORDS
]

_FENCE = re.compile(r"```(?:sql)?\n?", re.IGNORECASE)
_STATEMENT_START = re.compile(r"\b(?:WITH|SELECT)\b", re.IGNORECASE)
_LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_WHITESPACE = re.compile(r"\s+")
_SELECT_WORD = re.compile(r"\bselect\b", re.IGNORECASE)
_AS_WORD = re.compile(r"\bas\b", re.IGNORECASE)
_TABLE_REFERENCE = re.compile(rf"\b{TABLE_NAME}\b", re.IGNORECASE)

# Node types that never belong in a read-only query. Names differ between
# sqlglot releases (AlterTable became Alter), so resolve what exists.
_FORBIDDEN_NODES = tuple(
    getattr(exp, name)
    for name in (
        "DDL",
        "DML",
        "Insert",
        "Update",
        "Delete",
        "Merge",
        "Create",
        "Drop",
        "Alter",
        "AlterTable",
        "Command",
        "Transaction",
        "Commit",
        "Rollback",
    )
    if hasattr(exp, name)
)

# Server functions that read files, sleep, open connections or change settings
_ADMIN_FUNCTION_PREFIXES = ("pg_", "dblink", "lo_", "query_to_xml")
_ADMIN_FUNCTIONS = {"set_config", "current_setting"}


# ============================================================================
# STEP 1: EXTRACT
# ============================================================================


def extract_sql(text: str) -> str:
    """
    Reduce raw model output to a bare statement.

    Example:
        Input:
            Here is your query:
            ```sql
            SELECT "Party" FROM election_loksabha_data;
            ```

        Output:
            SELECT "Party" FROM election_loksabha_data;

    Never raises. Output without a statement comes back empty or malformed
    and is rejected by check_structure().
    """
    cleaned = (text or "").strip()

    # Removing one fence can join stray backticks into a new one
    while "```" in cleaned:
        cleaned = _FENCE.sub("", cleaned)

    # Drop prose before the first WITH or SELECT, whichever comes first
    match = _STATEMENT_START.search(cleaned)
    if match:
        cleaned = cleaned[match.start() :]

    # Drop commentary after the last terminator
    end = cleaned.rfind(";")
    if end >= 0:
        cleaned = cleaned[: end + 1]

    return cleaned.strip()


# ============================================================================
# STEP 2: SAFETY PASS
# ============================================================================


def normalize_sql(sql: str) -> str:
    """Lowercase, strip comments and collapse whitespace."""
    cleaned = (sql or "").lower()
    cleaned = _LINE_COMMENT.sub("", cleaned)
    cleaned = _BLOCK_COMMENT.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def check_safety(sql: str) -> None:
    """
    Reject anything that is not a single read statement.

    Raises:
        StatementChaining: more than one ';' or a ';' before the end
        UnsafeOperation: a deny-listed keyword, or not a SELECT/WITH
    """
    cleaned = normalize_sql(sql)

    terminators = cleaned.count(";")
    if terminators > 1 or (terminators == 1 and not cleaned.endswith(";")):
        raise StatementChaining(sql=sql)

    for keyword, pattern in _FORBIDDEN_PATTERNS:
        if pattern.search(cleaned):
            raise UnsafeOperation(
                f"Query contains forbidden operation: {keyword.upper()}",
                sql=sql,
                keyword=keyword.upper(),
            )

    if not cleaned.startswith(("select", "with")):
        raise UnsafeOperation("Only SELECT queries are allowed", sql=sql)


# ============================================================================
# STEP 3: STRUCTURAL PASS
# ============================================================================


def _parentheses_balanced(sql: str) -> bool:
    """Count parentheses outside quoted literals and identifiers."""
    depth = 0
    quote = None
    for char in sql:
        if quote:
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def check_structure(sql: str) -> None:
    """
    Reject statements that cannot be a query on the election table.

    Raises:
        ExtractionEmpty: nothing left after extraction
        SyntaxInvalid: wrong start, no SELECT, wrong table, malformed CTE
    """
    trimmed = (sql or "").strip()
    if not trimmed:
        raise ExtractionEmpty(sql=sql)

    lowered = trimmed.lower()
    if not lowered.startswith(("select", "with")):
        raise SyntaxInvalid("Query must start with SELECT or WITH", sql=sql)

    if not _SELECT_WORD.search(trimmed):
        raise SyntaxInvalid("Query missing SELECT keyword", sql=sql)

    if not _TABLE_REFERENCE.search(trimmed):
        raise SyntaxInvalid(f'Query must reference table "{TABLE_NAME}"', sql=sql)

    if lowered.startswith("with"):
        if not _AS_WORD.search(trimmed):
            raise SyntaxInvalid("WITH clause missing AS keyword", sql=sql)
        if "(" not in trimmed or ")" not in trimmed:
            raise SyntaxInvalid("WITH clause missing parentheses", sql=sql)
        if not _parentheses_balanced(trimmed):
            raise SyntaxInvalid("WITH clause has unbalanced parentheses", sql=sql)


# ============================================================================
# STEP 4: QUERY TREE PASS
# ============================================================================


def _function_name(node: exp.Func) -> str:
    if isinstance(node, exp.Anonymous):
        return node.name.lower()
    return node.sql_name().lower()


def _defines(with_: exp.With, name: str, upto: Optional[int] = None) -> bool:
    return any(cte.alias_or_name.lower() == name for cte in with_.expressions[:upto])


def _cte_in_scope(table: exp.Table) -> bool:
    """
    True when a WITH enclosing this table defines its name.

    A CTE is visible in the query it is attached to and in the bodies of
    later CTEs of the same WITH (its own body too when RECURSIVE). A CTE
    inside a subquery is invisible to the outer query.
    """
    name = table.name.lower()
    child, node = table, table.parent
    while node is not None:
        if isinstance(node, exp.With):
            # child is the CTE whose body holds the table
            position = next(
                (i for i, cte in enumerate(node.expressions) if cte is child),
                len(node.expressions),
            )
            if node.args.get("recursive"):
                position += 1
            if _defines(node, name, position):
                return True
        else:
            for value in node.args.values():
                if isinstance(value, exp.With) and value is not child and _defines(value, name):
                    return True
        child, node = node, node.parent
    return False


def check_query_tree(sql: str) -> None:
    """
    Parse the statement and allow only read-only query nodes.

    Catches what text matching cannot: a write hidden in a CTE, SELECT INTO,
    FOR UPDATE, other tables and server functions.

    Raises:
        SyntaxInvalid: the statement does not parse
        UnsafeOperation: anything but a single read of the election table
    """
    try:
        statements = [
            statement
            for statement in sqlglot.parse(sql, read=SQL_DIALECT)
            if statement is not None
        ]
    except SqlglotError as error:
        raise SyntaxInvalid(f"Could not parse query: {error}", sql=sql) from error

    if not statements:
        raise ExtractionEmpty(sql=sql)
    if len(statements) > 1:
        raise StatementChaining(sql=sql)

    tree = statements[0]
    if not isinstance(tree, exp.Query):
        raise UnsafeOperation("Only SELECT queries are allowed", sql=sql)

    for node in tree.find_all(exp.Expression):
        if isinstance(node, _FORBIDDEN_NODES):
            raise UnsafeOperation(
                f"Query contains forbidden operation: {node.key.upper()}",
                sql=sql,
                keyword=node.key.upper(),
            )

        if isinstance(node, exp.Into):
            raise UnsafeOperation("SELECT INTO is not allowed", sql=sql)

        if isinstance(node, exp.Lock):
            raise UnsafeOperation("Row locking clauses are not allowed", sql=sql)

        if isinstance(node, exp.Table):
            name = node.name.lower()
            # Empty name means a table function, checked as a function below
            if not name or (not node.db and _cte_in_scope(node)):
                continue
            if name == TABLE_NAME and node.db.lower() in ("", "public") and not node.catalog:
                continue
            raise UnsafeOperation(
                f'Query may only read from "{TABLE_NAME}", found "{node.sql(dialect=SQL_DIALECT)}"',
                sql=sql,
            )

        if isinstance(node, exp.Func):
            name = _function_name(node)
            if name.startswith(_ADMIN_FUNCTION_PREFIXES) or name in _ADMIN_FUNCTIONS:
                raise UnsafeOperation(f"Function {name}() is not allowed", sql=sql)


def validate_sql(sql: str) -> str:
    """Run every pass in order. Returns the statement unchanged."""
    if not (sql or "").strip():
        raise ExtractionEmpty(sql=sql)

    check_safety(sql)
    check_structure(sql)
    check_query_tree(sql)
    logger.debug("SQL passed validation: %s", sql)
    return sql
