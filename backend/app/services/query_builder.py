"""
Search query construction for the data lake.

Queries are built with positional `?` placeholders. Each parameter is a
complete SQL string literal (single quotes doubled), which is what Athena's
ExecutionParameters expect. `SearchQuery.inline()` renders the same query as
plain text for backends without bind support.
"""
from dataclasses import dataclass, field
from typing import List

from app.services.identity import extract_linkedin_handle


SELECT_COLUMNS = "BUSINESS_EMAIL, PERSONAL_EMAILS"


def quote_literal(value: str) -> str:
    """Render `value` as a single-quoted SQL string literal."""
    return "'" + (value or "").replace("'", "''") + "'"


@dataclass(frozen=True)
class SearchQuery:
    sql: str
    parameters: List[str] = field(default_factory=list)
    tier: str = "primary"

    def inline(self) -> str:
        """Substitute every placeholder with its quoted literal."""
        pieces = self.sql.split("?")
        if len(pieces) - 1 != len(self.parameters):
            raise ValueError(
                f"Query has {len(pieces) - 1} placeholders but {len(self.parameters)} parameters"
            )
        rendered = [pieces[0]]
        for literal, tail in zip(self.parameters, pieces[1:]):
            rendered.append(literal)
            rendered.append(tail)
        return "".join(rendered)


def _name_conditions(first_name: str, last_name: str):
    sql = [
        "(FIRST_NAME = ? OR FIRST_NAME LIKE ?)",
        "(LAST_NAME = ? OR LAST_NAME LIKE ?)",
    ]
    params = [
        quote_literal(first_name),
        quote_literal(f"{first_name}%"),
        quote_literal(last_name),
        quote_literal(f"{last_name}%"),
    ]
    return sql, params


def _assemble(table: str, conditions: List[str], tier: str, params: List[str]) -> SearchQuery:
    where = "\n  AND ".join(conditions)
    sql = f"SELECT {SELECT_COLUMNS}\nFROM {table}\nWHERE\n  {where}\nLIMIT 1"
    return SearchQuery(sql=sql, parameters=params, tier=tier)


def build_primary_query(record, table: str) -> SearchQuery:
    """All four fields: name exact-or-prefix, LinkedIn exact/substring/handle, company substring."""
    conditions, params = _name_conditions(record.first_name, record.last_name)

    handle = extract_linkedin_handle(record.linkedin)
    conditions.append(
        "(LINKEDIN_URL = ? OR LINKEDIN_URL LIKE ? OR LINKEDIN_URL LIKE ?)"
    )
    params.extend([
        quote_literal(record.linkedin),
        quote_literal(f"%{record.linkedin}%"),
        quote_literal(f"%{handle}%"),
    ])

    conditions.append("COMPANY_NAME LIKE ?")
    params.append(quote_literal(f"%{record.company_name}%"))

    return _assemble(table, conditions, "primary", params)


def build_fallback_query(record, table: str) -> SearchQuery:
    """Same as the primary query with the LinkedIn constraint dropped entirely."""
    conditions, params = _name_conditions(record.first_name, record.last_name)

    conditions.append("COMPANY_NAME LIKE ?")
    params.append(quote_literal(f"%{record.company_name}%"))

    return _assemble(table, conditions, "fallback", params)
