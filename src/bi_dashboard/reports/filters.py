"""Shared pieces of report query construction.

Every builder returns a ``Query``: SQL with ``%(name)s`` placeholders and
the values for them. The driver escapes the values, so user input such as
branch codes never becomes SQL text.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

Query = Tuple[str, Dict[str, Any]]


def normalize_branches(branches: Optional[Sequence[str]]) -> List[str]:
    """Split a single comma-joined value and drop blanks."""
    if not branches:
        return []
    if len(branches) == 1 and "," in branches[0]:
        branches = branches[0].split(",")
    return [b.strip() for b in branches if b and b.strip()]


def build_branch_filter(branches: Optional[Sequence[str]], column: str = "branch_sync") -> Query:
    """Return an ``AND <column> ...`` clause and its parameters.

    No branches or ``ALL`` means every branch, so no clause is added.
    """
    branches = normalize_branches(branches)
    if not branches or "ALL" in branches:
        return "", {}
    if len(branches) == 1:
        return f"AND {column} = %(branchSync)s", {"branchSync": branches[0]}
    return f"AND {column} IN %(branchList)s", {"branchList": tuple(branches)}


def date_range_params(start_date: date, end_date: date) -> Dict[str, date]:
    return {"startDate": start_date, "endDate": end_date}


def to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def numeric_fields(row: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    """Copy ``row`` with ``fields`` coerced to floats (missing or NULL become 0)."""
    converted = dict(row)
    for name in fields:
        if name in converted:
            converted[name] = to_number(converted[name])
    return converted
