"""Branch list for the dashboard's branch switcher."""

from typing import Dict, List

from ..core.warehouse import ClickHouseClient

ALL_BRANCHES = {"key": "ALL", "name": "All branches"}

BRANCHES_QUERY = """SELECT DISTINCT branch_sync
FROM saleinvoice_transaction
WHERE branch_sync != ''
ORDER BY branch_sync"""


async def get_branches(warehouse: ClickHouseClient) -> List[Dict[str, str]]:
    """Return the ``ALL`` option followed by every branch that has invoices."""
    rows = await warehouse.query(BRANCHES_QUERY)
    branches = [ALL_BRANCHES]
    for row in rows:
        code = row["branch_sync"]
        branches.append({"key": code, "name": f"Branch {code}"})
    return branches
