"""JSON encoding for warehouse values that the stdlib encoder rejects."""
import json
import datetime
import decimal
import uuid
from typing import Any


class CustomJSONEncoder(json.JSONEncoder):
    """Encode dates, decimals, UUIDs and bytes coming back from ClickHouse."""

    def default(self, o):
        if isinstance(o, (datetime.datetime, datetime.date, datetime.time)):
            return o.isoformat()
        elif isinstance(o, datetime.timedelta):
            return str(o)
        elif isinstance(o, decimal.Decimal):
            # Money columns are Decimal; keep integers exact.
            return int(o) if o == o.to_integral_value() else float(o)
        elif isinstance(o, uuid.UUID):
            return str(o)
        elif isinstance(o, (bytes, bytearray)):
            return o.decode("utf-8", errors="replace")
        elif isinstance(o, (set, frozenset)):
            return sorted(o, key=str)
        return super(CustomJSONEncoder, self).default(o)


def dumps(value: Any, **kwargs) -> str:
    """Serialize ``value`` with non-ASCII text kept readable."""
    kwargs.setdefault("ensure_ascii", False)
    return json.dumps(value, cls=CustomJSONEncoder, **kwargs)
