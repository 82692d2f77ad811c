"""BI Dashboard - inventory reports and a data assistant over ClickHouse."""

__version__ = "0.1.0"
