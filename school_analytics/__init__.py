"""School academic analytics: attendance and marks reporting over a DuckDB warehouse."""

__version__ = "0.1.0"
