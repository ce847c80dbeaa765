"""
Configuration for the school analytics engine.

Values are read once from the environment (a local .env file is honoured)
and exposed as module-level constants.
"""

import os
from pathlib import Path

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _path_from_env(name: str, default: Path) -> Path:
    value = os.getenv(name)
    return Path(value) if value else default


DATA_DIR = _path_from_env("SCHOOL_ANALYTICS_DATA_DIR", PROJECT_ROOT / "data" / "raw")
DB_PATH = _path_from_env("SCHOOL_ANALYTICS_DB_PATH", PROJECT_ROOT / "data" / "warehouse.duckdb")
REPORTS_DIR = _path_from_env("SCHOOL_ANALYTICS_REPORTS_DIR", PROJECT_ROOT / "data" / "reports")

LOG_LEVEL = os.getenv("SCHOOL_ANALYTICS_LOG_LEVEL", "INFO").upper()
