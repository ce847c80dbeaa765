"""
Report snapshots written to disk for the scheduled pipeline.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

from .analytics import class_monthly_report
from .analytics.attendance import current_month

logger = logging.getLogger(__name__)


def _json_default(value: Any):
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def report_to_json(report: Any, indent: Optional[int] = 2) -> str:
    """Serialize a report dict; dates become ISO strings."""
    return json.dumps(report, default=_json_default, indent=indent)


def export_monthly_snapshots(store, out_dir: Path, month: Optional[str] = None) -> List[Path]:
    """
    Write the monthly report of every class as class_<id>_<month>.json.

    Returns the paths written.
    """
    month = month or current_month()
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for class_row in store.fetch_classes():
        report = class_monthly_report(store, class_row['id'], month)
        if report is None:
            continue
        path = out_dir / f"class_{class_row['id']}_{month}.json"
        path.write_text(report_to_json(report), encoding='utf-8')
        written.append(path)

    logger.info("Wrote %d class snapshots for %s to %s", len(written), month, out_dir)
    return written
