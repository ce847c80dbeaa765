"""
Aggregation primitives shared by every report.

All ratios live in [0, 1] space (1.0 == 100%). A statistic that cannot be
computed is None, never 0 or NaN.
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

Number = Union[int, float]

PASS_THRESHOLD = 0.4

# (label, lower bound inclusive, upper bound exclusive)
MARKS_BUCKETS = [
    ('<40%', 0.0, 0.4),
    ('40-60%', 0.4, 0.6),
    ('60-75%', 0.6, 0.75),
    ('75-90%', 0.75, 0.9),
    ('90-100%', 0.9, 1.01),
]
NO_DATA_LABEL = 'No data'


def is_missing(value: Optional[Number]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def average(values: Iterable[Optional[Number]]) -> Optional[float]:
    """Arithmetic mean ignoring None/NaN; None when nothing is left."""
    valid = [value for value in values if not is_missing(value)]
    if not valid:
        return None
    return sum(valid) / len(valid)


def percent(numerator: Optional[Number], denominator: Optional[Number]) -> Optional[float]:
    """numerator / denominator, or None for a zero or undefined denominator."""
    if is_missing(denominator) or not denominator:
        return None
    if is_missing(numerator):
        return None
    return numerator / denominator


def correlation(pairs: Sequence[Tuple[Number, Number]]) -> Optional[float]:
    """
    Pearson correlation coefficient of (x, y) pairs.

    None with fewer than two pairs or when either variable is constant.
    """
    if len(pairs) < 2:
        return None
    mean_x = sum(x for x, _ in pairs) / len(pairs)
    mean_y = sum(y for _, y in pairs) / len(pairs)

    numerator = 0.0
    denom_x = 0.0
    denom_y = 0.0
    for x, y in pairs:
        dx = x - mean_x
        dy = y - mean_y
        numerator += dx * dy
        denom_x += dx * dx
        denom_y += dy * dy

    denom = math.sqrt(denom_x * denom_y)
    if not denom:
        return None
    return numerator / denom


def bucket_distribution(values: Iterable[Optional[Number]]) -> List[Dict[str, object]]:
    """
    Count ratios into the fixed marks buckets.

    Missing values are tallied under a trailing 'No data' bucket, which is
    only present when at least one value is missing. Values outside every
    bucket (negative, or 1.01 and above) are not counted.
    """
    values = list(values)
    distribution = [
        {
            'label': label,
            'count': sum(1 for value in values if not is_missing(value) and low <= value < high),
        }
        for label, low, high in MARKS_BUCKETS
    ]
    missing = sum(1 for value in values if is_missing(value))
    if missing:
        distribution.append({'label': NO_DATA_LABEL, 'count': missing})
    return distribution


def is_pass(value: Number) -> bool:
    return value >= PASS_THRESHOLD
