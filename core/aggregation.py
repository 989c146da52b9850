# core/aggregation.py
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

# Denied amounts at or below this value are rounding noise
DENIAL_THRESHOLD = 0.01


def safe_div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def pct(part: float, whole: float, ndigits: int = 2) -> float:
    return round(safe_div(part, whole) * 100, ndigits)


def top_n(rows: Iterable[Dict[str, Any]], key: str, n: Optional[int] = None) -> List[Dict[str, Any]]:
    """Rows sorted descending by `key`; equal values keep encounter order."""
    ranked = sorted(rows, key=lambda row: row[key], reverse=True)
    return ranked if n is None else ranked[:n]


def grouped_sums(
    df: pd.DataFrame,
    by: str,
    columns: List[str],
    count_as: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Sum `columns` per `by` value, groups in first-seen order."""
    if df.empty:
        return []
    agg = {col: (col, "sum") for col in columns}
    if count_as:
        df = df.assign(_rows=1)
        agg[count_as] = ("_rows", "sum")
    grouped = df.groupby(by, sort=False, as_index=False).agg(**agg)
    return [
        {k: (v.item() if hasattr(v, "item") else v) for k, v in row.items()}
        for row in grouped.to_dict(orient="records")
    ]
