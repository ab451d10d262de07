"""
Row Normalization

Turns raw value grids into header-keyed records.
Handles header alignment, short rows, hyperlink cells and empty rows.
"""

import logging
from typing import Any, Dict, List

import pandas as pd

from etl.extract import ValueRange

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

ICON_COLUMN = "icon"


def unwrap_icon(cell: Any) -> Any:
    """
    Flatten a rich (hyperlinked) cell to a plain string.

    A structured cell yields its link, else its text, else "". A list of
    rich-text segments yields the first segment with a non-empty value.
    Plain values pass through unchanged.
    """
    if isinstance(cell, dict):
        return cell.get("link") or cell.get("text") or ""
    if isinstance(cell, list):
        for segment in cell:
            value = unwrap_icon(segment)
            if _is_filled(value):
                return value
        return ""
    if cell is None:
        return ""
    return cell


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (dict, list)):
        return bool(value)
    return True


def _header_name(cell: Any) -> str:
    if cell is None:
        return ""
    if isinstance(cell, (dict, list)):
        cell = unwrap_icon(cell)
    return str(cell).strip()


def _pad(row: Any, width: int) -> List[Any]:
    row = list(row or [])[:width]
    row += [""] * (width - len(row))
    return ["" if cell is None else cell for cell in row]


class RecordNormalizer:
    """
    Normalizes value grids into records.

    Operations:
    - Header trimming, blank-header column removal
    - Short-row padding
    - Icon hyperlink unwrapping
    - Empty-row removal
    """

    def __init__(self):
        """Initialize normalizer with zeroed metrics."""
        self.metrics = {
            "total_rows": 0,
            "kept_rows": 0,
            "dropped_rows": 0,
        }

    def normalize(self, value_range: ValueRange) -> List[Record]:
        """
        Normalize one value range.

        Args:
            value_range: Raw grid, header row first

        Returns:
            Records in row order, fields in header order
        """
        rows = value_range.values or []
        if len(rows) < 2:
            logger.info(f"Range {value_range.range} has no data rows")
            return []

        header = [_header_name(cell) for cell in rows[0]]

        # name -> column index; a repeated name keeps its first position
        # but takes the rightmost column's values
        columns: Dict[str, int] = {}
        for idx, name in enumerate(header):
            if name:
                columns[name] = idx

        data_rows = rows[1:]
        self.metrics["total_rows"] += len(data_rows)

        if not columns:
            logger.warning(f"Range {value_range.range} has no named columns")
            self.metrics["dropped_rows"] += len(data_rows)
            return []

        df = pd.DataFrame(
            [_pad(row, len(header)) for row in data_rows],
            columns=range(len(header)),
            dtype=object,
        )
        df = df[list(columns.values())].copy()
        df.columns = list(columns.keys())

        if ICON_COLUMN in df.columns:
            df[ICON_COLUMN] = df[ICON_COLUMN].map(unwrap_icon)

        filled = df.apply(lambda col: col.map(_is_filled)).astype(bool).any(axis=1)
        kept = df[filled]

        records = kept.to_dict(orient="records")
        dropped = len(df) - len(records)
        self.metrics["kept_rows"] += len(records)
        self.metrics["dropped_rows"] += dropped

        if dropped:
            logger.info(f"Dropped {dropped} empty rows from {value_range.range}")
        logger.info(f"Normalized {len(records)} records from {value_range.range}")

        return records


def normalize_value_range(value_range: ValueRange) -> List[Record]:
    """
    Convenience function to normalize a single value range.

    Args:
        value_range: Raw grid from extraction

    Returns:
        List of records
    """
    return RecordNormalizer().normalize(value_range)
