import io
import logging
from typing import Any, Dict, List

import pandas as pd

from entity_import.core.config import settings

logger = logging.getLogger(__name__)


def label_headers(raw_headers: List[Any], empty_prefix: str = None) -> List[str]:
    """
    Turn a raw header row into unique column labels.

    Blank cells are named with the placeholder prefix (``__EMPTY``,
    ``__EMPTY_1``, ...) so clients can recognise and hide them. Repeated
    labels get a numeric suffix (``Name``, ``Name_1``).
    """
    prefix = empty_prefix or settings.empty_header_prefix
    labels: List[str] = []
    seen: Dict[str, int] = {}
    blank_count = 0

    for raw in raw_headers:
        header = "" if raw is None or pd.isna(raw) else str(raw).strip()
        if not header:
            header = prefix if blank_count == 0 else f"{prefix}_{blank_count}"
            blank_count += 1
            while header in seen:
                header = f"{prefix}_{blank_count}"
                blank_count += 1
        elif header in seen:
            base = header
            # A suffixed label may already be taken by a literal header.
            while header in seen:
                seen[base] += 1
                header = f"{base}_{seen[base]}"
        seen.setdefault(header, 0)
        labels.append(header)

    return labels


def _read_frame(file_content: bytes) -> pd.DataFrame:
    """Read the whole CSV as strings without treating any row as the header."""
    try:
        frame = pd.read_csv(
            io.BytesIO(file_content),
            header=None,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as exc:
        raise ValueError("CSV file is empty") from exc
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise ValueError(f"Could not parse CSV file: {exc}") from exc

    return frame.fillna("")


def extract_csv_headers(file_content: bytes) -> List[str]:
    """
    Return the header labels of a CSV file, including placeholders for blank headers.

    Args:
        file_content: CSV file content as bytes

    Returns:
        Ordered list of header labels
    """
    frame = _read_frame(file_content)
    if frame.empty:
        raise ValueError("CSV file is empty")

    headers = label_headers(frame.iloc[0].tolist())
    logger.info("Extracted %d CSV headers", len(headers))
    return headers


def process_csv(file_content: bytes) -> List[Dict[str, str]]:
    """
    Process a CSV file and return one dictionary per data row.

    Keys are the labels produced by :func:`extract_csv_headers`, so a
    column mapping built from those labels can be applied directly.
    Cell values are whitespace-stripped strings; fully blank rows are dropped.
    """
    frame = _read_frame(file_content)
    if frame.empty:
        return []

    headers = label_headers(frame.iloc[0].tolist())
    records: List[Dict[str, str]] = []
    for row in frame.iloc[1:].itertuples(index=False):
        record = {header: str(value).strip() for header, value in zip(headers, row)}
        if any(record.values()):
            records.append(record)

    logger.info("Processed CSV with %d rows and %d columns", len(records), len(headers))
    return records
