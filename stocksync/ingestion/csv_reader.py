"""
Inventory CSV Reader

Reads the semicolon-delimited inventory export into row dicts with Polars.
Every column is read as a string; the first row supplies the header names.
The whole file is materialized before returning.
"""

import io
from pathlib import Path
from typing import Dict, List, Optional, Union

import polars as pl
import structlog

from stocksync.exceptions import CSVParseError

CSVSource = Union[str, Path, bytes]

REPLACEMENT_CHAR = "\ufffd"

# Line numbers listed per warning; the count is always complete
MAX_REPORTED_LINES = 20


def _decode(source: CSVSource, encoding: str, label: str) -> str:
    """
    Decode the export, replacing undecodable bytes with U+FFFD.

    Raises:
        CSVParseError: If the file cannot be opened or the encoding is unknown
    """
    try:
        raw = source if isinstance(source, bytes) else Path(source).read_bytes()
        return raw.decode(encoding, errors="replace")
    except (OSError, LookupError) as e:
        raise CSVParseError(f"Could not read {label}: {e}") from e


def _ragged_lines(text: str, delimiter: str) -> List[int]:
    """Line numbers of non-empty lines whose field count differs from the header's"""
    lines = pl.DataFrame({"text": text.splitlines()}).with_row_index("line", offset=1)
    if lines.height == 0:
        return []

    # Delimiters inside quoted values do not separate fields
    fields = (
        pl.col("text").str.replace_all(r'"[^"]*"', "").str.count_matches(delimiter, literal=True) + 1
    )
    counted = lines.with_columns(fields.alias("fields"))
    expected = counted["fields"][0]
    ragged = counted.slice(1).filter(
        (pl.col("text").str.strip_chars() != "") & (pl.col("fields") != expected)
    )
    return ragged["line"].to_list()


def read_inventory_csv(
    source: CSVSource,
    delimiter: str = ";",
    encoding: str = "utf-8",
    logger=None,
) -> List[Dict[str, Optional[str]]]:
    """
    Parse an inventory export into a list of row dicts.

    Bytes that are not valid in `encoding` become U+FFFD. Ragged lines are
    truncated or padded with nulls. Both are logged with their line numbers,
    as are blank rows, which are dropped.

    Args:
        source: File path or raw bytes of the export
        delimiter: Field separator
        encoding: Text encoding of the file
        logger: Logger to report row-level problems to

    Returns:
        Row dicts keyed by trimmed header name; empty for empty or
        header-only input

    Raises:
        CSVParseError: If the stream cannot be read at all
    """
    log = logger or structlog.get_logger(__name__)
    label = "<upload>" if isinstance(source, bytes) else str(source)

    try:
        text = _decode(source, encoding, label)
    except CSVParseError as e:
        log.error("Error reading CSV file", source=label, error=str(e))
        raise

    undecodable = [number for number, line in enumerate(text.splitlines(), start=1) if REPLACEMENT_CHAR in line]
    if undecodable:
        log.warning(
            "Replaced undecodable bytes in CSV rows",
            source=label,
            encoding=encoding,
            lines=undecodable[:MAX_REPORTED_LINES],
            count=len(undecodable),
        )

    ragged = _ragged_lines(text, delimiter)
    if ragged:
        log.warning("Ragged CSV rows", source=label, lines=ragged[:MAX_REPORTED_LINES], count=len(ragged))

    try:
        df = pl.read_csv(
            io.BytesIO(text.encode("utf-8")),
            separator=delimiter,
            encoding="utf8",
            infer_schema_length=0,
            truncate_ragged_lines=True,
            ignore_errors=True,
            raise_if_empty=False,
        )
    except pl.exceptions.NoDataError:
        log.warning("CSV file is empty", source=label)
        return []
    except pl.exceptions.PolarsError as e:
        log.error("Error parsing CSV file", source=label, error=str(e))
        raise CSVParseError(f"Could not parse {label}: {e}") from e

    df = df.rename({col: col.lstrip("\ufeff").strip() for col in df.columns})

    if df.width == 0 or df.height == 0:
        log.info("CSV parsing complete", source=label, rows=0, columns=df.columns)
        return []

    blank = df.select(pl.all_horizontal(pl.all().is_null()).alias("_blank"))["_blank"]
    # +2: one for the header, one for 1-based line numbers
    blank_rows = [index + 2 for index, is_blank in enumerate(blank.to_list()) if is_blank]
    if blank_rows:
        log.warning(
            "Skipping blank CSV rows",
            source=label,
            lines=blank_rows[:MAX_REPORTED_LINES],
            count=len(blank_rows),
        )
        df = df.filter(~blank)

    rows = df.to_dicts()
    log.info("CSV parsing complete", source=label, rows=len(rows), columns=len(df.columns))
    return rows
