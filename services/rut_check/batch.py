"""
Bulk RUT normalization for imported spreadsheets.

Loads records from CSV/Excel files, validates the RUT column of every row,
flags repeated RUTs within the same batch and writes the annotated rows back
out. Rows are never dropped: invalid and duplicate RUTs are reported so the
caller can decide whether to reject the import or only warn.
"""

import time
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from .helpers.rut import ValidationResult, validate_rut
from .log_config import get_logger, log_processing_batch

logger = get_logger(__name__)


# Column names that usually hold the RUT in school/customer exports
RUT_COLUMN_ALIASES: List[str] = [
    "rut", "RUT", "Rut",
    "run", "RUN", "Run",
    "rut_persona", "RUT_PERSONA",
    "rut_alumno", "RUT_ALUMNO",
    "rut_profesor", "RUT_PROFESOR",
    "rut_cliente", "RUT_CLIENTE",
    "rut_empresa", "RUT_EMPRESA",
]


class LoadError(Exception):
    """Error while reading or writing a batch file."""
    pass


class UnsupportedFormatError(LoadError):
    """File format not supported."""
    pass


class MissingColumnError(LoadError):
    """The batch has no RUT column."""
    pass


@dataclass
class RowOutcome:
    """Validation outcome for a single imported row."""

    row_number: int
    raw: Optional[str]
    result: ValidationResult
    record: Dict[str, Any] = field(default_factory=dict)
    duplicate_of: Optional[int] = None

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of is not None


@dataclass
class BatchResult:
    """Aggregated outcome of a bulk normalization run."""

    column: Optional[str]
    outcomes: List[RowOutcome] = field(default_factory=list)

    @property
    def valid_count(self) -> int:
        return sum(1 for o in self.outcomes if o.result.valid)

    @property
    def invalid_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.result.valid)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for o in self.outcomes if o.is_duplicate)

    @property
    def ok(self) -> bool:
        return self.invalid_count == 0 and self.duplicate_count == 0

    def errors_by_kind(self) -> Dict[str, int]:
        """Count invalid rows per failure reason."""
        counts: Dict[str, int] = {}
        for outcome in self.outcomes:
            kind = outcome.result.error_kind
            if kind is not None:
                counts[kind.value] = counts.get(kind.value, 0) + 1
        return counts

    def to_records(self) -> List[Dict[str, Any]]:
        """Original rows with the RUT annotations appended."""
        rows = []
        for outcome in self.outcomes:
            row = dict(outcome.record)
            row["rut_formatted"] = outcome.result.formatted
            row["rut_valid"] = outcome.result.valid
            row["rut_error"] = outcome.result.error
            row["rut_duplicate_of"] = outcome.duplicate_of
            rows.append(row)
        return rows


def _detect_format(path: Union[str, Path]) -> str:
    """
    Detect file format from its extension.

    Returns: "csv" or "xlsx"
    Raises: UnsupportedFormatError if format cannot be determined
    """
    name = Path(path).name
    lower_name = name.lower()

    if lower_name.endswith(".csv"):
        return "csv"
    elif lower_name.endswith(".xlsx"):
        return "xlsx"
    else:
        raise UnsupportedFormatError(
            f"Unsupported file format: {name}. Expected .csv or .xlsx"
        )


def _read_csv(
    source: Union[str, BytesIO],
    encoding: str = "utf-8",
) -> pd.DataFrame:
    """
    Read CSV file into DataFrame.

    Tries multiple encodings if the primary one fails.
    """
    encodings_to_try = [encoding, "latin-1", "cp1252"]

    for enc in encodings_to_try:
        try:
            if isinstance(source, BytesIO):
                source.seek(0)
            return pd.read_csv(source, encoding=enc, dtype=str, keep_default_na=False)
        except UnicodeDecodeError:
            continue
        except Exception as e:
            raise LoadError(f"Error reading CSV: {e}") from e

    raise LoadError(
        f"Could not decode CSV with any of: {encodings_to_try}"
    )


def _read_excel(source: Union[str, BytesIO]) -> pd.DataFrame:
    """Read Excel file into DataFrame."""
    try:
        return pd.read_excel(source, dtype=str)
    except Exception as e:
        raise LoadError(f"Error reading Excel file: {e}") from e


def load_records(
    file_path: Union[str, Path],
    encoding: str = "utf-8",
) -> List[Dict[str, Any]]:
    """
    Load rows from a CSV or Excel file.

    All cells are read as strings so RUT bodies keep their leading zeros.

    Args:
        file_path: Path to CSV or Excel file
        encoding: Character encoding for CSV files (default UTF-8)

    Returns:
        List of dictionaries, one per row

    Raises:
        LoadError: If file cannot be read
        UnsupportedFormatError: If file format is not supported
        FileNotFoundError: If file does not exist
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    file_format = _detect_format(path)
    logger.info("Loading batch file", path=str(path), file_format=file_format)

    if file_format == "csv":
        df = _read_csv(str(path), encoding=encoding)
    else:
        df = _read_excel(str(path))

    # Replace NaN (empty Excel cells) with None
    records = df.astype(object).where(pd.notna(df), None).to_dict(orient="records")

    logger.info("Batch file loaded", path=str(path), records=len(records))
    return records


def write_records(records: List[Dict[str, Any]], file_path: Union[str, Path]) -> None:
    """
    Write annotated rows to a CSV or Excel file.

    Raises:
        LoadError: If the file cannot be written
        UnsupportedFormatError: If file format is not supported
    """
    path = Path(file_path)
    file_format = _detect_format(path)
    df = pd.DataFrame.from_records(records)

    try:
        if file_format == "csv":
            df.to_csv(path, index=False, encoding="utf-8")
        else:
            df.to_excel(path, index=False)
    except Exception as e:
        raise LoadError(f"Error writing {file_format.upper()} file: {e}") from e

    logger.info("Batch file written", path=str(path), records=len(records))


def find_rut_column(
    record: Dict[str, Any],
    column: Optional[str] = None,
) -> Optional[str]:
    """
    Find the column that holds the RUT.

    Args:
        record: Sample row
        column: Explicit column name; takes precedence over aliases

    Returns:
        Column name, or None if no RUT column is present
    """
    if column:
        return column if column in record else None

    for alias in RUT_COLUMN_ALIASES:
        if alias in record:
            return alias

    return None


def _cell_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_records(
    records: Iterable[Dict[str, Any]],
    column: Optional[str] = None,
    flag_duplicates: bool = True,
    batch_id: Optional[str] = None,
) -> BatchResult:
    """
    Validate and canonicalize the RUT of every record.

    Row numbers are 1-based in file order. A row whose canonical RUT was
    already seen earlier in the batch is flagged with the first row number.
    Empty or missing cells are reported as invalid (length error).

    Args:
        records: Rows as dictionaries
        column: RUT column name (auto-detected from the first row if omitted)
        flag_duplicates: Report repeated valid RUTs as duplicates
        batch_id: Identifier used in the summary log entry

    Returns:
        BatchResult with one RowOutcome per record

    Raises:
        MissingColumnError: If the RUT column is not present in the first row
    """
    rows = list(records)
    start_time = time.monotonic()

    rut_column = find_rut_column(rows[0], column) if rows else column
    if rows and rut_column is None:
        available = list(rows[0].keys())
        logger.error(
            "RUT column not found",
            requested_column=column,
            available_columns=available,
        )
        raise MissingColumnError(
            f"RUT column {column!r} not found. Available columns: {available}"
            if column
            else f"No RUT column found. Tried: {RUT_COLUMN_ALIASES}"
        )

    result = BatchResult(column=rut_column)
    seen: Dict[str, int] = {}

    for row_number, record in enumerate(rows, start=1):
        raw = _cell_text(record.get(rut_column))
        validation = validate_rut(raw or "")
        outcome = RowOutcome(row_number=row_number, raw=raw, result=validation, record=record)

        if validation.valid and flag_duplicates:
            first_row = seen.get(validation.formatted)
            if first_row is None:
                seen[validation.formatted] = row_number
            else:
                outcome.duplicate_of = first_row
                logger.debug(
                    "Duplicate RUT in batch",
                    row_number=row_number,
                    rut=validation.formatted,
                    first_row=first_row,
                )

        if not validation.valid:
            logger.debug(
                "Invalid RUT in batch",
                row_number=row_number,
                raw=raw,
                error_kind=validation.error_kind.value,
            )

        result.outcomes.append(outcome)

    duration_ms = (time.monotonic() - start_time) * 1000
    log_processing_batch(
        logger,
        batch_id=batch_id or f"rut_batch_{int(time.time())}",
        items_processed=result.valid_count,
        items_failed=result.invalid_count,
        duration_ms=duration_ms,
        column=rut_column,
        duplicates=result.duplicate_count,
    )

    return result
