"""
Upload parsing for bulk lookups.

Turns an uploaded .csv or .xlsx into a list of field maps. Required columns
are checked against the header before anything else happens.
"""
import csv
import io
import logging
from typing import Any, Dict, List

from openpyxl import load_workbook

from app.core.exceptions import RequestValidationFailed
from app.services.identity import REQUIRED_FIELDS

logger = logging.getLogger(__name__)


ALLOWED_EXTENSIONS = (".csv", ".xlsx")


def _cell(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def read_csv(contents: bytes) -> List[Dict[str, Any]]:
    try:
        text = contents.decode("utf-8-sig")  # utf-8-sig handles BOM automatically
    except UnicodeDecodeError as e:
        raise RequestValidationFailed(f"Could not decode CSV file: {e}") from e

    reader = csv.DictReader(io.StringIO(text))
    header = [name.strip() for name in (reader.fieldnames or []) if name]
    check_required_columns(header)

    rows = []
    for row in reader:
        values = {(k or "").strip(): _cell(v) for k, v in row.items() if k}
        if not any(v not in (None, "") for v in values.values()):
            continue
        rows.append(values)
    return rows


def read_xlsx(contents: bytes) -> List[Dict[str, Any]]:
    try:
        workbook = load_workbook(io.BytesIO(contents), read_only=True, data_only=True)
    except Exception as e:
        raise RequestValidationFailed(f"Could not read spreadsheet: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        rows_iter = sheet.iter_rows(values_only=True)
        header_row = next(rows_iter, None)
        if header_row is None:
            raise RequestValidationFailed("Spreadsheet is empty")

        header = [str(cell).strip() if cell is not None else "" for cell in header_row]
        check_required_columns(header)

        rows = []
        for raw in rows_iter:
            if raw is None or all(cell is None or cell == "" for cell in raw):
                continue
            rows.append({
                name: _cell(value)
                for name, value in zip(header, raw)
                if name
            })
        return rows
    finally:
        workbook.close()


# Accepted spellings for a required column
COLUMN_ALIASES = {
    "linkedin": ("linkedin", "linkedinUrl"),
}


def check_required_columns(header) -> None:
    present = set(header)
    missing = [
        column for column in REQUIRED_FIELDS
        if not present.intersection(COLUMN_ALIASES.get(column, (column,)))
    ]
    if missing:
        raise RequestValidationFailed(f"Missing required columns: {', '.join(missing)}")


def parse_upload(filename: str, contents: bytes) -> List[Dict[str, Any]]:
    """Dispatch on the extension. Rejections raise RequestValidationFailed."""
    name = (filename or "").lower()
    if not name.endswith(ALLOWED_EXTENSIONS):
        raise RequestValidationFailed("Invalid file type. Please upload a CSV or Excel (.xlsx) file.")
    if not contents:
        raise RequestValidationFailed("Uploaded file is empty")

    if name.endswith(".csv"):
        rows = read_csv(contents)
    else:
        rows = read_xlsx(contents)

    if not rows:
        raise RequestValidationFailed("No records found in the uploaded file")

    logger.info(f"Parsed {len(rows)} records from {filename}")
    return rows
