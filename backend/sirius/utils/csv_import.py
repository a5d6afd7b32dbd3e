"""Spreadsheet parsing for feed uploads, plus CSV helpers for feed output.

Uploads arrive as CSV or XLSX. Both are read into a list of raw rows
(lists of cell values, header row included); column mapping and
validation happen later against field ids.
"""

import csv
import io
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

CSV_MIME_TYPES = {"text/csv"}
EXCEL_MIME_TYPES = {
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}
ALLOWED_MIME_TYPES = CSV_MIME_TYPES | EXCEL_MIME_TYPES

ZIP_MAGIC = b"PK\x03\x04"
OLE_MAGIC = b"\xd0\xcf\x11\xe0"


class UnsupportedFileType(ValueError):
    pass


def parse_csv_rows(content: bytes) -> list[list[str]]:
    text = content.decode("utf-8-sig")  # handle BOM from Excel
    reader = csv.reader(io.StringIO(text))
    return [row for row in reader if any(cell.strip() for cell in row)]


def parse_xlsx_rows(content: bytes) -> list[list[Any]]:
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = []
        for values in sheet.iter_rows(values_only=True):
            if any(v not in (None, "") for v in values):
                rows.append(["" if v is None else v for v in values])
        return rows
    finally:
        workbook.close()


def parse_rows(content: bytes, mime_type: str | None) -> list[list[Any]]:
    """Parse an uploaded spreadsheet into raw rows.

    The mime type only says "spreadsheet"; browsers send
    application/vnd.ms-excel for plain .csv files too, so the bytes decide:
    a zip container is XLSX, an OLE container is legacy .xls (unsupported),
    anything else is read as CSV.
    """
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedFileType("Unsupported file type")
    if content.startswith(ZIP_MAGIC):
        try:
            return parse_xlsx_rows(content)
        except (BadZipFile, InvalidFileException, KeyError) as exc:
            raise UnsupportedFileType("File is not a readable XLSX workbook") from exc
    if content.startswith(OLE_MAGIC):
        raise UnsupportedFileType("Legacy .xls files are not supported; save as .xlsx or .csv")
    try:
        return parse_csv_rows(content)
    except (UnicodeDecodeError, csv.Error) as exc:
        raise UnsupportedFileType("File is not valid UTF-8 CSV") from exc


def map_columns(
    raw_rows: list[list[Any]],
    column_mapping: dict[str, str],
    has_headers: bool = True,
    unmapped: str = "_unmapped",
) -> list[dict[str, Any]]:
    """Turn positional rows into {field_id: value} dicts.

    `column_mapping` keys are column indexes (as strings, the way they come
    back from JSON), values are field ids.
    """
    columns: list[tuple[int, str]] = []
    for source_col, field_id in column_mapping.items():
        if not field_id or field_id == unmapped:
            continue
        try:
            columns.append((int(source_col), field_id))
        except (TypeError, ValueError):
            continue

    data_rows = raw_rows[1:] if has_headers else raw_rows
    mapped_rows = []
    for row in data_rows:
        mapped_rows.append({
            field_id: (row[index] if index < len(row) else None)
            for index, field_id in columns
        })
    return mapped_rows


def serialize_csv(records: list[dict[str, Any]], headers: list[str] | None = None) -> str:
    """Write records as CSV; headers default to the first record's keys."""
    if not records:
        return ""
    headers = headers or list(records[0].keys())
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow(["" if record.get(h) is None else record.get(h) for h in headers])
    return output.getvalue()


def generate_template_csv(
    headers: list[str],
    sample_row: dict[str, str] | None = None,
) -> str:
    """Generate CSV template string with headers and optional sample row."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    if sample_row:
        writer.writerow([sample_row.get(h, "") for h in headers])
    return output.getvalue()
