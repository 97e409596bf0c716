"""
Shared helpers for the rewriter commands: CSV reading, schema validation,
batching and index-file filtering.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path

import jsonschema

from ..constants import LAST_CHANGE_DATE, REDIRECT_BATCH_SIZE
from ..core.exceptions import ReadError, ValidationError

log = logging.getLogger(__name__)

_REDIRECT_ITEM = {
    "type": "object",
    "properties": {
        "from": {"type": "string", "minLength": 1},
        "to": {"type": "string", "minLength": 1},
        "endDate": {"type": "string"},
        "type": {"type": "string", "enum": ["PERMANENT", "TEMPORARY"]},
    },
    "additionalProperties": False,
    "required": ["from", "to", "type"],
    # Temporary redirects expire, so they need an end date
    "if": {"properties": {"type": {"const": "TEMPORARY"}}, "required": ["type"]},
    "then": {"required": ["endDate"]},
}

INPUT_SCHEMA = {"type": "array", "items": _REDIRECT_ITEM}

DELETE_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {"from": {"type": "string", "minLength": 1}},
        "additionalProperties": False,
        "required": ["from"],
    },
}

# Format of the `from`-only file handed to the delete pipeline
DELETE_FILE_DELIMITER = ";"
DELETE_FILE_ESCAPE = "\\"


def handle_read_error(path, exc: OSError) -> ReadError:
    """Turn an OS error into a ReadError naming the file."""
    if isinstance(exc, FileNotFoundError):
        return ReadError(f"File not found: {path}")
    if isinstance(exc, IsADirectoryError):
        return ReadError(f"Expected a file but got a directory: {path}")
    if isinstance(exc, PermissionError):
        return ReadError(f"Permission denied reading {path}")
    return ReadError(f"Could not read {path}: {exc}")


def read_file(path: str | Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise handle_read_error(path, e) from e


def _sniff_delimiter(header: str) -> str:
    return ";" if ";" in header else ","


def read_csv(
    path: str | Path,
    delimiter: str | None = None,
    escapechar: str | None = None,
) -> list[dict]:
    """Read a CSV file into a list of row dicts, in file order.

    Empty cells are left out of the row so optional columns such as
    ``endDate`` are simply absent. Without an explicit `delimiter` it is
    guessed from the header line. With `escapechar` the file is read
    unquoted and the character escapes the next one, as written by
    `reconcile.write_delete_file`.
    """
    try:
        with open(path, encoding="utf-8-sig", newline="") as f:
            text = f.read()
    except OSError as e:
        raise handle_read_error(path, e) from e
    except UnicodeDecodeError as e:
        raise ReadError(f"{path} is not a UTF-8 text file: {e}") from e

    lines = text.splitlines()
    if not lines:
        return []
    delimiter = delimiter or _sniff_delimiter(lines[0])

    rows = []
    if escapechar:
        reader = csv.DictReader(
            lines, delimiter=delimiter, escapechar=escapechar, quoting=csv.QUOTE_NONE
        )
    else:
        reader = csv.DictReader(lines, delimiter=delimiter)
    for raw in reader:
        row = {}
        for key, value in raw.items():
            # Extra cells beyond the header land under the None key
            if key is None:
                row["__extra__"] = value
                continue
            key = key.strip()
            if value is None:
                continue
            value = value.strip()
            if value:
                row[key] = value
        if row:
            rows.append(row)

    log.debug("Read %d row(s) from %s (delimiter %r)", len(rows), path, delimiter)
    return rows


def _error_sort_key(error):
    path = list(error.absolute_path)
    index = path[0] if path and isinstance(path[0], int) else -1
    return index, error.message


def validate_input(schema: dict, rows: list[dict]) -> None:
    """Validate every row; raise one ValidationError listing all problems."""
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(rows), key=_error_sort_key):
        path = list(error.absolute_path)
        if path and isinstance(path[0], int):
            errors.append(f"row {path[0] + 1}: {error.message}")
        else:
            errors.append(error.message)
    if errors:
        raise ValidationError(errors)


def split_json_array(rows: list, size: int = REDIRECT_BATCH_SIZE) -> list[list]:
    """Partition rows into consecutive batches of at most `size`."""
    if size <= 0:
        raise ValueError("Batch size must be positive")
    return [rows[i:i + size] for i in range(0, len(rows), size)]


def is_last_change_date(file_name: str) -> bool:
    return Path(file_name).stem == LAST_CHANGE_DATE
