"""
Stale redirect detection for `rewriter import --reset`.

The route index is read before the import starts. Whatever was indexed but
not part of the imported file is stale and gets handed to the delete
pipeline through a temporary `from`-only CSV.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterable

from ..constants import DELETE_FILE_PREFIX
from ..core.exceptions import ImportInterrupted, ReconcileError, ToolbeltError
from .utils import DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE, is_last_change_date

log = logging.getLogger(__name__)


def fetch_indexed_routes(client) -> list[str]:
    """Return the ids of every route currently indexed on the server."""
    files = client.routes_index_files() or []
    names = [f.file_name for f in files if not is_last_change_date(f.file_name)]
    log.debug("Reading %d route index file(s)", len(names))

    routes: list[str] = []
    for name in names:
        routes.extend(client.routes_index(name))
    return routes


def compute_stale(
    indexed: Iterable[str] | None,
    imported: Iterable[str],
) -> list[str]:
    """indexed − imported, keeping index order and dropping duplicates."""
    if indexed is None:
        return []
    imported_set = set(imported)
    stale = []
    seen = set()
    for route in indexed:
        if route in imported_set or route in seen:
            continue
        seen.add(route)
        stale.append(route)
    return stale


def _escape(route: str) -> str:
    route = route.replace(DELETE_FILE_ESCAPE, DELETE_FILE_ESCAPE * 2)
    return route.replace(DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE + DELETE_FILE_DELIMITER)


def write_delete_file(routes: list[str], work_dir: str | Path = ".") -> Path:
    """Write an unquoted CSV with a single `from` column.

    `;` and `\\` inside a route are backslash-escaped; read it back with
    `read_csv(path, DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE)`.
    """
    path = Path(work_dir) / f"{DELETE_FILE_PREFIX}{int(time.time() * 1000)}.csv"
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write("from\n")
        for route in routes:
            f.write(_escape(route) + "\n")
    return path


def delete_stale(
    stale: list[str],
    delete: Callable[[Path], object],
    work_dir: str | Path = ".",
) -> Path | None:
    """Delete `stale` routes through `delete(csv_path)`.

    Returns the path of the (already removed) temporary file, or None when
    there was nothing to delete. If `delete` fails the file is kept so the
    deletion can be finished by hand.
    """
    if not stale:
        return None

    path = write_delete_file(stale, work_dir)
    log.info("Deleting %d old redirect(s)...", len(stale))
    log.info(
        "In case this step fails, run 'toolbelt rewriter delete %s' "
        "to finish deleting old redirects.",
        path.resolve(),
    )
    try:
        delete(path)
    except ImportInterrupted:
        log.warning("Deletion stopped; %s was kept", path.resolve())
        raise
    except ToolbeltError as e:
        raise ReconcileError(
            path,
            f"Deleting old redirects failed: {e}\n"
            f"Run 'toolbelt rewriter delete {path.resolve()}' to finish.",
        ) from e

    path.unlink(missing_ok=True)
    return path
