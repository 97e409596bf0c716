"""
`rewriter delete` -- remove redirects listed in a `from`-only CSV.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from ..config import Settings
from ..constants import (
    DELETE_BATCH_SIZE,
    DELETE_FILE_PREFIX,
    DELETES,
    MAX_RETRIES,
    RETRY_INTERVAL_S,
)
from .pipeline import ImportJob, ResumablePipeline
from .uploader import ProgressCallback
from .utils import DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE, DELETE_SCHEMA

log = logging.getLogger(__name__)


def delete_redirects(
    client,
    csv_path: str | Path,
    settings: Settings,
    metainfo_path: Path | None = None,
    batch_size: int = DELETE_BATCH_SIZE,
    max_retries: int = MAX_RETRIES,
    retry_interval: float = RETRY_INTERVAL_S,
    sleep: Callable[[float], None] = time.sleep,
    progress: ProgressCallback | None = None,
    cancel_event: threading.Event | None = None,
    delimiter: str | None = None,
    escapechar: str | None = None,
) -> list[str]:
    """Delete every path in `csv_path`; returns the deleted paths.

    Files left behind by `import --reset` are recognised by their name and
    read in the escaped format they were written in.
    """
    if delimiter is None and Path(csv_path).name.startswith(DELETE_FILE_PREFIX):
        delimiter, escapechar = DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE
    pipeline = ResumablePipeline(
        send=client.delete_redirects,
        namespace=DELETES,
        schema=DELETE_SCHEMA,
        settings=settings,
        batch_size=batch_size,
        transform=lambda row: row["from"],
        metainfo_path=metainfo_path,
        max_retries=max_retries,
        retry_interval=retry_interval,
        sleep=sleep,
        progress=progress,
        cancel_event=cancel_event,
        delimiter=delimiter,
        escapechar=escapechar,
    )
    records = pipeline.run(ImportJob(csv_path=Path(csv_path)))
    log.info("Deleted %d redirect(s)", len(records))
    return [r["from"] for r in records]
