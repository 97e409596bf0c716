"""
`rewriter import` -- bulk redirect import with resume and optional reset.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from ..config import Settings
from ..constants import IMPORTS, MAX_RETRIES, REDIRECT_BATCH_SIZE, RETRY_INTERVAL_S
from .delete import delete_redirects
from .pipeline import ImportJob, ImportState, ResumablePipeline
from .reconcile import compute_stale, delete_stale, fetch_indexed_routes
from .uploader import ProgressCallback
from .utils import DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE, INPUT_SCHEMA

log = logging.getLogger(__name__)


class RedirectImporter:
    """Import a redirects CSV into the current account/workspace.

    Usage:
        with create_client(settings) as client:
            importer = RedirectImporter(client, settings)
            imported = importer.run("redirects.csv", reset=True)
    """

    def __init__(
        self,
        client,
        settings: Settings,
        metainfo_path: Path | None = None,
        batch_size: int = REDIRECT_BATCH_SIZE,
        max_retries: int = MAX_RETRIES,
        retry_interval: float = RETRY_INTERVAL_S,
        sleep: Callable[[float], None] = time.sleep,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
        work_dir: str | Path = ".",
    ):
        self.client = client
        self.settings = settings
        self.metainfo_path = metainfo_path
        self.work_dir = Path(work_dir)
        self.job: ImportJob | None = None
        self._pipeline = ResumablePipeline(
            send=client.import_redirects,
            namespace=IMPORTS,
            schema=INPUT_SCHEMA,
            settings=settings,
            batch_size=batch_size,
            metainfo_path=metainfo_path,
            max_retries=max_retries,
            retry_interval=retry_interval,
            sleep=sleep,
            progress=progress,
            cancel_event=cancel_event,
        )

    def run(self, csv_path: str | Path, reset: bool = False) -> list[str]:
        """Import `csv_path` and return the imported `from` paths.

        With `reset`, redirects that were indexed before the import but are
        not in the file are deleted afterwards.
        """
        indexed = None
        if reset:
            log.info("Reading current route index...")
            indexed = fetch_indexed_routes(self.client)
            log.debug("%d route(s) indexed before import", len(indexed))

        self.job = job = ImportJob(csv_path=Path(csv_path))
        records = self._pipeline.run(job)
        imported = [r["from"] for r in records]

        if reset:
            job.state = ImportState.RECONCILING
            stale = compute_stale(indexed, imported)
            try:
                delete_stale(stale, self._delete, self.work_dir)
            except Exception:
                job.state = ImportState.FAILED
                raise
            job.state = ImportState.SUCCESS

        return imported

    def _delete(self, path: Path):
        return delete_redirects(
            self.client,
            path,
            self.settings,
            metainfo_path=self.metainfo_path,
            max_retries=self._pipeline.max_retries,
            retry_interval=self._pipeline.retry_interval,
            sleep=self._pipeline.sleep,
            progress=self._pipeline.progress,
            cancel_event=self._pipeline.cancel_event,
            delimiter=DELETE_FILE_DELIMITER,
            escapechar=DELETE_FILE_ESCAPE,
        )
