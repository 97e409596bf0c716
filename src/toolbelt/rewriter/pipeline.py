"""
Resumable CSV -> rewriter pipeline shared by `import` and `delete`.

One attempt walks the job through:

    START -> HASHING -> RESUMING -> VALIDATING -> UPLOADING -> SUCCESS

and any failure leaves it in FAILED. The outer loop retries transport
failures a bounded number of times; every retry re-reads the file, gets the
same fingerprint and therefore resumes from the saved counter.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ..config import Settings
from ..constants import MAX_RETRIES, RETRY_INTERVAL_S
from ..core.exceptions import RemoteServiceError, TransportError
from ..core.metainfo import (
    compute_fingerprint,
    delete_metainfo,
    get_counter,
    load_metainfo,
    save_metainfo,
)
from .uploader import BatchUploader, ProgressCallback
from .utils import read_csv, read_file, split_json_array, validate_input

log = logging.getLogger(__name__)


class ImportState(enum.Enum):
    START = "start"
    HASHING = "hashing"
    RESUMING = "resuming"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    RECONCILING = "reconciling"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class ImportJob:
    """State of one CSV file being pushed to the rewriter."""

    csv_path: Path
    fingerprint: str = ""
    records: list[dict] = field(default_factory=list)
    batches: list[list] = field(default_factory=list)
    counter: int = 0
    attempt: int = 0
    state: ImportState = ImportState.START

    @property
    def total_batches(self) -> int:
        return len(self.batches)


class ResumablePipeline:
    """Validate a CSV and send it in checkpointed batches.

    Args:
        send: Called once per batch with the transformed rows.
        namespace: Metainfo namespace the counter is stored under.
        schema: JSON schema every row must satisfy.
        settings: Session settings; account and workspace feed the fingerprint.
        transform: Maps a validated row to what `send` expects.
        delimiter, escapechar: CSV format passed to `read_csv`; the delimiter
            is guessed from the header when not given.
    """

    def __init__(
        self,
        send: Callable[[list], None],
        namespace: str,
        schema: dict,
        settings: Settings,
        batch_size: int,
        transform: Callable[[dict], object] | None = None,
        metainfo_path: Path | None = None,
        max_retries: int = MAX_RETRIES,
        retry_interval: float = RETRY_INTERVAL_S,
        sleep: Callable[[float], None] = time.sleep,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
        delimiter: str | None = None,
        escapechar: str | None = None,
    ):
        self._send = send
        self.namespace = namespace
        self.schema = schema
        self.settings = settings
        self.batch_size = batch_size
        self._transform = transform
        self.metainfo_path = metainfo_path
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.sleep = sleep
        self.progress = progress
        self.cancel_event = cancel_event or threading.Event()
        self.delimiter = delimiter
        self.escapechar = escapechar

    def run(self, job: ImportJob) -> list[dict]:
        """Run `job` to completion, retrying transport failures.

        Returns the validated rows. Raises the last error once the job ends
        in FAILED; the checkpoint is kept in that case.
        """
        for attempt in range(1, self.max_retries + 2):
            job.attempt = attempt
            try:
                return self._attempt(job)
            except RemoteServiceError as e:
                job.state = ImportState.FAILED
                for error in e.errors:
                    log.error("Remote error: %s", error.get("message", error))
                raise
            except TransportError as e:
                job.state = ImportState.FAILED
                log.error("Error handling %s: %s", job.csv_path, e)
                if attempt > self.max_retries:
                    raise
                log.error("Retrying in %s seconds...", self.retry_interval)
                log.info("Press CTRL+C to abort")
                self.sleep(self.retry_interval)
            except Exception:
                job.state = ImportState.FAILED
                raise
        raise AssertionError("unreachable")

    def _attempt(self, job: ImportJob) -> list[dict]:
        job.state = ImportState.HASHING
        contents = read_file(job.csv_path)
        job.fingerprint = compute_fingerprint(
            self.settings.account, self.settings.workspace, contents
        )

        job.state = ImportState.RESUMING
        metainfo = load_metainfo(self.metainfo_path)
        job.counter = get_counter(metainfo, self.namespace, job.fingerprint)

        job.state = ImportState.VALIDATING
        job.records = read_csv(job.csv_path, self.delimiter, self.escapechar)
        validate_input(self.schema, job.records)
        rows = job.records
        if self._transform:
            rows = [self._transform(r) for r in rows]
        job.batches = split_json_array(rows, self.batch_size)

        job.state = ImportState.UPLOADING

        def checkpoint(counter: int):
            job.counter = counter
            save_metainfo(
                metainfo, self.namespace, job.fingerprint, counter, self.metainfo_path
            )

        uploader = BatchUploader(
            self._send,
            checkpoint=checkpoint,
            progress=self.progress,
            cancel_event=self.cancel_event,
        )
        job.counter = uploader.upload(job.batches, job.counter)

        delete_metainfo(metainfo, self.namespace, job.fingerprint, self.metainfo_path)
        job.state = ImportState.SUCCESS
        log.info("Finished %s (%d batch(es))", job.csv_path, job.total_batches)
        return job.records
