"""
Sequential batch uploader with per-batch checkpoints.

Batches go out one at a time, in file order. The counter only moves after
the server accepted a batch, so it always equals the number of committed
batches; whatever was in flight when a failure or Ctrl+C hit is sent again
on the next run.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Sequence

from ..core.exceptions import ImportInterrupted

log = logging.getLogger(__name__)

# (batches_done, batches_total)
ProgressCallback = Callable[[int, int], None]
CheckpointCallback = Callable[[int], None]


class BatchUploader:
    """Drive batches through `send`, saving progress after each one.

    Usage:
        uploader = BatchUploader(client.import_redirects, checkpoint=save)
        counter = uploader.upload(batches, counter=saved_counter)
    """

    def __init__(
        self,
        send: Callable[[list], None],
        checkpoint: CheckpointCallback,
        progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self._send = send
        self._checkpoint = checkpoint
        self._progress = progress
        self._cancel = cancel_event or threading.Event()

    def cancel(self):
        """Stop before the next batch is sent."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def upload(self, batches: Sequence[list], counter: int = 0) -> int:
        """Send `batches[counter:]` and return the final counter.

        Raises:
            ImportInterrupted on Ctrl+C or cancellation (checkpoint saved).
            Whatever `send` raised, after saving the checkpoint.
        """
        total = len(batches)
        if counter > total:
            log.warning(
                "Saved counter %d exceeds %d batch(es); starting over", counter, total
            )
            counter = 0
        if counter:
            log.info("Resuming from batch %d of %d", counter + 1, total)
        if self._progress:
            self._progress(counter, total)

        try:
            while counter < total:
                if self.cancelled:
                    raise ImportInterrupted(counter)
                self._send(batches[counter])
                counter += 1
                self._checkpoint(counter)
                if self._progress:
                    self._progress(counter, total)
        except KeyboardInterrupt:
            self._checkpoint(counter)
            raise ImportInterrupted(counter) from None
        except Exception:
            self._checkpoint(counter)
            raise

        return counter
