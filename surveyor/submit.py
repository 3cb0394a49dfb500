"""Batch submission of pending submissions to the remote service."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from .gateway import GatewayError, SubmissionGateway
from .storage import Submission

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class BatchStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_FAILURES = "completed_with_failures"


@dataclass
class BatchResult:
    """Outcome of a batch, in input order within each list."""

    status: BatchStatus
    total: int
    succeeded: List[Submission] = field(default_factory=list)
    failed: List[Submission] = field(default_factory=list)
    cancelled: bool = False

    @property
    def num_failed(self) -> int:
        return len(self.failed)


class SubmissionBatchRunner:
    """Pushes submissions one after another, isolating failures per item.

    For each submission the created fields are sent first, then the contact
    is resolved, then the results are posted. A failure on one submission is
    counted and the batch moves on. The runner never deletes files; callers
    remove the succeeded submissions themselves.
    """

    def __init__(self, gateway: SubmissionGateway) -> None:
        self._gateway = gateway
        self._cancel = threading.Event()
        self.status = BatchStatus.NOT_STARTED

    def cancel(self) -> None:
        """Stop after the submission currently in flight."""
        self._cancel.set()

    def submit_one(self, submission: Submission) -> None:
        """Run the three-part protocol for a single submission.

        Raises:
            GatewayError: If any remote call fails.
        """
        if submission.fields:
            self._gateway.add_created_fields(submission.fields)

        contact_uuid = self._gateway.add_contact(submission.contact)
        submission.resolve_contact(contact_uuid)

        self._gateway.add_results(submission, contact_uuid)

    def run(
        self,
        submissions: Sequence[Submission],
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_failure: Optional[Callable[[int], None]] = None,
    ) -> BatchResult:
        """Submit ``submissions`` in order and report progress after each one."""
        if self.status == BatchStatus.RUNNING:
            raise RuntimeError("Batch is already running")

        self.status = BatchStatus.RUNNING
        total = len(submissions)
        result = BatchResult(status=BatchStatus.RUNNING, total=total)
        logger.info(f"Submitting {total} submissions")

        for done, submission in enumerate(submissions, start=1):
            if self._cancel.is_set():
                logger.info(f"Batch cancelled after {done - 1} of {total} submissions")
                result.cancelled = True
                break

            try:
                self.submit_one(submission)
            except (GatewayError, OSError) as e:
                logger.warning(f"Failed to submit {submission.path.name}: {e}")
                result.failed.append(submission)
            else:
                result.succeeded.append(submission)

            if on_progress is not None:
                on_progress(round(100 * done / total))

        self._cancel.clear()

        if result.failed:
            result.status = BatchStatus.COMPLETED_WITH_FAILURES
            logger.warning(
                f"Batch finished with {result.num_failed} of {total} submissions failed"
            )
        else:
            result.status = BatchStatus.COMPLETED
            logger.info(f"Batch finished: {len(result.succeeded)} submitted")
        self.status = result.status

        if result.failed:
            if on_failure is not None:
                on_failure(result.num_failed)
        elif on_complete is not None:
            on_complete()

        return result

    async def run_async(
        self,
        submissions: Sequence[Submission],
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_failure: Optional[Callable[[int], None]] = None,
    ) -> BatchResult:
        """Run the batch on a worker thread."""
        return await asyncio.to_thread(
            self.run, submissions, on_progress, on_complete, on_failure
        )
