"""Submission service exposed to the surveying UI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .config import SurveyorConfig, load_config
from .contracts import Field, RunState, Step
from .gateway import SubmissionGateway, get_gateway
from .storage import Submission, SubmissionLayout
from .submit import BatchResult, ProgressCallback, SubmissionBatchRunner

logger = logging.getLogger(__name__)


@dataclass
class SurveyorContext:
    """Shared services, created once at startup and passed to components."""

    layout: SubmissionLayout
    gateway: SubmissionGateway

    @classmethod
    def from_config(cls, config: Optional[SurveyorConfig] = None) -> "SurveyorContext":
        config = config or load_config()
        return cls(
            layout=SubmissionLayout(config.files_dir),
            gateway=get_gateway(config=config),
        )


class SubmissionService:
    """Creates, records, lists and submits submissions."""

    def __init__(self, context: SurveyorContext) -> None:
        self._context = context

    @property
    def layout(self) -> SubmissionLayout:
        return self._context.layout

    # ------------------------------------------------------------------
    # Runs
    def create_submission(
        self, flow_uuid: str, flow_revision: int, definition: str
    ) -> Submission:
        return Submission.create(self.layout, flow_uuid, flow_revision, definition)

    def record_progress(
        self,
        submission: Submission,
        steps: List[Step],
        fields: List[Field],
        started_at: Optional[datetime],
        is_completed: bool,
    ) -> None:
        submission.add_steps(steps, fields, started_at, is_completed)

    def record_run_state(self, submission: Submission, run_state: RunState) -> None:
        submission.add_run_state(run_state)

    def save_submission(self, submission: Submission) -> bool:
        return submission.save()

    # ------------------------------------------------------------------
    # Enumeration
    def count_pending(self, flow_uuid: str) -> int:
        return self.layout.count_pending(flow_uuid)

    def list_pending(self, flow_uuid: Optional[str] = None) -> List[Submission]:
        """Load pending submissions, skipping any that cannot be read.

        Submissions are ordered by file modification time, oldest first.
        """
        if flow_uuid is None:
            paths = self.layout.list_pending_all()
        else:
            paths = self.layout.list_pending(flow_uuid)

        submissions = []
        for path in sorted(paths, key=_sort_key):
            submission = Submission.load(self.layout, path)
            if submission is None:
                continue
            submissions.append(submission)
        return submissions

    def list_completed(self, flow_uuid: Optional[str] = None) -> List[Submission]:
        """Pending submissions whose run has finished and can be sent."""
        return [s for s in self.list_pending(flow_uuid) if s.is_completed()]

    def count_completed(self, flow_uuid: str) -> int:
        return len(self.list_completed(flow_uuid))

    # ------------------------------------------------------------------
    # Submission
    def submit_batch(
        self,
        submissions: Sequence[Submission],
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_failure: Optional[Callable[[int], None]] = None,
        runner: Optional[SubmissionBatchRunner] = None,
    ) -> BatchResult:
        """Submit a batch, delete what was sent and keep what failed.

        Failed submissions are saved again so that a contact resolved during
        the attempt is reused on retry. ``on_complete`` and ``on_failure``
        are called once the files on disk reflect the outcome.
        """
        runner = runner or SubmissionBatchRunner(self._context.gateway)
        result = runner.run(submissions, on_progress=on_progress)

        for submission in result.succeeded:
            submission.delete()
        for submission in result.failed:
            submission.save()
        if result.succeeded:
            logger.info(f"Removed {len(result.succeeded)} submitted submissions")

        if result.failed:
            if on_failure is not None:
                on_failure(result.num_failed)
        elif on_complete is not None:
            on_complete()
        return result

    # ------------------------------------------------------------------
    # Cleanup
    def delete_flow_submissions(self, flow_uuid: str) -> None:
        self.layout.delete_flow_directory(flow_uuid)

    def clear(self) -> None:
        self.layout.clear()


def _sort_key(path: Path) -> Tuple[float, str]:
    try:
        return (path.stat().st_mtime, path.name)
    except OSError:
        return (0.0, path.name)
