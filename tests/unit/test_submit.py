"""Batch submission tests."""

from datetime import datetime, timezone

import pytest

from surveyor.contracts import ResolvedContact, UnresolvedContact
from surveyor.gateway import GatewayError, InMemoryGateway
from surveyor.storage import Submission
from surveyor.submit import BatchStatus, SubmissionBatchRunner

from tests.factories import FLOW_UUID, make_field, make_step

STARTED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


def _make_submissions(layout, definition, count):
    submissions = []
    for i in range(count):
        submission = Submission.create(layout, FLOW_UUID, 3, definition)
        submission.update_contact(UnresolvedContact(name=f"Respondent {i}", urns=[f"tel:{i}"]))
        submission.add_steps([make_step()], [make_field()], STARTED, True)
        submission.save()
        submissions.append(submission)
    return submissions


def test_all_succeed(layout, definition):
    gateway = InMemoryGateway()
    submissions = _make_submissions(layout, definition, 3)
    progress, completed, failures = [], [], []

    runner = SubmissionBatchRunner(gateway)
    assert runner.status == BatchStatus.NOT_STARTED
    result = runner.run(
        submissions,
        on_progress=progress.append,
        on_complete=lambda: completed.append(True),
        on_failure=failures.append,
    )

    assert result.status == BatchStatus.COMPLETED
    assert runner.status == BatchStatus.COMPLETED
    assert result.succeeded == submissions
    assert result.num_failed == 0
    assert progress == [33, 67, 100]
    assert completed == [True]
    assert failures == []
    assert [name for name, _ in gateway.results] == [s.path.name for s in submissions]


def test_failures_do_not_abort_batch(layout, definition):
    submissions = _make_submissions(layout, definition, 4)
    gateway = InMemoryGateway(fail_results_for=[submissions[1].path.name])
    progress, completed, failures = [], [], []

    result = SubmissionBatchRunner(gateway).run(
        submissions,
        on_progress=progress.append,
        on_complete=lambda: completed.append(True),
        on_failure=failures.append,
    )

    assert result.status == BatchStatus.COMPLETED_WITH_FAILURES
    assert result.failed == [submissions[1]]
    assert failures == [1]
    assert completed == []
    assert progress == sorted(progress)
    assert progress[-1] == 100
    assert len(progress) == 4
    posted = [name for name, _ in gateway.results]
    assert posted == [s.path.name for i, s in enumerate(submissions) if i != 1]


def test_runner_does_not_delete_files(layout, definition):
    submissions = _make_submissions(layout, definition, 2)

    SubmissionBatchRunner(InMemoryGateway()).run(submissions)

    assert layout.count_pending(FLOW_UUID) == 2


def test_protocol_order_per_submission(layout, definition):
    gateway = InMemoryGateway()
    submissions = _make_submissions(layout, definition, 2)

    SubmissionBatchRunner(gateway).run(submissions)

    kinds = [kind for kind, _ in gateway.calls]
    assert kinds == ["field", "contact", "results", "field", "contact", "results"]


def test_fields_skipped_when_none_created(layout, definition):
    gateway = InMemoryGateway()
    submission = Submission.create(layout, FLOW_UUID, 3, definition)
    submission.add_steps([make_step()], [], STARTED, True)

    SubmissionBatchRunner(gateway).run([submission])

    assert [kind for kind, _ in gateway.calls] == ["contact", "results"]


def test_contact_is_resolved_after_submission(layout, definition):
    gateway = InMemoryGateway()
    submission = _make_submissions(layout, definition, 1)[0]

    SubmissionBatchRunner(gateway).run([submission])

    assert isinstance(submission.contact, ResolvedContact)
    assert submission.contact.uuid in gateway.contacts
    assert gateway.results[0][1]["contact"] == submission.contact.uuid


class _BrokenContactGateway(InMemoryGateway):
    def add_contact(self, contact):
        raise GatewayError("contact lookup failed")


def test_contact_failure_skips_results(layout, definition):
    gateway = _BrokenContactGateway()
    submissions = _make_submissions(layout, definition, 2)

    result = SubmissionBatchRunner(gateway).run(submissions)

    assert result.num_failed == 2
    assert gateway.results == []
    assert isinstance(submissions[0].contact, UnresolvedContact)


class _ProgrammingErrorGateway(InMemoryGateway):
    def add_contact(self, contact):
        raise TypeError("bug")


def test_unexpected_errors_propagate(layout, definition):
    submissions = _make_submissions(layout, definition, 1)

    with pytest.raises(TypeError):
        SubmissionBatchRunner(_ProgrammingErrorGateway()).run(submissions)


def test_empty_batch_completes():
    progress, completed = [], []

    result = SubmissionBatchRunner(InMemoryGateway()).run(
        [], on_progress=progress.append, on_complete=lambda: completed.append(True)
    )

    assert result.status == BatchStatus.COMPLETED
    assert result.total == 0
    assert progress == []
    assert completed == [True]


def test_cancel_stops_between_items(layout, definition):
    gateway = InMemoryGateway()
    submissions = _make_submissions(layout, definition, 3)
    runner = SubmissionBatchRunner(gateway)

    def on_progress(percent):
        if percent < 100:
            runner.cancel()

    result = runner.run(submissions, on_progress=on_progress)

    assert result.cancelled is True
    assert result.succeeded == submissions[:1]
    assert len(gateway.results) == 1
    assert result.status == BatchStatus.COMPLETED

    # the runner can be used again afterwards
    again = runner.run(submissions[1:])
    assert again.cancelled is False
    assert len(again.succeeded) == 2


@pytest.mark.asyncio
async def test_run_async(layout, definition):
    gateway = InMemoryGateway()
    submissions = _make_submissions(layout, definition, 2)
    progress = []

    result = await SubmissionBatchRunner(gateway).run_async(
        submissions, on_progress=progress.append
    )

    assert result.status == BatchStatus.COMPLETED
    assert progress == [50, 100]
