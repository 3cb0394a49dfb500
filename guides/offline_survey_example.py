"""Example showing a run being captured offline and submitted later."""

import json
import sys
from datetime import datetime, timezone

from surveyor import (
    RunSnapshot,
    RunStatus,
    Step,
    SubmissionService,
    SurveyorContext,
    UnresolvedContact,
)
from surveyor.config import load_config

FLOW_UUID = "2f0b3c7a-61a3-4d4c-9f1a-5a0e3f1c2b11"
NODE_UUID = "b7a1c8d2-1111-4a4a-8b8b-000000000001"


def main():
    service = SubmissionService(SurveyorContext.from_config(load_config()))
    definition = json.dumps(
        {"uuid": FLOW_UUID, "revision": 1, "nodes": [{"uuid": NODE_UUID}]}
    )

    # Capture a run while offline
    submission = service.create_submission(FLOW_UUID, 1, definition)
    submission.update_contact(UnresolvedContact(name="Ana", urns=["tel:+250788000001"]))
    now = datetime.now(timezone.utc)
    service.record_run_state(
        submission,
        RunSnapshot(
            completed_steps=[Step(node=NODE_UUID, arrived_on=now, left_on=now)],
            started_at=now,
            status=RunStatus.COMPLETED,
        ),
    )
    service.save_submission(submission)
    print(f"Pending for flow: {service.count_pending(FLOW_UUID)}")

    # Later, once connected
    result = service.submit_batch(
        service.list_completed(), on_progress=lambda p: print(f"{p}%")
    )
    print(f"Submitted {len(result.succeeded)}, failed {result.num_failed}")
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
