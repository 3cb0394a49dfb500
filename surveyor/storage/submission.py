"""Persistence of a single flow run as a submission file."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    Field as PydanticField,
    ValidationError,
    ValidationInfo,
    field_serializer,
    field_validator,
)

from ..contracts import (
    Contact,
    Field,
    FlowDefinition,
    ResolvedContact,
    RunState,
    RunStatus,
    Step,
    UnresolvedContact,
)
from ..serialization import ContactDeserializer, ContactSerializer, StepDeserializer
from .layout import SubmissionLayout, write_atomic

logger = logging.getLogger(__name__)


class SubmissionCreateError(RuntimeError):
    """Raised when storage for a new run cannot be prepared."""


class SubmissionBody(BaseModel):
    """On-disk representation of a submission.

    Steps are checked against the flow definition passed as validation
    context under the ``"flow"`` key.
    """

    fields: Dict[str, Field] = PydanticField(default_factory=dict)
    steps: List[Step] = PydanticField(default_factory=list)
    flow: str
    contact: Contact = PydanticField(default_factory=UnresolvedContact)
    started: Optional[datetime] = None
    version: int
    completed: bool = False

    @field_validator("contact", mode="before")
    @classmethod
    def _load_contact(cls, value: Any) -> Contact:
        return ContactDeserializer.deserialize(value)

    @field_validator("steps", mode="before")
    @classmethod
    def _load_steps(cls, value: Any, info: ValidationInfo) -> List[Step]:
        flow = (info.context or {}).get("flow")
        return StepDeserializer.deserialize(value, flow)

    @field_serializer("contact")
    def _dump_contact(self, contact: Contact) -> Any:
        return ContactSerializer.serialize(contact)


class Submission:
    """A single flow run: its progress, its contact and the file it lives in.

    Instances are not safe for concurrent mutation; the owner of the run
    is expected to serialize ``add_steps`` and ``save`` calls.
    """

    def __init__(self, body: SubmissionBody, path: Path, layout: SubmissionLayout) -> None:
        self._body = body
        self._path = path
        self._layout = layout

    # ------------------------------------------------------------------
    # Construction
    @classmethod
    def create(
        cls,
        layout: SubmissionLayout,
        flow_uuid: str,
        flow_revision: int,
        definition: str,
    ) -> "Submission":
        """Start a new submission for a run of the given flow revision.

        Raises:
            SubmissionCreateError: If the flow definition cannot be parsed, or
                the record file or the definition cannot be prepared on disk.
        """
        try:
            FlowDefinition.from_json(definition, uuid=flow_uuid, revision=flow_revision)
            path = layout.create_record_file(flow_uuid, flow_revision)
            layout.ensure_definition_written(flow_uuid, flow_revision, definition)
        except (OSError, ValueError) as e:
            raise SubmissionCreateError(
                f"Unable to create submission for flow {flow_uuid}: {e}"
            ) from e

        body = SubmissionBody(flow=flow_uuid, version=flow_revision)
        logger.info(f"Created submission {path.name} for flow {flow_uuid}")
        return cls(body, path, layout)

    @classmethod
    def load(cls, layout: SubmissionLayout, path: Path) -> Optional["Submission"]:
        """Load a submission, or return ``None`` if it cannot be read.

        The flow definition named by the file's revision prefix is read
        first and used as the context for parsing recorded steps.
        """
        path = Path(path)
        try:
            flow = layout.read_definition(path)
            text = path.read_text(encoding="utf-8")
            body = SubmissionBody.model_validate_json(text, context={"flow": flow})
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Failure reading submission {path}: {e}")
            return None
        return cls(body, path, layout)

    # ------------------------------------------------------------------
    # Accessors
    @property
    def path(self) -> Path:
        return self._path

    @property
    def filename(self) -> str:
        return str(self._path.absolute())

    @property
    def flow_uuid(self) -> str:
        return self._body.flow

    @property
    def flow_revision(self) -> int:
        return self._body.version

    @property
    def contact(self) -> Contact:
        return self._body.contact

    @property
    def fields(self) -> Dict[str, Field]:
        return dict(self._body.fields)

    @property
    def steps(self) -> List[Step]:
        return list(self._body.steps)

    @property
    def started(self) -> Optional[datetime]:
        return self._body.started

    @property
    def completed(self) -> bool:
        return self._body.completed

    def is_completed(self) -> bool:
        return self._body.completed

    # ------------------------------------------------------------------
    # Mutation
    def add_steps(
        self,
        completed_steps: List[Step],
        created_fields: List[Field],
        started_at: Optional[datetime],
        is_run_completed: bool,
    ) -> None:
        """Accumulate progress from one pass of the run.

        Steps are appended, newly created fields are added unless their key
        is already present, and once completed the submission stays completed.
        """
        self._body.steps.extend(completed_steps)

        if started_at is not None:
            self._body.started = started_at

        self._body.completed = self._body.completed or is_run_completed

        for field in created_fields:
            if field.is_new and field.key not in self._body.fields:
                self._body.fields[field.key] = field

    def add_run_state(self, run_state: RunState) -> None:
        """Accumulate progress read from the flow engine's run state."""
        self.add_steps(
            list(run_state.get_completed_steps()),
            list(run_state.get_created_fields()),
            run_state.get_started_at(),
            run_state.get_run_status() == RunStatus.COMPLETED,
        )

    def update_contact(self, contact: Contact) -> None:
        self._body.contact = contact

    def resolve_contact(self, contact_uuid: str) -> None:
        """Switch to the remote service's identity for this contact."""
        self._body.contact = ResolvedContact(uuid=contact_uuid)

    # ------------------------------------------------------------------
    # Persistence
    def to_json(self) -> str:
        return self._body.model_dump_json()

    def to_payload(self) -> Dict[str, Any]:
        """Results body posted to the remote service."""
        payload = self._body.model_dump(mode="json", exclude={"fields"})
        payload["revision"] = payload.pop("version")
        return payload

    def save(self) -> bool:
        """Write the submission to its file, replacing the previous content.

        Returns:
            ``True`` on success. On failure the error is logged and the
            in-memory state is kept so that the save can be retried.
        """
        try:
            write_atomic(self._path, self.to_json())
        except OSError as e:
            logger.error(f"Failure writing submission {self._path.name}: {e}")
            return False
        return True

    def delete(self) -> None:
        """Remove the backing file. Safe to call more than once."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete submission {self._path.name}: {e}")

    def __repr__(self) -> str:
        return (
            f"Submission(flow={self.flow_uuid!r}, revision={self.flow_revision}, "
            f"file={self._path.name!r}, completed={self.completed})"
        )
