"""Core data contracts for offline flow submissions."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field as PydanticField


class RunStatus(str, Enum):
    """Status of a flow run as reported by the flow engine."""

    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    COMPLETED = "completed"
    EXPIRED = "expired"
    INTERRUPTED = "interrupted"


class Field(BaseModel):
    """A contact field definition, possibly created during a run."""

    key: str
    label: str
    value_type: str = "T"
    is_new: bool = PydanticField(default=False, exclude=True)


class RuleResult(BaseModel):
    """Result of evaluating a ruleset at a step."""

    uuid: Optional[str] = None
    category: Optional[str] = None
    value: Optional[str] = None
    text: Optional[str] = None
    media: Optional[str] = None


class Step(BaseModel):
    """One completed unit of run progress."""

    node: str
    arrived_on: datetime
    left_on: Optional[datetime] = None
    rule: Optional[RuleResult] = None
    actions: List[Dict[str, Any]] = PydanticField(default_factory=list)


class ResolvedContact(BaseModel):
    """A contact already known to the remote service."""

    model_config = ConfigDict(frozen=True)

    uuid: str


class UnresolvedContact(BaseModel):
    """A contact the remote service has not assigned an id to yet."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    language: Optional[str] = None
    urns: List[str] = PydanticField(default_factory=list)


Contact = Union[ResolvedContact, UnresolvedContact]


class FlowDefinition(BaseModel):
    """Immutable flow definition pinned to a revision."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    revision: int
    name: Optional[str] = None
    definition: str
    node_uuids: FrozenSet[str] = frozenset()

    @classmethod
    def from_json(
        cls, definition: str, uuid: Optional[str] = None, revision: Optional[int] = None
    ) -> "FlowDefinition":
        """Parse a definition in either the current or the legacy format.

        Current definitions list ``nodes``; legacy ones split them into
        ``action_sets`` and ``rule_sets``. Both are accepted so that
        definitions cached by older releases stay readable.

        Raises:
            ValueError: If the text is not a JSON object of the expected shape
                or lacks a uuid/revision.
        """
        data = json.loads(definition)
        if not isinstance(data, dict):
            raise ValueError("Flow definition must be a JSON object")

        # legacy exports nest the flow under metadata
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("Flow definition metadata must be a JSON object")

        flow_uuid = uuid or data.get("uuid") or metadata.get("uuid")
        flow_revision = (
            revision
            if revision is not None
            else data.get("revision", metadata.get("revision"))
        )
        if not flow_uuid or flow_revision is None:
            raise ValueError("Flow definition is missing uuid or revision")
        try:
            flow_revision = int(flow_revision)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid flow revision: {flow_revision!r}") from e

        nodes = set()
        for key in ("nodes", "action_sets", "rule_sets"):
            entries = data.get(key) or []
            if not isinstance(entries, list):
                raise ValueError(f"Flow definition '{key}' must be a list")
            for node in entries:
                if isinstance(node, dict) and node.get("uuid"):
                    nodes.add(node["uuid"])

        return cls(
            uuid=flow_uuid,
            revision=flow_revision,
            name=data.get("name") or metadata.get("name"),
            definition=definition,
            node_uuids=frozenset(nodes),
        )

    def has_node(self, node_uuid: str) -> bool:
        """Return ``True`` when the node is part of this definition.

        Definitions that declare no nodes accept every node.
        """
        return not self.node_uuids or node_uuid in self.node_uuids


class RunState(Protocol):
    """Narrow view of a flow run consumed by submissions."""

    def get_completed_steps(self) -> Sequence[Step]:
        """Steps completed since the last time the run was read."""

    def get_created_fields(self) -> Sequence[Field]:
        """Fields referenced by the run, flagged when newly created."""

    def get_started_at(self) -> Optional[datetime]:
        """When the run started."""

    def get_run_status(self) -> RunStatus:
        """Current status of the run."""


class RunSnapshot(BaseModel):
    """Plain snapshot of run state, usable wherever ``RunState`` is expected."""

    completed_steps: List[Step] = PydanticField(default_factory=list)
    created_fields: List[Field] = PydanticField(default_factory=list)
    started_at: Optional[datetime] = None
    status: RunStatus = RunStatus.IN_PROGRESS

    def get_completed_steps(self) -> Sequence[Step]:
        return self.completed_steps

    def get_created_fields(self) -> Sequence[Field]:
        return self.created_fields

    def get_started_at(self) -> Optional[datetime]:
        return self.started_at

    def get_run_status(self) -> RunStatus:
        return self.status
