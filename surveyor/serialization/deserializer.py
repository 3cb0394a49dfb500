from typing import Any, List, Optional

from pydantic import TypeAdapter

from ..contracts import Contact, FlowDefinition, ResolvedContact, Step, UnresolvedContact

_STEPS = TypeAdapter(List[Step])


class ContactDeserializer:
    """
    Reconstruct a contact from its stored representation.

    Supports:
    - a bare uuid string for contacts known to the remote service
    - an object with name, language and urns for contacts not yet created
    """

    @staticmethod
    def deserialize(data: Any) -> Contact:
        if isinstance(data, (ResolvedContact, UnresolvedContact)):
            return data

        if isinstance(data, str):
            if not data:
                raise ValueError("Contact uuid must not be empty")
            return ResolvedContact(uuid=data)

        if isinstance(data, dict):
            unknown = set(data) - {"name", "language", "urns"}
            if unknown:
                raise ValueError(f"Unexpected contact attributes: {sorted(unknown)}")
            return UnresolvedContact.model_validate(data)

        raise ValueError(f"Cannot deserialize contact from {type(data).__name__}")


class StepDeserializer:
    """Rebuild recorded steps against the flow definition they were run on."""

    @staticmethod
    def deserialize(data: Any, flow: Optional[FlowDefinition]) -> List[Step]:
        if data is None:
            return []

        steps = _STEPS.validate_python(data)
        if flow is None:
            return steps

        for step in steps:
            if not flow.has_node(step.node):
                raise ValueError(
                    f"Step node '{step.node}' is not part of flow '{flow.uuid}' "
                    f"revision {flow.revision}"
                )
        return steps
