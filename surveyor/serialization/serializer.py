from typing import Any, Dict, Union

from ..contracts import ResolvedContact, UnresolvedContact


class ContactSerializer:
    """
    Serialize a run's contact for storage and submission.

    A contact with a server-assigned uuid is written as that uuid alone.
    Otherwise every attribute the remote service needs to create it is
    written: ``name``, ``language`` and the ordered ``urns``.

    Returns:
        The uuid string, or a dict with exactly ``name``, ``language``, ``urns``.
    """

    @staticmethod
    def serialize(contact: Any) -> Union[str, Dict[str, Any]]:
        if isinstance(contact, ResolvedContact):
            return contact.uuid

        if isinstance(contact, UnresolvedContact):
            return {
                "name": contact.name,
                "language": contact.language,
                "urns": [str(urn) for urn in contact.urns],
            }

        raise ValueError(
            f"Cannot serialize contact of type '{type(contact).__name__}'"
        )
