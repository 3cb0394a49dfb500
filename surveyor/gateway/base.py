"""Base interface for the remote service submissions are pushed to."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Mapping

from ..contracts import Contact, Field

if TYPE_CHECKING:
    from ..storage import Submission


class GatewayError(Exception):
    """A remote call failed: network error, rejected request or bad response."""


class SubmissionGateway(metaclass=abc.ABCMeta):
    """Abstract remote service accepting fields, contacts and results."""

    def connect(self) -> None:
        """Open a session with the remote service (no-op by default)."""
        pass

    def close(self) -> None:
        """Release the session (no-op by default)."""
        pass

    @abc.abstractmethod
    def add_created_fields(self, fields: Mapping[str, Field]) -> None:
        """Create or update the given field definitions."""
        raise NotImplementedError

    @abc.abstractmethod
    def add_contact(self, contact: Contact) -> str:
        """Look up or create the contact and return its remote uuid."""
        raise NotImplementedError

    @abc.abstractmethod
    def add_results(self, submission: "Submission", contact_uuid: str) -> None:
        """Post the submission's steps for the given contact."""
        raise NotImplementedError

    def __enter__(self) -> "SubmissionGateway":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
