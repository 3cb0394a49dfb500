"""In-memory gateway for testing and offline dry runs."""

from __future__ import annotations

import threading
import uuid
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..contracts import Contact, Field, ResolvedContact
from .base import GatewayError, SubmissionGateway

if TYPE_CHECKING:
    from ..storage import Submission


class InMemoryGateway(SubmissionGateway):
    """Records every call instead of talking to a server.

    Submissions whose file name is listed in ``fail_results_for`` are
    rejected when their results are posted.
    """

    def __init__(self, fail_results_for: Optional[Iterable[str]] = None) -> None:
        self.fail_results_for: Set[str] = set(fail_results_for or ())
        self.fields: Dict[str, Field] = {}
        self.contacts: Dict[str, Contact] = {}
        self.results: List[Tuple[str, dict]] = []
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def add_created_fields(self, fields: Mapping[str, Field]) -> None:
        with self._lock:
            for key, field in fields.items():
                self.fields[key] = field
                self.calls.append(("field", key))

    def add_contact(self, contact: Contact) -> str:
        with self._lock:
            if isinstance(contact, ResolvedContact):
                contact_uuid = contact.uuid
            else:
                contact_uuid = str(uuid.uuid4())
            self.contacts[contact_uuid] = contact
            self.calls.append(("contact", contact_uuid))
            return contact_uuid

    def add_results(self, submission: "Submission", contact_uuid: str) -> None:
        with self._lock:
            self.calls.append(("results", submission.path.name))
            if submission.path.name in self.fail_results_for:
                raise GatewayError(f"Results rejected for {submission.path.name}")
            payload = submission.to_payload()
            payload["contact"] = contact_uuid
            self.results.append((submission.path.name, payload))
