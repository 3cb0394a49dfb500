"""HTTP gateway for RapidPro-compatible servers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

import requests

from ..contracts import Contact, Field, ResolvedContact
from ..serialization import ContactSerializer
from .base import GatewayError, SubmissionGateway

if TYPE_CHECKING:
    from ..storage import Submission

logger = logging.getLogger(__name__)

FIELD_VALUE_TYPES = {
    "T": "text",
    "N": "number",
    "D": "datetime",
    "S": "state",
    "I": "district",
    "W": "ward",
}


class HttpGateway(SubmissionGateway):
    """Push submissions to a RapidPro-compatible API over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self.connect()
        return self._session

    def connect(self) -> None:
        if self._session is None:
            self._session = requests.Session()
        if self.token:
            self._session.headers["Authorization"] = f"Token {self.token}"

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    def _post(self, path: str, body: Any) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            resp = self.session.post(url, json=body, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise GatewayError(f"POST {path} failed: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise GatewayError(f"POST {path} returned invalid JSON: {e}") from e

    # ------------------------------------------------------------------
    def add_created_fields(self, fields: Mapping[str, Field]) -> None:
        for field in fields.values():
            body = {
                "label": field.label,
                "value_type": FIELD_VALUE_TYPES.get(field.value_type, "text"),
            }
            logger.debug(f"Creating field {field.key}")
            self._post("api/v2/fields.json", body)

    def add_contact(self, contact: Contact) -> str:
        if isinstance(contact, ResolvedContact):
            return contact.uuid

        data = self._post("api/v2/contacts.json", ContactSerializer.serialize(contact))
        contact_uuid = data.get("uuid") if isinstance(data, dict) else None
        if not contact_uuid:
            raise GatewayError("Contact creation response did not include a uuid")
        logger.debug(f"Created contact {contact_uuid}")
        return contact_uuid

    def add_results(self, submission: "Submission", contact_uuid: str) -> None:
        payload = submission.to_payload()
        payload["contact"] = contact_uuid
        self._post("api/v1/steps.json", payload)
