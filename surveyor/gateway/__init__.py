"""Gateway factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import SurveyorConfig, load_config
from .base import GatewayError, SubmissionGateway
from .inmemory import InMemoryGateway


def get_gateway(
    backend: Optional[str] = None, config: Optional[SurveyorConfig] = None
) -> SubmissionGateway:
    """Factory function to get the configured gateway."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("SURVEYOR_REMOTE_BACKEND")
        or config.remote.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryGateway()
    elif backend == "http":
        from .http import HttpGateway

        remote = config.remote
        return HttpGateway(
            base_url=remote.base_url, token=remote.token, timeout=remote.timeout
        )
    else:
        raise ValueError(f"Unsupported gateway backend: {backend}")


__all__ = ["GatewayError", "InMemoryGateway", "SubmissionGateway", "get_gateway"]
