"""Surveyor: offline capture and submission of flow runs."""

from .contracts import (
    Field,
    FlowDefinition,
    ResolvedContact,
    RunSnapshot,
    RunState,
    RunStatus,
    Step,
    UnresolvedContact,
)
from .gateway import GatewayError, SubmissionGateway, get_gateway
from .service import SubmissionService, SurveyorContext
from .storage import Submission, SubmissionCreateError, SubmissionLayout
from .submit import BatchResult, BatchStatus, SubmissionBatchRunner

__version__ = "0.1.0"
__all__ = [
    "BatchResult",
    "BatchStatus",
    "Field",
    "FlowDefinition",
    "GatewayError",
    "ResolvedContact",
    "RunSnapshot",
    "RunState",
    "RunStatus",
    "Step",
    "Submission",
    "SubmissionBatchRunner",
    "SubmissionCreateError",
    "SubmissionGateway",
    "SubmissionLayout",
    "SubmissionService",
    "SurveyorContext",
    "UnresolvedContact",
    "get_gateway",
]
