"""File-based storage for pending submissions."""

from __future__ import annotations

from .layout import SubmissionLayout, write_atomic
from .submission import Submission, SubmissionBody, SubmissionCreateError

__all__ = [
    "Submission",
    "SubmissionBody",
    "SubmissionCreateError",
    "SubmissionLayout",
    "write_atomic",
]
