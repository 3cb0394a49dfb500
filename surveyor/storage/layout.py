"""Filesystem layout for pending submissions.

Layout::

    <files_dir>/submissions/<flow_uuid>/
        <revision>_flow.json                  cached flow definition
        <revision>_<run_uuid>_<sequence>.json one file per run
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Set

from ..contracts import FlowDefinition

logger = logging.getLogger(__name__)

SUBMISSIONS_DIR = "submissions"
FLOW_FILE = "flow.json"
RECORD_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"


def write_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers see old or new content, never half.

    Raises:
        OSError: If the temporary file cannot be written or moved into place.
    """
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def _check_flow_uuid(flow_uuid: str) -> None:
    if not flow_uuid or os.sep in flow_uuid or flow_uuid in (".", ".."):
        raise ValueError(f"Invalid flow uuid: {flow_uuid!r}")


def _is_record_file(path: Path) -> bool:
    name = path.name
    return (
        path.is_file()
        and name.endswith(RECORD_SUFFIX)
        and not name.endswith(FLOW_FILE)
        and not name.startswith(".")
    )


def _record_files(flow_dir: Path) -> Set[Path]:
    # the directory may be removed by a concurrent delete while we look
    try:
        return {p for p in flow_dir.iterdir() if _is_record_file(p)}
    except FileNotFoundError:
        return set()


class SubmissionLayout:
    """Assigns submission files and enumerates the ones still pending."""

    def __init__(self, files_dir: str | Path) -> None:
        self.files_dir = Path(files_dir)

    # ------------------------------------------------------------------
    # Directories
    @property
    def submissions_dir(self) -> Path:
        """The root submission directory, created on demand."""
        path = self.files_dir / SUBMISSIONS_DIR
        path.mkdir(parents=True, exist_ok=True)
        return path

    def flow_dir(self, flow_uuid: str) -> Path:
        """The submission directory for the given flow, created on demand."""
        _check_flow_uuid(flow_uuid)
        path = self.submissions_dir / flow_uuid
        path.mkdir(parents=True, exist_ok=True)
        return path

    # ------------------------------------------------------------------
    # File naming
    def create_record_file(self, flow_uuid: str, revision: int) -> Path:
        """Return a fresh, unused path for a new run of ``flow_uuid``.

        The name carries a random run uuid; the sequence suffix is only
        bumped in the unlikely event that name is already taken.
        """
        flow_dir = self.flow_dir(flow_uuid)
        run_uuid = str(uuid.uuid4())
        sequence = 1
        path = flow_dir / f"{revision}_{run_uuid}_{sequence}{RECORD_SUFFIX}"
        while path.exists():
            sequence += 1
            path = flow_dir / f"{revision}_{run_uuid}_{sequence}{RECORD_SUFFIX}"
        return path

    def definition_path(self, flow_uuid: str, revision: int) -> Path:
        return self.flow_dir(flow_uuid) / f"{revision}_{FLOW_FILE}"

    @staticmethod
    def definition_path_for(record_path: Path) -> Path:
        """Path of the definition a record was created against."""
        revision = record_path.name.split("_")[0]
        return record_path.parent / f"{revision}_{FLOW_FILE}"

    # ------------------------------------------------------------------
    # Flow definitions
    def ensure_definition_written(
        self, flow_uuid: str, revision: int, definition: str
    ) -> bool:
        """Write the definition for ``revision`` unless it is already cached.

        Returns:
            ``True`` if the file was written, ``False`` if it already existed.
        """
        path = self.definition_path(flow_uuid, revision)
        if path.exists():
            return False
        write_atomic(path, definition)
        logger.debug(f"Cached flow definition {path.name} for flow {flow_uuid}")
        return True

    def read_definition(self, record_path: Path) -> FlowDefinition:
        """Read the flow definition referenced by a record file's name.

        Raises:
            OSError: If the definition file cannot be read.
            ValueError: If the revision prefix or the definition is malformed.
        """
        flow_path = self.definition_path_for(record_path)
        logger.debug(f"Reading flow: {flow_path.name}")
        text = flow_path.read_text(encoding="utf-8")
        return FlowDefinition.from_json(
            text,
            uuid=record_path.parent.name,
            revision=int(flow_path.name.split("_")[0]),
        )

    # ------------------------------------------------------------------
    # Enumeration
    def list_pending(self, flow_uuid: str) -> Set[Path]:
        """All pending submission files for the given flow."""
        start = time.monotonic()
        logger.debug(f"Looking up submissions for flow {flow_uuid}")
        files = _record_files(self.flow_dir(flow_uuid))
        logger.debug(f"Done: {(time.monotonic() - start) * 1000:.0f}ms")
        return files

    def list_pending_all(self) -> Set[Path]:
        """All pending submission files across every flow."""
        start = time.monotonic()
        logger.debug("Looking up all submissions..")
        files: Set[Path] = set()
        for flow_dir in self.submissions_dir.iterdir():
            if flow_dir.is_dir():
                files.update(_record_files(flow_dir))
        logger.debug(f"Done: {(time.monotonic() - start) * 1000:.0f}ms")
        return files

    def count_pending(self, flow_uuid: str) -> int:
        return len(self.list_pending(flow_uuid))

    # ------------------------------------------------------------------
    # Cleanup
    def delete_flow_directory(self, flow_uuid: str) -> None:
        """Remove every submission and the cached definitions for a flow."""
        _check_flow_uuid(flow_uuid)
        path = self.submissions_dir / flow_uuid
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to delete submissions for flow {flow_uuid}: {e}")
            return
        logger.info(f"Deleted submissions for flow {flow_uuid}")

    def clear(self) -> None:
        """Remove all submissions for all flows."""
        try:
            shutil.rmtree(self.files_dir / SUBMISSIONS_DIR)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to clear submissions: {e}")
            return
        logger.info("Cleared all submissions")
