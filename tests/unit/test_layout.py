"""Tests for the submission file layout."""

import shutil
import threading
from pathlib import Path

import pytest

from surveyor.storage import SubmissionLayout, write_atomic

from tests.factories import FLOW_UUID, make_definition


def test_record_file_name_and_directory(layout):
    path = layout.create_record_file(FLOW_UUID, 3)

    assert path.parent == layout.files_dir / "submissions" / FLOW_UUID
    assert path.parent.is_dir()
    revision, run_uuid, sequence = path.stem.split("_")
    assert revision == "3"
    assert len(run_uuid) == 36
    assert sequence == "1"
    assert not path.exists()


def test_record_file_sequence_skips_taken_names(layout, monkeypatch):
    import surveyor.storage.layout as layout_module

    class FixedUUID:
        @staticmethod
        def uuid4():
            return "same-run"

    monkeypatch.setattr(layout_module, "uuid", FixedUUID)
    first = layout.create_record_file(FLOW_UUID, 3)
    first.write_text("{}")
    second = layout.create_record_file(FLOW_UUID, 3)

    assert first.name == "3_same-run_1.json"
    assert second.name == "3_same-run_2.json"


def test_concurrent_record_files_are_distinct(layout):
    paths = []
    lock = threading.Lock()

    def create():
        path = layout.create_record_file(FLOW_UUID, 3)
        with lock:
            paths.append(path)

    threads = [threading.Thread(target=create) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(paths) == 20
    assert len(set(paths)) == 20


def test_definition_is_written_once(layout):
    assert layout.ensure_definition_written(FLOW_UUID, 3, make_definition(3)) is True
    assert (
        layout.ensure_definition_written(FLOW_UUID, 3, '{"changed": true}') is False
    )

    text = layout.definition_path(FLOW_UUID, 3).read_text()
    assert text == make_definition(3)


def test_read_definition_uses_record_revision(layout):
    layout.ensure_definition_written(FLOW_UUID, 3, make_definition(3))
    layout.ensure_definition_written(FLOW_UUID, 4, make_definition(4))
    record = layout.create_record_file(FLOW_UUID, 4)

    flow = layout.read_definition(record)

    assert flow.uuid == FLOW_UUID
    assert flow.revision == 4


def test_list_and_count_pending_exclude_definitions(layout):
    assert layout.count_pending(FLOW_UUID) == 0
    assert layout.list_pending(FLOW_UUID) == set()

    layout.ensure_definition_written(FLOW_UUID, 3, make_definition(3))
    records = set()
    for _ in range(3):
        path = layout.create_record_file(FLOW_UUID, 3)
        path.write_text("{}")
        records.add(path)
    # leftover temporary file from an interrupted save
    (layout.flow_dir(FLOW_UUID) / ".3_x_1.json.abc.tmp").write_text("{")

    assert layout.list_pending(FLOW_UUID) == records
    assert layout.count_pending(FLOW_UUID) == len(layout.list_pending(FLOW_UUID))


def test_list_pending_all_spans_flows(layout):
    other_flow = "7c1d0e55-0000-4000-8000-000000000000"
    a = layout.create_record_file(FLOW_UUID, 1)
    b = layout.create_record_file(other_flow, 2)
    a.write_text("{}")
    b.write_text("{}")
    layout.ensure_definition_written(other_flow, 2, make_definition(2))

    assert layout.list_pending_all() == {a, b}


def test_list_pending_all_tolerates_flow_deleted_concurrently(layout, monkeypatch):
    other_flow = "7c1d0e55-0000-4000-8000-000000000000"
    kept = layout.create_record_file(FLOW_UUID, 1)
    doomed = layout.create_record_file(other_flow, 2)
    kept.write_text("{}")
    doomed.write_text("{}")
    real_is_dir = Path.is_dir

    def is_dir_then_delete(self, *args, **kwargs):
        result = real_is_dir(self, *args, **kwargs)
        if self == doomed.parent:
            shutil.rmtree(self)
        return result

    monkeypatch.setattr(Path, "is_dir", is_dir_then_delete)

    assert layout.list_pending_all() == {kept}


def test_delete_flow_directory(layout):
    layout.ensure_definition_written(FLOW_UUID, 3, make_definition(3))
    layout.create_record_file(FLOW_UUID, 3).write_text("{}")

    layout.delete_flow_directory(FLOW_UUID)

    assert not (layout.files_dir / "submissions" / FLOW_UUID).exists()
    assert layout.count_pending(FLOW_UUID) == 0
    # deleting again is harmless
    layout.delete_flow_directory(FLOW_UUID)


def test_delete_flow_directory_logs_failures(layout, monkeypatch, caplog):
    import surveyor.storage.layout as layout_module

    def broken_rmtree(path):
        raise PermissionError("read-only")

    layout.flow_dir(FLOW_UUID)
    monkeypatch.setattr(layout_module.shutil, "rmtree", broken_rmtree)

    layout.delete_flow_directory(FLOW_UUID)

    assert "Failed to delete submissions" in caplog.text


def test_clear_removes_all_flows(layout):
    layout.create_record_file(FLOW_UUID, 1).write_text("{}")
    layout.create_record_file("another-flow", 1).write_text("{}")

    layout.clear()

    assert layout.list_pending_all() == set()


@pytest.mark.parametrize("bad", ["", "..", "a/b"])
def test_invalid_flow_uuid_rejected(layout, bad):
    with pytest.raises(ValueError):
        layout.flow_dir(bad)


def test_write_atomic_keeps_old_content_on_failure(tmp_path, monkeypatch):
    import surveyor.storage.layout as layout_module

    target = tmp_path / "record.json"
    target.write_text("old")

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(layout_module.os, "replace", failing_replace)
    with pytest.raises(OSError):
        write_atomic(target, "new")

    assert target.read_text() == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["record.json"]


def test_layout_accepts_string_path(tmp_path):
    layout = SubmissionLayout(str(tmp_path))
    assert layout.submissions_dir == tmp_path / "submissions"
