"""Tests for stale redirect detection and deletion."""

import pytest

from toolbelt.core.exceptions import ImportInterrupted, ReconcileError, TransportError
from toolbelt.rewriter.reconcile import (
    compute_stale,
    delete_stale,
    fetch_indexed_routes,
    write_delete_file,
)
from toolbelt.rewriter.utils import DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE, read_csv


def test_compute_stale_difference():
    assert compute_stale(["a", "b", "c"], ["a", "b"]) == ["c"]


def test_compute_stale_superset_import_is_empty():
    assert compute_stale(["a", "b"], ["a", "b", "c"]) == []


def test_compute_stale_without_index():
    assert compute_stale(None, ["a"]) == []


def test_compute_stale_dedupes_and_keeps_order():
    assert compute_stale(["c", "x", "c", "b"], ["b"]) == ["c", "x"]


def test_fetch_indexed_routes_skips_last_change_date(make_rewriter):
    client = make_rewriter(index={
        "routes-0.json": ["/a", "/b"],
        "lastChangeDate.json": ["should-not-read"],
        "routes-1.json": ["/c"],
    })

    assert fetch_indexed_routes(client) == ["/a", "/b", "/c"]
    assert client.index_reads == ["routes-0.json", "routes-1.json"]


def test_write_delete_file_format(tmp_path):
    path = write_delete_file(["/a", "/b"], tmp_path)

    assert path.name.startswith(".toolbelt_redirects_to_delete_")
    assert path.read_text(encoding="utf-8") == "from\n/a\n/b\n"


def test_write_delete_file_escapes_separators(tmp_path):
    path = write_delete_file(["/old;v2", "/a\\b", "/q?x=1,2"], tmp_path)

    assert path.read_text(encoding="utf-8") == "from\n/old\\;v2\n/a\\\\b\n/q?x=1,2\n"


def test_delete_file_reads_back_unchanged(tmp_path):
    routes = ["/old;v2", "/q?x=1,2", "/a\\b", '/say"hi"', "/plain"]
    path = write_delete_file(routes, tmp_path)

    rows = read_csv(path, DELETE_FILE_DELIMITER, DELETE_FILE_ESCAPE)

    assert [r["from"] for r in rows] == routes
    assert all(list(r) == ["from"] for r in rows)


def test_delete_stale_removes_temp_file(tmp_path):
    seen = []

    def delete(path):
        seen.append(path.read_text(encoding="utf-8"))

    path = delete_stale(["/old"], delete, tmp_path)

    assert seen == ["from\n/old\n"]
    assert not path.exists()


def test_delete_stale_nothing_to_do(tmp_path):
    calls = []

    assert delete_stale([], calls.append, tmp_path) is None
    assert calls == []
    assert list(tmp_path.iterdir()) == []


def test_delete_stale_failure_keeps_file(tmp_path):
    def delete(path):
        raise TransportError("down")

    with pytest.raises(ReconcileError) as exc:
        delete_stale(["/old"], delete, tmp_path)

    assert exc.value.path.exists()
    assert "toolbelt rewriter delete" in str(exc.value)


def test_delete_stale_interrupt_keeps_file(tmp_path):
    def delete(path):
        raise ImportInterrupted(0)

    with pytest.raises(ImportInterrupted):
        delete_stale(["/old"], delete, tmp_path)

    assert len(list(tmp_path.glob(".toolbelt_redirects_to_delete_*"))) == 1
