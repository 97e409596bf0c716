"""Tests for the import progress (metainfo) file."""

import json

from toolbelt.core.metainfo import (
    compute_fingerprint,
    delete_metainfo,
    get_counter,
    load_metainfo,
    save_metainfo,
)


def test_fingerprint_is_stable():
    a = compute_fingerprint("acc", "ws", b"from;to\n/a;/b\n")
    b = compute_fingerprint("acc", "ws", b"from;to\n/a;/b\n")

    assert a == b
    assert len(a) == 32


def test_fingerprint_depends_on_account_workspace_and_contents():
    base = compute_fingerprint("acc", "ws", b"data")

    assert compute_fingerprint("other", "ws", b"data") != base
    assert compute_fingerprint("acc", "master", b"data") != base
    assert compute_fingerprint("acc", "ws", b"data2") != base


def test_load_missing_file_is_empty(metainfo_file):
    assert load_metainfo(metainfo_file) == {}


def test_load_corrupt_file_is_empty(metainfo_file):
    metainfo_file.write_text("{not json", encoding="utf-8")

    assert load_metainfo(metainfo_file) == {}


def test_save_then_load(metainfo_file):
    metainfo = {}
    save_metainfo(metainfo, "imports", "abc", 2, metainfo_file)

    on_disk = json.loads(metainfo_file.read_text(encoding="utf-8"))
    assert on_disk == {"imports": {"abc": {"counter": 2}}}
    assert get_counter(load_metainfo(metainfo_file), "imports", "abc") == 2
    assert not metainfo_file.with_suffix(".json_tmp").exists()


def test_get_counter_defaults_to_zero():
    assert get_counter({}, "imports", "abc") == 0
    assert get_counter({"imports": {}}, "imports", "abc") == 0


def test_delete_removes_entry_and_empty_namespace(metainfo_file):
    metainfo = {}
    save_metainfo(metainfo, "imports", "abc", 2, metainfo_file)
    save_metainfo(metainfo, "deletes", "xyz", 1, metainfo_file)

    delete_metainfo(metainfo, "imports", "abc", metainfo_file)

    assert load_metainfo(metainfo_file) == {"deletes": {"xyz": {"counter": 1}}}


def test_delete_unknown_entry_is_noop(metainfo_file):
    delete_metainfo({}, "imports", "abc", metainfo_file)

    assert not metainfo_file.exists()
