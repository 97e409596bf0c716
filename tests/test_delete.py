"""Tests for the redirect delete pipeline."""

import pytest

from toolbelt.core.exceptions import ValidationError
from toolbelt.core.metainfo import load_metainfo
from toolbelt.rewriter.delete import delete_redirects
from toolbelt.rewriter.reconcile import write_delete_file


def test_delete_batches_paths(make_rewriter, settings, metainfo_file, write_csv):
    path = write_csv("from\n/a\n/b\n/c\n", name="delete.csv")
    client = make_rewriter()

    deleted = delete_redirects(
        client, path, settings, metainfo_path=metainfo_file, batch_size=2
    )

    assert deleted == ["/a", "/b", "/c"]
    assert client.deleted == [["/a", "/b"], ["/c"]]
    assert load_metainfo(metainfo_file) == {}


def test_delete_rejects_extra_columns(make_rewriter, settings, metainfo_file, write_csv):
    path = write_csv("from;to\n/a;/b\n", name="delete.csv")
    client = make_rewriter()

    with pytest.raises(ValidationError):
        delete_redirects(client, path, settings, metainfo_path=metainfo_file)

    assert client.deleted == []


def test_delete_reads_leftover_reset_file(make_rewriter, settings, metainfo_file, tmp_path):
    """`rewriter delete <file>` on a file kept by `import --reset` unescapes it."""
    routes = ["/old;v2", "/q?x=1,2"]
    path = write_delete_file(routes, tmp_path)
    client = make_rewriter()

    deleted = delete_redirects(client, path, settings, metainfo_path=metainfo_file)

    assert deleted == routes
    assert client.deleted == [routes]


def test_delete_explicit_format(make_rewriter, settings, metainfo_file, write_csv):
    path = write_csv("from\n/a\\;b\n/c,d\n", name="delete.csv")
    client = make_rewriter()

    deleted = delete_redirects(
        client, path, settings, metainfo_path=metainfo_file,
        delimiter=";", escapechar="\\",
    )

    assert deleted == ["/a;b", "/c,d"]
