"""Shared fixtures for the rewriter tests."""

import pytest

from toolbelt.config import Settings
from toolbelt.rewriter.client import IndexFile


class FakeRewriter:
    """In-memory stand-in for RewriterClient.

    `failures` maps the 1-based number of an import call to the exception
    that call should raise; `delete_failures` does the same for deletes.
    """

    def __init__(self, failures=None, index=None, delete_failures=None):
        self.failures = dict(failures or {})
        self.delete_failures = dict(delete_failures or {})
        self.index = dict(index or {})
        self.attempts = []
        self.imported = []
        self.deleted = []
        self.delete_attempts = 0
        self.index_reads = []

    def import_redirects(self, routes):
        self.attempts.append(routes)
        error = self.failures.pop(len(self.attempts), None)
        if error is not None:
            raise error
        self.imported.append(routes)

    def delete_redirects(self, paths):
        self.delete_attempts += 1
        error = self.delete_failures.pop(self.delete_attempts, None)
        if error is not None:
            raise error
        self.deleted.append(paths)

    def routes_index_files(self):
        return [IndexFile(file_name=name) for name in self.index]

    def routes_index(self, file_name):
        self.index_reads.append(file_name)
        return list(self.index[file_name])


@pytest.fixture
def settings():
    return Settings(account="storeacc", workspace="dev", token="tkn")


@pytest.fixture
def metainfo_file(tmp_path):
    return tmp_path / "metainfo.json"


@pytest.fixture
def write_csv(tmp_path):
    def _write(text, name="redirects.csv"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def three_redirects(write_csv):
    return write_csv(
        "from;to;endDate;type\n"
        "/a;/new-a;;PERMANENT\n"
        "/b;/new-b;;PERMANENT\n"
        "/c;/new-c;;PERMANENT\n"
    )


@pytest.fixture
def make_rewriter():
    return FakeRewriter
