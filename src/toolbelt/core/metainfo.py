"""
Local import progress (metainfo) file.

Keeps one counter of committed batches per input file so an interrupted
import or delete resumes where it stopped. Layout:

    {
      "imports": {"<fingerprint>": {"counter": 3}},
      "deletes": {"<fingerprint>": {"counter": 1}}
    }

Persisted at %LocalAppData%/toolbelt/metainfo.json
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path

from ..config import get_app_dir

log = logging.getLogger(__name__)

METAINFO_NAME = "metainfo.json"


def metainfo_path() -> Path:
    return get_app_dir() / METAINFO_NAME


def compute_fingerprint(account: str, workspace: str, contents: bytes) -> str:
    """MD5 of account, workspace and file contents.

    The same file imported into the same account/workspace always maps to
    the same key, which is what lets a re-run pick up the saved counter.
    """
    h = hashlib.md5()
    h.update(f"{account}_{workspace}_".encode("utf-8"))
    h.update(contents)
    return h.hexdigest()


def load_metainfo(path: Path | None = None) -> dict:
    path = path or metainfo_path()
    if not path.is_file():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable metainfo file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def get_counter(metainfo: dict, namespace: str, fingerprint: str) -> int:
    entry = metainfo.get(namespace, {}).get(fingerprint)
    if not entry:
        return 0
    return int(entry.get("counter", 0))


def _write(metainfo: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".json_tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(metainfo, f, indent=2)
    os.replace(tmp, path)


def save_metainfo(
    metainfo: dict,
    namespace: str,
    fingerprint: str,
    counter: int,
    path: Path | None = None,
) -> None:
    """Record `counter` committed batches for `fingerprint` (atomic)."""
    metainfo.setdefault(namespace, {})[fingerprint] = {"counter": counter}
    _write(metainfo, path or metainfo_path())
    log.debug("Saved %s/%s counter=%d", namespace, fingerprint, counter)


def delete_metainfo(
    metainfo: dict,
    namespace: str,
    fingerprint: str,
    path: Path | None = None,
) -> None:
    """Drop the entry for a finished job."""
    entries = metainfo.get(namespace, {})
    if fingerprint not in entries:
        return
    del entries[fingerprint]
    if not entries:
        metainfo.pop(namespace, None)
    _write(metainfo, path or metainfo_path())
    log.debug("Cleared %s/%s", namespace, fingerprint)
