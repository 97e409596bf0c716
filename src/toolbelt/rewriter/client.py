"""
Rewriter client -- GraphQL calls to the platform's redirect service.

Only the four calls the redirect commands need are exposed:
  1. import_redirects   -- save a batch of redirects
  2. delete_redirects   -- delete a batch of redirect paths
  3. routes_index_files -- list the index fragments of stored routes
  4. routes_index       -- expand one fragment into route ids
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests
import requests.adapters
from urllib3.util.retry import Retry

from ..config import Settings
from ..constants import REWRITER_URL, USER_AGENT, Headers
from ..core.exceptions import AuthError, RemoteServiceError, TransportError

log = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10

SAVE_MANY = """
mutation SaveMany($routes: [RedirectInput!]!) {
  redirect {
    saveMany(routes: $routes)
  }
}
"""

DELETE_MANY = """
mutation DeleteMany($paths: [String!]!) {
  redirect {
    deleteMany(paths: $paths)
  }
}
"""

INDEX_FILES = """
query RoutesIndexFiles {
  redirect {
    indexFiles {
      routeIndexFiles {
        fileName
        fileSize
      }
    }
  }
}
"""

INDEX_FILE = """
query RoutesIndex($fileName: String!) {
  redirect {
    indexFile(fileName: $fileName) {
      routes {
        id
      }
    }
  }
}
"""


@dataclass
class IndexFile:
    """One server-side index fragment."""

    file_name: str
    file_size: int = 0


class RewriterClient:
    """Thin GraphQL client for the rewriter app.

    Usage:
        with create_client(Settings.load()) as client:
            client.import_redirects([{"from": "/a", "to": "/b", "type": "PERMANENT"}])
    """

    def __init__(
        self,
        url: str,
        token: str,
        timeout: int = 15,
        cluster: str = "",
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or _create_session()
        self._session.headers["Authorization"] = f"Bearer {token}"
        if cluster:
            self._session.headers[Headers.UPSTREAM_TARGET.value] = cluster

    @property
    def session(self) -> requests.Session:
        return self._session

    def _graphql(self, query: str, variables: dict | None = None) -> dict:
        """POST a GraphQL document and return its `data` member.

        Raises:
            RemoteServiceError if the response carries GraphQL errors.
            TransportError on network, HTTP status or decoding failures.
        """
        payload = {"query": query, "variables": variables or {}}
        try:
            resp = self._session.post(
                self.url,
                json=payload,
                timeout=(CONNECT_TIMEOUT, self.timeout),
            )
        except requests.RequestException as e:
            raise TransportError(f"Request to {self.url} failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        # GraphQL errors can come back with 200 or 4xx/5xx
        if isinstance(body, dict) and body.get("errors"):
            raise RemoteServiceError(body["errors"])

        if resp.status_code >= 400:
            raise TransportError(
                f"Rewriter returned HTTP {resp.status_code}: {resp.text[:200]}"
            )
        if not isinstance(body, dict):
            raise TransportError("Rewriter response is not valid JSON")
        return body.get("data") or {}

    def import_redirects(self, routes: list[dict]) -> None:
        log.debug("Saving %d redirect(s)", len(routes))
        self._graphql(SAVE_MANY, {"routes": routes})

    def delete_redirects(self, paths: list[str]) -> None:
        log.debug("Deleting %d redirect(s)", len(paths))
        self._graphql(DELETE_MANY, {"paths": paths})

    def routes_index_files(self) -> list[IndexFile]:
        data = self._graphql(INDEX_FILES)
        index = (data.get("redirect") or {}).get("indexFiles") or {}
        files = index.get("routeIndexFiles") or []
        return [
            IndexFile(file_name=f["fileName"], file_size=f.get("fileSize") or 0)
            for f in files
        ]

    def routes_index(self, file_name: str) -> list[str]:
        data = self._graphql(INDEX_FILE, {"fileName": file_name})
        fragment = (data.get("redirect") or {}).get("indexFile") or {}
        return [route["id"] for route in fragment.get("routes") or []]

    def close(self):
        """Close the HTTP session."""
        if self._session:
            self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def rewriter_url(settings: Settings) -> str:
    if settings.rewriter_url:
        return settings.rewriter_url
    return REWRITER_URL.format(account=settings.account, workspace=settings.workspace)


def create_client(settings: Settings, session: requests.Session | None = None) -> RewriterClient:
    """Build a RewriterClient for the current session.

    Raises:
        AuthError if there is no logged-in session to call the API with.
    """
    if not settings.token:
        raise AuthError("Error trying to call client before login.")
    if not settings.account:
        raise AuthError("No account selected. Log in to an account first.")
    return RewriterClient(
        url=rewriter_url(settings),
        token=settings.token,
        timeout=settings.timeout,
        cluster=settings.cluster,
        session=session,
    )


def _create_session() -> requests.Session:
    """Create a requests session that retries idempotent failures."""
    session = requests.Session()
    retry = Retry(
        total=2,
        backoff_factor=1,
        status_forcelist=[429, 502, 503, 504],
        allowed_methods=None,
    )
    adapter = requests.adapters.HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = USER_AGENT
    session.headers["Content-Type"] = "application/json"
    return session
