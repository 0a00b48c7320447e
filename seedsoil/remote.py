"""
HTTP client for the remote copy of the collection, kept in a GitHub Gist.

The gist holds one file whose content is the JSON collection document.
``get()`` returns that content (or None when it does not exist) and
``put()`` replaces it wholesale. Failures raise RemoteStoreError; the sync
coordinator decides what to do with them.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .errors import RemoteStoreError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_FILENAME = "seed_soil_data.json"
DEFAULT_TIMEOUT = 30.0


class GistRemote:
    """Reads and replaces one file of a GitHub Gist."""

    def __init__(
        self,
        gist_id: str,
        token: str,
        *,
        filename: str = DEFAULT_FILENAME,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        if not gist_id:
            raise ValueError("Gist id is required")
        self.gist_id = gist_id
        self.filename = filename
        self._api_url = api_url.rstrip("/")

        # Refuse non-HTTPS for remote APIs (token would be sent in cleartext)
        if not self._api_url.startswith("https://"):
            from urllib.parse import urlparse
            host = urlparse(self._api_url).hostname or ""
            if host not in ("localhost", "127.0.0.1", "::1"):
                raise ValueError(
                    f"Gist API URL must use HTTPS (got {self._api_url}). "
                    "Use HTTPS to protect the token, or use localhost for local development."
                )

        self._client = httpx.Client(
            base_url=self._api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def _path(self) -> str:
        return f"/gists/{self.gist_id}"

    def get(self) -> Optional[str]:
        """GET /gists/{id} -> content of our file, or None if absent."""
        try:
            resp = self._client.get(self._path)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            files = resp.json().get("files") or {}
            entry = files.get(self.filename)
            if not entry:
                return None
            if entry.get("truncated") and entry.get("raw_url"):
                # Large files are cut off in the API response
                raw = self._client.get(entry["raw_url"])
                raw.raise_for_status()
                return raw.text
            return entry.get("content")
        except httpx.HTTPStatusError as e:
            raise RemoteStoreError(
                f"Gist read failed: {e.response.status_code} {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Gist read failed: {e}") from e
        except ValueError as e:
            raise RemoteStoreError(f"Gist read returned invalid JSON: {e}") from e

    def put(self, content: str) -> None:
        """PATCH /gists/{id} replacing our file's content."""
        payload = {"files": {self.filename: {"content": content}}}
        try:
            resp = self._client.patch(self._path, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteStoreError(
                f"Gist write failed: {e.response.status_code} {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Gist write failed: {e}") from e
        logger.debug("Wrote %d bytes to gist %s", len(content), self.gist_id)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
