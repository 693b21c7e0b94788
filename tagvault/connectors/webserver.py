"""
Webserver connector.
Talks JSON over HTTP to a remote row/TagPair store.

  POST <base>/rows              store a wire row, answers with the stored row
  GET  <base>/rows?tags=a,b     wire rows carrying the random tags
  POST <base>/tags              store a wire TagPair
  GET  <base>/tags[?tags=a,b]   wire TagPairs, all or filtered

Every call has a timeout. Nothing is retried; callers retry if they want to.
"""

import json
import logging

import requests

from tagvault.connectors.base import StoreConnector
from tagvault.errors import (
    InvalidArgumentError,
    SerializationError,
    StoreError,
    TransportError,
    TransportTimeout,
)

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 30.0  # seconds


class WebserverConnector(StoreConnector):
    """
    HTTP store reached at a base URL.

    Args:
        base_url: Store root, e.g. "https://store.example.com/v1". A
            trailing slash is stripped.
        timeout: Seconds before any single request fails with TransportTimeout.
        session: Optional requests.Session (connection pooling, custom
            adapters, test stubs).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = HTTP_TIMEOUT,
        session: requests.Session = None,
    ):
        if not base_url or not base_url.strip("/"):
            raise InvalidArgumentError(f"Invalid base URL {base_url!r}")
        self.base_url = base_url.rstrip("/")
        self.rows_url = self.base_url + "/rows"
        self.tags_url = self.base_url + "/tags"
        self.timeout = timeout
        # Only a session made here is closed by close()
        self._owns_session = session is None
        self.session = session or requests.Session()

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise TransportTimeout(f"{method} {url} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Error {method}ing {url}: {exc}") from exc

        if resp.status_code != 200:
            raise StoreError(resp.status_code, resp.text, url)
        return resp

    def _post(self, url: str, payload: dict) -> requests.Response:
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Error marshaling payload for {url}: {exc}") from exc

        logger.debug("POSTing to %s: %s", url, body)
        return self._request(
            "POST", url, data=body, headers={"Content-Type": "application/json"}
        )

    def _fetch_list(self, url: str, random_tags: list[str] | None) -> list:
        params = None
        if random_tags is not None:
            params = {"tags": ",".join(random_tags)}
        logger.debug("GET %s params=%s", url, params)

        resp = self._request("GET", url, params=params)
        try:
            data = resp.json()
        except ValueError as exc:
            raise SerializationError(f"Server response from {url} is not JSON") from exc
        if data is None:
            return []
        if not isinstance(data, list):
            raise SerializationError(
                f"Expected a JSON array from {url}, got {type(data).__name__}"
            )
        return data

    def post_row(self, wire_row: dict) -> dict:
        resp = self._post(self.rows_url, wire_row)
        try:
            stored = resp.json()
        except ValueError as exc:
            raise SerializationError(
                f"Error creating new row from server response: {resp.text!r}"
            ) from exc
        if not isinstance(stored, dict):
            raise SerializationError("Server returned a non-object for the saved row")
        return stored

    def post_tag_pair(self, wire_pair: dict) -> None:
        self._post(self.tags_url, wire_pair)

    def fetch_rows(self, random_tags: list[str]) -> list[dict]:
        return self._fetch_list(self.rows_url, random_tags)

    def fetch_tag_pairs(self, random_tags: list[str] | None = None) -> list[dict]:
        return self._fetch_list(self.tags_url, random_tags)

    def get_info(self) -> dict:
        return {
            "store": "webserver",
            "base_url": self.base_url,
            "rows_url": self.rows_url,
            "tags_url": self.tags_url,
            "timeout": self.timeout,
        }

    def close(self) -> None:
        if self._owns_session:
            self.session.close()
