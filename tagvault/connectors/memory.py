"""
In-memory connector.
A store that lives in this process. Behaves like the webserver: assigns
row ids, filters by random tags, rejects duplicate TagPairs.

Useful for tests, examples and offline work. It holds only wire data, the
same view an untrusted server gets.
"""

import copy
import threading
import uuid

from tagvault.connectors.base import StoreConnector
from tagvault.errors import StoreError


class MemoryConnector(StoreConnector):
    """
    Rows and TagPairs kept in plain lists/dicts.

    `calls` records every operation as (name, argument) so tests can check
    which round trips happened.
    """

    def __init__(self):
        self.rows: list[dict] = []
        self.tag_pairs: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def post_row(self, wire_row: dict) -> dict:
        with self._lock:
            self.calls.append(("post_row", wire_row))
            stored = copy.deepcopy(wire_row)
            stored.setdefault("id", uuid.uuid4().hex)
            self.rows.append(stored)
            return copy.deepcopy(stored)

    def post_tag_pair(self, wire_pair: dict) -> None:
        with self._lock:
            self.calls.append(("post_tag_pair", wire_pair))
            random = wire_pair.get("random")
            if random in self.tag_pairs:
                raise StoreError(409, f"TagPair {random} already exists")
            self.tag_pairs[random] = copy.deepcopy(wire_pair)

    def fetch_rows(self, random_tags: list[str]) -> list[dict]:
        with self._lock:
            self.calls.append(("fetch_rows", list(random_tags)))
            if not random_tags:
                return []
            wanted = set(random_tags)
            return [
                copy.deepcopy(row) for row in self.rows
                if wanted <= set(row.get("tags") or [])
            ]

    def fetch_tag_pairs(self, random_tags: list[str] | None = None) -> list[dict]:
        with self._lock:
            self.calls.append(("fetch_tag_pairs", random_tags))
            if random_tags is None:
                return copy.deepcopy(list(self.tag_pairs.values()))
            return [
                copy.deepcopy(self.tag_pairs[r]) for r in dict.fromkeys(random_tags)
                if r in self.tag_pairs
            ]

    def calls_to(self, name: str) -> int:
        """How many times an operation was called."""
        return sum(1 for call, _ in self.calls if call == name)

    def get_info(self) -> dict:
        return {
            "store": "memory",
            "rows": len(self.rows),
            "tag_pairs": len(self.tag_pairs),
        }
