"""
Base class for all store connectors.
Every remote (or simulated) store implements this interface.

Connectors move wire dicts only. They never see keys or plaintext.
"""

from abc import ABC, abstractmethod


class StoreConnector(ABC):
    """Abstract base class for the untrusted row/TagPair store."""

    @abstractmethod
    def post_row(self, wire_row: dict) -> dict:
        """
        Store an encrypted row.

        Args:
            wire_row: The row's wire form (base64 data, nonce, random tags).

        Returns:
            The row as the store now holds it (it may add fields, e.g. an id).
        """

    @abstractmethod
    def post_tag_pair(self, wire_pair: dict) -> None:
        """Store an encrypted TagPair."""

    @abstractmethod
    def fetch_rows(self, random_tags: list[str]) -> list[dict]:
        """Fetch the wire rows carrying the given random tags."""

    @abstractmethod
    def fetch_tag_pairs(self, random_tags: list[str] | None = None) -> list[dict]:
        """
        Fetch wire TagPairs.

        Args:
            random_tags: Only return pairs for these random tags.
                None returns every pair the store holds.
        """

    def get_info(self) -> dict:
        """Metadata about this store (kind, location)."""
        return {"store": self.__class__.__name__}

    def close(self) -> None:
        """Release any resources held by this store. Safe to call twice."""
