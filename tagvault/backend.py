"""
Backend: the Client Façade
Save and query encrypted, tagged rows on an untrusted store.

Flow for saving a row:
1. Resolve plain tags to random tags (creating TagPairs as needed)
2. Encrypt the body under a fresh nonce
3. POST the wire row
4. Hydrate the store's copy of the row and return it

Flow for querying:
1. Resolve plain tags to random tags
2. GET the rows carrying those random tags
3. Fetch the TagPairs those rows use and decrypt them
4. Decrypt each row and translate its tags back

The store sees ciphertext and random tags. It never sees a key, a body,
or a plain tag.
"""

import itertools
import logging

from tagvault.codec import RowCodec
from tagvault.connectors.base import StoreConnector
from tagvault.connectors.webserver import HTTP_TIMEOUT, WebserverConnector
from tagvault.crypto import Cipher
from tagvault.errors import InvalidArgumentError, TagNotFoundError
from tagvault.models import Row, TagPair
from tagvault.tags import TagPairRegistry

logger = logging.getLogger(__name__)


class Backend:
    """
    One key, one store.

    Several backends with different keys can live in the same process;
    nothing is shared between them.

    Args:
        key: Raw 32-byte symmetric key. InvalidKeyError otherwise.
        base_url: Root URL of the HTTP store. Ignored if connector is given.
        connector: Any StoreConnector (e.g. MemoryConnector) to use instead
            of HTTP.
        timeout: Per-request HTTP timeout in seconds.
        cache_tag_pairs: Keep a process-local cache of decrypted TagPairs.
        workers: Threads used to decrypt fetched batches.
    """

    def __init__(
        self,
        key: bytes,
        base_url: str = None,
        connector: StoreConnector = None,
        timeout: float = HTTP_TIMEOUT,
        cache_tag_pairs: bool = False,
        workers: int = 1,
    ):
        self.cipher = Cipher(key)

        if connector is None:
            if not base_url:
                raise InvalidArgumentError("Backend needs a base URL or a connector")
            connector = WebserverConnector(base_url, timeout=timeout)
        self.connector = connector

        self.registry = TagPairRegistry(self.cipher, connector, cache=cache_tag_pairs, workers=workers)
        self.codec = RowCodec(self.cipher, self.registry, workers=workers)
        logger.info("Backend ready: %s", connector.get_info())

    @classmethod
    def from_config(cls, config, connector: StoreConnector = None) -> "Backend":
        """Build a backend from a BackendConfig."""
        return cls(
            config.key,
            base_url=config.base_url,
            connector=connector,
            timeout=config.timeout,
            cache_tag_pairs=config.cache_tag_pairs,
            workers=config.workers,
        )

    def encrypt(self, plain: bytes, nonce: bytes) -> bytes:
        return self.cipher.encrypt(plain, nonce)

    def decrypt(self, cipher: bytes, nonce: bytes) -> bytes:
        return self.cipher.decrypt(cipher, nonce)

    def all_tag_pairs(self) -> list[TagPair]:
        """Every TagPair at the store, decrypted."""
        return self.registry.all_pairs()

    def save_row(self, row: Row) -> Row:
        """
        Encrypt and store a row.

        Args:
            row: A hydrated row (body + plain tags). Its wire fields are
                filled in as a side effect.

        Returns:
            The row as the store saved it (including any fields the store
            assigned), hydrated.
        """
        self.codec.prepare_for_save(row)
        stored = self.connector.post_row(row.to_wire())
        return self.codec.hydrate(Row.from_wire(stored))

    def save_tag_pair(self, pair: TagPair) -> TagPair:
        """Store an already-encrypted TagPair."""
        return self.registry.save_pair(pair)

    def tag_pairs_from_random_tags(self, random_tags) -> list[TagPair]:
        """
        The TagPairs for the given random tags, decrypted.

        Raises:
            InvalidArgumentError: If random_tags is empty. No request is made.
        """
        return self.registry.pairs_for_random(random_tags)

    def rows_from_plain_tags(self, plain_tags) -> list[Row]:
        """
        All rows carrying the given plain tags, decrypted.

        Plain tags with no TagPair are ignored. If none of them has one,
        no row can carry them, so [] is returned without querying rows.

        The store only returns rows carrying every requested random tag.
        When a plain tag has several TagPairs, each combination of its
        random tags is fetched and the results are merged.

        Raises:
            InvalidArgumentError: If plain_tags is empty.
        """
        try:
            aliases = self.registry.aliases_from_plain(plain_tags)
        except TagNotFoundError:
            logger.debug("No TagPairs for the requested plain tags; no rows to fetch")
            return []

        combos = list(itertools.product(*aliases.values()))
        if len(combos) > 1:
            logger.debug("Plain tags have aliases; running %d row queries", len(combos))

        rows = {}
        for combo in combos:
            for wire in self.connector.fetch_rows(list(combo)):
                row = Row.from_wire(wire)
                rows.setdefault(_row_identity(row), row)

        return self.codec.hydrate_all(list(rows.values()))

    def close(self):
        """Release the connector's resources (e.g. pooled HTTP connections)."""
        self.connector.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _row_identity(row: Row):
    """The store's id if it assigned one, else the ciphertext and nonce."""
    if row.extra.get("id") is not None:
        return ("id", str(row.extra["id"]))
    return ("data", row.encrypted, row.nonce)
