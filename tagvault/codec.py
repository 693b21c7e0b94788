"""
Row Codec
Turns hydrated rows into wire rows before a save, and back after a fetch.

Before save:
  plain tags -> random tags (creating TagPairs as needed)
  body       -> AES-256-GCM ciphertext under a fresh nonce

After fetch:
  ciphertext  -> body (authentication failure is an error, never garbage)
  random tags -> plain tags (a random tag with no TagPair is an error)
"""

import logging

from tagvault.batch import map_fail_fast
from tagvault.errors import InvalidArgumentError, TagResolutionError
from tagvault.models import Row, unique

logger = logging.getLogger(__name__)


class RowCodec:
    """
    Encrypts and decrypts rows, translating their tags on the way.

    Args:
        cipher: Encrypt/decrypt capability holding the backend key.
        registry: TagPairRegistry used to translate tags.
        workers: Threads used to decrypt a batch of fetched rows.
    """

    def __init__(self, cipher, registry, workers: int = 1):
        self.cipher = cipher
        self.registry = registry
        self.workers = workers

    def prepare_for_save(self, row: Row) -> Row:
        """
        Fill row.{encrypted,nonce,random_tags} from row.{body,plain_tags}.

        The row is only updated once every step has succeeded.
        """
        if row.body is None:
            raise InvalidArgumentError("Row has no body to encrypt")

        random_tags = self.registry.ensure_random(row.plain_tags)
        encrypted, nonce = self.cipher.seal(row.body)

        row.encrypted = encrypted
        row.nonce = nonce
        row.random_tags = random_tags
        return row

    def hydrate(self, row: Row, plain_by_random: dict[str, str] = None) -> Row:
        """
        Fill row.{body,plain_tags} from row.{encrypted,nonce,random_tags}.

        Args:
            row: A row in wire form, as fetched from the store.
            plain_by_random: Already-resolved random -> plain tags. Fetched
                from the store when not given.

        Raises:
            DecryptionError: If the body fails authentication.
            TagResolutionError: If any random tag has no TagPair.
        """
        if row.encrypted is None or row.nonce is None:
            raise InvalidArgumentError("Row has no encrypted body to decrypt")

        body = self.cipher.decrypt(row.encrypted, row.nonce)

        if plain_by_random is None:
            plain_by_random = self.registry.plain_from_random(row.random_tags)
        missing = [r for r in row.random_tags if r not in plain_by_random]
        if missing:
            raise TagResolutionError(missing)

        row.body = body
        row.plain_tags = unique(plain_by_random[r] for r in row.random_tags)
        return row

    def hydrate_all(self, rows: list[Row]) -> list[Row]:
        """
        Hydrate a batch of rows with a single TagPair fetch.

        Fails on the first row (in order) that fails to hydrate.
        """
        random_tags = unique(r for row in rows for r in row.random_tags)
        plain_by_random = self.registry.plain_from_random(random_tags)
        logger.debug("Hydrating %d rows (%d distinct random tags)", len(rows), len(random_tags))
        return map_fail_fast(lambda row: self.hydrate(row, plain_by_random), rows, self.workers)
