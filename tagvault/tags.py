"""
Tag Pairs: the Blind Index
Maps plain tags to random tags and back.

The store filters rows by random tags. A random tag is 16 random bytes,
hex encoded, chosen independently of the plain tag it stands for, so the
store can match rows that share a tag without learning what the tag says.
The plain tag lives at the store only inside an encrypted TagPair.

What the store CAN see: which rows share a random tag (co-occurrence),
and which random tags a query asks for. That is inherent to a blind index.

Resolution:
  plain -> random   fetch every TagPair, decrypt, match (writes and queries)
  random -> plain   fetch TagPairs filtered by random tag, decrypt (reads)
"""

import logging
import secrets
import threading

from tagvault.batch import map_fail_fast
from tagvault.errors import InvalidArgumentError, TagNotFoundError
from tagvault.models import TagPair, unique

logger = logging.getLogger(__name__)

RANDOM_TAG_BYTES = 16  # 128 bits, collisions negligible


def new_random_tag() -> str:
    """A fresh random tag. Carries no information about any plain tag."""
    return secrets.token_hex(RANDOM_TAG_BYTES)


def _check_plain_tags(plain_tags) -> list[str]:
    tags = unique(plain_tags)
    for tag in tags:
        if not isinstance(tag, str) or not tag:
            raise InvalidArgumentError(f"Plain tags must be non-empty strings, got {tag!r}")
    return tags


class TagPairRegistry:
    """
    Finds, decrypts and creates TagPairs.

    The optional cache remembers every pair this registry has decrypted or
    created. Pairs are never mutated or deleted, so a cache hit is always
    right; a miss always goes back to the store before anything new is
    created, so a pair made by another session is found, not duplicated.

    Args:
        cipher: Encrypt/decrypt capability holding the backend key.
        connector: The store.
        cache: Keep a process-local plain<->random cache.
        workers: Threads used to decrypt fetched pairs.
    """

    def __init__(self, cipher, connector, cache: bool = False, workers: int = 1):
        self.cipher = cipher
        self.connector = connector
        self.cache = cache
        self.workers = workers

        self._plain_to_random: dict[str, list[str]] = {}
        self._random_to_plain: dict[str, str] = {}
        self._lock = threading.Lock()
        # Serializes find-or-create so two saves can't mint two pairs for one tag
        self._create_lock = threading.Lock()

    # -- store access --------------------------------------------------

    def _decrypt_wire(self, wire_pairs: list[dict]) -> list[TagPair]:
        pairs = [TagPair.from_wire(w) for w in wire_pairs]
        pairs = map_fail_fast(lambda p: p.decrypt(self.cipher), pairs, self.workers)
        self._remember(pairs)
        return pairs

    def _remember(self, pairs):
        if not self.cache:
            return
        with self._lock:
            for pair in pairs:
                if pair.random in self._random_to_plain:
                    continue
                self._random_to_plain[pair.random] = pair.plain
                self._plain_to_random.setdefault(pair.plain, []).append(pair.random)

    def all_pairs(self) -> list[TagPair]:
        """Fetch and decrypt every TagPair the store holds."""
        return self._decrypt_wire(self.connector.fetch_tag_pairs())

    def pairs_for_random(self, random_tags) -> list[TagPair]:
        """Fetch and decrypt the TagPairs for the given random tags."""
        random_tags = unique(random_tags)
        if not random_tags:
            raise InvalidArgumentError("Can't get 0 tags")
        return self._decrypt_wire(self.connector.fetch_tag_pairs(random_tags))

    # -- plain -> random -----------------------------------------------

    def lookup_random(self, plain_tags) -> dict[str, list[str]]:
        """
        Map each plain tag to its random tag(s). Tags without a pair are
        left out; nothing is raised or created.
        """
        plain_tags = _check_plain_tags(plain_tags)
        if not plain_tags:
            return {}

        if self.cache:
            with self._lock:
                hits = {t: list(self._plain_to_random[t])
                        for t in plain_tags if t in self._plain_to_random}
            if len(hits) == len(plain_tags):
                return hits

        wanted = set(plain_tags)
        found: dict[str, list[str]] = {}
        for pair in self.all_pairs():
            if pair.plain in wanted:
                found.setdefault(pair.plain, []).append(pair.random)
        return {t: found[t] for t in plain_tags if t in found}

    def aliases_from_plain(self, plain_tags) -> dict[str, list[str]]:
        """
        Resolve plain tags for a query, keeping every alias apart.

        A plain tag normally has one TagPair, but two sessions saving the
        same new tag at once can each create one. Any of those random tags
        may be on a row.

        Returns:
            plain tag -> its random tags, for every plain tag that resolved.

        Raises:
            InvalidArgumentError: If no plain tags are given.
            TagNotFoundError: If none of them resolves.
        """
        plain_tags = _check_plain_tags(plain_tags)
        if not plain_tags:
            raise InvalidArgumentError("Can't resolve 0 plain tags")

        found = self.lookup_random(plain_tags)
        if not found:
            raise TagNotFoundError(plain_tags)
        if len(found) < len(plain_tags):
            logger.warning(
                "%d of %d plain tags have no TagPair; querying with the rest",
                len(plain_tags) - len(found), len(plain_tags),
            )
        return found

    def random_from_plain(self, plain_tags) -> list[str]:
        """
        Resolve plain tags to random tags.

        Returns:
            The union of random tags for every plain tag that resolved.

        Raises:
            InvalidArgumentError: If no plain tags are given.
            TagNotFoundError: If none of them resolves.
        """
        found = self.aliases_from_plain(plain_tags)
        return unique(r for tag in found for r in found[tag])

    def ensure_random(self, plain_tags) -> list[str]:
        """
        One random tag per plain tag, creating TagPairs for tags that have
        none yet. Existing pairs are always reused.
        """
        plain_tags = _check_plain_tags(plain_tags)
        if not plain_tags:
            return []

        with self._create_lock:
            found = self.lookup_random(plain_tags)
            randoms = []
            for tag in plain_tags:
                if tag in found:
                    randoms.append(found[tag][0])
                else:
                    randoms.append(self.create_pair(tag).random)
        return randoms

    # -- random -> plain -----------------------------------------------

    def plain_from_random(self, random_tags) -> dict[str, str]:
        """
        Map random tags back to plain tags. Random tags with no pair at the
        store are left out; callers decide whether that is an error.
        """
        random_tags = unique(random_tags)
        if not random_tags:
            return {}

        if self.cache:
            with self._lock:
                hits = {r: self._random_to_plain[r]
                        for r in random_tags if r in self._random_to_plain}
            if len(hits) == len(random_tags):
                return hits

        wanted = set(random_tags)
        return {p.random: p.plain for p in self.pairs_for_random(random_tags)
                if p.random in wanted}

    # -- creation ------------------------------------------------------

    def create_pair(self, plain_tag: str) -> TagPair:
        """Mint a random tag for plain_tag, encrypt the pair and persist it."""
        _check_plain_tags([plain_tag])
        pair = TagPair(random=new_random_tag(), plain=plain_tag).encrypt(self.cipher)
        self.save_pair(pair)
        return pair

    def save_pair(self, pair: TagPair) -> TagPair:
        """Persist an already-encrypted TagPair."""
        if pair.plain_encrypted is None or pair.nonce is None:
            raise InvalidArgumentError("TagPair must be encrypted before it is saved")
        self.connector.post_tag_pair(pair.to_wire())
        logger.debug("New TagPair created: random=%s", pair.random)
        if pair.plain is not None:
            self._remember([pair])
        return pair

    def clear_cache(self):
        with self._lock:
            self._plain_to_random.clear()
            self._random_to_plain.clear()
