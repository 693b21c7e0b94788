"""
Rows and TagPairs
The two record types exchanged with the store.

A Row exists in two forms. Hydrated: plaintext body and plain tags, as the
caller sees it. Wire: encrypted body, nonce and random tags, as the store
sees it. A TagPair links one plain tag to one random tag; the plain tag is
stored encrypted, the random tag is the server-visible lookup key.

Binary fields travel as base64 strings inside JSON.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field

from tagvault.errors import InvalidArgumentError, SerializationError

# Wire field names used by the store
ROW_DATA = "data"
ROW_NONCE = "nonce"
ROW_TAGS = "tags"
PAIR_RANDOM = "random"
PAIR_PLAIN_ENCRYPTED = "plain_encrypted"
PAIR_NONCE = "nonce"


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode()


def b64decode(value, field_name: str) -> bytes:
    """Decode a base64 wire field, raising SerializationError if malformed."""
    if not isinstance(value, str):
        raise SerializationError(f"Field {field_name!r} must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SerializationError(f"Field {field_name!r} is not valid base64") from exc


def unique(tags) -> list[str]:
    """Deduplicate tags, keeping the first occurrence of each."""
    return list(dict.fromkeys(tags))


def _string_list(value, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise SerializationError(f"Field {field_name!r} must be a list of strings")
    return value


@dataclass
class Row:
    """
    A record with a body and a set of tags.

    Callers build rows hydrated (body + plain_tags). The backend fills in
    the wire fields before saving, and fills in the plaintext fields after
    fetching. Tag order carries no meaning.
    """
    body: bytes | None = None
    plain_tags: list[str] = field(default_factory=list)
    encrypted: bytes | None = None
    nonce: bytes | None = None
    random_tags: list[str] = field(default_factory=list)
    extra: dict = field(default_factory=dict)  # store-assigned fields, e.g. "id"

    def __post_init__(self):
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if isinstance(self.plain_tags, str):
            raise InvalidArgumentError(
                f"plain_tags must be a list of tags, not the string {self.plain_tags!r}"
            )
        self.plain_tags = unique(self.plain_tags)

    @classmethod
    def from_json(cls, data, tags=()) -> "Row":
        """Build a row whose body is a JSON document."""
        body = json.dumps(data, sort_keys=True).encode("utf-8")
        return cls(body=body, plain_tags=list(tags))

    def json(self):
        """Decode a JSON body."""
        if self.body is None:
            raise SerializationError("Row has no decrypted body")
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise SerializationError("Row body is not JSON") from exc

    @property
    def is_hydrated(self) -> bool:
        return self.body is not None

    def has_tags(self, plain_tags) -> bool:
        """True if every given plain tag is on this row."""
        return set(plain_tags) <= set(self.plain_tags)

    def to_wire(self) -> dict:
        """The JSON-ready wire form. Requires the encrypted fields."""
        if self.encrypted is None or self.nonce is None:
            raise SerializationError("Row has not been encrypted")
        wire = dict(self.extra)
        wire[ROW_DATA] = b64encode(self.encrypted)
        wire[ROW_NONCE] = b64encode(self.nonce)
        wire[ROW_TAGS] = list(self.random_tags)
        return wire

    @classmethod
    def from_wire(cls, wire) -> "Row":
        """Build an un-hydrated row from a decoded JSON object."""
        if not isinstance(wire, dict):
            raise SerializationError(f"Expected a JSON object for a row, got {type(wire).__name__}")
        for name in (ROW_DATA, ROW_NONCE):
            if name not in wire:
                raise SerializationError(f"Row is missing field {name!r}")
        extra = {k: v for k, v in wire.items() if k not in (ROW_DATA, ROW_NONCE, ROW_TAGS)}
        return cls(
            encrypted=b64decode(wire[ROW_DATA], ROW_DATA),
            nonce=b64decode(wire[ROW_NONCE], ROW_NONCE),
            random_tags=_string_list(wire.get(ROW_TAGS), ROW_TAGS),
            extra=extra,
        )


@dataclass
class TagPair:
    """One plain tag and the random tag that stands in for it at the store."""
    random: str
    plain: str | None = None
    plain_encrypted: bytes | None = None
    nonce: bytes | None = None

    def encrypt(self, cipher) -> "TagPair":
        """Fill plain_encrypted/nonce from plain under a fresh nonce."""
        if self.plain is None:
            raise SerializationError("TagPair has no plain tag to encrypt")
        self.plain_encrypted, self.nonce = cipher.seal(self.plain.encode("utf-8"))
        return self

    def decrypt(self, cipher) -> "TagPair":
        """Fill plain from plain_encrypted. Raises DecryptionError on tampering."""
        plain = cipher.decrypt(self.plain_encrypted, self.nonce)
        try:
            self.plain = plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SerializationError(f"TagPair {self.random} has a non-UTF-8 plain tag") from exc
        return self

    def to_wire(self) -> dict:
        if self.plain_encrypted is None or self.nonce is None:
            raise SerializationError("TagPair has not been encrypted")
        return {
            PAIR_RANDOM: self.random,
            PAIR_PLAIN_ENCRYPTED: b64encode(self.plain_encrypted),
            PAIR_NONCE: b64encode(self.nonce),
        }

    @classmethod
    def from_wire(cls, wire) -> "TagPair":
        if not isinstance(wire, dict):
            raise SerializationError(f"Expected a JSON object for a TagPair, got {type(wire).__name__}")
        random = wire.get(PAIR_RANDOM)
        if not isinstance(random, str) or not random:
            raise SerializationError(f"TagPair is missing field {PAIR_RANDOM!r}")
        for name in (PAIR_PLAIN_ENCRYPTED, PAIR_NONCE):
            if name not in wire:
                raise SerializationError(f"TagPair is missing field {name!r}")
        return cls(
            random=random,
            plain_encrypted=b64decode(wire[PAIR_PLAIN_ENCRYPTED], PAIR_PLAIN_ENCRYPTED),
            nonce=b64decode(wire[PAIR_NONCE], PAIR_NONCE),
        )
