"""
tagvault: Searchable Encrypted Storage
Client-side encryption with tag search against an untrusted store.

tagvault provides two layers:
1. Rows: bodies encrypted with AES-256-GCM before they leave the client
2. TagPairs: a blind index. Plain tags become random tokens the store
   can filter by without learning what they mean

The store holds ciphertext and random tags. The key, the bodies and the
plain tags never leave the client.

Usage:
    from tagvault import Backend, Row, generate_key
    backend = Backend(generate_key(), "https://store.example.com")
    backend.save_row(Row(body=b"hello", plain_tags=["greeting"]))
    rows = backend.rows_from_plain_tags(["greeting"])
"""

from tagvault.backend import Backend
from tagvault.codec import RowCodec
from tagvault.config import BackendConfig, load_config
from tagvault.crypto import Cipher, generate_key, KEY_SIZE, NONCE_SIZE
from tagvault.models import Row, TagPair
from tagvault.tags import TagPairRegistry, new_random_tag
from tagvault.errors import (
    TagVaultError,
    InvalidArgumentError,
    InvalidKeyError,
    TransportError,
    TransportTimeout,
    StoreError,
    DecryptionError,
    TagResolutionError,
    TagNotFoundError,
    SerializationError,
)

__version__ = "0.1.0"
__all__ = [
    "Backend",
    "BackendConfig",
    "load_config",
    "Row",
    "TagPair",
    "RowCodec",
    "TagPairRegistry",
    "new_random_tag",
    "Cipher",
    "generate_key",
    "KEY_SIZE",
    "NONCE_SIZE",
    "TagVaultError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "TransportError",
    "TransportTimeout",
    "StoreError",
    "DecryptionError",
    "TagResolutionError",
    "TagNotFoundError",
    "SerializationError",
]
