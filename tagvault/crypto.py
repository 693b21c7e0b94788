"""
Crypto: Authenticated Encryption
AES-256-GCM under one fixed key and a caller-supplied nonce.

Every row body and every plain tag is encrypted with the same backend key,
each under its own fresh nonce. GCM authenticates the ciphertext, so a
flipped byte or a wrong key fails loudly instead of returning garbage.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tagvault.errors import DecryptionError, InvalidKeyError

KEY_SIZE = 32    # 256 bits
NONCE_SIZE = 12  # AES-256-GCM standard


def generate_key() -> bytes:
    """Generate a random 256-bit backend key."""
    return AESGCM.generate_key(bit_length=256)


def new_nonce() -> bytes:
    """A fresh random nonce. Never reuse one under the same key."""
    return os.urandom(NONCE_SIZE)


def convert_key(key: bytes) -> bytes:
    """
    Validate raw key material.

    Args:
        key: Raw key bytes.

    Returns:
        The key as immutable bytes.

    Raises:
        InvalidKeyError: If the key is not exactly KEY_SIZE bytes.
    """
    if not isinstance(key, (bytes, bytearray)):
        raise InvalidKeyError(f"Key must be bytes, got {type(key).__name__}")
    if len(key) != KEY_SIZE:
        raise InvalidKeyError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    return bytes(key)


def decode_key(encoded: str) -> bytes:
    """Decode a base64 key (as found in config files) and validate it."""
    try:
        raw = base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidKeyError("Key is not valid base64") from exc
    return convert_key(raw)


def encrypt(plaintext: bytes, nonce: bytes, key: bytes) -> bytes:
    """Encrypt plaintext with AES-256-GCM."""
    return AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(ciphertext: bytes, nonce: bytes, key: bytes) -> bytes:
    """
    Decrypt and authenticate AES-256-GCM ciphertext.

    Raises:
        DecryptionError: If authentication fails or the nonce is malformed.
    """
    if nonce is None or len(nonce) != NONCE_SIZE:
        raise DecryptionError(f"Nonce must be {NONCE_SIZE} bytes")
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag as exc:
        raise DecryptionError("Ciphertext failed authentication") from exc


class Cipher:
    """
    Holds one backend key and encrypts/decrypts under it.

    This is the encrypt/decrypt capability handed to the tag registry and
    the row codec. The key never leaves this object.

    Args:
        key: Raw 32-byte key.
    """

    def __init__(self, key: bytes):
        self._key = convert_key(key)

    def encrypt(self, plaintext: bytes, nonce: bytes) -> bytes:
        return encrypt(plaintext, nonce, self._key)

    def decrypt(self, ciphertext: bytes, nonce: bytes) -> bytes:
        return decrypt(ciphertext, nonce, self._key)

    def seal(self, plaintext: bytes) -> tuple[bytes, bytes]:
        """Encrypt under a fresh nonce. Returns (ciphertext, nonce)."""
        nonce = new_nonce()
        return self.encrypt(plaintext, nonce), nonce

    def __repr__(self):
        return "Cipher(key=<hidden>)"
