"""Tests for the AES-256-GCM layer and key handling."""

import base64
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagvault.crypto import (
    Cipher,
    KEY_SIZE,
    NONCE_SIZE,
    convert_key,
    decode_key,
    generate_key,
    new_nonce,
)
from tagvault.errors import DecryptionError, InvalidKeyError


def test_generate_key_length():
    """Generated keys are 32 bytes and distinct."""
    a, b = generate_key(), generate_key()
    assert len(a) == KEY_SIZE
    assert a != b


def test_convert_key_rejects_bad_lengths():
    """Keys of any length other than 32 bytes are rejected."""
    for size in [0, 16, 31, 33, 64]:
        try:
            convert_key(os.urandom(size))
            assert False, f"{size}-byte key should be rejected"
        except InvalidKeyError:
            pass

    try:
        convert_key("not-bytes" * 4)
        assert False, "str key should be rejected"
    except InvalidKeyError:
        pass


def test_decode_key():
    """Base64 keys decode; garbage and short keys don't."""
    key = generate_key()
    assert decode_key(base64.b64encode(key).decode() + "\n") == key

    for bad in ["%%%not base64%%%", base64.b64encode(b"short").decode()]:
        try:
            decode_key(bad)
            assert False, f"{bad!r} should be rejected"
        except InvalidKeyError:
            pass


def test_seal_roundtrip():
    """Encrypt under a fresh nonce, decrypt back."""
    cipher = Cipher(generate_key())
    ciphertext, nonce = cipher.seal(b"attack at dawn")
    assert len(nonce) == NONCE_SIZE
    assert ciphertext != b"attack at dawn"
    assert cipher.decrypt(ciphertext, nonce) == b"attack at dawn"


def test_fresh_nonce_every_time():
    """Same plaintext twice gives different nonces and ciphertexts."""
    cipher = Cipher(generate_key())
    c1, n1 = cipher.seal(b"same")
    c2, n2 = cipher.seal(b"same")
    assert n1 != n2
    assert c1 != c2
    assert len({new_nonce() for _ in range(1000)}) == 1000


def test_tampered_ciphertext_fails():
    """Any flipped byte fails authentication."""
    cipher = Cipher(generate_key())
    ciphertext, nonce = cipher.seal(b"payload")
    for i in range(len(ciphertext)):
        tampered = bytearray(ciphertext)
        tampered[i] ^= 0x01
        try:
            cipher.decrypt(bytes(tampered), nonce)
            assert False, f"flip at byte {i} went undetected"
        except DecryptionError:
            pass


def test_wrong_key_fails():
    """Ciphertext from one key doesn't open under another."""
    ciphertext, nonce = Cipher(generate_key()).seal(b"payload")
    try:
        Cipher(generate_key()).decrypt(ciphertext, nonce)
        assert False, "wrong key should fail"
    except DecryptionError:
        pass


def test_bad_nonce_fails():
    cipher = Cipher(generate_key())
    ciphertext, _ = cipher.seal(b"payload")
    try:
        cipher.decrypt(ciphertext, b"short")
        assert False, "short nonce should fail"
    except DecryptionError:
        pass


def test_repr_hides_key():
    key = generate_key()
    assert key.hex() not in repr(Cipher(key))
    assert "hidden" in repr(Cipher(key))


if __name__ == "__main__":
    print("Testing crypto...\n")
    test_generate_key_length()
    test_convert_key_rejects_bad_lengths()
    test_decode_key()
    test_seal_roundtrip()
    test_fresh_nonce_every_time()
    test_tampered_ciphertext_fails()
    test_wrong_key_fails()
    test_bad_nonce_fails()
    test_repr_hides_key()
    print("All crypto tests passed!")
