"""
Errors
Every failure tagvault surfaces to its callers.

Library exceptions (cryptography, requests, json, base64) are translated
into these at the point where they occur. Nothing here is retried.
"""


class TagVaultError(Exception):
    """Base class for all tagvault errors."""


class InvalidArgumentError(TagVaultError, ValueError):
    """A call was made with arguments it cannot work with (e.g. no tags)."""


class InvalidKeyError(TagVaultError, ValueError):
    """Key material has the wrong length or cannot be decoded."""


class TransportError(TagVaultError):
    """The store could not be reached."""


class TransportTimeout(TransportError):
    """The store did not answer within the configured timeout."""


class StoreError(TagVaultError):
    """
    The store answered with a non-success HTTP status.

    Args:
        status: HTTP status code.
        body: Raw response body, kept for diagnosis.
        url: The URL that was requested.
    """

    def __init__(self, status: int, body: str, url: str = ""):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"Got HTTP {status} from server: {body!r}")


class DecryptionError(TagVaultError):
    """Ciphertext failed authentication: tampering, corruption or wrong key."""


class TagResolutionError(TagVaultError):
    """A random tag has no TagPair at the store."""

    def __init__(self, missing: list[str]):
        self.missing = sorted(missing)
        super().__init__(
            f"No TagPair found for {len(self.missing)} random tag(s): "
            f"{', '.join(self.missing)}"
        )


class TagNotFoundError(TagVaultError):
    """None of the requested plain tags has a TagPair."""

    def __init__(self, plain_tags: list[str]):
        self.plain_tags = list(plain_tags)
        super().__init__(f"No TagPairs found for {len(self.plain_tags)} plain tag(s)")


class SerializationError(TagVaultError, ValueError):
    """A row or TagPair could not be encoded or decoded."""
