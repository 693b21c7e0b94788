"""
Configuration
Where the store lives and which key to use.

Reads a [tagvault] section from an INI file if one is given or found,
then environment variables override. Keys are base64, in the file, in
the environment, or in a separate key file.

  TAGVAULT_BASE_URL   store root URL
  TAGVAULT_KEY        base64 key
  TAGVAULT_KEY_FILE   path to a file holding the base64 key
  TAGVAULT_TIMEOUT    HTTP timeout in seconds
  TAGVAULT_CACHE      "1"/"true" to cache TagPairs in-process
  TAGVAULT_WORKERS    decryption threads
"""

import configparser
import math
import os
from dataclasses import dataclass, field
from pathlib import Path

from tagvault.crypto import convert_key, decode_key
from tagvault.errors import InvalidArgumentError

DEFAULT_CONFIG_FILE = Path.home() / ".tagvault" / "tagvault.ini"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BackendConfig:
    """Backend settings. Immutable once loaded. The key never shows in repr."""
    base_url: str
    key: bytes = field(repr=False)
    timeout: float = 30.0
    cache_tag_pairs: bool = False
    workers: int = 1

    def __post_init__(self):
        if not self.base_url:
            raise InvalidArgumentError("base_url is required")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(self, "key", convert_key(self.key))
        if not (math.isfinite(self.timeout) and self.timeout > 0):
            raise InvalidArgumentError(f"timeout must be positive, got {self.timeout}")
        if self.workers < 1:
            raise InvalidArgumentError(f"workers must be at least 1, got {self.workers}")


def _read_key_file(path: str) -> str:
    try:
        return Path(path).expanduser().read_text()
    except OSError as exc:
        raise InvalidArgumentError(f"Can't read key file {path}: {exc}") from exc


def load_config(config_path: Path | None = None) -> BackendConfig:
    """Load config from an INI file, then override with environment variables."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
    raw: dict = {}

    if path.exists():
        parser = configparser.ConfigParser()
        parser.read(path)
        if parser.has_section("tagvault"):
            for name in ("base_url", "key", "key_file", "timeout", "cache_tag_pairs", "workers"):
                val = parser.get("tagvault", name, fallback=None)
                if val is not None:
                    raw[name] = val

    env_map = {
        "TAGVAULT_BASE_URL": "base_url",
        "TAGVAULT_KEY": "key",
        "TAGVAULT_TIMEOUT": "timeout",
        "TAGVAULT_CACHE": "cache_tag_pairs",
        "TAGVAULT_WORKERS": "workers",
    }
    for env_key, name in env_map.items():
        val = os.getenv(env_key)
        if val is not None:
            raw[name] = val
    # An environment key file beats any key from the INI file, but not TAGVAULT_KEY
    env_key_file = os.getenv("TAGVAULT_KEY_FILE")
    if env_key_file is not None and os.getenv("TAGVAULT_KEY") is None:
        raw["key"] = _read_key_file(env_key_file)

    if "key" not in raw and "key_file" in raw:
        raw["key"] = _read_key_file(raw["key_file"])
    if "key" not in raw:
        raise InvalidArgumentError("No key configured (set TAGVAULT_KEY or TAGVAULT_KEY_FILE)")
    if not raw.get("base_url"):
        raise InvalidArgumentError("No base URL configured (set TAGVAULT_BASE_URL)")

    kwargs = {
        "base_url": raw["base_url"],
        "key": decode_key(raw["key"]),
    }
    try:
        if "timeout" in raw:
            kwargs["timeout"] = float(raw["timeout"])
        if "workers" in raw:
            kwargs["workers"] = int(raw["workers"])
    except ValueError as exc:
        raise InvalidArgumentError(f"Invalid numeric setting: {exc}") from exc
    if "cache_tag_pairs" in raw:
        kwargs["cache_tag_pairs"] = raw["cache_tag_pairs"].strip().lower() in _TRUE

    return BackendConfig(**kwargs)
