# Small keyed store for the Quandl auth token.
#
# Entries live in a JSON file in the temp directory, next to the other import
# state files. Every entry expires TOKEN_TTL_SECONDS after it was last read or
# written.

import json
import os
import tempfile
import time
from typing import Callable, Optional

TOKEN_KEY = "quandl_auth_token"
TOKEN_TTL_SECONDS = 21600


def get_token_cache_path() -> str:
    """Returns the standard temp path for the token cache file."""
    return os.path.join(tempfile.gettempdir(), "quandl_token_cache.json")


class TokenCache:
    """Key/value cache with a fixed time-to-live, refreshed on every hit."""

    def __init__(self, path: str = None, ttl: int = TOKEN_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.path = path or get_token_cache_path()
        self.ttl = ttl
        self.clock = clock

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r') as f:
                entries = json.load(f)
        except Exception as e:
            print(f"   Warning: Could not read token cache: {e}")
            return {}
        return entries if isinstance(entries, dict) else {}

    def _save(self, entries: dict) -> None:
        try:
            with open(self.path, 'w') as f:
                json.dump(entries, f)
        except Exception as e:
            print(f"   Warning: Could not save token cache: {e}")

    def get(self, key: str) -> Optional[str]:
        """Returns the cached value and pushes its expiry out by the TTL."""
        entries = self._load()
        entry = entries.get(key)
        if not isinstance(entry, dict):
            return None

        now = self.clock()
        if entry.get("expires_at", 0) <= now or not entry.get("value"):
            del entries[key]
            self._save(entries)
            return None

        entry["expires_at"] = now + self.ttl
        self._save(entries)
        return entry["value"]

    def put(self, key: str, value: str) -> None:
        entries = self._load()
        entries[key] = {"value": value, "expires_at": self.clock() + self.ttl}
        self._save(entries)

    def remove(self, key: str) -> None:
        entries = self._load()
        if key in entries:
            del entries[key]
            self._save(entries)


def get_auth_token(cache: TokenCache = None) -> Optional[str]:
    """
    Returns the auth token to send with requests.

    The cached token wins; QUANDL_AUTH_TOKEN from the environment is used only
    when the cache is empty. Returns None for anonymous access.
    """
    cache = cache or TokenCache()
    token = cache.get(TOKEN_KEY)
    if token:
        return token
    return os.getenv("QUANDL_AUTH_TOKEN") or None


def save_auth_token(token: str, cache: TokenCache = None) -> None:
    cache = cache or TokenCache()
    cache.put(TOKEN_KEY, token.strip())


def clear_auth_token(cache: TokenCache = None) -> None:
    cache = cache or TokenCache()
    cache.remove(TOKEN_KEY)
