"""Content-addressed disk cache for GitHub responses."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
import orjson
from loguru import logger

from ..core.exceptions import CacheError


class ContentCache:
    """JSON values stored on disk under the SHA-256 digest of their key.

    An entry for ``key`` lives at ``<cache_dir>/<sha[:2]>/<sha>.json``.
    Commits are immutable, so entries keyed by a commit never go stale.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir
        self.hits = 0
        self.misses = 0

    @staticmethod
    def digest(key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def path_for(self, key: str) -> Path:
        """Location of the entry for ``key``."""
        digest = self.digest(key)
        return self.cache_dir / digest[:2] / f"{digest}.json"

    async def get(self, key: str) -> Any | None:
        """Return the cached value for ``key``, or None on a miss.

        Raises:
            CacheError: If an existing entry cannot be read or decoded
        """
        path = self.path_for(key)
        if not path.exists():
            self.misses += 1
            return None
        try:
            async with aiofiles.open(path, "rb") as f:
                content = await f.read()
            value = orjson.loads(content)
        except (OSError, orjson.JSONDecodeError) as e:
            raise CacheError(
                f"Failed to read cache entry: {e}", {"key": key, "path": str(path)}
            ) from e
        self.hits += 1
        return value

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``.

        The entry is written to a temporary file and then renamed into place.

        Raises:
            CacheError: If the value cannot be encoded or written
        """
        path = self.path_for(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            data = orjson.dumps(value)
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp_path, path)
        except (OSError, orjson.JSONEncodeError) as e:
            raise CacheError(
                f"Failed to write cache entry: {e}", {"key": key, "path": str(path)}
            ) from e
        logger.debug(f"Cached {key}")

    @property
    def stats(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses}
