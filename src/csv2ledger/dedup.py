"""Duplicate detection across the ledger output and the hash cache.

Every imported record leaves its content hash in two places: inside the
rendered ledger entry (the ``MD5Sum`` comment) and as a line in the
append-only hash cache.  A record is a duplicate if either of its two hash
variants appears in either place.

:class:`DuplicateIndex` keeps both tiers in memory.  It is seeded from the
files once at start-up and updated as records are accepted, so lookups are
constant time while giving the same answers as re-scanning the files for
every record (:func:`scan_file_for_hashes`, kept as the reference check
for tests).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

# A whole MD5 hex digest, not part of a longer hex run.
_HASH_TOKEN_RE = re.compile(r"(?<![0-9a-f])[0-9a-f]{32}(?![0-9a-f])")


class DuplicateIndex:
    """Known content hashes, checked output tier first, then cache tier.

    Args:
        output_path: The ledger file entries are appended to.  May not
            exist yet.
        cache_path: The persistent hash cache, or ``None`` if disabled.

    Raises:
        OSError: If an existing output or cache file cannot be read.
    """

    def __init__(self, output_path: Path, cache_path: Path | None = None) -> None:
        self.output_path = output_path
        self.cache_path = cache_path
        self._output_hashes = _read_hashes(output_path)
        self._cache_hashes = _read_hashes(cache_path) if cache_path is not None else set()
        logger.debug(
            "Seeded duplicate index: %d hash(es) from %s, %d from cache",
            len(self._output_hashes), output_path, len(self._cache_hashes),
        )

    def is_duplicate(self, content_hash: str, content_hash_alt: str) -> bool:
        """Return True if either hash variant was imported before.

        The output tier is consulted before the cache tier; the first hit
        decides.
        """
        tiers = (("output", self._output_hashes), ("cache", self._cache_hashes))
        for tier, known in tiers:
            if content_hash in known or content_hash_alt in known:
                logger.debug("Hash %s found in %s tier", content_hash, tier)
                return True
        return False

    def record(self, content_hash: str) -> None:
        """Remember a hash that was just written to the output and cache."""
        self._output_hashes.add(content_hash)
        if self.cache_path is not None:
            self._cache_hashes.add(content_hash)

    def __len__(self) -> int:
        return len(self._output_hashes | self._cache_hashes)


def scan_file_for_hashes(path: Path | None, *hashes: str) -> bool:
    """Return True if any of *hashes* occurs anywhere in the file at *path*.

    This is the straightforward check the index replaces: read the whole
    file and search it.  The conversion never calls it; it is the oracle
    the tests hold :class:`DuplicateIndex` to.  A missing file contains
    nothing.
    """
    if path is None or not path.is_file():
        return False
    text = path.read_text(encoding="utf-8", errors="replace")
    return any(h in text for h in hashes)


def append_to_cache(cache_path: Path, content_hash: str) -> None:
    """Append *content_hash* as one line of the hash cache."""
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    with open(cache_path, "a", encoding="utf-8") as f:
        f.write(content_hash + "\n")


def _read_hashes(path: Path) -> set[str]:
    if not path.is_file():
        return set()
    text = path.read_text(encoding="utf-8", errors="replace")
    return set(_HASH_TOKEN_RE.findall(text))
