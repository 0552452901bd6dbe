"""In-memory cache of scope trees keyed by source name."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Tuple

from analyzer import Scope

logger = logging.getLogger(__name__)

# (source hash, source type, generated)
Fingerprint = Tuple[str, str, bool]


class ScopeCache:
    """
    Remember the scope tree produced for each source.

    An entry is only returned while the source text hash and the analysis
    options it was computed with still match, so edited sources (or sources
    re-run as generated code or as a module) are re-analysed. Scope trees are
    immutable, which makes sharing them between callers safe.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Tuple[Fingerprint, Scope]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(
        self,
        source_name: str,
        source_hash: str,
        *,
        source_type: str = "script",
        generated: bool = False,
    ) -> Optional[Scope]:
        fingerprint = (source_hash, source_type, generated)
        with self._lock:
            entry = self._entries.get(source_name)
            if entry is None:
                return None
            cached_fingerprint, scopes = entry
            if cached_fingerprint != fingerprint:
                logger.debug("Source %s changed; dropping cached scopes", source_name)
                del self._entries[source_name]
                return None
        logger.debug("Scope cache hit for %s", source_name)
        return scopes

    def put(
        self,
        source_name: str,
        source_hash: str,
        scopes: Scope,
        *,
        source_type: str = "script",
        generated: bool = False,
    ) -> None:
        with self._lock:
            self._entries[source_name] = ((source_hash, source_type, generated), scopes)

    def invalidate(self, source_name: str) -> None:
        with self._lock:
            self._entries.pop(source_name, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["ScopeCache"]
