"""Read-through template cache with TTL and manual invalidation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from ..config import get_settings
from ..exceptions import TemplateSourceError
from ..models.template import TemplateBlock
from ..utils.logger import get_logger, log_operation

logger = get_logger(__name__)


class TemplateSource(Protocol):
    """Supplies the fully paginated block list for a template identity."""

    async def fetch_blocks(self, template_type: str, complexity: Optional[str] = None) -> list[dict[str, Any]]:
        ...


@dataclass
class _Entry:
    blocks: list[TemplateBlock]
    expires_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    keys: list[str] = field(default_factory=list)


def cache_key(template_type: str, complexity: Optional[str] = None) -> str:
    return f"template_{template_type}_{complexity}" if complexity else f"template_{template_type}"


def _identity(template_type: str, complexity: Optional[str]) -> tuple[str, Optional[str]]:
    return template_type, complexity or None


class TemplateCache:
    """Caches resolved template blocks per (type, complexity)."""

    def __init__(
        self,
        source: TemplateSource,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().template_cache.ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, Optional[str]], _Entry] = {}
        self._hits = 0
        self._misses = 0

    async def get(self, template_type: str, complexity: Optional[str] = None) -> list[TemplateBlock]:
        """Return cached blocks or fetch, parse and cache them."""
        key = cache_key(template_type, complexity)
        entry = self._entries.get(_identity(template_type, complexity))
        now = self._clock()
        if entry is not None and entry.expires_at > now:
            self._hits += 1
            logger.debug(f"Template cache HIT: {key}")
            return list(entry.blocks)

        self._misses += 1
        logger.info(f"Template cache MISS: {key}")
        try:
            with log_operation(logger, "Fetching template", key):
                payloads = await self.source.fetch_blocks(template_type, complexity)
        except TemplateSourceError:
            raise
        except Exception as e:
            raise TemplateSourceError(key, str(e)) from e

        blocks = [TemplateBlock.from_payload(payload) for payload in payloads or []]
        self._entries[_identity(template_type, complexity)] = _Entry(blocks=blocks, expires_at=now + self.ttl_seconds)
        logger.info(f"Template cached: {key} ({len(blocks)} blocks, ttl={self.ttl_seconds}s)")
        return list(blocks)

    def invalidate(self, template_type: Optional[str] = None, complexity: Optional[str] = None) -> int:
        """
        Drop cached templates.

        With no arguments every entry is cleared. With only ``template_type``
        all complexity variants of exactly that type are cleared.

        Returns:
            Number of entries removed.
        """
        if template_type is None:
            removed = len(self._entries)
            self._entries.clear()
        elif complexity is not None:
            removed = 1 if self._entries.pop(_identity(template_type, complexity), None) else 0
        else:
            doomed = [identity for identity in self._entries if identity[0] == template_type]
            for identity in doomed:
                del self._entries[identity]
            removed = len(doomed)

        logger.info(f"Template cache invalidated: {removed} entries")
        return removed

    def is_cached(self, template_type: str, complexity: Optional[str] = None) -> bool:
        entry = self._entries.get(_identity(template_type, complexity))
        return entry is not None and entry.expires_at > self._clock()

    def stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, keys=sorted(cache_key(*k) for k in self._entries))
